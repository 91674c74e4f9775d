import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Sequence

from attack_chain.core.damage_processor import should_apply_effect
from attack_chain.core.intensification import apply_or_intensify_status
from attack_chain.core.inventory import find_gear_by_name
from attack_chain.host.interfaces import Actor, Notifier, OwnedItem, Roll
from attack_chain.models import (
    AttackChainConfig,
    ItemData,
    ItemKind,
    RepetitionState,
    StatusResult,
    TargetHitResult,
    DEFAULT_THRESHOLD,
    FLAG_SCOPE,
)

logger = logging.getLogger(__name__)

Delay = Callable[[], Awaitable[None]]


@dataclass
class StatusContext:
    hit_results: Sequence[TargetHitResult]
    roll_result: Roll | None
    effects: Sequence[ItemData]
    config: AttackChainConfig
    state: RepetitionState
    source_actor: Actor
    attempt_inventory_reduction: bool = False
    is_final_repetition: bool = True
    wait_for_delay: Delay | None = None


@dataclass
class GearCheck:
    valid: bool
    gear: OwnedItem | None = None
    result: StatusResult | None = None


def filter_effects_by_selection(effects: Sequence[ItemData], selected_ids: Sequence[str] | None) -> List[ItemData]:
    """``None`` keeps every effect; a list (even empty) keeps only those ids."""
    if selected_ids is None:
        return list(effects)
    return [effect for effect in effects if effect.id in selected_ids]


class StatusEffectApplicator:
    """
    Applies an action card's embedded status effects (and gear handed over
    as effects) to the targets that satisfied the status condition.
    """

    def __init__(self, notifier: Notifier):
        self.notifier = notifier

    async def process_status_results(self, context: StatusContext) -> List[StatusResult]:
        if not context.effects:
            return []

        effects = filter_effects_by_selection(context.effects, context.state.selected_effect_ids)
        roll_total = context.roll_result.total if context.roll_result is not None else 0
        status_results: List[StatusResult] = []

        for result in context.hit_results:
            applies = should_apply_effect(
                context.config.status_condition,
                result.one_hit,
                result.both_hit,
                roll_total,
                context.config.status_threshold or DEFAULT_THRESHOLD,
            )
            if applies:
                status_results.extend(await self.apply_effects_to_target(result.target, effects, context))

        return status_results

    async def apply_effects_to_target(
        self, target: Actor, effects: Sequence[ItemData], context: StatusContext
    ) -> List[StatusResult]:
        """
        Applies every effect to one target. The application limit counts
        whole applications per target across all repetitions, not effects.
        """
        state = context.state
        limit = state.status_application_limit
        count = state.status_application_counts.get(target.id, 0)

        if limit > 0 and count >= limit:
            logger.debug("Status limit reached for %s (%s/%s)", target.name, count, limit)
            return []

        results: List[StatusResult] = []
        for effect in effects:
            if effect.type == ItemKind.GEAR and context.attempt_inventory_reduction:
                check = await self.process_gear_effect(effect, context.source_actor, target)
                if not check.valid:
                    results.append(check.result)
                    continue

            results.append(await self.apply_single_effect(effect, target, context))

        state.status_application_counts[target.id] = count + 1
        return results

    async def process_gear_effect(self, effect: ItemData, source_actor: Actor, target: Actor) -> GearCheck:
        """Consumes the gear's cost from the source actor's matching inventory item."""
        try:
            gear = find_gear_by_name(source_actor, effect.name)
            if gear is None:
                warning = f'Gear "{effect.name}" is not in {source_actor.name}\'s inventory.'
                logger.warning("Gear effect %s not found in %s inventory", effect.name, source_actor.name)
                self.notifier.warn(warning)
                return GearCheck(
                    valid=False,
                    result=StatusResult(target=target, effect=effect, applied=False, warning=warning),
                )

            required = effect.cost or 0
            available = gear.data.quantity
            if available < required:
                warning = f'Not enough "{effect.name}": {required} required, {available} available.'
                logger.warning("Insufficient %s (%s/%s)", effect.name, available, required)
                self.notifier.warn(warning)
                return GearCheck(
                    valid=False,
                    gear=gear,
                    result=StatusResult(target=target, effect=effect, applied=False, warning=warning),
                )

            await gear.update({"quantity": max(0, available - required)})
            return GearCheck(valid=True, gear=gear)

        except Exception as e:
            logger.error("Failed to process gear effect %s: %s", effect.name, e)
            return GearCheck(
                valid=False,
                result=StatusResult(
                    target=target, effect=effect, applied=False, error=f"Inventory error: {e}",
                ),
            )

    async def apply_single_effect(self, effect: ItemData, target: Actor, context: StatusContext) -> StatusResult:
        try:
            prepared = self.prepare_effect(effect)
            outcome = await apply_or_intensify_status(target, prepared)

            if outcome.applied:
                context.state.applied_status_effects.add(f"{target.id}-{effect.name}")

            # The last repetition ends the sequence, nothing left to pace
            if not context.is_final_repetition and context.wait_for_delay is not None:
                await context.wait_for_delay()

            return StatusResult(
                target=target,
                effect=prepared,
                applied=outcome.applied,
                intensified=outcome.intensified,
            )

        except Exception as e:
            logger.error("Failed to apply effect %s to %s: %s", effect.name, target.name, e)
            return StatusResult(target=target, effect=effect, applied=False, error=str(e))

    @staticmethod
    def prepare_effect(effect: ItemData) -> ItemData:
        """Owned copy flagged as an effect; gear arrives equipped, one unit."""
        prepared = effect.copy_with_new_id()
        if prepared.type in (ItemKind.GEAR, ItemKind.STATUS):
            prepared.flags.setdefault(FLAG_SCOPE, {})["isEffect"] = True
        if prepared.type == ItemKind.GEAR:
            prepared.equipped = True
            prepared.quantity = 1
        return prepared
