import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Sequence

from attack_chain.config.settings import Settings, settings as default_settings
from attack_chain.core.target_resolver import TargetResolver
from attack_chain.host.interfaces import Notifier, Roll, User
from attack_chain.models import (
    AttackChainConfig,
    AttackChainResult,
    DamageResult,
    ItemData,
    LockedTargetData,
    ResolvedTarget,
    RollType,
    StatusResult,
    TargetHitResult,
    TransformationResult,
    DEFAULT_AC,
)

logger = logging.getLogger(__name__)

HitResults = Sequence[TargetHitResult]
ProcessDamage = Callable[[HitResults, Roll | None], Awaitable[List[DamageResult]]]
ProcessStatus = Callable[[HitResults, Roll | None, bool], Awaitable[List[StatusResult]]]
ProcessTransformation = Callable[[HitResults, Roll | None, bool], Awaitable[List[TransformationResult]]]


@dataclass
class AttackChainContext:
    """One repetition's worth of input; phase processors are injected."""
    roll_result: Roll | None
    embedded_item: ItemData
    config: AttackChainConfig
    process_damage: ProcessDamage
    process_status: ProcessStatus
    process_transformation: ProcessTransformation
    wait_for_delay: Callable[[], Awaitable[None]]
    embedded_transformations: Sequence[ItemData] = field(default_factory=list)
    locked_targets: Sequence[LockedTargetData] | None = None
    should_apply_damage: bool = True
    should_apply_status: bool = True
    is_final_repetition: bool = True


def _ac_total(roll_data: Any, stat: str) -> int:
    try:
        return roll_data["abilities"][stat]["ac"]["total"] or DEFAULT_AC
    except (KeyError, TypeError):
        return DEFAULT_AC


def calculate_target_hits(
    targets: Sequence[ResolvedTarget],
    roll_result: Roll | None,
    embedded_item: ItemData,
    config: AttackChainConfig,
) -> List[TargetHitResult]:
    """
    Compares one roll total against each target's two AC-equivalents.

    A roll type of ``none`` is two automatic successes; no roll at all
    means no hits.
    """
    automatic = embedded_item.roll_type == RollType.NONE.value
    results = []

    for target in targets:
        actor = target.actor

        if automatic:
            results.append(TargetHitResult(
                target=actor, first_hit=True, second_hit=True, both_hit=True, one_hit=True,
            ))
            continue

        roll_data = actor.get_roll_data()
        first_ac = _ac_total(roll_data, config.first_stat)
        second_ac = _ac_total(roll_data, config.second_stat)

        total = roll_result.total if roll_result is not None else 0
        first_hit = roll_result is not None and total >= first_ac
        second_hit = roll_result is not None and total >= second_ac

        results.append(TargetHitResult(
            target=actor,
            first_hit=first_hit,
            second_hit=second_hit,
            both_hit=first_hit and second_hit,
            one_hit=first_hit or second_hit,
        ))

    return results


class AttackChainExecutor:
    """
    Runs a single attack chain pass: resolve targets, compute hits, then
    damage -> status -> transformation. The order is fixed.
    """

    def __init__(
        self,
        resolver: TargetResolver,
        user: User,
        notifier: Notifier,
        settings: Settings = default_settings,
    ):
        self.resolver = resolver
        self.user = user
        self.notifier = notifier
        self.settings = settings

    async def resolve_chain_targets(self, locked: Sequence[LockedTargetData] | None) -> List[ResolvedTarget]:
        if locked is not None:
            return self.resolver.resolve_locked_targets(locked).valid

        # No lock: fall back to the live selection
        tokens = await self.resolver.get_target_array()
        return [
            ResolvedTarget(
                token=token,
                actor=token.actor,
                locked_target=self.resolver.lock_targets([token])[0],
            )
            for token in tokens
            if token.actor is not None
        ]

    async def execute_with_roll_result(self, context: AttackChainContext) -> AttackChainResult:
        disable_delays = self.settings.disable_delays

        try:
            # 1. Targets
            targets = await self.resolve_chain_targets(context.locked_targets)
            if not targets:
                logger.warning("No valid targets found for attack chain")
                self.notifier.warn("No valid targets for the attack chain.")
                return AttackChainResult(success=False, reason="noTargets")

            # 2. Hits
            hits = calculate_target_hits(targets, context.roll_result, context.embedded_item, context.config)

            # 3. Let observers see the roll land before anything changes
            if self.user.is_gm and not disable_delays:
                await context.wait_for_delay()

            # 4. Damage
            damage_results: List[DamageResult] = []
            if context.should_apply_damage:
                damage_results = await context.process_damage(hits, context.roll_result)
                if not disable_delays:
                    await context.wait_for_delay()

            # 5. Status
            status_results: List[StatusResult] = []
            if context.should_apply_status:
                status_results = await context.process_status(
                    hits, context.roll_result, context.is_final_repetition,
                )

            # 6. Transformations
            transformation_results: List[TransformationResult] = []
            if context.embedded_transformations:
                transformation_results = await context.process_transformation(
                    hits, context.roll_result, context.is_final_repetition,
                )

        except Exception as e:
            logger.error("Failed to execute attack chain with roll result: %s", e)
            raise

        return AttackChainResult(
            success=True,
            base_roll=context.roll_result,
            embedded_item_roll_message=getattr(context.roll_result, "message_id", None),
            target_results=hits,
            damage_results=damage_results,
            status_results=status_results,
            transformation_results=transformation_results,
        )
