import logging
from typing import List

from attack_chain.core.attack_chain_executor import AttackChainContext, AttackChainExecutor
from attack_chain.core.damage_processor import DamageContext, process_damage_results, process_saved_damage
from attack_chain.core.documents import ActionCardDocument
from attack_chain.core.item_kinds import execute_bypass, pay_item_cost
from attack_chain.core.repetition_handler import RepetitionHandler
from attack_chain.core.resource_validator import check_embedded_item_resources
from attack_chain.core.roll_capture import capture_roll
from attack_chain.core.status_applicator import StatusContext, StatusEffectApplicator
from attack_chain.core.target_resolver import TargetResolver
from attack_chain.core.transformation_applicator import TransformationApplicator, TransformationContext
from attack_chain.exceptions import ChainsDisabledError, NoEmbeddedItemError, UnknownModeError
from attack_chain.host.interfaces import Actor, Host, Roll
from attack_chain.models import (
    ActionCard,
    ActionCardMode,
    AttackChainResult,
    BypassOutcome,
    ExecutionOptions,
    ExecutionSummary,
    IterationResult,
    ItemData,
    LockedTargetData,
    RepetitionState,
    RepetitionStep,
    ResolvedTarget,
    ResourceCheck,
    SavedDamageResult,
)

logger = logging.getLogger(__name__)

# Placeholder art that should not be used on damage cards
DEFAULT_IMAGES = ("", "icons/svg/item-bag.svg", "icons/svg/mystery-man.svg")


def effective_image(card: ActionCard) -> str:
    """The card's own image, or the embedded item's when the card has a placeholder."""
    if card.img not in DEFAULT_IMAGES:
        return card.img
    item = card.embedded_item
    if item is not None and item.img not in DEFAULT_IMAGES:
        return item.img
    return card.img


class ActionCardExecution:
    """
    Runs an action card against its targets.

    Owns the repetition loop: each repetition is one attack chain pass (or
    one saved damage application), run strictly one after another with the
    per-run RepetitionState threaded through. A repetition can stop the loop
    early, without failing, by returning a RepetitionStep with proceed=False.
    """

    def __init__(self, card_doc: ActionCardDocument, host: Host):
        self.card_doc = card_doc
        self.host = host
        self.settings = host.settings

        self.resolver = TargetResolver(host.world, host.selection, host.notifier)
        self.executor = AttackChainExecutor(self.resolver, host.user, host.notifier, host.settings)
        self.repetitions = RepetitionHandler(host.dice, host.notifier, host.user, host.settings)
        self.status_applicator = StatusEffectApplicator(host.notifier)
        self.transformation_applicator = TransformationApplicator()

    @property
    def card(self) -> ActionCard:
        return self.card_doc.card

    # ===== ENTRY POINTS =====

    async def execute(self, actor: Actor, options: ExecutionOptions | None = None) -> ExecutionSummary:
        """
        Runs the card without a pre-captured roll. In attack chain mode the
        embedded item is bypassed once and its roll seeds the run.
        """
        options = options or ExecutionOptions()
        card = self.card

        if card.mode == ActionCardMode.ATTACK_CHAIN and card.embedded_item is not None:
            self._check_chain_preconditions(card)
            outcome = await execute_bypass(card.embedded_item, actor, self.host.messages)
            options = options.model_copy(update={"initial_bypass": outcome})
            return await self.execute_with_roll_result(actor, outcome.roll, options)

        return await self.execute_with_roll_result(actor, None, options)

    async def execute_with_roll_result(
        self,
        actor: Actor,
        roll_result: Roll | None,
        options: ExecutionOptions | None = None,
    ) -> ExecutionSummary:
        """
        Runs every repetition of the card using ``roll_result`` as the
        first (and, without repeat_to_hit, every) attack roll.

        Raises:
            ChainsDisabledError: attack chains are switched off in settings.
            NoEmbeddedItemError: attack chain mode without an embedded item.
            UnknownModeError: the card's mode is not one the engine runs.
        """
        options = options or ExecutionOptions()
        card = self.card
        mode = self._validated_mode(card)

        try:
            count = await self.repetitions.calculate_repetition_count(card.repetitions, actor)
            count = self.repetitions.apply_system_limit(count, card.name)
            state = self.repetitions.create_state(
                card, options.transformation_selections, options.selected_effect_ids, count,
            )
            logger.info("Executing %s for %s: %s repetition(s) in %s mode", card.name, actor.name, count, mode.value)

            results: List[IterationResult] = []
            stop_reason = None

            for i in range(count):
                state.current_repetition = i

                # 1. Resources
                check = self._check_resources(card, actor, i, options)
                if not check.can_execute:
                    self._notify_resource_failure(card, check, i, count)
                    return self._partial_summary(results, count, mode, check)

                # 2. Roll and cost for this repetition
                roll, depleted = await self._prepare_repetition(card, actor, roll_result, i, options)

                # 3. Run it
                result = await self.execute_single_iteration(actor, roll, state, options.locked_targets)
                results.append(result)

                step = self._next_step(card, result, depleted, state)
                if not step.proceed:
                    stop_reason = step.reason
                    logger.info("Stopping %s after repetition %s/%s: %s", card.name, i + 1, count, step.reason)
                    break

                if not state.is_final_repetition:
                    await self.repetitions.wait_for_delay(card.timing_override)

            if card.advance_initiative and self.host.combat is not None:
                await self.host.combat.next_turn()

        except Exception as e:
            logger.error("Failed to execute action card %s with roll result: %s", card.name, e)
            raise

        summary = self.repetitions.aggregate_results(results, count, mode)
        summary.stop_reason = stop_reason
        return summary

    async def execute_single_iteration(
        self,
        actor: Actor,
        roll_result: Roll | None,
        state: RepetitionState,
        locked_targets: List[LockedTargetData] | None = None,
    ) -> IterationResult:
        match self.card.mode:
            case ActionCardMode.ATTACK_CHAIN:
                return await self.execute_attack_chain_iteration(actor, roll_result, state, locked_targets)
            case ActionCardMode.SAVED_DAMAGE:
                return await self.execute_saved_damage_iteration(actor, state, locked_targets)
            case _:
                raise UnknownModeError(f"Unknown action card mode: {self.card.mode}")

    # ===== ATTACK CHAIN =====

    async def execute_attack_chain_iteration(
        self,
        actor: Actor,
        roll_result: Roll | None,
        state: RepetitionState,
        locked_targets: List[LockedTargetData] | None = None,
    ) -> AttackChainResult:
        card = self.card
        index = state.current_repetition
        damage_context = self.chain_damage_context(card)

        async def process_damage(hits, roll):
            return await process_damage_results(hits, roll, damage_context)

        async def process_status(hits, roll, is_final):
            return await self.status_applicator.process_status_results(StatusContext(
                hit_results=hits,
                roll_result=roll,
                effects=card.embedded_status_effects,
                config=card.attack_chain,
                state=state,
                source_actor=actor,
                attempt_inventory_reduction=card.attempt_inventory_reduction,
                is_final_repetition=is_final,
                wait_for_delay=self._delay,
            ))

        async def process_transformation(hits, roll, is_final):
            return await self.transformation_applicator.process_transformation_results(TransformationContext(
                hit_results=hits,
                roll_result=roll,
                transformations=card.embedded_transformations,
                config=card.transformation_config,
                state=state,
                mode=ActionCardMode.ATTACK_CHAIN,
                is_final_repetition=is_final,
                wait_for_delay=self._delay,
            ))

        result = await self.executor.execute_with_roll_result(AttackChainContext(
            roll_result=roll_result,
            embedded_item=card.embedded_item,
            config=card.attack_chain,
            process_damage=process_damage,
            process_status=process_status,
            process_transformation=process_transformation,
            wait_for_delay=self._delay,
            embedded_transformations=card.embedded_transformations,
            locked_targets=locked_targets,
            should_apply_damage=card.damage_application or index == 0,
            should_apply_status=card.status_per_success or index == 0,
            is_final_repetition=state.is_final_repetition,
        ))
        return result.model_copy(update={"repetition_index": index, "total_repetitions": state.total_repetitions})

    def chain_damage_context(self, card: ActionCard) -> DamageContext:
        chain = card.attack_chain
        return DamageContext(
            formula=chain.damage_formula,
            damage_type=chain.damage_type,
            condition=chain.damage_condition,
            threshold=chain.damage_threshold,
            label=card.name,
            description=card.description or f"Attack chain damage from {card.name}",
            img=effective_image(card),
            bg_color=card.bg_color,
            text_color=card.text_color,
        )

    # ===== SAVED DAMAGE =====

    async def execute_saved_damage(
        self, actor: Actor, locked_targets: List[LockedTargetData] | None = None
    ) -> SavedDamageResult:
        """Applies the stored formula to every target. No roll, no conditions."""
        card = self.card
        targets = await self._saved_damage_targets(locked_targets)

        if not targets:
            logger.warning("No targets found for saved damage from %s", card.name)
            self.host.notifier.warn("No targets for saved damage.")
            return SavedDamageResult(success=False, reason="noTargets")

        context = DamageContext(
            formula=card.saved_damage.formula,
            damage_type=card.saved_damage.type,
            label=card.name,
            description=card.description or card.saved_damage.description,
            img=effective_image(card),
            bg_color=card.bg_color,
            text_color=card.text_color,
        )

        try:
            damage_results = await process_saved_damage(targets, context)
        except Exception as e:
            logger.error("Failed to execute saved damage for %s: %s", actor.name, e)
            raise

        return SavedDamageResult(success=True, damage_results=damage_results)

    async def execute_saved_damage_iteration(
        self,
        actor: Actor,
        state: RepetitionState,
        locked_targets: List[LockedTargetData] | None = None,
    ) -> SavedDamageResult:
        index = state.current_repetition

        # Later repetitions only deal damage again when asked to
        if index > 0 and not self.card.damage_application:
            return SavedDamageResult(
                success=True, skipped=True, repetition_index=index, total_repetitions=state.total_repetitions,
            )

        result = await self.execute_saved_damage(actor, locked_targets)
        return result.model_copy(update={"repetition_index": index, "total_repetitions": state.total_repetitions})

    async def _saved_damage_targets(self, locked_targets: List[LockedTargetData] | None) -> List[ResolvedTarget]:
        if locked_targets is not None:
            return self.resolver.resolve_locked_targets(locked_targets).valid
        return await self.executor.resolve_chain_targets(None)

    # ===== REPETITION STEPS =====

    def _validated_mode(self, card: ActionCard) -> ActionCardMode:
        match card.mode:
            case ActionCardMode.ATTACK_CHAIN:
                self._check_chain_preconditions(card)
                return ActionCardMode.ATTACK_CHAIN
            case ActionCardMode.SAVED_DAMAGE:
                return ActionCardMode.SAVED_DAMAGE
            case _:
                logger.error("Unknown action card mode %r on %s", card.mode, card.name)
                raise UnknownModeError(f"Unknown action card mode: {card.mode}")

    def _check_chain_preconditions(self, card: ActionCard) -> None:
        if not self.settings.chains_enabled:
            logger.warning("Attack chains are disabled, refusing to run %s", card.name)
            raise ChainsDisabledError("Attack chains are disabled by GM settings")
        if card.embedded_item is None:
            logger.error("No embedded item for attack chain %s", card.name)
            raise NoEmbeddedItemError(f"{card.name} has no embedded item to attack with")

    def _check_resources(
        self, card: ActionCard, actor: Actor, index: int, options: ExecutionOptions
    ) -> ResourceCheck:
        item = card.embedded_item
        if item is None:
            return ResourceCheck(can_execute=True)

        applies_cost = card.cost_on_repetition or index == 0
        # The bypass that produced the first roll has already paid for it
        if index == 0 and options.initial_bypass is not None:
            applies_cost = False
        return check_embedded_item_resources(item, actor, applies_cost)

    async def _prepare_repetition(
        self,
        card: ActionCard,
        actor: Actor,
        roll_result: Roll | None,
        index: int,
        options: ExecutionOptions,
    ) -> tuple[Roll | None, bool]:
        """The roll this repetition uses and whether paying for it used up the resource."""
        if index == 0:
            initial = options.initial_bypass
            return roll_result, initial is not None and initial.resource_depleted

        item = card.embedded_item
        applies_cost = card.cost_on_repetition

        if card.repeat_to_hit and card.mode == ActionCardMode.ATTACK_CHAIN and roll_result is not None:
            roll, outcome = await self.roll_for_repetition(item, actor, applies_cost)
            return roll, outcome.resource_depleted

        if item is not None and applies_cost:
            outcome = await pay_item_cost(item, actor)
            return roll_result, outcome.resource_depleted

        return roll_result, False

    async def roll_for_repetition(
        self, item: ItemData, actor: Actor, apply_cost: bool = True
    ) -> tuple[Roll | None, BypassOutcome]:
        """
        Bypasses the embedded item again and captures the fresh roll.
        A timeout or a failed bypass gives no roll; the run carries on.
        """
        async def trigger():
            return await execute_bypass(item, actor, self.host.messages, apply_cost)

        try:
            outcome, captured = await capture_roll(
                self.host.events,
                actor,
                trigger,
                self.settings.repetition_roll_timeout,
                raise_on_timeout=False,
            )
        except Exception as e:
            logger.error("Failed to execute embedded item %s for repetition: %s", item.name, e)
            return None, BypassOutcome()

        if captured is None:
            logger.warning("No roll captured for %s repetition", item.name)
        return captured, outcome

    def _next_step(
        self, card: ActionCard, result: IterationResult, depleted: bool, state: RepetitionState
    ) -> RepetitionStep:
        if state.is_final_repetition:
            return RepetitionStep()

        if depleted:
            self.host.notifier.warn(f"{card.embedded_item.name} is used up; {card.name} stops here.")
            return RepetitionStep(proceed=False, reason="resourceDepleted")

        if (
            card.fail_on_first_miss
            and card.mode == ActionCardMode.ATTACK_CHAIN
            and not self.repetitions.check_iteration_success(result, card)
        ):
            return RepetitionStep(proceed=False, reason="missed")

        return RepetitionStep()

    def _notify_resource_failure(self, card: ActionCard, check: ResourceCheck, index: int, count: int) -> None:
        item_name = card.embedded_item.name if card.embedded_item else card.name
        logger.warning(
            "Action card %s halted at repetition %s/%s: %s", card.name, index + 1, count, check.reason,
        )

        match check.reason:
            case "insufficientPower":
                detail = f"needs {check.required} power, has {check.available}"
            case "noGearInInventory":
                detail = f"no {item_name} in inventory"
            case "insufficientQuantity":
                detail = f"needs {check.required} {item_name}, has {check.available}"
            case _:
                detail = check.reason or "unknown reason"

        self.host.notifier.warn(f"{card.name} stopped at repetition {index + 1} of {count}: {detail}.")

    def _partial_summary(
        self, results: List[IterationResult], count: int, mode: ActionCardMode, check: ResourceCheck
    ) -> ExecutionSummary:
        summary = self.repetitions.aggregate_results(results, count, mode)
        summary.success = False
        summary.reason = "insufficientResources"
        summary.resource_failure = check
        return summary

    async def _delay(self) -> None:
        await self.repetitions.wait_for_delay(self.card.timing_override)
