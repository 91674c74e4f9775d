import asyncio
import logging
import math
from typing import Dict, List, Sequence

from attack_chain.config.settings import Settings, settings as default_settings
from attack_chain.core.damage_processor import should_apply_damage, should_apply_effect
from attack_chain.host.interfaces import Actor, Notifier, RollEvaluator, User
from attack_chain.models import (
    ActionCard,
    ActionCardMode,
    ExecutionSummary,
    IterationResult,
    RepetitionState,
    DEFAULT_THRESHOLD,
)

logger = logging.getLogger(__name__)


class RepetitionHandler:
    """Repetition bookkeeping: counts, limits, per-run state, pacing and aggregation."""

    def __init__(
        self,
        dice: RollEvaluator,
        notifier: Notifier,
        user: User,
        settings: Settings = default_settings,
    ):
        self.dice = dice
        self.notifier = notifier
        self.user = user
        self.settings = settings

    async def calculate_repetition_count(self, formula: str | None, actor: Actor) -> int:
        """Floor of the evaluated formula; anything below 1 runs once."""
        roll = await self.dice.evaluate(formula or "1", actor.get_roll_data())
        count = math.floor(roll.total)

        if count <= 0:
            logger.warning("Repetition formula %r gave %s, adjusting to 1", formula, count)
            self.notifier.warn(f"Repetition count was {count}; the action runs once.")
            count = 1
        return count

    def apply_system_limit(self, count: int, card_name: str = "Unknown") -> int:
        limit = self.settings.execution_limit
        if limit > 0 and count > limit:
            logger.info("Repetitions for %s capped by system limit: %s -> %s", card_name, count, limit)
            return limit
        return count

    @staticmethod
    def create_state(
        card: ActionCard,
        transformation_selections: Dict[str, str] | None = None,
        selected_effect_ids: List[str] | None = None,
        total_repetitions: int = 1,
    ) -> RepetitionState:
        return RepetitionState(
            transformation_selections=dict(transformation_selections or {}),
            selected_effect_ids=selected_effect_ids,
            status_application_limit=card.status_application_limit,
            total_repetitions=total_repetitions,
        )

    @staticmethod
    def check_iteration_success(result: IterationResult, card: ActionCard) -> bool:
        """Did any target satisfy a damage, status or transformation condition?"""
        target_results = getattr(result, "target_results", None)
        if not target_results:
            return False

        base_roll = getattr(result, "base_roll", None)
        roll_total = base_roll.total if base_roll is not None else 0
        chain = card.attack_chain

        has_status = bool(card.embedded_status_effects)
        has_transformations = bool(card.embedded_transformations)

        for target in target_results:
            if should_apply_damage(chain, target.one_hit, target.both_hit, roll_total):
                return True
            if has_status and should_apply_effect(
                chain.status_condition, target.one_hit, target.both_hit, roll_total,
                chain.status_threshold or DEFAULT_THRESHOLD,
            ):
                return True
            if has_transformations and should_apply_effect(
                card.transformation_config.condition, target.one_hit, target.both_hit, roll_total,
                card.transformation_config.threshold or DEFAULT_THRESHOLD,
            ):
                return True

        return False

    @staticmethod
    def aggregate_results(results: Sequence[IterationResult], count: int, mode: ActionCardMode) -> ExecutionSummary:
        first = results[0] if results else None
        is_chain = mode == ActionCardMode.ATTACK_CHAIN

        return ExecutionSummary(
            success=all(r.success for r in results),
            mode=mode.value,
            repetition_count=count,
            completed_repetitions=len(results),
            results=list(results),
            damage_results=[d for r in results for d in r.damage_results],
            status_results=[s for r in results for s in getattr(r, "status_results", [])],
            transformation_results=[t for r in results for t in r.transformation_results],
            target_results=list(first.target_results) if is_chain and first is not None else [],
            base_roll=first.base_roll if is_chain and first is not None else None,
            embedded_item_roll_message=first.embedded_item_roll_message if is_chain and first is not None else None,
            success_count=sum(1 for r in results if r.success),
            failure_count=sum(1 for r in results if not r.success),
        )

    async def wait_for_delay(self, timing_override: float = 0.0) -> None:
        """Pacing pause between phases and repetitions, GM client only."""
        if self.settings.disable_delays or not self.user.is_gm:
            return

        if timing_override and timing_override > 0:
            seconds = timing_override
        else:
            seconds = self.settings.execution_delay_ms / 1000

        if seconds > 0:
            await asyncio.sleep(seconds)
