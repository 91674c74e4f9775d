import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Sequence

from attack_chain.core.damage_processor import should_apply_effect
from attack_chain.host.interfaces import Actor, Roll
from attack_chain.models import (
    ActionCardMode,
    ItemData,
    RepetitionState,
    TargetHitResult,
    TransformationConfig,
    TransformationResult,
    DEFAULT_THRESHOLD,
)

logger = logging.getLogger(__name__)


@dataclass
class TransformationContext:
    hit_results: Sequence[TargetHitResult]
    roll_result: Roll | None
    transformations: Sequence[ItemData]
    config: TransformationConfig
    state: RepetitionState
    mode: ActionCardMode = ActionCardMode.ATTACK_CHAIN
    is_final_repetition: bool = True
    wait_for_delay: Callable[[], Awaitable[None]] | None = None


@dataclass
class ValidationOutcome:
    applied: bool
    reason: str
    warning: str | None = None
    error: str | None = None


class TransformationApplicator:
    """Applies the per-target chosen transformation to targets meeting the condition."""

    async def process_transformation_results(self, context: TransformationContext) -> List[TransformationResult]:
        if not context.transformations:
            return []

        # Saved damage only ever applies damage
        if context.mode == ActionCardMode.SAVED_DAMAGE:
            logger.debug("Skipping transformations in savedDamage mode")
            return []

        roll_total = context.roll_result.total if context.roll_result is not None else 0
        results: List[TransformationResult] = []

        for hit in context.hit_results:
            target = hit.target
            transformation = self.select_transformation(target, context)
            if transformation is None:
                continue

            applies = should_apply_effect(
                context.config.condition,
                hit.one_hit,
                hit.both_hit,
                roll_total,
                context.config.threshold or DEFAULT_THRESHOLD,
            )
            if not applies:
                continue

            key = f"{target.id}-{transformation.id}"
            if key in context.state.applied_transformations:
                continue

            try:
                outcome = await self.apply_with_validation(target, transformation)
            except Exception as e:
                logger.error("Failed to apply transformation %s to %s: %s", transformation.name, target.name, e)
                results.append(TransformationResult(
                    target=target, transformation=transformation, applied=False, error=str(e),
                ))
                continue

            if outcome.applied:
                context.state.applied_transformations.add(key)

            results.append(TransformationResult(
                target=target,
                transformation=transformation,
                applied=outcome.applied,
                reason=outcome.reason,
                warning=outcome.warning,
                error=outcome.error,
            ))

        if not context.is_final_repetition and context.wait_for_delay is not None:
            await context.wait_for_delay()

        return results

    def select_transformation(self, target: Actor, context: TransformationContext) -> ItemData | None:
        """
        The transformation chosen for this target (keyed by actor id, uuid or
        token id). With no choice made, a lone transformation is the default.
        """
        selections = context.state.transformation_selections
        token = getattr(target, "token", None)

        selected_id = None
        for key in (target.id, getattr(target, "uuid", None), token.id if token else None):
            if key and key in selections:
                selected_id = selections[key]
                break

        if selected_id:
            chosen = next((t for t in context.transformations if t.id == selected_id), None)
        elif len(context.transformations) == 1:
            chosen = context.transformations[0]
        else:
            logger.warning(
                "%s transformations available but none chosen for %s, skipping",
                len(context.transformations), target.name,
            )
            return None

        if chosen is None:
            logger.warning("No transformation selected for %s, skipping", target.name)
        return chosen

    async def apply_with_validation(self, target: Actor, transformation: ItemData) -> ValidationOutcome:
        active_name = target.get_flag("activeTransformationName")

        if active_name == transformation.name:
            return ValidationOutcome(
                applied=False,
                reason="duplicate_name",
                warning=f"{target.name} is already transformed into {transformation.name}.",
            )

        # A cursed transformation can only be replaced by another cursed one
        if active_name and target.get_flag("activeTransformationCursed") and not transformation.cursed:
            return ValidationOutcome(
                applied=False,
                reason="cursed_override_denied",
                warning=f"{active_name} is cursed and cannot be replaced by {transformation.name}.",
            )

        try:
            await target.apply_transformation(transformation.copy_with_new_id())
        except Exception as e:
            return ValidationOutcome(applied=False, reason="application_error", error=str(e))

        logger.info("Applied transformation %s to %s", transformation.name, target.name)
        return ValidationOutcome(applied=True, reason="success")
