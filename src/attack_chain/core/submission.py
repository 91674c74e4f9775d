import logging
from typing import List

from attack_chain.core.documents import ActionCardDocument
from attack_chain.core.execution import ActionCardExecution
from attack_chain.core.item_kinds import execute_bypass
from attack_chain.core.resource_validator import check_embedded_item_resources
from attack_chain.core.roll_capture import capture_roll
from attack_chain.core.target_resolver import TargetResolver
from attack_chain.host.interfaces import Actor, Host, Roll
from attack_chain.models import (
    ActionCard,
    ActionCardMode,
    ApprovalRequest,
    BypassOutcome,
    EligibilityProblems,
    ExecutionOptions,
    ExecutionSummary,
    LockedTargetData,
    SubmissionForm,
)

logger = logging.getLogger(__name__)


class ActionCardSubmission:
    """
    The popup flow for one action card: lock targets on open, then on submit
    validate, bypass the embedded item while capturing its roll, re-resolve
    the locked targets and either execute or ask the GM for approval.
    """

    def __init__(self, card_doc: ActionCardDocument, actor: Actor | None, host: Host):
        self.card_doc = card_doc
        self.actor = actor
        self.host = host
        self.execution = ActionCardExecution(card_doc, host)
        self.locked_targets: List[LockedTargetData] | None = None

    @property
    def card(self) -> ActionCard:
        return self.card_doc.card

    # ===== OPEN =====

    async def open(self) -> List[LockedTargetData]:
        """Snapshots the current targets (or the actor's own token)."""
        tokens = await self.execution.resolver.get_target_array()

        if self.card.self_target and self.actor is not None:
            self_tokens = TargetResolver.create_self_target_array(self.actor)
            if self_tokens:
                tokens = self_tokens
            else:
                logger.warning("Self-targeting enabled but no token found for actor %s", self.actor.name)

        self.locked_targets = TargetResolver.lock_targets(tokens)
        logger.debug("Locked %s target(s) for %s", len(self.locked_targets), self.card.name)
        return self.locked_targets

    async def check_eligibility(self, form: SubmissionForm | None = None) -> EligibilityProblems:
        form = form or SubmissionForm()
        card = self.card
        problems = EligibilityProblems()

        if self.actor is None:
            problems.no_actor = True
            problems.messages.append("This action card has no owning actor.")
            return problems

        item = card.embedded_item
        if not card.is_executable:
            problems.embedded_item = True
            problems.messages.append(f"{card.name} has no embedded item.")
            return problems

        if card.self_target:
            if not TargetResolver.has_valid_self_token(self.actor):
                problems.targeting = True
                problems.messages.append(f"{self.actor.name} has no token to target.")
        elif not self.locked_targets:
            problems.targeting = True
            problems.messages.append("No targets selected.")

        if item is not None and card.mode == ActionCardMode.ATTACK_CHAIN:
            check = check_embedded_item_resources(item, self.actor)
            if check.reason == "insufficientPower":
                problems.power = True
                problems.messages.append(f"Not enough power: {check.required} required, {check.available} available.")
            elif check.reason in ("noGearInInventory", "insufficientQuantity"):
                problems.quantity = True
                problems.messages.append(f"Not enough {item.name}: {check.required} required, {check.available} available.")

        if card.enforce_status_choice and card.embedded_status_effects:
            selected = form.selected_effect_ids
            checked = len(card.embedded_status_effects) if selected is None else len(selected)
            if checked > 1:
                problems.status_choice = True
                problems.status_choice_count = checked
                problems.messages.append(f"Choose at most one status effect ({checked} selected).")

        return problems

    # ===== SUBMIT =====

    async def submit(self, form: SubmissionForm | None = None) -> ExecutionSummary | None:
        """
        Runs the card for the popup's choices. Returns the execution summary,
        or None when the card did not run here (validation failure, all
        targets gone, or sent to the GM for approval).
        """
        form = form or SubmissionForm()
        notifier = self.host.notifier
        card = self.card

        try:
            if self.locked_targets is None:
                await self.open()

            problems = await self.check_eligibility(form)
            if problems.has_problems:
                logger.warning("Action card %s is not eligible: %s", card.name, "; ".join(problems.messages))
                for message in problems.messages:
                    notifier.warn(message)
                return None

            actor = self.actor
            roll_result, bypass = await self._roll_embedded_item(actor)

            # Re-resolve: targets may have been deleted while the popup was open
            resolved = self.execution.resolver.resolve_locked_targets(self.locked_targets)
            if not resolved.valid and self.locked_targets:
                logger.warning("All locked targets were deleted before %s executed", card.name)
                notifier.warn("All targets were removed before the action could resolve.")
                return None

            if resolved.invalid:
                names = ", ".join(t.locked_target.actor_name for t in resolved.invalid if t.locked_target)
                notifier.info(f"{len(resolved.invalid)} target(s) no longer exist and were skipped: {names}")

            tokens = [r.token for r in resolved.valid if r.token is not None]
            owns_all = all(token.actor is not None and token.actor.is_owner for token in tokens)

            if not owns_all:
                return await self._request_approval(actor, tokens, roll_result, form)

            summary = await self.execution.execute_with_roll_result(
                actor,
                roll_result,
                ExecutionOptions(
                    transformation_selections=form.transformation_selections,
                    selected_effect_ids=form.selected_effect_ids,
                    locked_targets=self.locked_targets,
                    initial_bypass=bypass,
                ),
            )
            self._report(summary)
            return summary

        except Exception as e:
            logger.error("Failed to execute action card %s from popup: %s", card.name, e)
            notifier.error(f"Action card execution failed: {card.name}")
            return None

    async def _roll_embedded_item(self, actor: Actor) -> tuple[Roll | None, BypassOutcome | None]:
        """
        Bypasses the embedded item and waits for its chat roll. A timeout or
        failure leaves the run without a roll rather than aborting it.
        """
        item = self.card.embedded_item
        if item is None or self.card.mode == ActionCardMode.SAVED_DAMAGE:
            return None, None

        outcome = None

        async def trigger():
            nonlocal outcome
            outcome = await execute_bypass(item, actor, self.host.messages)
            return outcome

        try:
            _, roll = await capture_roll(
                self.host.events,
                actor,
                trigger,
                self.host.settings.roll_capture_timeout,
            )
        except Exception as e:
            logger.warning("Failed to execute %s with bypass or capture its roll: %s", item.name, e)
            return None, outcome

        return roll, outcome

    async def _request_approval(
        self, actor: Actor, tokens: list, roll_result: Roll | None, form: SubmissionForm
    ) -> None:
        user = self.host.user
        approvals = self.host.approvals

        if approvals is None:
            logger.error("No approval channel configured, cannot ask the GM to run %s", self.card.name)
            self.host.notifier.error("Could not send the approval request to the GM.")
            return None

        request = ApprovalRequest(
            actor_id=actor.id,
            action_card_id=self.card.id,
            player_id=user.id,
            player_name=user.name,
            target_ids=[token.actor.id for token in tokens if token.actor is not None],
            roll_result=roll_result,
            transformation_selections=form.transformation_selections,
            selected_effect_ids=form.selected_effect_ids,
            locked_targets=self.locked_targets or [],
        )

        try:
            await approvals.request_approval(request)
        except Exception as e:
            logger.error("Failed to create GM approval request: %s", e)
            self.host.notifier.error("Could not send the approval request to the GM.")
            return None

        logger.info(
            "GM approval requested for %s by %s (%s target(s))",
            self.card.name, user.name, len(request.target_ids),
        )
        self.host.notifier.info("Approval request sent to the GM.")
        return None

    # ===== GM SIDE =====

    async def approve(self, request: ApprovalRequest, approved: bool = True) -> ExecutionSummary | None:
        """Runs (or declines) a player's request with the roll and targets they locked."""
        notifier = self.host.notifier

        if not approved:
            logger.info("GM denied %s for %s", self.card.name, request.player_name)
            notifier.info(f"{self.card.name} from {request.player_name} was denied.")
            return None

        actor = self.host.world.get_actor(request.actor_id)
        if actor is None:
            logger.warning("Actor %s for approved request no longer exists", request.actor_id)
            notifier.warn("The requesting actor no longer exists.")
            return None

        try:
            summary = await self.execution.execute_with_roll_result(
                actor,
                request.roll_result,
                ExecutionOptions(
                    transformation_selections=request.transformation_selections,
                    selected_effect_ids=request.selected_effect_ids,
                    locked_targets=request.locked_targets,
                    initial_bypass=BypassOutcome(),
                ),
            )
        except Exception as e:
            logger.error("Failed to execute approved action card %s: %s", self.card.name, e)
            notifier.error(f"Action card execution failed: {self.card.name}")
            return None

        logger.info("GM approved %s for %s", self.card.name, request.player_name)
        self._report(summary)
        return summary

    def _report(self, summary: ExecutionSummary) -> None:
        notifier = self.host.notifier

        if not summary.success:
            reason = summary.reason or next((r.reason for r in summary.results if not r.success), None)
            logger.warning("Action card %s execution failed: %s", self.card.name, reason)
            notifier.warn(f"Action card execution failed: {reason}")
            return

        match summary.mode:
            case ActionCardMode.ATTACK_CHAIN.value:
                hits = sum(1 for r in summary.target_results if r.one_hit)
                logger.info("Attack chain %s executed, %s target(s) hit", self.card.name, hits)
                notifier.info("Attack chain executed.")
            case ActionCardMode.SAVED_DAMAGE.value:
                logger.info("Saved damage %s applied to %s target(s)", self.card.name, len(summary.damage_results))
                notifier.info(f"Saved damage applied to {len(summary.damage_results)} target(s)")
