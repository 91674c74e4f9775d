from attack_chain.core.documents import ActionCardDocument, apply_patch
from attack_chain.core.target_resolver import TargetResolver
from attack_chain.core.attack_chain_executor import AttackChainExecutor, AttackChainContext, calculate_target_hits
from attack_chain.core.repetition_handler import RepetitionHandler
from attack_chain.core.status_applicator import StatusEffectApplicator
from attack_chain.core.transformation_applicator import TransformationApplicator
from attack_chain.core.roll_capture import RollCapture, capture_roll
from attack_chain.core.execution import ActionCardExecution
from attack_chain.core.submission import ActionCardSubmission
from attack_chain.core import embedded_items
from attack_chain.host.interfaces import Actor, Host
from attack_chain.models import ActionCard


def initialize_action_card(
    card: ActionCard,
    actor: Actor | None,
    host: Host,
) -> ActionCardSubmission:
    """Wrap a card in its document and return the popup flow that drives it."""

    card_doc = ActionCardDocument(card, owner=actor)
    submission = ActionCardSubmission(card_doc=card_doc, actor=actor, host=host)

    return submission

__all__ = [
    'ActionCardDocument',
    'apply_patch',
    'TargetResolver',
    'AttackChainExecutor',
    'AttackChainContext',
    'calculate_target_hits',
    'RepetitionHandler',
    'StatusEffectApplicator',
    'TransformationApplicator',
    'RollCapture',
    'capture_roll',
    'ActionCardExecution',
    'ActionCardSubmission',
    'embedded_items',
    'initialize_action_card',
]
