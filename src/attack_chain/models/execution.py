from typing import Any, Dict, List
from pydantic import BaseModel, ConfigDict

from attack_chain.models.targets import LockedTargetData

# ============================================================
# REPETITION SIGNALLING
# ============================================================
class BypassOutcome(BaseModel):
    """What running an item without its popup produced"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    roll: Any = None
    message_id: str | None = None
    cost_paid: int = 0
    resource_depleted: bool = False         # Resource hit zero; later repetitions cannot pay

class RepetitionStep(BaseModel):
    """Returned by each repetition: keep looping, or stop (non-fatally) and why"""
    proceed: bool = True
    reason: str | None = None

class ResourceCheck(BaseModel):
    can_execute: bool
    reason: str | None = None               # "noEmbeddedItem" | "insufficientPower" | "noGearInInventory" | "insufficientQuantity"
    required: int | None = None
    available: int | None = None

# ============================================================
# EXECUTION INPUTS
# ============================================================
class ExecutionOptions(BaseModel):
    transformation_selections: Dict[str, str] = {}      # target id/uuid/token id -> transformation id
    selected_effect_ids: List[str] | None = None        # None = apply every embedded effect
    locked_targets: List[LockedTargetData] | None = None
    initial_bypass: BypassOutcome | None = None         # Outcome of the bypass that produced the first roll

class ApprovalRequest(BaseModel):
    """Sent to the GM when a player targets tokens they do not own"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    actor_id: str
    action_card_id: str
    player_id: str
    player_name: str
    target_ids: List[str]
    roll_result: Any = None
    transformation_selections: Dict[str, str] = {}
    selected_effect_ids: List[str] | None = None
    locked_targets: List[LockedTargetData] = []

# ============================================================
# SUBMISSION
# ============================================================
class SubmissionForm(BaseModel):
    """Choices the user made in the action card popup"""
    transformation_selections: Dict[str, str] = {}
    selected_effect_ids: List[str] | None = None

class EligibilityProblems(BaseModel):
    no_actor: bool = False
    embedded_item: bool = False
    targeting: bool = False
    power: bool = False
    quantity: bool = False
    status_choice: bool = False
    status_choice_count: int = 0
    messages: List[str] = []

    @property
    def has_problems(self) -> bool:
        return any((
            self.no_actor, self.embedded_item, self.targeting,
            self.power, self.quantity, self.status_choice,
        ))
