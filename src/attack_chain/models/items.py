from typing import Any, Dict, List
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from attack_chain.models.schemas import (
    ActionCardMode,
    DamageType,
    EffectCondition,
    ItemKind,
    RollType,
    Stat,
    DEFAULT_THRESHOLD,
)


def random_id() -> str:
    """Fresh 16-character document id."""
    return uuid4().hex[:16]


# ============================================================
# ITEM DATA: full copies of item documents, owned by whoever holds them
# ============================================================
class RollConfig(BaseModel):
    type: str = RollType.ROLL.value         # Raw string so unsupported source types survive until sanitized
    ability: str = "unaugmented"
    bonus: int = 0
    requires_target: bool = True

class EffectChange(BaseModel):
    key: str
    mode: int = 2                           # Host effect mode, 2 = add
    value: str | int | float = 0

class ActiveEffectData(BaseModel):
    """Effect-change container attached to an item"""
    id: str = Field(default_factory=random_id)
    name: str = ""
    img: str = ""
    changes: List[EffectChange] = []
    disabled: bool = False
    transfer: bool = True
    tint: str = "#ffffff"
    flags: Dict[str, Any] = {}

class ItemData(BaseModel):
    """A complete item document snapshot (combat power, gear, feature, status, transformation)"""
    model_config = ConfigDict(extra="allow")

    id: str = Field(default_factory=random_id)
    name: str
    type: ItemKind
    img: str = ""
    description: str = ""
    cost: int = 0                           # Power for combat powers, quantity for gear
    quantity: int = 1
    equipped: bool = False
    cursed: bool = False                    # Transformations only
    roll: RollConfig | None = None
    effects: List[ActiveEffectData] = []
    flags: Dict[str, Any] = {}

    @property
    def roll_type(self) -> str | None:
        return self.roll.type if self.roll else None

    def copy_with_new_id(self) -> "ItemData":
        """Deep copy with a new id so the copy never collides with its source."""
        return self.model_copy(deep=True, update={"id": random_id()})


# ============================================================
# ACTION CARD CONFIGURATION
# ============================================================
class AttackChainConfig(BaseModel):
    first_stat: str = Stat.ACRO.value
    second_stat: str = Stat.PHYS.value
    damage_condition: str = EffectCondition.NEVER.value
    damage_formula: str = "1d6"
    damage_type: str = DamageType.DAMAGE.value
    damage_threshold: int = DEFAULT_THRESHOLD
    status_condition: str = EffectCondition.NEVER.value
    status_threshold: int = DEFAULT_THRESHOLD

class SavedDamageConfig(BaseModel):
    formula: str = "1d6"
    type: str = DamageType.DAMAGE.value
    description: str = ""

class TransformationConfig(BaseModel):
    condition: str = EffectCondition.ONE_SUCCESS.value
    threshold: int = DEFAULT_THRESHOLD

class ActionCard(BaseModel):
    """
    A reusable rule definition: one rollable item (or saved damage), optional
    status effects and transformations, plus execution configuration.
    """
    id: str = Field(default_factory=random_id)
    name: str
    img: str = ""
    description: str = ""
    bg_color: str = "#8B4513"
    text_color: str = "#ffffff"
    mode: ActionCardMode = ActionCardMode.ATTACK_CHAIN

    # Embedded copies
    embedded_item: ItemData | None = None
    embedded_status_effects: List[ItemData] = []
    embedded_transformations: List[ItemData] = []

    attack_chain: AttackChainConfig = AttackChainConfig()
    saved_damage: SavedDamageConfig = SavedDamageConfig()
    transformation_config: TransformationConfig = TransformationConfig()

    # Repetition
    repetitions: str = "1"                  # Formula, evaluated against the actor's roll data
    repeat_to_hit: bool = False             # Re-roll each repetition instead of reusing the first roll
    cost_on_repetition: bool = False
    fail_on_first_miss: bool = True
    status_application_limit: int = 1       # Per target across the whole run, 0 = unlimited
    damage_application: bool = False        # Apply damage on every repetition, not only the first
    status_per_success: bool = False        # Apply status on every repetition, not only the first
    timing_override: float = 0.0            # Seconds, overrides the configured delay

    # Targeting and misc
    self_target: bool = False
    enforce_status_choice: bool = False
    advance_initiative: bool = False
    attempt_inventory_reduction: bool = False

    @property
    def is_executable(self) -> bool:
        return self.embedded_item is not None or self.mode == ActionCardMode.SAVED_DAMAGE
