from typing import Any, List, Literal
from pydantic import BaseModel, ConfigDict

from attack_chain.models.items import ItemData

# ============================================================
# PER-TARGET RECORDS: created once, appended to result lists, never mutated
# ============================================================
class TargetHitResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    target: Any                             # Host actor
    first_hit: bool
    second_hit: bool
    both_hit: bool
    one_hit: bool

class DamageResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    target: Any
    roll: Any                               # Whatever damage_resolve returned, exposes .total

class StatusResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    target: Any
    effect: ItemData
    applied: bool
    intensified: bool = False
    warning: str | None = None
    error: str | None = None

class TransformationResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    target: Any
    transformation: ItemData
    applied: bool
    reason: str | None = None               # "success" | "duplicate_name" | "cursed_override_denied" | "application_error"
    warning: str | None = None
    error: str | None = None

# ============================================================
# PHASE / RUN RESULTS
# ============================================================
class AttackChainResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    mode: Literal["attackChain"] = "attackChain"
    reason: str | None = None
    base_roll: Any = None
    embedded_item_roll_message: str | None = None
    target_results: List[TargetHitResult] = []
    damage_results: List[DamageResult] = []
    status_results: List[StatusResult] = []
    transformation_results: List[TransformationResult] = []
    repetition_index: int = 0
    total_repetitions: int = 1

class SavedDamageResult(BaseModel):
    success: bool
    mode: Literal["savedDamage"] = "savedDamage"
    reason: str | None = None
    damage_results: List[DamageResult] = []
    transformation_results: List[TransformationResult] = []
    skipped: bool = False
    repetition_index: int = 0
    total_repetitions: int = 1

IterationResult = AttackChainResult | SavedDamageResult

class ExecutionSummary(BaseModel):
    """Aggregate over every repetition of one action card execution"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    mode: str
    repetition_count: int = 0
    completed_repetitions: int = 0
    results: List[IterationResult] = []
    damage_results: List[DamageResult] = []
    status_results: List[StatusResult] = []
    transformation_results: List[TransformationResult] = []
    target_results: List[TargetHitResult] = []
    base_roll: Any = None
    embedded_item_roll_message: str | None = None
    success_count: int = 0
    failure_count: int = 0
    stop_reason: str | None = None          # Early, non-fatal loop exit: "resourceDepleted" | "missed"
    reason: str | None = None               # Failure reason when success is False
    resource_failure: Any = None            # ResourceCheck that halted the run
