from typing import Any, List
from pydantic import BaseModel, ConfigDict

# ============================================================
# TARGET SNAPSHOTS
# ============================================================
class LockedTargetData(BaseModel):
    """
    Immutable reference to a target, captured when the user confirms the
    target set. Re-resolved at execution time so deletions degrade gracefully.
    """
    model_config = ConfigDict(frozen=True)

    actor_id: str | None
    token_id: str
    scene_id: str | None
    actor_name: str = "Unknown"
    token_name: str | None = None
    img: str = ""
    is_linked: bool = True
    uuid: str | None = None

class LockedTargetValidation(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    found: bool
    token: Any = None                       # Host token, None for actor-only matches
    actor: Any = None                       # Host actor
    reason: str | None = None               # None | "actorOnly" | "deleted" | "noData"

class ResolvedTarget(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    token: Any = None
    actor: Any
    locked_target: LockedTargetData
    reason: str | None = None

class InvalidTarget(BaseModel):
    locked_target: LockedTargetData | None
    reason: str

class ResolvedTargets(BaseModel):
    valid: List[ResolvedTarget] = []
    invalid: List[InvalidTarget] = []
    all_valid: bool = True

class TargetResolution(BaseModel):
    """Outcome of resolving the live selection (no pre-lock)"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    targets: List[Any] = []                 # Host tokens
    reason: str | None = None               # "noSelfToken" | "noTargets" | "error"
