from .schemas import (
    ActionCardMode,
    RollType,
    EffectCondition,
    DamageType,
    ItemKind,
    Stat,
    LEGAL_ROLL_TYPES,
    EMBEDDABLE_ITEM_KINDS,
    EMBEDDABLE_EFFECT_KINDS,
    DEFAULT_THRESHOLD,
    DEFAULT_AC,
    FLAG_SCOPE,
)

from .items import (
    random_id,
    RollConfig,
    EffectChange,
    ActiveEffectData,
    ItemData,
    AttackChainConfig,
    SavedDamageConfig,
    TransformationConfig,
    ActionCard,
)

from .targets import (
    LockedTargetData,
    LockedTargetValidation,
    ResolvedTarget,
    InvalidTarget,
    ResolvedTargets,
    TargetResolution,
)

from .results import (
    TargetHitResult,
    DamageResult,
    StatusResult,
    TransformationResult,
    AttackChainResult,
    SavedDamageResult,
    IterationResult,
    ExecutionSummary,
)

from .state import RepetitionState

from .execution import (
    BypassOutcome,
    RepetitionStep,
    ResourceCheck,
    ExecutionOptions,
    ApprovalRequest,
    SubmissionForm,
    EligibilityProblems,
)

__all__ = [
    # Schemas
    "ActionCardMode",
    "RollType",
    "EffectCondition",
    "DamageType",
    "ItemKind",
    "Stat",
    "LEGAL_ROLL_TYPES",
    "EMBEDDABLE_ITEM_KINDS",
    "EMBEDDABLE_EFFECT_KINDS",
    "DEFAULT_THRESHOLD",
    "DEFAULT_AC",
    "FLAG_SCOPE",

    # Items
    "random_id",
    "RollConfig",
    "EffectChange",
    "ActiveEffectData",
    "ItemData",
    "AttackChainConfig",
    "SavedDamageConfig",
    "TransformationConfig",
    "ActionCard",

    # Targets
    "LockedTargetData",
    "LockedTargetValidation",
    "ResolvedTarget",
    "InvalidTarget",
    "ResolvedTargets",
    "TargetResolution",

    # Results
    "TargetHitResult",
    "DamageResult",
    "StatusResult",
    "TransformationResult",
    "AttackChainResult",
    "SavedDamageResult",
    "IterationResult",
    "ExecutionSummary",

    # State
    "RepetitionState",

    # Execution
    "BypassOutcome",
    "RepetitionStep",
    "ResourceCheck",
    "ExecutionOptions",
    "ApprovalRequest",
    "SubmissionForm",
    "EligibilityProblems",
]
