from dataclasses import dataclass, field
from typing import Dict, List, Set

# Execution-scoped, mutated across the repetitions of a single run
@dataclass
class RepetitionState:
    transformation_selections: Dict[str, str] = field(default_factory=dict)
    selected_effect_ids: List[str] | None = None
    status_application_limit: int = 1               # <= 0 means unlimited
    status_application_counts: Dict[str, int] = field(default_factory=dict)   # target id -> applications
    applied_status_effects: Set[str] = field(default_factory=set)            # "{target id}-{effect name}"
    applied_transformations: Set[str] = field(default_factory=set)           # "{target id}-{transformation id}"
    current_repetition: int = 0
    total_repetitions: int = 1

    @property
    def is_final_repetition(self) -> bool:
        return self.current_repetition >= self.total_repetitions - 1
