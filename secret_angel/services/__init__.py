from secret_angel.services.assignment import (
    AssignmentError,
    AssignmentInfeasible,
    InvalidGroupCount,
    match_group,
    split_into_groups,
)
from secret_angel.services.game_flow import PersistenceFault
from secret_angel.services.validation import ValidationError

__all__ = [
    "AssignmentError",
    "AssignmentInfeasible",
    "InvalidGroupCount",
    "match_group",
    "split_into_groups",
    "PersistenceFault",
    "ValidationError",
]
