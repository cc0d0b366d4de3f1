from giftdraw.services.assignment import generate_assignments, is_valid_assignment
from giftdraw.services.domain import Assignment, EventPhase, ExclusionPair, Participant
from giftdraw.services.errors import (
    DrawAlreadyCompletedError,
    DrawError,
    EventNotFoundError,
    EventPhaseError,
    InfeasibleConstraintsError,
    ValidationError,
)
from giftdraw.services.exclusions import validate_exclusions
from giftdraw.services.visibility import resolve_visible_assignments

__all__ = [
    "Assignment",
    "DrawAlreadyCompletedError",
    "DrawError",
    "EventNotFoundError",
    "EventPhase",
    "EventPhaseError",
    "ExclusionPair",
    "InfeasibleConstraintsError",
    "Participant",
    "ValidationError",
    "generate_assignments",
    "is_valid_assignment",
    "resolve_visible_assignments",
    "validate_exclusions",
]
