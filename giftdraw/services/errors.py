from __future__ import annotations


class DrawError(RuntimeError):
    pass


class ValidationError(DrawError):
    """Malformed participant or exclusion input. Always caller-fixable."""


class InfeasibleConstraintsError(DrawError):
    """The exclusions admit no valid assignment for the participant set."""


class DrawAlreadyCompletedError(DrawError):
    """The event already holds an assignment set."""


class EventNotFoundError(DrawError):
    pass


class EventPhaseError(DrawError):
    pass
