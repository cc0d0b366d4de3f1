from __future__ import annotations

from typing import Iterable, List, Optional, Union

from giftdraw.services.domain import Assignment, EventPhase, ParticipantId


def _is_completed(phase: Union[EventPhase, str]) -> bool:
    # Unknown phase values get the most restrictive regime.
    try:
        return EventPhase(phase) == EventPhase.COMPLETED
    except ValueError:
        return False


def resolve_visible_assignments(
    assignments: Iterable[Assignment],
    phase: Union[EventPhase, str],
    viewer_participant_id: Optional[ParticipantId] = None,
    viewer_is_organizer: bool = False,
) -> List[Assignment]:
    """
    Returns the assignments a viewer may see, in input order.

    Once the event is completed everyone sees the whole set. Before that a
    viewer sees only the record where they are the giver, and only if they hold
    a participant record. ``viewer_is_organizer`` never widens what is visible.
    """
    assignments = list(assignments)
    if _is_completed(phase):
        return assignments
    if viewer_participant_id is None:
        return []
    return [assignment for assignment in assignments if assignment.giver_id == viewer_participant_id]


def own_assignment(
    assignments: Iterable[Assignment],
    viewer_participant_id: Optional[ParticipantId],
) -> Optional[Assignment]:
    if viewer_participant_id is None:
        return None
    for assignment in assignments:
        if assignment.giver_id == viewer_participant_id:
            return assignment
    return None
