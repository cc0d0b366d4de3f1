import pytest

from giftdraw.services.domain import Assignment, EventPhase
from giftdraw.services.visibility import own_assignment, resolve_visible_assignments

ASSIGNMENTS = [
    Assignment(event_id=1, giver_id=1, receiver_id=3),
    Assignment(event_id=1, giver_id=2, receiver_id=4),
    Assignment(event_id=1, giver_id=3, receiver_id=2),
    Assignment(event_id=1, giver_id=4, receiver_id=1),
]


@pytest.mark.parametrize("phase", [EventPhase.DRAFT, EventPhase.ACTIVE, EventPhase.DRAWN])
def test_participant_sees_only_own_assignment_before_completion(phase):
    visible = resolve_visible_assignments(ASSIGNMENTS, phase, viewer_participant_id=2)
    assert visible == [ASSIGNMENTS[1]]


def test_organizer_without_participant_record_sees_nothing():
    visible = resolve_visible_assignments(
        ASSIGNMENTS, EventPhase.DRAWN, viewer_participant_id=None, viewer_is_organizer=True
    )
    assert visible == []


def test_organizer_who_participates_sees_only_own_assignment():
    visible = resolve_visible_assignments(
        ASSIGNMENTS, EventPhase.DRAWN, viewer_participant_id=4, viewer_is_organizer=True
    )
    assert visible == [ASSIGNMENTS[3]]


def test_stranger_sees_nothing():
    assert resolve_visible_assignments(ASSIGNMENTS, EventPhase.DRAWN) == []
    assert resolve_visible_assignments(ASSIGNMENTS, EventPhase.DRAWN, viewer_participant_id=99) == []


def test_participant_without_draw_gets_empty_result():
    assert resolve_visible_assignments([], EventPhase.ACTIVE, viewer_participant_id=1) == []


@pytest.mark.parametrize(
    "viewer_participant_id, viewer_is_organizer",
    [(1, False), (None, True), (None, False), (99, False), (2, True)],
)
def test_completed_event_shows_everything(viewer_participant_id, viewer_is_organizer):
    visible = resolve_visible_assignments(
        ASSIGNMENTS,
        EventPhase.COMPLETED,
        viewer_participant_id=viewer_participant_id,
        viewer_is_organizer=viewer_is_organizer,
    )
    assert visible == ASSIGNMENTS


def test_phase_accepts_string_values():
    assert resolve_visible_assignments(ASSIGNMENTS, "completed") == ASSIGNMENTS
    assert resolve_visible_assignments(ASSIGNMENTS, "drawn", viewer_participant_id=3) == [ASSIGNMENTS[2]]


def test_unknown_phase_is_treated_as_hidden():
    assert resolve_visible_assignments(ASSIGNMENTS, "archived") == []


def test_result_is_a_new_list():
    visible = resolve_visible_assignments(iter(ASSIGNMENTS), EventPhase.COMPLETED)
    visible.clear()
    assert len(ASSIGNMENTS) == 4


def test_own_assignment_lookup():
    assert own_assignment(ASSIGNMENTS, 3) == ASSIGNMENTS[2]
    assert own_assignment(ASSIGNMENTS, None) is None
    assert own_assignment(ASSIGNMENTS, 42) is None
