import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from giftdraw.db import Base, SessionLocal, get_session, init_engine, repo
from giftdraw.services import draw
from giftdraw.services.domain import EventPhase
from giftdraw.services.errors import (
    DrawAlreadyCompletedError,
    EventNotFoundError,
    EventPhaseError,
    InfeasibleConstraintsError,
    ValidationError,
)

NAMES = ("Alice", "Bob", "Charlie", "Diana")


def create_session():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)()


def create_event(session, phase=EventPhase.ACTIVE, names=NAMES, exclusions=(), ready=True):
    event = repo.create_event(session, "Office exchange", organizer_email="boss@example.com", phase=phase)
    participants = [
        repo.add_participant(
            session,
            event.id,
            name,
            email=f"{name.lower()}@example.com",
            wishlist=["Books", "Coffee"],
            is_ready=ready,
        )
        for name in names
    ]
    for a, b in exclusions:
        repo.add_exclusion(session, event.id, participants[a].id, participants[b].id)
    return event, participants


@pytest.fixture
def file_db(tmp_path):
    init_engine(f"sqlite+pysqlite:///{tmp_path / 'giftdraw.db'}", create_tables=True)
    yield
    SessionLocal.kw.pop("bind", None)


def test_run_draw_persists_complete_set():
    session = create_session()
    event, participants = create_event(session)

    result = draw.run_draw(session, event.id, seed=11)

    rows = repo.list_assignments(session, event.id)
    ids = {participant.id for participant in participants}
    assert {row.giver_id for row in rows} == ids
    assert {row.receiver_id for row in rows} == ids
    assert all(row.giver_id != row.receiver_id for row in rows)
    assert {(a.giver_id, a.receiver_id) for a in result.assignments} == {
        (row.giver_id, row.receiver_id) for row in rows
    }
    assert event.phase == EventPhase.DRAWN
    assert event.draw_version == 1
    assert event.last_assignment_seed == 11
    assert event.drawn_at is not None
    assert result.participants[0].wishlist == ("Books", "Coffee")


def test_run_draw_respects_stored_exclusions():
    session = create_session()
    event, participants = create_event(session, exclusions=[(0, 1), (3, 2)])
    alice, bob, charlie, diana = (participant.id for participant in participants)

    result = draw.run_draw(session, event.id, seed=5)

    pairs = {(a.giver_id, a.receiver_id) for a in result.assignments}
    assert not pairs & {(alice, bob), (bob, alice), (charlie, diana), (diana, charlie)}


def test_run_draw_generates_seed_when_missing():
    session = create_session()
    event, _ = create_event(session)

    result = draw.run_draw(session, event.id)

    assert result.seed == event.last_assignment_seed
    assert 1 <= result.seed < 2**31


def test_second_draw_is_rejected():
    session = create_session()
    event, _ = create_event(session)
    first = draw.run_draw(session, event.id, seed=1)

    with pytest.raises(DrawAlreadyCompletedError):
        draw.run_draw(session, event.id, seed=2)

    rows = repo.list_assignments(session, event.id)
    assert {(row.giver_id, row.receiver_id) for row in rows} == {
        (a.giver_id, a.receiver_id) for a in first.assignments
    }


@pytest.mark.parametrize("phase", [EventPhase.DRAFT, EventPhase.COMPLETED])
def test_draw_rejected_outside_drawable_phases(phase):
    session = create_session()
    event, _ = create_event(session, phase=phase)
    with pytest.raises(EventPhaseError):
        draw.run_draw(session, event.id)
    assert repo.count_assignments(session, event.id) == 0


def test_draw_for_missing_event():
    session = create_session()
    with pytest.raises(EventNotFoundError):
        draw.run_draw(session, 404)


def test_draw_with_too_few_participants():
    session = create_session()
    event, _ = create_event(session, names=("Alice",))
    with pytest.raises(ValidationError):
        draw.run_draw(session, event.id)
    assert event.phase == EventPhase.ACTIVE


def test_infeasible_draw_writes_nothing():
    session = create_session()
    event, _ = create_event(session, names=NAMES[:3], exclusions=[(0, 1), (1, 2), (0, 2)])

    with pytest.raises(InfeasibleConstraintsError):
        draw.run_draw(session, event.id, seed=3)

    assert repo.count_assignments(session, event.id) == 0
    assert event.phase == EventPhase.ACTIVE
    assert event.draw_version == 0


def test_draw_requires_ready_participants_when_asked():
    session = create_session()
    event, participants = create_event(session, ready=False)

    with pytest.raises(ValidationError):
        draw.run_draw(session, event.id, require_ready=True)

    for participant in participants:
        repo.set_participant_ready(session, participant)
    draw.run_draw(session, event.id, require_ready=True)
    assert event.phase == EventPhase.DRAWN


def test_redraw_archives_previous_set():
    session = create_session()
    event, _ = create_event(session)
    first = draw.run_draw(session, event.id, seed=1)

    second = draw.run_draw(session, event.id, seed=2, redraw=True)

    assert event.phase == EventPhase.DRAWN
    assert event.draw_version == 2
    assert event.last_assignment_seed == 2
    assert repo.count_assignments(session, event.id) == len(NAMES)
    history = repo.list_assignment_history(session, event.id)
    assert {(row.giver_id, row.receiver_id) for row in history} == {
        (a.giver_id, a.receiver_id) for a in first.assignments
    }
    assert all(row.draw_version == 1 for row in history)
    assert len(second.assignments) == len(NAMES)


def test_stale_claim_is_refused(file_db):
    with get_session() as session:
        event, _ = create_event(session)
        event_id = event.id

    stale_session = SessionLocal()
    try:
        stale_version = repo.get_event(stale_session, event_id).draw_version

        with get_session() as session:
            draw.run_draw(session, event_id, seed=8)

        claimed = repo.claim_draw(
            stale_session,
            event_id,
            stale_version,
            draw.DRAWABLE_PHASES,
            seed=9,
            drawn_at=datetime.datetime.now(datetime.timezone.utc),
        )
        assert claimed is False
    finally:
        stale_session.rollback()
        stale_session.close()

    with get_session() as session:
        event = repo.get_event(session, event_id)
        assert event.last_assignment_seed == 8
        assert event.draw_version == 1


def test_lost_claim_rolls_back(file_db, monkeypatch):
    with get_session() as session:
        event, _ = create_event(session)
        event_id = event.id

    monkeypatch.setattr(repo, "claim_draw", lambda *args, **kwargs: False)
    with pytest.raises(DrawAlreadyCompletedError):
        with get_session() as session:
            draw.run_draw(session, event_id, seed=4)

    with get_session() as session:
        assert repo.count_assignments(session, event_id) == 0
        assert repo.get_event(session, event_id).phase == EventPhase.ACTIVE


def test_view_assignments_before_completion():
    session = create_session()
    event, participants = create_event(session)
    draw.run_draw(session, event.id, seed=21)
    alice = participants[0]
    now = datetime.datetime(2026, 12, 1, 12, 0)

    visible = draw.view_assignments(session, event.id, viewer_participant_id=alice.id, now=now)

    assert len(visible) == 1
    assert visible[0].giver_id == alice.id
    assert visible[0].revealed_at == now

    again = draw.view_assignments(
        session, event.id, viewer_participant_id=alice.id, now=now + datetime.timedelta(days=1)
    )
    assert again[0].revealed_at == now

    assert draw.view_assignments(session, event.id, viewer_is_organizer=True) == []
    others = [row for row in repo.list_assignments(session, event.id) if row.giver_id != alice.id]
    assert all(row.revealed_at is None for row in others)


def test_view_assignments_after_completion():
    session = create_session()
    event, participants = create_event(session)
    draw.run_draw(session, event.id, seed=21)
    repo.update_event_phase(session, event, EventPhase.COMPLETED)

    visible = draw.view_assignments(session, event.id, viewer_is_organizer=True)
    assert len(visible) == len(participants)


def test_view_before_draw_is_empty():
    session = create_session()
    event, participants = create_event(session)
    assert draw.view_assignments(session, event.id, viewer_participant_id=participants[1].id) == []


def test_find_viewer_participant_id():
    session = create_session()
    event, participants = create_event(session)

    assert draw.find_viewer_participant_id(session, event.id, " Bob@Example.com ") == participants[1].id
    assert draw.find_viewer_participant_id(session, event.id, "boss@example.com") is None
    assert draw.find_viewer_participant_id(session, event.id, None) is None
    assert draw.find_viewer_participant_id(session, event.id, "  ") is None


def test_reset_draw_reopens_event():
    session = create_session()
    event, _ = create_event(session)
    draw.run_draw(session, event.id, seed=1)

    archived = draw.reset_draw(session, event.id)

    assert archived == len(NAMES)
    assert event.phase == EventPhase.ACTIVE
    assert event.last_assignment_seed is None
    assert repo.count_assignments(session, event.id) == 0

    draw.run_draw(session, event.id, seed=2)
    assert event.draw_version == 3


def test_reset_requires_drawn_event():
    session = create_session()
    event, _ = create_event(session)
    with pytest.raises(EventPhaseError):
        draw.reset_draw(session, event.id)


def test_add_exclusion_rejects_self_pair():
    session = create_session()
    event, participants = create_event(session)

    with pytest.raises(ValidationError):
        repo.add_exclusion(session, event.id, participants[0].id, participants[0].id)
    assert repo.list_exclusions(session, event.id) == []


def test_add_exclusion_collapses_reversed_pair():
    session = create_session()
    event, participants = create_event(session)
    first = repo.add_exclusion(session, event.id, participants[2].id, participants[1].id)
    second = repo.add_exclusion(session, event.id, participants[1].id, participants[2].id)
    assert first is second
    assert (first.participant_a_id, first.participant_b_id) == (participants[1].id, participants[2].id)
