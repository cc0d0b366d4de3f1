from __future__ import annotations

import datetime
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import and_, delete, func, select, update

from giftdraw.db.models import (
    Assignment,
    AssignmentHistory,
    Event,
    ExclusionRule,
    Participant,
    WishlistItem,
)
from giftdraw.services.domain import EventPhase
from giftdraw.services.errors import ValidationError


def get_event(session, event_id: int) -> Optional[Event]:
    return session.scalar(select(Event).where(Event.id == event_id))


def create_event(
    session,
    name: str,
    organizer_email: Optional[str] = None,
    event_date: Optional[datetime.date] = None,
    spending_limit: Optional[int] = None,
    phase: EventPhase = EventPhase.DRAFT,
) -> Event:
    event = Event(
        name=name,
        organizer_email=organizer_email,
        event_date=event_date,
        spending_limit=spending_limit,
        phase=phase,
        draw_version=0,
    )
    session.add(event)
    session.flush()
    return event


def update_event_phase(
    session,
    event: Event,
    phase: EventPhase,
    completed_at: Optional[datetime.datetime] = None,
) -> None:
    event.phase = phase
    if phase == EventPhase.COMPLETED:
        event.completed_at = completed_at


def list_events_in_phase(session, phase: EventPhase) -> List[Event]:
    return list(session.scalars(select(Event).where(Event.phase == phase).order_by(Event.id)).all())


def add_participant(
    session,
    event_id: int,
    name: str,
    email: Optional[str] = None,
    wishlist: Sequence[str] = (),
    is_ready: bool = False,
) -> Participant:
    participant = Participant(event_id=event_id, name=name, email=email, is_ready=is_ready)
    participant.wishlist_items = [
        WishlistItem(position=position, text=text) for position, text in enumerate(wishlist)
    ]
    session.add(participant)
    session.flush()
    return participant


def list_participants(session, event_id: int) -> List[Participant]:
    return list(
        session.scalars(
            select(Participant).where(Participant.event_id == event_id).order_by(Participant.id)
        ).all()
    )


def count_participants(session, event_id: int) -> int:
    return session.scalar(
        select(func.count()).select_from(Participant).where(Participant.event_id == event_id)
    )


def get_participant_by_email(session, event_id: int, email: str) -> Optional[Participant]:
    return session.scalar(
        select(Participant)
        .where(
            and_(
                Participant.event_id == event_id,
                func.lower(Participant.email) == email.strip().lower(),
            )
        )
        .order_by(Participant.id)
        .limit(1)
    )


def set_participant_ready(session, participant: Participant, is_ready: bool = True) -> None:
    participant.is_ready = is_ready


def add_exclusion(session, event_id: int, participant_a_id: int, participant_b_id: int) -> ExclusionRule:
    if participant_a_id == participant_b_id:
        raise ValidationError(f"Participant {participant_a_id} cannot be excluded from themselves.")
    low, high = sorted((participant_a_id, participant_b_id))
    existing = session.scalar(
        select(ExclusionRule).where(
            and_(
                ExclusionRule.event_id == event_id,
                ExclusionRule.participant_a_id == low,
                ExclusionRule.participant_b_id == high,
            )
        )
    )
    if existing:
        return existing
    rule = ExclusionRule(event_id=event_id, participant_a_id=low, participant_b_id=high)
    session.add(rule)
    session.flush()
    return rule


def list_exclusions(session, event_id: int) -> List[ExclusionRule]:
    return list(
        session.scalars(
            select(ExclusionRule).where(ExclusionRule.event_id == event_id).order_by(ExclusionRule.id)
        ).all()
    )


def claim_draw(
    session,
    event_id: int,
    expected_version: int,
    allowed_phases: Iterable[EventPhase],
    seed: Optional[int],
    drawn_at: datetime.datetime,
) -> bool:
    """Moves the event to drawn only if nobody else has drawn since ``expected_version`` was read."""
    result = session.execute(
        update(Event)
        .where(
            and_(
                Event.id == event_id,
                Event.draw_version == expected_version,
                Event.phase.in_(list(allowed_phases)),
            )
        )
        .values(
            phase=EventPhase.DRAWN,
            draw_version=expected_version + 1,
            last_assignment_seed=seed,
            drawn_at=drawn_at,
        )
        .execution_options(synchronize_session=False)
    )
    return (result.rowcount or 0) == 1


def release_draw(session, event_id: int, expected_version: int) -> bool:
    result = session.execute(
        update(Event)
        .where(
            and_(
                Event.id == event_id,
                Event.draw_version == expected_version,
                Event.phase == EventPhase.DRAWN,
            )
        )
        .values(
            phase=EventPhase.ACTIVE,
            draw_version=expected_version + 1,
            last_assignment_seed=None,
            drawn_at=None,
        )
        .execution_options(synchronize_session=False)
    )
    return (result.rowcount or 0) == 1


def create_assignments(session, event_id: int, assignments: dict) -> List[Assignment]:
    rows = [
        Assignment(event_id=event_id, giver_id=giver_id, receiver_id=receiver_id)
        for giver_id, receiver_id in assignments.items()
    ]
    session.add_all(rows)
    session.flush()
    return rows


def list_assignments(session, event_id: int) -> List[Assignment]:
    return list(
        session.scalars(
            select(Assignment).where(Assignment.event_id == event_id).order_by(Assignment.id)
        ).all()
    )


def count_assignments(session, event_id: int) -> int:
    return session.scalar(
        select(func.count()).select_from(Assignment).where(Assignment.event_id == event_id)
    )


def mark_revealed(session, event_id: int, giver_id: int, revealed_at: datetime.datetime) -> bool:
    result = session.execute(
        update(Assignment)
        .where(
            and_(
                Assignment.event_id == event_id,
                Assignment.giver_id == giver_id,
                Assignment.revealed_at.is_(None),
            )
        )
        .values(revealed_at=revealed_at)
    )
    return (result.rowcount or 0) == 1


def archive_assignments(session, event_id: int, draw_version: int) -> int:
    assignments = list_assignments(session, event_id)
    if not assignments:
        return 0
    history_rows = [
        AssignmentHistory(
            event_id=event_id,
            giver_id=assignment.giver_id,
            receiver_id=assignment.receiver_id,
            draw_version=draw_version,
        )
        for assignment in assignments
    ]
    session.add_all(history_rows)
    return len(history_rows)


def clear_assignments(session, event_id: int) -> None:
    session.execute(delete(Assignment).where(Assignment.event_id == event_id))


def list_assignment_history(session, event_id: int) -> List[AssignmentHistory]:
    return list(
        session.scalars(
            select(AssignmentHistory)
            .where(AssignmentHistory.event_id == event_id)
            .order_by(AssignmentHistory.draw_version.desc(), AssignmentHistory.id)
        ).all()
    )
