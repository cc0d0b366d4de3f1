from __future__ import annotations

import datetime
import random
from dataclasses import dataclass
from typing import List, Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError

from giftdraw.db import Event, repo
from giftdraw.db import models
from giftdraw.services.assignment import DEFAULT_MAX_ATTEMPTS, generate_assignments
from giftdraw.services.domain import Assignment, EventPhase, ExclusionPair, Participant
from giftdraw.services.errors import (
    DrawAlreadyCompletedError,
    EventNotFoundError,
    EventPhaseError,
    ValidationError,
)
from giftdraw.services.visibility import own_assignment, resolve_visible_assignments

DRAWABLE_PHASES = frozenset({EventPhase.ACTIVE})
REDRAWABLE_PHASES = frozenset({EventPhase.ACTIVE, EventPhase.DRAWN})


@dataclass(frozen=True)
class DrawResult:
    event_id: int
    seed: int
    assignments: List[Assignment]
    participants: List[Participant]


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def to_participant(row: models.Participant) -> Participant:
    return Participant(
        id=row.id,
        name=row.name,
        email=row.email,
        wishlist=tuple(item.text for item in row.wishlist_items),
    )


def to_exclusion(row: models.ExclusionRule) -> ExclusionPair:
    return ExclusionPair(row.participant_a_id, row.participant_b_id)


def to_assignment(row: models.Assignment) -> Assignment:
    return Assignment(
        event_id=row.event_id,
        giver_id=row.giver_id,
        receiver_id=row.receiver_id,
        revealed_at=row.revealed_at,
    )


def require_event(session, event_id: int) -> Event:
    event = repo.get_event(session, event_id)
    if not event:
        raise EventNotFoundError(f"Event {event_id} does not exist.")
    return event


def run_draw(
    session,
    event_id: int,
    seed: Optional[int] = None,
    redraw: bool = False,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    require_ready: bool = False,
) -> DrawResult:
    """
    Generates and stores the assignment set for an event.

    The write is conditioned on the event's ``draw_version`` so that of two
    concurrent draws only one commits; the other gets
    DrawAlreadyCompletedError. Nothing is written when any error is raised,
    provided the caller rolls the session back (``get_session`` does).
    """
    event = require_event(session, event_id)
    log = logger.bind(event_id=event.id)

    if event.phase in {EventPhase.DRAFT, EventPhase.COMPLETED}:
        raise EventPhaseError(f"Cannot draw while the event is {event.phase.value}.")
    if not redraw and (event.phase == EventPhase.DRAWN or repo.count_assignments(session, event.id)):
        raise DrawAlreadyCompletedError("Assignments have already been drawn for this event.")

    participant_rows = repo.list_participants(session, event.id)
    if require_ready:
        not_ready = [row.name for row in participant_rows if not row.is_ready]
        if not_ready:
            raise ValidationError("Participants are not ready yet: " + ", ".join(not_ready))

    participants = [to_participant(row) for row in participant_rows]
    exclusions = [to_exclusion(row) for row in repo.list_exclusions(session, event.id)]

    if seed is None:
        seed = random.randint(1, 2**31 - 1)

    assignments = generate_assignments(
        participants,
        exclusions=exclusions,
        seed=seed,
        event_id=event.id,
        max_attempts=max_attempts,
    )

    expected_version = event.draw_version
    if redraw:
        archived = repo.archive_assignments(session, event.id, expected_version)
        repo.clear_assignments(session, event.id)
        log.bind(archived=archived).info("Previous assignments archived for redraw")

    allowed = REDRAWABLE_PHASES if redraw else DRAWABLE_PHASES
    if not repo.claim_draw(session, event.id, expected_version, allowed, seed, _utcnow()):
        log.warning("Draw lost a concurrent update")
        raise DrawAlreadyCompletedError("Another draw for this event completed first.")

    try:
        repo.create_assignments(
            session,
            event.id,
            {assignment.giver_id: assignment.receiver_id for assignment in assignments},
        )
    except IntegrityError as exc:
        raise DrawAlreadyCompletedError("Assignments already exist for this event.") from exc

    session.refresh(event)
    log.bind(seed=seed, participants=len(participants), exclusions=len(exclusions)).info(
        "Assignments generated"
    )
    return DrawResult(event_id=event.id, seed=seed, assignments=assignments, participants=participants)


def find_viewer_participant_id(session, event_id: int, email: Optional[str]) -> Optional[int]:
    if not email or not email.strip():
        return None
    participant = repo.get_participant_by_email(session, event_id, email)
    return participant.id if participant else None


def view_assignments(
    session,
    event_id: int,
    viewer_participant_id: Optional[int] = None,
    viewer_is_organizer: bool = False,
    now: Optional[datetime.datetime] = None,
) -> List[Assignment]:
    """Returns what the viewer may see and records the first reveal of their own pairing."""
    event = require_event(session, event_id)
    assignments = [to_assignment(row) for row in repo.list_assignments(session, event.id)]
    visible = resolve_visible_assignments(
        assignments,
        event.phase,
        viewer_participant_id=viewer_participant_id,
        viewer_is_organizer=viewer_is_organizer,
    )

    own = own_assignment(visible, viewer_participant_id)
    if own is None or own.revealed_at is not None:
        return visible

    revealed_at = now or _utcnow()
    if not repo.mark_revealed(session, event.id, own.giver_id, revealed_at):
        return visible
    logger.bind(event_id=event.id, giver_id=own.giver_id).info("Assignment revealed to giver")
    return [
        Assignment(
            event_id=item.event_id,
            giver_id=item.giver_id,
            receiver_id=item.receiver_id,
            revealed_at=revealed_at,
        )
        if item is own
        else item
        for item in visible
    ]


def reset_draw(session, event_id: int) -> int:
    """Archives and removes the current assignments and reopens the event for drawing."""
    event = require_event(session, event_id)
    if event.phase != EventPhase.DRAWN:
        raise EventPhaseError(f"Only drawn events can be reset, this one is {event.phase.value}.")

    expected_version = event.draw_version
    archived = repo.archive_assignments(session, event.id, expected_version)
    repo.clear_assignments(session, event.id)
    if not repo.release_draw(session, event.id, expected_version):
        raise DrawAlreadyCompletedError("The draw changed while it was being reset.")

    session.refresh(event)
    logger.bind(event_id=event.id, archived=archived).info("Draw reset")
    return archived
