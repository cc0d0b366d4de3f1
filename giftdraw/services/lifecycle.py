from __future__ import annotations

import datetime
from typing import Optional

from loguru import logger

from giftdraw.db import Event, repo
from giftdraw.services.domain import EventPhase
from giftdraw.services.draw import require_event
from giftdraw.services.errors import EventPhaseError, ValidationError


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def activate_event(session, event_id: int) -> Event:
    event = require_event(session, event_id)
    if event.phase != EventPhase.DRAFT:
        raise EventPhaseError(f"Only draft events can be activated, this one is {event.phase.value}.")
    if repo.count_participants(session, event.id) < 2:
        raise ValidationError("At least 2 participants are required to open the event.")
    repo.update_event_phase(session, event, EventPhase.ACTIVE)
    logger.bind(event_id=event.id).info("Event activated")
    return event


def complete_event(session, event_id: int, now: Optional[datetime.datetime] = None) -> Event:
    event = require_event(session, event_id)
    if event.phase != EventPhase.DRAWN:
        raise EventPhaseError(f"Only drawn events can be completed, this one is {event.phase.value}.")
    repo.update_event_phase(session, event, EventPhase.COMPLETED, completed_at=now or _utcnow())
    logger.bind(event_id=event.id).info("Event completed")
    return event


def complete_elapsed_events(session, today: Optional[datetime.date] = None) -> int:
    """Completes every drawn event whose exchange date is already behind ``today``."""
    today = today or datetime.date.today()
    completed = 0
    for event in repo.list_events_in_phase(session, EventPhase.DRAWN):
        if event.event_date is None or event.event_date >= today:
            continue
        repo.update_event_phase(session, event, EventPhase.COMPLETED, completed_at=_utcnow())
        completed += 1
    if completed:
        logger.bind(today=today.isoformat()).info("Completed {count} elapsed events", count=completed)
    return completed
