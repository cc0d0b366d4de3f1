from __future__ import annotations

import datetime
import enum
from dataclasses import dataclass
from typing import FrozenSet, Hashable, Optional, Tuple

ParticipantId = Hashable


class EventPhase(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    DRAWN = "drawn"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Participant:
    id: ParticipantId
    name: str
    email: Optional[str] = None
    wishlist: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ExclusionPair:
    a: ParticipantId
    b: ParticipantId

    @property
    def key(self) -> FrozenSet[ParticipantId]:
        return frozenset((self.a, self.b))


@dataclass(frozen=True)
class Assignment:
    event_id: Optional[Hashable]
    giver_id: ParticipantId
    receiver_id: ParticipantId
    revealed_at: Optional[datetime.datetime] = None
