from giftdraw.db.models import (
    Assignment,
    AssignmentHistory,
    Base,
    Event,
    ExclusionRule,
    Participant,
    WishlistItem,
)
from giftdraw.db.session import SessionLocal, get_session, init_engine

__all__ = [
    "Assignment",
    "AssignmentHistory",
    "Base",
    "Event",
    "ExclusionRule",
    "Participant",
    "WishlistItem",
    "SessionLocal",
    "get_session",
    "init_engine",
]
