from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from giftdraw.services.domain import EventPhase

Base = declarative_base()


def _phase_values(enum_cls) -> list:
    return [member.value for member in enum_cls]


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    organizer_email = Column(String, nullable=True)
    event_date = Column(Date, nullable=True)
    spending_limit = Column(Integer, nullable=True)
    phase = Column(
        Enum(EventPhase, name="event_phase", values_callable=_phase_values),
        nullable=False,
        default=EventPhase.DRAFT,
        server_default=EventPhase.DRAFT.value,
    )
    draw_version = Column(Integer, nullable=False, default=0, server_default="0")
    last_assignment_seed = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    drawn_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    participants = relationship(
        "Participant",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="Participant.id",
    )
    exclusions = relationship(
        "ExclusionRule",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="ExclusionRule.id",
    )
    assignments = relationship("Assignment", back_populates="event", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, name={self.name!r}, phase={self.phase})>"


class Participant(Base):
    __tablename__ = "participants"

    id = Column(Integer, primary_key=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    is_ready = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    event = relationship("Event", back_populates="participants")
    wishlist_items = relationship(
        "WishlistItem",
        back_populates="participant",
        cascade="all, delete-orphan",
        order_by="WishlistItem.position",
    )

    def __repr__(self) -> str:
        return "<Participant(id={0}, event_id={1}, name={2!r}, is_ready={3})>".format(
            self.id, self.event_id, self.name, self.is_ready
        )


class WishlistItem(Base):
    __tablename__ = "wishlist_items"

    id = Column(Integer, primary_key=True)
    participant_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    text = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    participant = relationship("Participant", back_populates="wishlist_items")

    __table_args__ = (
        UniqueConstraint("participant_id", "position", name="uq_wishlist_items_participant_position"),
    )


class ExclusionRule(Base):
    __tablename__ = "exclusions"

    id = Column(Integer, primary_key=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    # Stored with the lower participant id first.
    participant_a_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    participant_b_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)

    event = relationship("Event", back_populates="exclusions")

    __table_args__ = (
        UniqueConstraint("event_id", "participant_a_id", "participant_b_id", name="uq_exclusions_event_pair"),
        CheckConstraint("participant_a_id < participant_b_id", name="ck_exclusions_ordered_pair"),
    )


class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    giver_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    receiver_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    revealed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    event = relationship("Event", back_populates="assignments")
    giver = relationship("Participant", foreign_keys=[giver_id])
    receiver = relationship("Participant", foreign_keys=[receiver_id])

    __table_args__ = (
        UniqueConstraint("event_id", "giver_id", name="uq_assignments_event_giver"),
        UniqueConstraint("event_id", "receiver_id", name="uq_assignments_event_receiver"),
    )


class AssignmentHistory(Base):
    __tablename__ = "assignment_history"

    id = Column(Integer, primary_key=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    giver_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    receiver_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    draw_version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
