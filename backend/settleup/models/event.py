"""
Event and participant models.
"""
from sqlalchemy import Column, String, Date, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from settleup.db.base import BaseModel


class Event(BaseModel):
    """Shared context (trip, household, activity) scoping expenses and reimbursements."""
    __tablename__ = "events"

    name = Column(String(200), nullable=False)
    code = Column(String(32), unique=True, nullable=True, index=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    currency = Column(String(3), nullable=False, default="EUR")

    # Relationships
    participants = relationship("Participant", back_populates="event", cascade="all, delete-orphan")
    expenses = relationship("Expense", back_populates="event", cascade="all, delete-orphan")
    reimbursements = relationship("Reimbursement", back_populates="event", cascade="all, delete-orphan")


class Participant(BaseModel):
    """A member of one event, optionally linked to a user account."""
    __tablename__ = "participants"
    __table_args__ = (
        UniqueConstraint("event_id", "name", name="uq_participants_event_name"),
    )

    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # Relationships
    event = relationship("Event", back_populates="participants")
    user = relationship("User", back_populates="participants")
    name_history = relationship(
        "ParticipantNameHistory",
        back_populates="participant",
        cascade="all, delete-orphan",
        order_by="ParticipantNameHistory.id",
    )


class ParticipantNameHistory(BaseModel):
    """Previous display names of a participant, kept for display and legacy payer lookups."""
    __tablename__ = "participant_name_history"

    participant_id = Column(Integer, ForeignKey("participants.id"), nullable=False, index=True)
    old_name = Column(String(100), nullable=False)
    new_name = Column(String(100), nullable=False)

    # Relationships
    participant = relationship("Participant", back_populates="name_history")
