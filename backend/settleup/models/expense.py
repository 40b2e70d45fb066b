"""
Expense model for tracking spending.
"""
from sqlalchemy import Column, String, Numeric, Date, ForeignKey, Integer, Text, Boolean, Enum as SQLEnum
from sqlalchemy.orm import relationship
from settleup.db.base import BaseModel
import enum


class SplitType(str, enum.Enum):
    """How an expense amount is divided between participants."""
    EQUAL = "equal"
    CUSTOM = "custom"
    SHARES = "shares"


class Expense(BaseModel):
    """Expense model representing a single outlay paid by one participant."""
    __tablename__ = "expenses"

    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    payer_id = Column(Integer, ForeignKey("participants.id"), nullable=True, index=True)
    paid_by = Column(String(100), nullable=True)  # Legacy payer name, migrated to payer_id on link
    date = Column(Date, nullable=True, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="EUR")
    split_type = Column(SQLEnum(SplitType), default=SplitType.EQUAL, nullable=False)
    description = Column(Text, nullable=True)

    # Relationships
    event = relationship("Event", back_populates="expenses")
    payer = relationship("Participant", foreign_keys=[payer_id])
    shares = relationship(
        "ExpenseShare",
        back_populates="expense",
        cascade="all, delete-orphan",
        order_by="ExpenseShare.participant_id",
    )


class ExpenseShare(BaseModel):
    """Allocation of one expense to one participant."""
    __tablename__ = "expense_shares"

    expense_id = Column(Integer, ForeignKey("expenses.id"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("participants.id"), nullable=False, index=True)
    share_amount = Column(Numeric(15, 2), nullable=False, default=0)
    share_count = Column(Integer, nullable=True)  # Only used by the "shares" split
    is_obligated = Column(Boolean, default=True, nullable=False)  # False = deselected, kept for audit

    # Relationships
    expense = relationship("Expense", back_populates="shares")
    participant = relationship("Participant")
