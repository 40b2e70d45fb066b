"""
Reimbursement model for recorded debt payments.
"""
from datetime import datetime
from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, Integer, Enum as SQLEnum
from sqlalchemy.orm import relationship
from settleup.db.base import BaseModel
import enum


class ReimbursementStatus(str, enum.Enum):
    """Reimbursement lifecycle status. Completed and rejected are terminal."""
    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"


class Reimbursement(BaseModel):
    """An attempted payment from a debtor to a creditor."""
    __tablename__ = "reimbursements"

    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    debtor_id = Column(Integer, ForeignKey("participants.id"), nullable=False, index=True)
    creditor_id = Column(Integer, ForeignKey("participants.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="EUR")
    status = Column(SQLEnum(ReimbursementStatus), default=ReimbursementStatus.PENDING, nullable=False)
    reimbursed_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    event = relationship("Event", back_populates="reimbursements")
    debtor = relationship("Participant", foreign_keys=[debtor_id])
    creditor = relationship("Participant", foreign_keys=[creditor_id])
