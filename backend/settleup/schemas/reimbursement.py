"""
Pydantic schemas for Reimbursement entity.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from settleup.models.reimbursement import ReimbursementStatus


class ReimbursementCreate(BaseModel):
    """Schema for recording a reimbursement."""
    debtor_id: int
    creditor_id: int
    amount: Decimal = Field(ge=Decimal("0.01"))
    currency: Optional[str] = None  # Defaults to the event currency
    status: Optional[ReimbursementStatus] = None  # Defaults to DEFAULT_REIMBURSEMENT_STATUS
    reimbursed_at: Optional[datetime] = None


class ReimbursementStatusUpdate(BaseModel):
    """Schema for a reimbursement status change."""
    status: ReimbursementStatus


class DebtReimbursementStatusUpdate(BaseModel):
    """Schema for a status change issued from an event's debt list."""
    reimbursement_id: int
    new_status: ReimbursementStatus


class ReimbursementResponse(BaseModel):
    """Schema for reimbursement response."""
    id: int
    event_id: int
    debtor_id: int
    creditor_id: int
    amount: Decimal
    currency: str
    status: ReimbursementStatus
    reimbursed_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True
