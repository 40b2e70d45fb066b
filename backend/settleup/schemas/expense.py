"""
Pydantic schemas for Expense entity.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from settleup.models.expense import SplitType


class ExpenseParticipantInput(BaseModel):
    """One participant's entry when creating or replacing an expense."""
    participant_id: int
    selected: bool = True
    share_amount: Optional[Decimal] = None  # Required for "custom" splits
    share_count: Optional[int] = None  # Required for "shares" splits


class ExpenseCreate(BaseModel):
    """Schema for expense creation."""
    amount: Decimal = Field(ge=Decimal("0.01"))
    payer_id: int
    split_type: SplitType = SplitType.EQUAL
    currency: Optional[str] = None  # Defaults to the event currency
    description: Optional[str] = None
    expense_date: Optional[date] = None
    participants: List[ExpenseParticipantInput]


class ExpenseUpdate(ExpenseCreate):
    """Schema for a full expense update; the share set is replaced."""
    pass


class ExpenseShareResponse(BaseModel):
    """Schema for expense share response."""
    participant_id: int
    share_amount: Decimal
    share_count: Optional[int] = None
    is_obligated: bool

    class Config:
        from_attributes = True


class ExpenseResponse(BaseModel):
    """Schema for expense response."""
    id: int
    event_id: int
    payer_id: Optional[int] = None
    paid_by: Optional[str] = None
    amount: Decimal
    currency: str
    split_type: SplitType
    description: Optional[str] = None
    expense_date: Optional[date] = Field(default=None, validation_alias="date")
    shares: List[ExpenseShareResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
