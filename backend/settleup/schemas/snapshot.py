"""
Typed snapshot records handed to the settlement engine.

The loader validates database rows into these models so the engine never
has to branch on optional or ambiguous fields.
"""
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from settleup.models.expense import SplitType
from settleup.models.reimbursement import ReimbursementStatus


class ParticipantSnapshot(BaseModel):
    """One member of the event roster."""
    id: int
    name: str
    user_id: Optional[int] = None


class ExpenseShareSnapshot(BaseModel):
    """One participant's allocation of an expense."""
    participant_id: int
    share_amount: Decimal = Field(allow_inf_nan=True)  # NaN is tolerated and skipped by the engine
    is_obligated: bool = True

    @field_validator("share_amount")
    @classmethod
    def check_not_negative(cls, v: Decimal) -> Decimal:
        if not v.is_nan() and v < 0:
            raise ValueError("share_amount must not be negative")
        return v


class ExpenseSnapshot(BaseModel):
    """An expense with its obligated shares."""
    id: int
    amount: Decimal = Field(gt=0)
    payer_id: int
    split_type: SplitType = SplitType.EQUAL
    currency: str
    shares: List[ExpenseShareSnapshot] = []


class ReimbursementSnapshot(BaseModel):
    """A recorded payment attempt from debtor to creditor."""
    id: int
    debtor_id: int
    creditor_id: int
    amount: Decimal = Field(gt=0)
    currency: str
    status: ReimbursementStatus
    reimbursed_at: datetime


class EventSnapshot(BaseModel):
    """Everything the engine needs for one event, read in one pass."""
    event_id: int
    currency: str
    participants: List[ParticipantSnapshot] = []
    expenses: List[ExpenseSnapshot] = []
    reimbursements: List[ReimbursementSnapshot] = []


class RequesterIdentity(BaseModel):
    """The account asking for a settlement."""
    user_id: Optional[int] = None
    username: Optional[str] = None
