"""
Pydantic schemas for settlement results.
"""
from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel
from typing import Annotated, List, Optional
from datetime import date, datetime
from decimal import Decimal
from settleup.models.reimbursement import ReimbursementStatus

# Decimal internally, plain JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ReimbursementAudit(BaseModel):
    """One reimbursement record contributing to a debt."""
    id: int
    amount: Money
    status: ReimbursementStatus
    date: datetime


class Debt(BaseModel):
    """Net, reconciled debt from one participant to another."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    from_id: int
    from_name: str = Field(alias="from")
    to_id: int
    to_name: str = Field(alias="to")
    amount: Money  # Remaining after completed reimbursements
    original_amount: Money
    reimbursed_amount: Money
    pending_reimbursement: Money
    rejected_reimbursement: Money
    total_reimbursed: Money
    is_fully_reimbursed: bool
    currency: str
    reimbursements: List[ReimbursementAudit] = []


class Counterpart(BaseModel):
    """Someone the requester owes, or who owes the requester."""
    participant_id: int
    name: str
    amount: Money


class UserSummary(BaseModel):
    """Personal totals for the requesting participant."""
    participant_id: int
    name: str
    total_to_pay: Money
    total_to_receive: Money
    pending_to_pay: Money
    rejected_to_pay: Money
    credit: List[Counterpart] = []
    debit: List[Counterpart] = []


class SettlementResult(BaseModel):
    """Schema for a full settlement of one event."""
    debts: List[Debt] = []
    user_summary: Optional[UserSummary] = None
    total_to_pay: Money = Decimal("0.00")
    total_to_receive: Money = Decimal("0.00")
    pending_to_pay: Money = Decimal("0.00")
    rejected_to_pay: Money = Decimal("0.00")


class Transaction(BaseModel):
    """A debt seen from the requester's side."""
    type: str  # "to_pay" or "to_receive"
    counterpart_id: int
    counterpart_name: str
    amount: Money
    label: str


class PaidExpense(BaseModel):
    """An expense paid by the requester."""
    id: int
    amount: Money
    description: Optional[str] = None
    expense_date: Optional[date] = None


class UserBalancesResponse(SettlementResult):
    """Settlement plus the requester's own transactions and paid expenses."""
    transactions: List[Transaction] = []
    paid_expenses: List[PaidExpense] = []
