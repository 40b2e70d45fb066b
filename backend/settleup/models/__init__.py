"""Models package - Import all models for SQLAlchemy registration."""
from settleup.models.user import User
from settleup.models.event import Event, Participant, ParticipantNameHistory
from settleup.models.expense import Expense, ExpenseShare, SplitType
from settleup.models.reimbursement import Reimbursement, ReimbursementStatus

__all__ = [
    "User",
    "Event",
    "Participant",
    "ParticipantNameHistory",
    "Expense",
    "ExpenseShare",
    "SplitType",
    "Reimbursement",
    "ReimbursementStatus",
]
