"""
Loads one event's participants, expenses and reimbursements as typed snapshots.

All reads go through the caller's Session, so they share one database
transaction.
"""
import logging
from typing import Dict, List, Optional
from pydantic import ValidationError
from sqlalchemy.orm import Session, joinedload

from settleup.core.exceptions import SnapshotValidationError
from settleup.models.event import Event, Participant, ParticipantNameHistory
from settleup.models.expense import Expense
from settleup.models.reimbursement import Reimbursement
from settleup.models.user import User
from settleup.schemas.snapshot import (
    EventSnapshot,
    ExpenseShareSnapshot,
    ExpenseSnapshot,
    ParticipantSnapshot,
    ReimbursementSnapshot,
    RequesterIdentity,
)

logger = logging.getLogger(__name__)


def load_event(db: Session, event_id: int) -> Optional[Event]:
    """Get the event row, or None if it does not exist."""
    return db.query(Event).filter(Event.id == event_id).first()


def load_participants(db: Session, event_id: int) -> List[ParticipantSnapshot]:
    """Load the event roster ordered by participant id."""
    rows = db.query(Participant).filter(
        Participant.event_id == event_id
    ).order_by(Participant.id).all()
    return [
        ParticipantSnapshot(id=p.id, name=p.name, user_id=p.user_id)
        for p in rows
    ]


def build_payer_lookup(db: Session, event_id: int) -> Dict[str, int]:
    """
    Map payer names to participant ids for legacy expenses.

    Current names take precedence over names found in the rename history.
    """
    lookup: Dict[str, int] = {}
    history = db.query(ParticipantNameHistory).join(Participant).filter(
        Participant.event_id == event_id
    ).order_by(ParticipantNameHistory.id).all()
    for entry in history:
        lookup[entry.old_name] = entry.participant_id

    for participant in db.query(Participant).filter(Participant.event_id == event_id).all():
        lookup[participant.name] = participant.id
    return lookup


def resolve_payer_id(expense: Expense, payer_lookup: Dict[str, int]) -> int:
    """Return the expense's payer id, falling back to its legacy payer name."""
    if expense.payer_id is not None:
        return expense.payer_id
    if expense.paid_by and expense.paid_by in payer_lookup:
        return payer_lookup[expense.paid_by]
    raise SnapshotValidationError(
        f"Expense {expense.id} has no resolvable payer (paid_by={expense.paid_by!r})"
    )


def load_expenses_with_shares(db: Session, event_id: int) -> List[ExpenseSnapshot]:
    """Load expenses with their obligated shares only."""
    rows = db.query(Expense).options(joinedload(Expense.shares)).filter(
        Expense.event_id == event_id
    ).order_by(Expense.id).all()

    payer_lookup = None
    expenses = []
    for row in rows:
        if row.payer_id is None and payer_lookup is None:
            payer_lookup = build_payer_lookup(db, event_id)
        try:
            expenses.append(
                ExpenseSnapshot(
                    id=row.id,
                    amount=row.amount,
                    payer_id=resolve_payer_id(row, payer_lookup or {}),
                    split_type=row.split_type,
                    currency=row.currency,
                    shares=[
                        ExpenseShareSnapshot(
                            participant_id=s.participant_id,
                            share_amount=s.share_amount,
                            is_obligated=s.is_obligated,
                        )
                        for s in row.shares
                        if s.is_obligated
                    ],
                )
            )
        except ValidationError as e:
            raise SnapshotValidationError(f"Expense {row.id} is invalid: {e}") from e

    return expenses


def load_reimbursements(db: Session, event_id: int) -> List[ReimbursementSnapshot]:
    """Load every reimbursement recorded for the event."""
    rows = db.query(Reimbursement).filter(
        Reimbursement.event_id == event_id
    ).order_by(Reimbursement.reimbursed_at, Reimbursement.id).all()

    reimbursements = []
    for row in rows:
        try:
            reimbursements.append(
                ReimbursementSnapshot(
                    id=row.id,
                    debtor_id=row.debtor_id,
                    creditor_id=row.creditor_id,
                    amount=row.amount,
                    currency=row.currency,
                    status=row.status,
                    reimbursed_at=row.reimbursed_at,
                )
            )
        except ValidationError as e:
            raise SnapshotValidationError(f"Reimbursement {row.id} is invalid: {e}") from e

    return reimbursements


def load_event_snapshot(db: Session, event_id: int) -> Optional[EventSnapshot]:
    """Load everything needed to settle one event, or None if the event does not exist."""
    event = load_event(db, event_id)
    if not event:
        return None

    snapshot = EventSnapshot(
        event_id=event.id,
        currency=event.currency,
        participants=load_participants(db, event_id),
        expenses=load_expenses_with_shares(db, event_id),
        reimbursements=load_reimbursements(db, event_id),
    )
    logger.debug(
        f"Loaded event {event_id}: {len(snapshot.participants)} participants, "
        f"{len(snapshot.expenses)} expenses, {len(snapshot.reimbursements)} reimbursements"
    )
    return snapshot


def load_requester(db: Session, user_id: Optional[int]) -> Optional[RequesterIdentity]:
    """Resolve the requesting account; unknown users keep only their id."""
    if user_id is None:
        return None
    user = db.query(User).filter(User.id == user_id).first()
    return RequesterIdentity(user_id=user_id, username=user.username if user else None)
