"""
Settlement service: loads an event snapshot and runs the settlement engine.

Nothing is written back; every call recomputes from the current rows.
"""
import logging
from typing import Any, Optional
from sqlalchemy.orm import Session

from settleup.core.exceptions import InvalidIdentifierError
from settleup.models.expense import Expense
from settleup.schemas.settlement import (
    PaidExpense,
    SettlementResult,
    Transaction,
    UserBalancesResponse,
)
from settleup.services.settlement_engine import compute_settlement
from settleup.services.snapshot_loader import (
    build_payer_lookup,
    load_event_snapshot,
    load_requester,
    resolve_payer_id,
)

logger = logging.getLogger(__name__)


def validate_event_id(event_id: Any) -> int:
    """Return the event id as a positive int or raise InvalidIdentifierError."""
    if event_id is None or isinstance(event_id, bool):
        raise InvalidIdentifierError(event_id)
    if isinstance(event_id, str):
        if not event_id.strip().isdigit():
            raise InvalidIdentifierError(event_id)
        event_id = int(event_id.strip())
    if not isinstance(event_id, int) or event_id <= 0:
        raise InvalidIdentifierError(event_id)
    return event_id


def _settle_event(
    event_id: int,
    user_id: Optional[int],
    db: Session,
    log: logging.Logger,
) -> SettlementResult:
    snapshot = load_event_snapshot(db, event_id)
    if snapshot is None:
        log.info(f"Event {event_id} not found, returning empty settlement")
        return SettlementResult()

    requester = load_requester(db, user_id)
    return compute_settlement(snapshot, requester, log)


def settle(
    event_id: Any,
    user_id: Optional[int],
    db: Session,
    log: Optional[logging.Logger] = None,
) -> SettlementResult:
    """
    Compute the settlement of an event for the requesting user.

    A missing event yields an empty settlement. Database errors are not
    caught here: a failed read must never look like "everything is settled".
    """
    return _settle_event(validate_event_id(event_id), user_id, db, log or logger)


def get_user_balances(
    event_id: Any,
    user_id: Optional[int],
    db: Session,
    log: Optional[logging.Logger] = None,
) -> UserBalancesResponse:
    """Settlement plus the requester's transactions and the expenses they paid."""
    event_id = validate_event_id(event_id)
    result = _settle_event(event_id, user_id, db, log or logger)
    response = UserBalancesResponse(**dict(result))
    summary = result.user_summary
    if summary is None:
        return response

    for debt in result.debts:
        if debt.amount <= 0:
            continue
        if debt.from_id == summary.participant_id:
            response.transactions.append(Transaction(
                type="to_pay",
                counterpart_id=debt.to_id,
                counterpart_name=debt.to_name,
                amount=debt.amount,
                label=f"You owe {debt.amount} {debt.currency} to {debt.to_name}",
            ))
        elif debt.to_id == summary.participant_id:
            response.transactions.append(Transaction(
                type="to_receive",
                counterpart_id=debt.from_id,
                counterpart_name=debt.from_name,
                amount=debt.amount,
                label=f"{debt.from_name} owes you {debt.amount} {debt.currency}",
            ))

    # Legacy rows only carry the payer's name; resolve them like the loader does
    expenses = db.query(Expense).filter(
        Expense.event_id == event_id
    ).order_by(Expense.id).all()
    payer_lookup = {}
    if any(e.payer_id is None for e in expenses):
        payer_lookup = build_payer_lookup(db, event_id)
    response.paid_expenses = [
        PaidExpense(
            id=e.id,
            amount=e.amount,
            description=e.description,
            expense_date=e.date,
        )
        for e in expenses
        if resolve_payer_id(e, payer_lookup) == summary.participant_id
    ]
    return response
