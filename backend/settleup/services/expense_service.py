"""
Expense service for share allocation and expense persistence.
"""
import logging
from sqlalchemy.orm import Session
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from settleup.core.exceptions import ShareAllocationError
from settleup.core.utils import CENT, ZERO, floor_money, positive_money, round_money
from settleup.models.event import Event, Participant
from settleup.models.expense import Expense, ExpenseShare, SplitType
from settleup.schemas.expense import ExpenseParticipantInput

logger = logging.getLogger(__name__)


def _distribute(amount: Decimal, weights: Dict[int, int]) -> Dict[int, Decimal]:
    """Split amount by weight in whole cents; leftover cents go to the first entries."""
    total_weight = sum(weights.values())
    shares = {
        participant_id: floor_money(amount * weight / total_weight)
        for participant_id, weight in weights.items()
    }
    leftover = int((amount - sum(shares.values(), ZERO)) / CENT)
    for participant_id in list(weights)[:leftover]:
        shares[participant_id] += CENT
    return shares


def allocate_shares(
    amount: Decimal,
    split_type: SplitType,
    participants: List[ExpenseParticipantInput],
) -> Dict[int, Decimal]:
    """
    Compute the share of every selected participant.

    Returns participant_id -> share amount. The shares always add up to
    the amount (exactly for equal/shares splits, within one cent for
    custom splits).
    """
    ids = [p.participant_id for p in participants]
    if len(ids) != len(set(ids)):
        raise ShareAllocationError("A participant appears more than once")

    selected = [p for p in participants if p.selected]
    if not selected:
        raise ShareAllocationError("At least one participant must be selected")

    amount = round_money(amount)

    if split_type == SplitType.EQUAL:
        return _distribute(amount, {p.participant_id: 1 for p in selected})

    if split_type == SplitType.SHARES:
        weights = {}
        for p in selected:
            if not p.share_count or p.share_count <= 0:
                raise ShareAllocationError(
                    f"Participant {p.participant_id} needs a positive share_count"
                )
            weights[p.participant_id] = p.share_count
        return _distribute(amount, weights)

    # Custom split
    shares = {}
    for p in selected:
        if p.share_amount is None or p.share_amount < 0:
            raise ShareAllocationError(
                f"Participant {p.participant_id} needs a non-negative share_amount"
            )
        shares[p.participant_id] = round_money(p.share_amount)
    allocated = sum(shares.values(), ZERO)
    if abs(allocated - amount) > CENT:
        raise ShareAllocationError(
            f"Custom shares sum to {allocated}, expected {amount}"
        )
    return shares


def _build_shares(
    amount: Decimal,
    split_type: SplitType,
    participants: List[ExpenseParticipantInput],
) -> List[ExpenseShare]:
    allocated = allocate_shares(amount, split_type, participants)
    shares = []
    for p in participants:
        shares.append(ExpenseShare(
            participant_id=p.participant_id,
            share_amount=allocated.get(p.participant_id, ZERO),
            share_count=p.share_count if split_type == SplitType.SHARES and p.selected else None,
            is_obligated=p.selected,
        ))
    return shares


def _check_membership(event_id: int, payer_id: int, participants: List[ExpenseParticipantInput], db: Session):
    member_ids = {
        pid for (pid,) in db.query(Participant.id).filter(Participant.event_id == event_id).all()
    }
    if payer_id not in member_ids:
        raise ValueError(f"Payer {payer_id} is not a participant of event {event_id}")
    unknown = sorted({p.participant_id for p in participants} - member_ids)
    if unknown:
        raise ValueError(f"Participants {unknown} do not belong to event {event_id}")


def create_expense(
    event_id: int,
    payer_id: int,
    amount: Decimal,
    split_type: SplitType,
    participants: List[ExpenseParticipantInput],
    currency: Optional[str] = None,
    description: Optional[str] = None,
    expense_date: Optional[date] = None,
    db: Session = None
) -> Expense:
    """Create an expense with its share set."""
    amount = positive_money(amount)
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise ValueError("Event not found")
    _check_membership(event_id, payer_id, participants, db)

    expense = Expense(
        event_id=event_id,
        payer_id=payer_id,
        date=expense_date,
        amount=amount,
        currency=(currency or event.currency).upper(),
        split_type=split_type,
        description=description,
    )
    expense.shares = _build_shares(amount, split_type, participants)
    db.add(expense)
    db.commit()
    db.refresh(expense)

    logger.info(
        f"Created expense {expense.id} of {expense.amount} {expense.currency} "
        f"in event {event_id} ({split_type.value} split)"
    )
    return expense


def update_expense(
    expense_id: int,
    payer_id: int,
    amount: Decimal,
    split_type: SplitType,
    participants: List[ExpenseParticipantInput],
    currency: Optional[str] = None,
    description: Optional[str] = None,
    expense_date: Optional[date] = None,
    db: Session = None
) -> Expense:
    """Replace an expense and its whole share set."""
    amount = positive_money(amount)
    expense = db.query(Expense).filter(Expense.id == expense_id).first()
    if not expense:
        raise ValueError("Expense not found")
    _check_membership(expense.event_id, payer_id, participants, db)

    new_shares = _build_shares(amount, split_type, participants)

    expense.payer_id = payer_id
    expense.paid_by = None
    expense.amount = amount
    expense.split_type = split_type
    expense.description = description
    expense.date = expense_date
    if currency:
        expense.currency = currency.upper()

    expense.shares.clear()
    db.flush()
    expense.shares.extend(new_shares)
    db.commit()
    db.refresh(expense)

    logger.info(f"Replaced expense {expense.id} with {len(new_shares)} shares")
    return expense
