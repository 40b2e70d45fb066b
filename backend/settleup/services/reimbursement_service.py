"""
Reimbursement service for recording payments and their status changes.
"""
import logging
from sqlalchemy.orm import Session
from datetime import datetime
from decimal import Decimal
from typing import Optional
from settleup.core.config import settings
from settleup.core.exceptions import InvalidStatusTransitionError
from settleup.core.utils import positive_money
from settleup.models.event import Event, Participant
from settleup.models.reimbursement import Reimbursement, ReimbursementStatus

logger = logging.getLogger(__name__)

# Completed and rejected are terminal
ALLOWED_TRANSITIONS = {
    ReimbursementStatus.PENDING: {ReimbursementStatus.COMPLETED, ReimbursementStatus.REJECTED},
}


def default_status() -> ReimbursementStatus:
    """Status used for new reimbursements when the caller does not give one."""
    return ReimbursementStatus(settings.DEFAULT_REIMBURSEMENT_STATUS)


def create_reimbursement(
    event_id: int,
    debtor_id: int,
    creditor_id: int,
    amount: Decimal,
    currency: Optional[str] = None,
    status: Optional[ReimbursementStatus] = None,
    reimbursed_at: Optional[datetime] = None,
    db: Session = None
) -> Reimbursement:
    """Record a reimbursement between two participants of the same event."""
    amount = positive_money(amount)
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise ValueError("Event not found")
    if debtor_id == creditor_id:
        raise ValueError("Debtor and creditor must be different participants")

    found = db.query(Participant.id).filter(
        Participant.event_id == event_id,
        Participant.id.in_([debtor_id, creditor_id])
    ).count()
    if found != 2:
        raise ValueError(f"Debtor and creditor must both belong to event {event_id}")

    reimbursement = Reimbursement(
        event_id=event_id,
        debtor_id=debtor_id,
        creditor_id=creditor_id,
        amount=amount,
        currency=(currency or event.currency).upper(),
        status=status or default_status(),
        reimbursed_at=reimbursed_at or datetime.utcnow(),
    )
    db.add(reimbursement)
    db.commit()
    db.refresh(reimbursement)

    logger.info(
        f"Recorded {reimbursement.status.value} reimbursement {reimbursement.id}: "
        f"{debtor_id} -> {creditor_id} {reimbursement.amount} {reimbursement.currency}"
    )
    return reimbursement


def update_reimbursement_status(
    reimbursement: Reimbursement,
    new_status: ReimbursementStatus,
    db: Session
) -> Reimbursement:
    """Move a pending reimbursement to completed or rejected."""
    current = ReimbursementStatus(reimbursement.status)
    if new_status not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidStatusTransitionError(current.value, new_status.value)

    reimbursement.status = new_status
    db.commit()
    db.refresh(reimbursement)

    logger.info(f"Reimbursement {reimbursement.id} is now {new_status.value}")
    return reimbursement
