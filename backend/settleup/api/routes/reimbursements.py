"""
Reimbursement routes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from settleup.db.session import get_db
from settleup.core.exceptions import InvalidStatusTransitionError
from settleup.models.reimbursement import Reimbursement
from settleup.schemas.reimbursement import (
    DebtReimbursementStatusUpdate,
    ReimbursementCreate,
    ReimbursementResponse,
    ReimbursementStatusUpdate,
)
from settleup.services.reimbursement_service import (
    create_reimbursement,
    update_reimbursement_status,
)
from settleup.api.routes.events import get_event_or_404

router = APIRouter(tags=["reimbursements"])


def _change_status(reimbursement: Reimbursement, data_status, db: Session) -> Reimbursement:
    try:
        return update_reimbursement_status(reimbursement, data_status, db)
    except InvalidStatusTransitionError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )


@router.post(
    "/events/{event_id}/reimbursements",
    response_model=ReimbursementResponse,
    status_code=status.HTTP_201_CREATED
)
async def add_reimbursement(
    event_id: int,
    data: ReimbursementCreate,
    db: Session = Depends(get_db)
):
    """Record a reimbursement from a debtor to a creditor."""
    get_event_or_404(event_id, db)
    try:
        return create_reimbursement(
            event_id=event_id,
            debtor_id=data.debtor_id,
            creditor_id=data.creditor_id,
            amount=data.amount,
            currency=data.currency,
            status=data.status,
            reimbursed_at=data.reimbursed_at,
            db=db
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.put("/reimbursements/{reimbursement_id}/status", response_model=ReimbursementResponse)
async def set_reimbursement_status(
    reimbursement_id: int,
    data: ReimbursementStatusUpdate,
    db: Session = Depends(get_db)
):
    """Complete or reject a pending reimbursement."""
    reimbursement = db.query(Reimbursement).filter(Reimbursement.id == reimbursement_id).first()
    if not reimbursement:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Reimbursement not found"
        )
    return _change_status(reimbursement, data.status, db)


@router.put("/events/{event_id}/debt-reimbursement-status", response_model=ReimbursementResponse)
async def set_debt_reimbursement_status(
    event_id: int,
    data: DebtReimbursementStatusUpdate,
    db: Session = Depends(get_db)
):
    """Complete or reject a reimbursement listed under one of the event's debts."""
    reimbursement = db.query(Reimbursement).filter(
        Reimbursement.id == data.reimbursement_id,
        Reimbursement.event_id == event_id
    ).first()
    if not reimbursement:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Reimbursement not found"
        )
    return _change_status(reimbursement, data.new_status, db)
