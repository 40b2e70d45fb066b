"""
Settlement routes.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from settleup.db.session import get_db
from settleup.core.exceptions import InvalidIdentifierError
from settleup.schemas.settlement import SettlementResult, UserBalancesResponse
from settleup.services.settlement_service import get_user_balances, settle

router = APIRouter(prefix="/events", tags=["settlement"])


@router.get("/{event_id}/balances", response_model=SettlementResult)
async def get_balances(
    event_id: int,
    user_id: Optional[int] = Query(None),
    db: Session = Depends(get_db)
):
    """Get the net, reconciled debts of an event and the requester's totals."""
    try:
        return settle(event_id, user_id, db)
    except InvalidIdentifierError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("/{event_id}/user-balances", response_model=UserBalancesResponse)
async def get_user_balance_details(
    event_id: int,
    user_id: int = Query(...),
    db: Session = Depends(get_db)
):
    """Get the requester's balances with their transactions and paid expenses."""
    try:
        return get_user_balances(event_id, user_id, db)
    except InvalidIdentifierError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
