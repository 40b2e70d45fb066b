"""
Expense management routes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, joinedload
from typing import List
from settleup.db.session import get_db
from settleup.core.exceptions import ShareAllocationError
from settleup.models.expense import Expense
from settleup.schemas.expense import ExpenseCreate, ExpenseResponse, ExpenseUpdate
from settleup.services.expense_service import create_expense, update_expense
from settleup.api.routes.events import get_event_or_404

router = APIRouter(tags=["expenses"])


@router.get("/events/{event_id}/expenses", response_model=List[ExpenseResponse])
async def list_expenses(
    event_id: int,
    db: Session = Depends(get_db)
):
    """List all expenses of an event with their shares."""
    get_event_or_404(event_id, db)
    return db.query(Expense).options(joinedload(Expense.shares)).filter(
        Expense.event_id == event_id
    ).order_by(Expense.id).all()


@router.post(
    "/events/{event_id}/expenses",
    response_model=ExpenseResponse,
    status_code=status.HTTP_201_CREATED
)
async def add_expense(
    event_id: int,
    expense_data: ExpenseCreate,
    db: Session = Depends(get_db)
):
    """Create an expense and allocate its shares."""
    get_event_or_404(event_id, db)
    try:
        return create_expense(
            event_id=event_id,
            payer_id=expense_data.payer_id,
            amount=expense_data.amount,
            split_type=expense_data.split_type,
            participants=expense_data.participants,
            currency=expense_data.currency,
            description=expense_data.description,
            expense_date=expense_data.expense_date,
            db=db
        )
    except (ShareAllocationError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

@router.get("/expenses/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: int,
    db: Session = Depends(get_db)
):
    """Get one expense with its full share set."""
    expense = db.query(Expense).options(joinedload(Expense.shares)).filter(
        Expense.id == expense_id
    ).first()
    if not expense:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Expense not found"
        )
    return expense


@router.put("/expenses/{expense_id}", response_model=ExpenseResponse)
async def replace_expense(
    expense_id: int,
    expense_data: ExpenseUpdate,
    db: Session = Depends(get_db)
):
    """Replace an expense and its share set."""
    expense = db.query(Expense).filter(Expense.id == expense_id).first()
    if not expense:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Expense not found"
        )
    try:
        return update_expense(
            expense_id=expense_id,
            payer_id=expense_data.payer_id,
            amount=expense_data.amount,
            split_type=expense_data.split_type,
            participants=expense_data.participants,
            currency=expense_data.currency,
            description=expense_data.description,
            expense_date=expense_data.expense_date,
            db=db
        )
    except (ShareAllocationError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
