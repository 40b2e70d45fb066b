"""
Main API router that includes all route modules.
"""
from fastapi import APIRouter
from settleup.api.routes import (
    users, events, expenses, reimbursements, settlements
)

api_router = APIRouter()

# Include all route modules
api_router.include_router(users.router)
api_router.include_router(events.router)
api_router.include_router(expenses.router)
api_router.include_router(reimbursements.router)
api_router.include_router(settlements.router)
