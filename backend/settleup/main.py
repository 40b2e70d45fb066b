"""
FastAPI entrypoint for the SettleUp backend application.
"""
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from settleup.core.config import settings
from settleup.core.exceptions import SettleUpError, SnapshotValidationError
from settleup.core.utils import format_error
from settleup.api.router import api_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

app = FastAPI(
    title="SettleUp API",
    description="Backend API for settling shared expenses within an event",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SettleUpError)
async def settleup_error_handler(request: Request, exc: SettleUpError):
    """Turn uncaught domain errors into JSON error responses."""
    status_code = 500 if isinstance(exc, SnapshotValidationError) else 400
    return JSONResponse(status_code=status_code, content=format_error(str(exc), type(exc).__name__))


# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "SettleUp API is running"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
