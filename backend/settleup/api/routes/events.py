"""
Event management routes.
"""
import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from settleup.db.session import get_db
from settleup.core.exceptions import ParticipantLinkError
from settleup.models.event import Event, Participant
from settleup.models.user import User
from settleup.schemas.event import (
    EventCreate, EventDetailResponse, EventRosterResponse, EventSummaryResponse,
    EventUpdate, ParticipantLink, ParticipantResponse
)
from settleup.services.event_service import list_events, update_event
from settleup.services.participant_service import link_participant

router = APIRouter(prefix="/events", tags=["events"])
logger = logging.getLogger(__name__)


def get_event_or_404(event_id: int, db: Session) -> Event:
    """Get event by id or raise 404."""
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )
    return event


def generate_event_code() -> str:
    """Generate a short shareable code for joining an event."""
    return f"EV{uuid.uuid4().hex[:10]}".upper()


@router.post("", response_model=EventDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    db: Session = Depends(get_db)
):
    """Create a new event with its participants."""
    new_event = Event(
        name=event_data.name,
        code=generate_event_code(),
        start_date=event_data.start_date,
        end_date=event_data.end_date,
        currency=event_data.currency.upper(),
    )
    new_event.participants = [Participant(name=name) for name in event_data.participants]
    db.add(new_event)
    db.commit()
    db.refresh(new_event)

    return new_event


@router.get("", response_model=List[EventSummaryResponse])
async def get_events(
    user_id: Optional[int] = None,
    db: Session = Depends(get_db)
):
    """List events, or only the events a user is linked into."""
    return list_events(db, user_id)


@router.get("/by-code/{code}/participants", response_model=EventRosterResponse)
async def get_participants_by_code(
    code: str,
    db: Session = Depends(get_db)
):
    """Look up an event roster by its shareable code."""
    event = db.query(Event).filter(Event.code == code.strip().upper()).first()
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )
    participants = db.query(Participant).filter(
        Participant.event_id == event.id
    ).order_by(Participant.id).all()
    return EventRosterResponse(
        event_id=event.id,
        event_name=event.name,
        participants=[ParticipantResponse.model_validate(p) for p in participants]
    )


@router.get("/{event_id}", response_model=EventDetailResponse)
async def get_event(
    event_id: int,
    db: Session = Depends(get_db)
):
    """Get event details with participants."""
    return get_event_or_404(event_id, db)


@router.put("/{event_id}", response_model=EventDetailResponse)
async def edit_event(
    event_id: int,
    event_data: EventUpdate,
    db: Session = Depends(get_db)
):
    """Update event details, rename participants and add new ones."""
    event = get_event_or_404(event_id, db)
    try:
        return update_event(event, event_data, db)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.delete("/{event_id}")
async def delete_event(
    event_id: int,
    db: Session = Depends(get_db)
):
    """Delete an event with its participants, expenses and reimbursements."""
    event = get_event_or_404(event_id, db)
    db.delete(event)
    db.commit()

    logger.info(f"Deleted event {event_id}")
    return {"message": "Event deleted successfully"}


@router.post("/{event_id}/participants/{participant_id}/link", response_model=ParticipantResponse)
async def link_participant_to_user(
    event_id: int,
    participant_id: int,
    link_data: ParticipantLink,
    db: Session = Depends(get_db)
):
    """Link a participant to a user account, renaming it to the user's username."""
    get_event_or_404(event_id, db)

    participant = db.query(Participant).filter(
        Participant.id == participant_id,
        Participant.event_id == event_id
    ).first()
    if not participant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Participant not found"
        )

    user = db.query(User).filter(User.id == link_data.user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    try:
        return link_participant(participant, user, db)
    except ParticipantLinkError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )
