"""
Pydantic schemas for Event and Participant entities.
"""
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal


def _clean_names(names: List[str]) -> List[str]:
    """Participant names are the display key inside an event and must be unique."""
    names = [name.strip() for name in names]
    if any(not name for name in names):
        raise ValueError("Participant names must not be empty")
    if len(set(names)) != len(names):
        raise ValueError("Participant names must be unique within an event")
    return names


class EventCreate(BaseModel):
    """Schema for event creation with its initial participants."""
    name: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    currency: str = "EUR"
    participants: List[str] = Field(min_length=1)  # Participant display names

    @field_validator("participants")
    @classmethod
    def check_unique_names(cls, v):
        return _clean_names(v)


class ParticipantUpdate(BaseModel):
    """Roster entry in an event update; entries without an id are new participants."""
    id: Optional[int] = None
    name: str


class EventUpdate(BaseModel):
    """Schema for event update."""
    name: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    currency: Optional[str] = None
    participants: List[ParticipantUpdate] = []

    @field_validator("participants")
    @classmethod
    def check_unique_names(cls, v):
        names = _clean_names([p.name for p in v])
        return [ParticipantUpdate(id=p.id, name=name) for p, name in zip(v, names)]


class ParticipantResponse(BaseModel):
    """Schema for participant response."""
    id: int
    name: str
    user_id: Optional[int] = None

    class Config:
        from_attributes = True


class ParticipantLink(BaseModel):
    """Schema for linking a participant to a user account."""
    user_id: int


class EventResponse(BaseModel):
    """Schema for event response."""
    id: int
    name: str
    code: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    currency: str
    created_at: datetime

    class Config:
        from_attributes = True


class EventDetailResponse(EventResponse):
    """Schema for event with its participants."""
    participants: List[ParticipantResponse] = []


class EventSummaryResponse(EventDetailResponse):
    """Event list entry with expense totals."""
    expense_count: int = 0
    total_amount: Decimal = Decimal("0.00")


class EventRosterResponse(BaseModel):
    """Roster returned by the join-by-code lookup."""
    event_id: int
    event_name: str
    participants: List[ParticipantResponse]
