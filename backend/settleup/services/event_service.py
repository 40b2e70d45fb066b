"""
Event service for roster changes and event listings.
"""
import logging
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional
from settleup.core.utils import ZERO
from settleup.models.event import Event, Participant, ParticipantNameHistory
from settleup.models.expense import ExpenseShare
from settleup.schemas.event import EventSummaryResponse, EventUpdate

logger = logging.getLogger(__name__)


def update_event(event: Event, data: EventUpdate, db: Session) -> Event:
    """
    Update event details and its roster.

    Listed participants with an id are renamed, listed names without an id
    that are not on the roster yet are added. New participants get a
    non-obligated zero share on every existing expense, so no balance
    moves. Participants left out of the list are kept.
    """
    if data.name is not None:
        event.name = data.name
    if data.start_date is not None:
        event.start_date = data.start_date
    if data.end_date is not None:
        event.end_date = data.end_date
    if data.currency is not None:
        event.currency = data.currency.upper()

    roster = {p.id: p for p in event.participants}
    final_names = {pid: p.name for pid, p in roster.items()}
    renames = {}
    new_names = []
    for entry in data.participants:
        if entry.id is not None:
            if entry.id not in roster:
                raise ValueError(f"Participant {entry.id} does not belong to event {event.id}")
            if roster[entry.id].name != entry.name:
                renames[entry.id] = entry.name
                final_names[entry.id] = entry.name
        elif entry.name not in final_names.values():
            new_names.append(entry.name)

    taken = list(final_names.values()) + new_names
    if len(set(taken)) != len(taken):
        raise ValueError("Participant names must be unique within an event")

    for participant_id, name in renames.items():
        participant = roster[participant_id]
        db.add(ParticipantNameHistory(
            participant_id=participant.id,
            old_name=participant.name,
            new_name=name
        ))
        participant.name = name

    added = [Participant(name=name) for name in new_names]
    event.participants.extend(added)
    for expense in event.expenses:
        for participant in added:
            expense.shares.append(ExpenseShare(
                participant=participant,
                share_amount=ZERO,
                is_obligated=False,
            ))

    db.commit()
    db.refresh(event)

    logger.info(
        f"Updated event {event.id}: renamed {len(renames)}, added {len(added)} participants "
        f"across {len(event.expenses)} expenses"
    )
    return event


def list_events(db: Session, user_id: Optional[int] = None) -> List[EventSummaryResponse]:
    """List events newest first, optionally only those a user is linked into."""
    query = db.query(Event).options(
        selectinload(Event.participants),
        selectinload(Event.expenses),
    )
    if user_id is not None:
        query = query.join(Participant).filter(Participant.user_id == user_id)
    events = query.order_by(Event.created_at.desc(), Event.id.desc()).all()

    summaries = []
    for event in events:
        summary = EventSummaryResponse.model_validate(event)
        summary.expense_count = len(event.expenses)
        summary.total_amount = sum((e.amount for e in event.expenses), ZERO)
        summaries.append(summary)
    return summaries
