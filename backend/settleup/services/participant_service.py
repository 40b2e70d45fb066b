"""
Participant service for linking event participants to user accounts.
"""
import logging
from sqlalchemy.orm import Session
from settleup.core.exceptions import ParticipantLinkError
from settleup.models.event import Participant, ParticipantNameHistory
from settleup.models.expense import Expense
from settleup.models.user import User

logger = logging.getLogger(__name__)


def link_participant(participant: Participant, user: User, db: Session) -> Participant:
    """
    Link a participant to a user account and adopt the user's username.

    The previous name is kept in the rename history, and legacy expenses
    that still reference the payer by that name are moved onto the
    participant id.
    """
    if participant.user_id is not None:
        raise ParticipantLinkError("This participant is already linked to a user")

    already_in_event = db.query(Participant).filter(
        Participant.event_id == participant.event_id,
        Participant.user_id == user.id
    ).first()
    if already_in_event:
        raise ParticipantLinkError("This user already participates in this event")

    clash = db.query(Participant).filter(
        Participant.event_id == participant.event_id,
        Participant.name == user.username,
        Participant.id != participant.id
    ).first()
    if clash:
        raise ParticipantLinkError(
            f"Another participant of this event is already named '{user.username}'"
        )

    old_name = participant.name
    retargeted = db.query(Expense).filter(
        Expense.event_id == participant.event_id,
        Expense.payer_id.is_(None),
        Expense.paid_by == old_name
    ).update({Expense.payer_id: participant.id}, synchronize_session=False)

    if old_name != user.username:
        db.add(ParticipantNameHistory(
            participant_id=participant.id,
            old_name=old_name,
            new_name=user.username
        ))
        participant.name = user.username
    participant.user_id = user.id

    db.commit()
    db.refresh(participant)

    logger.info(
        f"Linked participant {participant.id} ('{old_name}') to user {user.id} "
        f"as '{participant.name}', retargeted {retargeted} legacy expenses"
    )
    return participant
