from __future__ import annotations

import logging

from ..errors import InvalidPayloadError, NotRegisteredError
from ..extensions import db
from ..models import Participant, utcnow
from .transactions import run_in_transaction

logger = logging.getLogger(__name__)

REMINDER_MAX_LENGTH = 400


def normalize_reminder(note: str | None) -> str | None:
    note = (note or "").strip()
    return note or None


def get_participant(participant_id: int) -> Participant | None:
    return db.session.get(Participant, participant_id)


def list_participants() -> list[Participant]:
    return (
        Participant.query
        .order_by(Participant.created_at.asc(), Participant.participant_id.asc())
        .all()
    )


def register_participant(participant_id: int, wishlist: str, reminder_note: str | None = None) -> Participant:
    """
    Create the participant row, or update wishlist and reminder in place.
    Status and recipient are never touched here.
    """
    wishlist = (wishlist or "").strip()
    if not wishlist:
        raise InvalidPayloadError("Add your wishlist.")
    reminder = normalize_reminder(reminder_note)
    if reminder and len(reminder) > REMINDER_MAX_LENGTH:
        raise InvalidPayloadError(f"Reminder must be at most {REMINDER_MAX_LENGTH} characters.")

    def work() -> Participant:
        p = get_participant(participant_id)
        if p is None:
            p = Participant(participant_id=participant_id, wishlist=wishlist, reminder_note=reminder)
            db.session.add(p)
            logger.info("Participant %s registered", participant_id)
        else:
            p.wishlist = wishlist
            p.reminder_note = reminder
        db.session.flush()
        return p

    return run_in_transaction(work, name="register")


def update_reminder(participant_id: int, note: str | None) -> Participant:
    reminder = normalize_reminder(note)
    if reminder and len(reminder) > REMINDER_MAX_LENGTH:
        raise InvalidPayloadError(f"Reminder must be at most {REMINDER_MAX_LENGTH} characters.")

    def work() -> Participant:
        p = get_participant(participant_id)
        if p is None:
            raise NotRegisteredError()
        p.reminder_note = reminder
        return p

    return run_in_transaction(work, name="update_reminder")


def confirm_gifted(participant_id: int) -> Participant:
    """
    matched -> gifted for the giver. Confirming again is a no-op and keeps
    the original ``gifted_at``.
    """
    def work() -> Participant:
        p = get_participant(participant_id)
        if p is None:
            raise NotRegisteredError()
        if p.mark_gifted(utcnow()):
            logger.info("Participant %s confirmed their gift", participant_id)
        return p

    return run_in_transaction(work, name="confirm_gifted")
