"""
Read-side views of the gift exchange.

Nothing here is stored: every view is recomputed from participant rows and
display metadata looked up by participant id.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from flask import current_app

from ..models import GiftStatus, Participant, User
from .participants import list_participants

UNKNOWN_NAME = "Unknown participant"


@dataclass(frozen=True)
class DisplayInfo:
    name: str | None
    department: str | None


Directory = Callable[[Iterable[int]], Mapping[int, DisplayInfo]]


def user_directory(ids: Iterable[int]) -> dict[int, DisplayInfo]:
    ids = list(ids)
    if not ids:
        return {}
    users = User.query.filter(User.id.in_(ids)).all()
    return {u.id: DisplayInfo(name=u.name, department=u.department) for u in users}


def _isoformat(value) -> str | None:
    return value.isoformat() if value is not None else None


class StateProjector:
    def __init__(self, participants: list[Participant], directory: Directory | None = None):
        self.participants = participants
        directory = directory or user_directory
        self.display = directory([p.participant_id for p in participants])
        self.default_department = current_app.config["SANTA_DEFAULT_DEPARTMENT"]
        self.by_id = {p.participant_id: p for p in participants}

    def public_entry(self, p: Participant) -> dict[str, Any]:
        info = self.display.get(p.participant_id)
        return {
            "id": p.participant_id,
            "name": (info and info.name) or UNKNOWN_NAME,
            "department": (info and info.department) or self.default_department,
            "wishlist": p.wishlist,
            "status": GiftStatus(p.status).value,
        }

    def recipient_entry(self, p: Participant) -> dict[str, Any] | None:
        if p.recipient_id is None:
            return None
        recipient = self.by_id.get(p.recipient_id)
        return self.public_entry(recipient) if recipient is not None else None

    def stats(self) -> dict[str, int]:
        statuses = [GiftStatus(p.status) for p in self.participants]
        return {
            "total": len(statuses),
            "matched": sum(1 for s in statuses if s is not GiftStatus.WAITING),
            "gifted": sum(1 for s in statuses if s is GiftStatus.GIFTED),
        }

    def self_view(self, caller_id: int | None) -> dict[str, Any]:
        me = self.by_id.get(caller_id) if caller_id is not None else None
        if me is None:
            return {"participant": None, "recipient": None}
        participant = self.public_entry(me)
        participant.update(
            reminder_note=me.reminder_note,
            recipient_id=me.recipient_id,
            matched_at=_isoformat(me.matched_at),
            gifted_at=_isoformat(me.gifted_at),
        )
        return {"participant": participant, "recipient": self.recipient_entry(me)}

    def public_state(self, caller_id: int | None = None) -> dict[str, Any]:
        # recipient ids stay out of the shared list
        return {
            "participants": [self.public_entry(p) for p in self.participants],
            "stats": self.stats(),
            "me": self.self_view(caller_id),
        }

    def admin_state(self) -> dict[str, Any]:
        rows = []
        for p in self.participants:
            entry = self.public_entry(p)
            entry.update(
                recipient_id=p.recipient_id,
                recipient=self.recipient_entry(p),
                matched_at=_isoformat(p.matched_at),
                gifted_at=_isoformat(p.gifted_at),
            )
            rows.append(entry)
        return {"participants": rows, "stats": self.stats()}


def get_state(caller_id: int | None = None, directory: Directory | None = None) -> dict[str, Any]:
    return StateProjector(list_participants(), directory).public_state(caller_id)


def get_admin_state(directory: Directory | None = None) -> dict[str, Any]:
    return StateProjector(list_participants(), directory).admin_state()
