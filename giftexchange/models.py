from __future__ import annotations

import enum
from datetime import datetime, timezone

from flask import current_app
from flask_login import UserMixin

from .errors import AlreadyMatchedError, NoMatchError
from .extensions import db, login_manager


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GiftStatus(str, enum.Enum):
    WAITING = "waiting"
    MATCHED = "matched"
    GIFTED = "gifted"


class User(UserMixin, db.Model):
    """Platform account. Supplies identity, display name and department."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), unique=True, nullable=False)
    department = db.Column(db.String(128), nullable=True)

    # salted Passlib hash of SHA-256(passphrase) from the browser
    passkey_hash = db.Column(db.String(255), nullable=False)

    registered_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    @property
    def role(self) -> str:
        admin_name = (current_app.config.get("SANTA_ADMIN_NAME") or "").strip()
        if admin_name and self.name == admin_name:
            return "admin"
        return "member"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Participant(db.Model):
    __tablename__ = "participants"

    participant_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    wishlist = db.Column(db.Text, nullable=False)
    reminder_note = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=GiftStatus.WAITING.value)

    # Unique: a participant is somebody's recipient at most once.
    recipient_id = db.Column(
        db.Integer,
        db.ForeignKey("participants.participant_id"),
        unique=True,
        nullable=True,
    )
    matched_at = db.Column(db.DateTime(timezone=True), nullable=True)
    gifted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint(
            "recipient_id IS NULL OR recipient_id != participant_id",
            name="no_self_gift",
        ),
        db.CheckConstraint(
            "(status = 'waiting' AND recipient_id IS NULL)"
            " OR (status IN ('matched', 'gifted') AND recipient_id IS NOT NULL)",
            name="status_matches_recipient",
        ),
    )

    @property
    def gift_status(self) -> GiftStatus:
        return GiftStatus(self.status)

    def assign_recipient(self, recipient_id: int, when: datetime) -> None:
        """waiting -> matched. The recipient is set once and never replaced."""
        if self.recipient_id is not None:
            raise AlreadyMatchedError()
        if recipient_id == self.participant_id:
            raise ValueError("a participant cannot be their own recipient")
        self.recipient_id = recipient_id
        self.status = GiftStatus.MATCHED.value
        self.matched_at = when

    def mark_gifted(self, when: datetime) -> bool:
        """matched -> gifted. Returns False when the gift was already confirmed."""
        if self.recipient_id is None:
            raise NoMatchError()
        if self.gift_status is GiftStatus.GIFTED:
            return False
        self.status = GiftStatus.GIFTED.value
        self.gifted_at = when
        return True


class DrawState(db.Model):
    """
    Single row every draw transaction writes to first.
    Bumping ``revision`` takes the row's write lock, so incremental and bulk
    draws are serialized against each other.
    """
    __tablename__ = "draw_state"

    SINGLETON_ID = 1

    id = db.Column(db.Integer, primary_key=True)
    revision = db.Column(db.Integer, default=0, nullable=False)
    last_bulk_draw_at = db.Column(db.DateTime(timezone=True), nullable=True)


@login_manager.user_loader
def load_user(user_id: str):
    return db.session.get(User, int(user_id))
