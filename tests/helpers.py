from __future__ import annotations

from flask import g
from flask.testing import FlaskClient

from giftexchange.extensions import db
from giftexchange.models import GiftStatus, Participant


def login(client: FlaskClient, user_id: int) -> None:
    with client.session_transaction() as session:
        session["_user_id"] = str(user_id)
        session["_fresh"] = True
    # The app context outlives requests in tests; drop the cached user.
    g.pop("_login_user", None)


def force_match(giver_id: int, recipient_id: int) -> None:
    """Write an assignment directly, bypassing the draw engines."""
    giver = db.session.get(Participant, giver_id)
    giver.recipient_id = recipient_id
    giver.status = GiftStatus.MATCHED.value
    db.session.commit()


def assignments() -> dict[int, int]:
    db.session.expire_all()
    return {
        p.participant_id: p.recipient_id
        for p in Participant.query.all()
        if p.recipient_id is not None
    }


def assert_valid_assignments(mapping: dict[int, int]) -> None:
    assert all(giver != recipient for giver, recipient in mapping.items())
    assert len(set(mapping.values())) == len(mapping)
