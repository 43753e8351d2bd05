from __future__ import annotations

import logging
import random

from ..errors import AlreadyMatchedError, NoCandidatesError, NotRegisteredError
from ..extensions import db
from ..models import DrawState, Participant, utcnow
from .candidates import candidate_pool
from .derangement import plan_derangement
from .transactions import acquire_draw_lock, run_in_transaction

logger = logging.getLogger(__name__)

_rng = random.SystemRandom()


def _snapshot() -> list[Participant]:
    return (
        Participant.query
        .order_by(Participant.created_at.asc(), Participant.participant_id.asc())
        .execution_options(populate_existing=True)
        .all()
    )


def draw_for(participant_id: int, rng: random.Random | None = None) -> Participant:
    """
    Draw a recipient for one participant.

    Runs under the draw lock, so concurrent draws see each other's
    committed assignments and never pick the same recipient.

    Drawing one at a time can leave the last drawer with nobody but
    themselves; that surfaces as NoCandidatesError and the participant stays
    waiting until an administrator runs ``draw_all``.
    """
    rng = rng or _rng

    def work() -> Participant:
        acquire_draw_lock()
        rows = _snapshot()
        drawer = next((p for p in rows if p.participant_id == participant_id), None)
        if drawer is None:
            raise NotRegisteredError()
        if drawer.recipient_id is not None:
            raise AlreadyMatchedError()

        pool = candidate_pool(rows, participant_id)
        if not pool:
            logger.info("Participant %s found no candidates", participant_id)
            raise NoCandidatesError()

        chosen = rng.choice(pool)
        drawer.assign_recipient(chosen, utcnow())
        db.session.flush()
        logger.info("Participant %s drew a recipient (%d candidates)", participant_id, len(pool))
        logger.debug("Participant %s -> %s", participant_id, chosen)
        return drawer

    return run_in_transaction(work, name="draw_for")


def draw_all(rng: random.Random | None = None) -> list[Participant]:
    """
    Assign every waiting participant in one atomic batch.

    Returns the participants that received a recipient.
    """
    def work() -> list[Participant]:
        acquire_draw_lock()
        rows = _snapshot()
        plan = plan_derangement(rows, rng or _rng)

        now = utcnow()
        by_id = {p.participant_id: p for p in rows}
        matched = []
        for giver_id, recipient_id in plan.items():
            giver = by_id[giver_id]
            giver.assign_recipient(recipient_id, now)
            matched.append(giver)

        state = db.session.get(DrawState, DrawState.SINGLETON_ID)
        state.last_bulk_draw_at = now
        db.session.flush()
        logger.info("Bulk draw matched %d participants", len(matched))
        return matched

    return run_in_transaction(work, name="draw_all")

