from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError

from ..errors import SecretSantaError, StorageUnavailableError
from ..extensions import db
from ..models import DrawState

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Lock timeouts, dropped connections and conflicting concurrent inserts.
TRANSIENT_ERRORS = (OperationalError, IntegrityError)


def run_in_transaction(work: Callable[[], T], *, name: str = "transaction") -> T:
    """
    Run ``work`` and commit. Rolls back on any failure.

    Transient storage errors are retried with exponential backoff;
    domain errors propagate on the first occurrence.
    """
    max_attempts = int(current_app.config["SANTA_TX_MAX_ATTEMPTS"])
    backoff = float(current_app.config["SANTA_TX_BACKOFF_SECONDS"])

    # Identity-map rows loaded earlier in this request may be stale.
    db.session.expire_all()

    for attempt in range(1, max_attempts + 1):
        try:
            result = work()
            db.session.commit()
            return result
        except SecretSantaError:
            db.session.rollback()
            raise
        except TRANSIENT_ERRORS as e:
            db.session.rollback()
            if attempt == max_attempts:
                logger.error("%s failed after %d attempts: %s", name, attempt, e)
                raise StorageUnavailableError() from e
            delay = backoff * (2 ** (attempt - 1))
            logger.warning(
                "%s hit a transient storage error (attempt %d/%d), retrying in %.3fs: %s",
                name, attempt, max_attempts, delay, e,
            )
            time.sleep(delay)
        except Exception:
            db.session.rollback()
            raise

    raise StorageUnavailableError()


def acquire_draw_lock() -> None:
    """
    Take the draw lock for the current transaction.

    Must be the first statement of the transaction: on SQLite the UPDATE
    takes the reserved lock before anything is read.
    """
    result = db.session.execute(
        update(DrawState)
        .where(DrawState.id == DrawState.SINGLETON_ID)
        .values(revision=DrawState.revision + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # First draw ever. A concurrent insert surfaces as IntegrityError
        # and the transaction is retried.
        db.session.add(DrawState(id=DrawState.SINGLETON_ID, revision=1))
        db.session.flush()
