# Overview: Row locking, retry and storage-error translation shared by the services.

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import StorageError
from ..extensions import db


logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking so status checks are re-read at write time.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError.
    Domain errors raised by func propagate on the first attempt.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning("Retrying after %s (attempt %d/%d)", type(exc).__name__, attempt + 1, attempts)
            time.sleep(backoff_base * (2 ** attempt))


@contextmanager
def storage_guard(operation: str, entity_id=None):
    """
    Translate SQLAlchemy failures into StorageError carrying operation + id.

    The session is rolled back before the error leaves this block.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Storage failure during %s (entity=%s): %s", operation, entity_id, exc)
        raise StorageError(
            f"Storage failure during {operation}",
            operation=operation,
            entity_id=entity_id,
        ) from exc
