# Overview: Service-layer helpers for concurrency; row locking and retry of units of work.

from __future__ import annotations

import logging
import time

from flask import current_app, has_app_context
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE = 0.1


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    populate_existing() makes the locked read overwrite any stale copy of the
    row already sitting in the session identity map.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; UnitOfWork takes the database
    write lock up front there (BEGIN IMMEDIATE).
    """
    return query.with_for_update().populate_existing()


def retry_settings() -> tuple[int, float]:
    """(attempts, backoff_base) from app config, with defaults outside an app context."""
    if not has_app_context():
        return DEFAULT_ATTEMPTS, DEFAULT_BACKOFF_BASE
    cfg = current_app.config
    return (
        int(cfg.get("TRANSACTION_RETRY_ATTEMPTS", DEFAULT_ATTEMPTS)),
        float(cfg.get("TRANSACTION_RETRY_BACKOFF", DEFAULT_BACKOFF_BASE)),
    )


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Domain errors propagate immediately.
    """
    default_attempts, default_backoff = retry_settings()
    attempts = default_attempts if attempts is None else attempts
    backoff_base = default_backoff if backoff_base is None else backoff_base
    attempts = max(attempts, 1)

    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            logger.warning(
                "Concurrency conflict on attempt %d/%d, retrying: %s",
                attempt + 1, attempts, exc.__class__.__name__,
            )
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
