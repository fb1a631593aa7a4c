# Overview: Locking and retry helpers for stock writes.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

logger = logging.getLogger(__name__)


class ConcurrencyConflict(Exception):
    """The stored product changed between read and write; safe to retry."""


RETRYABLE_ERRORS = (ConcurrencyConflict, OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, rollback=None, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a load/compute/persist cycle with retry on concurrency failures.

    Retries on ConcurrencyConflict (version mismatch), OperationalError
    (deadlocks, locks) and StaleDataError (optimistic locking conflicts).
    rollback is called before every retry so the next attempt re-reads
    fresh state. Ledger errors are never retried.
    """
    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            if rollback is not None:
                rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning(
                "Concurrent update detected, retrying (attempt %d of %d): %s",
                attempt + 1, attempts, exc,
            )
            time.sleep(backoff_base * (2 ** attempt))
