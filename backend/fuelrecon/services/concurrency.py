# Overview: Row locking, retry and duplicate-key helpers shared by the mismatch, resolution and report write paths.

from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on the rows a writer is about to change.

    NOTE: SQLite ignores the lock; the version_id columns on SalesMismatch
    and FinancialReport still catch a lost update there.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Call func(), rolling back and retrying on deadlocks, lock timeouts and
    stale-version conflicts with exponential backoff.

    The last failure is re-raised; @returns_result turns it into an Err.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS:
            db.session.rollback()
            if attempt == attempts:
                raise
            time.sleep(backoff_base * (2 ** (attempt - 1)))


def insert_unique(instance) -> bool:
    """
    Insert a row guarded by a unique index.

    Flushes inside a SAVEPOINT so losing a duplicate-key race only rolls
    back this insert. Returns False when another writer got there first.
    """
    nested = db.session.begin_nested()
    db.session.add(instance)
    try:
        db.session.flush()
    except IntegrityError:
        nested.rollback()
        return False
    nested.commit()
    return True
