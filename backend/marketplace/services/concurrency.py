# Overview: Row locking, conditional updates and retry for contended writes.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    conditional_update() is what actually decides races on SQLite.
    """
    return query.with_for_update()


def conditional_update(model, *criteria, values: dict) -> bool:
    """
    UPDATE model SET values WHERE criteria, as one statement.

    Returns True when exactly one row matched. The criteria carry the
    precondition (e.g. status == expected, stock >= qty), so the check and the
    write cannot be separated by a concurrent writer.
    """
    rowcount = (
        db.session.query(model)
        .filter(*criteria)
        .update(values, synchronize_session="fetch")
    )
    return rowcount == 1


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Domain errors propagate on the first try.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
