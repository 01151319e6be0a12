# Overview: Unit-of-Work boundary and row locking shared by every write operation.

from __future__ import annotations

from contextlib import contextmanager

from flask import current_app
from sqlalchemy import text

from ..errors import LedgerError
from ..extensions import db


_DEPTH_KEY = "unit_of_work_depth"


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite, unit_of_work() takes the database write lock up front instead.
    """
    return query.with_for_update()


def lock_rows(model, ids):
    """
    Lock a set of rows of one table in ascending id order.

    Two operations locking overlapping sets always acquire them in the same
    order, so they queue instead of deadlocking. Returns {id: row}; missing
    ids are simply absent.

    Across tables, a customer or supplier row is locked before the safe and
    before the sales or purchase orders that belong to it.
    """
    unique_ids = sorted(set(ids))
    if not unique_ids:
        return {}
    rows = (
        lock_for_update(db.session.query(model).filter(model.id.in_(unique_ids)))
        .order_by(model.id)
        .all()
    )
    return {row.id: row for row in rows}


@contextmanager
def unit_of_work(operation: str):
    """
    Atomic boundary for one business operation.

    Everything written to db.session inside the block commits together, or
    the session is rolled back and the original exception re-raised. There
    is no retry: callers resubmit, and every resubmission writes new ledger
    entries.

    A unit_of_work opened inside another one joins the outer transaction;
    only the outermost block commits or rolls back.

    SQLite: BEGIN IMMEDIATE acquires the database write lock before the
    first read, so a sufficiency check and the write that depends on it
    cannot interleave with another writer.
    """
    depth = db.session.info.get(_DEPTH_KEY, 0)
    if depth:
        db.session.info[_DEPTH_KEY] = depth + 1
        try:
            yield db.session
        finally:
            db.session.info[_DEPTH_KEY] = depth
        return

    if db.engine.dialect.name == "sqlite":
        raw = db.session.connection().connection.dbapi_connection
        if not raw.in_transaction:
            db.session.execute(text("BEGIN IMMEDIATE"))

    db.session.info[_DEPTH_KEY] = 1
    try:
        yield db.session
        db.session.info[_DEPTH_KEY] = 0
        db.session.commit()
    except LedgerError as exc:
        db.session.info[_DEPTH_KEY] = 0
        db.session.rollback()
        current_app.logger.warning("%s rolled back: %s", operation, exc.message)
        raise
    except Exception:
        db.session.info[_DEPTH_KEY] = 0
        db.session.rollback()
        current_app.logger.exception("%s failed; rolled back", operation)
        raise
