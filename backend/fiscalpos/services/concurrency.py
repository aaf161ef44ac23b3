# Overview: Unit-of-work and locking helpers shared by every mutating service call.

from __future__ import annotations

from typing import Callable, TypeVar

from sqlalchemy import text
from sqlalchemy.orm import scoped_session

from ..extensions import db

T = TypeVar("T")


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite the writer lock taken by begin_write() serializes instead.
    """
    return query.with_for_update()


def begin_write(session=None) -> None:
    """
    Open the write transaction up front.

    SQLite defers taking its write lock until the first write, so two
    readers can both decide based on the same snapshot. BEGIN IMMEDIATE takes
    the lock before any read. Only issued when the session has no
    transaction in progress; otherwise the caller already owns one.
    """
    session = session or db.session
    if isinstance(session, scoped_session):
        # the registry proxy has no in_transaction(); ask the session it holds
        session = session()
    if session.get_bind().dialect.name != "sqlite":
        return
    if session.in_transaction():
        return
    session.execute(text("BEGIN IMMEDIATE"))


def run_atomically(func: Callable[[], T], *, session=None) -> T:
    """
    Run `func` as one unit of work.

    Commits only if `func` returns normally; on any exception the whole
    transaction is rolled back and the exception re-raised unchanged. There
    is no retry: that decision belongs to the caller.
    """
    session = session or db.session
    begin_write(session)
    try:
        result = func()
        session.commit()
    except Exception:
        session.rollback()
        raise
    return result
