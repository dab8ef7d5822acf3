# Overview: Transaction scoping and row locking shared by all write services.

from __future__ import annotations

from contextlib import contextmanager


def lock_for_update(query, *, read: bool = False):
    """
    Apply row-level locking for critical operations.

    read=True takes a shared lock (FOR SHARE) so the row cannot change
    underneath the transaction without blocking other readers.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the engine starts every
    transaction with BEGIN IMMEDIATE instead (see extensions.py).
    Rows already in the session are refreshed from the locked read.
    """
    return query.with_for_update(read=read).populate_existing()


@contextmanager
def atomic(session):
    """
    Run one logical write as a single transaction.

    Commits when the block finishes; on any exception rolls back everything
    the block wrote and re-raises. Nothing is retried.
    """
    try:
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        raise
