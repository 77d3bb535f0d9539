"""SQLite helpers shared by the migration chain and the search index."""

import itertools
import logging
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager

logger = logging.getLogger(__name__)

_savepoint_ids = itertools.count(1)


@contextmanager
def transaction(conn: sqlite3.Connection) -> Generator[sqlite3.Connection, None, None]:
    """Atomic scope: commit on success, roll back on any exception.

    Opens a transaction, or a savepoint if one is already open so scopes
    can nest (a failing step inside an upgrade only unwinds itself and
    lets the exception reach the enclosing scope).

    Usage:
        with transaction(conn):
            conn.execute("UPDATE series SET hidden = 1 WHERE _id = ?", (show_id,))
    """
    if conn.in_transaction:
        name = f"sp_{next(_savepoint_ids)}"
        conn.execute(f"SAVEPOINT {name}")
        try:
            yield conn
        except BaseException:
            conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
            conn.execute(f"RELEASE SAVEPOINT {name}")
            raise
        conn.execute(f"RELEASE SAVEPOINT {name}")
        return

    conn.execute("BEGIN")
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    conn.commit()


def get_table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    """Get all column names for a table (empty if it does not exist)."""
    cursor = conn.execute(f"PRAGMA table_info({table})")
    return {row[1] for row in cursor.fetchall()}


def get_column_types(conn: sqlite3.Connection, table: str) -> dict[str, str]:
    """Get declared type per column, upper-cased."""
    cursor = conn.execute(f"PRAGMA table_info({table})")
    return {row[1]: (row[2] or "").upper() for row in cursor.fetchall()}


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    """Check if a table (ordinary or virtual) exists."""
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,))
    return cursor.fetchone() is not None


def is_column_missing(conn: sqlite3.Connection, table: str, column: str) -> bool:
    """Check whether a column is absent from a table."""
    return column not in get_table_columns(conn, table)


def list_tables(conn: sqlite3.Connection) -> list[str]:
    """List user tables, excluding SQLite internals and FTS shadow tables."""
    rows = conn.execute(
        "SELECT name, sql FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
    ).fetchall()
    names = {row[0] for row in rows}
    virtual = {row[0] for row in rows if (row[1] or "").upper().startswith("CREATE VIRTUAL")}
    shadow = {name for name in names for vt in virtual if name.startswith(f"{vt}_")}
    return sorted(names - shadow)
