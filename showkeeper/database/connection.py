"""Database connection management.

Opening a database brings it to DATABASE_VERSION: a new file gets the
current schema, an older one is upgraded in place and anything that can
not be upgraded is reset (all tables dropped and recreated empty).
"""

import logging
import sqlite3
import threading
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from showkeeper.config import Config, get_database_path
from showkeeper.database.migrations import run_migrations
from showkeeper.database.schema import DATABASE_VERSION, create_schema
from showkeeper.database.search_index import rebuild_search_index
from showkeeper.database.utils import list_tables, transaction

logger = logging.getLogger(__name__)

# Serializes create/upgrade/reset across threads of this process
_init_lock = threading.Lock()


def _resolve_path(db_path: Path | str | None) -> Path:
    return Path(db_path) if db_path else get_database_path()


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """Get a database connection.

    Args:
        db_path: Path to database file. Uses the configured path if not specified.

    Returns:
        SQLite connection with row factory set to sqlite3.Row
    """
    path = _resolve_path(db_path)

    conn = sqlite3.connect(path, timeout=Config.DATABASE_TIMEOUT, check_same_thread=False)
    conn.row_factory = sqlite3.Row

    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(f"PRAGMA busy_timeout={int(Config.DATABASE_TIMEOUT * 1000)}")
    conn.execute("PRAGMA foreign_keys = ON")

    return conn


@contextmanager
def get_db(db_path: Path | str | None = None) -> Generator[sqlite3.Connection, None, None]:
    """Context manager for database connections.

    Usage:
        with get_db() as conn:
            cursor = conn.execute("SELECT * FROM series")
            shows = cursor.fetchall()
    """
    conn = get_connection(db_path)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Read the schema version from the database header (0 for a new file)."""
    return conn.execute("PRAGMA user_version").fetchone()[0]


def set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    conn.execute(f"PRAGMA user_version = {int(version)}")


def _recreate_schema(conn: sqlite3.Connection) -> None:
    """Drop every table and create the current schema, atomically."""
    foreign_keys = conn.execute("PRAGMA foreign_keys").fetchone()[0]
    if foreign_keys:
        conn.execute("PRAGMA foreign_keys = OFF")
    try:
        with transaction(conn):
            for table in list_tables(conn):
                conn.execute(f"DROP TABLE IF EXISTS {table}")
            create_schema(conn)
            set_schema_version(conn, DATABASE_VERSION)
    finally:
        if foreign_keys:
            conn.execute("PRAGMA foreign_keys = ON")


def reset_database(conn: sqlite3.Connection) -> None:
    """Reset database - drops all tables and recreates the current schema.

    WARNING: This deletes all data!
    """
    logger.warning(
        "[RESET] Dropping all tables, recreating schema at version %d", DATABASE_VERSION
    )
    _recreate_schema(conn)


def _bring_to_current_version(conn: sqlite3.Connection) -> int:
    version = get_schema_version(conn)

    if version == 0:
        _recreate_schema(conn)
        logger.info("[STARTUP] Created database at version %d", DATABASE_VERSION)
        return DATABASE_VERSION

    if version == DATABASE_VERSION:
        return version

    if version > DATABASE_VERSION:
        logger.warning(
            "[RESET] Database version %d is newer than supported version %d",
            version,
            DATABASE_VERSION,
        )
        reset_database(conn)
        return DATABASE_VERSION

    try:
        reached = run_migrations(conn, version)
    except sqlite3.DatabaseError as e:
        logger.error("[RESET] Upgrade from version %d failed: %s", version, e)
        reset_database(conn)
        return DATABASE_VERSION

    if reached != DATABASE_VERSION:
        logger.warning(
            "[RESET] Upgrade from version %d stopped at %d, expected %d",
            version,
            reached,
            DATABASE_VERSION,
        )
        reset_database(conn)
        return DATABASE_VERSION

    rebuild_search_index(conn)
    return reached


def _delete_database_files(path: Path) -> None:
    for candidate in (path, Path(f"{path}-wal"), Path(f"{path}-shm")):
        if candidate.exists():
            candidate.unlink()


def init_db(db_path: Path | str | None = None) -> int:
    """Create, upgrade or reset the database so it is at DATABASE_VERSION.

    Safe to call multiple times. A file that is not an SQLite database at
    all is deleted and created anew.

    Args:
        db_path: Path to database file. Uses the configured path if not specified.

    Returns:
        The schema version of the database (always DATABASE_VERSION)
    """
    path = _resolve_path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with _init_lock:
        try:
            with get_db(path) as conn:
                return _bring_to_current_version(conn)
        except sqlite3.DatabaseError as e:
            if "file is not a database" not in str(e):
                raise
            logger.error("[RESET] '%s' is not a database, recreating it: %s", path, e)
            _delete_database_files(path)
            with get_db(path) as conn:
                return _bring_to_current_version(conn)


def open_database(db_path: Path | str | None = None) -> sqlite3.Connection:
    """Get a connection to a database that is ready for use.

    Usage:
        conn = open_database("data/seriesdatabase.db")
        results = search_episodes(conn, "pilot")
    """
    init_db(db_path)
    return get_connection(db_path)
