"""Tests for opening, upgrading and resetting databases."""

import sqlite3
import tempfile
from pathlib import Path

import pytest

from showkeeper.database import connection, migrations
from showkeeper.database.connection import (
    get_db,
    get_schema_version,
    init_db,
    open_database,
    reset_database,
)
from showkeeper.database.activity import add_activity
from showkeeper.database.list_items import add_list, add_list_item
from showkeeper.database.migrations import create_database_at_version
from showkeeper.database.schema import DATABASE_VERSION, SCHEMA, ListItemType
from showkeeper.database.search_index import rebuild_search_index
from showkeeper.database.utils import list_tables


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def db_path():
    """Path of a temporary, empty database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        path = Path(f.name)

    yield path

    for candidate in (path, Path(f"{path}-wal"), Path(f"{path}-shm")):
        candidate.unlink(missing_ok=True)


def _seed_at_version(path: Path, version: int) -> None:
    conn = sqlite3.connect(str(path))
    create_database_at_version(conn, version)
    conn.commit()
    conn.close()


def _count(conn, table: str) -> int:
    return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


# =============================================================================
# OPEN
# =============================================================================


class TestOpen:
    """Tests for opening databases."""

    def test_new_file_gets_current_schema(self, db_path):
        """An empty file is created at the current version."""
        assert init_db(db_path) == DATABASE_VERSION

        with get_db(db_path) as conn:
            assert get_schema_version(conn) == DATABASE_VERSION
            assert list_tables(conn) == sorted(SCHEMA.table_names)

    def test_missing_directory_is_created(self, tmp_path):
        """The parent directory of the database file is created."""
        path = tmp_path / "data" / "shows.db"
        assert init_db(path) == DATABASE_VERSION
        assert path.exists()

    def test_open_database_returns_ready_connection(self, db_path):
        """Connection has foreign keys on and rows by name."""
        conn = open_database(db_path)
        try:
            assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
            conn.execute("INSERT INTO series (_id, seriestitle) VALUES (1, 'Lost')")
            row = conn.execute("SELECT seriestitle FROM series").fetchone()
            assert row["seriestitle"] == "Lost"
        finally:
            conn.close()

    def test_init_is_repeatable(self, db_path):
        """Opening a current database keeps its data."""
        init_db(db_path)
        with get_db(db_path) as conn:
            conn.execute("INSERT INTO series (_id, seriestitle) VALUES (1, 'Lost')")

        assert init_db(db_path) == DATABASE_VERSION

        with get_db(db_path) as conn:
            assert _count(conn, "series") == 1

    def test_configured_path_used_by_default(self, tmp_path, monkeypatch):
        """Without an explicit path the configured one is used."""
        path = tmp_path / "configured.db"
        monkeypatch.setattr(connection.Config, "DATABASE_PATH", str(path))

        assert init_db() == DATABASE_VERSION
        assert path.exists()


# =============================================================================
# UPGRADE
# =============================================================================


class TestUpgrade:
    """Tests for upgrading on open."""

    def test_old_database_upgraded_in_place(self, db_path):
        """Data survives and the search index is rebuilt as fts4."""
        conn = sqlite3.connect(str(db_path))
        create_database_at_version(conn, 16)
        conn.execute("INSERT INTO series (_id, seriestitle) VALUES (1, 'Lost')")
        conn.execute(
            "INSERT INTO episodes (_id, episodetitle, episodedescription, series_id)"
            " VALUES (7, 'Pilot', 'Plane crash', 1)"
        )
        conn.commit()
        conn.close()

        assert init_db(db_path) == DATABASE_VERSION

        with get_db(db_path) as conn:
            assert get_schema_version(conn) == DATABASE_VERSION
            assert _count(conn, "series") == 1
            sql = conn.execute(
                "SELECT sql FROM sqlite_master WHERE name = 'searchtable'"
            ).fetchone()[0]
            assert "fts4" in sql
            docids = conn.execute("SELECT docid FROM searchtable").fetchall()
            assert [row[0] for row in docids] == [7]

    def test_unusable_release_time_does_not_block_upgrade(self, db_path):
        """Clock text stored as a release time upgrades to unknown, the row is kept."""
        _seed_at_version(db_path, 33)
        conn = sqlite3.connect(str(db_path))
        conn.execute(
            "INSERT INTO series (_id, seriestitle, airstime) VALUES (1, 'Lost', '8:00 PM')"
        )
        conn.commit()
        conn.close()

        assert init_db(db_path) == DATABASE_VERSION

        with get_db(db_path) as conn:
            row = conn.execute("SELECT seriestitle, airstime FROM series").fetchone()
            assert (row["seriestitle"], row["airstime"]) == ("Lost", -1)


# =============================================================================
# RESET
# =============================================================================


class TestReset:
    """Tests for the destructive reset paths."""

    def test_newer_version_is_reset(self, db_path):
        """A database from a newer release loses every row and table."""
        assert init_db(db_path) == DATABASE_VERSION
        with get_db(db_path) as conn:
            conn.execute("INSERT INTO series (_id, seriestitle) VALUES (10, 'Lost')")
            conn.execute("INSERT INTO seasons (_id, combinednr, series_id) VALUES (20, 1, 10)")
            conn.execute(
                "INSERT INTO episodes (_id, episodetitle, series_id) VALUES (30, 'Pilot', 10)"
            )
            conn.execute("INSERT INTO movies (movies_tmdbid, movies_title) VALUES (603, 'Heat')")
            add_list(conn, "favorites", "Favorites")
            add_list_item(conn, "favorites", 10, ListItemType.SHOW)
            add_activity(conn, 30, 10, 1_000)
            assert rebuild_search_index(conn)
            conn.execute("CREATE TABLE stray (x INTEGER)")
            conn.execute("PRAGMA user_version = 99")
            assert _count(conn, "searchtable") == 1

        assert init_db(db_path) == DATABASE_VERSION

        with get_db(db_path) as conn:
            assert get_schema_version(conn) == DATABASE_VERSION
            assert list_tables(conn) == sorted(SCHEMA.table_names)
            for table in SCHEMA.table_names:
                assert _count(conn, table) == 0, table

    def test_version_too_old_is_reset(self, db_path):
        """A version before the upgradable baseline is wiped."""
        conn = sqlite3.connect(str(db_path))
        conn.execute("CREATE TABLE series (_id INTEGER PRIMARY KEY, seriestitle TEXT)")
        conn.execute("INSERT INTO series VALUES (1, 'Lost')")
        conn.execute("PRAGMA user_version = 10")
        conn.commit()
        conn.close()

        assert init_db(db_path) == DATABASE_VERSION

        with get_db(db_path) as conn:
            assert get_schema_version(conn) == DATABASE_VERSION
            assert _count(conn, "series") == 0

    def test_failed_upgrade_is_reset(self, db_path, monkeypatch):
        """A database error during a step wipes the database."""
        _seed_at_version(db_path, 32)
        conn = sqlite3.connect(str(db_path))
        conn.execute("INSERT INTO series (_id, seriestitle) VALUES (1, 'The Wire')")
        conn.commit()
        conn.close()

        def broken(title):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(migrations, "trim_leading_article", broken)

        assert init_db(db_path) == DATABASE_VERSION

        with get_db(db_path) as conn:
            assert get_schema_version(conn) == DATABASE_VERSION
            assert _count(conn, "series") == 0
            assert list_tables(conn) == sorted(SCHEMA.table_names)

    def test_corrupt_file_is_recreated(self, db_path):
        """A file that is not a database is replaced."""
        db_path.write_bytes(b"definitely not an sqlite file " * 100)

        assert init_db(db_path) == DATABASE_VERSION

        with get_db(db_path) as conn:
            assert get_schema_version(conn) == DATABASE_VERSION

    def test_reset_database_drops_data(self, db_path):
        """reset_database empties every table."""
        init_db(db_path)
        with get_db(db_path) as conn:
            conn.execute("INSERT INTO series (_id, seriestitle) VALUES (1, 'Lost')")
            conn.execute(
                "INSERT INTO episodes (_id, episodetitle, series_id) VALUES (2, 'Pilot', 1)"
            )

        with get_db(db_path) as conn:
            reset_database(conn)

        with get_db(db_path) as conn:
            assert _count(conn, "series") == 0
            assert _count(conn, "episodes") == 0
            assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
