"""Tests for the schema registry and its join fragments."""

import sqlite3

import pytest

from showkeeper.database.schema import (
    EPISODES_JOIN_SHOWS,
    LISTS_TABLE,
    SCHEMA,
    SEASONS_JOIN_SHOWS,
    SHOWS_JOIN_EPISODES_ON_LAST_EPISODE,
    SHOWS_JOIN_EPISODES_ON_NEXT_EPISODE,
    Tables,
    create_schema,
    generate_list_item_id,
)


@pytest.fixture
def conn():
    """In-memory database with the current schema and foreign keys on."""
    conn = sqlite3.connect(":memory:")
    conn.execute("PRAGMA foreign_keys = ON")
    create_schema(conn)
    yield conn
    conn.close()


# =============================================================================
# REGISTRY
# =============================================================================


class TestRegistry:
    """Tests for table definitions."""

    def test_all_tables_declared(self):
        assert set(SCHEMA.table_names) == {
            Tables.SHOWS,
            Tables.SEASONS,
            Tables.EPISODES,
            Tables.EPISODES_SEARCH,
            Tables.LISTS,
            Tables.LIST_ITEMS,
            Tables.MOVIES,
            Tables.ACTIVITY,
        }

    def test_unknown_table(self):
        with pytest.raises(KeyError):
            SCHEMA.table("nope")

    def test_columns_are_read_only(self):
        with pytest.raises(TypeError):
            SCHEMA.table(Tables.SHOWS).columns["extra"] = "TEXT"

    def test_create_sql_includes_constraints(self):
        sql = LISTS_TABLE.create_sql()
        assert sql.startswith("CREATE TABLE lists (")
        assert "UNIQUE (list_id) ON CONFLICT REPLACE" in sql

    def test_create_sql_under_other_name(self):
        assert LISTS_TABLE.create_sql("lists_copy").startswith("CREATE TABLE lists_copy (")

    def test_search_table_is_virtual(self):
        table = SCHEMA.table(Tables.EPISODES_SEARCH)
        assert table.is_virtual
        assert table.create_sql().startswith("CREATE VIRTUAL TABLE searchtable USING fts4(")

    def test_list_item_id(self):
        assert generate_list_item_id(42, 3, "watch") == "42-3-watch"


# =============================================================================
# CONSTRAINTS
# =============================================================================


class TestConstraints:
    """Tests for keys enforced by the schema."""

    def test_episode_requires_existing_show(self, conn):
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute("INSERT INTO episodes (_id, episodetitle, series_id) VALUES (1, 'x', 5)")

    def test_movie_replaced_on_same_tmdb_id(self, conn):
        conn.execute("INSERT INTO movies (movies_tmdbid, movies_title) VALUES (603, 'Old')")
        conn.execute("INSERT INTO movies (movies_tmdbid, movies_title) VALUES (603, 'New')")

        rows = conn.execute("SELECT movies_title FROM movies").fetchall()
        assert rows == [("New",)]

    def test_activity_replaced_on_same_episode(self, conn):
        conn.execute(
            "INSERT INTO activity (activity_episode, activity_show, activity_time)"
            " VALUES ('1', '9', 100)"
        )
        conn.execute(
            "INSERT INTO activity (activity_episode, activity_show, activity_time)"
            " VALUES ('1', '9', 200)"
        )

        rows = conn.execute("SELECT activity_time FROM activity").fetchall()
        assert rows == [(200,)]


# =============================================================================
# JOINS
# =============================================================================


class TestJoins:
    """Tests for the qualified join fragments."""

    @pytest.fixture
    def shows(self, conn):
        conn.executemany(
            "INSERT INTO series (_id, seriestitle, next, series_lastwatchedid) VALUES (?, ?, ?, ?)",
            [(1, "Lost", "7", 7), (2, "Gone", "999", 999)],
        )
        conn.execute("INSERT INTO episodes (_id, episodetitle, series_id) VALUES (7, 'Pilot', 1)")
        conn.execute("INSERT INTO seasons (_id, combinednr, series_id) VALUES (3, 1, 1)")
        return conn

    def test_last_watched_episode(self, shows):
        rows = shows.execute(
            f"SELECT seriestitle, episodetitle FROM {SHOWS_JOIN_EPISODES_ON_LAST_EPISODE}"
            " ORDER BY series._id"
        ).fetchall()
        assert rows == [("Lost", "Pilot"), ("Gone", None)]

    def test_next_episode(self, shows):
        rows = shows.execute(
            f"SELECT seriestitle, episodetitle FROM {SHOWS_JOIN_EPISODES_ON_NEXT_EPISODE}"
            " ORDER BY series._id"
        ).fetchall()
        assert rows == [("Lost", "Pilot"), ("Gone", None)]

    def test_season_and_episode_show(self, shows):
        season = shows.execute(f"SELECT seriestitle FROM {SEASONS_JOIN_SHOWS}").fetchone()
        episode = shows.execute(f"SELECT seriestitle FROM {EPISODES_JOIN_SHOWS}").fetchone()
        assert season == ("Lost",)
        assert episode == ("Lost",)
