"""Schema registry - the current database schema.

Declares every table of the current schema version: columns with their
SQL definition (type, default, constraints), table constraints including
the replace-on-conflict keys, and the qualified join fragments used to
resolve a show's weak episode references.

The registry is built once at import time and never mutated. Migrations
take column definitions from here so an upgraded database ends up with the
same columns, types and defaults as a freshly created one.
"""

import sqlite3
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType

# =============================================================================
# VERSIONS
# =============================================================================

# Oldest version that can be upgraded in place; anything older is reset
FIRST_UPGRADABLE_VERSION = 16

DATABASE_VERSION = 38


# =============================================================================
# TABLE NAMES
# =============================================================================


class Tables:
    """Table names."""

    SHOWS = "series"
    SEASONS = "seasons"
    EPISODES = "episodes"
    EPISODES_SEARCH = "searchtable"
    LISTS = "lists"
    LIST_ITEMS = "listitems"
    MOVIES = "movies"
    ACTIVITY = "activity"


class ListItemType(IntEnum):
    """Type tag of a list item, determines which table item_ref_id points into."""

    SHOW = 1
    SEASON = 2
    EPISODE = 3


def generate_list_item_id(item_ref_id: int | str, item_type: int, list_id: str) -> str:
    """Build the composite key identifying an entity within a list."""
    return f"{item_ref_id}-{int(item_type)}-{list_id}"


# =============================================================================
# TABLE DEFINITIONS
# =============================================================================


@dataclass(frozen=True)
class TableSchema:
    """Definition of one table at the current version."""

    name: str
    columns: Mapping[str, str]
    constraints: tuple[str, ...] = ()
    # Virtual table module (e.g. "fts4"), None for ordinary tables
    module: str | None = None

    def __post_init__(self) -> None:
        # Freeze the column mapping so the registry can be shared by reference
        object.__setattr__(self, "columns", MappingProxyType(dict(self.columns)))

    @property
    def is_virtual(self) -> bool:
        return self.module is not None

    def column_definition(self, column: str) -> str:
        """Get the SQL definition of a column (raises KeyError if unknown)."""
        return self.columns[column]

    def create_sql(self, name: str | None = None) -> str:
        """Render the CREATE TABLE statement, optionally under another name."""
        table_name = name or self.name
        parts = [f"{column} {definition}" for column, definition in self.columns.items()]
        parts.extend(self.constraints)
        body = ", ".join(parts)
        if self.module:
            return f"CREATE VIRTUAL TABLE {table_name} USING {self.module}({body})"
        return f"CREATE TABLE {table_name} ({body})"


@dataclass(frozen=True)
class Schema:
    """All tables of one schema version."""

    version: int
    tables: tuple[TableSchema, ...] = field(default_factory=tuple)

    def table(self, name: str) -> TableSchema:
        for table in self.tables:
            if table.name == name:
                return table
        raise KeyError(name)

    @property
    def table_names(self) -> tuple[str, ...]:
        return tuple(table.name for table in self.tables)


SHOWS_COLUMNS: dict[str, str] = {
    "_id": "INTEGER PRIMARY KEY",
    "seriestitle": "TEXT NOT NULL",
    "series_title_noarticle": "TEXT",
    "overview": "TEXT DEFAULT ''",
    "actors": "TEXT DEFAULT ''",
    # HHMM, -1 if unknown
    "airstime": "INTEGER",
    # 1 (Monday) .. 7 (Sunday), 0 daily, -1 unknown
    "airsdayofweek": "INTEGER",
    "series_country": "TEXT DEFAULT ''",
    "series_timezone": "TEXT",
    "firstaired": "TEXT",
    "genres": "TEXT DEFAULT ''",
    "network": "TEXT DEFAULT ''",
    "rating": "REAL",
    "series_rating_votes": "INTEGER",
    "series_rating_user": "INTEGER",
    "runtime": "TEXT DEFAULT ''",
    "status": "TEXT DEFAULT ''",
    "contentrating": "TEXT DEFAULT ''",
    # Weak reference to episodes._id
    "next": "TEXT DEFAULT ''",
    "poster": "TEXT DEFAULT ''",
    "series_nextairdate": "INTEGER",
    "nexttext": "TEXT DEFAULT ''",
    "imdbid": "TEXT DEFAULT ''",
    "series_trakt_id": "INTEGER DEFAULT 0",
    "favorite": "INTEGER DEFAULT 0",
    "nextairdatetext": "TEXT DEFAULT ''",
    "series_hexagon_merge_complete": "INTEGER DEFAULT 1",
    "hidden": "INTEGER DEFAULT 0",
    "series_lastupdate": "INTEGER DEFAULT 0",
    "series_lastedit": "INTEGER DEFAULT 0",
    # Weak reference to episodes._id
    "series_lastwatchedid": "INTEGER DEFAULT 0",
    "series_language": "TEXT DEFAULT ''",
}

SEASONS_COLUMNS: dict[str, str] = {
    "_id": "INTEGER PRIMARY KEY",
    "combinednr": "INTEGER",
    "series_id": "INTEGER REFERENCES series(_id)",
    "watchcount": "INTEGER DEFAULT 0",
    "willaircount": "INTEGER DEFAULT 0",
    "noairdatecount": "INTEGER DEFAULT 0",
    "tags": "TEXT DEFAULT ''",
    "totalcount": "INTEGER DEFAULT 0",
}

EPISODES_COLUMNS: dict[str, str] = {
    "_id": "INTEGER PRIMARY KEY",
    "episodetitle": "TEXT NOT NULL",
    "episodedescription": "TEXT",
    "episodenumber": "INTEGER DEFAULT 0",
    "season": "INTEGER DEFAULT 0",
    "dvdnumber": "REAL",
    "season_id": "INTEGER REFERENCES seasons(_id)",
    "series_id": "INTEGER REFERENCES series(_id)",
    "watched": "INTEGER DEFAULT 0",
    "directors": "TEXT DEFAULT ''",
    "gueststars": "TEXT DEFAULT ''",
    "writers": "TEXT DEFAULT ''",
    "episodeimage": "TEXT DEFAULT ''",
    "episode_firstairedms": "INTEGER DEFAULT -1",
    "episode_collected": "INTEGER DEFAULT 0",
    "rating": "REAL",
    "episode_rating_votes": "INTEGER",
    "episode_rating_user": "INTEGER",
    "episode_imdbid": "TEXT DEFAULT ''",
    "episode_lastedit": "INTEGER DEFAULT 0",
    "absolute_number": "INTEGER",
}

# Document id of every row is the episode _id
EPISODES_SEARCH_COLUMNS: dict[str, str] = {
    "episodetitle": "TEXT",
    "episodedescription": "TEXT",
}

LISTS_COLUMNS: dict[str, str] = {
    "_id": "INTEGER PRIMARY KEY AUTOINCREMENT",
    "list_id": "TEXT NOT NULL",
    "list_name": "TEXT NOT NULL",
    "list_order": "INTEGER DEFAULT 0",
}

LIST_ITEMS_COLUMNS: dict[str, str] = {
    "_id": "INTEGER PRIMARY KEY AUTOINCREMENT",
    "list_item_id": "TEXT NOT NULL",
    "item_ref_id": "TEXT NOT NULL",
    "item_type": "INTEGER NOT NULL",
    "list_id": "TEXT REFERENCES lists(list_id)",
}

MOVIES_COLUMNS: dict[str, str] = {
    "_id": "INTEGER PRIMARY KEY AUTOINCREMENT",
    "movies_tmdbid": "INTEGER NOT NULL",
    "movies_imdbid": "TEXT",
    "movies_title": "TEXT",
    "movies_title_noarticle": "TEXT",
    "movies_poster": "TEXT",
    "movies_genres": "TEXT",
    "movies_overview": "TEXT",
    "movies_released": "INTEGER",
    "movies_runtime": "INTEGER DEFAULT 0",
    "movies_trailer": "TEXT",
    "movies_certification": "TEXT",
    "movies_incollection": "INTEGER DEFAULT 0",
    "movies_inwatchlist": "INTEGER DEFAULT 0",
    "movies_plays": "INTEGER DEFAULT 0",
    "movies_watched": "INTEGER DEFAULT 0",
    "movies_rating_tmdb": "REAL DEFAULT 0",
    "movies_rating_votes_tmdb": "INTEGER DEFAULT 0",
    "movies_rating_trakt": "INTEGER DEFAULT 0",
    "movies_rating_votes_trakt": "INTEGER DEFAULT 0",
    "movies_rating_user": "INTEGER",
    "movies_last_updated": "INTEGER",
}

ACTIVITY_COLUMNS: dict[str, str] = {
    "_id": "INTEGER PRIMARY KEY AUTOINCREMENT",
    "activity_episode": "TEXT NOT NULL",
    "activity_show": "TEXT NOT NULL",
    "activity_time": "INTEGER NOT NULL",
}

SHOWS_TABLE = TableSchema(Tables.SHOWS, SHOWS_COLUMNS)
SEASONS_TABLE = TableSchema(Tables.SEASONS, SEASONS_COLUMNS)
EPISODES_TABLE = TableSchema(Tables.EPISODES, EPISODES_COLUMNS)
EPISODES_SEARCH_TABLE = TableSchema(
    Tables.EPISODES_SEARCH, EPISODES_SEARCH_COLUMNS, module="fts4"
)
LISTS_TABLE = TableSchema(
    Tables.LISTS, LISTS_COLUMNS, constraints=("UNIQUE (list_id) ON CONFLICT REPLACE",)
)
LIST_ITEMS_TABLE = TableSchema(
    Tables.LIST_ITEMS,
    LIST_ITEMS_COLUMNS,
    constraints=("UNIQUE (list_item_id) ON CONFLICT REPLACE",),
)
MOVIES_TABLE = TableSchema(
    Tables.MOVIES, MOVIES_COLUMNS, constraints=("UNIQUE (movies_tmdbid) ON CONFLICT REPLACE",)
)
ACTIVITY_TABLE = TableSchema(
    Tables.ACTIVITY,
    ACTIVITY_COLUMNS,
    constraints=("UNIQUE (activity_episode) ON CONFLICT REPLACE",),
)

SCHEMA = Schema(
    version=DATABASE_VERSION,
    tables=(
        SHOWS_TABLE,
        SEASONS_TABLE,
        EPISODES_TABLE,
        EPISODES_SEARCH_TABLE,
        LISTS_TABLE,
        LIST_ITEMS_TABLE,
        MOVIES_TABLE,
        ACTIVITY_TABLE,
    ),
)


# =============================================================================
# QUALIFIED JOINS
# =============================================================================


class Qualified:
    """Column names prefixed by their table name."""

    SHOWS_ID = f"{Tables.SHOWS}._id"
    SHOWS_LAST_EPISODE = f"{Tables.SHOWS}.series_lastwatchedid"
    SHOWS_NEXT_EPISODE = f"{Tables.SHOWS}.next"
    EPISODES_ID = f"{Tables.EPISODES}._id"
    EPISODES_SHOW_ID = f"{Tables.EPISODES}.series_id"
    SEASONS_SHOW_ID = f"{Tables.SEASONS}.series_id"
    LIST_ITEMS_REF_ID = f"{Tables.LIST_ITEMS}.item_ref_id"


# Left outer joins: a dangling episode reference yields NULL episode columns
SHOWS_JOIN_EPISODES_ON_LAST_EPISODE = (
    f"{Tables.SHOWS} LEFT OUTER JOIN {Tables.EPISODES}"
    f" ON {Qualified.SHOWS_LAST_EPISODE}={Qualified.EPISODES_ID}"
)

SHOWS_JOIN_EPISODES_ON_NEXT_EPISODE = (
    f"{Tables.SHOWS} LEFT OUTER JOIN {Tables.EPISODES}"
    f" ON {Qualified.SHOWS_NEXT_EPISODE}={Qualified.EPISODES_ID}"
)

SEASONS_JOIN_SHOWS = (
    f"{Tables.SEASONS} LEFT OUTER JOIN {Tables.SHOWS}"
    f" ON {Qualified.SEASONS_SHOW_ID}={Qualified.SHOWS_ID}"
)

EPISODES_JOIN_SHOWS = (
    f"{Tables.EPISODES} LEFT OUTER JOIN {Tables.SHOWS}"
    f" ON {Qualified.EPISODES_SHOW_ID}={Qualified.SHOWS_ID}"
)


# =============================================================================
# VERSION 16 BASELINE
# =============================================================================

# Oldest schema still upgradable in place. Release time was stored in ms,
# the release weekday and the episode air date as free text.
LEGACY_SCHEMA_V16: tuple[str, ...] = (
    """
    CREATE TABLE series (
        _id INTEGER PRIMARY KEY,
        seriestitle TEXT NOT NULL,
        overview TEXT DEFAULT '',
        actors TEXT DEFAULT '',
        airstime INTEGER,
        airsdayofweek TEXT,
        firstaired TEXT,
        genres TEXT DEFAULT '',
        network TEXT DEFAULT '',
        rating REAL,
        runtime TEXT DEFAULT '',
        status TEXT DEFAULT '',
        contentrating TEXT DEFAULT '',
        next TEXT DEFAULT '',
        poster TEXT DEFAULT '',
        nexttext TEXT DEFAULT '',
        imdbid TEXT DEFAULT ''
    )
    """,
    """
    CREATE TABLE seasons (
        _id INTEGER PRIMARY KEY,
        combinednr INTEGER,
        series_id INTEGER REFERENCES series(_id),
        watchcount INTEGER DEFAULT 0,
        willaircount INTEGER DEFAULT 0,
        noairdatecount INTEGER DEFAULT 0,
        tags TEXT DEFAULT ''
    )
    """,
    """
    CREATE TABLE episodes (
        _id INTEGER PRIMARY KEY,
        episodetitle TEXT NOT NULL,
        episodedescription TEXT,
        episodenumber INTEGER DEFAULT 0,
        season INTEGER DEFAULT 0,
        dvdnumber REAL,
        season_id INTEGER REFERENCES seasons(_id),
        series_id INTEGER REFERENCES series(_id),
        watched INTEGER DEFAULT 0,
        directors TEXT DEFAULT '',
        gueststars TEXT DEFAULT '',
        writers TEXT DEFAULT '',
        episodeimage TEXT DEFAULT '',
        epfirstaired TEXT,
        rating REAL
    )
    """,
    """
    CREATE VIRTUAL TABLE searchtable USING fts3(
        episodetitle TEXT,
        episodedescription TEXT
    )
    """,
)

# Free text air date column replaced by episode_firstairedms in version 24
LEGACY_EPISODE_FIRSTAIRED = "epfirstaired"


# =============================================================================
# HELPERS
# =============================================================================


def create_schema(conn: sqlite3.Connection, schema: Schema = SCHEMA) -> None:
    """Create every table of the schema. Tables must not exist yet."""
    for table in schema.tables:
        conn.execute(table.create_sql())


def create_legacy_schema(conn: sqlite3.Connection) -> None:
    """Create the empty version 16 baseline schema."""
    for statement in LEGACY_SCHEMA_V16:
        conn.execute(statement)
