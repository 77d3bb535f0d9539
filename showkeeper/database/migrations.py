"""Migration chain - in place upgrades from any shipped version to the current one.

Every version step is a MigrationStep with three capabilities:

1. is_applied(conn): does the target structure already exist?
2. apply_ddl(conn): create the missing columns/tables
3. apply_data(conn): transform existing rows

Structure changes are skipped when already present (devices upgraded by a
botched release may have some of them), but data transformations always
run. Steps are applied in version order with no early exit: a database at
version 16 runs every step from 17 up to DATABASE_VERSION in one pass.

Usage:
    reached = run_migrations(conn, stored_version)
    if reached != DATABASE_VERSION:
        reset_database(conn)
"""

import logging
import sqlite3
from collections.abc import Iterable

from showkeeper.config import get_device_timezone_str
from showkeeper.database.schema import (
    DATABASE_VERSION,
    FIRST_UPGRADABLE_VERSION,
    LEGACY_EPISODE_FIRSTAIRED,
    SCHEMA,
    Tables,
    create_legacy_schema,
)
from showkeeper.database.utils import (
    get_column_types,
    is_column_missing,
    table_exists,
    transaction,
)
from showkeeper.utilities.titles import trim_leading_article
from showkeeper.utilities.tz import (
    encode_release_time,
    get_show_release_time,
    get_show_timezone,
    parse_episode_release_date,
    parse_release_weekday,
)

logger = logging.getLogger(__name__)


# =============================================================================
# DDL HELPERS
# =============================================================================


def _add_column(conn: sqlite3.Connection, table: str, column: str) -> bool:
    """Add a column with its current definition if missing. Returns True if added."""
    if not is_column_missing(conn, table, column):
        return False
    definition = SCHEMA.table(table).column_definition(column)
    conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")
    logger.debug("[MIGRATE] Added %s.%s", table, column)
    return True


def _create_table(conn: sqlite3.Connection, table: str) -> bool:
    """Create a table with its current definition if missing. Returns True if created."""
    if table_exists(conn, table):
        return False
    conn.execute(SCHEMA.table(table).create_sql())
    logger.debug("[MIGRATE] Created table %s", table)
    return True


def _definition_from_table_info(row: sqlite3.Row | tuple) -> str:
    """Rebuild a column definition from a PRAGMA table_info row."""
    _, _, col_type, notnull, default, pk = tuple(row)
    parts = [col_type or ""]
    if pk:
        parts.append("PRIMARY KEY")
    if notnull:
        parts.append("NOT NULL")
    if default is not None:
        parts.append(f"DEFAULT {default}")
    return " ".join(part for part in parts if part)


def _rebuild_table(conn: sqlite3.Connection, table: str, drop: Iterable[str] = ()) -> None:
    """Recreate a table to change declared column types or drop columns.

    Columns known to the registry get their current definition; any other
    column keeps what it had. Rows are copied over unchanged.
    Foreign key enforcement must be off.
    """
    registry = SCHEMA.table(table)
    dropped = set(drop)
    kept = [
        row
        for row in conn.execute(f"PRAGMA table_info({table})").fetchall()
        if row[1] not in dropped
    ]
    definitions = [
        f"{row[1]} {registry.columns.get(row[1]) or _definition_from_table_info(row)}"
        for row in kept
    ]
    definitions.extend(registry.constraints)
    column_list = ", ".join(row[1] for row in kept)
    temp = f"{table}_rebuild"

    conn.execute(f"DROP TABLE IF EXISTS {temp}")
    conn.execute(f"CREATE TABLE {temp} ({', '.join(definitions)})")
    conn.execute(f"INSERT INTO {temp} ({column_list}) SELECT {column_list} FROM {table}")
    conn.execute(f"DROP TABLE {table}")
    conn.execute(f"ALTER TABLE {temp} RENAME TO {table}")
    logger.debug("[MIGRATE] Rebuilt table %s (dropped: %s)", table, sorted(dropped) or "none")


# =============================================================================
# STEP TYPES
# =============================================================================


class MigrationStep:
    """One version-to-version upgrade."""

    def __init__(self, version: int, description: str) -> None:
        self.version = version
        self.description = description

    def __repr__(self) -> str:
        return f"{type(self).__name__}(version={self.version}, {self.description!r})"

    def is_applied(self, conn: sqlite3.Connection) -> bool:
        """Whether the structure this step adds is already present."""
        return False

    def apply_ddl(self, conn: sqlite3.Connection) -> None:
        """Create missing structure."""

    def apply_data(self, conn: sqlite3.Connection) -> None:
        """Transform existing rows. Runs even if the structure was present."""

    def apply(self, conn: sqlite3.Connection) -> None:
        """Run the step atomically."""
        with transaction(conn):
            if self.is_applied(conn):
                logger.debug("[MIGRATE] v%d structure already present", self.version)
            else:
                self.apply_ddl(conn)
            self.apply_data(conn)


class NoOpStep(MigrationStep):
    """Version bump without structural change."""

    def is_applied(self, conn: sqlite3.Connection) -> bool:
        return True


class AddColumnsStep(MigrationStep):
    """Adds columns, each guarded by an existence check."""

    def __init__(
        self, version: int, description: str, columns: Iterable[tuple[str, str]]
    ) -> None:
        super().__init__(version, description)
        self.columns = tuple(columns)

    def is_applied(self, conn: sqlite3.Connection) -> bool:
        return all(
            not is_column_missing(conn, table, column) for table, column in self.columns
        )

    def apply_ddl(self, conn: sqlite3.Connection) -> None:
        for table, column in self.columns:
            _add_column(conn, table, column)


class CreateTablesStep(MigrationStep):
    """Creates tables that do not exist yet."""

    def __init__(self, version: int, description: str, tables: Iterable[str]) -> None:
        super().__init__(version, description)
        self.tables = tuple(tables)

    def is_applied(self, conn: sqlite3.Connection) -> bool:
        return all(table_exists(conn, table) for table in self.tables)

    def apply_ddl(self, conn: sqlite3.Connection) -> None:
        for table in self.tables:
            _create_table(conn, table)


# =============================================================================
# DATA MIGRATIONS
# =============================================================================


def _encode_show_status(status: str | None) -> str:
    """Show status text -> "1" (continuing), "0" (ended) or "" (unknown)."""
    if status in ("0", "1"):
        return status
    normalized = (status or "").strip().lower()
    return {"continuing": "1", "ended": "0"}.get(normalized, "")


class ShowStatusStep(AddColumnsStep):
    """Version 18: next air date text column, status text re-encoded."""

    def apply_data(self, conn: sqlite3.Connection) -> None:
        shows = conn.execute(f"SELECT _id, status FROM {Tables.SHOWS}").fetchall()
        conn.executemany(
            f"UPDATE {Tables.SHOWS} SET status = ? WHERE _id = ?",
            [(_encode_show_status(row[1]), row[0]) for row in shows],
        )


class EpisodeAirDateStep(AddColumnsStep):
    """Version 24: air date in ms, parsed from the legacy free text date."""

    def apply_data(self, conn: sqlite3.Connection) -> None:
        if is_column_missing(conn, Tables.EPISODES, LEGACY_EPISODE_FIRSTAIRED):
            return

        show_timezone = get_show_timezone(None)
        release_time = get_show_release_time(-1)
        device_timezone = get_device_timezone_str()

        shows = conn.execute(f"SELECT _id FROM {Tables.SHOWS}").fetchall()
        for show in shows:
            episodes = conn.execute(
                f"SELECT _id, {LEGACY_EPISODE_FIRSTAIRED} FROM {Tables.EPISODES}"
                " WHERE series_id = ?",
                (show[0],),
            ).fetchall()
            conn.executemany(
                f"UPDATE {Tables.EPISODES} SET episode_firstairedms = ? WHERE _id = ?",
                [
                    (
                        parse_episode_release_date(
                            show_timezone, row[1], release_time, None, device_timezone
                        ),
                        row[0],
                    )
                    for row in episodes
                ],
            )

        _rebuild_table(conn, Tables.EPISODES, drop=(LEGACY_EPISODE_FIRSTAIRED,))


# Must be watched and have an air date; latest aired first (so specials
# count), then highest season, then highest number
LATEST_WATCHED_EPISODE_SQL = f"""
    SELECT _id FROM {Tables.EPISODES}
    WHERE watched = 1 AND episode_firstairedms != -1 AND series_id = ?
    ORDER BY episode_firstairedms DESC, season DESC, episodenumber DESC
    LIMIT 1
"""


class LastWatchedEpisodeStep(AddColumnsStep):
    """Version 31: pre-populate each show's last watched episode."""

    def apply_data(self, conn: sqlite3.Connection) -> None:
        shows = conn.execute(f"SELECT _id FROM {Tables.SHOWS}").fetchall()
        for show in shows:
            latest = conn.execute(LATEST_WATCHED_EPISODE_SQL, (show[0],)).fetchone()
            if latest is None:
                continue
            conn.execute(
                f"UPDATE {Tables.SHOWS} SET series_lastwatchedid = ? WHERE _id = ?",
                (latest[0], show[0]),
            )


class SortTitleStep(AddColumnsStep):
    """Version 33: titles without leading article for sorting shows and movies."""

    def apply_data(self, conn: sqlite3.Connection) -> None:
        for table, id_column, title_column, target in (
            (Tables.SHOWS, "_id", "seriestitle", "series_title_noarticle"),
            (Tables.MOVIES, "_id", "movies_title", "movies_title_noarticle"),
        ):
            rows = conn.execute(f"SELECT {id_column}, {title_column} FROM {table}").fetchall()
            conn.executemany(
                f"UPDATE {table} SET {target} = ? WHERE {id_column} = ?",
                [(trim_leading_article(row[1]), row[0]) for row in rows],
            )


class ReleaseEncodingStep(AddColumnsStep):
    """Version 34: rating columns, time zone, release time and weekday as integers."""

    RETYPED_COLUMNS = ("airstime", "airsdayofweek")

    def _has_integer_release_columns(self, conn: sqlite3.Connection) -> bool:
        types = get_column_types(conn, Tables.SHOWS)
        return all(types.get(column) == "INTEGER" for column in self.RETYPED_COLUMNS)

    def is_applied(self, conn: sqlite3.Connection) -> bool:
        return super().is_applied(conn) and self._has_integer_release_columns(conn)

    def apply_ddl(self, conn: sqlite3.Connection) -> None:
        super().apply_ddl(conn)
        if not self._has_integer_release_columns(conn):
            _rebuild_table(conn, Tables.SHOWS)

    def apply_data(self, conn: sqlite3.Connection) -> None:
        shows = conn.execute(
            f"SELECT _id, airstime, airsdayofweek FROM {Tables.SHOWS}"
        ).fetchall()
        conn.executemany(
            f"UPDATE {Tables.SHOWS} SET airstime = ?, airsdayofweek = ? WHERE _id = ?",
            [
                (encode_release_time(row[1]), parse_release_weekday(row[2]), row[0])
                for row in shows
            ],
        )


# =============================================================================
# CHAIN
# =============================================================================

MIGRATIONS: tuple[MigrationStep, ...] = (
    AddColumnsStep(17, "favorite shows", [(Tables.SHOWS, "favorite")]),
    ShowStatusStep(18, "next air date text, status as 0/1", [(Tables.SHOWS, "nextairdatetext")]),
    AddColumnsStep(19, "season total count", [(Tables.SEASONS, "totalcount")]),
    AddColumnsStep(20, "sync merge flag", [(Tables.SHOWS, "series_hexagon_merge_complete")]),
    AddColumnsStep(21, "release country", [(Tables.SHOWS, "series_country")]),
    AddColumnsStep(22, "per show update date", [(Tables.SHOWS, "series_lastupdate")]),
    AddColumnsStep(23, "hidden shows", [(Tables.SHOWS, "hidden")]),
    EpisodeAirDateStep(24, "episode air date in ms", [(Tables.EPISODES, "episode_firstairedms")]),
    AddColumnsStep(25, "next air date in ms", [(Tables.SHOWS, "series_nextairdate")]),
    AddColumnsStep(26, "collected episodes", [(Tables.EPISODES, "episode_collected")]),
    AddColumnsStep(
        27,
        "IMDb ids and last edit",
        [
            (Tables.SHOWS, "series_lastedit"),
            (Tables.EPISODES, "episode_imdbid"),
            (Tables.EPISODES, "episode_lastedit"),
        ],
    ),
    CreateTablesStep(28, "lists", [Tables.LISTS, Tables.LIST_ITEMS]),
    NoOpStep(29, "check-in column no longer required"),
    AddColumnsStep(30, "absolute episode numbers", [(Tables.EPISODES, "absolute_number")]),
    LastWatchedEpisodeStep(31, "last watched episode", [(Tables.SHOWS, "series_lastwatchedid")]),
    CreateTablesStep(32, "movies", [Tables.MOVIES]),
    SortTitleStep(
        33,
        "sort titles without article",
        [(Tables.SHOWS, "series_title_noarticle"), (Tables.MOVIES, "movies_title_noarticle")],
    ),
    ReleaseEncodingStep(
        34,
        "release encoding and offline ratings",
        [
            (Tables.SHOWS, "series_timezone"),
            (Tables.SHOWS, "series_rating_votes"),
            (Tables.SHOWS, "series_rating_user"),
            (Tables.EPISODES, "episode_rating_votes"),
            (Tables.EPISODES, "episode_rating_user"),
            (Tables.MOVIES, "movies_rating_user"),
        ],
    ),
    CreateTablesStep(35, "activity", [Tables.ACTIVITY]),
    AddColumnsStep(36, "orderable lists", [(Tables.LISTS, "list_order")]),
    AddColumnsStep(37, "language per show", [(Tables.SHOWS, "series_language")]),
    AddColumnsStep(38, "show trakt id", [(Tables.SHOWS, "series_trakt_id")]),
)


def run_migrations(
    conn: sqlite3.Connection,
    from_version: int,
    to_version: int = DATABASE_VERSION,
) -> int:
    """Upgrade the schema from from_version to to_version.

    All steps run in one transaction; a failing step aborts the whole
    upgrade and re-raises. The version reached is stored in the database
    header. Foreign key enforcement is switched off while steps run.

    Args:
        conn: Database connection
        from_version: Version the database is at
        to_version: Version to stop at

    Returns:
        Version reached. Equals from_version if it is older than
        FIRST_UPGRADABLE_VERSION (nothing can be applied).
    """
    if from_version < FIRST_UPGRADABLE_VERSION:
        logger.warning(
            "[MIGRATE] Version %d is older than %d, can not upgrade",
            from_version,
            FIRST_UPGRADABLE_VERSION,
        )
        return from_version

    pending = [step for step in MIGRATIONS if from_version < step.version <= to_version]
    if not pending:
        return from_version

    restore_foreign_keys = False
    if not conn.in_transaction and conn.execute("PRAGMA foreign_keys").fetchone()[0]:
        conn.execute("PRAGMA foreign_keys = OFF")
        restore_foreign_keys = True

    logger.info("[MIGRATE] Upgrading from version %d to %d", from_version, to_version)
    version = from_version
    try:
        with transaction(conn):
            for step in pending:
                step.apply(conn)
                version = step.version
                logger.info(
                    "[MIGRATE] Schema upgraded to version %d (%s)", version, step.description
                )
            conn.execute(f"PRAGMA user_version = {int(version)}")
    except sqlite3.DatabaseError as e:
        logger.error("[MIGRATE] Upgrade failed at version %d: %s", version + 1, e)
        raise
    finally:
        if restore_foreign_keys:
            conn.execute("PRAGMA foreign_keys = ON")

    return version


def create_database_at_version(conn: sqlite3.Connection, version: int) -> None:
    """Create an empty database as it looked at a historical version.

    Builds the version 16 baseline and replays the chain up to version.
    """
    if not FIRST_UPGRADABLE_VERSION <= version <= DATABASE_VERSION:
        raise ValueError(f"No historical schema for version {version}")
    create_legacy_schema(conn)
    conn.execute(f"PRAGMA user_version = {FIRST_UPGRADABLE_VERSION}")
    conn.commit()
    run_migrations(conn, FIRST_UPGRADABLE_VERSION, version)


def get_table_layout(
    conn: sqlite3.Connection, table: str
) -> dict[str, tuple[str, int, str | None, int]]:
    """Column -> (declared type, not null, default, primary key) for comparing schemas."""
    return {
        row[1]: ((row[2] or "").upper(), row[3], row[4], row[5])
        for row in conn.execute(f"PRAGMA table_info({table})").fetchall()
    }


__all__ = [
    "MIGRATIONS",
    "MigrationStep",
    "create_database_at_version",
    "get_table_layout",
    "run_migrations",
]
