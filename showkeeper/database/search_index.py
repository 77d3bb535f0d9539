"""Episode full-text search index.

The index is derived state: it is dropped and rebuilt from the episodes
table as a whole, never patched row by row. The document id of every
indexed row is the episode _id.
"""

import logging
import sqlite3

from showkeeper.database.schema import EPISODES_SEARCH_TABLE, Tables
from showkeeper.database.utils import transaction

logger = logging.getLogger(__name__)

DROP_SEARCH_TABLE_SQL = f"DROP TABLE IF EXISTS {Tables.EPISODES_SEARCH}"

CREATE_SEARCH_TABLE_SQL = EPISODES_SEARCH_TABLE.create_sql()

POPULATE_FULL_SQL = f"""
    INSERT INTO {Tables.EPISODES_SEARCH} (docid, episodetitle, episodedescription)
    SELECT _id, episodetitle, episodedescription FROM {Tables.EPISODES}
"""

# Titles only, to conserve space if the full index can not be written
POPULATE_TITLES_SQL = f"""
    INSERT INTO {Tables.EPISODES_SEARCH} (docid, episodetitle)
    SELECT _id, episodetitle FROM {Tables.EPISODES}
"""


def _recreate_search_table(conn: sqlite3.Connection) -> bool:
    """Drop and create an empty index. On failure the old index is kept."""
    try:
        with transaction(conn):
            conn.execute(DROP_SEARCH_TABLE_SQL)
            conn.execute(CREATE_SEARCH_TABLE_SQL)
        return True
    except sqlite3.DatabaseError as e:
        logger.error("[FTS] Failed to recreate search table: %s", e)
        return False


def _populate(conn: sqlite3.Connection, statement: str) -> None:
    with transaction(conn):
        conn.execute(statement)


def _rebuild_titles_only(conn: sqlite3.Connection) -> bool:
    if not _recreate_search_table(conn):
        return False
    try:
        _populate(conn, POPULATE_TITLES_SQL)
    except sqlite3.DatabaseError as e:
        logger.error("[FTS] Failed to populate title-only search table: %s", e)
        return False
    logger.warning("[FTS] Built title-only search index")
    return True


def rebuild_search_index(conn: sqlite3.Connection) -> bool:
    """Drop the search index and rebuild it from the episodes table.

    Indexes titles and overviews. If that fails, falls back to indexing
    titles only so title search keeps working.

    Args:
        conn: Database connection

    Returns:
        True if an index (full or titles only) was built, False if the
        index table could not be recreated (previous index left intact)
        or could not be populated at all.
    """
    if not _recreate_search_table(conn):
        return False

    try:
        _populate(conn, POPULATE_FULL_SQL)
    except sqlite3.DatabaseError as e:
        logger.error("[FTS] Failed to populate search table, falling back to titles: %s", e)
        return _rebuild_titles_only(conn)

    count = conn.execute(f"SELECT COUNT(*) FROM {Tables.EPISODES_SEARCH}").fetchone()[0]
    logger.info("[FTS] Rebuilt search index with %d episodes", count)
    return True
