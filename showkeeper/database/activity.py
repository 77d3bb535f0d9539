"""Recently watched episodes.

One entry per episode; watching an episode again replaces its entry.
Entries older than ACTIVITY_RETENTION_MS are pruned.
"""

import logging
from dataclasses import dataclass
from sqlite3 import Connection, Row

from showkeeper.database.schema import Tables

logger = logging.getLogger(__name__)

ACTIVITY_RETENTION_MS = 30 * 24 * 60 * 60 * 1000


@dataclass
class Activity:
    """An episode watched at some point in time."""

    id: int
    episode_tvdb_id: str
    show_tvdb_id: str
    timestamp_ms: int


def _row_to_activity(row: Row | tuple) -> Activity:
    return Activity(
        id=row[0],
        episode_tvdb_id=row[1],
        show_tvdb_id=row[2],
        timestamp_ms=row[3],
    )


def add_activity(
    conn: Connection, episode_tvdb_id: int | str, show_tvdb_id: int | str, timestamp_ms: int
) -> None:
    """Record that an episode was watched."""
    conn.execute(
        f"""
        INSERT INTO {Tables.ACTIVITY} (activity_episode, activity_show, activity_time)
        VALUES (?, ?, ?)
        """,
        (str(episode_tvdb_id), str(show_tvdb_id), timestamp_ms),
    )


def remove_activity(conn: Connection, episode_tvdb_id: int | str) -> bool:
    """Remove an episode's entry. Returns True if it existed."""
    cursor = conn.execute(
        f"DELETE FROM {Tables.ACTIVITY} WHERE activity_episode = ?", (str(episode_tvdb_id),)
    )
    return cursor.rowcount > 0


def get_recent_activity(conn: Connection, limit: int = 50) -> list[Activity]:
    """Get entries, newest first."""
    rows = conn.execute(
        f"""
        SELECT _id, activity_episode, activity_show, activity_time
        FROM {Tables.ACTIVITY}
        ORDER BY activity_time DESC, _id DESC
        LIMIT ?
        """,
        (limit,),
    ).fetchall()
    return [_row_to_activity(row) for row in rows]


def prune_activity(conn: Connection, now_ms: int) -> int:
    """Delete entries older than the retention window.

    Returns:
        Number of entries deleted
    """
    cursor = conn.execute(
        f"DELETE FROM {Tables.ACTIVITY} WHERE activity_time < ?",
        (now_ms - ACTIVITY_RETENTION_MS,),
    )
    if cursor.rowcount:
        logger.info("[ACTIVITY] Pruned %d entries", cursor.rowcount)
    return cursor.rowcount
