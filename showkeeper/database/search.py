"""Episode search queries over the full-text index.

Search terms are turned into prefix matches: "pilot" finds any episode
with a title or overview word starting with "pilot".
"""

import logging
import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass

from showkeeper.config import Config
from showkeeper.database.schema import Tables

logger = logging.getLogger(__name__)


@dataclass
class EpisodeSearchResult:
    """An episode matching a search term."""

    episode_id: int
    title: str
    # Overview excerpt with the matching words highlighted
    snippet: str | None
    number: int
    season: int
    watched: bool
    show_title: str


@dataclass
class SearchSuggestion:
    """Type-ahead suggestion."""

    episode_id: int
    text_1: str  # episode title
    text_2: str  # show title


def build_match_term(search_term: str) -> str:
    """Build a prefix MATCH expression for a raw search term.

    Double quotes would break the MATCH syntax, so they are removed.
    """
    return '"' + search_term.replace('"', "") + '*"'


def _search_sql(selection: str | None) -> str:
    snippet = f"snippet({Tables.EPISODES_SEARCH}, ?, ?, ?)"
    query = f"""
        SELECT _id, episodetitle, episodedescription, episodenumber, season, watched, seriestitle
        FROM (
            (SELECT _id AS sid, seriestitle FROM {Tables.SHOWS})
            JOIN (
                SELECT _id, episodetitle, episodedescription, episodenumber, season, watched,
                    series_id
                FROM (
                    SELECT docid, {snippet} AS episodedescription
                    FROM {Tables.EPISODES_SEARCH}
                    WHERE {Tables.EPISODES_SEARCH} MATCH ?
                )
                JOIN (
                    SELECT _id, episodetitle, episodenumber, season, watched, series_id
                    FROM {Tables.EPISODES}
                )
                ON _id = docid
            )
            ON sid = series_id
        )
    """
    if selection:
        query += f" WHERE ({selection})"
    query += " ORDER BY seriestitle ASC, season ASC, episodenumber ASC"
    return query


SUGGESTIONS_SQL = f"""
    SELECT _id, episodetitle, seriestitle
    FROM (
        (SELECT _id AS sid, seriestitle FROM {Tables.SHOWS})
        JOIN (
            SELECT _id, episodetitle, series_id
            FROM (
                SELECT docid FROM {Tables.EPISODES_SEARCH}
                WHERE {Tables.EPISODES_SEARCH} MATCH ?
            )
            JOIN (SELECT _id, episodetitle, series_id FROM {Tables.EPISODES})
            ON _id = docid
        )
        ON sid = series_id
    )
"""


def search_episodes(
    conn: sqlite3.Connection,
    search_term: str | None,
    selection: str | None = None,
    selection_args: Sequence = (),
) -> list[EpisodeSearchResult] | None:
    """Search episodes by title and overview.

    Args:
        conn: Database connection
        search_term: Raw user input
        selection: Optional extra WHERE clause over the result columns
            (_id, episodetitle, episodenumber, season, watched, seriestitle)
        selection_args: Parameters for selection

    Returns:
        Matching episodes ordered by show title, season, number.
        Empty if nothing matches, None on a database error.
    """
    if not search_term or not search_term.strip():
        return []

    params = [
        Config.SEARCH_SNIPPET_START,
        Config.SEARCH_SNIPPET_END,
        Config.SEARCH_SNIPPET_ELLIPSIS,
        build_match_term(search_term),
        *selection_args,
    ]
    try:
        rows = conn.execute(_search_sql(selection), params).fetchall()
    except sqlite3.DatabaseError as e:
        logger.error("[SEARCH] Search failed, database error: %s", e)
        return None

    return [
        EpisodeSearchResult(
            episode_id=row[0],
            title=row[1],
            snippet=row[2],
            number=row[3],
            season=row[4],
            watched=bool(row[5]),
            show_title=row[6],
        )
        for row in rows
    ]


def get_suggestions(
    conn: sqlite3.Connection, search_term: str | None
) -> list[SearchSuggestion] | None:
    """Get episode title suggestions for incremental search.

    Returns:
        Suggestions (empty if nothing matches), None on a database error.
    """
    if not search_term or not search_term.strip():
        return []

    try:
        rows = conn.execute(SUGGESTIONS_SQL, (build_match_term(search_term),)).fetchall()
    except sqlite3.DatabaseError as e:
        logger.error("[SEARCH] Suggestions failed, database error: %s", e)
        return None

    return [SearchSuggestion(episode_id=row[0], text_1=row[1], text_2=row[2]) for row in rows]
