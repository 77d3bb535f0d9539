"""List items - user lists referencing shows, seasons and episodes.

A list item is a tagged reference: item_type says whether item_ref_id is a
show, season or episode id. Two read paths are offered:

- get_list_items(): each kind is queried separately into its own record
  type and the results are merged into one sequence. Callers dispatch on
  the record type.
- get_list_item_rows(): the flat LIST_ITEMS_WITH_DETAILS relation where all
  kinds share one row shape through column aliasing (an episode's title
  sits in the overview column, its season and number in the next episode
  text columns). Use item_type before reading those columns.

References are weak: an item whose entity was deleted is still returned,
with its entity fields set to None.
"""

import logging
import sqlite3
from dataclasses import dataclass
from typing import ClassVar

from showkeeper.database.schema import (
    EPISODES_JOIN_SHOWS,
    SEASONS_JOIN_SHOWS,
    ListItemType,
    Qualified,
    Tables,
    generate_list_item_id,
)

logger = logging.getLogger(__name__)


# =============================================================================
# FLAT RELATION
# =============================================================================

# Show columns every row carries, whatever the item type
_SHOW_DISPLAY_COLUMNS = (
    "seriestitle, series_title_noarticle, poster, network, status, favorite,"
    " airsdayofweek, series_timezone, series_country"
)
_SHOW_NEXT_COLUMNS = "airstime, nexttext, nextairdatetext, series_nextairdate"

_LIST_ITEMS_INTERNAL_COLUMNS = "_id AS listitem_id, list_item_id, list_id, item_type, item_ref_id"

_COMMON_COLUMNS = (
    "listitem_id AS _id, list_item_id, list_id, item_type, item_ref_id, "
    + _SHOW_DISPLAY_COLUMNS
)


def _list_items_of_type(item_type: ListItemType) -> str:
    return (
        f"(SELECT {_LIST_ITEMS_INTERNAL_COLUMNS} FROM {Tables.LIST_ITEMS}"
        f" WHERE item_type = {int(item_type)}) AS {Tables.LIST_ITEMS}"
    )


_SHOW_ROWS = (
    f"SELECT {_COMMON_COLUMNS}, {Tables.SHOWS}._id AS series_id, overview, {_SHOW_NEXT_COLUMNS}"
    f" FROM ({_list_items_of_type(ListItemType.SHOW)}"
    f" LEFT OUTER JOIN {Tables.SHOWS}"
    f" ON {Qualified.LIST_ITEMS_REF_ID} = {Qualified.SHOWS_ID})"
)

_SEASON_ROWS = (
    f"SELECT {_COMMON_COLUMNS}, series_id, combinednr AS overview, {_SHOW_NEXT_COLUMNS}"
    f" FROM ({_list_items_of_type(ListItemType.SEASON)}"
    f" LEFT OUTER JOIN (SELECT {Tables.SEASONS}._id AS item_id, {Tables.SEASONS}.series_id,"
    f" combinednr, {_SHOW_DISPLAY_COLUMNS}, {_SHOW_NEXT_COLUMNS}"
    f" FROM {SEASONS_JOIN_SHOWS}) AS {Tables.SEASONS}"
    f" ON {Qualified.LIST_ITEMS_REF_ID} = {Tables.SEASONS}.item_id)"
)

_EPISODE_ROWS = (
    f"SELECT {_COMMON_COLUMNS}, series_id, episodetitle AS overview,"
    " episode_firstairedms AS airstime, season AS nexttext,"
    " episodenumber AS nextairdatetext, episode_firstairedms AS series_nextairdate"
    f" FROM ({_list_items_of_type(ListItemType.EPISODE)}"
    f" LEFT OUTER JOIN (SELECT {Tables.EPISODES}._id AS item_id, {Tables.EPISODES}.series_id,"
    f" episodetitle, episode_firstairedms, season, episodenumber, {_SHOW_DISPLAY_COLUMNS}"
    f" FROM {EPISODES_JOIN_SHOWS}) AS {Tables.EPISODES}"
    f" ON {Qualified.LIST_ITEMS_REF_ID} = {Tables.EPISODES}.item_id)"
)

LIST_ITEMS_WITH_DETAILS = f"({_SHOW_ROWS} UNION {_SEASON_ROWS} UNION {_EPISODE_ROWS})"


def get_list_item_rows(conn: sqlite3.Connection, list_id: str | None = None) -> list[dict]:
    """Read list items in the flat, column-aliased shape."""
    query = f"SELECT * FROM {LIST_ITEMS_WITH_DETAILS}"
    params: list = []
    if list_id is not None:
        query += " WHERE list_id = ?"
        params.append(list_id)
    query += " ORDER BY list_id, item_type, _id"

    cursor = conn.cursor()
    cursor.row_factory = sqlite3.Row
    return [dict(row) for row in cursor.execute(query, params).fetchall()]


# =============================================================================
# TYPED RECORDS
# =============================================================================


@dataclass
class ShowSummary:
    """The show a list item belongs to."""

    show_id: int
    title: str
    sort_title: str | None
    poster: str | None
    network: str | None
    status: str | None
    favorite: bool
    release_weekday: int | None
    release_timezone: str | None
    release_country: str | None


@dataclass
class ShowListItem:
    """List item referencing a show."""

    item_type: ClassVar[ListItemType] = ListItemType.SHOW

    row_id: int
    list_item_id: str
    list_id: str
    item_ref_id: str
    show: ShowSummary | None
    overview: str | None = None
    release_time: int | None = None
    next_text: str | None = None
    next_air_date_text: str | None = None
    next_air_date_ms: int | None = None


@dataclass
class SeasonListItem:
    """List item referencing a season."""

    item_type: ClassVar[ListItemType] = ListItemType.SEASON

    row_id: int
    list_item_id: str
    list_id: str
    item_ref_id: str
    show: ShowSummary | None
    season_id: int | None = None
    season_number: int | None = None


@dataclass
class EpisodeListItem:
    """List item referencing an episode."""

    item_type: ClassVar[ListItemType] = ListItemType.EPISODE

    row_id: int
    list_item_id: str
    list_id: str
    item_ref_id: str
    show: ShowSummary | None
    episode_id: int | None = None
    title: str | None = None
    season: int | None = None
    number: int | None = None
    first_aired_ms: int | None = None


ListItem = ShowListItem | SeasonListItem | EpisodeListItem

_SHOW_SUMMARY_COLUMNS = """
    s._id AS show_id, s.seriestitle, s.series_title_noarticle, s.poster, s.network,
    s.status, s.favorite, s.airsdayofweek, s.series_timezone, s.series_country
"""

_ITEM_COLUMNS = "li._id AS row_id, li.list_item_id, li.list_id, li.item_ref_id"

SHOW_ITEMS_SQL = f"""
    SELECT {_ITEM_COLUMNS}, {_SHOW_SUMMARY_COLUMNS},
        s.overview, s.airstime, s.nexttext, s.nextairdatetext, s.series_nextairdate
    FROM {Tables.LIST_ITEMS} li
    LEFT OUTER JOIN {Tables.SHOWS} s ON li.item_ref_id = s._id
    WHERE li.item_type = {int(ListItemType.SHOW)}
"""

SEASON_ITEMS_SQL = f"""
    SELECT {_ITEM_COLUMNS}, {_SHOW_SUMMARY_COLUMNS},
        se._id AS season_id, se.combinednr
    FROM {Tables.LIST_ITEMS} li
    LEFT OUTER JOIN {Tables.SEASONS} se ON li.item_ref_id = se._id
    LEFT OUTER JOIN {Tables.SHOWS} s ON se.series_id = s._id
    WHERE li.item_type = {int(ListItemType.SEASON)}
"""

EPISODE_ITEMS_SQL = f"""
    SELECT {_ITEM_COLUMNS}, {_SHOW_SUMMARY_COLUMNS},
        e._id AS episode_id, e.episodetitle, e.season, e.episodenumber, e.episode_firstairedms
    FROM {Tables.LIST_ITEMS} li
    LEFT OUTER JOIN {Tables.EPISODES} e ON li.item_ref_id = e._id
    LEFT OUTER JOIN {Tables.SHOWS} s ON e.series_id = s._id
    WHERE li.item_type = {int(ListItemType.EPISODE)}
"""


def _row_to_show_summary(row: sqlite3.Row) -> ShowSummary | None:
    if row["show_id"] is None:
        return None
    return ShowSummary(
        show_id=row["show_id"],
        title=row["seriestitle"],
        sort_title=row["series_title_noarticle"],
        poster=row["poster"],
        network=row["network"],
        status=row["status"],
        favorite=bool(row["favorite"]),
        release_weekday=row["airsdayofweek"],
        release_timezone=row["series_timezone"],
        release_country=row["series_country"],
    )


def _item_fields(row: sqlite3.Row) -> dict:
    return {
        "row_id": row["row_id"],
        "list_item_id": row["list_item_id"],
        "list_id": row["list_id"],
        "item_ref_id": row["item_ref_id"],
        "show": _row_to_show_summary(row),
    }


def _row_to_show_item(row: sqlite3.Row) -> ShowListItem:
    return ShowListItem(
        **_item_fields(row),
        overview=row["overview"],
        release_time=row["airstime"],
        next_text=row["nexttext"],
        next_air_date_text=row["nextairdatetext"],
        next_air_date_ms=row["series_nextairdate"],
    )


def _row_to_season_item(row: sqlite3.Row) -> SeasonListItem:
    return SeasonListItem(
        **_item_fields(row),
        season_id=row["season_id"],
        season_number=row["combinednr"],
    )


def _row_to_episode_item(row: sqlite3.Row) -> EpisodeListItem:
    return EpisodeListItem(
        **_item_fields(row),
        episode_id=row["episode_id"],
        title=row["episodetitle"],
        season=row["season"],
        number=row["episodenumber"],
        first_aired_ms=row["episode_firstairedms"],
    )


def _sort_key(item: ListItem) -> tuple:
    show_title = ""
    if item.show is not None:
        show_title = (item.show.sort_title or item.show.title or "").lower()
    return (item.list_id or "", show_title, int(item.item_type), item.row_id)


def get_list_items(conn: sqlite3.Connection, list_id: str | None = None) -> list[ListItem]:
    """Get list items as typed records.

    Args:
        conn: Database connection
        list_id: Only items of this list (all lists if None)

    Returns:
        Items ordered by list, show sort title, then shows before seasons
        before episodes
    """
    cursor = conn.cursor()
    cursor.row_factory = sqlite3.Row

    items: list[ListItem] = []
    for query, convert in (
        (SHOW_ITEMS_SQL, _row_to_show_item),
        (SEASON_ITEMS_SQL, _row_to_season_item),
        (EPISODE_ITEMS_SQL, _row_to_episode_item),
    ):
        params: tuple = ()
        if list_id is not None:
            query += " AND li.list_id = ?"
            params = (list_id,)
        items.extend(convert(row) for row in cursor.execute(query, params).fetchall())

    return sorted(items, key=_sort_key)


# =============================================================================
# WRITES
# =============================================================================


def add_list(conn: sqlite3.Connection, list_id: str, name: str, order: int = 0) -> None:
    """Create a list, replacing any list with the same list_id."""
    conn.execute(
        f"INSERT INTO {Tables.LISTS} (list_id, list_name, list_order) VALUES (?, ?, ?)",
        (list_id, name, order),
    )


def add_list_item(
    conn: sqlite3.Connection,
    list_id: str,
    item_ref_id: int | str,
    item_type: ListItemType,
) -> str:
    """Add an entity to a list. Adding the same entity twice keeps one item.

    Returns:
        The list item id
    """
    list_item_id = generate_list_item_id(item_ref_id, item_type, list_id)
    conn.execute(
        f"""
        INSERT INTO {Tables.LIST_ITEMS} (list_item_id, item_ref_id, item_type, list_id)
        VALUES (?, ?, ?, ?)
        """,
        (list_item_id, str(item_ref_id), int(item_type), list_id),
    )
    logger.debug("[LISTS] Added %s to list %s", list_item_id, list_id)
    return list_item_id


def remove_list_item(conn: sqlite3.Connection, list_item_id: str) -> bool:
    """Remove a list item. Returns True if it existed."""
    cursor = conn.execute(
        f"DELETE FROM {Tables.LIST_ITEMS} WHERE list_item_id = ?", (list_item_id,)
    )
    return cursor.rowcount > 0
