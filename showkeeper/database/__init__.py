"""Database layer."""

from showkeeper.database.activity import (
    Activity,
    add_activity,
    get_recent_activity,
    prune_activity,
    remove_activity,
)
from showkeeper.database.connection import (
    get_connection,
    get_db,
    get_schema_version,
    init_db,
    open_database,
    reset_database,
    set_schema_version,
)
from showkeeper.database.list_items import (
    LIST_ITEMS_WITH_DETAILS,
    EpisodeListItem,
    ListItem,
    SeasonListItem,
    ShowListItem,
    ShowSummary,
    add_list,
    add_list_item,
    get_list_item_rows,
    get_list_items,
    remove_list_item,
)
from showkeeper.database.migrations import create_database_at_version, run_migrations
from showkeeper.database.schema import (
    DATABASE_VERSION,
    FIRST_UPGRADABLE_VERSION,
    SCHEMA,
    ListItemType,
    Tables,
    create_schema,
    generate_list_item_id,
)
from showkeeper.database.search import (
    EpisodeSearchResult,
    SearchSuggestion,
    build_match_term,
    get_suggestions,
    search_episodes,
)
from showkeeper.database.search_index import rebuild_search_index
from showkeeper.database.utils import transaction

__all__ = [
    # Activity
    "Activity",
    "add_activity",
    "get_recent_activity",
    "prune_activity",
    "remove_activity",
    # Connection
    "get_connection",
    "get_db",
    "get_schema_version",
    "init_db",
    "open_database",
    "reset_database",
    "set_schema_version",
    "transaction",
    # Lists
    "LIST_ITEMS_WITH_DETAILS",
    "EpisodeListItem",
    "ListItem",
    "SeasonListItem",
    "ShowListItem",
    "ShowSummary",
    "add_list",
    "add_list_item",
    "get_list_item_rows",
    "get_list_items",
    "remove_list_item",
    # Schema
    "DATABASE_VERSION",
    "FIRST_UPGRADABLE_VERSION",
    "SCHEMA",
    "ListItemType",
    "Tables",
    "create_database_at_version",
    "create_schema",
    "generate_list_item_id",
    "run_migrations",
    # Search
    "EpisodeSearchResult",
    "SearchSuggestion",
    "build_match_term",
    "get_suggestions",
    "rebuild_search_index",
    "search_episodes",
]
