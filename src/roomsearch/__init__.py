"""
roomsearch — Heuristic multi-field search over an in-memory room catalog.

The ``roomsearch`` package turns a free-text query such as
``"3rd floor conference"`` or ``"F4214"`` into a ranked list of rooms,
matching building, floor, department, room type, room number, and the
custom / staff tags users attach to rooms.  No index, database, or
network access is involved.

Quick start (programmatic API)::

    from roomsearch import RoomFinder

    finder = RoomFinder(rooms=rows)                # list of room dicts
    finder.add_staff_tag(rows[0]["id"], "Jane Doe")
    results = finder.search("staff:jane")

Stateless use::

    from roomsearch import search

    ranked = search("level 2 lab", rooms, custom_tags, staff_tags)

Quick start (CLI)::

    roomsearch search "3rd floor conference" --rooms rooms.json
"""

__version__ = "1.0.0"

# Primary public API: the RoomFinder facade
from roomsearch.client import RoomFinder

# Configuration
from roomsearch.core.config import DEFAULT_ABBREVIATIONS, RoomSearchConfig

# Core data types and engine entry points
from roomsearch.core.matcher import match_term
from roomsearch.core.models import (
    RichTag,
    Room,
    ScoredResult,
    SearchTerm,
    TermMatch,
    TermType,
    create_rich_tag,
    generate_mgis_link,
)
from roomsearch.core.parser import QueryParser, parse_query
from roomsearch.core.search import RoomFilters, RoomSearchEngine, paginate, search
from roomsearch.core.tags import synthesize_tags

# Exception hierarchy
from roomsearch.exceptions import (
    ConfigError,
    RecordError,
    RoomSearchError,
    TagError,
)


def health(config: RoomSearchConfig | None = None) -> dict:
    """
    Return a small status dict for readiness checks (no data needed).

    When *config* is None, uses :meth:`RoomSearchConfig.from_env()`.
    """
    cfg = config or RoomSearchConfig.from_env()
    return {
        "version": __version__,
        "abbreviations": len(cfg.abbreviations),
        "stop_words": len(cfg.stop_words),
    }


__all__ = [
    "__version__",
    # Facade
    "RoomFinder",
    # Config
    "RoomSearchConfig",
    "DEFAULT_ABBREVIATIONS",
    # Engine
    "RoomSearchEngine",
    "QueryParser",
    "RoomFilters",
    "search",
    "parse_query",
    "synthesize_tags",
    "match_term",
    "paginate",
    # Data types
    "Room",
    "RichTag",
    "SearchTerm",
    "TermMatch",
    "TermType",
    "ScoredResult",
    "create_rich_tag",
    "generate_mgis_link",
    # Exceptions
    "RoomSearchError",
    "ConfigError",
    "RecordError",
    "TagError",
    # Status
    "health",
]
