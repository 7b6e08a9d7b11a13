"""
roomsearch Core — configuration, tag synthesis, query parsing, matching, and ranking.

Re-exports the primary classes for convenience::

    from roomsearch.core import RoomSearchEngine, QueryParser, synthesize_tags
"""

from roomsearch.core.config import RoomSearchConfig
from roomsearch.core.matcher import match_term
from roomsearch.core.models import Room, RichTag, ScoredResult, SearchTerm, TermMatch, TermType
from roomsearch.core.parser import QueryParser, parse_query
from roomsearch.core.search import ResultFormatter, RoomFilters, RoomSearchEngine, is_sufficient
from roomsearch.core.tags import synthesize_tags

__all__ = [
    "RoomSearchConfig",
    "Room",
    "RichTag",
    "SearchTerm",
    "TermMatch",
    "TermType",
    "ScoredResult",
    "QueryParser",
    "parse_query",
    "match_term",
    "synthesize_tags",
    "RoomSearchEngine",
    "RoomFilters",
    "ResultFormatter",
    "is_sufficient",
]
