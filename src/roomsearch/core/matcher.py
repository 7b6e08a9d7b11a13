"""
Per-term matching: one search term against one room.

Each term type has its own comparison rules and fixed score tiers.
Absent or malformed room fields never raise; they just don't match.
"""

import logging
from typing import Any, Iterable, Mapping, Optional

from roomsearch.core.config import DEFAULT_ABBREVIATIONS, expand_abbreviation
from roomsearch.core.models import NO_MATCH, SearchTerm, TermMatch, TermType, field_text, room_field
from roomsearch.core.tags import staff_name, strip_alpha_affixes

logger = logging.getLogger(__name__)

# Score tiers (before the term's boost is applied).
SCORES = {
    "exact": 10,
    "building_partial": 7,
    "building_reverse": 6,
    "field_partial": 6,
    "staff_partial": 6,
    "room_exact": 15,
    "room_partial": 12,
    "room_reverse": 10,
    "room_affix": 8,
    "general_room_exact": 12,
    "general_room_partial": 8,
    "general_room_reverse": 6,
    "tag_exact": 8,
    "tag_partial": 4,
    "tag_reverse": 3,
    "tag_prefix": 3,
    "short_type": 5,
    "short_type_expanded": 6,
}

MIN_PARTIAL_LEN = 2


def _lower(value: Any) -> str:
    return field_text(value).lower()


def _contains(haystack: str, needle: str) -> bool:
    """Substring test that ignores needles shorter than two characters."""
    return len(needle) >= MIN_PARTIAL_LEN and needle in haystack


# =============================================================================
# Type-specific matchers
# =============================================================================

def _match_floor(value: str, room: Any) -> TermMatch:
    floor = room_field(room, "floor")
    if floor is not None and field_text(floor).lower() == value:
        return TermMatch(True, SCORES["exact"])
    return NO_MATCH


def _match_building(value: str, room: Any) -> TermMatch:
    score = 0
    matched = False
    for attr in ("building", "bld_descrshort"):
        name = _lower(room_field(room, attr))
        if not name:
            continue
        if name == value:
            return TermMatch(True, SCORES["exact"])
        if _contains(name, value):
            score = max(score, SCORES["building_partial"])
            matched = True
        elif _contains(value, name):
            score = max(score, SCORES["building_reverse"])
            matched = True
    return TermMatch(matched, score)


def _match_field(value: str, room: Any, attr: str) -> TermMatch:
    text = _lower(room_field(room, attr))
    if not text:
        return NO_MATCH
    if text == value:
        return TermMatch(True, SCORES["exact"])
    if _contains(text, value):
        return TermMatch(True, SCORES["field_partial"])
    return NO_MATCH


def _match_staff(value: str, staff_tags: Iterable[Any]) -> TermMatch:
    for tag in staff_tags or ():
        name = staff_name(tag)
        if _contains(name, value):
            return TermMatch(True, SCORES["exact"] if name == value else SCORES["staff_partial"])
    return NO_MATCH


def _match_room_number(value: str, room: Any) -> TermMatch:
    number = _lower(room_field(room, "rmnbr"))
    if not number:
        return NO_MATCH
    if number == value:
        return TermMatch(True, SCORES["room_exact"])
    if _contains(number, value):
        return TermMatch(True, SCORES["room_partial"])
    if _contains(value, number):
        return TermMatch(True, SCORES["room_reverse"])

    # F4214T vs 4214: compare with letter prefixes/suffixes removed
    stripped_number = strip_alpha_affixes(number)
    stripped_value = strip_alpha_affixes(value)
    if stripped_number and stripped_number == stripped_value:
        return TermMatch(True, SCORES["room_affix"])
    return NO_MATCH


def _match_general(
    value: str,
    room: Any,
    unified_tags: Iterable[str],
    abbreviations: Mapping[str, str],
) -> TermMatch:
    score = 0
    matched = False

    # (a) room number, capped below the dedicated room_number tiers
    number = _lower(room_field(room, "rmnbr"))
    if number:
        if number == value:
            score, matched = SCORES["general_room_exact"], True
        elif _contains(number, value):
            score, matched = max(score, SCORES["general_room_partial"]), True
        elif _contains(value, number):
            score, matched = max(score, SCORES["general_room_reverse"]), True

    # (b) unified tags
    for tag in unified_tags:
        if tag == value:
            score, matched = max(score, SCORES["tag_exact"]), True
            break
        if _contains(tag, value):
            score, matched = max(score, SCORES["tag_partial"]), True
        elif _contains(value, tag):
            score, matched = max(score, SCORES["tag_reverse"]), True
        elif len(value) >= MIN_PARTIAL_LEN and tag.startswith(value):
            score, matched = max(score, SCORES["tag_prefix"]), True

    # (c) short room-type code and its expansion
    raw_code = room_field(room, "rmtyp_descrshort")
    code = _lower(raw_code)
    if code and not matched:
        if _contains(code, value):
            score, matched = max(score, SCORES["short_type"]), True
        expansion = expand_abbreviation(abbreviations, raw_code)
        if expansion and _contains(expansion.lower(), value):
            score, matched = max(score, SCORES["short_type_expanded"]), True

    return TermMatch(matched, score)


# =============================================================================
# Public entry point
# =============================================================================

def match_term(
    term: SearchTerm,
    room: Any,
    unified_tags: Iterable[str],
    staff_tags: Optional[Iterable[Any]] = None,
    abbreviations: Optional[Mapping[str, str]] = None,
) -> TermMatch:
    """
    Match one parsed term against one room.

    Args:
        term: The search term.
        room: Room, raw dict row, or look-alike object.
        unified_tags: Tags from :func:`~roomsearch.core.tags.synthesize_tags`
            for this room.
        staff_tags: The room's current ``"Staff: <name>"`` strings.
        abbreviations: Short-code expansion table (defaults to the
            built-in table).

    Returns:
        :class:`TermMatch` with ``matched`` and a non-negative ``score``.
    """
    value = _lower(term.value)
    table = DEFAULT_ABBREVIATIONS if abbreviations is None else abbreviations

    if term.type == TermType.FLOOR:
        return _match_floor(value, room)
    if term.type == TermType.BUILDING:
        return _match_building(value, room)
    if term.type == TermType.DEPARTMENT:
        return _match_field(value, room, "dept_descr")
    if term.type == TermType.ROOM_TYPE:
        return _match_field(value, room, "type_full")
    if term.type == TermType.STAFF:
        return _match_staff(value, staff_tags)
    if term.type == TermType.ROOM_NUMBER:
        return _match_room_number(value, room)
    return _match_general(value, room, unified_tags, table)
