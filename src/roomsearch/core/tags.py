"""
Unified tag synthesis.

Flattens a room's structured fields, the abbreviation table, and the
room's current custom/staff annotations into one set of lowercase
search tokens.  Tags are rebuilt on every search because annotations
can change between calls; nothing here is cached.
"""

import logging
import re
from typing import Any, Iterable, List, Mapping, Optional, Set

from roomsearch.core.config import DEFAULT_ABBREVIATIONS, expand_abbreviation
from roomsearch.core.models import field_text, get_field, room_field

logger = logging.getLogger(__name__)

ORDINAL_WORDS = (
    "first", "second", "third", "fourth", "fifth",
    "sixth", "seventh", "eighth", "ninth", "tenth",
)
NUMBER_WORDS = (
    "one", "two", "three", "four", "five",
    "six", "seven", "eight", "nine", "ten",
)

STAFF_PREFIX = "Staff: "

_SPLIT_SPACE = re.compile(r"\s+")
_SPLIT_SPACE_HYPHEN = re.compile(r"[\s\-]+")
_SPLIT_SPACE_HYPHEN_SLASH = re.compile(r"[\s\-/]+")
_ALPHA_AFFIXES = re.compile(r"^[a-z]+|[a-z]+$")
_LEADING_INT = re.compile(r"^\s*(-?\d+)")


# =============================================================================
# Number helpers
# =============================================================================

def ordinal_suffix(n: int) -> str:
    """Return ``st``/``nd``/``rd``/``th`` for *n* (11–13 always ``th``)."""
    if n < 0:
        return "th"
    j, k = n % 10, n % 100
    if j == 1 and k != 11:
        return "st"
    if j == 2 and k != 12:
        return "nd"
    if j == 3 and k != 13:
        return "rd"
    return "th"


def number_to_word(n: int) -> Optional[str]:
    """``3 -> 'three'`` for 1–10, else ``None``."""
    if 1 <= n <= 10:
        return NUMBER_WORDS[n - 1]
    return None


def word_to_number(word: str) -> Optional[int]:
    """``'third' -> 3`` for first–tenth, else ``None``."""
    try:
        return ORDINAL_WORDS.index(word.lower()) + 1
    except ValueError:
        return None


def parse_leading_int(value: str) -> Optional[int]:
    """Integer prefix of *value* (``"3"`` -> 3, ``"3A"`` -> 3, ``"B1"`` -> None)."""
    m = _LEADING_INT.match(value)
    return int(m.group(1)) if m else None


def strip_alpha_affixes(value: str) -> str:
    """Drop leading and trailing letter runs: ``'f4214t' -> '4214'``.

    Expects lowercase input.
    """
    return _ALPHA_AFFIXES.sub("", value)


# =============================================================================
# Synthesis
# =============================================================================

def _text(value: Any) -> str:
    """Lowercase string form of a field, ``""`` when absent."""
    return field_text(value).strip().lower()


def _words(text: str, splitter: re.Pattern, min_len: int) -> List[str]:
    return [w for w in splitter.split(text) if len(w) > min_len]


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        return [value]
    return list(value)


def _building_tags(room: Any) -> List[str]:
    tags: List[str] = []
    building = _text(room_field(room, "building"))
    short = _text(room_field(room, "bld_descrshort"))
    names = [building] if building else []
    if short and short != building:
        names.append(short)
    for name in names:
        tags += [name, f"building:{name}", f"bldg:{name}"]
        tags += _words(name, _SPLIT_SPACE_HYPHEN, 1)
    return tags


def _floor_tags(room: Any) -> List[str]:
    floor = _text(room_field(room, "floor"))
    if not floor:
        return []
    tags = [
        floor,
        f"floor:{floor}",
        f"f{floor}",
        f"level:{floor}",
        f"floor {floor}",
        f"level {floor}",
    ]
    n = parse_leading_int(floor)
    if n is not None:
        tags.append(f"{floor}{ordinal_suffix(n)} floor")
        word = number_to_word(n)
        if word:
            tags += [f"{word} floor", f"{word} level"]
    return tags


def _department_tags(room: Any) -> List[str]:
    dept = _text(room_field(room, "dept_descr"))
    if not dept:
        return []
    return [dept, f"department:{dept}", f"dept:{dept}"] + _words(dept, _SPLIT_SPACE_HYPHEN_SLASH, 2)


def _type_tags(room: Any, abbreviations: Mapping[str, str]) -> List[str]:
    tags: List[str] = []
    full = _text(room_field(room, "type_full"))
    if full:
        tags += [full, f"type:{full}", f"room:{full}"]
        tags += _words(full, _SPLIT_SPACE_HYPHEN_SLASH, 2)

    for attr, prefix in (("rmtyp_descrshort", "type"), ("rmsubtyp_descrshort", "subtype")):
        raw = room_field(room, attr)
        code = _text(raw)
        if not code:
            continue
        tags.append(code)
        expansion = expand_abbreviation(abbreviations, raw)
        if expansion:
            expanded = expansion.lower()
            tags += [expanded, f"{prefix}:{expanded}"]
            tags += _words(expanded, _SPLIT_SPACE_HYPHEN_SLASH, 2)
    return tags


def _category_tags(room: Any) -> List[str]:
    tags: List[str] = []
    for category in _as_list(room_field(room, "tags")):
        text = _text(category)
        if not text:
            continue
        tags += [text, f"category:{text}"] + _words(text, _SPLIT_SPACE_HYPHEN, 2)
    return tags


def _custom_tags(custom_tags: Iterable[Any]) -> List[str]:
    tags: List[str] = []
    for tag in custom_tags or ():
        name = _text(get_field(tag, "name"))
        if name:
            tags += [name, f"custom:{name}"] + _words(name, _SPLIT_SPACE, 1)
        tag_type = _text(get_field(tag, "type"))
        if tag_type:
            tags.append(f"tagtype:{tag_type}")
        color = _text(get_field(tag, "color"))
        if color:
            tags.append(f"color:{color}")
    return tags


def staff_name(staff_tag: Any) -> str:
    """``"Staff: Jane Doe" -> "jane doe"``; non-strings give ``""``."""
    if not isinstance(staff_tag, str):
        return ""
    return staff_tag.replace(STAFF_PREFIX, "", 1).strip().lower()


def _staff_tags(staff_tags: Iterable[Any]) -> List[str]:
    tags: List[str] = []
    for staff_tag in staff_tags or ():
        name = staff_name(staff_tag)
        if not name:
            continue
        tags += [name, f"staff:{name}", f"person:{name}", f"occupant:{name}"]
        tags += _words(name, _SPLIT_SPACE, 1)
    return tags


def _room_number_tags(room: Any) -> List[str]:
    number = _text(room_field(room, "rmnbr"))
    if not number:
        return []
    tags = [number, f"room:{number}", f"number:{number}"]
    # Every prefix of length >= 2 so partially typed numbers still hit.
    if len(number) > 2:
        tags += [number[:i] for i in range(2, len(number) + 1)]
    stripped = strip_alpha_affixes(number)
    if stripped and stripped != number:
        tags.append(stripped)
    return tags


def synthesize_tags(
    room: Any,
    custom_tags: Optional[Iterable[Any]] = None,
    staff_tags: Optional[Iterable[Any]] = None,
    abbreviations: Optional[Mapping[str, str]] = None,
) -> Set[str]:
    """
    Build the unified tag set for one room.

    Args:
        room: A :class:`~roomsearch.core.models.Room`, raw dict row, or
            any object exposing the same attributes.
        custom_tags: The room's current rich tags (objects or dicts).
        staff_tags: The room's current ``"Staff: <name>"`` strings.
        abbreviations: Short-code expansion table; defaults to
            :data:`~roomsearch.core.config.DEFAULT_ABBREVIATIONS`.

    Returns:
        De-duplicated set of lowercase tokens.  Deterministic for a given
        room and annotation state.
    """
    table = DEFAULT_ABBREVIATIONS if abbreviations is None else abbreviations
    tags = (
        _building_tags(room)
        + _floor_tags(room)
        + _department_tags(room)
        + _type_tags(room, table)
        + _category_tags(room)
        + _custom_tags(custom_tags)
        + _staff_tags(staff_tags)
        + _room_number_tags(room)
    )
    return {t for t in tags if t}
