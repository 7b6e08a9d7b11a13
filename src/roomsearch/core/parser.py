"""
Query parsing: free text to typed, boosted search terms.

Pattern groups run in a fixed priority order (floor, building,
department/room type, staff) against a "remaining text" buffer.  Each
match becomes a term and its span is cut out of the buffer, so later
groups never see text an earlier group already claimed.  Whatever is
left is tokenized into room-number and general terms.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from roomsearch.core.config import RoomSearchConfig
from roomsearch.core.models import SearchTerm, TermType
from roomsearch.core.tags import ORDINAL_WORDS, word_to_number

logger = logging.getLogger(__name__)

# Optional letter prefix, digits, optional letter suffix: 4214, f4214, 4214t, f4214t
ROOM_NUMBER_SHAPE = re.compile(r"^[a-z]?\d+[a-z]?$")

_TOKEN_SPLIT = re.compile(r"[\s,]+")


@dataclass(frozen=True)
class PatternSpec:
    """One extractor: a regex whose group 1 is the term value."""
    name: str
    regex: re.Pattern
    term_type: str
    ordinal_word: bool = False
    """Group 1 is an ordinal word (``third``) to convert to a number."""


def _spec(name: str, pattern: str, term_type: str, ordinal_word: bool = False) -> PatternSpec:
    return PatternSpec(name, re.compile(pattern), term_type, ordinal_word)


_ORDINALS = "|".join(ORDINAL_WORDS)

FLOOR_PATTERNS: Tuple[PatternSpec, ...] = (
    # floor 3, floor-3, floor3
    _spec("floor_n", r"(?:^|\s)floor[\s\-]?(\d+)(?:\s|$)", TermType.FLOOR),
    # 3rd floor, 3 floor
    _spec("nth_floor", r"(?:^|\s)(\d+)(?:st|nd|rd|th)?\s*floor(?:\s|$)", TermType.FLOOR),
    # level 3, lv3
    _spec("level_n", r"(?:^|\s)(?:level|lv)[\s\-]?(\d+)(?:\s|$)", TermType.FLOOR),
    # f3, f-12; never f4214 (that is a room number)
    _spec("f_n", r"(?:^|\s)f[\s\-]?(\d{1,2})(?:\s|$)", TermType.FLOOR),
    # third floor, second level
    _spec("ordinal_floor", rf"(?:^|\s)({_ORDINALS})\s*(?:floor|level)(?:\s|$)",
          TermType.FLOOR, ordinal_word=True),
)

BUILDING_PATTERNS: Tuple[PatternSpec, ...] = (
    _spec("building_prefix", r"(?:^|\s)(?:building|bldg)[\s\-:]\s*([a-z0-9\-\s]+?)(?:\s|$)",
          TermType.BUILDING),
    _spec("in_at", r"(?:^|\s)(?:in|at)\s+([a-z0-9\-\s]+?)(?:\s+(?:building|bldg)|$)",
          TermType.BUILDING),
)

DEPARTMENT_PATTERNS: Tuple[PatternSpec, ...] = (
    _spec("department_prefix", r"(?:^|\s)(?:department|dept)[\s\-:]\s*([a-z0-9\-\s]+?)(?:\s|$)",
          TermType.DEPARTMENT),
    _spec("type_prefix", r"(?:^|\s)(?:room\s*type|type)[\s\-:]\s*([a-z0-9\-\s]+?)(?:\s|$)",
          TermType.ROOM_TYPE),
)

STAFF_PATTERNS: Tuple[PatternSpec, ...] = (
    _spec("staff_prefix", r"(?:^|\s)(?:staff|person|occupant)[\s\-:]\s*([a-z\s\-\.]+?)(?:\s|$)",
          TermType.STAFF),
    _spec("title_prefix", r"(?:^|\s)(?:doctor|dr|professor|prof)(?:\.\s*|\s+)([a-z\s\-\.]+?)(?:\s|$)",
          TermType.STAFF),
)

# Priority order; earlier groups consume text first.
PATTERN_GROUPS: Tuple[Tuple[PatternSpec, ...], ...] = (
    FLOOR_PATTERNS,
    BUILDING_PATTERNS,
    DEPARTMENT_PATTERNS,
    STAFF_PATTERNS,
)


class QueryParser:
    """
    Turns a raw query string into an ordered list of :class:`SearchTerm`.

    Stop words and boosts come from the supplied
    :class:`~roomsearch.core.config.RoomSearchConfig`.
    """

    def __init__(self, config: RoomSearchConfig | None = None):
        self._config = config or RoomSearchConfig()

    def parse(self, query) -> List[SearchTerm]:
        """Parse *query*; non-string or blank input yields ``[]``."""
        if not isinstance(query, str) or not query.strip():
            return []

        remaining = query.strip().lower()
        terms: List[SearchTerm] = []
        for group in PATTERN_GROUPS:
            for spec in group:
                found, remaining = self.consume(spec, remaining)
                terms.extend(found)

        terms.extend(self.tokenize(remaining))
        logger.debug(f"Parsed '{query}' into {len(terms)} terms: "
                     f"{[(t.type, t.value) for t in terms]}")
        return terms

    def consume(self, spec: PatternSpec, text: str) -> Tuple[List[SearchTerm], str]:
        """
        Extract every match of *spec* from *text*.

        Returns the terms found and the text with each matched span
        replaced by a single space.  Every replacement shortens the text,
        so the loop always terminates.
        """
        terms: List[SearchTerm] = []
        while True:
            m = spec.regex.search(text)
            if m is None:
                break
            term = self._term_from_match(spec, m)
            if term is not None:
                terms.append(term)
            text = f"{text[:m.start()]} {text[m.end():]}"
        return terms, text

    def tokenize(self, text: str) -> List[SearchTerm]:
        """Classify leftover tokens as room-number or general terms."""
        terms: List[SearchTerm] = []
        for token in _TOKEN_SPLIT.split(text):
            token = token.strip()
            if not token or token in self._config.stop_words:
                continue
            term_type = TermType.ROOM_NUMBER if ROOM_NUMBER_SHAPE.match(token) else TermType.GENERAL
            terms.append(SearchTerm(
                type=term_type,
                value=token,
                original=token,
                boost=self._config.get_boost(term_type),
            ))
        return terms

    def _term_from_match(self, spec: PatternSpec, m: re.Match) -> Optional[SearchTerm]:
        raw_value = m.group(1).strip()
        if spec.ordinal_word:
            number = word_to_number(raw_value)
            if number is None:
                return None
            value = str(number)
        else:
            value = raw_value
        if not value:
            return None
        return SearchTerm(
            type=spec.term_type,
            value=value,
            original=m.group(0).strip(),
            boost=self._config.get_boost(spec.term_type),
        )


def parse_query(query, config: RoomSearchConfig | None = None) -> List[SearchTerm]:
    """Module-level shortcut for :meth:`QueryParser.parse`."""
    return QueryParser(config).parse(query)
