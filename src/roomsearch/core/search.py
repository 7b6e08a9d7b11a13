"""
roomsearch Ranking Engine

Ranks an in-memory room collection against a free-text query:

- Query parsing into typed, boosted terms
- Fresh unified tags per room (annotations may change between calls)
- Weighted per-term scoring with a term-count / priority inclusion threshold
- Post-hoc boosts for exact room numbers and multiple high-priority hits
- Stable multi-key ordering
- Optional building / floor / tag filters, pagination, and output formats
"""

import json
import logging
import math
import shutil
import time
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from roomsearch.core.config import RoomSearchConfig
from roomsearch.core.matcher import match_term
from roomsearch.core.models import (
    ScoredResult,
    SearchTerm,
    TermType,
    field_text,
    generate_mgis_link,
    get_field,
    room_field,
)
from roomsearch.core.parser import QueryParser
from roomsearch.core.tags import synthesize_tags

logger = logging.getLogger(__name__)

EXACT_ROOM_NUMBER_MULTIPLIER = 2.0
MULTI_HIGH_PRIORITY_MULTIPLIER = 1.5
THRESHOLD_RATIO = 0.6
NEAR_MISS_LOG_COUNT = 5


def annotations_for(mapping: Optional[Mapping[Any, Sequence[Any]]], room_id: Any) -> Sequence[Any]:
    """
    Look up a room's annotation list, ``()`` when there is none.

    Keys are tried as-is and then as strings, since annotation maps
    loaded from JSON always have string keys.
    """
    if not mapping or room_id is None:
        return ()
    try:
        found = mapping.get(room_id)
    except TypeError:
        found = None
    if found is None and not isinstance(room_id, str):
        found = mapping.get(str(room_id))
    return found or ()


def is_sufficient(total_terms: int, matched_terms: int, high_priority_matches: int) -> bool:
    """
    Decide whether a room's term hits qualify it for the results.

    * one term: it must match
    * two terms: both match, or any high-priority (floor / room number) hit
    * three or more: at least ``max(min(2, T), ceil(0.6 * T))`` hits,
      relaxed by one (never below one) when any high-priority term hit
    """
    if total_terms <= 0:
        return False
    if total_terms == 1:
        return matched_terms >= 1
    if total_terms == 2:
        return matched_terms >= 2 or high_priority_matches >= 1

    base = math.ceil(total_terms * THRESHOLD_RATIO)
    threshold = max(min(2, total_terms), base)
    if high_priority_matches > 0:
        return matched_terms >= max(1, threshold - 1)
    return matched_terms >= threshold


# =============================================================================
# Search Engine
# =============================================================================

class RoomSearchEngine:
    """
    Heuristic multi-field search over a room collection.

    The engine holds only its configuration.  Rooms and annotation maps
    are passed in on every call and treated as read-only for its
    duration.
    """

    def __init__(
        self,
        config: RoomSearchConfig | None = None,
        parser: QueryParser | None = None,
    ):
        self._config = config or RoomSearchConfig()
        self._parser = parser or QueryParser(self._config)
        self._last_elapsed_seconds: float = 0.0

    @property
    def config(self) -> RoomSearchConfig:
        """The active configuration for this engine."""
        return self._config

    @property
    def parser(self) -> QueryParser:
        return self._parser

    @property
    def last_search_elapsed_seconds(self) -> float:
        """Wall time (seconds) of the last :meth:`rank` scoring pass."""
        return self._last_elapsed_seconds

    # ── Public API ────────────────────────────────────────────────

    def search(
        self,
        query: str,
        rooms: Iterable[Any],
        custom_tags: Optional[Mapping[Any, Sequence[Any]]] = None,
        staff_tags: Optional[Mapping[Any, Sequence[str]]] = None,
    ) -> List[Any]:
        """
        Return the rooms matching *query*, most relevant first.

        An empty query, or one that parses to no terms, returns every
        room in its original order.

        Args:
            query: Free-text query.
            rooms: Ordered room collection.
            custom_tags: ``room id -> rich tags`` at call time.
            staff_tags: ``room id -> "Staff: <name>" strings`` at call time.
        """
        return [r.room for r in self.rank(query, rooms, custom_tags, staff_tags)]

    def rank(
        self,
        query: str,
        rooms: Iterable[Any],
        custom_tags: Optional[Mapping[Any, Sequence[Any]]] = None,
        staff_tags: Optional[Mapping[Any, Sequence[str]]] = None,
        include_excluded: bool = False,
    ) -> List[ScoredResult]:
        """
        Like :meth:`search` but returns the scoring metadata.

        Args:
            include_excluded: Append rooms that failed the threshold
                (score 0, ``included=False``) after the ranked ones, in
                original order.  Useful for explaining near misses.
        """
        room_list = list(rooms or [])
        terms = self._parser.parse(query)

        if not terms:
            return [
                ScoredResult(room=room, included=True, index=i)
                for i, room in enumerate(room_list)
            ]

        t0 = time.perf_counter()
        scored = [
            self.score_room(terms, room, custom_tags, staff_tags, index=i)
            for i, room in enumerate(room_list)
        ]
        # sorted() is stable, so ties keep collection order
        ranked = sorted((s for s in scored if s.included), key=lambda s: s.sort_key)
        self._last_elapsed_seconds = time.perf_counter() - t0

        logger.info(
            f"Query '{query}': {len(terms)} terms, "
            f"{len(ranked)}/{len(room_list)} rooms matched"
        )
        if not ranked and room_list:
            self._log_near_misses(query, terms, scored)

        if include_excluded:
            ranked.extend(s for s in scored if not s.included)
        return ranked

    def score_room(
        self,
        terms: Sequence[SearchTerm],
        room: Any,
        custom_tags: Optional[Mapping[Any, Sequence[Any]]] = None,
        staff_tags: Optional[Mapping[Any, Sequence[str]]] = None,
        index: int = 0,
    ) -> ScoredResult:
        """Score one room against already-parsed *terms*."""
        result = ScoredResult(room=room, total_term_count=len(terms), index=index)
        room_id = room_field(room, "id")

        try:
            room_staff = annotations_for(staff_tags, room_id)
            unified = synthesize_tags(
                room,
                annotations_for(custom_tags, room_id),
                room_staff,
                self._config.abbreviations,
            )
            score = 0.0
            for term in terms:
                hit = match_term(term, room, unified, room_staff, self._config.abbreviations)
                if not hit.matched:
                    continue
                score += hit.score * term.boost
                result.matched_term_count += 1
                if term.type in TermType.HIGH_PRIORITY:
                    result.high_priority_match_count += 1
                result.match_details.append({
                    "term": term.original,
                    "type": term.type,
                    "score": hit.score,
                    "boost": term.boost,
                })

            number = room_field(room, "rmnbr")
            if number is not None and any(
                t.type == TermType.ROOM_NUMBER and field_text(number).lower() == t.value.lower()
                for t in terms
            ):
                score *= EXACT_ROOM_NUMBER_MULTIPLIER
            if result.high_priority_match_count > 1:
                score *= MULTI_HIGH_PRIORITY_MULTIPLIER
        except Exception as e:
            logger.warning(f"Room {room_id!r} could not be scored, treating as no match: {e}")
            return ScoredResult(room=room, total_term_count=len(terms), index=index)

        result.included = is_sufficient(
            len(terms), result.matched_term_count, result.high_priority_match_count
        )
        result.score = score if result.included else 0.0
        return result

    # ── Diagnostics ───────────────────────────────────────────────

    def _log_near_misses(self, query: str, terms: Sequence[SearchTerm],
                         scored: List[ScoredResult]) -> None:
        """Log the parsed terms and closest misses when nothing matched."""
        if not logger.isEnabledFor(logging.DEBUG):
            return
        logger.debug(f"No results for '{query}'; terms: {[t.to_dict() for t in terms]}")
        closest = sorted(scored, key=lambda s: -s.matched_term_count)[:NEAR_MISS_LOG_COUNT]
        for s in closest:
            logger.debug(
                f"  near miss: room {room_field(s.room, 'rmnbr')}: "
                f"{s.matched_term_count}/{s.total_term_count} terms matched"
            )


def search(
    query: str,
    rooms: Iterable[Any],
    custom_tags: Optional[Mapping[Any, Sequence[Any]]] = None,
    staff_tags: Optional[Mapping[Any, Sequence[str]]] = None,
    config: RoomSearchConfig | None = None,
) -> List[Any]:
    """Module-level shortcut for :meth:`RoomSearchEngine.search`."""
    return RoomSearchEngine(config).search(query, rooms, custom_tags, staff_tags)


# =============================================================================
# Filters & Pagination
# =============================================================================

@dataclass
class RoomFilters:
    """Exact-value filters applied after ranking (building, floor, tags)."""
    building: Optional[str] = None
    floor: Optional[str] = None
    tags: Sequence[str] = ()
    """Every listed tag must be a category tag or custom tag name of the room."""

    def is_empty(self) -> bool:
        return not self.building and self.floor in (None, "") and not self.tags

    def matches(self, room: Any, custom_tags: Sequence[Any] = ()) -> bool:
        """True when *room* (with its custom tags) passes every set filter."""
        if self.building:
            wanted = self.building.lower()
            names = {
                str(room_field(room, attr)).lower()
                for attr in ("building", "bld_descrshort")
                if room_field(room, attr)
            }
            if wanted not in names:
                return False

        if self.floor not in (None, ""):
            floor = room_field(room, "floor")
            if floor is None or field_text(floor).lower() != field_text(self.floor).lower():
                return False

        if self.tags:
            categories = room_field(room, "tags") or []
            if isinstance(categories, str):
                categories = [categories]
            available = {str(t).lower() for t in categories}
            available |= {
                str(get_field(tag, "name")).lower()
                for tag in custom_tags or ()
                if get_field(tag, "name")
            }
            if any(t.lower() not in available for t in self.tags):
                return False
        return True

    def apply(self, rooms: Iterable[Any],
              custom_tags: Optional[Mapping[Any, Sequence[Any]]] = None) -> List[Any]:
        """Return the rooms that pass, preserving order."""
        room_list = list(rooms)
        if self.is_empty():
            return room_list
        return [
            r for r in room_list
            if self.matches(r, annotations_for(custom_tags, room_field(r, "id")))
        ]


@dataclass
class Page:
    """One page of results."""
    items: List[Any] = field(default_factory=list)
    page: int = 1
    per_page: int = 0
    total_items: int = 0
    total_pages: int = 1

    @property
    def start_index(self) -> int:
        """1-based global index of the first item on this page."""
        return 1 if self.per_page <= 0 else (self.page - 1) * self.per_page + 1


def paginate(items: Sequence[Any], page: int = 1, per_page: int = 0) -> Page:
    """
    Slice *items* into one page.

    ``per_page <= 0`` puts everything on a single page.  *page* is
    clamped into ``[1, total_pages]``.
    """
    items = list(items)
    total = len(items)
    if per_page <= 0:
        return Page(items=items, page=1, per_page=0, total_items=total, total_pages=1)

    total_pages = max(1, math.ceil(total / per_page))
    page = min(max(1, page), total_pages)
    start = (page - 1) * per_page
    return Page(
        items=items[start:start + per_page],
        page=page,
        per_page=per_page,
        total_items=total,
        total_pages=total_pages,
    )


# =============================================================================
# Output Formatting
# =============================================================================

class ResultFormatter:
    """Format search results (rooms or :class:`ScoredResult`) for output."""

    @staticmethod
    def _unwrap(result: Any) -> tuple:
        if isinstance(result, ScoredResult):
            return result.room, result
        return result, None

    @staticmethod
    def _title(room: Any) -> str:
        number = room_field(room, "rmnbr")
        building = room_field(room, "building") or room_field(room, "bld_descrshort") or ""
        title = f"Room {number}" if number not in (None, "") else f"Room id {room_field(room, 'id')}"
        return f"{title} — {building}" if building else title

    # ── Console (human-friendly) ──────────────────────────────────

    @staticmethod
    def format_console(results: Sequence[Any], start_index: int = 1,
                       total_count: int | None = None,
                       elapsed_time: float | None = None) -> str:
        """
        Multi-line console output with the main room fields, the MGIS
        link when available, and the score breakdown for scored results.
        """
        if not results:
            return "\n  No rooms found.\n"

        width = min(shutil.get_terminal_size().columns, 78)
        thin = "─" * width
        display_total = total_count if total_count is not None else len(results)

        header = f"  ROOMSEARCH — {display_total} room{'s' if display_total != 1 else ''}"
        if elapsed_time is not None:
            header += f" in {elapsed_time:.4f} seconds"

        out: List[str] = [f"\n{thin}", header, thin]
        for offset, result in enumerate(results):
            room, scored = ResultFormatter._unwrap(result)
            out.append("")
            out.append(f"  #{start_index + offset}  {ResultFormatter._title(room)}")
            out.append(f"  {'─' * (width - 2)}")
            floor = room_field(room, "floor")
            if floor not in (None, ""):
                out.append(f"    Floor  : {floor}")
            for label, attr in (("Dept", "dept_descr"), ("Type", "type_full")):
                value = room_field(room, attr)
                if value:
                    out.append(f"    {label:<7}: {value}")
            link = generate_mgis_link(room)
            if link:
                out.append(f"    MGIS   : {link}")
            if scored is not None and scored.total_term_count:
                out.append(
                    f"    Score  : {scored.score:.1f}  "
                    f"({scored.matched_term_count}/{scored.total_term_count} terms, "
                    f"{scored.high_priority_match_count} high-priority)"
                )
                if scored.match_details:
                    parts = [
                        f"{d['type']}:{d['term']}(+{d['score'] * d['boost']:.1f})"
                        for d in scored.match_details
                    ]
                    out.append(f"    Explain: {' '.join(parts)}")

        out.append(f"\n{thin}")
        return "\n".join(out)

    # ── JSON ──────────────────────────────────────────────────────

    @staticmethod
    def format_json(results: Sequence[Any]) -> str:
        """JSON array; scored results carry score fields and ``match_details``."""
        def _to_obj(result: Any) -> dict:
            room, scored = ResultFormatter._unwrap(result)
            if scored is not None:
                obj = scored.to_dict()
            else:
                obj = {"room": room.to_dict() if hasattr(room, "to_dict") else room}
            link = generate_mgis_link(room)
            if link:
                obj["mgis_link"] = link
            return obj

        return json.dumps([_to_obj(r) for r in results], indent=2, allow_nan=False, default=str)

    # ── Compact (one line per result) ─────────────────────────────

    @staticmethod
    def format_compact(results: Sequence[Any]) -> str:
        """``id  room  building  floor  [score]`` per line."""
        if not results:
            return "No rooms found."

        def _cell(room: Any, name: str) -> str:
            return field_text(room_field(room, name)) or "-"

        lines: List[str] = []
        for result in results:
            room, scored = ResultFormatter._unwrap(result)
            line = (
                f"{_cell(room, 'id')}  {_cell(room, 'rmnbr')}  "
                f"{_cell(room, 'building')}  floor {_cell(room, 'floor')}"
            )
            if scored is not None and scored.total_term_count:
                line += f"  [{scored.score:.1f}]"
            lines.append(line)
        return "\n".join(lines)
