"""
roomsearch Client Facade

Single entry point for programmatic use.  ``RoomFinder`` owns a room
collection and the two annotation maps (custom rich tags and staff
tags) and hands them to the search engine explicitly on every call, so
annotation edits are visible to the very next search.

Usage::

    from roomsearch import RoomFinder

    finder = RoomFinder(rooms=rows)                 # dict rows or Room objects
    finder.add_custom_tag(42, "Projector")
    finder.add_staff_tag(42, "Jane Doe")

    for room in finder.search("3rd floor conference"):
        print(room.rmnbr, room.building)

    # Scoring metadata for debugging
    for hit in finder.rank("4214"):
        print(hit.room.rmnbr, hit.score, hit.match_details)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from roomsearch.core.config import RoomSearchConfig
from roomsearch.core.models import RichTag, Room, ScoredResult, create_rich_tag
from roomsearch.core.search import RoomFilters, RoomSearchEngine, annotations_for
from roomsearch.core.tags import STAFF_PREFIX, synthesize_tags
from roomsearch.exceptions import TagError

logger = logging.getLogger(__name__)


def _key(mapping: Dict[Any, Any], room_id: Any) -> Any:
    """Key to use for *room_id* in an annotation map that may have string keys (JSON)."""
    if room_id not in mapping and str(room_id) in mapping:
        return str(room_id)
    return room_id


class RoomFinder:
    """
    High-level room search client.

    Args:
        rooms: Initial room collection (``Room`` objects or raw dict rows).
        config: Explicit configuration; defaults to
            :meth:`RoomSearchConfig.from_env`.
        custom_tags: Existing ``room id -> [RichTag | dict]`` map to adopt.
        staff_tags: Existing ``room id -> ["Staff: <name>"]`` map to adopt.
    """

    def __init__(
        self,
        rooms: Iterable[Any] = (),
        config: RoomSearchConfig | None = None,
        custom_tags: Optional[Dict[Any, List[Any]]] = None,
        staff_tags: Optional[Dict[Any, List[str]]] = None,
    ):
        self._config = config or RoomSearchConfig.from_env()
        self._engine = RoomSearchEngine(self._config)
        self._rooms: List[Room] = []
        self._by_id: Dict[Any, Room] = {}
        self.custom_tags: Dict[Any, List[Any]] = custom_tags if custom_tags is not None else {}
        self.staff_tags: Dict[Any, List[str]] = staff_tags if staff_tags is not None else {}
        self.load_rooms(rooms)

    # ── Configuration & data ──────────────────────────────────────

    @property
    def config(self) -> RoomSearchConfig:
        """The active configuration for this client."""
        return self._config

    @property
    def engine(self) -> RoomSearchEngine:
        return self._engine

    @property
    def rooms(self) -> List[Room]:
        """The loaded rooms, in load order."""
        return list(self._rooms)

    def load_rooms(self, rows: Iterable[Any]) -> int:
        """
        Replace the room collection.

        Raises:
            RecordError: If a dict row has no ``id``.
        """
        rooms = [r if isinstance(r, Room) else Room.from_dict(r) for r in rows]
        self._rooms = rooms
        self._by_id = {r.id: r for r in rooms}
        logger.info(f"Loaded {len(rooms)} rooms")
        return len(rooms)

    def get_room(self, room_id: Any) -> Room:
        """Return the room with *room_id* (``"42"`` finds id ``42``)."""
        room = self._by_id.get(room_id)
        if room is None and isinstance(room_id, str):
            room = next((r for r in self._rooms if str(r.id) == room_id), None)
        if room is None:
            raise TagError(f"Unknown room id {room_id!r}.")
        return room

    # ── Annotations ───────────────────────────────────────────────

    def add_custom_tag(self, room_id: Any, tag: RichTag | dict | str, **fields) -> RichTag:
        """
        Attach a custom tag to a room.

        *tag* may be a :class:`RichTag`, a stored tag dict, or a bare
        name (extra *fields* are passed to :func:`create_rich_tag`).

        Raises:
            TagError: Unknown room, empty name, or a tag with the same
                name (case-insensitive) already on the room.
        """
        room = self.get_room(room_id)
        if isinstance(tag, str):
            rich = create_rich_tag(tag, **fields)
        elif isinstance(tag, RichTag):
            rich = tag
        else:
            rich = RichTag.from_dict(tag)
        if not rich.name.strip():
            raise TagError("Tag name must be a non-empty string.")

        existing = self.custom_tags.setdefault(_key(self.custom_tags, room.id), [])
        wanted = rich.name.strip().lower()
        for current in existing:
            name = current.name if isinstance(current, RichTag) else (current.get("name") or "")
            if name.strip().lower() == wanted:
                raise TagError(f"Room {room.id!r} already has a tag named '{rich.name}'.")
        existing.append(rich)
        logger.debug(f"Added tag '{rich.name}' to room {room.id!r}")
        return rich

    def remove_custom_tag(self, room_id: Any, tag_id: str) -> bool:
        """Remove the custom tag with *tag_id*; returns False when absent."""
        room = self.get_room(room_id)
        tags = self.custom_tags.get(_key(self.custom_tags, room.id), [])
        for i, current in enumerate(tags):
            current_id = current.id if isinstance(current, RichTag) else current.get("id")
            if current_id == tag_id:
                del tags[i]
                return True
        return False

    def add_staff_tag(self, room_id: Any, name: str) -> str:
        """Attach ``"Staff: <name>"`` to a room (no duplicates); returns the stored string."""
        room = self.get_room(room_id)
        if not isinstance(name, str) or not name.strip():
            raise TagError("Staff name must be a non-empty string.")
        entry = f"{STAFF_PREFIX}{name.strip()}"
        staff = self.staff_tags.setdefault(_key(self.staff_tags, room.id), [])
        if entry not in staff:
            staff.append(entry)
        return entry

    def remove_staff_tag(self, room_id: Any, name: str) -> bool:
        """Remove a staff tag by bare name or full ``"Staff: ..."`` string."""
        room = self.get_room(room_id)
        entry = name if name.startswith(STAFF_PREFIX) else f"{STAFF_PREFIX}{name.strip()}"
        staff = self.staff_tags.get(_key(self.staff_tags, room.id), [])
        if entry in staff:
            staff.remove(entry)
            return True
        return False

    def tags_for(self, room_id: Any) -> Set[str]:
        """Unified search tags for a room, built from the current annotations."""
        room = self.get_room(room_id)
        return synthesize_tags(
            room,
            annotations_for(self.custom_tags, room.id),
            annotations_for(self.staff_tags, room.id),
            self._config.abbreviations,
        )

    # ── Search ────────────────────────────────────────────────────

    def search(self, query: str, filters: RoomFilters | None = None) -> List[Room]:
        """Ranked rooms for *query*, optionally narrowed by *filters*."""
        return [r.room for r in self.rank(query, filters=filters)]

    def rank(self, query: str, filters: RoomFilters | None = None) -> List[ScoredResult]:
        """Ranked :class:`ScoredResult` list for *query*."""
        results = self._engine.rank(query, self._rooms, self.custom_tags, self.staff_tags)
        if filters is None or filters.is_empty():
            return results
        return [
            r for r in results
            if filters.matches(r.room, annotations_for(self.custom_tags, r.room.id))
        ]

    # ── Health ────────────────────────────────────────────────────

    def health(self) -> Dict[str, object]:
        """Small status dict: version and collection sizes."""
        return {
            "version": __import__("roomsearch", fromlist=["__version__"]).__version__,
            "rooms": len(self._rooms),
            "custom_tags": sum(len(v) for v in self.custom_tags.values()),
            "staff_tags": sum(len(v) for v in self.staff_tags.values()),
            "abbreviations": len(self._config.abbreviations),
        }
