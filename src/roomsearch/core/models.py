"""
Data types shared by the tag synthesizer, query parser, term matcher,
and ranking engine.

Rooms and annotations are owned by the caller; the engine only reads
them.  Search terms, term matches, and scored results are transient
values that live for a single query.
"""

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Mapping, Optional

MGIS_SEARCH_URL = "https://mgis.med.umich.edu/#feature=search&rmrecnbr={rmrecnbr}"


class TermType:
    """Kinds of search term produced by the query parser."""

    FLOOR = "floor"
    BUILDING = "building"
    DEPARTMENT = "department"
    ROOM_TYPE = "room_type"
    STAFF = "staff"
    ROOM_NUMBER = "room_number"
    GENERAL = "general"

    ALL = (FLOOR, BUILDING, DEPARTMENT, ROOM_TYPE, STAFF, ROOM_NUMBER, GENERAL)

    # Hits on these count toward the high-priority tally used by the
    # sufficiency threshold and the multi-hit score boost.
    HIGH_PRIORITY = frozenset({ROOM_NUMBER, FLOOR})


def get_field(obj: Any, name: str, source_key: Optional[str] = None) -> Any:
    """
    Read attribute *name* from a room or tag, whatever its shape.

    Dicts are looked up by *source_key* first (the key used in the raw
    room data, e.g. ``typeFull``) and then by *name*; other objects via
    ``getattr``.  Anything absent comes back as ``None``.
    """
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        if source_key and source_key in obj:
            return obj[source_key]
        return obj.get(name)
    return getattr(obj, name, None)


# =============================================================================
# Rooms
# =============================================================================

@dataclass
class Room:
    """One physical room from the catalog.

    Attribute names follow the source data columns, except ``type_full``
    which is ``typeFull`` in the raw rows.
    """
    id: Any
    rmnbr: Any = None
    building: Optional[str] = None
    bld_descrshort: Optional[str] = None
    floor: Any = None
    dept_descr: Optional[str] = None
    type_full: Optional[str] = None
    rmtyp_descrshort: Optional[str] = None
    rmsubtyp_descrshort: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    rmrecnbr: Any = None

    SOURCE_KEYS: ClassVar[Dict[str, str]] = {"type_full": "typeFull"}

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> "Room":
        """Build a Room from a raw data row; unknown keys are ignored."""
        from roomsearch.exceptions import RecordError

        if not isinstance(row, Mapping):
            raise RecordError(f"Room rows must be mappings, got {type(row).__name__}.")
        if row.get("id") is None:
            raise RecordError(f"Room row has no 'id': {dict(row)!r}")

        values = {}
        for name in cls.__dataclass_fields__:
            value = get_field(row, name, cls.SOURCE_KEYS.get(name))
            if value is not None:
                values[name] = value
        tags = values.get("tags")
        if tags is not None and not isinstance(tags, list):
            values["tags"] = [tags] if isinstance(tags, str) else list(tags)
        return cls(**values)

    def to_dict(self) -> dict:
        """Return the room as a raw-data-style dict (``typeFull`` key restored)."""
        data = asdict(self)
        for name, key in self.SOURCE_KEYS.items():
            data[key] = data.pop(name)
        return data


def field_text(value: Any) -> str:
    """
    String form of a field value for comparison, ``""`` when absent.

    Integral floats render without the fraction (``3.0 -> "3"``), so
    floors and room numbers read from JSON or spreadsheets compare equal
    to the digits typed in a query.
    """
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def room_field(room: Any, name: str) -> Any:
    """Read a :class:`Room` attribute from a Room, dict row, or look-alike object."""
    return get_field(room, name, Room.SOURCE_KEYS.get(name))


def generate_mgis_link(room: Any) -> str:
    """Return the MGIS map link for *room*, or ``""`` when it has no ``rmrecnbr``."""
    rmrecnbr = room_field(room, "rmrecnbr")
    if rmrecnbr in (None, ""):
        return ""
    return MGIS_SEARCH_URL.format(rmrecnbr=field_text(rmrecnbr))


# =============================================================================
# Annotations
# =============================================================================

@dataclass
class RichTag:
    """A user-created annotation on a room."""
    name: str
    type: str = "simple"
    description: str = ""
    link: str = ""
    contact: str = ""
    image_url: str = ""
    color: str = "blue"
    id: str = ""
    created: str = ""
    is_rich: bool = False
    workspace: bool = False
    """True when the tag came from a shared workspace rather than this user."""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RichTag":
        """Build a RichTag from a stored dict (camelCase keys accepted)."""
        return cls(
            name=str(data.get("name") or ""),
            type=data.get("type") or "simple",
            description=data.get("description") or "",
            link=data.get("link") or "",
            contact=data.get("contact") or "",
            image_url=data.get("imageUrl") or data.get("image_url") or "",
            color=data.get("color") or "blue",
            id=str(data.get("id") or ""),
            created=data.get("created") or "",
            is_rich=bool(data.get("isRich", data.get("is_rich", False))),
            workspace=bool(data.get("workspace", False)),
        )

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict using the stored (camelCase) keys."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "link": self.link,
            "contact": self.contact,
            "imageUrl": self.image_url,
            "color": self.color,
            "created": self.created,
            "isRich": self.is_rich,
            "workspace": self.workspace,
        }


def create_rich_tag(
    name: str,
    type: Optional[str] = None,
    description: Optional[str] = None,
    link: Optional[str] = None,
    contact: Optional[str] = None,
    image_url: Optional[str] = None,
    color: Optional[str] = None,
    workspace: bool = False,
) -> RichTag:
    """
    Create a new :class:`RichTag` with a fresh id and creation timestamp.

    String fields are trimmed.  ``type`` defaults to ``"simple"`` and
    ``color`` to ``"blue"``; the tag is flagged ``is_rich`` when it
    carries anything beyond a name and those defaults.

    Raises:
        TagError: If *name* is empty or whitespace.
    """
    from roomsearch.exceptions import TagError

    if not isinstance(name, str) or not name.strip():
        raise TagError("Tag name must be a non-empty string.")

    tag_type = type or "simple"
    description = (description or "").strip()
    link = (link or "").strip()
    contact = (contact or "").strip()
    image_url = (image_url or "").strip()
    color = color or "blue"

    return RichTag(
        name=name.strip(),
        type=tag_type,
        description=description,
        link=link,
        contact=contact,
        image_url=image_url,
        color=color,
        id=uuid.uuid4().hex,
        created=datetime.now(timezone.utc).isoformat(),
        is_rich=(
            tag_type != "simple"
            or bool(description or link or contact or image_url)
            or color != "blue"
        ),
        workspace=workspace,
    )


# =============================================================================
# Query-time values
# =============================================================================

@dataclass(frozen=True)
class SearchTerm:
    """A typed, boosted unit parsed out of a query."""
    type: str
    value: str
    original: str
    boost: float

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict."""
        return asdict(self)


@dataclass(frozen=True)
class TermMatch:
    """Outcome of matching one term against one room."""
    matched: bool
    score: float = 0.0


NO_MATCH = TermMatch(False, 0.0)


@dataclass
class ScoredResult:
    """Scoring metadata for one room under one query."""
    room: Any
    score: float = 0.0
    matched_term_count: int = 0
    total_term_count: int = 0
    high_priority_match_count: int = 0
    included: bool = False
    match_details: List[dict] = field(default_factory=list)
    """One entry per matched term: ``{term, type, score, boost}``."""
    index: int = 0
    """Position of the room in the input collection."""

    @property
    def sort_key(self) -> tuple:
        """Descending score, then high-priority hits, then total hits."""
        return (-self.score, -self.high_priority_match_count, -self.matched_term_count)

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict (room included as a dict)."""
        room = self.room.to_dict() if isinstance(self.room, Room) else self.room
        return {
            "room": room,
            "score": round(self.score, 2),
            "matched_term_count": self.matched_term_count,
            "total_term_count": self.total_term_count,
            "high_priority_match_count": self.high_priority_match_count,
            "included": self.included,
            "match_details": list(self.match_details),
        }
