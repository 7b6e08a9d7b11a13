"""
roomsearch Exception Hierarchy

Structured exceptions for the edges of the package: configuration,
record conversion, and annotation edits.  The search path itself never
raises for malformed rooms; a bad record simply does not match.

Usage::

    from roomsearch.exceptions import RoomSearchError, TagError

    try:
        finder.add_custom_tag(room_id, "")
    except TagError as exc:
        print(f"Rejected tag: {exc}")
    except RoomSearchError as exc:
        print(f"roomsearch error: {exc}")
"""


class RoomSearchError(Exception):
    """Base exception for all roomsearch errors."""


class ConfigError(RoomSearchError, ValueError):
    """Configuration is invalid (e.g. a non-string abbreviation entry).

    Inherits from ``ValueError`` so callers that already catch
    ``ValueError`` from ``RoomSearchConfig.validate()`` keep working.
    """


class RecordError(RoomSearchError, ValueError):
    """A source row cannot be converted into a :class:`Room`."""


class TagError(RoomSearchError, ValueError):
    """A custom or staff annotation is invalid, duplicated, or targets an unknown room."""
