"""
roomsearch Configuration Module

Centralized configuration for the room search engine: the abbreviation
table used to expand short room-type codes, the stop words dropped from
free-text queries, the per-term-type relevance boosts, and logging.

Each ``RoomSearchConfig`` instance is self-contained and is passed
through the call stack; nothing here is process-wide mutable state.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

# =============================================================================
# Defaults
# =============================================================================

# Short room-type / subtype codes as they appear in the source data,
# mapped to readable expansions.  Keys are matched case-sensitively.
DEFAULT_ABBREVIATIONS: Dict[str, str] = {
    "PubRestRm": "Public Restroom",
    "Conf": "Conference",
    "Mech": "Mechanical",
    "Elec": "Electrical",
    "Stor": "Storage",
    "Off": "Office",
    "Lab": "Laboratory",
    "Clsrm": "Classroom",
    "Lnge": "Lounge",
}

DEFAULT_STOP_WORDS: frozenset = frozenset({
    "the", "and", "or", "in", "at", "on", "of", "for", "to", "with", "by",
})

# Relevance multiplier applied to a term's match score, by term type.
DEFAULT_TERM_BOOSTS: Dict[str, float] = {
    "floor": 2.0,
    "building": 1.5,
    "department": 1.3,
    "room_type": 1.3,
    "staff": 1.3,
    "room_number": 3.0,
    "general": 1.0,
}


def expand_abbreviation(abbreviations: Mapping[str, str], code: object) -> Optional[str]:
    """Return the expansion for a raw short room-type code, or ``None``.

    Codes are looked up exactly as stored (case-sensitive).
    """
    if not code or not isinstance(code, str):
        return None
    return abbreviations.get(code)


def load_abbreviations(path: Path | str) -> Dict[str, str]:
    """Read an abbreviation table from a JSON object of ``code -> expansion``.

    Raises :class:`~roomsearch.exceptions.ConfigError` when the file is
    missing, is not valid JSON, or does not hold a string-to-string object.
    """
    from roomsearch.exceptions import ConfigError

    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read abbreviation file {p}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Abbreviation file {p} is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(
            f"Abbreviation file {p} must contain a JSON object, got {type(data).__name__}."
        )
    bad = [k for k, v in data.items() if not isinstance(v, str)]
    if bad:
        raise ConfigError(
            f"Abbreviation file {p} has non-string expansions for: {', '.join(sorted(bad))}"
        )
    return dict(data)


# =============================================================================
# Instance-Based Configuration
# =============================================================================

@dataclass
class RoomSearchConfig:
    """
    Configuration for the room search engine.

    Create from environment variables::

        config = RoomSearchConfig.from_env()

    Or with explicit values (handy for fixtures)::

        config = RoomSearchConfig(abbreviations={"Conf": "Conference"})
    """

    # ── Vocabulary ────────────────────────────────────────────────
    abbreviations: dict = field(default_factory=lambda: dict(DEFAULT_ABBREVIATIONS))
    stop_words: frozenset = DEFAULT_STOP_WORDS

    # ── Ranking ───────────────────────────────────────────────────
    term_boosts: dict = field(default_factory=lambda: dict(DEFAULT_TERM_BOOSTS))

    # ── Logging ───────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # ── Factory ───────────────────────────────────────────────────

    @classmethod
    def from_env(cls) -> "RoomSearchConfig":
        """Build a config snapshot from current environment variables.

        Reads :envvar:`ROOMSEARCH_LOG_LEVEL` and
        :envvar:`ROOMSEARCH_ABBREVIATIONS` (path to a JSON object whose
        entries are merged over :data:`DEFAULT_ABBREVIATIONS`).
        """
        abbreviations = dict(DEFAULT_ABBREVIATIONS)
        abbrev_path = os.getenv("ROOMSEARCH_ABBREVIATIONS")
        if abbrev_path:
            abbreviations.update(load_abbreviations(abbrev_path))
        return cls(
            abbreviations=abbreviations,
            log_level=os.getenv("ROOMSEARCH_LOG_LEVEL", "INFO").upper(),
        )

    # ── Validation & Accessors ────────────────────────────────────

    def validate(self) -> bool:
        """
        Check the abbreviation table, stop words, and boosts.

        Raises :class:`~roomsearch.exceptions.ConfigError` on failure.
        """
        from roomsearch.exceptions import ConfigError

        for code, expansion in self.abbreviations.items():
            if not isinstance(code, str) or not isinstance(expansion, str):
                raise ConfigError(
                    f"Abbreviation entries must map str to str, got {code!r} -> {expansion!r}."
                )
            if not code or not expansion.strip():
                raise ConfigError(f"Abbreviation {code!r} has an empty code or expansion.")

        if any(not isinstance(w, str) for w in self.stop_words):
            raise ConfigError("Stop words must be strings.")

        missing = set(DEFAULT_TERM_BOOSTS) - set(self.term_boosts)
        if missing:
            raise ConfigError(
                f"term_boosts is missing term types: {', '.join(sorted(missing))}."
            )
        for term_type, boost in self.term_boosts.items():
            if not isinstance(boost, (int, float)) or boost <= 0:
                raise ConfigError(
                    f"Boost for '{term_type}' must be a positive number, got {boost!r}."
                )

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError(f"Unknown log level '{self.log_level}'.")
        return True

    def get_boost(self, term_type: str) -> float:
        """Return the boost for *term_type*, falling back to the general boost."""
        return float(self.term_boosts.get(term_type, self.term_boosts.get("general", 1.0)))
