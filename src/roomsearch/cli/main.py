"""
roomsearch CLI

Command-line access to the room search engine over JSON files.

Usage::

    roomsearch search "3rd floor conference" --rooms rooms.json
    roomsearch search "F4214" --rooms rooms.json --annotations tags.json -f json
    roomsearch parse "dr. smith in main building"
    roomsearch tags 42 --rooms rooms.json --annotations tags.json

The rooms file holds a JSON list of room rows.  The annotations file
holds ``{"customTags": {id: [tag, ...]}, "staffTags": {id: ["Staff: ...", ...]}}``.
"""

import json
import logging
import time
from pathlib import Path
from typing import Optional

import click

from roomsearch.client import RoomFinder
from roomsearch.core.config import RoomSearchConfig, load_abbreviations
from roomsearch.core.models import RichTag
from roomsearch.core.parser import QueryParser
from roomsearch.core.search import ResultFormatter, RoomFilters, paginate
from roomsearch.exceptions import RoomSearchError


# ---------------------------------------------------------------------------
# Logging helpers
# ---------------------------------------------------------------------------

def _configure_logging(verbose: bool, config: RoomSearchConfig) -> None:
    """Set up logging for the CLI session."""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=config.log_format)


# ---------------------------------------------------------------------------
# Input helpers
# ---------------------------------------------------------------------------

def _read_json(path: str, what: str):
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise click.ClickException(f"Cannot read {what} file {path}: {exc}")


def _build_config(abbreviations_file: Optional[str]) -> RoomSearchConfig:
    config = RoomSearchConfig.from_env()
    if abbreviations_file:
        config.abbreviations.update(load_abbreviations(abbreviations_file))
    config.validate()
    return config


def _load_finder(rooms_file: str, annotations_file: Optional[str],
                 config: RoomSearchConfig) -> RoomFinder:
    rows = _read_json(rooms_file, "rooms")
    if not isinstance(rows, list):
        raise click.ClickException(f"Rooms file {rooms_file} must contain a JSON list.")

    custom_tags: dict = {}
    staff_tags: dict = {}
    if annotations_file:
        data = _read_json(annotations_file, "annotations")
        if not isinstance(data, dict):
            raise click.ClickException(f"Annotations file {annotations_file} must contain a JSON object.")
        custom_tags = {
            room_id: [RichTag.from_dict(t) if isinstance(t, dict) else t for t in tags]
            for room_id, tags in (data.get("customTags") or {}).items()
        }
        staff_tags = {
            room_id: list(tags) for room_id, tags in (data.get("staffTags") or {}).items()
        }

    return RoomFinder(rooms=rows, config=config, custom_tags=custom_tags, staff_tags=staff_tags)


# ---------------------------------------------------------------------------
# Top-level group
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(package_name="roomsearch")
def cli():
    """roomsearch — find rooms by number, floor, building, type, or tag."""


# ---------------------------------------------------------------------------
# roomsearch search
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("query")
@click.option("--rooms", "rooms_file", required=True,
              type=click.Path(exists=True, dir_okay=False),
              help="JSON file with the list of room rows.")
@click.option("--annotations", "annotations_file", default=None,
              type=click.Path(exists=True, dir_okay=False),
              help="JSON file with customTags / staffTags maps.")
@click.option("--abbreviations", "abbreviations_file", default=None,
              type=click.Path(exists=True, dir_okay=False),
              help="JSON object of extra room-type abbreviations.")
@click.option("-f", "--format", "fmt",
              type=click.Choice(["console", "json", "compact"]),
              default="console", help="Output format.")
@click.option("-n", "--max-results", type=int, default=None,
              help="Maximum number of results.")
@click.option("-p", "--page", type=int, default=1, help="Page number (1-based).")
@click.option("--per-page", type=int, default=0,
              help="Results per page (0 = all on one page).")
@click.option("--building", default=None, help="Only rooms in this building.")
@click.option("--floor", default=None, help="Only rooms on this floor.")
@click.option("--tag", "tags", multiple=True, help="Only rooms carrying this tag (repeatable).")
@click.option("--explain", is_flag=True, help="Show scores and matched terms.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def search(query: str, rooms_file: str, annotations_file: Optional[str],
           abbreviations_file: Optional[str], fmt: str, max_results: Optional[int],
           page: int, per_page: int, building: Optional[str], floor: Optional[str],
           tags: tuple, explain: bool, verbose: bool):
    """Search the rooms in --rooms for QUERY."""
    try:
        config = _build_config(abbreviations_file)
        _configure_logging(verbose, config)
        finder = _load_finder(rooms_file, annotations_file, config)
    except RoomSearchError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    t0 = time.perf_counter()
    filters = RoomFilters(building=building, floor=floor, tags=tags)
    results = finder.rank(query, filters=filters)
    if max_results is not None:
        results = results[:max(0, max_results)]
    elapsed = time.perf_counter() - t0

    current = paginate(results, page=page, per_page=per_page)
    items = current.items if explain else [r.room for r in current.items]

    formatter = ResultFormatter()
    if fmt == "json":
        click.echo(formatter.format_json(items))
    elif fmt == "compact":
        click.echo(formatter.format_compact(items))
    else:
        click.echo(formatter.format_console(
            items,
            start_index=current.start_index,
            total_count=current.total_items,
            elapsed_time=elapsed,
        ))
        if current.total_pages > 1:
            click.echo(f"  Page {current.page}/{current.total_pages}")


# ---------------------------------------------------------------------------
# roomsearch parse
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("query")
def parse(query: str):
    """Show the search terms QUERY parses into, as JSON."""
    try:
        parser = QueryParser(RoomSearchConfig.from_env())
    except RoomSearchError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)
    click.echo(json.dumps([t.to_dict() for t in parser.parse(query)], indent=2))


# ---------------------------------------------------------------------------
# roomsearch tags
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("room_id")
@click.option("--rooms", "rooms_file", required=True,
              type=click.Path(exists=True, dir_okay=False),
              help="JSON file with the list of room rows.")
@click.option("--annotations", "annotations_file", default=None,
              type=click.Path(exists=True, dir_okay=False),
              help="JSON file with customTags / staffTags maps.")
def tags(room_id: str, rooms_file: str, annotations_file: Optional[str]):
    """List the unified search tags of room ROOM_ID."""
    try:
        finder = _load_finder(rooms_file, annotations_file, _build_config(None))
        unified = finder.tags_for(room_id)
    except RoomSearchError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)
    for tag in sorted(unified):
        click.echo(tag)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
