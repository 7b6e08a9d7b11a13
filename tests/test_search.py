"""
Tests for roomsearch.core.search — ranking, thresholds, filters,
pagination, and output formatting.
"""

import json
import logging

import pytest
from roomsearch.core.models import Room, ScoredResult, create_rich_tag
from roomsearch.core.search import (
    ResultFormatter,
    RoomFilters,
    RoomSearchEngine,
    annotations_for,
    is_sufficient,
    paginate,
    search,
)


@pytest.fixture
def engine(config):
    return RoomSearchEngine(config)


def _ids(rooms):
    return [r.id if isinstance(r, Room) else r["id"] for r in rooms]


# =============================================================================
# Threshold
# =============================================================================

class TestSufficiency:

    @pytest.mark.parametrize("total,matched,hp,expected", [
        (1, 1, 0, True),
        (1, 0, 0, False),
        (2, 2, 0, True),
        (2, 1, 1, True),
        (2, 1, 0, False),
        (3, 2, 0, True),
        (3, 1, 0, False),
        (3, 1, 1, True),
        (4, 2, 0, False),
        (4, 3, 0, True),
        (4, 2, 1, True),
        (5, 3, 0, True),
        (5, 2, 0, False),
        (5, 2, 1, True),
        (0, 0, 0, False),
    ])
    def test_table(self, total, matched, hp, expected):
        assert is_sufficient(total, matched, hp) is expected

    @pytest.mark.parametrize("total", range(1, 8))
    def test_monotone_in_matches(self, total):
        for hp in (0, 1):
            results = [is_sufficient(total, m, min(hp, m)) for m in range(total + 1)]
            # once sufficient, more matches stay sufficient
            first = results.index(True) if True in results else len(results)
            assert all(results[first:])


# =============================================================================
# Engine scenarios
# =============================================================================

class TestRanking:

    def test_exact_room_number_first(self, engine, scenario_rooms):
        ranked = engine.rank("4214", scenario_rooms)
        assert _ids(r.room for r in ranked) == [1, 2]
        assert ranked[0].score == pytest.approx(90.0)
        assert ranked[1].score == pytest.approx(36.0)

    def test_floor_and_room_number(self, engine, scenario_rooms):
        ranked = engine.rank("4214 floor 4", scenario_rooms)
        assert _ids(r.room for r in ranked) == [1, 2]
        assert ranked[0].score == pytest.approx(195.0)
        assert ranked[1].score == pytest.approx(84.0)
        assert ranked[0].high_priority_match_count == 2

    def test_match_details(self, engine, scenario_rooms):
        top = engine.rank("4214 floor 4", scenario_rooms)[0]
        assert top.match_details == [
            {"term": "floor 4", "type": "floor", "score": 10, "boost": 2.0},
            {"term": "4214", "type": "room_number", "score": 15, "boost": 3.0},
        ]

    def test_building_term(self, engine, scenario_rooms):
        ranked = engine.rank("building main", scenario_rooms)
        assert _ids(r.room for r in ranked) == [1, 2]
        assert all(r.score == pytest.approx(15.0) for r in ranked)

    def test_ties_keep_collection_order(self, engine, scenario_rooms):
        assert _ids(engine.search("floor 4", scenario_rooms)) == [1, 2]
        assert _ids(engine.search("floor 4", list(reversed(scenario_rooms)))) == [2, 1]

    def test_high_priority_rescues_two_term_query(self, engine, scenario_rooms):
        assert _ids(engine.search("floor 4 xyzzy", scenario_rooms)) == [1, 2]

    def test_two_term_query_needs_both_without_priority(self, engine, scenario_rooms):
        assert engine.search("building main xyzzy", scenario_rooms) == []

    def test_no_match(self, engine, scenario_rooms):
        assert engine.search("xyzzy", scenario_rooms) == []

    def test_dict_rows(self, engine, room_rows):
        assert _ids(engine.search("4214", room_rows)) == [1, 2]

    def test_general_term_hits_type_and_abbreviation(self, engine, room_rows):
        assert _ids(engine.search("laboratory", room_rows)) == [3]

    def test_module_level_search(self, scenario_rooms):
        assert _ids(search("floor 9", scenario_rooms)) == [3]

    def test_records_elapsed_time(self, engine, scenario_rooms):
        engine.rank("4214", scenario_rooms)
        assert engine.last_search_elapsed_seconds >= 0

    def test_ordinal_floor_and_building_word(self, engine, scenario_rooms):
        rooms = scenario_rooms + [Room(id=4, rmnbr="3100", floor=3, building="Annex")]
        assert _ids(engine.search("3rd floor Annex", rooms)) == [4]

    def test_floor_phrasings_agree(self, engine, scenario_rooms):
        rooms = scenario_rooms + [Room(id=4, rmnbr="3100", floor=3, building="Annex")]
        found = {
            query: _ids(engine.search(query, rooms))
            for query in ("3rd floor", "floor 3", "level 3", "third floor")
        }
        assert all(ids == [4] for ids in found.values()), found

    def test_float_floor_matches_integer_query(self):
        assert _ids(search("floor 3", [Room(id=7, rmnbr="100", floor=3.0)])) == [7]

    def test_float_room_number_gets_exact_boost(self, engine):
        ranked = engine.rank("4214", [Room(id=1, rmnbr=4214.0, floor=4.0)])
        assert ranked[0].score == pytest.approx(90.0)


class TestEmptyQueries:

    @pytest.mark.parametrize("query", ["", "   ", "the of and", None])
    def test_returns_all_rooms_in_order(self, engine, scenario_rooms, query):
        assert _ids(engine.search(query, scenario_rooms)) == [1, 2, 3]

    def test_empty_collection(self, engine):
        assert engine.search("4214", []) == []


class TestResultInvariants:

    def test_results_subset_of_input(self, engine, scenario_rooms):
        results = engine.search("floor 4", scenario_rooms)
        assert all(any(r is room for room in scenario_rooms) for r in results)

    def test_scores_descending(self, engine, room_rows):
        ranked = engine.rank("4214 main", room_rows)
        scores = [r.score for r in ranked]
        assert scores == sorted(scores, reverse=True)

    def test_deterministic(self, engine, room_rows):
        assert engine.search("main office", room_rows) == engine.search("main office", room_rows)

    def test_does_not_mutate_inputs(self, engine, room_rows):
        before = json.dumps(room_rows, sort_keys=True)
        staff = {1: ["Staff: Jane"]}
        engine.search("jane 4214", room_rows, staff_tags=staff)
        assert json.dumps(room_rows, sort_keys=True) == before
        assert staff == {1: ["Staff: Jane"]}

    def test_include_excluded(self, engine, scenario_rooms):
        ranked = engine.rank("4214", scenario_rooms, include_excluded=True)
        assert _ids(r.room for r in ranked) == [1, 2, 3]
        assert ranked[-1].included is False
        assert ranked[-1].score == 0

    @pytest.mark.parametrize("query", [
        "building main floor 4 4214",
        "4214 main office",
        "main conference cardiology",
        "floor 9 laboratory pathology",
    ])
    def test_extra_unmatched_term_never_adds_rooms(self, engine, room_rows, query):
        base = set(_ids(engine.search(query, room_rows)))
        widened = set(_ids(engine.search(f"{query} xyzzy", room_rows)))
        assert widened <= base


# =============================================================================
# Annotations
# =============================================================================

class TestAnnotations:

    def test_staff_tag_visible_on_next_search(self, engine, scenario_rooms):
        staff = {}
        assert engine.search("staff: jane", scenario_rooms, staff_tags=staff) == []
        staff[3] = ["Staff: Jane Doe"]
        assert _ids(engine.search("staff: jane", scenario_rooms, staff_tags=staff)) == [3]

    def test_string_keys_from_json(self, engine, scenario_rooms):
        staff = {"3": ["Staff: Jane Doe"]}
        assert _ids(engine.search("staff: jane", scenario_rooms, staff_tags=staff)) == [3]

    def test_custom_tag_general_match(self, engine, scenario_rooms):
        custom = {1: [create_rich_tag("Projector")]}
        ranked = engine.rank("projector", scenario_rooms, custom_tags=custom)
        assert _ids(r.room for r in ranked) == [1]
        assert ranked[0].score == pytest.approx(8.0)

    def test_removed_tag_no_longer_matches(self, engine, scenario_rooms):
        custom = {1: [create_rich_tag("Projector")]}
        engine.search("projector", scenario_rooms, custom_tags=custom)
        custom[1].clear()
        assert engine.search("projector", scenario_rooms, custom_tags=custom) == []

    def test_annotations_for(self):
        mapping = {1: ["a"], "2": ["b"]}
        assert annotations_for(mapping, 1) == ["a"]
        assert annotations_for(mapping, 2) == ["b"]
        assert annotations_for(mapping, 3) == ()
        assert annotations_for(None, 1) == ()
        assert annotations_for(mapping, None) == ()


# =============================================================================
# Malformed records and logging
# =============================================================================

class _Unprintable:
    def __str__(self):
        raise RuntimeError("broken field")


class TestMalformedRecords:

    def test_bad_record_is_skipped(self, engine, scenario_rooms, caplog):
        rooms = scenario_rooms + [Room(id=99, rmnbr="4214", floor=_Unprintable())]
        with caplog.at_level(logging.WARNING, logger="roomsearch.core.search"):
            results = engine.search("4214", rooms)
        assert _ids(results) == [1, 2]
        assert "could not be scored" in caplog.text

    def test_rows_missing_fields(self, engine, scenario_rooms):
        rooms = [{"id": 50}] + scenario_rooms
        assert _ids(engine.search("4214", rooms)) == [1, 2]

    def test_near_misses_logged_at_debug(self, engine, scenario_rooms, caplog):
        with caplog.at_level(logging.DEBUG, logger="roomsearch.core.search"):
            engine.search("xyzzy", scenario_rooms)
        assert "No results for 'xyzzy'" in caplog.text
        assert "near miss" in caplog.text

    def test_summary_logged_at_info(self, engine, scenario_rooms, caplog):
        with caplog.at_level(logging.INFO, logger="roomsearch.core.search"):
            engine.search("4214", scenario_rooms)
        assert "2/3 rooms matched" in caplog.text


# =============================================================================
# Filters & pagination
# =============================================================================

class TestRoomFilters:

    def test_empty(self):
        assert RoomFilters().is_empty()
        assert not RoomFilters(floor=0).is_empty()

    def test_building(self, scenario_rooms):
        assert _ids(RoomFilters(building="MAIN").apply(scenario_rooms)) == [1, 2]

    def test_building_short_name(self, room_rows):
        assert _ids(RoomFilters(building="mn").apply(room_rows)) == [1]

    def test_floor(self, scenario_rooms):
        assert _ids(RoomFilters(floor="9").apply(scenario_rooms)) == [3]
        assert _ids(RoomFilters(floor=4).apply(scenario_rooms)) == [1, 2]

    def test_float_floor(self):
        rooms = [Room(id=7, floor=3.0), Room(id=8, floor=3.5)]
        assert _ids(RoomFilters(floor="3").apply(rooms)) == [7]

    def test_category_tag(self, room_rows):
        assert _ids(RoomFilters(tags=["shared space"]).apply(room_rows)) == [2]

    def test_custom_tag(self, room_rows):
        custom = {"1": [{"name": "Projector"}]}
        assert _ids(RoomFilters(tags=["Projector"]).apply(room_rows, custom)) == [1]

    def test_all_filters_must_pass(self, room_rows):
        assert RoomFilters(building="main", floor="9").apply(room_rows) == []


class TestPaginate:

    def test_middle_page(self):
        page = paginate(list(range(10)), page=2, per_page=3)
        assert page.items == [3, 4, 5]
        assert page.total_pages == 4
        assert page.total_items == 10
        assert page.start_index == 4

    def test_page_clamped(self):
        assert paginate(list(range(10)), page=99, per_page=3).items == [9]
        assert paginate(list(range(10)), page=0, per_page=3).items == [0, 1, 2]

    def test_single_page(self):
        page = paginate([1, 2, 3])
        assert page.items == [1, 2, 3]
        assert page.total_pages == 1
        assert page.start_index == 1

    def test_empty(self):
        page = paginate([], per_page=5)
        assert page.items == []
        assert page.total_pages == 1


# =============================================================================
# Formatting
# =============================================================================

class TestResultFormatter:

    def test_console_empty(self):
        assert "No rooms found." in ResultFormatter.format_console([])

    def test_console_rooms(self, sample_room):
        out = ResultFormatter.format_console([sample_room])
        assert "ROOMSEARCH — 1 room" in out
        assert "Room F4214T — University Hospital" in out
        assert "rmrecnbr=123456" in out

    def test_console_scored(self, engine, scenario_rooms):
        out = ResultFormatter.format_console(engine.rank("4214", scenario_rooms))
        assert "Score  : 90.0" in out
        assert "room_number:4214(+45.0)" in out

    def test_json_rooms(self, sample_room):
        data = json.loads(ResultFormatter.format_json([sample_room]))
        assert data[0]["room"]["typeFull"] == "Conference Room"
        assert data[0]["mgis_link"].endswith("rmrecnbr=123456")

    def test_json_scored(self, engine, scenario_rooms):
        data = json.loads(ResultFormatter.format_json(engine.rank("4214", scenario_rooms)))
        assert [d["room"]["id"] for d in data] == [1, 2]
        assert data[0]["score"] == 90.0
        assert "mgis_link" not in data[0]

    def test_compact(self, engine, scenario_rooms):
        out = ResultFormatter.format_compact(engine.rank("4214", scenario_rooms))
        assert out.splitlines()[0] == "1  4214  Main  floor 4  [90.0]"
        assert ResultFormatter.format_compact([]) == "No rooms found."

    def test_compact_ground_floor(self):
        room = Room(id=5, rmnbr="001", building="Main", floor=0)
        assert ResultFormatter.format_compact([room]) == "5  001  Main  floor 0"
        assert ResultFormatter.format_compact([Room(id=6)]) == "6  -  -  floor -"

    def test_scored_result_to_dict(self, scenario_rooms):
        result = ScoredResult(room=scenario_rooms[0], score=1.23456, included=True)
        assert result.to_dict()["score"] == 1.23
