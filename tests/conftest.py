"""
Shared fixtures for the roomsearch test suite.
"""

import sys
from pathlib import Path

import pytest

# Ensure the src/ directory is on the import path so that
# roomsearch.core.* can be imported without installing the package.
SRC_ROOT = Path(__file__).resolve().parent.parent / "src"
sys.path.insert(0, str(SRC_ROOT))

from roomsearch.core.config import RoomSearchConfig  # noqa: E402
from roomsearch.core.models import Room  # noqa: E402


# =============================================================================
# Fixtures: room collections
# =============================================================================

@pytest.fixture
def config() -> RoomSearchConfig:
    """Default configuration, independent of the environment."""
    return RoomSearchConfig()


@pytest.fixture
def scenario_rooms() -> list:
    """Two Main rooms sharing the digits 4214, plus one Annex room."""
    return [
        Room(id=1, rmnbr="4214", floor=4, building="Main"),
        Room(id=2, rmnbr="F4214T", floor=4, building="Main"),
        Room(id=3, rmnbr="9001", floor=9, building="Annex"),
    ]


@pytest.fixture
def sample_room() -> Room:
    """A room with every field populated."""
    return Room(
        id=10,
        rmnbr="F4214T",
        building="University Hospital",
        bld_descrshort="UH",
        floor=3,
        dept_descr="Internal Medicine/Cardiology",
        type_full="Conference Room",
        rmtyp_descrshort="Conf",
        rmsubtyp_descrshort="Lnge",
        tags=["Shared Space"],
        rmrecnbr=123456,
    )


@pytest.fixture
def room_rows() -> list:
    """Raw room rows as they arrive from the data source (``typeFull`` key)."""
    return [
        {"id": 1, "rmnbr": "4214", "floor": 4, "building": "Main",
         "bld_descrshort": "MN", "typeFull": "Office", "rmtyp_descrshort": "Off",
         "dept_descr": "Radiology", "rmrecnbr": 1001},
        {"id": 2, "rmnbr": "F4214T", "floor": 4, "building": "Main",
         "typeFull": "Conference Room", "rmtyp_descrshort": "Conf",
         "dept_descr": "Cardiology", "tags": ["Shared Space"], "rmrecnbr": 1002},
        {"id": 3, "rmnbr": "9001", "floor": 9, "building": "Annex",
         "typeFull": "Laboratory", "rmtyp_descrshort": "Lab", "dept_descr": "Pathology"},
    ]
