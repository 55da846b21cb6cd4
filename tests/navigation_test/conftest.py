import math
from datetime import datetime, timedelta

import pytest

from cyclenav.geo_utils import EARTH_RADIUS_M
from cyclenav.models import Coord, Fix, HazardRecord, Progress, RouteGeometry

# Routes are laid out on the equator, where one degree is the same length
# in both directions and lateral offsets map straight onto latitude.
M_PER_DEG = EARTH_RADIUS_M * math.pi / 180
T0 = datetime(2024, 1, 1, 12, 0, 0)


def deg(metres: float) -> float:
    return metres / M_PER_DEG


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def straight_route():
    """1000 m due east, a vertex every 10 m."""
    return RouteGeometry.from_coords([(0.0, deg(10 * k)) for k in range(101)])


@pytest.fixture
def dense_route():
    """1000 m due east, a vertex every metre."""
    return RouteGeometry.from_coords([(0.0, deg(k)) for k in range(1001)])


@pytest.fixture
def l_route():
    """200 m east, then 200 m north."""
    east = [(0.0, deg(20 * k)) for k in range(11)]
    north = [(deg(20 * k), deg(200)) for k in range(1, 11)]
    return RouteGeometry.from_coords(east + north)


@pytest.fixture
def fix_at():
    """Fix `along_m` metres along the straight route, `lateral_m` north of it."""
    def make(along_m, lateral_m=0.0, t_s=0.0, speed=5.0, accuracy=5.0):
        return Fix(
            lat=deg(lateral_m),
            lon=deg(along_m),
            timestamp=T0 + timedelta(seconds=t_s),
            speed=speed,
            accuracy=accuracy,
        )
    return make


@pytest.fixture
def progress_at():
    """Progress for the straight route without running the tracker."""
    def make(along_m, lateral_m=0.0, low_confidence=False):
        return Progress(
            segment_index=int(along_m // 10),
            along_route_m=along_m,
            lateral_m=lateral_m,
            remaining_m=1000.0 - along_m,
            position=Coord(deg(lateral_m), deg(along_m)),
            snapped=Coord(0.0, deg(along_m)),
            low_confidence=low_confidence,
        )
    return make


@pytest.fixture
def hazard_at():
    def make(hazard_id, along_m, lateral_m=0.0, **kwargs):
        return HazardRecord(id=hazard_id, coord=Coord(deg(lateral_m), deg(along_m)), **kwargs)
    return make
