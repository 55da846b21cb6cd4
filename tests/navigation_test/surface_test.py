import pytest

from cyclenav.models import RouteGeometry, SurfaceQuality
from cyclenav.surface import classify_surface, surface_warnings, upcoming_surface_warnings


@pytest.mark.parametrize("surface, expected", [
    ("asphalt", None),
    ("concrete:plates", None),
    ("fine_gravel", None),
    ("paved", None),
    ("unpaved", SurfaceQuality.POOR),
    ("gravel", SurfaceQuality.POOR),
    ("Cobblestone", SurfaceQuality.POOR),
    ("wood", SurfaceQuality.UNKNOWN),
    ("", SurfaceQuality.UNKNOWN),
    (None, SurfaceQuality.UNKNOWN),
])
def test_classify_surface(surface, expected):
    assert classify_surface(surface) is expected


def _route_with_details(straight_route):
    coords = [(p.lat, p.lon) for p in straight_route.points[:11]]
    details = {"surface": [[0, 3, "asphalt"], [3, 6, "gravel"], [6, 10, "asphalt"]]}
    return RouteGeometry.from_path_details(coords, details)


def test_gravel_run_becomes_one_warning(straight_route):
    warnings = surface_warnings(_route_with_details(straight_route))

    assert len(warnings) == 1
    w = warnings[0]
    assert w.quality is SurfaceQuality.POOR
    assert w.surface == "gravel"
    assert w.start_along_m == pytest.approx(30.0, abs=0.01)
    assert w.length_m == pytest.approx(30.0, abs=0.01)
    assert (w.start_index, w.end_index) == (3, 6)


def test_route_without_surface_data_has_no_warnings(straight_route):
    assert surface_warnings(straight_route) == []


def test_upcoming_surface_warnings_window(straight_route):
    warnings = surface_warnings(_route_with_details(straight_route))

    assert upcoming_surface_warnings(warnings, 0.0, 50.0) == warnings
    assert upcoming_surface_warnings(warnings, 0.0, 20.0) == []
    assert upcoming_surface_warnings(warnings, 35.0, 500.0) == []
