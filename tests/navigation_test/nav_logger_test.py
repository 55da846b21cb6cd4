import pytest

from cyclenav.nav_config import NavConfig
from cyclenav.nav_logger import NavLogger


@pytest.fixture
def nav_log(tmp_path):
    return NavLogger(NavConfig(log_dir=str(tmp_path / "logs")))


def test_route_save_and_load(nav_log, l_route):
    assert nav_log.save_route(l_route) is True

    restored = nav_log.load_route()
    assert restored is not None
    assert restored.points == l_route.points
    assert restored.total_m == pytest.approx(l_route.total_m)


def test_missing_route_file(nav_log, tmp_path):
    assert nav_log.load_route(str(tmp_path / "nope.json")) is None


def test_malformed_route_file(nav_log, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text('{"points": [{"lat": 1.0, "lon": 2.0}]}', encoding="utf-8")
    assert nav_log.load_route(str(bad)) is None

    bad.write_text("not json", encoding="utf-8")
    assert nav_log.load_route(str(bad)) is None
