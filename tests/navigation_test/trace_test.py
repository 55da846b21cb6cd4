import pytest

from cyclenav.session import NavigationSession
from cyclenav.trace import FixTrace


def test_stream_reads_fixes(tmp_path):
    path = tmp_path / "ride.csv"
    path.write_text(
        "timestamp,lat,lon,speed,accuracy\n"
        "2024-01-01T12:00:00,0.0,0.0,5.0,4.0\n"
        "2024-01-01T12:00:05,,,5.0,\n"
        "2024-01-01T12:00:10,0.0,0.0004,,6.0\n",
        encoding="utf-8",
    )

    fixes = list(FixTrace(path, chunksize=2).stream())

    assert len(fixes) == 3
    assert fixes[0].speed == 5.0
    assert fixes[0].heading is None
    assert fixes[1].lat is None and not fixes[1].has_position
    assert fixes[1].accuracy is None
    assert fixes[2].speed is None
    assert (fixes[2].timestamp - fixes[0].timestamp).total_seconds() == 10.0


def test_session_drops_rows_without_position(tmp_path, straight_route):
    path = tmp_path / "ride.csv"
    path.write_text(
        "timestamp,lat,lon\n"
        "2024-01-01T12:00:00,0.0,0.0\n"
        "2024-01-01T12:00:05,,\n",
        encoding="utf-8",
    )
    session = NavigationSession()
    session.start(straight_route)

    updates = [session.update(fix) for fix in FixTrace(path).stream()]

    assert updates[0] is not None
    assert updates[1] is None


def test_custom_column_mapping(tmp_path):
    path = tmp_path / "ride.csv"
    path.write_text("time;latitude;longitude\n2024-01-01T12:00:00;52.1;4.3\n", encoding="utf-8")
    mapping = {"lat": "latitude", "lon": "longitude", "timestamp": "time"}

    (fix,) = FixTrace(path, sep=";", col_mapping=mapping).stream()

    assert (fix.lat, fix.lon) == (52.1, 4.3)


def test_missing_required_column(tmp_path):
    path = tmp_path / "ride.csv"
    path.write_text("timestamp,lat\n2024-01-01T12:00:00,0.0\n", encoding="utf-8")

    with pytest.raises(ValueError):
        list(FixTrace(path).stream())
