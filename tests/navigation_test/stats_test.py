import math
from datetime import timedelta

import pytest

from cyclenav.models import Fix
from cyclenav.nav_config import NavConfig
from cyclenav.stats import StatsAccumulator


def _fix(t0, t_s, speed):
    return Fix(lat=0.0, lon=0.0, timestamp=t0 + timedelta(seconds=t_s), speed=speed)


def _ride(stats, t0, samples):
    """samples: (elapsed_s, along_m, speed) triples."""
    t = 0.0
    for elapsed, along, speed in samples:
        t += elapsed
        stats.update(_fix(t0, t, speed), timedelta(seconds=elapsed), along)


def test_zero_elapsed_is_skipped(t0):
    stats = StatsAccumulator()
    stats.rebase(0.0)

    assert stats.update(_fix(t0, 0, 5.0), timedelta(0), 10.0) is False
    snap = stats.snapshot()
    assert snap.elapsed_s == 0.0
    assert snap.distance_m == 0.0
    assert snap.avg_with_stops_mps is None


def test_constant_speed(t0):
    stats = StatsAccumulator()
    stats.rebase(0.0)
    _ride(stats, t0, [(5.0, 25.0 * k, 5.0) for k in range(1, 21)])

    snap = stats.snapshot()
    assert snap.distance_m == pytest.approx(500.0)
    assert snap.elapsed_s == pytest.approx(100.0)
    assert snap.moving_s == pytest.approx(100.0)
    assert snap.avg_with_stops_mps == pytest.approx(5.0)
    assert snap.avg_without_stops_kmh == pytest.approx(18.0)


def test_stops_lower_only_the_average_with_stops(t0):
    stats = StatsAccumulator()
    stats.rebase(0.0)
    moving = [(5.0, 25.0 * k, 5.0) for k in range(1, 11)]
    stopped = [(5.0, 250.0, 0.0) for _ in range(10)]
    _ride(stats, t0, moving + stopped)

    snap = stats.snapshot()
    assert snap.moving_s == pytest.approx(50.0)
    assert snap.avg_with_stops_mps == pytest.approx(2.5)
    assert snap.avg_without_stops_mps == pytest.approx(5.0)


def test_stationary_rider_has_no_moving_average_or_eta(t0):
    stats = StatsAccumulator()
    stats.rebase(0.0)
    _ride(stats, t0, [(5.0, 0.0, 0.2) for _ in range(10)])

    snap = stats.snapshot()
    assert snap.moving_s == 0.0
    assert snap.avg_without_stops_mps is None
    assert snap.avg_with_stops_mps == 0.0
    assert stats.eta(800.0) is None


def test_eta_range_uses_fixed_buffer(t0):
    stats = StatsAccumulator(NavConfig(eta_buffer_s=120.0))
    stats.rebase(0.0)
    _ride(stats, t0, [(5.0, 25.0 * k, 5.0) for k in range(1, 5)])

    eta = stats.eta(1000.0)
    assert eta.expected_s == pytest.approx(200.0)
    assert eta.earliest_s == pytest.approx(80.0)
    assert eta.latest_s == pytest.approx(320.0)
    assert all(math.isfinite(v) for v in (eta.earliest_s, eta.expected_s, eta.latest_s))


def test_eta_earliest_never_negative(t0):
    stats = StatsAccumulator(NavConfig(eta_buffer_s=120.0))
    stats.rebase(0.0)
    _ride(stats, t0, [(5.0, 25.0, 5.0)])

    assert stats.eta(50.0).earliest_s == 0.0


def test_eta_at_destination_is_zero():
    eta = StatsAccumulator().eta(0.0)
    assert (eta.earliest_s, eta.expected_s, eta.latest_s) == (0.0, 0.0, 0.0)


def test_eta_unavailable_without_any_sample():
    assert StatsAccumulator().eta(500.0) is None


def test_missing_speed_is_derived_from_progress(t0):
    stats = StatsAccumulator()
    stats.rebase(0.0)
    _ride(stats, t0, [(5.0, 20.0, None), (5.0, 40.0, None)])

    snap = stats.snapshot()
    assert snap.current_speed_mps == pytest.approx(4.0)
    assert snap.moving_s == pytest.approx(10.0)


def test_rebase_prevents_negative_distance(t0):
    stats = StatsAccumulator()
    stats.rebase(0.0)
    _ride(stats, t0, [(5.0, 300.0, 5.0)])
    stats.rebase(0.0)
    _ride(stats, t0 + timedelta(seconds=5), [(5.0, 20.0, 4.0)])

    assert stats.snapshot().distance_m == pytest.approx(320.0)
