from datetime import timedelta

import pytest

from cyclenav.models import Decision
from cyclenav.nav_config import NavConfig
from cyclenav.off_route import OffRouteDetector


@pytest.mark.parametrize("speed_kmh, expected", [(0.0, 20.0), (8.0, 20.0), (18.0, 30.0), (40.0, 50.0)])
def test_threshold_grows_with_speed(speed_kmh, expected):
    assert NavConfig().lateral_threshold_m(speed_kmh) == expected


def test_on_route_continues(progress_at, t0):
    detector = OffRouteDetector()
    assert detector.evaluate(progress_at(100, lateral_m=15), 8.0, t0) is Decision.CONTINUE


def test_same_lateral_offset_depends_on_speed_tier(progress_at, t0):
    assert OffRouteDetector().evaluate(progress_at(100, lateral_m=25), 30.0, t0) is Decision.CONTINUE
    assert OffRouteDetector().evaluate(progress_at(100, lateral_m=25), 8.0, t0) is Decision.TRIGGER_REROUTE


def test_cooldown_blocks_second_trigger(progress_at, t0):
    detector = OffRouteDetector()

    assert detector.evaluate(progress_at(100, lateral_m=80), 7.0, t0) is Decision.TRIGGER_REROUTE
    later = t0 + timedelta(seconds=1)
    assert detector.evaluate(progress_at(105, lateral_m=80), 7.0, later) is Decision.CONTINUE


def test_never_triggers_twice_within_cooldown(progress_at, t0):
    detector = OffRouteDetector(NavConfig(reroute_cooldown_s=10.0))
    decisions = [
        detector.evaluate(progress_at(100 + 20 * s, lateral_m=80), 7.0, t0 + timedelta(seconds=s))
        for s in range(10)
    ]
    assert decisions.count(Decision.TRIGGER_REROUTE) == 1


def test_triggers_again_after_cooldown_and_movement(progress_at, t0):
    detector = OffRouteDetector(NavConfig(reroute_cooldown_s=10.0, reroute_min_movement_m=10.0))
    detector.evaluate(progress_at(100, lateral_m=80), 7.0, t0)

    decision = detector.evaluate(progress_at(150, lateral_m=80), 7.0, t0 + timedelta(seconds=12))
    assert decision is Decision.TRIGGER_REROUTE


def test_stationary_rider_is_not_rerouted_again(progress_at, t0):
    detector = OffRouteDetector(NavConfig(reroute_cooldown_s=10.0, reroute_min_movement_m=10.0))
    detector.evaluate(progress_at(100, lateral_m=80), 7.0, t0)

    # cooldown over but rider has not moved; the blocked attempt restarts the cooldown
    assert detector.evaluate(progress_at(102, lateral_m=80), 0.0, t0 + timedelta(seconds=11)) is Decision.CONTINUE
    assert detector.last_attempt_at == t0 + timedelta(seconds=11)
    assert detector.evaluate(progress_at(140, lateral_m=80), 7.0, t0 + timedelta(seconds=15)) is Decision.CONTINUE
    assert detector.evaluate(progress_at(140, lateral_m=80), 7.0, t0 + timedelta(seconds=22)) is Decision.TRIGGER_REROUTE


def test_low_confidence_fix_needs_corroboration(progress_at, t0):
    detector = OffRouteDetector()

    first = detector.evaluate(progress_at(100, lateral_m=80, low_confidence=True), 7.0, t0)
    second = detector.evaluate(progress_at(104, lateral_m=80), 7.0, t0 + timedelta(seconds=3))

    assert first is Decision.CONTINUE
    assert second is Decision.TRIGGER_REROUTE


def test_on_route_fix_clears_unconfirmed_reading(progress_at, t0):
    detector = OffRouteDetector()

    detector.evaluate(progress_at(100, lateral_m=80, low_confidence=True), 7.0, t0)
    detector.evaluate(progress_at(104, lateral_m=2), 7.0, t0 + timedelta(seconds=3))
    decision = detector.evaluate(progress_at(108, lateral_m=80, low_confidence=True), 7.0, t0 + timedelta(seconds=6))

    assert decision is Decision.CONTINUE


def test_unknown_speed_uses_lowest_tier(progress_at, t0):
    assert OffRouteDetector().evaluate(progress_at(100, lateral_m=25), None, t0) is Decision.TRIGGER_REROUTE
