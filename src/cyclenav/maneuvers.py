# maneuvers.py
# Derives turn-by-turn maneuvers from a route geometry.
# Router-supplied markers win; otherwise turns are inferred from bearing changes.

import logging
from typing import List, Optional

from .models import Maneuver, ManeuverType, RouteGeometry
from .geo_utils import calculate_bearing, normalize_bearing_diff
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


INSTRUCTIONS = {
    ManeuverType.DEPART:       "Start your route",
    ManeuverType.STRAIGHT:     "Continue straight",
    ManeuverType.SLIGHT_LEFT:  "Keep left",
    ManeuverType.SLIGHT_RIGHT: "Keep right",
    ManeuverType.TURN_LEFT:    "Turn left",
    ManeuverType.TURN_RIGHT:   "Turn right",
    ManeuverType.SHARP_LEFT:   "Sharp left turn",
    ManeuverType.SHARP_RIGHT:  "Sharp right turn",
    ManeuverType.U_TURN:       "Make a U-turn",
    ManeuverType.ARRIVE:       "You have arrived at your destination",
}


def classify_turn(bearing_diff: float, config: Optional[NavConfig] = None) -> ManeuverType:
    """
    Maneuver type for a change in bearing.

    Args:
        bearing_diff: Outgoing minus incoming bearing in degrees.
        config:       NavConfig with the angle thresholds.

    Returns:
        ManeuverType; positive (clockwise) changes are right turns.
    """
    config = config or NavConfig()
    diff = normalize_bearing_diff(bearing_diff)
    change = abs(diff)

    if change < config.slight_turn_deg:
        return ManeuverType.STRAIGHT
    if change > config.u_turn_deg:
        return ManeuverType.U_TURN

    right = diff > 0
    if change > config.sharp_turn_deg:
        return ManeuverType.SHARP_RIGHT if right else ManeuverType.SHARP_LEFT
    if change > config.turn_deg:
        return ManeuverType.TURN_RIGHT if right else ManeuverType.TURN_LEFT
    return ManeuverType.SLIGHT_RIGHT if right else ManeuverType.SLIGHT_LEFT


def _make(kind: ManeuverType, route: RouteGeometry, index: int) -> Maneuver:
    point = route[index]
    return Maneuver(
        type=kind,
        instruction=INSTRUCTIONS[kind],
        along_route_m=point.cumulative_m,
        point_index=index,
        location=point.coord,
    )


def _from_markers(route: RouteGeometry) -> List[Maneuver]:
    found: List[Maneuver] = []
    for i in range(1, len(route) - 1):
        marker = route[i].maneuver
        if not marker:
            continue
        try:
            kind = ManeuverType(marker)
        except ValueError:
            logger.warning(f"Unknown maneuver marker '{marker}' at point {i}; ignored.")
            continue
        if kind in (ManeuverType.DEPART, ManeuverType.ARRIVE, ManeuverType.STRAIGHT):
            continue
        found.append(_make(kind, route, i))
    return found


def _from_geometry(route: RouteGeometry, config: NavConfig) -> List[Maneuver]:
    found: List[Maneuver] = []
    for i in range(1, len(route) - 1):
        if (route.segment_length(i - 1) < config.min_maneuver_segment_m
                or route.segment_length(i) < config.min_maneuver_segment_m):
            continue
        before, here, after = route[i - 1], route[i], route[i + 1]
        b_in = calculate_bearing(before.lat, before.lon, here.lat, here.lon)
        b_out = calculate_bearing(here.lat, here.lon, after.lat, after.lon)
        kind = classify_turn(b_out - b_in, config)
        if kind != ManeuverType.STRAIGHT:
            found.append(_make(kind, route, i))
    return found


def detect_maneuvers(route: RouteGeometry, config: Optional[NavConfig] = None) -> List[Maneuver]:
    """
    Build the maneuver list for a route: depart, turns, arrive.

    Args:
        route:  Route geometry.
        config: NavConfig with turn thresholds.

    Returns:
        Maneuvers ordered by along-route distance.
    """
    config = config or NavConfig()
    has_markers = any(p.maneuver for p in route.points[1:-1])
    turns = _from_markers(route) if has_markers else _from_geometry(route, config)

    maneuvers = [_make(ManeuverType.DEPART, route, 0)]
    maneuvers.extend(turns)
    maneuvers.append(_make(ManeuverType.ARRIVE, route, len(route) - 1))
    logger.debug(f"Detected {len(maneuvers)} maneuvers ({'router' if has_markers else 'geometry'}).")
    return maneuvers


def next_maneuver(maneuvers: List[Maneuver], along_m: float) -> Optional[Maneuver]:
    """First maneuver strictly ahead of along_m, else the final one."""
    if not maneuvers:
        return None
    for m in maneuvers:
        if m.along_route_m > along_m:
            return m
    return maneuvers[-1]
