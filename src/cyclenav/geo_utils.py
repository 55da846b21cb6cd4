# geo_utils.py
# Pure mathematical / geographic helper functions.
# No side effects, no imports from other project modules.

import math
from typing import NamedTuple, Optional

import numpy as np


EARTH_RADIUS_M = 6_371_000.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in metres.

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Distance in metres.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def haversine_array(lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """Great-circle length in metres of each consecutive pair in a polyline."""
    rlat = np.radians(lats)
    d_lat = np.diff(rlat)
    d_lon = np.radians(np.diff(lons))
    a = np.sin(d_lat / 2) ** 2 + np.cos(rlat[:-1]) * np.cos(rlat[1:]) * np.sin(d_lon / 2) ** 2
    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def calculate_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Forward azimuth (bearing) from point 1 to point 2 in degrees [0, 360).

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Bearing in degrees.
    """
    rlat1, rlon1 = math.radians(lat1), math.radians(lon1)
    rlat2, rlon2 = math.radians(lat2), math.radians(lon2)
    d_lon = rlon2 - rlon1
    y = math.sin(d_lon) * math.cos(rlat2)
    x = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(d_lon)
    return (math.degrees(math.atan2(y, x)) + 360) % 360


def normalize_bearing_diff(bearing_diff: float) -> float:
    """Wrap a bearing difference into [-180, 180). Positive means clockwise (right)."""
    return (bearing_diff + 180) % 360 - 180


# ---------------------------------------------------------------------------
# Nearest-segment projection
# ---------------------------------------------------------------------------

class SegmentProjection(NamedTuple):
    """Closest point on a polyline to a query point."""
    segment_index: int   # segment i joins points i and i + 1
    fraction: float      # position along the segment in [0, 1]
    lateral_m: float     # distance from the query point to the closest point
    lat: float
    lon: float


def project_onto_polyline(
    lats: np.ndarray,
    lons: np.ndarray,
    lat: float,
    lon: float,
    start: int = 0,
    stop: Optional[int] = None,
) -> SegmentProjection:
    """
    Project a point onto segments [start, stop) of a polyline.

    Coordinates are flattened to a local equirectangular plane centred on the
    query point, which is accurate to well under a metre at city scale.

    Args:
        lats, lons: Polyline vertices in decimal degrees.
        lat, lon:   Query point.
        start:      First segment index to consider.
        stop:       One past the last segment index (defaults to all).

    Returns:
        SegmentProjection for the closest segment. Ties go to the lower index.

    Raises:
        ValueError: If the segment range is empty.
    """
    n_segments = len(lats) - 1
    stop = n_segments if stop is None else min(stop, n_segments)
    start = max(start, 0)
    if start >= stop:
        raise ValueError(f"Empty segment range [{start}, {stop}).")

    metres_per_rad_lon = EARTH_RADIUS_M * math.cos(math.radians(lat))
    ax = np.radians(lons[start:stop] - lon) * metres_per_rad_lon
    ay = np.radians(lats[start:stop] - lat) * EARTH_RADIUS_M
    bx = np.radians(lons[start + 1:stop + 1] - lon) * metres_per_rad_lon
    by = np.radians(lats[start + 1:stop + 1] - lat) * EARTH_RADIUS_M

    dx = bx - ax
    dy = by - ay
    seg_sq = dx * dx + dy * dy

    # query point is the origin, so (P - A) == (-ax, -ay)
    with np.errstate(divide="ignore", invalid="ignore"):
        t = np.where(seg_sq > 0, (-ax * dx - ay * dy) / seg_sq, 0.0)
    t = np.clip(t, 0.0, 1.0)

    dist = np.hypot(ax + t * dx, ay + t * dy)
    k = int(np.argmin(dist))
    i = start + k
    frac = float(t[k])
    return SegmentProjection(
        segment_index=i,
        fraction=frac,
        lateral_m=float(dist[k]),
        lat=float(lats[i] + frac * (lats[i + 1] - lats[i])),
        lon=float(lons[i] + frac * (lons[i + 1] - lons[i])),
    )
