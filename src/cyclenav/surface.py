# surface.py
# Road-surface quality from per-point route metadata.

import logging
from typing import List, Optional

from .models import RouteGeometry, SurfaceQuality, SurfaceWarning

logger = logging.getLogger(__name__)


GOOD_SURFACES = ("asphalt", "concrete", "paved", "compacted", "fine_gravel")
POOR_SURFACES = ("gravel", "unpaved", "dirt", "sand", "grass", "mud", "cobble", "sett")


def classify_surface(surface: Optional[str]) -> Optional[SurfaceQuality]:
    """
    Quality class of a surface tag.

    Returns:
        None for surfaces that need no warning, otherwise POOR or UNKNOWN.
    """
    s = (surface or "").strip().lower()
    if not s:
        return SurfaceQuality.UNKNOWN
    # "unpaved" contains "paved"
    if "unpaved" in s:
        return SurfaceQuality.POOR
    if any(good in s for good in GOOD_SURFACES):
        return None
    if any(poor in s for poor in POOR_SURFACES):
        return SurfaceQuality.POOR
    return SurfaceQuality.UNKNOWN


def surface_warnings(route: RouteGeometry) -> List[SurfaceWarning]:
    """
    Contiguous stretches of warning-worthy surface along the route.

    Point i's surface describes segment i, so a run over points [a, b]
    covers the distance from point a to point b + 1.
    """
    if not any(p.surface for p in route.points):
        return []

    warnings: List[SurfaceWarning] = []
    n_segments = route.segment_count
    i = 0
    while i < n_segments:
        surface = route[i].surface or "unknown"
        quality = classify_surface(surface)
        j = i
        while j + 1 < n_segments and (route[j + 1].surface or "unknown") == surface:
            j += 1
        if quality is not None:
            start = float(route.cumulative[i])
            warnings.append(SurfaceWarning(
                quality=quality,
                surface=surface,
                start_along_m=start,
                length_m=float(route.cumulative[j + 1]) - start,
                start_index=i,
                end_index=j + 1,
            ))
        i = j + 1

    logger.debug(f"{len(warnings)} surface warnings on route.")
    return warnings


def upcoming_surface_warnings(
    warnings: List[SurfaceWarning],
    along_m: float,
    lookahead_m: float,
) -> List[SurfaceWarning]:
    """Warnings whose stretch starts ahead of the rider within lookahead_m."""
    return [w for w in warnings if 0.0 < w.start_along_m - along_m <= lookahead_m]
