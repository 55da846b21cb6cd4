# route_tracker.py
# Tracks a rider's position along the active route geometry.
# Call load_route() once, then update() on every GPS fix.

import logging
from typing import Optional

import numpy as np

from .models import Coord, Fix, Progress, RouteGeometry
from .geo_utils import SegmentProjection, project_onto_polyline
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


class RouteTracker:
    """
    Stateful progress tracker for a single route.

    The search only ever looks forward from the last matched segment, so the
    segment index never moves backwards until a new route is loaded.

    Usage:
        tracker = RouteTracker(config)
        tracker.load_route(route)

        # Inside GPS loop:
        progress = tracker.update(fix)
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        self._route: Optional[RouteGeometry] = None
        self._progress: Optional[Progress] = None

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def load_route(self, route: RouteGeometry) -> None:
        """Load a new route and reset progress to segment 0."""
        self._route = route
        self._progress = None

    def reset(self) -> None:
        """Drop the route and all progress."""
        self._route = None
        self._progress = None

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def route(self) -> Optional[RouteGeometry]:
        return self._route

    @property
    def progress(self) -> Optional[Progress]:
        return self._progress

    @property
    def segment_index(self) -> int:
        return self._progress.segment_index if self._progress else 0

    @property
    def along_route_m(self) -> float:
        return self._progress.along_route_m if self._progress else 0.0

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    def project(self, coord: Coord) -> SegmentProjection:
        """Project a coordinate onto the whole route without touching progress."""
        route = self._require_route()
        return project_onto_polyline(route.lats, route.lons, coord.lat, coord.lon)

    def along_distance(self, projection: SegmentProjection) -> float:
        return self._require_route().along_distance(projection.segment_index, projection.fraction)

    # ------------------------------------------------------------------
    # Core method, call on every GPS fix
    # ------------------------------------------------------------------

    def update(self, fix: Fix) -> Progress:
        """
        Match a GPS fix to the route.

        Args:
            fix: Current GPS observation. Must have a position.

        Returns:
            Progress with segment index, along-route and lateral distance.

        Raises:
            ValueError: If the fix has no position or no route is loaded.
        """
        route = self._require_route()
        if not fix.has_position:
            raise ValueError("Fix has no position.")

        start = self.segment_index
        window_stop = self._window_stop(route, start)
        proj = project_onto_polyline(route.lats, route.lons, fix.lat, fix.lon, start, window_stop)

        # Window missed (GPS gap, long tunnel, rider past the window end): scan the rest of the route
        at_window_end = proj.segment_index == window_stop - 1 and proj.fraction >= 1.0
        missed = proj.lateral_m > self.config.full_search_fallback_m or at_window_end
        if missed and window_stop < route.segment_count:
            wide = project_onto_polyline(route.lats, route.lons, fix.lat, fix.lon, start)
            if wide.lateral_m < proj.lateral_m:
                logger.debug(
                    f"Window search missed ({proj.lateral_m:.0f} m); "
                    f"matched segment {wide.segment_index} on full search."
                )
                proj = wide

        along = self.along_distance(proj)
        if self._progress is not None:
            along = max(along, self._progress.along_route_m)

        low_confidence = fix.accuracy is not None and fix.accuracy > self.config.accuracy_ceiling_m

        self._progress = Progress(
            segment_index=proj.segment_index,
            along_route_m=along,
            lateral_m=proj.lateral_m,
            remaining_m=max(0.0, route.total_m - along),
            position=fix.coord,
            snapped=Coord(proj.lat, proj.lon),
            low_confidence=low_confidence,
        )
        if low_confidence:
            logger.debug(f"Low-confidence fix (accuracy {fix.accuracy:.0f} m).")
        return self._progress

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _window_stop(self, route: RouteGeometry, start: int) -> int:
        """One past the last segment of the search window, capped at the route end."""
        by_count = start + self.config.search_ahead_segments + 1
        target = route.cumulative[start] + self.config.search_ahead_m
        by_distance = int(np.searchsorted(route.cumulative, target, side="left"))
        return min(max(by_count, by_distance), route.segment_count)

    def _require_route(self) -> RouteGeometry:
        if self._route is None:
            raise ValueError("No route loaded.")
        return self._route
