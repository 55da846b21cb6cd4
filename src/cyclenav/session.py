# session.py
# Public entry point for the navigation core.
# Owns the session lifecycle and runs the per-fix pipeline; the actual work is
# delegated to the specialist modules.

import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

from .models import (
    Decision,
    Fix,
    HazardRecord,
    Maneuver,
    NavigationUpdate,
    Progress,
    ProjectedHazard,
    RouteGeometry,
    SessionState,
    SessionStateError,
    StatsSnapshot,
    SurfaceWarning,
)
from .nav_config import NavConfig
from .route_tracker import RouteTracker
from .off_route import OffRouteDetector
from .hazard_projector import HazardProjector
from .stats import StatsAccumulator
from .maneuvers import detect_maneuvers, next_maneuver
from .surface import surface_warnings, upcoming_surface_warnings
from .nav_logger import NavLogger

logger = logging.getLogger(__name__)

RouteLike = Union[RouteGeometry, Sequence[Any]]


class NavigationSession:
    """
    Lifecycle owner for one navigation.

    States: IDLE → ACTIVE (start) → ACTIVE (apply_reroute) → ARRIVED,
    and any state → IDLE (stop).

    Typical lifecycle:
        session = NavigationSession(config)
        session.start(route, hazards)

        # GPS loop:
        update = session.update(fix)
        if update and update.decision is Decision.TRIGGER_REROUTE:
            session.apply_reroute(fetch_new_route(fix))

    Args:
        config:    Optional NavConfig; defaults to NavConfig().
        event_log: Optional NavLogger that receives the route and every update.
    """

    def __init__(self, config: Optional[NavConfig] = None, event_log: Optional[NavLogger] = None) -> None:
        self.config = config or NavConfig()
        self._event_log = event_log

        # Specialist modules
        self._tracker   = RouteTracker(self.config)
        self._detector  = OffRouteDetector(self.config)
        self._projector = HazardProjector(self.config)
        self._stats     = StatsAccumulator(self.config)

        self._state = SessionState.IDLE
        self._hazards: List[HazardRecord] = []
        self._maneuvers: List[Maneuver] = []
        self._surface: List[SurfaceWarning] = []
        self._last_fix_at: Optional[datetime] = None
        self._arrival_entered_at: Optional[datetime] = None
        self._reroute_count = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, route: RouteLike, hazards: Iterable[HazardRecord] = (), now: Optional[datetime] = None) -> None:
        """
        Begin navigating a route.

        Args:
            route:   RouteGeometry, or a sequence of Coord / (lat, lon) pairs.
            hazards: Hazard snapshot to project onto the route.
            now:     Reference time for dropping expired hazards.

        Raises:
            InvalidRoute:      If the route is malformed; the session stays IDLE.
            SessionStateError: If a navigation is already running.
        """
        if self._state is not SessionState.IDLE:
            raise SessionStateError(f"Cannot start navigation while {self._state.value}.")

        geometry = self._as_route(route)
        self._stats.reset()
        self._detector.reset()
        self._last_fix_at = None
        self._reroute_count = 0
        self._hazards = list(hazards)
        self._load(geometry, now)
        self._state = SessionState.ACTIVE

        logger.info(
            f"Navigation started: {len(geometry)} points, {geometry.total_m:.0f} m, "
            f"{len(self._projector.projected)} hazards on route."
        )
        if self._event_log is not None:
            self._event_log.save_route(geometry)

    def apply_reroute(
        self,
        route: RouteLike,
        hazards: Optional[Iterable[HazardRecord]] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """
        Replace the active route after a reroute.

        Progress and the announced-hazard set restart; trip statistics and the
        reroute cooldown carry over.

        Raises:
            InvalidRoute:      If the new route is malformed; the old one stays active.
            SessionStateError: If the session is not ACTIVE.
        """
        if self._state is not SessionState.ACTIVE:
            raise SessionStateError(f"Cannot reroute while {self._state.value}.")

        geometry = self._as_route(route)
        if hazards is not None:
            self._hazards = list(hazards)
        self._load(geometry, now)
        self._reroute_count += 1

        logger.info(f"Rerouted (#{self._reroute_count}): {len(geometry)} points, {geometry.total_m:.0f} m.")
        if self._event_log is not None:
            self._event_log.save_route(geometry)

    def update_hazards(self, hazards: Iterable[HazardRecord], now: Optional[datetime] = None) -> List[ProjectedHazard]:
        """Re-project a refreshed hazard snapshot. Already announced hazards stay announced."""
        if self._state is SessionState.IDLE:
            raise SessionStateError("No active route to project hazards onto.")
        self._hazards = list(hazards)
        return self._projector.update(self._hazards, self._tracker.route, now)

    def stop(self) -> None:
        """End navigation from any state and discard all derived state."""
        previous = self._state
        self._tracker.reset()
        self._detector.reset()
        self._projector.reset()
        self._stats.reset()
        self._hazards = []
        self._maneuvers = []
        self._surface = []
        self._last_fix_at = None
        self._arrival_entered_at = None
        self._state = SessionState.IDLE
        if previous is not SessionState.IDLE:
            logger.info("Navigation stopped.")

    # ------------------------------------------------------------------
    # GPS update, call this on every fix
    # ------------------------------------------------------------------

    def update(self, fix: Fix) -> Optional[NavigationUpdate]:
        """
        Process one GPS fix.

        Returns:
            NavigationUpdate, or None when the session is not ACTIVE or the
            fix has no position (nothing is changed in either case).
        """
        if self._state is not SessionState.ACTIVE:
            logger.debug(f"Fix ignored while {self._state.value}.")
            return None
        if not fix.has_position:
            logger.debug("Fix without position dropped.")
            return None

        # 1. Route matching
        progress = self._tracker.update(fix)

        # 2. Arrival / off-route
        approaching, arrived = self._check_arrival(fix, progress)
        if approaching or arrived:
            decision = Decision.CONTINUE
            self._detector.clear_pending()
        else:
            decision = self._detector.evaluate(progress, fix.speed_kmh, fix.timestamp)

        # 3. Hazards
        announcements = self._projector.consume_announcements(
            self._projector.projected, progress.along_route_m,
        )

        # 4. Stats
        if self._last_fix_at is None:
            self._stats.rebase(progress.along_route_m)
        else:
            self._stats.update(fix, fix.timestamp - self._last_fix_at, progress.along_route_m)
        if self._last_fix_at is None or fix.timestamp > self._last_fix_at:
            self._last_fix_at = fix.timestamp

        maneuver = next_maneuver(self._maneuvers, progress.along_route_m)
        result = NavigationUpdate(
            state=SessionState.ARRIVED if arrived else SessionState.ACTIVE,
            progress=progress,
            decision=decision,
            stats=self._stats.snapshot(),
            announcements=announcements,
            eta=self._stats.eta(progress.remaining_m),
            next_maneuver=maneuver,
            distance_to_maneuver_m=(
                max(0.0, maneuver.along_route_m - progress.along_route_m) if maneuver else None
            ),
            surface_ahead=upcoming_surface_warnings(
                self._surface, progress.along_route_m, self.config.surface_lookahead_m,
            ),
            approaching_destination=approaching,
        )

        if arrived:
            self._state = SessionState.ARRIVED
            logger.info(f"Arrived at destination ({progress.remaining_m:.1f} m remaining).")

        logger.debug(
            f"seg={progress.segment_index} along={progress.along_route_m:.0f}m "
            f"lateral={progress.lateral_m:.1f}m decision={decision.value}"
        )
        if self._event_log is not None:
            self._event_log.log_event(result)
        return result

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is SessionState.ACTIVE

    @property
    def route(self) -> Optional[RouteGeometry]:
        return self._tracker.route

    @property
    def progress(self) -> Optional[Progress]:
        return self._tracker.progress

    @property
    def stats(self) -> StatsSnapshot:
        return self._stats.snapshot()

    @property
    def maneuvers(self) -> List[Maneuver]:
        return list(self._maneuvers)

    @property
    def projected_hazards(self) -> List[ProjectedHazard]:
        return self._projector.projected

    @property
    def announced_hazard_ids(self) -> set:
        return self._projector.announced_ids

    @property
    def reroute_count(self) -> int:
        return self._reroute_count

    def upcoming_hazards(self, limit: int = 5) -> List[ProjectedHazard]:
        return self._projector.upcoming(self._tracker.along_route_m, limit)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load(self, route: RouteGeometry, now: Optional[datetime]) -> None:
        """Install a route: fresh progress, announcements, maneuvers and surface runs."""
        self._tracker.load_route(route)
        self._projector.reset()
        self._projector.update(self._hazards, route, now)
        self._maneuvers = detect_maneuvers(route, self.config)
        self._surface = surface_warnings(route)
        self._arrival_entered_at = None
        self._stats.rebase(0.0)

    def _check_arrival(self, fix: Fix, progress: Progress) -> Tuple[bool, bool]:
        """Returns (approaching, arrived)."""
        cfg = self.config
        in_zone = progress.remaining_m < cfg.arrival_distance_m
        accurate = fix.accuracy is not None and fix.accuracy < cfg.arrival_accuracy_m
        if not (in_zone and accurate):
            self._arrival_entered_at = None
            return False, False

        if self._arrival_entered_at is None:
            self._arrival_entered_at = fix.timestamp
            logger.info(f"Approaching destination ({progress.remaining_m:.1f} m).")

        in_zone_s = (fix.timestamp - self._arrival_entered_at).total_seconds()
        slow = (fix.speed_kmh or 0.0) < cfg.arrival_speed_kmh
        if in_zone_s >= cfg.arrival_confirmation_s and slow:
            return False, True
        return True, False

    @staticmethod
    def _as_route(route: RouteLike) -> RouteGeometry:
        if isinstance(route, RouteGeometry):
            return route
        return RouteGeometry.from_coords(route)
