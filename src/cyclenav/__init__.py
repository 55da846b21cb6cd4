"""Navigation core for cycling: route progress, off-route detection, hazard alerts and trip stats."""

from .models import (
    Coord,
    Decision,
    EtaRange,
    Fix,
    HazardRecord,
    InvalidRoute,
    Maneuver,
    ManeuverType,
    NavigationError,
    NavigationUpdate,
    Progress,
    ProjectedHazard,
    RouteGeometry,
    RoutePoint,
    SessionState,
    SessionStateError,
    StatsSnapshot,
    SurfaceQuality,
    SurfaceWarning,
)
from .nav_config import NavConfig
from .route_tracker import RouteTracker
from .off_route import OffRouteDetector
from .hazard_projector import HazardProjector, hazards_from_dicts
from .stats import StatsAccumulator
from .session import NavigationSession

__all__ = [
    "Coord",
    "Decision",
    "EtaRange",
    "Fix",
    "HazardProjector",
    "HazardRecord",
    "InvalidRoute",
    "Maneuver",
    "ManeuverType",
    "NavConfig",
    "NavigationError",
    "NavigationSession",
    "NavigationUpdate",
    "OffRouteDetector",
    "Progress",
    "ProjectedHazard",
    "RouteGeometry",
    "RoutePoint",
    "RouteTracker",
    "SessionState",
    "SessionStateError",
    "StatsAccumulator",
    "StatsSnapshot",
    "SurfaceQuality",
    "SurfaceWarning",
    "hazards_from_dicts",
]
