# models.py
# Shared data structures, enums and errors used across all modules.

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .geo_utils import haversine_array


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class NavigationError(Exception):
    """Base class for navigation core errors."""


class InvalidRoute(NavigationError, ValueError):
    """Route geometry is malformed (too short, bad distances, bad coordinates)."""


class SessionStateError(NavigationError):
    """Operation is not valid in the session's current state."""


# ---------------------------------------------------------------------------
# Coordinate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coord:
    """Immutable geographic coordinate."""
    lat: float
    lon: float


# ---------------------------------------------------------------------------
# Route geometry
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RoutePoint:
    """A route vertex. Metadata describes the segment leaving this point."""
    coord: Coord
    cumulative_m: float
    surface: Optional[str] = None
    road_class: Optional[str] = None
    maneuver: Optional[str] = None      # ManeuverType value when the router marks one

    @property
    def lat(self) -> float:
        return self.coord.lat

    @property
    def lon(self) -> float:
        return self.coord.lon

    def to_dict(self) -> dict:
        return {
            "lat": self.coord.lat,
            "lon": self.coord.lon,
            "cumulative_m": self.cumulative_m,
            "surface": self.surface,
            "road_class": self.road_class,
            "maneuver": self.maneuver,
        }

    @staticmethod
    def from_dict(d: dict) -> "RoutePoint":
        return RoutePoint(
            coord=Coord(float(d["lat"]), float(d["lon"])),
            cumulative_m=float(d["cumulative_m"]),
            surface=d.get("surface"),
            road_class=d.get("road_class"),
            maneuver=d.get("maneuver"),
        )


class RouteGeometry:
    """
    Immutable, ordered route polyline (insertion order = travel order).

    Raises InvalidRoute on construction when there are fewer than two points,
    a coordinate is not finite, or cumulative distance ever decreases.
    """

    def __init__(self, points: Sequence[RoutePoint]) -> None:
        points = tuple(points)
        if len(points) < 2:
            raise InvalidRoute(f"Route needs at least 2 points, got {len(points)}.")

        lats = np.array([p.lat for p in points], dtype=float)
        lons = np.array([p.lon for p in points], dtype=float)
        cumulative = np.array([p.cumulative_m for p in points], dtype=float)

        if not (np.isfinite(lats).all() and np.isfinite(lons).all() and np.isfinite(cumulative).all()):
            raise InvalidRoute("Route contains non-finite coordinates or distances.")
        if (np.abs(lats) > 90).any() or (np.abs(lons) > 180).any():
            raise InvalidRoute("Route contains out-of-range coordinates.")
        if (np.diff(cumulative) < 0).any():
            raise InvalidRoute("Cumulative distance must be non-decreasing.")

        for arr in (lats, lons, cumulative):
            arr.setflags(write=False)

        self._points = points
        self.lats = lats
        self.lons = lons
        self.cumulative = cumulative

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_coords(
        cls,
        coords: Sequence[Any],
        surfaces: Optional[Sequence[Optional[str]]] = None,
        road_classes: Optional[Sequence[Optional[str]]] = None,
        maneuvers: Optional[Sequence[Optional[str]]] = None,
    ) -> "RouteGeometry":
        """
        Build a geometry from Coord objects or (lat, lon) pairs.

        Cumulative distances are computed with the haversine formula.
        Optional per-point metadata sequences must match the coordinate count.
        """
        coord_list = [c if isinstance(c, Coord) else Coord(float(c[0]), float(c[1])) for c in coords]
        if len(coord_list) < 2:
            raise InvalidRoute(f"Route needs at least 2 points, got {len(coord_list)}.")

        n = len(coord_list)
        for name, seq in (("surfaces", surfaces), ("road_classes", road_classes), ("maneuvers", maneuvers)):
            if seq is not None and len(seq) != n:
                raise InvalidRoute(f"{name} has {len(seq)} entries for {n} points.")

        lats = np.array([c.lat for c in coord_list], dtype=float)
        lons = np.array([c.lon for c in coord_list], dtype=float)
        cumulative = np.concatenate(([0.0], np.cumsum(haversine_array(lats, lons))))

        points = [
            RoutePoint(
                coord=coord,
                cumulative_m=float(cumulative[i]),
                surface=surfaces[i] if surfaces is not None else None,
                road_class=road_classes[i] if road_classes is not None else None,
                maneuver=maneuvers[i] if maneuvers is not None else None,
            )
            for i, coord in enumerate(coord_list)
        ]
        return cls(points)

    @classmethod
    def from_path_details(
        cls,
        coords: Sequence[Any],
        details: Optional[Mapping[str, Sequence[Sequence[Any]]]] = None,
    ) -> "RouteGeometry":
        """
        Build a geometry from coordinates plus routing-API interval details.

        Each detail list holds [start_index, end_index, value] entries; the
        value applies to the segments start..end-1, and the final point keeps
        the value of the last segment.
        """
        n = len(coords)
        per_key: Dict[str, List[Optional[str]]] = {}
        for key in ("surface", "road_class"):
            values: List[Optional[str]] = [None] * n
            for entry in (details or {}).get(key) or []:
                if len(entry) < 3:
                    continue
                start, end, value = int(entry[0]), int(entry[1]), entry[2]
                for i in range(max(start, 0), min(end, n)):
                    values[i] = None if value is None else str(value)
            if n >= 2 and values[-1] is None:
                values[-1] = values[-2]
            per_key[key] = values
        return cls.from_coords(coords, surfaces=per_key["surface"], road_classes=per_key["road_class"])

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    @property
    def points(self) -> Tuple[RoutePoint, ...]:
        return self._points

    @property
    def total_m(self) -> float:
        return float(self.cumulative[-1])

    @property
    def segment_count(self) -> int:
        return len(self._points) - 1

    @property
    def origin(self) -> Coord:
        return self._points[0].coord

    @property
    def destination(self) -> Coord:
        return self._points[-1].coord

    def segment_length(self, index: int) -> float:
        return float(self.cumulative[index + 1] - self.cumulative[index])

    def along_distance(self, segment_index: int, fraction: float) -> float:
        """Distance from the origin to the point at `fraction` along a segment."""
        return float(self.cumulative[segment_index]) + fraction * self.segment_length(segment_index)

    def __len__(self) -> int:
        return len(self._points)

    def __getitem__(self, index: int) -> RoutePoint:
        return self._points[index]

    def __repr__(self) -> str:
        return f"RouteGeometry({len(self._points)} points, {self.total_m:.0f} m)"

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {"points": [p.to_dict() for p in self._points]}

    @classmethod
    def from_dict(cls, d: dict) -> "RouteGeometry":
        try:
            points = [RoutePoint.from_dict(p) for p in d["points"]]
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidRoute(f"Malformed route data: {e}") from e
        return cls(points)


# ---------------------------------------------------------------------------
# GPS fix
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Fix:
    """A single GPS observation. Speed is m/s, heading degrees, accuracy metres."""
    lat: Optional[float]
    lon: Optional[float]
    timestamp: datetime
    speed: Optional[float] = None
    heading: Optional[float] = None
    accuracy: Optional[float] = None

    @property
    def has_position(self) -> bool:
        if self.lat is None or self.lon is None:
            return False
        return math.isfinite(self.lat) and math.isfinite(self.lon)

    @property
    def coord(self) -> Coord:
        return Coord(self.lat, self.lon)

    @property
    def speed_kmh(self) -> Optional[float]:
        if self.speed is None:
            return None
        return self.speed * 3.6


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Progress:
    """Returned by RouteTracker.update() on every fix."""
    segment_index: int
    along_route_m: float
    lateral_m: float
    remaining_m: float
    position: Coord                 # raw fix position
    snapped: Coord                  # closest point on the route
    low_confidence: bool = False


# ---------------------------------------------------------------------------
# Hazards
# ---------------------------------------------------------------------------

def _as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Epoch milliseconds, ISO-8601 string or datetime → aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    if isinstance(value, str):
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        return _as_utc(datetime.fromisoformat(text))
    raise ValueError(f"Unsupported timestamp value: {value!r}")


@dataclass(frozen=True)
class HazardRecord:
    """A community-reported hazard or POI. Read-only snapshot from the store."""
    id: str
    coord: Coord
    severity: str = "medium"        # low | medium | high
    type: str = "hazard"            # pothole, construction, debris, ...
    expires_at: Optional[datetime] = None
    title: str = ""

    def is_expired(self, now: datetime) -> bool:
        if self.expires_at is None:
            return False
        return _as_utc(self.expires_at) <= _as_utc(now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "latitude": self.coord.lat,
            "longitude": self.coord.lon,
            "severity": self.severity,
            "type": self.type,
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
            "title": self.title,
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "HazardRecord":
        """
        Build a record from a community-store document.

        Raises:
            ValueError: If the id or coordinates are missing or invalid.
        """
        hazard_id = d.get("id")
        if not hazard_id:
            raise ValueError("Hazard document has no id.")
        try:
            lat = float(d["latitude"])
            lon = float(d["longitude"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Hazard {hazard_id} has invalid coordinates: {e}") from e
        return HazardRecord(
            id=str(hazard_id),
            coord=Coord(lat, lon),
            severity=d.get("severity") or "medium",
            type=d.get("type") or "hazard",
            expires_at=_parse_timestamp(d.get("expiresAt")),
            title=d.get("title") or "",
        )


@dataclass(frozen=True)
class ProjectedHazard:
    """A hazard placed on the route."""
    hazard: HazardRecord
    along_route_m: float
    lateral_m: float
    snapped: Coord

    @property
    def hazard_id(self) -> str:
        return self.hazard.id


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Decision(Enum):
    CONTINUE        = "continue"
    TRIGGER_REROUTE = "trigger_reroute"


class SessionState(Enum):
    IDLE    = "idle"
    ACTIVE  = "active"
    ARRIVED = "arrived"


class ManeuverType(Enum):
    DEPART       = "depart"
    STRAIGHT     = "straight"
    SLIGHT_LEFT  = "slight_left"
    SLIGHT_RIGHT = "slight_right"
    TURN_LEFT    = "turn_left"
    TURN_RIGHT   = "turn_right"
    SHARP_LEFT   = "sharp_left"
    SHARP_RIGHT  = "sharp_right"
    U_TURN       = "u_turn"
    ARRIVE       = "arrive"


class SurfaceQuality(Enum):
    POOR    = "poor"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Derived results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Maneuver:
    """A turn instruction at a route vertex."""
    type: ManeuverType
    instruction: str
    along_route_m: float
    point_index: int
    location: Coord


@dataclass(frozen=True)
class SurfaceWarning:
    """A contiguous stretch of poor or unknown surface."""
    quality: SurfaceQuality
    surface: str
    start_along_m: float
    length_m: float
    start_index: int
    end_index: int


@dataclass(frozen=True)
class EtaRange:
    """Remaining-time estimate in seconds with a fixed symmetric buffer."""
    earliest_s: float
    expected_s: float
    latest_s: float


@dataclass(frozen=True)
class StatsSnapshot:
    """Trip statistics. Speeds in m/s; None when not yet measurable."""
    elapsed_s: float
    moving_s: float
    distance_m: float
    current_speed_mps: Optional[float]
    avg_with_stops_mps: Optional[float]
    avg_without_stops_mps: Optional[float]

    @property
    def avg_with_stops_kmh(self) -> Optional[float]:
        return None if self.avg_with_stops_mps is None else self.avg_with_stops_mps * 3.6

    @property
    def avg_without_stops_kmh(self) -> Optional[float]:
        return None if self.avg_without_stops_mps is None else self.avg_without_stops_mps * 3.6


@dataclass
class NavigationUpdate:
    """Returned by NavigationSession.update() for every accepted fix."""
    state: SessionState
    progress: Progress
    decision: Decision
    stats: StatsSnapshot
    announcements: List[HazardRecord] = field(default_factory=list)
    eta: Optional[EtaRange] = None
    next_maneuver: Optional[Maneuver] = None
    distance_to_maneuver_m: Optional[float] = None
    surface_ahead: List[SurfaceWarning] = field(default_factory=list)
    approaching_destination: bool = False
