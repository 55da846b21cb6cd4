# nav_config.py
# All tuneable constants in one place.
# Pass a NavConfig instance to every module that needs settings.

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Mapping, Tuple

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Defaults shared with other modules
# ---------------------------------------------------------------------------

# (max speed km/h, lateral threshold m); first tier whose max exceeds the speed wins
OFF_ROUTE_TIERS: Tuple[Tuple[float, float], ...] = (
    (12.0, 20.0),
    (25.0, 30.0),
    (float("inf"), 50.0),
)


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class NavConfig:
    # Progress tracking
    search_ahead_segments: int = 20        # window size past the last known segment
    search_ahead_m: float = 250.0          # ...and at least this much route ahead
    full_search_fallback_m: float = 100.0  # widen the search if the window is this far off
    accuracy_ceiling_m: float = 30.0       # worse accuracy → low-confidence progress

    # Off-route / reroute
    off_route_tiers: Tuple[Tuple[float, float], ...] = OFF_ROUTE_TIERS
    reroute_cooldown_s: float = 10.0
    reroute_min_movement_m: float = 10.0

    # Hazards
    hazard_detection_buffer_m: float = 75.0  # corridor kept on each side at projection time
    hazard_corridor_m: float = 10.0          # tighter corridor for announcements
    hazard_announce_m: float = 100.0         # announce this far ahead

    # Stats / ETA
    moving_speed_floor_mps: float = 0.5
    eta_rolling_window: int = 12           # moving samples kept for the rolling speed
    eta_buffer_s: float = 120.0            # symmetric ETA range buffer

    # Arrival
    arrival_distance_m: float = 10.0
    arrival_accuracy_m: float = 10.0
    arrival_confirmation_s: float = 3.0
    arrival_speed_kmh: float = 5.0

    # Maneuvers
    min_maneuver_segment_m: float = 10.0
    slight_turn_deg: float = 20.0
    turn_deg: float = 45.0
    sharp_turn_deg: float = 120.0
    u_turn_deg: float = 150.0

    # Surface warnings
    surface_lookahead_m: float = 500.0

    # Logging
    log_dir: str = "."                     # directory for saved JSON files
    route_filename: str = "active_route.json"
    session_filename: str = "nav_session.jsonl"

    @property
    def route_filepath(self) -> str:
        return os.path.join(self.log_dir, self.route_filename)

    @property
    def session_filepath(self) -> str:
        return os.path.join(self.log_dir, self.session_filename)

    def lateral_threshold_m(self, speed_kmh: float) -> float:
        """Off-route threshold for the given speed."""
        for max_speed, threshold in self.off_route_tiers:
            if speed_kmh < max_speed:
                return threshold
        return self.off_route_tiers[-1][1]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NavConfig":
        """Build a config from a mapping, ignoring (and reporting) unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            if key not in known:
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            if key == "off_route_tiers":
                value = tuple((float(s), float(t)) for s, t in value)
            kwargs[key] = value
        return cls(**kwargs)
