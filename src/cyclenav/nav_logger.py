# nav_logger.py
# Handles all file I/O for the navigation core.
# Saves routes as JSON and navigation updates as JSON lines.

import json
import os
import logging
from datetime import datetime
from typing import Optional

from .models import InvalidRoute, NavigationUpdate, RouteGeometry
from .nav_config import NavConfig

# Standard Python logger; configure at app entry point if needed
logger = logging.getLogger(__name__)


class NavLogger:
    """
    Persists route data and navigation events to JSON files.

    Failures are logged and reported through return values; they never
    interrupt navigation.

    Args:
        config: NavConfig instance for file paths and directories.
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        os.makedirs(self.config.log_dir, exist_ok=True)

    # ------------------------------------------------------------------
    # Route persistence
    # ------------------------------------------------------------------

    def save_route(self, route: RouteGeometry) -> bool:
        """
        Serialize a route to JSON.

        Args:
            route: RouteGeometry to save.

        Returns:
            True on success, False on failure.
        """
        filepath = self.config.route_filepath
        try:
            data = {
                "saved_at": datetime.now().isoformat(),
                "point_count": len(route),
                "total_m": route.total_m,
                **route.to_dict(),
            }
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            logger.info(f"Route saved to {filepath} ({len(route)} points).")
            return True
        except OSError as e:
            logger.error(f"Failed to save route to {filepath}: {e}")
            return False

    def load_route(self, filepath: Optional[str] = None) -> Optional[RouteGeometry]:
        """
        Load a previously saved route from JSON.

        Args:
            filepath: Path override; uses config default if omitted.

        Returns:
            RouteGeometry, or None if loading failed.
        """
        path = filepath or self.config.route_filepath
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            route = RouteGeometry.from_dict(data)
            logger.info(f"Route loaded from {path} ({len(route)} points).")
            return route
        except (OSError, ValueError, InvalidRoute) as e:
            logger.error(f"Failed to load route from {path}: {e}")
            return None

    # ------------------------------------------------------------------
    # Session event logging
    # ------------------------------------------------------------------

    def log_event(self, update: NavigationUpdate) -> None:
        """
        Append a single navigation update to the session log file.

        Args:
            update: NavigationUpdate from NavigationSession.
        """
        p = update.progress
        entry = {
            "timestamp": datetime.now().isoformat(),
            "lat": p.position.lat,
            "lon": p.position.lon,
            "state": update.state.value,
            "decision": update.decision.value,
            "segment": p.segment_index,
            "along_m": round(p.along_route_m, 1),
            "lateral_m": round(p.lateral_m, 1),
            "remaining_m": round(p.remaining_m, 1),
            "low_confidence": p.low_confidence,
            "announced": [h.id for h in update.announcements],
            "eta_s": round(update.eta.expected_s) if update.eta else None,
        }
        try:
            with open(self.config.session_filepath, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except OSError as e:
            logger.error(f"Failed to write event log: {e}")
