# off_route.py
# Decides when a rider has left the route badly enough to ask for a new one.
# The detector only signals; fetching the new route is the caller's job.

import logging
from datetime import datetime
from typing import Optional

from .models import Coord, Decision, Progress
from .geo_utils import haversine_distance
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


class OffRouteDetector:
    """
    Speed-tiered off-route check with reroute cooldown and a movement gate.

    Cooldown state survives a reroute (the new route is loaded into the
    tracker, not here) and is only cleared by reset().

    Args:
        config: NavConfig instance for thresholds and timings.
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        self._last_attempt_at: Optional[datetime] = None
        self._last_attempt_pos: Optional[Coord] = None
        self._unconfirmed = False

    def reset(self) -> None:
        self._last_attempt_at = None
        self._last_attempt_pos = None
        self._unconfirmed = False

    def clear_pending(self) -> None:
        """Drop an unconfirmed low-confidence reading."""
        self._unconfirmed = False

    @property
    def last_attempt_at(self) -> Optional[datetime]:
        return self._last_attempt_at

    def evaluate(self, progress: Progress, speed_kmh: Optional[float], now: datetime) -> Decision:
        """
        Decide whether the current progress warrants a reroute.

        Args:
            progress:  Latest Progress from RouteTracker.
            speed_kmh: Current speed; None is treated as stationary.
            now:       Timestamp of the fix being evaluated.

        Returns:
            Decision.TRIGGER_REROUTE or Decision.CONTINUE.
        """
        threshold = self.config.lateral_threshold_m(speed_kmh or 0.0)
        if progress.lateral_m <= threshold:
            self._unconfirmed = False
            return Decision.CONTINUE

        # A single noisy reading is not enough
        if progress.low_confidence and not self._unconfirmed:
            self._unconfirmed = True
            logger.debug(
                f"Off route by {progress.lateral_m:.1f} m on a low-confidence fix; "
                f"waiting for corroboration."
            )
            return Decision.CONTINUE

        if self._last_attempt_at is not None:
            since = (now - self._last_attempt_at).total_seconds()
            if since < self.config.reroute_cooldown_s:
                logger.debug(
                    f"Reroute cooldown active ({since:.1f}s of {self.config.reroute_cooldown_s:.0f}s)."
                )
                return Decision.CONTINUE

        if self._last_attempt_pos is not None:
            moved = haversine_distance(
                progress.position.lat, progress.position.lon,
                self._last_attempt_pos.lat, self._last_attempt_pos.lon,
            )
            if moved < self.config.reroute_min_movement_m:
                logger.warning(
                    f"Reroute blocked: moved {moved:.1f} m since last attempt "
                    f"(need {self.config.reroute_min_movement_m:.0f} m)."
                )
                # restart the cooldown so a stationary rider is not re-checked every fix
                self._last_attempt_at = now
                return Decision.CONTINUE

        self._last_attempt_at = now
        self._last_attempt_pos = progress.position
        self._unconfirmed = False
        logger.info(
            f"Off route by {progress.lateral_m:.1f} m (threshold {threshold:.0f} m), reroute needed."
        )
        return Decision.TRIGGER_REROUTE
