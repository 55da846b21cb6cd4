# stats.py
# Rolling trip statistics: distance, elapsed and moving time, average speeds, ETA.

import logging
from collections import deque
from datetime import timedelta
from typing import Deque, Optional, Tuple

from .models import EtaRange, Fix, StatsSnapshot
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


class StatsAccumulator:
    """
    Accumulates trip statistics from consecutive along-route distances.

    Distance comes from progress deltas rather than raw fix-to-fix distance,
    so lateral GPS jitter does not inflate it. Survives reroutes; call
    rebase() when the along-route distance restarts from zero.
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        self.reset()

    def reset(self) -> None:
        self._elapsed_s = 0.0
        self._moving_s = 0.0
        self._distance_m = 0.0
        self._current_speed: Optional[float] = None
        self._last_along: Optional[float] = None
        self._window: Deque[Tuple[float, float]] = deque(maxlen=self.config.eta_rolling_window)

    def rebase(self, along_route_m: float = 0.0) -> None:
        """Start measuring distance deltas from a new along-route baseline."""
        self._last_along = along_route_m

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(self, fix: Fix, elapsed: timedelta, along_route_m: float) -> bool:
        """
        Fold one fix into the statistics.

        Args:
            fix:           The GPS fix (its speed is used when present).
            elapsed:       Time since the previous fix.
            along_route_m: Along-route distance matched for this fix.

        Returns:
            False when the cycle was skipped (non-positive elapsed time).
        """
        elapsed_s = elapsed.total_seconds()
        if elapsed_s <= 0:
            logger.debug("Skipping stats update with zero elapsed time.")
            return False

        if self._last_along is None:
            delta = 0.0
        else:
            delta = max(0.0, along_route_m - self._last_along)
        self._last_along = along_route_m

        speed = fix.speed if fix.speed is not None else delta / elapsed_s
        self._current_speed = speed
        self._elapsed_s += elapsed_s
        self._distance_m += delta

        if speed >= self.config.moving_speed_floor_mps:
            self._moving_s += elapsed_s
            self._window.append((delta, elapsed_s))
        return True

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def avg_with_stops_mps(self) -> Optional[float]:
        if self._elapsed_s <= 0:
            return None
        return self._distance_m / self._elapsed_s

    @property
    def avg_without_stops_mps(self) -> Optional[float]:
        if self._moving_s <= 0:
            return None
        return self._distance_m / self._moving_s

    @property
    def rolling_speed_mps(self) -> Optional[float]:
        seconds = sum(t for _, t in self._window)
        if seconds <= 0:
            return None
        return sum(d for d, _ in self._window) / seconds

    def eta(self, remaining_m: float) -> Optional[EtaRange]:
        """
        Remaining time as a range, or None when no usable speed is known.

        Prefers the rolling average of recent moving samples and falls back to
        the current speed.
        """
        if remaining_m <= 0:
            return EtaRange(0.0, 0.0, 0.0)

        floor = self.config.moving_speed_floor_mps
        speed = self.rolling_speed_mps
        if speed is None or speed < floor:
            speed = self._current_speed
        if speed is None or speed < floor:
            return None

        expected = remaining_m / speed
        buffer_s = self.config.eta_buffer_s
        return EtaRange(
            earliest_s=max(0.0, expected - buffer_s),
            expected_s=expected,
            latest_s=expected + buffer_s,
        )

    def snapshot(self) -> StatsSnapshot:
        return StatsSnapshot(
            elapsed_s=self._elapsed_s,
            moving_s=self._moving_s,
            distance_m=self._distance_m,
            current_speed_mps=self._current_speed,
            avg_with_stops_mps=self.avg_with_stops_mps,
            avg_without_stops_mps=self.avg_without_stops_mps,
        )
