# hazard_projector.py
# Places community hazards on the active route and decides when to announce them.
#
# Usage:
#   projector = HazardProjector(config)
#   projected = projector.update(hazards, route)
#   for hazard in projector.consume_announcements(projected, progress.along_route_m):
#       announce(hazard)

import logging
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Set

from .models import Coord, HazardRecord, ProjectedHazard, RouteGeometry
from .geo_utils import project_onto_polyline
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


def hazards_from_dicts(documents: Iterable[Mapping[str, Any]]) -> List[HazardRecord]:
    """Convert store documents to HazardRecords, skipping malformed ones."""
    records: List[HazardRecord] = []
    for doc in documents:
        try:
            records.append(HazardRecord.from_dict(doc))
        except ValueError as e:
            logger.warning(f"Skipping hazard document: {e}")
    return records


class HazardProjector:
    """
    Projects a hazard snapshot onto a route and tracks which hazards were
    already announced during the current navigation session.

    Args:
        config: NavConfig instance for corridor and announcement distances.
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        self._projected: List[ProjectedHazard] = []
        self._announced: Set[str] = set()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def projected(self) -> List[ProjectedHazard]:
        return list(self._projected)

    @property
    def announced_ids(self) -> Set[str]:
        return set(self._announced)

    def reset(self) -> None:
        """Forget the projection and the announced set."""
        self._projected = []
        self._announced.clear()

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    def update(
        self,
        hazards: Iterable[HazardRecord],
        route: RouteGeometry,
        now: Optional[datetime] = None,
    ) -> List[ProjectedHazard]:
        """
        Project every hazard onto the route.

        Args:
            hazards: Snapshot from the community store.
            route:   Active route geometry.
            now:     When given, expired hazards are dropped.

        Returns:
            Hazards within the detection buffer, sorted by along-route distance.
        """
        buffer_m = self.config.hazard_detection_buffer_m
        result: List[ProjectedHazard] = []
        total = 0

        for hazard in hazards:
            total += 1
            if now is not None and hazard.is_expired(now):
                continue
            proj = project_onto_polyline(route.lats, route.lons, hazard.coord.lat, hazard.coord.lon)
            if proj.lateral_m > buffer_m:
                continue
            result.append(ProjectedHazard(
                hazard=hazard,
                along_route_m=route.along_distance(proj.segment_index, proj.fraction),
                lateral_m=proj.lateral_m,
                snapped=Coord(proj.lat, proj.lon),
            ))

        result.sort(key=lambda h: h.along_route_m)
        self._projected = result
        logger.info(f"{len(result)} of {total} hazards lie within {buffer_m:.0f} m of the route.")
        return list(result)

    # ------------------------------------------------------------------
    # Announcements
    # ------------------------------------------------------------------

    def consume_announcements(
        self,
        projected: Iterable[ProjectedHazard],
        current_along_m: float,
        threshold: Optional[float] = None,
    ) -> List[HazardRecord]:
        """
        Return hazards that just came within announcement range.

        A hazard qualifies when it is ahead of the rider by at most
        `threshold` metres and lies inside the announcement corridor. Each
        hazard id is returned at most once until reset().
        """
        threshold = self.config.hazard_announce_m if threshold is None else threshold
        corridor = self.config.hazard_corridor_m
        due: List[HazardRecord] = []

        for ph in projected:
            if ph.hazard_id in self._announced:
                continue
            ahead = ph.along_route_m - current_along_m
            if 0.0 <= ahead <= threshold and ph.lateral_m <= corridor:
                self._announced.add(ph.hazard_id)
                due.append(ph.hazard)
                logger.info(f"Hazard {ph.hazard_id} ({ph.hazard.type}) in {ahead:.0f} m.")
        return due

    def upcoming(self, current_along_m: float, limit: int = 5) -> List[ProjectedHazard]:
        """Next hazards strictly ahead of the rider, nearest first."""
        ahead = [ph for ph in self._projected if ph.along_route_m > current_along_m]
        return ahead[:limit]
