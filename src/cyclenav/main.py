# main.py
# Entry point: replays GPS fixes through a NavigationSession.
# In production, replace the trace with your real location stream and the
# straight-line reroute with a call to the routing API.
#
# Usage:
#   python -m cyclenav.main                                   (built-in demo ride)
#   python -m cyclenav.main --route route.json --trace ride.csv --hazards hazards.json

import argparse
import json
import logging
from datetime import datetime, timedelta
from typing import Iterable, List

from .models import Coord, Decision, Fix, HazardRecord, RouteGeometry, SessionState
from .nav_config import NavConfig
from .nav_logger import NavLogger
from .hazard_projector import hazards_from_dicts
from .session import NavigationSession
from .trace import FixTrace

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Demo data (Sıhhiye → Kızılay, Ankara)
# ------------------------------------------------------------------
DEMO_ROUTE = [
    Coord(39.92409, 32.85400),
    Coord(39.92409, 32.85600),
    Coord(39.92409, 32.85800),
    Coord(39.92589, 32.85800),
    Coord(39.92769, 32.85800),
]

DEMO_HAZARDS = [
    HazardRecord(id="demo-pothole", coord=Coord(39.92413, 32.85700), type="pothole",
                 severity="high", title="Deep pothole"),
    HazardRecord(id="demo-works", coord=Coord(39.92680, 32.85803), type="construction",
                 title="Road works"),
]


def demo_fixes(route: RouteGeometry, speed_mps: float = 5.0, period_s: float = 5.0) -> List[Fix]:
    """Evenly spaced fixes along the route at constant speed."""
    start = datetime(2024, 5, 1, 8, 0, 0)
    fixes: List[Fix] = []
    along, t = 0.0, 0.0
    while along <= route.total_m:
        i = min(int((route.cumulative <= along).sum()) - 1, route.segment_count - 1)
        seg = route.segment_length(i)
        frac = 0.0 if seg == 0 else (along - route.cumulative[i]) / seg
        a, b = route[i], route[i + 1]
        fixes.append(Fix(
            lat=a.lat + frac * (b.lat - a.lat),
            lon=a.lon + frac * (b.lon - a.lon),
            timestamp=start + timedelta(seconds=t),
            speed=speed_mps,
            accuracy=5.0,
        ))
        along += speed_mps * period_s
        t += period_s
    # linger at the destination so arrival can be confirmed
    for k in range(1, 3):
        fixes.append(Fix(
            lat=route.destination.lat, lon=route.destination.lon,
            timestamp=start + timedelta(seconds=t + k * period_s),
            speed=0.0, accuracy=5.0,
        ))
    return fixes


def load_hazards(path: str) -> List[HazardRecord]:
    with open(path, "r", encoding="utf-8") as f:
        return hazards_from_dicts(json.load(f))


def run(session: NavigationSession, route: RouteGeometry, hazards: List[HazardRecord], fixes: Iterable[Fix]) -> None:
    session.start(route, hazards)
    print(f"[Main] Route ready: {len(route)} points, {route.total_m:.0f} m.")
    print("\n--- GPS Loop Active ---")

    for fix in fixes:
        update = session.update(fix)
        if update is None:
            continue

        p = update.progress
        eta = f"{update.eta.expected_s / 60:.0f} min" if update.eta else "--"
        print(f"  {p.along_route_m:7.0f} m  off {p.lateral_m:5.1f} m  ETA {eta}")

        for hazard in update.announcements:
            print(f"  ⚠  {hazard.type}: {hazard.title or hazard.id} ahead.")

        if update.decision is Decision.TRIGGER_REROUTE:
            print("  ↻  Off route. Replanning straight to the destination.")
            session.apply_reroute([Coord(fix.lat, fix.lon), route.destination])
            route = session.route

        if update.state is SessionState.ARRIVED:
            print("  ✓  Destination reached. Navigation ended.")
            break

    stats = session.stats
    print("\n--- Session complete ---")
    print(f"    Distance {stats.distance_m:.0f} m in {stats.elapsed_s:.0f} s "
          f"(moving {stats.moving_s:.0f} s).")
    session.stop()


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay GPS fixes against a route.")
    parser.add_argument("--route", help="route JSON saved by NavLogger")
    parser.add_argument("--trace", help="CSV of fixes (lat, lon, timestamp[, speed, heading, accuracy])")
    parser.add_argument("--hazards", help="JSON list of hazard documents")
    parser.add_argument("--config", help="JSON file with NavConfig overrides")
    parser.add_argument("--log-dir", default="logs")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    # ------------------------------------------------------------------
    # Logging setup, configured once here; all modules inherit
    # ------------------------------------------------------------------
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    overrides = {}
    if args.config:
        with open(args.config, "r", encoding="utf-8") as f:
            overrides = json.load(f)
    config = NavConfig.from_dict({**overrides, "log_dir": args.log_dir})
    nav_log = NavLogger(config)

    if args.route:
        route = nav_log.load_route(args.route)
        if route is None:
            print(f"[Main] Could not load route from {args.route}")
            return
    else:
        route = RouteGeometry.from_coords(DEMO_ROUTE)

    hazards = load_hazards(args.hazards) if args.hazards else list(DEMO_HAZARDS)
    fixes = FixTrace(args.trace).stream() if args.trace else demo_fixes(route)

    run(NavigationSession(config, event_log=nav_log), route, hazards, fixes)
    print(f"    Log files written to: {config.log_dir}/")


if __name__ == "__main__":
    main()
