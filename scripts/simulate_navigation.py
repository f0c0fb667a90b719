"""Replay a recorded walk through route scoring and live proximity monitoring."""
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Mapping

import yaml

if __package__ is None or __package__ == "":
    _SCRIPT_PARENT = Path(__file__).resolve().parents[1]
    _SCRIPT_PARENT_STR = str(_SCRIPT_PARENT)
    if _SCRIPT_PARENT_STR not in sys.path:
        sys.path.insert(0, _SCRIPT_PARENT_STR)

from scripts.bootstrap import bootstrap_project

_PROJECT_ROOT = bootstrap_project()

from waispath.core.entities import (  # noqa: E402
    GeoCoordinate,
    MobilityProfile,
    PathSegmentAttributes,
    ProximityAlert,
    RouteSegment,
    coerce_coordinate,
)
from waispath.infrastructure.geo.bearing import bearing, format_bearing  # noqa: E402
from waispath.infrastructure.obstacles.matcher import RouteObstacleMatcher  # noqa: E402
from waispath.infrastructure.obstacles.memory_source import InMemoryObstacleSource  # noqa: E402
from waispath.infrastructure.proximity.detector import ProximityDetector  # noqa: E402
from waispath.infrastructure.scoring.accessibility import AHPAccessibilityScorer  # noqa: E402
from waispath.use_cases.assess_route import AssessRouteUseCase, RouteAssessment  # noqa: E402
from waispath.use_cases.monitor_proximity import MonitorOptions, ProximityMonitor  # noqa: E402
from waispath.utils.config import (  # noqa: E402
    MatcherSettings,
    ProximitySettings,
    load_config,
)
from waispath.utils.logger import configure_logging, logger  # noqa: E402


def _resolve_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return (_PROJECT_ROOT / path).resolve()


def load_scenario(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as file:
        scenario = yaml.safe_load(file)
    if not isinstance(scenario, Mapping):
        raise ValueError(f"Scenario {path} must be a mapping.")
    return dict(scenario)


def _coordinates(raw_points: Any) -> list[GeoCoordinate]:
    points = (coerce_coordinate(point) for point in raw_points or [])
    return [point for point in points if point is not None]


def build_segments(scenario: Mapping[str, Any]) -> list[RouteSegment]:
    segments: list[RouteSegment] = []
    for entry in scenario.get("segments", []):
        attributes = PathSegmentAttributes(**(entry.get("attributes") or {}))
        segments.append(RouteSegment(polyline=tuple(_coordinates(entry.get("polyline"))), attributes=attributes))
    return segments


def announce(alert: ProximityAlert, user_location: GeoCoordinate) -> None:
    direction = format_bearing(bearing(user_location, alert.obstacle.location))
    logger.warning(
        "CRITICAL: {} ({}) {:.0f}m away, {}",
        alert.obstacle.type.value,
        alert.severity.value,
        alert.distance,
        direction,
    )


async def simulate(config: Mapping[str, Any], scenario: Mapping[str, Any]) -> RouteAssessment:
    profile = MobilityProfile(**(scenario.get("profile") or {}))
    source = InMemoryObstacleSource.from_records(scenario.get("obstacles", []))
    matcher = RouteObstacleMatcher.from_settings(MatcherSettings.from_config(config))
    scorer = AHPAccessibilityScorer.from_config(config.get("scoring"))

    segments = build_segments(scenario)
    assessment = await AssessRouteUseCase(matcher, scorer).execute(segments, profile, source)
    for index, segment in enumerate(assessment.segments, start=1):
        logger.info(
            "Segment {}: {:.0f}m, {} obstacles, overall {} ({}), adjustment {}",
            index,
            segment.length_meters,
            len(segment.obstacles),
            segment.score.overall,
            segment.score.grade,
            segment.score.user_specific_adjustment,
        )
    logger.info("Route overall {} ({})", assessment.overall, assessment.grade)

    route = [point for segment in segments for point in segment.polyline]
    walk = _coordinates(scenario.get("walk"))
    current: dict[str, GeoCoordinate] = {}

    detector = ProximityDetector(matcher, ProximitySettings.from_config(config))
    monitor = ProximityMonitor(
        detector,
        source,
        on_critical_obstacle=lambda alert: announce(alert, current["location"]),
    )

    for position in walk:
        current["location"] = position
        options = MonitorOptions(is_navigating=True, user_location=position, route=route, profile=profile)
        if monitor.is_monitoring:
            await monitor.update(options)
            await monitor.refresh()
        else:
            await monitor.start(options)

        state = monitor.state
        logger.info(
            "At ({:.5f}, {:.5f}): {} alerts, {} critical{}",
            position.latitude,
            position.longitude,
            len(state.alerts),
            len(state.critical_alerts),
            f", error: {state.error}" if state.error else "",
        )

    monitor.stop()
    logger.info("Obstacle store queried {} times", source.query_count)
    return assessment


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay a walk through the accessibility engine")
    parser.add_argument("--config", type=Path, default=Path("configs/config.yaml"))
    parser.add_argument("--scenario", type=Path, default=Path("scenarios/pasig_city_hall.yaml"))
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    config = load_config(_resolve_path(args.config))
    configure_logging(config.get("logging", {}).get("level", "INFO"))
    scenario = load_scenario(_resolve_path(args.scenario))
    asyncio.run(simulate(config, scenario))


if __name__ == "__main__":
    main()
