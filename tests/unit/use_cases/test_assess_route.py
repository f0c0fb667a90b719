"""Tests for grading a route segment by segment."""
from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from waispath.core.entities import (
    GeoCoordinate,
    MobilityDevice,
    MobilityProfile,
    Obstacle,
    ObstacleType,
    PathSegmentAttributes,
    RouteSegment,
    Severity,
)
from waispath.infrastructure.geo.distance import polyline_length
from waispath.infrastructure.obstacles.matcher import RouteObstacleMatcher
from waispath.infrastructure.obstacles.memory_source import InMemoryObstacleSource
from waispath.infrastructure.scoring.accessibility import AHPAccessibilityScorer
from waispath.use_cases.assess_route import AssessRouteUseCase

BASE_LAT = 14.5764
AFTERNOON = datetime(2024, 6, 3, 14, 0)
WHEELCHAIR = MobilityProfile(device=MobilityDevice.WHEELCHAIR)

FIRST = RouteSegment(polyline=(GeoCoordinate(BASE_LAT, 121.0851), GeoCoordinate(BASE_LAT, 121.0870)))
SECOND_POLYLINE = (GeoCoordinate(BASE_LAT, 121.0870), GeoCoordinate(BASE_LAT, 121.0900))

STAIRS = Obstacle(
    id="obs-stairs",
    type=ObstacleType.STAIRS_NO_RAMP,
    severity=Severity.BLOCKING,
    location=GeoCoordinate(BASE_LAT + 0.0002, 121.0885),
)
FAR_AWAY = Obstacle(
    id="obs-far",
    type=ObstacleType.CONSTRUCTION,
    severity=Severity.HIGH,
    location=GeoCoordinate(BASE_LAT + 0.003, 121.0885),
)


def make_use_case() -> AssessRouteUseCase:
    return AssessRouteUseCase(RouteObstacleMatcher(), AHPAccessibilityScorer())


def test_obstacles_are_attached_to_their_nearest_segment() -> None:
    second = RouteSegment(polyline=SECOND_POLYLINE)
    source = InMemoryObstacleSource([STAIRS, FAR_AWAY])

    assessment = asyncio.run(make_use_case().execute([FIRST, second], WHEELCHAIR, source, at=AFTERNOON))

    first_result, second_result = assessment.segments
    assert first_result.obstacles == ()
    assert [obstacle.id for obstacle in second_result.obstacles] == ["obs-stairs"]
    assert first_result.score.overall == pytest.approx(97.0)
    assert second_result.score.traversability == 0
    assert assessment.obstacle_count == 1
    assert source.query_count == 1


def test_route_grade_is_length_weighted() -> None:
    second = RouteSegment(polyline=SECOND_POLYLINE)
    source = InMemoryObstacleSource([STAIRS])

    assessment = asyncio.run(make_use_case().execute([FIRST, second], WHEELCHAIR, source, at=AFTERNOON))

    lengths = [polyline_length(FIRST.polyline), polyline_length(SECOND_POLYLINE)]
    scores = [segment.score.overall for segment in assessment.segments]
    expected = (scores[0] * lengths[0] + scores[1] * lengths[1]) / sum(lengths)

    assert assessment.overall == pytest.approx(round(expected, 1))
    assert assessment.grade == "D"
    assert assessment.segments[1].length_meters == pytest.approx(lengths[1])


def test_known_segment_obstacles_are_merged_without_duplicates() -> None:
    second = RouteSegment(polyline=SECOND_POLYLINE, attributes=PathSegmentAttributes(obstacles=(STAIRS,)))
    source = InMemoryObstacleSource([STAIRS])

    assessment = asyncio.run(make_use_case().execute([FIRST, second], WHEELCHAIR, source, at=AFTERNOON))

    assert [obstacle.id for obstacle in assessment.segments[1].obstacles] == ["obs-stairs"]


def test_empty_route_has_no_grade() -> None:
    source = InMemoryObstacleSource([STAIRS])

    assessment = asyncio.run(make_use_case().execute([], WHEELCHAIR, source))

    assert assessment.segments == []
    assert assessment.overall is None
    assert assessment.grade is None
    assert source.query_count == 0
