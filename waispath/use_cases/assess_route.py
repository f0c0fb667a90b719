"""Use case grading every segment of a route for a mobility profile."""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Protocol, Sequence

from waispath.core.entities import (
    AccessibilityScore,
    GeoCoordinate,
    Grade,
    MobilityProfile,
    Obstacle,
    PathSegmentAttributes,
    RouteSegment,
)
from waispath.infrastructure.geo.distance import distance_to_polyline, polyline_length
from waispath.infrastructure.obstacles.matcher import ObstacleSource, deduplicate_obstacles
from waispath.infrastructure.scoring.accessibility import score_to_grade
from waispath.utils.logger import logger


class RouteMatcher(Protocol):
    async def obstacles_along_routes(
        self,
        route_a: Sequence[GeoCoordinate],
        route_b: Sequence[GeoCoordinate],
        source: ObstacleSource,
        buffer_meters: float | None = None,
    ) -> list[Obstacle]:
        ...


class SegmentScorer(Protocol):
    def score(
        self,
        segment: PathSegmentAttributes,
        profile: MobilityProfile,
        at: Optional[datetime] = None,
    ) -> AccessibilityScore:
        ...


@dataclass(frozen=True)
class SegmentAssessment:
    segment: RouteSegment
    obstacles: tuple[Obstacle, ...]
    score: AccessibilityScore
    length_meters: float


@dataclass(frozen=True)
class RouteAssessment:
    segments: list[SegmentAssessment]
    overall: Optional[float]
    grade: Optional[Grade]

    @property
    def obstacle_count(self) -> int:
        return sum(len(assessment.obstacles) for assessment in self.segments)


class AssessRouteUseCase:
    """Attach route obstacles to their nearest segment and grade each segment.

    The route grade is the length-weighted mean of the segment grades, so a short
    blocked stretch does not dominate a long clear walk but still pulls it down.
    """

    def __init__(self, matcher: RouteMatcher, scorer: SegmentScorer, buffer_meters: float = 50.0) -> None:
        self._matcher = matcher
        self._scorer = scorer
        self._buffer_meters = buffer_meters

    async def execute(
        self,
        segments: Sequence[RouteSegment],
        profile: MobilityProfile,
        source: ObstacleSource,
        at: Optional[datetime] = None,
    ) -> RouteAssessment:
        if not segments:
            return RouteAssessment(segments=[], overall=None, grade=None)

        route = [point for segment in segments for point in segment.polyline]
        obstacles = await self._matcher.obstacles_along_routes(
            route, (), source, buffer_meters=self._buffer_meters
        )
        assigned = self._assign_to_segments(obstacles, segments)

        assessments: list[SegmentAssessment] = []
        for segment, matched in zip(segments, assigned):
            merged = tuple(deduplicate_obstacles((*segment.attributes.obstacles, *matched)))
            attributes = replace(segment.attributes, obstacles=merged)
            assessments.append(
                SegmentAssessment(
                    segment=segment,
                    obstacles=merged,
                    score=self._scorer.score(attributes, profile, at),
                    length_meters=polyline_length(segment.polyline),
                )
            )

        overall = self._weighted_overall(assessments)
        logger.info(
            "Assessed route with {} segments and {} obstacles: {:.1f}",
            len(assessments),
            sum(len(assessment.obstacles) for assessment in assessments),
            overall,
        )
        return RouteAssessment(segments=assessments, overall=overall, grade=score_to_grade(overall))

    def _assign_to_segments(
        self, obstacles: Sequence[Obstacle], segments: Sequence[RouteSegment]
    ) -> list[list[Obstacle]]:
        assigned: list[list[Obstacle]] = [[] for _ in segments]
        for obstacle in obstacles:
            distances = [distance_to_polyline(obstacle.location, segment.polyline) for segment in segments]
            nearest = min(range(len(segments)), key=distances.__getitem__)
            if distances[nearest] <= self._buffer_meters:
                assigned[nearest].append(obstacle)
        return assigned

    @staticmethod
    def _weighted_overall(assessments: Sequence[SegmentAssessment]) -> float:
        total_length = sum(assessment.length_meters for assessment in assessments)
        if total_length <= 0 or math.isinf(total_length):
            return round(sum(a.score.overall for a in assessments) / len(assessments), 1)
        weighted = sum(a.score.overall * a.length_meters for a in assessments)
        return round(weighted / total_length, 1)


__all__ = ["AssessRouteUseCase", "RouteAssessment", "SegmentAssessment"]
