"""AHP-based accessibility scoring personalised by mobility device."""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping, Optional

from waispath.core.entities import (
    AccessibilityScore,
    Grade,
    Lighting,
    MobilityDevice,
    MobilityProfile,
    Obstacle,
    ObstacleType,
    PathSegmentAttributes,
    Severity,
    ShadeLevel,
    SurfaceCondition,
    TrafficLevel,
)
from waispath.infrastructure.scoring.time_patterns import is_pattern_active
from waispath.utils.logger import logger

_GRADE_THRESHOLDS: tuple[tuple[float, Grade], ...] = (
    (85.0, "A"),
    (70.0, "B"),
    (55.0, "C"),
    (40.0, "D"),
)

_BASE_PENALTIES: dict[ObstacleType, float] = {
    ObstacleType.VENDOR_BLOCKING: 15,
    ObstacleType.PARKED_VEHICLES: 20,
    ObstacleType.STAIRS_NO_RAMP: 50,
    ObstacleType.NARROW_PASSAGE: 25,
    ObstacleType.BROKEN_PAVEMENT: 20,
    ObstacleType.FLOODING: 30,
    ObstacleType.CONSTRUCTION: 35,
    ObstacleType.ELECTRICAL_POST: 15,
    ObstacleType.TREE_ROOTS: 18,
    ObstacleType.NO_SIDEWALK: 40,
    ObstacleType.STEEP_SLOPE: 30,
    ObstacleType.OTHER: 10,
}
DEFAULT_BASE_PENALTY = 10.0

_SAFETY_PENALTIES: dict[ObstacleType, float] = {
    ObstacleType.FLOODING: 25,
    ObstacleType.BROKEN_PAVEMENT: 20,
    ObstacleType.PARKED_VEHICLES: 15,
    ObstacleType.STAIRS_NO_RAMP: 10,
    ObstacleType.VENDOR_BLOCKING: 5,
    ObstacleType.NARROW_PASSAGE: 8,
    ObstacleType.CONSTRUCTION: 30,
    ObstacleType.NO_SIDEWALK: 35,
    ObstacleType.STEEP_SLOPE: 15,
    ObstacleType.ELECTRICAL_POST: 5,
    ObstacleType.TREE_ROOTS: 12,
    ObstacleType.OTHER: 8,
}
DEFAULT_SAFETY_PENALTY = 5.0

_SEVERITY_MULTIPLIERS: dict[Severity, float] = {
    Severity.LOW: 0.5,
    Severity.MEDIUM: 1.0,
    Severity.HIGH: 1.5,
    Severity.BLOCKING: 2.5,
}

_W, _WK, _C, _CR, _N = (
    MobilityDevice.WHEELCHAIR,
    MobilityDevice.WALKER,
    MobilityDevice.CANE,
    MobilityDevice.CRUTCHES,
    MobilityDevice.NONE,
)
_USER_TYPE_MULTIPLIERS: dict[ObstacleType, dict[MobilityDevice, float]] = {
    ObstacleType.STAIRS_NO_RAMP: {_W: 2.0, _WK: 1.5, _C: 1.2, _CR: 1.8, _N: 1.0},
    ObstacleType.NARROW_PASSAGE: {_W: 1.8, _WK: 1.5, _C: 1.0, _CR: 1.3, _N: 1.0},
    ObstacleType.BROKEN_PAVEMENT: {_W: 1.6, _WK: 1.4, _C: 1.2, _CR: 1.5, _N: 1.0},
    ObstacleType.VENDOR_BLOCKING: {_W: 1.3, _WK: 1.2, _C: 1.0, _CR: 1.1, _N: 1.0},
    ObstacleType.PARKED_VEHICLES: {_W: 1.4, _WK: 1.2, _C: 1.0, _CR: 1.1, _N: 1.0},
    ObstacleType.FLOODING: {_W: 1.5, _WK: 1.3, _C: 1.2, _CR: 1.4, _N: 1.0},
    ObstacleType.NO_SIDEWALK: {_W: 1.8, _WK: 1.6, _C: 1.3, _CR: 1.7, _N: 1.0},
    ObstacleType.CONSTRUCTION: {_W: 1.6, _WK: 1.4, _C: 1.2, _CR: 1.5, _N: 1.0},
}

# Clear width in metres each device needs to pass.
_REQUIRED_WIDTH: dict[MobilityDevice, float] = {_W: 0.9, _WK: 0.7, _CR: 0.6, _C: 0.5, _N: 0.5}

_TRAFFIC_PENALTIES = {TrafficLevel.HIGH: 30, TrafficLevel.MEDIUM: 15, TrafficLevel.LOW: 5}
_LIGHTING_PENALTIES = {Lighting.NONE: 25, Lighting.POOR: 10, Lighting.GOOD: 0}
_SHADE_PENALTIES = {ShadeLevel.NONE: 40, ShadeLevel.PARTIAL: 20, ShadeLevel.COVERED: 0}
_SURFACE_COMFORT_PENALTIES = {
    SurfaceCondition.BROKEN: 30,
    SurfaceCondition.ROUGH: 15,
    SurfaceCondition.SMOOTH: 0,
}

ACTIVE_OBSTACLE_MULTIPLIER = 1.2
CROWD_AVERSION_MULTIPLIER = 1.5
BLOCKING_SAFETY_MULTIPLIER = 1.5


@dataclass(frozen=True)
class AHPWeights:
    """Relative importance of the three criteria."""

    traversability: float = 0.7
    safety: float = 0.2
    comfort: float = 0.1

    @property
    def total(self) -> float:
        return self.traversability + self.safety + self.comfort


def score_to_grade(score: float) -> Grade:
    for threshold, grade in _GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def _clamp(value: float, lower: float = 0.0, upper: float = 100.0) -> float:
    return max(lower, min(upper, value))


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


class AHPAccessibilityScorer:
    """Weighted traversability/safety/comfort grade for a path segment.

    Weights and penalty tables follow WHO accessibility guidance tuned for
    Philippine sidewalks; every table can be overridden through ``from_config``.
    The scorer holds no per-call state, so one instance can serve concurrent
    callers.
    """

    def __init__(
        self,
        weights: AHPWeights | None = None,
        base_penalties: Mapping[ObstacleType, float] | None = None,
        safety_penalties: Mapping[ObstacleType, float] | None = None,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self._weights = weights or AHPWeights()
        self._base_penalties = dict(base_penalties or _BASE_PENALTIES)
        self._safety_penalties = dict(safety_penalties or _SAFETY_PENALTIES)
        self._now_provider = now_provider or datetime.now
        self._warn_if_unbalanced(self._weights)

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any] | None,
        now_provider: Callable[[], datetime] | None = None,
    ) -> "AHPAccessibilityScorer":
        config = config or {}
        raw_weights = config.get("weights") or {}
        weights = AHPWeights(**{**AHPWeights().__dict__, **raw_weights})

        base_penalties = dict(_BASE_PENALTIES)
        for key, value in (config.get("obstacle_penalties") or {}).items():
            base_penalties[ObstacleType(key)] = float(value)

        safety_penalties = dict(_SAFETY_PENALTIES)
        for key, value in (config.get("safety_penalties") or {}).items():
            safety_penalties[ObstacleType(key)] = float(value)

        return cls(
            weights=weights,
            base_penalties=base_penalties,
            safety_penalties=safety_penalties,
            now_provider=now_provider,
        )

    @property
    def weights(self) -> AHPWeights:
        return self._weights

    def update_weights(self, **changes: float) -> AHPWeights:
        """Replace some weights, warning when they no longer sum to one."""

        merged = {**self._weights.__dict__, **changes}
        self._weights = AHPWeights(**merged)
        self._warn_if_unbalanced(self._weights)
        return self._weights

    def score(
        self,
        segment: PathSegmentAttributes,
        profile: MobilityProfile,
        at: Optional[datetime] = None,
    ) -> AccessibilityScore:
        """Grade ``segment`` for ``profile``; ``at`` drives time-pattern activity."""

        moment = at or self._now_provider()
        traversability = self.traversability(segment, profile, moment)
        safety = self.safety(segment)
        comfort = self.comfort(segment, profile)

        weighted = (
            traversability * self._weights.traversability
            + safety * self._weights.safety
            + comfort * self._weights.comfort
        )
        adjustment = self.user_specific_adjustment(segment, profile)
        overall = round_half_up(_clamp(weighted + adjustment), 1)

        result = AccessibilityScore(
            traversability=round_half_up(traversability, 1),
            safety=round_half_up(safety, 1),
            comfort=round_half_up(comfort, 1),
            overall=overall,
            grade=score_to_grade(overall),
            user_specific_adjustment=round_half_up(adjustment, 1),
        )
        logger.debug(
            "Scored segment with {} obstacles for {}: {} ({})",
            len(segment.obstacles),
            profile.device.value,
            result.overall,
            result.grade,
        )
        return result

    def traversability(
        self, segment: PathSegmentAttributes, profile: MobilityProfile, at: datetime
    ) -> float:
        score = 100.0
        for obstacle in segment.obstacles:
            score -= self.obstacle_penalty(obstacle, profile, at)

        required_width = _REQUIRED_WIDTH.get(profile.device, 0.6)
        if segment.estimated_width < required_width:
            score -= min(40.0, (required_width - segment.estimated_width) * 20)

        is_wheelchair = profile.device == MobilityDevice.WHEELCHAIR
        if segment.surface_condition == SurfaceCondition.BROKEN:
            score -= 35 if is_wheelchair else 25
        elif segment.surface_condition == SurfaceCondition.ROUGH:
            score -= 15 if is_wheelchair else 10

        max_slope = profile.max_ramp_slope or 5.0
        if is_wheelchair and segment.slope > max_slope:
            score -= min(50.0, segment.slope * 8)

        if is_wheelchair and segment.has_ramp:
            score += 5

        return _clamp(score)

    def safety(self, segment: PathSegmentAttributes) -> float:
        score = 100.0
        score -= _TRAFFIC_PENALTIES[segment.traffic_level]
        score -= _LIGHTING_PENALTIES[segment.lighting]
        for obstacle in segment.obstacles:
            score -= self.obstacle_safety_penalty(obstacle)
        return _clamp(score)

    def comfort(self, segment: PathSegmentAttributes, profile: MobilityProfile) -> float:
        score = 100.0
        if profile.prefer_shade:
            score -= _SHADE_PENALTIES[segment.shade_level]
        score -= _SURFACE_COMFORT_PENALTIES[segment.surface_condition]
        if profile.device in (MobilityDevice.WALKER, MobilityDevice.CANE) and segment.has_handrails:
            score += 10
        return _clamp(score)

    def obstacle_penalty(self, obstacle: Obstacle, profile: MobilityProfile, at: datetime) -> float:
        """Traversability points an obstacle costs this profile at ``at``."""

        penalty = self._base_penalties.get(obstacle.type, DEFAULT_BASE_PENALTY)
        penalty *= _SEVERITY_MULTIPLIERS[obstacle.severity]
        penalty *= _USER_TYPE_MULTIPLIERS.get(obstacle.type, {}).get(profile.device, 1.0)

        if profile.avoid_crowds and obstacle.type == ObstacleType.VENDOR_BLOCKING:
            penalty *= CROWD_AVERSION_MULTIPLIER

        if is_pattern_active(obstacle.time_pattern, at):
            penalty *= ACTIVE_OBSTACLE_MULTIPLIER

        return round_half_up(penalty)

    def obstacle_safety_penalty(self, obstacle: Obstacle) -> float:
        penalty = self._safety_penalties.get(obstacle.type, DEFAULT_SAFETY_PENALTY)
        if obstacle.severity == Severity.BLOCKING:
            penalty *= BLOCKING_SAFETY_MULTIPLIER
        return penalty

    @staticmethod
    def user_specific_adjustment(segment: PathSegmentAttributes, profile: MobilityProfile) -> float:
        adjustment = 0.0

        # Short-walk users pay for the detours a cluttered segment implies.
        if profile.max_walking_distance and profile.max_walking_distance < 500:
            if len(segment.obstacles) > 2:
                adjustment -= 5

        if profile.prefer_shade and segment.shade_level == ShadeLevel.COVERED:
            adjustment += 3

        if profile.device == MobilityDevice.WHEELCHAIR:
            if segment.has_ramp:
                adjustment += 5
            if segment.has_handrails:
                adjustment += 3

        return adjustment

    @staticmethod
    def _warn_if_unbalanced(weights: AHPWeights) -> None:
        if abs(weights.total - 1.0) > 0.01:
            logger.warning("AHP weights sum to {:.3f}, should be 1.0. Consider rebalancing.", weights.total)


def validate_score(score: AccessibilityScore) -> bool:
    return all(
        0.0 <= value <= 100.0
        for value in (score.overall, score.traversability, score.safety, score.comfort)
    )


def sample_segment(obstacles: Iterable[Obstacle] = ()) -> PathSegmentAttributes:
    """Typical urban sidewalk used when only the obstacles of a stretch are known."""

    return PathSegmentAttributes(
        estimated_width=1.5,
        surface_condition=SurfaceCondition.SMOOTH,
        slope=0.0,
        lighting=Lighting.GOOD,
        shade_level=ShadeLevel.PARTIAL,
        traffic_level=TrafficLevel.MEDIUM,
        has_ramp=False,
        has_handrails=False,
        obstacles=tuple(obstacles),
    )


__all__ = [
    "AHPAccessibilityScorer",
    "AHPWeights",
    "round_half_up",
    "sample_segment",
    "score_to_grade",
    "validate_score",
]
