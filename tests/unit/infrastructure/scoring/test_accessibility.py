"""Tests for the AHP accessibility scorer."""
from __future__ import annotations

from datetime import datetime

import pytest

from waispath.core.entities import (
    GeoCoordinate,
    Lighting,
    MobilityDevice,
    MobilityProfile,
    Obstacle,
    ObstacleType,
    PathSegmentAttributes,
    Severity,
    ShadeLevel,
    SurfaceCondition,
    TimePattern,
    TrafficLevel,
)
from waispath.infrastructure.scoring.accessibility import (
    AHPAccessibilityScorer,
    sample_segment,
    score_to_grade,
    validate_score,
)
from waispath.infrastructure.scoring.time_patterns import is_pattern_active
from waispath.utils.logger import logger

MONDAY_MORNING = datetime(2024, 6, 3, 8, 0)
MONDAY_AFTERNOON = datetime(2024, 6, 3, 14, 0)
SATURDAY_AFTERNOON = datetime(2024, 6, 1, 14, 0)

WHEELCHAIR = MobilityProfile(device=MobilityDevice.WHEELCHAIR)
CANE = MobilityProfile(device=MobilityDevice.CANE)
NO_DEVICE = MobilityProfile()


def make_obstacle(
    obstacle_type: ObstacleType,
    severity: Severity = Severity.MEDIUM,
    time_pattern: TimePattern = TimePattern.PERMANENT,
    obstacle_id: str = "obs-1",
) -> Obstacle:
    return Obstacle(
        id=obstacle_id,
        type=obstacle_type,
        severity=severity,
        location=GeoCoordinate(14.5764, 121.0851),
        time_pattern=time_pattern,
    )


@pytest.mark.parametrize(
    ("score", "grade"),
    [(100, "A"), (85, "A"), (84.9, "B"), (70, "B"), (55, "C"), (54.9, "D"), (40, "D"), (39.9, "F"), (0, "F")],
)
def test_grade_thresholds(score: float, grade: str) -> None:
    assert score_to_grade(score) == grade


def test_clean_segment_scores_grade_a() -> None:
    scorer = AHPAccessibilityScorer()

    result = scorer.score(sample_segment(), NO_DEVICE, at=MONDAY_AFTERNOON)

    assert result.traversability == pytest.approx(100.0)
    assert result.safety == pytest.approx(85.0)
    assert result.comfort == pytest.approx(100.0)
    assert result.overall == pytest.approx(97.0)
    assert result.grade == "A"
    assert result.user_specific_adjustment == 0


def test_stairs_cost_wheelchair_users_more_than_cane_users() -> None:
    scorer = AHPAccessibilityScorer()
    blocking = make_obstacle(ObstacleType.STAIRS_NO_RAMP, Severity.BLOCKING)
    low = make_obstacle(ObstacleType.STAIRS_NO_RAMP, Severity.LOW)

    assert scorer.obstacle_penalty(blocking, WHEELCHAIR, MONDAY_AFTERNOON) == 300
    assert scorer.obstacle_penalty(blocking, CANE, MONDAY_AFTERNOON) == 180

    wheelchair = scorer.score(sample_segment([low]), WHEELCHAIR, at=MONDAY_AFTERNOON)
    cane = scorer.score(sample_segment([low]), CANE, at=MONDAY_AFTERNOON)
    assert wheelchair.traversability == pytest.approx(40.0)
    assert cane.traversability == pytest.approx(64.0)
    assert wheelchair.overall < cane.overall


def test_time_patterned_obstacle_is_heavier_while_active() -> None:
    scorer = AHPAccessibilityScorer()
    vendor = make_obstacle(ObstacleType.VENDOR_BLOCKING, time_pattern=TimePattern.MORNING)
    segment = sample_segment([vendor])

    morning = scorer.score(segment, NO_DEVICE, at=MONDAY_MORNING)
    afternoon = scorer.score(segment, NO_DEVICE, at=MONDAY_AFTERNOON)

    assert morning.traversability == pytest.approx(82.0)
    assert afternoon.traversability == pytest.approx(85.0)


def test_now_provider_is_used_without_explicit_time() -> None:
    scorer = AHPAccessibilityScorer(now_provider=lambda: MONDAY_MORNING)
    vendor = make_obstacle(ObstacleType.VENDOR_BLOCKING, time_pattern=TimePattern.MORNING)

    assert scorer.score(sample_segment([vendor]), NO_DEVICE).traversability == pytest.approx(82.0)


def test_crowd_aversion_raises_vendor_penalty() -> None:
    scorer = AHPAccessibilityScorer()
    vendor = make_obstacle(ObstacleType.VENDOR_BLOCKING)

    plain = scorer.obstacle_penalty(vendor, NO_DEVICE, MONDAY_AFTERNOON)
    averse = scorer.obstacle_penalty(vendor, MobilityProfile(avoid_crowds=True), MONDAY_AFTERNOON)

    assert plain == 18
    assert averse == 27


def test_width_and_slope_penalties_for_wheelchair() -> None:
    scorer = AHPAccessibilityScorer()
    narrow = PathSegmentAttributes(estimated_width=0.5)
    steep = PathSegmentAttributes(slope=8.0)
    steep_with_ramp = PathSegmentAttributes(slope=8.0, has_ramp=True)

    assert scorer.traversability(narrow, WHEELCHAIR, MONDAY_AFTERNOON) == pytest.approx(92.0)
    assert scorer.traversability(narrow, CANE, MONDAY_AFTERNOON) == pytest.approx(100.0)
    assert scorer.traversability(steep, WHEELCHAIR, MONDAY_AFTERNOON) == pytest.approx(50.0)
    assert scorer.traversability(steep_with_ramp, WHEELCHAIR, MONDAY_AFTERNOON) == pytest.approx(55.0)
    assert scorer.traversability(steep, CANE, MONDAY_AFTERNOON) == pytest.approx(100.0)


def test_safety_and_comfort_components() -> None:
    scorer = AHPAccessibilityScorer()
    hazardous = PathSegmentAttributes(
        traffic_level=TrafficLevel.HIGH,
        lighting=Lighting.NONE,
        obstacles=(make_obstacle(ObstacleType.CONSTRUCTION, Severity.BLOCKING),),
    )
    exposed = PathSegmentAttributes(
        shade_level=ShadeLevel.NONE,
        surface_condition=SurfaceCondition.ROUGH,
        has_handrails=True,
    )

    assert scorer.safety(hazardous) == pytest.approx(0.0)
    assert scorer.comfort(exposed, MobilityProfile(prefer_shade=True)) == pytest.approx(45.0)
    assert scorer.comfort(exposed, MobilityProfile(device=MobilityDevice.CANE, prefer_shade=True)) == pytest.approx(
        55.0
    )


def test_user_specific_adjustment() -> None:
    clutter = tuple(
        make_obstacle(ObstacleType.DEBRIS, Severity.LOW, obstacle_id=f"obs-{index}") for index in range(3)
    )

    short_walk = MobilityProfile(max_walking_distance=400)
    shade_lover = MobilityProfile(prefer_shade=True)

    adjust = AHPAccessibilityScorer.user_specific_adjustment
    assert adjust(PathSegmentAttributes(obstacles=clutter), short_walk) == -5
    assert adjust(PathSegmentAttributes(obstacles=clutter[:2]), short_walk) == 0
    assert adjust(PathSegmentAttributes(shade_level=ShadeLevel.COVERED), shade_lover) == 3
    assert adjust(PathSegmentAttributes(has_ramp=True, has_handrails=True), WHEELCHAIR) == 8


def test_extreme_segment_stays_in_range() -> None:
    scorer = AHPAccessibilityScorer()
    segment = PathSegmentAttributes(
        estimated_width=0.3,
        surface_condition=SurfaceCondition.BROKEN,
        slope=15.0,
        lighting=Lighting.NONE,
        shade_level=ShadeLevel.NONE,
        traffic_level=TrafficLevel.HIGH,
        obstacles=tuple(
            make_obstacle(obstacle_type, Severity.BLOCKING, obstacle_id=obstacle_type.value)
            for obstacle_type in (ObstacleType.STAIRS_NO_RAMP, ObstacleType.CONSTRUCTION, ObstacleType.FLOODING)
        ),
    )

    result = scorer.score(segment, WHEELCHAIR, at=MONDAY_AFTERNOON)

    assert validate_score(result)
    assert result.traversability == 0
    assert result.safety == 0
    assert result.grade == "F"


def test_scoring_is_deterministic() -> None:
    scorer = AHPAccessibilityScorer()
    segment = sample_segment([make_obstacle(ObstacleType.FLOODING, Severity.HIGH)])

    first = scorer.score(segment, WHEELCHAIR, at=MONDAY_MORNING)
    second = scorer.score(segment, WHEELCHAIR, at=MONDAY_MORNING)

    assert first == second


def test_unbalanced_weights_log_a_warning() -> None:
    scorer = AHPAccessibilityScorer()
    messages: list[str] = []
    sink_id = logger.add(messages.append, level="WARNING", format="{message}")
    try:
        weights = scorer.update_weights(traversability=0.9)
    finally:
        logger.remove(sink_id)

    assert weights.traversability == pytest.approx(0.9)
    assert scorer.weights.safety == pytest.approx(0.2)
    assert any("should be 1.0" in message for message in messages)


def test_from_config_overrides_weights_and_penalties() -> None:
    scorer = AHPAccessibilityScorer.from_config(
        {
            "weights": {"traversability": 0.5, "safety": 0.3, "comfort": 0.2},
            "obstacle_penalties": {"vendor_blocking": 30},
        }
    )
    vendor = make_obstacle(ObstacleType.VENDOR_BLOCKING)

    assert scorer.weights.traversability == pytest.approx(0.5)
    assert scorer.obstacle_penalty(vendor, NO_DEVICE, MONDAY_AFTERNOON) == 36


@pytest.mark.parametrize(
    ("pattern", "moment", "expected"),
    [
        (TimePattern.PERMANENT, MONDAY_MORNING, True),
        (TimePattern.MORNING, MONDAY_MORNING, True),
        (TimePattern.MORNING, datetime(2024, 6, 3, 10, 0), False),
        (TimePattern.AFTERNOON, MONDAY_AFTERNOON, True),
        (TimePattern.AFTERNOON, datetime(2024, 6, 3, 18, 0), False),
        (TimePattern.EVENING, datetime(2024, 6, 3, 23, 0), True),
        (TimePattern.EVENING, datetime(2024, 6, 3, 2, 0), True),
        (TimePattern.EVENING, MONDAY_AFTERNOON, False),
        (TimePattern.WEEKEND, SATURDAY_AFTERNOON, True),
        (TimePattern.WEEKEND, MONDAY_AFTERNOON, False),
        (None, MONDAY_AFTERNOON, True),
    ],
)
def test_time_pattern_activity(pattern: TimePattern | None, moment: datetime, expected: bool) -> None:
    assert is_pattern_active(pattern, moment) is expected
