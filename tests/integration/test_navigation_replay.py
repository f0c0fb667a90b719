"""Integration test replaying the bundled walk through scoring and monitoring."""
from __future__ import annotations

import asyncio
from pathlib import Path

from scripts import simulate_navigation
from waispath.infrastructure.scoring.accessibility import validate_score
from waispath.utils.config import load_config

ROOT = Path(__file__).resolve().parents[2]


def test_replay_grades_route_and_announces_each_critical_obstacle_once(monkeypatch):
    announced: list[str] = []
    monkeypatch.setattr(
        simulate_navigation,
        "announce",
        lambda alert, location: announced.append(alert.obstacle.id),
    )

    config = load_config(ROOT / "configs" / "config.yaml")
    scenario = simulate_navigation.load_scenario(ROOT / "scenarios" / "pasig_city_hall.yaml")

    assessment = asyncio.run(simulate_navigation.simulate(config, scenario))

    assert announced == ["obs-stairs", "obs-flood"]
    assert len(assessment.segments) == 2
    assert [obstacle.id for obstacle in assessment.segments[0].obstacles] == ["obs-stairs"]
    assert {obstacle.id for obstacle in assessment.segments[1].obstacles} == {"obs-vendor", "obs-flood"}
    assert all(validate_score(segment.score) for segment in assessment.segments)
    assert assessment.grade is not None


def test_scenario_segments_are_built_from_yaml():
    scenario = simulate_navigation.load_scenario(ROOT / "scenarios" / "pasig_city_hall.yaml")

    segments = simulate_navigation.build_segments(scenario)

    assert [len(segment.polyline) for segment in segments] == [2, 3]
    assert segments[0].attributes.has_ramp is True
    assert segments[1].attributes.estimated_width == 0.8
