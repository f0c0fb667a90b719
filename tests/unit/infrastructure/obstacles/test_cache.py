"""Tests for the route obstacle cache."""
from __future__ import annotations

import pytest

from waispath.core.entities import GeoCoordinate, Obstacle, ObstacleType, Severity
from waispath.infrastructure.obstacles.cache import ObstacleCache, build_cache_key, hash_polyline


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def make_obstacle(obstacle_id: str) -> Obstacle:
    return Obstacle(
        id=obstacle_id,
        type=ObstacleType.DEBRIS,
        severity=Severity.LOW,
        location=GeoCoordinate(14.5764, 121.0851),
    )


def test_hash_uses_first_middle_and_last_vertices() -> None:
    route = [GeoCoordinate(14.57641, 121.08512), GeoCoordinate(14.5770, 121.0860), GeoCoordinate(14.5780, 121.0870)]

    assert hash_polyline(route) == "14.5764,121.0851-14.5770,121.0860-14.5780,121.0870"
    assert hash_polyline([]) == "empty"
    assert build_cache_key(route, [], 50.0) == f"{hash_polyline(route)}-empty-50"


def test_entries_expire_after_ttl() -> None:
    clock = FakeClock()
    cache = ObstacleCache(ttl_seconds=120, max_entries=5, clock=clock)
    cache.put("route", [make_obstacle("obs-1")])

    clock.now = 119.0
    assert cache.get("route") == (make_obstacle("obs-1"),)

    clock.now = 120.0
    assert cache.get("route") is None
    assert len(cache) == 0


def test_oldest_entry_is_evicted_when_full() -> None:
    clock = FakeClock()
    cache = ObstacleCache(ttl_seconds=120, max_entries=2, clock=clock)

    cache.put("first", [])
    clock.now = 1.0
    cache.put("second", [])
    clock.now = 2.0
    cache.put("third", [])

    assert cache.get("first") is None
    assert cache.get("second") == ()
    assert cache.get("third") == ()
    assert len(cache) == 2


def test_rewriting_a_key_refreshes_its_position() -> None:
    cache = ObstacleCache(ttl_seconds=120, max_entries=2, clock=FakeClock())

    cache.put("first", [])
    cache.put("second", [])
    cache.put("first", [make_obstacle("obs-1")])
    cache.put("third", [])

    assert cache.get("second") is None
    assert cache.get("first") == (make_obstacle("obs-1"),)


def test_stats_and_clear() -> None:
    cache = ObstacleCache(ttl_seconds=120, max_entries=50)
    cache.put("route", [])

    assert cache.stats() == {"size": 1, "max_size": 50, "ttl_minutes": 2.0}

    cache.clear()
    assert cache.stats()["size"] == 0


def test_cache_requires_capacity() -> None:
    with pytest.raises(ValueError):
        ObstacleCache(max_entries=0)
