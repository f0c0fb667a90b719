"""In-process obstacle area query over a fixed collection of reports."""
from __future__ import annotations

from typing import Any, Iterable, Mapping

from waispath.core.entities import GeoCoordinate, Obstacle, coerce_coordinate
from waispath.infrastructure.geo.distance import haversine_distance
from waispath.utils.logger import logger


class InMemoryObstacleSource:
    """Serve area queries from obstacles held in memory.

    Stands in for the hosted report store in scripts and offline replays; it
    counts queries so callers can check how often the store would be hit.
    """

    def __init__(self, obstacles: Iterable[Obstacle] = ()) -> None:
        self._obstacles: list[Obstacle] = list(obstacles)
        self.query_count = 0

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "InMemoryObstacleSource":
        obstacles: list[Obstacle] = []
        for record in records:
            location = coerce_coordinate(record.get("location"))
            if location is None:
                logger.warning("Skipping obstacle record without location: {}", record.get("id"))
                continue
            try:
                obstacle = Obstacle(
                    id=str(record["id"]),
                    type=record.get("type", "other"),
                    severity=record.get("severity", "medium"),
                    location=location,
                    time_pattern=record.get("time_pattern", "permanent"),
                    description=record.get("description", ""),
                    verified=bool(record.get("verified", False)),
                    upvotes=int(record.get("upvotes", 0)),
                    downvotes=int(record.get("downvotes", 0)),
                )
            except ValueError as error:
                logger.warning("Skipping invalid obstacle record {}: {}", record.get("id"), error)
                continue
            obstacles.append(obstacle)
        return cls(obstacles)

    @property
    def obstacles(self) -> list[Obstacle]:
        return list(self._obstacles)

    def replace(self, obstacles: Iterable[Obstacle]) -> None:
        self._obstacles = list(obstacles)

    async def __call__(self, center: GeoCoordinate, radius_km: float) -> list[Obstacle]:
        self.query_count += 1
        radius_m = radius_km * 1000
        return [
            obstacle
            for obstacle in self._obstacles
            if obstacle.location.is_valid() and haversine_distance(center, obstacle.location) <= radius_m
        ]


__all__ = ["InMemoryObstacleSource"]
