"""Match community-reported obstacles to route geometry."""
from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol, Sequence

from waispath.core.entities import (
    GeoCoordinate,
    Obstacle,
    Polyline,
    RouteAnalysis,
    coerce_coordinate,
)
from waispath.infrastructure.geo.distance import calculate_bounds, distance_to_polyline
from waispath.infrastructure.obstacles.cache import ObstacleCache, build_cache_key
from waispath.utils.config import MatcherSettings
from waispath.utils.logger import logger

DEFAULT_BUFFER_METERS = 50.0
DEFAULT_AREA_RADIUS_KM = 1.0
MIN_AREA_RADIUS_KM = 0.1
MAX_AREA_RADIUS_KM = 5.0


class ObstacleSource(Protocol):
    """Area query returning the obstacles reported around ``center``.

    Implementations may be coroutine functions or plain callables.
    """

    def __call__(self, center: GeoCoordinate, radius_km: float) -> Any:
        ...


class ObstacleQueryError(RuntimeError):
    """Raised in strict mode when the obstacle source fails or times out."""


def deduplicate_obstacles(obstacles: Iterable[Obstacle]) -> list[Obstacle]:
    """Drop repeated identifiers, keeping the first occurrence and its position."""

    seen: set[str] = set()
    unique: list[Obstacle] = []
    for obstacle in obstacles:
        if obstacle.id in seen:
            continue
        seen.add(obstacle.id)
        unique.append(obstacle)
    return unique


def _has_valid_location(obstacle: Obstacle) -> bool:
    location = getattr(obstacle, "location", None)
    return isinstance(location, GeoCoordinate) and location.is_valid()


def _sanitize(polyline: Optional[Iterable[Any]]) -> tuple[GeoCoordinate, ...]:
    points = (coerce_coordinate(point) for point in (polyline or ()))
    return tuple(point for point in points if point is not None and point.is_valid())


class RouteObstacleMatcher:
    """Find the obstacles that matter for a pair of candidate routes.

    Results for route pairs are memoised in an :class:`ObstacleCache`; the cache
    never changes what a call returns, only whether the source is consulted.
    Source failures degrade to an empty list unless ``strict`` is requested.
    """

    def __init__(
        self,
        cache: ObstacleCache | None = None,
        query_timeout: float | None = 10.0,
        default_buffer_meters: float = DEFAULT_BUFFER_METERS,
        default_radius_km: float = DEFAULT_AREA_RADIUS_KM,
    ) -> None:
        self._cache = cache if cache is not None else ObstacleCache()
        self._query_timeout = query_timeout
        self._default_buffer_meters = default_buffer_meters
        self._default_radius_km = default_radius_km
        self.last_error: Optional[str] = None

    @classmethod
    def from_settings(
        cls, settings: MatcherSettings, clock: Callable[[], float] | None = None
    ) -> "RouteObstacleMatcher":
        cache = ObstacleCache(
            ttl_seconds=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
            clock=clock,
        )
        return cls(
            cache=cache,
            query_timeout=settings.query_timeout_seconds,
            default_buffer_meters=settings.buffer_meters,
            default_radius_km=settings.area_radius_km,
        )

    @property
    def cache(self) -> ObstacleCache:
        return self._cache

    async def obstacles_along_routes(
        self,
        route_a: Polyline,
        route_b: Polyline,
        source: ObstacleSource,
        buffer_meters: float | None = None,
        use_cache: bool = True,
        strict: bool = False,
    ) -> list[Obstacle]:
        """Obstacles within ``buffer_meters`` of either route."""

        buffer_meters = self._default_buffer_meters if buffer_meters is None else buffer_meters
        fastest = _sanitize(route_a)
        alternate = _sanitize(route_b)
        if not fastest and not alternate:
            logger.warning("No route points available for obstacle loading")
            return []

        cache_key = build_cache_key(fastest, alternate, buffer_meters)
        if use_cache:
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug("Using cached obstacles for {}", cache_key)
                return list(cached)

        bounds = calculate_bounds((*fastest, *alternate))
        candidates = await self._query(source, bounds.center, bounds.radius_km, strict)
        logger.debug("Found {} candidate obstacles in routes area", len(candidates))

        along_route: list[Obstacle] = []
        for obstacle in candidates:
            if not _has_valid_location(obstacle):
                continue
            distance = min(
                distance_to_polyline(obstacle.location, fastest),
                distance_to_polyline(obstacle.location, alternate),
            )
            if distance <= buffer_meters:
                along_route.append(obstacle)

        result = deduplicate_obstacles(along_route)
        logger.info("{} obstacles are within {}m of routes", len(result), buffer_meters)
        if use_cache:
            self._cache.put(cache_key, result)
        return result

    async def obstacles_around_location(
        self,
        location: GeoCoordinate,
        source: ObstacleSource,
        radius_km: float | None = None,
        strict: bool = False,
    ) -> list[Obstacle]:
        """Obstacles reported around ``location``; used when no route is known."""

        if location is None or not location.is_valid():
            logger.warning("Invalid location provided: {}", location)
            return []

        requested = self._default_radius_km if radius_km is None else radius_km
        radius = max(MIN_AREA_RADIUS_KM, min(requested, MAX_AREA_RADIUS_KM))
        if radius != requested:
            logger.warning("Adjusted radius from {}km to {}km", requested, radius)

        candidates = await self._query(source, location, radius, strict)
        result = deduplicate_obstacles(obstacle for obstacle in candidates if _has_valid_location(obstacle))
        logger.info("Found {} obstacles around location", len(result))
        return result

    async def relevant_obstacles(
        self,
        user_location: GeoCoordinate,
        source: ObstacleSource,
        route_analysis: RouteAnalysis | Mapping[str, Any] | None = None,
    ) -> list[Obstacle]:
        """Route-based matching when both routes are known, area lookup otherwise."""

        if user_location is None or not user_location.is_valid():
            logger.warning("Invalid user location: {}", user_location)
            return []

        analysis = self._normalize_analysis(route_analysis)
        if analysis is not None and analysis.has_both_routes:
            logger.debug("Loading obstacles along provided routes")
            return await self.obstacles_along_routes(
                analysis.fastest,
                analysis.alternate,
                source,
                buffer_meters=self._default_buffer_meters,
            )

        logger.debug("Falling back to location-based obstacle loading")
        return await self.obstacles_around_location(user_location, source, self._default_radius_km)

    async def _query(
        self,
        source: ObstacleSource,
        center: GeoCoordinate,
        radius_km: float,
        strict: bool,
    ) -> Sequence[Obstacle]:
        try:
            result = source(center, radius_km)
            if inspect.isawaitable(result):
                result = await asyncio.wait_for(result, timeout=self._query_timeout)
        except Exception as error:  # noqa: BLE001
            message = f"{type(error).__name__}: {error}" if str(error) else type(error).__name__
            self.last_error = message
            logger.warning("Obstacle area query failed: {}", message)
            if strict:
                raise ObstacleQueryError(message) from error
            return []

        self.last_error = None
        return list(result or [])

    @staticmethod
    def _normalize_analysis(
        route_analysis: RouteAnalysis | Mapping[str, Any] | None,
    ) -> Optional[RouteAnalysis]:
        if route_analysis is None or isinstance(route_analysis, RouteAnalysis):
            return route_analysis
        return RouteAnalysis.from_mapping(route_analysis)


__all__ = [
    "ObstacleQueryError",
    "ObstacleSource",
    "RouteObstacleMatcher",
    "deduplicate_obstacles",
]
