"""Bearing and heading helpers used inside the proximity detection loop."""
from __future__ import annotations

import math
from typing import Optional

from waispath.core.entities import GeoCoordinate, Polyline
from waispath.infrastructure.geo.distance import planar_distance

_COMPASS_POINTS: tuple[str, ...] = (
    "north",
    "northeast",
    "east",
    "southeast",
    "south",
    "southwest",
    "west",
    "northwest",
)


def bearing(origin: GeoCoordinate, target: GeoCoordinate) -> float:
    """Initial great-circle bearing from ``origin`` to ``target`` in ``[0, 360)``.

    0 is north and 90 is east.
    """

    lat1 = math.radians(origin.latitude)
    lat2 = math.radians(target.latitude)
    delta_lon = math.radians(target.longitude - origin.longitude)

    x = math.sin(delta_lon) * math.cos(lat2)
    y = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(delta_lon)
    return (math.degrees(math.atan2(x, y)) + 360.0) % 360.0


def angle_difference(first: float, second: float) -> float:
    """Smallest angle in ``[0, 180]`` between two bearings."""

    diff = abs(first - second) % 360.0
    return 360.0 - diff if diff > 180.0 else diff


def is_ahead(
    user_location: GeoCoordinate,
    user_bearing: float,
    target: GeoCoordinate,
    threshold_deg: float = 90.0,
) -> bool:
    """Whether ``target`` lies within ``threshold_deg`` of the user's heading."""

    return angle_difference(user_bearing, bearing(user_location, target)) <= threshold_deg


def estimate_bearing_from_route(
    user_location: GeoCoordinate,
    polyline: Polyline,
    look_ahead_points: int = 5,
) -> Optional[float]:
    """Heading implied by the route a few vertices past the user's position.

    The nearest vertex is found with a planar approximation, which is adequate at
    pedestrian scale. ``None`` is returned for polylines with fewer than two
    points and when the nearest vertex is already the end of the route.
    """

    if len(polyline) < 2:
        return None

    closest_index = 0
    closest_distance = math.inf
    for index, point in enumerate(polyline):
        distance = planar_distance(user_location, point)
        if distance < closest_distance:
            closest_distance = distance
            closest_index = index

    target_index = min(closest_index + max(1, look_ahead_points), len(polyline) - 1)
    if target_index == closest_index:
        return None

    return bearing(polyline[closest_index], polyline[target_index])


def cardinal_direction(heading: float) -> str:
    """Eight-point compass name for a bearing, e.g. ``"northeast"``."""

    return _COMPASS_POINTS[round((heading % 360.0) / 45.0) % 8]


def format_bearing(heading: float) -> str:
    return f"heading {cardinal_direction(heading)} ({round(heading) % 360}°)"


__all__ = [
    "angle_difference",
    "bearing",
    "cardinal_direction",
    "estimate_bearing_from_route",
    "format_bearing",
    "is_ahead",
]
