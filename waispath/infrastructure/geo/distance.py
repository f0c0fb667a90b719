"""Geodesic primitives shared by the route matcher and the proximity detector."""
from __future__ import annotations

import math
from typing import Iterable

from geopy.distance import great_circle

from waispath.core.entities import GeoCoordinate, Polyline, RouteBounds

KM_PER_DEGREE = 111.0
BOUNDS_PADDING_KM = 0.5
MIN_SEARCH_RADIUS_KM = 1.0


def haversine_distance(origin: GeoCoordinate, target: GeoCoordinate) -> float:
    """Great-circle distance in metres between two valid coordinates."""

    return great_circle(origin.as_tuple(), target.as_tuple()).meters


def planar_distance(origin: GeoCoordinate, target: GeoCoordinate) -> float:
    """Euclidean distance in degree space; only suitable for ranking nearby points."""

    return math.hypot(origin.latitude - target.latitude, origin.longitude - target.longitude)


def point_to_segment_distance(
    point: GeoCoordinate, start: GeoCoordinate, end: GeoCoordinate
) -> float:
    """Distance in metres from ``point`` to the segment ``start``-``end``.

    The point is projected onto the segment in longitude/latitude space with the
    projection parameter clamped to ``[0, 1]``; the haversine distance to the
    projected position is returned. Zero-length segments fall back to the
    distance to ``start``.
    """

    seg_lon = end.longitude - start.longitude
    seg_lat = end.latitude - start.latitude
    length_sq = seg_lon * seg_lon + seg_lat * seg_lat
    if length_sq == 0:
        return haversine_distance(point, start)

    dot = (point.longitude - start.longitude) * seg_lon + (point.latitude - start.latitude) * seg_lat
    t = max(0.0, min(1.0, dot / length_sq))
    projected = GeoCoordinate(
        latitude=start.latitude + t * seg_lat,
        longitude=start.longitude + t * seg_lon,
    )
    return haversine_distance(point, projected)


def distance_to_polyline(point: GeoCoordinate, polyline: Polyline) -> float:
    """Minimum distance in metres from ``point`` to any segment of ``polyline``.

    Invalid vertices are skipped together with the segments touching them. An
    empty polyline, or an invalid ``point``, yields ``math.inf``.
    """

    if not point.is_valid():
        return math.inf

    vertices = [vertex for vertex in polyline if vertex.is_valid()]
    if not vertices:
        return math.inf
    if len(vertices) == 1:
        return haversine_distance(point, vertices[0])

    best = math.inf
    for index in range(len(polyline) - 1):
        start, end = polyline[index], polyline[index + 1]
        if not (start.is_valid() and end.is_valid()):
            continue
        best = min(best, point_to_segment_distance(point, start, end))
    return best


def polyline_length(polyline: Polyline) -> float:
    """Total length in metres of the valid consecutive pairs of ``polyline``."""

    total = 0.0
    for start, end in zip(polyline, polyline[1:]):
        if start.is_valid() and end.is_valid():
            total += haversine_distance(start, end)
    return total


def calculate_bounds(points: Iterable[GeoCoordinate]) -> RouteBounds:
    """Centre and search radius of the box enclosing ``points``.

    The box diagonal is converted with a flat ``KM_PER_DEGREE`` factor, halved and
    padded; the radius never drops below ``MIN_SEARCH_RADIUS_KM``.
    """

    valid = [point for point in points if point.is_valid()]
    if not valid:
        raise ValueError("Cannot compute bounds without valid route points")

    min_lat = min(point.latitude for point in valid)
    max_lat = max(point.latitude for point in valid)
    min_lon = min(point.longitude for point in valid)
    max_lon = max(point.longitude for point in valid)

    center = GeoCoordinate(latitude=(min_lat + max_lat) / 2, longitude=(min_lon + max_lon) / 2)
    diagonal_km = math.hypot(max_lat - min_lat, max_lon - min_lon) * KM_PER_DEGREE
    radius_km = max(MIN_SEARCH_RADIUS_KM, diagonal_km / 2 + BOUNDS_PADDING_KM)
    return RouteBounds(center=center, radius_km=radius_km)


__all__ = [
    "KM_PER_DEGREE",
    "calculate_bounds",
    "distance_to_polyline",
    "haversine_distance",
    "planar_distance",
    "point_to_segment_distance",
    "polyline_length",
]
