"""Geometric helpers: bearings, geodesic distances and polyline decoding."""

from .bearing import (
    angle_difference,
    bearing,
    cardinal_direction,
    estimate_bearing_from_route,
    format_bearing,
    is_ahead,
)
from .distance import (
    calculate_bounds,
    distance_to_polyline,
    haversine_distance,
    point_to_segment_distance,
    polyline_length,
)
from .polyline import decode_polyline

__all__ = [
    "angle_difference",
    "bearing",
    "calculate_bounds",
    "cardinal_direction",
    "decode_polyline",
    "distance_to_polyline",
    "estimate_bearing_from_route",
    "format_bearing",
    "haversine_distance",
    "is_ahead",
    "point_to_segment_distance",
    "polyline_length",
]
