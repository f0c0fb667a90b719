"""Core entities for the accessibility scoring and obstacle relevance domain."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Literal, Mapping, Optional, Sequence, TypeVar

Grade = Literal["A", "B", "C", "D", "F"]


class MobilityDevice(str, Enum):
    WHEELCHAIR = "wheelchair"
    WALKER = "walker"
    CANE = "cane"
    CRUTCHES = "crutches"
    NONE = "none"


class ObstacleType(str, Enum):
    VENDOR_BLOCKING = "vendor_blocking"
    PARKED_VEHICLES = "parked_vehicles"
    STAIRS_NO_RAMP = "stairs_no_ramp"
    NARROW_PASSAGE = "narrow_passage"
    BROKEN_INFRASTRUCTURE = "broken_infrastructure"
    BROKEN_PAVEMENT = "broken_pavement"
    FLOODING = "flooding"
    CONSTRUCTION = "construction"
    ELECTRICAL_POST = "electrical_post"
    TREE_ROOTS = "tree_roots"
    DEBRIS = "debris"
    NO_SIDEWALK = "no_sidewalk"
    STEEP_SLOPE = "steep_slope"
    OTHER = "other"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    BLOCKING = "blocking"


class TimePattern(str, Enum):
    PERMANENT = "permanent"
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    WEEKEND = "weekend"


class SurfaceCondition(str, Enum):
    SMOOTH = "smooth"
    ROUGH = "rough"
    BROKEN = "broken"


class Lighting(str, Enum):
    NONE = "none"
    POOR = "poor"
    GOOD = "good"


class ShadeLevel(str, Enum):
    NONE = "none"
    PARTIAL = "partial"
    COVERED = "covered"


class TrafficLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


_E = TypeVar("_E", bound=Enum)


def _coerce(enum_cls: type[_E], value: Any, default: Optional[_E] = None) -> _E:
    """Turn raw strings into enum members, optionally falling back to ``default``."""

    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        if default is None:
            raise
        return default


@dataclass(frozen=True)
class GeoCoordinate:
    """A WGS84 position as reported by the device or an obstacle report."""

    latitude: float
    longitude: float
    accuracy: Optional[float] = None

    def is_valid(self) -> bool:
        latitude, longitude = self.latitude, self.longitude
        for value in (latitude, longitude):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return False
            if not math.isfinite(value):
                return False
        return abs(latitude) <= 90 and abs(longitude) <= 180

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


Polyline = Sequence[GeoCoordinate]


def coerce_coordinate(value: Any) -> Optional[GeoCoordinate]:
    """Build a coordinate from a ``GeoCoordinate``, a mapping or a ``(lat, lon)`` pair.

    Returns ``None`` for shapes that cannot describe a position; range validation is
    left to :meth:`GeoCoordinate.is_valid` so callers decide how to filter.
    """

    if isinstance(value, GeoCoordinate):
        return value
    if isinstance(value, Mapping):
        if "latitude" not in value or "longitude" not in value:
            return None
        return GeoCoordinate(
            latitude=value["latitude"],
            longitude=value["longitude"],
            accuracy=value.get("accuracy"),
        )
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return GeoCoordinate(latitude=value[0], longitude=value[1])
    return None


@dataclass(frozen=True)
class MobilityProfile:
    """A traveller's device category and navigation preferences."""

    device: MobilityDevice = MobilityDevice.NONE
    max_ramp_slope: float = 5.0
    avoid_stairs: bool = False
    prefer_shade: bool = False
    avoid_crowds: bool = False
    max_walking_distance: Optional[float] = None
    min_path_width: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "device", _coerce(MobilityDevice, self.device))


@dataclass(frozen=True)
class Obstacle:
    """A community-reported accessibility hazard."""

    id: str
    type: ObstacleType
    severity: Severity
    location: GeoCoordinate
    time_pattern: TimePattern = TimePattern.PERMANENT
    description: str = ""
    verified: bool = False
    upvotes: int = 0
    downvotes: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", _coerce(ObstacleType, self.type, ObstacleType.OTHER))
        object.__setattr__(self, "severity", _coerce(Severity, self.severity))
        object.__setattr__(
            self,
            "time_pattern",
            _coerce(TimePattern, self.time_pattern or TimePattern.PERMANENT, TimePattern.PERMANENT),
        )


@dataclass(frozen=True)
class PathSegmentAttributes:
    """Observed characteristics of a sidewalk segment and the obstacles on it."""

    estimated_width: float = 1.5
    surface_condition: SurfaceCondition = SurfaceCondition.SMOOTH
    slope: float = 0.0
    lighting: Lighting = Lighting.GOOD
    shade_level: ShadeLevel = ShadeLevel.PARTIAL
    traffic_level: TrafficLevel = TrafficLevel.MEDIUM
    has_ramp: bool = False
    has_handrails: bool = False
    obstacles: tuple[Obstacle, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "surface_condition", _coerce(SurfaceCondition, self.surface_condition)
        )
        object.__setattr__(self, "lighting", _coerce(Lighting, self.lighting))
        object.__setattr__(self, "shade_level", _coerce(ShadeLevel, self.shade_level))
        object.__setattr__(self, "traffic_level", _coerce(TrafficLevel, self.traffic_level))
        object.__setattr__(self, "obstacles", tuple(self.obstacles))


@dataclass(frozen=True)
class AccessibilityScore:
    """Personalised accessibility grade for one path segment."""

    traversability: float
    safety: float
    comfort: float
    overall: float
    grade: Grade
    user_specific_adjustment: float

    def __post_init__(self) -> None:
        for name in ("traversability", "safety", "comfort", "overall"):
            value = getattr(self, name)
            assert 0.0 <= value <= 100.0, f"{name} out of range: {value}"


@dataclass(frozen=True)
class ProximityAlert:
    """An obstacle close to the traveller during one detection pass."""

    obstacle: Obstacle
    distance: float
    urgency: float
    severity: Severity
    time_to_encounter: float = 0.0
    confidence: float = 0.5
    is_ahead: Optional[bool] = None


@dataclass(frozen=True)
class RouteBounds:
    """Search circle enclosing one or more route polylines."""

    center: GeoCoordinate
    radius_km: float


@dataclass(frozen=True)
class CacheEntry:
    key: str
    obstacles: tuple[Obstacle, ...]
    timestamp: float


@dataclass(frozen=True)
class RouteAnalysis:
    """Normalised pair of candidate routes produced by the routing collaborator.

    The alternate route has been published as ``clearestRoute`` and, in older
    payloads, as ``accessibleRoute``; :meth:`from_mapping` folds both spellings
    into ``alternate`` so matching code only sees one shape.
    """

    fastest: tuple[GeoCoordinate, ...] = ()
    alternate: tuple[GeoCoordinate, ...] = ()

    _FASTEST_KEYS: ClassVar[tuple[str, ...]] = ("fastestRoute", "fastest_route", "fastest")
    _ALTERNATE_KEYS: ClassVar[tuple[str, ...]] = (
        "clearestRoute",
        "clearest_route",
        "accessibleRoute",
        "accessible_route",
        "alternate",
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "fastest", tuple(self.fastest))
        object.__setattr__(self, "alternate", tuple(self.alternate))

    @property
    def has_both_routes(self) -> bool:
        return bool(self.fastest) and bool(self.alternate)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "RouteAnalysis":
        fastest = cls._extract_polyline(payload, cls._FASTEST_KEYS)
        alternate = cls._extract_polyline(payload, cls._ALTERNATE_KEYS)
        return cls(fastest=fastest, alternate=alternate)

    @staticmethod
    def _extract_polyline(payload: Mapping[str, Any], keys: tuple[str, ...]) -> tuple[GeoCoordinate, ...]:
        for key in keys:
            route = payload.get(key)
            if not route:
                continue
            points = route.get("polyline") if isinstance(route, Mapping) else route
            if not points:
                continue
            coordinates = (coerce_coordinate(point) for point in points)
            return tuple(point for point in coordinates if point is not None)
        return ()


@dataclass(frozen=True)
class RouteSegment:
    """A stretch of route geometry together with its observed attributes."""

    polyline: tuple[GeoCoordinate, ...]
    attributes: PathSegmentAttributes = field(default_factory=PathSegmentAttributes)

    def __post_init__(self) -> None:
        object.__setattr__(self, "polyline", tuple(self.polyline))


__all__ = [
    "AccessibilityScore",
    "CacheEntry",
    "GeoCoordinate",
    "Grade",
    "Lighting",
    "MobilityDevice",
    "MobilityProfile",
    "Obstacle",
    "ObstacleType",
    "PathSegmentAttributes",
    "Polyline",
    "ProximityAlert",
    "RouteAnalysis",
    "RouteBounds",
    "RouteSegment",
    "Severity",
    "ShadeLevel",
    "SurfaceCondition",
    "TimePattern",
    "TrafficLevel",
    "coerce_coordinate",
]
