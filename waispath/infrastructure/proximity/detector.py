"""Single detection pass: which obstacles near the traveller deserve an alert."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from waispath.core.entities import (
    GeoCoordinate,
    MobilityDevice,
    MobilityProfile,
    Obstacle,
    Polyline,
    ProximityAlert,
    Severity,
)
from waispath.infrastructure.geo.bearing import estimate_bearing_from_route, is_ahead
from waispath.infrastructure.geo.distance import distance_to_polyline, haversine_distance
from waispath.infrastructure.obstacles.matcher import ObstacleSource, RouteObstacleMatcher
from waispath.infrastructure.scoring.accessibility import round_half_up
from waispath.utils.config import ProximitySettings
from waispath.utils.logger import logger

CRITICAL_SEVERITIES = frozenset({Severity.HIGH, Severity.BLOCKING})

# Metres per second.
_WALKING_SPEEDS: dict[MobilityDevice, float] = {
    MobilityDevice.WHEELCHAIR: 1.2,
    MobilityDevice.WALKER: 1.0,
    MobilityDevice.CRUTCHES: 1.1,
    MobilityDevice.CANE: 1.3,
    MobilityDevice.NONE: 1.4,
}
_SEVERITY_URGENCY: dict[Severity, float] = {
    Severity.BLOCKING: 40,
    Severity.HIGH: 30,
    Severity.MEDIUM: 20,
    Severity.LOW: 10,
}
_DEVICE_URGENCY_FACTORS: dict[MobilityDevice, float] = {
    MobilityDevice.WHEELCHAIR: 1.3,
    MobilityDevice.WALKER: 1.2,
    MobilityDevice.CRUTCHES: 1.2,
}
NEUTRAL_CONFIDENCE = 0.5
VERIFICATION_BONUS = 0.2
DISTANCE_URGENCY_WEIGHT = 30.0


@dataclass(frozen=True)
class DetectionResult:
    """Alerts produced by one pass; ``critical_alerts`` is never truncated."""

    alerts: list[ProximityAlert] = field(default_factory=list)
    critical_alerts: list[ProximityAlert] = field(default_factory=list)
    heading: Optional[float] = None


def community_confidence(obstacle: Obstacle) -> float:
    """Trust in a report from its votes; unvoted reports sit at 0.5."""

    total_votes = obstacle.upvotes + obstacle.downvotes
    if total_votes <= 0:
        return NEUTRAL_CONFIDENCE
    bonus = VERIFICATION_BONUS if obstacle.verified else 0.0
    return min(1.0, obstacle.upvotes / total_votes + bonus)


def time_to_encounter(distance: float, profile: MobilityProfile | None) -> float:
    device = profile.device if profile is not None else MobilityDevice.NONE
    return distance / _WALKING_SPEEDS.get(device, _WALKING_SPEEDS[MobilityDevice.NONE])


class ProximityDetector:
    """Turn the obstacles around the traveller into ranked proximity alerts."""

    def __init__(
        self,
        matcher: RouteObstacleMatcher,
        settings: ProximitySettings | None = None,
    ) -> None:
        self._matcher = matcher
        self._settings = settings or ProximitySettings()

    @property
    def settings(self) -> ProximitySettings:
        return self._settings

    async def detect(
        self,
        user_location: GeoCoordinate,
        route: Polyline,
        profile: MobilityProfile,
        source: ObstacleSource,
    ) -> DetectionResult:
        """Run one pass; source failures propagate as ``ObstacleQueryError``."""

        settings = self._settings
        candidates = await self._matcher.obstacles_around_location(
            user_location,
            source,
            radius_km=settings.detection_radius_m / 1000,
            strict=True,
        )

        heading = estimate_bearing_from_route(user_location, route, settings.look_ahead_points)
        alerts: list[ProximityAlert] = []
        for obstacle in candidates:
            distance = haversine_distance(user_location, obstacle.location)
            if distance > settings.detection_radius_m:
                continue
            if distance_to_polyline(obstacle.location, route) > settings.route_tolerance_m:
                continue

            ahead: Optional[bool] = None
            if heading is not None:
                ahead = is_ahead(user_location, heading, obstacle.location, settings.ahead_threshold_deg)
                if settings.ahead_only and not ahead and distance > settings.ahead_grace_m:
                    continue

            alerts.append(self.build_alert(obstacle, distance, profile, ahead))

        alerts.sort(key=lambda alert: alert.urgency, reverse=True)
        critical = [alert for alert in alerts if self.is_critical(alert)]
        limited = alerts[: settings.max_alerts] if settings.max_alerts > 0 else alerts

        if alerts:
            logger.debug(
                "Generated {} proximity alerts ({} shown, {} critical)",
                len(alerts),
                len(limited),
                len(critical),
            )
        return DetectionResult(alerts=limited, critical_alerts=critical, heading=heading)

    def is_critical(self, alert: ProximityAlert) -> bool:
        return alert.distance < self._settings.critical_distance_m and alert.severity in CRITICAL_SEVERITIES

    def urgency(self, obstacle: Obstacle, distance: float, profile: MobilityProfile) -> float:
        """Urgency in ``[0, 100]`` from severity, closeness, device and trust."""

        radius = self._settings.detection_radius_m
        urgency = _SEVERITY_URGENCY.get(obstacle.severity, 15.0)
        urgency += max(0.0, (radius - distance) / radius * DISTANCE_URGENCY_WEIGHT)
        urgency *= _DEVICE_URGENCY_FACTORS.get(profile.device, 1.0)
        urgency *= community_confidence(obstacle)
        return min(100.0, urgency)

    def build_alert(
        self,
        obstacle: Obstacle,
        distance: float,
        profile: MobilityProfile,
        ahead: Optional[bool],
    ) -> ProximityAlert:
        return ProximityAlert(
            obstacle=obstacle,
            distance=distance,
            urgency=round_half_up(self.urgency(obstacle, distance, profile)),
            severity=obstacle.severity,
            time_to_encounter=round_half_up(time_to_encounter(distance, profile)),
            confidence=round(community_confidence(obstacle), 2),
            is_ahead=ahead,
        )


__all__ = [
    "CRITICAL_SEVERITIES",
    "DetectionResult",
    "ProximityDetector",
    "community_confidence",
    "time_to_encounter",
]
