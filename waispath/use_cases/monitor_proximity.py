"""Use case keeping proximity alerts up to date while the traveller navigates."""
from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Protocol, Sequence

from waispath.core.entities import GeoCoordinate, MobilityProfile, ProximityAlert
from waispath.infrastructure.obstacles.matcher import ObstacleSource
from waispath.infrastructure.proximity.detector import DetectionResult
from waispath.utils.logger import logger

DEFAULT_INTERVAL_MS = 5000

CriticalObstacleCallback = Callable[[ProximityAlert], Any]


class Detector(Protocol):
    async def detect(
        self,
        user_location: GeoCoordinate,
        route: Sequence[GeoCoordinate],
        profile: MobilityProfile,
        source: ObstacleSource,
    ) -> DetectionResult:
        ...


@dataclass(frozen=True)
class MonitorOptions:
    """Everything the monitor needs from the navigation session."""

    is_navigating: bool
    user_location: Optional[GeoCoordinate]
    route: Sequence[GeoCoordinate] = ()
    profile: Optional[MobilityProfile] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "route", tuple(self.route))

    @property
    def prerequisites_met(self) -> bool:
        return (
            self.is_navigating
            and self.user_location is not None
            and self.user_location.is_valid()
            and len(self.route) >= 2
            and self.profile is not None
        )


@dataclass(frozen=True)
class MonitorState:
    alerts: list[ProximityAlert] = field(default_factory=list)
    critical_alerts: list[ProximityAlert] = field(default_factory=list)
    is_detecting: bool = False
    last_detection_time: Optional[datetime] = None
    error: Optional[str] = None


class ProximityMonitor:
    """Idle/Monitoring state machine around periodic detection passes.

    Entering Monitoring runs one pass immediately and then one every interval on
    a single asyncio task; the next sleep only starts after a pass completes. A
    ``refresh`` may overlap a scheduled pass, in which case a result older than
    the last applied one is dropped. Each entry into Monitoring bumps
    ``generation`` and a pass whose generation is no longer current is
    discarded. Not safe to share between navigation sessions.
    """

    def __init__(
        self,
        detector: Detector,
        source: ObstacleSource,
        on_critical_obstacle: CriticalObstacleCallback | None = None,
        interval_provider: Callable[[], int] | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        self._detector = detector
        self._source = source
        self._on_critical_obstacle = on_critical_obstacle
        self._interval_provider = interval_provider or self._default_interval
        self._clock = clock or datetime.now
        self._sleep = sleep or asyncio.sleep

        self._options: Optional[MonitorOptions] = None
        self._state = MonitorState()
        self._monitoring = False
        self._generation = 0
        self._task: Optional[asyncio.Task[None]] = None
        self._last_critical_ids: set[str] = set()
        self._pass_counter = 0
        self._applied_pass = 0

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def is_monitoring(self) -> bool:
        return self._monitoring

    @property
    def generation(self) -> int:
        return self._generation

    async def start(self, options: MonitorOptions) -> None:
        """Begin monitoring if ``options`` satisfy every prerequisite."""

        await self.update(options)

    async def update(self, options: MonitorOptions) -> None:
        """Apply new session data, moving between Idle and Monitoring as needed.

        While already monitoring, the new location, route and profile are picked up
        by the next scheduled pass without restarting the schedule.
        """

        self._options = options
        if not options.prerequisites_met:
            if self._monitoring:
                logger.info("Navigation prerequisites lost; stopping proximity monitoring")
                self.stop()
            return

        if self._monitoring:
            return

        self._generation += 1
        generation = self._generation
        self._monitoring = True
        self._state = replace(self._state, is_detecting=True, error=None)
        logger.info("Starting proximity monitoring (generation {})", generation)

        try:
            await self._run_pass(generation)
        except asyncio.CancelledError:
            # Cancelled during the first pass: back to Idle.
            self.stop()
            raise
        if self._is_current(generation):
            self._task = asyncio.create_task(self._run_loop(generation))
            self._task.add_done_callback(self._on_loop_done)

    async def refresh(self) -> None:
        """Run a pass right away, e.g. after the route has been recalculated."""

        if self._monitoring:
            await self._run_pass(self._generation)

    def stop(self) -> None:
        """Return to Idle: cancel the schedule and forget already-alerted obstacles."""

        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

        was_monitoring = self._monitoring
        self._monitoring = False
        self._last_critical_ids = set()
        self._state = replace(self._state, alerts=[], critical_alerts=[], is_detecting=False)
        if was_monitoring:
            logger.info("Proximity monitoring stopped")

    async def _run_loop(self, generation: int) -> None:
        while self._is_current(generation):
            await self._sleep(self._interval_seconds())
            if not self._is_current(generation):
                break
            await self._run_pass(generation)

    def _on_loop_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return
        logger.error("Proximity monitoring loop failed: {}", error)
        if self._task is task:
            self.stop()

    async def _run_pass(self, generation: int) -> None:
        options = self._options
        if options is None or not options.prerequisites_met:
            return

        self._pass_counter += 1
        sequence = self._pass_counter

        try:
            result = await self._detector.detect(
                options.user_location,
                options.route,
                options.profile,
                self._source,
            )
        except Exception as error:  # noqa: BLE001
            if not self._is_current(generation) or sequence <= self._applied_pass:
                return
            self._applied_pass = sequence
            message = str(error) or type(error).__name__
            logger.error("Proximity detection error: {}", message)
            self._state = replace(self._state, error=message)
            return

        if not self._is_current(generation):
            logger.debug("Discarding detection result from stale generation {}", generation)
            return
        if sequence <= self._applied_pass:
            logger.debug("Discarding detection pass {} superseded by pass {}", sequence, self._applied_pass)
            return
        self._applied_pass = sequence

        new_critical = [
            alert for alert in result.critical_alerts if alert.obstacle.id not in self._last_critical_ids
        ]
        self._last_critical_ids = {alert.obstacle.id for alert in result.critical_alerts}
        self._state = MonitorState(
            alerts=list(result.alerts),
            critical_alerts=list(result.critical_alerts),
            is_detecting=True,
            last_detection_time=self._clock(),
            error=None,
        )
        if result.alerts:
            logger.info(
                "Proximity: {} alerts, {} critical", len(result.alerts), len(result.critical_alerts)
            )

        for alert in new_critical:
            await self._notify(alert)

    async def _notify(self, alert: ProximityAlert) -> None:
        if self._on_critical_obstacle is None:
            return
        try:
            outcome = self._on_critical_obstacle(alert)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as error:  # noqa: BLE001
            logger.warning("Critical obstacle callback failed for {}: {}", alert.obstacle.id, error)

    def _is_current(self, generation: int) -> bool:
        return self._monitoring and generation == self._generation

    def _interval_seconds(self) -> float:
        interval_ms = self._interval_provider() or DEFAULT_INTERVAL_MS
        return max(interval_ms, 1) / 1000

    def _default_interval(self) -> int:
        settings = getattr(self._detector, "settings", None)
        return getattr(settings, "update_interval_ms", DEFAULT_INTERVAL_MS)


__all__ = [
    "CriticalObstacleCallback",
    "MonitorOptions",
    "MonitorState",
    "ProximityMonitor",
]
