"""YAML configuration loading and the typed settings derived from it."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, TypedDict

import yaml

DEFAULT_CONFIG_PATH = Path("configs/config.yaml")


class LoggingConfig(TypedDict, total=False):
    level: str


class WeightsConfig(TypedDict, total=False):
    traversability: float
    safety: float
    comfort: float


class ScoringConfig(TypedDict, total=False):
    weights: WeightsConfig
    obstacle_penalties: dict[str, float]
    safety_penalties: dict[str, float]


class MatcherConfig(TypedDict, total=False):
    buffer_meters: float
    area_radius_km: float
    cache_ttl_seconds: float
    cache_max_entries: int
    query_timeout_seconds: float


class ProximityConfig(TypedDict, total=False):
    update_interval_ms: int
    detection_radius_m: float
    route_tolerance_m: float
    critical_distance_m: float
    max_alerts: int
    ahead_only: bool
    ahead_threshold_deg: float
    ahead_grace_m: float
    look_ahead_points: int


class AppConfig(TypedDict, total=False):
    logging: LoggingConfig
    scoring: ScoringConfig
    matcher: MatcherConfig
    proximity: ProximityConfig


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Read the YAML file at ``path``; an empty file yields an empty config."""

    with path.open("r", encoding="utf-8") as file:
        data = yaml.safe_load(file)

    if data is None:
        return AppConfig()
    if not isinstance(data, Mapping):
        raise ValueError(f"Configuration root in {path} must be a mapping.")
    return AppConfig(**data)


def _section(config: Mapping[str, Any] | None, name: str) -> Mapping[str, Any]:
    section = (config or {}).get(name) or {}
    if not isinstance(section, Mapping):
        raise ValueError(f"Configuration section '{name}' must be a mapping.")
    return section


@dataclass(frozen=True)
class MatcherSettings:
    buffer_meters: float = 50.0
    area_radius_km: float = 1.0
    cache_ttl_seconds: float = 120.0
    cache_max_entries: int = 50
    query_timeout_seconds: float = 10.0

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> "MatcherSettings":
        section = _section(config, "matcher")
        settings = cls(**{**cls().__dict__, **section})
        if settings.buffer_meters < 0:
            raise ValueError("matcher.buffer_meters cannot be negative.")
        if settings.cache_max_entries < 1:
            raise ValueError("matcher.cache_max_entries must be at least 1.")
        return settings


@dataclass(frozen=True)
class ProximitySettings:
    """Tuning of the live detection loop.

    ``update_interval_ms`` feeds the monitor's schedule; the remaining values
    shape each detection pass.
    """

    update_interval_ms: int = 5000
    detection_radius_m: float = 100.0
    route_tolerance_m: float = 50.0
    critical_distance_m: float = 50.0
    max_alerts: int = 2
    ahead_only: bool = False
    ahead_threshold_deg: float = 90.0
    ahead_grace_m: float = 15.0
    look_ahead_points: int = 5

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> "ProximitySettings":
        section = _section(config, "proximity")
        settings = cls(**{**cls().__dict__, **section})
        if settings.update_interval_ms <= 0:
            raise ValueError("proximity.update_interval_ms must be positive.")
        if settings.detection_radius_m <= 0:
            raise ValueError("proximity.detection_radius_m must be positive.")
        return settings


__all__ = [
    "AppConfig",
    "DEFAULT_CONFIG_PATH",
    "MatcherSettings",
    "ProximitySettings",
    "load_config",
]
