from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal

from .config import Config

EARTH_RADIUS_M = 6_371_000.0

GeoReason = Literal["stale_location", "low_accuracy", "out_of_range"]


@dataclass(frozen=True)
class GeoReading:
    lat: float
    lon: float
    accuracy_m: float
    sample_age_ms: int


@dataclass(frozen=True)
class SiteFence:
    lat: float
    lon: float
    radius_m: float
    max_age_ms: int = 30_000
    max_accuracy_m: float = 100.0

    @classmethod
    def from_config(cls, cfg: Config) -> SiteFence:
        return cls(
            lat=cfg.site_latitude,
            lon=cfg.site_longitude,
            radius_m=cfg.geofence_radius_m,
            max_age_ms=cfg.max_location_age_ms,
            max_accuracy_m=cfg.max_location_accuracy_m,
        )


@dataclass(frozen=True)
class GeoCheck:
    allowed: bool
    reason: GeoReason | None = None
    distance_m: float | None = None

    @property
    def detail(self) -> str:
        if self.allowed:
            return "on site"
        if self.reason == "out_of_range":
            return f"out of range: {self.distance_m:.0f} m from site"
        if self.reason == "stale_location":
            return "stale location"
        return "low accuracy"


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in metres."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def is_on_site(reading: GeoReading, fence: SiteFence) -> GeoCheck:
    # Freshness and accuracy are checked before distance; a bad fix says nothing about position.
    if reading.sample_age_ms > fence.max_age_ms:
        return GeoCheck(False, "stale_location")
    if reading.accuracy_m > fence.max_accuracy_m:
        return GeoCheck(False, "low_accuracy")
    distance = haversine_m(reading.lat, reading.lon, fence.lat, fence.lon)
    if distance > fence.radius_m:
        return GeoCheck(False, "out_of_range", distance)
    return GeoCheck(True, None, distance)


__all__ = ["EARTH_RADIUS_M", "GeoReading", "SiteFence", "GeoCheck", "haversine_m", "is_on_site"]
