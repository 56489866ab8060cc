from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    secret_key: str = "change-me"
    database_url: str = "sqlite:///dev.db"
    timezone: str = "Africa/Accra"  # single operating region for every deadline
    today_cutoff_hour: int = 8
    tomorrow_cutoff_hour: int = 20
    geofencing_enabled: bool = False
    site_latitude: float = 0.0
    site_longitude: float = 0.0
    geofence_radius_m: float = 200.0
    max_location_age_ms: int = 30_000
    max_location_accuracy_m: float = 100.0
    metrics_backend: str = "noop"
    notifications_backend: str = "noop"

    @classmethod
    def from_env(cls) -> Config:
        return cls(
            secret_key=os.getenv("SECRET_KEY", "change-me"),
            database_url=os.getenv("DATABASE_URL", "sqlite:///dev.db"),
            timezone=os.getenv("MEALPICK_TIMEZONE", "Africa/Accra"),
            today_cutoff_hour=int(os.getenv("TODAY_CUTOFF_HOUR", "8")),
            tomorrow_cutoff_hour=int(os.getenv("TOMORROW_CUTOFF_HOUR", "20")),
            geofencing_enabled=_env_bool("GEOFENCING_ENABLED"),
            site_latitude=float(os.getenv("SITE_LATITUDE", "0")),
            site_longitude=float(os.getenv("SITE_LONGITUDE", "0")),
            geofence_radius_m=float(os.getenv("GEOFENCE_RADIUS_M", "200")),
            max_location_age_ms=int(os.getenv("MAX_LOCATION_AGE_MS", "30000")),
            max_location_accuracy_m=float(os.getenv("MAX_LOCATION_ACCURACY_M", "100")),
            metrics_backend=os.getenv("METRICS_BACKEND", "noop"),
            notifications_backend=os.getenv("NOTIFICATIONS_BACKEND", "noop"),
        )

    def override(self, d: dict):
        for k, v in d.items():
            if hasattr(self, k):
                setattr(self, k, v)

    def to_flask_dict(self):
        return {
            "SECRET_KEY": self.secret_key,
            "SQLALCHEMY_DATABASE_URI": self.database_url,
            "MEALPICK_TIMEZONE": self.timezone,
            "TODAY_CUTOFF_HOUR": self.today_cutoff_hour,
            "TOMORROW_CUTOFF_HOUR": self.tomorrow_cutoff_hour,
            "GEOFENCING_ENABLED": self.geofencing_enabled,
            "SITE_LATITUDE": self.site_latitude,
            "SITE_LONGITUDE": self.site_longitude,
            "GEOFENCE_RADIUS_M": self.geofence_radius_m,
            "MAX_LOCATION_AGE_MS": self.max_location_age_ms,
            "MAX_LOCATION_ACCURACY_M": self.max_location_accuracy_m,
            "METRICS_BACKEND": self.metrics_backend,
            "NOTIFICATIONS_BACKEND": self.notifications_backend,
            # Harden session cookie defaults (still allow override in tests)
            "SESSION_COOKIE_HTTPONLY": True,
            "SESSION_COOKIE_SAMESITE": "Lax",
        }
