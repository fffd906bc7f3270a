"""Application configuration and settings management."""

from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FIELDROUTE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Field Route Planner API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Level applied to the fieldroute package logger.")

    maps_api_key: Optional[str] = Field(
        default=None,
        description="API key for the distance matrix service. Without it the heuristic estimator is used.",
    )
    maps_base_url: str = Field(
        default="https://maps.googleapis.com/maps/api/distancematrix/json",
        description="Distance matrix endpoint accepting origins/destinations as pipe-separated text.",
    )
    maps_timeout_seconds: float = Field(default=30.0, gt=0.0)
    maps_max_retries: int = Field(default=3, ge=0)
    maps_backoff_seconds: float = Field(default=1.0, ge=0.0)
    maps_max_origins_per_request: int = Field(default=25, ge=1)
    maps_max_destinations_per_request: int = Field(default=25, ge=1)
    maps_max_elements_per_request: int = Field(default=100, ge=1)
    maps_max_parallel_requests: int = Field(default=4, ge=1)

    default_leg_miles: float = Field(
        default=25.0,
        ge=0.0,
        description="Distance substituted when a leg cannot be computed.",
    )
    default_leg_minutes: float = Field(
        default=45.0,
        ge=0.0,
        description="Duration substituted when a leg cannot be computed.",
    )

    max_destinations: int = Field(default=15, ge=1)
    heuristic_sampling: Literal["seeded", "midpoint", "random"] = Field(
        default="seeded",
        description="How the heuristic estimator picks a distance inside its bucket.",
    )
    heuristic_seed: int = Field(default=0)
    day_start_time: str = Field(default="08:00", pattern=r"^\d{1,2}:\d{2}$")

    optimize_enabled: bool = True
    split_enabled: bool = True
    max_leg_miles: float = Field(default=50.0, gt=0.0)
    optimization_mode: Literal["distance", "time"] = "distance"
    max_daily_hours: float = Field(default=10.0, gt=0.0)
    max_stops_per_day: int = Field(default=6, ge=1)
    time_per_appointment_minutes: float = Field(default=30.0, ge=0.0)
    territory_type: Literal["urban", "rural", "mixed"] = "mixed"
    geographic_clustering_enabled: bool = True

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_level(cls, value: Any) -> str:
        return str(value or "INFO").strip().upper()


settings = Settings()
