"""Application configuration and settings management."""

from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="SLA_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "SLA Route Consolidation Engine"
    api_prefix: str = "/api"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Delivery time estimation
    average_speed_kmh: float = Field(default=25.0, gt=0.0, description="Average urban delivery speed.")
    pickup_time_minutes: float = Field(default=15.0, ge=0.0, description="Dwell time spent at a pickup stop.")
    delivery_time_minutes: float = Field(default=10.0, ge=0.0, description="Dwell time spent at a delivery stop.")
    traffic_buffer_multiplier: float = Field(default=1.3, ge=1.0, description="Multiplier applied for traffic.")
    consolidation_radius_km: float = Field(
        default=1.0,
        ge=0.0,
        description="New stops this close to an existing stop share its visit and add no dwell time.",
    )

    # Risk classification
    default_safety_margin_minutes: float = Field(default=60.0, gt=0.0)
    long_route_threshold_km: float = Field(default=50.0, ge=0.0)
    off_peak_start_hour: int = Field(default=17, ge=0, le=23)
    off_peak_end_hour: int = Field(default=8, ge=0, le=23)

    # At-risk scanning
    scanner_enabled: bool = True
    scan_interval_seconds: float = Field(default=300.0, gt=0.0)
    risk_window_minutes: int = Field(default=120, gt=0)
    base_remaining_delivery_minutes: float = Field(default=180.0, gt=0.0)
    min_remaining_delivery_minutes: float = Field(default=30.0, ge=0.0)
    urgent_speedup_factor: float = Field(default=0.7, gt=0.0)
    low_priority_slowdown_factor: float = Field(default=1.3, gt=0.0)

    # Directions provider
    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(
        default="driving",
        description="OSRM profile to use when computing travel times.",
    )
    directions_timeout_seconds: float = Field(default=5.0, gt=0.0)
    osrm_max_retries: int = Field(default=1, ge=0)
    osrm_backoff_seconds: float = Field(default=0.5, ge=0.0)

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )
    parcels_table: str = "parcels"

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=("http://localhost:5173", "http://127.0.0.1:5173"),
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


settings = Settings()
