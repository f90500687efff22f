"""Application configuration and settings management."""

from pathlib import Path
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

    app_name: str = "FieldRoute Scheduling API"
    api_prefix: str = "/api"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    data_root: Path = Field(default=Path("data"), description="Root directory for local store and run outputs.")

    # Persistence strategy
    storage_mode: Literal["supabase", "local"] = Field(
        default="local",
        description="Where jobs and customers live: the hosted Supabase project or JSON files under data_root.",
    )
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    # Distance lookups
    distance_mode: Literal["auto", "live", "heuristic"] = Field(
        default="auto",
        description="auto uses Google when an API key is set, otherwise the address heuristic.",
    )
    google_maps_api_key: Optional[str] = Field(default=None, description="Google Distance Matrix API key.")
    distance_matrix_base_url: str = Field(default="https://maps.googleapis.com/maps/api")
    distance_timeout_seconds: float = Field(default=10.0, gt=0.0)
    distance_max_retries: int = Field(default=2, ge=0)
    distance_backoff_seconds: float = Field(default=0.5, ge=0.0)
    distance_batch_size: int = Field(default=25, ge=1)
    distance_max_parallel_requests: int = Field(default=10, ge=1)

    # Route ordering
    route_time_threshold_percent: float = Field(default=10.0, ge=0.0)
    route_distance_threshold_percent: float = Field(default=15.0, ge=0.0)

    # Day scheduling
    day_start_hour: int = Field(default=5, ge=0, le=23)
    job_duration_minutes: int = Field(default=60, ge=0)
    default_drive_minutes: float = Field(default=10.0, ge=0.0)
    schedule_horizon_days: int = Field(default=30, ge=1)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

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
    def _upper_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


settings = Settings()
