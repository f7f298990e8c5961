"""
Application settings and configuration management using Pydantic Settings.
"""
from datetime import time
from typing import List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application Settings
    app_name: str = Field(default="Tallie Seating", description="Application name")
    app_env: str = Field(default="development", description="Environment (development, staging, production)")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./seating.db",
        description="Database connection URL"
    )

    # Cache Configuration
    redis_url: str = Field(default="", description="Redis connection URL (empty uses the in-process cache)")
    redis_max_connections: int = Field(default=10, ge=1, description="Maximum Redis connections")
    cache_ttl_seconds: int = Field(default=3600, ge=1, description="Default cache TTL")
    availability_cache_ttl_seconds: int = Field(default=1800, ge=1, description="Availability cache TTL")

    # Booking Rules
    timezone: str = Field(default="Africa/Lagos", description="Restaurant timezone")
    default_reservation_duration: int = Field(default=120, ge=15, description="Default reservation length in minutes")
    slot_interval_minutes: int = Field(default=30, ge=5, description="Spacing between candidate start times")
    peak_hours_start: str = Field(default="18:00", description="Peak window start (HH:MM)")
    peak_hours_end: str = Field(default="21:00", description="Peak window end (HH:MM)")
    peak_hours_max_duration: int = Field(default=90, ge=15, description="Longest reservation allowed in peak hours")
    max_advance_booking_days: int = Field(default=30, ge=0, description="Booking horizon in days")
    booking_write_attempts: int = Field(default=2, ge=1, description="Attempts before a write collision is reported")

    # Notifications
    enable_notifications: bool = Field(default=True, description="Send customer notifications")
    notification_from_email: str = Field(default="reservations@tallie.com", description="Sender address")
    notification_from_phone: str = Field(default="+1234567890", description="Sender phone number")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, ge=1, le=65535, description="API port")
    api_v1_prefix: str = Field(default="/api/v1", description="API route prefix")
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        description="Allowed CORS origins (comma-separated)"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed_levels:
            raise ValueError(f"log_level must be one of {allowed_levels}")
        return v_upper

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed_envs = ["development", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in allowed_envs:
            raise ValueError(f"app_env must be one of {allowed_envs}")
        return v_lower

    @field_validator("peak_hours_start", "peak_hours_end")
    @classmethod
    def validate_peak_time(cls, v: str) -> str:
        """Peak boundaries must be valid times of day."""
        try:
            time.fromisoformat(v)
        except ValueError:
            raise ValueError(f"Invalid time of day: {v!r}")
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string to list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
