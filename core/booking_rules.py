"""
Booking rules and policy constants used by the scheduling services.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from core.config import Settings, settings as default_settings
from core.utils_datetime import (
    TimeLike,
    DateLike,
    is_peak_hour,
    is_within_advance_booking,
)


@dataclass(frozen=True)
class BookingRules:
    """Booking rules and constraints."""
    # Duration settings
    default_duration_minutes: int = 120
    slot_interval_minutes: int = 30

    # Peak window: reservations starting inside it are capped
    peak_start: str = "18:00"
    peak_end: str = "21:00"
    peak_max_duration_minutes: int = 90

    # Horizon
    max_advance_days: int = 30

    # Caching and write retries
    availability_cache_ttl: int = 1800
    reservations_cache_ttl: int = 1800
    write_attempts: int = 2

    # Result sizes
    max_suggestions: int = 3
    max_alternatives: int = 5

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "BookingRules":
        """Build rules from application settings."""
        config = config or default_settings
        return cls(
            default_duration_minutes=config.default_reservation_duration,
            slot_interval_minutes=config.slot_interval_minutes,
            peak_start=config.peak_hours_start,
            peak_end=config.peak_hours_end,
            peak_max_duration_minutes=config.peak_hours_max_duration,
            max_advance_days=config.max_advance_booking_days,
            availability_cache_ttl=config.availability_cache_ttl_seconds,
            reservations_cache_ttl=config.availability_cache_ttl_seconds,
            write_attempts=config.booking_write_attempts,
        )

    def is_peak(self, start: TimeLike) -> bool:
        return is_peak_hour(start, self.peak_start, self.peak_end)

    def resolve_duration(self, start: TimeLike, requested: Optional[int] = None) -> Tuple[int, bool]:
        """
        Pick the reservation length.

        Returns:
            Tuple of (duration_minutes, was_clamped_for_peak)
        """
        duration = requested or self.default_duration_minutes
        if self.is_peak(start) and duration > self.peak_max_duration_minutes:
            return self.peak_max_duration_minutes, True
        return duration, False

    def is_within_horizon(self, target: DateLike, today: date) -> bool:
        return is_within_advance_booking(target, self.max_advance_days, today)
