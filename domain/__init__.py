"""Domain layer for the seating engine."""

from .enums import (
    ReservationStatus,
    WaitlistStatus,
    NotificationKind,
    TERMINAL_RESERVATION_STATUSES,
    RELEASED_RESERVATION_STATUSES,
    BLOCKING_RESERVATION_STATUSES,
)
from .models import (
    RestaurantCreate,
    RestaurantRecord,
    TableCreate,
    TableUpdate,
    TableRecord,
    ReservationCreate,
    ReservationUpdate,
    ReservationRecord,
    WaitlistCreate,
    WaitlistStatusUpdate,
    WaitlistRecord,
    TimeSlot,
    TableSuggestion,
    AvailabilityResponse,
    OptimizationSuggestion,
    OptimizationReport,
    TableOccupancy,
)

__all__ = [
    # Enums
    "ReservationStatus",
    "WaitlistStatus",
    "NotificationKind",
    "TERMINAL_RESERVATION_STATUSES",
    "RELEASED_RESERVATION_STATUSES",
    "BLOCKING_RESERVATION_STATUSES",
    # Models
    "RestaurantCreate",
    "RestaurantRecord",
    "TableCreate",
    "TableUpdate",
    "TableRecord",
    "ReservationCreate",
    "ReservationUpdate",
    "ReservationRecord",
    "WaitlistCreate",
    "WaitlistStatusUpdate",
    "WaitlistRecord",
    "TimeSlot",
    "TableSuggestion",
    "AvailabilityResponse",
    "OptimizationSuggestion",
    "OptimizationReport",
    "TableOccupancy",
]
