"""Domain models using Pydantic v2 for the seating engine."""

from datetime import date, time, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict, field_validator

from core.utils_datetime import format_time
from .enums import ReservationStatus, WaitlistStatus


PHONE_PATTERN = r"^\+?[0-9][0-9\s\-()]{5,19}$"


# ============================================================================
# Restaurants & tables
# ============================================================================

class RestaurantCreate(BaseModel):
    """Model for creating a restaurant."""

    name: str = Field(..., min_length=1, max_length=255)
    opening_time: str = Field(..., description="Opening time (HH:MM)")
    closing_time: str = Field(..., description="Closing time (HH:MM); earlier than opening means overnight")
    total_tables: int = Field(..., ge=1, le=500)
    address: Optional[str] = Field(None, max_length=500)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=255)

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("opening_time", "closing_time")
    @classmethod
    def validate_time_of_day(cls, v: str) -> str:
        """Normalise to HH:MM."""
        return format_time(v)


class RestaurantRecord(BaseModel):
    """Restaurant snapshot."""

    id: int
    name: str
    opening_time: time
    closing_time: time
    total_tables: int
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True, frozen=True)


class TableCreate(BaseModel):
    """Model for adding a table."""

    table_number: str = Field(..., min_length=1, max_length=20)
    capacity: int = Field(..., ge=1, le=50)
    location: Optional[str] = Field(None, max_length=100)
    is_active: bool = True

    model_config = ConfigDict(str_strip_whitespace=True)


class TableUpdate(BaseModel):
    """Model for updating a table."""

    table_number: Optional[str] = Field(None, min_length=1, max_length=20)
    capacity: Optional[int] = Field(None, ge=1, le=50)
    location: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None

    model_config = ConfigDict(str_strip_whitespace=True)


class TableRecord(BaseModel):
    """Table snapshot."""

    id: int
    restaurant_id: int
    table_number: str
    capacity: int
    location: Optional[str] = None
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True, frozen=True)


# ============================================================================
# Reservations
# ============================================================================

class ReservationCreate(BaseModel):
    """
    Model for creating a reservation.

    Date and time stay as strings here; the scheduler parses them so that
    malformed values surface as business errors.
    """

    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_phone: str = Field(..., pattern=PHONE_PATTERN)
    customer_email: Optional[str] = Field(None, max_length=255)
    party_size: int = Field(..., ge=1, le=50)
    reservation_date: str = Field(..., description="YYYY-MM-DD")
    reservation_time: str = Field(..., description="HH:MM")
    duration: Optional[int] = Field(None, ge=15, le=720, description="Length in minutes")
    special_requests: Optional[str] = Field(None, max_length=500)

    model_config = ConfigDict(str_strip_whitespace=True)


class ReservationUpdate(BaseModel):
    """Model for updating an existing reservation."""

    reservation_date: Optional[str] = None
    reservation_time: Optional[str] = None
    party_size: Optional[int] = Field(None, ge=1, le=50)
    duration: Optional[int] = Field(None, ge=15, le=720)
    status: Optional[ReservationStatus] = None
    special_requests: Optional[str] = Field(None, max_length=500)

    model_config = ConfigDict(str_strip_whitespace=True)


class ReservationRecord(BaseModel):
    """Complete reservation record from the store."""

    id: int
    restaurant_id: int
    table_id: int
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    party_size: int
    reservation_date: date
    start_time: time
    end_time: time
    duration: int
    status: ReservationStatus
    special_requests: Optional[str] = None
    confirmation_code: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, frozen=True)


# ============================================================================
# Waitlist
# ============================================================================

class WaitlistCreate(BaseModel):
    """Model for joining the waitlist."""

    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_phone: str = Field(..., pattern=PHONE_PATTERN)
    customer_email: Optional[str] = Field(None, max_length=255)
    party_size: int = Field(..., ge=1, le=50)
    preferred_time: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("preferred_time")
    @classmethod
    def validate_preferred_time(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return format_time(v)


class WaitlistStatusUpdate(BaseModel):
    """Request to move a waitlist entry to a new status."""

    status: WaitlistStatus


class WaitlistRecord(BaseModel):
    """Waitlist entry snapshot."""

    id: int
    restaurant_id: int
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    party_size: int
    waitlist_date: date
    preferred_time: Optional[time] = None
    status: WaitlistStatus
    position: int
    notes: Optional[str] = None
    notified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, frozen=True)


# ============================================================================
# Derived results
# ============================================================================

class TimeSlot(BaseModel):
    """An open start time and the tables free for its whole window."""

    start_time: str
    end_time: str
    available_tables: List[int] = Field(default_factory=list)


class TableSuggestion(BaseModel):
    """A scored table candidate."""

    table_id: int
    table_number: str
    capacity: int
    score: int
    reason: str


class AvailabilityResponse(BaseModel):
    """Response with available slots."""

    date: date
    party_size: int
    available_slots: List[TimeSlot] = Field(default_factory=list)
    suggested_tables: List[TableSuggestion] = Field(default_factory=list)


class OptimizationSuggestion(BaseModel):
    """A reservation that would sit noticeably better at another table."""

    reservation_id: int
    current_table: str
    suggested_table: str
    improvement: int
    reason: str


class OptimizationReport(BaseModel):
    """Result of a seating redistribution pass."""

    optimized: int
    suggestions: List[OptimizationSuggestion] = Field(default_factory=list)


class TableOccupancy(BaseModel):
    """Tables free or taken at one moment of a service day."""

    restaurant: RestaurantRecord
    available_tables: List[TableRecord] = Field(default_factory=list)
    occupied_tables: List[TableRecord] = Field(default_factory=list)
