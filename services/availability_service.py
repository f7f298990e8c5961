"""
Availability Service: open time slots and free tables for a party.

Availability is computed from snapshots loaded once per call, cached per
(restaurant, date, party size, duration) and invalidated by every write
that touches the restaurant.
"""
import logging
from datetime import date
from typing import List, Optional

from pydantic import ValidationError

from core.booking_rules import BookingRules
from core.errors import NotFoundError, ParseError
from core.utils_datetime import (
    MINUTES_PER_DAY,
    DateLike,
    TimeLike,
    TimeWindow,
    add_minutes,
    generate_slots,
    is_overnight,
    normalize_overnight,
    parse_date,
    time_to_minutes,
)
from db.store import Store
from domain.enums import BLOCKING_RESERVATION_STATUSES
from domain.models import AvailabilityResponse, RestaurantRecord, TimeSlot
from services.cache import Cache
from services.seating_service import group_booked_windows, rank_tables


logger = logging.getLogger(__name__)


def availability_cache_key(restaurant_id: int, reservation_date: date, party_size: int, duration: int) -> str:
    return f"availability:{restaurant_id}:{reservation_date.isoformat()}:{party_size}:{duration}"


def reservations_cache_key(restaurant_id: int, reservation_date: date) -> str:
    return f"reservations:{restaurant_id}:{reservation_date.isoformat()}"


def fits_operating_hours(start: TimeLike, end: TimeLike, restaurant: RestaurantRecord) -> bool:
    """
    Whether a window lies inside one service day of the restaurant.

    Both ends are measured from opening time, so a window that runs past
    closing (or past midnight at a same-day restaurant) does not fit even
    when its end time of day falls inside the hours. Boundaries are
    inclusive; unparseable times never fit.
    """
    try:
        window = TimeWindow.from_times(start, end, restaurant.opening_time, restaurant.closing_time)
        opening, closing = normalize_overnight(
            time_to_minutes(restaurant.opening_time), time_to_minutes(restaurant.closing_time)
        )
    except ParseError:
        return False
    return opening <= window.start and window.end <= closing


def service_minutes(value: TimeLike, restaurant: RestaurantRecord) -> int:
    """Minute of a time on the restaurant's service-day axis."""
    minutes = time_to_minutes(value)
    if is_overnight(restaurant.opening_time, restaurant.closing_time) \
            and minutes < time_to_minutes(restaurant.opening_time):
        minutes += MINUTES_PER_DAY
    return minutes


class AvailabilityService:
    """Service computing open slots for a restaurant and date."""

    def __init__(self, store: Store, cache: Cache, rules: Optional[BookingRules] = None):
        """
        Initialize AvailabilityService.

        Args:
            store: Persistence access
            cache: Cache for computed responses
            rules: Booking rules (slot interval, default duration, TTLs)
        """
        self.store = store
        self.cache = cache
        self.rules = rules or BookingRules.from_settings()

    def _get_restaurant(self, restaurant_id: int) -> RestaurantRecord:
        restaurant = self.store.get_restaurant(restaurant_id)
        if restaurant is None:
            raise NotFoundError("Restaurant not found")
        return restaurant

    def _read_cached(self, key: str) -> Optional[AvailabilityResponse]:
        cached = self.cache.get(key)
        if cached is None:
            return None
        try:
            return AvailabilityResponse.model_validate_json(cached)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            self.cache.delete(key)
            return None

    def check_availability(
        self,
        restaurant_id: int,
        reservation_date: DateLike,
        party_size: int,
        duration: Optional[int] = None
    ) -> AvailabilityResponse:
        """
        List the start times at which a party can be seated.

        Args:
            restaurant_id: Restaurant to check
            reservation_date: Service date
            party_size: Number of guests
            duration: Length in minutes (defaults to the configured default)

        Returns:
            AvailabilityResponse with open slots and up to three table
            suggestions for the earliest open slot
        """
        reservation_date = parse_date(reservation_date)
        duration = duration or self.rules.default_duration_minutes
        restaurant = self._get_restaurant(restaurant_id)

        key = availability_cache_key(restaurant_id, reservation_date, party_size, duration)
        cached = self._read_cached(key)
        if cached is not None:
            return cached

        tables = self.store.list_tables(restaurant_id, active_only=True, min_capacity=party_size)
        if not tables:
            return AvailabilityResponse(date=reservation_date, party_size=party_size)

        reservations = self.store.list_reservations(
            restaurant_id=restaurant_id,
            reservation_date=reservation_date,
            statuses=BLOCKING_RESERVATION_STATUSES,
        )
        booked = group_booked_windows(reservations, restaurant)

        slots: List[TimeSlot] = []
        first_window = None
        for start in generate_slots(
            restaurant.opening_time,
            restaurant.closing_time,
            self.rules.slot_interval_minutes,
        ):
            end = add_minutes(start, duration)
            if not fits_operating_hours(start, end, restaurant):
                continue

            window = TimeWindow.from_times(start, end, restaurant.opening_time, restaurant.closing_time)
            free = [
                table.id for table in tables
                if not any(window.overlaps(other) for other in booked.get(table.id, ()))
            ]
            if free:
                slots.append(TimeSlot(start_time=start, end_time=end, available_tables=free))
                if first_window is None:
                    first_window = window

        suggestions = []
        if first_window is not None:
            suggestions = rank_tables(tables, party_size, first_window, booked)[:self.rules.max_suggestions]

        response = AvailabilityResponse(
            date=reservation_date,
            party_size=party_size,
            available_slots=slots,
            suggested_tables=suggestions,
        )
        self.cache.set(key, response.model_dump_json(), self.rules.availability_cache_ttl)
        return response

    def is_table_available(
        self,
        table_id: int,
        reservation_date: DateLike,
        start_time: TimeLike,
        end_time: TimeLike,
        exclude_reservation_id: Optional[int] = None
    ) -> bool:
        """True when no table-holding reservation overlaps the window."""
        reservation_date = parse_date(reservation_date)
        table = self.store.get_table(table_id)
        if table is None:
            raise NotFoundError("Table not found")
        restaurant = self._get_restaurant(table.restaurant_id)

        window = TimeWindow.from_times(start_time, end_time, restaurant.opening_time, restaurant.closing_time)
        reservations = self.store.list_reservations(
            reservation_date=reservation_date,
            statuses=BLOCKING_RESERVATION_STATUSES,
            table_id=table_id,
            exclude_id=exclude_reservation_id,
        )
        booked = group_booked_windows(reservations, restaurant).get(table_id, [])
        return not any(window.overlaps(other) for other in booked)

    def find_alternative_slots(
        self,
        restaurant_id: int,
        reservation_date: DateLike,
        party_size: int,
        preferred_time: TimeLike,
        duration: Optional[int] = None
    ) -> List[TimeSlot]:
        """Open slots closest to the preferred time, at most five."""
        availability = self.check_availability(restaurant_id, reservation_date, party_size, duration)
        restaurant = self._get_restaurant(restaurant_id)

        preferred = service_minutes(preferred_time, restaurant)
        ranked = sorted(
            availability.available_slots,
            key=lambda slot: abs(service_minutes(slot.start_time, restaurant) - preferred),
        )
        return ranked[:self.rules.max_alternatives]

    def invalidate(self, restaurant_id: int) -> None:
        """Drop cached availability and reservation listings for a restaurant."""
        self.cache.delete_prefix(f"availability:{restaurant_id}:")
        self.cache.delete_prefix(f"reservations:{restaurant_id}:")
