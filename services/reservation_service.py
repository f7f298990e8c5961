"""
Reservation Service for managing restaurant reservations.
Handles booking creation, modification and cancellation, table assignment
and conflict reporting.
"""
import logging
import uuid
from typing import Any, Callable, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError

from core.booking_rules import BookingRules
from core.errors import BadRequestError, BookingCollisionError, ConflictError, NotFoundError
from core.utils_datetime import (
    DateLike,
    add_minutes,
    format_time,
    get_current_datetime,
    parse_date,
    parse_time,
    service_datetime,
)
from db.store import Store
from domain.enums import NotificationKind, ReservationStatus
from domain.models import (
    ReservationCreate,
    ReservationRecord,
    ReservationUpdate,
    RestaurantRecord,
)
from services.availability_service import AvailabilityService, fits_operating_hours, reservations_cache_key
from services.cache import Cache
from services.notification_service import NotificationService
from services.seating_service import SeatingService
from services.waitlist_service import WaitlistService


logger = logging.getLogger(__name__)

_reservation_list = TypeAdapter(List[ReservationRecord])


def generate_confirmation_code() -> str:
    """Eight upper-case hex characters."""
    return uuid.uuid4().hex[:8].upper()


def _log_fields(reservation: ReservationRecord) -> Dict[str, Any]:
    return {
        "restaurant_id": reservation.restaurant_id,
        "reservation_id": reservation.id,
        "confirmation_code": reservation.confirmation_code,
        "table_id": reservation.table_id,
    }


class ReservationService:
    """Service for managing restaurant reservations."""

    def __init__(
        self,
        store: Store,
        cache: Cache,
        notifier: NotificationService,
        availability: AvailabilityService,
        seating: SeatingService,
        waitlist: WaitlistService,
        rules: Optional[BookingRules] = None,
        clock: Optional[Callable] = None
    ):
        """
        Initialize ReservationService.

        Args:
            store: Persistence access
            cache: Cache for reservation listings
            notifier: Customer notifications
            availability: Availability engine (alternatives, table checks)
            seating: Table scoring engine
            waitlist: Waitlist sequencer, offered tables freed by cancellations
            rules: Booking rules
            clock: Zero-argument callable returning an aware "now"
        """
        self.store = store
        self.cache = cache
        self.notifier = notifier
        self.availability = availability
        self.seating = seating
        self.waitlist = waitlist
        self.rules = rules or BookingRules.from_settings()
        self.clock = clock or get_current_datetime

    def _get_restaurant(self, restaurant_id: int) -> RestaurantRecord:
        restaurant = self.store.get_restaurant(restaurant_id)
        if restaurant is None:
            raise NotFoundError("Restaurant not found")
        return restaurant

    def _notification_details(
        self,
        reservation: ReservationRecord,
        restaurant: Optional[RestaurantRecord] = None
    ) -> Dict[str, Any]:
        table = self.store.get_table(reservation.table_id)
        return {
            "restaurant_name": restaurant.name if restaurant else "",
            "reservation_date": reservation.reservation_date.isoformat(),
            "reservation_time": format_time(reservation.start_time),
            "party_size": reservation.party_size,
            "table_number": table.table_number if table else "",
            "confirmation_code": reservation.confirmation_code,
        }

    def _notify(self, kind: NotificationKind, reservation: ReservationRecord, restaurant: RestaurantRecord) -> None:
        self.notifier.send_confirmation(
            kind,
            reservation.customer_name,
            reservation.customer_phone,
            reservation.customer_email,
            details=self._notification_details(reservation, restaurant),
        )

    def _no_table_conflict(
        self,
        restaurant_id: int,
        reservation_date,
        party_size: int,
        start_time,
        duration: int
    ) -> ConflictError:
        alternatives = self.availability.find_alternative_slots(
            restaurant_id, reservation_date, party_size, start_time, duration
        )
        if alternatives:
            return ConflictError("No tables available for the requested time", alternatives)
        return ConflictError("No tables available. Would you like to join the waitlist?")

    def create_reservation(self, restaurant_id: int, data: ReservationCreate) -> ReservationRecord:
        """
        Book the best available table for a party.

        Args:
            restaurant_id: Restaurant to book at
            data: Customer, party and requested time

        Returns:
            The confirmed reservation

        Raises:
            NotFoundError: unknown restaurant
            BadRequestError: invalid, past, too distant or out-of-hours request
            ConflictError: no table can hold the window (with alternatives
                when any exist)
        """
        restaurant = self._get_restaurant(restaurant_id)

        try:
            reservation_date = parse_date(data.reservation_date)
        except BadRequestError:
            raise BadRequestError("Invalid reservation date")
        try:
            start_time = parse_time(data.reservation_time)
        except BadRequestError:
            raise BadRequestError("Invalid reservation time")

        now = self.clock()
        starts_at = service_datetime(
            reservation_date, start_time, restaurant.opening_time, restaurant.closing_time
        )
        if starts_at <= now:
            raise BadRequestError("Reservation must be in the future")

        if not self.rules.is_within_horizon(reservation_date, now.date()):
            raise BadRequestError(
                f"Reservations can only be made up to {self.rules.max_advance_days} days in advance"
            )

        duration, clamped = self.rules.resolve_duration(start_time, data.duration)
        if clamped:
            logger.warning(f"Duration adjusted to {duration} minutes for peak hours")

        end_time = add_minutes(start_time, duration)
        if not fits_operating_hours(start_time, end_time, restaurant):
            raise BadRequestError(
                f"Reservation must be within operating hours "
                f"({format_time(restaurant.opening_time)} - {format_time(restaurant.closing_time)})"
            )

        reservation = None
        for attempt in range(1, max(self.rules.write_attempts, 1) + 1):
            suggestions = self.seating.suggest_optimal_tables(
                restaurant_id, data.party_size, reservation_date, start_time, duration
            )
            if not suggestions:
                raise self._no_table_conflict(
                    restaurant_id, reservation_date, data.party_size, start_time, duration
                )

            try:
                reservation = self.store.create_reservation_if_free({
                    "restaurant_id": restaurant_id,
                    "table_id": suggestions[0].table_id,
                    "customer_name": data.customer_name,
                    "customer_phone": data.customer_phone,
                    "customer_email": data.customer_email,
                    "party_size": data.party_size,
                    "reservation_date": reservation_date,
                    "start_time": start_time,
                    "end_time": parse_time(end_time),
                    "duration": duration,
                    "status": ReservationStatus.CONFIRMED.value,
                    "special_requests": data.special_requests,
                    "confirmation_code": generate_confirmation_code(),
                })
                break
            except BookingCollisionError as e:
                logger.warning(
                    f"Booking collision on table {suggestions[0].table_number} "
                    f"(attempt {attempt}/{self.rules.write_attempts}): {e.message}"
                )

        if reservation is None:
            raise ConflictError("The selected table was just booked, please try again")

        self.availability.invalidate(restaurant_id)
        logger.info(
            f"Created reservation {reservation.confirmation_code} for {reservation.customer_name}",
            extra=_log_fields(reservation),
        )

        self._notify(NotificationKind.RESERVATION, reservation, restaurant)
        return reservation

    def get_reservation(self, reservation_id: int) -> ReservationRecord:
        reservation = self.store.get_reservation(reservation_id)
        if reservation is None:
            raise NotFoundError("Reservation not found")
        return reservation

    def get_reservation_by_code(self, confirmation_code: str) -> ReservationRecord:
        reservation = self.store.get_reservation_by_code(confirmation_code.strip().upper())
        if reservation is None:
            raise NotFoundError("Reservation not found")
        return reservation

    def list_reservations(self, restaurant_id: int, reservation_date: DateLike) -> List[ReservationRecord]:
        """All reservations of a restaurant for a service date, ordered by start time."""
        reservation_date = parse_date(reservation_date)
        self._get_restaurant(restaurant_id)

        key = reservations_cache_key(restaurant_id, reservation_date)
        cached = self.cache.get(key)
        if cached is not None:
            try:
                return _reservation_list.validate_json(cached)
            except ValidationError as e:
                logger.warning(f"Discarding unreadable cache entry {key}: {e}")
                self.cache.delete(key)

        reservations = self.store.list_reservations(
            restaurant_id=restaurant_id,
            reservation_date=reservation_date,
        )
        self.cache.set(
            key,
            _reservation_list.dump_json(reservations).decode(),
            self.rules.reservations_cache_ttl,
        )
        return reservations

    def update_reservation(self, reservation_id: int, data: ReservationUpdate) -> ReservationRecord:
        """
        Modify a reservation in place.

        Raises:
            BadRequestError: terminal reservation, out-of-hours window or no
                table fits a larger party
            ConflictError: the current table is taken for the new window
        """
        reservation = self.get_reservation(reservation_id)
        if reservation.status.is_terminal:
            raise BadRequestError(f"Cannot modify {reservation.status.value} reservation")

        restaurant = self._get_restaurant(reservation.restaurant_id)
        changes: Dict[str, Any] = {}
        revalidate = False

        new_date = parse_date(data.reservation_date) if data.reservation_date else reservation.reservation_date
        new_start = parse_time(data.reservation_time) if data.reservation_time else reservation.start_time
        new_duration = data.duration or reservation.duration

        if data.reservation_date or data.reservation_time or data.duration:
            new_end = add_minutes(new_start, new_duration)
            if not fits_operating_hours(new_start, new_end, restaurant):
                raise BadRequestError(
                    f"Reservation must be within operating hours "
                    f"({format_time(restaurant.opening_time)} - {format_time(restaurant.closing_time)})"
                )
            if not self.availability.is_table_available(
                reservation.table_id, new_date, new_start, new_end, exclude_reservation_id=reservation.id
            ):
                raise ConflictError("Table is not available for the requested time")

            changes.update({
                "reservation_date": new_date,
                "start_time": new_start,
                "end_time": parse_time(new_end),
                "duration": new_duration,
            })
            revalidate = True

        if data.party_size:
            table = self.store.get_table(reservation.table_id)
            if table is None or data.party_size > table.capacity:
                suggestions = self.seating.suggest_optimal_tables(
                    reservation.restaurant_id,
                    data.party_size,
                    new_date,
                    new_start,
                    new_duration,
                    exclude_reservation_id=reservation.id,
                )
                if not suggestions:
                    raise BadRequestError("No suitable tables available for the updated party size")
                changes["table_id"] = suggestions[0].table_id
                revalidate = True
            changes["party_size"] = data.party_size

        if data.status is not None:
            changes["status"] = data.status.value
            if data.status.holds_table and not reservation.status.holds_table:
                revalidate = True

        if data.special_requests is not None:
            changes["special_requests"] = data.special_requests

        if not changes:
            return reservation

        try:
            updated = self.store.update_reservation(reservation_id, changes, revalidate=revalidate)
        except BookingCollisionError as e:
            logger.warning(f"Update of reservation {reservation.confirmation_code} collided: {e.message}")
            raise ConflictError("Table is not available for the requested time")
        self.availability.invalidate(reservation.restaurant_id)
        logger.info(
            f"Updated reservation {updated.confirmation_code}: {sorted(changes)}",
            extra=_log_fields(updated),
        )

        self._notify(NotificationKind.MODIFICATION, updated, restaurant)

        if reservation.status.holds_table and not updated.status.holds_table:
            self._release_table(reservation)
        return updated

    def cancel_reservation(self, reservation_id: int) -> ReservationRecord:
        """
        Cancel a reservation and offer its table to the waitlist.

        Raises:
            BadRequestError: already cancelled, completed or a no-show
        """
        reservation = self.get_reservation(reservation_id)
        if reservation.status == ReservationStatus.CANCELLED:
            raise BadRequestError("Reservation is already cancelled")
        if reservation.status.is_terminal or not reservation.status.holds_table:
            raise BadRequestError(f"Cannot cancel {reservation.status.value} reservation")

        restaurant = self._get_restaurant(reservation.restaurant_id)
        updated = self.store.update_reservation(
            reservation_id, {"status": ReservationStatus.CANCELLED.value}
        )
        self.availability.invalidate(reservation.restaurant_id)
        logger.info(f"Cancelled reservation {updated.confirmation_code}", extra=_log_fields(updated))

        self._notify(NotificationKind.CANCELLATION, updated, restaurant)

        self._release_table(reservation)
        return updated

    def _release_table(self, reservation: ReservationRecord) -> None:
        table = self.store.get_table(reservation.table_id)
        if table is None:
            logger.info(f"Table {reservation.table_id} no longer exists, skipping waitlist offer")
            return
        self.waitlist.process_release(
            reservation.restaurant_id,
            reservation.reservation_date,
            reservation.start_time,
            table,
        )
