"""Tests for the reservation scheduler."""
import pytest
from datetime import date, time
from unittest.mock import patch

from core.errors import BadRequestError, BookingCollisionError, ConflictError, NotFoundError
from domain.enums import NotificationKind, ReservationStatus, WaitlistStatus
from domain.models import ReservationCreate, ReservationUpdate
from services.availability_service import availability_cache_key


TODAY = date(2030, 3, 15)
TOMORROW = date(2030, 3, 16)


@pytest.fixture(scope="function")
def reservation_data():
    """Factory for reservation requests."""
    def _create(**kwargs):
        data = {
            "customer_name": "Chidi Okeke",
            "customer_phone": "+2348031234567",
            "customer_email": "chidi@example.com",
            "party_size": 4,
            "reservation_date": TOMORROW.isoformat(),
            "reservation_time": "12:00",
        }
        data.update(kwargs)
        return ReservationCreate(**data)
    return _create


@pytest.mark.integration
class TestCreateReservation:
    """Test booking creation."""

    def test_create_assigns_best_table(self, services, restaurant, make_table, reservation_data):
        """Test the top-scored table is booked as confirmed."""
        make_table(restaurant, "T6", capacity=6)
        t4 = make_table(restaurant, "T4", capacity=4)

        reservation = services.reservations.create_reservation(restaurant.id, reservation_data())

        assert reservation.table_id == t4.id
        assert reservation.status == ReservationStatus.CONFIRMED
        assert reservation.reservation_date == TOMORROW
        assert reservation.start_time == time(12, 0)
        assert reservation.end_time == time(14, 0)
        assert reservation.duration == 120
        assert len(reservation.confirmation_code) == 8
        assert reservation.confirmation_code == reservation.confirmation_code.upper()
        int(reservation.confirmation_code, 16)

    def test_create_sends_confirmation(self, services, notifier, restaurant, make_table, reservation_data):
        """Test a confirmation is sent with the booking details."""
        make_table(restaurant, "T4", capacity=4)

        reservation = services.reservations.create_reservation(restaurant.id, reservation_data())

        notifier.send_confirmation.assert_called_once()
        args, kwargs = notifier.send_confirmation.call_args
        assert args[0] == NotificationKind.RESERVATION
        assert kwargs["details"]["confirmation_code"] == reservation.confirmation_code
        assert kwargs["details"]["table_number"] == "T4"
        assert kwargs["details"]["restaurant_name"] == "Tallie Bistro"

    def test_notification_failure_does_not_fail_booking(
        self, services, notifier, restaurant, make_table, reservation_data
    ):
        """Test the booking stands when the notifier reports failure."""
        make_table(restaurant, "T4", capacity=4)
        notifier.send_confirmation.return_value = False

        reservation = services.reservations.create_reservation(restaurant.id, reservation_data())

        assert reservation.status == ReservationStatus.CONFIRMED

    def test_whole_day_booking_leaves_no_availability(self, services, restaurant, make_table, reservation_data):
        """Test booking 10:00-22:00 leaves no slots for the same party size."""
        make_table(restaurant, "T1", capacity=4)
        services.reservations.create_reservation(
            restaurant.id, reservation_data(reservation_time="10:00", duration=720)
        )

        result = services.availability.check_availability(restaurant.id, TOMORROW, 4)

        assert result.available_slots == []

    def test_no_fitting_table_suggests_waitlist(self, services, store, restaurant, make_table, reservation_data):
        """Test a party larger than every table gets waitlist guidance."""
        make_table(restaurant, "T4", capacity=4)

        with pytest.raises(ConflictError, match="waitlist") as exc:
            services.reservations.create_reservation(restaurant.id, reservation_data(party_size=10))

        assert exc.value.alternatives == []
        assert exc.value.status_code == 409
        assert store.list_reservations(restaurant_id=restaurant.id) == []

    def test_taken_time_offers_alternatives(self, services, store, restaurant, make_table, book, reservation_data):
        """Test a taken slot reports nearby open times and writes nothing."""
        table = make_table(restaurant, "T4", capacity=4)
        book(restaurant, table, "12:00", "14:00")

        with pytest.raises(ConflictError, match="No tables available for the requested time") as exc:
            services.reservations.create_reservation(restaurant.id, reservation_data())

        starts = [slot.start_time for slot in exc.value.alternatives]
        assert starts == ["10:00", "14:00", "14:30", "15:00", "15:30"]
        assert len(store.list_reservations(restaurant_id=restaurant.id)) == 1
        assert exc.value.to_dict()["alternatives"][0]["start_time"] == "10:00"

    def test_peak_duration_is_clamped(self, services, restaurant, make_table, reservation_data):
        """Test a peak-hour booking is shortened to the peak cap."""
        make_table(restaurant, "T4", capacity=4)

        reservation = services.reservations.create_reservation(
            restaurant.id, reservation_data(reservation_time="19:00", duration=150)
        )

        assert reservation.duration == 90
        assert reservation.end_time == time(20, 30)

    def test_past_time_rejected(self, services, restaurant, make_table, reservation_data):
        """Test a time earlier than now is rejected."""
        make_table(restaurant, "T4", capacity=4)

        with pytest.raises(BadRequestError, match="in the future"):
            services.reservations.create_reservation(
                restaurant.id, reservation_data(reservation_date=TODAY.isoformat(), reservation_time="08:00")
            )

    def test_horizon_boundary(self, services, restaurant, make_table, reservation_data):
        """Test the last horizon day is bookable and the next one is not."""
        make_table(restaurant, "T4", capacity=4)

        services.reservations.create_reservation(
            restaurant.id, reservation_data(reservation_date="2030-04-14")
        )
        with pytest.raises(BadRequestError, match="30 days in advance"):
            services.reservations.create_reservation(
                restaurant.id, reservation_data(reservation_date="2030-04-15")
            )

    @pytest.mark.parametrize("reservation_time", ["09:00", "21:00", "22:30"])
    def test_outside_operating_hours_rejected(self, services, restaurant, make_table, reservation_data,
                                              reservation_time):
        """Test a window starting or ending outside hours is rejected."""
        make_table(restaurant, "T4", capacity=4)

        with pytest.raises(BadRequestError, match="within operating hours \\(10:00 - 22:00\\)"):
            services.reservations.create_reservation(
                restaurant.id, reservation_data(reservation_time=reservation_time)
            )

    @pytest.mark.parametrize("field,value,message", [
        ("reservation_date", "2030-02-30", "Invalid reservation date"),
        ("reservation_date", "tomorrow", "Invalid reservation date"),
        ("reservation_time", "25:00", "Invalid reservation time"),
    ])
    def test_malformed_date_or_time(self, services, restaurant, reservation_data, field, value, message):
        """Test malformed dates and times are bad requests."""
        with pytest.raises(BadRequestError, match=message):
            services.reservations.create_reservation(restaurant.id, reservation_data(**{field: value}))

    def test_unknown_restaurant(self, services, reservation_data):
        """Test booking at an unknown restaurant raises NotFoundError."""
        with pytest.raises(NotFoundError):
            services.reservations.create_reservation(999, reservation_data())

    def test_long_booking_cannot_run_past_closing(self, services, make_restaurant, make_table, reservation_data):
        """Test a window whose end wraps to the next morning is outside hours."""
        early = make_restaurant(name="Early Bird", opening_time="06:00", closing_time="23:00")
        make_table(early, "T4", capacity=4)

        with pytest.raises(BadRequestError, match="within operating hours \\(06:00 - 23:00\\)"):
            services.reservations.create_reservation(
                early.id, reservation_data(reservation_time="22:30", duration=720)
            )

        assert services.reservations.list_reservations(early.id, TOMORROW) == []

    def test_overnight_booking_after_midnight(self, services, make_restaurant, make_table, reservation_data):
        """Test an after-midnight time on today's service day is in the future."""
        late = make_restaurant(name="Night Owl", opening_time="18:00", closing_time="02:00")
        make_table(late, "N1", capacity=4)

        reservation = services.reservations.create_reservation(
            late.id,
            reservation_data(reservation_date=TODAY.isoformat(), reservation_time="00:00", duration=120),
        )

        assert reservation.start_time == time(0, 0)
        assert reservation.end_time == time(2, 0)

    def test_booking_invalidates_availability(self, services, cache, restaurant, make_table, reservation_data):
        """Test a new booking drops cached availability for the restaurant."""
        make_table(restaurant, "T4", capacity=4)
        services.availability.check_availability(restaurant.id, TOMORROW, 4, 120)
        key = availability_cache_key(restaurant.id, TOMORROW, 4, 120)
        assert cache.get(key) is not None

        services.reservations.create_reservation(restaurant.id, reservation_data())

        assert cache.get(key) is None


@pytest.mark.integration
class TestWriteCollisions:
    """Test write-time collisions reported by the store."""

    def test_collision_is_retried(self, services, store, restaurant, make_table, reservation_data):
        """Test a single collision is retried and the booking succeeds."""
        make_table(restaurant, "T4", capacity=4)
        real_create = store.create_reservation_if_free
        calls = []

        def flaky(values):
            calls.append(values["table_id"])
            if len(calls) == 1:
                raise BookingCollisionError("Table was booked by another request")
            return real_create(values)

        with patch.object(store, "create_reservation_if_free", side_effect=flaky):
            reservation = services.reservations.create_reservation(restaurant.id, reservation_data())

        assert len(calls) == 2
        assert reservation.status == ReservationStatus.CONFIRMED

    def test_repeated_collisions_become_conflict(self, services, store, restaurant, make_table, reservation_data):
        """Test collisions on every attempt surface as a conflict."""
        make_table(restaurant, "T4", capacity=4)

        with patch.object(
            store,
            "create_reservation_if_free",
            side_effect=BookingCollisionError("Table was booked by another request"),
        ) as create:
            with pytest.raises(ConflictError, match="just booked"):
                services.reservations.create_reservation(restaurant.id, reservation_data())

        assert create.call_count == 2

    def test_store_rejects_overlapping_insert(self, store, restaurant, make_table, book):
        """Test the store refuses a second overlapping booking on a table."""
        table = make_table(restaurant, "T4", capacity=4)
        book(restaurant, table, "12:00", "14:00")

        with pytest.raises(BookingCollisionError):
            book(restaurant, table, "13:00", "15:00")

        assert len(store.list_reservations(table_id=table.id)) == 1


@pytest.mark.integration
class TestLookups:
    """Test reading reservations."""

    def test_get_by_id_and_code(self, services, restaurant, make_table, reservation_data):
        """Test lookup by id and by confirmation code (any case)."""
        make_table(restaurant, "T4", capacity=4)
        created = services.reservations.create_reservation(restaurant.id, reservation_data())

        assert services.reservations.get_reservation(created.id) == created
        assert services.reservations.get_reservation_by_code(created.confirmation_code.lower()).id == created.id

    def test_missing_reservation(self, services):
        """Test unknown ids and codes raise NotFoundError."""
        with pytest.raises(NotFoundError, match="Reservation not found"):
            services.reservations.get_reservation(999)
        with pytest.raises(NotFoundError):
            services.reservations.get_reservation_by_code("DEADBEEF")

    def test_list_uses_reservation_date(self, services, restaurant, make_table, book):
        """Test listing filters on the reservation date, ordered by start."""
        table = make_table(restaurant, "T4", capacity=4)
        later = book(restaurant, table, "18:00", "19:30")
        earlier = book(restaurant, table, "12:00", "14:00")
        book(restaurant, table, "12:00", "14:00", reservation_date=date(2030, 3, 20))

        listed = services.reservations.list_reservations(restaurant.id, TOMORROW)

        assert [r.id for r in listed] == [earlier.id, later.id]

    def test_list_is_cached_until_invalidated(self, services, cache, restaurant, make_table, reservation_data):
        """Test listings come from the cache and refresh after a booking."""
        make_table(restaurant, "T4", capacity=4)
        make_table(restaurant, "T5", capacity=5)
        services.reservations.create_reservation(restaurant.id, reservation_data())

        first = services.reservations.list_reservations(restaurant.id, TOMORROW)
        assert cache.get(f"reservations:{restaurant.id}:{TOMORROW.isoformat()}") is not None
        assert services.reservations.list_reservations(restaurant.id, TOMORROW) == first

        services.reservations.create_reservation(restaurant.id, reservation_data(customer_name="Second"))

        assert len(services.reservations.list_reservations(restaurant.id, TOMORROW)) == 2


@pytest.mark.integration
class TestUpdateReservation:
    """Test in-place modification."""

    def test_move_to_free_time(self, services, notifier, restaurant, make_table, book):
        """Test moving to a free window updates times and notifies."""
        table = make_table(restaurant, "T4", capacity=4)
        reservation = book(restaurant, table, "12:00", "14:00")

        updated = services.reservations.update_reservation(
            reservation.id, ReservationUpdate(reservation_time="15:00")
        )

        assert updated.start_time == time(15, 0)
        assert updated.end_time == time(17, 0)
        assert updated.table_id == table.id
        assert notifier.send_confirmation.call_args[0][0] == NotificationKind.MODIFICATION

    def test_move_into_taken_window_conflicts(self, services, restaurant, make_table, book):
        """Test the current table must be free for the new window."""
        table = make_table(restaurant, "T4", capacity=4)
        reservation = book(restaurant, table, "12:00", "14:00")
        book(restaurant, table, "15:00", "17:00")

        with pytest.raises(ConflictError, match="not available"):
            services.reservations.update_reservation(reservation.id, ReservationUpdate(reservation_time="14:30"))

    def test_overlap_with_itself_is_allowed(self, services, restaurant, make_table, book):
        """Test shifting within its own window does not conflict with itself."""
        table = make_table(restaurant, "T4", capacity=4)
        reservation = book(restaurant, table, "12:00", "14:00")

        updated = services.reservations.update_reservation(
            reservation.id, ReservationUpdate(reservation_time="13:00")
        )

        assert updated.start_time == time(13, 0)

    def test_move_outside_hours_rejected(self, services, restaurant, make_table, book):
        """Test the new window must be within operating hours."""
        table = make_table(restaurant, "T4", capacity=4)
        reservation = book(restaurant, table, "12:00", "14:00")

        with pytest.raises(BadRequestError, match="operating hours"):
            services.reservations.update_reservation(reservation.id, ReservationUpdate(reservation_time="21:00"))

    def test_larger_party_moves_table(self, services, restaurant, make_table, book):
        """Test a party outgrowing its table is reassigned."""
        small = make_table(restaurant, "T2", capacity=2)
        large = make_table(restaurant, "T6", capacity=6)
        reservation = book(restaurant, small, "12:00", "14:00")

        updated = services.reservations.update_reservation(reservation.id, ReservationUpdate(party_size=5))

        assert updated.table_id == large.id
        assert updated.party_size == 5

    def test_larger_party_without_table_rejected(self, services, restaurant, make_table, book):
        """Test no fitting table for the new party size is a bad request."""
        small = make_table(restaurant, "T2", capacity=2)
        reservation = book(restaurant, small, "12:00", "14:00")

        with pytest.raises(BadRequestError, match="No suitable tables"):
            services.reservations.update_reservation(reservation.id, ReservationUpdate(party_size=8))

    def test_smaller_party_keeps_table(self, services, restaurant, make_table, book):
        """Test a party that still fits stays on its table."""
        table = make_table(restaurant, "T4", capacity=4)
        reservation = book(restaurant, table, "12:00", "14:00", party_size=4)

        updated = services.reservations.update_reservation(reservation.id, ReservationUpdate(party_size=3))

        assert updated.table_id == table.id
        assert updated.party_size == 3

    def test_status_and_requests_applied(self, services, restaurant, make_table, book):
        """Test status and special requests are applied as given."""
        table = make_table(restaurant, "T4", capacity=4)
        reservation = book(restaurant, table, "12:00", "14:00")

        updated = services.reservations.update_reservation(
            reservation.id,
            ReservationUpdate(status=ReservationStatus.COMPLETED, special_requests="Birthday cake"),
        )

        assert updated.status == ReservationStatus.COMPLETED
        assert updated.special_requests == "Birthday cake"

    @pytest.mark.parametrize("terminal", [ReservationStatus.CANCELLED, ReservationStatus.COMPLETED])
    def test_terminal_reservation_is_frozen(self, services, store, restaurant, make_table, book, terminal):
        """Test cancelled and completed reservations cannot be modified."""
        table = make_table(restaurant, "T4", capacity=4)
        reservation = book(restaurant, table, "12:00", "14:00")
        store.update_reservation(reservation.id, {"status": terminal.value})

        with pytest.raises(BadRequestError, match=f"Cannot modify {terminal.value} reservation"):
            services.reservations.update_reservation(reservation.id, ReservationUpdate(party_size=2))

    def test_reconfirming_no_show_into_taken_window_conflicts(self, services, store, restaurant, make_table, book):
        """Test a no-show cannot be reconfirmed once its window was rebooked."""
        table = make_table(restaurant, "T1", capacity=4)
        first = book(restaurant, table, "12:00", "14:00")
        services.reservations.update_reservation(first.id, ReservationUpdate(status=ReservationStatus.NO_SHOW))
        book(restaurant, table, "12:00", "14:00")

        with pytest.raises(ConflictError, match="Table is not available for the requested time"):
            services.reservations.update_reservation(
                first.id, ReservationUpdate(status=ReservationStatus.CONFIRMED)
            )

        assert services.reservations.get_reservation(first.id).status == ReservationStatus.NO_SHOW
        active = store.list_reservations(
            table_id=table.id, reservation_date=TOMORROW, statuses=[ReservationStatus.CONFIRMED]
        )
        assert len(active) == 1

    def test_reconfirming_no_show_with_free_window(self, services, restaurant, make_table, book):
        """Test a no-show can be reconfirmed while its table is still free."""
        table = make_table(restaurant, "T1", capacity=4)
        reservation = book(restaurant, table, "12:00", "14:00")
        services.reservations.update_reservation(
            reservation.id, ReservationUpdate(status=ReservationStatus.NO_SHOW)
        )

        updated = services.reservations.update_reservation(
            reservation.id, ReservationUpdate(status=ReservationStatus.CONFIRMED)
        )

        assert updated.status == ReservationStatus.CONFIRMED
        assert not services.availability.is_table_available(table.id, TOMORROW, "12:00", "14:00")

    def test_no_show_releases_table_to_waitlist(self, services, restaurant, make_table, book, waitlist_data):
        """Test marking a no-show offers the table to the waitlist."""
        table = make_table(restaurant, "T4", capacity=4)
        reservation = book(restaurant, table, "12:00", "14:00", reservation_date=TODAY)
        entry = services.waitlist.add_to_waitlist(restaurant.id, waitlist_data(party_size=4))

        services.reservations.update_reservation(
            reservation.id, ReservationUpdate(status=ReservationStatus.NO_SHOW)
        )

        assert services.waitlist.get_entry(entry.id).status == WaitlistStatus.NOTIFIED


@pytest.mark.integration
class TestCancelReservation:
    """Test cancellation and the waitlist release match."""

    def test_cancel(self, services, notifier, restaurant, make_table, book):
        """Test cancelling sets the status and notifies."""
        table = make_table(restaurant, "T4", capacity=4)
        reservation = book(restaurant, table, "12:00", "14:00")

        cancelled = services.reservations.cancel_reservation(reservation.id)

        assert cancelled.status == ReservationStatus.CANCELLED
        assert notifier.send_confirmation.call_args[0][0] == NotificationKind.CANCELLATION
        assert services.availability.is_table_available(table.id, TOMORROW, "12:00", "14:00")

    def test_double_cancel_rejected(self, services, restaurant, make_table, book):
        """Test cancelling twice is a bad request."""
        table = make_table(restaurant, "T4", capacity=4)
        reservation = book(restaurant, table, "12:00", "14:00")
        services.reservations.cancel_reservation(reservation.id)

        with pytest.raises(BadRequestError, match="already cancelled"):
            services.reservations.cancel_reservation(reservation.id)

    def test_cancel_completed_rejected(self, services, store, restaurant, make_table, book):
        """Test completed reservations cannot be cancelled."""
        table = make_table(restaurant, "T4", capacity=4)
        reservation = book(restaurant, table, "12:00", "14:00")
        store.update_reservation(reservation.id, {"status": ReservationStatus.COMPLETED.value})

        with pytest.raises(BadRequestError):
            services.reservations.cancel_reservation(reservation.id)

    def test_cancel_no_show_rejected(self, services, notifier, restaurant, make_table, book):
        """Test a no-show cannot be cancelled and nothing is sent."""
        table = make_table(restaurant, "T4", capacity=4)
        reservation = book(restaurant, table, "12:00", "14:00", status=ReservationStatus.NO_SHOW)

        with pytest.raises(BadRequestError, match="Cannot cancel no_show reservation"):
            services.reservations.cancel_reservation(reservation.id)

        assert services.reservations.get_reservation(reservation.id).status == ReservationStatus.NO_SHOW
        notifier.send_confirmation.assert_not_called()

    def test_cancel_notifies_first_fitting_waiting_party(
        self, services, notifier, restaurant, make_table, book, waitlist_data
    ):
        """Test the first waiting party that fits is notified and others are untouched."""
        table = make_table(restaurant, "T4", capacity=4)
        reservation = book(restaurant, table, "19:00", "20:30", reservation_date=TODAY)
        too_big = services.waitlist.add_to_waitlist(restaurant.id, waitlist_data("Big Group", party_size=6))
        fits = services.waitlist.add_to_waitlist(restaurant.id, waitlist_data("Pair", party_size=2))
        also_fits = services.waitlist.add_to_waitlist(restaurant.id, waitlist_data("Trio", party_size=3))

        services.reservations.cancel_reservation(reservation.id)

        notified = services.waitlist.get_entry(fits.id)
        assert notified.status == WaitlistStatus.NOTIFIED
        assert notified.notified_at is not None

        assert services.waitlist.get_entry(too_big.id).status == WaitlistStatus.WAITING
        assert services.waitlist.get_entry(also_fits.id).status == WaitlistStatus.WAITING

        notifier.notify_waitlist_availability.assert_called_once()
        kwargs = notifier.notify_waitlist_availability.call_args.kwargs
        assert kwargs["available_time"] == "19:00"
        assert kwargs["table_number"] == "T4"

    def test_cancel_without_waitlist(self, services, notifier, restaurant, make_table, book):
        """Test cancelling with an empty waitlist notifies nobody."""
        table = make_table(restaurant, "T4", capacity=4)
        reservation = book(restaurant, table, "12:00", "14:00", reservation_date=TODAY)

        services.reservations.cancel_reservation(reservation.id)

        notifier.notify_waitlist_availability.assert_not_called()
