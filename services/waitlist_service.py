"""
Waitlist Service: FIFO queue of waiting parties per restaurant and date.

Positions among WAITING entries are kept dense (1..N). Every
read-modify-write of positions runs inside ``Store.waitlist_lock`` so that
concurrent joins, removals and status changes cannot interleave.
"""
import logging
from datetime import date
from typing import Callable, List, Optional

from core.errors import NotFoundError
from core.utils_datetime import DateLike, TimeLike, format_time, get_current_datetime, parse_date, parse_time
from db.store import Store
from domain.enums import NotificationKind, WaitlistStatus
from domain.models import RestaurantRecord, TableRecord, WaitlistCreate, WaitlistRecord
from services.notification_service import NotificationService


logger = logging.getLogger(__name__)


class WaitlistService:
    """Service for managing restaurant waitlists."""

    def __init__(
        self,
        store: Store,
        notifier: NotificationService,
        clock: Optional[Callable] = None
    ):
        """
        Initialize WaitlistService.

        Args:
            store: Persistence access
            notifier: Customer notifications
            clock: Zero-argument callable returning an aware "now"
        """
        self.store = store
        self.notifier = notifier
        self.clock = clock or get_current_datetime

    def _get_restaurant(self, restaurant_id: int) -> RestaurantRecord:
        restaurant = self.store.get_restaurant(restaurant_id)
        if restaurant is None:
            raise NotFoundError("Restaurant not found")
        return restaurant

    def get_entry(self, entry_id: int) -> WaitlistRecord:
        entry = self.store.get_waitlist_entry(entry_id)
        if entry is None:
            raise NotFoundError("Waitlist entry not found")
        return entry

    def add_to_waitlist(self, restaurant_id: int, data: WaitlistCreate) -> WaitlistRecord:
        """
        Append a party to today's waitlist.

        Args:
            restaurant_id: Restaurant to wait for
            data: Customer and party details

        Returns:
            The new entry, positioned after every waiting party
        """
        restaurant = self._get_restaurant(restaurant_id)
        today = self.clock().date()

        with self.store.waitlist_lock(restaurant_id, today):
            waiting = self.store.count_waitlist(restaurant_id, today, WaitlistStatus.WAITING)
            entry = self.store.create_waitlist_entry({
                "restaurant_id": restaurant_id,
                "customer_name": data.customer_name,
                "customer_phone": data.customer_phone,
                "customer_email": data.customer_email,
                "party_size": data.party_size,
                "waitlist_date": today,
                "preferred_time": parse_time(data.preferred_time) if data.preferred_time else None,
                "notes": data.notes,
                "status": WaitlistStatus.WAITING.value,
                "position": waiting + 1,
            })

        logger.info(f"Added {entry.customer_name} to waitlist of restaurant {restaurant_id} at #{entry.position}")

        self.notifier.send_confirmation(
            NotificationKind.WAITLIST,
            entry.customer_name,
            entry.customer_phone,
            entry.customer_email,
            details={
                "restaurant_name": restaurant.name,
                "waitlist_date": today.isoformat(),
                "party_size": entry.party_size,
                "position": entry.position,
            },
        )
        return entry

    def get_waitlist(self, restaurant_id: int, waitlist_date: Optional[DateLike] = None) -> List[WaitlistRecord]:
        """All entries for a date (today by default), ordered by position."""
        self._get_restaurant(restaurant_id)
        day = parse_date(waitlist_date) if waitlist_date else self.clock().date()
        return self.store.list_waitlist(restaurant_id, day)

    def update_status(self, entry_id: int, status: WaitlistStatus) -> WaitlistRecord:
        """
        Move an entry to a new status.

        An entry leaving WAITING triggers a reflow of the remaining queue;
        one returning to WAITING goes to the back of it.
        """
        entry = self.get_entry(entry_id)

        with self.store.waitlist_lock(entry.restaurant_id, entry.waitlist_date):
            entry = self.get_entry(entry_id)
            was_waiting = entry.status == WaitlistStatus.WAITING

            changes = {"status": status.value}
            if status == WaitlistStatus.NOTIFIED and entry.notified_at is None:
                changes["notified_at"] = self.clock()
            if status == WaitlistStatus.WAITING and not was_waiting:
                changes["position"] = self.store.count_waitlist(
                    entry.restaurant_id, entry.waitlist_date, WaitlistStatus.WAITING
                ) + 1

            updated = self.store.update_waitlist_entry(entry_id, changes)
            if was_waiting and status != WaitlistStatus.WAITING:
                self._reflow(entry.restaurant_id, entry.waitlist_date)

        logger.info(f"Waitlist entry {entry_id}: {entry.status.value} -> {status.value}")
        return updated

    def remove_from_waitlist(self, entry_id: int) -> None:
        entry = self.get_entry(entry_id)

        with self.store.waitlist_lock(entry.restaurant_id, entry.waitlist_date):
            self.store.delete_waitlist_entry(entry_id)
            self._reflow(entry.restaurant_id, entry.waitlist_date)

        logger.info(f"Removed waitlist entry {entry_id}")

    def reflow(self, restaurant_id: int, waitlist_date: DateLike) -> List[WaitlistRecord]:
        """Renumber waiting entries 1..N, keeping their order."""
        day = parse_date(waitlist_date)
        with self.store.waitlist_lock(restaurant_id, day):
            self._reflow(restaurant_id, day)
        return self.store.list_waitlist(restaurant_id, day, WaitlistStatus.WAITING)

    def _reflow(self, restaurant_id: int, waitlist_date: date) -> None:
        # Caller holds the waitlist lock
        waiting = self.store.list_waitlist(restaurant_id, waitlist_date, WaitlistStatus.WAITING)
        self.store.set_waitlist_positions({
            entry.id: position for position, entry in enumerate(waiting, start=1)
        })

    def process_release(
        self,
        restaurant_id: int,
        release_date: DateLike,
        release_time: TimeLike,
        table: TableRecord
    ) -> Optional[WaitlistRecord]:
        """
        Offer a freed table to the first waiting party that fits it.

        At most one entry is notified per call.

        Returns:
            The notified entry, or None when nobody waiting fits
        """
        restaurant = self._get_restaurant(restaurant_id)
        day = parse_date(release_date)

        with self.store.waitlist_lock(restaurant_id, day):
            waiting = self.store.list_waitlist(restaurant_id, day, WaitlistStatus.WAITING)
            match = next((e for e in waiting if e.party_size <= table.capacity), None)
            if match is None:
                logger.info(f"No waiting party fits table {table.table_number} on {day}")
                return None

            notified = self.store.update_waitlist_entry(match.id, {
                "status": WaitlistStatus.NOTIFIED.value,
                "notified_at": self.clock(),
            })
            self._reflow(restaurant_id, day)

        logger.info(
            f"Offered table {table.table_number} to waitlist entry {match.id}",
            extra={"restaurant_id": restaurant_id, "table_id": table.id, "waitlist_entry_id": match.id},
        )

        self.notifier.notify_waitlist_availability(
            notified,
            restaurant_name=restaurant.name,
            available_date=day.isoformat(),
            available_time=format_time(release_time),
            table_number=table.table_number,
        )
        return notified
