"""
Store: persistence access for restaurants, tables, reservations and waitlists.

Every read returns an immutable pydantic snapshot so that the scoring and
availability code never touches live ORM rows. Writes that must be atomic
(booking a table, renumbering a waitlist) run inside one transaction with a
row lock taken up front.
"""
import logging
import threading
from contextlib import contextmanager
from datetime import date, time
from typing import Any, Dict, Hashable, Iterable, Iterator, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.errors import BookingCollisionError, NotFoundError
from core.utils_datetime import TimeWindow
from domain.enums import BLOCKING_RESERVATION_STATUSES, ReservationStatus, WaitlistStatus
from domain.models import ReservationRecord, RestaurantRecord, TableRecord, WaitlistRecord
from .models_sqlalchemy import Reservation, Restaurant, RestaurantTable, WaitlistEntry


logger = logging.getLogger(__name__)


class KeyedLocks:
    """
    Re-entrant locks created on demand per key.

    A key's lock is dropped as soon as no thread holds or waits for it, so
    the registry only ever contains keys that are in use.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: Dict[Hashable, List[Any]] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = [threading.RLock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if not entry[1]:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


# Serialises waitlist renumbering per (restaurant, date) within the process
waitlist_locks = KeyedLocks()


def _status_values(statuses: Iterable[Any]) -> List[str]:
    return [getattr(s, "value", s) for s in statuses]


class Store:
    """SQLAlchemy-backed store."""

    def __init__(self, session: Session):
        """
        Initialize the store.

        Args:
            session: SQLAlchemy session used for all reads and writes
        """
        self.session = session
        self._unit_depth = 0

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def _commit(self) -> None:
        """Commit unless inside a unit of work, where changes are only flushed."""
        if self._unit_depth:
            self.session.flush()
        else:
            self.session.commit()

    @contextmanager
    def unit_of_work(self) -> Iterator["Store"]:
        """Group several store calls into one transaction."""
        self._unit_depth += 1
        try:
            yield self
        except Exception:
            self._unit_depth -= 1
            if not self._unit_depth:
                self.session.rollback()
            raise
        else:
            self._unit_depth -= 1
            if not self._unit_depth:
                self.session.commit()

    @contextmanager
    def waitlist_lock(self, restaurant_id: int, waitlist_date: date) -> Iterator["Store"]:
        """
        Critical section for one restaurant's waitlist on one date.

        Holds a process lock for the key and, within a single transaction,
        a row lock on the restaurant so that other workers serialise too.
        Loaded rows are expired on entry so reads see the latest positions.
        """
        with waitlist_locks.hold((restaurant_id, waitlist_date)):
            with self.unit_of_work():
                self.session.expire_all()
                self.session.execute(
                    select(Restaurant.id)
                    .where(Restaurant.id == restaurant_id)
                    .with_for_update()
                )
                yield self

    # ------------------------------------------------------------------
    # Restaurants
    # ------------------------------------------------------------------

    def get_restaurant(self, restaurant_id: int) -> Optional[RestaurantRecord]:
        row = self.session.get(Restaurant, restaurant_id)
        return RestaurantRecord.model_validate(row) if row else None

    def list_restaurants(self, active_only: bool = True) -> List[RestaurantRecord]:
        query = select(Restaurant).order_by(Restaurant.name)
        if active_only:
            query = query.where(Restaurant.is_active.is_(True))
        return [RestaurantRecord.model_validate(r) for r in self.session.scalars(query)]

    def create_restaurant(self, values: Dict[str, Any]) -> RestaurantRecord:
        row = Restaurant(**values)
        self.session.add(row)
        self._commit()
        self.session.refresh(row)
        return RestaurantRecord.model_validate(row)

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def get_table(self, table_id: int, restaurant_id: Optional[int] = None) -> Optional[TableRecord]:
        row = self.session.get(RestaurantTable, table_id)
        if row is None or (restaurant_id is not None and row.restaurant_id != restaurant_id):
            return None
        return TableRecord.model_validate(row)

    def find_table_by_number(self, restaurant_id: int, table_number: str) -> Optional[TableRecord]:
        row = self.session.scalars(
            select(RestaurantTable).where(
                RestaurantTable.restaurant_id == restaurant_id,
                RestaurantTable.table_number == table_number,
            )
        ).first()
        return TableRecord.model_validate(row) if row else None

    def list_tables(
        self,
        restaurant_id: int,
        active_only: bool = True,
        min_capacity: Optional[int] = None
    ) -> List[TableRecord]:
        """Tables ordered by ascending capacity, then id."""
        query = (
            select(RestaurantTable)
            .where(RestaurantTable.restaurant_id == restaurant_id)
            .order_by(RestaurantTable.capacity, RestaurantTable.id)
        )
        if active_only:
            query = query.where(RestaurantTable.is_active.is_(True))
        if min_capacity is not None:
            query = query.where(RestaurantTable.capacity >= min_capacity)
        return [TableRecord.model_validate(t) for t in self.session.scalars(query)]

    def count_tables(self, restaurant_id: int) -> int:
        return self.session.scalar(
            select(func.count(RestaurantTable.id)).where(RestaurantTable.restaurant_id == restaurant_id)
        ) or 0

    def create_table(self, restaurant_id: int, values: Dict[str, Any]) -> TableRecord:
        row = RestaurantTable(restaurant_id=restaurant_id, **values)
        self.session.add(row)
        self._commit()
        self.session.refresh(row)
        return TableRecord.model_validate(row)

    def update_table(self, table_id: int, changes: Dict[str, Any]) -> TableRecord:
        row = self.session.get(RestaurantTable, table_id)
        if row is None:
            raise NotFoundError("Table not found")
        for key, value in changes.items():
            setattr(row, key, value)
        self._commit()
        return TableRecord.model_validate(row)

    def delete_table(self, table_id: int) -> None:
        row = self.session.get(RestaurantTable, table_id)
        if row is None:
            raise NotFoundError("Table not found")
        self.session.delete(row)
        self._commit()

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------

    def get_reservation(self, reservation_id: int) -> Optional[ReservationRecord]:
        row = self.session.get(Reservation, reservation_id)
        return ReservationRecord.model_validate(row) if row else None

    def get_reservation_by_code(self, confirmation_code: str) -> Optional[ReservationRecord]:
        row = self.session.scalars(
            select(Reservation).where(Reservation.confirmation_code == confirmation_code)
        ).first()
        return ReservationRecord.model_validate(row) if row else None

    def list_reservations(
        self,
        restaurant_id: Optional[int] = None,
        reservation_date: Optional[date] = None,
        statuses: Optional[Iterable[ReservationStatus]] = None,
        table_id: Optional[int] = None,
        exclude_id: Optional[int] = None
    ) -> List[ReservationRecord]:
        """Reservations filtered by reservation date (never creation time), ordered by start."""
        query = select(Reservation).order_by(Reservation.start_time, Reservation.id)
        if restaurant_id is not None:
            query = query.where(Reservation.restaurant_id == restaurant_id)
        if reservation_date is not None:
            query = query.where(Reservation.reservation_date == reservation_date)
        if statuses is not None:
            query = query.where(Reservation.status.in_(_status_values(statuses)))
        if table_id is not None:
            query = query.where(Reservation.table_id == table_id)
        if exclude_id is not None:
            query = query.where(Reservation.id != exclude_id)
        return [ReservationRecord.model_validate(r) for r in self.session.scalars(query)]

    def _lock_table(self, table_id: int) -> None:
        self.session.execute(
            select(RestaurantTable.id)
            .where(RestaurantTable.id == table_id)
            .with_for_update()
        )

    def _has_overlap(
        self,
        table_id: int,
        reservation_date: date,
        start: time,
        end: time,
        exclude_id: Optional[int] = None
    ) -> bool:
        table = self.session.get(RestaurantTable, table_id)
        restaurant = self.session.get(Restaurant, table.restaurant_id) if table else None
        opening = restaurant.opening_time if restaurant else None
        closing = restaurant.closing_time if restaurant else None

        target = TimeWindow.from_times(start, end, opening, closing)
        query = select(Reservation).where(
            Reservation.table_id == table_id,
            Reservation.reservation_date == reservation_date,
            Reservation.status.in_(_status_values(BLOCKING_RESERVATION_STATUSES)),
        )
        if exclude_id is not None:
            query = query.where(Reservation.id != exclude_id)

        for existing in self.session.scalars(query):
            window = TimeWindow.from_times(existing.start_time, existing.end_time, opening, closing)
            if target.overlaps(window):
                return True
        return False

    def create_reservation_if_free(self, values: Dict[str, Any]) -> ReservationRecord:
        """
        Insert a reservation unless its table is already taken for the window.

        The table row is locked and the overlap re-checked inside the same
        transaction as the insert.

        Raises:
            BookingCollisionError: if another booking holds the window
        """
        try:
            self._lock_table(values["table_id"])
            if self._has_overlap(
                values["table_id"],
                values["reservation_date"],
                values["start_time"],
                values["end_time"],
            ):
                raise BookingCollisionError("Table was booked by another request")

            row = Reservation(**values)
            self.session.add(row)
            self.session.flush()
            self._commit()
        except BookingCollisionError:
            self.session.rollback()
            raise
        except IntegrityError as e:
            self.session.rollback()
            logger.warning(f"Reservation insert rejected by constraint: {e.orig}")
            raise BookingCollisionError("Reservation could not be stored, please retry")

        self.session.refresh(row)
        return ReservationRecord.model_validate(row)

    def update_reservation(
        self,
        reservation_id: int,
        changes: Dict[str, Any],
        revalidate: bool = False
    ) -> ReservationRecord:
        """
        Apply changes to a reservation.

        With ``revalidate`` the (possibly new) table is locked and checked for
        overlaps, excluding the reservation itself, before committing.
        """
        row = self.session.get(Reservation, reservation_id)
        if row is None:
            raise NotFoundError("Reservation not found")

        try:
            if revalidate:
                table_id = changes.get("table_id", row.table_id)
                self._lock_table(table_id)
                if self._has_overlap(
                    table_id,
                    changes.get("reservation_date", row.reservation_date),
                    changes.get("start_time", row.start_time),
                    changes.get("end_time", row.end_time),
                    exclude_id=row.id,
                ):
                    raise BookingCollisionError("Table is not available for the requested time")

            for key, value in changes.items():
                setattr(row, key, value)
            self._commit()
        except BookingCollisionError:
            self.session.rollback()
            raise

        self.session.refresh(row)
        return ReservationRecord.model_validate(row)

    # ------------------------------------------------------------------
    # Waitlist
    # ------------------------------------------------------------------

    def get_waitlist_entry(self, entry_id: int) -> Optional[WaitlistRecord]:
        row = self.session.get(WaitlistEntry, entry_id)
        return WaitlistRecord.model_validate(row) if row else None

    def list_waitlist(
        self,
        restaurant_id: int,
        waitlist_date: date,
        status: Optional[WaitlistStatus] = None
    ) -> List[WaitlistRecord]:
        """Entries ordered by position, then id."""
        query = (
            select(WaitlistEntry)
            .where(
                WaitlistEntry.restaurant_id == restaurant_id,
                WaitlistEntry.waitlist_date == waitlist_date,
            )
            .order_by(WaitlistEntry.position, WaitlistEntry.id)
        )
        if status is not None:
            query = query.where(WaitlistEntry.status == status.value)
        return [WaitlistRecord.model_validate(w) for w in self.session.scalars(query)]

    def count_waitlist(self, restaurant_id: int, waitlist_date: date, status: WaitlistStatus) -> int:
        return self.session.scalar(
            select(func.count(WaitlistEntry.id)).where(
                WaitlistEntry.restaurant_id == restaurant_id,
                WaitlistEntry.waitlist_date == waitlist_date,
                WaitlistEntry.status == status.value,
            )
        ) or 0

    def create_waitlist_entry(self, values: Dict[str, Any]) -> WaitlistRecord:
        row = WaitlistEntry(**values)
        self.session.add(row)
        self._commit()
        self.session.refresh(row)
        return WaitlistRecord.model_validate(row)

    def update_waitlist_entry(self, entry_id: int, changes: Dict[str, Any]) -> WaitlistRecord:
        row = self.session.get(WaitlistEntry, entry_id)
        if row is None:
            raise NotFoundError("Waitlist entry not found")
        for key, value in changes.items():
            setattr(row, key, value)
        self._commit()
        return WaitlistRecord.model_validate(row)

    def delete_waitlist_entry(self, entry_id: int) -> None:
        row = self.session.get(WaitlistEntry, entry_id)
        if row is None:
            raise NotFoundError("Waitlist entry not found")
        self.session.delete(row)
        self._commit()

    def set_waitlist_positions(self, positions: Dict[int, int]) -> None:
        """Write several positions at once ({entry_id: position})."""
        for entry_id, position in positions.items():
            row = self.session.get(WaitlistEntry, entry_id)
            if row is not None and row.position != position:
                row.position = position
        self._commit()
