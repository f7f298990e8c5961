"""
Restaurant Service: restaurants, their tables and table occupancy.
"""
import logging
from typing import List, Optional

from core.errors import BadRequestError, NotFoundError
from core.utils_datetime import DateLike, TimeLike, TimeWindow, add_minutes, parse_date, parse_time
from db.store import Store
from domain.enums import BLOCKING_RESERVATION_STATUSES
from domain.models import (
    RestaurantCreate,
    RestaurantRecord,
    TableCreate,
    TableOccupancy,
    TableRecord,
    TableUpdate,
)
from services.availability_service import AvailabilityService
from services.seating_service import group_booked_windows


logger = logging.getLogger(__name__)


class RestaurantService:
    """Service for managing restaurants and tables."""

    def __init__(self, store: Store, availability: AvailabilityService):
        self.store = store
        self.availability = availability

    def create_restaurant(self, data: RestaurantCreate) -> RestaurantRecord:
        values = data.model_dump()
        values["opening_time"] = parse_time(data.opening_time)
        values["closing_time"] = parse_time(data.closing_time)
        restaurant = self.store.create_restaurant(values)
        logger.info(f"Created restaurant {restaurant.id} ({restaurant.name})")
        return restaurant

    def get_restaurant(self, restaurant_id: int) -> RestaurantRecord:
        restaurant = self.store.get_restaurant(restaurant_id)
        if restaurant is None:
            raise NotFoundError("Restaurant not found")
        return restaurant

    def list_restaurants(self) -> List[RestaurantRecord]:
        """Active restaurants ordered by name."""
        return self.store.list_restaurants(active_only=True)

    def list_tables(self, restaurant_id: int, active_only: bool = False) -> List[TableRecord]:
        self.get_restaurant(restaurant_id)
        return self.store.list_tables(restaurant_id, active_only=active_only)

    def _get_table(self, restaurant_id: int, table_id: int) -> TableRecord:
        table = self.store.get_table(table_id, restaurant_id=restaurant_id)
        if table is None:
            raise NotFoundError("Table not found")
        return table

    def add_table(self, restaurant_id: int, data: TableCreate) -> TableRecord:
        """
        Add a table to a restaurant.

        Raises:
            NotFoundError: unknown restaurant
            BadRequestError: duplicate table number or table limit reached
        """
        restaurant = self.get_restaurant(restaurant_id)

        if self.store.find_table_by_number(restaurant_id, data.table_number):
            raise BadRequestError(f"Table {data.table_number} already exists in this restaurant")

        if self.store.count_tables(restaurant_id) >= restaurant.total_tables:
            raise BadRequestError(f"Cannot add more tables. Restaurant limit: {restaurant.total_tables}")

        table = self.store.create_table(restaurant_id, data.model_dump())
        self.availability.invalidate(restaurant_id)
        logger.info(f"Added table {table.table_number} to restaurant {restaurant_id}")
        return table

    def update_table(self, restaurant_id: int, table_id: int, data: TableUpdate) -> TableRecord:
        table = self._get_table(restaurant_id, table_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        number = changes.get("table_number")
        if number and number != table.table_number:
            existing = self.store.find_table_by_number(restaurant_id, number)
            if existing and existing.id != table_id:
                raise BadRequestError(f"Table {number} already exists in this restaurant")

        if not changes:
            return table

        updated = self.store.update_table(table_id, changes)
        self.availability.invalidate(restaurant_id)
        logger.info(f"Updated table {updated.table_number} of restaurant {restaurant_id}")
        return updated

    def delete_table(self, restaurant_id: int, table_id: int) -> None:
        table = self._get_table(restaurant_id, table_id)
        self.store.delete_table(table_id)
        self.availability.invalidate(restaurant_id)
        logger.info(f"Deleted table {table.table_number} of restaurant {restaurant_id}")

    def get_table_occupancy(
        self,
        restaurant_id: int,
        occupancy_date: DateLike,
        at_time: TimeLike,
        duration: Optional[int] = None
    ) -> TableOccupancy:
        """
        Split the active tables into free and occupied at one moment.

        A table counts as occupied when a table-holding reservation
        overlaps the window starting at ``at_time`` (one minute by default).
        """
        restaurant = self.get_restaurant(restaurant_id)
        day = parse_date(occupancy_date)

        window = TimeWindow.from_times(
            at_time,
            add_minutes(at_time, duration or 1),
            restaurant.opening_time,
            restaurant.closing_time,
        )
        tables = self.store.list_tables(restaurant_id, active_only=True)
        reservations = self.store.list_reservations(
            restaurant_id=restaurant_id,
            reservation_date=day,
            statuses=BLOCKING_RESERVATION_STATUSES,
        )
        booked = group_booked_windows(reservations, restaurant)

        available, occupied = [], []
        for table in tables:
            if any(window.overlaps(other) for other in booked.get(table.id, ())):
                occupied.append(table)
            else:
                available.append(table)

        return TableOccupancy(restaurant=restaurant, available_tables=available, occupied_tables=occupied)
