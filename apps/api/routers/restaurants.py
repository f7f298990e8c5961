"""Restaurant, table and seating endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from apps.api.deps import Services, get_services
from domain.models import (
    OptimizationReport,
    RestaurantCreate,
    RestaurantRecord,
    TableCreate,
    TableOccupancy,
    TableRecord,
    TableUpdate,
)


router = APIRouter(prefix="/restaurants", tags=["restaurants"])


@router.post("", response_model=RestaurantRecord, status_code=status.HTTP_201_CREATED)
def create_restaurant(data: RestaurantCreate, services: Services = Depends(get_services)):
    return services.restaurants.create_restaurant(data)


@router.get("", response_model=List[RestaurantRecord])
def list_restaurants(services: Services = Depends(get_services)):
    """List active restaurants ordered by name."""
    return services.restaurants.list_restaurants()


@router.get("/{restaurant_id}", response_model=RestaurantRecord)
def get_restaurant(restaurant_id: int, services: Services = Depends(get_services)):
    return services.restaurants.get_restaurant(restaurant_id)


@router.get("/{restaurant_id}/tables", response_model=List[TableRecord])
def list_tables(
    restaurant_id: int,
    active_only: bool = Query(False, description="Only return active tables"),
    services: Services = Depends(get_services)
):
    return services.restaurants.list_tables(restaurant_id, active_only=active_only)


@router.post("/{restaurant_id}/tables", response_model=TableRecord, status_code=status.HTTP_201_CREATED)
def add_table(restaurant_id: int, data: TableCreate, services: Services = Depends(get_services)):
    """
    Add a table to a restaurant.

    Table numbers are unique per restaurant and the restaurant's table
    limit is enforced.
    """
    return services.restaurants.add_table(restaurant_id, data)


@router.patch("/{restaurant_id}/tables/{table_id}", response_model=TableRecord)
def update_table(
    restaurant_id: int,
    table_id: int,
    data: TableUpdate,
    services: Services = Depends(get_services)
):
    return services.restaurants.update_table(restaurant_id, table_id, data)


@router.delete("/{restaurant_id}/tables/{table_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_table(restaurant_id: int, table_id: int, services: Services = Depends(get_services)):
    services.restaurants.delete_table(restaurant_id, table_id)


@router.get("/{restaurant_id}/occupancy", response_model=TableOccupancy)
def get_table_occupancy(
    restaurant_id: int,
    occupancy_date: str = Query(..., alias="date", description="Service date (YYYY-MM-DD)"),
    at_time: str = Query(..., alias="time", description="Time of day (HH:MM)"),
    duration: Optional[int] = Query(None, ge=1, le=720, description="Window length in minutes"),
    services: Services = Depends(get_services)
):
    """Tables free and occupied at a moment of the service day."""
    return services.restaurants.get_table_occupancy(restaurant_id, occupancy_date, at_time, duration)


@router.get("/{restaurant_id}/seating/optimize", response_model=OptimizationReport)
def optimize_seating(
    restaurant_id: int,
    reservation_date: str = Query(..., alias="date", description="Service date (YYYY-MM-DD)"),
    services: Services = Depends(get_services)
):
    """
    Suggest confirmed reservations that would sit better at another table.

    Nothing is moved.
    """
    return services.seating.redistribute_reservations(restaurant_id, reservation_date)
