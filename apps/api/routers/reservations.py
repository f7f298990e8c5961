"""Reservation endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Query, status

from apps.api.deps import Services, get_services
from domain.models import ReservationCreate, ReservationRecord, ReservationUpdate


router = APIRouter(tags=["reservations"])


@router.post(
    "/restaurants/{restaurant_id}/reservations",
    response_model=ReservationRecord,
    status_code=status.HTTP_201_CREATED,
)
def create_reservation(
    restaurant_id: int,
    data: ReservationCreate,
    services: Services = Depends(get_services)
):
    """
    Book the best available table.

    Responds 409 with alternative slots (or waitlist guidance) when no
    table can hold the requested window.
    """
    return services.reservations.create_reservation(restaurant_id, data)


@router.get("/restaurants/{restaurant_id}/reservations", response_model=List[ReservationRecord])
def list_reservations(
    restaurant_id: int,
    reservation_date: str = Query(..., alias="date", description="Service date (YYYY-MM-DD)"),
    services: Services = Depends(get_services)
):
    return services.reservations.list_reservations(restaurant_id, reservation_date)


@router.get("/reservations/code/{confirmation_code}", response_model=ReservationRecord)
def get_reservation_by_code(confirmation_code: str, services: Services = Depends(get_services)):
    return services.reservations.get_reservation_by_code(confirmation_code)


@router.get("/reservations/{reservation_id}", response_model=ReservationRecord)
def get_reservation(reservation_id: int, services: Services = Depends(get_services)):
    return services.reservations.get_reservation(reservation_id)


@router.patch("/reservations/{reservation_id}", response_model=ReservationRecord)
def update_reservation(
    reservation_id: int,
    data: ReservationUpdate,
    services: Services = Depends(get_services)
):
    return services.reservations.update_reservation(reservation_id, data)


@router.post("/reservations/{reservation_id}/cancel", response_model=ReservationRecord)
def cancel_reservation(reservation_id: int, services: Services = Depends(get_services)):
    """Cancel a reservation; the freed table is offered to the waitlist."""
    return services.reservations.cancel_reservation(reservation_id)
