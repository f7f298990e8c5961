"""Availability endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from apps.api.deps import Services, get_services
from domain.models import AvailabilityResponse, TableSuggestion, TimeSlot


router = APIRouter(prefix="/restaurants/{restaurant_id}", tags=["availability"])


@router.get("/availability", response_model=AvailabilityResponse)
def check_availability(
    restaurant_id: int,
    reservation_date: str = Query(..., alias="date", description="Service date (YYYY-MM-DD)"),
    party_size: int = Query(..., ge=1, le=50),
    duration: Optional[int] = Query(None, ge=15, le=720, description="Length in minutes"),
    services: Services = Depends(get_services)
):
    """
    Open start times for a party on a date.

    Args:
        restaurant_id: Restaurant ID
        reservation_date: Service date
        party_size: Number of guests
        duration: Reservation length (configured default when omitted)

    Returns:
        AvailabilityResponse: open slots and up to three table suggestions
    """
    return services.availability.check_availability(restaurant_id, reservation_date, party_size, duration)


@router.get("/availability/alternatives", response_model=List[TimeSlot])
def find_alternative_slots(
    restaurant_id: int,
    reservation_date: str = Query(..., alias="date"),
    party_size: int = Query(..., ge=1, le=50),
    preferred_time: str = Query(..., alias="time"),
    duration: Optional[int] = Query(None, ge=15, le=720),
    services: Services = Depends(get_services)
):
    """Up to five open slots closest to the preferred time."""
    return services.availability.find_alternative_slots(
        restaurant_id, reservation_date, party_size, preferred_time, duration
    )


@router.get("/suggestions", response_model=List[TableSuggestion])
def suggest_tables(
    restaurant_id: int,
    reservation_date: str = Query(..., alias="date"),
    party_size: int = Query(..., ge=1, le=50),
    start_time: str = Query(..., alias="time"),
    duration: Optional[int] = Query(None, ge=15, le=720),
    services: Services = Depends(get_services)
):
    """Ranked tables for a party and window."""
    return services.seating.suggest_optimal_tables(
        restaurant_id,
        party_size,
        reservation_date,
        start_time,
        duration or services.availability.rules.default_duration_minutes,
    )
