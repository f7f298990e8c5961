"""Waitlist endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from apps.api.deps import Services, get_services
from domain.models import WaitlistCreate, WaitlistRecord, WaitlistStatusUpdate


router = APIRouter(tags=["waitlist"])


@router.post(
    "/restaurants/{restaurant_id}/waitlist",
    response_model=WaitlistRecord,
    status_code=status.HTTP_201_CREATED,
)
def add_to_waitlist(
    restaurant_id: int,
    data: WaitlistCreate,
    services: Services = Depends(get_services)
):
    return services.waitlist.add_to_waitlist(restaurant_id, data)


@router.get("/restaurants/{restaurant_id}/waitlist", response_model=List[WaitlistRecord])
def get_waitlist(
    restaurant_id: int,
    waitlist_date: Optional[str] = Query(None, alias="date", description="Defaults to today"),
    services: Services = Depends(get_services)
):
    return services.waitlist.get_waitlist(restaurant_id, waitlist_date)


@router.patch("/waitlist/{entry_id}/status", response_model=WaitlistRecord)
def update_waitlist_status(
    entry_id: int,
    data: WaitlistStatusUpdate,
    services: Services = Depends(get_services)
):
    return services.waitlist.update_status(entry_id, data.status)


@router.delete("/waitlist/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_from_waitlist(entry_id: int, services: Services = Depends(get_services)):
    services.waitlist.remove_from_waitlist(entry_id)
