"""FastAPI dependencies: database session and per-request service wiring."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from core.booking_rules import BookingRules
from core.utils_datetime import get_current_datetime
from db.session import SessionLocal
from db.store import Store
from services.availability_service import AvailabilityService
from services.cache import Cache, build_cache
from services.notification_service import NotificationService
from services.reservation_service import ReservationService
from services.restaurant_service import RestaurantService
from services.seating_service import SeatingService
from services.waitlist_service import WaitlistService


def get_db() -> Generator[Session, None, None]:
    """
    Get database session.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache
def get_cache() -> Cache:
    return build_cache()


@lru_cache
def get_notifier() -> NotificationService:
    return NotificationService()


@lru_cache
def get_rules() -> BookingRules:
    return BookingRules.from_settings()


def get_clock():
    return get_current_datetime


@dataclass
class Services:
    """Services sharing one store for the duration of a request."""

    restaurants: RestaurantService
    availability: AvailabilityService
    seating: SeatingService
    reservations: ReservationService
    waitlist: WaitlistService


def build_services(
    store: Store,
    cache: Cache,
    notifier: NotificationService,
    rules: BookingRules,
    clock
) -> Services:
    """Wire the services around one store."""
    availability = AvailabilityService(store, cache, rules)
    seating = SeatingService(store)
    waitlist = WaitlistService(store, notifier, clock)
    reservations = ReservationService(
        store,
        cache,
        notifier,
        availability,
        seating,
        waitlist,
        rules=rules,
        clock=clock,
    )
    return Services(
        restaurants=RestaurantService(store, availability),
        availability=availability,
        seating=seating,
        reservations=reservations,
        waitlist=waitlist,
    )


def get_services(
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
    notifier: NotificationService = Depends(get_notifier),
    rules: BookingRules = Depends(get_rules),
    clock=Depends(get_clock),
) -> Services:
    return build_services(Store(db), cache, notifier, rules, clock)
