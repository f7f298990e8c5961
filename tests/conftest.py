"""Pytest configuration and fixtures for seating engine tests."""
import pytest
from datetime import date, datetime
from unittest.mock import MagicMock

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from apps.api.deps import build_services
from core.booking_rules import BookingRules
from core.utils_datetime import TIMEZONE
from db.session import drop_db, init_db
from db.store import Store
from domain.enums import ReservationStatus
from domain.models import RestaurantCreate, TableCreate, WaitlistCreate
from services.cache import MemoryCache
from services.notification_service import NotificationService


FIXED_NOW = TIMEZONE.localize(datetime(2030, 3, 15, 9, 0))
TODAY = FIXED_NOW.date()
TOMORROW = date(2030, 3, 16)


@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    drop_db(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """Create a database session for testing."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def store(db_session):
    return Store(db_session)


@pytest.fixture(scope="function")
def cache():
    return MemoryCache()


@pytest.fixture(scope="function")
def notifier():
    """Notifier double recording every call."""
    mock = MagicMock(spec=NotificationService)
    mock.send_confirmation.return_value = True
    mock.notify_waitlist_availability.return_value = True
    return mock


@pytest.fixture(scope="function")
def rules():
    return BookingRules()


@pytest.fixture(scope="function")
def clock():
    """Fixed "now": 2030-03-15 09:00 in the restaurant timezone."""
    return lambda: FIXED_NOW


@pytest.fixture(scope="function")
def services(store, cache, notifier, rules, clock):
    return build_services(store, cache, notifier, rules, clock)


@pytest.fixture(scope="function")
def make_restaurant(services):
    """Factory fixture to create a restaurant."""
    def _create(**kwargs):
        data = {
            "name": "Tallie Bistro",
            "opening_time": "10:00",
            "closing_time": "22:00",
            "total_tables": 10,
        }
        data.update(kwargs)
        return services.restaurants.create_restaurant(RestaurantCreate(**data))
    return _create


@pytest.fixture(scope="function")
def restaurant(make_restaurant):
    """Restaurant open 10:00-22:00."""
    return make_restaurant()


@pytest.fixture(scope="function")
def make_table(services):
    """Factory fixture to add a table to a restaurant."""
    def _create(restaurant, table_number="T1", capacity=4, location=None, is_active=True):
        return services.restaurants.add_table(
            restaurant.id,
            TableCreate(
                table_number=table_number,
                capacity=capacity,
                location=location,
                is_active=is_active,
            ),
        )
    return _create


@pytest.fixture(scope="function")
def book(store):
    """Factory fixture writing a reservation straight through the store."""
    counter = {"n": 0}

    def _create(restaurant, table, start, end, reservation_date=TOMORROW,
                party_size=2, status=ReservationStatus.CONFIRMED, duration=None):
        counter["n"] += 1
        start_time = datetime.strptime(start, "%H:%M").time()
        end_time = datetime.strptime(end, "%H:%M").time()
        return store.create_reservation_if_free({
            "restaurant_id": restaurant.id,
            "table_id": table.id,
            "customer_name": f"Guest {counter['n']}",
            "customer_phone": "+2348000000000",
            "party_size": party_size,
            "reservation_date": reservation_date,
            "start_time": start_time,
            "end_time": end_time,
            "duration": duration or 120,
            "status": status.value,
            "confirmation_code": f"TEST{counter['n']:04d}",
        })
    return _create


@pytest.fixture(scope="function")
def waitlist_data():
    """Factory for waitlist requests."""
    def _create(name="Ada Obi", party_size=2, **kwargs):
        return WaitlistCreate(
            customer_name=name,
            customer_phone="+2348011111111",
            party_size=party_size,
            **kwargs,
        )
    return _create
