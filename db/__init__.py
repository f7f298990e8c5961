"""Database layer for the seating engine."""

from .base import Base, TimestampMixin
from .models_sqlalchemy import Reservation, Restaurant, RestaurantTable, WaitlistEntry
from .session import (
    engine,
    SessionLocal,
    create_engine,
    init_db,
    drop_db,
    close_db,
)
from .store import Store

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Models
    "Restaurant",
    "RestaurantTable",
    "Reservation",
    "WaitlistEntry",
    # Session
    "engine",
    "SessionLocal",
    "create_engine",
    "init_db",
    "drop_db",
    "close_db",
    # Store
    "Store",
]
