"""SQLAlchemy models for the seating engine database tables."""

from datetime import datetime, date, time
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin
from domain.enums import ReservationStatus, WaitlistStatus


class Restaurant(Base, TimestampMixin):
    """Restaurant table model."""

    __tablename__ = "restaurants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    opening_time: Mapped[time] = mapped_column(Time, nullable=False)

    closing_time: Mapped[time] = mapped_column(Time, nullable=False)

    total_tables: Mapped[int] = mapped_column(Integer, nullable=False)

    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    tables: Mapped[List["RestaurantTable"]] = relationship(
        back_populates="restaurant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        """String representation of Restaurant."""
        return (
            f"<Restaurant(id={self.id}, name='{self.name}', "
            f"hours={self.opening_time}-{self.closing_time})>"
        )


class RestaurantTable(Base, TimestampMixin):
    """Dining table model."""

    __tablename__ = "tables"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    table_number: Mapped[str] = mapped_column(String(20), nullable=False)

    capacity: Mapped[int] = mapped_column(Integer, nullable=False)

    location: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    restaurant: Mapped[Restaurant] = relationship(back_populates="tables")

    __table_args__ = (
        UniqueConstraint("restaurant_id", "table_number", name="uq_tables_restaurant_number"),
        CheckConstraint("capacity >= 1", name="capacity_positive"),
        Index("ix_tables_restaurant_capacity", "restaurant_id", "capacity"),
    )

    def __repr__(self) -> str:
        """String representation of RestaurantTable."""
        return (
            f"<RestaurantTable(id={self.id}, number='{self.table_number}', "
            f"capacity={self.capacity})>"
        )


class Reservation(Base, TimestampMixin):
    """Reservation table model."""

    __tablename__ = "reservations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Referenced by id only; tables may be removed independently
    table_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)

    customer_phone: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    customer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    party_size: Mapped[int] = mapped_column(Integer, nullable=False)

    reservation_date: Mapped[date] = mapped_column(Date, nullable=False)

    start_time: Mapped[time] = mapped_column(Time, nullable=False)

    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    duration: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReservationStatus.PENDING.value,
        index=True,
    )

    special_requests: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    confirmation_code: Mapped[str] = mapped_column(String(8), nullable=False, unique=True)

    __table_args__ = (
        Index("ix_reservations_restaurant_date", "restaurant_id", "reservation_date"),
        Index("ix_reservations_table_date", "table_id", "reservation_date"),
    )

    def __repr__(self) -> str:
        """String representation of Reservation."""
        return (
            f"<Reservation(id={self.id}, code='{self.confirmation_code}', "
            f"date={self.reservation_date}, {self.start_time}-{self.end_time}, "
            f"table={self.table_id}, status='{self.status}')>"
        )


class WaitlistEntry(Base, TimestampMixin):
    """Waitlist entry model."""

    __tablename__ = "waitlists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
    )

    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)

    customer_phone: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    customer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    party_size: Mapped[int] = mapped_column(Integer, nullable=False)

    waitlist_date: Mapped[date] = mapped_column(Date, nullable=False)

    preferred_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=WaitlistStatus.WAITING.value,
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    notified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_waitlists_restaurant_date_status", "restaurant_id", "waitlist_date", "status"),
    )

    def __repr__(self) -> str:
        """String representation of WaitlistEntry."""
        return (
            f"<WaitlistEntry(id={self.id}, name='{self.customer_name}', "
            f"position={self.position}, status='{self.status}')>"
        )
