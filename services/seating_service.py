"""
Seating optimisation: table scoring, ranking and redistribution hints.

The scoring functions are pure and work on snapshots; ``SeatingService``
loads the snapshots for one restaurant and date up front and hands them in.
"""
import logging
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from core.errors import NotFoundError
from core.utils_datetime import DateLike, TimeLike, TimeWindow, add_minutes, parse_date
from db.store import Store
from domain.enums import BLOCKING_RESERVATION_STATUSES, ReservationStatus
from domain.models import (
    OptimizationReport,
    OptimizationSuggestion,
    ReservationRecord,
    RestaurantRecord,
    TableRecord,
    TableSuggestion,
)


logger = logging.getLogger(__name__)

BASE_SCORE = 100
PERFECT_FIT_BONUS = 50
OVERAGE_BONUS = {1: 30, 2: 20}
OVERAGE_PENALTY_PER_SEAT = 5
WINDOW_BONUS = 10
QUIET_BONUS = 5
BUSYNESS_PENALTY = 3
HIGHLY_RECOMMENDED_ABOVE = 120
RECOMMENDED_ABOVE = 100
REDISTRIBUTION_MIN_GAIN = 20


def score_table(
    table: TableRecord,
    party_size: int,
    window: TimeWindow,
    booked: Sequence[TimeWindow] = ()
) -> int:
    """
    Score how well a table suits a party for a window.

    Args:
        table: Candidate table
        party_size: Number of guests
        window: Requested window
        booked: Windows already held on this table for the date

    Returns:
        Score, where 0 means the table cannot be used
    """
    if table.capacity < party_size:
        return 0

    if any(window.overlaps(other) for other in booked):
        return 0

    score = BASE_SCORE

    overage = table.capacity - party_size
    if overage == 0:
        score += PERFECT_FIT_BONUS
    elif overage in OVERAGE_BONUS:
        score += OVERAGE_BONUS[overage]
    else:
        score -= overage * OVERAGE_PENALTY_PER_SEAT

    if table.location:
        location = table.location.lower()
        if "window" in location:
            score += WINDOW_BONUS
        if "quiet" in location:
            score += QUIET_BONUS

    # Prefer tables with fewer bookings that day
    score -= len(booked) * BUSYNESS_PENALTY

    return max(score, 0)


def generate_reason(table: TableRecord, party_size: int, score: int) -> str:
    """Human-readable explanation of a table's score."""
    reasons = []

    overage = table.capacity - party_size
    if overage == 0:
        reasons.append("Perfect fit for your party")
    elif overage == 1:
        reasons.append("Excellent fit with minimal extra space")
    elif overage == 2:
        reasons.append("Good fit with comfortable spacing")
    else:
        reasons.append(f"Accommodates {table.capacity} guests")

    if table.location:
        reasons.append(f"Located in {table.location}")

    if score > HIGHLY_RECOMMENDED_ABOVE:
        reasons.append("Highly recommended")
    elif score > RECOMMENDED_ABOVE:
        reasons.append("Recommended")

    return ", ".join(reasons)


def rank_tables(
    tables: Iterable[TableRecord],
    party_size: int,
    window: TimeWindow,
    booked_by_table: Mapping[int, Sequence[TimeWindow]]
) -> List[TableSuggestion]:
    """
    Score every table and keep the usable ones, best first.

    Ties keep the order the tables were given in.
    """
    suggestions = []
    for table in tables:
        score = score_table(table, party_size, window, booked_by_table.get(table.id, ()))
        if score > 0:
            suggestions.append(TableSuggestion(
                table_id=table.id,
                table_number=table.table_number,
                capacity=table.capacity,
                score=score,
                reason=generate_reason(table, party_size, score),
            ))

    suggestions.sort(key=lambda s: s.score, reverse=True)
    return suggestions


def group_booked_windows(
    reservations: Iterable[ReservationRecord],
    restaurant: RestaurantRecord,
    exclude_id: Optional[int] = None
) -> Dict[int, List[TimeWindow]]:
    """Windows of table-holding reservations, keyed by table id."""
    booked: Dict[int, List[TimeWindow]] = {}
    for reservation in reservations:
        if reservation.id == exclude_id or not reservation.status.holds_table:
            continue
        booked.setdefault(reservation.table_id, []).append(
            TimeWindow.from_times(
                reservation.start_time,
                reservation.end_time,
                restaurant.opening_time,
                restaurant.closing_time,
            )
        )
    return booked


class SeatingService:
    """Service that picks tables for parties."""

    def __init__(self, store: Store):
        self.store = store

    def _load(self, restaurant_id: int, reservation_date: date):
        restaurant = self.store.get_restaurant(restaurant_id)
        if restaurant is None:
            raise NotFoundError("Restaurant not found")
        tables = self.store.list_tables(restaurant_id, active_only=True)
        reservations = self.store.list_reservations(
            restaurant_id=restaurant_id,
            reservation_date=reservation_date,
            statuses=BLOCKING_RESERVATION_STATUSES,
        )
        return restaurant, tables, reservations

    def suggest_optimal_tables(
        self,
        restaurant_id: int,
        party_size: int,
        reservation_date: DateLike,
        start_time: TimeLike,
        duration: int,
        exclude_reservation_id: Optional[int] = None
    ) -> List[TableSuggestion]:
        """
        Rank the restaurant's active tables for a party and window.

        Args:
            restaurant_id: Restaurant to seat in
            party_size: Number of guests
            reservation_date: Service date
            start_time: Requested start
            duration: Length in minutes
            exclude_reservation_id: Reservation to ignore (when moving it)

        Returns:
            Suggestions ordered by descending score
        """
        reservation_date = parse_date(reservation_date)
        restaurant, tables, reservations = self._load(restaurant_id, reservation_date)

        window = TimeWindow.from_times(
            start_time,
            add_minutes(start_time, duration),
            restaurant.opening_time,
            restaurant.closing_time,
        )
        booked = group_booked_windows(reservations, restaurant, exclude_id=exclude_reservation_id)
        return rank_tables(tables, party_size, window, booked)

    def redistribute_reservations(self, restaurant_id: int, reservation_date: DateLike) -> OptimizationReport:
        """
        Find confirmed reservations that would score clearly better elsewhere.

        Nothing is moved; the report lists candidates whose best alternative
        beats the current table by more than the minimum gain.
        """
        reservation_date = parse_date(reservation_date)
        restaurant, tables, reservations = self._load(restaurant_id, reservation_date)
        tables_by_id = {t.id: t for t in tables}

        suggestions = []
        for reservation in reservations:
            if reservation.status != ReservationStatus.CONFIRMED:
                continue

            window = TimeWindow.from_times(
                reservation.start_time,
                reservation.end_time,
                restaurant.opening_time,
                restaurant.closing_time,
            )
            booked = group_booked_windows(reservations, restaurant, exclude_id=reservation.id)
            ranked = rank_tables(tables, reservation.party_size, window, booked)

            current_table = tables_by_id.get(reservation.table_id)
            current_score = (
                score_table(current_table, reservation.party_size, window,
                            booked.get(current_table.id, ()))
                if current_table else 0
            )

            if ranked and ranked[0].table_id != reservation.table_id \
                    and ranked[0].score > current_score + REDISTRIBUTION_MIN_GAIN:
                suggestions.append(OptimizationSuggestion(
                    reservation_id=reservation.id,
                    current_table=current_table.table_number if current_table else "",
                    suggested_table=ranked[0].table_number,
                    improvement=ranked[0].score - current_score,
                    reason=ranked[0].reason,
                ))

        logger.info(
            f"Seating review for restaurant {restaurant_id} on {reservation_date}: "
            f"{len(suggestions)} improvement(s)"
        )
        return OptimizationReport(optimized=len(suggestions), suggestions=suggestions)
