"""Business error taxonomy shared by services and the API layer."""
from typing import Any, Dict, List, Optional


class ReservationSystemError(Exception):
    """Base class for recoverable business errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message}


class NotFoundError(ReservationSystemError):
    """Raised when a restaurant, table, reservation or waitlist entry is absent."""

    status_code = 404


class BadRequestError(ReservationSystemError):
    """Raised for malformed or out-of-policy input."""

    status_code = 400


class ParseError(BadRequestError, ValueError):
    """Raised when a date or time string cannot be parsed."""


class ConflictError(ReservationSystemError):
    """Raised when no table can hold the requested window."""

    status_code = 409

    def __init__(self, message: str, alternatives: Optional[List[Any]] = None):
        super().__init__(message)
        self.alternatives = list(alternatives or [])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.alternatives:
            data["alternatives"] = [
                alt.model_dump() if hasattr(alt, "model_dump") else alt
                for alt in self.alternatives
            ]
        return data


class BookingCollisionError(ConflictError):
    """Raised by the store when a concurrent booking took the table first."""
