# exceptions.py
"""
Error taxonomy for the occupancy tracker.

Every error carries a human readable message, a details dict that is merged
into the JSON error body, and the HTTP status the API layer answers with.
None of them are fatal: a failed operation leaves all state untouched.
"""

from typing import Any, Dict, Optional


class CourtTrackerError(Exception):
    """Base class for all tracker errors."""
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class NotFoundError(CourtTrackerError):
    status_code = 404


class ConflictError(CourtTrackerError):
    status_code = 400


class InvalidRequest(CourtTrackerError):
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else None)


class CourtNotFound(NotFoundError):
    def __init__(self, court_id: str):
        super().__init__("Court not found", {"court_id": court_id})


class CourtOccupied(ConflictError):
    def __init__(self, court_id: str):
        super().__init__("Court is already occupied", {"court_id": court_id})


class CourtNotOccupied(ConflictError):
    def __init__(self, court_id: str):
        super().__init__("Court is not occupied", {"court_id": court_id})


class UserAlreadyActive(ConflictError):
    """The user already holds a live session on another court."""
    status_code = 409

    def __init__(self, court_id: str, court_name: str):
        super().__init__(
            f"You are already checked in to {court_name}. Check out first.",
            {"court_id": court_id, "court_name": court_name},
        )
        self.court_id = court_id
        self.court_name = court_name


class InvariantViolation(CourtTrackerError):
    """Registry and session set disagree."""
    status_code = 500
