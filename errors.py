"""
Domain Errors
Exceptions raised by services and rendered by the API layer
"""

from typing import Optional


class CareLedgerError(Exception):
    """Base class for errors the API reports to the caller"""

    status_code: int = 500

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(CareLedgerError):
    """Malformed or out-of-range input"""
    status_code = 422


class NotFoundError(CareLedgerError):
    """Referenced record does not exist (or is not visible to the actor)"""
    status_code = 404


class AccessDeniedError(CareLedgerError):
    """Access Guard rejection"""
    status_code = 403


class ConflictError(CareLedgerError):
    """Write collided with an existing record"""
    status_code = 409


class InternalError(CareLedgerError):
    """Record store unavailable or aggregation failure"""
    status_code = 503


__all__ = [
    "CareLedgerError",
    "ValidationError",
    "NotFoundError",
    "AccessDeniedError",
    "ConflictError",
    "InternalError",
]
