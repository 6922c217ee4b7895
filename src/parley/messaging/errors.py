"""Parley exception hierarchy.

All Parley exceptions inherit from :class:`ParleyError`.  Each carries
the HTTP status and short error code the request layer renders.
"""

from __future__ import annotations


class ParleyError(Exception):
    """Base exception for all Parley errors."""

    status_code: int = 500
    code: str = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ParleyError):
    """Raised when input is malformed or out of range."""

    status_code = 400
    code = "validation_error"


class NotFoundError(ParleyError):
    """Raised when a referenced user, message, item or payment does not exist."""

    status_code = 404
    code = "not_found"


class ForbiddenError(NotFoundError):
    """Raised when the actor has no rights over an existing entity.

    Rendered exactly like :class:`NotFoundError` so callers cannot discover
    other users' messages.
    """


class InvalidOperationError(ParleyError):
    """Raised for requests that are well-formed but not allowed, e.g. messaging yourself."""

    status_code = 400
    code = "invalid_operation"


class QuotaExceededError(ParleyError):
    """Raised when a free account is at its item limit."""

    status_code = 403
    code = "quota_exceeded"


class TransportUnavailableError(ParleyError):
    """Raised when no live channel layer is available for fan-out.

    Never reaches a client: the dispatcher logs it and drops the event.
    """

    status_code = 503
    code = "transport_unavailable"
