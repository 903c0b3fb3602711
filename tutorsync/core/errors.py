"""Exceptions raised by tutor-sync."""

from __future__ import annotations


class TutorSyncError(Exception):
    """Base class for tutor-sync errors."""


class ApiError(TutorSyncError):
    """
    A remote call failed.

    Raised for transport failures, non-2xx responses and bodies that do
    not decode into the expected model. ``retryable`` is true for
    transport failures (no status) and 5xx responses; a 4xx will fail the
    same way again, so it is not retried.
    """

    def __init__(self, message: str, status_code: int | None = None, retryable: bool | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        if retryable is None:
            retryable = status_code is None or status_code >= 500
        self.retryable = retryable

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


def is_retryable(exc: BaseException) -> bool:
    """Retry predicate for remote calls: only retryable ApiErrors."""
    return isinstance(exc, ApiError) and exc.retryable
