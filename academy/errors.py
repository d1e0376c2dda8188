"""
Exception hierarchy for the academy backend.

Every AcademyError carries a short, user-readable message and the HTTP status
it maps to. Full details (upstream bodies, database errors) are logged where
the error is raised and never placed in the message.
"""

from typing import Optional


class AcademyError(Exception):
    """Base class for errors that are rendered as {"error": message}."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class UnauthenticatedError(AcademyError):
    status_code = 401


class ForbiddenError(AcademyError):
    status_code = 403


class InvalidRequestError(AcademyError):
    status_code = 400


class NotFoundError(AcademyError):
    status_code = 404


class ConflictError(AcademyError):
    status_code = 409


class MisconfiguredError(AcademyError):
    """A required server-side setting (API key, Supabase credentials) is missing."""

    status_code = 500


class StoreError(AcademyError):
    """A Supabase read or write failed."""

    status_code = 500

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class DuplicateRecordError(StoreError):
    """Insert rejected by a unique constraint (Postgres 23505)."""

    status_code = 409


class InternalServerError(AcademyError):
    """An unexpected failure; details are logged, never returned."""

    status_code = 500


class YouTubeAPIError(AcademyError):
    """A YouTube Data API call did not produce a usable response."""

    status_code = 502

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        reason: str = "unreachable",
    ):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.reason = reason

    @property
    def summary(self) -> str:
        """Short form used in per-playlist error strings: the status, else the reason."""
        if self.upstream_status is not None:
            return str(self.upstream_status)
        return self.reason
