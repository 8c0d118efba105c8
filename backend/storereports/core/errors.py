"""
Error taxonomy for the report engine.

Services and the engine raise these; the HTTP layer turns them into the
`{"error": {...}, "meta": {...}}` envelope with the matching status code.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from storereports.core.config import API_VERSION


def build_meta() -> dict:  # server-authored metadata with an ISO-8601 UTC timestamp
    now_utc = datetime.now(timezone.utc)
    ts = now_utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return {"version": API_VERSION, "ts": ts}


class ReportEngineError(Exception):
    status_code = 400
    default_code = "REPORT_ENGINE_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return {"error": error, "meta": build_meta()}


class ValidationFailed(ReportEngineError):
    """Missing required answer or malformed template draft. Recoverable."""

    status_code = 400
    default_code = "VALIDATION_FAILED"


class AuthoringError(ValidationFailed):
    default_code = "INVALID_DRAFT"


class NavigationError(ReportEngineError):
    """Transition not legal from the session's current state."""

    status_code = 409
    default_code = "ILLEGAL_TRANSITION"


class NotFound(ReportEngineError):
    status_code = 404
    default_code = "NOT_FOUND"


class AuthorizationError(ReportEngineError):
    status_code = 401
    default_code = "NO_ACTING_USER"


class InUseError(ReportEngineError):
    status_code = 409
    default_code = "IN_USE"


class StorageError(ReportEngineError):
    """Persistence call failed; nothing was committed."""

    status_code = 503
    default_code = "STORAGE_ERROR"


class SummaryUnavailable(ReportEngineError):
    status_code = 502
    default_code = "SUMMARY_UNAVAILABLE"
