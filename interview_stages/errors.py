"""Error taxonomy for the interview stage protocol."""
from __future__ import annotations


class InterviewStageError(Exception):
    """Base error carrying the HTTP status and machine code used at the API boundary."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StageValidationError(InterviewStageError):
    """Missing or invalid stage order, action or payload."""

    status_code = 400
    code = "validation_error"


class NotFoundError(InterviewStageError):
    status_code = 404
    code = "not_found"


class SessionStateError(InterviewStageError):
    """Operation conflicts with the stored session state (closed session, evaluated stage)."""

    status_code = 409
    code = "conflict"


class ExternalServiceError(InterviewStageError):
    status_code = 502
    code = "external_service_error"


class RateLimitedError(ExternalServiceError):
    status_code = 429
    code = "rate_limited"


class QuotaExhaustedError(ExternalServiceError):
    status_code = 402
    code = "quota_exhausted"


class PersistenceError(InterviewStageError):
    status_code = 500
    code = "persistence_error"


USER_MESSAGES = {
    RateLimitedError: "Too many requests to the AI service. Please wait a moment and try again.",
    QuotaExhaustedError: "AI service credits are exhausted. Please contact support.",
    ExternalServiceError: "The AI service is unavailable right now. Please try again.",
}


def user_message(exc: InterviewStageError) -> str:
    """Return the user-facing message for ``exc``."""

    for error_type, text in USER_MESSAGES.items():
        if type(exc) is error_type:
            return text
    return exc.message


__all__ = [
    "InterviewStageError",
    "StageValidationError",
    "NotFoundError",
    "SessionStateError",
    "ExternalServiceError",
    "RateLimitedError",
    "QuotaExhaustedError",
    "PersistenceError",
    "user_message",
]
