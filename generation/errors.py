"""
Error taxonomy shared by the template store, the generation pipeline and
the HTTP layer.

Every error carries a stable machine-readable code and an HTTP status so
the API boundary can answer with {"error": ..., "details": ...} instead of
a stack trace.
"""

from typing import Any, Optional


class ReviewError(Exception):
    """Base class for every classified failure."""

    status_code = 500
    error = "internal_error"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict:
        return {
            "error": self.error,
            "details": self.details if self.details is not None else self.message,
        }


class ValidationError(ReviewError):
    """Malformed or missing caller input."""

    status_code = 400
    error = "validation_error"


class PromptTooLarge(ValidationError):
    """Answers alone do not fit the prompt budget."""


class NotFound(ReviewError):
    status_code = 404
    error = "not_found"


class VersionNotFound(NotFound):
    error = "version_not_found"


class Conflict(ReviewError):
    """Optimistic-concurrency collision; re-read and retry."""

    status_code = 409
    error = "conflict"


class ServiceUnavailable(ReviewError):
    """Database or model service unreachable or not configured."""

    status_code = 503
    error = "service_unavailable"


class ModelOutputError(ReviewError):
    """The model answered, but not with the structure that was asked for."""

    status_code = 502
    error = "model_output_error"


class ModelServiceError(ReviewError):
    """The model service rejected the request (non-transport failure)."""

    status_code = 502
    error = "model_error"


class ModelTimeout(ReviewError):
    status_code = 504
    error = "timeout"
