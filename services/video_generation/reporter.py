"""
Maps generation outcomes and service errors to HTTP status codes and
uniform JSON bodies.

Every body carries `success` and `retryable`; retryable bodies also carry
`retryAfter` so the caller knows when to try again.
"""

import logging
from typing import Any, Optional

from pydantic import BaseModel

from core.errors import RequestValidationError, VideoServiceError

from .classifier import DEFAULT_LOADING_RETRY_AFTER
from .models import Exhausted, GenerationOutcome, Rejected, Retryable, Success
from .validator import validation_message

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "Video generation is temporarily unavailable. Please try again."

Report = tuple[int, dict[str, Any]]


class GenerateVideoResponse(BaseModel):
    """Uniform response body, whichever provider answered."""
    success: bool
    videoUrl: Optional[str] = None
    model: Optional[str] = None
    error: Optional[str] = None
    errorCode: Optional[str] = None
    retryAfter: Optional[int] = None
    retryable: bool = False
    attemptedProviders: Optional[list[str]] = None
    details: Optional[list[str]] = None

    def to_body(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class OutcomeReporter:
    """Builds (status_code, body) pairs for the HTTP layer and the CLI."""

    def __init__(self, exhausted_retry_after: int = DEFAULT_LOADING_RETRY_AFTER):
        self.exhausted_retry_after = exhausted_retry_after

    def report(self, outcome: GenerationOutcome) -> Report:
        if isinstance(outcome, Success):
            return 200, GenerateVideoResponse(
                success=True,
                videoUrl=outcome.encoded_video,
                model=outcome.provider_name,
            ).to_body()

        if isinstance(outcome, Retryable):
            return 503, GenerateVideoResponse(
                success=False,
                error=outcome.reason,
                retryAfter=outcome.retry_after_seconds,
                retryable=True,
            ).to_body()

        if isinstance(outcome, Exhausted):
            return 503, GenerateVideoResponse(
                success=False,
                error=UNAVAILABLE_MESSAGE,
                retryAfter=self.exhausted_retry_after,
                retryable=True,
                attemptedProviders=list(outcome.attempted_providers),
                details=list(outcome.last_errors),
            ).to_body()

        if isinstance(outcome, Rejected):
            return 400, GenerateVideoResponse(
                success=False,
                error=validation_message(outcome.reason),
                errorCode=outcome.reason.value,
            ).to_body()

        raise TypeError(f"Unknown generation outcome: {type(outcome).__name__}")

    def report_error(self, error: Exception) -> Report:
        """Report an error raised outside the provider chain."""
        if isinstance(error, RequestValidationError):
            return self.report(Rejected(reason=error.kind))

        if isinstance(error, VideoServiceError):
            return error.status_code, GenerateVideoResponse(
                success=False,
                error=str(error),
                errorCode=error.error_code,
                retryable=error.retryable,
            ).to_body()

        # Never expose raw exception text for unexpected failures
        logger.error(f"Unhandled {type(error).__name__} reported as internal error")
        return 500, GenerateVideoResponse(
            success=False,
            error="Internal server error during video generation",
            errorCode="INTERNAL_ERROR",
        ).to_body()
