"""
Error taxonomy for the video generation service.

Every error carries the HTTP status it maps to and whether the caller may
retry the same request unchanged.
"""

from enum import Enum
from typing import Optional


class ValidationErrorKind(str, Enum):
    """Why an inbound request was rejected before reaching any provider."""
    MISSING_IMAGE = "MissingImage"
    UNKNOWN_STYLE = "UnknownStyle"
    INVALID_PROMPT = "InvalidPrompt"
    MALFORMED_BODY = "MalformedBody"


class VideoServiceError(Exception):
    """Base class for all service errors."""

    status_code: int = 500
    # Reported as `retryable` in the error body. Subclasses for transient
    # conditions set it to True; none of the current ones are transient.
    retryable: bool = False

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.error_code = error_code or type(self).__name__
        super().__init__(message)


class RequestValidationError(VideoServiceError):
    """Bad or missing input. Never reaches the network."""

    status_code = 400

    def __init__(self, kind: ValidationErrorKind, message: Optional[str] = None):
        self.kind = kind
        super().__init__(message or kind.value, error_code=kind.value)


class ConfigurationError(VideoServiceError):
    """Required configuration (e.g. the provider credential) is missing or invalid."""

    status_code = 500


class ProviderCallError(VideoServiceError):
    """
    A single provider could not be reached or timed out.

    Recorded by the provider chain as a failed attempt. It never reaches the
    reporter, so it has no status of its own.
    """

    def __init__(self, message: str, error_code: Optional[str] = None, provider: Optional[str] = None):
        self.provider = provider
        super().__init__(message, error_code=error_code)


class InternalError(VideoServiceError):
    """Unexpected failure anywhere in the pipeline. Message is safe to expose."""

    status_code = 500

    def __init__(self, message: str = "Internal server error during video generation"):
        super().__init__(message, error_code="INTERNAL_ERROR")
