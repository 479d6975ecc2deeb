"""
Image Animator Core Components

Provides foundational infrastructure shared by the service and the CLI:
- Environment-driven configuration
- Error taxonomy with HTTP status mapping
"""

from .config import Config, LoadingPolicy, get_config, reload_config
from .errors import (
    ConfigurationError,
    InternalError,
    ProviderCallError,
    RequestValidationError,
    ValidationErrorKind,
    VideoServiceError,
)

__all__ = [
    "Config",
    "LoadingPolicy",
    "get_config",
    "reload_config",
    "ConfigurationError",
    "InternalError",
    "ProviderCallError",
    "RequestValidationError",
    "ValidationErrorKind",
    "VideoServiceError",
]
