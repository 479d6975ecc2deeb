"""
Configuration management for Image Animator.

Centralizes all configuration including:
- Inference API credentials and endpoints
- Per-call and per-request time limits
- Model-loading retry behaviour
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .errors import ConfigurationError


class LoadingPolicy(str, Enum):
    """What the provider chain does when a provider reports its model is loading."""
    ABORT = "abort"        # Stop and ask the caller to retry the whole request
    CONTINUE = "continue"  # Try the remaining providers before asking for a retry


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _env_loading_policy() -> LoadingPolicy:
    raw = os.getenv("LOADING_POLICY", LoadingPolicy.ABORT.value).strip().lower()
    try:
        return LoadingPolicy(raw)
    except ValueError:
        raise ConfigurationError(
            f"LOADING_POLICY must be one of {[p.value for p in LoadingPolicy]}, got {raw!r}"
        )


@dataclass
class APIConfig:
    """API configuration for the inference providers."""

    # Hugging Face serverless inference (hosts every provider in the chain)
    huggingface_api_key: str = field(default_factory=lambda: os.getenv("HUGGINGFACE_API_KEY", ""))
    huggingface_api_base: str = field(
        default_factory=lambda: os.getenv(
            "HUGGINGFACE_API_BASE", "https://api-inference.huggingface.co/models"
        ).rstrip("/")
    )


@dataclass
class GenerationConfig:
    """Time limits and retry hints for a single generation request."""
    provider_timeout_seconds: int = field(
        default_factory=lambda: _env_int("PROVIDER_TIMEOUT_SECONDS", 120)
    )
    request_deadline_seconds: int = field(
        default_factory=lambda: _env_int("REQUEST_DEADLINE_SECONDS", 300)
    )
    # Suggested wait when a provider says its model is warming up
    loading_retry_after_seconds: int = field(
        default_factory=lambda: _env_int("MODEL_LOADING_RETRY_AFTER", 30)
    )
    loading_policy: LoadingPolicy = field(default_factory=_env_loading_policy)


@dataclass
class Config:
    """Main configuration class."""

    api: APIConfig = field(default_factory=APIConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls()

    def require_api_key(self) -> str:
        """Return the inference credential or raise ConfigurationError."""
        if not self.api.huggingface_api_key:
            raise ConfigurationError("Hugging Face API key not configured")
        return self.api.huggingface_api_key

    def validate(self) -> list[str]:
        """Validate configuration and return list of issues."""
        issues = []

        if not self.api.huggingface_api_key:
            issues.append("HUGGINGFACE_API_KEY not configured")

        if self.generation.provider_timeout_seconds <= 0:
            issues.append("PROVIDER_TIMEOUT_SECONDS must be positive")

        if self.generation.request_deadline_seconds < self.generation.provider_timeout_seconds:
            issues.append(
                "REQUEST_DEADLINE_SECONDS is shorter than PROVIDER_TIMEOUT_SECONDS; "
                "only the first provider can ever be attempted"
            )

        if self.generation.loading_retry_after_seconds <= 0:
            issues.append("MODEL_LOADING_RETRY_AFTER must be positive")

        return issues


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reload_config():
    """Reload configuration from environment."""
    global _config
    _config = Config.from_env()
