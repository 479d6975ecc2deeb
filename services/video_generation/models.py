"""
Data model for image-to-video generation.

Requests, style profiles, raw and classified provider responses, and the
outcome returned to the caller.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Mapping, Optional, Union

from core.errors import ValidationErrorKind

if TYPE_CHECKING:
    from .encoder import ResultEncoder


class AnimationStyle(str, Enum):
    """Animation styles a caller can request."""
    SMOOTH = "smooth"
    DYNAMIC = "dynamic"
    CINEMATIC = "cinematic"


@dataclass(frozen=True)
class StyleProfile:
    """How a style is expressed to providers."""
    prompt_suffix: str
    motion_strength: int  # Provider-side motion intensity (SVD motion_bucket_id)


STYLE_PROFILES: Mapping[AnimationStyle, StyleProfile] = {
    AnimationStyle.SMOOTH: StyleProfile(
        prompt_suffix="smooth flowing motion, gentle movement, soft transitions",
        motion_strength=100,
    ),
    AnimationStyle.DYNAMIC: StyleProfile(
        prompt_suffix="dynamic motion, energetic movement, vibrant action",
        motion_strength=180,
    ),
    AnimationStyle.CINEMATIC: StyleProfile(
        prompt_suffix="cinematic motion, dramatic movement, film-like quality",
        motion_strength=120,
    ),
}


def get_style_profile(style: AnimationStyle) -> StyleProfile:
    return STYLE_PROFILES[style]


@dataclass(frozen=True)
class GenerationRequest:
    """A validated request to animate one hosted image."""
    image_url: str
    style: AnimationStyle
    prompt: Optional[str] = None

    # Only used to correlate log lines
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])


@dataclass(frozen=True)
class RawProviderResponse:
    """What a provider sent back, before any interpretation."""
    status_code: int
    content: bytes
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


# ---------------------------------------------------------------------------
# Classified provider responses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BinarySuccess:
    payload: bytes


@dataclass(frozen=True)
class StructuredError:
    message: str


@dataclass(frozen=True)
class ModelLoading:
    retry_after_seconds: int


@dataclass(frozen=True)
class OtherFailure:
    message: str


ClassifiedResponse = Union[BinarySuccess, StructuredError, ModelLoading, OtherFailure]


# ---------------------------------------------------------------------------
# Generation outcomes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Success:
    """A provider produced a video. Build with from_classified()."""
    encoded_video: str
    provider_name: str

    @classmethod
    def from_classified(
        cls,
        response: BinarySuccess,
        provider_name: str,
        encoder: "ResultEncoder",
    ) -> "Success":
        if not isinstance(response, BinarySuccess):
            raise TypeError(
                f"Success requires a BinarySuccess response, got {type(response).__name__}"
            )
        return cls(encoded_video=encoder.encode(response.payload), provider_name=provider_name)


@dataclass(frozen=True)
class Retryable:
    """A transient condition; the caller should retry the same request later."""
    reason: str
    retry_after_seconds: int


@dataclass(frozen=True)
class Exhausted:
    """Every provider was tried and none produced a video."""
    attempted_providers: tuple[str, ...]
    last_errors: tuple[str, ...]


@dataclass(frozen=True)
class Rejected:
    """The request never reached a provider."""
    reason: ValidationErrorKind


GenerationOutcome = Union[Success, Retryable, Exhausted, Rejected]
