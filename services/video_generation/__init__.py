"""
Video Generation Service

Turns a hosted still image into a short animated video by trying hosted
image-to-video models in priority order:
- Stable Video Diffusion (image-conditioned, style sets motion strength)
- AnimateDiff (prompt-conditioned, style sets the prompt suffix)

The first provider that returns a video wins; a warming-up model produces a
retry hint instead of an error.
"""

from .chain import ProviderChain
from .encoder import ResultEncoder
from .models import (
    AnimationStyle,
    Exhausted,
    GenerationOutcome,
    GenerationRequest,
    Rejected,
    Retryable,
    Success,
)
from .providers import DEFAULT_PROVIDER_SPECS, HuggingFaceProvider, ProviderSpec
from .reporter import OutcomeReporter
from .service import VideoGenerationService
from .validator import GenerateVideoRequest

__all__ = [
    "ProviderChain",
    "ResultEncoder",
    "AnimationStyle",
    "Exhausted",
    "GenerationOutcome",
    "GenerationRequest",
    "Rejected",
    "Retryable",
    "Success",
    "DEFAULT_PROVIDER_SPECS",
    "HuggingFaceProvider",
    "ProviderSpec",
    "OutcomeReporter",
    "VideoGenerationService",
    "GenerateVideoRequest",
]
