"""
Image Animator Services

- video_generation: Provider fallback chain for image-to-video models
- api: FastAPI HTTP endpoint
"""

from .video_generation import OutcomeReporter, VideoGenerationService

__all__ = [
    "OutcomeReporter",
    "VideoGenerationService",
]
