"""
HTTP surface for the video generation service.

Exposes the FastAPI application used by `python main.py server`.
"""

from .server import app, get_service

__all__ = ["app", "get_service"]
