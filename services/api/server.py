"""
Image Animator HTTP Server

FastAPI server that provides:
- POST /generate-video - Animate a hosted image via the provider chain
- OPTIONS /generate-video - CORS preflight
- GET /health - Health check and provider configuration

Every response carries `Access-Control-Allow-Origin: *`.

Usage:
    # Start server
    python -m uvicorn services.api.server:app --host 0.0.0.0 --port 8765

    # Or via main.py
    python main.py server
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import ClientDisconnect

from core.errors import InternalError, VideoServiceError
from services.video_generation import OutcomeReporter, VideoGenerationService

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

# Logged for requests the client abandoned; the client never sees it
CLIENT_CLOSED_REQUEST = 499

# Global service instance (stateless apart from its pooled HTTP client)
_service: Optional[VideoGenerationService] = None


def get_service() -> VideoGenerationService:
    """Get or create the video generation service."""
    global _service
    if _service is None:
        _service = VideoGenerationService()
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting Image Animator server...")
    issues = get_service().config.validate()
    for issue in issues:
        logger.warning(f"Configuration issue: {issue}")

    yield

    logger.info("Shutting down Image Animator server...")
    if _service is not None:
        await _service.close()


app = FastAPI(
    title="Image Animator API",
    description="Animate still images through a fallback chain of hosted video models",
    version="1.0.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def add_cors_origin(request: Request, call_next):
    response = await call_next(request)
    response.headers["Access-Control-Allow-Origin"] = CORS_HEADERS["Access-Control-Allow-Origin"]
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render routing errors (404, 405) in the same shape as generation errors."""
    message = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
    return JSONResponse(
        {"success": False, "error": message, "retryable": False},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Image Animator",
        "version": "1.0.0",
        "endpoints": {
            "POST /generate-video": "Animate a hosted image",
            "OPTIONS /generate-video": "CORS preflight",
            "GET /health": "Health check",
        },
    }


@app.get("/health")
async def health(service: VideoGenerationService = Depends(get_service)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        **service.get_status(),
        "timestamp": datetime.utcnow().isoformat(),
    }


@app.options("/generate-video")
async def generate_video_preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


async def _wait_for_disconnect(request: Request) -> None:
    """Return once the client goes away. Call only after the body has been read."""
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


@app.post("/generate-video")
async def generate_video(
    request: Request,
    service: VideoGenerationService = Depends(get_service),
):
    """
    Animate a hosted image.

    Body: {"imageUrl": str, "prompt"?: str, "animationStyle": "smooth"|"dynamic"|"cinematic"}

    If the client disconnects mid-request the in-flight provider call is
    cancelled and no further providers are tried.
    """
    reporter = OutcomeReporter(service.config.generation.loading_retry_after_seconds)

    try:
        payload = await request.json()
    except ValueError:
        # The validator rejects a missing payload as a malformed body
        payload = None
    except ClientDisconnect:
        logger.info("Client disconnected before sending a complete body")
        return Response(status_code=CLIENT_CLOSED_REQUEST)

    generation = asyncio.create_task(service.generate(payload))
    disconnect = asyncio.create_task(_wait_for_disconnect(request))
    try:
        await asyncio.wait({generation, disconnect}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        disconnect.cancel()
        generation.cancel()  # no-op once finished

    if not generation.done():
        await asyncio.wait({generation})
        logger.info("Client disconnected, abandoned video generation")
        return Response(status_code=CLIENT_CLOSED_REQUEST)

    try:
        outcome = generation.result()
        status_code, body = reporter.report(outcome)
    except VideoServiceError as e:
        logger.error(f"Video generation error: {e}")
        status_code, body = reporter.report_error(e)
    except Exception:
        logger.exception("Video generation error")
        status_code, body = reporter.report_error(InternalError())

    headers = {}
    if body.get("retryAfter") is not None:
        headers["Retry-After"] = str(body["retryAfter"])

    return JSONResponse(body, status_code=status_code, headers=headers)
