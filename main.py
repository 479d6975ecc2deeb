#!/usr/bin/env python3
"""
Image Animator - Main Entry Point

Animates still images through a fallback chain of hosted video models.

Usage:
    # Start the HTTP API
    python main.py server

    # Animate a single image and save the mp4
    python main.py generate --image-url https://example.com/cat.png --style dynamic

    # Check a running server
    python main.py status
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("imageanimator")


def start_server(host: str = "0.0.0.0", port: int = 8765):
    """Start the FastAPI server."""
    import uvicorn

    logger.info(f"Image Animator server running at http://{host}:{port}")
    uvicorn.run("services.api.server:app", host=host, port=port, log_level="info")


async def generate_video(
    image_url: str,
    style: str,
    prompt: Optional[str] = None,
    output: str = "./output/animation.mp4",
) -> int:
    """
    Animate one image and write the result to disk.

    Args:
        image_url: Publicly reachable URL of the source image
        style: smooth, dynamic or cinematic
        prompt: Optional creative prompt
        output: Path of the mp4 to write

    Returns:
        The HTTP status the API would have answered with
    """
    from core.errors import VideoServiceError
    from services.video_generation import OutcomeReporter, Success, VideoGenerationService

    service = VideoGenerationService()
    reporter = OutcomeReporter(service.config.generation.loading_retry_after_seconds)

    payload = {"imageUrl": image_url, "animationStyle": style}
    if prompt:
        payload["prompt"] = prompt

    outcome = None
    try:
        outcome = await service.generate(payload)
        status_code, body = reporter.report(outcome)
    except VideoServiceError as e:
        status_code, body = reporter.report_error(e)
    finally:
        await service.close()

    if isinstance(outcome, Success):
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(service.encoder.decode(outcome.encoded_video))
        logger.info(f"Video saved: {output_path} (model: {outcome.provider_name})")
        # Print the file location instead of a multi-megabyte data URL
        body = {**body, "videoUrl": str(output_path)}

    print(f"HTTP {status_code}")
    print(json.dumps(body, indent=2))
    return status_code


def main():
    parser = argparse.ArgumentParser(
        description="Image Animator - Animate still images with hosted video models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Start the HTTP API
    python main.py server

    # Animate an image
    python main.py generate --image-url https://example.com/cat.png --style smooth

    # Animate with a creative prompt
    python main.py generate -i https://example.com/city.png -s cinematic -p "neon rain at night"
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Server command
    server_parser = subparsers.add_parser("server", help="Start HTTP server")
    server_parser.add_argument("--host", default="0.0.0.0", help="Host to bind")
    server_parser.add_argument("--port", type=int, default=8765, help="Port to bind")

    # Generate command
    gen_parser = subparsers.add_parser("generate", help="Animate one image")
    gen_parser.add_argument("--image-url", "-i", required=True, help="URL of the hosted image")
    gen_parser.add_argument(
        "--style",
        "-s",
        choices=["smooth", "dynamic", "cinematic"],
        default="smooth",
        help="Animation style",
    )
    gen_parser.add_argument("--prompt", "-p", help="Optional creative prompt")
    gen_parser.add_argument(
        "--output", "-o", default="./output/animation.mp4", help="Where to write the mp4"
    )

    # Status command
    status_parser = subparsers.add_parser("status", help="Check server status")
    status_parser.add_argument(
        "--server",
        default="http://localhost:8765",
        help="Server URL",
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Run appropriate command
    if args.command == "server":
        start_server(host=args.host, port=args.port)

    elif args.command == "generate":
        status_code = asyncio.run(
            generate_video(
                image_url=args.image_url,
                style=args.style,
                prompt=args.prompt,
                output=args.output,
            )
        )
        sys.exit(0 if status_code == 200 else 1)

    elif args.command == "status":
        import httpx

        async def check_status():
            async with httpx.AsyncClient(timeout=10.0) as client:
                try:
                    resp = await client.get(f"{args.server}/health")
                except httpx.RequestError as e:
                    print(f"Cannot connect to server: {e}")
                    sys.exit(1)
                if resp.status_code != 200:
                    print(f"Server returned status {resp.status_code}")
                    sys.exit(1)
                data = resp.json()
                print(f"Server: {args.server}")
                print("Status: Online")
                print(f"Credential configured: {data['configured']}")
                print(f"Loading policy: {data['loading_policy']}")
                for provider in data["providers"]:
                    print(f"  - {provider['name']}: {provider['model']}")

        asyncio.run(check_status())


if __name__ == "__main__":
    main()
