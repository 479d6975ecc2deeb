"""
Inference provider definitions.

Each provider is a ProviderSpec value: a name, the hosted model it targets,
and a function that shapes the request body. The order of
DEFAULT_PROVIDER_SPECS is the fallback priority.

Frame and step counts are kept small on purpose so a generation finishes
within a single HTTP request.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

import httpx

from core.errors import ProviderCallError

from .models import GenerationRequest, RawProviderResponse, StyleProfile

logger = logging.getLogger(__name__)

PayloadBuilder = Callable[[GenerationRequest, str, StyleProfile], dict[str, Any]]


@dataclass(frozen=True)
class ProviderSpec:
    """One provider in the fallback chain."""
    name: str
    model_id: str  # Path of the model under the inference API base
    build_payload: PayloadBuilder


def _stable_video_diffusion_payload(
    request: GenerationRequest, prompt: str, profile: StyleProfile
) -> dict[str, Any]:
    # Image-conditioned only; the composed prompt is not used
    return {
        "inputs": request.image_url,
        "parameters": {
            "num_frames": 25,
            "motion_bucket_id": profile.motion_strength,
            "fps": 8,
            "noise_aug_strength": 0.1,
        },
    }


def _animatediff_payload(
    request: GenerationRequest, prompt: str, profile: StyleProfile
) -> dict[str, Any]:
    # No motion-intensity knob; style reaches AnimateDiff through the prompt
    return {
        "inputs": prompt,
        "parameters": {
            "image": request.image_url,
            "num_inference_steps": 20,
            "guidance_scale": 7.5,
            "num_frames": 16,
        },
    }


STABLE_VIDEO_DIFFUSION = ProviderSpec(
    name="stable-video-diffusion",
    model_id="stabilityai/stable-video-diffusion-img2vid-xt",
    build_payload=_stable_video_diffusion_payload,
)

ANIMATEDIFF = ProviderSpec(
    name="animatediff",
    model_id="guoyww/animatediff-motion-adapter-v1-5-2",
    build_payload=_animatediff_payload,
)

DEFAULT_PROVIDER_SPECS: tuple[ProviderSpec, ...] = (
    STABLE_VIDEO_DIFFUSION,
    ANIMATEDIFF,
)


class HuggingFaceProvider:
    """
    Calls one model on the Hugging Face inference API.

    Usage:
        async with httpx.AsyncClient() as http:
            provider = HuggingFaceProvider(STABLE_VIDEO_DIFFUSION, api_key, api_base, http)
            raw = await provider.attempt(request, prompt, profile)
    """

    def __init__(
        self,
        spec: ProviderSpec,
        api_key: str,
        api_base: str,
        http_client: httpx.AsyncClient,
        timeout_seconds: float = 120.0,
    ):
        self.spec = spec
        self.api_key = api_key
        self.api_base = api_base.rstrip("/")
        self.http_client = http_client
        self.timeout_seconds = timeout_seconds

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/{self.spec.model_id}"

    async def attempt(
        self,
        request: GenerationRequest,
        prompt: str,
        profile: StyleProfile,
    ) -> RawProviderResponse:
        """
        Send one generation call and return the provider's answer untouched.

        Any HTTP status is returned as-is; interpretation is left to the
        response classifier.

        Raises:
            ProviderCallError: On timeout or when the provider cannot be reached
        """
        payload = self.spec.build_payload(request, prompt, profile)
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        logger.info(f"[{request.request_id}] Calling {self.name} ({self.spec.model_id})")

        try:
            response = await self.http_client.post(
                self.endpoint,
                json=payload,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise ProviderCallError(
                f"{self.name} timeout: {type(e).__name__}",
                error_code="TIMEOUT",
                provider=self.name,
            ) from e
        except httpx.RequestError as e:
            raise ProviderCallError(
                f"{self.name} request failed: {type(e).__name__}: {e}",
                error_code="REQUEST_ERROR",
                provider=self.name,
            ) from e

        logger.info(
            f"[{request.request_id}] {self.name} answered HTTP {response.status_code} "
            f"({len(response.content) / 1024:.1f} KB)"
        )

        return RawProviderResponse(
            status_code=response.status_code,
            content=response.content,
            headers=dict(response.headers),
        )


def build_providers(
    specs: Sequence[ProviderSpec],
    api_key: str,
    api_base: str,
    http_client: httpx.AsyncClient,
    timeout_seconds: float,
) -> list[HuggingFaceProvider]:
    """Wrap each spec in an adapter, preserving priority order."""
    return [
        HuggingFaceProvider(spec, api_key, api_base, http_client, timeout_seconds)
        for spec in specs
    ]


def describe_providers(specs: Sequence[ProviderSpec]) -> list[Mapping[str, str]]:
    return [{"name": spec.name, "model": spec.model_id} for spec in specs]
