"""
Video generation service.

Single entry point used by the HTTP endpoint and the CLI:

    validate -> credential check -> provider chain

Validation always runs first so malformed requests never trigger a
configuration lookup or spend provider quota.
"""

import logging
from typing import Any, Callable, Optional, Sequence

import httpx

from core.config import Config, get_config
from core.errors import RequestValidationError

from .chain import ProviderAdapter, ProviderChain
from .encoder import ResultEncoder
from .models import GenerationOutcome, Rejected
from .providers import DEFAULT_PROVIDER_SPECS, ProviderSpec, build_providers, describe_providers
from .validator import validate

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[Sequence[ProviderSpec], str], Sequence[ProviderAdapter]]


class VideoGenerationService:
    """
    Animates hosted images through the provider fallback chain.

    Usage:
        service = VideoGenerationService()
        outcome = await service.generate({
            "imageUrl": "https://example.com/cat.png",
            "animationStyle": "smooth",
        })
        await service.close()
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        specs: Sequence[ProviderSpec] = DEFAULT_PROVIDER_SPECS,
        adapter_factory: Optional[AdapterFactory] = None,
        encoder: Optional[ResultEncoder] = None,
    ):
        """
        Args:
            config: Optional config override
            specs: Providers in fallback priority order
            adapter_factory: Builds adapters from (specs, api_key); defaults to
                Hugging Face adapters sharing one HTTP client
            encoder: Result encoder override
        """
        self.config = config or get_config()
        self.specs = tuple(specs)
        self.encoder = encoder or ResultEncoder()
        self._adapter_factory = adapter_factory or self._default_adapters

        # Reused across requests for connection pooling only
        self._http_client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=float(self.config.generation.provider_timeout_seconds),
                follow_redirects=True,
            )
        return self._http_client

    async def close(self):
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def _default_adapters(
        self, specs: Sequence[ProviderSpec], api_key: str
    ) -> Sequence[ProviderAdapter]:
        return build_providers(
            specs,
            api_key=api_key,
            api_base=self.config.api.huggingface_api_base,
            http_client=self._get_client(),
            timeout_seconds=float(self.config.generation.provider_timeout_seconds),
        )

    def build_chain(self, api_key: str) -> ProviderChain:
        generation = self.config.generation
        return ProviderChain(
            self._adapter_factory(self.specs, api_key),
            encoder=self.encoder,
            loading_policy=generation.loading_policy,
            provider_timeout_seconds=generation.provider_timeout_seconds,
            request_deadline_seconds=generation.request_deadline_seconds,
            default_retry_after=generation.loading_retry_after_seconds,
        )

    async def generate(self, payload: Any) -> GenerationOutcome:
        """
        Validate an inbound payload and run it through the provider chain.

        Args:
            payload: Decoded JSON body ({imageUrl, prompt?, animationStyle})

        Returns:
            Success, Retryable, Exhausted or Rejected

        Raises:
            ConfigurationError: If the provider credential is missing
        """
        try:
            request = validate(payload)
        except RequestValidationError as e:
            logger.info(f"Rejected request: {e.kind.value}")
            return Rejected(reason=e.kind)

        api_key = self.config.require_api_key()

        logger.info(
            f"[{request.request_id}] Generating video: style={request.style.value}, "
            f"providers={[spec.name for spec in self.specs]}"
        )
        return await self.build_chain(api_key).run(request)

    def get_status(self) -> dict[str, Any]:
        """Describe the configured providers and whether a credential is present."""
        return {
            "configured": bool(self.config.api.huggingface_api_key),
            "loading_policy": self.config.generation.loading_policy.value,
            "providers": describe_providers(self.specs),
        }
