"""
Provider fallback chain.

Tries providers one at a time in priority order. The first provider that
returns a video wins. A provider that reports its model is still loading
ends the run with a retry hint (LoadingPolicy.ABORT, the default) or is
skipped until the end of the list (LoadingPolicy.CONTINUE). Any other
failure is recorded and the next provider is tried.

Attempts are sequential: a later provider's result would be discarded if an
earlier one succeeded, so calling them in parallel only spends quota.
No provider is retried within one run; retrying is left to the caller.
"""

import asyncio
import logging
from typing import Optional, Protocol, Sequence

from core.config import LoadingPolicy
from core.errors import ProviderCallError

from .classifier import DEFAULT_LOADING_RETRY_AFTER, classify
from .encoder import ResultEncoder
from .models import (
    BinarySuccess,
    ClassifiedResponse,
    Exhausted,
    GenerationOutcome,
    GenerationRequest,
    ModelLoading,
    OtherFailure,
    RawProviderResponse,
    Retryable,
    StyleProfile,
    Success,
    get_style_profile,
)
from .prompts import compose

logger = logging.getLogger(__name__)


class ProviderAdapter(Protocol):
    """Anything that can make one generation call against one provider."""

    name: str

    async def attempt(
        self,
        request: GenerationRequest,
        prompt: str,
        profile: StyleProfile,
    ) -> RawProviderResponse:
        ...


class ProviderChain:
    """
    Orchestrates one generation request across the configured providers.

    Usage:
        chain = ProviderChain(providers, ResultEncoder())
        outcome = await chain.run(request)
    """

    def __init__(
        self,
        providers: Sequence[ProviderAdapter],
        encoder: Optional[ResultEncoder] = None,
        loading_policy: LoadingPolicy = LoadingPolicy.ABORT,
        provider_timeout_seconds: Optional[float] = None,
        request_deadline_seconds: Optional[float] = None,
        default_retry_after: int = DEFAULT_LOADING_RETRY_AFTER,
    ):
        """
        Args:
            providers: Adapters in fallback priority order (first tried first)
            encoder: Turns the winning payload into a data URL
            loading_policy: Whether a loading notice ends the run or is skipped
            provider_timeout_seconds: Upper bound for each provider call
            request_deadline_seconds: Upper bound for the whole run
            default_retry_after: Retry hint when no provider declared one
        """
        self.providers = list(providers)
        self.encoder = encoder or ResultEncoder()
        self.loading_policy = loading_policy
        self.provider_timeout_seconds = provider_timeout_seconds
        self.request_deadline_seconds = request_deadline_seconds
        self.default_retry_after = default_retry_after

    @property
    def provider_names(self) -> list[str]:
        return [provider.name for provider in self.providers]

    async def run(self, request: GenerationRequest) -> GenerationOutcome:
        """
        Run the chain for a validated request.

        Returns:
            Success, Retryable or Exhausted. Cancellation of the calling task
            propagates and abandons the in-flight provider call.
        """
        if self.request_deadline_seconds is None:
            return await self._run_providers(request)

        try:
            return await asyncio.wait_for(
                self._run_providers(request),
                timeout=self.request_deadline_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"[{request.request_id}] Request deadline of "
                f"{self.request_deadline_seconds}s exceeded, abandoning remaining providers"
            )
            return Retryable(
                reason="Request deadline exceeded",
                retry_after_seconds=self.default_retry_after,
            )

    async def _run_providers(self, request: GenerationRequest) -> GenerationOutcome:
        profile = get_style_profile(request.style)
        prompt = compose(request.prompt, request.style)

        attempted: list[str] = []
        errors: list[str] = []
        loading: Optional[ModelLoading] = None

        for provider in self.providers:
            attempted.append(provider.name)
            classified = await self._attempt(provider, request, prompt, profile)

            if isinstance(classified, BinarySuccess):
                logger.info(
                    f"[{request.request_id}] Video generated by {provider.name} "
                    f"({len(classified.payload) / 1024 / 1024:.1f} MB)"
                )
                return Success.from_classified(classified, provider.name, self.encoder)

            if isinstance(classified, ModelLoading):
                logger.warning(
                    f"[{request.request_id}] {provider.name} model is loading "
                    f"(retry after {classified.retry_after_seconds}s)"
                )
                if self.loading_policy == LoadingPolicy.ABORT:
                    return self._loading_outcome(classified)
                if loading is None or classified.retry_after_seconds > loading.retry_after_seconds:
                    loading = classified
                errors.append(f"{provider.name}: model is loading")
                continue

            logger.warning(f"[{request.request_id}] {provider.name} failed: {classified.message}")
            errors.append(f"{provider.name}: {classified.message}")

        if loading is not None:
            return self._loading_outcome(loading)

        logger.error(f"[{request.request_id}] All providers failed: {attempted}")
        return Exhausted(attempted_providers=tuple(attempted), last_errors=tuple(errors))

    async def _attempt(
        self,
        provider: ProviderAdapter,
        request: GenerationRequest,
        prompt: str,
        profile: StyleProfile,
    ) -> ClassifiedResponse:
        """Call one provider and classify the answer. Never raises for provider faults."""
        try:
            call = provider.attempt(request, prompt, profile)
            if self.provider_timeout_seconds is not None:
                raw = await asyncio.wait_for(call, timeout=self.provider_timeout_seconds)
            else:
                raw = await call
        except asyncio.TimeoutError:
            return OtherFailure(message=f"timed out after {self.provider_timeout_seconds}s")
        except ProviderCallError as e:
            return OtherFailure(message=str(e))
        except Exception as e:
            logger.exception(f"[{request.request_id}] Unexpected error from {provider.name}")
            return OtherFailure(message=f"{type(e).__name__}: {e}" if str(e) else type(e).__name__)

        return classify(raw, default_retry_after=self.default_retry_after)

    def _loading_outcome(self, loading: ModelLoading) -> Retryable:
        return Retryable(
            reason=f"Model is loading, please try again in {loading.retry_after_seconds} seconds",
            retry_after_seconds=loading.retry_after_seconds,
        )
