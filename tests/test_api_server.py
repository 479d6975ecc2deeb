"""
HTTP API Tests

End-to-end through the FastAPI app with provider HTTP calls served by an
httpx mock transport, plus the outcome reporter's status mapping.

Run with:
    python -m pytest tests/test_api_server.py -v
"""

import asyncio
import json
import os
import sys
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import APIConfig, Config, GenerationConfig, LoadingPolicy
from core.errors import (
    ConfigurationError,
    InternalError,
    ProviderCallError,
    ValidationErrorKind,
    VideoServiceError,
)
from services.api.server import app, get_service
from services.video_generation import OutcomeReporter, ResultEncoder, VideoGenerationService
from services.video_generation.models import Exhausted, RawProviderResponse, Rejected, Retryable, Success
from services.video_generation.providers import build_providers

VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42 fake video \xff\xfe"


def make_config(api_key: str = "hf_test") -> Config:
    return Config(
        api=APIConfig(
            huggingface_api_key=api_key,
            huggingface_api_base="https://inference.test/models",
        ),
        generation=GenerationConfig(
            provider_timeout_seconds=5,
            request_deadline_seconds=30,
            loading_retry_after_seconds=30,
            loading_policy=LoadingPolicy.ABORT,
        ),
    )


@pytest.fixture
def make_service():
    """
    Build services whose provider calls are answered by `routes`, a mapping
    of model-path fragment to httpx.Response. Each service shares one mock
    HTTP client across its requests; every client is closed on teardown.
    """
    clients = []

    def _make(routes: dict, api_key: str = "hf_test", calls: list = None) -> VideoGenerationService:
        calls = calls if calls is not None else []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            for fragment, response in routes.items():
                if fragment in request.url.path:
                    return response
            return httpx.Response(404, text="Not Found")

        config = make_config(api_key)
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)

        def adapters(specs, key):
            return build_providers(
                specs,
                api_key=key,
                api_base=config.api.huggingface_api_base,
                http_client=client,
                timeout_seconds=5,
            )

        return VideoGenerationService(config=config, adapter_factory=adapters)

    yield _make
    for client in clients:
        asyncio.run(client.aclose())


@pytest.fixture
def client_for():
    def _client(service: VideoGenerationService) -> TestClient:
        app.dependency_overrides[get_service] = lambda: service
        return TestClient(app)

    yield _client
    app.dependency_overrides.clear()


class TestGenerateVideoEndpoint:
    """Test POST /generate-video end to end."""

    def test_first_provider_loading_returns_503_with_retry_after(self, client_for, make_service):
        calls = []
        service = make_service(
            {
                "stable-video-diffusion": httpx.Response(
                    503,
                    json={"error": "Model stabilityai/stable-video-diffusion-img2vid-xt is currently loading",
                          "estimated_time": 20.0},
                ),
                "animatediff": httpx.Response(200, content=VIDEO_BYTES),
            },
            calls=calls,
        )

        response = client_for(service).post(
            "/generate-video",
            json={"imageUrl": "https://x/img.png", "animationStyle": "dynamic"},
        )

        assert response.status_code == 503
        body = response.json()
        assert body["success"] is False
        assert body["retryAfter"] > 0
        assert body["retryable"] is True
        assert response.headers["Retry-After"] == str(body["retryAfter"])
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        # Loading aborts the chain; the second provider is never called
        assert len(calls) == 1

    def test_fallback_success_returns_data_url(self, client_for, make_service):
        service = make_service({
            "stable-video-diffusion": httpx.Response(500, text="CUDA out of memory"),
            "animatediff": httpx.Response(200, content=VIDEO_BYTES),
        })

        response = client_for(service).post(
            "/generate-video",
            json={"imageUrl": "https://x/img.png", "animationStyle": "smooth", "prompt": "a calm lake"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["model"] == "animatediff"
        assert body["videoUrl"].startswith("data:video/mp4;base64,")
        assert ResultEncoder().decode(body["videoUrl"]) == VIDEO_BYTES

    def test_all_providers_failing_returns_503_with_diagnostics(self, client_for, make_service):
        service = make_service({
            "stable-video-diffusion": httpx.Response(500, text="boom"),
            "animatediff": httpx.Response(200, json={"error": "image could not be fetched"}),
        })

        response = client_for(service).post(
            "/generate-video",
            json={"imageUrl": "https://x/img.png", "animationStyle": "cinematic"},
        )

        assert response.status_code == 503
        body = response.json()
        assert body["success"] is False
        assert body["attemptedProviders"] == ["stable-video-diffusion", "animatediff"]
        assert body["details"][1] == "animatediff: image could not be fetched"
        assert body["retryAfter"] == 30

    def test_missing_image_returns_400(self, client_for, make_service):
        calls = []
        service = make_service({}, calls=calls)

        response = client_for(service).post(
            "/generate-video", json={"imageUrl": "", "animationStyle": "smooth"}
        )

        assert response.status_code == 400
        assert response.json()["errorCode"] == "MissingImage"
        assert response.json()["error"] == "Image URL is required"
        assert calls == []

    def test_unknown_style_returns_400(self, client_for, make_service):
        response = client_for(make_service({})).post(
            "/generate-video", json={"imageUrl": "x", "animationStyle": "weird"}
        )

        assert response.status_code == 400
        assert response.json()["errorCode"] == "UnknownStyle"
        assert response.json()["retryable"] is False

    def test_invalid_json_returns_400(self, client_for, make_service):
        response = client_for(make_service({})).post(
            "/generate-video",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["errorCode"] == "MalformedBody"

    def test_missing_credential_returns_500_before_any_call(self, client_for, make_service):
        calls = []
        service = make_service({"": httpx.Response(200, content=VIDEO_BYTES)}, api_key="", calls=calls)

        response = client_for(service).post(
            "/generate-video", json={"imageUrl": "https://x/img.png", "animationStyle": "smooth"}
        )

        assert response.status_code == 500
        assert response.json()["error"] == "Hugging Face API key not configured"
        assert response.json()["retryable"] is False
        assert calls == []

    def test_validation_runs_before_credential_check(self, client_for, make_service):
        service = make_service({}, api_key="")

        response = client_for(service).post(
            "/generate-video", json={"imageUrl": "", "animationStyle": "smooth"}
        )

        assert response.status_code == 400

    def test_unexpected_errors_are_sanitized(self, client_for, make_service):
        service = make_service({})

        with patch.object(
            service, "generate", AsyncMock(side_effect=RuntimeError("db password=hunter2"))
        ):
            response = client_for(service).post(
                "/generate-video", json={"imageUrl": "x", "animationStyle": "smooth"}
            )

        assert response.status_code == 500
        assert "hunter2" not in response.text
        assert response.json()["error"] == "Internal server error during video generation"

    def test_requests_share_one_provider_client(self, make_service):
        service = make_service({})

        first = service.build_chain("hf_test").providers
        second = service.build_chain("hf_test").providers

        assert first[0].http_client is second[0].http_client
        assert second[0].http_client is second[1].http_client


class TestTransportSurface:
    """Test CORS preflight and method handling."""

    def test_preflight_has_no_body(self, client_for, make_service):
        response = client_for(make_service({})).options("/generate-video")

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert "POST" in response.headers["Access-Control-Allow-Methods"]

    @pytest.mark.parametrize("method", ["get", "put", "delete"])
    def test_other_methods_return_405(self, client_for, make_service, method):
        response = getattr(client_for(make_service({})), method)("/generate-video")

        assert response.status_code == 405
        assert response.json() == {"success": False, "error": "Method not allowed", "retryable": False}
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_health_lists_providers(self, client_for, make_service):
        response = client_for(make_service({})).get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["configured"] is True
        assert [p["name"] for p in body["providers"]] == ["stable-video-diffusion", "animatediff"]


class SlowProvider:
    """Provider that fails after `delay` seconds, logging when it starts and finishes."""

    def __init__(self, name: str, log: list, delay: float = 0.5):
        self.name = name
        self.log = log
        self.delay = delay

    async def attempt(self, request, prompt, profile):
        self.log.append(("start", self.name))
        await asyncio.sleep(self.delay)
        self.log.append(("finished", self.name))
        return RawProviderResponse(status_code=500, content=b"boom")


async def post_then_disconnect(payload: dict, disconnect_after: float) -> list:
    """
    Call the ASGI app directly: send the body, then report the client as
    gone after `disconnect_after` seconds. Returns the sent ASGI messages.
    """
    body = json.dumps(payload).encode()
    body_sent = False
    sent = []

    async def receive():
        nonlocal body_sent
        if not body_sent:
            body_sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        await asyncio.sleep(disconnect_after)
        return {"type": "http.disconnect"}

    async def send(message):
        sent.append(message)

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": "/generate-video",
        "raw_path": b"/generate-video",
        "root_path": "",
        "query_string": b"",
        "headers": [
            (b"host", b"testserver"),
            (b"content-type", b"application/json"),
            (b"content-length", str(len(body)).encode()),
        ],
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }
    await app(scope, receive, send)
    return sent


class TestClientDisconnect:
    """Test that a departed client stops the provider chain."""

    @pytest.mark.asyncio
    async def test_disconnect_cancels_current_call_and_skips_the_rest(self):
        log = []
        providers = [SlowProvider("first", log), SlowProvider("second", log)]
        service = VideoGenerationService(
            config=make_config(),
            adapter_factory=lambda specs, key: providers,
        )
        app.dependency_overrides[get_service] = lambda: service

        try:
            sent = await post_then_disconnect(
                {"imageUrl": "https://x/img.png", "animationStyle": "smooth"},
                disconnect_after=0.05,
            )
        finally:
            app.dependency_overrides.clear()

        assert log == [("start", "first")]
        assert sent[0]["type"] == "http.response.start"
        assert sent[0]["status"] == 499

    @pytest.mark.asyncio
    async def test_connected_client_still_gets_the_outcome(self):
        log = []
        providers = [SlowProvider("first", log, delay=0.01), SlowProvider("second", log, delay=0.01)]
        service = VideoGenerationService(
            config=make_config(),
            adapter_factory=lambda specs, key: providers,
        )
        app.dependency_overrides[get_service] = lambda: service

        try:
            sent = await post_then_disconnect(
                {"imageUrl": "https://x/img.png", "animationStyle": "smooth"},
                disconnect_after=2,
            )
        finally:
            app.dependency_overrides.clear()

        assert log == [
            ("start", "first"), ("finished", "first"),
            ("start", "second"), ("finished", "second"),
        ]
        assert sent[0]["status"] == 503


class TestOutcomeReporter:
    """Test status mapping for every outcome and error."""

    def setup_method(self):
        self.reporter = OutcomeReporter(exhausted_retry_after=30)

    def test_success(self):
        status, body = self.reporter.report(Success(encoded_video="data:video/mp4;base64,", provider_name="svd"))
        assert status == 200
        assert body == {"success": True, "videoUrl": "data:video/mp4;base64,", "model": "svd", "retryable": False}

    def test_retryable(self):
        status, body = self.reporter.report(Retryable(reason="Model is loading", retry_after_seconds=20))
        assert status == 503
        assert body["retryAfter"] == 20
        assert body["error"] == "Model is loading"

    def test_exhausted(self):
        status, body = self.reporter.report(
            Exhausted(attempted_providers=("a", "b"), last_errors=("a: x", "b: y"))
        )
        assert status == 503
        assert "temporarily unavailable" in body["error"]
        assert body["attemptedProviders"] == ["a", "b"]

    @pytest.mark.parametrize("kind", list(ValidationErrorKind))
    def test_rejected(self, kind):
        status, body = self.reporter.report(Rejected(reason=kind))
        assert status == 400
        assert body["success"] is False
        assert "retryAfter" not in body

    def test_configuration_error_is_distinct_from_exhaustion(self):
        status, body = self.reporter.report_error(ConfigurationError("Hugging Face API key not configured"))
        assert status == 500
        assert body["errorCode"] == "ConfigurationError"
        assert "retryAfter" not in body

    def test_internal_and_unknown_errors(self):
        assert self.reporter.report_error(InternalError())[0] == 500
        status, body = self.reporter.report_error(KeyError("secret"))
        assert status == 500
        assert "secret" not in body["error"]

    def test_success_requires_binary_payload(self):
        with pytest.raises(TypeError):
            Success.from_classified("not a payload", "svd", ResultEncoder())

    def test_retryable_flag_comes_from_the_error_class(self):
        class ProviderQuotaExceeded(VideoServiceError):
            status_code = 503
            retryable = True

        status, body = self.reporter.report_error(ProviderQuotaExceeded("quota exhausted"))
        assert status == 503
        assert body["retryable"] is True

        assert self.reporter.report_error(ConfigurationError("missing"))[1]["retryable"] is False

    def test_provider_call_errors_report_as_internal_status(self):
        status, body = self.reporter.report_error(ProviderCallError("timed out", error_code="TIMEOUT"))
        assert status == 500
        assert body["errorCode"] == "TIMEOUT"
