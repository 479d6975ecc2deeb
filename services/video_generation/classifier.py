"""
Response classification for inference providers.

Inference endpoints answer with raw video bytes on success, but the same
endpoint can also answer with a JSON error object or a plain-text notice that
the model is still being loaded. The order of the checks below matters:

1. A failure status whose body mentions "loading" is a warm-up notice, even
   when the body also parses as a JSON error object.
2. A JSON object carrying an "error" field is a structured error.
3. Anything else on a 2xx status is the video itself, including bodies that
   happen to parse as JSON without an error field.
4. Remaining failure statuses are generic failures.
"""

import json
import math
from typing import Any, Optional

from .models import (
    BinarySuccess,
    ClassifiedResponse,
    ModelLoading,
    OtherFailure,
    RawProviderResponse,
    StructuredError,
)

LOADING_MARKER = b"loading"
DEFAULT_LOADING_RETRY_AFTER = 30
_SNIPPET_LENGTH = 200


def _parse_json(content: bytes) -> Optional[Any]:
    if not content:
        return None
    try:
        return json.loads(content)
    except ValueError:
        # Covers JSONDecodeError and UnicodeDecodeError on binary payloads
        return None


def _error_message(data: Any) -> Optional[str]:
    """Return the error text of a JSON error object, or None if there is none."""
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if not error:
        return None
    if isinstance(error, list):
        return "; ".join(str(item) for item in error)
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


def _declared_retry_after(raw: RawProviderResponse, data: Any) -> Optional[int]:
    if isinstance(data, dict):
        estimated = data.get("estimated_time")
        if isinstance(estimated, (int, float)) and not isinstance(estimated, bool) and estimated > 0:
            return math.ceil(estimated)

    for name, value in raw.headers.items():
        if name.lower() == "retry-after":
            try:
                seconds = int(str(value).strip())
            except ValueError:
                return None
            return seconds if seconds > 0 else None
    return None


def classify(
    raw: RawProviderResponse,
    default_retry_after: int = DEFAULT_LOADING_RETRY_AFTER,
) -> ClassifiedResponse:
    """
    Decide what a provider response means.

    Args:
        raw: The provider's status, body and headers
        default_retry_after: Delay to suggest when a loading notice declares none

    Returns:
        BinarySuccess, StructuredError, ModelLoading or OtherFailure
    """
    data = _parse_json(raw.content)

    if not raw.ok and LOADING_MARKER in raw.content.lower():
        retry_after = _declared_retry_after(raw, data) or default_retry_after
        return ModelLoading(retry_after_seconds=max(1, retry_after))

    message = _error_message(data)
    if message is not None:
        return StructuredError(message=message)

    if raw.ok:
        return BinarySuccess(payload=raw.content)

    snippet = raw.text[:_SNIPPET_LENGTH].strip()
    return OtherFailure(message=f"HTTP {raw.status_code}: {snippet}" if snippet else f"HTTP {raw.status_code}")
