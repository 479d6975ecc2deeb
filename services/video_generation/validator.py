"""Inbound request validation. Runs before any configuration lookup or network call."""

from typing import Any, Optional

from pydantic import BaseModel, ValidationError, field_validator

from core.errors import RequestValidationError, ValidationErrorKind

from .models import AnimationStyle, GenerationRequest

_MESSAGES = {
    ValidationErrorKind.MISSING_IMAGE: "Image URL is required",
    ValidationErrorKind.UNKNOWN_STYLE: (
        "animationStyle must be one of: "
        + ", ".join(style.value for style in AnimationStyle)
    ),
    ValidationErrorKind.INVALID_PROMPT: "prompt must be a string",
    ValidationErrorKind.MALFORMED_BODY: "Request body must be a JSON object",
}

# Failing field -> rejection kind, in reporting order
_FIELD_KINDS = {
    "imageUrl": ValidationErrorKind.MISSING_IMAGE,
    "animationStyle": ValidationErrorKind.UNKNOWN_STYLE,
    "prompt": ValidationErrorKind.INVALID_PROMPT,
}
_PRIORITY = list(_FIELD_KINDS.values())


class GenerateVideoRequest(BaseModel):
    """Request body for POST /generate-video."""
    imageUrl: str
    prompt: Optional[str] = None
    animationStyle: AnimationStyle

    @field_validator("imageUrl")
    @classmethod
    def image_url_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("imageUrl must not be blank")
        return value


def validation_message(kind: ValidationErrorKind) -> str:
    """Human-readable message for a rejection kind."""
    return _MESSAGES[kind]


def _reject(kind: ValidationErrorKind) -> RequestValidationError:
    return RequestValidationError(kind, validation_message(kind))


def _kind_for(error: ValidationError) -> ValidationErrorKind:
    kinds = set()
    for detail in error.errors():
        loc = detail.get("loc") or ()
        if not loc:
            return ValidationErrorKind.MALFORMED_BODY
        kinds.add(_FIELD_KINDS.get(loc[0], ValidationErrorKind.MALFORMED_BODY))
    for kind in _PRIORITY:
        if kind in kinds:
            return kind
    return ValidationErrorKind.MALFORMED_BODY


def validate(payload: Any) -> GenerationRequest:
    """
    Check an inbound JSON payload and build a GenerationRequest.

    Args:
        payload: Decoded JSON body ({imageUrl, prompt?, animationStyle})

    Returns:
        The validated, immutable request

    Raises:
        RequestValidationError: With the kind describing the first problem found
            (image before style before prompt)
    """
    try:
        body = GenerateVideoRequest.model_validate(payload)
    except ValidationError as e:
        raise _reject(_kind_for(e)) from None

    return GenerationRequest(
        image_url=body.imageUrl,
        style=body.animationStyle,
        prompt=body.prompt,
    )
