"""Builds the text prompt sent to providers that accept one."""

from typing import Optional

from .models import AnimationStyle, get_style_profile

# No generic seed phrase: without a user prompt the style suffix stands alone
DEFAULT_PROMPT_SEED = ""


def compose(prompt: Optional[str], style: AnimationStyle) -> str:
    """Append the style's descriptive suffix to the user prompt (kept verbatim)."""
    suffix = get_style_profile(style).prompt_suffix
    base = prompt if prompt else DEFAULT_PROMPT_SEED
    if not base:
        return suffix
    return f"{base} {suffix}"
