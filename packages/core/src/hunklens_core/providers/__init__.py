"""Model providers and provider selection."""

from __future__ import annotations

from hunklens_core.pricing import TokenUsage
from hunklens_core.providers.base import BaseReviewer


def get_reviewer(config: dict, usage: TokenUsage) -> BaseReviewer:
    """Build the reviewer for the configured model identifier.

    ``claude-*`` identifiers go to Anthropic; everything else is sent to OpenAI.
    """
    model = config["model"]
    max_tokens = config.get("max_completion_tokens")
    if model.startswith("claude"):
        from hunklens_core.providers.anthropic import AnthropicReviewer

        return AnthropicReviewer(
            api_key=config["anthropic_api_key"], model=model, usage=usage, max_completion_tokens=max_tokens
        )

    from hunklens_core.providers.openai import OpenAIReviewer

    return OpenAIReviewer(api_key=config["openai_api_key"], model=model, usage=usage, max_completion_tokens=max_tokens)


def api_key_name(model: str) -> str:
    """Name of the config/env key holding the credential for a model."""
    return "anthropic_api_key" if model.startswith("claude") else "openai_api_key"
