from __future__ import annotations

from hunklens_core.pricing import TokenUsage
from hunklens_core.providers.base import BaseReviewer, ModelResponse

# The messages API needs at least one user turn; the review prompt itself
# travels as the system prompt, like the OpenAI provider's single system message.
_USER_TURN = "Review the diff above and respond with the JSON object only."


class AnthropicReviewer(BaseReviewer):
    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        usage: TokenUsage | None = None,
        max_completion_tokens: int | None = None,
    ):
        try:
            from anthropic import AsyncAnthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install 'hunklens[anthropic]'"
            )
        super().__init__(model, usage, max_completion_tokens)
        self.client = AsyncAnthropic(api_key=api_key)

    async def _call_api(self, prompt: str) -> ModelResponse:
        response = await self.client.messages.create(
            model=self.model,
            system=prompt,
            messages=[{"role": "user", "content": _USER_TURN}],
            max_tokens=self.max_completion_tokens,
        )
        text = "".join(getattr(block, "text", "") for block in response.content if block.type == "text")
        usage = response.usage
        cached = getattr(usage, "cache_read_input_tokens", 0) or 0
        # input_tokens excludes cache reads; cache writes are billed as regular input here.
        uncached = (getattr(usage, "input_tokens", 0) or 0) + (getattr(usage, "cache_creation_input_tokens", 0) or 0)
        return ModelResponse(
            content=text.strip(),
            prompt_tokens=uncached + cached,
            completion_tokens=getattr(usage, "output_tokens", 0) or 0,
            cached_tokens=cached,
        )
