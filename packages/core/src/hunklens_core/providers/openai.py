from __future__ import annotations

try:
    from openai import AsyncOpenAI as _AsyncOpenAI
except ImportError:
    _AsyncOpenAI = None  # type: ignore[assignment,misc]

from hunklens_core.pricing import TokenUsage
from hunklens_core.providers.base import BaseReviewer, ModelResponse


class OpenAIReviewer(BaseReviewer):
    DEFAULT_MODEL = "o3-mini-2025-01-31"
    # Nucleus width 1.0 and no penalties; reasoning models reject temperature,
    # so it is left at the API default.
    TOP_P = 1
    FREQUENCY_PENALTY = 0
    PRESENCE_PENALTY = 0

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        usage: TokenUsage | None = None,
        max_completion_tokens: int | None = None,
    ):
        if _AsyncOpenAI is None:
            raise ImportError("The 'openai' package is required for this provider. Install it with: pip install openai")
        super().__init__(model, usage, max_completion_tokens)
        self.client = _AsyncOpenAI(api_key=api_key)

    async def _call_api(self, prompt: str) -> ModelResponse:
        response = await self.client.chat.completions.create(
            model=self.model,
            max_completion_tokens=self.max_completion_tokens,
            top_p=self.TOP_P,
            frequency_penalty=self.FREQUENCY_PENALTY,
            presence_penalty=self.PRESENCE_PENALTY,
            response_format={"type": "json_object"},
            messages=[{"role": "system", "content": prompt}],
        )
        usage = response.usage
        details = getattr(usage, "prompt_tokens_details", None)
        content = response.choices[0].message.content if response.choices else None
        return ModelResponse(
            content=(content or "").strip(),
            prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
            cached_tokens=getattr(details, "cached_tokens", 0) or 0,
        )
