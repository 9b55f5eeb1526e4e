"""Base reviewer implementing the Template Method pattern.

All providers share the same invocation algorithm:
    review(prompt) → _call_api()   ← only this differs per provider
                   → usage accounting
                   → parse_findings()

Subclasses implement two things only:
  - __init__: validate and store the async SDK client
  - _call_api: make one raw API call and return a ModelResponse

Response parsing and token accounting live here so every provider records
usage and tolerates malformed output in exactly the same way.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

from hunklens_core.models import InvalidFinding, ReviewFinding
from hunklens_core.pricing import TokenUsage

logger = logging.getLogger(__name__)

_MAX_COMPLETION_TOKENS = 1000


@dataclass(frozen=True)
class ModelResponse:
    content: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    cached_tokens: int = 0  # subset of prompt_tokens

    @property
    def uncached_tokens(self) -> int:
        return self.prompt_tokens - self.cached_tokens


def parse_findings(raw: str | None) -> list[ReviewFinding] | None:
    """Parse the model's raw text response into review findings.

    Returns None when the body is not valid JSON. A valid body without a
    ``reviews`` list yields no findings. Individual malformed items are
    dropped so one bad entry does not cost the rest of the chunk.
    """
    # Strip only an outer ```json ... ``` fence, not backticks inside comment values.
    cleaned = re.sub(r"^```(?:json)?\s*", "", (raw or "").strip())
    cleaned = re.sub(r"\s*```$", "", cleaned.strip()) or "{}"
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error("Error parsing model response JSON: %s: %s", e, cleaned[:200])
        return None

    if not isinstance(payload, dict):
        logger.warning("Model response is not a JSON object: %s", cleaned[:200])
        return []
    reviews = payload.get("reviews")
    if reviews is None:
        return []
    if not isinstance(reviews, list):
        logger.warning("Model response 'reviews' is not a list: %r", reviews)
        return []

    findings = []
    for item in reviews:
        try:
            findings.append(ReviewFinding.from_payload(item))
        except InvalidFinding as e:
            logger.warning("Dropping malformed review item: %s", e)
    return findings


class BaseReviewer(ABC):
    MAX_COMPLETION_TOKENS: int = _MAX_COMPLETION_TOKENS

    def __init__(self, model: str, usage: TokenUsage | None = None, max_completion_tokens: int | None = None):
        self.model = model
        self.usage = usage if usage is not None else TokenUsage()
        self.max_completion_tokens = max_completion_tokens or self.MAX_COMPLETION_TOKENS

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    async def review(self, prompt: str) -> list[ReviewFinding] | None:
        """Send one prompt and return the findings, or None if the call failed.

        Transport and protocol errors are logged and swallowed: a failed call
        costs its own chunk only. Usage is recorded for every completed call,
        whether or not the body parses.
        """
        try:
            response = await self._call_api(prompt)
        except Exception as e:
            logger.error("%s: error fetching model response: %s", self.__class__.__name__, e)
            return None

        # Single synchronous step: no await between the three increments.
        self.usage.add(response.uncached_tokens, response.cached_tokens, response.completion_tokens)
        return parse_findings(response.content)

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    async def _call_api(self, prompt: str) -> ModelResponse:
        """Make a single API call and return the response text and usage.

        It should raise on failure; review() handles logging.
        """
