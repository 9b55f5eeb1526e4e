"""Token accounting and cost estimation."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricingEntry:
    """USD per million tokens."""

    uncached_input: float
    cached_input: float
    output: float


PRICING: dict[str, PricingEntry] = {
    "o3-mini-2025-01-31": PricingEntry(uncached_input=1.10, cached_input=0.55, output=4.40),
    "gpt-4o-mini-2024-07-18": PricingEntry(uncached_input=0.15, cached_input=0.075, output=0.60),
    "gpt-4o-2024-08-06": PricingEntry(uncached_input=2.50, cached_input=1.25, output=10.00),
    "claude-sonnet-4-20250514": PricingEntry(uncached_input=3.00, cached_input=0.30, output=15.00),
}


@dataclass
class TokenUsage:
    """Running token counters shared by every model call in a run.

    Counters only grow. ``add`` updates all three under one lock so a
    concurrent reader never sees a half-applied call.
    """

    uncached_tokens: int = 0
    cached_tokens: int = 0
    completion_tokens: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add(self, uncached: int, cached: int, completion: int) -> None:
        with self._lock:
            self.uncached_tokens += max(uncached, 0)
            self.cached_tokens += max(cached, 0)
            self.completion_tokens += max(completion, 0)

    @property
    def total_tokens(self) -> int:
        return self.uncached_tokens + self.cached_tokens + self.completion_tokens


def total_cost(model: str, usage: TokenUsage, pricing: dict[str, PricingEntry] | None = None) -> float:
    """Estimate the USD cost of the accumulated usage for a model.

    Unknown models cost 0.0 and log a warning rather than failing the run.
    """
    table = PRICING if pricing is None else pricing
    entry = table.get(model)
    if entry is None:
        logger.warning("No pricing information available for model: %s", model)
        return 0.0
    return (
        usage.uncached_tokens / 1_000_000 * entry.uncached_input
        + usage.cached_tokens / 1_000_000 * entry.cached_input
        + usage.completion_tokens / 1_000_000 * entry.output
    )


def format_cost(cost: float) -> str:
    return f"{cost:.3f}"
