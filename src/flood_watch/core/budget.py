"""Proportional trimming of result lists to fit an LLM token budget."""

import math
from typing import Mapping, Sequence

from .models import TokenBudget

DEFAULT_CHARS_PER_ITEM = 200
CHARS_PER_TOKEN = 4


class BudgetAllocator:
    """Share a token budget across several named item lists.

    Size is estimated per item, not measured, so the allocator is cheap enough
    to run on every request. Trimming keeps a prefix of each list and never
    drops a non-empty list to zero while any budget remains.
    """

    def __init__(
        self,
        estimated_chars_per_item: int = DEFAULT_CHARS_PER_ITEM,
        chars_per_token: int = CHARS_PER_TOKEN,
    ):
        self.estimated_chars_per_item = estimated_chars_per_item
        self.chars_per_token = chars_per_token

    def _reduction_ratio(self, total_items: int, budget: TokenBudget) -> float:
        estimated_chars = total_items * self.estimated_chars_per_item
        available_chars = budget.remaining() * self.chars_per_token
        if estimated_chars <= available_chars:
            return 1.0
        return available_chars / estimated_chars

    def apply(
        self, payloads: Mapping[str, Sequence], budget: TokenBudget
    ) -> dict[str, list]:
        """Trim every list in ``payloads`` so the total fits ``budget``.

        Lists that already fit come back as the same objects.
        """
        if not payloads:
            return {}
        if budget.remaining() <= 0:
            return {key: [] for key in payloads}

        total = sum(len(items) for items in payloads.values())
        if total == 0:
            return dict(payloads)
        ratio = self._reduction_ratio(total, budget)
        if ratio >= 1.0:
            return dict(payloads)

        trimmed = {}
        for key, items in payloads.items():
            if not items:
                trimmed[key] = items
                continue
            allowed = max(1, math.floor(len(items) * ratio))
            trimmed[key] = list(items[:allowed])
        return trimmed

    def get_per_tool_limits(
        self, configured_limits: Mapping[str, int], budget: TokenBudget
    ) -> dict[str, int]:
        """Scale configured per-source item caps to the budget before fetching."""
        if not configured_limits:
            return {}
        if budget.remaining() <= 0:
            return {key: 0 for key in configured_limits}

        total = sum(configured_limits.values())
        if total <= 0:
            return dict(configured_limits)
        ratio = self._reduction_ratio(total, budget)
        if ratio >= 1.0:
            return dict(configured_limits)
        return {
            key: max(1, math.floor(limit * ratio)) if limit > 0 else limit
            for key, limit in configured_limits.items()
        }
