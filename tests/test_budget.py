"""Tests for BudgetAllocator."""

from flood_watch.core.budget import BudgetAllocator
from flood_watch.core.models import TokenBudget


def _items(n, prefix="x"):
    return [f"{prefix}{i}" for i in range(n)]


class TestApply:
    def setup_method(self):
        self.allocator = BudgetAllocator()

    def test_exhausted_budget_empties_every_list(self):
        payloads = {"floods": _items(3), "incidents": _items(2)}
        budget = TokenBudget(max_tokens=100, used_tokens=100)
        assert self.allocator.apply(payloads, budget) == {"floods": [], "incidents": []}

    def test_overspent_budget_empties_every_list(self):
        budget = TokenBudget(max_tokens=100, used_tokens=250)
        assert budget.remaining() == 0
        assert self.allocator.apply({"a": _items(1)}, budget) == {"a": []}

    def test_ample_budget_returns_same_lists(self):
        floods, incidents = _items(3), _items(2)
        result = self.allocator.apply({"floods": floods, "incidents": incidents}, TokenBudget(max_tokens=10_000))
        assert result == {"floods": floods, "incidents": incidents}
        assert result["floods"] is floods
        assert result["incidents"] is incidents

    def test_tight_budget_trims_proportionally(self):
        # 30 items * 200 chars = 6000 chars; 500 tokens * 4 = 2000 chars -> ratio 1/3
        payloads = {"a": _items(20), "b": _items(10)}
        result = self.allocator.apply(payloads, TokenBudget(max_tokens=500))
        assert result == {"a": _items(6), "b": _items(3)}

    def test_every_non_empty_list_keeps_one_item(self):
        payloads = {"a": _items(100), "b": _items(1), "c": []}
        result = self.allocator.apply(payloads, TokenBudget(max_tokens=1))
        assert len(result["a"]) >= 1
        assert result["b"] == ["x0"]
        assert result["c"] == []

    def test_larger_list_stays_at_least_as_large(self):
        payloads = {"big": _items(40), "small": _items(20)}
        result = self.allocator.apply(payloads, TokenBudget(max_tokens=300))
        assert len(result["big"]) >= len(result["small"])

    def test_prefix_truncation_preserves_order(self):
        result = self.allocator.apply({"a": _items(10)}, TokenBudget(max_tokens=250))
        assert result["a"] == _items(5)

    def test_never_expands(self):
        payloads = {"a": _items(2)}
        result = self.allocator.apply(payloads, TokenBudget(max_tokens=1_000_000))
        assert len(result["a"]) == 2

    def test_empty_payloads(self):
        assert self.allocator.apply({}, TokenBudget(max_tokens=100)) == {}

    def test_all_lists_empty(self):
        assert self.allocator.apply({"a": [], "b": []}, TokenBudget(max_tokens=100)) == {"a": [], "b": []}

    def test_custom_chars_per_item(self):
        allocator = BudgetAllocator(estimated_chars_per_item=100)
        result = allocator.apply({"a": _items(20)}, TokenBudget(max_tokens=500))
        assert len(result["a"]) == 20


class TestPerToolLimits:
    def setup_method(self):
        self.allocator = BudgetAllocator()

    def test_ample_budget_unchanged(self):
        limits = {"floods": 12, "incidents": 12}
        assert self.allocator.get_per_tool_limits(limits, TokenBudget(max_tokens=10_000)) == limits

    def test_tight_budget_scales_caps(self):
        # 30 items * 200 = 6000 chars; 750 tokens * 4 = 3000 chars -> ratio 0.5
        limits = {"floods": 20, "incidents": 10}
        result = self.allocator.get_per_tool_limits(limits, TokenBudget(max_tokens=750))
        assert result == {"floods": 10, "incidents": 5}

    def test_caps_never_below_one(self):
        result = self.allocator.get_per_tool_limits({"a": 50, "b": 1}, TokenBudget(max_tokens=1))
        assert result == {"a": 1, "b": 1}

    def test_zero_total_returned_unchanged(self):
        limits = {"a": 0, "b": 0}
        assert self.allocator.get_per_tool_limits(limits, TokenBudget(max_tokens=10)) == limits

    def test_exhausted_budget_gives_zero_caps(self):
        result = self.allocator.get_per_tool_limits({"a": 5}, TokenBudget(max_tokens=10, used_tokens=10))
        assert result == {"a": 0}
