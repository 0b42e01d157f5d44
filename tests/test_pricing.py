"""
Unit tests for pricing calculations.

Tests rate resolution fallbacks and cost accuracy.
"""

from decimal import Decimal

import pytest

from ai_gateway.core.pricing import (
    ModelPricing,
    PRICING_TABLE,
    PricingTable,
    calculate_cost,
)
from ai_gateway.core.token_counter import TokenUsage, ZERO_USAGE


class TestTokenUsage:
    """Test TokenUsage dataclass."""

    def test_total_tokens_calculation(self):
        usage = TokenUsage(prompt_tokens=100, completion_tokens=50)
        assert usage.total_tokens == 150

    def test_negative_tokens_rejected(self):
        with pytest.raises(ValueError, match="prompt_tokens cannot be negative"):
            TokenUsage(prompt_tokens=-1, completion_tokens=0)

    def test_dict_round_trip_keeps_derived_total(self):
        usage = TokenUsage.from_dict({"prompt": 7, "completion": 3, "total": 999})
        assert usage.to_dict() == {"prompt": 7, "completion": 3, "total": 10}

    def test_from_missing_dict_is_zero(self):
        assert TokenUsage.from_dict(None) == ZERO_USAGE


class TestPricingTable:
    """Test pricing resolution order."""

    def test_exact_model_entry_wins(self):
        pricing = PRICING_TABLE.get_pricing("gpt-4", "openai")
        assert pricing.input_per_million == Decimal("30.00")
        assert pricing.output_per_million == Decimal("60.00")

    def test_unknown_model_uses_provider_default(self):
        pricing = PRICING_TABLE.get_pricing("claude-next", "anthropic")
        assert pricing.input_per_million == Decimal("3.00")
        assert pricing.output_per_million == Decimal("15.00")

    def test_provider_lookup_is_case_insensitive(self):
        assert PRICING_TABLE.get_pricing("unknown", "GOOGLE") == PRICING_TABLE.get_pricing("unknown", "google")

    def test_unknown_model_and_provider_use_global_default(self):
        pricing = PRICING_TABLE.get_pricing("mystery", "mystery")
        assert pricing == PRICING_TABLE.default
        assert pricing.input_per_million == Decimal("5.00")
        assert pricing.output_per_million == Decimal("15.00")

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError, match="input_per_million cannot be negative"):
            ModelPricing(input_per_million=Decimal("-1"), output_per_million=Decimal("1"))


class TestCostCalculation:
    """Test cost calculation accuracy."""

    def test_known_model_cost(self):
        usage = TokenUsage(prompt_tokens=1000, completion_tokens=500)
        cost = calculate_cost("gpt-4o-mini", "openai", usage)
        assert cost == pytest.approx(0.00045)

    def test_one_million_tokens_each(self):
        usage = TokenUsage(prompt_tokens=1_000_000, completion_tokens=1_000_000)
        assert calculate_cost("gpt-4o", "openai", usage) == pytest.approx(20.0)

    def test_zero_usage_is_free(self):
        assert calculate_cost("gpt-4", "openai", ZERO_USAGE) == 0.0

    def test_missing_usage_is_free(self):
        assert calculate_cost("gpt-4", "openai", None) == 0.0

    def test_cost_is_not_rounded(self):
        usage = TokenUsage(prompt_tokens=1, completion_tokens=0)
        assert calculate_cost("gpt-4o-mini", "openai", usage) == pytest.approx(1.5e-07)

    def test_cost_is_monotonic_in_tokens(self):
        previous = 0.0
        for tokens in (0, 10, 100, 1000, 10000):
            cost = calculate_cost("claude-sonnet-4-20250514", "anthropic", TokenUsage(tokens, tokens))
            assert cost >= previous
            previous = cost

    def test_custom_table(self):
        table = PricingTable(
            default=ModelPricing(Decimal("1"), Decimal("2")),
            models={"cheap": ModelPricing(Decimal("0"), Decimal("0"))},
        )
        usage = TokenUsage(prompt_tokens=1_000_000, completion_tokens=1_000_000)
        assert calculate_cost("cheap", "openai", usage, table) == 0.0
        assert calculate_cost("other", "openai", usage, table) == pytest.approx(3.0)
