"""
Pricing calculations and rate management.

Handles cost computations for models served by the supported providers.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional

from .token_counter import TokenUsage

TOKENS_PER_MILLION = Decimal("1000000")


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing for a model, in currency units per million tokens."""
    input_per_million: Decimal  # Cost per 1M prompt tokens
    output_per_million: Decimal  # Cost per 1M completion tokens

    def __post_init__(self):
        """Validate rates are non-negative."""
        if self.input_per_million < 0:
            raise ValueError("input_per_million cannot be negative")
        if self.output_per_million < 0:
            raise ValueError("output_per_million cannot be negative")


@dataclass(frozen=True)
class PricingTable:
    """Pricing data with model, provider and global fallbacks."""
    default: ModelPricing
    providers: Dict[str, ModelPricing] = field(default_factory=dict)
    models: Dict[str, ModelPricing] = field(default_factory=dict)

    def get_pricing(self, model: Optional[str], provider: Optional[str]) -> ModelPricing:
        """Get pricing for a model served by a provider.

        Resolution order:
        1. Exact model entry
        2. Provider default
        3. Global default

        Args:
            model: Model identifier
            provider: Canonical provider identifier

        Returns:
            ModelPricing for the model
        """
        if model and model in self.models:
            return self.models[model]
        if provider and provider.lower() in self.providers:
            return self.providers[provider.lower()]
        return self.default


def _rates(input_rate: str, output_rate: str) -> ModelPricing:
    return ModelPricing(
        input_per_million=Decimal(input_rate),
        output_per_million=Decimal(output_rate),
    )


# Built-in table; a YAML pricing file replaces it at startup
# (see ai_gateway.config.loader.load_pricing_config).
OPENAI_DEFAULT = _rates("5.00", "15.00")

PRICING_TABLE = PricingTable(
    default=OPENAI_DEFAULT,
    providers={
        "openai": OPENAI_DEFAULT,
        "anthropic": _rates("3.00", "15.00"),
        "google": _rates("0.075", "0.30"),
    },
    models={
        "gpt-4": _rates("30.00", "60.00"),
        "gpt-4o": _rates("5.00", "15.00"),
        "gpt-4o-mini": _rates("0.15", "0.60"),
        "gpt-5": _rates("10.00", "30.00"),
        "o1-preview": _rates("15.00", "60.00"),
        "o1-mini": _rates("3.00", "12.00"),
        "gpt-3.5-turbo": _rates("0.50", "1.50"),
        "claude-3-opus-20240229": _rates("15.00", "75.00"),
        "claude-3-5-haiku-20241022": _rates("0.80", "4.00"),
        "claude-sonnet-4-20250514": _rates("3.00", "15.00"),
        "gemini-1.5-pro": _rates("1.25", "5.00"),
        "gemini-1.5-flash": _rates("0.075", "0.30"),
        "gemini-2.0-flash": _rates("0.10", "0.40"),
    },
)


def calculate_cost(
    model: Optional[str],
    provider: Optional[str],
    usage: Optional[TokenUsage],
    table: PricingTable = PRICING_TABLE,
) -> float:
    """Calculate the cost of a call from provider-reported token counts.

    Computed exactly in Decimal and converted to float; no rounding is
    applied, so per-call costs sum to the ledger totals.

    Args:
        model: Model identifier
        provider: Canonical provider identifier
        usage: Token usage data, or None when the call reported none
        table: Pricing table to resolve rates from

    Returns:
        Total cost; 0.0 when no usage is available
    """
    if usage is None:
        return 0.0

    pricing = table.get_pricing(model, provider)

    # Prompt cost: (tokens / 1M) * input rate
    prompt_cost = (Decimal(usage.prompt_tokens) / TOKENS_PER_MILLION) * pricing.input_per_million

    # Completion cost: (tokens / 1M) * output rate
    completion_cost = (Decimal(usage.completion_tokens) / TOKENS_PER_MILLION) * pricing.output_per_million

    return float(prompt_cost + completion_cost)
