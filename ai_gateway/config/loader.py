"""
Pricing configuration loading.

Reads the pricing table from a YAML file so new models and providers are
added by data, not code.
"""

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict

import yaml

from ai_gateway.core.pricing import ModelPricing, PricingTable


def load_pricing_config(path: str) -> PricingTable:
    """Load and validate a pricing table from a YAML file.

    Expected layout (rates are per million tokens)::

        default:
          input: 5.0
          output: 15.0
        providers:
          anthropic: {input: 3.0, output: 15.0}
        models:
          gpt-4o-mini: {input: 0.15, output: 0.6}

    Strict validation ensures a typo never silently prices calls at the
    wrong rate.

    Args:
        path: Path to YAML pricing file

    Returns:
        Validated PricingTable

    Raises:
        FileNotFoundError: If pricing file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Pricing config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in pricing file {path}: {e}")

    if not raw_config:
        raise ValueError("Pricing file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Pricing file must contain a mapping")

    allowed_top_keys = {'default', 'providers', 'models'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown pricing keys: {unknown_keys}")

    if 'default' not in raw_config:
        raise ValueError("Missing required 'default' section")
    default = _parse_rates(raw_config['default'], "default")

    providers = _parse_section(raw_config.get('providers') or {}, "providers")
    providers = {name.lower(): rates for name, rates in providers.items()}
    models = _parse_section(raw_config.get('models') or {}, "models")

    return PricingTable(default=default, providers=providers, models=models)


def _parse_section(data: Any, path: str) -> Dict[str, ModelPricing]:
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must be a dictionary")
    return {
        str(name): _parse_rates(rates, f"{path}.{name}")
        for name, rates in data.items()
    }


def _parse_rates(data: Any, path: str) -> ModelPricing:
    """Parse and validate one input/output rate pair.

    Args:
        data: Rate mapping
        path: Path for error messages

    Returns:
        Validated ModelPricing

    Raises:
        ValueError: If the rates are invalid
    """
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must be a dictionary")

    allowed_keys = {'input', 'output'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    rates = {}
    for key in ('input', 'output'):
        if key not in data:
            raise ValueError(f"Missing required '{key}' rate in {path}")
        value = data[key]
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise ValueError(f"'{key}' rate in {path} must be a number")
        try:
            rate = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"'{key}' rate in {path} must be a number")
        if not rate.is_finite() or rate < 0:
            raise ValueError(f"'{key}' rate in {path} must be >= 0")
        rates[key] = rate

    return ModelPricing(
        input_per_million=rates['input'],
        output_per_million=rates['output'],
    )
