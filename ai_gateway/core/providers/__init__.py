"""
Provider adapters.

One translation unit per upstream wire protocol.
"""

from .anthropic_adapter import AnthropicAdapter
from .base import ProviderAdapter
from .google_adapter import GoogleAdapter
from .openai_adapter import OpenAIAdapter

__all__ = ["AnthropicAdapter", "GoogleAdapter", "OpenAIAdapter", "ProviderAdapter"]
