"""
AI Gateway.

One chat-completion API in front of several LLM providers, with a
per-user usage and cost ledger.
"""

__version__ = "0.1.0"
