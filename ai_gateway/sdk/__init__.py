"""
SDK for AI Gateway.

Provides programmatic access to the gateway with usage recording.
"""

from .guarded_gateway import GuardedGateway

__all__ = ["GuardedGateway"]
