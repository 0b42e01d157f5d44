"""
HTTP API for AI Gateway.
"""

from .app import create_app

__all__ = ["create_app"]
