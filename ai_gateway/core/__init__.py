"""
Core modules for AI Gateway.

This package contains the unified chat schema, provider adapters,
dispatch, cost calculation and usage recording.
"""
