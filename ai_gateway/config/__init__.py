"""
Configuration for AI Gateway.

Environment settings, logging setup and the pricing file loader.
"""
