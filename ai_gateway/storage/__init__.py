"""
Usage ledger storage.

Date-partitioned append logs plus the per-user summary document.
"""
