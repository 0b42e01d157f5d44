"""
Token usage accounting.

Holds provider-reported token counts in the shape the ledger stores them.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class TokenUsage:
    """Token usage data for cost calculation and the usage ledger.

    Counts are taken as reported by the provider; nothing is estimated here.
    The total is always derived, so ``total == prompt + completion`` holds
    for every ledger entry.
    """
    prompt_tokens: int
    completion_tokens: int

    def __post_init__(self):
        """Validate token counts are non-negative."""
        if self.prompt_tokens < 0:
            raise ValueError("prompt_tokens cannot be negative")
        if self.completion_tokens < 0:
            raise ValueError("completion_tokens cannot be negative")

    @property
    def total_tokens(self) -> int:
        """Total tokens used (prompt + completion)."""
        return self.prompt_tokens + self.completion_tokens

    def to_dict(self) -> Dict[str, int]:
        return {
            "prompt": self.prompt_tokens,
            "completion": self.completion_tokens,
            "total": self.total_tokens,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TokenUsage":
        data = data or {}
        return cls(
            prompt_tokens=int(data.get("prompt") or 0),
            completion_tokens=int(data.get("completion") or 0),
        )


ZERO_USAGE = TokenUsage(prompt_tokens=0, completion_tokens=0)
