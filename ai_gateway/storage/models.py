"""
Data models for the usage ledger.

Defines the log entry and per-user summary records and their JSON form.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ai_gateway.core.token_counter import TokenUsage


def format_timestamp(moment: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a 'Z' suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass(frozen=True)
class UsageLogEntry:
    """Immutable record of one completed gateway call.

    Written once per call, success or failure, to the daily log. Once
    written, entries are never modified.
    """
    timestamp: datetime
    user_id: str
    endpoint: str
    provider: str
    model: str
    usage: TokenUsage
    cost: float
    success: bool
    error: Optional[str] = None

    def __post_init__(self):
        """Validate cost is non-negative and pin naive timestamps to UTC."""
        if self.cost < 0:
            raise ValueError("cost cannot be negative")
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=timezone.utc))

    @property
    def date(self) -> str:
        """UTC calendar date the entry belongs to (YYYY-MM-DD)."""
        return self.timestamp.astimezone(timezone.utc).strftime("%Y-%m-%d")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": format_timestamp(self.timestamp),
            "userId": self.user_id,
            "endpoint": self.endpoint,
            "provider": self.provider,
            "model": self.model,
            "tokens": self.usage.to_dict(),
            "cost": self.cost,
            "success": self.success,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageLogEntry":
        """Rebuild an entry from its JSON form.

        Raises:
            KeyError: If timestamp is missing
            ValueError: If a field cannot be parsed
        """
        return cls(
            timestamp=parse_timestamp(data["timestamp"]),
            user_id=str(data.get("userId") or "unknown"),
            endpoint=str(data.get("endpoint") or ""),
            provider=str(data.get("provider") or "unknown"),
            model=str(data.get("model") or "unknown"),
            usage=TokenUsage.from_dict(data.get("tokens")),
            cost=float(data.get("cost") or 0),
            success=bool(data.get("success")),
            error=data.get("error"),
        )


@dataclass
class UserSummary:
    """Running totals for one user, kept in the summary document."""
    first_seen: str
    last_seen: str
    total_requests: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0
    endpoint_counts: Dict[str, int] = field(default_factory=dict)
    model_counts: Dict[str, int] = field(default_factory=dict)
    provider_counts: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def first_seen_at(cls, entry: UsageLogEntry) -> "UserSummary":
        timestamp = format_timestamp(entry.timestamp)
        return cls(first_seen=timestamp, last_seen=timestamp)

    def apply(self, entry: UsageLogEntry) -> None:
        """Fold one log entry into the totals."""
        self.total_requests += 1
        self.total_tokens += entry.usage.total_tokens
        self.total_cost += entry.cost
        self.last_seen = format_timestamp(entry.timestamp)

        self.endpoint_counts[entry.endpoint] = self.endpoint_counts.get(entry.endpoint, 0) + 1
        self.model_counts[entry.model] = self.model_counts.get(entry.model, 0) + 1
        self.provider_counts[entry.provider] = self.provider_counts.get(entry.provider, 0) + 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "firstSeen": self.first_seen,
            "lastSeen": self.last_seen,
            "totalRequests": self.total_requests,
            "totalTokens": self.total_tokens,
            "totalCost": self.total_cost,
            "endpointCounts": dict(self.endpoint_counts),
            "modelCounts": dict(self.model_counts),
            "providerCounts": dict(self.provider_counts),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserSummary":
        first_seen = str(data.get("firstSeen") or "")
        return cls(
            first_seen=first_seen,
            last_seen=str(data.get("lastSeen") or first_seen),
            total_requests=int(data.get("totalRequests") or 0),
            total_tokens=int(data.get("totalTokens") or 0),
            total_cost=float(data.get("totalCost") or 0),
            endpoint_counts=dict(data.get("endpointCounts") or {}),
            model_counts=dict(data.get("modelCounts") or {}),
            provider_counts=dict(data.get("providerCounts") or {}),
        )
