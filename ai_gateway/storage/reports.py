"""
Read-only usage reports built from the ledger.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from .models import UserSummary
from .repository import AnalyticsStore


def aggregate_totals(summaries: Mapping[str, UserSummary]) -> Dict[str, Any]:
    """Totals across every user summary."""
    return {
        "users": len(summaries),
        "totalRequests": sum(s.total_requests for s in summaries.values()),
        "totalTokens": sum(s.total_tokens for s in summaries.values()),
        "totalCost": sum(s.total_cost for s in summaries.values()),
    }


def all_user_report(store: AnalyticsStore) -> Dict[str, Any]:
    summaries = store.get_all_user_stats()
    return {
        "users": {user_id: s.to_dict() for user_id, s in summaries.items()},
        "totals": aggregate_totals(summaries),
    }


def usage_summary(store: AnalyticsStore, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Per-user totals, last-24h activity and per-model call counts.

    Model counts cover the whole ledger, taken from the user summaries.
    """
    now = now or datetime.now(timezone.utc)
    summaries = store.get_all_user_stats()
    recent = store.get_recent_logs(24, now=now)

    model_counts: Dict[str, int] = {}
    for summary in summaries.values():
        for model, count in summary.model_counts.items():
            model_counts[model] = model_counts.get(model, 0) + count

    return {
        "generatedAt": now.astimezone(timezone.utc).isoformat(),
        "totals": aggregate_totals(summaries),
        "users": {
            user_id: {
                "totalRequests": s.total_requests,
                "totalTokens": s.total_tokens,
                "totalCost": s.total_cost,
                "lastSeen": s.last_seen,
            }
            for user_id, s in summaries.items()
        },
        "last24Hours": {
            "requests": len(recent),
            "failures": sum(1 for e in recent if not e.success),
            "tokens": sum(e.usage.total_tokens for e in recent),
            "cost": sum(e.cost for e in recent),
            "activeUsers": len({e.user_id for e in recent}),
        },
        "modelCounts": dict(sorted(model_counts.items(), key=lambda kv: kv[1], reverse=True)),
    }
