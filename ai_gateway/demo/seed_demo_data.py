# ai_gateway/demo/seed_demo_data.py

from datetime import datetime, timedelta, timezone

from ai_gateway.core.pricing import calculate_cost
from ai_gateway.core.token_counter import TokenUsage, ZERO_USAGE
from ai_gateway.storage.models import UsageLogEntry
from ai_gateway.storage.repository import AnalyticsStore

# (user, minutes ago, endpoint, provider, model, prompt, completion, error)
DEMO_CALLS = [
    ("demo-user-1", 5, "/api/v1/chat", "openai", "gpt-4o-mini", 1200, 300, None),
    ("demo-user-1", 45, "/api/chat/completions", "openai", "gpt-4o", 4000, 1000, None),
    ("demo-user-1", 90, "/api/anthropic/messages", "anthropic", "claude-sonnet-4-20250514", 2500, 800, None),
    ("demo-user-2", 15, "/api/google/chat", "google", "gemini-2.0-flash", 900, 250, None),
    ("demo-user-2", 120, "/api/v1/chat", "anthropic", "claude-sonnet-4-20250514", 0, 0, "overloaded_error"),
]


def seed_demo_data(store: AnalyticsStore) -> int:
    """Write the demo calls through the store; returns the number written."""
    now = datetime.now(timezone.utc)
    for user_id, minutes_ago, endpoint, provider, model, prompt, completion, error in DEMO_CALLS:
        usage = ZERO_USAGE if error else TokenUsage(prompt_tokens=prompt, completion_tokens=completion)
        entry = UsageLogEntry(
            timestamp=now - timedelta(minutes=minutes_ago),
            user_id=user_id,
            endpoint=endpoint,
            provider=provider,
            model=model,
            usage=usage,
            cost=0.0 if error else calculate_cost(model, provider, usage),
            success=error is None,
            error=error,
        )
        store.append_log(entry)
        store.update_summary(user_id, entry)
    return len(DEMO_CALLS)


if __name__ == "__main__":
    from ai_gateway.config.settings import get_settings

    count = seed_demo_data(AnalyticsStore(get_settings().LOGS_DIR))
    print(f"Demo usage data inserted ({count} entries)")
