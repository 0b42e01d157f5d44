"""
Usage recording.

Turns each completed gateway call into one ledger entry. Recording never
fails the call it describes: every error is logged and dropped.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Optional

from ai_gateway.storage.models import UsageLogEntry
from ai_gateway.storage.repository import AnalyticsStore

from .pricing import PRICING_TABLE, PricingTable, calculate_cost
from .schema import UnifiedResponse
from .token_counter import ZERO_USAGE

logger = logging.getLogger(__name__)


class UsageRecorder:
    """Writes one usage entry per completed call to the ledger."""

    def __init__(self, store: AnalyticsStore, pricing: PricingTable = PRICING_TABLE):
        self.store = store
        self.pricing = pricing

    def build_entry(
        self,
        user_id: str,
        endpoint: str,
        provider: str,
        model: Optional[str],
        response: Optional[UnifiedResponse] = None,
        error: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> UsageLogEntry:
        """Build the ledger entry for a call.

        Token counts and cost are zero when the call reported no usage,
        e.g. a failure before any tokens were consumed.
        """
        model_name = model or (response.model if response is not None else None) or "unknown"
        usage = ZERO_USAGE
        cost = 0.0
        if response is not None and response.usage is not None:
            usage = response.usage.to_token_usage()
            cost = calculate_cost(model_name, provider, usage, self.pricing)

        if error is None and response is not None and response.error:
            error = str(response.error.get("message") or response.error)

        return UsageLogEntry(
            timestamp=timestamp or datetime.now(timezone.utc),
            user_id=user_id,
            endpoint=endpoint,
            provider=provider,
            model=model_name,
            usage=usage,
            cost=cost,
            success=response is not None and error is None,
            error=error,
        )

    async def record(
        self,
        user_id: str,
        endpoint: str,
        provider: str,
        model: Optional[str],
        response: Optional[UnifiedResponse] = None,
        error: Optional[str] = None,
    ) -> Optional[UsageLogEntry]:
        """Record one completed call (success or failure).

        Returns:
            The entry that was built, or None if even that failed
        """
        try:
            entry = self.build_entry(user_id, endpoint, provider, model, response, error)
        except Exception as e:
            logger.error(f"Failed to build usage entry for user {user_id}: {e}", exc_info=True)
            return None

        try:
            logger.info(f"Usage: {json.dumps(entry.to_dict())}")
        except Exception as e:
            logger.error(f"Failed to log usage entry for user {user_id}: {e}", exc_info=True)

        await self.write(entry)
        return entry

    async def write(self, entry: UsageLogEntry) -> None:
        """Persist an entry to the daily log and the user's summary."""
        try:
            await asyncio.to_thread(self.store.append_log, entry)
        except Exception as e:
            logger.error(f"Failed to write usage log file: {e}", exc_info=True)

        try:
            await asyncio.to_thread(self.store.update_summary, entry.user_id, entry)
        except Exception as e:
            logger.error(f"Failed to update user summary for {entry.user_id}: {e}", exc_info=True)
