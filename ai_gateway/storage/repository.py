"""
Repository pattern for the usage ledger.

Handles the daily append logs and the per-user summary document.
"""

import json
import logging
import math
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union

from .files import (
    append_line,
    daily_log_path,
    read_json_document,
    summary_path,
    write_json_document,
)
from .models import UsageLogEntry, UserSummary

logger = logging.getLogger(__name__)

# today plus the two preceding UTC days
RECENT_LOG_DAYS = 3

# no file in the window holds anything older
MAX_RECENT_LOG_HOURS = RECENT_LOG_DAYS * 24


class AnalyticsStore:
    """Durable per-user summaries and date-partitioned usage logs.

    All writes on one store go through a single lock: the summary update is
    a read-modify-write of the whole document, so overlapping updates would
    otherwise lose increments. The document itself is replaced atomically.
    """

    def __init__(self, logs_dir: Union[str, Path]):
        """Initialize the store with its directory.

        Args:
            logs_dir: Directory holding the daily logs and summary document
        """
        self.logs_dir = Path(logs_dir)
        self._write_lock = threading.Lock()

    def ensure_directory(self) -> None:
        self.logs_dir.mkdir(parents=True, exist_ok=True)

    def append_log(self, entry: UsageLogEntry) -> None:
        """Append one entry to the log file of its UTC calendar date.

        Args:
            entry: The usage entry to record
        """
        line = json.dumps(entry.to_dict())
        with self._write_lock:
            append_line(daily_log_path(self.logs_dir, entry.date), line)

    def update_summary(self, user_id: str, entry: UsageLogEntry) -> UserSummary:
        """Fold an entry into the user's summary and persist the document.

        Args:
            user_id: User the entry belongs to
            entry: The usage entry to fold in

        Returns:
            The user's updated summary
        """
        path = summary_path(self.logs_dir)
        with self._write_lock:
            document = read_json_document(path)
            summaries = self._decode_summaries(document)

            summary = summaries.get(user_id)
            if summary is None:
                summary = UserSummary.first_seen_at(entry)
                summaries[user_id] = summary
            summary.apply(entry)

            write_json_document(path, {uid: s.to_dict() for uid, s in summaries.items()})
        return summary

    def get_user_stats(self, user_id: str) -> Optional[UserSummary]:
        """Summary for one user, or None if the user was never seen."""
        return self.get_all_user_stats().get(user_id)

    def get_all_user_stats(self) -> Dict[str, UserSummary]:
        """All user summaries; empty when the document is absent or corrupt."""
        document = read_json_document(summary_path(self.logs_dir))
        return self._decode_summaries(document)

    def get_recent_logs(self, hours: float = 24, now: Optional[datetime] = None) -> List[UsageLogEntry]:
        """Entries at most `hours` old, newest first.

        Only today's and the two preceding UTC days' files are read, so
        nothing older than that window is ever returned whatever `hours` is.

        Args:
            hours: Maximum entry age in hours; values above
                MAX_RECENT_LOG_HOURS (infinity included) are capped
            now: Reference time (defaults to the current UTC time)

        Returns:
            List of usage entries ordered by timestamp (newest first)

        Raises:
            ValueError: If hours is NaN
        """
        if math.isnan(hours):
            raise ValueError("hours must be a number")
        hours = min(hours, MAX_RECENT_LOG_HOURS)

        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        max_age = timedelta(hours=hours)

        entries: List[UsageLogEntry] = []
        for days_back in range(RECENT_LOG_DAYS):
            date = (now - timedelta(days=days_back)).astimezone(timezone.utc).strftime("%Y-%m-%d")
            path = daily_log_path(self.logs_dir, date)
            try:
                with open(path, 'rb') as f:
                    lines = f.readlines()
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Could not read usage log {path}: {e}")
                continue

            for line in lines:
                if not line.strip():
                    continue
                try:
                    entry = UsageLogEntry.from_dict(json.loads(line.decode("utf-8")))
                except (UnicodeDecodeError, ValueError, KeyError, TypeError):
                    continue
                if now - entry.timestamp <= max_age:
                    entries.append(entry)

        return sorted(entries, key=lambda e: e.timestamp, reverse=True)

    def _decode_summaries(self, document: Dict) -> Dict[str, UserSummary]:
        summaries = {}
        for user_id, data in document.items():
            if not isinstance(data, dict):
                logger.warning(f"Skipping malformed summary for user {user_id!r}")
                continue
            try:
                summaries[user_id] = UserSummary.from_dict(data)
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed summary for user {user_id!r}: {e}")
        return summaries


# Global store instance
_default_store: Optional[AnalyticsStore] = None


def get_store(logs_dir: Union[str, Path] = "/tmp/logs") -> AnalyticsStore:
    """Get a store instance.

    Returns one shared AnalyticsStore per process so every writer goes
    through the same lock. A different directory replaces the shared store.

    Args:
        logs_dir: Directory holding the ledger files

    Returns:
        An instance of AnalyticsStore
    """
    global _default_store
    if _default_store is None or _default_store.logs_dir != Path(logs_dir):
        _default_store = AnalyticsStore(logs_dir)
    return _default_store
