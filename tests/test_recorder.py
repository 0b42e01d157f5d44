"""
Unit tests for usage recording.

Tests entry construction, cost attribution and that ledger failures never
reach the caller.
"""

import asyncio
import logging
import shutil
import tempfile
from unittest.mock import MagicMock, patch

import pytest

from ai_gateway.core.recorder import UsageRecorder
from ai_gateway.core.schema import Choice, UnifiedResponse, Usage
from ai_gateway.storage.repository import AnalyticsStore


def make_response(prompt: int = 1000, completion: int = 500, total: int = None) -> UnifiedResponse:
    return UnifiedResponse(
        id="resp-1",
        model="gpt-4o-mini-2024-07-18",
        provider="openai",
        choices=[Choice(content="ok", finish_reason="stop")],
        usage=Usage(
            prompt_tokens=prompt,
            completion_tokens=completion,
            total_tokens=prompt + completion if total is None else total,
        ),
    )


class TestBuildEntry:
    """Test ledger entry construction."""

    def setup_method(self):
        self.recorder = UsageRecorder(MagicMock())

    def test_success_entry(self):
        entry = self.recorder.build_entry("alice", "/api/v1/chat", "openai", "gpt-4o-mini", make_response())

        assert entry.success is True
        assert entry.error is None
        assert entry.model == "gpt-4o-mini"
        assert entry.usage.total_tokens == 1500
        assert entry.cost == pytest.approx(0.00045)

    def test_model_falls_back_to_response_model(self):
        entry = self.recorder.build_entry("alice", "/api/v1/chat", "openai", None, make_response())
        assert entry.model == "gpt-4o-mini-2024-07-18"

    def test_failure_entry_has_zero_usage(self):
        entry = self.recorder.build_entry("alice", "/api/v1/chat", "anthropic", None, error="Overloaded")

        assert entry.success is False
        assert entry.error == "Overloaded"
        assert entry.model == "unknown"
        assert entry.usage.total_tokens == 0
        assert entry.cost == 0.0

    def test_total_is_prompt_plus_completion(self):
        # Provider-reported total disagrees with the parts
        entry = self.recorder.build_entry(
            "alice", "/api/v1/chat", "openai", "gpt-4o", make_response(10, 5, total=99)
        )
        assert entry.usage.to_dict() == {"prompt": 10, "completion": 5, "total": 15}


class TestRecord:
    """Test asynchronous recording against a real store."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.store = AnalyticsStore(self.temp_dir)
        self.recorder = UsageRecorder(self.store)

    def teardown_method(self):
        """Clean up test environment."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    @pytest.mark.asyncio
    async def test_record_writes_log_and_summary(self):
        entry = await self.recorder.record("alice", "/api/v1/chat", "openai", "gpt-4o-mini", make_response())

        assert entry is not None
        summary = self.store.get_user_stats("alice")
        assert summary.total_requests == 1
        assert summary.total_tokens == 1500
        assert len(self.store.get_recent_logs(1)) == 1

    @pytest.mark.asyncio
    async def test_record_logs_entry(self, caplog):
        with caplog.at_level(logging.INFO, logger="ai_gateway.core.recorder"):
            await self.recorder.record("alice", "/api/v1/chat", "openai", "gpt-4o", make_response())
        assert any(record.getMessage().startswith("Usage: ") for record in caplog.records)

    @pytest.mark.asyncio
    async def test_concurrent_records(self):
        calls = 25
        await asyncio.gather(*[
            self.recorder.record("alice", "/api/v1/chat", "openai", "gpt-4o", make_response(1, 1))
            for _ in range(calls)
        ])

        summary = self.store.get_user_stats("alice")
        assert summary.total_requests == calls
        assert summary.total_tokens == calls * 2
        assert len(self.store.get_recent_logs(1)) == calls


class TestRecordFailures:
    """Ledger failures are logged and swallowed."""

    @pytest.mark.asyncio
    async def test_store_failures_swallowed(self, caplog):
        store = MagicMock()
        store.append_log.side_effect = OSError("disk full")
        store.update_summary.side_effect = OSError("disk full")
        recorder = UsageRecorder(store)

        entry = await recorder.record("alice", "/api/v1/chat", "openai", "gpt-4o", make_response())

        assert entry is not None
        store.append_log.assert_called_once()
        store.update_summary.assert_called_once()
        assert "Failed to write usage log file" in caplog.text
        assert "Failed to update user summary" in caplog.text

    @pytest.mark.asyncio
    async def test_unserializable_entry_log_swallowed(self, caplog):
        store = MagicMock()
        recorder = UsageRecorder(store)

        with patch("ai_gateway.core.recorder.json.dumps", side_effect=TypeError("not serializable")):
            entry = await recorder.record("alice", "/api/v1/chat", "openai", "gpt-4o", make_response())

        assert entry is not None
        store.update_summary.assert_called_once()
        assert "Failed to log usage entry" in caplog.text

    @pytest.mark.asyncio
    async def test_summary_still_updated_when_log_write_fails(self):
        store = MagicMock()
        store.append_log.side_effect = OSError("disk full")
        recorder = UsageRecorder(store)

        await recorder.record("alice", "/api/v1/chat", "openai", "gpt-4o", make_response())

        store.update_summary.assert_called_once()
