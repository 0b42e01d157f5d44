"""
Tests for the HTTP API.

The app runs in-process with a tmp ledger and a dispatcher whose upstream
calls are answered by an httpx.MockTransport.
"""

import json
import shutil
import tempfile

import httpx
import pytest
from fastapi.testclient import TestClient

from ai_gateway.api import create_app
from ai_gateway.config.settings import Settings
from ai_gateway.core.dispatcher import Dispatcher
from ai_gateway.storage.repository import AnalyticsStore

SECRET = "test-secret"
AUTH = {"Authorization": f"Bearer {SECRET}", "X-User-Id": "alice"}

OPENAI_COMPLETION = {
    "id": "chatcmpl-1",
    "object": "chat.completion",
    "created": 1700000000,
    "model": "gpt-4o-mini",
    "choices": [{
        "index": 0,
        "message": {"role": "assistant", "content": "Hi there"},
        "finish_reason": "stop",
    }],
    "usage": {"prompt_tokens": 5, "completion_tokens": 2, "total_tokens": 7},
}

ANTHROPIC_MESSAGE = {
    "id": "msg_1",
    "type": "message",
    "role": "assistant",
    "model": "claude-sonnet-4-20250514",
    "content": [{"type": "text", "text": "Hello from Claude"}],
    "stop_reason": "end_turn",
    "usage": {"input_tokens": 10, "output_tokens": 3},
}

GEMINI_RESPONSE = {
    "candidates": [{"content": {"role": "model", "parts": [{"text": "Hello from Gemini"}]}, "finishReason": "STOP"}],
    "usageMetadata": {"promptTokenCount": 4, "candidatesTokenCount": 6, "totalTokenCount": 10},
    "modelVersion": "gemini-2.0-flash",
    "responseId": "gem-1",
}

CHAT_BODY = {"messages": [{"role": "user", "content": "Hello"}]}


def upstream(request: httpx.Request) -> httpx.Response:
    """Fake providers, routed by host."""
    host = request.url.host
    if host == "api.openai.com":
        if request.url.path.endswith("/audio/transcriptions"):
            return httpx.Response(200, json={"text": "transcribed words"})
        return httpx.Response(200, json=OPENAI_COMPLETION)
    if host == "api.anthropic.com":
        return httpx.Response(200, json=ANTHROPIC_MESSAGE)
    if host == "generativelanguage.googleapis.com":
        return httpx.Response(200, json=GEMINI_RESPONSE)
    return httpx.Response(404)


class TestAPI:
    """Test gateway routes end to end."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.store = AnalyticsStore(self.temp_dir)
        self.client = self._client()

    def teardown_method(self):
        """Clean up test environment."""
        self.client.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _client(self, handler=upstream, **overrides) -> TestClient:
        values = {
            "API_SECRET": SECRET,
            "OPENAI_API_KEY": "sk-test",
            "ANTHROPIC_API_KEY": "ak-test",
            "GOOGLE_API_KEY": "g-test",
            "LOGS_DIR": self.temp_dir,
        }
        values.update(overrides)
        settings = Settings(_env_file=None, **values)
        dispatcher = Dispatcher.from_settings(
            settings, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )
        app = create_app(settings=settings, dispatcher=dispatcher, store=self.store)
        return TestClient(app)

    def test_missing_secret_refuses_to_start(self):
        with pytest.raises(ValueError, match="API_SECRET"):
            create_app(settings=Settings(_env_file=None, API_SECRET=None, LOGS_DIR=self.temp_dir))

    def test_health_needs_no_auth(self):
        response = self.client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["providers"] == {"openai": True, "anthropic": True, "google": True}
        assert body["hasAPISecret"] is True

    def test_missing_authorization(self):
        response = self.client.post("/api/v1/chat", json={"provider": "openai", **CHAT_BODY})
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized: Missing or invalid Authorization header"}

    def test_wrong_secret(self):
        response = self.client.post(
            "/api/v1/chat",
            json={"provider": "openai", **CHAT_BODY},
            headers={"Authorization": "Bearer nope"},
        )
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized: Invalid API secret"}

    def test_unknown_route(self):
        response = self.client.get("/api/nowhere", headers=AUTH)
        assert response.status_code == 404
        assert response.json()["error"] == "Not Found"

    def test_unified_chat_openai(self):
        response = self.client.post("/api/v1/chat", json={"provider": "openai", **CHAT_BODY}, headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert body["provider"] == "openai"
        assert body["choices"][0] == {"role": "assistant", "content": "Hi there", "finishReason": "stop"}
        assert body["usage"] == {"promptTokens": 5, "completionTokens": 2, "totalTokens": 7}

        summary = self.store.get_user_stats("alice")
        assert summary.total_requests == 1
        assert summary.total_tokens == 7
        assert summary.endpoint_counts == {"/api/v1/chat": 1}

    def test_unified_chat_with_alias(self):
        response = self.client.post("/api/v1/chat", json={"provider": "gemini", **CHAT_BODY}, headers=AUTH)

        assert response.status_code == 200
        assert response.json()["choices"][0]["content"] == "Hello from Gemini"
        assert self.store.get_user_stats("alice").provider_counts == {"google": 1}

    def test_unified_chat_invalid_provider(self):
        response = self.client.post("/api/v1/chat", json={"provider": "foo", **CHAT_BODY}, headers=AUTH)

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Unsupported provider: foo"
        logs = self.store.get_recent_logs(1)
        assert len(logs) == 1
        assert logs[0].success is False

    def test_empty_messages_rejected(self):
        response = self.client.post("/api/v1/chat", json={"provider": "openai", "messages": []}, headers=AUTH)
        assert response.status_code == 422

    def test_missing_provider_key(self):
        self.client.close()
        self.client = self._client(GOOGLE_API_KEY=None)

        response = self.client.post("/api/google/chat", json=CHAT_BODY, headers=AUTH)

        assert response.status_code == 503
        assert response.json()["error"]["type"] == "configuration_error"

    def test_upstream_error_passed_through(self):
        body = {"error": {"message": "Rate limit reached", "type": "rate_limit_error"}}
        self.client.close()
        self.client = self._client(handler=lambda request: httpx.Response(429, json=body))

        response = self.client.post("/api/chat/completions", json=CHAT_BODY, headers=AUTH)

        assert response.status_code == 429
        assert response.json() == body
        logs = self.store.get_recent_logs(1)
        assert logs[0].error == "Rate limit reached"

    def test_openai_endpoint_returns_provider_body(self):
        response = self.client.post(
            "/api/chat/completions", json={"model": "gpt-4o-mini", **CHAT_BODY}, headers=AUTH
        )
        assert response.status_code == 200
        assert response.json() == OPENAI_COMPLETION

    def test_openai_endpoint_accepts_tool_call_conversation(self):
        sent = []

        def handler(request):
            sent.append(json.loads(request.content))
            return httpx.Response(200, json=OPENAI_COMPLETION)

        self.client.close()
        self.client = self._client(handler=handler)
        messages = [
            {"role": "developer", "content": "Use tools."},
            {"role": "user", "content": "Weather in Paris?"},
            {"role": "assistant", "content": None, "tool_calls": [{
                "id": "call_1", "type": "function",
                "function": {"name": "get_weather", "arguments": "{}"},
            }]},
            {"role": "tool", "tool_call_id": "call_1", "content": "18C"},
        ]

        response = self.client.post(
            "/api/chat/completions", json={"model": "gpt-4o", "messages": messages}, headers=AUTH
        )

        assert response.status_code == 200
        assert response.json() == OPENAI_COMPLETION
        assert sent[0]["messages"] == messages
        assert self.store.get_user_stats("alice").model_counts == {"gpt-4o": 1}

    def test_unified_endpoint_keeps_strict_roles(self):
        body = {"provider": "openai", "messages": [{"role": "developer", "content": "x"}]}
        response = self.client.post("/api/v1/chat", json=body, headers=AUTH)
        assert response.status_code == 422

    def test_anthropic_endpoint(self):
        response = self.client.post("/api/anthropic/messages", json=CHAT_BODY, headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert body["provider"] == "anthropic"
        assert body["choices"][0]["finishReason"] == "stop"
        assert body["usage"]["totalTokens"] == 13

    def test_google_endpoint(self):
        response = self.client.post("/api/google/chat", json=CHAT_BODY, headers=AUTH)
        assert response.status_code == 200
        assert response.json()["id"] == "gem-1"

    def test_oversized_request_rejected(self):
        self.client.close()
        self.client = self._client(MAX_REQUEST_BYTES=64)

        response = self.client.post(
            "/api/v1/chat",
            json={"provider": "openai", "messages": [{"role": "user", "content": "x" * 500}]},
            headers=AUTH,
        )
        assert response.status_code == 413
        assert response.json()["error"]["type"] == "request_too_large"

    def test_transcription(self):
        response = self.client.post(
            "/api/audio/transcriptions",
            files={"file": ("clip.mp3", b"ID3audio", "audio/mpeg")},
            headers=AUTH,
        )
        assert response.status_code == 200
        assert response.json() == {"text": "transcribed words"}
        assert self.store.get_user_stats("alice").model_counts == {"whisper-1": 1}

    def test_transcription_without_file(self):
        response = self.client.post("/api/audio/transcriptions", data={"model": "whisper-1"}, headers=AUTH)
        assert response.status_code == 400
        assert response.json() == {"error": {"message": "No audio file provided"}}

    def test_user_defaults_to_unknown(self):
        headers = {"Authorization": f"Bearer {SECRET}"}
        self.client.post("/api/v1/chat", json={"provider": "openai", **CHAT_BODY}, headers=headers)
        assert self.store.get_user_stats("unknown").total_requests == 1


class TestAnalyticsAPI:
    """Test the read-only analytics routes."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.store = AnalyticsStore(self.temp_dir)
        settings = Settings(_env_file=None, API_SECRET=SECRET, OPENAI_API_KEY="sk-test", LOGS_DIR=self.temp_dir)
        dispatcher = Dispatcher.from_settings(
            settings, http_client=httpx.AsyncClient(transport=httpx.MockTransport(upstream))
        )
        self.client = TestClient(create_app(settings=settings, dispatcher=dispatcher, store=self.store))
        for user in ("alice", "bob", "alice"):
            self.client.post(
                "/api/v1/chat",
                json={"provider": "openai", **CHAT_BODY},
                headers={"Authorization": f"Bearer {SECRET}", "X-User-Id": user},
            )

    def teardown_method(self):
        """Clean up test environment."""
        self.client.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_analytics_requires_auth(self):
        assert self.client.get("/api/analytics/users").status_code == 401

    def test_user_stats(self):
        response = self.client.get("/api/analytics/users/alice", headers=AUTH)
        assert response.status_code == 200
        body = response.json()
        assert body["userId"] == "alice"
        assert body["totalRequests"] == 2
        assert body["totalTokens"] == 14

    def test_unknown_user(self):
        response = self.client.get("/api/analytics/users/nobody", headers=AUTH)
        assert response.status_code == 404
        assert response.json() == {"error": "User not found", "userId": "nobody"}

    def test_all_users(self):
        body = self.client.get("/api/analytics/users", headers=AUTH).json()
        assert set(body["users"]) == {"alice", "bob"}
        assert body["totals"]["totalRequests"] == 3

    def test_recent_logs(self):
        body = self.client.get("/api/analytics/logs", params={"hours": 1}, headers=AUTH).json()
        assert body["hours"] == 1
        assert body["count"] == 3
        assert body["logs"][0]["tokens"] == {"prompt": 5, "completion": 2, "total": 7}

    def test_recent_logs_caps_huge_window(self):
        response = self.client.get("/api/analytics/logs", params={"hours": "1e12"}, headers=AUTH)
        assert response.status_code == 200
        body = response.json()
        assert body["hours"] == 72
        assert body["count"] == 3

    def test_recent_logs_rejects_non_positive_hours(self):
        response = self.client.get("/api/analytics/logs", params={"hours": 0}, headers=AUTH)
        assert response.status_code == 422

    def test_summary(self):
        body = self.client.get("/api/analytics/summary", headers=AUTH).json()
        assert body["totals"]["users"] == 2
        assert body["last24Hours"]["requests"] == 3
        assert body["modelCounts"] == {"gpt-4o-mini": 3}
