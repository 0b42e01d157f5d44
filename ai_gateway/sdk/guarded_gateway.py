"""
Guarded gateway client.

Dispatches chat requests in-process and records every call in the usage
ledger, without going through the HTTP API.
"""

from typing import Any, Dict, List, Optional, Union

from ai_gateway.config.loader import load_pricing_config
from ai_gateway.config.settings import Settings
from ai_gateway.core.dispatcher import Dispatcher, resolve_provider
from ai_gateway.core.errors import GatewayError
from ai_gateway.core.pricing import PRICING_TABLE
from ai_gateway.core.recorder import UsageRecorder
from ai_gateway.core.schema import Message, UnifiedRequest, UnifiedResponse
from ai_gateway.storage.repository import get_store


class GuardedGateway:
    """Gateway client that records usage entries.

    Wraps the dispatcher so each call leaves exactly one ledger entry,
    whether it succeeds or fails. Ledger failures never reach the caller;
    gateway errors are re-raised unchanged after recording.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        recorder: UsageRecorder,
        user_id: str,
        endpoint: str = "sdk",
    ):
        """Initialize guarded gateway client.

        Args:
            dispatcher: Dispatcher used for provider calls
            recorder: Recorder writing the usage ledger
            user_id: User identifier for tracking (required)
            endpoint: Endpoint label stored with each entry

        Raises:
            ValueError: If user_id is missing/empty
        """
        if not user_id or not user_id.strip():
            raise ValueError("user_id is required and cannot be empty")

        self.dispatcher = dispatcher
        self.recorder = recorder
        self.user_id = user_id
        self.endpoint = endpoint

    @classmethod
    def from_settings(cls, settings: Settings, user_id: str, endpoint: str = "sdk") -> "GuardedGateway":
        pricing = load_pricing_config(settings.PRICING_FILE) if settings.PRICING_FILE else PRICING_TABLE
        recorder = UsageRecorder(get_store(settings.LOGS_DIR), pricing)
        return cls(Dispatcher.from_settings(settings), recorder, user_id, endpoint)

    async def chat(
        self,
        provider: str,
        messages: List[Union[Message, Dict[str, Any]]],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs: Any
    ) -> UnifiedResponse:
        """Create chat completion with usage recording.

        Args:
            provider: Provider id or alias (required)
            messages: List of messages (required)
            model: Model identifier (optional for some providers)
            temperature: Sampling temperature (optional)
            max_tokens: Maximum tokens to generate (optional)
            **kwargs: Additional provider parameters

        Returns:
            Unified chat response

        Raises:
            ValueError: If messages is empty
            GatewayError: Propagated after the failure is recorded
        """
        if not messages:
            raise ValueError("messages is required and cannot be empty")

        request = UnifiedRequest(
            provider=provider,
            model=model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs
        )

        try:
            provider_name = resolve_provider(provider).value
        except GatewayError as e:
            await self.recorder.record(self.user_id, self.endpoint, provider, model, error=e.message)
            raise

        try:
            response = await self.dispatcher.dispatch(request)
        except GatewayError as e:
            await self.recorder.record(self.user_id, self.endpoint, provider_name, model, error=e.message)
            raise

        await self.recorder.record(self.user_id, self.endpoint, provider_name, model or response.model, response)
        return response

    async def aclose(self) -> None:
        await self.dispatcher.aclose()
