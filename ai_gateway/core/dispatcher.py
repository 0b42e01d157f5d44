"""
Provider dispatch.

Resolves a provider identifier to its adapter, performs the upstream call
under one timeout and size policy, and turns the outcome into a unified
response or a gateway error.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ai_gateway.config.settings import Settings

from .errors import (
    ConfigurationError,
    ErrorKind,
    GatewayError,
    InternalError,
    InvalidProviderError,
    RequestTooLargeError,
    UpstreamError,
    error_payload,
)
from .providers import AnthropicAdapter, GoogleAdapter, OpenAIAdapter, ProviderAdapter
from .schema import Provider, UnifiedRequest, UnifiedResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 190.0
DEFAULT_MAX_REQUEST_BYTES = 50 * 1024 * 1024
DEFAULT_TRANSCRIPTION_MODEL = "whisper-1"

PROVIDER_ALIASES: Dict[str, Provider] = {
    "openai": Provider.OPENAI,
    "anthropic": Provider.ANTHROPIC,
    "claude": Provider.ANTHROPIC,
    "google": Provider.GOOGLE,
    "gemini": Provider.GOOGLE,
}


def resolve_provider(identifier: Any) -> Provider:
    """Map a caller-supplied provider id or alias to a Provider.

    Raises:
        InvalidProviderError: If the id is not in the alias table
    """
    if isinstance(identifier, Provider):
        return identifier
    if not isinstance(identifier, str):
        raise InvalidProviderError(str(identifier))
    try:
        return PROVIDER_ALIASES[identifier.strip().lower()]
    except KeyError:
        raise InvalidProviderError(identifier) from None


@dataclass(frozen=True)
class ProviderReply:
    """A successful upstream call: the provider's own body and its unified form."""
    raw: Dict[str, Any]
    response: UnifiedResponse


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class Dispatcher:
    """Sends unified requests to providers.

    All providers share one HTTP client, one timeout and one request-size
    ceiling.
    """

    def __init__(
        self,
        adapters: Dict[Provider, ProviderAdapter],
        http_client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_request_bytes: int = DEFAULT_MAX_REQUEST_BYTES,
    ):
        self._adapters = adapters
        self._timeout = timeout_seconds
        self._max_request_bytes = max_request_bytes
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    @classmethod
    def from_settings(cls, settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> "Dispatcher":
        keys = settings.provider_keys()
        adapters: Dict[Provider, ProviderAdapter] = {
            Provider.OPENAI: OpenAIAdapter(keys[Provider.OPENAI.value], settings.OPENAI_BASE_URL),
            Provider.ANTHROPIC: AnthropicAdapter(
                keys[Provider.ANTHROPIC.value],
                settings.ANTHROPIC_BASE_URL,
                api_version=settings.ANTHROPIC_VERSION,
            ),
            Provider.GOOGLE: GoogleAdapter(keys[Provider.GOOGLE.value], settings.GOOGLE_BASE_URL),
        }
        return cls(
            adapters,
            http_client=http_client,
            timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS,
            max_request_bytes=settings.MAX_REQUEST_BYTES,
        )

    def adapter_for(self, provider: Provider) -> ProviderAdapter:
        """Adapter for a provider whose credentials are configured.

        Raises:
            ConfigurationError: If the provider has no API key
        """
        adapter = self._adapters.get(provider)
        if adapter is None or not adapter.api_key:
            raise ConfigurationError(provider.value)
        return adapter

    def configured_providers(self) -> Dict[str, bool]:
        return {
            provider.value: bool(adapter.api_key)
            for provider, adapter in self._adapters.items()
        }

    async def dispatch(self, request: UnifiedRequest) -> UnifiedResponse:
        """Send a unified request and return the unified response.

        Raises:
            GatewayError: One of the normalized gateway errors
        """
        reply = await self.send(request)
        return reply.response

    async def send(self, request: UnifiedRequest) -> ProviderReply:
        """Like dispatch, but also returns the provider's raw body."""
        provider = resolve_provider(request.provider)
        adapter = self.adapter_for(provider)

        try:
            payload, headers = adapter.transform_request(request)
            body = json.dumps(payload).encode("utf-8")
        except GatewayError:
            raise
        except Exception as e:
            logger.error(f"Failed to build {provider.value} request: {e}", exc_info=True)
            raise InternalError(str(e)) from e
        self._check_size(len(body))

        url = adapter.endpoint_url(request)
        logger.debug(f"Dispatching to {provider.value} ({url}), model={request.model}")
        response = await self._post(provider, url, content=body, headers=headers)

        data = _json_body(response)
        if response.is_error:
            logger.warning(f"{provider.value} API error: HTTP {response.status_code} - {data if data is not None else response.text[:500]}")
            raise adapter.classify_error(response.status_code, data)
        if not isinstance(data, dict):
            raise self._decode_failure(provider, "response body is not a JSON object")

        try:
            unified = adapter.parse_response(data, request)
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Could not decode {provider.value} response: {e}")
            raise self._decode_failure(provider, str(e)) from e

        return ProviderReply(raw=data, response=unified)

    async def transcribe(
        self,
        filename: str,
        content: bytes,
        content_type: Optional[str],
        model: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Proxy an audio file to the OpenAI transcription API.

        Returns:
            The provider's body verbatim
        """
        adapter = self.adapter_for(Provider.OPENAI)
        self._check_size(len(content))
        if not isinstance(adapter, OpenAIAdapter):
            raise InternalError("OpenAI adapter does not support transcription")

        response = await self._post(
            Provider.OPENAI,
            adapter.transcription_url(),
            headers=adapter.auth_headers(),
            files={"file": (filename, content, content_type or "application/octet-stream")},
            data={"model": model or DEFAULT_TRANSCRIPTION_MODEL},
        )
        data = _json_body(response)
        if response.is_error:
            logger.warning(f"openai transcription error: HTTP {response.status_code}")
            raise adapter.classify_error(response.status_code, data)
        if isinstance(data, dict):
            return data
        return {"text": response.text}

    async def _post(self, provider: Provider, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.post(url, timeout=self._timeout, **kwargs)
        except httpx.TimeoutException as e:
            message = f"{provider.value} API did not respond within {self._timeout:g} seconds"
            logger.warning(message)
            raise UpstreamError(
                504, message, error_payload(message, ErrorKind.UPSTREAM), provider=provider.value
            ) from e
        except httpx.RequestError as e:
            message = f"{provider.value} API request failed: {e}"
            logger.error(message)
            raise UpstreamError(
                502, message, error_payload(message, ErrorKind.UPSTREAM), provider=provider.value
            ) from e

    def _check_size(self, size: int) -> None:
        if size > self._max_request_bytes:
            raise RequestTooLargeError(size, self._max_request_bytes)

    def _decode_failure(self, provider: Provider, reason: str) -> UpstreamError:
        message = f"Unexpected {provider.value} response: {reason}"
        return UpstreamError(
            502, message, error_payload(message, ErrorKind.UPSTREAM), provider=provider.value
        )

    async def aclose(self) -> None:
        await self._client.aclose()
