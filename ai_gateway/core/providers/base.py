"""Base class for provider adapters."""

import logging
from typing import Any, Dict, Optional, Tuple

from ai_gateway.core.errors import ErrorKind, UpstreamError, error_payload, upstream_message
from ai_gateway.core.schema import Provider, UnifiedRequest, UnifiedResponse

logger = logging.getLogger(__name__)


class ProviderAdapter:
    """Translates between the unified schema and one provider's protocol.

    Subclasses implement ``endpoint_url``, ``transform_request`` and
    ``parse_response``; ``classify_error`` passes the upstream status and
    body through unless a subclass needs otherwise.
    """
    provider: Provider

    def __init__(self, api_key: Optional[str], base_url: str):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return self.provider.value

    def endpoint_url(self, request: UnifiedRequest) -> str:
        raise NotImplementedError(f"{type(self).__name__} does not implement 'endpoint_url'.")

    def transform_request(self, request: UnifiedRequest) -> Tuple[Dict[str, Any], Dict[str, str]]:
        """Build the provider payload and request headers (credentials included)."""
        raise NotImplementedError(f"{type(self).__name__} does not implement 'transform_request'.")

    def parse_response(
        self, payload: Dict[str, Any], request: Optional[UnifiedRequest] = None
    ) -> UnifiedResponse:
        """Decode a successful provider body.

        Raises:
            ValueError: If the body does not match the provider's schema
        """
        raise NotImplementedError(f"{type(self).__name__} does not implement 'parse_response'.")

    def classify_error(self, status_code: int, payload: Any) -> UpstreamError:
        """Normalize a failed provider call.

        A JSON object body is passed through verbatim; anything else is
        replaced by a generic gateway body.
        """
        default_message = f"{self.name} API returned HTTP {status_code}"
        if isinstance(payload, dict) and payload:
            message = upstream_message(payload, default_message)
            return UpstreamError(status_code, message, payload, provider=self.name)
        logger.debug(f"{self.name}: upstream error without JSON body (HTTP {status_code}).")
        return UpstreamError(
            status_code,
            default_message,
            error_payload(default_message, ErrorKind.UPSTREAM),
            provider=self.name,
        )
