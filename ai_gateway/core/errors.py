"""
Gateway error taxonomy.

Every failure the gateway reports to a caller is one of these exceptions.
Each carries the HTTP status and the JSON payload to render, so the caller
sees the same shape regardless of provider.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    """Kinds of normalized errors."""
    CONFIGURATION = "configuration_error"
    INVALID_PROVIDER = "invalid_provider"
    REQUEST_TOO_LARGE = "request_too_large"
    UPSTREAM = "proxy_error"
    CLIENT_DISCONNECTED = "client_disconnected"
    INTERNAL = "server_error"


def error_payload(message: str, kind: ErrorKind, **extra: Any) -> Dict[str, Any]:
    """Build the gateway's own error body."""
    return {"error": {"message": message, "type": kind.value, **extra}}


class GatewayError(Exception):
    """Base class for normalized gateway errors."""
    kind: ErrorKind = ErrorKind.INTERNAL
    status_code: int = 500

    def __init__(self, message: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload if payload is not None else error_payload(message, self.kind)


class ConfigurationError(GatewayError):
    """Raised when a provider credential is absent; the call is never attempted."""
    kind = ErrorKind.CONFIGURATION
    status_code = 503

    def __init__(self, provider: str):
        message = f"{provider} API key is not configured"
        super().__init__(message, error_payload(message, self.kind, provider=provider))
        self.provider = provider


class InvalidProviderError(GatewayError):
    """Raised for a provider identifier outside the alias table."""
    kind = ErrorKind.INVALID_PROVIDER
    status_code = 400

    def __init__(self, provider: str):
        message = f"Unsupported provider: {provider}"
        super().__init__(message, error_payload(message, self.kind, provider=provider))
        self.provider = provider


class RequestTooLargeError(GatewayError):
    """Raised when an outbound provider payload exceeds the size ceiling."""
    kind = ErrorKind.REQUEST_TOO_LARGE
    status_code = 413

    def __init__(self, size: int, limit: int):
        super().__init__(f"Request payload of {size} bytes exceeds limit of {limit} bytes")
        self.size = size
        self.limit = limit


class UpstreamError(GatewayError):
    """Raised when the provider call failed.

    The upstream status and payload are passed through verbatim when the
    provider supplied them; a generic payload is substituted otherwise.
    """
    kind = ErrorKind.UPSTREAM

    def __init__(
        self,
        status_code: int,
        message: str,
        payload: Optional[Dict[str, Any]] = None,
        provider: Optional[str] = None,
    ):
        super().__init__(message, payload)
        self.status_code = status_code
        self.provider = provider


class ClientDisconnectedError(GatewayError):
    """Raised when the caller went away before the upstream call finished."""
    kind = ErrorKind.CLIENT_DISCONNECTED
    status_code = 499

    def __init__(self):
        super().__init__("Client disconnected before the response was ready")


class InternalError(GatewayError):
    """Unexpected failure; the caller only ever sees a generic message."""
    kind = ErrorKind.INTERNAL
    status_code = 500

    def __init__(self, detail: str = ""):
        super().__init__("Internal server error")
        self.detail = detail


def upstream_message(payload: Any, default: str) -> str:
    """Best-effort human message from a provider error body."""
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str):
            return error
        if isinstance(payload.get("message"), str):
            return payload["message"]
    return default
