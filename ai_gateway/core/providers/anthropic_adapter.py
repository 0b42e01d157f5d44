"""Anthropic Messages API adapter."""

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from ai_gateway.core.schema import (
    Choice,
    ContentPart,
    Message,
    Provider,
    UnifiedRequest,
    UnifiedResponse,
    Usage,
)

from .base import ProviderAdapter

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS = 4096

# Anthropic stop_reason -> unified finish reason; unlisted values pass through
FINISH_REASONS = {"end_turn": "stop"}


class AnthropicContentBlock(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    text: Optional[str] = None


class AnthropicUsage(BaseModel):
    model_config = ConfigDict(extra="allow")

    input_tokens: int
    output_tokens: int


class AnthropicMessage(BaseModel):
    """Decoded body of a successful Messages API call."""
    model_config = ConfigDict(extra="allow")

    id: str
    model: str
    role: str = "assistant"
    content: List[AnthropicContentBlock]
    stop_reason: Optional[str] = None
    usage: AnthropicUsage


class AnthropicAdapter(ProviderAdapter):
    provider = Provider.ANTHROPIC

    def __init__(self, api_key: Optional[str], base_url: str, api_version: str = "2023-06-01"):
        super().__init__(api_key, base_url)
        self.api_version = api_version

    def endpoint_url(self, request: UnifiedRequest) -> str:
        return f"{self.base_url}/messages"

    def transform_request(self, request: UnifiedRequest) -> Tuple[Dict[str, Any], Dict[str, str]]:
        extra = request.passthrough()
        system_parts: List[str] = []

        caller_system = extra.pop("system", None)
        if isinstance(caller_system, str) and caller_system:
            system_parts.append(caller_system)
        elif caller_system is not None:
            logger.warning(f"{self.name}: ignoring non-text 'system' field of type {type(caller_system).__name__}.")

        messages: List[Dict[str, Any]] = []
        for message in request.messages:
            if message.role == "system":
                system_parts.append(message.text())
                continue
            messages.append({"role": message.role, "content": self._convert_content(message)})

        payload: Dict[str, Any] = {
            **extra,
            "model": request.model or DEFAULT_MODEL,
            "max_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
            "messages": messages,
        }
        if system_parts:
            payload["system"] = "\n".join(system_parts)
        if request.temperature is not None:
            payload["temperature"] = request.temperature

        headers = {
            "x-api-key": self.api_key or "",
            "anthropic-version": self.api_version,
            "Content-Type": "application/json",
        }
        return payload, headers

    def _convert_content(self, message: Message) -> Union[str, List[Dict[str, Any]]]:
        if isinstance(message.content, str):
            return message.content
        blocks = []
        for part in message.content:
            block = self._convert_part(part)
            if block is not None:
                blocks.append(block)
        return blocks

    def _convert_part(self, part: ContentPart) -> Optional[Dict[str, Any]]:
        if part.type == "text":
            return {"type": "text", "text": part.text or ""}
        if part.type == "image_url" and part.image_url is not None:
            inline = part.inline_data()
            if inline is not None:
                mime_type, data = inline
                return {
                    "type": "image",
                    "source": {"type": "base64", "media_type": mime_type, "data": data},
                }
            return {"type": "image", "source": {"type": "url", "url": part.image_url.url}}
        logger.debug(f"{self.name}: dropping unsupported content part of type '{part.type}'.")
        return None

    def parse_response(
        self, payload: Dict[str, Any], request: Optional[UnifiedRequest] = None
    ) -> UnifiedResponse:
        message = AnthropicMessage.model_validate(payload)

        # Only single text-block output is supported
        if not message.content or message.content[0].type != "text":
            raise ValueError("Anthropic response does not start with a text content block")

        stop_reason = message.stop_reason
        choice = Choice(
            role=message.role,
            content=message.content[0].text or "",
            finish_reason=FINISH_REASONS.get(stop_reason, stop_reason) if stop_reason else None,
        )

        prompt_tokens = message.usage.input_tokens
        completion_tokens = message.usage.output_tokens
        usage = Usage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )

        return UnifiedResponse(
            id=message.id,
            model=message.model,
            provider=self.name,
            choices=[choice],
            usage=usage,
        )
