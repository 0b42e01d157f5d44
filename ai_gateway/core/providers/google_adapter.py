"""Google Gemini generateContent adapter."""

import copy
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ai_gateway.core.schema import (
    Choice,
    Message,
    Provider,
    UnifiedRequest,
    UnifiedResponse,
    Usage,
)

from .base import ProviderAdapter

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"

HARM_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)

# Most permissive thresholds; callers override with 'safetySettings'
DEFAULT_SAFETY_SETTINGS = [
    {"category": category, "threshold": "BLOCK_NONE"} for category in HARM_CATEGORIES
]


def map_finish_reason(reason: Optional[str]) -> Optional[str]:
    """Coarse mapping: STOP is 'stop', every other reason is 'length'.

    Safety and recitation blocks are reported as 'length' too; this is an
    approximation, not a full taxonomy.
    """
    if reason is None:
        return None
    return "stop" if reason == "STOP" else "length"


class GeminiPart(BaseModel):
    model_config = ConfigDict(extra="allow")

    text: Optional[str] = None


class GeminiContent(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: Optional[str] = None
    parts: List[GeminiPart] = Field(default_factory=list)


class GeminiCandidate(BaseModel):
    model_config = ConfigDict(extra="allow")

    content: Optional[GeminiContent] = None
    finishReason: Optional[str] = None


class GeminiUsageMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    promptTokenCount: int = 0
    candidatesTokenCount: int = 0
    totalTokenCount: int = 0


class GeminiResponse(BaseModel):
    """Decoded body of a successful generateContent call."""
    model_config = ConfigDict(extra="allow")

    candidates: List[GeminiCandidate] = Field(default_factory=list)
    usageMetadata: Optional[GeminiUsageMetadata] = None
    modelVersion: Optional[str] = None
    responseId: Optional[str] = None


class GoogleAdapter(ProviderAdapter):
    provider = Provider.GOOGLE

    def endpoint_url(self, request: UnifiedRequest) -> str:
        model = request.model or DEFAULT_MODEL
        return f"{self.base_url}/models/{model}:generateContent"

    def transform_request(self, request: UnifiedRequest) -> Tuple[Dict[str, Any], Dict[str, str]]:
        extra = request.passthrough()

        generation_config: Dict[str, Any] = dict(extra.pop("generationConfig", None) or {})
        if request.temperature is not None:
            generation_config["temperature"] = request.temperature
        if request.max_tokens is not None:
            generation_config["maxOutputTokens"] = request.max_tokens

        safety_settings = extra.pop("safetySettings", None)
        if safety_settings is None:
            safety_settings = copy.deepcopy(DEFAULT_SAFETY_SETTINGS)

        payload: Dict[str, Any] = {
            **extra,
            "contents": self._convert_messages(request.messages),
            "safetySettings": safety_settings,
        }
        if generation_config:
            payload["generationConfig"] = generation_config

        headers = {
            "x-goog-api-key": self.api_key or "",
            "Content-Type": "application/json",
        }
        return payload, headers

    def _convert_messages(self, messages: List[Message]) -> List[Dict[str, Any]]:
        system_texts = [m.text() for m in messages if m.role == "system" and m.text()]
        system_prompt: Optional[str] = "\n".join(system_texts) if system_texts else None

        contents: List[Dict[str, Any]] = []
        for message in messages:
            if message.role == "system":
                continue
            role = "model" if message.role == "assistant" else "user"
            parts = self._convert_parts(message)

            if system_prompt and role == "user":
                # Applied once, to the first user message only
                for part in parts:
                    if "text" in part:
                        part["text"] = f"{system_prompt}\n\n{part['text']}"
                        break
                else:
                    parts.insert(0, {"text": system_prompt})
                system_prompt = None

            contents.append({"role": role, "parts": parts})

        if system_prompt:
            # No user message to carry it
            contents.insert(0, {"role": "user", "parts": [{"text": system_prompt}]})
        return contents

    def _convert_parts(self, message: Message) -> List[Dict[str, Any]]:
        if isinstance(message.content, str):
            return [{"text": message.content}]

        parts: List[Dict[str, Any]] = []
        for part in message.content:
            if part.type == "text":
                parts.append({"text": part.text or ""})
                continue
            inline = part.inline_data()
            if inline is None:
                logger.debug(f"{self.name}: dropping content part of type '{part.type}' without a base64 data URL.")
                continue
            mime_type, data = inline
            parts.append({"inlineData": {"mimeType": mime_type, "data": data}})
        return parts

    def parse_response(
        self, payload: Dict[str, Any], request: Optional[UnifiedRequest] = None
    ) -> UnifiedResponse:
        decoded = GeminiResponse.model_validate(payload)

        choices = []
        for candidate in decoded.candidates:
            parts = candidate.content.parts if candidate.content else []
            choices.append(Choice(
                role="assistant",
                content="".join(part.text or "" for part in parts),
                finish_reason=map_finish_reason(candidate.finishReason),
            ))

        usage = None
        if decoded.usageMetadata is not None:
            usage = Usage(
                prompt_tokens=decoded.usageMetadata.promptTokenCount,
                completion_tokens=decoded.usageMetadata.candidatesTokenCount,
                total_tokens=decoded.usageMetadata.totalTokenCount,
            )

        requested_model = request.model if request is not None else None
        return UnifiedResponse(
            id=decoded.responseId or f"gemini-{uuid.uuid4().hex}",
            model=decoded.modelVersion or requested_model or DEFAULT_MODEL,
            provider=self.name,
            choices=choices,
            usage=usage,
        )
