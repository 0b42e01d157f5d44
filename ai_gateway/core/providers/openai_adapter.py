"""OpenAI chat-completions adapter."""

from typing import Any, Dict, Optional, Tuple

from openai.types.chat import ChatCompletion

from ai_gateway.core.schema import (
    Choice,
    Provider,
    UnifiedRequest,
    UnifiedResponse,
    Usage,
)

from .base import ProviderAdapter


class OpenAIAdapter(ProviderAdapter):
    """Near-identity adapter: the unified request already is OpenAI's shape."""
    provider = Provider.OPENAI

    def endpoint_url(self, request: UnifiedRequest) -> str:
        return f"{self.base_url}/chat/completions"

    def transcription_url(self) -> str:
        return f"{self.base_url}/audio/transcriptions"

    def auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def transform_request(self, request: UnifiedRequest) -> Tuple[Dict[str, Any], Dict[str, str]]:
        payload = request.model_dump(exclude={"provider", "messages"}, exclude_none=True)
        # messages keep exactly the keys the caller sent, explicit nulls included
        payload["messages"] = [message.model_dump(exclude_unset=True) for message in request.messages]
        headers = {**self.auth_headers(), "Content-Type": "application/json"}
        return payload, headers

    def parse_response(
        self, payload: Dict[str, Any], request: Optional[UnifiedRequest] = None
    ) -> UnifiedResponse:
        completion = ChatCompletion.model_validate(payload)

        choices = [
            Choice(
                role=choice.message.role,
                content=choice.message.content or "",
                finish_reason=choice.finish_reason,
            )
            for choice in completion.choices
        ]

        usage = None
        if completion.usage is not None:
            usage = Usage(
                prompt_tokens=completion.usage.prompt_tokens,
                completion_tokens=completion.usage.completion_tokens,
                total_tokens=completion.usage.total_tokens,
            )

        return UnifiedResponse(
            id=completion.id,
            model=completion.model,
            provider=self.name,
            choices=choices,
            usage=usage,
        )
