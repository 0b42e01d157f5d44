"""
Unified request and response schema.

The provider-agnostic shapes every adapter translates to and from. The
request side follows OpenAI's chat-completion layout; the response side
uses camelCase keys on the wire.
"""

import re
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .token_counter import TokenUsage

# data:<mime>;base64,<payload>
DATA_URL_PATTERN = re.compile(r"^data:([^;,]+);base64,(.+)$", re.DOTALL)


class Provider(str, Enum):
    """Supported upstream providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"


def parse_data_url(url: str) -> Optional[Tuple[str, str]]:
    """Split a base64 data URL into (mime type, base64 payload).

    Returns None when the URL is not a base64 data URL.
    """
    match = DATA_URL_PATTERN.match(url.strip())
    if not match:
        return None
    return match.group(1), match.group(2)


class ImageUrl(BaseModel):
    model_config = ConfigDict(extra="allow")

    url: str


class ContentPart(BaseModel):
    """One part of a multimodal message: text or an inline image."""
    model_config = ConfigDict(extra="allow")

    type: str
    text: Optional[str] = None
    image_url: Optional[ImageUrl] = None

    def inline_data(self) -> Optional[Tuple[str, str]]:
        """(mime type, base64 data) for an image part carrying a data URL."""
        if self.type != "image_url" or self.image_url is None:
            return None
        return parse_data_url(self.image_url.url)


class Message(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: Literal["system", "user", "assistant"]
    content: Union[str, List[ContentPart]]

    def text(self) -> str:
        """Concatenated text of the message, ignoring non-text parts."""
        if isinstance(self.content, str):
            return self.content
        return "".join(part.text or "" for part in self.content if part.type == "text")


class UnifiedRequest(BaseModel):
    """Provider-agnostic chat request.

    Unknown keys are kept as passthrough fields and forwarded to the
    provider where the adapter supports them.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    provider: str
    model: Optional[str] = None
    messages: List[Message] = Field(min_length=1)
    max_tokens: Optional[int] = Field(default=None, alias="maxTokens", gt=0)
    temperature: Optional[float] = None

    def passthrough(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class OpenAIMessage(BaseModel):
    """Any OpenAI chat message; unknown roles and keys are forwarded untouched."""
    model_config = ConfigDict(extra="allow")

    role: str
    content: Optional[Any] = None


class OpenAIChatRequest(UnifiedRequest):
    """Body of the OpenAI-native endpoint, forwarded to OpenAI as sent."""
    provider: str = Provider.OPENAI.value
    messages: List[OpenAIMessage] = Field(min_length=1)


class Usage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt_tokens: int = Field(default=0, alias="promptTokens", ge=0)
    completion_tokens: int = Field(default=0, alias="completionTokens", ge=0)
    total_tokens: int = Field(default=0, alias="totalTokens", ge=0)

    def to_token_usage(self) -> TokenUsage:
        return TokenUsage(
            prompt_tokens=self.prompt_tokens,
            completion_tokens=self.completion_tokens,
        )


class Choice(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role: str = "assistant"
    content: str = ""
    finish_reason: Optional[str] = Field(default=None, alias="finishReason")


class UnifiedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    model: str
    provider: str
    choices: List[Choice]
    usage: Optional[Usage] = None
    error: Optional[Dict[str, Any]] = None

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")
