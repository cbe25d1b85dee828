"""
Pydantic models for the bridge: conversation state, provider I/O, and the HTTP API.
"""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Turn(BaseModel):
    """A single role-tagged message in a conversation."""
    role: Role
    text: str = ""
    timestamp: int | None = None  # epoch ms, set by the service only


class Session(BaseModel):
    """Durable per-id conversation state, stored as camelCase JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    system_prompt: str = ""
    messages: list[Turn] = Field(default_factory=list)  # user/assistant only
    created_at: int
    last_activity: int


class ProviderOptions(BaseModel):
    """Per-call overrides passed through to an adapter."""
    model_name: str | None = None
    model_uri: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None


class ProviderResult(BaseModel):
    """What an adapter hands back."""
    text: str
    transcript: str | None = None  # Only set when a speech-to-text step ran
    model: str | None = None


@dataclass
class AudioInput:
    """A recorded audio clip uploaded with the request."""
    content: bytes
    format: str | None = None
    filename: str = "recording.webm"
    content_type: str = "audio/webm"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BridgeRequest(_CamelModel):
    """A /generate request, from either the JSON or the multipart body."""
    prompt: str | None = None
    system: str | None = None
    session_id: str | None = None
    end_session: bool = False
    reset_context: bool = False
    model_name: str | None = None
    model_uri: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None

    def options(self) -> ProviderOptions:
        return ProviderOptions(
            model_name=self.model_name,
            model_uri=self.model_uri,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )


class GenerateResponse(_CamelModel):
    """Response from /generate."""
    generated_text: str
    provider: str
    transcript: str | None = None
    session_id: str | None = None
    turns: int = 0


class EndSessionResponse(_CamelModel):
    """Response from /generate when the caller ends the session."""
    message: str
    session_id: str
    provider: str
