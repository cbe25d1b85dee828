"""Mistral adapter (text only)."""

from collections.abc import Sequence

from ..errors import ProviderError
from ..models import AudioInput, ProviderOptions, ProviderResult, Role, Turn
from .base import ProviderAdapter, turns_for_span

MISTRAL_URL = "https://api.mistral.ai/v1/chat/completions"

CHAT_MODELS = ("magistral-medium-2509", "mistral-small-latest")
FALLBACK_STATUSES = frozenset({400, 404, 422, 429})

DEFAULT_TEMPERATURE = 1.0
DEFAULT_MAX_TOKENS = 1024


def to_chat_messages(turns: Sequence[Turn]) -> list[dict]:
    """Non-system, non-blank turns only; the system prompt travels separately."""
    return [
        {"role": "assistant" if t.role is Role.ASSISTANT else "user", "content": t.text}
        for t in turns
        if t.role is not Role.SYSTEM and t.text.strip()
    ]


def extract_text(message: dict | None) -> str:
    """Message content may be a plain string or a list of typed parts."""
    if not message:
        return ""
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part["text"]
            for part in content
            if isinstance(part, dict) and part.get("type") == "text" and isinstance(part.get("text"), str)
        )
    return ""


class MistralAdapter(ProviderAdapter):
    name = "mistral"
    label = "Mistral"
    supports_audio = False

    async def generate(
        self,
        turns: Sequence[Turn],
        audio: AudioInput | None = None,
        options: ProviderOptions | None = None,
    ) -> ProviderResult:
        self.ensure_audio_supported(audio)
        options = options or ProviderOptions()

        system = next((t.text for t in turns if t.role is Role.SYSTEM), "")
        messages = to_chat_messages(turns)
        if not messages:
            raise ProviderError(self.label, None, "no valid messages to send")

        temperature = options.temperature if options.temperature is not None else DEFAULT_TEMPERATURE
        max_tokens = options.max_tokens if options.max_tokens is not None else DEFAULT_MAX_TOKENS

        def build_request(model: str) -> dict:
            body = {
                "model": model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
            if system:
                body["system_prompt"] = system
            return {"headers": {"Authorization": f"Bearer {self.api_key}"}, "json": body}

        async with self.client() as client:
            response, model = await self.post_with_fallback(
                client,
                MISTRAL_URL,
                models=CHAT_MODELS,
                fallback_statuses=FALLBACK_STATUSES,
                operation="chat",
                build_request=build_request,
                input_messages=turns_for_span(turns),
            )
            data = self.read_json(response, "chat")

        choices = data.get("choices") or [{}]
        self.log_success("chat", model)
        return ProviderResult(text=extract_text(choices[0].get("message")), model=model)
