"""OpenAI adapter.

Text goes to chat completions with turns mapped 1:1. Audio is first sent to the
transcription endpoint and the transcript is merged into the last user turn.
Both endpoints retry once against an older model on 400/404/422.
"""

from collections.abc import Sequence

from ..messages import append_transcript
from ..models import AudioInput, ProviderOptions, ProviderResult, Turn
from .base import ProviderAdapter, turns_for_span

OPENAI_BASE_URL = "https://api.openai.com/v1"

CHAT_MODELS = ("gpt-5-nano-2025-08-07", "gpt-4o-mini")
TRANSCRIBE_MODELS = ("gpt-4o-mini-transcribe", "whisper-1")
FALLBACK_STATUSES = frozenset({400, 404, 422})

DEFAULT_TEMPERATURE = 1.0


def to_chat_messages(turns: Sequence[Turn]) -> list[dict]:
    return [{"role": t.role.value, "content": t.text} for t in turns]


class OpenAIAdapter(ProviderAdapter):
    name = "openai"
    label = "OpenAI"

    def __init__(self, api_key: str, *, base_url: str = OPENAI_BASE_URL, **kwargs) -> None:
        super().__init__(api_key, **kwargs)
        self.base_url = base_url.rstrip("/")

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def transcribe(self, client, audio: AudioInput) -> str:
        """Speech-to-text step. Returns the transcript text."""
        def build_request(model: str) -> dict:
            return {
                "headers": self.headers,
                "data": {"model": model},
                "files": {"file": (audio.filename, audio.content, audio.content_type)},
            }

        response, model = await self.post_with_fallback(
            client,
            f"{self.base_url}/audio/transcriptions",
            models=TRANSCRIBE_MODELS,
            fallback_statuses=FALLBACK_STATUSES,
            operation="transcription",
            build_request=build_request,
        )
        transcript = self.read_json(response, "transcription").get("text") or ""
        self.log_success("transcription", model)
        return transcript

    async def chat(self, client, turns: Sequence[Turn], options: ProviderOptions) -> tuple[str, str]:
        messages = to_chat_messages(turns)
        temperature = options.temperature if options.temperature is not None else DEFAULT_TEMPERATURE

        def build_request(model: str) -> dict:
            body = {"model": model, "messages": messages, "temperature": temperature}
            if options.max_tokens is not None:
                body["max_tokens"] = options.max_tokens
            return {"headers": self.headers, "json": body}

        response, model = await self.post_with_fallback(
            client,
            f"{self.base_url}/chat/completions",
            models=CHAT_MODELS,
            fallback_statuses=FALLBACK_STATUSES,
            operation="chat",
            build_request=build_request,
            input_messages=turns_for_span(turns),
        )
        data = self.read_json(response, "chat")
        choices = data.get("choices") or [{}]
        text = (choices[0].get("message") or {}).get("content") or ""
        self.log_success("chat", model)
        return text, model

    async def generate(
        self,
        turns: Sequence[Turn],
        audio: AudioInput | None = None,
        options: ProviderOptions | None = None,
    ) -> ProviderResult:
        options = options or ProviderOptions()

        async with self.client() as client:
            transcript = None
            if audio is not None:
                # Transcription must finish before the chat call starts
                transcript = await self.transcribe(client, audio)
                turns = append_transcript(turns, transcript)

            text, model = await self.chat(client, turns, options)

        return ProviderResult(text=text, transcript=transcript, model=model)
