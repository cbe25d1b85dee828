"""Gemini adapter.

Gemini gets the system turn as ``systemInstruction`` and the rest of the
conversation flattened into one text block. Audio goes inline next to that
block; the model listens to it directly, so there is no transcription step.
"""

import base64
from collections.abc import Sequence

from ..models import AudioInput, ProviderOptions, ProviderResult, Role, Turn
from .base import ProviderAdapter, turns_for_span

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_MODEL = "gemini-2.5-flash"
GEMINI_AUDIO_MIME = "audio/webm"


def render_conversation(turns: Sequence[Turn]) -> str:
    """Flatten non-system turns into "User: ..." / "Assistant: ..." paragraphs."""
    return "\n\n".join(
        f"{'User' if t.role is Role.USER else 'Assistant'}: {t.text}"
        for t in turns
        if t.role is not Role.SYSTEM
    )


def extract_text(data: dict) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))


class GeminiAdapter(ProviderAdapter):
    name = "gemini"
    label = "Gemini"

    def build_payload(
        self,
        turns: Sequence[Turn],
        audio: AudioInput | None,
        options: ProviderOptions,
    ) -> dict:
        system = next((t.text for t in turns if t.role is Role.SYSTEM), "")
        conversation = render_conversation(turns)

        parts: list[dict] = []
        if conversation.strip() or audio is None:
            parts.append({"text": conversation})
        if audio is not None:
            parts.append({
                "inlineData": {
                    "mimeType": GEMINI_AUDIO_MIME,
                    "data": base64.b64encode(audio.content).decode("ascii"),
                }
            })

        payload: dict = {"contents": [{"role": "user", "parts": parts}]}
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}

        generation_config = {}
        if options.temperature is not None:
            generation_config["temperature"] = options.temperature
        if options.max_tokens is not None:
            generation_config["maxOutputTokens"] = options.max_tokens
        if generation_config:
            payload["generationConfig"] = generation_config
        return payload

    async def generate(
        self,
        turns: Sequence[Turn],
        audio: AudioInput | None = None,
        options: ProviderOptions | None = None,
    ) -> ProviderResult:
        options = options or ProviderOptions()
        # Fixed model; modelName overrides only apply to Yandex
        model = GEMINI_MODEL
        payload = self.build_payload(turns, audio, options)

        async with self.client() as client:
            response = await self.post(
                client,
                f"{GEMINI_BASE_URL}/models/{model}:generateContent",
                model=model,
                operation="chat",
                input_messages=turns_for_span(turns),
                json=payload,
                headers={"x-goog-api-key": self.api_key},
            )
            await self.raise_for_status(response, "chat")
            data = self.read_json(response, "chat")

        self.log_success("chat", model)
        return ProviderResult(text=extract_text(data), model=model)
