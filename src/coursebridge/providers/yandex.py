"""YandexGPT adapter.

Text goes to the foundation-models completion endpoint. Audio is first run
through SpeechKit recognition (raw bytes in, plain transcript out) and the
transcript is merged into the last user turn.
"""

import math
from collections.abc import Sequence

from pydantic import BaseModel

from ..messages import append_transcript
from ..models import AudioInput, ProviderOptions, ProviderResult, Turn
from .base import ProviderAdapter, turns_for_span

COMPLETION_URL = "https://llm.api.cloud.yandex.net/foundationModels/v1/completion"
STT_URL = "https://stt.api.cloud.yandex.net/speech/v1/stt:recognize"

DEFAULT_MODEL_NAME = "yandexgpt-lite"
DEFAULT_TEMPERATURE = 0.6
DEFAULT_MAX_TOKENS = 2000

DEFAULT_STT_LANG = "ru-RU"
DEFAULT_STT_FORMAT = "oggopus"
DEFAULT_STT_SAMPLE_RATE = 48000


class YandexOptions(BaseModel):
    """Resolved completion settings for one call."""
    model_uri: str
    temperature: float
    max_tokens: int


def resolve_options(folder_id: str, options: ProviderOptions | None) -> YandexOptions:
    """
    Resolve the model URI and sampling settings.

    modelUri wins over modelName; modelName expands to gpt://<folder>/<name>/latest.
    """
    options = options or ProviderOptions()

    if options.model_uri:
        model_uri = options.model_uri
    else:
        name = options.model_name or DEFAULT_MODEL_NAME
        model_uri = f"gpt://{folder_id}/{name}/latest"

    temperature = DEFAULT_TEMPERATURE
    if options.temperature is not None and math.isfinite(options.temperature):
        temperature = options.temperature

    max_tokens = options.max_tokens if options.max_tokens is not None else DEFAULT_MAX_TOKENS

    return YandexOptions(model_uri=model_uri, temperature=temperature, max_tokens=max_tokens)


class YandexAdapter(ProviderAdapter):
    name = "yandex"
    label = "YandexGPT"

    def __init__(
        self,
        api_key: str,
        folder_id: str,
        *,
        stt_lang: str = DEFAULT_STT_LANG,
        stt_sample_rate: int = DEFAULT_STT_SAMPLE_RATE,
        **kwargs,
    ) -> None:
        super().__init__(api_key, **kwargs)
        self.folder_id = folder_id
        self.stt_lang = stt_lang
        self.stt_sample_rate = stt_sample_rate

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Api-Key {self.api_key}"}

    async def transcribe(self, client, audio: AudioInput) -> str:
        params = {
            "lang": self.stt_lang,
            "format": audio.format or DEFAULT_STT_FORMAT,
            "sampleRateHertz": str(self.stt_sample_rate),
        }
        response = await self.post(
            client,
            STT_URL,
            model=f"speechkit/{params['format']}",
            operation="transcription",
            params=params,
            content=audio.content,
            headers={
                **self.headers,
                "Content-Type": "application/octet-stream",
                "x-folder-id": self.folder_id,
            },
        )
        await self.raise_for_status(response, "transcription")

        # SpeechKit occasionally answers with a non-JSON body; treat it as silence
        try:
            data = response.json()
        except ValueError:
            return ""
        transcript = data.get("result", "") if isinstance(data, dict) else ""
        self.log_success("transcription", "speechkit")
        return transcript or ""

    async def complete(self, client, turns: Sequence[Turn], options: ProviderOptions | None) -> tuple[str, str]:
        resolved = resolve_options(self.folder_id, options)
        body = {
            "modelUri": resolved.model_uri,
            "completionOptions": {
                "stream": False,
                "temperature": resolved.temperature,
                "maxTokens": resolved.max_tokens,
            },
            "messages": [{"role": t.role.value, "text": t.text} for t in turns],
        }
        response = await self.post(
            client,
            COMPLETION_URL,
            model=resolved.model_uri,
            operation="chat",
            input_messages=turns_for_span(turns),
            json=body,
            headers=self.headers,
        )
        await self.raise_for_status(response, "chat")
        data = self.read_json(response, "chat")

        alternatives = (data.get("result") or {}).get("alternatives") or [{}]
        text = (alternatives[0].get("message") or {}).get("text") or ""
        self.log_success("chat", resolved.model_uri)
        return text, resolved.model_uri

    async def generate(
        self,
        turns: Sequence[Turn],
        audio: AudioInput | None = None,
        options: ProviderOptions | None = None,
    ) -> ProviderResult:
        async with self.client() as client:
            transcript = None
            if audio is not None:
                transcript = await self.transcribe(client, audio)
                turns = append_transcript(turns, transcript)

            text, model = await self.complete(client, turns, options)

        return ProviderResult(text=text, transcript=transcript, model=model)
