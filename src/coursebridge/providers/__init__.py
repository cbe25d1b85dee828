"""Provider adapters, one per ProviderKind."""

import httpx

from ..config import ProviderKind, Settings
from .base import ProviderAdapter
from .gemini import GeminiAdapter
from .mistral import MistralAdapter
from .openai import OpenAIAdapter
from .yandex import YandexAdapter

ADAPTERS: dict[ProviderKind, type[ProviderAdapter]] = {
    ProviderKind.GEMINI: GeminiAdapter,
    ProviderKind.OPENAI: OpenAIAdapter,
    ProviderKind.MISTRAL: MistralAdapter,
    ProviderKind.YANDEX: YandexAdapter,
}


def build_adapter(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProviderAdapter:
    """
    Build the adapter for the configured provider.

    Raises:
        ConfigError: when the provider's credentials are missing. Nothing
        touches the network before this check.
    """
    kind = settings.ai_provider
    credentials = settings.credentials_for(kind)
    common = {"timeout": settings.provider_timeout_seconds, "transport": transport}

    if kind is ProviderKind.YANDEX:
        return YandexAdapter(
            credentials.api_key,
            credentials.folder_id,
            stt_lang=settings.yandex_stt_lang,
            stt_sample_rate=settings.yandex_stt_sample_rate,
            **common,
        )
    return ADAPTERS[kind](credentials.api_key, **common)


__all__ = [
    "ADAPTERS",
    "GeminiAdapter",
    "MistralAdapter",
    "OpenAIAdapter",
    "ProviderAdapter",
    "YandexAdapter",
    "build_adapter",
]
