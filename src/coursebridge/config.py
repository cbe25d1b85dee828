"""
Deployment configuration for the bridge.

Loaded once from the environment (or a ``.env`` file) and handed down to the
service, the store and the provider adapters.
"""

from enum import Enum
from functools import lru_cache

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError


class ProviderKind(str, Enum):
    """The upstream AI provider selected for this deployment."""
    GEMINI = "gemini"
    OPENAI = "openai"
    YANDEX = "yandex"
    MISTRAL = "mistral"


class ProviderCredentials(BaseModel):
    """Credentials for one provider."""
    api_key: str
    folder_id: str | None = None  # Yandex Cloud only


class Settings(BaseSettings):
    """Loads and validates all application settings from the environment / .env file."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    ai_provider: ProviderKind = Field(ProviderKind.GEMINI, alias="AI_PROVIDER")

    gemini_api_key: str | None = Field(None, alias="GEMINI_API_KEY")
    openai_api_key: str | None = Field(None, alias="OPENAI_API_KEY")
    mistral_api_key: str | None = Field(None, alias="MISTRAL_API_KEY")
    yandex_api_key: str | None = Field(None, alias="YANDEX_API_KEY")
    yandex_folder_id: str | None = Field(None, alias="YANDEX_FOLDER_ID")

    # Session persistence
    redis_url: str | None = Field(None, alias="REDIS_URL")
    session_ttl_minutes: int = Field(60, alias="SESSION_TTL_MINUTES")
    max_messages_in_session: int = Field(20, alias="MAX_MESSAGES_IN_SESSION")

    # Yandex SpeechKit defaults
    yandex_stt_lang: str = Field("ru-RU", alias="YANDEX_STT_LANG")
    yandex_stt_sample_rate: int = Field(48000, alias="YANDEX_STT_SAMPLE_RATE")

    provider_timeout_seconds: float = Field(60.0, alias="PROVIDER_TIMEOUT_SECONDS")
    allowed_origin: str = Field("*", alias="ALLOWED_ORIGIN")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @field_validator("ai_provider", mode="before")
    @classmethod
    def _lowercase_provider(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("max_messages_in_session")
    @classmethod
    def _even_history_cap(cls, value: int) -> int:
        # Exchanges are stored and trimmed as user/assistant pairs
        if value <= 0 or value % 2:
            raise ValueError("MAX_MESSAGES_IN_SESSION must be a positive even number")
        return value

    def credentials_for(self, provider: ProviderKind | None = None) -> ProviderCredentials:
        """
        Resolve the credentials for a provider (the configured one by default).

        Raises:
            ConfigError: when a required key is missing.
        """
        provider = provider or self.ai_provider

        if provider is ProviderKind.YANDEX:
            if not self.yandex_api_key or not self.yandex_folder_id:
                raise ConfigError("YANDEX_API_KEY/YANDEX_FOLDER_ID are not set.")
            return ProviderCredentials(api_key=self.yandex_api_key, folder_id=self.yandex_folder_id)

        keys = {
            ProviderKind.GEMINI: ("GEMINI_API_KEY", self.gemini_api_key),
            ProviderKind.OPENAI: ("OPENAI_API_KEY", self.openai_api_key),
            ProviderKind.MISTRAL: ("MISTRAL_API_KEY", self.mistral_api_key),
        }
        env_name, api_key = keys[provider]
        if not api_key:
            raise ConfigError(f"{env_name} is not set.")
        return ProviderCredentials(api_key=api_key)

    def has_credentials(self) -> bool:
        try:
            self.credentials_for()
        except ConfigError:
            return False
        return True


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
