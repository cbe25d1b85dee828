# coursebridge - AI provider bridge for e-learning courses
#
# v0.1.0
# - POST /generate forwards text or recorded audio to Gemini, OpenAI, Yandex or Mistral
# - Short-lived conversation history in Redis (or process memory)
# - The FastAPI app lives in coursebridge.app

from .service import BridgeService
from .store import SessionStore
from .config import ProviderKind, Settings
from .errors import BridgeError, ConfigError, InvalidInput, ProviderError, StoreError
from .models import (
    AudioInput,
    BridgeRequest,
    EndSessionResponse,
    GenerateResponse,
    ProviderOptions,
    ProviderResult,
    Role,
    Session,
    Turn,
)

__all__ = [
    "BridgeService",
    "SessionStore",
    "ProviderKind",
    "Settings",
    "BridgeError",
    "ConfigError",
    "InvalidInput",
    "ProviderError",
    "StoreError",
    "AudioInput",
    "BridgeRequest",
    "EndSessionResponse",
    "GenerateResponse",
    "ProviderOptions",
    "ProviderResult",
    "Role",
    "Session",
    "Turn",
]
