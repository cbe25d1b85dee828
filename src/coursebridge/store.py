"""
Session persistence.

Sessions live in Redis as JSON blobs, one key per session id, each written
with an expiry. Without Redis they are kept in-process (ephemeral, per worker).

Every failure here is logged and swallowed: losing conversational memory
degrades the bridge to stateless mode, it never fails the request.
"""

import logging
import time

import logfire
from pydantic import ValidationError

from .errors import StoreError
from .models import Session

logger = logging.getLogger(__name__)

SESSION_KEY = "coursebridge:session:{session_id}"

SESSION_TTL_MINUTES = 60


def decode_session(raw: str | bytes) -> Session:
    try:
        return Session.model_validate_json(raw)
    except ValidationError as e:
        raise StoreError(f"Unreadable session payload: {e.error_count()} validation error(s)") from e


def encode_session(session: Session) -> str:
    return session.model_dump_json(by_alias=True, exclude_none=True)


class SessionStore:
    """Load/save/delete sessions against Redis (or process memory)."""

    def __init__(self, redis=None, ttl_minutes: int = SESSION_TTL_MINUTES):
        # Optional redis.asyncio client (set by app.py if available)
        self.redis = redis
        self.ttl_minutes = ttl_minutes

        # In-memory fallback: key → (expires_at, payload)
        self._memory: dict[str, tuple[float, str]] = {}

    @property
    def backend(self) -> str:
        return "redis" if self.redis is not None else "memory"

    @property
    def ttl_seconds(self) -> int:
        return self.ttl_minutes * 60

    async def load(self, session_id: str) -> Session | None:
        """Return the stored session, or None if it's missing or unreadable."""
        if not session_id:
            return None
        key = SESSION_KEY.format(session_id=session_id)
        try:
            raw = await self._get(key)
            if raw is None:
                return None
            return decode_session(raw)
        except Exception as e:
            logger.warning(f"Failed to load session {session_id[:8]}: {e}")
            logfire.warn("Session load failed", session_id=session_id[:8], error=str(e))
            return None

    async def save(self, session_id: str, session: Session) -> None:
        """Persist the session with an expiry hint. Best effort."""
        if not session_id:
            return
        key = SESSION_KEY.format(session_id=session_id)
        try:
            await self._set(key, encode_session(session))
            logger.debug(f"Saved session {session_id[:8]} ({len(session.messages)} messages)")
        except Exception as e:
            logger.error(f"Failed to save session {session_id[:8]}: {e}")
            logfire.error("Session save failed", session_id=session_id[:8], error=str(e))

    async def delete(self, session_id: str) -> None:
        if not session_id:
            return
        key = SESSION_KEY.format(session_id=session_id)
        try:
            await self._delete(key)
            logger.info(f"Deleted session {session_id[:8]}")
        except Exception as e:
            logger.warning(f"Failed to delete session {session_id[:8]}: {e}")
            logfire.warn("Session delete failed", session_id=session_id[:8], error=str(e))

    async def _get(self, key: str) -> str | bytes | None:
        if self.redis is not None:
            return await self.redis.get(key)
        entry = self._memory.get(key)
        if entry is None:
            return None
        expires_at, payload = entry
        if expires_at <= time.monotonic():
            self._memory.pop(key, None)
            return None
        return payload

    async def _set(self, key: str, payload: str) -> None:
        if self.redis is not None:
            await self.redis.set(key, payload, ex=self.ttl_seconds)
            return
        now = time.monotonic()
        # Keys that are never read again are only evicted here
        for stale in [k for k, (expires_at, _) in self._memory.items() if expires_at <= now]:
            del self._memory[stale]
        self._memory[key] = (now + self.ttl_seconds, payload)

    async def _delete(self, key: str) -> None:
        if self.redis is not None:
            await self.redis.delete(key)
            return
        self._memory.pop(key, None)
