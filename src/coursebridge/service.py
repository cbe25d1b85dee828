"""
BridgeService - the request orchestrator.

One pass per request: resolve the session, build the canonical turn list,
dispatch to the configured provider, persist the exchange, shape the response.
"""

import logging

import httpx
import logfire

from .config import Settings
from .errors import InvalidInput
from .messages import build_provider_turns, new_session, now_ms, record_exchange
from .models import AudioInput, BridgeRequest, EndSessionResponse, GenerateResponse, Session
from .providers import build_adapter
from .store import SessionStore

logger = logging.getLogger(__name__)

SESSION_ENDED_MESSAGE = "Session ended"


class BridgeService:
    """
    Stateless orchestrator. All conversational state lives in the SessionStore.

    Two concurrent requests for the same session id are not serialized; the
    last save wins.
    """

    def __init__(
        self,
        settings: Settings,
        store: SessionStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings
        self.store = store or SessionStore(ttl_minutes=settings.session_ttl_minutes)
        # Injected into every provider HTTP client (tests use httpx.MockTransport)
        self.transport = transport

    @property
    def provider(self) -> str:
        return self.settings.ai_provider.value

    async def handle(
        self,
        request: BridgeRequest,
        audio: AudioInput | None = None,
    ) -> GenerateResponse | EndSessionResponse:
        session_id = request.session_id or None

        if request.end_session and session_id:
            await self.store.delete(session_id)
            return EndSessionResponse(
                message=SESSION_ENDED_MESSAGE,
                session_id=session_id,
                provider=self.provider,
            )

        session = await self.resolve_session(request)

        turns = build_provider_turns(session.system_prompt, session.messages, request.prompt)
        if not turns and audio is None:
            raise InvalidInput("Nothing to send: prompt, system prompt and history are all empty.")

        adapter = build_adapter(self.settings, self.transport)
        mode = "audio" if audio is not None else "text"
        logger.info(f"Provider {self.provider} ({mode} pipeline, {len(turns)} turns)")

        result = await adapter.generate(turns, audio=audio, options=request.options())

        if session_id:
            user_text = result.transcript or request.prompt or ""
            record_exchange(session, user_text, result.text, self.settings.max_messages_in_session)
            await self.store.save(session_id, session)

        logfire.info(
            "Bridge exchange complete",
            provider=self.provider,
            mode=mode,
            model=result.model,
            session_turns=len(session.messages) // 2,
        )

        return GenerateResponse(
            generated_text=result.text,
            provider=self.provider,
            transcript=result.transcript,
            session_id=session_id,
            turns=len(session.messages) // 2,
        )

    async def resolve_session(self, request: BridgeRequest) -> Session:
        """Load the caller's session (resetting it if asked) or start a new one."""
        session = None
        if request.session_id:
            session = await self.store.load(request.session_id)
            if session is not None and request.reset_context:
                session.messages = []
                session.last_activity = now_ms()
                logger.info(f"Reset context for session {request.session_id[:8]}")

        if session is None:
            session = new_session(request.system or "")
        return session
