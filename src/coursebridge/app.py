"""
coursebridge FastAPI application.

HTTP boundary between the course player and the AI provider: one POST
endpoint taking either JSON (text) or multipart (audio) bodies.
"""

import logging
from contextlib import asynccontextmanager

import httpx
import logfire
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import telemetry
from .config import Settings, get_settings
from .errors import BridgeError, InvalidInput
from .models import AudioInput, BridgeRequest
from .service import BridgeService
from .store import SessionStore

logger = logging.getLogger(__name__)
tracer = telemetry.get_tracer()

TRUE_VALUES = {"true"}


def _form_float(value: str | None) -> float | None:
    try:
        return float(value) if value not in (None, "") else None
    except ValueError:
        return None


def _form_int(value: str | None) -> int | None:
    number = _form_float(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


async def parse_request(request: Request) -> tuple[BridgeRequest, AudioInput | None]:
    """
    Turn the raw HTTP body into a BridgeRequest (+ audio for multipart).

    Raises:
        InvalidInput: missing prompt/audio, bad JSON, unknown content type.
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        audio_part = form.get("audio")
        if not isinstance(audio_part, UploadFile):
            raise InvalidInput("Audio file not provided.")

        fields = {key: value for key, value in form.items() if isinstance(value, str)}
        body = BridgeRequest(
            prompt=fields.get("prompt"),
            system=fields.get("system"),
            session_id=fields.get("sessionId"),
            end_session=fields.get("endSession") in TRUE_VALUES,
            reset_context=fields.get("resetContext") in TRUE_VALUES,
            model_name=fields.get("modelName") or None,
            model_uri=fields.get("modelUri") or None,
            temperature=_form_float(fields.get("temperature")),
            max_tokens=_form_int(fields.get("maxTokens")),
        )
        audio = AudioInput(
            content=await audio_part.read(),
            format=fields.get("audioFormat") or None,
            filename=audio_part.filename or "recording.webm",
            content_type=audio_part.content_type or "audio/webm",
        )
        return body, audio

    if content_type.startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError:
            raise InvalidInput("Request body is not valid JSON.")
        if not isinstance(payload, dict):
            raise InvalidInput("Request body must be a JSON object.")
        try:
            body = BridgeRequest.model_validate(payload)
        except ValidationError as e:
            raise InvalidInput(f"Invalid request fields: {e.error_count()} error(s).")
        if not body.prompt:
            raise InvalidInput("Prompt not provided.")
        return body, None

    raise InvalidInput(f"Unsupported or missing Content-Type: {content_type or None}")


def create_app(
    settings: Settings | None = None,
    store: SessionStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the app. Tests pass their own settings, store and HTTP transport."""
    settings = settings or get_settings()
    telemetry.init(settings.log_level)

    store = store or SessionStore(ttl_minutes=settings.session_ttl_minutes)
    bridge = BridgeService(settings, store=store, transport=transport)

    cors_headers = {"Access-Control-Allow-Origin": settings.allowed_origin}
    preflight_headers = {
        **cors_headers,
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
    }

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown lifecycle."""
        logger.info(f"coursebridge starting up (provider={settings.ai_provider.value})")

        owns_redis = False
        if settings.redis_url and store.redis is None:
            import redis.asyncio as aioredis
            store.redis = aioredis.from_url(settings.redis_url, decode_responses=True)
            owns_redis = True
            logger.info("Connected to Redis for session storage")
        elif store.redis is None:
            logger.info("Running without Redis (sessions are ephemeral)")

        yield

        if owns_redis:
            await store.redis.aclose()
            store.redis = None
        logger.info("coursebridge shut down")

    app = FastAPI(
        title="coursebridge",
        description="AI provider bridge for e-learning courses",
        lifespan=lifespan,
    )
    app.state.bridge = bridge
    logfire.instrument_fastapi(app)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=cors_headers)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {
            "status": "ok",
            "provider": settings.ai_provider.value,
            "provider_configured": settings.has_credentials(),
            "session_backend": store.backend,
        }

    @app.options("/generate")
    async def preflight():
        return Response(status_code=204, headers=preflight_headers)

    @app.post("/generate")
    async def generate(request: Request):
        """
        Forward a prompt (or recorded audio) to the configured AI provider.

        All failures come back as {"error": "..."} with status 500.
        """
        parent_context = telemetry.extract_parent_context(request)

        with tracer.start_as_current_span("bridge.generate", context=parent_context) as span:
            span.set_attribute("bridge.provider", bridge.provider)
            try:
                body, audio = await parse_request(request)
                span.set_attribute("bridge.has_audio", audio is not None)
                if body.session_id:
                    span.set_attribute("session_id", body.session_id[:8])

                result = await bridge.handle(body, audio)
            except BridgeError as e:
                logger.error(f"Request failed: {e}")
                span.record_exception(e)
                return JSONResponse({"error": str(e)}, status_code=500, headers=cors_headers)
            except Exception as e:
                logger.error(f"Unexpected error: {e}", exc_info=True)
                span.record_exception(e)
                return JSONResponse(
                    {"error": str(e) or "Internal server error."},
                    status_code=500,
                    headers=cors_headers,
                )

            return JSONResponse(
                result.model_dump(by_alias=True, exclude_none=True),
                headers=cors_headers,
            )

    return app


app = create_app()


# For running directly with uvicorn
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8100)
