"""Common plumbing for provider adapters.

An adapter takes the canonical turn list (see ``coursebridge.messages``) and
turns it into one provider's wire format. Credentials are bound when the
adapter is built; one ``httpx.AsyncClient`` is opened per ``generate`` call.
"""

import logging
from collections.abc import Callable, Collection, Sequence
from typing import Any

import httpx
import logfire

from ..errors import InvalidInput, ProviderError
from ..models import AudioInput, ProviderOptions, ProviderResult, Turn
from ..telemetry import provider_span, set_response_attrs

logger = logging.getLogger(__name__)

NO_BODY = "(no body)"


async def safe_read_text(response: httpx.Response) -> str:
    """Return the response body as text, or a placeholder if it can't be read."""
    try:
        await response.aread()
        return response.text
    except Exception:
        return NO_BODY


def turns_for_span(turns: Sequence[Turn]) -> list[dict]:
    return [{"role": t.role.value, "parts": [{"type": "text", "content": t.text}]} for t in turns]


class ProviderAdapter:
    """Base class for the four provider adapters."""

    name: str = ""  # gen_ai.provider.name, also the public provider id
    label: str = ""  # Human name used in error messages
    supports_audio: bool = True

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def generate(
        self,
        turns: Sequence[Turn],
        audio: AudioInput | None = None,
        options: ProviderOptions | None = None,
    ) -> ProviderResult:
        """Run one call against the provider."""
        raise NotImplementedError

    def ensure_audio_supported(self, audio: AudioInput | None) -> None:
        if audio is not None and not self.supports_audio:
            raise InvalidInput(f"{self.label} does not accept audio input.")

    async def post(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        model: str,
        operation: str,
        input_messages: list[dict] | None = None,
        **request: Any,
    ) -> httpx.Response:
        """POST once inside a gen_ai span. Transport failures become ProviderError."""
        with provider_span(self.name, operation, model, input_messages) as span:
            try:
                response = await client.post(url, **request)
            except httpx.HTTPError as e:
                logger.error(f"{self.label} {operation} request failed: {e}")
                span.record_exception(e)
                raise ProviderError(self.label, None, str(e) or type(e).__name__, operation) from e
            set_response_attrs(span, model, response.status_code)
            return response

    async def post_with_fallback(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        models: tuple[str, str],
        fallback_statuses: Collection[int],
        operation: str,
        build_request: Callable[[str], dict[str, Any]],
        input_messages: list[dict] | None = None,
    ) -> tuple[httpx.Response, str]:
        """
        POST with the primary model, retrying once with the secondary one.

        The retry only happens when the primary answer's status is in
        ``fallback_statuses``. Whatever the final response is, a non-2xx
        status raises ProviderError with that status and body.

        Returns:
            (successful response, model actually used)
        """
        primary, secondary = models
        model = primary
        response = await self.post(
            client, url, model=primary, operation=operation,
            input_messages=input_messages, **build_request(primary),
        )

        if response.status_code in fallback_statuses:
            detail = await safe_read_text(response)
            logger.warning(
                f"{self.label} primary {operation} model failed ({primary}, {response.status_code}). "
                f"Falling back to {secondary}. Details: {detail[:500]}"
            )
            logfire.warn(
                "Provider fallback", provider=self.name, operation=operation,
                primary=primary, secondary=secondary, status=response.status_code,
            )
            model = secondary
            response = await self.post(
                client, url, model=secondary, operation=operation,
                input_messages=input_messages, **build_request(secondary),
            )

        await self.raise_for_status(response, operation)
        return response, model

    async def raise_for_status(self, response: httpx.Response, operation: str) -> None:
        if not response.is_success:
            detail = await safe_read_text(response)
            logfire.error(
                "Provider call failed", provider=self.name, operation=operation,
                status=response.status_code,
            )
            raise ProviderError(self.label, response.status_code, detail, operation)

    def read_json(self, response: httpx.Response, operation: str) -> dict:
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(self.label, response.status_code, f"invalid JSON body: {e}", operation) from e
        return data if isinstance(data, dict) else {}

    def log_success(self, operation: str, model: str) -> None:
        logger.info(f"{self.label} {operation} model: {model}")
        logfire.info("Provider call complete", provider=self.name, operation=operation, model=model)
