"""Telemetry setup for the bridge.

Provider calls get gen_ai.* semantic-convention attributes so that they show up
as model runs in Logfire. If there's an active request span we attach to it as
a child span; background use simply gets a root span.
"""

import json
import logging
from contextlib import contextmanager

import logfire
from fastapi import Request
from opentelemetry import trace
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

logger = logging.getLogger(__name__)

SERVICE_NAME = "coursebridge"

_initialised = False


def init(log_level: str = "INFO") -> None:
    """Configure stdlib logging and logfire once per process."""
    global _initialised
    if _initialised:
        return

    logging.basicConfig(
        level=log_level.upper(),
        format="%(levelname)s %(asctime)s [%(name)s:%(lineno)d] %(message)s",
    )
    # Only ships data when LOGFIRE_TOKEN is present
    logfire.configure(service_name=SERVICE_NAME, send_to_logfire="if-token-present", console=False)
    _initialised = True


def get_tracer():
    return trace.get_tracer(SERVICE_NAME)


def extract_parent_context(request: Request):
    """Extract OTel parent context from incoming request headers."""
    traceparent = request.headers.get("traceparent")
    if traceparent:
        carrier = {"traceparent": traceparent}
        return TraceContextTextMapPropagator().extract(carrier=carrier)
    return None


@contextmanager
def provider_span(provider: str, operation: str, model: str, input_messages: list[dict] | None = None):
    """
    Span around one upstream AI call.

    Args:
        provider: gen_ai.provider.name (e.g. "openai")
        operation: Our semantic name ("chat", "transcribe")
        model: The model requested
        input_messages: Messages sent, roles and text only
    """
    attrs = {
        "gen_ai.operation.name": operation,
        "gen_ai.provider.name": provider,
        "gen_ai.request.model": model,
    }
    if input_messages:
        attrs["gen_ai.input.messages"] = json.dumps(input_messages, ensure_ascii=False)

    with get_tracer().start_as_current_span(f"{provider}:{operation}", attributes=attrs) as span:
        yield span


def set_response_attrs(span, model: str, status: int) -> None:
    """Set gen_ai.* response attributes on a span."""
    span.set_attribute("gen_ai.response.model", model)
    span.set_attribute("http.response.status_code", status)
