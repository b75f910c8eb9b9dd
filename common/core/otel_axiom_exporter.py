"""
Tracing and logging setup.

Spans go to Axiom over OTLP/HTTP when ``AXIOM_TOKEN`` is set; without it the
tracer provider still runs so span context and attributes work locally.
"""

from typing import Any, Dict, Optional
import functools
import inspect
import logging
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.resources import (
    DEPLOYMENT_ENVIRONMENT,
    SERVICE_NAME,
    SERVICE_VERSION,
    Resource,
)
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from common.core.config import settings

AXIOM_TRACES_ENDPOINT = "https://api.axiom.co/v1/traces"

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    force=True,
)

_initialized = False
axiom_tracer = None


def _build_tracer_provider() -> TracerProvider:
    resource = Resource(
        attributes={
            SERVICE_NAME: settings.otel_service_name,
            SERVICE_VERSION: settings.otel_service_version,
            DEPLOYMENT_ENVIRONMENT: settings.environment.value,
        }
    )
    provider = TracerProvider(resource=resource)
    if settings.axiom_token:
        exporter = OTLPSpanExporter(
            endpoint=AXIOM_TRACES_ENDPOINT,
            headers={
                "Authorization": f"Bearer {settings.axiom_token}",
                "X-Axiom-Dataset": settings.axiom_dataset,
            },
        )
        provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def _initialize_telemetry():
    """Install the tracer provider once per process."""
    global _initialized, axiom_tracer

    if _initialized:
        return

    trace.set_tracer_provider(_build_tracer_provider())
    axiom_tracer = trace.get_tracer(settings.otel_service_name)
    _initialized = True

    logging.getLogger(__name__).info(
        f"Telemetry initialized (exporting={bool(settings.axiom_token)}, "
        f"environment={settings.environment.value})"
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance. Ensures telemetry is initialized.
    Use this instead of logging.getLogger() directly.
    """
    if not _initialized:
        _initialize_telemetry()
    return logging.getLogger(name)


def _span_name(func, args) -> str:
    if not _initialized:
        _initialize_telemetry()
    if args and hasattr(args[0], func.__name__):
        return f"{args[0].__class__.__name__}.{func.__name__}"
    return func.__name__


def trace_span(func):
    """Wrap a function (sync or async) in a span named ``Class.method``."""

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            with axiom_tracer.start_as_current_span(_span_name(func, args)):
                return await func(*args, **kwargs)

        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        with axiom_tracer.start_as_current_span(_span_name(func, args)):
            return func(*args, **kwargs)

    return sync_wrapper


def set_span_attributes(attributes: Dict[str, Any]) -> None:
    """Tag the active span, e.g. with the account and attempt being charged."""
    current_span = trace.get_current_span()
    if current_span.is_recording():
        current_span.set_attributes(
            {key: value for key, value in attributes.items() if value is not None}
        )


def log_span_event(message: str, attributes: Optional[Dict[str, Any]] = None):
    """
    Record a message as an event on the current span and in the logs.
    Events show up in the trace view in Axiom.
    """
    current_span = trace.get_current_span()
    if current_span.is_recording():
        current_span.add_event(message, attributes=attributes or {})

    get_logger(__name__).info(message, extra=attributes)
