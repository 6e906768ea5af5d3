"""
OpenTelemetry tracing setup

Spans are always created through the global tracer provider. Until
setup_tracing() installs an SDK provider, the API's default provider is a
no-op, so instrumented code costs next to nothing when tracing is disabled.
"""
from typing import Optional, Dict, Any
import logging

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.trace import Status, StatusCode

from config import Config

logger = logging.getLogger(__name__)


def setup_tracing(app):
    """
    Setup OpenTelemetry tracing with auto-instrumentation

    Traces all FastAPI endpoints and every httpx request (LLM provider and
    Financial Datasets calls). Spans are exported over OTLP when
    OTLP_ENDPOINT is set, otherwise to the console.

    Args:
        app: FastAPI application instance
    """
    if not Config.ENABLE_TRACING:
        return

    resource = Resource.create({
        "service.name": "fincasts-api",
        "service.version": "1.0.0",
    })
    provider = TracerProvider(resource=resource)

    if Config.OTLP_ENDPOINT:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=Config.OTLP_ENDPOINT)))
        logger.info(f"🔍 OpenTelemetry tracing enabled, exporting to {Config.OTLP_ENDPOINT}")
    else:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        logger.info("🔍 OpenTelemetry tracing enabled (console export)")

    trace.set_tracer_provider(provider)

    FastAPIInstrumentor.instrument_app(app)
    HTTPXClientInstrumentor().instrument()


def get_tracer(name: str = "fincasts"):
    """
    Get a tracer for manual span creation

    Usage:
        tracer = get_tracer(__name__)

        with tracer.start_as_current_span("my_operation"):
            result = expensive_function()
    """
    return trace.get_tracer(name)


def add_span_attributes(attributes: Dict[str, Any]):
    """Add attributes to the current span"""
    span = trace.get_current_span()
    if span and span.is_recording():
        for key, value in attributes.items():
            span.set_attribute(key, value)


def add_span_event(name: str, attributes: Optional[Dict[str, Any]] = None):
    """Add an event to the current span timeline"""
    span = trace.get_current_span()
    if span and span.is_recording():
        span.add_event(name, attributes=attributes or {})


def record_exception(exception: Exception):
    """Record an exception in the current span and mark it as failed"""
    span = trace.get_current_span()
    if span and span.is_recording():
        span.record_exception(exception)
        span.set_status(Status(StatusCode.ERROR, str(exception)))


def set_span_status(success: bool, description: Optional[str] = None):
    """
    Set the status of the current span

    Args:
        success: Whether the operation succeeded
        description: Optional description (used for errors)
    """
    span = trace.get_current_span()
    if span and span.is_recording():
        if success:
            span.set_status(Status(StatusCode.OK))
        else:
            span.set_status(Status(StatusCode.ERROR, description or "Operation failed"))
