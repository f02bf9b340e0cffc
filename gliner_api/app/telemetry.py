"""OpenTelemetry configuration and utilities."""

import inspect
import logging
import socket
import uuid
from functools import wraps
from typing import Any, Callable, Optional

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.semconv.resource import ResourceAttributes
from opentelemetry.trace.status import Status, StatusCode

from gliner_api.app.config import settings

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

_tracer_provider: Optional[TracerProvider] = None
_span_processors: list[SpanProcessor] = []
_is_setup_complete = False


def _enrich_span_with_request_details(span: trace.Span, scope: dict[str, Any]) -> None:
    """Add custom attributes to request spans."""
    if not span or not span.is_recording():
        return

    span.set_attribute("app.request_id", str(uuid.uuid4()))
    span.set_attribute("app.engine.backend", settings.ENGINE_BACKEND)
    span.set_attribute("app.engine.model", settings.GLINER_MODEL)


def _is_collector_available(host: str, port: int, timeout: float = 0.5) -> bool:
    """Check if the OpenTelemetry collector is reachable."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def _parse_endpoint(endpoint: str) -> tuple[str, int]:
    parts = endpoint.replace("http://", "").replace("https://", "").split(":")
    return parts[0], int(parts[1]) if len(parts) > 1 else 4317


def _build_span_processor() -> SpanProcessor:
    """Pick the OTLP exporter when a collector answers, else the console."""
    endpoint = settings.OTEL_EXPORTER_OTLP_ENDPOINT.strip()
    if not endpoint:
        logger.info("OTLP endpoint not configured. Using console exporter.")
        return BatchSpanProcessor(ConsoleSpanExporter())

    try:
        host, port = _parse_endpoint(endpoint)
    except ValueError:
        logger.warning("Malformed OTLP endpoint %r. Using console exporter.", endpoint)
        return BatchSpanProcessor(ConsoleSpanExporter())

    if not _is_collector_available(host, port):
        logger.warning("OTLP collector not available at %s:%d. Using console exporter.", host, port)
        return BatchSpanProcessor(ConsoleSpanExporter())

    logger.info("OTLP collector is available at %s:%d", host, port)
    exporter = OTLPSpanExporter(endpoint=endpoint, insecure=not settings.OTLP_SECURE, timeout=3)
    return BatchSpanProcessor(
        exporter,
        max_export_batch_size=512,
        schedule_delay_millis=5000,
        max_queue_size=2048,
    )


def shutdown_telemetry() -> None:
    """Flush and shut down span processors created by setup_telemetry."""
    global _tracer_provider, _is_setup_complete

    if not _is_setup_complete:
        return

    logger.info("Shutting down OpenTelemetry components...")
    for processor in _span_processors:
        try:
            processor.shutdown()
        except Exception as e:
            logger.warning("Error shutting down span processor: %s", e)

    _span_processors.clear()
    _tracer_provider = None
    _is_setup_complete = False
    logger.info("OpenTelemetry shutdown completed")


def setup_telemetry(app: FastAPI) -> None:
    """Set up OpenTelemetry tracing for the FastAPI application."""
    global _tracer_provider, _is_setup_complete

    if not settings.OTEL_ENABLED:
        logger.info("OpenTelemetry instrumentation is disabled")
        return

    if _is_setup_complete:
        logger.debug("OpenTelemetry already configured, skipping setup")
        return

    if hasattr(trace.get_tracer_provider(), "add_span_processor"):
        logger.warning("TracerProvider already exists, skipping telemetry setup")
        return

    try:
        resource = Resource.create(
            {
                ResourceAttributes.SERVICE_NAME: settings.OTEL_SERVICE_NAME,
                ResourceAttributes.SERVICE_VERSION: settings.API_VERSION,
            }
        )
        _tracer_provider = TracerProvider(
            resource=resource,
            sampler=ParentBased(root=TraceIdRatioBased(settings.OTEL_TRACES_SAMPLER_ARG)),
        )
        trace.set_tracer_provider(_tracer_provider)

        processor = _build_span_processor()
        _tracer_provider.add_span_processor(processor)
        _span_processors.append(processor)

        FastAPIInstrumentor.instrument_app(
            app,
            excluded_urls=settings.OTEL_PYTHON_FASTAPI_EXCLUDED_URLS,
            server_request_hook=_enrich_span_with_request_details,
        )
        _is_setup_complete = True
        logger.info("OpenTelemetry instrumentation configured successfully")

    except Exception:
        logger.exception("Failed to configure OpenTelemetry")


def trace_method(name: str | None = None) -> Callable:
    """Decorator that wraps a sync or async callable in a span."""

    def decorator(func: Callable) -> Callable:
        span_name = name or func.__name__

        def _start_span() -> Any:
            return trace.get_tracer(__name__).start_as_current_span(
                span_name, record_exception=False, set_status_on_exception=False
            )

        def _describe(span: trace.Span, args: tuple, kwargs: dict) -> None:
            span.set_attributes(
                {
                    "function.name": func.__name__,
                    "function.args_count": len(args),
                    "function.kwargs_keys": str(list(kwargs.keys())),
                }
            )

        def _fail(span: trace.Span, exc: Exception) -> None:
            span.set_status(Status(StatusCode.ERROR, type(exc).__name__))
            span.record_exception(exc)

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                if not settings.OTEL_ENABLED:
                    return await func(*args, **kwargs)
                with _start_span() as span:
                    _describe(span, args, kwargs)
                    try:
                        result = await func(*args, **kwargs)
                    except Exception as e:
                        _fail(span, e)
                        raise
                    span.set_status(Status(StatusCode.OK))
                    return result

            return async_wrapper

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if not settings.OTEL_ENABLED:
                return func(*args, **kwargs)
            with _start_span() as span:
                _describe(span, args, kwargs)
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _fail(span, e)
                    raise
                span.set_status(Status(StatusCode.OK))
                return result

        return wrapper

    return decorator
