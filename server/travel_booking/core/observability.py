"""
Logging, tracing and Prometheus metrics for the travel booking API.

Both stdlib loggers (services, routers) and structlog loggers (inventory
coordinator, event bus) end up in one structlog formatter, so every line
carries the request ID and the active trace context.
"""

import logging

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

from .config import settings

SERVICE_NAME = "travel-booking-api"
SERVICE_VERSION = "1.0.0"

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "http_requests_total", "HTTP requests by route and status",
    ["method", "endpoint", "status_code"], registry=REGISTRY,
)
REQUEST_DURATION = Histogram(
    "http_request_duration_seconds", "HTTP request latency",
    ["method", "endpoint"], registry=REGISTRY,
)

# Inventory outcomes
BOOKINGS_CREATED = Counter("bookings_created_total", "Confirmed reservations", registry=REGISTRY)
BOOKINGS_CANCELLED = Counter("bookings_cancelled_total", "Bookings flipped to CANCELLED", registry=REGISTRY)
PACKAGE_RESTOCKS = Counter("package_restocks_total", "Restock policy firings", registry=REGISTRY)
RESERVATIONS_REJECTED = Counter(
    "reservations_rejected_total", "Reservations refused by the inventory gate",
    ["reason"], registry=REGISTRY,
)


def _add_trace_context(logger, method_name, event_dict):
    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def setup_structured_logging() -> None:
    """Route stdlib and structlog records through one structlog renderer."""
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _add_trace_context,
    ]
    renderer = structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            # ``extra={...}`` on stdlib calls becomes event fields
            foreign_pre_chain=[*shared_processors, structlog.stdlib.ExtraAdder()],
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)


def setup_tracing(service_name: str = SERVICE_NAME) -> trace.Tracer:
    """Install the tracer provider. Spans leave the process only when ``otlp_endpoint`` is set."""
    provider = TracerProvider(
        resource=Resource.create({
            "service.name": service_name,
            "service.version": SERVICE_VERSION,
            "deployment.environment": settings.environment,
        })
    )
    if settings.otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint)))
    trace.set_tracer_provider(provider)

    return trace.get_tracer(service_name)


def instrument_fastapi(app) -> None:
    FastAPIInstrumentor.instrument_app(app, excluded_urls="health,ready,metrics")


def instrument_sqlalchemy(engine) -> None:
    # The instrumentor hooks the sync engine underneath AsyncEngine
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


class MetricsCollector:
    """Thin facade over the module counters so call sites stay metric-name agnostic."""

    def record_booking_created(self) -> None:
        BOOKINGS_CREATED.inc()

    def record_booking_cancelled(self) -> None:
        BOOKINGS_CANCELLED.inc()

    def record_restock(self) -> None:
        PACKAGE_RESTOCKS.inc()

    def record_reservation_rejected(self, reason: str) -> None:
        RESERVATIONS_REJECTED.labels(reason=reason).inc()

    def record_request(self, method: str, endpoint: str, status_code: int, duration: float) -> None:
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)


def get_prometheus_metrics() -> bytes:
    """Serialize the service registry in the Prometheus text format."""
    return generate_latest(REGISTRY)


metrics_collector = MetricsCollector()
