import logging

from opentelemetry import trace, metrics
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader, PeriodicExportingMetricReader
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.semconv.resource import ResourceAttributes
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from config import settings

logger = logging.getLogger(__name__)

METRIC_EXPORT_INTERVAL_MILLIS = 10000


def parse_headers(raw: str) -> dict:
    """Parse headers like "Authorization=Basic YWRt...,X-Org=hotel"."""
    headers = {}
    for header in (raw or "").split(","):
        if "=" in header:
            key, value = header.split("=", 1)
            headers[key.strip()] = value.strip()
    return headers


def build_metric_readers(endpoint: str, raw_headers: str = "") -> list[MetricReader]:
    """OTLP metric readers; none when no metrics endpoint is configured."""
    if not endpoint:
        return []
    headers = parse_headers(raw_headers)
    exporter = OTLPMetricExporter(
        endpoint=f"{endpoint.rstrip('/')}/v1/metrics",
        headers=headers or None,
    )
    return [PeriodicExportingMetricReader(exporter, export_interval_millis=METRIC_EXPORT_INTERVAL_MILLIS)]


class BookingMetrics:
    """Counters for the booking flow."""

    def __init__(self, meter: metrics.Meter):
        self.availability_checks = meter.create_counter(
            name="hotel_availability_checks_total",
            description="Total number of availability checks",
            unit="1",
        )
        self.quotes = meter.create_counter(
            name="hotel_quotes_total",
            description="Total number of booking quotes by outcome",
            unit="1",
        )
        self.bookings = meter.create_counter(
            name="hotel_bookings_total",
            description="Total number of bookings by channel",
            unit="1",
        )

    def record_availability_check(self, room_type: str, empty: bool):
        self.availability_checks.add(1, {"room_type": room_type, "empty": str(empty)})

    def record_quote(self, room_type: str, outcome: str):
        self.quotes.add(1, {"room_type": room_type, "outcome": outcome})

    def record_booking(self, room_type: str, channel: str):
        self.bookings.add(1, {"room_type": room_type, "channel": channel})


def setup_telemetry(app):
    """Configure OpenTelemetry tracing and metrics for the booking service."""
    if not settings.otel_enabled:
        return trace.get_tracer(__name__), metrics.get_meter(__name__)

    resource = Resource(attributes={
        ResourceAttributes.SERVICE_NAME: settings.otel_service_name,
        ResourceAttributes.SERVICE_VERSION: settings.service_version,
    })

    trace_provider = TracerProvider(resource=resource)
    if settings.otel_exporter_otlp_endpoint:
        trace_exporter = OTLPSpanExporter(
            endpoint=f"{settings.otel_exporter_otlp_endpoint.rstrip('/')}/v1/traces"
        )
        trace_provider.add_span_processor(BatchSpanProcessor(trace_exporter))
    else:
        logger.info("No OTLP trace endpoint configured, spans are not exported")
    trace.set_tracer_provider(trace_provider)

    metric_readers = build_metric_readers(
        settings.otel_exporter_otlp_metrics_endpoint,
        settings.otel_exporter_otlp_metrics_headers,
    )
    if not metric_readers:
        logger.info("No OTLP metrics endpoint configured, metrics are not exported")
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=metric_readers))

    FastAPIInstrumentor.instrument_app(app)
    # Backend calls go through httpx
    HTTPXClientInstrumentor().instrument()

    return trace.get_tracer(__name__), metrics.get_meter(__name__)
