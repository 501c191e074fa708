"""OpenTelemetry configuration for tracing, metrics and logs.

This module configures OpenTelemetry with:
- OTLP exporters for traces, metrics and log records
- Auto-instrumentation for FastAPI, HTTPX and Python logging

Nothing is exported unless ``settings.otel_enabled`` is set; without a
configured provider the metric and tracer calls elsewhere are no-ops.
"""
import logging
import socket
from typing import Any, Optional

from opentelemetry import metrics, trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from portfolio_ledger.core.config import settings

logger = logging.getLogger(__name__)

# Global tracer for custom spans
_tracer: Optional[trace.Tracer] = None


def get_tracer() -> trace.Tracer:
    """Get the configured tracer for creating custom spans."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(
            settings.otel_service_name,
            settings.otel_service_version
        )
    return _tracer


def _create_resource() -> Resource:
    environment = "Development" if settings.debug else "Production"

    return Resource.create({
        SERVICE_NAME: settings.otel_service_name,
        SERVICE_VERSION: settings.otel_service_version,
        "deployment.environment": environment,
        "service.instance.id": socket.gethostname(),
    })


def configure_telemetry() -> None:
    """
    Configure OpenTelemetry tracing, metrics and logging.

    The endpoint is OTEL_EXPORTER_OTLP_ENDPOINT when set, otherwise
    OTLP_ENDPOINT.
    """
    otlp_endpoint = settings.resolved_otlp_endpoint
    resource = _create_resource()

    logger.info(f"Configuring OpenTelemetry with endpoint: {otlp_endpoint}")
    logger.info(f"Service: {settings.otel_service_name} v{settings.otel_service_version}")

    _configure_tracing(resource, otlp_endpoint)
    _configure_metrics(resource, otlp_endpoint)
    _configure_logging(resource, otlp_endpoint)

    logger.info("OpenTelemetry configuration complete")


def _configure_tracing(resource: Resource, otlp_endpoint: str) -> None:
    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=settings.otel_insecure))
    )
    trace.set_tracer_provider(tracer_provider)

    logger.info("Tracing configured with OTLP exporter")


def _configure_metrics(resource: Resource, otlp_endpoint: str) -> None:
    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=otlp_endpoint, insecure=settings.otel_insecure),
        export_interval_millis=settings.otel_metric_export_interval_ms
    )
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=[metric_reader]))

    logger.info("Metrics configured with OTLP exporter")


def _configure_logging(resource: Resource, otlp_endpoint: str) -> None:
    logger_provider = LoggerProvider(resource=resource)
    logger_provider.add_log_record_processor(
        BatchLogRecordProcessor(OTLPLogExporter(endpoint=otlp_endpoint, insecure=settings.otel_insecure))
    )
    set_logger_provider(logger_provider)

    # Ship root logger records alongside the console output
    logging.getLogger().addHandler(LoggingHandler(level=logging.NOTSET, logger_provider=logger_provider))

    logger.info("Logging configured with OTLP exporter")


def instrument_app(app: Any) -> None:
    """
    Apply auto-instrumentation to the FastAPI application.

    Instruments:
    - FastAPI requests and responses
    - HTTPX client calls made by the live quote provider
    - Python logging (adds trace context to log records)
    """
    FastAPIInstrumentor.instrument_app(app)
    HTTPXClientInstrumentor().instrument()
    LoggingInstrumentor().instrument(set_logging_format=True)
    logger.info("FastAPI, HTTPX and logging instrumentation enabled")
