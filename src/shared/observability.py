import logging
import os

from opentelemetry import trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import start_http_server

from src.config import ExamConfig

SERVICE_NAME = "exam-drill"

logger = logging.getLogger(__name__)


def configure_observability(metrics_port: int = ExamConfig.METRICS_PORT) -> bool:
    """
    Sends traces and logs over OTLP when the OTEL env vars are present,
    and exposes Prometheus metrics on `metrics_port`.
    Returns True when the OTLP exporters were installed.
    """
    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    headers = os.getenv("OTEL_EXPORTER_OTLP_HEADERS")

    exporting = bool(endpoint and headers)
    if exporting:
        resource = Resource.create({"service.name": SERVICE_NAME})

        # --- Tracing ---
        trace_provider = TracerProvider(resource=resource)
        trace_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, headers=headers))
        )
        trace.set_tracer_provider(trace_provider)

        # --- Logs ---
        logger_provider = LoggerProvider(resource=resource)
        logger_provider.add_log_record_processor(
            BatchLogRecordProcessor(OTLPLogExporter(endpoint=endpoint, headers=headers))
        )
        set_logger_provider(logger_provider)
        logging.getLogger().addHandler(
            LoggingHandler(level=logging.INFO, logger_provider=logger_provider)
        )
    else:
        logger.warning("OTEL env vars not set, telemetry stays local")

    # --- Metrics ---
    try:
        start_http_server(metrics_port)
        logger.info("Prometheus metrics server started on port %d", metrics_port)
    except OSError:
        logger.warning("Metrics port %d already in use, skipping", metrics_port)

    return exporting
