from kyc_review_service.app.config import settings
import logging
from typing import Dict

from opentelemetry import trace, metrics
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader, ConsoleMetricExporter
from opentelemetry.sdk.resources import Resource, SERVICE_NAME as ResourceAttributesServiceName
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator
from pythonjsonlogger import jsonlogger


logger = logging.getLogger("kyc_review_service")

def setup_json_logging():
    root_logger = logging.getLogger()
    if any(isinstance(h.formatter, jsonlogger.JsonFormatter) for h in root_logger.handlers):
        return
    logHandler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(module)s %(funcName)s %(lineno)d %(otelTraceID)s %(otelSpanID)s %(message)s",
        rename_fields={"levelname": "level", "name": "logger_name", "asctime": "timestamp"},
    )
    logHandler.setFormatter(formatter)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.addHandler(logHandler)
    log_level = settings.LOG_LEVEL.upper()
    root_logger.setLevel(log_level)
    logger.setLevel(log_level)
    logger.info(f"JSON logging configured at level {log_level}.")

def setup_opentelemetry(service_name: str):
    resource = Resource(attributes={
        ResourceAttributesServiceName: service_name,
    })
    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    if settings.OTEL_EXPORTER_OTLP_TRACES_ENDPOINT:
        logger.info(f"Configuring OTLP Span Exporter. Endpoint: {settings.OTEL_EXPORTER_OTLP_TRACES_ENDPOINT}")
        otlp_span_exporter = OTLPSpanExporter(endpoint=settings.OTEL_EXPORTER_OTLP_TRACES_ENDPOINT, insecure=True)
        tracer_provider.add_span_processor(BatchSpanProcessor(otlp_span_exporter))
    else:
        logger.info("OTLP Span Exporter not configured. Using Console for spans.")
    trace.set_tracer_provider(tracer_provider)
    logger.info(f"OpenTelemetry TracerProvider configured for service: {service_name}.")

    metric_readers = [PeriodicExportingMetricReader(ConsoleMetricExporter(), export_interval_millis=5000)]
    if settings.OTEL_EXPORTER_OTLP_METRICS_ENDPOINT:
        logger.info(f"Configuring OTLP Metric Exporter. Endpoint: {settings.OTEL_EXPORTER_OTLP_METRICS_ENDPOINT}")
        otlp_metric_exporter = OTLPMetricExporter(endpoint=settings.OTEL_EXPORTER_OTLP_METRICS_ENDPOINT, insecure=True)
        metric_readers.append(PeriodicExportingMetricReader(otlp_metric_exporter, export_interval_millis=5000))
    else:
        logger.info("OTLP Metric Exporter not configured. Using Console for metrics.")
    meter_provider = MeterProvider(resource=resource, metric_readers=metric_readers)
    metrics.set_meter_provider(meter_provider)
    logger.info(f"OpenTelemetry MeterProvider configured for service: {service_name}.")

# Call at module load time
setup_json_logging()

# --- Tracer and Meter instances ---
# Proxies until an entry point calls setup_opentelemetry; modules import these.
tracer = trace.get_tracer("kyc_review_service.tracer")
meter = metrics.get_meter("kyc_review_service.meter")

# --- Custom Metrics Definitions ---
status_transitions_counter = meter.create_counter(
    name="kyc_review.submission.transitions.total",
    description="Counts committed submission status transitions, partitioned by event.",
    unit="1"
)

amendments_requested_counter = meter.create_counter(
    name="kyc_review.amendments.requested.total",
    description="Counts amendment requests opened by reviewers.",
    unit="1"
)

amendments_resolved_counter = meter.create_counter(
    name="kyc_review.amendments.resolved.total",
    description="Counts amendment requests resolved by branch responses.",
    unit="1"
)

amendment_resolution_latency_histogram = meter.create_histogram(
    name="kyc_review.amendment.resolution.latency.seconds",
    description="Measures the latency of an amendment resolution from call to store commit, uploads included.",
    unit="s"
)

live_preview_handles_counter = meter.create_up_down_counter(
    name="kyc_review.preview.handles.live",
    description="Number of preview handles allocated and not yet released.",
    unit="1"
)

persistence_write_failures_counter = meter.create_counter(
    name="kyc_review.persistence.write.failures.total",
    description="Counts failed persistence mirror writes, partitioned by whether the snapshot was re-queued.",
    unit="1"
)
logger.info("Custom metrics (Counters, Histogram) defined in observability.py.")

# --- Kafka Trace Context Propagation ---
def inject_trace_context_into_kafka_headers() -> list:
    """
    Serialises the current OpenTelemetry trace context as Kafka message headers.
    Returns:
        A list of tuples (key, value_bytes) suitable for confluent_kafka's `headers` argument.
    """
    carrier: Dict[str, str] = {}
    TraceContextTextMapPropagator().inject(carrier=carrier)
    return [(key, value.encode('utf-8')) for key, value in carrier.items()]
