"""OpenTelemetry + Prometheus fallback wiring for the transcript viewer backend."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI

from transcript_backend import config

logger = logging.getLogger("transcript_viewer.observability")


_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_meter_provider: Any | None = None
_fastapi_instrumentor: Any | None = None

_store_request_counter: Any | None = None
_store_latency_hist: Any | None = None
_parser_failure_counter: Any | None = None
_merge_counter: Any | None = None
_merged_records_hist: Any | None = None

_prom_enabled = False
_prom_store_request_counter: Any | None = None
_prom_store_latency_hist: Any | None = None
_prom_parser_failure_counter: Any | None = None
_prom_merge_counter: Any | None = None
_prom_merged_records_hist: Any | None = None


def _normalize_otlp_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip()
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    if endpoint.endswith("/v1"):
        return f"{endpoint}{signal_path[3:]}"
    return f"{endpoint}{signal_path}"


def _prom_labels(**extra: str) -> dict[str, str]:
    return {key: (value or "").strip() or "unknown" for key, value in extra.items()}


def initialize(app: FastAPI | None = None) -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _meter_provider, _fastapi_instrumentor
    global _store_request_counter, _store_latency_hist, _parser_failure_counter
    global _merge_counter, _merged_records_hist
    global _prom_enabled
    global _prom_store_request_counter, _prom_store_latency_hist, _prom_parser_failure_counter
    global _prom_merge_counter, _prom_merged_records_hist

    if _initialized:
        if _enabled and app and _fastapi_instrumentor:
            _fastapi_instrumentor.instrument_app(app)
        return

    _initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (TRANSCRIPT_VIEWER_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    traces_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/traces")
    metrics_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/metrics")
    service_name = config.OTEL_SERVICE_NAME or "transcript-viewer-backend"

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.namespace": "transcript-viewer",
        }
    )

    trace_provider = TracerProvider(resource=resource)
    trace_exporter = OTLPSpanExporter(endpoint=traces_endpoint or None)
    trace_provider.add_span_processor(BatchSpanProcessor(trace_exporter))
    trace.set_tracer_provider(trace_provider)
    tracer = trace.get_tracer("transcript_viewer.backend")

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=metrics_endpoint or None)
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("transcript_viewer.backend")

    _store_request_counter = meter.create_counter(
        "transcript_viewer_store_requests_total",
        unit="1",
        description="Object store list/get calls by outcome",
    )
    _store_latency_hist = meter.create_histogram(
        "transcript_viewer_store_latency_ms",
        unit="ms",
        description="Latency of object store list/get calls",
    )
    _parser_failure_counter = meter.create_counter(
        "transcript_viewer_parser_failures_total",
        unit="1",
        description="Count of transcript blobs rejected by the JSONL parser",
    )
    _merge_counter = meter.create_counter(
        "transcript_viewer_session_merges_total",
        unit="1",
        description="Session timeline merges by outcome",
    )
    _merged_records_hist = meter.create_histogram(
        "transcript_viewer_merged_records",
        unit="1",
        description="Records per merged session timeline",
    )

    _trace_provider = trace_provider
    _meter_provider = meter_provider
    _tracer = tracer
    _fastapi_instrumentor = FastAPIInstrumentor()
    _enabled = True

    if app:
        _fastapi_instrumentor.instrument_app(app)

    if config.PROM_PORT > 0:
        try:
            from prometheus_client import Counter, Histogram, start_http_server

            start_http_server(config.PROM_PORT)
            _prom_enabled = True
            _prom_store_request_counter = Counter(
                "transcript_viewer_store_requests_total",
                "Object store list/get calls by outcome",
                ["operation", "result"],
            )
            _prom_store_latency_hist = Histogram(
                "transcript_viewer_store_latency_ms",
                "Latency of object store list/get calls",
                ["operation", "result"],
            )
            _prom_parser_failure_counter = Counter(
                "transcript_viewer_parser_failures_total",
                "Count of transcript blobs rejected by the JSONL parser",
                ["parser"],
            )
            _prom_merge_counter = Counter(
                "transcript_viewer_session_merges_total",
                "Session timeline merges by outcome",
                ["result"],
            )
            _prom_merged_records_hist = Histogram(
                "transcript_viewer_merged_records",
                "Records per merged session timeline",
                ["result"],
            )
            logger.info("Prometheus fallback metrics server listening on port %s", config.PROM_PORT)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Prometheus fallback not started: %s", exc)
            _prom_enabled = False

    logger.info(
        "OpenTelemetry initialized (service=%s endpoint=%s)",
        service_name,
        config.OTEL_ENDPOINT,
    )


def shutdown(app: FastAPI | None = None) -> None:
    global _enabled
    if not _initialized:
        return
    try:
        if app and _fastapi_instrumentor:
            _fastapi_instrumentor.uninstrument_app(app)
    except Exception:
        logger.debug("FastAPI uninstrumentation failed", exc_info=True)
    try:
        if _meter_provider is not None:
            _meter_provider.shutdown()
    except Exception:
        logger.debug("Meter provider shutdown failed", exc_info=True)
    try:
        if _trace_provider is not None:
            _trace_provider.shutdown()
    except Exception:
        logger.debug("Trace provider shutdown failed", exc_info=True)
    _enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _enabled or _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        yield span


def record_store_request(operation: str, result: str, duration_ms: float) -> None:
    labels = {
        "operation": operation or "unknown",
        "result": result or "unknown",
    }
    if _enabled and _store_request_counter is not None:
        _store_request_counter.add(1, labels)
    if _enabled and _store_latency_hist is not None:
        _store_latency_hist.record(max(0.0, float(duration_ms)), labels)
    if _prom_enabled and _prom_store_request_counter is not None:
        _prom_store_request_counter.labels(**_prom_labels(**labels)).inc()
    if _prom_enabled and _prom_store_latency_hist is not None:
        _prom_store_latency_hist.labels(**_prom_labels(**labels)).observe(max(0.0, float(duration_ms)))


def record_parser_failure(parser: str) -> None:
    labels = {"parser": parser or "unknown"}
    if _enabled and _parser_failure_counter is not None:
        _parser_failure_counter.add(1, labels)
    if _prom_enabled and _prom_parser_failure_counter is not None:
        _prom_parser_failure_counter.labels(**_prom_labels(**labels)).inc()


def record_merge(result: str, record_count: int = 0) -> None:
    labels = {"result": result or "unknown"}
    count = max(0, int(record_count))
    if _enabled and _merge_counter is not None:
        _merge_counter.add(1, labels)
    if _enabled and _merged_records_hist is not None and result == "ok":
        _merged_records_hist.record(count, labels)
    if _prom_enabled and _prom_merge_counter is not None:
        _prom_merge_counter.labels(**_prom_labels(**labels)).inc()
    if _prom_enabled and _prom_merged_records_hist is not None and result == "ok":
        _prom_merged_records_hist.labels(**_prom_labels(**labels)).observe(count)
