"""OpenTelemetry setup and initialization."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlsplit

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import ParentBasedTraceIdRatio
from opentelemetry.trace import Tracer

from src.infrastructure.observability.exceptions import TelemetryConfigurationError
from src.infrastructure.observability.structlog_processor import add_trace_context

logger = structlog.get_logger()

TRACER_NAME = "pick_list"


@dataclass(frozen=True)
class TelemetryHandle:
    """Handle on the installed tracing pipeline.

    Request handlers reach the tracer through this handle (stored on the
    application state) rather than through the global provider.
    """

    service_name: str
    tracer: Tracer
    provider: TracerProvider | None = None

    @property
    def enabled(self) -> bool:
        return self.provider is not None

    def shutdown(self) -> None:
        """Flush buffered spans and stop the exporters."""
        if self.provider is not None:
            self.provider.shutdown()


# Module-level state for cleanup
_handle: TelemetryHandle | None = None


def init_observability(
    service_name: str,
    service_version: str,
    *,
    otlp_endpoint: str | None = None,
    headers: Mapping[str, str] | None = None,
    export_timeout: float = 3.0,
    console_export: bool = False,
    enabled: bool = True,
    sample_rate: float = 1.0,
) -> TelemetryHandle:
    """Initialize OpenTelemetry tracing and install the global tracer provider.

    Spans are batched by a BatchSpanProcessor and exported from its
    background worker, so request handling never waits on the collector.
    Calling this again while a pipeline is installed returns the existing
    handle unchanged.

    Args:
        service_name: Name of the service for resource attribution.
        service_version: Version of the service.
        otlp_endpoint: Full OTLP/HTTP traces URL
            (e.g., "https://api.honeycomb.io/v1/traces").
            If None and console_export is False, no exporter is configured.
        headers: Headers sent with every export request (authentication).
        export_timeout: Per-export request timeout in seconds.
        console_export: If True, export spans to console (for development).
        enabled: If False, tracing is completely disabled (no-op provider).
        sample_rate: Sampling rate between 0.0 and 1.0. Default is 1.0 (all traces).

    Returns:
        The handle for the active tracing pipeline.

    Raises:
        TelemetryConfigurationError: If the pipeline cannot be constructed.
    """
    global _handle

    if _handle is not None:
        logger.warning("telemetry_already_initialized", service=_handle.service_name)
        return _handle

    if not enabled:
        # Set no-op tracer provider
        trace.set_tracer_provider(trace.NoOpTracerProvider())
        _handle = TelemetryHandle(service_name=service_name, tracer=trace.NoOpTracer())
        logger.info("telemetry_disabled", service=service_name)
        return _handle

    if otlp_endpoint is not None:
        _validate_endpoint(otlp_endpoint)

    # Create resource with service metadata
    resource = Resource.create(
        {
            SERVICE_NAME: service_name,
            SERVICE_VERSION: service_version,
        }
    )

    try:
        sampler = ParentBasedTraceIdRatio(sample_rate)
    except ValueError as e:
        raise TelemetryConfigurationError(f"Invalid sample rate: {sample_rate}") from e

    provider = TracerProvider(resource=resource, sampler=sampler)

    # Add exporters
    if console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    if otlp_endpoint:
        try:
            otlp_exporter = OTLPSpanExporter(
                endpoint=otlp_endpoint,
                headers=dict(headers or {}),
                timeout=export_timeout,
            )
        except (TypeError, ValueError) as e:
            raise TelemetryConfigurationError(
                f"Cannot construct OTLP exporter for {otlp_endpoint}: {e}"
            ) from e
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    # Set as global tracer provider
    trace.set_tracer_provider(provider)

    _handle = TelemetryHandle(
        service_name=service_name,
        tracer=provider.get_tracer(TRACER_NAME, service_version),
        provider=provider,
    )
    logger.info(
        "telemetry_initialized",
        service=service_name,
        endpoint=otlp_endpoint,
        timeout_seconds=export_timeout,
    )
    return _handle


def shutdown_observability() -> None:
    """Shutdown the tracer provider and flush any pending spans.

    This should be called during application shutdown to ensure all
    spans are exported before the process exits.
    """
    global _handle

    if _handle is not None:
        _handle.shutdown()
        _handle = None
        logger.info("telemetry_shutdown")


def configure_logging(level: str = "info") -> None:
    """Configure structlog with OpenTelemetry trace context injection.

    This adds the trace context processor to the structlog processing chain,
    ensuring that trace_id and span_id are included in all log events.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            add_trace_context,  # Inject trace context
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging
    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.KeyValueRenderer(
                key_order=["timestamp", "level", "event"]
            ),
            # Records from uvicorn and other stdlib loggers
            foreign_pre_chain=[
                structlog.stdlib.add_log_level,
                add_trace_context,
                structlog.processors.TimeStamper(fmt="iso"),
            ],
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())


def _validate_endpoint(endpoint: str) -> None:
    parts = urlsplit(endpoint)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise TelemetryConfigurationError(f"Malformed OTLP endpoint: {endpoint!r}")
