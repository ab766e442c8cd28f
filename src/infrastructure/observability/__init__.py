"""Observability module providing OpenTelemetry tracing and structlog integration."""

from src.infrastructure.observability.credentials import (
    HONEYCOMB_TEAM_HEADER,
    auth_headers,
    load_api_key,
)
from src.infrastructure.observability.exceptions import (
    CredentialNotFoundError,
    TelemetryConfigurationError,
    TelemetryError,
)
from src.infrastructure.observability.setup import (
    TelemetryHandle,
    configure_logging,
    init_observability,
    shutdown_observability,
)
from src.infrastructure.observability.structlog_processor import add_trace_context
from src.infrastructure.observability.tracing import (
    get_current_span_id,
    get_current_trace_id,
    get_tracer,
)

__all__ = [
    "HONEYCOMB_TEAM_HEADER",
    "CredentialNotFoundError",
    "TelemetryConfigurationError",
    "TelemetryError",
    "TelemetryHandle",
    "add_trace_context",
    "auth_headers",
    "configure_logging",
    "get_current_span_id",
    "get_current_trace_id",
    "get_tracer",
    "init_observability",
    "load_api_key",
    "shutdown_observability",
]
