"""Request-scoped dependencies."""

from fastapi import Request
from opentelemetry.trace import Tracer

from src.infrastructure.observability import TelemetryHandle, get_tracer


def get_request_tracer(request: Request) -> Tracer:
    """Get the tracer installed for this application.

    Falls back to the global provider when the application was created
    without a telemetry handle.

    Args:
        request: The incoming request.

    Returns:
        Tracer for handler spans.
    """
    telemetry: TelemetryHandle | None = getattr(request.app.state, "telemetry", None)
    if telemetry is None:
        return get_tracer(__name__)
    return telemetry.tracer
