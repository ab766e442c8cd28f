"""FastAPI application entry point."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from src.api.greeting import router as greeting_router
from src.config import Settings, get_settings
from src.infrastructure.observability import (
    TelemetryHandle,
    auth_headers,
    configure_logging,
    init_observability,
    load_api_key,
    shutdown_observability,
)
from src.infrastructure.server import HttpServer, ShutdownCoordinator

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan handler for startup/shutdown."""
    telemetry: TelemetryHandle | None = app.state.telemetry
    logger.info(
        "application_started",
        telemetry_enabled=telemetry is not None and telemetry.enabled,
    )

    yield

    logger.info("application_stopped")


def create_app(
    telemetry: TelemetryHandle | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Build the application and wrap it in request tracing.

    Args:
        telemetry: Installed tracing pipeline. When it has a provider, every
            request gets a server span and handlers trace through its tracer.
        settings: Application settings (defaults to the cached settings).

    Returns:
        The configured FastAPI application.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.telemetry = telemetry

    app.include_router(greeting_router, tags=["greeting"])

    if telemetry is not None and telemetry.provider is not None:
        FastAPIInstrumentor.instrument_app(
            app,
            tracer_provider=telemetry.provider,
            # One server span per request; no per-message receive/send spans
            exclude_spans=["receive", "send"],
        )

    return app


def init_telemetry(settings: Settings) -> TelemetryHandle:
    """Install the tracing pipeline described by the settings.

    Raises:
        TelemetryConfigurationError: If the credential or exporter is invalid.
    """
    if not settings.telemetry_enabled:
        return init_observability(
            settings.app_name,
            settings.app_version,
            enabled=False,
        )

    api_key = load_api_key(
        api_key=settings.honeycomb_api_key,
        key_file=settings.honeycomb_api_key_file,
    )
    return init_observability(
        settings.app_name,
        settings.app_version,
        otlp_endpoint=str(settings.otlp_endpoint),
        headers=auth_headers(api_key),
        export_timeout=settings.otlp_timeout_seconds,
        console_export=settings.trace_console_export,
        sample_rate=settings.trace_sample_rate,
    )


async def serve(
    settings: Settings,
    coordinator: ShutdownCoordinator | None = None,
) -> str:
    """Run the service until a termination signal has been handled.

    Returns:
        The reason the service shut down.
    """
    telemetry = init_telemetry(settings)
    app = create_app(telemetry, settings)
    server = HttpServer(
        app,
        host=settings.host,
        port=settings.port,
        drain_timeout=settings.shutdown_drain_timeout_seconds,
        log_level=settings.log_level,
    )

    coordinator = coordinator or ShutdownCoordinator()
    coordinator.install()

    try:
        await server.start()
    except Exception:
        coordinator.uninstall()
        raise

    return await coordinator.run(server, flush_telemetry=shutdown_observability)


def main() -> None:
    """Start the service and block until it has shut down."""
    settings = get_settings()
    configure_logging(settings.log_level)
    asyncio.run(serve(settings))


if __name__ == "__main__":
    main()
