"""Tests for the observability module."""

from collections.abc import Generator

import pytest
from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

import src.infrastructure.observability.setup as observability_setup
from src.infrastructure.observability import (
    TelemetryConfigurationError,
    init_observability,
    shutdown_observability,
)
from src.infrastructure.observability.structlog_processor import add_trace_context
from src.infrastructure.observability.tracing import (
    get_current_span_id,
    get_current_trace_id,
    get_tracer,
)

# Module-level setup: configure TracerProvider once before any tests run
_exporter = InMemorySpanExporter()
_provider = TracerProvider()
_processor = SimpleSpanProcessor(_exporter)
_provider.add_span_processor(_processor)
trace.set_tracer_provider(_provider)

HONEYCOMB_ENDPOINT = "https://api.honeycomb.io/v1/traces"


@pytest.fixture(autouse=True)
def clear_spans():
    """Clear spans before each test."""
    _exporter.clear()
    yield
    _exporter.clear()


def get_finished_spans():
    """Get finished spans from the module-level exporter."""
    return _exporter.get_finished_spans()


@pytest.fixture
def otlp_exporters(
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[list[InMemorySpanExporter], None, None]:
    """Replace the OTLP exporter with in-memory recorders.

    The global provider is left alone so the module-level provider above
    stays in place.
    """
    created: list[InMemorySpanExporter] = []

    class RecordingExporter(InMemorySpanExporter):
        def __init__(self, **kwargs: object) -> None:
            super().__init__()
            self.kwargs = kwargs
            created.append(self)

    monkeypatch.setattr(observability_setup, "OTLPSpanExporter", RecordingExporter)
    monkeypatch.setattr(trace, "set_tracer_provider", lambda _provider: None)
    yield created
    shutdown_observability()


class TestGetTracer:
    """Tests for get_tracer function."""

    def test_returns_tracer_instance(self):
        """get_tracer should return a Tracer instance."""
        tracer = get_tracer("test_module")
        assert tracer is not None
        # Create a span to verify tracer works
        with tracer.start_as_current_span("test_span"):
            pass
        spans = get_finished_spans()
        assert len(spans) == 1
        assert spans[0].name == "test_span"


class TestGetCurrentTraceId:
    """Tests for get_current_trace_id function."""

    def test_returns_trace_id_when_in_span(self):
        """get_current_trace_id should return trace ID in active span."""
        tracer = get_tracer("test")

        with tracer.start_as_current_span("test_span"):
            trace_id = get_current_trace_id()
            assert trace_id is not None
            assert len(trace_id) == 32  # 128-bit trace ID as hex

    def test_returns_none_without_span(self):
        """get_current_trace_id should return None without active span."""
        assert get_current_trace_id() is None


class TestGetCurrentSpanId:
    """Tests for get_current_span_id function."""

    def test_returns_span_id_when_in_span(self):
        """get_current_span_id should return span ID in active span."""
        tracer = get_tracer("test")

        with tracer.start_as_current_span("test_span"):
            span_id = get_current_span_id()
            assert span_id is not None
            assert len(span_id) == 16  # 64-bit span ID as hex


class TestStructlogProcessor:
    """Tests for structlog trace context processor."""

    def test_adds_trace_context_when_in_span(self):
        """Processor should add trace_id and span_id to event dict."""
        tracer = get_tracer("test")

        with tracer.start_as_current_span("test_span"):
            event_dict: dict = {"event": "test_event"}
            result = add_trace_context(None, "info", event_dict)

            assert "trace_id" in result
            assert "span_id" in result
            assert len(result["trace_id"]) == 32
            assert len(result["span_id"]) == 16

    def test_does_not_add_context_without_span(self):
        """Processor should not add trace context without active span."""
        event_dict: dict = {"event": "test_event"}
        result = add_trace_context(None, "info", event_dict)

        assert result == {"event": "test_event"}


class TestNestedSpans:
    """Tests for nested span relationships."""

    def test_nested_spans_have_parent_child_relationship(self):
        """Nested spans should maintain parent-child relationship."""
        tracer = get_tracer("test")

        with tracer.start_as_current_span("parent"):  # noqa: SIM117
            with tracer.start_as_current_span("child"):  # Nested to test parent-child
                pass

        spans = get_finished_spans()
        assert len(spans) == 2

        # Find parent and child
        parent = next(s for s in spans if s.name == "parent")
        child = next(s for s in spans if s.name == "child")

        # Child should reference parent
        assert child.parent is not None
        assert child.parent.span_id == parent.context.span_id


class TestInitObservability:
    """Tests for init_observability and shutdown_observability."""

    def test_configures_otlp_exporter(self, otlp_exporters):
        """Exporter should get the endpoint, auth header, and timeout."""
        init_observability(
            "Pick List",
            "0.1.0",
            otlp_endpoint=HONEYCOMB_ENDPOINT,
            headers={"x-honeycomb-team": "secret-key"},
            export_timeout=3.0,
        )

        assert len(otlp_exporters) == 1
        assert otlp_exporters[0].kwargs == {
            "endpoint": HONEYCOMB_ENDPOINT,
            "headers": {"x-honeycomb-team": "secret-key"},
            "timeout": 3.0,
        }

    def test_tags_resource_with_service_name(self, otlp_exporters):
        """Every span should carry the service name through the resource."""
        handle = init_observability(
            "Pick List", "0.1.0", otlp_endpoint=HONEYCOMB_ENDPOINT
        )

        assert handle.enabled
        assert handle.provider is not None
        assert handle.provider.resource.attributes[SERVICE_NAME] == "Pick List"

    def test_shutdown_flushes_buffered_spans(self, otlp_exporters):
        """Batched spans should only be exported by the shutdown flush."""
        handle = init_observability(
            "Pick List", "0.1.0", otlp_endpoint=HONEYCOMB_ENDPOINT
        )

        with handle.tracer.start_as_current_span("buffered"):
            pass

        # Batch delay has not elapsed yet
        assert len(otlp_exporters[0].get_finished_spans()) == 0

        shutdown_observability()

        spans = otlp_exporters[0].get_finished_spans()
        assert [s.name for s in spans] == ["buffered"]

    def test_second_init_returns_installed_handle(self, otlp_exporters):
        """A second init should be a no-op returning the first handle."""
        first = init_observability(
            "Pick List", "0.1.0", otlp_endpoint=HONEYCOMB_ENDPOINT
        )
        second = init_observability(
            "Other", "9.9.9", otlp_endpoint="https://example.com/v1/traces"
        )

        assert second is first
        assert len(otlp_exporters) == 1

    def test_can_reinitialize_after_shutdown(self, otlp_exporters):
        """Shutdown should clear the installed handle."""
        first = init_observability(
            "Pick List", "0.1.0", otlp_endpoint=HONEYCOMB_ENDPOINT
        )
        shutdown_observability()
        second = init_observability(
            "Pick List", "0.1.0", otlp_endpoint=HONEYCOMB_ENDPOINT
        )

        assert second is not first

    @pytest.mark.parametrize(
        "endpoint",
        ["not a url", "ftp://api.honeycomb.io/v1/traces", "https://"],
    )
    def test_rejects_malformed_endpoint(self, otlp_exporters, endpoint):
        """Malformed endpoints should fail before anything is installed."""
        with pytest.raises(TelemetryConfigurationError):
            init_observability("Pick List", "0.1.0", otlp_endpoint=endpoint)

        assert otlp_exporters == []
        assert observability_setup._handle is None

    def test_rejects_invalid_sample_rate(self, otlp_exporters):
        """Sample rates outside [0, 1] are a configuration error."""
        with pytest.raises(TelemetryConfigurationError, match="sample rate"):
            init_observability(
                "Pick List",
                "0.1.0",
                otlp_endpoint=HONEYCOMB_ENDPOINT,
                sample_rate=2.0,
            )

    def test_disabled_installs_noop_tracer(self, otlp_exporters):
        """Disabled telemetry should produce non-recording spans."""
        handle = init_observability("Pick List", "0.1.0", enabled=False)

        assert not handle.enabled
        with handle.tracer.start_as_current_span("ignored") as span:
            assert not span.is_recording()
        assert otlp_exporters == []

    def test_shutdown_without_init_is_noop(self):
        """Shutdown should tolerate being called with nothing installed."""
        shutdown_observability()
        shutdown_observability()
