"""
OpenTelemetry wiring: tracer/logger providers, exporter selection and span helpers.

Spans are parented explicitly: every routine that emits spans receives its
parent span and opens children through `start_child_span`, so nesting does
not depend on whatever span happens to be current on the task.

Log lines are plain stdlib logging calls under the `telemetry_demo` logger;
when a log exporter is configured, an OTEL LoggingHandler bridges those
records (with their `extra=` fields and the active span ids) to the sink.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor, SimpleLogRecordProcessor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.trace import Span, Status, StatusCode, Tracer

from .config import Settings
from .exporters import (
    FileSpanExporter,
    create_console_exporters,
    create_otlp_log_exporter,
    create_otlp_trace_exporter,
)

LOGGER_NAME = "telemetry_demo"
INSTRUMENTATION_SCOPE = "telemetry_demo"


class _PrintSpanProcessor:
    """SpanProcessor that prints each finished span (name, ids, status, attributes) to stdout."""

    def on_start(self, span: Any, parent_context: Any = None) -> None:
        pass

    def on_end(self, span: ReadableSpan) -> None:
        trace_id = format(span.context.trace_id, "032x")
        span_id = format(span.context.span_id, "016x")
        parent_id = format(span.parent.span_id, "016x") if span.parent else ""
        status = span.status.status_code.name if span.status else "UNSET"
        print(
            f"   span name={span.name} trace_id={trace_id} span_id={span_id} parent_id={parent_id} status={status}"
        )
        if span.attributes:
            for k, v in sorted(span.attributes.items()):
                print(f"      {k}={v}")

    def shutdown(self) -> None:
        pass

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True


@dataclass
class Telemetry:
    """Configured providers plus the tracer every component emits through."""

    tracer_provider: TracerProvider
    tracer: Tracer
    logger_provider: LoggerProvider | None = None
    log_handler: logging.Handler | None = None
    previous_log_level: int = logging.NOTSET

    def force_flush(self) -> None:
        self.tracer_provider.force_flush()
        if self.logger_provider is not None:
            self.logger_provider.force_flush()

    def shutdown(self) -> None:
        """Flush and shut down providers; detach the log bridge."""
        if self.log_handler is not None:
            logging.getLogger(LOGGER_NAME).removeHandler(self.log_handler)
            self.log_handler = None
        logging.getLogger(LOGGER_NAME).setLevel(self.previous_log_level)
        self.tracer_provider.shutdown()
        if self.logger_provider is not None:
            self.logger_provider.shutdown()


def build_resource(settings: Settings) -> Resource:
    attrs: dict[str, str] = dict(settings.resource_attributes)
    attrs["service.name"] = settings.service_name
    attrs["service.version"] = settings.version
    attrs["deployment.environment.name"] = settings.environment
    return Resource.create(attrs)


def build_exporters(settings: Settings) -> tuple[SpanExporter | None, Any]:
    """Return (span_exporter, log_exporter) for the configured sink; either may be None."""
    if settings.exporter == "console":
        return create_console_exporters()
    if settings.exporter == "otlp":
        return (
            create_otlp_trace_exporter(settings.endpoint, protocol=settings.protocol),
            create_otlp_log_exporter(settings.endpoint, protocol=settings.protocol),
        )
    if settings.exporter == "file":
        # Log records still go to the console via logging.basicConfig.
        return FileSpanExporter(settings.output_file), None
    return None, None


def configure_telemetry(
    settings: Settings,
    span_exporter: SpanExporter | None = None,
    log_exporter: Any = None,
    batch: bool = True,
    show_spans: bool = False,
) -> Telemetry:
    """
    Create tracer and logger providers for the given exporters.

    The providers are not installed globally; callers pass `Telemetry.tracer`
    (or `tracer_provider`) to the components that need it.

    Args:
        settings: Resolved settings (resource attributes come from here)
        span_exporter: Where finished spans go; None keeps spans in-process only
        log_exporter: Where bridged log records go; None disables the log bridge
        batch: Use batching processors (False exports each span synchronously, for tests)
        show_spans: Also print every finished span to stdout
    """
    resource = build_resource(settings)

    tracer_provider = TracerProvider(resource=resource)
    if show_spans:
        tracer_provider.add_span_processor(_PrintSpanProcessor())  # type: ignore[arg-type]
    if span_exporter is not None:
        processor = BatchSpanProcessor(span_exporter) if batch else SimpleSpanProcessor(span_exporter)
        tracer_provider.add_span_processor(processor)
    tracer = tracer_provider.get_tracer(INSTRUMENTATION_SCOPE)

    package_logger = logging.getLogger(LOGGER_NAME)
    previous_level = package_logger.level
    package_logger.setLevel(settings.log_level)

    logger_provider = None
    handler = None
    if log_exporter is not None:
        logger_provider = LoggerProvider(resource=resource)
        log_processor = (
            BatchLogRecordProcessor(log_exporter) if batch else SimpleLogRecordProcessor(log_exporter)
        )
        logger_provider.add_log_record_processor(log_processor)
        handler = LoggingHandler(level=logging.DEBUG, logger_provider=logger_provider)
        package_logger.addHandler(handler)

    return Telemetry(
        tracer_provider=tracer_provider,
        tracer=tracer,
        logger_provider=logger_provider,
        log_handler=handler,
        previous_log_level=previous_level,
    )


@contextmanager
def start_child_span(
    tracer: Tracer,
    name: str,
    parent: Span | None,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span]:
    """
    Open `name` as a child of `parent` (or as a new root when parent is None).

    The span is also made current for the duration of the block so bridged log
    records carry its trace/span ids.
    """
    context = trace.set_span_in_context(parent) if parent is not None else Context()
    with tracer.start_as_current_span(name, context=context, attributes=attributes) as span:
        yield span


def mark_span_error(span: Span, message: str) -> None:
    """Flag a span as failed: error tags plus ERROR status."""
    span.set_attribute("error", True)
    span.set_attribute("error_message", message)
    span.set_status(Status(StatusCode.ERROR, message))
