"""
Collector sinks for the demo service.

Request and background spans go to the collector's trace endpoint; records
bridged from the `telemetry_demo` logger go to its log endpoint. Over HTTP
each signal has its own path, so a bare collector URL such as
`http://collector:4318` gets `/v1/traces` or `/v1/logs` appended. gRPC takes
a `host:port` target, so the scheme is dropped instead.
"""

from typing import Any

TRACES_PATH = "/v1/traces"
LOGS_PATH = "/v1/logs"


def _signal_endpoint(endpoint: str, path: str) -> str:
    endpoint = endpoint.rstrip("/")
    if endpoint.endswith(path):
        return endpoint
    return f"{endpoint}{path}"


def _grpc_endpoint(endpoint: str) -> str:
    return endpoint.replace("http://", "").replace("https://", "")


def _exporter_kwargs(endpoint: str, protocol: str, path: str, headers, extra) -> dict[str, Any]:
    target = _grpc_endpoint(endpoint) if protocol == "grpc" else _signal_endpoint(endpoint, path)
    return {"endpoint": target, "headers": headers, **extra}


def create_otlp_trace_exporter(
    endpoint: str = "http://localhost:4318",
    protocol: str = "http",
    headers: dict[str, str] | None = None,
    **kwargs: Any,
):
    """Span sink for the weather handlers and the background loop."""
    options = _exporter_kwargs(endpoint, protocol, TRACES_PATH, headers, kwargs)
    if protocol == "grpc":
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        return OTLPSpanExporter(**options)

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import (  # type: ignore[assignment]
        OTLPSpanExporter,
    )

    return OTLPSpanExporter(**options)


def create_otlp_log_exporter(
    endpoint: str = "http://localhost:4318",
    protocol: str = "http",
    headers: dict[str, str] | None = None,
    **kwargs: Any,
):
    """
    Sink for records emitted through the log bridge.

    Each record keeps its `extra=` fields as attributes and the ids of the
    span that was current when it was logged.
    """
    options = _exporter_kwargs(endpoint, protocol, LOGS_PATH, headers, kwargs)
    if protocol == "grpc":
        from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter

        return OTLPLogExporter(**options)

    from opentelemetry.exporter.otlp.proto.http._log_exporter import (  # type: ignore[assignment]
        OTLPLogExporter,
    )

    return OTLPLogExporter(**options)
