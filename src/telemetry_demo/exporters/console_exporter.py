"""
Console exporters for local runs.

Prints finished spans and bridged log records to stdout.
"""

from opentelemetry.sdk._logs.export import ConsoleLogRecordExporter
from opentelemetry.sdk.trace.export import ConsoleSpanExporter


def create_console_exporters():
    """
    Create console exporters for spans and logs.

    Returns:
        Tuple of (trace_exporter, log_exporter)
    """
    return ConsoleSpanExporter(), ConsoleLogRecordExporter()
