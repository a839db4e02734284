"""
Weather Telemetry Demo - OpenTelemetry instrumentation showcase.

A small weather API plus a background loop that both emit synthetic,
nested spans and structured logs around artificial delays.
"""

__version__ = "1.0.0"
