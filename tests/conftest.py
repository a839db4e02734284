"""Shared fixtures: in-memory span capture, seeded randomness, instant sleeps."""

import random

import pytest
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from telemetry_demo.config import Settings
from telemetry_demo.telemetry import Telemetry, configure_telemetry


class RecordingSleep:
    """Async sleep stand-in that records requested delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment from leaking into settings."""
    for name in (
        "APP_ENVIRONMENT",
        "APP_NAME",
        "OTEL_SERVICE_NAME",
        "OTEL_EXPORTER_OTLP_ENDPOINT",
        "TELEMETRY_EXPORTER",
        "BACKGROUND_ENABLED",
        "BACKGROUND_INTERVAL_SECONDS",
        "BACKGROUND_ERROR_BACKOFF_SECONDS",
        "LOG_LEVEL",
        "TELEMETRY_DEMO_ROOT",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings() -> Settings:
    return Settings(background_enabled=False, exporter="none")


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def telemetry(settings: Settings, span_exporter: InMemorySpanExporter) -> Telemetry:
    t = configure_telemetry(settings, span_exporter=span_exporter, batch=False)
    yield t
    t.shutdown()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


def spans_by_name(exporter: InMemorySpanExporter) -> dict[str, list]:
    result: dict[str, list] = {}
    for span in exporter.get_finished_spans():
        result.setdefault(span.name, []).append(span)
    return result
