"""Tests for the business, system-metrics and user-activity span batches."""

import asyncio
import logging
import random

from conftest import spans_by_name
from opentelemetry.trace import StatusCode

from telemetry_demo.generators.background_generators import (
    BUSINESS_ERROR_MESSAGE,
    BUSINESS_OPERATIONS,
    USER_ACTIVITIES,
    USER_ACTIVITY_ERROR_MESSAGE,
    BackgroundTraceGenerator,
)


def test_business_traces_emit_each_operation_under_batch_span(
    telemetry, span_exporter, rng, fake_sleep
) -> None:
    generator = BackgroundTraceGenerator(telemetry.tracer, rng=rng, sleep=fake_sleep)
    asyncio.run(generator.generate_business_traces(None))

    spans = spans_by_name(span_exporter)
    batch = spans["GenerateBusinessTraces"][0]
    assert batch.attributes["trace_type"] == "business"
    assert batch.attributes["category"] == "background"
    for operation in BUSINESS_OPERATIONS:
        span = spans[operation][0]
        assert span.parent.span_id == batch.context.span_id
        assert span.attributes["operation"] == operation

    assert len(fake_sleep.delays) == len(BUSINESS_OPERATIONS)
    assert all(0.1 <= d <= 0.5 for d in fake_sleep.delays)


def test_validate_payment_error_rate_is_about_one_in_twenty(
    telemetry, span_exporter, fake_sleep
) -> None:
    """Over 1000 runs the ValidatePayment error flag rate converges near 5%."""
    generator = BackgroundTraceGenerator(
        telemetry.tracer, rng=random.Random(42), sleep=fake_sleep
    )

    async def run_many() -> None:
        for _ in range(1000):
            await generator.generate_business_traces(None)

    asyncio.run(run_many())

    payments = spans_by_name(span_exporter)["ValidatePayment"]
    assert len(payments) == 1000
    flagged = [s for s in payments if s.attributes.get("error") is True]
    assert 25 <= len(flagged) <= 80
    for span in flagged:
        assert span.attributes["error_message"] == BUSINESS_ERROR_MESSAGE
        assert span.status.status_code == StatusCode.ERROR


def test_injected_errors_do_not_fail_the_batch_span(telemetry, span_exporter, fake_sleep) -> None:
    generator = BackgroundTraceGenerator(
        telemetry.tracer, rng=random.Random(7), sleep=fake_sleep
    )

    async def run_many() -> None:
        for _ in range(50):
            await generator.generate_business_traces(None)

    asyncio.run(run_many())

    spans = spans_by_name(span_exporter)
    assert any(s.attributes.get("error") for name in BUSINESS_OPERATIONS for s in spans[name])
    assert all(s.status.status_code != StatusCode.ERROR for s in spans["GenerateBusinessTraces"])


def test_system_metrics_tags_within_ranges(telemetry, span_exporter, fake_sleep) -> None:
    generator = BackgroundTraceGenerator(
        telemetry.tracer, rng=random.Random(3), sleep=fake_sleep
    )

    async def run_many() -> None:
        for _ in range(200):
            await generator.generate_system_metrics(None)

    asyncio.run(run_many())

    spans = spans_by_name(span_exporter)["GenerateSystemMetrics"]
    assert len(spans) == 200
    for span in spans:
        assert 20 <= span.attributes["cpu_usage"] <= 89
        assert 30 <= span.attributes["memory_usage"] <= 84
        assert 40 <= span.attributes["disk_usage"] <= 94
        assert span.attributes["trace_type"] == "system"
    assert len(fake_sleep.delays) == 200
    assert all(0.05 <= d <= 0.2 for d in fake_sleep.delays)


class _FixedRandom(random.Random):
    """Returns queued values from randint, in order."""

    def __init__(self, values: list[int]) -> None:
        super().__init__(0)
        self._values = list(values)

    def randint(self, a: int, b: int) -> int:
        return self._values.pop(0)


def test_system_metrics_warns_on_high_cpu_and_memory(
    telemetry, fake_sleep, caplog
) -> None:
    # cpu, memory, disk, delay
    generator = BackgroundTraceGenerator(
        telemetry.tracer, rng=_FixedRandom([85, 82, 50, 100]), sleep=fake_sleep
    )
    with caplog.at_level(logging.WARNING, logger="telemetry_demo"):
        asyncio.run(generator.generate_system_metrics(None))

    warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
    assert "High CPU usage detected: 85%" in warnings
    assert "High memory usage detected: 82%" in warnings


def test_system_metrics_no_warning_at_threshold(telemetry, fake_sleep, caplog) -> None:
    generator = BackgroundTraceGenerator(
        telemetry.tracer, rng=_FixedRandom([80, 80, 94, 100]), sleep=fake_sleep
    )
    with caplog.at_level(logging.WARNING, logger="telemetry_demo"):
        asyncio.run(generator.generate_system_metrics(None))

    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


def test_user_activity_shares_one_user_id(telemetry, span_exporter, rng, fake_sleep) -> None:
    generator = BackgroundTraceGenerator(telemetry.tracer, rng=rng, sleep=fake_sleep)
    asyncio.run(generator.generate_user_activity(None))

    spans = spans_by_name(span_exporter)
    batch = spans["GenerateUserActivity"][0]
    user_id = batch.attributes["user_id"]
    assert 1000 <= user_id <= 9999
    for activity in USER_ACTIVITIES:
        span = spans[activity][0]
        assert span.attributes["user_id"] == user_id
        assert span.attributes["activity"] == activity
        assert span.parent.span_id == batch.context.span_id
    assert all(0.05 <= d <= 0.3 for d in fake_sleep.delays)


def test_same_seed_gives_same_spans(settings, fake_sleep) -> None:
    """Seeded generators are reproducible."""
    from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

    from telemetry_demo.telemetry import configure_telemetry

    def run(seed: int) -> list[tuple]:
        exporter = InMemorySpanExporter()
        t = configure_telemetry(settings, span_exporter=exporter, batch=False)
        generator = BackgroundTraceGenerator(t.tracer, rng=random.Random(seed), sleep=fake_sleep)
        asyncio.run(generator.generate_user_activity(None))
        t.shutdown()
        return [(s.name, dict(s.attributes)) for s in exporter.get_finished_spans()]

    assert run(99) == run(99)


def test_user_activity_error_flags_only_the_activity_span(
    telemetry, span_exporter, fake_sleep, caplog
) -> None:
    # user id, then (delay, error roll) per activity; only the first roll hits
    values = [4321]
    for roll in [1, 2, 2, 2, 2]:
        values.extend([100, roll])
    generator = BackgroundTraceGenerator(
        telemetry.tracer, rng=_FixedRandom(values), sleep=fake_sleep
    )
    with caplog.at_level(logging.WARNING, logger="telemetry_demo"):
        asyncio.run(generator.generate_user_activity(None))

    spans = spans_by_name(span_exporter)
    first, *rest = USER_ACTIVITIES
    failed = spans[first][0]
    assert failed.attributes["error"] is True
    assert failed.attributes["error_message"] == USER_ACTIVITY_ERROR_MESSAGE
    assert failed.status.status_code == StatusCode.ERROR
    for activity in rest:
        span = spans[activity][0]
        assert "error" not in span.attributes
        assert span.status.status_code != StatusCode.ERROR
    assert spans["GenerateUserActivity"][0].status.status_code != StatusCode.ERROR

    warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
    assert warnings == [f"User 4321 encountered error in activity: {first}"]
