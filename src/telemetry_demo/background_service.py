"""
Long-running background trace loop and the runner that hosts it.

Each iteration opens a fresh root span (BackgroundTraceGeneration), runs the
business, system-metrics and user-activity generators in order, then waits
for the configured interval. A generator failure is logged and followed by a
shorter backoff wait; the loop itself never terminates on error. Both waits
end early when the stop event is set, which is the only way the loop exits
(task cancellation is treated the same way).
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from opentelemetry.trace import Span, Tracer

from .config import DEFAULT_ERROR_BACKOFF_SECONDS, DEFAULT_INTERVAL_SECONDS
from .generators.background_generators import BackgroundTraceGenerator
from .telemetry import start_child_span

logger = logging.getLogger(__name__)


class BackgroundTraceLoop:
    """Periodically emit the three background span batches until stopped."""

    def __init__(
        self,
        tracer: Tracer,
        generator: BackgroundTraceGenerator,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        error_backoff_seconds: float = DEFAULT_ERROR_BACKOFF_SECONDS,
    ):
        self.tracer = tracer
        self.generator = generator
        self.interval_seconds = interval_seconds
        self.error_backoff_seconds = error_backoff_seconds
        self.iterations = 0

    def _steps(self) -> tuple[tuple[str, Callable[[Span], Awaitable[None]]], ...]:
        return (
            ("business", self.generator.generate_business_traces),
            ("system_metrics", self.generator.generate_system_metrics),
            ("user_activity", self.generator.generate_user_activity),
        )

    async def run_iteration(self, stop: asyncio.Event | None = None) -> bool:
        """
        Emit one BackgroundTraceGeneration trace.

        Returns False if the stop event was observed between steps (the
        iteration is abandoned), True otherwise. Generator errors propagate.
        """
        with start_child_span(
            self.tracer,
            "BackgroundTraceGeneration",
            None,
            {"service": "BackgroundTraceLoop", "operation": "continuous_trace_generation"},
        ) as root:
            self.iterations += 1
            logger.info("Generating background traces", extra={"iteration": self.iterations})

            for name, step in self._steps():
                if stop is not None and stop.is_set():
                    return False
                started = time.perf_counter()
                await step(root)
                duration_ms = (time.perf_counter() - started) * 1000.0
                logger.debug(
                    "Generator %s finished in %.1f ms",
                    name,
                    duration_ms,
                    extra={"generator": name, "duration_ms": duration_ms},
                )

            logger.info("Background traces generated successfully")
        return True

    async def run(self, stop: asyncio.Event) -> None:
        """Loop until `stop` is set. Cancellation is logged and re-raised."""
        logger.info("Background trace service started")
        try:
            while not stop.is_set():
                try:
                    if not await self.run_iteration(stop):
                        break
                    wait = self.interval_seconds
                except Exception:
                    logger.exception("Error occurred in background trace service")
                    wait = self.error_backoff_seconds
                if await wait_for_stop(stop, wait):
                    break
            logger.info("Background trace service is stopping")
        except asyncio.CancelledError:
            logger.info("Background trace service is stopping")
            raise
        finally:
            logger.info("Background trace service stopped")


async def wait_for_stop(stop: asyncio.Event, timeout: float) -> bool:
    """Sleep up to `timeout` seconds; return True as soon as `stop` is set."""
    try:
        await asyncio.wait_for(stop.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        return False
    return True


class BackgroundTaskRunner:
    """Start a BackgroundTraceLoop as an asyncio task and stop it cooperatively."""

    def __init__(self, loop: BackgroundTraceLoop, shutdown_grace_seconds: float = 5.0):
        self.loop = loop
        self.shutdown_grace_seconds = shutdown_grace_seconds
        self._stop: asyncio.Event | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self.loop.run(self._stop), name="background-trace-loop")

    async def stop(self) -> None:
        """Signal the loop to stop; cancel it if it does not finish within the grace period."""
        if self._task is None or self._stop is None:
            return
        self._stop.set()
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=self.shutdown_grace_seconds)
        except asyncio.TimeoutError:
            logger.warning("Background trace service did not stop in time; cancelling")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None
            self._stop = None
