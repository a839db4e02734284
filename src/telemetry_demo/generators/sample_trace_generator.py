"""
Fixed three-step sample trace used by the request handlers.

    GenerateSampleTraces
    ├── ProcessUserData  (50 ms)
    ├── ValidateData     (30 ms)
    └── SaveData         (20 ms)

No branching and no failure injection: it always succeeds.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from opentelemetry.trace import Span, Tracer

from ..telemetry import start_child_span

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

# (span name, step tag, delay in seconds)
SAMPLE_STEPS: tuple[tuple[str, str, float], ...] = (
    ("ProcessUserData", "process_user_data", 0.050),
    ("ValidateData", "validate_data", 0.030),
    ("SaveData", "save_data", 0.020),
)


class SampleTraceGenerator:
    """Emit the process/validate/save span sequence under a caller-supplied parent."""

    def __init__(self, tracer: Tracer, sleep: Sleep = asyncio.sleep):
        self.tracer = tracer
        self.sleep = sleep

    async def generate(self, parent: Span | None) -> None:
        with start_child_span(
            self.tracer,
            "GenerateSampleTraces",
            parent,
            {"service": "SampleTraceGenerator", "operation": "generate_traces"},
        ) as span:
            logger.info("Starting to generate sample traces")
            for name, step, delay in SAMPLE_STEPS:
                await self._step(span, name, step, delay)
            logger.info("Sample traces generation completed")

    async def _step(self, parent: Span, name: str, step: str, delay: float) -> None:
        with start_child_span(self.tracer, name, parent, {"step": step}):
            logger.debug("Running step %s", step, extra={"step": step})
            await self.sleep(delay)
            logger.debug("Step %s completed", step, extra={"step": step})
