"""
Themed batches of synthetic spans for the background loop.

Three sub-generators, each opening one span under the loop's root span:

- business: five placeholder operations, 100-500 ms each, 1-in-20 error flag
- system metrics: random cpu/memory/disk percentages as tags, one 50-200 ms delay
- user activity: one random user performing five activities, 50-300 ms each,
  1-in-15 error flag

Injected errors are only flagged on the span and logged; they never raise.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

from opentelemetry.trace import Span, Tracer

from ..telemetry import mark_span_error, start_child_span

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

BUSINESS_OPERATIONS = (
    "ProcessOrder",
    "ValidatePayment",
    "UpdateInventory",
    "SendNotification",
    "GenerateReport",
)
USER_ACTIVITIES = (
    "UserLogin",
    "ViewProduct",
    "AddToCart",
    "Checkout",
    "Logout",
)

# Error odds are "1 in N".
BUSINESS_ERROR_ODDS = 20
USER_ACTIVITY_ERROR_ODDS = 15
BUSINESS_ERROR_MESSAGE = "Simulated business error"
USER_ACTIVITY_ERROR_MESSAGE = "Simulated user activity error"

# Inclusive millisecond ranges.
BUSINESS_DELAY_MS = (100, 500)
SYSTEM_DELAY_MS = (50, 200)
USER_ACTIVITY_DELAY_MS = (50, 300)

CPU_RANGE = (20, 89)
MEMORY_RANGE = (30, 84)
DISK_RANGE = (40, 94)
HIGH_USAGE_THRESHOLD = 80

USER_ID_RANGE = (1000, 9999)


class BackgroundTraceGenerator:
    """Business, system-metrics and user-activity span batches."""

    def __init__(
        self,
        tracer: Tracer,
        rng: random.Random | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.tracer = tracer
        self.rng = rng or random.Random()
        self.sleep = sleep

    async def _random_delay(self, bounds: tuple[int, int]) -> None:
        await self.sleep(self.rng.randint(*bounds) / 1000.0)

    def _roll_error(self, odds: int) -> bool:
        return self.rng.randint(1, odds) == 1

    async def generate_business_traces(self, parent: Span | None) -> None:
        with start_child_span(
            self.tracer,
            "GenerateBusinessTraces",
            parent,
            {"trace_type": "business", "category": "background"},
        ) as span:
            logger.debug("Generating business traces")
            for operation in BUSINESS_OPERATIONS:
                with start_child_span(
                    self.tracer,
                    operation,
                    span,
                    {"operation": operation, "trace_type": "business"},
                ) as op_span:
                    logger.info(
                        "Executing business operation: %s",
                        operation,
                        extra={"operation": operation},
                    )
                    await self._random_delay(BUSINESS_DELAY_MS)

                    if self._roll_error(BUSINESS_ERROR_ODDS):
                        logger.warning(
                            "Simulated error in operation: %s",
                            operation,
                            extra={"operation": operation},
                        )
                        mark_span_error(op_span, BUSINESS_ERROR_MESSAGE)
                    else:
                        logger.debug("Operation %s completed successfully", operation)

    async def generate_system_metrics(self, parent: Span | None) -> None:
        with start_child_span(
            self.tracer,
            "GenerateSystemMetrics",
            parent,
            {"trace_type": "system", "category": "background"},
        ) as span:
            logger.debug("Generating system metrics")

            cpu_usage = self.rng.randint(*CPU_RANGE)
            memory_usage = self.rng.randint(*MEMORY_RANGE)
            disk_usage = self.rng.randint(*DISK_RANGE)

            span.set_attribute("cpu_usage", cpu_usage)
            span.set_attribute("memory_usage", memory_usage)
            span.set_attribute("disk_usage", disk_usage)

            logger.info(
                "System metrics - CPU: %d%%, Memory: %d%%, Disk: %d%%",
                cpu_usage,
                memory_usage,
                disk_usage,
                extra={"cpu": cpu_usage, "memory": memory_usage, "disk": disk_usage},
            )

            await self._random_delay(SYSTEM_DELAY_MS)

            if cpu_usage > HIGH_USAGE_THRESHOLD:
                logger.warning("High CPU usage detected: %d%%", cpu_usage, extra={"cpu": cpu_usage})
            if memory_usage > HIGH_USAGE_THRESHOLD:
                logger.warning(
                    "High memory usage detected: %d%%",
                    memory_usage,
                    extra={"memory": memory_usage},
                )

    async def generate_user_activity(self, parent: Span | None) -> None:
        with start_child_span(
            self.tracer,
            "GenerateUserActivity",
            parent,
            {"trace_type": "user_activity", "category": "background"},
        ) as span:
            logger.debug("Generating user activity traces")

            user_id = self.rng.randint(*USER_ID_RANGE)
            span.set_attribute("user_id", user_id)

            for activity in USER_ACTIVITIES:
                with start_child_span(
                    self.tracer,
                    activity,
                    span,
                    {"user_id": user_id, "activity": activity},
                ) as activity_span:
                    logger.info(
                        "User %d performed activity: %s",
                        user_id,
                        activity,
                        extra={"user_id": user_id, "activity": activity},
                    )
                    await self._random_delay(USER_ACTIVITY_DELAY_MS)

                    if self._roll_error(USER_ACTIVITY_ERROR_ODDS):
                        logger.warning(
                            "User %d encountered error in activity: %s",
                            user_id,
                            activity,
                            extra={"user_id": user_id, "activity": activity},
                        )
                        mark_span_error(activity_span, USER_ACTIVITY_ERROR_MESSAGE)
