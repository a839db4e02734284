"""
FastAPI application: weather endpoints plus the hosted background trace loop.

Routes (all under /weather):
  GET  /weather                  -> five random forecasts (errors propagate as 500)
  GET  /weather/error            -> always 500 {"error": ...}
  GET  /weather/status           -> status snapshot
  POST /weather/generate-traces  -> sample trace + five manual spans

Every handler opens its own span as a child of the current request span and
passes it explicitly to anything that emits further spans.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import date
from typing import Any

from fastapi import APIRouter, FastAPI
from fastapi.responses import JSONResponse
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from .background_service import BackgroundTaskRunner, BackgroundTraceLoop
from .config import Settings
from .defaults import get_machine_name, is_development
from .generators.background_generators import BackgroundTraceGenerator
from .generators.sample_trace_generator import SampleTraceGenerator
from .telemetry import Telemetry, mark_span_error, start_child_span
from .weather import generate_forecasts, status_snapshot, utc_now

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

HANDLER_NAME = "WeatherRoutes"
SIMULATED_ERROR_MESSAGE = "This is a simulated error for testing telemetry"
MANUAL_TRACE_COUNT = 5
REQUEST_DELAY_SECONDS = 0.1


class WeatherHandlers:
    """Request handling logic, independent of the routing layer."""

    def __init__(
        self,
        settings: Settings,
        telemetry: Telemetry,
        rng: random.Random,
        sleep: Sleep,
        today: Callable[[], date],
    ):
        self.settings = settings
        self.tracer = telemetry.tracer
        self.rng = rng
        self.sleep = sleep
        self.today = today
        self.sample_traces = SampleTraceGenerator(self.tracer, sleep=sleep)

    def _span(self, name: str, operation: str):
        return start_child_span(
            self.tracer,
            name,
            trace.get_current_span(),
            {"operation": operation, "handler": HANDLER_NAME},
        )

    async def get_weather(self) -> list[dict[str, Any]]:
        with self._span("GetWeather", "get_weather") as span:
            logger.info("Getting weather forecast")
            try:
                await self.sleep(REQUEST_DELAY_SECONDS)
                await self.sample_traces.generate(span)

                forecasts = generate_forecasts(self.rng, self.today())

                logger.info(
                    "Weather forecast generated successfully with %d items",
                    len(forecasts),
                    extra={"count": len(forecasts)},
                )
                span.set_attribute("items_count", len(forecasts))
                return [f.to_dict() for f in forecasts]
            except Exception as e:
                logger.exception("Error occurred while getting weather forecast")
                mark_span_error(span, str(e))
                raise

    async def get_error(self) -> tuple[int, dict[str, Any]]:
        with self._span("GetError", "get_error") as span:
            logger.warning("Simulating an error for testing purposes")
            try:
                raise RuntimeError(SIMULATED_ERROR_MESSAGE)
            except RuntimeError as e:
                logger.error("Simulated error occurred", exc_info=True)
                mark_span_error(span, str(e))
                return 500, {"error": str(e)}

    async def get_status(self) -> dict[str, Any]:
        with self._span("GetStatus", "get_status") as span:
            logger.info("Application status requested")
            status = status_snapshot(self.settings)
            span.set_attribute("status", "healthy")
            span.set_attribute("machine_name", get_machine_name())
            logger.info("Application status: %s", status["status"])
            return status

    async def generate_traces(self) -> tuple[int, dict[str, Any]]:
        with self._span("GenerateTraces", "generate_traces") as span:
            logger.info("Manual trace generation requested")
            try:
                await self.sample_traces.generate(span)

                for i in range(MANUAL_TRACE_COUNT):
                    with start_child_span(
                        self.tracer,
                        f"ManualTrace_{i}",
                        span,
                        {"trace_number": i, "source": "manual_request"},
                    ):
                        logger.info("Generated manual trace %d", i, extra={"trace_number": i})
                        await self.sleep(REQUEST_DELAY_SECONDS)

                logger.info("Manual trace generation completed successfully")
                span.set_attribute("traces_generated", MANUAL_TRACE_COUNT)
                return 200, {
                    "message": "Traces generated successfully",
                    "count": MANUAL_TRACE_COUNT,
                    "timestamp": utc_now().isoformat(),
                }
            except Exception as e:
                logger.exception("Error occurred during manual trace generation")
                mark_span_error(span, str(e))
                return 500, {"error": str(e)}


def build_router(handlers: WeatherHandlers) -> APIRouter:
    router = APIRouter(prefix="/weather", tags=["weather"])

    @router.get("")
    async def get_weather() -> list[dict[str, Any]]:
        return await handlers.get_weather()

    @router.get("/error")
    async def get_error() -> JSONResponse:
        status_code, body = await handlers.get_error()
        return JSONResponse(status_code=status_code, content=body)

    @router.get("/status")
    async def get_status() -> dict[str, Any]:
        return await handlers.get_status()

    @router.post("/generate-traces")
    async def generate_traces() -> JSONResponse:
        status_code, body = await handlers.generate_traces()
        return JSONResponse(status_code=status_code, content=body)

    return router


def create_app(
    settings: Settings,
    telemetry: Telemetry,
    rng: random.Random | None = None,
    sleep: Sleep = asyncio.sleep,
    today: Callable[[], date] = date.today,
    instrument: bool = True,
) -> FastAPI:
    """
    Build the FastAPI app.

    The background loop is started in the app lifespan when
    `settings.background_enabled` and stopped (cooperatively) on shutdown.
    `rng`, `sleep` and `today` are injectable so runs can be made deterministic.
    The loop draws from its own generator (seeded once from `rng`), so request
    results never depend on how far the loop has run.
    """
    rng = rng or random.Random()
    background_rng = random.Random(rng.getrandbits(64))
    handlers = WeatherHandlers(settings, telemetry, rng, sleep, today)
    loop = BackgroundTraceLoop(
        telemetry.tracer,
        BackgroundTraceGenerator(telemetry.tracer, rng=background_rng, sleep=sleep),
        interval_seconds=settings.loop_interval_seconds,
        error_backoff_seconds=settings.error_backoff_seconds,
    )
    runner = BackgroundTaskRunner(loop)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.background_enabled:
            runner.start()
        try:
            yield
        finally:
            await runner.stop()
            telemetry.force_flush()

    docs_enabled = is_development(settings.environment)
    app = FastAPI(
        title=settings.application_name,
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.include_router(build_router(handlers))
    app.state.handlers = handlers
    app.state.background_runner = runner

    if instrument:
        FastAPIInstrumentor.instrument_app(app, tracer_provider=telemetry.tracer_provider)

    return app
