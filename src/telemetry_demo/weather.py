"""Forecast items and the application status snapshot returned by the API."""

import random
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any

from .config import Settings
from .defaults import get_machine_name, get_process_id

SUMMARIES = (
    "Freezing",
    "Bracing",
    "Chilly",
    "Cool",
    "Mild",
    "Warm",
    "Balmy",
    "Hot",
    "Sweltering",
    "Scorching",
)

MIN_TEMPERATURE_C = -20
MAX_TEMPERATURE_C = 54
FORECAST_DAYS = 5


@dataclass(frozen=True)
class Forecast:
    date: date
    temperature_c: int
    summary: str

    @property
    def temperature_f(self) -> int:
        return 32 + int(self.temperature_c / 0.5556)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "temperatureC": self.temperature_c,
            "temperatureF": self.temperature_f,
            "summary": self.summary,
        }


def generate_forecasts(
    rng: random.Random, today: date, days: int = FORECAST_DAYS
) -> list[Forecast]:
    """One forecast per day for today+1 .. today+days, random temperature and summary."""
    return [
        Forecast(
            date=today + timedelta(days=offset),
            temperature_c=rng.randint(MIN_TEMPERATURE_C, MAX_TEMPERATURE_C),
            summary=rng.choice(SUMMARIES),
        )
        for offset in range(1, days + 1)
    ]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def status_snapshot(settings: Settings, now: datetime | None = None) -> dict[str, Any]:
    """Current application status; computed on every call, never cached."""
    timestamp = now or utc_now()
    return {
        "application": settings.application_name,
        "status": "Running",
        "timestamp": timestamp.astimezone(timezone.utc).isoformat(),
        "version": settings.version,
        "environment": settings.environment,
        "machineName": get_machine_name(),
        "processId": get_process_id(),
    }
