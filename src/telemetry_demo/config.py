"""
Configuration for the weather telemetry demo.

Settings are loaded from config/config.yaml under the resources root and then
overridden by environment variables, so containers can be configured without
editing files. Config lives outside src/ under resource/ (resource/config/).
When running from source, resource/ at project root is used. When the package
is installed, set TELEMETRY_DEMO_ROOT to a directory containing config/.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .defaults import get_environment_name

EXPORTER_CHOICES = ("console", "otlp", "file", "none")
PROTOCOL_CHOICES = ("http", "grpc")

DEFAULT_APPLICATION_NAME = "WeatherTelemetryDemo"
DEFAULT_VERSION = "1.0.0"
DEFAULT_SERVICE_NAME = "weather-telemetry-demo"
DEFAULT_ENDPOINT = "http://localhost:4318"
DEFAULT_INTERVAL_SECONDS = 30.0
DEFAULT_ERROR_BACKOFF_SECONDS = 10.0

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def get_resources_root() -> Path:
    """Return the root directory for config resources.

    Resolution order:
    1. TELEMETRY_DEMO_ROOT env var (must contain config/)
    2. resource/ under directory containing pyproject.toml (when running from source)
    3. telemetry_demo/resources/ next to this package (when installed)
    """
    env_root = os.environ.get("TELEMETRY_DEMO_ROOT")
    if env_root:
        p = Path(env_root).resolve()
        if p.is_dir():
            return p
    # Walk up from this file (e.g. .../src/telemetry_demo/config.py) looking for pyproject.toml
    here = Path(__file__).resolve().parent
    for candidate in [here, *here.parents]:
        if (candidate / "pyproject.toml").is_file():
            return candidate / "resource"
    return Path(__file__).resolve().parent / "resources"


def default_config_path() -> Path:
    return get_resources_root() / "config" / "config.yaml"


def load_yaml(path: Path, default: Any = None) -> Any:
    """Load YAML file; return default on missing file or parse error."""
    if default is None:
        default = {}
    if not path.exists():
        return default
    try:
        with path.open(encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except Exception:
        return default
    return data if isinstance(data, dict) else default


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    block = data.get(name)
    return block if isinstance(block, dict) else {}


def _as_bool(value: Any, source: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"{source} must be a boolean (true/false), got {value!r}")


def _as_positive_float(value: Any, source: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{source} must be a number, got {value!r}") from None
    if number <= 0:
        raise ValueError(f"{source} must be greater than zero, got {number}")
    return number


def _env(name: str) -> str | None:
    """Return a stripped env value, or None when unset or blank."""
    raw = os.environ.get(name, "").strip()
    return raw or None


@dataclass(frozen=True)
class Settings:
    """Resolved application settings."""

    application_name: str = DEFAULT_APPLICATION_NAME
    version: str = DEFAULT_VERSION
    environment: str = "Production"
    service_name: str = DEFAULT_SERVICE_NAME
    exporter: str = "console"
    endpoint: str = DEFAULT_ENDPOINT
    protocol: str = "http"
    output_file: str = "traces.jsonl"
    background_enabled: bool = True
    loop_interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    error_backoff_seconds: float = DEFAULT_ERROR_BACKOFF_SECONDS
    log_level: str = "INFO"
    resource_attributes: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.exporter not in EXPORTER_CHOICES:
            raise ValueError(
                f"exporter must be one of {', '.join(EXPORTER_CHOICES)}, got {self.exporter!r}"
            )
        if self.protocol not in PROTOCOL_CHOICES:
            raise ValueError(
                f"protocol must be one of {', '.join(PROTOCOL_CHOICES)}, got {self.protocol!r}"
            )
        if self.loop_interval_seconds <= 0 or self.error_backoff_seconds <= 0:
            raise ValueError("background interval and error backoff must be greater than zero")

    def as_dict(self) -> dict[str, Any]:
        return {
            "application_name": self.application_name,
            "version": self.version,
            "environment": self.environment,
            "service_name": self.service_name,
            "exporter": self.exporter,
            "endpoint": self.endpoint,
            "protocol": self.protocol,
            "output_file": self.output_file,
            "background_enabled": self.background_enabled,
            "loop_interval_seconds": self.loop_interval_seconds,
            "error_backoff_seconds": self.error_backoff_seconds,
            "log_level": self.log_level,
            "resource_attributes": dict(self.resource_attributes),
        }


def load_settings(config_path: Path | None = None) -> Settings:
    """
    Build Settings from the YAML config file, then apply environment overrides.

    Raises ValueError when a value (from either source) is out of range or malformed.
    """
    data = load_yaml(config_path or default_config_path())
    app = _section(data, "application")
    background = _section(data, "background")
    telemetry = _section(data, "telemetry")

    raw_attrs = telemetry.get("resource_attributes")
    resource_attributes = (
        {str(k): str(v) for k, v in raw_attrs.items()} if isinstance(raw_attrs, dict) else {}
    )

    enabled: Any = _env("BACKGROUND_ENABLED") or background.get("enabled", True)
    interval: Any = _env("BACKGROUND_INTERVAL_SECONDS") or background.get(
        "interval_seconds", DEFAULT_INTERVAL_SECONDS
    )
    backoff: Any = _env("BACKGROUND_ERROR_BACKOFF_SECONDS") or background.get(
        "error_backoff_seconds", DEFAULT_ERROR_BACKOFF_SECONDS
    )

    return Settings(
        application_name=_env("APP_NAME") or str(app.get("name") or DEFAULT_APPLICATION_NAME),
        version=str(app.get("version") or DEFAULT_VERSION),
        environment=get_environment_name(),
        service_name=_env("OTEL_SERVICE_NAME")
        or str(telemetry.get("service_name") or DEFAULT_SERVICE_NAME),
        exporter=(_env("TELEMETRY_EXPORTER") or str(telemetry.get("exporter") or "console")).lower(),
        endpoint=_env("OTEL_EXPORTER_OTLP_ENDPOINT")
        or str(telemetry.get("endpoint") or DEFAULT_ENDPOINT),
        protocol=str(telemetry.get("protocol") or "http").lower(),
        output_file=str(telemetry.get("output_file") or "traces.jsonl"),
        background_enabled=_as_bool(enabled, "background.enabled"),
        loop_interval_seconds=_as_positive_float(interval, "background.interval_seconds"),
        error_backoff_seconds=_as_positive_float(backoff, "background.error_backoff_seconds"),
        log_level=(_env("LOG_LEVEL") or "INFO").upper(),
        resource_attributes=resource_attributes,
    )
