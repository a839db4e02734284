"""Tests for settings loading: YAML file, env overrides, validation."""

from pathlib import Path

import pytest

from telemetry_demo.config import Settings, get_resources_root, load_settings, load_yaml


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_bundled_config_loads() -> None:
    """resource/config/config.yaml next to pyproject.toml is found and valid."""
    config_path = get_resources_root() / "config" / "config.yaml"
    assert config_path.is_file()
    settings = load_settings()
    assert settings.loop_interval_seconds == 30
    assert settings.error_backoff_seconds == 10
    assert settings.environment == "Production"


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    settings = load_settings(tmp_path / "nope.yaml")
    assert settings == Settings()


def test_unparsable_yaml_falls_back_to_default(tmp_path: Path) -> None:
    path = _write(tmp_path / "bad.yaml", "application: [unclosed\n")
    assert load_yaml(path) == {}


def test_yaml_values_are_used(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "config.yaml",
        """
application:
  name: Forecasts
  version: "2.1.0"
background:
  enabled: false
  interval_seconds: 5
  error_backoff_seconds: 1.5
telemetry:
  service_name: forecasts-svc
  exporter: file
  output_file: out/spans.jsonl
  resource_attributes:
    team: weather
""",
    )
    settings = load_settings(path)
    assert settings.application_name == "Forecasts"
    assert settings.version == "2.1.0"
    assert settings.background_enabled is False
    assert settings.loop_interval_seconds == 5
    assert settings.error_backoff_seconds == 1.5
    assert settings.service_name == "forecasts-svc"
    assert settings.exporter == "file"
    assert settings.output_file == "out/spans.jsonl"
    assert settings.resource_attributes == {"team": "weather"}


def test_env_overrides_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(tmp_path / "config.yaml", "background:\n  interval_seconds: 5\n")
    monkeypatch.setenv("APP_ENVIRONMENT", "Development")
    monkeypatch.setenv("BACKGROUND_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("BACKGROUND_ENABLED", "no")
    monkeypatch.setenv("OTEL_SERVICE_NAME", "from-env")
    monkeypatch.setenv("TELEMETRY_EXPORTER", "OTLP")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings(path)
    assert settings.environment == "Development"
    assert settings.loop_interval_seconds == 0.5
    assert settings.background_enabled is False
    assert settings.service_name == "from-env"
    assert settings.exporter == "otlp"
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    "name,value",
    [
        ("BACKGROUND_INTERVAL_SECONDS", "soon"),
        ("BACKGROUND_INTERVAL_SECONDS", "0"),
        ("BACKGROUND_ERROR_BACKOFF_SECONDS", "-1"),
        ("BACKGROUND_ENABLED", "maybe"),
        ("TELEMETRY_EXPORTER", "carrier-pigeon"),
    ],
)
def test_invalid_values_raise(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        load_settings(tmp_path / "missing.yaml")


def test_resources_root_env_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "config").mkdir()
    _write(tmp_path / "config" / "config.yaml", "application:\n  name: FromRoot\n")
    monkeypatch.setenv("TELEMETRY_DEMO_ROOT", str(tmp_path))
    assert get_resources_root() == tmp_path.resolve()
    assert load_settings().application_name == "FromRoot"
