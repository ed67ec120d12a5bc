from __future__ import annotations

from pathlib import Path

import pytest

from ExtensionCopilot.ManifestAnalysis.errors import UserConfigError
from ExtensionCopilot.ManifestAnalysis.settings import (
    DEFAULT_OID_REPOSITORY_URL,
    AnalysisSettings,
    FlatConfiguration,
    load_settings,
)


def test_defaults() -> None:
    settings = load_settings()

    assert settings.lookup.base_url == DEFAULT_OID_REPOSITORY_URL
    assert settings.lookup.offline is False
    assert settings.cache.debounce_seconds == pytest.approx(0.2)
    assert all(settings.diagnostics.as_flat().values())


def test_yaml_file_values(tmp_path: Path) -> None:
    config = tmp_path / "copilot.yaml"
    config.write_text(
        "lookup:\n  offline: true\n  base_url: https://oids.example.org/get/\n"
        "diagnostics:\n  snmp: false\nlogging:\n  level: debug\n",
        encoding="utf-8",
    )

    settings = load_settings(config)

    assert settings.lookup.offline is True
    assert settings.lookup.base_url == "https://oids.example.org/get"
    assert settings.diagnostics.as_flat()["diagnostics.snmp"] is False
    assert settings.logging.level == "DEBUG"


def test_environment_overrides_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config = tmp_path / "copilot.yaml"
    config.write_text("cache:\n  debounce_ms: 500\n", encoding="utf-8")
    monkeypatch.setenv("EXTCOPILOT_DEBOUNCE_MS", "50")
    monkeypatch.setenv("EXTCOPILOT_OFFLINE", "true")
    monkeypatch.setenv("EXTCOPILOT_DIAGNOSTICS", "false")

    settings = load_settings(config)

    assert settings.cache.debounce_ms == 50
    assert settings.lookup.offline is True
    assert settings.diagnostics.enabled is False


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("lookup: [unclosed\n", "invalid YAML"),
        ("- a\n- b\n", "mapping at the root"),
        ("lookup:\n  base_url: ftp://oids\n", "base_url"),
        ("logging:\n  level: LOUD\n", "level"),
    ],
)
def test_invalid_files_raise_user_config_error(tmp_path: Path, content: str, message: str) -> None:
    config = tmp_path / "copilot.yaml"
    config.write_text(content, encoding="utf-8")

    with pytest.raises(UserConfigError, match=message):
        load_settings(config)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(UserConfigError, match="not found"):
        load_settings(tmp_path / "absent.yaml")


def test_invalid_environment_value(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXTCOPILOT_OID_REPOSITORY_URL", "not-a-url")

    with pytest.raises(UserConfigError):
        load_settings()


def test_flat_configuration_reads_current_values() -> None:
    settings = AnalysisSettings()
    settings.diagnostics.card_keys = False
    config = FlatConfiguration.from_settings(settings)

    assert config.get("diagnostics.cardKeys") is False
    assert config.get(" diagnostics.snmp ") is True
    assert config.get("diagnostics.unknown", "fallback") == "fallback"

    config.update({"diagnostics.cardKeys": True, "diagnostics": False})
    assert config.snapshot()["diagnostics.cardKeys"] is True
    assert config.get("diagnostics") is False
