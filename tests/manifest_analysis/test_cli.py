from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from ExtensionCopilot import __version__
from ExtensionCopilot.ManifestAnalysis.cli import app

runner = CliRunner()


def test_version() -> None:
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert result.stdout.strip() == f"extension-copilot {__version__}"


def test_check_clean_workspace_json(workspace: Path) -> None:
    manifest = workspace / "extension" / "extension.yaml"

    result = runner.invoke(
        app, ["check", str(manifest), "--workspace", str(workspace), "--offline", "--format", "json"]
    )

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == []


def test_check_reports_errors_with_exit_status(tmp_path: Path) -> None:
    manifest = tmp_path / "extension.yaml"
    manifest.write_text("name: Bad Name\nversion: 1.0.0\n", encoding="utf-8")

    result = runner.invoke(app, ["check", str(manifest), "--offline", "-f", "json"])

    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert [item["code"] for item in payload] == ["DEC003", "DEC004"]
    assert payload[0]["start"] == {"line": 0, "character": 6}


def test_check_table_output(tmp_path: Path) -> None:
    manifest = tmp_path / "extension.yaml"
    manifest.write_text("name: custom:ok\n", encoding="utf-8")

    result = runner.invoke(app, ["check", str(manifest), "--offline"])

    assert result.exit_code == 0
    assert "no findings" in " ".join(result.stdout.split())


def test_check_unparseable_manifest_times_out(tmp_path: Path) -> None:
    manifest = tmp_path / "extension.yaml"
    manifest.write_text("name: [unclosed\n", encoding="utf-8")

    result = runner.invoke(app, ["check", str(manifest), "--offline", "--timeout", "0.2"])

    assert result.exit_code == 2


def test_check_rejects_unknown_format(tmp_path: Path) -> None:
    manifest = tmp_path / "extension.yaml"
    manifest.write_text("name: custom:ok\n", encoding="utf-8")

    result = runner.invoke(app, ["check", str(manifest), "--format", "xml"])

    assert result.exit_code == 2


def test_settings_file_disables_rules(tmp_path: Path) -> None:
    manifest = tmp_path / "extension.yaml"
    manifest.write_text("name: Bad Name\n", encoding="utf-8")
    config = tmp_path / "copilot.yaml"
    config.write_text("diagnostics:\n  extension_name: false\nlookup:\n  offline: true\n", encoding="utf-8")

    result = runner.invoke(app, ["--config", str(config), "check", str(manifest), "-f", "json"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == []


def test_invalid_settings_file_exits_2(tmp_path: Path) -> None:
    config = tmp_path / "copilot.yaml"
    config.write_text("lookup: [unclosed\n", encoding="utf-8")

    result = runner.invoke(app, ["--config", str(config), "version"])

    assert result.exit_code == 2


def test_lookup_json(workspace: Path) -> None:
    result = runner.invoke(
        app,
        ["lookup", "1.3.6.1.2.1.1.3", "acmeTemperature", "1.3.6.1.4.1.424242", "--mibs", str(workspace), "--offline", "-f", "json"],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert [item["object_name"] for item in payload] == ["sysUpTime", "acmeTemperature", None]
    assert [item["source"] for item in payload] == ["local", "local", "none"]


def test_lookup_table() -> None:
    result = runner.invoke(app, ["lookup", "ifInOctets", "--offline"])

    assert result.exit_code == 0
    assert "1.3.6.1.2.1.2.2.1.10" in result.stdout
