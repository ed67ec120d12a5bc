from __future__ import annotations

from pathlib import Path

from ExtensionCopilot.ManifestAnalysis.documents import Position
from ExtensionCopilot.ManifestAnalysis.rules import check_extension_name
from ExtensionCopilot.ManifestAnalysis.settings import RepositoryConfiguration


def _codes(findings):
    return [finding.code for finding in findings]


def _restricted_workspace(root: Path) -> Path:
    cfg = RepositoryConfiguration()
    root.mkdir(parents=True, exist_ok=True)
    (root / "gradle.properties").write_text(
        f"repositoryBaseURL={cfg.gradle_base_url}\nreleaseRepository={cfg.gradle_release_repository}\n",
        encoding="utf-8",
    )
    return root


def test_missing_name_reported_on_second_line(make_context) -> None:
    findings = check_extension_name(make_context("version: 1.0.0\nauthor:\n  name: someone\n"))

    assert _codes(findings) == ["DEC001"]
    assert findings[0].range_start == Position(1, 0)


def test_empty_name_reported_on_its_line(make_context) -> None:
    findings = check_extension_name(make_context("version: 1.0.0\nname:\n"))

    assert _codes(findings) == ["DEC001"]
    assert findings[0].range_start.line == 1


def test_valid_custom_name_has_no_findings(make_context) -> None:
    assert check_extension_name(make_context("name: custom:acme.device-monitor_2\n")) == []


def test_name_longer_than_limit(make_context) -> None:
    findings = check_extension_name(make_context("name: custom:" + "a" * 50 + "\n"))

    assert _codes(findings) == ["DEC002"]


def test_name_with_invalid_characters(make_context) -> None:
    assert _codes(check_extension_name(make_context("name: custom:Bad..Name\n"))) == ["DEC003"]
    assert _codes(check_extension_name(make_context("name: custom:.leading\n"))) == ["DEC003"]
    assert _codes(check_extension_name(make_context("name: custom:trailing.\n"))) == ["DEC003"]


def test_non_custom_name_spans_name_to_end_of_line(make_context) -> None:
    findings = check_extension_name(make_context("name: my-ext\nversion: 1.0.0\n"))

    assert _codes(findings) == ["DEC004"]
    assert findings[0].range_start == Position(0, 6)
    assert findings[0].range_end == Position(0, 12)


def test_quoted_name_is_unquoted(make_context) -> None:
    assert check_extension_name(make_context('name: "custom:quoted"\n')) == []


def test_custom_name_in_restricted_repository(make_context, tmp_path: Path) -> None:
    root = _restricted_workspace(tmp_path / "vendor")

    findings = check_extension_name(make_context("name: custom:vendor\n", workspace_root=root))

    assert _codes(findings) == ["DEC005"]
    assert findings[0].severity.value == "warning"


def test_plain_name_allowed_in_restricted_repository(make_context, tmp_path: Path) -> None:
    root = _restricted_workspace(tmp_path / "vendor")

    assert check_extension_name(make_context("name: com.vendor.device\n", workspace_root=root)) == []


def test_toggle_disables_rule(make_context) -> None:
    context = make_context("version: 1.0.0\n", config={"diagnostics.extensionName": False})

    assert check_extension_name(context) == []


def test_configured_namespace_prefix(make_context) -> None:
    repository = RepositoryConfiguration(namespace_prefix="acme:")

    assert check_extension_name(make_context("name: acme:device\n", repository=repository)) == []
    assert _codes(check_extension_name(make_context("name: device\n", repository=repository))) == ["DEC004"]
    assert _codes(check_extension_name(make_context("name: custom:device\n", repository=repository))) == [
        "DEC003",
        "DEC004",
    ]
