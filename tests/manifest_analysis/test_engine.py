from __future__ import annotations

import logging
from pathlib import Path

import pytest

from ExtensionCopilot.ManifestAnalysis.cache import ManifestCache
from ExtensionCopilot.ManifestAnalysis.documents import TextDocument
from ExtensionCopilot.ManifestAnalysis.engine import DiagnosticEngine
from ExtensionCopilot.ManifestAnalysis.findings import (
    COUNT_METRIC_KEY_SUFFIX,
    EXTENSION_NAME_NON_CUSTOM,
    make_finding,
)
from ExtensionCopilot.ManifestAnalysis.manifest import Manifest
from ExtensionCopilot.ManifestAnalysis.rules import RULES
from ExtensionCopilot.ManifestAnalysis.settings import FlatConfiguration

URI = "file:///workspace/extension/extension.yaml"

COUNTER_WITHOUT_SUFFIX = """\
name: custom:web
prometheus:
  - group: http
    metrics:
      - key: requests_total
        value: metric:http_requests_total
        type: count
"""


@pytest.fixture
def cache(tmp_path: Path):
    instance = ManifestCache(tmp_path / "extension.yaml", debounce_seconds=60.0)
    yield instance
    instance.close()


def _warning(context):
    return [make_finding(context.document, 0, 4, COUNT_METRIC_KEY_SUFFIX)]


def _error(context):
    return [make_finding(context.document, 0, 4, EXTENSION_NAME_NON_CUSTOM)]


def test_default_registry_end_to_end(cache: ManifestCache) -> None:
    cache.process_text(COUNTER_WITHOUT_SUFFIX)
    engine = DiagnosticEngine(cache, FlatConfiguration())

    findings = engine.provide_diagnostics(TextDocument(URI, COUNTER_WITHOUT_SUFFIX))

    assert engine.rule_names == list(RULES)
    assert [finding.code for finding in findings] == ["DEC006"]
    assert engine.get_diagnostics(URI) == findings


def test_failing_rule_is_isolated(cache: ManifestCache, caplog: pytest.LogCaptureFixture) -> None:
    def broken(context):
        raise KeyError("unexpected shape")

    engine = DiagnosticEngine(cache, FlatConfiguration(), rules={"broken": broken, "warning": _warning})

    with caplog.at_level(logging.ERROR, logger="ExtensionCopilot"):
        findings = engine.run_diagnostics(TextDocument(URI, "name: x\n"), Manifest())

    assert [finding.code for finding in findings] == ["DEC006"]
    failures = [record for record in caplog.records if record.getMessage() == "diagnostic rule 'broken' failed"]
    assert len(failures) == 1
    assert failures[0].exc_info[0] is KeyError
    assert failures[0].rule == "broken"


def test_global_toggle_clears_findings(cache: ManifestCache) -> None:
    config = FlatConfiguration()
    engine = DiagnosticEngine(cache, config, rules={"error": _error})
    document = TextDocument(URI, "name: x\n")

    assert len(engine.provide_diagnostics(document)) == 1

    config.set("diagnostics", False)
    assert engine.provide_diagnostics(document) == []
    assert engine.get_diagnostics(URI) == []


def test_runs_without_published_manifest(cache: ManifestCache) -> None:
    seen = []

    def capture(context):
        seen.append(context.manifest)
        return []

    engine = DiagnosticEngine(cache, FlatConfiguration(), rules={"capture": capture})

    assert engine.provide_diagnostics(TextDocument(URI, "")) == []
    assert seen == [Manifest()]


def test_stale_results_are_discarded(cache: ManifestCache) -> None:
    cache.process_text("name: custom:one\n")
    collection_before = [make_finding(TextDocument(URI, "x"), 0, 1, COUNT_METRIC_KEY_SUFFIX)]

    def racing(context):
        # a newer manifest is published while the rule runs
        cache.process_text("name: custom:two\n")
        return _error(context)

    engine = DiagnosticEngine(cache, FlatConfiguration(), rules={"racing": racing})
    engine.collection.set(URI, collection_before)

    assert engine.provide_diagnostics(TextDocument(URI, "name: custom:one\n")) is None
    assert engine.get_diagnostics(URI) == collection_before


def test_build_gate(cache: ManifestCache) -> None:
    engine = DiagnosticEngine(cache, FlatConfiguration(), rules={"warning": _warning})
    document = TextDocument(URI, "name: x\n")

    engine.provide_diagnostics(document)
    assert engine.is_valid_for_building(URI) is True

    engine_with_errors = DiagnosticEngine(cache, FlatConfiguration(), rules={"error": _error})
    engine_with_errors.provide_diagnostics(document)
    assert engine_with_errors.is_valid_for_building(URI) is False
    assert engine_with_errors.is_valid_for_building(None) is False

    engine_with_errors.clear(URI)
    assert engine_with_errors.is_valid_for_building(URI) is True
