from __future__ import annotations

from ExtensionCopilot.ManifestAnalysis.documents import Position, TextDocument
from ExtensionCopilot.ManifestAnalysis.findings import (
    CATALOG,
    COUNT_METRIC_KEY_SUFFIX,
    EXTENSION_NAME_MISSING,
    FINDING_SOURCE,
    FindingCollection,
    Severity,
    make_finding,
)

URI = "file:///workspace/extension/extension.yaml"


def test_catalog_codes_are_unique_and_complete() -> None:
    assert list(CATALOG) == [f"DEC{number:03d}" for number in range(1, 20)]
    assert all(definition.message for definition in CATALOG.values())


def test_catalog_severities() -> None:
    warnings = {code for code, definition in CATALOG.items() if definition.severity is Severity.WARNING}

    assert warnings == {"DEC005", "DEC006", "DEC007", "DEC009", "DEC011", "DEC014", "DEC015"}


def test_make_finding_positions_span() -> None:
    document = TextDocument(URI, "name: web\nversion: 1\n")

    finding = make_finding(document, 6, 9, EXTENSION_NAME_MISSING)

    assert finding.code == "DEC001"
    assert finding.range_start == Position(0, 6)
    assert finding.range_end == Position(0, 9)
    assert finding.source == FINDING_SOURCE
    assert finding.to_dict() == {
        "code": "DEC001",
        "severity": "error",
        "message": EXTENSION_NAME_MISSING.message,
        "start": {"line": 0, "character": 6},
        "end": {"line": 0, "character": 9},
        "source": FINDING_SOURCE,
    }


def test_collection_replaces_findings_per_document() -> None:
    document = TextDocument(URI, "name: web\n")
    collection = FindingCollection()
    error = make_finding(document, 0, 4, EXTENSION_NAME_MISSING)
    warning = make_finding(document, 0, 4, COUNT_METRIC_KEY_SUFFIX)

    collection.set(URI, [error, warning])
    assert collection.has_errors(URI)

    collection.set(URI, [warning])
    assert collection.get(URI) == [warning]
    assert not collection.has_errors(URI)
    assert collection.uris() == [URI]

    collection.delete(URI)
    assert collection.get(URI) == []
    assert collection.uris() == []
