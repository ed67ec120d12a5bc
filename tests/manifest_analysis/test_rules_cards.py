from __future__ import annotations

from ExtensionCopilot.ManifestAnalysis.documents import Position
from ExtensionCopilot.ManifestAnalysis.rules import check_card_keys

SCREENS = """\
name: custom:web
screens:
  - entityType: custom:web:host
    listSettings:
      layout:
        autoGenerate: false
        cards:
          - key: cpuUsage
            type: CHART_GROUP
    chartsCards:
      - key: memoryUsage
        displayName: Memory
  - entityType: custom:web:disk
    detailsSettings:
      layout:
        cards:
          - key: cpuUsage
            type: CHART_GROUP
    chartsCards:
      - key: cpuUsage
        displayName: CPU
"""


def test_referenced_card_without_definition(make_context) -> None:
    findings = check_card_keys(make_context(SCREENS))

    undefined = [finding for finding in findings if finding.code == "DEC008"]
    assert len(undefined) == 1
    assert undefined[0].range_start == Position(7, 12)
    assert undefined[0].severity.value == "error"


def test_defined_card_without_reference(make_context) -> None:
    findings = check_card_keys(make_context(SCREENS))

    unreferenced = [finding for finding in findings if finding.code == "DEC009"]
    assert len(unreferenced) == 1
    assert unreferenced[0].range_start == Position(10, 8)


def test_consistent_screen_has_no_findings(make_context) -> None:
    text = """\
name: custom:web
screens:
  - entityType: custom:web:disk
    detailsSettings:
      layout:
        cards:
          - key: 'cpuUsage'
            type: CHART_GROUP
    chartsCards:
      - key: 'cpuUsage'
        displayName: CPU
"""
    assert check_card_keys(make_context(text)) == []


def test_reference_without_type_is_ignored(make_context) -> None:
    text = """\
name: custom:web
screens:
  - entityType: custom:web:host
    listSettings:
      layout:
        cards:
          - key: pending
"""
    assert check_card_keys(make_context(text)) == []


def test_toggle_disables_rule(make_context) -> None:
    context = make_context(SCREENS, config={"diagnostics.cardKeys": False})

    assert check_card_keys(context) == []
