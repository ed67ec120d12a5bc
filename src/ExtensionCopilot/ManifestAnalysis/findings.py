"""Diagnostic catalog, positioned findings, and the per-document finding collection.

Every diagnostic the rules can raise is catalogued here once, so codes can be
reused by other tooling (quick fixes, build gates) without duplicating the
message or severity. Codes carry no meaning beyond being unique.
"""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from .documents import Position, TextDocument

__all__ = [
    "Severity",
    "FindingDefinition",
    "Finding",
    "FindingCollection",
    "FINDING_SOURCE",
    "CATALOG",
    "make_finding",
    "EXTENSION_NAME_MISSING",
    "EXTENSION_NAME_TOO_LONG",
    "EXTENSION_NAME_INVALID",
    "EXTENSION_NAME_NON_CUSTOM",
    "EXTENSION_NAME_CUSTOM_IN_RESTRICTED_REPO",
    "COUNT_METRIC_KEY_SUFFIX",
    "GAUGE_METRIC_KEY_SUFFIX",
    "REFERENCED_CARD_NOT_DEFINED",
    "DEFINED_CARD_NOT_REFERENCED",
    "OID_SYNTAX_INVALID",
    "OID_DOES_NOT_EXIST",
    "OID_NOT_READABLE",
    "OID_STRING_AS_METRIC",
    "OID_COUNTER_AS_GAUGE",
    "OID_GAUGE_AS_COUNTER",
    "OID_DOT_ZERO_IN_TABLE",
    "OID_STATIC_OBJ_IN_TABLE",
    "OID_DOT_ZERO_MISSING",
    "OID_TABLE_OBJ_AS_STATIC",
]

FINDING_SOURCE = "Extensions Copilot"


class Severity(str, enum.Enum):
    ERROR = "error"
    WARNING = "warning"
    INFORMATION = "information"
    HINT = "hint"


@dataclass(frozen=True, slots=True)
class FindingDefinition:
    code: str
    severity: Severity
    message: str


EXTENSION_NAME_MISSING = FindingDefinition(
    "DEC001", Severity.ERROR, "Extension name is mandatory, but missing."
)
EXTENSION_NAME_TOO_LONG = FindingDefinition(
    "DEC002", Severity.ERROR, "Extension name must not be longer than 50 characters."
)
EXTENSION_NAME_INVALID = FindingDefinition(
    "DEC003",
    Severity.ERROR,
    "Extension name is invalid. Must only contain lowercase letters, numbers, "
    "hyphens, underscores, or dots.",
)
EXTENSION_NAME_NON_CUSTOM = FindingDefinition(
    "DEC004",
    Severity.ERROR,
    'Only custom extensions can be built (name must start with "custom:")',
)
EXTENSION_NAME_CUSTOM_IN_RESTRICTED_REPO = FindingDefinition(
    "DEC005",
    Severity.WARNING,
    "Extensions in the restricted-namespace repository should not have custom names",
)
COUNT_METRIC_KEY_SUFFIX = FindingDefinition(
    "DEC006",
    Severity.WARNING,
    'Metrics of type count should have keys ending in ".count" or "_count"',
)
GAUGE_METRIC_KEY_SUFFIX = FindingDefinition(
    "DEC007",
    Severity.WARNING,
    'Metrics of type gauge should not have keys ending in ".count" or "_count"',
)
REFERENCED_CARD_NOT_DEFINED = FindingDefinition(
    "DEC008",
    Severity.ERROR,
    "This card is referenced in layout but does not have a definition within this screen",
)
DEFINED_CARD_NOT_REFERENCED = FindingDefinition(
    "DEC009",
    Severity.WARNING,
    "This card is defined but is not referenced within the screen layout",
)
OID_SYNTAX_INVALID = FindingDefinition(
    "DEC010",
    Severity.ERROR,
    "Invalid OID syntax. OIDs must be dotted numbers without leading or trailing dots, "
    "or an alphanumeric object name.",
)
OID_DOES_NOT_EXIST = FindingDefinition(
    "DEC011",
    Severity.WARNING,
    "This OID could not be verified in local MIB files or the online OID repository.",
)
OID_NOT_READABLE = FindingDefinition(
    "DEC012",
    Severity.ERROR,
    "This OID is not readable (max-access does not allow reads).",
)
OID_STRING_AS_METRIC = FindingDefinition(
    "DEC013",
    Severity.ERROR,
    "This OID returns a string value and cannot be used as a metric.",
)
OID_COUNTER_AS_GAUGE = FindingDefinition(
    "DEC014",
    Severity.WARNING,
    "This OID returns a counter but the metric is declared as a gauge.",
)
OID_GAUGE_AS_COUNTER = FindingDefinition(
    "DEC015",
    Severity.WARNING,
    "This OID returns a gauge or integer but the metric is declared as a count.",
)
OID_DOT_ZERO_IN_TABLE = FindingDefinition(
    "DEC016",
    Severity.ERROR,
    'OIDs ending in ".0" refer to static instances and must not be used in table subgroups.',
)
OID_STATIC_OBJ_IN_TABLE = FindingDefinition(
    "DEC017",
    Severity.ERROR,
    "This OID is not part of a table and must not be used in a table subgroup.",
)
OID_DOT_ZERO_MISSING = FindingDefinition(
    "DEC018",
    Severity.ERROR,
    'Static (non-table) OIDs must end in ".0".',
)
OID_TABLE_OBJ_AS_STATIC = FindingDefinition(
    "DEC019",
    Severity.ERROR,
    "This OID belongs to a table and must be used in a subgroup with table: true.",
)

CATALOG: Dict[str, FindingDefinition] = {
    definition.code: definition
    for definition in (
        EXTENSION_NAME_MISSING,
        EXTENSION_NAME_TOO_LONG,
        EXTENSION_NAME_INVALID,
        EXTENSION_NAME_NON_CUSTOM,
        EXTENSION_NAME_CUSTOM_IN_RESTRICTED_REPO,
        COUNT_METRIC_KEY_SUFFIX,
        GAUGE_METRIC_KEY_SUFFIX,
        REFERENCED_CARD_NOT_DEFINED,
        DEFINED_CARD_NOT_REFERENCED,
        OID_SYNTAX_INVALID,
        OID_DOES_NOT_EXIST,
        OID_NOT_READABLE,
        OID_STRING_AS_METRIC,
        OID_COUNTER_AS_GAUGE,
        OID_GAUGE_AS_COUNTER,
        OID_DOT_ZERO_IN_TABLE,
        OID_STATIC_OBJ_IN_TABLE,
        OID_DOT_ZERO_MISSING,
        OID_TABLE_OBJ_AS_STATIC,
    )
}


@dataclass(frozen=True, slots=True)
class Finding:
    """A catalogued diagnostic positioned on a span of the document."""

    code: str
    severity: Severity
    message: str
    range_start: Position
    range_end: Position
    source: str = FINDING_SOURCE

    def to_dict(self) -> Dict[str, object]:
        return {
            "code": self.code,
            "severity": self.severity.value,
            "message": self.message,
            "start": {"line": self.range_start.line, "character": self.range_start.character},
            "end": {"line": self.range_end.line, "character": self.range_end.character},
            "source": self.source,
        }


def make_finding(
    document: TextDocument, start_offset: int, end_offset: int, definition: FindingDefinition
) -> Finding:
    """Build a :class:`Finding` for ``definition`` spanning two character offsets."""

    return Finding(
        code=definition.code,
        severity=definition.severity,
        message=definition.message,
        range_start=document.position_at(start_offset),
        range_end=document.position_at(end_offset),
    )


class FindingCollection:
    """Per-document findings, replaced in full on every diagnostic run."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[Finding, ...]] = {}

    def set(self, uri: str, findings: Iterable[Finding]) -> None:
        with self._lock:
            self._entries[uri] = tuple(findings)

    def get(self, uri: str) -> List[Finding]:
        with self._lock:
            return list(self._entries.get(uri, ()))

    def has_errors(self, uri: str) -> bool:
        return any(finding.severity is Severity.ERROR for finding in self.get(uri))

    def delete(self, uri: str) -> None:
        with self._lock:
            self._entries.pop(uri, None)

    def uris(self) -> List[str]:
        with self._lock:
            return sorted(self._entries)
