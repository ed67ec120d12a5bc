# === NAVMAP v1 ===
# {
#   "module": "ExtensionCopilot.ManifestAnalysis.rules.oids",
#   "purpose": "OID semantics checks for SNMP metric and dimension values",
#   "sections": [
#     {"id": "occurrences", "name": "Occurrence scanning", "anchor": "OCC", "kind": "helpers"},
#     {"id": "tables", "name": "Table and scalar consistency", "anchor": "TBL", "kind": "helpers"},
#     {"id": "rules", "name": "Rule entry points", "anchor": "RUL", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""OID semantics validator (DEC010-DEC019).

Each ``value: oid:<X>`` line inside an SNMP ``metrics`` or ``dimensions`` list
is checked in a fixed order: syntax, existence, then (metrics only) access,
textual syntax, and counter/gauge agreement with the declared metric type,
and finally table consistency. Syntax and existence failures stop the chain
for that occurrence. All identifiers are bulk-resolved before the
per-occurrence checks run; lookups use the object path without the ``.0``
instance suffix.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..findings import (
    OID_COUNTER_AS_GAUGE,
    OID_DOES_NOT_EXIST,
    OID_DOT_ZERO_IN_TABLE,
    OID_DOT_ZERO_MISSING,
    OID_GAUGE_AS_COUNTER,
    OID_NOT_READABLE,
    OID_STATIC_OBJ_IN_TABLE,
    OID_STRING_AS_METRIC,
    OID_SYNTAX_INVALID,
    OID_TABLE_OBJ_AS_STATIC,
    Finding,
    FindingDefinition,
    make_finding,
)
from ..manifest import DatasourceKind, MetricUsage, metrics_from_datasource
from ..snmp.records import (
    INSTANCE_SUFFIX,
    OidRecord,
    is_dotted_path,
    is_valid_oid_syntax,
    oid_from_metric_value,
    scalar_ancestor,
    strip_instance_suffix,
    table_ancestor,
)
from ..yaml_structure import enclosing_item_span, list_item_index_at, parent_blocks_of
from .context import RuleContext

__all__ = ["TOGGLE", "OidOccurrence", "find_oid_occurrences", "check_metric_oids", "check_dimension_oids"]

LOGGER = logging.getLogger("ExtensionCopilot.ManifestAnalysis.rules.oids")

TOGGLE = "diagnostics.snmp"
METRICS = "metrics"
DIMENSIONS = "dimensions"

_OID_VALUE = re.compile(r'value: "?oid:(?P<oid>[^"\s]*)"?(?=\s|$)', re.MULTILINE)


# --- Occurrence scanning ---------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class OidOccurrence:
    """One ``value: oid:`` line; ``start``/``end`` delimit the identifier."""

    oid: str
    start: int
    end: int
    line: int
    usage: str
    in_subgroup: bool


def find_oid_occurrences(text: str) -> List[OidOccurrence]:
    """Return every OID value declared in an SNMP metrics or dimensions list.

    Examples:
        >>> text = (
        ...     "snmp:\\n"
        ...     "  - group: g\\n"
        ...     "    metrics:\\n"
        ...     "      - key: uptime\\n"
        ...     "        value: oid:1.3.6.1.2.1.1.3.0\\n"
        ... )
        >>> [(o.oid, o.usage, o.in_subgroup) for o in find_oid_occurrences(text)]
        [('1.3.6.1.2.1.1.3.0', 'metrics', False)]
    """

    occurrences: List[OidOccurrence] = []
    for match in _OID_VALUE.finditer(text):
        line = text.count("\n", 0, match.start())
        parents = parent_blocks_of(line, text)
        if not parents or parents[0] != "snmp" or parents[-1] not in (METRICS, DIMENSIONS):
            continue
        occurrences.append(
            OidOccurrence(
                oid=match.group("oid"),
                start=match.start("oid"),
                end=match.end("oid"),
                line=line,
                usage=parents[-1],
                in_subgroup="subgroups" in parents,
            )
        )
    return occurrences


def _lookup_key(oid: str) -> str:
    return strip_instance_suffix(oid)


def _key_declared_in(key: str, block: str) -> bool:
    pattern = rf"""key: ["']?{re.escape(key)}["']?(?=\s|$)"""
    return re.search(pattern, block, re.MULTILINE) is not None


# --- Table and scalar consistency ------------------------------------------------------


def _is_table(context: RuleContext, oid: str) -> bool:
    if not oid:
        return False
    return context.store.lookup_one(oid).is_table  # type: ignore[union-attr]


def _in_table_subgroup(context: RuleContext, occurrence: OidOccurrence) -> Optional[bool]:
    """Return the ``table`` flag of the declaring subgroup.

    ``False`` for group-level declarations; ``None`` when the model does not
    (yet) have the subgroup the text points at.
    """

    if not occurrence.in_subgroup:
        return False
    text = context.text
    group_index = list_item_index_at("snmp", occurrence.line, text)
    subgroup_index = list_item_index_at("subgroups", occurrence.line, text)
    groups = context.manifest.snmp or []
    if group_index is None or subgroup_index is None or group_index >= len(groups):
        return None
    subgroups = groups[group_index].subgroups
    if subgroup_index >= len(subgroups):
        return None
    return subgroups[subgroup_index].table


def _table_finding(context: RuleContext, occurrence: OidOccurrence) -> Optional[FindingDefinition]:
    oid = occurrence.oid
    if not is_dotted_path(oid):
        return None
    tabular = _in_table_subgroup(context, occurrence)
    if tabular is None:
        return None
    if tabular:
        if oid.endswith(INSTANCE_SUFFIX):
            return OID_DOT_ZERO_IN_TABLE
        if not _is_table(context, table_ancestor(oid)):
            return OID_STATIC_OBJ_IN_TABLE
        return None
    if not oid.endswith(INSTANCE_SUFFIX):
        return OID_DOT_ZERO_MISSING
    if _is_table(context, scalar_ancestor(oid)):
        return OID_TABLE_OBJ_AS_STATIC
    return None


# --- Rule entry points -----------------------------------------------------------------


def _type_findings(
    context: RuleContext,
    occurrence: OidOccurrence,
    record: OidRecord,
    usages: List[MetricUsage],
) -> List[FindingDefinition]:
    if not record.syntax:
        return []
    span = enclosing_item_span(occurrence.start, context.text)
    if span is None:
        return []
    block = context.text[span[0] : span[1]]
    definitions: List[FindingDefinition] = []
    for usage in usages:
        if not _key_declared_in(usage.key, block):
            continue
        if usage.type == "gauge" and record.is_counter and OID_COUNTER_AS_GAUGE not in definitions:
            definitions.append(OID_COUNTER_AS_GAUGE)
        if usage.type == "count" and record.is_gauge and OID_GAUGE_AS_COUNTER not in definitions:
            definitions.append(OID_GAUGE_AS_COUNTER)
    return definitions


def _check_oids(context: RuleContext, usage: str) -> List[Finding]:
    if not context.enabled(TOGGLE) or context.store is None:
        return []
    if context.manifest.datasource.kind is not DatasourceKind.SNMP:
        return []

    occurrences = [item for item in find_oid_occurrences(context.text) if item.usage == usage]
    if not occurrences:
        return []

    valid = [item.oid for item in occurrences if is_valid_oid_syntax(item.oid)]
    keys = [_lookup_key(oid) for oid in valid]
    records: Dict[str, OidRecord] = dict(zip(keys, context.store.lookup_many(keys)))

    usages_by_oid: Dict[str, List[MetricUsage]] = {}
    if usage == METRICS:
        for metric in metrics_from_datasource(context.manifest):
            if metric.value.strip().startswith("oid:"):
                usages_by_oid.setdefault(oid_from_metric_value(metric.value), []).append(metric)

    findings: List[Finding] = []
    for occurrence in occurrences:
        definitions: List[FindingDefinition] = []
        if not is_valid_oid_syntax(occurrence.oid):
            definitions.append(OID_SYNTAX_INVALID)
        else:
            record = records[_lookup_key(occurrence.oid)]
            if not record.exists:
                definitions.append(OID_DOES_NOT_EXIST)
            else:
                if usage == METRICS:
                    if not record.is_readable:
                        definitions.append(OID_NOT_READABLE)
                    if record.is_text:
                        definitions.append(OID_STRING_AS_METRIC)
                    definitions.extend(
                        _type_findings(context, occurrence, record, usages_by_oid.get(occurrence.oid, []))
                    )
                table_definition = _table_finding(context, occurrence)
                if table_definition is not None:
                    definitions.append(table_definition)
        for definition in definitions:
            findings.append(make_finding(context.document, occurrence.start, occurrence.end, definition))

    if findings:
        LOGGER.debug(
            "OID findings",
            extra={"rule": usage, "extra_fields": {"count": len(findings), "occurrences": len(occurrences)}},
        )
    return findings


def check_metric_oids(context: RuleContext) -> List[Finding]:
    """Validate OIDs used as SNMP metric values."""
    return _check_oids(context, METRICS)


def check_dimension_oids(context: RuleContext) -> List[Finding]:
    """Validate OIDs used as SNMP dimension values."""
    return _check_oids(context, DIMENSIONS)
