"""Metric key suffix conventions (DEC006, DEC007)."""

from __future__ import annotations

import re
from typing import List, Set, Tuple

from ..findings import COUNT_METRIC_KEY_SUFFIX, GAUGE_METRIC_KEY_SUFFIX, Finding, make_finding
from ..manifest import metrics_from_datasource
from .context import RuleContext

__all__ = ["TOGGLE", "has_count_suffix", "check_metric_keys"]

TOGGLE = "diagnostics.metricKeys"
COUNT_SUFFIXES = (".count", "_count")


def has_count_suffix(key: str) -> bool:
    return key.endswith(COUNT_SUFFIXES)


def _declaration_pattern(key: str) -> "re.Pattern[str]":
    return re.compile(rf'key: "?{re.escape(key)}"?(?=\s|$)', re.MULTILINE)


def check_metric_keys(context: RuleContext) -> List[Finding]:
    """Flag count metrics without a count suffix and gauges that carry one.

    Every textual ``key:`` declaration of an offending key gets its own
    finding spanning just the key.
    """

    if not context.enabled(TOGGLE):
        return []

    text = context.text
    findings: List[Finding] = []
    seen: Set[Tuple[str, str]] = set()
    for metric in metrics_from_datasource(context.manifest):
        if metric.type == "count" and not has_count_suffix(metric.key):
            definition = COUNT_METRIC_KEY_SUFFIX
        elif metric.type == "gauge" and has_count_suffix(metric.key):
            definition = GAUGE_METRIC_KEY_SUFFIX
        else:
            continue
        if (metric.key, metric.type) in seen:
            continue
        seen.add((metric.key, metric.type))

        for match in _declaration_pattern(metric.key).finditer(text):
            start = match.start() + match.group(0).index(metric.key)
            findings.append(make_finding(context.document, start, start + len(metric.key), definition))
    return findings
