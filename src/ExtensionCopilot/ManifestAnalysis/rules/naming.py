"""Extension name checks (DEC001-DEC005)."""

from __future__ import annotations

import re
from typing import List

from ..documents import Position
from ..findings import (
    EXTENSION_NAME_CUSTOM_IN_RESTRICTED_REPO,
    EXTENSION_NAME_INVALID,
    EXTENSION_NAME_MISSING,
    EXTENSION_NAME_NON_CUSTOM,
    EXTENSION_NAME_TOO_LONG,
    Finding,
    FindingDefinition,
)
from .context import RuleContext

__all__ = ["TOGGLE", "NAME_PATTERN", "MAX_NAME_LENGTH", "check_extension_name"]

TOGGLE = "diagnostics.extensionName"
_NAME_BODY = r"(?!\.)(?!.*\.\.)(?!.*\.$)[a-z0-9_.-]+$"
NAME_PATTERN = re.compile(r"^(custom:)*" + _NAME_BODY)
MAX_NAME_LENGTH = 50


def _finding(definition: FindingDefinition, start: Position, end: Position) -> Finding:
    return Finding(definition.code, definition.severity, definition.message, start, end)


def _name_pattern(prefix: str) -> "re.Pattern[str]":
    if prefix == "custom:":
        return NAME_PATTERN
    return re.compile(f"^(?:{re.escape(prefix)})*" + _NAME_BODY)


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def check_extension_name(context: RuleContext) -> List[Finding]:
    """Validate the top-level ``name:`` line of the manifest.

    The name is read from the raw text so findings follow the line the
    author is editing. A missing or empty name is reported at the start of
    the second line; every other finding spans from the name to the end of
    its line.
    """

    if not context.enabled(TOGGLE):
        return []

    lines = context.document.lines()
    line_number = next((index for index, line in enumerate(lines) if line.startswith("name:")), -1)
    if line_number == -1:
        return [_finding(EXTENSION_NAME_MISSING, Position(1, 0), Position(1, 0))]

    line = lines[line_number].rstrip("\r")
    raw = line.split("name:", 1)[1].strip()
    if not raw:
        return [_finding(EXTENSION_NAME_MISSING, Position(line_number, 0), Position(line_number, len(line)))]
    name = _unquote(raw)
    start = Position(line_number, line.index(raw))
    end = Position(line_number, len(line))

    findings: List[Finding] = []
    if len(name) > MAX_NAME_LENGTH:
        findings.append(_finding(EXTENSION_NAME_TOO_LONG, start, end))
    prefix = context.repository.namespace_prefix
    if not _name_pattern(prefix).match(name):
        findings.append(_finding(EXTENSION_NAME_INVALID, start, end))

    is_custom = name.startswith(prefix)
    restricted = context.is_restricted_repository()
    if not is_custom and not restricted:
        findings.append(_finding(EXTENSION_NAME_NON_CUSTOM, start, end))
    if is_custom and restricted:
        findings.append(_finding(EXTENSION_NAME_CUSTOM_IN_RESTRICTED_REPO, start, end))
    return findings
