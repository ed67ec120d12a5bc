# === NAVMAP v1 ===
# {
#   "module": "ExtensionCopilot.ManifestAnalysis.snmp.mib",
#   "purpose": "MIB definition parsing (strict and permissive) and the local OID database",
#   "sections": [
#     {"id": "definitions", "name": "Parsed definitions", "anchor": "DEF", "kind": "api"},
#     {"id": "strict", "name": "Strict parser", "anchor": "STR", "kind": "api"},
#     {"id": "permissive", "name": "Permissive scanner", "anchor": "PER", "kind": "api"},
#     {"id": "store", "name": "Local OID database", "anchor": "MIB", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Reading SNMP MIB modules into a local OID database.

Only the subset of SMI needed for diagnostics is understood: ``OBJECT
IDENTIFIER`` assignments, the OID-bearing macros (``OBJECT-TYPE``,
``MODULE-IDENTITY``...) and, for ``OBJECT-TYPE``, the ``SYNTAX``,
``MAX-ACCESS``/``ACCESS``, ``STATUS``, ``DESCRIPTION`` and ``INDEX`` clauses.
Files that do not satisfy :func:`parse_mib` are read again with
:func:`scan_mib`, which extracts whatever single-arc definitions it recognises.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from ..errors import MibParseError
from .records import OidRecord, RecordSource

__all__ = [
    "MibDefinition",
    "MibModule",
    "parse_mib",
    "scan_mib",
    "MibDatabase",
    "BUNDLED_DEFINITIONS_DIR",
]

LOGGER = logging.getLogger("ExtensionCopilot.ManifestAnalysis.snmp.mib")

BUNDLED_DEFINITIONS_DIR = Path(__file__).parent / "definitions"

_ROOTS = {"ccitt": "0", "iso": "1", "joint-iso-ccitt": "2"}
_OID_MACROS = (
    "OBJECT-TYPE",
    "OBJECT-IDENTITY",
    "MODULE-IDENTITY",
    "NOTIFICATION-TYPE",
    "OBJECT-GROUP",
    "NOTIFICATION-GROUP",
    "MODULE-COMPLIANCE",
    "AGENT-CAPABILITIES",
)

_COMMENT = re.compile(r"--.*?(?:--|$)", re.MULTILINE)
_HEADER = re.compile(r"^\s*(?P<module>[A-Za-z][\w-]*)\s+DEFINITIONS\s*::=\s*BEGIN\b", re.DOTALL)
_TRAILER = re.compile(r"\bEND\s*$")
_MACRO_DEFINITION = re.compile(r"\b[\w-]+\s+MACRO\s*::=\s*BEGIN\b.*?\bEND\b", re.DOTALL)
_IMPORTS = re.compile(r"\bIMPORTS\b.*?;", re.DOTALL)
_STRINGS = re.compile(r'"[^"]*"')

_MACRO_NAMES = "|".join(_OID_MACROS)
# an assignment body never spans another assignment or another OID macro
_BODY = r"(?P<body>(?:(?!::=|\b(?:" + _MACRO_NAMES + r")\b).)*?)"
_ASSIGNMENT = re.compile(
    r"(?<![\w-])(?P<name>[a-z][\w-]*)\s+"
    r"(?P<kind>OBJECT\s+IDENTIFIER|" + _MACRO_NAMES + r")\b"
    + _BODY
    + r"::=\s*\{(?P<value>[^}]*)\}",
    re.DOTALL,
)
_SIMPLE_ASSIGNMENT = re.compile(
    r"(?<![\w-])(?P<name>[a-z][\w-]*)\s+(?P<kind>OBJECT\s+IDENTIFIER|OBJECT-TYPE)\b"
    + _BODY
    + r"::=\s*\{\s*(?P<parent>[a-zA-Z][\w-]*)\s+(?P<arc>\d+)\s*\}",
    re.DOTALL,
)
_ARC = re.compile(r"^(?:(?P<name>[a-zA-Z][\w-]*)\((?P<number>\d+)\)|(?P<bare>\d+)|(?P<ref>[a-zA-Z][\w-]*))$")

_CLAUSE_END = r"(?=\b(?:UNITS|MAX-ACCESS|MIN-ACCESS|ACCESS|STATUS|DESCRIPTION|REFERENCE|INDEX|AUGMENTS|DEFVAL)\b|$)"
_SYNTAX = re.compile(r"\bSYNTAX\s+(?P<value>.*?)\s*" + _CLAUSE_END, re.DOTALL)
_ACCESS = re.compile(r"\b(?:MAX-ACCESS|ACCESS)\s+(?P<value>[\w-]+)")
_STATUS = re.compile(r"\bSTATUS\s+(?P<value>[\w-]+)")
_DESCRIPTION = re.compile(r'\bDESCRIPTION\s+"(?P<value>[^"]*)"', re.DOTALL)
_INDEX = re.compile(r"\bINDEX\s*\{(?P<value>[^}]*)\}")


# --- Parsed definitions ----------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MibDefinition:
    """One OID-bearing assignment of a MIB module.

    ``parent`` is the first component of the value (a symbol or a number) and
    ``arcs`` the remaining sub-identifiers, each optionally named.
    """

    name: str
    kind: str
    parent: str
    arcs: Tuple[Tuple[Optional[str], int], ...]
    syntax: Optional[str] = None
    max_access: Optional[str] = None
    status: Optional[str] = None
    description: Optional[str] = None
    index: Optional[str] = None


@dataclass(slots=True)
class MibModule:
    name: str
    definitions: List[MibDefinition] = field(default_factory=list)


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _strip_comments(text: str) -> str:
    # comments inside quoted descriptions are kept verbatim
    pieces: List[str] = []
    cursor = 0
    for match in _STRINGS.finditer(text):
        pieces.append(_COMMENT.sub("", text[cursor : match.start()]))
        pieces.append(match.group(0))
        cursor = match.end()
    pieces.append(_COMMENT.sub("", text[cursor:]))
    return "".join(pieces)


def _clauses(kind: str, body: str) -> Dict[str, Optional[str]]:
    if kind != "OBJECT-TYPE":
        description = _DESCRIPTION.search(body)
        status = _STATUS.search(body)
        return {
            "description": _collapse(description.group("value")) if description else None,
            "status": status.group("value") if status else None,
        }
    syntax = _SYNTAX.search(body)
    access = _ACCESS.search(body)
    status = _STATUS.search(body)
    description = _DESCRIPTION.search(body)
    index = _INDEX.search(body)
    return {
        "syntax": _collapse(syntax.group("value")) if syntax else None,
        "max_access": access.group("value") if access else None,
        "status": status.group("value") if status else None,
        "description": _collapse(description.group("value")) if description else None,
        "index": _collapse(index.group("value")) if index else None,
    }


def _parse_value(value: str) -> Optional[Tuple[str, Tuple[Tuple[Optional[str], int], ...]]]:
    components = value.split()
    if not components:
        return None
    first = _ARC.match(components[0])
    if first is None:
        return None
    if first.group("ref"):
        parent = first.group("ref")
    elif first.group("bare"):
        parent = first.group("bare")
    else:
        # ``iso(1)`` style first arc names the root itself
        parent = first.group("number")
    arcs: List[Tuple[Optional[str], int]] = []
    for component in components[1:]:
        match = _ARC.match(component)
        if match is None or match.group("ref"):
            return None
        if match.group("bare"):
            arcs.append((None, int(match.group("bare"))))
        else:
            arcs.append((match.group("name"), int(match.group("number"))))
    return parent, tuple(arcs)


# --- Strict parser ------------------------------------------------------------------------


def parse_mib(text: str, source: Optional[str] = None) -> MibModule:
    """Parse one MIB module, rejecting anything outside the understood grammar.

    Args:
        text: Module source.
        source: Label used in error messages (usually the file name).

    Returns:
        The module name and its OID-bearing definitions in source order.

    Raises:
        MibParseError: If the ``DEFINITIONS ::= BEGIN``/``END`` frame is
            missing, a value is not an OID component list, or an
            ``OBJECT-TYPE`` lacks its ``SYNTAX`` clause.
    """

    cleaned = _strip_comments(text)
    header = _HEADER.match(cleaned)
    if header is None:
        raise MibParseError("missing 'DEFINITIONS ::= BEGIN' header", source=source)
    if _TRAILER.search(cleaned) is None:
        raise MibParseError("missing closing 'END'", source=source)
    if cleaned.count("{") != cleaned.count("}"):
        raise MibParseError("unbalanced braces", source=source)

    body = _MACRO_DEFINITION.sub("", cleaned[header.end() :])
    body = _IMPORTS.sub("", body)
    module = MibModule(header.group("module"))
    for match in _ASSIGNMENT.finditer(body):
        name = match.group("name")
        kind = _collapse(match.group("kind"))
        parsed = _parse_value(match.group("value"))
        if parsed is None:
            raise MibParseError(
                f"cannot read OID value of {name!r}: {{{_collapse(match.group('value'))}}}",
                source=source,
            )
        clauses = _clauses(kind, match.group("body"))
        if kind == "OBJECT-TYPE" and not clauses.get("syntax"):
            raise MibParseError(f"OBJECT-TYPE {name!r} has no SYNTAX clause", source=source)
        parent, arcs = parsed
        module.definitions.append(MibDefinition(name, kind, parent, arcs, **clauses))
    return module


# --- Permissive scanner ------------------------------------------------------------------


def scan_mib(text: str) -> List[MibDefinition]:
    """Extract ``name ... ::= { parent n }`` definitions from arbitrary text.

    Never raises; anything that does not look like a single-arc assignment is
    skipped.
    """

    cleaned = _IMPORTS.sub("", _MACRO_DEFINITION.sub("", _strip_comments(text)))
    definitions: List[MibDefinition] = []
    for match in _SIMPLE_ASSIGNMENT.finditer(cleaned):
        kind = _collapse(match.group("kind"))
        clauses = _clauses(kind, match.group("body"))
        definitions.append(
            MibDefinition(
                match.group("name"),
                kind,
                match.group("parent"),
                ((None, int(match.group("arc"))),),
                **clauses,
            )
        )
    return definitions


# --- Local OID database ------------------------------------------------------------------


class MibDatabase:
    """Symbol table and OID records built from any number of MIB modules.

    Definitions whose parent symbol is not known yet are kept pending and
    resolved when a later module supplies the symbol, so modules may be loaded
    in any order.

    Examples:
        >>> db = MibDatabase()
        >>> db.load_text(
        ...     'DEMO DEFINITIONS ::= BEGIN\\n'
        ...     'demo OBJECT IDENTIFIER ::= { iso 3 }\\n'
        ...     'demoCount OBJECT-TYPE SYNTAX Counter32 MAX-ACCESS read-only '
        ...     'STATUS current DESCRIPTION "x" ::= { demo 1 }\\nEND\\n'
        ... )
        1
        >>> db.lookup("1.3.1").syntax
        'Counter32'
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._symbols: Dict[str, str] = dict(_ROOTS)
        self._records: Dict[str, OidRecord] = {}
        self._names: Dict[str, str] = {}
        self._pending: List[MibDefinition] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def lookup(self, key: str) -> Optional[OidRecord]:
        """Return the record for a dotted path or an object name."""

        with self._lock:
            record = self._records.get(key)
            if record is not None:
                return record
            path = self._names.get(key)
            return self._records.get(path) if path is not None else None

    def resolve_symbol(self, name: str) -> Optional[str]:
        with self._lock:
            return self._symbols.get(name)

    def add_definitions(self, definitions: Iterable[MibDefinition]) -> int:
        """Resolve ``definitions`` (and anything pending) and return the records added."""

        with self._lock:
            queue = self._pending + list(definitions)
            added = 0
            progress = True
            while queue and progress:
                progress = False
                remaining: List[MibDefinition] = []
                for definition in queue:
                    base = self._resolve_parent(definition.parent)
                    if base is None:
                        remaining.append(definition)
                        continue
                    added += self._register(definition, base)
                    progress = True
                queue = remaining
            self._pending = queue
            if queue:
                LOGGER.debug(
                    "unresolved MIB definitions pending",
                    extra={"extra_fields": {"pending": len(queue)}},
                )
            return added

    def load_text(self, text: str, source: Optional[str] = None) -> int:
        """Load one module, falling back to :func:`scan_mib` when strict parsing fails."""

        try:
            definitions = parse_mib(text, source=source).definitions
        except MibParseError as exc:
            definitions = scan_mib(text)
            LOGGER.warning(
                "MIB file failed strict parsing, scanned permissively",
                extra={
                    "source": source,
                    "extra_fields": {"error": str(exc), "definitions": len(definitions)},
                },
            )
        return self.add_definitions(definitions)

    def load_file(self, path: Path) -> int:
        text = Path(path).read_text(encoding="utf-8", errors="replace")
        return self.load_text(text, source=str(path))

    def _resolve_parent(self, parent: str) -> Optional[str]:
        if parent.isdigit():
            return parent
        return self._symbols.get(parent)

    def _register(self, definition: MibDefinition, base: str) -> int:
        path = base
        for arc_name, number in definition.arcs:
            path = f"{path}.{number}"
            if arc_name:
                self._symbols.setdefault(arc_name, path)
        self._symbols[definition.name] = path
        if definition.kind == "OBJECT IDENTIFIER":
            return 0
        self._names[definition.name] = path
        self._records[path] = OidRecord(
            raw_key=path,
            source=RecordSource.LOCAL,
            object_name=definition.name,
            object_type=definition.kind,
            description=definition.description,
            syntax=definition.syntax,
            max_access=definition.max_access,
            status=definition.status,
            index=definition.index,
        )
        return 1
