"""OID metadata records and the dotted-path arithmetic used by the table checks.

Examples:
    >>> oid_from_metric_value("oid:1.3.6.1.2.1.1.3.0")
    '1.3.6.1.2.1.1.3.0'
    >>> strip_instance_suffix("1.3.6.1.2.1.1.3.0")
    '1.3.6.1.2.1.1.3'
    >>> scalar_ancestor("1.3.6.1.2.1.1.1.0")
    '1.3.6.1.2.1.1'
    >>> table_ancestor("1.3.6.1.2.1.2.2.1.10")
    '1.3.6.1.2.1.2.2'
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

__all__ = [
    "OidRecord",
    "RecordSource",
    "normalize_key",
    "is_valid_oid_syntax",
    "looks_symbolic",
    "is_dotted_path",
    "oid_from_metric_value",
    "strip_instance_suffix",
    "parent_oid",
    "table_ancestor",
    "scalar_ancestor",
]

INSTANCE_SUFFIX = ".0"
_OID_SYNTAX = re.compile(r"^\d[.\d]+\d$|^[\da-zA-Z]+$")
_SYMBOLIC = re.compile(r"^[\da-zA-Z]+$")
_DOTTED = re.compile(r"^\d+(?:\.\d+)+$")
_NOT_READABLE = frozenset({"not-accessible", "accessible-for-notify"})


class RecordSource:
    LOCAL = "local"
    ONLINE = "online"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class OidRecord:
    """Metadata of one OID as found in a MIB file or the online repository.

    A record with ``source == "none"`` is a negative record: the OID could not
    be resolved and every metadata field is ``None``. ``attributes`` keeps every
    clause of an online page by camel-case name, including those without a
    dedicated field.
    """

    raw_key: str
    source: str = RecordSource.NONE
    object_name: Optional[str] = None
    object_type: Optional[str] = None
    description: Optional[str] = None
    syntax: Optional[str] = None
    max_access: Optional[str] = None
    status: Optional[str] = None
    index: Optional[str] = None
    attributes: Tuple[Tuple[str, str], ...] = ()

    def attribute(self, name: str) -> Optional[str]:
        """Return a clause of the record by its camel-case name, e.g. ``units``."""
        for key, value in self.attributes:
            if key == name:
                return value
        return None

    @classmethod
    def empty(cls, raw_key: str) -> "OidRecord":
        return cls(raw_key=raw_key)

    @property
    def exists(self) -> bool:
        return bool(self.object_type)

    @property
    def is_readable(self) -> bool:
        """Return ``True`` unless the max-access clause forbids reads."""
        return (self.max_access or "").strip() not in _NOT_READABLE

    @property
    def is_table(self) -> bool:
        return "SEQUENCE OF" in (self.syntax or "")

    @property
    def is_text(self) -> bool:
        return "string" in (self.syntax or "").lower()

    @property
    def is_counter(self) -> bool:
        return (self.syntax or "").startswith("Counter")

    @property
    def is_gauge(self) -> bool:
        syntax = self.syntax or ""
        return syntax == "Gauge" or syntax.startswith("Gauge") or "integer" in syntax.lower()


def normalize_key(identifier: str) -> str:
    """Cache keys are trimmed and otherwise case-sensitive."""
    return identifier.strip()


def is_valid_oid_syntax(identifier: str) -> bool:
    return bool(_OID_SYNTAX.match(identifier))


def looks_symbolic(identifier: str) -> bool:
    """Return ``True`` for alias-style identifiers such as ``sysDescr``."""
    return bool(_SYMBOLIC.match(identifier)) and not identifier.isdigit()


def is_dotted_path(identifier: str) -> bool:
    return bool(_DOTTED.match(identifier))


def oid_from_metric_value(value: str) -> str:
    """Return the identifier of an ``oid:`` manifest value (unchanged otherwise)."""

    stripped = value.strip()
    if stripped.startswith("oid:"):
        return stripped[4:].strip()
    return stripped


def strip_instance_suffix(oid: str) -> str:
    """Remove a trailing scalar instance suffix (``.0``) if present."""

    if oid.endswith(INSTANCE_SUFFIX) and len(oid) > len(INSTANCE_SUFFIX):
        return oid[: -len(INSTANCE_SUFFIX)]
    return oid


def parent_oid(oid: str) -> str:
    """Drop the last segment of a dotted path; ``""`` when there is none."""

    cut = oid.rfind(".")
    return oid[:cut] if cut > 0 else ""


def table_ancestor(oid: str) -> str:
    """Return the table OID of a columnar object (path minus two segments)."""
    return parent_oid(parent_oid(oid))


def scalar_ancestor(oid: str) -> str:
    """Return the ancestor checked for a scalar instance.

    The instance suffix is removed first, then one more segment, so for every
    dotted ``x`` the result equals ``table_ancestor(x + ".0")``.
    """

    return parent_oid(strip_instance_suffix(oid))
