"""SNMP OID metadata: records, local MIB database, online repository, and the reference store."""

from .mib import MibDatabase, parse_mib, scan_mib
from .records import (
    OidRecord,
    RecordSource,
    is_valid_oid_syntax,
    looks_symbolic,
    oid_from_metric_value,
    parent_oid,
    scalar_ancestor,
    strip_instance_suffix,
    table_ancestor,
)
from .remote import OidRepositoryClient, build_http_client, parse_oid_repository_html
from .store import IdentifierReferenceStore, discover_user_definitions

__all__ = [
    "MibDatabase",
    "parse_mib",
    "scan_mib",
    "OidRecord",
    "RecordSource",
    "is_valid_oid_syntax",
    "looks_symbolic",
    "oid_from_metric_value",
    "parent_oid",
    "scalar_ancestor",
    "strip_instance_suffix",
    "table_ancestor",
    "OidRepositoryClient",
    "build_http_client",
    "parse_oid_repository_html",
    "IdentifierReferenceStore",
    "discover_user_definitions",
]
