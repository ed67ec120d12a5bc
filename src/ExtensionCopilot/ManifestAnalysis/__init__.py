# === NAVMAP v1 ===
# {
#   "module": "ExtensionCopilot.ManifestAnalysis",
#   "purpose": "Package initialization for ExtensionCopilot.ManifestAnalysis",
#   "sections": [
#     {
#       "id": "getattr",
#       "name": "__getattr__",
#       "anchor": "function-getattr",
#       "kind": "function"
#     },
#     {
#       "id": "dir",
#       "name": "__dir__",
#       "anchor": "function-dir",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Public API for extension manifest analysis.

This facade exposes the session object hosts create per workspace, the
reactive manifest cache, the diagnostic engine and its findings, and the OID
reference store. Attributes resolve lazily so importing the package does not
pull in the HTTP client or the CLI stack.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any, Dict

_EXPORTS: Dict[str, str] = {
    "AnalysisSession": ".session",
    "AnalysisSettings": ".settings",
    "FlatConfiguration": ".settings",
    "load_settings": ".settings",
    "ManifestCache": ".cache",
    "ManifestSnapshot": ".cache",
    "ValidationState": ".cache",
    "ValidationStatus": ".cache",
    "DiagnosticEngine": ".engine",
    "Finding": ".findings",
    "FindingCollection": ".findings",
    "Severity": ".findings",
    "CATALOG": ".findings",
    "Manifest": ".manifest",
    "parse_manifest": ".manifest",
    "TextDocument": ".documents",
    "Position": ".documents",
    "IdentifierReferenceStore": ".snmp.store",
    "OidRecord": ".snmp.records",
    "ManifestAnalysisError": ".errors",
    "ManifestParseError": ".errors",
    "setup_logging": ".logging_utils",
}

__all__ = sorted(_EXPORTS)


def __getattr__(name: str) -> Any:
    """Lazily import public names on first access."""

    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
    value = getattr(import_module(module_name, __name__), name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    """Expose lazily-populated attributes in ``dir()`` results."""

    return sorted(set(globals()) | set(__all__))
