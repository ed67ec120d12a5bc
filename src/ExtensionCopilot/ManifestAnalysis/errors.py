"""Exception hierarchy shared across manifest parsing, OID lookups, and diagnostics.

Manifest analysis spans YAML parsing, MIB ingestion, remote OID lookups, and
rule evaluation. None of these failures is fatal to an editing session: each
component catches the category it owns at its seam (the manifest cache keeps
the previous model, the reference store caches an empty record, the engine
isolates a failing rule). The hierarchy lets those seams react to high-level
categories while tests can still assert on the specific subclass.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "ManifestAnalysisError",
    "ManifestParseError",
    "MibParseError",
    "LookupFailure",
    "UserConfigError",
]


class ManifestAnalysisError(RuntimeError):
    """Base exception for manifest analysis failures."""


class ManifestParseError(ManifestAnalysisError):
    """Raised when manifest text is not valid YAML or has no mapping at its root."""

    def __init__(self, message: str, *, line: Optional[int] = None) -> None:
        super().__init__(message)
        self.line = line


class MibParseError(ManifestAnalysisError):
    """Raised when a MIB definition file fails strict parsing."""

    def __init__(self, message: str, *, source: Optional[str] = None) -> None:
        super().__init__(message)
        self.source = source


class LookupFailure(ManifestAnalysisError):
    """Raised when the remote OID repository cannot produce a usable record."""

    def __init__(
        self,
        message: str,
        *,
        oid: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.oid = oid
        self.status_code = status_code


class UserConfigError(ManifestAnalysisError):
    """Raised when CLI arguments or YAML configuration inputs are invalid."""

