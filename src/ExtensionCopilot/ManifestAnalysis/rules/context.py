"""Inputs shared by every diagnostic rule."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..documents import TextDocument
from ..manifest import Manifest
from ..repository import is_restricted_namespace_repository
from ..settings import ConfigurationReader, RepositoryConfiguration
from ..snmp.store import IdentifierReferenceStore

__all__ = ["RuleContext"]


@dataclass(frozen=True)
class RuleContext:
    """One diagnostic run over one document.

    Attributes:
        document: Live text the findings are positioned in.
        manifest: Model read from the cache when the run started; it may be
            older than ``document`` while the text does not parse.
        config: Flat configuration reader consulted for rule toggles.
        store: OID reference store; OID rules do nothing without it.
        workspace_root: Directory checked for the restricted-namespace markers.
        repository: Expected restricted-namespace marker values.
    """

    document: TextDocument
    manifest: Manifest
    config: ConfigurationReader
    store: Optional[IdentifierReferenceStore] = None
    workspace_root: Optional[Path] = None
    repository: RepositoryConfiguration = field(default_factory=RepositoryConfiguration)

    @property
    def text(self) -> str:
        return self.document.text

    def enabled(self, key: str) -> bool:
        """Read a toggle at call time; unknown toggles count as enabled."""
        return bool(self.config.get(key, True))

    def is_restricted_repository(self) -> bool:
        return is_restricted_namespace_repository(self.workspace_root, self.repository)
