# === NAVMAP v1 ===
# {
#   "module": "ExtensionCopilot.ManifestAnalysis.engine",
#   "purpose": "Run diagnostic rules over the manifest and publish findings per document",
#   "sections": [
#     {"id": "run", "name": "Rule execution", "anchor": "RUN", "kind": "api"},
#     {"id": "publish", "name": "Publishing and build gate", "anchor": "PUB", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Diagnostic rule engine.

Rules are independent: every enabled rule runs on every cycle and a rule that
raises is logged with its traceback and contributes nothing. Results replace
the document's previous findings in full. Because rule runs can outlast an
edit, :meth:`DiagnosticEngine.provide_diagnostics` remembers the manifest
version it started from and drops its results when a newer model was
published in the meantime.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from .cache import ManifestCache
from .documents import TextDocument
from .findings import Finding, FindingCollection
from .manifest import Manifest
from .rules import RULES, Rule, RuleContext
from .settings import ConfigurationReader, RepositoryConfiguration
from .snmp.store import IdentifierReferenceStore

__all__ = ["GLOBAL_TOGGLE", "DiagnosticEngine"]

LOGGER = logging.getLogger("ExtensionCopilot.ManifestAnalysis.engine")

GLOBAL_TOGGLE = "diagnostics"


class DiagnosticEngine:
    """Evaluates the rule registry and owns the per-document findings.

    Args:
        cache: Source of the current manifest model and its version.
        config: Flat configuration reader, consulted on every run.
        store: OID reference store handed to the OID rules.
        workspace_root: Directory checked for restricted-namespace markers.
        repository: Expected restricted-namespace marker values.
        collection: Finding storage; a fresh one by default.
        rules: Rule registry; :data:`~ExtensionCopilot.ManifestAnalysis.rules.RULES` by default.
    """

    def __init__(
        self,
        cache: ManifestCache,
        config: ConfigurationReader,
        *,
        store: Optional[IdentifierReferenceStore] = None,
        workspace_root: Optional[Path] = None,
        repository: Optional[RepositoryConfiguration] = None,
        collection: Optional[FindingCollection] = None,
        rules: Optional[Mapping[str, Rule]] = None,
    ) -> None:
        self._cache = cache
        self._config = config
        self._store = store
        self._workspace_root = workspace_root
        self._repository = repository or RepositoryConfiguration()
        self._collection = collection or FindingCollection()
        self._rules: Dict[str, Rule] = dict(rules if rules is not None else RULES)

    @property
    def collection(self) -> FindingCollection:
        return self._collection

    @property
    def rule_names(self) -> List[str]:
        return list(self._rules)

    # --- Rule execution --------------------------------------------------------------

    def run_diagnostics(self, document: TextDocument, manifest: Manifest) -> List[Finding]:
        """Evaluate every rule against ``document`` and ``manifest``.

        Returns:
            Findings of all rules concatenated in registry order.
        """

        context = RuleContext(
            document=document,
            manifest=manifest,
            config=self._config,
            store=self._store,
            workspace_root=self._workspace_root,
            repository=self._repository,
        )
        findings: List[Finding] = []
        for name, rule in self._rules.items():
            try:
                findings.extend(rule(context))
            except Exception:
                LOGGER.exception(
                    "diagnostic rule %r failed",
                    name,
                    extra={"rule": name, "uri": document.uri},
                )
        return findings

    # --- Publishing and build gate ---------------------------------------------------

    def provide_diagnostics(self, document: TextDocument) -> Optional[List[Finding]]:
        """Recompute and publish the findings of ``document``.

        The manifest and its version are read when the run starts, not when
        it was scheduled.

        Returns:
            The published findings, or ``None`` when the run went stale
            because a newer manifest was published while it ran.
        """

        if not self._config.get(GLOBAL_TOGGLE, True):
            self._collection.set(document.uri, [])
            return []

        snapshot = self._cache.snapshot
        manifest = snapshot.manifest if snapshot is not None else Manifest()
        version = snapshot.version if snapshot is not None else 0

        findings = self.run_diagnostics(document, manifest)
        if self._cache.version != version:
            LOGGER.debug(
                "discarding stale diagnostics",
                extra={"uri": document.uri, "version": version},
            )
            return None
        self._collection.set(document.uri, findings)
        LOGGER.debug(
            "diagnostics published",
            extra={"uri": document.uri, "version": version, "extra_fields": {"count": len(findings)}},
        )
        return findings

    def get_diagnostics(self, uri: str) -> List[Finding]:
        return self._collection.get(uri)

    def clear(self, uri: str) -> None:
        self._collection.delete(uri)

    def is_valid_for_building(self, uri: Optional[str]) -> bool:
        """Return ``True`` when the document has no error-severity findings."""

        if uri is None:
            return False
        status = not self._collection.has_errors(uri)
        LOGGER.info(
            "build check: findings clear" if status else "build check: fix errors first",
            extra={"uri": uri, "extra_fields": {"valid": status}},
        )
        return status
