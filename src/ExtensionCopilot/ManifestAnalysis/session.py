"""Analysis session: owns the settings, store, cache, and engine of one workspace.

Nothing here is module-level state. A host creates one :class:`AnalysisSession`
per workspace, forwards its document events, and closes it on shutdown::

    with AnalysisSession(Path("extension/extension.yaml")) as session:
        session.initialize(timeout=5)
        findings = session.diagnostics()
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Mapping, Optional

import httpx

from .cache import ManifestCache
from .documents import TextDocument
from .engine import DiagnosticEngine
from .findings import Finding
from .logging_utils import setup_logging
from .manifest import Manifest
from .settings import AnalysisSettings, FlatConfiguration
from .snmp.remote import OidRepositoryClient, build_http_client
from .snmp.store import IdentifierReferenceStore

__all__ = ["AnalysisSession"]

LOGGER = logging.getLogger("ExtensionCopilot.ManifestAnalysis.session")


class AnalysisSession:
    """Explicit context object wiring the analysis components together.

    Args:
        manifest_path: Location of ``extension.yaml``.
        settings: Session settings; defaults apply when omitted.
        workspace_root: Workspace directory; defaults to the manifest's parent.
        transport: Optional ``httpx`` transport for the OID repository client.
        configure_logging: Install the console and file log handlers.
        auto_diagnostics: Re-run diagnostics after every debounced re-parse,
            whether or not the text parsed.
    """

    def __init__(
        self,
        manifest_path: Path,
        settings: Optional[AnalysisSettings] = None,
        *,
        workspace_root: Optional[Path] = None,
        transport: Optional[httpx.BaseTransport] = None,
        configure_logging: bool = False,
        auto_diagnostics: bool = True,
    ) -> None:
        self.settings = settings or AnalysisSettings()
        if configure_logging:
            log_cfg = self.settings.logging
            setup_logging(
                level=log_cfg.level,
                retention_days=log_cfg.retention_days,
                max_log_size_mb=log_cfg.max_log_size_mb,
                log_dir=log_cfg.log_dir,
            )

        self.manifest_path = Path(manifest_path)
        self.workspace_root = Path(workspace_root) if workspace_root else self.manifest_path.parent
        self.manifest_uri = self.manifest_path.resolve().as_uri()
        self.config = FlatConfiguration.from_settings(self.settings)

        lookup = self.settings.lookup
        self._remote: Optional[OidRepositoryClient] = None
        if not lookup.offline:
            self._remote = OidRepositoryClient(build_http_client(lookup, transport=transport), lookup.base_url)
        self.store = IdentifierReferenceStore(
            remote=self._remote,
            offline=lookup.offline,
            max_workers=lookup.max_concurrent_lookups,
        )
        self.cache = ManifestCache(
            self.manifest_path,
            store=self.store,
            workspace_root=self.workspace_root,
            debounce_seconds=self.settings.cache.debounce_seconds,
            poll_interval=self.settings.cache.poll_interval_seconds,
        )
        self.engine = DiagnosticEngine(
            self.cache,
            self.config,
            store=self.store,
            workspace_root=self.workspace_root,
            repository=self.settings.repository,
        )
        self._live_document: Optional[TextDocument] = None
        self._remove_listener = self.cache.add_parse_listener(self._on_processed) if auto_diagnostics else None
        self._closed = False
        LOGGER.info(
            "analysis session started",
            extra={
                "uri": self.manifest_uri,
                "extra_fields": {"offline": self.store.offline, "workspace": str(self.workspace_root)},
            },
        )

    def __enter__(self) -> "AnalysisSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def manifest(self) -> Optional[Manifest]:
        return self.cache.manifest

    # --- Host events -------------------------------------------------------------------

    def _remember(self, document: TextDocument) -> None:
        if self.cache.is_manifest(document.uri):
            self._live_document = document

    def on_document_opened(self, document: TextDocument) -> None:
        self._remember(document)
        self.cache.on_document_opened(document)

    def on_document_saved(self, document: TextDocument) -> None:
        self._remember(document)
        self.cache.on_document_saved(document)

    def on_document_changed(self, document: TextDocument) -> None:
        self._remember(document)
        self.cache.on_document_changed(document)

    def on_configuration_changed(self, values: Mapping[str, Any]) -> Optional[List[Finding]]:
        """Apply new flat option values and re-run diagnostics for the manifest."""

        self.config.update(values)
        if self.cache.snapshot is None:
            return None
        return self.engine.provide_diagnostics(self._current_document())

    def _current_document(self) -> TextDocument:
        if self._live_document is not None:
            return self._live_document
        snapshot = self.cache.snapshot
        return TextDocument(self.manifest_uri, snapshot.text if snapshot is not None else "")

    def on_active_editor_changed(self, document: Optional[TextDocument]) -> Optional[List[Finding]]:
        """Re-run diagnostics when the manifest becomes the focused document.

        Returns:
            The published findings, or ``None`` when ``document`` is not the
            manifest or the run went stale.
        """

        if document is None or not self.cache.is_manifest(document.uri):
            return None
        self._remember(document)
        return self.engine.provide_diagnostics(document)

    def _on_processed(self, text: str, published: bool) -> None:
        # findings are positioned in the processed text even when it did not parse
        document = self._live_document
        if document is None or document.text != text:
            document = TextDocument(self.manifest_uri, text)
        self.engine.provide_diagnostics(document)

    # --- Operations --------------------------------------------------------------------

    def initialize(self, timeout: Optional[float] = None) -> Manifest:
        """Load the on-disk manifest (and MIB files for SNMP extensions)."""
        return self.cache.initialize(timeout)

    def diagnostics(self) -> List[Finding]:
        """Compute findings for the current manifest text and return them."""

        findings = self.engine.provide_diagnostics(self._current_document())
        if findings is None:
            return self.engine.get_diagnostics(self.manifest_uri)
        return findings

    def is_valid_for_building(self) -> bool:
        return self.engine.is_valid_for_building(self.manifest_uri)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._remove_listener is not None:
            self._remove_listener()
        self.cache.close()
        if self._remote is not None:
            self._remote.close()
        LOGGER.debug("analysis session closed", extra={"uri": self.manifest_uri})
