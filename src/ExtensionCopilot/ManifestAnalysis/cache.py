# === NAVMAP v1 ===
# {
#   "module": "ExtensionCopilot.ManifestAnalysis.cache",
#   "purpose": "Reactive manifest cache: debounced re-parsing, atomic publishing, auxiliary datasets",
#   "sections": [
#     {"id": "types", "name": "Snapshots and statuses", "anchor": "TYP", "kind": "api"},
#     {"id": "pipeline", "name": "Host events and publishing", "anchor": "PUB", "kind": "api"},
#     {"id": "init", "name": "Initialization", "anchor": "INI", "kind": "api"},
#     {"id": "datasets", "name": "Auxiliary datasets", "anchor": "AUX", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Reactive manifest cache.

Host events for the manifest document push raw text into a single-slot
debouncer. When typing pauses, the text is parsed; a successful parse is
published as a new :class:`ManifestSnapshot` that replaces the previous one
atomically, while a failed parse publishes nothing so consumers keep the last
valid model. Consumers read :attr:`ManifestCache.snapshot` at the time they
need it instead of capturing it when scheduled.
"""

from __future__ import annotations

import enum
import logging
import re
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import unquote, urlparse

from ..concurrency import Debouncer
from .documents import TextDocument
from .errors import ManifestParseError
from .manifest import Manifest, parse_manifest
from .snmp.store import IdentifierReferenceStore, discover_user_definitions

__all__ = [
    "ManifestSnapshot",
    "ValidationState",
    "ValidationStatus",
    "ManifestCache",
    "uri_to_path",
]

LOGGER = logging.getLogger("ExtensionCopilot.ManifestAnalysis.cache")

_SNMP_SECTION = re.compile(r"^snmp:", re.MULTILINE)

Subscriber = Callable[["ManifestSnapshot"], Any]
ParseListener = Callable[[str, bool], Any]


# --- Snapshots and statuses ------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ManifestSnapshot:
    """A published model together with the text it was parsed from."""

    manifest: Manifest
    text: str
    version: int


class ValidationState(str, enum.Enum):
    UNKNOWN = "unknown"
    LOADING = "loading"
    VALID = "valid"
    INVALID = "invalid"


@dataclass(frozen=True, slots=True)
class ValidationStatus:
    status: ValidationState = ValidationState.UNKNOWN
    error: Optional[str] = None


def uri_to_path(uri: str) -> Path:
    """Convert a ``file://`` URI (or a plain path) to a resolved :class:`Path`."""

    if uri.startswith("file:"):
        parsed = urlparse(uri)
        raw = unquote(parsed.path)
        if parsed.netloc:
            raw = f"//{parsed.netloc}{raw}"
        elif re.match(r"^/[A-Za-z]:/", raw):
            raw = raw[1:]
        return Path(raw).resolve()
    return Path(uri).resolve()


class ManifestCache:
    """Holds the last successfully parsed manifest of one workspace.

    Args:
        manifest_path: On-disk location of ``extension.yaml``.
        store: Reference store receiving MIB files when the manifest uses SNMP.
        workspace_root: Directory searched for user MIB files; defaults to
            the manifest's parent directory.
        debounce_seconds: Quiescence window before re-parsing.
        poll_interval: Sleep between checks while :meth:`initialize` waits.
        parser: Text-to-model function.
    """

    def __init__(
        self,
        manifest_path: Path,
        *,
        store: Optional[IdentifierReferenceStore] = None,
        workspace_root: Optional[Path] = None,
        debounce_seconds: float = 0.2,
        poll_interval: float = 0.1,
        parser: Callable[[str], Manifest] = parse_manifest,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        self._manifest_path = Path(manifest_path)
        self._resolved_path = self._manifest_path.resolve()
        self._workspace_root = Path(workspace_root) if workspace_root else self._manifest_path.parent
        self._store = store
        self._poll_interval = poll_interval
        self._parser = parser
        self._lock = threading.Lock()
        self._snapshot: Optional[ManifestSnapshot] = None
        self._version = 0
        self._subscribers: List[Subscriber] = []
        self._parse_listeners: List[ParseListener] = []
        self._query_results: Dict[str, Dict[str, Any]] = {}
        self._statuses: Dict[str, Dict[str, ValidationStatus]] = {}
        self._debouncer = Debouncer(debounce_seconds, self.process_text, name="manifest-parse")

    @property
    def manifest_path(self) -> Path:
        return self._manifest_path

    @property
    def workspace_root(self) -> Path:
        return self._workspace_root

    @property
    def store(self) -> Optional[IdentifierReferenceStore]:
        return self._store

    @property
    def snapshot(self) -> Optional[ManifestSnapshot]:
        with self._lock:
            return self._snapshot

    @property
    def manifest(self) -> Optional[Manifest]:
        """The last published model; ``None`` until the first successful parse."""

        snapshot = self.snapshot
        return snapshot.manifest if snapshot is not None else None

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    @property
    def publish_count(self) -> int:
        """Number of models published so far (every publish bumps :attr:`version`)."""
        return self.version

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for every publish; returns an unsubscribe function."""

        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def add_parse_listener(self, callback: ParseListener) -> Callable[[], None]:
        """Call ``callback(text, published)`` after every processed text.

        Unlike :meth:`subscribe`, listeners also run when the text did not
        parse or did not change, so positions can follow the live text.
        """

        with self._lock:
            self._parse_listeners.append(callback)

        def _remove() -> None:
            with self._lock:
                if callback in self._parse_listeners:
                    self._parse_listeners.remove(callback)

        return _remove

    # --- Host events and publishing ------------------------------------------------

    def is_manifest(self, uri: str) -> bool:
        try:
            return uri_to_path(uri) == self._resolved_path
        except (OSError, ValueError):
            return False

    def on_document_opened(self, document: TextDocument) -> None:
        self._on_document_event(document, "opened")

    def on_document_saved(self, document: TextDocument) -> None:
        self._on_document_event(document, "saved")

    def on_document_changed(self, document: TextDocument) -> None:
        self._on_document_event(document, "changed")

    def _on_document_event(self, document: TextDocument, event: str) -> None:
        if not self.is_manifest(document.uri):
            return
        LOGGER.debug("manifest %s", event, extra={"uri": document.uri})
        self.push_text(document.text)

    def push_text(self, text: str) -> None:
        """Schedule ``text`` for parsing after the quiescence window."""
        self._debouncer.submit(text)

    def flush(self) -> bool:
        """Process pending text now; ``True`` when something was pending."""
        return self._debouncer.flush()

    def process_text(self, text: str) -> bool:
        """Parse ``text`` immediately and publish it when valid and new.

        Returns:
            ``True`` when a new snapshot was published.
        """

        published = self._parse_and_publish(text)
        with self._lock:
            listeners = list(self._parse_listeners)
        for callback in listeners:
            try:
                callback(text, published)
            except Exception:
                LOGGER.exception("parse listener failed", extra={"version": self.version})
        return published

    def _parse_and_publish(self, text: str) -> bool:
        with self._lock:
            if self._snapshot is not None and self._snapshot.text == text:
                return False
        try:
            manifest = self._parser(text)
        except ManifestParseError as exc:
            LOGGER.debug(
                "manifest did not parse, keeping previous model",
                extra={"extra_fields": {"error": str(exc), "line": exc.line}},
            )
            return False

        with self._lock:
            if self._snapshot is not None and self._snapshot.text == text:
                return False
            self._version += 1
            snapshot = ManifestSnapshot(manifest, text, self._version)
            self._snapshot = snapshot
            subscribers = list(self._subscribers)
        LOGGER.debug("manifest published", extra={"version": snapshot.version})

        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception:
                LOGGER.exception("manifest subscriber failed", extra={"version": snapshot.version})
        return True

    def read_from_disk(self) -> Optional[str]:
        try:
            return self._manifest_path.read_text(encoding="utf-8")
        except OSError as exc:
            LOGGER.debug(
                "manifest not readable",
                extra={"extra_fields": {"path": str(self._manifest_path), "error": str(exc)}},
            )
            return None

    def repush(self) -> bool:
        """Re-read the manifest from disk and process it without debouncing."""

        self._debouncer.cancel()
        text = self.read_from_disk()
        if text is None:
            return False
        return self.process_text(text)

    # --- Initialization --------------------------------------------------------------

    def initialize(self, timeout: Optional[float] = None) -> Manifest:
        """Process the on-disk manifest and wait until a model is published.

        When the initial content declares an ``snmp:`` section, the bundled
        MIB files and the workspace's MIB files are loaded into the store.

        Args:
            timeout: Seconds to wait; ``None`` waits for as long as it takes.

        Returns:
            The first published manifest.

        Raises:
            TimeoutError: If ``timeout`` elapses before any model is published.
        """

        initial = self.read_from_disk()
        if initial is not None:
            if self._store is not None and _SNMP_SECTION.search(initial):
                self.load_mib_files()
            self.process_text(initial)

        deadline = time.monotonic() + timeout if timeout is not None else None
        while True:
            manifest = self.manifest
            if manifest is not None:
                return manifest
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError(
                    f"manifest {self._manifest_path} did not parse within {timeout} seconds"
                )
            time.sleep(self._poll_interval)

    def load_mib_files(self) -> int:
        """Load bundled and workspace MIB files into the store."""

        if self._store is None:
            return 0
        added = self._store.load_bundled_definitions()
        added += self._store.load_user_definitions(discover_user_definitions(self._workspace_root))
        LOGGER.info("MIB files loaded", extra={"extra_fields": {"records": added}})
        return added

    def close(self) -> None:
        self._debouncer.cancel()

    # --- Auxiliary datasets ----------------------------------------------------------

    def set_query_result(self, namespace: str, query: str, result: Any) -> None:
        with self._lock:
            self._query_results.setdefault(namespace, {})[query.strip()] = result

    def get_query_result(self, namespace: str, query: str) -> Optional[Any]:
        with self._lock:
            return self._query_results.get(namespace, {}).get(query.strip())

    def query_results(self, namespace: str) -> Dict[str, Any]:
        with self._lock:
            return dict(self._query_results.get(namespace, {}))

    def set_validation_status(self, namespace: str, key: str, status: ValidationStatus) -> None:
        with self._lock:
            self._statuses.setdefault(namespace, {})[key.strip()] = status

    def get_validation_status(self, namespace: str, key: str) -> ValidationStatus:
        with self._lock:
            return self._statuses.get(namespace, {}).get(key.strip(), ValidationStatus())

    def validation_statuses(self, namespace: str) -> Dict[str, ValidationStatus]:
        with self._lock:
            return dict(self._statuses.get(namespace, {}))
