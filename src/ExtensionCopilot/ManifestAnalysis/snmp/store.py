# === NAVMAP v1 ===
# {
#   "module": "ExtensionCopilot.ManifestAnalysis.snmp.store",
#   "purpose": "Session-scoped OID reference store with local MIB data and online fallback",
#   "sections": [
#     {"id": "lookups", "name": "Single and bulk lookups", "anchor": "LKP", "kind": "api"},
#     {"id": "mib-files", "name": "MIB file loading", "anchor": "MIB", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Identifier reference store.

Resolution order for one identifier: session cache, local MIB database (by
dotted path, or by object name when the identifier looks symbolic), then the
online repository for dotted paths. Whatever comes back, including a negative
record for failures, is cached for the rest of the session; :meth:`clear`
is the explicit way to retry.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ...concurrency import create_executor
from .mib import BUNDLED_DEFINITIONS_DIR, MibDatabase
from .records import OidRecord, RecordSource, is_dotted_path, looks_symbolic, normalize_key
from .remote import OidRepositoryClient

__all__ = ["IdentifierReferenceStore", "discover_user_definitions"]

LOGGER = logging.getLogger("ExtensionCopilot.ManifestAnalysis.snmp.store")

USER_DEFINITIONS_DIRNAME = "snmp"


def discover_user_definitions(root: Path) -> List[Path]:
    """Return MIB files found in any ``snmp`` directory below ``root``.

    Hidden directories are skipped. Results are sorted for stable load order.
    """

    root = Path(root)
    if not root.is_dir():
        return []
    found: List[Path] = []
    for path in root.rglob("*"):
        relative = path.relative_to(root).parts
        if any(part.startswith(".") for part in relative):
            continue
        if path.is_file() and USER_DEFINITIONS_DIRNAME in relative[:-1]:
            found.append(path)
    return sorted(found)


class IdentifierReferenceStore:
    """Memoized OID metadata lookups for one analysis session.

    Args:
        database: Local MIB database; a new empty one by default.
        remote: Online repository client; ``None`` disables online lookups.
        offline: Never contact ``remote`` even when configured.
        max_workers: Upper bound on concurrent lookups in :meth:`lookup_many`.
    """

    def __init__(
        self,
        *,
        database: Optional[MibDatabase] = None,
        remote: Optional[OidRepositoryClient] = None,
        offline: bool = False,
        max_workers: int = 8,
    ) -> None:
        self._database = database or MibDatabase()
        self._remote = remote
        self._offline = offline
        self._max_workers = max(1, max_workers)
        self._lock = threading.Lock()
        self._cache: Dict[str, OidRecord] = {}
        self._inflight: Dict[str, Future] = {}
        self._loaded_files: Set[Tuple[str, str]] = set()

    @property
    def database(self) -> MibDatabase:
        return self._database

    @property
    def offline(self) -> bool:
        return self._offline or self._remote is None

    # --- Single and bulk lookups ---------------------------------------------------

    def get(self, identifier: str) -> Optional[OidRecord]:
        """Return the cached record of ``identifier`` without resolving it."""

        with self._lock:
            return self._cache.get(normalize_key(identifier))

    def lookup_one(self, identifier: str) -> OidRecord:
        """Resolve ``identifier`` once per session.

        Concurrent callers asking for the same key wait for a single
        resolution. Failures are cached as negative records.
        """

        key = normalize_key(identifier)
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                return cached
            future = self._inflight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._inflight[key] = future
        if not owner:
            return future.result()

        try:
            record = self._resolve(key)
        except Exception:
            LOGGER.exception("OID resolution failed", extra={"oid": key})
            record = OidRecord.empty(key)
        with self._lock:
            self._cache[key] = record
            self._inflight.pop(key, None)
        future.set_result(record)
        if record.source == RecordSource.NONE:
            LOGGER.debug("cached negative OID record", extra={"oid": key})
        return record

    def lookup_many(self, identifiers: Sequence[str]) -> List[OidRecord]:
        """Resolve ``identifiers`` concurrently.

        Returns:
            One record per input, positionally aligned; duplicate inputs are
            resolved once and share the record.
        """

        keys = [normalize_key(identifier) for identifier in identifiers]
        unique = list(dict.fromkeys(keys))
        if not unique:
            return []
        executor, needs_shutdown = create_executor(
            min(self._max_workers, len(unique)), thread_name_prefix="extcopilot-oid"
        )
        try:
            if executor is None:
                resolved = {key: self.lookup_one(key) for key in unique}
            else:
                resolved = dict(zip(unique, executor.map(self.lookup_one, unique)))
        finally:
            if needs_shutdown and executor is not None:
                executor.shutdown(wait=True)
        return [resolved[key] for key in keys]

    def clear(self) -> None:
        """Drop every cached record, negative ones included."""

        with self._lock:
            self._cache.clear()
        LOGGER.info("OID cache cleared")

    def _resolve(self, key: str) -> OidRecord:
        if not key:
            return OidRecord.empty(key)
        if looks_symbolic(key):
            # names can only be resolved locally
            return self._database.lookup(key) or OidRecord.empty(key)
        if not is_dotted_path(key):
            return OidRecord.empty(key)
        local = self._database.lookup(key)
        if local is not None:
            return local
        if self.offline:
            return OidRecord.empty(key)
        return self._remote.fetch(key)  # type: ignore[union-attr]

    # --- MIB file loading ----------------------------------------------------------

    def load_bundled_definitions(self) -> int:
        """Load the MIB modules shipped with the package."""

        return self.load_user_definitions(sorted(BUNDLED_DEFINITIONS_DIR.glob("*.txt")))

    def load_user_definitions(self, paths: Iterable[Path]) -> int:
        """Load MIB files not loaded before in this session.

        A file counts as loaded when a file with the same base name
        (case-insensitive) or the same path was loaded already. Loading new
        records evicts cached negative records so they resolve again.

        Returns:
            Number of OID records added to the local database.
        """

        added = 0
        for path in paths:
            path = Path(path)
            resolved = str(path.resolve())
            name = path.name.lower()
            with self._lock:
                if any(name == seen or resolved == where for seen, where in self._loaded_files):
                    continue
            try:
                count = self._database.load_file(path)
            except OSError as exc:
                LOGGER.warning(
                    "could not read MIB file",
                    extra={"source": str(path), "extra_fields": {"error": str(exc)}},
                )
                continue
            with self._lock:
                self._loaded_files.add((name, resolved))
            LOGGER.debug("loaded MIB file", extra={"source": str(path), "extra_fields": {"records": count}})
            added += count

        if added:
            with self._lock:
                negatives = [key for key, record in self._cache.items() if record.source == RecordSource.NONE]
                for key in negatives:
                    del self._cache[key]
        return added

    @property
    def loaded_files(self) -> List[str]:
        with self._lock:
            return sorted(where for _, where in self._loaded_files)
