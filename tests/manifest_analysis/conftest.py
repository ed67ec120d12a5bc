"""Shared fixtures for the manifest analysis suite."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Callable, Iterator, Optional

import pytest

from ExtensionCopilot.ManifestAnalysis.documents import TextDocument
from ExtensionCopilot.ManifestAnalysis.manifest import parse_manifest
from ExtensionCopilot.ManifestAnalysis.rules import RuleContext
from ExtensionCopilot.ManifestAnalysis.settings import FlatConfiguration, RepositoryConfiguration
from ExtensionCopilot.ManifestAnalysis.snmp.mib import MibDatabase
from ExtensionCopilot.ManifestAnalysis.snmp.store import IdentifierReferenceStore

FIXTURES = Path(__file__).resolve().parent / "fixtures"
FIXTURE_MIB = FIXTURES / "FIXTURE-MIB.txt"
SAMPLE_WORKSPACE = FIXTURES / "workspace"

_ENV_VARS = (
    "EXTCOPILOT_DIAGNOSTICS",
    "EXTCOPILOT_OID_REPOSITORY_URL",
    "EXTCOPILOT_OFFLINE",
    "EXTCOPILOT_DEBOUNCE_MS",
    "EXTCOPILOT_LOG_LEVEL",
    "EXTCOPILOT_CONFIG",
)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Keep log files in the test's temporary directory and ignore ambient overrides.

    ``setup_logging`` (called by the CLI) detaches the package logger from the
    root logger; the original state is restored so ``caplog`` keeps working.
    """

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("EXTCOPILOT_LOG_DIR", str(tmp_path / "logs"))

    logger = logging.getLogger("ExtensionCopilot")
    level, propagate = logger.level, logger.propagate
    yield
    for handler in list(logger.handlers):
        if getattr(handler, "_extcopilot_managed", False):
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A writable copy of the sample extension workspace."""

    target = tmp_path / "workspace"
    shutil.copytree(SAMPLE_WORKSPACE, target)
    return target


@pytest.fixture
def bundled_store() -> IdentifierReferenceStore:
    """Offline store holding the bundled MIB modules."""

    store = IdentifierReferenceStore(offline=True)
    store.load_bundled_definitions()
    return store


@pytest.fixture
def fixture_store() -> IdentifierReferenceStore:
    """Offline store where ``1.3.6.1.2.1.1`` is a table."""

    database = MibDatabase()
    database.load_file(FIXTURE_MIB)
    return IdentifierReferenceStore(database=database, offline=True)


ContextFactory = Callable[..., RuleContext]


@pytest.fixture
def make_context() -> ContextFactory:
    """Build a :class:`RuleContext` for a manifest text."""

    def _factory(
        text: str,
        *,
        store: Optional[IdentifierReferenceStore] = None,
        config: Optional[dict] = None,
        workspace_root: Optional[Path] = None,
        repository: Optional[RepositoryConfiguration] = None,
    ) -> RuleContext:
        return RuleContext(
            document=TextDocument("file:///workspace/extension/extension.yaml", text),
            manifest=parse_manifest(text),
            config=FlatConfiguration(config or {}),
            store=store,
            workspace_root=workspace_root,
            repository=repository or RepositoryConfiguration(),
        )

    return _factory
