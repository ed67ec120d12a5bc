"""Detection of the restricted-namespace (vendor) extension repository."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from .settings import RepositoryConfiguration

__all__ = ["is_restricted_namespace_repository"]

LOGGER = logging.getLogger("ExtensionCopilot.ManifestAnalysis.repository")

_GRADLE_BASE_URL = re.compile(r"repositoryBaseURL=(.*)")
_GRADLE_RELEASE_REPO = re.compile(r"releaseRepository=(.*)")
_JENKINS_SERVER_ID = re.compile(r"id: '(.*?)'")
_JENKINS_SERVER_URL = re.compile(r'url: "(.*?)"')


def _first_file(root: Path, name: str) -> Optional[Path]:
    for path in sorted(root.rglob(name)):
        if path.is_file() and not any(part.startswith(".") for part in path.relative_to(root).parts):
            return path
    return None


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        LOGGER.debug("could not read repository marker", extra={"source": str(path), "extra_fields": {"error": str(exc)}})
        return ""


def is_restricted_namespace_repository(
    root: Optional[Path], config: Optional[RepositoryConfiguration] = None
) -> bool:
    """Return ``True`` when ``root`` is a checkout of the vendor extension repository.

    The first ``gradle.properties`` found must declare the configured
    ``repositoryBaseURL`` and ``releaseRepository``. Only when there is no
    such file, the first ``Jenkinsfile`` must declare the configured
    artifactory server ``id`` and ``url``.

    Args:
        root: Workspace root; ``None`` means no workspace.
        config: Expected marker values.
    """

    if root is None or not Path(root).is_dir():
        return False
    cfg = config or RepositoryConfiguration()
    root = Path(root)

    gradle = _first_file(root, "gradle.properties")
    if gradle is not None:
        props = _read(gradle)
        base_url = _GRADLE_BASE_URL.search(props)
        release = _GRADLE_RELEASE_REPO.search(props)
        return bool(
            base_url
            and release
            and base_url.group(1).strip() == cfg.gradle_base_url
            and release.group(1).strip() == cfg.gradle_release_repository
        )

    jenkinsfile = _first_file(root, "Jenkinsfile")
    if jenkinsfile is not None:
        props = _read(jenkinsfile)
        server_id = _JENKINS_SERVER_ID.search(props)
        server_url = _JENKINS_SERVER_URL.search(props)
        return bool(
            server_id
            and server_url
            and server_id.group(1) == cfg.jenkins_server_id
            and server_url.group(1) == cfg.jenkins_server_url
        )
    return False
