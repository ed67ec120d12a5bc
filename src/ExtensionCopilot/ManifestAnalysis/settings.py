# === NAVMAP v1 ===
# {
#   "module": "ExtensionCopilot.ManifestAnalysis.settings",
#   "purpose": "Configuration models, environment overrides, YAML loading, and the flat host configuration reader",
#   "sections": [
#     {"id": "models", "name": "Configuration models", "anchor": "MOD", "kind": "api"},
#     {"id": "env", "name": "Environment overrides", "anchor": "ENV", "kind": "api"},
#     {"id": "loading", "name": "YAML loading", "anchor": "LOAD", "kind": "api"},
#     {"id": "flat", "name": "Flat configuration reader", "anchor": "FLAT", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Configuration for manifest analysis.

Settings are expressed as pydantic models so that YAML files and environment
variables are validated the same way. The host editor, however, speaks a flat
namespace of option keys (``diagnostics.snmp`` and friends); rules consult a
:class:`FlatConfiguration` on every invocation instead of caching values, so a
toggle flipped by the host takes effect on the next diagnostic run.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol

import platformdirs
import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import UserConfigError

__all__ = [
    "APP_NAME",
    "LOG_DIR",
    "DEFAULT_OID_REPOSITORY_URL",
    "DiagnosticsToggles",
    "LookupConfiguration",
    "CacheConfiguration",
    "RepositoryConfiguration",
    "LoggingConfiguration",
    "AnalysisSettings",
    "EnvironmentOverrides",
    "load_settings",
    "ConfigurationReader",
    "FlatConfiguration",
]

APP_NAME = "extension-copilot"
LOG_DIR = Path(platformdirs.user_log_dir(APP_NAME))
DEFAULT_OID_REPOSITORY_URL = "https://oid-rep.orange-labs.fr/get"

LOGGER = logging.getLogger("ExtensionCopilot.ManifestAnalysis.settings")


# --- Configuration models -------------------------------------------------------


class DiagnosticsToggles(BaseModel):
    """Per-rule switches plus the global diagnostics switch."""

    enabled: bool = Field(default=True, description="Global switch for all diagnostics")
    extension_name: bool = Field(default=True, description="Extension name rule")
    metric_keys: bool = Field(default=True, description="Metric key suffix rule")
    card_keys: bool = Field(default=True, description="Screen card cross-reference rule")
    snmp: bool = Field(default=True, description="OID semantics rules")

    model_config = {"validate_assignment": True, "extra": "ignore"}

    def as_flat(self) -> Dict[str, bool]:
        """Return the toggles keyed the way the host editor names them."""

        return {
            "diagnostics": self.enabled,
            "diagnostics.extensionName": self.extension_name,
            "diagnostics.metricKeys": self.metric_keys,
            "diagnostics.cardKeys": self.card_keys,
            "diagnostics.snmp": self.snmp,
        }


class LookupConfiguration(BaseModel):
    """Remote OID repository and bulk lookup settings."""

    base_url: str = Field(default=DEFAULT_OID_REPOSITORY_URL)
    offline: bool = Field(default=False, description="Never contact the remote repository")
    timeout_sec: float = Field(default=10.0, gt=0.0, le=120.0)
    connect_timeout_sec: float = Field(default=5.0, gt=0.0, le=60.0)
    max_connections: int = Field(default=16, ge=1, le=256)
    max_concurrent_lookups: int = Field(default=8, ge=1, le=64)
    user_agent: str = Field(default="ExtensionCopilot/0.4 (+manifest diagnostics)")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        """Require an http(s) URL and drop trailing slashes."""

        stripped = value.strip().rstrip("/")
        if not stripped.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return stripped

    model_config = {"validate_assignment": True, "extra": "ignore"}


class CacheConfiguration(BaseModel):
    """Timing of the reactive manifest cache."""

    debounce_ms: int = Field(default=200, ge=0, le=10_000)
    init_poll_interval_ms: int = Field(default=100, gt=0, le=10_000)

    model_config = {"validate_assignment": True, "extra": "ignore"}

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    @property
    def poll_interval_seconds(self) -> float:
        return self.init_poll_interval_ms / 1000.0


class RepositoryConfiguration(BaseModel):
    """Markers identifying a restricted-namespace (vendor) extension repository."""

    namespace_prefix: str = Field(default="custom:")
    gradle_base_url: str = Field(default="https://artifactory.lab.dynatrace.org/artifactory")
    gradle_release_repository: str = Field(default="extensions-release")
    jenkins_server_id: str = Field(default="EXTENSION_ARTIFACTORY_SERVER")
    jenkins_server_url: str = Field(default="https://artifactory.lab.dynatrace.org/artifactory")

    model_config = {"validate_assignment": True, "extra": "ignore"}


class LoggingConfiguration(BaseModel):
    """Logging-related configuration for manifest analysis."""

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    max_log_size_mb: int = Field(default=20, gt=0, description="Maximum size of rotated log files")
    retention_days: int = Field(default=14, ge=1, description="Retention period for log files")
    log_dir: Optional[Path] = Field(default=None, description="Override for the log directory")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        """Normalise logging levels and ensure they match the supported set."""

        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        upper = value.upper()
        if upper not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}")
        return upper

    model_config = {"validate_assignment": True}


class AnalysisSettings(BaseModel):
    """Root settings object for an analysis session."""

    diagnostics: DiagnosticsToggles = Field(default_factory=DiagnosticsToggles)
    lookup: LookupConfiguration = Field(default_factory=LookupConfiguration)
    cache: CacheConfiguration = Field(default_factory=CacheConfiguration)
    repository: RepositoryConfiguration = Field(default_factory=RepositoryConfiguration)
    logging: LoggingConfiguration = Field(default_factory=LoggingConfiguration)

    model_config = {"validate_assignment": True, "extra": "ignore"}


# --- Environment overrides ------------------------------------------------------


class EnvironmentOverrides(BaseSettings):
    """Pydantic settings model exposing environment-derived overrides."""

    diagnostics_enabled: Optional[bool] = Field(default=None, alias="EXTCOPILOT_DIAGNOSTICS")
    oid_repository_url: Optional[str] = Field(
        default=None, alias="EXTCOPILOT_OID_REPOSITORY_URL"
    )
    offline: Optional[bool] = Field(default=None, alias="EXTCOPILOT_OFFLINE")
    debounce_ms: Optional[int] = Field(default=None, alias="EXTCOPILOT_DEBOUNCE_MS")
    log_level: Optional[str] = Field(default=None, alias="EXTCOPILOT_LOG_LEVEL")
    log_dir: Optional[Path] = Field(default=None, alias="EXTCOPILOT_LOG_DIR")

    model_config = SettingsConfigDict(
        env_prefix="EXTCOPILOT_", case_sensitive=False, extra="ignore"
    )


def _apply_env_overrides(settings: AnalysisSettings) -> None:
    """Mutate ``settings`` in-place using values from :class:`EnvironmentOverrides`."""

    env = EnvironmentOverrides()
    if env.diagnostics_enabled is not None:
        settings.diagnostics.enabled = env.diagnostics_enabled
    if env.oid_repository_url is not None:
        settings.lookup.base_url = env.oid_repository_url
    if env.offline is not None:
        settings.lookup.offline = env.offline
    if env.debounce_ms is not None:
        settings.cache.debounce_ms = env.debounce_ms
    if env.log_level is not None:
        settings.logging.level = env.log_level
    if env.log_dir is not None:
        settings.logging.log_dir = env.log_dir

    overrides = env.model_dump(exclude_none=True)
    if overrides:
        LOGGER.debug("applied environment overrides", extra={"overrides": sorted(overrides)})


# --- YAML loading ---------------------------------------------------------------


def _load_raw_yaml(config_path: Path) -> Mapping[str, object]:
    normalized_path = Path(config_path).expanduser()
    if not normalized_path.exists():
        raise UserConfigError(f"Configuration file not found: {normalized_path}")

    try:
        with normalized_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise UserConfigError(
            f"Configuration file '{normalized_path}' contains invalid YAML"
        ) from exc

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise UserConfigError("Configuration file must contain a mapping at the root")
    return data


def load_settings(config_path: Optional[Path] = None) -> AnalysisSettings:
    """Load settings from an optional YAML file, then apply environment overrides.

    Args:
        config_path: YAML file whose top-level keys mirror :class:`AnalysisSettings`.

    Returns:
        Validated settings.

    Raises:
        UserConfigError: If the file is missing, not YAML, or fails validation.
    """

    raw: Mapping[str, object] = _load_raw_yaml(config_path) if config_path else {}
    try:
        settings = AnalysisSettings.model_validate(dict(raw))
        _apply_env_overrides(settings)
    except PydanticValidationError as exc:
        messages = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        raise UserConfigError(
            "Configuration validation failed:\n- " + "\n- ".join(messages)
        ) from exc
    return settings


# --- Flat configuration reader ----------------------------------------------------


class ConfigurationReader(Protocol):
    """Read-only view over the host's flat option namespace."""

    def get(self, key: str, default: Any = None) -> Any:  # pragma: no cover - protocol
        ...


class FlatConfiguration:
    """Thread-safe flat key/value namespace consulted by rules on every run.

    Examples:
        >>> config = FlatConfiguration({"diagnostics.snmp": False})
        >>> config.get("diagnostics.snmp", True)
        False
        >>> config.set("diagnostics.snmp", True)
        >>> config.get("diagnostics.snmp")
        True
    """

    def __init__(self, values: Optional[Mapping[str, Any]] = None) -> None:
        self._lock = threading.Lock()
        self._values: Dict[str, Any] = dict(values or {})

    @classmethod
    def from_settings(cls, settings: AnalysisSettings) -> "FlatConfiguration":
        return cls(settings.diagnostics.as_flat())

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key.strip(), default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key.strip()] = value

    def update(self, values: Mapping[str, Any]) -> None:
        with self._lock:
            for key, value in values.items():
                self._values[key.strip()] = value

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._values)
