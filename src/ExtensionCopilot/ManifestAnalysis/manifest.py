# === NAVMAP v1 ===
# {
#   "module": "ExtensionCopilot.ManifestAnalysis.manifest",
#   "purpose": "Pydantic model of extension manifests, manifest parsing, and model queries",
#   "sections": [
#     {"id": "sections", "name": "Manifest sections", "anchor": "SEC", "kind": "api"},
#     {"id": "datasource", "name": "Datasource tagged union", "anchor": "DSU", "kind": "api"},
#     {"id": "parse", "name": "Parsing", "anchor": "PAR", "kind": "api"},
#     {"id": "queries", "name": "Model queries", "anchor": "QRY", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Structured model of ``extension.yaml`` manifests.

The model is deliberately lenient: every field is optional, unknown keys are
retained, and scalar values are coerced to strings where the manifest format
expects text. Only documents that are not YAML, have no mapping at the root,
or whose sections have the wrong shape (for example a mapping where a list of
metrics is expected) fail to parse.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, PrivateAttr, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ManifestParseError

__all__ = [
    "MetricDefinition",
    "DimensionDefinition",
    "Subgroup",
    "DatasourceGroup",
    "CardReference",
    "CardDefinition",
    "Screen",
    "TopologyType",
    "Topology",
    "MetricMetadata",
    "DatasourceKind",
    "Datasource",
    "Manifest",
    "CardMeta",
    "MetricUsage",
    "parse_manifest",
    "metrics_from_datasource",
    "dimensions_from_datasource",
    "referenced_cards_meta",
    "defined_cards_meta",
]


def _as_text(value: Any) -> Any:
    if value is None or isinstance(value, (str, dict, list)):
        return value
    return str(value)


def _as_list(value: Any) -> Any:
    return [] if value is None else value


class _Section(BaseModel):
    model_config = {"extra": "allow", "populate_by_name": True}


# --- Manifest sections ------------------------------------------------------------


class MetricDefinition(_Section):
    """One entry of a datasource ``metrics`` list."""

    key: Optional[str] = None
    value: Optional[str] = None
    type: Optional[str] = None
    feature_set: Optional[str] = Field(default=None, alias="featureSet")

    @field_validator("key", "value", "type", "feature_set", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        return _as_text(value)


class DimensionDefinition(_Section):
    key: Optional[str] = None
    value: Optional[str] = None
    filter: Optional[str] = None

    @field_validator("key", "value", "filter", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        return _as_text(value)


class Subgroup(_Section):
    """Subgroup of a datasource group; ``table`` marks row-per-instance data."""

    subgroup: Optional[str] = None
    feature_set: Optional[str] = Field(default=None, alias="featureSet")
    table: bool = False
    interval: Optional[Any] = None
    dimensions: List[DimensionDefinition] = Field(default_factory=list)
    metrics: List[MetricDefinition] = Field(default_factory=list)

    @field_validator("dimensions", "metrics", mode="before")
    @classmethod
    def empty_lists(cls, value: Any) -> Any:
        return _as_list(value)

    @field_validator("table", mode="before")
    @classmethod
    def table_flag(cls, value: Any) -> Any:
        return False if value is None else value


class DatasourceGroup(_Section):
    group: Optional[str] = None
    feature_set: Optional[str] = Field(default=None, alias="featureSet")
    interval: Optional[Any] = None
    dimensions: List[DimensionDefinition] = Field(default_factory=list)
    metrics: List[MetricDefinition] = Field(default_factory=list)
    subgroups: List[Subgroup] = Field(default_factory=list)

    @field_validator("dimensions", "metrics", "subgroups", mode="before")
    @classmethod
    def empty_lists(cls, value: Any) -> Any:
        return _as_list(value)


class CardReference(_Section):
    """A card listed in a screen layout."""

    key: Optional[str] = None
    type: Optional[str] = None

    @field_validator("key", "type", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        return _as_text(value)


class Layout(_Section):
    cards: List[CardReference] = Field(default_factory=list)

    @field_validator("cards", mode="before")
    @classmethod
    def empty_lists(cls, value: Any) -> Any:
        return _as_list(value)


class LayoutSettings(_Section):
    layout: Optional[Layout] = None


class CardDefinition(_Section):
    """A card defined in one of a screen's ``*Cards`` lists."""

    key: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")

    @field_validator("key", "display_name", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        return _as_text(value)


class Screen(_Section):
    entity_type: Optional[str] = Field(default=None, alias="entityType")
    list_settings: Optional[LayoutSettings] = Field(default=None, alias="listSettings")
    details_settings: Optional[LayoutSettings] = Field(default=None, alias="detailsSettings")
    entities_list_cards: List[CardDefinition] = Field(default_factory=list, alias="entitiesListCards")
    charts_cards: List[CardDefinition] = Field(default_factory=list, alias="chartsCards")
    message_cards: List[CardDefinition] = Field(default_factory=list, alias="messageCards")
    logs_cards: List[CardDefinition] = Field(default_factory=list, alias="logsCards")
    events_cards: List[CardDefinition] = Field(default_factory=list, alias="eventsCards")

    @field_validator(
        "entities_list_cards",
        "charts_cards",
        "message_cards",
        "logs_cards",
        "events_cards",
        mode="before",
    )
    @classmethod
    def empty_lists(cls, value: Any) -> Any:
        return _as_list(value)


class TopologyType(_Section):
    name: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    rules: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("rules", mode="before")
    @classmethod
    def empty_lists(cls, value: Any) -> Any:
        return _as_list(value)


class Topology(_Section):
    types: List[TopologyType] = Field(default_factory=list)
    relationships: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("types", "relationships", mode="before")
    @classmethod
    def empty_lists(cls, value: Any) -> Any:
        return _as_list(value)


class MetricMetadata(_Section):
    key: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


# --- Datasource tagged union ---------------------------------------------------------


class DatasourceKind(str, enum.Enum):
    SNMP = "snmp"
    WMI = "wmi"
    SQL = "sql"
    PROMETHEUS = "prometheus"
    NONE = "none"


_DATASOURCE_PRIORITY = (
    DatasourceKind.SNMP,
    DatasourceKind.WMI,
    DatasourceKind.SQL,
    DatasourceKind.PROMETHEUS,
)


@dataclass(frozen=True, slots=True)
class Datasource:
    """The single datasource section a manifest declares."""

    kind: DatasourceKind
    groups: Tuple[DatasourceGroup, ...] = ()


class Manifest(_Section):
    """Last successfully parsed ``extension.yaml``."""

    name: Optional[str] = None
    version: Optional[str] = None
    min_dynatrace_version: Optional[str] = Field(default=None, alias="minDynatraceVersion")
    author: Optional[Any] = None
    metrics: List[MetricMetadata] = Field(default_factory=list)
    topology: Optional[Topology] = None
    snmp: Optional[List[DatasourceGroup]] = None
    wmi: Optional[List[DatasourceGroup]] = None
    sql: Optional[List[DatasourceGroup]] = None
    prometheus: Optional[List[DatasourceGroup]] = None
    vars: List[Dict[str, Any]] = Field(default_factory=list)
    screens: List[Screen] = Field(default_factory=list)
    alerts: List[Dict[str, Any]] = Field(default_factory=list)
    dashboards: List[Dict[str, Any]] = Field(default_factory=list)

    _datasource: Datasource = PrivateAttr(default=Datasource(DatasourceKind.NONE))

    @field_validator("name", "version", "min_dynatrace_version", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        return _as_text(value)

    @field_validator("metrics", "vars", "screens", "alerts", "dashboards", mode="before")
    @classmethod
    def empty_lists(cls, value: Any) -> Any:
        return _as_list(value)

    def model_post_init(self, __context: Any) -> None:
        for kind in _DATASOURCE_PRIORITY:
            groups = getattr(self, kind.value)
            if groups:
                self._datasource = Datasource(kind, tuple(groups))
                break

    @property
    def datasource(self) -> Datasource:
        return self._datasource


# --- Parsing -------------------------------------------------------------------------


def parse_manifest(text: str) -> Manifest:
    """Parse manifest text into a :class:`Manifest`.

    Args:
        text: Raw ``extension.yaml`` content.

    Returns:
        The parsed manifest; an empty document yields an empty manifest.

    Raises:
        ManifestParseError: If ``text`` is not YAML, its root is not a mapping,
            or a section has the wrong shape.

    Examples:
        >>> parse_manifest("name: custom:demo\\nsnmp:\\n  - group: g\\n").datasource.kind
        <DatasourceKind.SNMP: 'snmp'>
        >>> parse_manifest("").name is None
        True
    """

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        raise ManifestParseError(
            f"manifest is not valid YAML: {exc}",
            line=mark.line if mark is not None else None,
        ) from exc

    if data is None:
        return Manifest()
    if not isinstance(data, dict):
        raise ManifestParseError("manifest root must be a mapping")
    try:
        return Manifest.model_validate(data)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ManifestParseError(
            f"manifest section {location!r} is malformed: {first['msg']}"
        ) from exc


# --- Model queries -------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CardMeta:
    key: str
    type: str


@dataclass(frozen=True, slots=True)
class MetricUsage:
    """A metric or dimension declaration found in the datasource."""

    key: str
    value: str
    type: Optional[str] = None


def metrics_from_datasource(manifest: Manifest) -> List[MetricUsage]:
    """Return distinct metric declarations of groups and subgroups, in document order."""

    seen: Dict[Tuple[str, str, Optional[str]], MetricUsage] = {}
    for group in manifest.datasource.groups:
        for metrics in [group.metrics] + [subgroup.metrics for subgroup in group.subgroups]:
            for metric in metrics:
                if not metric.key:
                    continue
                usage = MetricUsage(metric.key, metric.value or "", metric.type)
                seen.setdefault((usage.key, usage.value, usage.type), usage)
    return list(seen.values())


def dimensions_from_datasource(manifest: Manifest) -> List[MetricUsage]:
    """Return distinct dimension declarations of groups and subgroups, in document order."""

    seen: Dict[Tuple[str, str], MetricUsage] = {}
    for group in manifest.datasource.groups:
        for dimensions in [group.dimensions] + [sub.dimensions for sub in group.subgroups]:
            for dimension in dimensions:
                if not dimension.key:
                    continue
                usage = MetricUsage(dimension.key, dimension.value or "")
                seen.setdefault((usage.key, usage.value), usage)
    return list(seen.values())


def referenced_cards_meta(screen: Screen) -> List[CardMeta]:
    """Return the distinct cards referenced by the screen's list and details layouts.

    References missing a ``key`` or ``type`` are ignored as still being typed.
    """

    cards: Dict[str, CardMeta] = {}
    for settings in (screen.list_settings, screen.details_settings):
        if settings is None or settings.layout is None:
            continue
        for card in settings.layout.cards:
            if card.key and card.type and card.key not in cards:
                cards[card.key] = CardMeta(card.key, card.type)
    return list(cards.values())


_CARD_SECTIONS = (
    ("entities_list_cards", "ENTITIES_LIST"),
    ("charts_cards", "CHART_GROUP"),
    ("message_cards", "MESSAGE"),
    ("logs_cards", "LOGS"),
    ("events_cards", "EVENTS"),
)


def defined_cards_meta(screen: Screen, card_type: Optional[str] = None) -> List[CardMeta]:
    """Return the distinct cards defined by the screen.

    Args:
        screen: Screen to inspect.
        card_type: Optional card type (``"CHART_GROUP"``...) narrowing the search.
    """

    cards: Dict[str, CardMeta] = {}
    for attribute, type_name in _CARD_SECTIONS:
        if card_type is not None and card_type != type_name:
            continue
        for card in getattr(screen, attribute):
            if card.key and card.key not in cards:
                cards[card.key] = CardMeta(card.key, type_name)
    return list(cards.values())
