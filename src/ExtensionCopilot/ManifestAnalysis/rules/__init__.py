"""Diagnostic rules and their registry.

Each rule is a plain function taking a :class:`RuleContext` and returning a
list of findings. A rule reads its own toggle from the context on every call
and returns an empty list when disabled.
"""

from typing import Callable, Dict, List

from ..findings import Finding
from .cards import check_card_keys
from .context import RuleContext
from .metric_keys import check_metric_keys
from .naming import check_extension_name
from .oids import check_dimension_oids, check_metric_oids

Rule = Callable[[RuleContext], List[Finding]]

RULES: Dict[str, Rule] = {
    "extension_name": check_extension_name,
    "metric_keys": check_metric_keys,
    "card_keys": check_card_keys,
    "metric_oids": check_metric_oids,
    "dimension_oids": check_dimension_oids,
}

__all__ = [
    "Rule",
    "RULES",
    "RuleContext",
    "check_extension_name",
    "check_metric_keys",
    "check_card_keys",
    "check_metric_oids",
    "check_dimension_oids",
]
