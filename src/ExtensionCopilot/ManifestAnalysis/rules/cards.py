"""Screen card cross-references (DEC008, DEC009)."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from ..findings import (
    DEFINED_CARD_NOT_REFERENCED,
    REFERENCED_CARD_NOT_DEFINED,
    Finding,
    FindingDefinition,
    make_finding,
)
from ..manifest import defined_cards_meta, referenced_cards_meta
from ..yaml_structure import ItemRange, list_item_ranges
from .context import RuleContext

__all__ = ["TOGGLE", "check_card_keys"]

LOGGER = logging.getLogger("ExtensionCopilot.ManifestAnalysis.rules.cards")

TOGGLE = "diagnostics.cardKeys"


def _locate_key(text: str, key: str, screen: ItemRange) -> Optional[Tuple[int, int]]:
    """Return the span of the first ``key: <key>`` inside the screen's text."""

    pattern = re.compile(rf"""key: ["']?{re.escape(key)}["']?(?=\s|$)""")
    match = pattern.search(text, screen.start, screen.end)
    if match is None:
        return None
    return match.start(), match.end()


def check_card_keys(context: RuleContext) -> List[Finding]:
    """Compare layout card references with card definitions, screen by screen."""

    if not context.enabled(TOGGLE) or not context.manifest.screens:
        return []

    text = context.text
    bounds = list_item_ranges("screens", text)
    findings: List[Finding] = []

    def _report(key: str, screen: ItemRange, definition: FindingDefinition) -> None:
        span = _locate_key(text, key, screen)
        if span is None:
            LOGGER.debug(
                "card key not found in screen text",
                extra={"rule": definition.code, "extra_fields": {"card": key, "screen": screen.index}},
            )
            return
        findings.append(make_finding(context.document, span[0], span[1], definition))

    for index, screen in enumerate(context.manifest.screens):
        # the model may be older than the text while the document does not parse
        if index >= len(bounds):
            break
        referenced = referenced_cards_meta(screen)
        defined = defined_cards_meta(screen)
        defined_keys = {card.key for card in defined}
        referenced_keys = {card.key for card in referenced}
        for card in referenced:
            if card.key not in defined_keys:
                _report(card.key, bounds[index], REFERENCED_CARD_NOT_DEFINED)
        for card in defined:
            if card.key not in referenced_keys:
                _report(card.key, bounds[index], DEFINED_CARD_NOT_REFERENCED)
    return findings
