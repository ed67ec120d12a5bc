# === NAVMAP v1 ===
# {
#   "module": "ExtensionCopilot.concurrency.__init__",
#   "purpose": "Concurrency helpers shared across ExtensionCopilot components.",
#   "sections": []
# }
# === /NAVMAP ===

"""
Concurrency helpers shared across ExtensionCopilot components.

Exposes :func:`create_executor` for IO-bound fan-out (bulk OID lookups) and
:class:`Debouncer`, the single-slot quiescence timer used by the manifest
cache to coalesce bursts of edits.
"""

from .debounce import Debouncer
from .executors import create_executor

__all__ = ["Debouncer", "create_executor"]
