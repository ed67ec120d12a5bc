"""ExtensionCopilot: analysis core for Dynatrace Extensions 2.0 manifests."""

__version__ = "0.4.0"

__all__ = ["__version__"]
