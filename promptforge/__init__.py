"""promptforge: deterministic prompt structuring, optimization, and storage."""

__version__ = "0.4.0"

__all__ = ["__version__"]
