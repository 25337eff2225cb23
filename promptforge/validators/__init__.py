"""Validation package for forged prompt artifacts."""

from .base import ValidationError, Validator, failed_checks, require_passing
from .quality import QualityCheckEngine

__all__ = [
    "QualityCheckEngine",
    "ValidationError",
    "Validator",
    "failed_checks",
    "require_passing",
]
