"""Core validation data structures for generated prompts."""

from __future__ import annotations

from typing import List, Protocol, Sequence

from ..models import (
    EnhancementOptions,
    PromptBuildContext,
    PromptTarget,
    QualityCheck,
    SectionsConfig,
    Severity,
    VariableResolution,
)


class ValidationError(RuntimeError):
    """Raised when a caller requires every error-severity check to pass."""

    def __init__(self, message: str, checks: Sequence[QualityCheck]) -> None:
        super().__init__(message)
        self.checks = list(checks)


class Validator(Protocol):
    """Protocol implemented by prompt validators."""

    name: str

    def evaluate(
        self,
        context: PromptBuildContext,
        sections: SectionsConfig,
        resolution: VariableResolution,
        generated: str,
        *,
        target: PromptTarget,
        options: EnhancementOptions,
    ) -> List[QualityCheck]:
        """Run validation and return the ordered checklist."""


def failed_checks(
    checks: Sequence[QualityCheck], *, severity: Severity | None = None
) -> List[QualityCheck]:
    return [
        check
        for check in checks
        if not check.passed and (severity is None or check.severity is severity)
    ]


def require_passing(checks: Sequence[QualityCheck]) -> None:
    """Raise :class:`ValidationError` when any error-severity check failed."""
    errors = failed_checks(checks, severity=Severity.ERROR)
    if errors:
        titles = ", ".join(check.title for check in errors)
        raise ValidationError(f"Prompt failed quality checks: {titles}", errors)


__all__ = ["ValidationError", "Validator", "failed_checks", "require_passing"]
