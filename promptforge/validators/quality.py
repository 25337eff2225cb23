"""Structural and content checks for forged prompts."""

from __future__ import annotations

from typing import List

from ..models import (
    EnhancementOptions,
    PromptBuildContext,
    PromptTarget,
    QualityCheck,
    SectionsConfig,
    Severity,
    VariableResolution,
)
from ..prompting.builder import is_heading_token, normalize_line_key
from ..prompting.renderers import find_order_violation, required_markers

MIN_OUTPUT_CHARS = 200
MAX_OUTPUT_CHARS = 20_000
MIN_GOAL_CHARS = 12


class QualityCheckEngine:
    """Produces the ordered, severity-tagged checklist for one forge run."""

    name = "quality"

    def __init__(
        self,
        *,
        min_output_chars: int = MIN_OUTPUT_CHARS,
        max_output_chars: int = MAX_OUTPUT_CHARS,
    ) -> None:
        self.min_output_chars = min_output_chars
        self.max_output_chars = max_output_chars

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
        goal = context.goal.strip()
        goal_present = bool(goal) and not is_heading_token(goal)
        goal_passed = not sections.include_goal or goal_present
        goal_defined = len("".join(goal.split())) >= MIN_GOAL_CHARS

        context_passed = not sections.include_context or bool(context.context.strip())

        constraints = [line.strip() for line in context.constraints if line.strip()]
        constraints_passed = not sections.include_constraints or bool(constraints)

        deliverables = [line.strip() for line in context.deliverables if line.strip()]
        deliverables_passed = not sections.include_deliverables or bool(deliverables)

        size = len(generated)
        size_passed = self.min_output_chars <= size <= self.max_output_chars

        missing = list(resolution.unfilled)
        duplicates = _duplicate_lines(constraints)
        violation = find_order_violation(generated, required_markers(target, options))

        return [
            QualityCheck(
                title="Goal presence",
                passed=goal_passed,
                severity=Severity.ERROR,
                detail=None if goal_passed else _goal_detail(goal),
            ),
            QualityCheck(
                title="Goal defined",
                passed=goal_defined,
                severity=Severity.WARNING,
                detail=None
                if goal_defined
                else f"Goal must be at least {MIN_GOAL_CHARS} non-whitespace characters.",
            ),
            QualityCheck(
                title="Context presence",
                passed=context_passed,
                severity=Severity.WARNING,
                detail=None if context_passed else "Context section is enabled, but the context is empty.",
            ),
            QualityCheck(
                title="Constraints coverage",
                passed=constraints_passed,
                severity=Severity.WARNING,
                detail=None
                if constraints_passed
                else "Constraints section is enabled, but no constraints were provided.",
            ),
            QualityCheck(
                title="Deliverables presence",
                passed=deliverables_passed,
                severity=Severity.ERROR,
                detail=None
                if deliverables_passed
                else "Deliverables section is enabled, but no deliverables were provided.",
            ),
            QualityCheck(
                title="Output size sanity",
                passed=size_passed,
                severity=Severity.WARNING,
                detail=None if size_passed else self._size_detail(size),
            ),
            QualityCheck(
                title="Variable completeness",
                passed=not missing,
                severity=Severity.ERROR,
                detail=None if not missing else f"Missing values for: {', '.join(missing)}",
            ),
            QualityCheck(
                title="Constraint uniqueness",
                passed=not duplicates,
                severity=Severity.WARNING,
                detail=None if not duplicates else f"Duplicate constraints: {'; '.join(duplicates)}",
            ),
            QualityCheck(
                title="Section order",
                passed=violation is None,
                severity=Severity.ERROR,
                detail=None
                if violation is None
                else f"Expected '{violation}' in order for {target.value}.",
            ),
        ]

    def _size_detail(self, size: int) -> str:
        if size < self.min_output_chars:
            return (
                f"Generated prompt is too short ({size} characters; "
                f"minimum is {self.min_output_chars})."
            )
        return (
            f"Generated prompt is too long ({size} characters; "
            f"maximum is {self.max_output_chars})."
        )


def _goal_detail(goal: str) -> str:
    if not goal:
        return "Goal section is enabled, but the goal is empty."
    return f"Goal is a bare heading token: {goal}"


def _duplicate_lines(lines: List[str]) -> List[str]:
    seen: set[str] = set()
    duplicates: List[str] = []
    for line in lines:
        key = normalize_line_key(line)
        if key in seen and line not in duplicates:
            duplicates.append(line)
        seen.add(key)
    return duplicates


__all__ = ["MAX_OUTPUT_CHARS", "MIN_OUTPUT_CHARS", "QualityCheckEngine"]
