"""Tests for the quality check engine."""

from __future__ import annotations

import pytest

from promptforge.models import (
    EnhancementOptions,
    PromptBuildContext,
    PromptTarget,
    SectionsConfig,
    Severity,
    VariableResolution,
)
from promptforge.prompting import build_canonical_prompt, parse_prompt_input, render_prompt
from promptforge.validators import (
    QualityCheckEngine,
    ValidationError,
    failed_checks,
    require_passing,
)


def _forge(text: str, target: PromptTarget = PromptTarget.CLAUDE):
    options = EnhancementOptions()
    canonical = build_canonical_prompt(parse_prompt_input(text), options, target)
    return canonical, render_prompt(canonical, options, target)


def _checks(context: PromptBuildContext, generated: str, **kwargs):
    target = kwargs.pop("target", PromptTarget.CLAUDE)
    resolution = kwargs.pop("resolution", VariableResolution(resolved_text=generated))
    sections = kwargs.pop("sections", SectionsConfig())
    return QualityCheckEngine().evaluate(
        context,
        sections,
        resolution,
        generated,
        target=target,
        options=EnhancementOptions(),
    )


def _by_title(checks):
    return {check.title: check for check in checks}


def test_well_formed_prompt_passes_every_check() -> None:
    canonical, generated = _forge("Goal: Add response caching to the API\nContext: Slow reads")

    checks = _checks(PromptBuildContext.from_canonical(canonical), generated)

    assert [check.title for check in checks] == [
        "Goal presence",
        "Goal defined",
        "Context presence",
        "Constraints coverage",
        "Deliverables presence",
        "Output size sanity",
        "Variable completeness",
        "Constraint uniqueness",
        "Section order",
    ]
    assert failed_checks(checks) == []
    require_passing(checks)


def test_heading_token_goal_is_an_error() -> None:
    context = PromptBuildContext(goal="## Goal", context="ctx", deliverables=["x"])

    checks = _by_title(_checks(context, "short"))

    assert not checks["Goal presence"].passed
    assert checks["Goal presence"].severity is Severity.ERROR
    assert "bare heading token" in (checks["Goal presence"].detail or "")


def test_unfilled_variables_are_reported_by_name() -> None:
    canonical, generated = _forge("Goal: Email {customer} about order {order_id}")
    resolution = VariableResolution(
        resolved_text="", detected=["customer", "order_id"], unfilled=["order_id"]
    )

    checks = _by_title(
        _checks(PromptBuildContext.from_canonical(canonical), generated, resolution=resolution)
    )

    assert not checks["Variable completeness"].passed
    assert checks["Variable completeness"].detail == "Missing values for: order_id"


def test_duplicate_constraints_and_short_output_are_warnings() -> None:
    context = PromptBuildContext(
        goal="Refactor the payment module",
        context="ctx",
        constraints=["Keep tests green", "keep  TESTS green"],
        deliverables=["diff"],
    )

    checks = _by_title(_checks(context, "tiny"))

    assert not checks["Constraint uniqueness"].passed
    assert checks["Constraint uniqueness"].severity is Severity.WARNING
    assert not checks["Output size sanity"].passed
    assert "too short" in (checks["Output size sanity"].detail or "")


def test_section_order_failure_names_missing_marker() -> None:
    canonical, generated = _forge("Goal: Add response caching to the API")

    checks = _by_title(
        _checks(
            PromptBuildContext.from_canonical(canonical),
            generated,
            target=PromptTarget.AGENTIC_IDE,
        )
    )

    assert not checks["Section order"].passed
    assert "### Assumptions" in (checks["Section order"].detail or "")


def test_disabled_sections_do_not_fail() -> None:
    context = PromptBuildContext(goal="", context="", constraints=[], deliverables=[])
    sections = SectionsConfig(
        include_goal=False,
        include_context=False,
        include_constraints=False,
        include_deliverables=False,
    )

    checks = _by_title(_checks(context, "x", sections=sections))

    assert checks["Goal presence"].passed
    assert checks["Context presence"].passed
    assert checks["Deliverables presence"].passed


def test_require_passing_raises_with_failed_errors() -> None:
    context = PromptBuildContext(goal="", context="ctx", deliverables=[])

    checks = _checks(context, "x")

    with pytest.raises(ValidationError) as excinfo:
        require_passing(checks)
    titles = [check.title for check in excinfo.value.checks]
    assert "Goal presence" in titles
    assert "Deliverables presence" in titles
