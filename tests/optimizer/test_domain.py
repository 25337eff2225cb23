"""Tests for scenario and target domain packs."""

from __future__ import annotations

from promptforge.models import PromptTarget
from promptforge.optimizer.domain import (
    GATE_SECTIONS,
    default_deliverables,
    domain_policy,
    output_format_lines,
)
from promptforge.optimizer.knowledge import ModelFamily, ScenarioProfile


def test_cli_pack_requires_shell_only_output() -> None:
    policy = domain_policy(ScenarioProfile.CLI)

    assert "shell commands only" in policy.keywords
    assert policy.supplements[0][0] == "constraints"


def test_json_pack_carries_strict_contract() -> None:
    policy = domain_policy(ScenarioProfile.JSON)

    assert policy.keywords == ["json", "no markdown"]
    assert output_format_lines(ScenarioProfile.JSON)[0] == "Return JSON only."


def test_tool_agent_falls_back_to_manual_plan_for_unreliable_families() -> None:
    reliable = domain_policy(ScenarioProfile.TOOL_AGENT, family=ModelFamily.OPENAI)
    manual = domain_policy(ScenarioProfile.TOOL_AGENT, family=ModelFamily.LOCAL_CLI)

    assert "Tool Calls" in reliable.keywords
    assert "Manual Steps" in manual.keywords
    assert "questions" in manual.gate_sections
    assert "questions" not in GATE_SECTIONS


def test_target_packs_append_policy() -> None:
    perplexity = domain_policy(ScenarioProfile.GENERAL, PromptTarget.PERPLEXITY)
    agentic = domain_policy(ScenarioProfile.IDE_CODING, PromptTarget.AGENTIC_IDE)

    assert "URL" in perplexity.keywords
    assert agentic.keywords == ["Unified Diff", "Validation Commands", "Proposed File Changes"]


def test_default_deliverables_have_three_items_per_scenario() -> None:
    for scenario in ScenarioProfile:
        assert len(default_deliverables(scenario)) == 3
