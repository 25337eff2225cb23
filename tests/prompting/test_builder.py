"""Tests for the canonical prompt builder."""

from __future__ import annotations

from promptforge.models import EnhancementOptions, ParsedPromptInput, PromptTarget
from promptforge.prompting.builder import (
    build_canonical_prompt,
    dedupe_lines,
    normalize_line_key,
)
from promptforge.prompting.constants import (
    DEFAULT_CONTEXT,
    DEFAULT_GOAL,
    MARKDOWN_CONSTRAINT,
    SEARCH_VERIFICATION_LINES,
    SECTION_DEFAULTS,
    STRICT_CODE_CONSTRAINT,
    TARGET_POLICY_LINES,
)


def test_empty_input_receives_documented_defaults() -> None:
    prompt = build_canonical_prompt(
        ParsedPromptInput(), EnhancementOptions(), PromptTarget.CLAUDE
    )

    assert prompt.goal == DEFAULT_GOAL
    assert prompt.context == DEFAULT_CONTEXT
    assert prompt.deliverables == list(SECTION_DEFAULTS["deliverables"])
    assert prompt.revert_plan == list(SECTION_DEFAULTS["revert_plan"])
    assert TARGET_POLICY_LINES[PromptTarget.CLAUDE] in prompt.constraints


def test_heading_token_goal_falls_back_to_default() -> None:
    prompt = build_canonical_prompt(
        ParsedPromptInput(goal="## Setup"), EnhancementOptions(), PromptTarget.CLAUDE
    )

    assert prompt.goal == DEFAULT_GOAL


def test_goal_still_prefixed_by_heading_marker_falls_back_to_default() -> None:
    prompt = build_canonical_prompt(
        ParsedPromptInput(goal="# Deploy the app"), EnhancementOptions(), PromptTarget.CLAUDE
    )

    assert prompt.goal == DEFAULT_GOAL


def test_equivalent_constraint_lines_are_deduplicated() -> None:
    parsed = ParsedPromptInput(
        goal="Ship the release",
        constraints=[
            "Use Python",
            "  use   PYTHON ",
            MARKDOWN_CONSTRAINT.upper(),
        ],
    )

    prompt = build_canonical_prompt(parsed, EnhancementOptions(), PromptTarget.CLAUDE)

    keys = [normalize_line_key(line) for line in prompt.constraints]
    assert len(keys) == len(set(keys))
    assert prompt.constraints[0] == "Use Python"
    assert MARKDOWN_CONSTRAINT not in prompt.constraints


def test_gated_sections_are_empty_when_disabled() -> None:
    options = EnhancementOptions(include_alternatives=False, add_file_tree_request=False)
    parsed = ParsedPromptInput(goal="Ship", alternatives=["Use Go"])

    prompt = build_canonical_prompt(parsed, options, PromptTarget.GEMINI_CHATGPT)

    assert prompt.alternatives == []
    assert prompt.file_tree_request == []


def test_search_verification_lines_only_for_perplexity() -> None:
    options = EnhancementOptions(include_search_verification_requirements=True)
    parsed = ParsedPromptInput(goal="Research caching")

    perplexity = build_canonical_prompt(parsed, options, PromptTarget.PERPLEXITY)
    claude = build_canonical_prompt(parsed, options, PromptTarget.CLAUDE)

    for line in SEARCH_VERIFICATION_LINES:
        assert line in perplexity.constraints
        assert line not in claude.constraints


def test_strict_code_option_adds_constraint() -> None:
    options = EnhancementOptions(strict_code_only=True)

    prompt = build_canonical_prompt(
        ParsedPromptInput(goal="Write code"), options, PromptTarget.CLAUDE
    )

    assert STRICT_CODE_CONSTRAINT in prompt.constraints


def test_dedupe_lines_drops_blanks_and_keeps_first_seen() -> None:
    assert dedupe_lines(["B", "", "b ", " A", "a"]) == ["B", "A"]
