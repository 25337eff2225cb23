"""Merge parsed buckets with option-driven defaults into a canonical prompt."""

from __future__ import annotations

import re
from typing import Iterable, List

from ..models import CanonicalPrompt, EnhancementOptions, ParsedPromptInput, PromptTarget
from .constants import (
    DEFAULT_CONTEXT,
    DEFAULT_GOAL,
    MARKDOWN_CONSTRAINT,
    NO_FILLER_CONSTRAINT,
    SEARCH_VERIFICATION_LINES,
    SECTION_DEFAULTS,
    SECTION_GATES,
    STRICT_CODE_CONSTRAINT,
    TARGET_POLICY_LINES,
)

HEADING_TOKEN = re.compile(r"^#{1,6}\s+\S+")


def normalize_line_key(line: str) -> str:
    """Comparison key: whitespace collapsed, case folded."""
    return " ".join(line.split()).casefold()


def dedupe_lines(lines: Iterable[str]) -> List[str]:
    """Drop blank lines and later duplicates under :func:`normalize_line_key`."""
    seen: set[str] = set()
    output: List[str] = []
    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        key = normalize_line_key(stripped)
        if key in seen:
            continue
        seen.add(key)
        output.append(stripped)
    return output


def is_heading_token(text: str) -> bool:
    return bool(HEADING_TOKEN.match(text.strip()))


def option_constraint_lines(options: EnhancementOptions) -> List[str]:
    lines: List[str] = []
    if options.no_conversational_filler:
        lines.append(NO_FILLER_CONSTRAINT)
    if options.enforce_markdown:
        lines.append(MARKDOWN_CONSTRAINT)
    if options.strict_code_only:
        lines.append(STRICT_CODE_CONSTRAINT)
    return lines


def target_constraint_lines(target: PromptTarget, options: EnhancementOptions) -> List[str]:
    lines = [TARGET_POLICY_LINES[target]]
    if target is PromptTarget.PERPLEXITY and options.include_search_verification_requirements:
        lines.extend(SEARCH_VERIFICATION_LINES)
    return lines


def section_enabled(name: str, options: EnhancementOptions) -> bool:
    gate = SECTION_GATES.get(name)
    return gate is None or bool(getattr(options, gate))


def build_canonical_prompt(
    parsed: ParsedPromptInput,
    options: EnhancementOptions,
    target: PromptTarget,
) -> CanonicalPrompt:
    """Apply defaults, policy lines and dedupe; never raises."""
    goal = parsed.goal.strip()
    if not goal or is_heading_token(goal):
        goal = DEFAULT_GOAL
    context = parsed.context.strip() or DEFAULT_CONTEXT

    constraints = dedupe_lines(
        list(parsed.constraints)
        + option_constraint_lines(options)
        + target_constraint_lines(target, options)
    )
    prompt = CanonicalPrompt(goal=goal, context=context, constraints=constraints)

    for name in SECTION_GATES:
        if not section_enabled(name, options):
            setattr(prompt, name, [])
            continue
        lines = dedupe_lines(getattr(parsed, name))
        setattr(prompt, name, lines or list(SECTION_DEFAULTS[name]))
    return prompt


__all__ = [
    "build_canonical_prompt",
    "dedupe_lines",
    "is_heading_token",
    "normalize_line_key",
    "option_constraint_lines",
    "section_enabled",
    "target_constraint_lines",
]
