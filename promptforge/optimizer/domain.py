"""Fixed policy lines injected per (scenario, target) pair."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..models import PromptTarget
from .knowledge import RELIABLE_TOOL_THRESHOLD, ModelFamily, ScenarioProfile, profile_for

GATE_SECTIONS: Tuple[str, ...] = (
    "goal",
    "constraints",
    "deliverables",
    "output_format",
    "success_criteria",
)

VALIDATION_DELIVERABLE = "Provide deterministic validation evidence for each major requirement."

SCOPE_BOUND_LINES: Tuple[str, ...] = (
    "- Limit work to the explicit request only.",
    "- Do not expand scope to unrelated systems or files.",
    "- Avoid optional extras unless explicitly requested.",
)

QUESTION_LINES: Tuple[str, ...] = (
    "- What is the exact target output and intended audience?",
    "- What constraints (time, tools, style, depth) are mandatory?",
    "- What should be considered out of scope?",
)

GATE_QUESTION_LINES: Tuple[str, ...] = (
    "- Which acceptance checks are mandatory?",
    "- Which files/systems are strictly out of scope?",
)

SUCCESS_CRITERIA_LINES: Tuple[str, ...] = (
    "- Every requested section is present and complete.",
    "- Instructions are specific, testable, and unambiguous.",
    "- Output follows the required structure exactly.",
)

CONSTRAINT_LINES: Tuple[str, ...] = (
    "- Keep behavior deterministic and reproducible.",
    "- Preserve fenced code blocks and protected literals exactly.",
)

CONTEXT_LINES: Tuple[str, ...] = ("Use only the context provided in this prompt.",)

FALLBACK_GOAL = "Clarify the exact task and required output before execution."


@dataclass
class DomainPolicy:
    """Keywords a finished prompt should carry and the sections that supply them."""

    keywords: List[str] = field(default_factory=list)
    gate_sections: List[str] = field(default_factory=lambda: list(GATE_SECTIONS))
    supplements: List[Tuple[str, List[str]]] = field(default_factory=list)


def output_format_lines(scenario: ScenarioProfile) -> List[str]:
    if scenario is ScenarioProfile.JSON:
        return [
            "Return JSON only.",
            "No markdown, no prose, no code fences.",
            "Use a stable object schema with deterministic key order.",
        ]
    if scenario is ScenarioProfile.CLI:
        return [
            "Return shell commands only unless explanation is explicitly requested.",
            "Commands must be copy/paste runnable.",
            "Use at most one shell comment line when a note is unavoidable.",
        ]
    if scenario is ScenarioProfile.IDE_CODING:
        return [
            "Use markdown headings in this order: Plan, Unified Diff, Tests, Validation Commands.",
            "Keep patch scope minimal and deterministic.",
            "List exact files and test commands.",
        ]
    if scenario is ScenarioProfile.TOOL_AGENT:
        return [
            "Use sections: Plan, Tool Calls, Observations, Final Output.",
            "Emit tool calls only when required data is missing.",
            "Use explicit argument payloads for every tool call.",
        ]
    return [
        "Use this markdown template exactly:",
        "1. Summary: <one paragraph>",
        "2. Deliverables:",
        "   - <item 1>",
        "   - <item 2>",
        "3. Validation:",
        "   - <check 1>",
        "   - <check 2>",
    ]


def default_deliverables(scenario: ScenarioProfile) -> List[str]:
    if scenario is ScenarioProfile.CLI:
        return [
            "Provide exact copy/paste shell commands in execution order.",
            "Mark any optional command as explicit optional follow-up.",
            "Include a deterministic verification command sequence.",
        ]
    if scenario is ScenarioProfile.JSON:
        return [
            "Return one valid JSON object that matches the required schema.",
            "Keep key names stable and deterministic.",
            "Include validation notes only as JSON fields when requested.",
        ]
    if scenario is ScenarioProfile.IDE_CODING:
        return [
            "Produce an ordered plan and targeted patch summary.",
            "List exact tests to add/update.",
            "Provide deterministic validation commands.",
        ]
    return [
        "Provide the primary requested artifact.",
        "Provide ordered implementation steps.",
        "Provide validation evidence for completion.",
    ]


def domain_policy(
    scenario: ScenarioProfile,
    target: Optional[PromptTarget] = None,
    family: Optional[ModelFamily] = None,
) -> DomainPolicy:
    policy = DomainPolicy()

    if scenario is ScenarioProfile.CLI:
        policy.keywords += ["shell commands only", "copy/paste runnable"]
        policy.supplements.append((
            "constraints",
            [
                "- Return shell commands only unless explanation is requested.",
                "- Keep commands deterministic and executable as written.",
            ],
        ))
    elif scenario is ScenarioProfile.JSON:
        policy.keywords += ["json", "no markdown"]
        policy.supplements.append((
            "output_format",
            ["Return JSON only.", "No markdown, no prose, no code fences."],
        ))
    elif scenario is ScenarioProfile.IDE_CODING:
        policy.keywords += ["Unified Diff", "Validation Commands"]
        policy.supplements.append((
            "constraints",
            [
                "- Keep patch scope minimal and deterministic.",
                "- Include changed files and deterministic test/validation steps.",
            ],
        ))
    elif scenario is ScenarioProfile.RESEARCH:
        policy.keywords += ["Citations", "Confidence"]
        policy.supplements.append((
            "output_format",
            [
                "Use sections: Summary, Citations, Confidence.",
                "Citations must include source URLs.",
                "Assign confidence labels: High/Medium/Low.",
            ],
        ))
    elif scenario is ScenarioProfile.TOOL_AGENT:
        policy.gate_sections.append("questions")
        reliable = family is None or profile_for(family).tool_reliability >= RELIABLE_TOOL_THRESHOLD
        if reliable:
            policy.keywords += ["Plan", "Tool Calls", "Final Output"]
            policy.supplements.append((
                "output_format",
                [
                    "Use sections: Plan, Tool Calls, Observations, Final Output.",
                    "Keep each tool call explicit and minimal.",
                ],
            ))
        else:
            policy.keywords += ["Plan", "Manual Steps", "Checkpoints"]
            policy.supplements.append((
                "output_format",
                [
                    "Use sections: Plan, Manual Steps, Checkpoints, Final Output.",
                    "Describe each step for manual execution; do not emit tool calls.",
                ],
            ))
    elif scenario is ScenarioProfile.LONGFORM:
        policy.keywords += ["outline", "narrative continuity"]
        policy.supplements.append((
            "success_criteria",
            [
                "- Includes coherent outline and narrative continuity.",
                "- Maintains tone consistency across sections.",
            ],
        ))
    else:
        policy.keywords += ["deterministic", "validation"]

    if target is PromptTarget.PERPLEXITY:
        policy.keywords += ["primary sources", "URL"]
        policy.supplements.append((
            "constraints",
            [
                "- Cite primary sources with direct URLs.",
                "- Separate confirmed facts from assumptions.",
            ],
        ))
    elif target is PromptTarget.AGENTIC_IDE:
        policy.keywords += ["Proposed File Changes", "Validation Commands"]
        policy.supplements.append((
            "file_changes",
            [
                "1. List touched files and purpose.",
                "2. Keep edits minimal and reversible.",
            ],
        ))

    policy.keywords = list(dict.fromkeys(policy.keywords))
    return policy


__all__ = [
    "CONSTRAINT_LINES",
    "CONTEXT_LINES",
    "DomainPolicy",
    "FALLBACK_GOAL",
    "GATE_QUESTION_LINES",
    "GATE_SECTIONS",
    "QUESTION_LINES",
    "SCOPE_BOUND_LINES",
    "SUCCESS_CRITERIA_LINES",
    "VALIDATION_DELIVERABLE",
    "default_deliverables",
    "domain_policy",
    "output_format_lines",
]
