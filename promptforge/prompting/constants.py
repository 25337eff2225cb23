"""Shared constants for parsing, defaulting, and rendering prompts."""

from __future__ import annotations

from ..models import PromptTarget

CORE_SECTIONS: frozenset[str] = frozenset({"goal", "context", "constraints", "deliverables"})

HEADING_SYNONYMS: dict[str, str] = {
    "goal": "goal",
    "objective": "goal",
    "task": "goal",
    "scenario": "goal",
    "mission": "goal",
    "purpose": "goal",
    "context": "context",
    "background": "context",
    "notes": "context",
    "assumptions": "assumptions",
    "assumption": "assumptions",
    "file tree": "file_tree_request",
    "file tree request": "file_tree_request",
    "files": "file_tree_request",
    "constraints": "constraints",
    "constraint": "constraints",
    "guardrails": "constraints",
    "rules": "constraints",
    "requirements": "constraints",
    "requirement": "constraints",
    "deliverables": "deliverables",
    "deliverable": "deliverables",
    "output": "deliverables",
    "outputs": "deliverables",
    "implementation": "implementation_details",
    "implementation details": "implementation_details",
    "implementation notes": "implementation_details",
    "approach": "implementation_details",
    "verification": "verification_checklist",
    "verification checklist": "verification_checklist",
    "checklist": "verification_checklist",
    "risks": "risks_and_edge_cases",
    "edge cases": "risks_and_edge_cases",
    "risks and edge cases": "risks_and_edge_cases",
    "risks & edge cases": "risks_and_edge_cases",
    "alternatives": "alternatives",
    "alternative approaches": "alternatives",
    "validation": "validation_steps",
    "validation steps": "validation_steps",
    "testing": "validation_steps",
    "rollback plan": "revert_plan",
    "revert plan": "revert_plan",
    "rollback": "revert_plan",
    "revert": "revert_plan",
}

SECTION_TITLES: dict[str, str] = {
    "goal": "Goal",
    "context": "Context",
    "assumptions": "Assumptions",
    "file_tree_request": "File Tree Request",
    "constraints": "Constraints",
    "deliverables": "Deliverables",
    "implementation_details": "Implementation Details",
    "verification_checklist": "Verification Checklist",
    "risks_and_edge_cases": "Risks and Edge Cases",
    "alternatives": "Alternatives",
    "validation_steps": "Validation Steps",
    "revert_plan": "Revert Plan",
}

# Optional list sections and the option attribute that gates each one.
# ``None`` means the section is always emitted.
SECTION_GATES: dict[str, str | None] = {
    "assumptions": None,
    "file_tree_request": "add_file_tree_request",
    "deliverables": None,
    "implementation_details": None,
    "verification_checklist": "include_verification_checklist",
    "risks_and_edge_cases": "include_risks_and_edge_cases",
    "alternatives": "include_alternatives",
    "validation_steps": "include_validation_steps",
    "revert_plan": "include_revert_plan",
}

SECTION_DEFAULTS: dict[str, tuple[str, str]] = {
    "assumptions": (
        "State any assumptions about the environment before acting.",
        "Flag missing information instead of inventing details.",
    ),
    "file_tree_request": (
        "Show the relevant file tree before proposing changes.",
        "Mark each listed file as new or modified.",
    ),
    "deliverables": (
        "Provide the complete requested output.",
        "Summarize the result and how to verify it.",
    ),
    "implementation_details": (
        "Describe the implementation approach step by step.",
        "Reference concrete files and commands where relevant.",
    ),
    "verification_checklist": (
        "Confirm every deliverable is present and complete.",
        "Confirm every constraint was respected.",
    ),
    "risks_and_edge_cases": (
        "List edge cases that could break the solution.",
        "Describe how each risk is mitigated.",
    ),
    "alternatives": (
        "Mention viable alternative approaches briefly.",
        "Explain why the chosen approach is preferred.",
    ),
    "validation_steps": (
        "List the commands or checks that validate the result.",
        "State the expected outcome of each check.",
    ),
    "revert_plan": (
        "Describe how to revert the change safely.",
        "Identify the state to restore if validation fails.",
    ),
}

DEFAULT_GOAL = "Define and complete the requested task precisely."
DEFAULT_CONTEXT = "No additional context provided."

NO_FILLER_CONSTRAINT = (
    "Respond only with the requested output. Do not apologize or use conversational filler."
)
MARKDOWN_CONSTRAINT = "Use strict markdown structure and headings exactly as specified."
STRICT_CODE_CONSTRAINT = "Output strict code or configuration only when code is requested."

TARGET_POLICY_LINES: dict[PromptTarget, str] = {
    PromptTarget.CLAUDE: "Optimize structure for direct consumption by Claude.",
    PromptTarget.GEMINI_CHATGPT: "Use strict markdown hierarchy with concise, actionable language.",
    PromptTarget.PERPLEXITY: "Optimize for search-grounded synthesis with explicit verification.",
    PromptTarget.AGENTIC_IDE: "Use deterministic file-writing instructions with explicit command order.",
}

SEARCH_VERIFICATION_LINES: tuple[str, str] = (
    "Search for primary sources before final synthesis and cite them inline as markdown links.",
    "If evidence conflicts, summarize the conflict and state your confidence.",
)

AGENTIC_SCAFFOLD: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "Proposed File Changes",
        ("List every file to create or modify with a one-line rationale.",),
    ),
    (
        "Patch Plan",
        ("Describe each patch as a minimal, file-scoped change.",),
    ),
    (
        "Execution Order",
        ("Number the steps in the exact order they must run.",),
    ),
    (
        "Build/Run Commands",
        ("List build and run commands in execution order.",),
    ),
    (
        "Git/Revert Plan",
        ("Commit in reviewable slices and name the command that reverts each one.",),
    ),
    (
        "Validation Commands",
        (
            "Run focused tests first.",
            "Run the full suite only if focused tests pass.",
        ),
    ),
    (
        "Rollback Plan",
        ("Describe how to restore the previous working state if validation fails.",),
    ),
)


__all__ = [
    "AGENTIC_SCAFFOLD",
    "CORE_SECTIONS",
    "DEFAULT_CONTEXT",
    "DEFAULT_GOAL",
    "HEADING_SYNONYMS",
    "MARKDOWN_CONSTRAINT",
    "NO_FILLER_CONSTRAINT",
    "SEARCH_VERIFICATION_LINES",
    "SECTION_DEFAULTS",
    "SECTION_GATES",
    "SECTION_TITLES",
    "STRICT_CODE_CONSTRAINT",
    "TARGET_POLICY_LINES",
]
