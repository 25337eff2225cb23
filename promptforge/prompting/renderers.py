"""Per-target layouts for canonical prompts and their order validation."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..models import CanonicalPrompt, EnhancementOptions, PromptTarget
from .builder import section_enabled
from .constants import AGENTIC_SCAFFOLD, SECTION_TITLES

HEADING_ORDER: tuple[str, ...] = (
    "assumptions",
    "file_tree_request",
    "goal",
    "context",
    "constraints",
    "deliverables",
    "implementation_details",
    "verification_checklist",
    "risks_and_edge_cases",
    "alternatives",
    "validation_steps",
    "revert_plan",
)

_CONTEXT_WRAPPED: tuple[str, ...] = ("assumptions", "file_tree_request")
_DELIVERABLES_WRAPPED: tuple[str, ...] = (
    "deliverables",
    "implementation_details",
    "verification_checklist",
    "risks_and_edge_cases",
    "alternatives",
    "validation_steps",
    "revert_plan",
)
TAG_ORDER: tuple[str, ...] = ("objective", "context", "constraints", "deliverables")


def bulletize(lines: Sequence[str]) -> str:
    return "\n".join(f"- {line}" for line in lines)


def heading(title: str) -> str:
    return f"### {title}"


def render_tag_wrapped(prompt: CanonicalPrompt, options: EnhancementOptions) -> str:
    """Wrap objective, context, constraints and deliverables in XML-style tags."""
    context_parts: List[str] = []
    for name in _CONTEXT_WRAPPED:
        lines = _enabled_lines(prompt, name, options)
        if lines:
            context_parts.append(f"{SECTION_TITLES[name]}:\n{bulletize(lines)}")
    context_parts.append(f"{SECTION_TITLES['context']}:\n{prompt.context}")

    deliverable_parts: List[str] = []
    for name in _DELIVERABLES_WRAPPED:
        lines = _enabled_lines(prompt, name, options)
        if lines:
            deliverable_parts.append(f"{SECTION_TITLES[name]}:\n{bulletize(lines)}")

    blocks = [
        _wrap("objective", prompt.goal),
        _wrap("context", "\n\n".join(context_parts)),
        _wrap("constraints", bulletize(prompt.constraints)),
        _wrap("deliverables", "\n\n".join(deliverable_parts)),
    ]
    return "\n\n".join(blocks)


def render_heading_style(prompt: CanonicalPrompt, options: EnhancementOptions) -> str:
    """Sequential ``### Heading`` blocks in the fixed section order."""
    return "\n\n".join(f"{heading(title)}\n{body}" for title, body in _heading_blocks(prompt, options))


def render_agentic(prompt: CanonicalPrompt, options: EnhancementOptions) -> str:
    """Heading style followed by the operational scaffold, which is always present."""
    blocks = [f"{heading(title)}\n{body}" for title, body in _heading_blocks(prompt, options)]
    for title, lines in AGENTIC_SCAFFOLD:
        blocks.append(f"{heading(title)}\n{bulletize(lines)}")
    return "\n\n".join(blocks)


_RENDERERS: Dict[PromptTarget, Callable[[CanonicalPrompt, EnhancementOptions], str]] = {
    PromptTarget.CLAUDE: render_tag_wrapped,
    PromptTarget.GEMINI_CHATGPT: render_heading_style,
    PromptTarget.PERPLEXITY: render_heading_style,
    PromptTarget.AGENTIC_IDE: render_agentic,
}


def render_prompt(
    prompt: CanonicalPrompt, options: EnhancementOptions, target: PromptTarget
) -> str:
    return _RENDERERS[target](prompt, options)


def required_markers(target: PromptTarget, options: EnhancementOptions) -> List[str]:
    """Headings or opening tags the target layout must contain, in order."""
    if target is PromptTarget.CLAUDE:
        return [f"<{tag}>" for tag in TAG_ORDER]
    markers = [
        heading(SECTION_TITLES[name]) for name in HEADING_ORDER if section_enabled(name, options)
    ]
    if target is PromptTarget.AGENTIC_IDE:
        markers.extend(heading(title) for title, _ in AGENTIC_SCAFFOLD)
    return markers


def find_order_violation(text: str, markers: Sequence[str]) -> Optional[str]:
    """Return the first marker missing after the previous one, or ``None``.

    Each marker must occupy a whole line. The search cursor only moves
    forward, so a marker that appears solely before its predecessor fails.
    """
    lines = [line.strip() for line in text.splitlines()]
    cursor = 0
    for marker in markers:
        try:
            index = lines.index(marker, cursor)
        except ValueError:
            return marker
        cursor = index + 1
    return None


def validate_order(text: str, markers: Sequence[str]) -> bool:
    return find_order_violation(text, markers) is None


def _heading_blocks(
    prompt: CanonicalPrompt, options: EnhancementOptions
) -> List[Tuple[str, str]]:
    blocks: List[Tuple[str, str]] = []
    for name in HEADING_ORDER:
        title = SECTION_TITLES[name]
        if name == "goal":
            blocks.append((title, prompt.goal))
        elif name == "context":
            blocks.append((title, prompt.context))
        elif name == "constraints":
            blocks.append((title, bulletize(prompt.constraints)))
        else:
            lines = _enabled_lines(prompt, name, options)
            if lines:
                blocks.append((title, bulletize(lines)))
    return blocks


def _enabled_lines(
    prompt: CanonicalPrompt, name: str, options: EnhancementOptions
) -> List[str]:
    if not section_enabled(name, options):
        return []
    return prompt.section(name)


def _wrap(tag: str, body: str) -> str:
    return f"<{tag}>\n{body}\n</{tag}>"


__all__ = [
    "HEADING_ORDER",
    "TAG_ORDER",
    "bulletize",
    "find_order_violation",
    "heading",
    "render_agentic",
    "render_heading_style",
    "render_prompt",
    "render_tag_wrapped",
    "required_markers",
    "validate_order",
]
