"""Markdown-ish section parsing and editing for the rewrite path.

All helpers are ``str -> str`` and keep untouched lines byte-identical:
sections hold their raw lines, and rendering joins them back with ``\\n``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Dict, List, Optional, Sequence, Tuple

SECTION_ALIASES: Dict[str, str] = {
    "goal": "goal",
    "objective": "goal",
    "task": "goal",
    "context": "context",
    "background": "context",
    "requirements": "requirements",
    "requirement": "requirements",
    "spec": "requirements",
    "specification": "requirements",
    "constraints": "constraints",
    "constraint": "constraints",
    "guardrails": "constraints",
    "rules": "constraints",
    "scope": "scope",
    "scope bounds": "scope",
    "deliverables": "deliverables",
    "deliverable": "deliverables",
    "proposed file changes": "file_changes",
    "file changes": "file_changes",
    "output format": "output_format",
    "output contract": "output_format",
    "response format": "output_format",
    "format": "output_format",
    "validation commands": "validation_commands",
    "questions": "questions",
    "clarifying questions": "questions",
    "open questions": "questions",
    "success criteria": "success_criteria",
    "acceptance criteria": "success_criteria",
    "definition of done": "success_criteria",
}

CANONICAL_ORDER: Tuple[str, ...] = (
    "goal",
    "context",
    "requirements",
    "constraints",
    "scope",
    "deliverables",
    "file_changes",
    "output_format",
    "validation_commands",
    "questions",
    "success_criteria",
)

SECTION_TITLES: Dict[str, str] = {
    "goal": "Goal",
    "context": "Context",
    "requirements": "Requirements",
    "constraints": "Constraints",
    "scope": "Scope Bounds",
    "deliverables": "Deliverables",
    "file_changes": "Proposed File Changes",
    "output_format": "Output Format",
    "validation_commands": "Validation Commands",
    "questions": "Questions",
    "success_criteria": "Success Criteria",
}

_MARKDOWN_HEADING = re.compile(r"^\s{0,3}#{1,6}\s+(.+?)\s*#*\s*$")
_BOLD_HEADING = re.compile(r"^\s*\*\*(.+?)\*\*\s*:?\s*$")
_LABEL_HEADING = re.compile(r"^\s*([A-Za-z][A-Za-z /&-]{1,40}):\s*$")
_LIST_ITEM = re.compile(r"^\s*(?:[-*•]\s+|\d+[.)]\s+)(.*)$")
_ENUMERATED_ITEM = re.compile(r"^\s*\d+[.)]\s+")


@dataclass
class Section:
    """A heading line (``None`` for the preamble) and its raw body lines."""

    key: Optional[str]
    heading: Optional[str]
    body: List[str] = field(default_factory=list)

    @property
    def content_lines(self) -> List[str]:
        return [line for line in self.body if line.strip()]

    @property
    def items(self) -> List[str]:
        """Body list items with their markers stripped."""
        items: List[str] = []
        for line in self.body:
            match = _LIST_ITEM.match(line)
            if match and match.group(1).strip():
                items.append(match.group(1).strip())
        return items


def classify_heading(line: str) -> Optional[Tuple[Optional[str], str]]:
    """Return ``(key, title)`` for heading lines; ``key`` is ``None`` when unrecognised.

    Markdown and bold headings always count as headings. A bare ``Label:``
    line only counts when the label is a known alias.
    """
    for pattern, require_alias in (
        (_MARKDOWN_HEADING, False),
        (_BOLD_HEADING, False),
        (_LABEL_HEADING, True),
    ):
        match = pattern.match(line)
        if not match:
            continue
        title = match.group(1).strip().rstrip(":").strip()
        key = SECTION_ALIASES.get(" ".join(title.lower().split()))
        if key is None and require_alias:
            return None
        return key, title
    return None


def parse_sections(text: str) -> List[Section]:
    sections: List[Section] = [Section(key=None, heading=None)]
    for line in text.split("\n"):
        heading = classify_heading(line)
        if heading is None:
            sections[-1].body.append(line)
            continue
        key, _ = heading
        sections.append(Section(key=key, heading=line))
    return sections


def render_sections(sections: Sequence[Section]) -> str:
    lines: List[str] = []
    for section in sections:
        if section.heading is not None:
            lines.append(section.heading)
        lines.extend(section.body)
    return "\n".join(lines)


def find_section(sections: Sequence[Section], key: str) -> Optional[Section]:
    for section in sections:
        if section.key == key:
            return section
    return None


def has_section(text: str, key: str) -> bool:
    section = find_section(parse_sections(text), key)
    return section is not None


def section_items(text: str, key: str) -> List[str]:
    items: List[str] = []
    for section in parse_sections(text):
        if section.key == key:
            items.extend(section.items)
    return items


def is_enumerated(text: str, key: str) -> bool:
    """True when the section has at least one list item."""
    return bool(section_items(text, key))


def has_numbered_items(text: str, key: str) -> bool:
    for section in parse_sections(text):
        if section.key == key and any(_ENUMERATED_ITEM.match(line) for line in section.body):
            return True
    return False


def append_to_section(text: str, key: str, lines: Sequence[str]) -> str:
    """Merge ``lines`` into the first section with ``key``, or add that section at the end.

    Lines already present (whitespace/case-insensitive) are skipped.
    """
    sections = parse_sections(text)
    existing = find_section(sections, key)
    if existing is None:
        return _append_block(text, key, lines)
    known = {_line_key(line) for line in existing.body}
    new_lines = [line for line in lines if _line_key(line) not in known]
    if not new_lines:
        return text
    insert_at = _last_content_index(existing.body) + 1
    existing.body[insert_at:insert_at] = list(new_lines)
    return render_sections(sections)


def append_missing_section(text: str, key: str, lines: Sequence[str]) -> str:
    if has_section(text, key):
        return text
    return _append_block(text, key, lines)


def replace_section_body(text: str, key: str, lines: Sequence[str]) -> str:
    sections = parse_sections(text)
    existing = find_section(sections, key)
    if existing is None:
        return _append_block(text, key, lines)
    trailing = existing.body[_last_content_index(existing.body) + 1 :]
    existing.body = list(lines) + trailing
    return render_sections(sections)


def ensure_goal_heading(text: str, fallback_goal: str) -> str:
    """Promote the preamble to a ``### Goal`` section when no goal heading exists."""
    sections = parse_sections(text)
    if find_section(sections, "goal") is not None:
        return text
    preamble = sections[0]
    if preamble.content_lines:
        first = next(index for index, line in enumerate(preamble.body) if line.strip())
        preamble.body.insert(first, heading_line("goal"))
        return render_sections(sections)
    block = f"{heading_line('goal')}\n{fallback_goal}"
    remainder = text.lstrip("\n")
    return f"{block}\n\n{remainder}" if remainder else block


def canonicalize(text: str) -> str:
    """Rebuild ``text`` as ``### Title`` sections in canonical order.

    Bodies of repeated headings are merged. The preamble becomes the goal when
    there is no goal section, otherwise it leads the context. Unrecognised
    headed sections follow the canonical ones in their original order.
    """
    sections = parse_sections(text)
    preamble = _trim_blank(sections[0].body)
    merged: Dict[str, List[str]] = {}
    unknown: List[Section] = []
    for section in sections[1:]:
        if section.key is None:
            unknown.append(section)
            continue
        body = _trim_blank(section.body)
        bucket = merged.setdefault(section.key, [])
        if bucket and body:
            bucket.append("")
        bucket.extend(body)

    if preamble:
        if "goal" not in merged:
            merged["goal"] = preamble
        else:
            context = merged.get("context", [])
            merged["context"] = preamble + ([""] + context if context else [])

    blocks: List[str] = []
    for key in CANONICAL_ORDER:
        body = merged.get(key)
        if body:
            blocks.append("\n".join([heading_line(key)] + body))
    for section in unknown:
        body = _trim_blank(section.body)
        blocks.append("\n".join([section.heading or ""] + body))
    return "\n\n".join(blocks)


def heading_line(key: str) -> str:
    return f"### {SECTION_TITLES[key]}"


def strip_list_marker(line: str) -> str:
    match = _LIST_ITEM.match(line)
    return match.group(1).strip() if match else line.strip()


def _append_block(text: str, key: str, lines: Sequence[str]) -> str:
    block = "\n".join([heading_line(key)] + list(lines))
    stripped = text.rstrip()
    if not stripped:
        return block
    return f"{stripped}\n\n{block}"


def _last_content_index(lines: Sequence[str]) -> int:
    for index in range(len(lines) - 1, -1, -1):
        if lines[index].strip():
            return index
    return -1


def _trim_blank(lines: Sequence[str]) -> List[str]:
    items = list(lines)
    while items and not items[0].strip():
        items.pop(0)
    while items and not items[-1].strip():
        items.pop()
    return items


def _line_key(line: str) -> str:
    return " ".join(strip_list_marker(line).split()).casefold()


__all__ = [
    "CANONICAL_ORDER",
    "SECTION_ALIASES",
    "SECTION_TITLES",
    "Section",
    "append_missing_section",
    "append_to_section",
    "canonicalize",
    "classify_heading",
    "ensure_goal_heading",
    "find_section",
    "has_numbered_items",
    "has_section",
    "heading_line",
    "is_enumerated",
    "parse_sections",
    "render_sections",
    "replace_section_body",
    "section_items",
    "strip_list_marker",
]
