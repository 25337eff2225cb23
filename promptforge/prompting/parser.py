"""Recover semantic buckets from rough, free-text task descriptions."""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from ..models import LIST_SECTIONS, ParsedPromptInput
from .constants import CORE_SECTIONS, HEADING_SYNONYMS

_LIST_MARKER = re.compile(r"^(?:[-*•–—]\s+|\d+[.)]\s+)")
_WHITESPACE = re.compile(r"\s+")


def parse_prompt_input(text: str, *, prefer_structured: bool = True) -> ParsedPromptInput:
    """Split ``text`` into goal, context, and list buckets.

    Headings are recognised after stripping markdown hashes, either bare
    (``## Constraints``) or with an inline value (``Objective: ship it``).
    Lines before the first heading are treated as context; when no core
    heading appears at all, the first of those lines becomes the goal.
    """
    buckets: Dict[str, List[str]] = {}
    preamble: List[str] = []
    active: Optional[str] = None
    saw_core_heading = False

    for raw_line in text.splitlines():
        heading = match_heading(raw_line) if prefer_structured else None
        if heading is not None:
            key, inline_value = heading
            active = key
            bucket = buckets.setdefault(key, [])
            if key in CORE_SECTIONS:
                saw_core_heading = True
            if inline_value:
                bucket.append(inline_value)
            continue
        if active is None:
            preamble.append(raw_line)
        else:
            buckets[active].append(raw_line)

    parsed = ParsedPromptInput()
    for name in LIST_SECTIONS:
        setattr(parsed, name, _clean_list(buckets.get(name, [])))

    preamble_lines = _clean_text_lines(preamble)
    if not saw_core_heading:
        if preamble_lines:
            parsed.goal = preamble_lines[0]
            parsed.context = "\n".join(preamble_lines[1:])
        return parsed

    parsed.goal = "\n".join(_clean_text_lines(buckets.get("goal", [])))
    context_lines = _clean_text_lines(buckets.get("context", []))
    parsed.context = "\n".join(preamble_lines + context_lines)
    return parsed


def match_heading(line: str) -> Optional[Tuple[str, str]]:
    """Return ``(bucket, inline_value)`` when ``line`` is a recognised heading."""
    text = line.strip().lstrip("#").strip()
    if not text:
        return None
    name, value = _split_heading(text)
    key = HEADING_SYNONYMS.get(_normalize_heading(name))
    if key is None:
        return None
    return key, value.strip()


def _split_heading(text: str) -> Tuple[str, str]:
    if ":" in text:
        name, value = text.split(":", 1)
        return name, value
    if " - " in text:
        name, value = text.split(" - ", 1)
        return name, value
    return text, ""


def _normalize_heading(name: str) -> str:
    cleaned = name.strip().strip("*_").rstrip(".").lower()
    return _WHITESPACE.sub(" ", cleaned)


def _clean_text_lines(lines: List[str]) -> List[str]:
    return [line.strip() for line in lines if line.strip()]


def _clean_list(lines: List[str]) -> List[str]:
    items: List[str] = []
    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        item = _LIST_MARKER.sub("", stripped, count=1).strip()
        if item:
            items.append(item)
    return items


__all__ = ["match_heading", "parse_prompt_input"]
