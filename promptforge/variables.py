"""Detection and substitution of `{token}` placeholders."""

from __future__ import annotations

import re
from typing import List, Mapping

from .models import VariableResolution

VARIABLE_PATTERN = re.compile(r"\{([A-Za-z0-9_-]+)\}")


def detect(text: str) -> List[str]:
    """Return unique placeholder names in first-seen order."""
    ordered: List[str] = []
    seen: set[str] = set()
    for match in VARIABLE_PATTERN.finditer(text):
        name = match.group(1)
        if name not in seen:
            seen.add(name)
            ordered.append(name)
    return ordered


def resolve(text: str, values: Mapping[str, str]) -> VariableResolution:
    """Substitute every placeholder with its trimmed, non-blank value.

    Tokens are consumed left to right from a single scan, so adjacent tokens
    such as ``{a}{b}`` resolve independently. A blank or missing value leaves
    the literal token in place and records its name in ``unfilled``.
    """
    detected: List[str] = []
    unfilled: List[str] = []
    pieces: List[str] = []
    cursor = 0
    for match in VARIABLE_PATTERN.finditer(text):
        pieces.append(text[cursor : match.start()])
        name = match.group(1)
        if name not in detected:
            detected.append(name)
        raw_value = values.get(name)
        value = raw_value.strip() if isinstance(raw_value, str) else ""
        if value:
            pieces.append(value)
        else:
            pieces.append(match.group(0))
            if name not in unfilled:
                unfilled.append(name)
        cursor = match.end()
    pieces.append(text[cursor:])
    return VariableResolution(resolved_text="".join(pieces), detected=detected, unfilled=unfilled)


__all__ = ["VARIABLE_PATTERN", "detect", "resolve"]
