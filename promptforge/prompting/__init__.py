"""Parsing, canonical building, and per-target rendering of prompts."""

from .builder import build_canonical_prompt, dedupe_lines, normalize_line_key
from .parser import parse_prompt_input
from .renderers import find_order_violation, render_prompt, required_markers, validate_order

__all__ = [
    "build_canonical_prompt",
    "dedupe_lines",
    "find_order_violation",
    "normalize_line_key",
    "parse_prompt_input",
    "render_prompt",
    "required_markers",
    "validate_order",
]
