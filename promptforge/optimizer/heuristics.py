"""Lexical heuristics and gap analysis over raw prompt text."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import math
import re
from typing import List, Optional, Sequence, Tuple

from ..variables import VARIABLE_PATTERN
from . import sections as sec
from .guards import split_code_fences

AMBIGUITY_TOKENS: Tuple[str, ...] = (
    "improve", "optimize", "enhance", "better", "good", "nice", "robust", "clean",
    "simple", "easy", "fast", "best", "efficient", "some", "various", "etc",
    "and so on", "as needed", "if possible", "ideally", "maybe", "try to",
    "could you", "might",
)
SCOPE_LEAK_TOKENS: Tuple[str, ...] = (
    "everything", "entire", "all of", "full scope", "in its entirety", "complete",
    "any and all",
)
CONSTRAINT_MARKERS: Tuple[str, ...] = (
    "must", "must not", "never", "only", "avoid", "require", "do not", "always",
    "exactly", "at least", "no more than",
)
FORMAT_MARKERS: Tuple[str, ...] = (
    "json", "yaml", "markdown", "csv", "xml", "table", "bullets", "code block",
    "schema", "template", "output format",
)
SCOPE_BOUND_MARKERS: Tuple[str, ...] = (
    "in scope", "out of scope", "scope bounds", "scope", "must not", "do not", "only",
)
HEDGING_NEEDLES: Tuple[str, ...] = (
    "could you", "can you", "please", "try to", "if possible", "maybe", "possibly",
    "ideally", "might", "should probably", "best effort", "as needed", "and so on",
    "etc",
)

HIGH_TOKEN_THRESHOLD = 900
VAGUE_GOAL_CHARS = 60
STRONG_CONSTRAINT_MIN = 2
_SHORT_INPUT_CHARS = 220
_SHORT_INPUT_TOKENS = 120
_SHORT_GOAL_CHARS = 80
_GOAL_SEED_CHARS = 100
_EXAMPLE_LABEL = re.compile(r"example:", re.IGNORECASE)
_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


@dataclass(frozen=True)
class ContradictionRule:
    """A directive pair that cannot both be honoured.

    ``right`` phrases only count outside ``left`` matches, so "do not browse
    the web" does not conflict with itself.
    """

    key: str
    left: Tuple[str, ...]
    right: Tuple[str, ...]
    warning: str


CONTRADICTION_RULES: Tuple[ContradictionRule, ...] = (
    ContradictionRule(
        key="concise_vs_exhaustive",
        left=("concise",),
        right=("exhaustive", "in its entirety", "full detail", "comprehensive"),
        warning="Concise vs exhaustive detail conflict.",
    ),
    ContradictionRule(
        key="no_browsing",
        left=("no browsing", "do not browse", "never browse", "no web", "offline only"),
        right=("search online", "browse the web", "web research", "internet research"),
        warning="No-browsing instruction conflicts with web research request.",
    ),
    ContradictionRule(
        key="no_code",
        left=("no code", "do not write code", "without code"),
        right=("write code", "implement", "patch"),
        warning="No-code instruction conflicts with implementation request.",
    ),
)


@dataclass
class PromptAnalysis:
    """Structural and lexical features of one prompt text."""

    chars: int
    tokens: int
    goal_line: str
    goal_seed: str
    ambiguity_count: int
    scope_leak: bool
    has_goal: bool
    has_constraints: bool
    has_deliverables: bool
    deliverables_enumerated: bool
    deliverable_count: int
    has_output_format: bool
    has_output_template: bool
    has_success_criteria: bool
    has_scope_bounds: bool
    has_questions: bool
    strong_constraints: bool
    known_section_count: int
    examples: int = 0
    placeholders: int = 0
    hedges: List[str] = field(default_factory=list)
    contradictions: List[ContradictionRule] = field(default_factory=list)
    section_keys: List[str] = field(default_factory=list)
    duplicate_lines: bool = False

    @property
    def vague_goal(self) -> bool:
        return len(self.goal_line) < VAGUE_GOAL_CHARS and bool(
            matched_phrases(self.goal_line, AMBIGUITY_TOKENS)
        )

    @property
    def ambiguous(self) -> bool:
        return self.ambiguity_count >= 2 or self.vague_goal

    @property
    def output_contract(self) -> bool:
        return self.has_output_format or self.has_output_template

    @property
    def weak_deliverables(self) -> bool:
        """A deliverables section exists but lists fewer than three items."""
        return self.has_deliverables and self.deliverable_count < 3

    @property
    def in_canonical_order(self) -> bool:
        positions = [sec.CANONICAL_ORDER.index(key) for key in self.section_keys]
        return positions == sorted(positions)

    @property
    def underspecified(self) -> bool:
        short = (
            self.chars <= _SHORT_INPUT_CHARS
            or self.tokens <= _SHORT_INPUT_TOKENS
            or len(self.goal_line) <= _SHORT_GOAL_CHARS
        )
        core_gaps = not (
            self.has_constraints and self.has_success_criteria and self.has_questions
        )
        return (
            short
            and self.known_section_count <= 3
            and core_gaps
            and len(self.goal_seed) <= _GOAL_SEED_CHARS
        )


def estimate_tokens(text: str) -> int:
    """Rough token estimate: one token per four characters, at least one."""
    return max(1, math.ceil(len(text) / 4))


@lru_cache(maxsize=256)
def _phrase_pattern(phrase: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(phrase)}(?!\w)", re.IGNORECASE)


def count_phrases(text: str, phrases: Sequence[str]) -> int:
    return sum(len(_phrase_pattern(phrase).findall(text)) for phrase in phrases)


def matched_phrases(text: str, phrases: Sequence[str]) -> List[str]:
    return [phrase for phrase in phrases if _phrase_pattern(phrase).search(text)]


def contains_keywords(text: str, keywords: Sequence[str]) -> bool:
    """Case-insensitive substring test for every keyword."""
    lowered = text.lower()
    return all(keyword.lower() in lowered for keyword in keywords)


def prose_text(text: str) -> str:
    """``text`` without fenced code blocks."""
    return "".join(chunk for is_code, chunk in split_code_fences(text) if not is_code)


def outside_phrases(line: str, phrases: Sequence[str]) -> List[str]:
    """Split ``line`` around matches of ``phrases``, dropping the matches."""
    if not phrases:
        return [line]
    union = "|".join(re.escape(phrase) for phrase in sorted(phrases, key=len, reverse=True))
    return re.split(rf"(?<!\w)(?:{union})(?!\w)", line, flags=re.IGNORECASE)


def detect_contradictions(text: str) -> List[ContradictionRule]:
    lines = prose_text(text).splitlines()
    found: List[ContradictionRule] = []
    for rule in CONTRADICTION_RULES:
        if not any(matched_phrases(line, rule.left) for line in lines):
            continue
        if any(
            matched_phrases(segment, rule.right)
            for line in lines
            for segment in outside_phrases(line, rule.left)
        ):
            found.append(rule)
    return found


def goal_seed(text: str) -> str:
    """First sentence of the goal body, else of the first prose line."""
    sections = sec.parse_sections(prose_text(text))
    goal = sec.find_section(sections, "goal")
    candidates = goal.content_lines if goal is not None else []
    if not candidates:
        for section in sections:
            candidates = section.content_lines
            if candidates:
                break
    if not candidates:
        return ""
    first_line = sec.strip_list_marker(candidates[0])
    return _SENTENCE_END.split(first_line, maxsplit=1)[0]


def has_duplicate_lines(text: str) -> bool:
    seen: set[str] = set()
    for line in text.split("\n"):
        key = " ".join(line.split()).lower()
        if not key:
            continue
        if key in seen:
            return True
        seen.add(key)
    return False


def analyze(text: str, *, code_blocks: Optional[int] = None) -> PromptAnalysis:
    """Analyse ``text``; ``code_blocks`` overrides the fenced-block count.

    Pass ``code_blocks`` when ``text`` carries shielded placeholders instead of
    its real fences.
    """
    prose = prose_text(text)
    sections = sec.parse_sections(prose)
    keys = [section.key for section in sections[1:] if section.key is not None]
    first_line = next((line.strip() for line in prose.split("\n") if line.strip()), "")

    deliverable_items = sec.section_items(prose, "deliverables")
    output_body = "\n".join(
        "\n".join(section.body) for section in sections if section.key == "output_format"
    )
    has_template = bool(matched_phrases(output_body, FORMAT_MARKERS)) or (
        "output format:" in prose.lower()
    )
    if code_blocks is None:
        code_blocks = sum(1 for is_code, _ in split_code_fences(text) if is_code)

    return PromptAnalysis(
        chars=len(text.strip()),
        tokens=estimate_tokens(text),
        goal_line=first_line,
        goal_seed=goal_seed(text),
        ambiguity_count=count_phrases(prose, AMBIGUITY_TOKENS),
        scope_leak=bool(matched_phrases(prose, SCOPE_LEAK_TOKENS)),
        has_goal="goal" in keys,
        has_constraints="constraints" in keys,
        has_deliverables="deliverables" in keys,
        deliverables_enumerated=bool(deliverable_items),
        deliverable_count=len(deliverable_items),
        has_output_format="output_format" in keys,
        has_output_template=has_template,
        has_success_criteria="success_criteria" in keys,
        has_scope_bounds=bool(matched_phrases(prose, SCOPE_BOUND_MARKERS)),
        has_questions="questions" in keys,
        strong_constraints=count_phrases(prose, CONSTRAINT_MARKERS) >= STRONG_CONSTRAINT_MIN,
        known_section_count=len(keys),
        examples=len(_EXAMPLE_LABEL.findall(prose)) + code_blocks,
        placeholders=len(VARIABLE_PATTERN.findall(prose)),
        hedges=matched_phrases(prose, HEDGING_NEEDLES),
        contradictions=detect_contradictions(text),
        section_keys=keys,
        duplicate_lines=has_duplicate_lines(prose),
    )


__all__ = [
    "AMBIGUITY_TOKENS",
    "CONSTRAINT_MARKERS",
    "CONTRADICTION_RULES",
    "ContradictionRule",
    "FORMAT_MARKERS",
    "HEDGING_NEEDLES",
    "HIGH_TOKEN_THRESHOLD",
    "PromptAnalysis",
    "SCOPE_BOUND_MARKERS",
    "SCOPE_LEAK_TOKENS",
    "analyze",
    "contains_keywords",
    "count_phrases",
    "detect_contradictions",
    "estimate_tokens",
    "goal_seed",
    "has_duplicate_lines",
    "matched_phrases",
    "outside_phrases",
    "prose_text",
]
