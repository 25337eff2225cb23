"""Candidate-based prompt rewriting with an anti-regression gate.

The optimizer never edits the caller's text in place. It shields protected
spans, runs a handful of transform plans chosen from a gap analysis, scores
every candidate against the untouched baseline and only promotes a rewrite
that is both better scored and structurally richer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..logging import get_logger
from ..models import PromptTarget
from . import sections as sec
from .domain import (
    CONSTRAINT_LINES,
    CONTEXT_LINES,
    FALLBACK_GOAL,
    GATE_QUESTION_LINES,
    QUESTION_LINES,
    SCOPE_BOUND_LINES,
    SUCCESS_CRITERIA_LINES,
    VALIDATION_DELIVERABLE,
    DomainPolicy,
    default_deliverables,
    domain_policy,
    output_format_lines,
)
from .guards import shield
from .heuristics import (
    HIGH_TOKEN_THRESHOLD,
    PromptAnalysis,
    analyze,
    contains_keywords,
    detect_contradictions,
    prose_text,
)
from .knowledge import ModelFamily, ScenarioProfile
from .weights import OptimizerWeights, resolve_weights

logger = get_logger("optimizer")

MAX_CANDIDATES = 16
MIN_SCORE_GAIN = 1
MIN_STRUCTURAL_GAIN = 2
MAX_GROWTH_RATIO = 1.8
INFLATED_MIN_GAIN = 4
BASELINE_TITLE = "0 Baseline"

WELL_STRUCTURED_WARNING = "Anti-regression: input already well-structured; baseline retained."
FALLBACK_WARNING = "Anti-regression fallback: baseline retained due to insufficient structural gain"
SCOPE_LEAK_WARNING = "Scope leak terms remain; consider tightening bounds explicitly."

_ACTION_OBJECT = re.compile(
    r"\b(fix|implement|refactor|write|create|update|remove|migrate|optimize|document|test"
    r"|benchmark|deploy|analyze|summarize|research|design|build)\b\s+([^\n.,;:]{2,120})",
    re.IGNORECASE,
)
_LINE_PREFIX = re.compile(r"^(\s*(?:[-*•]\s+|\d+[.)]\s+)?)(.*)$")
_PLACEHOLDER_LINE = re.compile(r"^\s*__PF_BLOCK_\d+__\s*$")
_SENTENCE_REPLACEMENTS: Tuple[Tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), replacement)
    for pattern, replacement in (
        (r"(?<!\w)could you(?!\w)", ""),
        (r"(?<!\w)can you(?!\w)", ""),
        (r"(?<!\w)please(?!\w)", ""),
        (r"(?<!\w)try to(?!\w)", ""),
        (r"(?<!\w)if possible(?!\w)", "when required"),
        (r"(?<!\w)maybe(?!\w)", ""),
        (r"(?<!\w)possibly(?!\w)", ""),
        (r"(?<!\w)ideally(?!\w)", "required"),
        (r"(?<!\w)should probably(?!\w)", "must"),
        (r"(?<!\w)might(?!\w)", "must"),
        (r"(?<!\w)best effort(?!\w)", "strictly follow requirements"),
        (r"(?<!\w)as needed(?!\w)", "when required"),
        (r"(?<!\w)and so on(?!\w)", "with explicit items only"),
        (r"(?<!\w)etc\.?", "with explicit items only"),
    )
)

# Rewrite for the conflicting side, plus the section lines that pin the resolution.
_CONTRADICTION_RESOLUTIONS: Dict[str, Tuple[str, str, Tuple[str, ...]]] = {
    "concise_vs_exhaustive": (
        "scope-complete",
        "constraints",
        ("- Keep output concise while remaining scope-complete.",),
    ),
    "no_browsing": (
        "use provided/local sources only",
        "constraints",
        ("- Use provided/local sources only; do not browse online sources.",),
    ),
    "no_code": (
        "provide a non-code implementation plan",
        "deliverables",
        (
            "1. Provide a non-code implementation plan.",
            "2. Provide validation steps without executable code.",
        ),
    ),
}


class Transform(str, Enum):
    CONTRADICTION_REPAIR = "Contradiction Repair"
    SENTENCE_REWRITE = "Sentence Rewrite"
    CANONICALIZE = "Canonicalize"
    DELIVERABLES = "Deliverables"
    OUTPUT_FORMAT = "Output Format"
    SUCCESS_CRITERIA = "Success Criteria"
    SCOPE_BOUNDS = "Scope Bounds"
    QUESTIONS = "Questions"
    DOMAIN_PACK = "Domain Pack"
    QUALITY_GATE = "Quality Gate"
    DEDUPE = "Dedupe"


_FORMAT_BUNDLE = (
    Transform.DELIVERABLES,
    Transform.OUTPUT_FORMAT,
    Transform.SUCCESS_CRITERIA,
    Transform.QUESTIONS,
    Transform.QUALITY_GATE,
)


@dataclass
class OptimizationContext:
    """Per-call settings shared by every transform and the scorer."""

    scenario: ScenarioProfile = ScenarioProfile.GENERAL
    target: Optional[PromptTarget] = None
    family: Optional[ModelFamily] = None
    underspecified: bool = False
    policy: DomainPolicy = field(default_factory=DomainPolicy)


@dataclass
class ScoreResult:
    score: int
    breakdown: Dict[str, int] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


@dataclass
class Candidate:
    title: str
    text: str
    transforms: Tuple[Transform, ...] = ()


@dataclass
class HeuristicResult:
    """Outcome of one optimization run."""

    optimized_text: str
    selected_title: str
    score: int
    breakdown: Dict[str, int]
    warnings: List[str]
    weights: OptimizerWeights
    weights_source: str
    candidate_count: int = 1

    @property
    def changed(self) -> bool:
        return self.selected_title != BASELINE_TITLE


class HeuristicOptimizer:
    """Deterministic, offline prompt rewriter."""

    def __init__(
        self,
        *,
        weights: Optional[OptimizerWeights] = None,
        history_prompts: Sequence[str] = (),
    ) -> None:
        self.weights, self.weights_source = resolve_weights(weights, history_prompts)

    def optimize(
        self,
        text: str,
        *,
        scenario: ScenarioProfile = ScenarioProfile.GENERAL,
        target: Optional[PromptTarget] = None,
        model_family: Optional[ModelFamily] = None,
    ) -> HeuristicResult:
        weights = self.weights
        if not text.strip():
            return self._result(text, BASELINE_TITLE, ScoreResult(score=0))

        policy = domain_policy(scenario, target, model_family)
        baseline = analyze(text)
        context = OptimizationContext(
            scenario=scenario,
            target=target,
            family=model_family,
            underspecified=baseline.underspecified,
            policy=policy,
        )
        baseline_score = score_candidate(baseline, text, context, weights)

        ordered = detect_gaps(baseline, text, context)
        if not ordered:
            logger.debug("No gaps detected; keeping baseline")
            warnings = _dedupe([WELL_STRUCTURED_WARNING] + baseline_score.warnings)
            return self._result(
                text,
                BASELINE_TITLE,
                ScoreResult(baseline_score.score, baseline_score.breakdown, warnings),
            )

        shielded = shield(text)
        candidates: List[Candidate] = [Candidate(title=BASELINE_TITLE, text=text)]
        seen = {text.strip()}
        for plan in build_plans(ordered):
            if len(candidates) >= MAX_CANDIDATES:
                break
            transformed = apply_transforms(plan, shielded.text, context)
            if not shielded.intact(transformed):
                logger.debug("Discarding plan %s: protected span lost", _plan_label(plan))
                continue
            restored = shielded.restore(transformed).strip()
            if not restored or restored in seen:
                continue
            seen.add(restored)
            title = f"{len(candidates)} {_plan_label(plan)}"
            candidates.append(Candidate(title=title, text=restored, transforms=tuple(plan)))

        scored: List[Tuple[Candidate, ScoreResult, PromptAnalysis]] = [
            (candidates[0], baseline_score, baseline)
        ]
        for candidate in candidates[1:]:
            analysis = analyze(candidate.text)
            scored.append((candidate, score_candidate(analysis, candidate.text, context, weights), analysis))

        best_index = 0
        for index, (_, result, _) in enumerate(scored):
            if result.score > scored[best_index][1].score:
                best_index = index
        best_candidate, best_score, best_analysis = scored[best_index]
        gain = structural_gain(baseline, text, best_analysis, best_candidate.text, context)
        growth = len(best_candidate.text) / max(1, len(text))
        logger.debug(
            "Best candidate %r score=%s baseline=%s gain=%s growth=%.2f",
            best_candidate.title,
            best_score.score,
            baseline_score.score,
            gain,
            growth,
        )

        warnings = list(best_score.warnings)
        promoted = should_promote(
            best_score.score - baseline_score.score,
            gain,
            growth,
            underspecified=context.underspecified,
        )
        if not promoted:
            warnings = list(baseline_score.warnings)
            warnings.append(
                f"{FALLBACK_WARNING} (best={best_score.score}, baseline={baseline_score.score}, gain={gain})."
            )
            best_candidate, best_score, best_analysis = scored[0]

        if baseline.scope_leak and not best_analysis.has_scope_bounds:
            warnings.append(SCOPE_LEAK_WARNING)

        return self._result(
            best_candidate.text,
            best_candidate.title,
            ScoreResult(best_score.score, best_score.breakdown, _dedupe(warnings)),
            candidate_count=len(candidates),
        )

    def _result(
        self, text: str, title: str, score: ScoreResult, *, candidate_count: int = 1
    ) -> HeuristicResult:
        return HeuristicResult(
            optimized_text=text,
            selected_title=title,
            score=score.score,
            breakdown=dict(score.breakdown),
            warnings=list(score.warnings),
            weights=self.weights,
            weights_source=self.weights_source,
            candidate_count=candidate_count,
        )


# ---------------------------------------------------------------------------
# Gap analysis and planning
# ---------------------------------------------------------------------------


def missing_gate_sections(analysis: PromptAnalysis, policy: DomainPolicy) -> List[str]:
    present = set(analysis.section_keys)
    return [key for key in policy.gate_sections if key not in present]


def detect_gaps(
    analysis: PromptAnalysis, text: str, context: OptimizationContext
) -> List[Transform]:
    """Transforms worth trying for ``text``, in application order."""
    needs_attention = analysis.ambiguous or context.underspecified
    ordered: List[Transform] = []
    if analysis.contradictions:
        ordered.append(Transform.CONTRADICTION_REPAIR)
    if analysis.ambiguity_count > 0 or analysis.hedges:
        ordered.append(Transform.SENTENCE_REWRITE)
    if analysis.known_section_count > 1 and not analysis.in_canonical_order:
        ordered.append(Transform.CANONICALIZE)
    if not analysis.deliverables_enumerated or analysis.weak_deliverables:
        ordered.append(Transform.DELIVERABLES)
    if not analysis.output_contract:
        ordered.append(Transform.OUTPUT_FORMAT)
    if (
        analysis.ambiguity_count > 0 or analysis.vague_goal or context.underspecified
    ) and not analysis.has_success_criteria:
        ordered.append(Transform.SUCCESS_CRITERIA)
    if analysis.scope_leak and not analysis.has_scope_bounds:
        ordered.append(Transform.SCOPE_BOUNDS)
    if needs_attention and not analysis.has_questions:
        ordered.append(Transform.QUESTIONS)
    if context.policy.keywords and not contains_keywords(text, context.policy.keywords):
        ordered.append(Transform.DOMAIN_PACK)
    if needs_attention and missing_gate_sections(analysis, context.policy):
        ordered.append(Transform.QUALITY_GATE)
    if analysis.duplicate_lines:
        ordered.append(Transform.DEDUPE)
    return ordered


def build_plans(ordered: Sequence[Transform]) -> List[Tuple[Transform, ...]]:
    """Singles, then bundles; duplicates removed and capped below ``MAX_CANDIDATES``."""
    plans: List[Tuple[Transform, ...]] = [(transform,) for transform in ordered]

    structural = tuple(item for item in ordered if item is not Transform.CANONICALIZE)
    if structural:
        plans.append(structural)

    format_bundle = tuple(item for item in ordered if item in _FORMAT_BUNDLE)
    if len(format_bundle) >= 2:
        plans.append(format_bundle)

    if Transform.DOMAIN_PACK in ordered:
        extras = (Transform.QUALITY_GATE, Transform.DELIVERABLES, Transform.OUTPUT_FORMAT)
        plans.append((Transform.DOMAIN_PACK,) + tuple(item for item in extras if item in ordered))

    if Transform.CANONICALIZE in ordered and len(structural) > 0:
        body = tuple(item for item in structural if item is not Transform.DEDUPE)
        tail = (Transform.DEDUPE,) if Transform.DEDUPE in ordered else ()
        plans.append(body + (Transform.CANONICALIZE,) + tail)

    unique = list(dict.fromkeys(plans))
    return unique[: MAX_CANDIDATES - 1]


def apply_transforms(
    plan: Sequence[Transform], text: str, context: OptimizationContext
) -> str:
    for transform in plan:
        text = _TRANSFORMS[transform](text, context)
    return text


def _plan_label(plan: Sequence[Transform]) -> str:
    return " + ".join(transform.value for transform in plan)


# ---------------------------------------------------------------------------
# Transforms (all operate on shielded text)
# ---------------------------------------------------------------------------


def _canonicalize(text: str, context: OptimizationContext) -> str:
    return sec.canonicalize(text)


def _repair_contradictions(text: str, context: OptimizationContext) -> str:
    rules = detect_contradictions(text)
    if not rules:
        return text
    lines = text.split("\n")
    for rule in rules:
        replacement = _CONTRADICTION_RESOLUTIONS[rule.key][0]
        right = re.compile(
            r"(?<!\w)(?:"
            + "|".join(re.escape(phrase) for phrase in rule.right)
            + r")(?!\w)",
            re.IGNORECASE,
        )
        lines = [_replace_outside(line, rule.left, right, replacement) for line in lines]
    text = "\n".join(lines)
    for rule in rules:
        _, key, appendix = _CONTRADICTION_RESOLUTIONS[rule.key]
        text = sec.append_to_section(text, key, appendix)
    return text


def _replace_outside(
    line: str, protected: Sequence[str], pattern: re.Pattern[str], replacement: str
) -> str:
    # Odd indices are the protected matches, kept verbatim.
    union = "|".join(re.escape(phrase) for phrase in sorted(protected, key=len, reverse=True))
    parts = re.split(rf"((?<!\w)(?:{union})(?!\w))", line, flags=re.IGNORECASE)
    return "".join(
        part if index % 2 else pattern.sub(replacement, part)
        for index, part in enumerate(parts)
    )


def _rewrite_sentences(text: str, context: OptimizationContext) -> str:
    return "\n".join(_rewrite_line(line) for line in text.split("\n"))


def _rewrite_line(line: str) -> str:
    if not line.strip() or _PLACEHOLDER_LINE.match(line) or sec.classify_heading(line):
        return line
    match = _LINE_PREFIX.match(line)
    prefix, content = (match.group(1), match.group(2)) if match else ("", line)
    rewritten = content
    for pattern, replacement in _SENTENCE_REPLACEMENTS:
        rewritten = pattern.sub(replacement, rewritten)
    if rewritten == content:
        return line
    rewritten = _normalize_whitespace(rewritten)
    if not rewritten.strip(" .,;:!?"):
        return line
    if content[:1].isupper() and rewritten[:1].islower():
        rewritten = rewritten[0].upper() + rewritten[1:]
    return prefix + rewritten


def _normalize_whitespace(text: str) -> str:
    text = re.sub(r"[ \t]{2,}", " ", text).strip()
    text = re.sub(r"\s+([,.:;!?])", r"\1", text)
    return re.sub(r"^[,;:]\s*", "", text)


def infer_deliverables(text: str, scenario: ScenarioProfile) -> List[str]:
    """Up to three numbered deliverables from action phrases, padded with scenario defaults."""
    compact = prose_text(text).replace("\n", " ")
    items: List[str] = []
    for match in _ACTION_OBJECT.finditer(compact):
        subject = match.group(2).strip().strip(",.;:").strip()
        if not subject:
            continue
        items.append(f"{match.group(1).lower().capitalize()} {subject}.")
        if len(items) >= 3:
            break
    defaults = default_deliverables(scenario)
    merged = _dedupe((items or defaults) + defaults)
    if VALIDATION_DELIVERABLE not in merged:
        merged.append(VALIDATION_DELIVERABLE)
    return [f"{index}. {item}" for index, item in enumerate(merged[:3], start=1)]


def _add_deliverables(text: str, context: OptimizationContext) -> str:
    analysis = analyze(text)
    if analysis.deliverables_enumerated and not analysis.weak_deliverables:
        return text
    inferred = infer_deliverables(text, context.scenario)
    if analysis.has_deliverables:
        return sec.replace_section_body(text, "deliverables", inferred)
    return sec.append_to_section(text, "deliverables", inferred)


def _add_output_format(text: str, context: OptimizationContext) -> str:
    if analyze(text).output_contract:
        return text
    return sec.append_to_section(text, "output_format", output_format_lines(context.scenario))


def _add_success_criteria(text: str, context: OptimizationContext) -> str:
    analysis = analyze(text)
    needed = analysis.ambiguity_count > 0 or analysis.vague_goal or context.underspecified
    if not needed or analysis.has_success_criteria:
        return text
    return sec.append_to_section(text, "success_criteria", SUCCESS_CRITERIA_LINES)


def _add_scope_bounds(text: str, context: OptimizationContext) -> str:
    analysis = analyze(text)
    if not analysis.scope_leak or analysis.has_scope_bounds:
        return text
    return sec.append_to_section(text, "constraints", SCOPE_BOUND_LINES)


def _add_questions(text: str, context: OptimizationContext) -> str:
    analysis = analyze(text)
    if analysis.has_questions or not (analysis.ambiguous or context.underspecified):
        return text
    return sec.append_to_section(text, "questions", QUESTION_LINES)


def _apply_domain_pack(text: str, context: OptimizationContext) -> str:
    for key, lines in context.policy.supplements:
        text = sec.append_to_section(text, key, lines)
    if context.target is PromptTarget.AGENTIC_IDE:
        text = sec.append_missing_section(
            text,
            "file_changes",
            [
                "1. List files to modify with short rationale.",
                "2. Keep patch scope minimal and deterministic.",
            ],
        )
        text = sec.append_missing_section(
            text,
            "validation_commands",
            [
                "1. Run focused tests first.",
                "2. Run full suite only if focused tests pass.",
            ],
        )
    return text


def _apply_quality_gate(text: str, context: OptimizationContext) -> str:
    seed = analyze(text).goal_seed or FALLBACK_GOAL
    text = sec.ensure_goal_heading(text, seed)
    for key in missing_gate_sections(analyze(text), context.policy):
        text = sec.append_missing_section(text, key, _gate_lines(key, text, context))
    return text


def _gate_lines(key: str, text: str, context: OptimizationContext) -> Sequence[str]:
    if key == "constraints":
        return CONSTRAINT_LINES
    if key == "deliverables":
        return infer_deliverables(text, context.scenario)
    if key == "output_format":
        return output_format_lines(context.scenario)
    if key == "questions":
        return GATE_QUESTION_LINES
    if key == "success_criteria":
        return SUCCESS_CRITERIA_LINES
    if key == "context":
        return CONTEXT_LINES
    return [FALLBACK_GOAL]


def _dedupe_lines(text: str, context: OptimizationContext) -> str:
    seen: set[str] = set()
    output: List[str] = []
    previous_blank = False
    for line in text.split("\n"):
        line = line.rstrip()
        if not line.strip():
            if not previous_blank:
                output.append("")
            previous_blank = True
            continue
        previous_blank = False
        key = " ".join(line.split()).lower()
        if key in seen:
            continue
        seen.add(key)
        output.append(line)
    return "\n".join(output).strip()


_TRANSFORMS: Dict[Transform, Callable[[str, OptimizationContext], str]] = {
    Transform.CONTRADICTION_REPAIR: _repair_contradictions,
    Transform.SENTENCE_REWRITE: _rewrite_sentences,
    Transform.CANONICALIZE: _canonicalize,
    Transform.DELIVERABLES: _add_deliverables,
    Transform.OUTPUT_FORMAT: _add_output_format,
    Transform.SUCCESS_CRITERIA: _add_success_criteria,
    Transform.SCOPE_BOUNDS: _add_scope_bounds,
    Transform.QUESTIONS: _add_questions,
    Transform.DOMAIN_PACK: _apply_domain_pack,
    Transform.QUALITY_GATE: _apply_quality_gate,
    Transform.DEDUPE: _dedupe_lines,
}


# ---------------------------------------------------------------------------
# Scoring and promotion
# ---------------------------------------------------------------------------


def score_candidate(
    analysis: PromptAnalysis,
    text: str,
    context: OptimizationContext,
    weights: OptimizerWeights,
) -> ScoreResult:
    """Weighted rubric score for one candidate.

    ``context.underspecified`` always describes the baseline so every
    candidate is judged against the same bar.
    """
    result = ScoreResult(score=0)

    def add(key: str, points: int) -> None:
        result.score += points
        result.breakdown[key] = points

    ambiguous = analysis.ambiguous
    underspecified = context.underspecified

    if analysis.output_contract:
        add("output_format", weights.output_format)
    else:
        add("missing_output_format", -max(4, weights.output_format // 2))

    if analysis.deliverables_enumerated:
        add("enumerated_deliverables", weights.deliverables)
    else:
        add("missing_deliverables", -max(4, weights.deliverables // 2))
    if analysis.weak_deliverables:
        add("weak_deliverables", -max(4, weights.deliverables // 3))

    if analysis.has_constraints and analysis.strong_constraints:
        add("strong_constraints", weights.constraints)

    if (ambiguous or underspecified) and analysis.has_success_criteria:
        add("success_criteria_for_ambiguity", weights.success_criteria)
    elif ambiguous:
        add("missing_success_criteria_ambiguous", -max(2, weights.success_criteria // 3))
    elif underspecified:
        add("missing_success_criteria_underspecified", -max(3, weights.success_criteria // 2))

    if analysis.scope_leak and analysis.has_scope_bounds:
        add("scope_bounded", weights.scope_bounds)

    if (ambiguous or underspecified) and analysis.has_questions:
        add("questions_for_ambiguity", weights.questions)
    elif ambiguous:
        add("missing_questions_ambiguous", -max(2, weights.questions // 2))
    elif underspecified:
        add("missing_questions_underspecified", -max(2, weights.questions // 2))

    if analysis.hedges:
        add("hedging_lexicon", -2)

    example_bonus = min(12, analysis.examples * weights.examples_per_unit)
    if example_bonus > 0:
        add("examples", example_bonus)

    if contains_keywords(text, context.policy.keywords):
        add("domain_pack", weights.domain_pack_bonus)

    if not missing_gate_sections(analysis, context.policy):
        add("quality_gate", weights.quality_gate_bonus)

    if analysis.tokens > HIGH_TOKEN_THRESHOLD:
        scaled = min(12, ((analysis.tokens - HIGH_TOKEN_THRESHOLD) // 300) * 2)
        add("token_penalty", weights.token_penalty_base - scaled)
        result.warnings.append(f"Token estimate is high: {analysis.tokens}.")

    if analysis.contradictions:
        add("contradictions", weights.contradiction_penalty)
        result.warnings.extend(rule.warning for rule in analysis.contradictions)

    if analysis.placeholders > 0:
        add("unresolved_placeholders", weights.unresolved_placeholder_penalty)
        result.warnings.append(f"Unresolved placeholders detected: {analysis.placeholders}.")

    if context.scenario is ScenarioProfile.JSON and "json" not in text.lower():
        add("json_mismatch", -6)

    return result


def structural_gain(
    baseline: PromptAnalysis,
    baseline_text: str,
    candidate: PromptAnalysis,
    candidate_text: str,
    context: OptimizationContext,
) -> int:
    """Points for structure the candidate adds over the baseline."""
    gain = 0
    if not baseline.output_contract and candidate.output_contract:
        gain += 2
    if not baseline.deliverables_enumerated and candidate.deliverables_enumerated:
        gain += 2
    if baseline.ambiguous or context.underspecified:
        if not baseline.has_success_criteria and candidate.has_success_criteria:
            gain += 1
        if not baseline.has_questions and candidate.has_questions:
            gain += 1
    if baseline.scope_leak and not baseline.has_scope_bounds and candidate.has_scope_bounds:
        gain += 1
    if baseline.contradictions and len(candidate.contradictions) < len(baseline.contradictions):
        gain += 2
    if baseline.hedges and not candidate.hedges:
        gain += 2
    keywords = context.policy.keywords
    if contains_keywords(candidate_text, keywords) and not contains_keywords(baseline_text, keywords):
        gain += 2
    baseline_missing = len(missing_gate_sections(baseline, context.policy))
    candidate_missing = len(missing_gate_sections(candidate, context.policy))
    if candidate_missing < baseline_missing:
        gain += min(3, baseline_missing - candidate_missing)
    return gain


def should_promote(
    score_gain: int, gain: int, growth: float, *, underspecified: bool = False
) -> bool:
    """Anti-regression gate for the best-scoring rewrite."""
    if score_gain < MIN_SCORE_GAIN or gain < MIN_STRUCTURAL_GAIN:
        return False
    if growth > MAX_GROWTH_RATIO and gain < INFLATED_MIN_GAIN and not underspecified:
        return False
    return True


def _dedupe(items: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(items))


__all__ = [
    "BASELINE_TITLE",
    "FALLBACK_WARNING",
    "Candidate",
    "HeuristicOptimizer",
    "HeuristicResult",
    "MAX_CANDIDATES",
    "OptimizationContext",
    "SCOPE_LEAK_WARNING",
    "ScoreResult",
    "Transform",
    "WELL_STRUCTURED_WARNING",
    "apply_transforms",
    "build_plans",
    "detect_gaps",
    "infer_deliverables",
    "missing_gate_sections",
    "score_candidate",
    "should_promote",
    "structural_gain",
]
