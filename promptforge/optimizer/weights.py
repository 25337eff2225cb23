"""Scoring weights for the heuristic optimizer.

Rewards (positive) and penalties (negative) are integers. Every weight has a
fixed ``(low, high)`` bound and :meth:`OptimizerWeights.clamped` is applied to
anything loaded from disk or learned from history before it is used.

==============================  =======  ============
weight                          default  bounds
==============================  =======  ============
output_format                   20       5..30
deliverables                    15       5..28
constraints                     10       4..22
success_criteria                10       4..22
scope_bounds                    8        3..16
questions                       5        0..16
examples_per_unit               5        0..10
token_penalty_base              -8       -22..-2
contradiction_penalty           -8       -24..-4
unresolved_placeholder_penalty  -6       -14..-2
domain_pack_bonus               7        0..16
quality_gate_bonus              8        0..18
==============================  =======  ============
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from .heuristics import HIGH_TOKEN_THRESHOLD, analyze

LEARNING_SAMPLE_LIMIT = 50
LEARNING_SAMPLE_MIN = 5

BOUNDS: Dict[str, Tuple[int, int]] = {
    "output_format": (5, 30),
    "deliverables": (5, 28),
    "constraints": (4, 22),
    "success_criteria": (4, 22),
    "scope_bounds": (3, 16),
    "questions": (0, 16),
    "examples_per_unit": (0, 10),
    "token_penalty_base": (-22, -2),
    "contradiction_penalty": (-24, -4),
    "unresolved_placeholder_penalty": (-14, -2),
    "domain_pack_bonus": (0, 16),
    "quality_gate_bonus": (0, 18),
}


@dataclass(frozen=True)
class OptimizerWeights:
    output_format: int = 20
    deliverables: int = 15
    constraints: int = 10
    success_criteria: int = 10
    scope_bounds: int = 8
    questions: int = 5
    examples_per_unit: int = 5
    token_penalty_base: int = -8
    contradiction_penalty: int = -8
    unresolved_placeholder_penalty: int = -6
    domain_pack_bonus: int = 7
    quality_gate_bonus: int = 8

    def clamped(self) -> "OptimizerWeights":
        values = {
            name: max(low, min(high, getattr(self, name)))
            for name, (low, high) in BOUNDS.items()
        }
        return OptimizerWeights(**values)

    @property
    def signature(self) -> str:
        return ":".join(str(getattr(self, item.name)) for item in fields(self))

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "OptimizerWeights":
        """Build clamped weights from a mapping; unknown or non-numeric keys are ignored."""
        defaults = cls()
        values: Dict[str, int] = {}
        for item in fields(cls):
            raw = payload.get(item.name)
            if isinstance(raw, bool) or not isinstance(raw, (int, float)):
                values[item.name] = getattr(defaults, item.name)
            else:
                values[item.name] = int(raw)
        return cls(**values).clamped()


DEFAULT_WEIGHTS = OptimizerWeights()


def learn_weights(history_prompts: Sequence[str]) -> Optional[OptimizerWeights]:
    """Recalibrate the defaults from recent prompts.

    Uses the first 50 entries and needs at least 5. Frequent gaps in history
    raise the matching reward; frequent long or contradictory prompts deepen
    the matching penalty.
    """
    sample = list(history_prompts[:LEARNING_SAMPLE_LIMIT])
    if len(sample) < LEARNING_SAMPLE_MIN:
        return None

    missing_output = 0
    missing_deliverables = 0
    missing_scope_bounds = 0
    contradictions = 0
    high_token = 0
    for prompt in sample:
        analysis = analyze(prompt, code_blocks=0)
        if not analysis.output_contract:
            missing_output += 1
        if not analysis.deliverables_enumerated:
            missing_deliverables += 1
        if analysis.scope_leak and not analysis.has_scope_bounds:
            missing_scope_bounds += 1
        contradictions += len(analysis.contradictions)
        if analysis.tokens > HIGH_TOKEN_THRESHOLD:
            high_token += 1

    total = float(len(sample))
    tuned = replace(
        DEFAULT_WEIGHTS,
        output_format=DEFAULT_WEIGHTS.output_format + int(missing_output / total * 8.0),
        deliverables=DEFAULT_WEIGHTS.deliverables + int(missing_deliverables / total * 8.0),
        scope_bounds=DEFAULT_WEIGHTS.scope_bounds + int(missing_scope_bounds / total * 5.0),
        token_penalty_base=DEFAULT_WEIGHTS.token_penalty_base - int(high_token / total * 5.0),
        contradiction_penalty=DEFAULT_WEIGHTS.contradiction_penalty
        - int(contradictions / total * 6.0),
    )
    return tuned.clamped()


def resolve_weights(
    local: Optional[OptimizerWeights] = None,
    history_prompts: Sequence[str] = (),
) -> Tuple[OptimizerWeights, str]:
    """Pick weights by precedence: explicit local, learned from history, defaults.

    Returns ``(weights, source)`` with ``source`` one of ``local``, ``learned``
    or ``defaults``.
    """
    if local is not None:
        return local.clamped(), "local"
    learned = learn_weights(history_prompts)
    if learned is not None:
        return learned, "learned"
    return DEFAULT_WEIGHTS, "defaults"


__all__ = [
    "BOUNDS",
    "DEFAULT_WEIGHTS",
    "LEARNING_SAMPLE_LIMIT",
    "LEARNING_SAMPLE_MIN",
    "OptimizerWeights",
    "learn_weights",
    "resolve_weights",
]
