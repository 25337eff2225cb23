"""High-level optimizer: rewrite plus model/scenario guidance."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from ..logging import get_logger
from ..models import PromptTarget
from .heuristic import HeuristicOptimizer
from .knowledge import (
    ModelFamily,
    ScenarioProfile,
    UserOverrides,
    family_warnings,
    suggest_sampling,
    system_preamble,
)
from .weights import OptimizerWeights

if TYPE_CHECKING:
    from ..llm.completion import CompletionAdvisor

logger = get_logger("optimizer.engine")

ADVISORY_INSTRUCTION = (
    "Review the prompt below. List at most three concrete weaknesses as short "
    "bullet points. Do not rewrite the prompt."
)


@dataclass
class OptimizationInput:
    raw_text: str
    model_family: ModelFamily = ModelFamily.OPENAI
    scenario: ScenarioProfile = ScenarioProfile.GENERAL
    target: Optional[PromptTarget] = None
    overrides: UserOverrides = field(default_factory=UserOverrides)


@dataclass
class OptimizationOutput:
    """Optimized text plus the guidance that goes with it."""

    optimized_text: str
    system_preamble: Optional[str]
    temperature: float
    top_p: float
    max_tokens: int
    applied_rules: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    selected_candidate: str = ""
    score: int = 0
    breakdown: Dict[str, int] = field(default_factory=dict)
    advisory: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "optimizedText": self.optimized_text,
            "systemPreamble": self.system_preamble,
            "temperature": self.temperature,
            "topP": self.top_p,
            "maxTokens": self.max_tokens,
            "appliedRules": list(self.applied_rules),
            "warnings": list(self.warnings),
            "selectedCandidate": self.selected_candidate,
            "score": self.score,
            "breakdown": dict(sorted(self.breakdown.items())),
            "advisory": self.advisory,
        }


class PromptOptimizer:
    """Combines the heuristic rewrite with knowledge-base guidance.

    ``completion_advisor`` is optional. Its output lands in
    ``OptimizationOutput.advisory`` and never changes the optimized text.
    """

    def __init__(
        self,
        *,
        weights: Optional[OptimizerWeights] = None,
        history_prompts: Sequence[str] = (),
        completion_advisor: "CompletionAdvisor | None" = None,
    ) -> None:
        self.heuristic = HeuristicOptimizer(weights=weights, history_prompts=history_prompts)
        self.completion_advisor = completion_advisor

    def optimize(self, request: OptimizationInput, *, advise: bool = False) -> OptimizationOutput:
        result = self.heuristic.optimize(
            request.raw_text,
            scenario=request.scenario,
            target=request.target,
            model_family=request.model_family,
        )
        preamble, applied = system_preamble(
            request.model_family, request.scenario, request.overrides
        )
        sampling = suggest_sampling(request.model_family, request.scenario, request.overrides)

        applied_rules = list(applied)
        if result.changed:
            applied_rules.append(f"Selected rewrite candidate: {result.selected_title}.")
        if result.weights_source != "defaults":
            applied_rules.append(f"Scored with {result.weights_source} optimizer weights.")

        warnings = list(result.warnings)
        for warning in family_warnings(request.model_family, request.scenario, request.overrides):
            if warning not in warnings:
                warnings.append(warning)

        advisory = None
        if advise and self.completion_advisor is not None:
            advisory = self.completion_advisor.advise(
                f"{ADVISORY_INSTRUCTION}\n\n{result.optimized_text}"
            )
            if advisory is None:
                logger.debug("No advisory available")

        return OptimizationOutput(
            optimized_text=result.optimized_text,
            system_preamble=preamble,
            temperature=sampling.temperature,
            top_p=sampling.top_p,
            max_tokens=sampling.max_tokens,
            applied_rules=applied_rules,
            warnings=warnings,
            selected_candidate=result.selected_title,
            score=result.score,
            breakdown=result.breakdown,
            advisory=advisory,
        )


__all__ = ["OptimizationInput", "OptimizationOutput", "PromptOptimizer"]
