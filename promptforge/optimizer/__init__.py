"""Offline prompt optimization: gap analysis, candidate rewrites, model guidance."""

from .engine import OptimizationInput, OptimizationOutput, PromptOptimizer
from .heuristic import HeuristicOptimizer, HeuristicResult
from .heuristics import analyze, estimate_tokens
from .knowledge import ModelFamily, ScenarioProfile, UserOverrides
from .weights import DEFAULT_WEIGHTS, OptimizerWeights, learn_weights

__all__ = [
    "DEFAULT_WEIGHTS",
    "HeuristicOptimizer",
    "HeuristicResult",
    "ModelFamily",
    "OptimizationInput",
    "OptimizationOutput",
    "OptimizerWeights",
    "PromptOptimizer",
    "ScenarioProfile",
    "UserOverrides",
    "analyze",
    "estimate_tokens",
    "learn_weights",
]
