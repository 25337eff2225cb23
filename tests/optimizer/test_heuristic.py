"""Tests for the candidate-based heuristic optimizer."""

from __future__ import annotations

from promptforge.models import PromptTarget
from promptforge.optimizer import heuristic
from promptforge.optimizer.domain import domain_policy
from promptforge.optimizer.heuristic import (
    BASELINE_TITLE,
    FALLBACK_WARNING,
    MAX_CANDIDATES,
    WELL_STRUCTURED_WARNING,
    HeuristicOptimizer,
    OptimizationContext,
    ScoreResult,
    Transform,
    apply_transforms,
    build_plans,
    infer_deliverables,
    should_promote,
)
from promptforge.optimizer.knowledge import ModelFamily, ScenarioProfile


def test_well_structured_input_is_returned_byte_identical(well_structured: str) -> None:
    result = HeuristicOptimizer().optimize(well_structured)

    assert result.optimized_text == well_structured
    assert result.selected_title == BASELINE_TITLE
    assert not result.changed
    assert WELL_STRUCTURED_WARNING in result.warnings


def test_weak_input_is_promoted_to_structured_rewrite() -> None:
    result = HeuristicOptimizer().optimize("could you make the login page better")

    assert result.changed
    assert result.candidate_count > 1
    assert "### Goal" in result.optimized_text
    assert "### Output Format" in result.optimized_text
    assert "### Success Criteria" in result.optimized_text
    assert "could you" not in result.optimized_text.lower()


def test_protected_spans_survive_rewriting(protected_input: str) -> None:
    result = HeuristicOptimizer().optimize(
        protected_input, scenario=ScenarioProfile.IDE_CODING, target=PromptTarget.AGENTIC_IDE
    )

    assert result.changed
    for span in (
        "```python\ndef parse(text):\n    return text.split()\n```",
        "src/app/parser.py",
        "https://example.com/docs/parser",
        "{ticket}",
    ):
        assert span in result.optimized_text


def test_windows_paths_survive_hedge_removal() -> None:
    text = r"Please fix the crash in C:\maybe\possibly\config.ini and report back."

    result = HeuristicOptimizer().optimize(text)

    assert r"C:\maybe\possibly\config.ini" in result.optimized_text


def test_optimizer_is_deterministic_across_repetitions(protected_input: str) -> None:
    optimizer = HeuristicOptimizer()
    outputs = {
        optimizer.optimize(
            protected_input, scenario=ScenarioProfile.CLI, model_family=ModelFamily.LLAMA
        ).optimized_text
        for _ in range(25)
    }

    assert len(outputs) == 1


def test_blank_input_returns_baseline() -> None:
    result = HeuristicOptimizer().optimize("   ")

    assert result.optimized_text == "   "
    assert result.score == 0


def test_baseline_kept_when_no_rewrite_outscores_it(monkeypatch) -> None:
    text = "could you make the login page better"
    real_score = heuristic.score_candidate

    def _penalize_rewrites(analysis, candidate_text, context, weights):
        result = real_score(analysis, candidate_text, context, weights)
        if candidate_text == text:
            return result
        return ScoreResult(result.score - 1000, result.breakdown, result.warnings)

    monkeypatch.setattr(heuristic, "score_candidate", _penalize_rewrites)

    result = HeuristicOptimizer().optimize(text)

    assert result.optimized_text == text
    assert result.selected_title == BASELINE_TITLE
    assert result.candidate_count > 1
    assert any(warning.startswith(FALLBACK_WARNING) for warning in result.warnings)



def test_contradiction_repair_rewrites_conflicting_side() -> None:
    context = OptimizationContext(policy=domain_policy(ScenarioProfile.GENERAL))
    text = "No browsing allowed.\nUse web research for the numbers."

    repaired = apply_transforms((Transform.CONTRADICTION_REPAIR,), text, context)

    assert "No browsing allowed." in repaired
    assert "web research" not in repaired
    assert "- Use provided/local sources only; do not browse online sources." in repaired


def test_build_plans_lists_singles_then_bundles_without_duplicates() -> None:
    ordered = [Transform.DELIVERABLES, Transform.OUTPUT_FORMAT, Transform.CANONICALIZE]

    plans = build_plans(ordered)

    assert plans[:3] == [(item,) for item in ordered]
    assert (Transform.DELIVERABLES, Transform.OUTPUT_FORMAT) in plans
    assert (Transform.DELIVERABLES, Transform.OUTPUT_FORMAT, Transform.CANONICALIZE) in plans
    assert len(plans) == len(set(plans))
    assert len(plans) < MAX_CANDIDATES


def test_should_promote_rejects_inflation_without_large_gain() -> None:
    assert should_promote(10, 3, 1.5)
    assert not should_promote(0, 5, 1.0)
    assert not should_promote(10, 1, 1.0)
    assert not should_promote(10, 3, 2.5)
    assert should_promote(10, 3, 2.5, underspecified=True)
    assert should_promote(10, 4, 2.5)


def test_infer_deliverables_uses_action_phrases() -> None:
    items = infer_deliverables(
        "Fix the flaky upload test and document the retry policy", ScenarioProfile.GENERAL
    )

    assert items[0] == "1. Fix the flaky upload test and document the retry policy."
    assert len(items) == 3
    assert all(item[0].isdigit() for item in items)
