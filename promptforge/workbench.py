"""The forge pipeline and the session object that persists its results."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from .config import CompletionConfig, ForgeConfig, load_config
from .diff import DiffLine, diff
from .llm.completion import CompletionAdvisor, TextCompletion
from .logging import get_logger
from .models import (
    CanonicalPrompt,
    EnhancementOptions,
    ParsedPromptInput,
    PromptBuildContext,
    PromptHistoryEntry,
    PromptTarget,
    PromptTemplate,
    QualityCheck,
    SectionsConfig,
    Severity,
    VariableResolution,
)
from .optimizer import OptimizationInput, OptimizationOutput, PromptOptimizer
from .optimizer.weights import OptimizerWeights, learn_weights
from .preview import PreviewFormat, build_preview
from .prompting import build_canonical_prompt, parse_prompt_input, render_prompt
from .stores import (
    FileStorageBackend,
    HistoryStore,
    PromptLibraryRepository,
    StorageBackend,
    TemplateStore,
    WeightsStore,
)
from .stores.library import Clock, IdFactory
from .validators import QualityCheckEngine, Validator
from .variables import detect, resolve

logger = get_logger("workbench")

EMPTY_INPUT_MESSAGE = "Enter rough input before forging."


@dataclass
class ForgeResult:
    """Everything one forge run produced."""

    target: PromptTarget
    options: EnhancementOptions
    resolution: VariableResolution
    parsed: ParsedPromptInput
    canonical: CanonicalPrompt
    build_context: PromptBuildContext
    generated: str
    checks: List[QualityCheck] = field(default_factory=list)

    @property
    def resolved_input(self) -> str:
        return self.resolution.resolved_text

    @property
    def passed(self) -> bool:
        return not any(
            not check.passed and check.severity is Severity.ERROR for check in self.checks
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "target": self.target.value,
            "generatedPrompt": self.generated,
            "resolvedInput": self.resolved_input,
            "detectedVariables": list(self.resolution.detected),
            "unfilledVariables": list(self.resolution.unfilled),
            "options": self.options.to_dict(),
            "qualityChecks": [check.to_dict() for check in self.checks],
            "passed": self.passed,
        }


def forge_prompt(
    text: str,
    *,
    target: PromptTarget = PromptTarget.CLAUDE,
    options: EnhancementOptions | None = None,
    variables: Mapping[str, str] | None = None,
    sections: SectionsConfig | None = None,
    validator: Validator | None = None,
) -> ForgeResult:
    """Resolve variables, parse, build, render and check ``text`` for ``target``.

    Raises ``ValueError`` only for blank input; every later stage is total.
    The quality checklist looks at the goal and context the user actually
    supplied and at the constraints and deliverables that were rendered.
    """
    cleaned = text.strip()
    if not cleaned:
        raise ValueError(EMPTY_INPUT_MESSAGE)
    options = options or EnhancementOptions()
    resolution = resolve(cleaned, variables or {})
    parsed = parse_prompt_input(
        resolution.resolved_text, prefer_structured=options.prefer_section_aware_parsing
    )
    canonical = build_canonical_prompt(parsed, options, target)
    generated = render_prompt(canonical, options, target)
    build_context = PromptBuildContext(
        goal=parsed.goal,
        context=parsed.context,
        constraints=list(canonical.constraints),
        deliverables=list(canonical.deliverables),
        variables=dict(variables or {}),
    )
    checks = (validator or QualityCheckEngine()).evaluate(
        build_context,
        sections or SectionsConfig(),
        resolution,
        generated,
        target=target,
        options=options,
    )
    return ForgeResult(
        target=target,
        options=options,
        resolution=resolution,
        parsed=parsed,
        canonical=canonical,
        build_context=build_context,
        generated=generated,
        checks=checks,
    )


def build_completion(config: CompletionConfig | None) -> Optional[TextCompletion]:
    """Create the configured local runner, or ``None`` when none is configured."""
    if config is None or not (config.runner or config.model or config.model_path):
        return None
    runner = (config.runner or "http").lower()
    if runner in {"llamacpp", "llama.cpp", "llama-cli"}:
        if not config.model_path:
            raise RuntimeError("llama.cpp runner requires `model_path` in .promptforge.yml")
        from .llm.llamacpp import LlamaCppRunner

        kwargs: Dict[str, object] = {"model_path": config.model_path}
        if config.executable:
            kwargs["executable"] = config.executable
        if config.max_tokens is not None:
            kwargs["max_tokens"] = config.max_tokens
        if config.request_timeout is not None:
            kwargs["timeout"] = config.request_timeout
        return LlamaCppRunner(**kwargs)  # type: ignore[arg-type]
    if runner != "http":
        raise RuntimeError(f"Unknown completion runner: {config.runner}")
    from .llm.runner import HttpCompletionRunner

    http_kwargs: Dict[str, object] = {}
    if config.base_url:
        http_kwargs["base_url"] = config.base_url
    if config.api_key:
        http_kwargs["api_key"] = config.api_key
    if config.request_timeout is not None:
        http_kwargs["request_timeout"] = config.request_timeout
    return HttpCompletionRunner(config.model, **http_kwargs)  # type: ignore[arg-type]


class Workbench:
    """A forge session: current target, options and variables plus the stores.

    Pure functions do the work; this class remembers the session choices and
    writes history, library and template changes through one storage backend.
    """

    def __init__(
        self,
        config: ForgeConfig,
        *,
        backend: StorageBackend | None = None,
        completion: TextCompletion | None = None,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
    ) -> None:
        self.config = config
        self.backend = backend or FileStorageBackend(config.resolved_storage_dir)
        self.target = config.target
        self.options = replace(config.options)
        self.variables: Dict[str, str] = {}
        self.last_result: Optional[ForgeResult] = None
        self.library = PromptLibraryRepository(self.backend, clock=clock, id_factory=id_factory)
        self.templates = TemplateStore(self.backend, clock=clock, id_factory=id_factory)
        self.history = HistoryStore(self.backend, clock=clock, id_factory=id_factory)
        self.weights = WeightsStore(self.backend)
        self._completion = completion
        self._completion_resolved = completion is not None

    @classmethod
    def from_path(cls, path: Path | str = ".", **kwargs: object) -> "Workbench":
        return cls(load_config(Path(path)), **kwargs)  # type: ignore[arg-type]

    # Forge ---------------------------------------------------------------

    def detected_variables(self, text: str) -> List[str]:
        return detect(text)

    def forge(
        self,
        text: str,
        *,
        target: PromptTarget | None = None,
        options: EnhancementOptions | None = None,
        variables: Mapping[str, str] | None = None,
        record: bool = True,
    ) -> ForgeResult:
        """Forge ``text`` with the session settings and optionally record history."""
        if target is not None:
            self.target = target
        if options is not None:
            self.options = options
        if variables is not None:
            self.variables = dict(variables)
        result = forge_prompt(
            text, target=self.target, options=self.options, variables=self.variables
        )
        self.last_result = result
        if record:
            self.history.record(
                target=result.target,
                original_input=text,
                generated_prompt=result.generated,
                options=result.options,
                variables=self.variables,
            )
        logger.debug(
            "Forged %d characters for %s (%d failed checks)",
            len(result.generated),
            result.target.value,
            sum(1 for check in result.checks if not check.passed),
        )
        return result

    def load_history_entry(self, entry: PromptHistoryEntry) -> str:
        self.target = entry.target
        self.options = replace(entry.options)
        self.variables = dict(entry.variables)
        return entry.original_input

    def apply_template(self, template: PromptTemplate) -> str:
        self.target = template.target
        return template.content

    def save_template(self, name: str, content: str) -> PromptTemplate:
        return self.templates.save(name, content, self.target)

    # Optimize ------------------------------------------------------------

    def resolved_weights(self) -> Optional[OptimizerWeights]:
        """Stored weights when present; otherwise none, so the optimizer may learn."""
        return self.weights.load()

    def history_inputs(self) -> List[str]:
        if not self.config.optimizer.learn_weights:
            return []
        return self.history.recent_inputs()

    def optimize(self, request: OptimizationInput, *, advise: bool = False) -> OptimizationOutput:
        advisor = None
        if advise:
            completion = self.completion()
            if completion is not None:
                advisor = CompletionAdvisor(completion)
        optimizer = PromptOptimizer(
            weights=self.resolved_weights(),
            history_prompts=self.history_inputs(),
            completion_advisor=advisor,
        )
        return optimizer.optimize(request, advise=advise)

    def learn_and_save_weights(self) -> Optional[OptimizerWeights]:
        learned = learn_weights(self.history.recent_inputs())
        if learned is None:
            logger.info("Not enough history to learn optimizer weights")
            return None
        self.weights.save(learned)
        return learned

    def completion(self) -> Optional[TextCompletion]:
        if not self._completion_resolved:
            try:
                self._completion = build_completion(self.config.completion)
            except RuntimeError as exc:
                logger.warning("Failed to initialise text completion: %s", exc)
                self._completion = None
            self._completion_resolved = True
        return self._completion

    # Utilities -----------------------------------------------------------

    def diff(self, old: str, new: str) -> List[DiffLine]:
        return diff(old, new)

    def diff_last(self) -> List[DiffLine]:
        """Diff of the last forge's resolved input against its generated prompt."""
        if self.last_result is None:
            return []
        return diff(self.last_result.resolved_input, self.last_result.generated)

    def preview(self, text: str, format: PreviewFormat | str = PreviewFormat.PLAIN) -> str:
        parsed = parse_prompt_input(
            resolve(text, self.variables).resolved_text,
            prefer_structured=self.options.prefer_section_aware_parsing,
        )
        context = PromptBuildContext(
            goal=parsed.goal,
            context=parsed.context,
            constraints=list(parsed.constraints),
            deliverables=list(parsed.deliverables),
        )
        return build_preview(context, format)

    def recent_history(self, limit: int | None = None) -> Sequence[PromptHistoryEntry]:
        entries = self.history.entries
        return entries if limit is None else entries[:limit]


__all__ = [
    "EMPTY_INPUT_MESSAGE",
    "ForgeResult",
    "Workbench",
    "build_completion",
    "forge_prompt",
]
