"""Static knowledge tables: model-family behavior and scenario rules.

Scores are conservative runtime heuristics on a 1-5 scale, not vendor
guarantees. Every table is an immutable mapping keyed by enum member.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple, Type, TypeVar


_E = TypeVar("_E", bound=Enum)


class ModelFamily(str, Enum):
    OPENAI = "OpenAI GPT-style (Chat/Tools/JSON)"
    CLAUDE = "Anthropic Claude-style"
    GEMINI = "Google Gemini-style"
    GROK = "xAI Grok-style"
    LLAMA = "Meta Llama-family (open-weight)"
    MISTRAL = "Mistral-family (open + API)"
    DEEPSEEK = "DeepSeek-family"
    QWEN = "Qwen-family"
    COHERE = "Cohere Command/Rerank-family"
    LOCAL_CLI = "Local CLI Runtime (Ollama/llama.cpp)"

    @classmethod
    def parse(cls, value: str | "ModelFamily") -> "ModelFamily":
        return _parse_enum(cls, value)


class ScenarioProfile(str, Enum):
    GENERAL = "General Assistant"
    IDE_CODING = "IDE Coding Assistant"
    CLI = "CLI Assistant"
    JSON = "JSON / Structured Output"
    LONGFORM = "Longform Writing"
    RESEARCH = "Research / Summarization"
    TOOL_AGENT = "Tool-Using Agent"

    @classmethod
    def parse(cls, value: str | "ScenarioProfile") -> "ScenarioProfile":
        return _parse_enum(cls, value)


class OutputFormatPolicy(str, Enum):
    STRUCTURED_MARKDOWN = "structured_markdown"
    PATCH_AND_CHECKLIST = "patch_and_checklist"
    SHELL_ONLY = "shell_only"
    STRICT_JSON = "strict_json"
    CITED_SUMMARY = "cited_summary"
    TOOL_PLAN = "tool_plan_or_manual_plan"


class VerbosityPolicy(str, Enum):
    MINIMAL = "minimal"
    CONCISE = "concise"
    BALANCED = "balanced"
    DETAILED = "detailed"


@dataclass(frozen=True)
class ModelBehaviorProfile:
    family: ModelFamily
    context_window_hint: Optional[int]
    json_reliability: int
    tool_reliability: int
    verbosity_bias: int
    reasoning_strength: int
    prefers_delimiters: bool
    prefers_concise_system: bool
    notes: str


@dataclass(frozen=True)
class ScenarioRules:
    scenario: ScenarioProfile
    output_format: OutputFormatPolicy
    verbosity: VerbosityPolicy
    requires_citations: bool = False
    strict_json_preferred: bool = False
    cli_constraints_enabled: bool = False
    notes: str = ""


@dataclass(frozen=True)
class SamplingSuggestion:
    temperature: float
    top_p: float
    max_tokens: int


@dataclass(frozen=True)
class UserOverrides:
    """Caller-supplied overrides applied after every heuristic."""

    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None
    strict_json: Optional[bool] = None
    disable_system_preamble: bool = False


_SLUGS: Mapping[str, str] = MappingProxyType(
    {
        "OPENAI": "openai",
        "CLAUDE": "claude",
        "GEMINI": "gemini",
        "GROK": "grok",
        "LLAMA": "llama",
        "MISTRAL": "mistral",
        "DEEPSEEK": "deepseek",
        "QWEN": "qwen",
        "COHERE": "cohere",
        "LOCAL_CLI": "local",
        "GENERAL": "general",
        "IDE_CODING": "ide",
        "CLI": "cli",
        "JSON": "json",
        "LONGFORM": "longform",
        "RESEARCH": "research",
        "TOOL_AGENT": "tool-agent",
    }
)


def slug(member: ModelFamily | ScenarioProfile) -> str:
    return _SLUGS[member.name]


def _parse_enum(enum_cls: Type[_E], value: object) -> _E:
    if isinstance(value, enum_cls):
        return value
    lowered = str(value).strip().lower()
    for member in enum_cls:
        if lowered in {member.value.lower(), member.name.lower(), _SLUGS[member.name]}:
            return member
    raise ValueError(f"Unknown {enum_cls.__name__}: {value!r}")


MODEL_PROFILES: Mapping[ModelFamily, ModelBehaviorProfile] = MappingProxyType(
    {
        ModelFamily.OPENAI: ModelBehaviorProfile(
            ModelFamily.OPENAI, 128_000, 5, 5, 3, 5, True, True,
            "Strong structured output and tool usage; concise system directives work well.",
        ),
        ModelFamily.CLAUDE: ModelBehaviorProfile(
            ModelFamily.CLAUDE, 200_000, 4, 4, 4, 5, True, False,
            "Benefits from explicit sectioning; produces rich prose unless constrained.",
        ),
        ModelFamily.GEMINI: ModelBehaviorProfile(
            ModelFamily.GEMINI, 1_000_000, 4, 4, 3, 4, True, True,
            "Reliable with schema-guided output and function-calling prompts.",
        ),
        ModelFamily.GROK: ModelBehaviorProfile(
            ModelFamily.GROK, 128_000, 3, 3, 3, 4, True, True,
            "Use explicit schema reminders and fallback validation for strict JSON.",
        ),
        ModelFamily.LLAMA: ModelBehaviorProfile(
            ModelFamily.LLAMA, 128_000, 3, 2, 3, 3, True, True,
            "Chat-template fidelity and compact instructions improve consistency.",
        ),
        ModelFamily.MISTRAL: ModelBehaviorProfile(
            ModelFamily.MISTRAL, 128_000, 4, 4, 3, 4, True, True,
            "Strong API support for structured outputs and function calling.",
        ),
        ModelFamily.DEEPSEEK: ModelBehaviorProfile(
            ModelFamily.DEEPSEEK, 128_000, 3, 3, 2, 4, True, True,
            "Works best with explicit output contracts and deterministic constraints.",
        ),
        ModelFamily.QWEN: ModelBehaviorProfile(
            ModelFamily.QWEN, 128_000, 3, 3, 3, 4, True, True,
            "Prompt length and clearly delimited objectives matter for stability.",
        ),
        ModelFamily.COHERE: ModelBehaviorProfile(
            ModelFamily.COHERE, 128_000, 4, 3, 2, 3, True, True,
            "Command models are concise; explicit field instructions help.",
        ),
        ModelFamily.LOCAL_CLI: ModelBehaviorProfile(
            ModelFamily.LOCAL_CLI, 32_000, 2, 1, 2, 2, True, True,
            "Keep prompts short, direct, and step-wise.",
        ),
    }
)

SCENARIO_RULES: Mapping[ScenarioProfile, ScenarioRules] = MappingProxyType(
    {
        ScenarioProfile.GENERAL: ScenarioRules(
            ScenarioProfile.GENERAL,
            OutputFormatPolicy.STRUCTURED_MARKDOWN,
            VerbosityPolicy.BALANCED,
            notes="Direct answer first, then concise supporting detail.",
        ),
        ScenarioProfile.IDE_CODING: ScenarioRules(
            ScenarioProfile.IDE_CODING,
            OutputFormatPolicy.PATCH_AND_CHECKLIST,
            VerbosityPolicy.BALANCED,
            notes="Prefer patch-oriented plans with tests and validation commands.",
        ),
        ScenarioProfile.CLI: ScenarioRules(
            ScenarioProfile.CLI,
            OutputFormatPolicy.SHELL_ONLY,
            VerbosityPolicy.MINIMAL,
            cli_constraints_enabled=True,
            notes="Output should be command-first and copy/paste runnable.",
        ),
        ScenarioProfile.JSON: ScenarioRules(
            ScenarioProfile.JSON,
            OutputFormatPolicy.STRICT_JSON,
            VerbosityPolicy.MINIMAL,
            strict_json_preferred=True,
            notes="Schema-first contract with no trailing prose.",
        ),
        ScenarioProfile.LONGFORM: ScenarioRules(
            ScenarioProfile.LONGFORM,
            OutputFormatPolicy.STRUCTURED_MARKDOWN,
            VerbosityPolicy.DETAILED,
            notes="Enforce continuity and explicit uncertainty handling.",
        ),
        ScenarioProfile.RESEARCH: ScenarioRules(
            ScenarioProfile.RESEARCH,
            OutputFormatPolicy.CITED_SUMMARY,
            VerbosityPolicy.BALANCED,
            requires_citations=True,
            notes="Citations and confidence labels should be explicit.",
        ),
        ScenarioProfile.TOOL_AGENT: ScenarioRules(
            ScenarioProfile.TOOL_AGENT,
            OutputFormatPolicy.TOOL_PLAN,
            VerbosityPolicy.CONCISE,
            notes="Use a tool loop when tool usage is reliable; manual plan otherwise.",
        ),
    }
)

_BASE_SAMPLING: Mapping[ScenarioProfile, SamplingSuggestion] = MappingProxyType(
    {
        ScenarioProfile.GENERAL: SamplingSuggestion(0.3, 0.9, 1_100),
        ScenarioProfile.IDE_CODING: SamplingSuggestion(0.2, 0.9, 1_200),
        ScenarioProfile.CLI: SamplingSuggestion(0.1, 0.8, 500),
        ScenarioProfile.JSON: SamplingSuggestion(0.0, 1.0, 900),
        ScenarioProfile.LONGFORM: SamplingSuggestion(0.6, 0.95, 1_800),
        ScenarioProfile.RESEARCH: SamplingSuggestion(0.2, 0.9, 1_400),
        ScenarioProfile.TOOL_AGENT: SamplingSuggestion(0.2, 0.9, 1_300),
    }
)

RELIABLE_TOOL_THRESHOLD = 4
BRITTLE_JSON_THRESHOLD = 3


def profile_for(family: ModelFamily) -> ModelBehaviorProfile:
    return MODEL_PROFILES[family]


def rules_for(scenario: ScenarioProfile) -> ScenarioRules:
    return SCENARIO_RULES[scenario]


def strict_json_enabled(scenario: ScenarioProfile, overrides: UserOverrides | None) -> bool:
    if overrides is not None and overrides.strict_json is not None:
        return overrides.strict_json
    return rules_for(scenario).strict_json_preferred


def system_preamble(
    family: ModelFamily,
    scenario: ScenarioProfile,
    overrides: UserOverrides | None = None,
) -> Tuple[Optional[str], List[str]]:
    """Return ``(preamble, applied_rules)``; the preamble is ``None`` when disabled."""
    if overrides is not None and overrides.disable_system_preamble:
        return None, ["Skipped system preamble due to user override."]
    behavior = profile_for(family)
    rules = rules_for(scenario)
    applied: List[str] = []
    lines = [
        "You are an execution-focused assistant.",
        "Follow requested output format exactly.",
        "If uncertain, state uncertainty explicitly instead of guessing.",
    ]
    if behavior.reasoning_strength >= 4:
        lines.append("Prefer explicit assumptions before irreversible actions.")
    if rules.cli_constraints_enabled:
        lines.append("Return command-ready output with no conversational filler.")
    if strict_json_enabled(scenario, overrides):
        lines.append("Return output that is machine-parseable and schema-aligned.")
        applied.append("Enabled schema-first strict JSON contract.")
    if behavior.prefers_delimiters:
        lines.append("Treat delimited sections as hard boundaries.")
        applied.append("Enabled delimiter-aware prompt framing.")
    if behavior.prefers_concise_system:
        applied.append("Used concise system preamble style.")
    return "\n".join(lines), applied


def suggest_sampling(
    family: ModelFamily,
    scenario: ScenarioProfile,
    overrides: UserOverrides | None = None,
) -> SamplingSuggestion:
    """Scenario baseline, scaled by verbosity bias, clamped for local runtimes."""
    behavior = profile_for(family)
    base = _BASE_SAMPLING[scenario]
    temperature, top_p, max_tokens = base.temperature, base.top_p, base.max_tokens
    if behavior.verbosity_bias <= 2:
        max_tokens = max(400, int(max_tokens * 0.75))
    elif behavior.verbosity_bias >= 4:
        max_tokens = int(max_tokens * 1.15)
    if family is ModelFamily.LOCAL_CLI:
        temperature = min(temperature, 0.2)
        top_p = min(top_p, 0.85)
        max_tokens = min(max_tokens, 700)
    if overrides is not None:
        if overrides.temperature is not None:
            temperature = overrides.temperature
        if overrides.top_p is not None:
            top_p = overrides.top_p
        if overrides.max_tokens is not None:
            max_tokens = overrides.max_tokens
    return SamplingSuggestion(temperature=temperature, top_p=top_p, max_tokens=max_tokens)


def family_warnings(
    family: ModelFamily,
    scenario: ScenarioProfile,
    overrides: UserOverrides | None = None,
) -> List[str]:
    behavior = profile_for(family)
    warnings: List[str] = []
    if strict_json_enabled(scenario, overrides) and behavior.json_reliability <= BRITTLE_JSON_THRESHOLD:
        warnings.append("Strict JSON may be brittle for this model family; repair protocol enabled.")
    if scenario is ScenarioProfile.TOOL_AGENT and behavior.tool_reliability < RELIABLE_TOOL_THRESHOLD:
        warnings.append("Tool reliability is low for this family; generated manual execution fallback.")
    return warnings


__all__ = [
    "BRITTLE_JSON_THRESHOLD",
    "MODEL_PROFILES",
    "ModelBehaviorProfile",
    "ModelFamily",
    "OutputFormatPolicy",
    "RELIABLE_TOOL_THRESHOLD",
    "SCENARIO_RULES",
    "SamplingSuggestion",
    "ScenarioProfile",
    "ScenarioRules",
    "UserOverrides",
    "VerbosityPolicy",
    "family_warnings",
    "profile_for",
    "rules_for",
    "slug",
    "strict_json_enabled",
    "suggest_sampling",
    "system_preamble",
]
