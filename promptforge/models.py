"""Core data models shared across promptforge components."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
import re
from typing import Any, Dict, List, Mapping, Optional

_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


class PromptTarget(str, Enum):
    """Downstream consumers a forged prompt can be rendered for."""

    CLAUDE = "Claude"
    GEMINI_CHATGPT = "Gemini/ChatGPT"
    PERPLEXITY = "Perplexity"
    AGENTIC_IDE = "Agentic IDE (Cursor/Windsurf/Copilot)"

    @property
    def slug(self) -> str:
        return _TARGET_SLUGS[self]

    @classmethod
    def parse(cls, value: str | "PromptTarget") -> "PromptTarget":
        """Accept a raw value, a member name, or a short slug (case-insensitive)."""
        if isinstance(value, PromptTarget):
            return value
        lowered = str(value).strip().lower()
        for member in cls:
            if lowered in {member.value.lower(), member.name.lower(), member.slug}:
                return member
        raise ValueError(f"Unknown prompt target: {value!r}")


_TARGET_SLUGS: Dict[PromptTarget, str] = {
    PromptTarget.CLAUDE: "claude",
    PromptTarget.GEMINI_CHATGPT: "gemini",
    PromptTarget.PERPLEXITY: "perplexity",
    PromptTarget.AGENTIC_IDE: "agentic",
}


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


_OPTION_KEYS: Dict[str, str] = {
    "enforce_markdown": "enforceMarkdown",
    "no_conversational_filler": "noConversationalFiller",
    "add_file_tree_request": "addFileTreeRequest",
    "include_verification_checklist": "includeVerificationChecklist",
    "include_risks_and_edge_cases": "includeRisksAndEdgeCases",
    "include_alternatives": "includeAlternatives",
    "include_validation_steps": "includeValidationSteps",
    "include_revert_plan": "includeRevertPlan",
    "prefer_section_aware_parsing": "preferSectionAwareParsing",
    "include_search_verification_requirements": "includeSearchVerificationRequirements",
    "strict_code_only": "strictCodeOnly",
}


@dataclass
class EnhancementOptions:
    """Toggles that gate optional sections and injected constraint lines."""

    enforce_markdown: bool = True
    no_conversational_filler: bool = True
    add_file_tree_request: bool = True
    include_verification_checklist: bool = True
    include_risks_and_edge_cases: bool = True
    include_alternatives: bool = True
    include_validation_steps: bool = True
    include_revert_plan: bool = True
    prefer_section_aware_parsing: bool = True
    include_search_verification_requirements: bool = False
    strict_code_only: bool = False

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "EnhancementOptions":
        """Decode persisted options; missing or non-boolean keys keep their defaults.

        Both the camelCase keys used on disk and snake_case attribute names are
        accepted so the same decoder serves JSON stores and YAML config.
        """
        options = cls()
        if not payload:
            return options
        for attr, camel in _OPTION_KEYS.items():
            for key in (camel, attr):
                value = payload.get(key)
                if isinstance(value, bool):
                    setattr(options, attr, value)
                    break
        return options

    def to_dict(self) -> Dict[str, bool]:
        return {camel: bool(getattr(self, attr)) for attr, camel in _OPTION_KEYS.items()}

    @classmethod
    def option_names(cls) -> List[str]:
        return [item.name for item in fields(cls)]

    @property
    def active_count(self) -> int:
        return sum(1 for attr in _OPTION_KEYS if getattr(self, attr))


LIST_SECTIONS: tuple[str, ...] = (
    "assumptions",
    "file_tree_request",
    "constraints",
    "deliverables",
    "implementation_details",
    "verification_checklist",
    "risks_and_edge_cases",
    "alternatives",
    "validation_steps",
    "revert_plan",
)


@dataclass
class ParsedPromptInput:
    """Semantic buckets recovered from raw text before any defaults apply."""

    goal: str = ""
    context: str = ""
    assumptions: List[str] = field(default_factory=list)
    file_tree_request: List[str] = field(default_factory=list)
    constraints: List[str] = field(default_factory=list)
    deliverables: List[str] = field(default_factory=list)
    implementation_details: List[str] = field(default_factory=list)
    verification_checklist: List[str] = field(default_factory=list)
    risks_and_edge_cases: List[str] = field(default_factory=list)
    alternatives: List[str] = field(default_factory=list)
    validation_steps: List[str] = field(default_factory=list)
    revert_plan: List[str] = field(default_factory=list)


@dataclass
class CanonicalPrompt:
    """Fully defaulted, deduplicated, target-agnostic prompt structure."""

    goal: str
    context: str
    assumptions: List[str] = field(default_factory=list)
    file_tree_request: List[str] = field(default_factory=list)
    constraints: List[str] = field(default_factory=list)
    deliverables: List[str] = field(default_factory=list)
    implementation_details: List[str] = field(default_factory=list)
    verification_checklist: List[str] = field(default_factory=list)
    risks_and_edge_cases: List[str] = field(default_factory=list)
    alternatives: List[str] = field(default_factory=list)
    validation_steps: List[str] = field(default_factory=list)
    revert_plan: List[str] = field(default_factory=list)

    def section(self, name: str) -> List[str]:
        return list(getattr(self, name))


@dataclass(frozen=True)
class SectionsConfig:
    """Which core sections a build is expected to carry."""

    include_goal: bool = True
    include_context: bool = True
    include_constraints: bool = True
    include_deliverables: bool = True


@dataclass
class PromptBuildContext:
    """The core fields a quality check or preview looks at."""

    goal: str
    context: str
    constraints: List[str] = field(default_factory=list)
    deliverables: List[str] = field(default_factory=list)
    variables: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_canonical(
        cls, prompt: CanonicalPrompt, variables: Mapping[str, str] | None = None
    ) -> "PromptBuildContext":
        return cls(
            goal=prompt.goal,
            context=prompt.context,
            constraints=list(prompt.constraints),
            deliverables=list(prompt.deliverables),
            variables=dict(variables or {}),
        )


@dataclass
class QualityCheck:
    """Outcome of one structural or content check on a generated prompt."""

    title: str
    passed: bool
    severity: Severity = Severity.INFO
    detail: Optional[str] = None

    @property
    def id(self) -> str:
        return _SLUG_PATTERN.sub("-", self.title.lower()).strip("-")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "passed": self.passed,
            "severity": self.severity.value,
            "detail": self.detail,
        }


@dataclass
class VariableResolution:
    """Result of substituting `{token}` placeholders."""

    resolved_text: str
    detected: List[str] = field(default_factory=list)
    unfilled: List[str] = field(default_factory=list)


@dataclass
class PromptCategory:
    id: str
    name: str


@dataclass
class PromptTag:
    id: str
    name: str


@dataclass
class PromptVersion:
    """One immutable snapshot of a library prompt's body."""

    id: str
    created_at: datetime
    content: str
    note: Optional[str] = None


@dataclass
class PromptLibraryItem:
    """A stored prompt with its category/tag references and version history."""

    id: str
    title: str
    body: str
    created_at: datetime
    updated_at: datetime
    category_id: Optional[str] = None
    tag_ids: List[str] = field(default_factory=list)
    versions: List[PromptVersion] = field(default_factory=list)


@dataclass
class PromptLibraryBundle:
    categories: List[PromptCategory] = field(default_factory=list)
    tags: List[PromptTag] = field(default_factory=list)
    prompts: List[PromptLibraryItem] = field(default_factory=list)


@dataclass
class PromptTemplate:
    """Reusable prompt text bound to a rendering target."""

    id: str
    name: str
    content: str
    target: PromptTarget
    created_at: datetime
    updated_at: datetime
    category: str = "Uncategorized"
    tags: List[str] = field(default_factory=list)


@dataclass
class PromptHistoryEntry:
    """Record of one forge run."""

    id: str
    timestamp: datetime
    target: PromptTarget
    original_input: str
    generated_prompt: str
    options: EnhancementOptions = field(default_factory=EnhancementOptions)
    variables: Dict[str, str] = field(default_factory=dict)


__all__ = [
    "CanonicalPrompt",
    "EnhancementOptions",
    "LIST_SECTIONS",
    "ParsedPromptInput",
    "PromptBuildContext",
    "PromptCategory",
    "PromptHistoryEntry",
    "PromptLibraryBundle",
    "PromptLibraryItem",
    "PromptTag",
    "PromptTarget",
    "PromptTemplate",
    "PromptVersion",
    "QualityCheck",
    "SectionsConfig",
    "Severity",
    "VariableResolution",
]
