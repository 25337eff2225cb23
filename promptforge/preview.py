"""Structured previews of a build context as plain text, markdown or JSON."""

from __future__ import annotations

from enum import Enum
import json
from typing import Dict, List

from jinja2 import DictLoader, Environment

from .models import PromptBuildContext

_SECTIONS_TEMPLATE = """\
{% for section in sections %}
{% if style == "markdown" %}
## {{ section.title }}
{% else %}
{{ section.title }}:
{% endif %}
{% if section.lines is not none %}
{% for line in section.lines %}
- {{ line }}
{% endfor %}
{% else %}
{{ section.text }}
{% endif %}
{% if not loop.last %}

{% endif %}
{% endfor %}
"""


class PreviewFormat(str, Enum):
    PLAIN = "PlainText"
    JSON = "JSON"
    MARKDOWN = "Markdown"

    @classmethod
    def parse(cls, value: str | "PreviewFormat") -> "PreviewFormat":
        if isinstance(value, PreviewFormat):
            return value
        lowered = str(value).strip().lower()
        for member in cls:
            if lowered in {member.value.lower(), member.name.lower()}:
                return member
        if lowered in {"plain", "text", "txt"}:
            return cls.PLAIN
        if lowered in {"md"}:
            return cls.MARKDOWN
        raise ValueError(f"Unknown preview format: {value!r}")


def _create_env() -> Environment:
    loader = DictLoader({"sections.j2": _SECTIONS_TEMPLATE})
    return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


_ENV = _create_env()


def _sections(context: PromptBuildContext) -> List[Dict[str, object]]:
    sections: List[Dict[str, object]] = []
    goal = context.goal.strip()
    if goal:
        sections.append({"title": "Goal", "text": goal, "lines": None})
    background = context.context.strip()
    if background:
        sections.append({"title": "Context", "text": background, "lines": None})
    if context.constraints:
        sections.append({"title": "Constraints", "text": "", "lines": list(context.constraints)})
    if context.deliverables:
        sections.append({"title": "Deliverables", "text": "", "lines": list(context.deliverables)})
    return sections


def build_preview(context: PromptBuildContext, format: PreviewFormat | str) -> str:
    """Render the goal, context, constraints and deliverables of ``context``.

    Blank goal/context and empty lists are omitted from the text formats; the
    JSON form always carries all four keys with trimmed goal and context.
    """
    preview_format = PreviewFormat.parse(format)
    if preview_format is PreviewFormat.JSON:
        payload = {
            "goal": context.goal.strip(),
            "context": context.context.strip(),
            "constraints": list(context.constraints),
            "deliverables": list(context.deliverables),
        }
        return json.dumps(payload, indent=2, sort_keys=True)

    style = "markdown" if preview_format is PreviewFormat.MARKDOWN else "plain"
    template = _ENV.get_template("sections.j2")
    rendered = template.render(sections=_sections(context), style=style)
    return rendered.rstrip("\n")


__all__ = ["PreviewFormat", "build_preview"]
