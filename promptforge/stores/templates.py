"""Reusable prompt templates with categories, tags and visible-list sorting."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
import unicodedata
from typing import Dict, List, Optional, Sequence

from ..logging import get_logger
from ..models import PromptTarget, PromptTemplate
from .backends import StorageBackend, StoreDecodeError
from .library import (
    Clock,
    IdFactory,
    UNCATEGORIZED,
    format_timestamp,
    new_id,
    parse_timestamp,
    utc_now,
)
from .presets import PRESETS

logger = get_logger("stores.templates")

UNTITLED_TEMPLATE = "Untitled Template"


class TemplateNotFoundError(LookupError):
    def __init__(self, template_id: str) -> None:
        super().__init__(f"Template not found: {template_id}")
        self.template_id = template_id


class TemplateSort(str, Enum):
    RECENTLY_UPDATED = "Recently Updated"
    RECENTLY_CREATED = "Recently Created"
    NAME_ASCENDING = "Name (A-Z)"

    @classmethod
    def parse(cls, value: str | "TemplateSort") -> "TemplateSort":
        if isinstance(value, TemplateSort):
            return value
        lowered = str(value).strip().lower()
        for member in cls:
            names = {member.value.lower(), member.name.lower()}
            if lowered in names or lowered.replace("-", "_") in names:
                return member
        aliases = {
            "updated": cls.RECENTLY_UPDATED,
            "created": cls.RECENTLY_CREATED,
            "name": cls.NAME_ASCENDING,
        }
        if lowered in aliases:
            return aliases[lowered]
        raise ValueError(f"Unknown template sort: {value!r}")


def normalize_category(value: str | None) -> str:
    trimmed = (value or "").strip()
    return trimmed or UNCATEGORIZED


def normalize_tags(values: Sequence[str]) -> List[str]:
    """Trim, drop blanks and keep the first spelling of case-insensitive duplicates."""
    seen: set[str] = set()
    ordered: List[str] = []
    for value in values:
        trimmed = value.strip()
        if not trimmed:
            continue
        lowered = trimmed.lower()
        if lowered not in seen:
            seen.add(lowered)
            ordered.append(trimmed)
    return ordered


def _name_fold(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return stripped.casefold()


def visible_templates(
    templates: Sequence[PromptTemplate],
    query: str = "",
    *,
    category: str | None = None,
    target: PromptTarget | None = None,
    sort: TemplateSort = TemplateSort.RECENTLY_UPDATED,
) -> List[PromptTemplate]:
    """Filter by query, category and target, then order by ``sort`` with an id tie-break.

    The query matches name, category or any tag as a case-insensitive
    substring. Name ordering ignores case and diacritics.
    """
    normalized_query = query.strip().lower()
    normalized_category = category.strip().lower() if category is not None else None

    def keep(template: PromptTemplate) -> bool:
        if (
            normalized_category is not None
            and template.category.strip().lower() != normalized_category
        ):
            return False
        if target is not None and template.target is not target:
            return False
        if not normalized_query:
            return True
        if normalized_query in template.name.lower():
            return True
        if normalized_query in template.category.lower():
            return True
        return any(normalized_query in tag.lower() for tag in template.tags)

    filtered = [template for template in templates if keep(template)]
    # Successive stable sorts, least significant key first.
    ordered = sorted(filtered, key=lambda item: item.id)
    if sort is TemplateSort.NAME_ASCENDING:
        ordered.sort(key=lambda item: item.updated_at, reverse=True)
        ordered.sort(key=lambda item: _name_fold(item.name))
    else:
        ordered.sort(key=lambda item: _name_fold(item.name))
        if sort is TemplateSort.RECENTLY_UPDATED:
            ordered.sort(key=lambda item: item.updated_at, reverse=True)
        else:
            ordered.sort(key=lambda item: item.created_at, reverse=True)
    return ordered


class TemplateStore:
    """Template list persisted as ``templates.json``; seeded with presets on first use."""

    FILENAME = "templates.json"

    def __init__(
        self,
        backend: StorageBackend,
        *,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
        seed_presets: bool = True,
    ) -> None:
        self.backend = backend
        self._clock = clock or utc_now
        self._new_id = id_factory or new_id
        self.seed_presets = seed_presets
        self._templates: List[PromptTemplate] = []
        self.persist_blocked = False
        self.reload()

    @property
    def templates(self) -> List[PromptTemplate]:
        return list(self._templates)

    def reload(self) -> None:
        try:
            payload = self.backend.load(self.FILENAME)
        except StoreDecodeError as exc:
            logger.warning("%s; keeping stored templates untouched", exc)
            self._templates = []
            self.persist_blocked = True
            return
        self.persist_blocked = False
        if payload is None:
            self._templates = self._presets() if self.seed_presets else []
            if self._templates:
                logger.debug("Seeded %d template presets", len(self._templates))
                self.persist()
            return
        if not isinstance(payload, list):
            logger.warning("Stored templates are not a list; keeping them untouched")
            self._templates = []
            self.persist_blocked = True
            return
        self._templates = [
            template
            for template in (self._template_from_dict(item) for item in payload)
            if template is not None
        ]

    def persist(self, *, force: bool = False) -> bool:
        if self.persist_blocked and not force:
            logger.warning("Not saving %s: stored data could not be decoded", self.FILENAME)
            return False
        saved = self.backend.save(
            self.FILENAME, [template_to_dict(template) for template in self._templates]
        )
        if saved:
            self.persist_blocked = False
        return saved

    def get(self, template_id: str) -> PromptTemplate:
        for template in self._templates:
            if template.id == template_id:
                return template
        raise TemplateNotFoundError(template_id)

    def find_by_name(self, name: str) -> Optional[PromptTemplate]:
        lowered = name.strip().casefold()
        for template in self._templates:
            if template.name.casefold() == lowered:
                return template
        return None

    def add(
        self,
        name: str,
        content: str,
        target: PromptTarget,
        *,
        category: str | None = None,
        tags: Sequence[str] = (),
    ) -> PromptTemplate:
        trimmed = name.strip()
        if not trimmed:
            raise ValueError("Template name is required")
        if not content.strip():
            raise ValueError("Cannot save an empty template")
        now = self._clock()
        template = PromptTemplate(
            id=self._new_id(),
            name=trimmed,
            content=content,
            target=target,
            created_at=now,
            updated_at=now,
            category=normalize_category(category),
            tags=normalize_tags(tags),
        )
        self._templates.insert(0, template)
        self.persist()
        return template

    def save(
        self,
        name: str,
        content: str,
        target: PromptTarget,
        *,
        category: str | None = None,
        tags: Sequence[str] = (),
    ) -> PromptTemplate:
        """Update the template with the same name (case-insensitive) or add a new one."""
        existing = self.find_by_name(name)
        if existing is None:
            return self.add(name, content, target, category=category, tags=tags)
        return self.update(
            existing.id,
            content=content,
            target=target,
            category=category,
            tags=tags if tags else None,
        )

    def update(
        self,
        template_id: str,
        *,
        name: str | None = None,
        content: str | None = None,
        target: PromptTarget | None = None,
        category: str | None = None,
        tags: Sequence[str] | None = None,
    ) -> PromptTemplate:
        template = self.get(template_id)
        if name is not None:
            trimmed = name.strip()
            if not trimmed:
                raise ValueError("Template name is required")
            template.name = trimmed
        if content is not None:
            if not content.strip():
                raise ValueError("Cannot save an empty template")
            template.content = content
        if target is not None:
            template.target = target
        if category is not None:
            template.category = normalize_category(category)
        if tags is not None:
            template.tags = normalize_tags(tags)
        template.updated_at = self._clock()
        self.persist()
        return template

    def delete(self, template_id: str) -> None:
        template = self.get(template_id)
        self._templates = [item for item in self._templates if item is not template]
        self.persist()

    def visible(
        self,
        query: str = "",
        *,
        category: str | None = None,
        target: PromptTarget | None = None,
        sort: TemplateSort = TemplateSort.RECENTLY_UPDATED,
    ) -> List[PromptTemplate]:
        return visible_templates(
            self._templates, query, category=category, target=target, sort=sort
        )

    def categories(self) -> List[str]:
        unique: Dict[str, str] = {}
        for template in self._templates:
            unique.setdefault(template.category.lower(), template.category)
        return sorted(unique.values(), key=_name_fold)

    def rename_category(self, source: str, destination: str) -> int:
        """Move every template in ``source`` to ``destination``; returns the count moved."""
        normalized_source = source.strip()
        normalized_destination = destination.strip()
        if not normalized_source or not normalized_destination:
            return 0
        return self._reassign(normalized_source, normalized_destination)

    def merge_category(self, source: str, destination: str) -> int:
        return self.rename_category(source, destination)

    def delete_category(self, category: str) -> int:
        normalized = category.strip()
        if not normalized:
            return 0
        return self._reassign(normalized, UNCATEGORIZED)

    # ------------------------------------------------------------------
    # Internal helpers

    def _reassign(self, source: str, destination: str) -> int:
        lowered = source.lower()
        moved = 0
        for template in self._templates:
            if template.category.lower() == lowered:
                template.category = destination
                moved += 1
        if moved:
            self.persist()
        return moved

    def _presets(self) -> List[PromptTemplate]:
        now = self._clock()
        return [
            PromptTemplate(
                id=self._new_id(),
                name=name,
                content=content,
                target=target,
                created_at=now,
                updated_at=now,
            )
            for name, target, content in PRESETS
        ]

    def _template_from_dict(self, payload: object) -> Optional[PromptTemplate]:
        if not isinstance(payload, dict):
            logger.debug("Skipping malformed template entry: %r", payload)
            return None
        template_id = payload.get("id")
        name = payload.get("name")
        content = payload.get("content")
        try:
            target = PromptTarget.parse(payload.get("target") or PromptTarget.CLAUDE)
        except ValueError:
            target = PromptTarget.CLAUDE
        created_at = _optional_timestamp(payload.get("createdAt")) or self._clock()
        updated_at = _optional_timestamp(payload.get("updatedAt")) or created_at
        category = payload.get("category")
        tags = payload.get("tags")
        return PromptTemplate(
            id=template_id if isinstance(template_id, str) and template_id else self._new_id(),
            name=name if isinstance(name, str) else UNTITLED_TEMPLATE,
            content=content if isinstance(content, str) else "",
            target=target,
            created_at=created_at,
            updated_at=updated_at,
            category=normalize_category(category if isinstance(category, str) else None),
            tags=normalize_tags(
                [tag for tag in tags if isinstance(tag, str)] if isinstance(tags, list) else []
            ),
        )


def _optional_timestamp(value: object) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        return None


def template_to_dict(template: PromptTemplate) -> Dict[str, object]:
    return {
        "id": template.id,
        "name": template.name,
        "content": template.content,
        "target": template.target.value,
        "createdAt": format_timestamp(template.created_at),
        "category": template.category,
        "tags": list(template.tags),
        "updatedAt": format_timestamp(template.updated_at),
    }


__all__ = [
    "TemplateNotFoundError",
    "TemplateSort",
    "TemplateStore",
    "UNTITLED_TEMPLATE",
    "normalize_category",
    "normalize_tags",
    "template_to_dict",
    "visible_templates",
]
