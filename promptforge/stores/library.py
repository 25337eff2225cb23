"""Versioned prompt library with categories, tags and search."""

from __future__ import annotations

from datetime import UTC, datetime
import re
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..logging import get_logger
from ..models import (
    PromptCategory,
    PromptLibraryBundle,
    PromptLibraryItem,
    PromptTag,
    PromptVersion,
)
from .backends import StorageBackend, StoreDecodeError

logger = get_logger("stores.library")

Clock = Callable[[], datetime]
IdFactory = Callable[[], str]

UNCATEGORIZED = "Uncategorized"
UNTITLED_PROMPT = "Untitled Prompt"
ROLLBACK_NOTE = "Rollback to version {version_id}"

_SEARCH_TOKEN = re.compile(r"[^\W_]+")
_UNSET: Any = object()


class PromptNotFoundError(LookupError):
    def __init__(self, prompt_id: str) -> None:
        super().__init__(f"Prompt not found: {prompt_id}")
        self.prompt_id = prompt_id


class VersionNotFoundError(LookupError):
    def __init__(self, prompt_id: str, version_id: str) -> None:
        super().__init__(f"Version {version_id} not found for prompt {prompt_id}")
        self.prompt_id = prompt_id
        self.version_id = version_id


class _ShapeError(ValueError):
    """Internal marker for a payload that does not match the expected layout."""


def utc_now() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid.uuid4()).upper()


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: object) -> datetime:
    if not isinstance(value, str):
        raise _ShapeError(f"timestamp must be a string, got {type(value).__name__}")
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise _ShapeError(f"invalid timestamp {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class PromptLibraryRepository:
    """Owns the prompt library bundle and writes it back after each mutation.

    The stored shape picks the decoder: a bare array of prompts, the legacy
    layout (a missing top-level array or prompts without versions), or the
    current bundle. Only the first two are rewritten on load. Data that
    exists but cannot be decoded by its decoder is left on disk untouched
    and persisting stays blocked until ``persist(force=True)``.

    Every persist normalizes the bundle: categories, tags and prompts are
    sorted by lower-cased name or title then id, dangling category references
    are cleared, versions are ordered newest first and capped, and each
    prompt's body is set to its newest version's content.
    """

    DEFAULT_FILENAME = "prompt-library.json"
    VERSION_CAP = 50

    def __init__(
        self,
        backend: StorageBackend,
        *,
        filename: str = DEFAULT_FILENAME,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
    ) -> None:
        self.backend = backend
        self.filename = filename
        self._clock = clock or utc_now
        self._new_id = id_factory or new_id
        self.bundle = PromptLibraryBundle()
        self.persist_blocked = False
        self.reload()

    @property
    def categories(self) -> List[PromptCategory]:
        return list(self.bundle.categories)

    @property
    def tags(self) -> List[PromptTag]:
        return list(self.bundle.tags)

    @property
    def prompts(self) -> List[PromptLibraryItem]:
        return list(self.bundle.prompts)

    def reload(self) -> None:
        """Load the stored library; only a migrated older layout is written back."""
        bundle, writable, migrated = self._load_stored()
        self.bundle = bundle
        self.persist_blocked = not writable
        if migrated:
            self.persist()
        else:
            self._normalize()

    def persist(self, *, force: bool = False) -> bool:
        """Normalize and save; returns ``False`` when blocked or the save failed."""
        self._normalize()
        if self.persist_blocked and not force:
            logger.warning(
                "Not saving %s: stored data could not be decoded (use force to overwrite)",
                self.filename,
            )
            return False
        saved = self.backend.save(self.filename, _bundle_to_dict(self.bundle))
        if saved:
            self.persist_blocked = False
        return saved

    # Categories and tags -------------------------------------------------

    def create_category(self, name: str) -> PromptCategory:
        trimmed = _require_text(name, "Category name")
        existing = _find_named(self.bundle.categories, trimmed)
        if existing is not None:
            return existing
        category = PromptCategory(id=self._new_id(), name=trimmed)
        self.bundle.categories.append(category)
        self.persist()
        return category

    def delete_category(self, category_id: str) -> None:
        now = self._clock()
        self.bundle.categories = [
            category for category in self.bundle.categories if category.id != category_id
        ]
        for prompt in self.bundle.prompts:
            if prompt.category_id == category_id:
                prompt.category_id = None
                prompt.updated_at = now
        self.persist()

    def create_tag(self, name: str) -> PromptTag:
        trimmed = _require_text(name, "Tag name")
        existing = _find_named(self.bundle.tags, trimmed)
        if existing is not None:
            return existing
        tag = PromptTag(id=self._new_id(), name=trimmed)
        self.bundle.tags.append(tag)
        self.persist()
        return tag

    def delete_tag(self, tag_id: str) -> None:
        now = self._clock()
        self.bundle.tags = [tag for tag in self.bundle.tags if tag.id != tag_id]
        for prompt in self.bundle.prompts:
            if tag_id in prompt.tag_ids:
                prompt.tag_ids = [value for value in prompt.tag_ids if value != tag_id]
                prompt.updated_at = now
        self.persist()

    def category_name(self, category_id: str | None) -> str:
        if category_id is None:
            return UNCATEGORIZED
        for category in self.bundle.categories:
            if category.id == category_id:
                return category.name
        return UNCATEGORIZED

    def tag_names(self, tag_ids: Iterable[str]) -> List[str]:
        names = {tag.id: tag.name for tag in self.bundle.tags}
        return [names[tag_id] for tag_id in tag_ids if tag_id in names]

    # Prompts -------------------------------------------------------------

    def get_prompt(self, prompt_id: str) -> PromptLibraryItem:
        for prompt in self.bundle.prompts:
            if prompt.id == prompt_id:
                return prompt
        raise PromptNotFoundError(prompt_id)

    def create_prompt(
        self,
        title: str,
        body: str,
        *,
        category_id: str | None = None,
        tag_ids: Sequence[str] = (),
    ) -> PromptLibraryItem:
        trimmed_title = _require_text(title, "Prompt title")
        _require_text(body, "Prompt body")
        now = self._clock()
        prompt = PromptLibraryItem(
            id=self._new_id(),
            title=trimmed_title,
            body=body,
            created_at=now,
            updated_at=now,
            category_id=category_id,
            tag_ids=list(tag_ids),
            versions=[PromptVersion(id=self._new_id(), created_at=now, content=body)],
        )
        self.bundle.prompts.append(prompt)
        self.persist()
        return prompt

    def update_prompt(
        self,
        prompt_id: str,
        *,
        title: str | None = None,
        category_id: Any = _UNSET,
        tag_ids: Sequence[str] | None = None,
    ) -> PromptLibraryItem:
        """Change metadata; pass ``category_id=None`` to clear the category."""
        prompt = self.get_prompt(prompt_id)
        trimmed_title = _require_text(title, "Prompt title") if title is not None else None
        if trimmed_title is not None:
            prompt.title = trimmed_title
        if category_id is not _UNSET:
            prompt.category_id = category_id
        if tag_ids is not None:
            prompt.tag_ids = list(tag_ids)
        prompt.updated_at = self._clock()
        self.persist()
        return prompt

    def update_body(self, prompt_id: str, body: str) -> PromptLibraryItem:
        self.add_version(prompt_id, body)
        return self.get_prompt(prompt_id)

    def delete_prompt(self, prompt_id: str) -> None:
        prompt = self.get_prompt(prompt_id)
        self.bundle.prompts = [item for item in self.bundle.prompts if item is not prompt]
        self.persist()

    def versions(self, prompt_id: str) -> List[PromptVersion]:
        return list(self.get_prompt(prompt_id).versions)

    def add_version(
        self, prompt_id: str, content: str, note: str | None = None
    ) -> Optional[PromptVersion]:
        """Prepend a version; content identical to the current body adds nothing."""
        prompt = self.get_prompt(prompt_id)
        if prompt.body == content:
            return None
        return self._prepend_version(prompt, content, note)

    def _prepend_version(
        self, prompt: PromptLibraryItem, content: str, note: str | None
    ) -> PromptVersion:
        now = self._clock()
        version = PromptVersion(
            id=self._new_id(),
            created_at=now,
            content=content,
            note=_clean_note(note),
        )
        prompt.body = content
        prompt.updated_at = now
        prompt.versions.insert(0, version)
        self.persist()
        return version

    def rollback(self, prompt_id: str, version_id: str) -> PromptVersion:
        prompt = self.get_prompt(prompt_id)
        target = next(
            (version for version in prompt.versions if version.id == version_id), None
        )
        if target is None:
            raise VersionNotFoundError(prompt_id, version_id)
        return self._prepend_version(
            prompt, target.content, ROLLBACK_NOTE.format(version_id=target.id)
        )

    def search(
        self,
        query: str = "",
        *,
        category_id: str | None = None,
        tag_id: str | None = None,
    ) -> List[PromptLibraryItem]:
        normalized = query.strip().lower()
        tag_names = {tag.id: tag.name.lower() for tag in self.bundle.tags}
        results: List[PromptLibraryItem] = []
        for prompt in self.bundle.prompts:
            if category_id is not None and prompt.category_id != category_id:
                continue
            if tag_id is not None and tag_id not in prompt.tag_ids:
                continue
            if normalized and not self._prompt_matches(prompt, normalized, tag_names):
                continue
            results.append(prompt)
        return results

    # ------------------------------------------------------------------
    # Internal helpers

    @staticmethod
    def _prompt_matches(
        prompt: PromptLibraryItem, query: str, tag_names: Dict[str, str]
    ) -> bool:
        if _matches_search(prompt.title, query) or _matches_search(prompt.body, query):
            return True
        return any(
            _matches_search(tag_names[tag_id], query)
            for tag_id in prompt.tag_ids
            if tag_id in tag_names
        )

    def _load_stored(self) -> Tuple[PromptLibraryBundle, bool, bool]:
        """Return ``(bundle, writable, migrated)`` for the stored document."""
        try:
            payload = self.backend.load(self.filename)
        except StoreDecodeError as exc:
            logger.warning("%s; keeping stored data untouched", exc)
            return PromptLibraryBundle(), False, False
        if payload is None:
            logger.debug("No stored library at %s; starting empty", self.filename)
            return PromptLibraryBundle(), True, False

        if isinstance(payload, list):
            label, decoder, migrated = "prompt array", self._decode_prompt_array, True
        elif _is_legacy_layout(payload):
            label, decoder, migrated = "legacy bundle", self._decode_legacy_bundle, True
        else:
            label, decoder, migrated = "bundle", self._decode_bundle, False

        try:
            bundle = decoder(payload)
        except _ShapeError as exc:
            logger.warning(
                "Stored library %s does not decode as a %s (%s); keeping it untouched",
                self.filename,
                label,
                exc,
            )
            return PromptLibraryBundle(), False, False
        logger.debug("Loaded library from %s as %s", self.filename, label)
        return bundle, True, migrated

    def _decode_bundle(self, payload: object) -> PromptLibraryBundle:
        if not isinstance(payload, dict):
            raise _ShapeError("bundle must be an object")
        return PromptLibraryBundle(
            categories=[_category_from_dict(item) for item in _require_list(payload, "categories")],
            tags=[_tag_from_dict(item) for item in _require_list(payload, "tags")],
            prompts=[_item_from_dict(item) for item in _require_list(payload, "prompts")],
        )

    def _decode_prompt_array(self, payload: object) -> PromptLibraryBundle:
        if not isinstance(payload, list):
            raise _ShapeError("expected a list of prompts")
        return PromptLibraryBundle(prompts=[_item_from_dict(item) for item in payload])

    def _decode_legacy_bundle(self, payload: object) -> PromptLibraryBundle:
        if not isinstance(payload, dict):
            raise _ShapeError("legacy bundle must be an object")
        return PromptLibraryBundle(
            categories=[
                _category_from_dict(item) for item in _optional_list(payload, "categories")
            ],
            tags=[_tag_from_dict(item) for item in _optional_list(payload, "tags")],
            prompts=[
                self._legacy_item_from_dict(item)
                for item in _optional_list(payload, "prompts")
            ],
        )

    def _legacy_item_from_dict(self, payload: object) -> PromptLibraryItem:
        if not isinstance(payload, dict):
            raise _ShapeError("legacy prompt must be an object")
        title = payload.get("title")
        if not isinstance(title, str) or not title.strip():
            title = UNTITLED_PROMPT
        body = payload.get("body")
        created_raw = payload.get("createdAt")
        created_at = parse_timestamp(created_raw) if created_raw is not None else self._clock()
        updated_raw = payload.get("updatedAt")
        updated_at = parse_timestamp(updated_raw) if updated_raw is not None else created_at
        prompt_id = payload.get("id")
        return PromptLibraryItem(
            id=prompt_id if isinstance(prompt_id, str) and prompt_id else self._new_id(),
            title=title,
            body=body if isinstance(body, str) else "",
            created_at=created_at,
            updated_at=updated_at,
            category_id=_optional_str(payload, "categoryId"),
            tag_ids=_str_list(payload.get("tagIds") or []),
            versions=[
                _version_from_dict(item) for item in _optional_list(payload, "versions")
            ],
        )

    def _normalize(self) -> None:
        self.bundle.categories = sorted(self.bundle.categories, key=_name_key)
        self.bundle.tags = sorted(self.bundle.tags, key=_name_key)
        category_ids = {category.id for category in self.bundle.categories}
        tag_sort = {tag.id: tag.name.lower() for tag in self.bundle.tags}

        for prompt in self.bundle.prompts:
            if prompt.category_id is not None and prompt.category_id not in category_ids:
                prompt.category_id = None
            if not prompt.versions:
                prompt.versions = [
                    PromptVersion(
                        id=self._new_id(), created_at=prompt.created_at, content=prompt.body
                    )
                ]
            else:
                # Stable sort keeps insertion order for equal timestamps.
                ordered = sorted(prompt.versions, key=lambda item: item.created_at, reverse=True)
                prompt.versions = ordered[: self.VERSION_CAP]
            prompt.body = prompt.versions[0].content
            prompt.tag_ids = _normalize_tag_ids(prompt.tag_ids, tag_sort)

        self.bundle.prompts = sorted(
            self.bundle.prompts, key=lambda item: (item.title.lower(), item.id.lower())
        )


def _is_legacy_layout(payload: object) -> bool:
    """A mapping missing a top-level array, or holding prompts saved before versioning."""
    if not isinstance(payload, dict):
        return False
    if any(payload.get(key) is None for key in ("categories", "tags", "prompts")):
        return True
    prompts = payload["prompts"]
    return isinstance(prompts, list) and any(
        isinstance(item, dict) and "versions" not in item for item in prompts
    )


def _matches_search(text: str, query: str) -> bool:
    lowered = text.lower()
    # Short queries match whole tokens so "ui" does not hit "builder".
    if len(query) <= 2:
        return query in _SEARCH_TOKEN.findall(lowered)
    return query in lowered


def _require_text(value: str, label: str) -> str:
    trimmed = (value or "").strip()
    if not trimmed:
        raise ValueError(f"{label} must not be empty")
    return trimmed


def _clean_note(note: str | None) -> Optional[str]:
    if note is None:
        return None
    trimmed = note.strip()
    return trimmed or None


def _find_named(items: Iterable[Any], name: str) -> Any | None:
    lowered = name.casefold()
    for item in items:
        if item.name.casefold() == lowered:
            return item
    return None


def _name_key(item: PromptCategory | PromptTag) -> Tuple[str, str]:
    return (item.name.lower(), item.id.lower())


def _normalize_tag_ids(tag_ids: Sequence[str], tag_sort: Dict[str, str]) -> List[str]:
    unique = list(dict.fromkeys(tag_ids))
    return sorted(unique, key=lambda tag_id: (tag_sort.get(tag_id, tag_id.lower()), tag_id.lower()))


def _require_list(payload: Dict[str, Any], key: str) -> List[Any]:
    value = payload.get(key)
    if not isinstance(value, list):
        raise _ShapeError(f"'{key}' must be a list")
    return value


def _optional_list(payload: Dict[str, Any], key: str) -> List[Any]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise _ShapeError(f"'{key}' must be a list")
    return value


def _require_str(payload: Dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise _ShapeError(f"'{key}' must be a string")
    return value


def _optional_str(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise _ShapeError(f"'{key}' must be a string")
    return value


def _str_list(value: object) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise _ShapeError("expected a list of strings")
    return list(value)


def _category_from_dict(payload: object) -> PromptCategory:
    if not isinstance(payload, dict):
        raise _ShapeError("category must be an object")
    return PromptCategory(id=_require_str(payload, "id"), name=_require_str(payload, "name"))


def _tag_from_dict(payload: object) -> PromptTag:
    if not isinstance(payload, dict):
        raise _ShapeError("tag must be an object")
    return PromptTag(id=_require_str(payload, "id"), name=_require_str(payload, "name"))


def _version_from_dict(payload: object) -> PromptVersion:
    if not isinstance(payload, dict):
        raise _ShapeError("version must be an object")
    return PromptVersion(
        id=_require_str(payload, "id"),
        created_at=parse_timestamp(payload.get("createdAt")),
        content=_require_str(payload, "content"),
        note=_optional_str(payload, "note"),
    )


def _item_from_dict(payload: object) -> PromptLibraryItem:
    if not isinstance(payload, dict):
        raise _ShapeError("prompt must be an object")
    return PromptLibraryItem(
        id=_require_str(payload, "id"),
        title=_require_str(payload, "title"),
        body=_require_str(payload, "body"),
        created_at=parse_timestamp(payload.get("createdAt")),
        updated_at=parse_timestamp(payload.get("updatedAt")),
        category_id=_optional_str(payload, "categoryId"),
        tag_ids=_str_list(payload.get("tagIds")),
        versions=[_version_from_dict(item) for item in _require_list(payload, "versions")],
    )


def _version_to_dict(version: PromptVersion) -> Dict[str, object]:
    data: Dict[str, object] = {
        "id": version.id,
        "createdAt": format_timestamp(version.created_at),
        "content": version.content,
    }
    if version.note is not None:
        data["note"] = version.note
    return data


def item_to_dict(prompt: PromptLibraryItem) -> Dict[str, object]:
    data: Dict[str, object] = {
        "id": prompt.id,
        "title": prompt.title,
        "body": prompt.body,
        "tagIds": list(prompt.tag_ids),
        "versions": [_version_to_dict(version) for version in prompt.versions],
        "createdAt": format_timestamp(prompt.created_at),
        "updatedAt": format_timestamp(prompt.updated_at),
    }
    if prompt.category_id is not None:
        data["categoryId"] = prompt.category_id
    return data


def _bundle_to_dict(bundle: PromptLibraryBundle) -> Dict[str, object]:
    return {
        "categories": [{"id": item.id, "name": item.name} for item in bundle.categories],
        "tags": [{"id": item.id, "name": item.name} for item in bundle.tags],
        "prompts": [item_to_dict(prompt) for prompt in bundle.prompts],
    }


__all__ = [
    "PromptLibraryRepository",
    "PromptNotFoundError",
    "ROLLBACK_NOTE",
    "UNCATEGORIZED",
    "VersionNotFoundError",
    "format_timestamp",
    "item_to_dict",
    "new_id",
    "parse_timestamp",
    "utc_now",
]
