"""Forge run history, newest first and capped."""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional

from ..logging import get_logger
from ..models import EnhancementOptions, PromptHistoryEntry, PromptTarget
from .backends import StorageBackend, StoreDecodeError
from .library import Clock, IdFactory, format_timestamp, new_id, parse_timestamp, utc_now

logger = get_logger("stores.history")


class HistoryStore:
    FILENAME = "history.json"
    CAP = 50

    def __init__(
        self,
        backend: StorageBackend,
        *,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
    ) -> None:
        self.backend = backend
        self._clock = clock or utc_now
        self._new_id = id_factory or new_id
        self._entries: List[PromptHistoryEntry] = []
        self.persist_blocked = False
        self.reload()

    @property
    def entries(self) -> List[PromptHistoryEntry]:
        return list(self._entries)

    def reload(self) -> None:
        try:
            payload = self.backend.load(self.FILENAME)
        except StoreDecodeError as exc:
            logger.warning("%s; keeping stored history untouched", exc)
            self._entries = []
            self.persist_blocked = True
            return
        self._entries = []
        self.persist_blocked = False
        if payload is None:
            return
        if not isinstance(payload, list):
            logger.warning("Stored history is not a list; keeping it untouched")
            self.persist_blocked = True
            return
        entries = [entry for entry in map(_entry_from_dict, payload) if entry is not None]
        self._entries = entries[: self.CAP]
        skipped = len(payload) - len(entries)
        if skipped:
            logger.warning(
                "Skipped %d unreadable history entries; keeping stored history untouched",
                skipped,
            )
            self.persist_blocked = True

    def persist(self, *, force: bool = False) -> bool:
        if self.persist_blocked and not force:
            logger.warning("Not saving %s: stored data could not be decoded", self.FILENAME)
            return False
        self._entries = self._entries[: self.CAP]
        saved = self.backend.save(self.FILENAME, [entry_to_dict(entry) for entry in self._entries])
        if saved:
            self.persist_blocked = False
        return saved

    def record(
        self,
        *,
        target: PromptTarget,
        original_input: str,
        generated_prompt: str,
        options: EnhancementOptions,
        variables: Mapping[str, str] | None = None,
    ) -> PromptHistoryEntry:
        entry = PromptHistoryEntry(
            id=self._new_id(),
            timestamp=self._clock(),
            target=target,
            original_input=original_input,
            generated_prompt=generated_prompt,
            options=options,
            variables=dict(variables or {}),
        )
        self._entries.insert(0, entry)
        self.persist()
        return entry

    def clear(self, *, force: bool = False) -> bool:
        self._entries = []
        return self.persist(force=force)

    def recent_inputs(self, limit: int = CAP) -> List[str]:
        """Original inputs of the newest entries, for weight learning."""
        return [entry.original_input for entry in self._entries[:limit]]


def entry_to_dict(entry: PromptHistoryEntry) -> Dict[str, object]:
    return {
        "id": entry.id,
        "timestamp": format_timestamp(entry.timestamp),
        "target": entry.target.value,
        "originalInput": entry.original_input,
        "generatedPrompt": entry.generated_prompt,
        "options": entry.options.to_dict(),
        "variables": dict(entry.variables),
    }


def _entry_from_dict(payload: object) -> Optional[PromptHistoryEntry]:
    if not isinstance(payload, dict):
        return None
    entry_id = payload.get("id")
    original = payload.get("originalInput")
    generated = payload.get("generatedPrompt")
    if not isinstance(entry_id, str) or not isinstance(original, str) or not isinstance(
        generated, str
    ):
        logger.debug("Skipping malformed history entry")
        return None
    try:
        timestamp = parse_timestamp(payload.get("timestamp"))
        target = PromptTarget.parse(payload.get("target", ""))
    except ValueError as exc:
        logger.debug("Skipping history entry %s: %s", entry_id, exc)
        return None
    options = payload.get("options")
    variables = payload.get("variables")
    return PromptHistoryEntry(
        id=entry_id,
        timestamp=timestamp,
        target=target,
        original_input=original,
        generated_prompt=generated,
        options=EnhancementOptions.from_dict(options if isinstance(options, dict) else None),
        variables={
            str(key): value
            for key, value in (variables.items() if isinstance(variables, dict) else [])
            if isinstance(value, str)
        },
    )


__all__ = ["HistoryStore", "entry_to_dict"]
