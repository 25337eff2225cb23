"""Storage backends that hold named JSON documents."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Protocol

from ..logging import get_logger

logger = get_logger("stores.backends")


class StoreDecodeError(RuntimeError):
    """Raised when a stored document exists but is not readable JSON."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Unable to decode stored document '{name}': {reason}")
        self.name = name
        self.reason = reason


class StorageBackend(Protocol):
    def load(self, name: str) -> Any | None:
        ...

    def save(self, name: str, value: Any) -> bool:
        ...

    def delete(self, name: str) -> None:
        ...


def _encode(value: Any) -> str:
    return json.dumps(value, indent=2, sort_keys=True)


class FileStorageBackend:
    """Keeps each document as a pretty-printed JSON file under ``root``."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).expanduser()

    def path_for(self, name: str) -> Path:
        return self.root / name

    def load(self, name: str) -> Any | None:
        path = self.path_for(name)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreDecodeError(name, str(exc)) from exc
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StoreDecodeError(name, str(exc)) from exc

    def save(self, name: str, value: Any) -> bool:
        path = self.path_for(name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Write beside the target first so a failed write never truncates it.
            staging = path.with_name(f".{path.name}.tmp")
            staging.write_text(_encode(value), encoding="utf-8")
            staging.replace(path)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Failed to save %s: %s", path, exc)
            return False
        logger.debug("Saved %s", path)
        return True

    def delete(self, name: str) -> None:
        self.path_for(name).unlink(missing_ok=True)


class MemoryStorageBackend:
    """In-process backend; documents are stored encoded so loads return fresh copies."""

    def __init__(self, documents: Dict[str, str] | None = None) -> None:
        self.documents: Dict[str, str] = dict(documents or {})

    def load(self, name: str) -> Any | None:
        raw = self.documents.get(name)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StoreDecodeError(name, str(exc)) from exc

    def save(self, name: str, value: Any) -> bool:
        try:
            self.documents[name] = _encode(value)
        except (TypeError, ValueError) as exc:
            logger.error("Failed to encode %s: %s", name, exc)
            return False
        return True

    def delete(self, name: str) -> None:
        self.documents.pop(name, None)


__all__ = [
    "FileStorageBackend",
    "MemoryStorageBackend",
    "StorageBackend",
    "StoreDecodeError",
]
