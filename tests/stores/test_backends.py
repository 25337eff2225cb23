"""Tests for the JSON storage backends."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from promptforge.stores.backends import (
    FileStorageBackend,
    MemoryStorageBackend,
    StoreDecodeError,
)


def test_file_backend_round_trips_sorted_json(tmp_path: Path) -> None:
    backend = FileStorageBackend(tmp_path / "store")

    assert backend.load("doc.json") is None
    assert backend.save("doc.json", {"b": 1, "a": [1, 2]})

    raw = (tmp_path / "store" / "doc.json").read_text(encoding="utf-8")
    assert raw == json.dumps({"a": [1, 2], "b": 1}, indent=2, sort_keys=True)
    assert backend.load("doc.json") == {"a": [1, 2], "b": 1}
    assert not (tmp_path / "store" / ".doc.json.tmp").exists()


def test_file_backend_raises_decode_error_for_corrupt_data(tmp_path: Path) -> None:
    (tmp_path / "doc.json").write_text("{not json", encoding="utf-8")
    backend = FileStorageBackend(tmp_path)

    with pytest.raises(StoreDecodeError) as excinfo:
        backend.load("doc.json")
    assert excinfo.value.name == "doc.json"


def test_file_backend_save_reports_unencodable_values(tmp_path: Path) -> None:
    backend = FileStorageBackend(tmp_path)
    (tmp_path / "doc.json").write_text('{"keep": true}', encoding="utf-8")

    assert not backend.save("doc.json", {"bad": object()})
    assert backend.load("doc.json") == {"keep": True}


def test_file_backend_delete_is_idempotent(tmp_path: Path) -> None:
    backend = FileStorageBackend(tmp_path)
    backend.save("doc.json", [])

    backend.delete("doc.json")
    backend.delete("doc.json")

    assert backend.load("doc.json") is None


def test_memory_backend_returns_fresh_copies() -> None:
    backend = MemoryStorageBackend()
    backend.save("doc.json", {"items": [1]})

    loaded = backend.load("doc.json")
    loaded["items"].append(2)

    assert backend.load("doc.json") == {"items": [1]}


def test_memory_backend_decode_error() -> None:
    backend = MemoryStorageBackend({"doc.json": "[broken"})

    with pytest.raises(StoreDecodeError):
        backend.load("doc.json")
