"""Shared fixtures for deterministic clocks, ids and storage."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from itertools import count

import pytest

from promptforge.stores import MemoryStorageBackend


class FakeClock:
    """Deterministic clock that advances one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock starting at 2024-01-01T00:00:00Z."""
    return FakeClock()


@pytest.fixture
def id_factory():
    """Provide sequential ids ``ID-0001``, ``ID-0002`` and so on."""
    counter = count(1)
    return lambda: f"ID-{next(counter):04d}"


@pytest.fixture
def memory_backend() -> MemoryStorageBackend:
    """Provide an empty in-memory storage backend."""
    return MemoryStorageBackend()
