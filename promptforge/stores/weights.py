"""Persisted optimizer weights."""

from __future__ import annotations

from typing import Optional

from ..logging import get_logger
from ..optimizer.weights import OptimizerWeights
from .backends import StorageBackend, StoreDecodeError

logger = get_logger("stores.weights")


class WeightsStore:
    """Reads and writes ``optimizer-weights.json``; values are always clamped."""

    FILENAME = "optimizer-weights.json"

    def __init__(self, backend: StorageBackend) -> None:
        self.backend = backend

    def load(self) -> Optional[OptimizerWeights]:
        try:
            payload = self.backend.load(self.FILENAME)
        except StoreDecodeError as exc:
            logger.warning("%s; using default weights", exc)
            return None
        if not isinstance(payload, dict):
            return None
        return OptimizerWeights.from_dict(payload)

    def save(self, weights: OptimizerWeights) -> bool:
        return self.backend.save(self.FILENAME, weights.clamped().to_dict())

    def clear(self) -> None:
        self.backend.delete(self.FILENAME)


__all__ = ["WeightsStore"]
