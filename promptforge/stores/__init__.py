"""Persistence for the prompt library, templates, history and optimizer weights."""

from .backends import FileStorageBackend, MemoryStorageBackend, StorageBackend, StoreDecodeError
from .history import HistoryStore
from .library import PromptLibraryRepository, PromptNotFoundError, VersionNotFoundError
from .templates import TemplateNotFoundError, TemplateSort, TemplateStore
from .weights import WeightsStore

__all__ = [
    "FileStorageBackend",
    "HistoryStore",
    "MemoryStorageBackend",
    "PromptLibraryRepository",
    "PromptNotFoundError",
    "StorageBackend",
    "StoreDecodeError",
    "TemplateNotFoundError",
    "TemplateSort",
    "TemplateStore",
    "VersionNotFoundError",
    "WeightsStore",
]
