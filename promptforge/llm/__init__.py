"""Local text-completion collaborators."""

from .completion import CompletionAdvisor, TextCompletion
from .llamacpp import LlamaCppRunner
from .runner import HttpCompletionRunner

__all__ = ["CompletionAdvisor", "HttpCompletionRunner", "LlamaCppRunner", "TextCompletion"]
