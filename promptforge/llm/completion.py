"""The text-completion capability and its may-fail advisory wrapper."""

from __future__ import annotations

from typing import Optional, Protocol

from ..logging import get_logger

logger = get_logger("llm.completion")

DEFAULT_ADVISORY_TOKENS = 256


class TextCompletion(Protocol):
    """Anything that turns a prompt into text, raising ``RuntimeError`` on failure."""

    def generate(self, prompt: str, *, max_tokens: int | None = None) -> str:
        ...


class CompletionAdvisor:
    """Best-effort advice from a local model.

    Failures are logged and reported as ``None`` so callers never depend on
    the model being available.
    """

    def __init__(
        self, completion: TextCompletion, *, max_tokens: int = DEFAULT_ADVISORY_TOKENS
    ) -> None:
        self.completion = completion
        self.max_tokens = max_tokens

    def advise(self, prompt: str) -> Optional[str]:
        try:
            text = self.completion.generate(prompt, max_tokens=self.max_tokens)
        except RuntimeError as exc:
            logger.warning("Text completion unavailable: %s", exc)
            return None
        text = text.strip()
        return text or None


__all__ = ["CompletionAdvisor", "DEFAULT_ADVISORY_TOKENS", "TextCompletion"]
