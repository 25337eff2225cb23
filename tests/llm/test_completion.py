"""Tests for the advisory completion wrapper."""

from __future__ import annotations

from promptforge.llm.completion import DEFAULT_ADVISORY_TOKENS, CompletionAdvisor


class _Completion:
    def __init__(self, reply: str = "", error: bool = False) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[int | None] = []

    def generate(self, prompt: str, *, max_tokens: int | None = None) -> str:
        self.calls.append(max_tokens)
        if self.error:
            raise RuntimeError("unavailable")
        return self.reply


def test_advisor_strips_reply_and_passes_token_limit() -> None:
    completion = _Completion(reply="  tighten scope \n")

    assert CompletionAdvisor(completion).advise("prompt") == "tighten scope"
    assert completion.calls == [DEFAULT_ADVISORY_TOKENS]


def test_advisor_returns_none_for_blank_or_failed_completion() -> None:
    assert CompletionAdvisor(_Completion(reply="   ")).advise("prompt") is None
    assert CompletionAdvisor(_Completion(error=True)).advise("prompt") is None
