"""Tests for the local HTTP completion runner."""

from __future__ import annotations

import json

import pytest

from promptforge.llm.runner import CompletionRequest, HttpCompletionRunner

_ENV_KEYS = (
    "PROMPTFORGE_LLM_MODEL",
    "MODEL_RUNNER_MODEL",
    "PROMPTFORGE_LLM_BASE_URL",
    "MODEL_RUNNER_BASE_URL",
    "PROMPTFORGE_LLM_API_KEY",
    "MODEL_RUNNER_API_KEY",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_runner_builds_request_for_transport() -> None:
    captured: list[CompletionRequest] = []

    def fake_transport(request: CompletionRequest) -> str:
        captured.append(request)
        return "response"

    runner = HttpCompletionRunner(
        "custom-model",
        base_url="http://localhost:9000/v1/",
        api_key="secret",
        temperature=0.15,
        request_timeout=42.0,
        transport=fake_transport,
    )
    result = runner.generate("Hello world", max_tokens=64, system="system message")

    assert result == "response"
    request = captured[0]
    assert request.prompt == "Hello world"
    assert request.system == "system message"
    assert request.model == "custom-model"
    assert request.base_url == "http://localhost:9000/v1"
    assert request.api_key == "secret"
    assert request.max_tokens == 64
    assert request.temperature == 0.15
    assert request.timeout == 42.0


def test_runner_reads_defaults_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("PROMPTFORGE_LLM_MODEL", "env-model")
    monkeypatch.setenv("MODEL_RUNNER_BASE_URL", "http://127.0.0.1:8080/engines/v1")
    monkeypatch.setenv("MODEL_RUNNER_API_KEY", "env-key")

    runner = HttpCompletionRunner()

    assert runner.model == "env-model"
    assert runner.base_url == "http://127.0.0.1:8080/engines/v1"
    assert runner.api_key == "env-key"


def test_runner_rejects_remote_hosts() -> None:
    with pytest.raises(RuntimeError, match="not permitted"):
        HttpCompletionRunner("m", base_url="https://api.example.com/v1")


def test_local_host_detection() -> None:
    assert HttpCompletionRunner.is_local_host("localhost")
    assert HttpCompletionRunner.is_local_host("printer.local")
    assert HttpCompletionRunner.is_local_host("127.0.0.2")
    assert not HttpCompletionRunner.is_local_host("10.0.0.5")
    assert not HttpCompletionRunner.is_local_host("example.com")


def test_runner_posts_chat_completion_payload(monkeypatch) -> None:
    captured = {}

    class FakeResponse:
        def __init__(self, payload):
            self._payload = payload

        def read(self):
            return json.dumps(self._payload).encode("utf-8")

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

    def fake_urlopen(request, timeout):  # type: ignore[no-untyped-def]
        captured["url"] = request.full_url
        captured["headers"] = dict(request.header_items())
        captured["body"] = json.loads(request.data.decode("utf-8"))
        captured["timeout"] = timeout
        return FakeResponse({"choices": [{"message": {"content": "  advice  "}}]})

    monkeypatch.setattr("promptforge.llm.runner.urlopen", fake_urlopen)

    runner = HttpCompletionRunner("model-x", api_key=None)
    result = runner.generate("Review this", max_tokens=32, system="Be brief")

    assert result == "advice"
    assert captured["url"] == "http://localhost:12434/engines/v1/chat/completions"
    assert captured["timeout"] == HttpCompletionRunner.DEFAULT_TIMEOUT
    assert "Authorization" not in captured["headers"]
    assert captured["body"] == {
        "model": "model-x",
        "messages": [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Review this"},
        ],
        "temperature": 0.2,
        "max_tokens": 32,
    }


def test_empty_completion_is_an_error(monkeypatch) -> None:
    class EmptyResponse:
        def read(self):
            return b'{"choices": []}'

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

    monkeypatch.setattr(
        "promptforge.llm.runner.urlopen", lambda request, timeout: EmptyResponse()
    )

    runner = HttpCompletionRunner("model-x")
    with pytest.raises(RuntimeError, match="empty response"):
        runner.generate("Review this")


def test_extract_content_accepts_text_completions() -> None:
    assert HttpCompletionRunner.extract_content({"choices": [{"text": "legacy"}]}) == "legacy"
    assert HttpCompletionRunner.extract_content(["not", "a", "dict"]) == ""
