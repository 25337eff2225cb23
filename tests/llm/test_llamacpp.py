"""Tests for the llama.cpp runner adapter."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from promptforge.llm.llamacpp import LlamaCppRunner


def _model(tmp_path: Path) -> Path:
    model = tmp_path / "model.gguf"
    model.write_text("dummy", encoding="utf-8")
    return model


def test_llamacpp_runner_invokes_executor(tmp_path: Path) -> None:
    model = _model(tmp_path)
    recorded: list[dict] = []

    def fake_run(args, **kwargs):  # type: ignore[no-untyped-def]
        recorded.append({"args": list(args), **kwargs})
        return subprocess.CompletedProcess(args, 0, stdout=" response \n", stderr="")

    runner = LlamaCppRunner(
        model_path=str(model),
        executable="llama-binary",
        max_tokens=128,
        temperature=0.5,
        timeout=3.0,
        executor=fake_run,
    )
    response = runner.generate("Hello", system="Be helpful", max_tokens=64)

    assert response == "response"
    assert runner.model_path == model.resolve()
    call = recorded[0]
    args = call["args"]
    assert args[0] == "llama-binary"
    assert args[args.index("-m") + 1] == str(model.resolve())
    assert args[args.index("-p") + 1] == "Be helpful\n\nHello"
    assert args[args.index("-n") + 1] == "64"
    assert args[args.index("--temp") + 1] == "0.5"
    assert call["timeout"] == 3.0


def test_llamacpp_runner_validates_model_path(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError, match="not found"):
        LlamaCppRunner(model_path=str(tmp_path / "missing.gguf"))
    with pytest.raises(RuntimeError, match="must be a file"):
        LlamaCppRunner(model_path=str(tmp_path))


def test_llamacpp_timeout_becomes_runtime_error(tmp_path: Path) -> None:
    def slow_run(args, **kwargs):  # type: ignore[no-untyped-def]
        raise subprocess.TimeoutExpired(args, kwargs["timeout"])

    runner = LlamaCppRunner(model_path=str(_model(tmp_path)), executor=slow_run)

    with pytest.raises(RuntimeError, match="timed out"):
        runner.generate("Hello")


def test_llamacpp_failure_reports_stderr(tmp_path: Path) -> None:
    def failing_run(args, **kwargs):  # type: ignore[no-untyped-def]
        raise subprocess.CalledProcessError(1, args, output="", stderr="bad model")

    runner = LlamaCppRunner(model_path=str(_model(tmp_path)), executor=failing_run)

    with pytest.raises(RuntimeError, match="bad model"):
        runner.generate("Hello")


def test_llamacpp_empty_output_is_an_error(tmp_path: Path) -> None:
    def empty_run(args, **kwargs):  # type: ignore[no-untyped-def]
        return subprocess.CompletedProcess(args, 0, stdout="   ", stderr="")

    runner = LlamaCppRunner(model_path=str(_model(tmp_path)), executor=empty_run)

    with pytest.raises(RuntimeError, match="produced no output"):
        runner.generate("Hello")
