"""Text completion through the llama.cpp command-line binary."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, List, Optional

from ..logging import get_logger

logger = get_logger("llm.llamacpp")

Executor = Callable[..., "subprocess.CompletedProcess[str]"]


def resolve_model_file(model_path: str | Path) -> Path:
    """Absolute path of an existing GGUF (or other) model file."""
    candidate = Path(model_path).expanduser().resolve()
    if not candidate.exists():
        raise RuntimeError(f"Local model not found at {candidate}")
    if not candidate.is_file():
        raise RuntimeError(f"Local model path must be a file: {candidate}")
    return candidate


class LlamaCppRunner:
    """Runs ``llama-cli`` once per completion with a hard timeout.

    The system text, when given, is prepended to the prompt because the CLI
    has no separate system slot. Every failure surfaces as ``RuntimeError``.
    """

    DEFAULT_EXECUTABLE = "llama-cli"
    DEFAULT_TIMEOUT = 20.0

    def __init__(
        self,
        *,
        model_path: str,
        executable: str | None = None,
        temperature: Optional[float] = 0.2,
        max_tokens: Optional[int] = None,
        timeout: float = DEFAULT_TIMEOUT,
        executor: Executor | None = None,
    ) -> None:
        self.model_path = resolve_model_file(model_path)
        self.executable = executable or self.DEFAULT_EXECUTABLE
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._execute = executor or subprocess.run

    def generate(
        self, prompt: str, *, max_tokens: Optional[int] = None, system: str | None = None
    ) -> str:
        full_prompt = prompt if not system else "\n\n".join((system.strip(), prompt))
        command = self.build_args(full_prompt, max_tokens)
        logger.debug("Invoking %s (timeout %ss)", self.executable, self.timeout)
        completed = self._invoke(command)
        text = (completed.stdout or "").strip()
        if not text:
            raise RuntimeError(f"{self.executable} produced no output")
        return text

    def build_args(self, prompt: str, max_tokens: Optional[int] = None) -> List[str]:
        limit = self.max_tokens if max_tokens is None else max_tokens
        command = [self.executable, "-m", str(self.model_path), "-p", prompt]
        command.append("--no-display-prompt")
        if self.temperature is not None:
            command += ["--temp", str(self.temperature)]
        if limit is not None:
            command += ["-n", str(limit)]
        return command

    def _invoke(self, command: List[str]) -> "subprocess.CompletedProcess[str]":
        try:
            return self._execute(
                command, check=True, capture_output=True, text=True, timeout=self.timeout
            )
        except FileNotFoundError as exc:  # pragma: no cover - environment dependent
            raise RuntimeError(f"Executable '{self.executable}' is not on PATH") from exc
        except subprocess.TimeoutExpired as exc:
            raise RuntimeError(f"{self.executable} timed out after {self.timeout}s") from exc
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or "").strip() or (exc.stdout or "").strip()
            raise RuntimeError(
                f"{self.executable} exited with status {exc.returncode}: {detail or 'no details'}"
            ) from exc


__all__ = ["LlamaCppRunner", "resolve_model_file"]
