"""Text completion over a local OpenAI-compatible HTTP endpoint."""

from __future__ import annotations

import ipaddress
import json
import os
from dataclasses import dataclass
from typing import Callable, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from ..logging import get_logger

logger = get_logger("llm.http")

_AUTO = object()


@dataclass
class CompletionRequest:
    """One completion call as sent to the transport."""

    prompt: str
    system: Optional[str]
    model: str
    max_tokens: Optional[int]
    temperature: Optional[float]
    base_url: str
    api_key: Optional[str]
    timeout: float


class HttpCompletionRunner:
    """Calls ``<base_url>/chat/completions`` on a local model runtime.

    Remote hosts are refused at construction time. ``transport`` replaces the
    urllib call, which keeps tests offline.
    """

    DEFAULT_MODEL = "ai/smollm2:360M-Q4_K_M"
    DEFAULT_BASE_URL = "http://localhost:12434/engines/v1"
    DEFAULT_TIMEOUT = 20.0
    ENV_MODEL_KEYS = ("PROMPTFORGE_LLM_MODEL", "MODEL_RUNNER_MODEL")
    ENV_BASE_URL_KEYS = ("PROMPTFORGE_LLM_BASE_URL", "MODEL_RUNNER_BASE_URL")
    ENV_API_KEY_KEYS = ("PROMPTFORGE_LLM_API_KEY", "MODEL_RUNNER_API_KEY")
    LOCAL_HOSTS = frozenset(
        {"localhost", "127.0.0.1", "0.0.0.0", "::1", "model-runner.docker.internal"}
    )

    def __init__(
        self,
        model: str | None = None,
        *,
        base_url: str | None = None,
        api_key: str | None | object = _AUTO,
        temperature: Optional[float] = 0.2,
        request_timeout: float = DEFAULT_TIMEOUT,
        transport: Callable[[CompletionRequest], str] | None = None,
    ) -> None:
        self.model = model or _first_env(self.ENV_MODEL_KEYS) or self.DEFAULT_MODEL
        self.base_url = self.ensure_local_url(
            base_url or _first_env(self.ENV_BASE_URL_KEYS) or self.DEFAULT_BASE_URL
        )
        if api_key is _AUTO:
            self.api_key: Optional[str] = _first_env(self.ENV_API_KEY_KEYS)
        else:
            self.api_key = api_key  # type: ignore[assignment]
        self.temperature = temperature
        self.request_timeout = request_timeout
        self._transport = transport or self._post

    def generate(
        self, prompt: str, *, max_tokens: int | None = None, system: str | None = None
    ) -> str:
        """Return the completion text; raise ``RuntimeError`` on any failure."""
        request = CompletionRequest(
            prompt=prompt,
            system=system,
            model=self.model,
            max_tokens=max_tokens,
            temperature=self.temperature,
            base_url=self.base_url,
            api_key=self.api_key,
            timeout=self.request_timeout,
        )
        return self._transport(request)

    @staticmethod
    def _post(request: CompletionRequest) -> str:
        payload: dict[str, object] = {
            "model": request.model,
            "messages": HttpCompletionRunner.build_messages(request.system, request.prompt),
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens

        headers = {"Content-Type": "application/json"}
        if request.api_key:
            headers["Authorization"] = f"Bearer {request.api_key}"
        http_request = Request(
            f"{request.base_url}/chat/completions",
            data=json.dumps(payload).encode("utf-8"),
            headers=headers,
            method="POST",
        )
        logger.debug("POST %s/chat/completions (timeout=%ss)", request.base_url, request.timeout)

        try:
            with urlopen(http_request, timeout=request.timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
        except HTTPError as exc:  # pragma: no cover - depends on runtime
            detail = exc.read().decode("utf-8", errors="ignore")
            raise RuntimeError(
                f"Completion endpoint failed with status {exc.code}: {detail.strip() or exc.reason}"
            ) from exc
        except URLError as exc:  # pragma: no cover - depends on runtime
            raise RuntimeError(f"Completion endpoint unreachable: {exc.reason}") from exc
        except TimeoutError as exc:  # pragma: no cover - depends on runtime
            raise RuntimeError(
                f"Completion endpoint timed out after {request.timeout}s"
            ) from exc

        try:
            body = json.loads(raw.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise RuntimeError("Completion endpoint returned invalid JSON") from exc

        content = HttpCompletionRunner.extract_content(body)
        if not content.strip():
            raise RuntimeError("Completion endpoint returned an empty response")
        return content.strip()

    @staticmethod
    def build_messages(system: str | None, prompt: str) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    @staticmethod
    def extract_content(payload: object) -> str:
        if not isinstance(payload, dict):
            return ""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return ""
        first = choices[0]
        message = first.get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]
        text = first.get("text")
        return text if isinstance(text, str) else ""

    @classmethod
    def ensure_local_url(cls, url: str) -> str:
        normalized = url.rstrip("/")
        host = urlparse(normalized).hostname
        if host is None or cls.is_local_host(host):
            return normalized
        raise RuntimeError(
            f"Remote base_url '{url}' is not permitted. Configure a local model runtime."
        )

    @classmethod
    def is_local_host(cls, host: str) -> bool:
        lowered = host.lower()
        if lowered in cls.LOCAL_HOSTS:
            return True
        if lowered.endswith((".local", ".localdomain")):
            return True
        try:
            return ipaddress.ip_address(lowered).is_loopback
        except ValueError:
            return False


def _first_env(keys: Sequence[str]) -> str | None:
    for key in keys:
        value = os.getenv(key)
        if value:
            return value
    return None


__all__ = ["CompletionRequest", "HttpCompletionRunner"]
