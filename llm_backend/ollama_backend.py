"""Local agent backend backed by an Ollama server."""

from typing import Any

import requests

from .base import LLMBackend
from .errors import AgentError, AgentTimeoutError, AgentUnavailableError, RateLimitedError

DEFAULT_OLLAMA_MODEL = "qwen2.5-coder:14b"
DEFAULT_OLLAMA_URL = "http://localhost:11434"


def _agent_error(exc: requests.exceptions.RequestException, base_url: str, timeout: int) -> AgentError:
    if isinstance(exc, requests.exceptions.ConnectionError):
        return AgentUnavailableError(
            f"Failed to connect to Ollama at {base_url}. Is Ollama running? Try: ollama serve",
            remediation="Start the server with `ollama serve`.",
        )
    if isinstance(exc, requests.exceptions.Timeout):
        return AgentTimeoutError(f"Ollama request timed out after {timeout}s")
    response = getattr(exc, "response", None)
    if response is not None and response.status_code == 429:
        return RateLimitedError(f"Ollama is busy: {exc}")
    if response is not None and response.status_code == 404:
        return AgentUnavailableError(f"Ollama does not know the requested model: {exc}")
    return AgentError(f"Ollama returned an error: {exc}")


class OllamaBackend(LLMBackend):
    """Agent that runs on a local Ollama server.

    Useful for offline builds; it has no access to the project directory, so
    the orchestrator only routes it roles that answer in text.
    """

    name = "ollama"

    def __init__(
        self,
        model: str = DEFAULT_OLLAMA_MODEL,
        base_url: str = DEFAULT_OLLAMA_URL,
        timeout: int = 900,
        **kwargs: Any,
    ) -> None:
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        options: dict[str, Any] = {"temperature": temperature}
        if max_tokens is not None:
            options["num_predict"] = max_tokens

        payload = {"model": model or self.model, "messages": messages, "stream": False, "options": options}

        try:
            response = requests.post(f"{self.base_url}/api/chat", json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise _agent_error(e, self.base_url, self.timeout) from e

        content = response.json().get("message", {}).get("content")
        if content is None:
            raise AgentError("Ollama answered without a message")
        return content

    def installed_models(self) -> list[str]:
        """Names of the models pulled on the server (empty if unreachable)."""
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=5)
            response.raise_for_status()
        except requests.exceptions.RequestException:
            return []
        return [entry.get("name", "") for entry in response.json().get("models", [])]

    def is_available(self) -> bool:
        """True when the server answers and the default model is pulled."""
        wanted = self.model if ":" in self.model else f"{self.model}:latest"
        return wanted in self.installed_models()

    def __repr__(self) -> str:
        return f"OllamaBackend(model={self.model!r}, url={self.base_url!r})"
