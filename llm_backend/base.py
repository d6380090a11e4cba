"""Abstract base class for agent backends."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any


class LLMBackend(ABC):
    """Abstract interface for agent providers.

    A backend turns a prompt into text. Some backends (agent CLIs) also act
    on the working directory; API backends only return text.
    """

    name: str = "base"

    @abstractmethod
    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        """Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content' keys.
                     Roles: "system", "user", "assistant"
            model: Optional model override (uses default if not specified)
            temperature: Sampling temperature (0.0-2.0)
            max_tokens: Maximum tokens in response
            **kwargs: Provider-specific parameters (e.g. working_dir)

        Returns:
            The assistant's response content as a string.

        Raises:
            AgentUnavailableError: If unable to reach the backend
            AgentTimeoutError: If the request times out
            RateLimitedError: If the backend is rate limiting
            AuthRequiredError: If credentials are missing or rejected
            AgentError: For any other backend failure
        """
        ...

    def complete(
        self,
        prompt: str,
        system: str | None = None,
        working_dir: Path | None = None,
        model: str | None = None,
    ) -> str:
        """Single-prompt convenience wrapper around ``chat``."""
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return self.chat(messages, model=model, working_dir=working_dir)

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the backend is available and responding.

        Returns:
            True if backend is reachable and ready.
        """
        ...
