"""Anthropic backend implementation for Claude models."""

import os
from typing import Any

from .base import LLMBackend
from .errors import (
    AgentError,
    AgentTimeoutError,
    AgentUnavailableError,
    AuthRequiredError,
    RateLimitedError,
)


class AnthropicBackend(LLMBackend):
    """Anthropic backend for Claude model inference.

    Requires ANTHROPIC_API_KEY environment variable.
    See: https://docs.anthropic.com/en/api/getting-started
    """

    name = "anthropic"

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        api_key: str | None = None,
        timeout: int = 600,
        max_tokens: int = 16000,
        **kwargs: Any,
    ) -> None:
        """Initialize Anthropic backend.

        Args:
            model: Default model to use
            api_key: API key (defaults to ANTHROPIC_API_KEY env var)
            timeout: Request timeout in seconds
            max_tokens: Default max tokens for responses
        """
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "Anthropic package not installed. Run: pip install 'phasewright[anthropic]'"
            )

        self.model = model
        self.timeout = timeout
        self.default_max_tokens = max_tokens

        self._api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not self._api_key:
            raise AuthRequiredError(
                "Anthropic API key not found. Set ANTHROPIC_API_KEY environment variable "
                "or pass api_key parameter."
            )

        self._client = Anthropic(api_key=self._api_key, timeout=timeout)

    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        """Send a chat completion request to Anthropic."""
        from anthropic import (
            APIConnectionError,
            APIError,
            APIStatusError,
            APITimeoutError,
            AuthenticationError,
            RateLimitError,
        )

        # Anthropic takes the system prompt separately
        system_parts = [m["content"] for m in messages if m["role"] == "system"]
        chat_messages = [
            {"role": m["role"], "content": m["content"]} for m in messages if m["role"] != "system"
        ]

        request_kwargs: dict[str, Any] = {
            "model": model or self.model,
            "messages": chat_messages,
            "max_tokens": max_tokens or self.default_max_tokens,
            "temperature": temperature,
        }
        if system_parts:
            request_kwargs["system"] = "\n\n".join(system_parts)

        # Order matters: timeout and rate-limit errors subclass the broader ones
        try:
            response = self._client.messages.create(**request_kwargs)
        except APITimeoutError as e:
            raise AgentTimeoutError(f"Anthropic request timed out: {e}") from e
        except APIConnectionError as e:
            raise AgentUnavailableError(f"Failed to connect to Anthropic API: {e}") from e
        except RateLimitError as e:
            raise RateLimitedError(f"Anthropic rate limit: {e}", retry_after=_retry_after(e)) from e
        except AuthenticationError as e:
            raise AuthRequiredError(f"Anthropic rejected the API key: {e}") from e
        except APIStatusError as e:
            raise AgentError(f"Anthropic API error ({e.status_code}): {e}") from e
        except APIError as e:
            raise AgentError(f"Anthropic API error: {e}") from e

        text = [block.text for block in response.content if hasattr(block, "text")]
        if not text:
            raise AgentError("Anthropic returned no text content")
        return "\n".join(text)

    def is_available(self) -> bool:
        return bool(self._api_key)

    @staticmethod
    def has_api_key() -> bool:
        return bool(os.environ.get("ANTHROPIC_API_KEY"))

    def __repr__(self) -> str:
        return f"AnthropicBackend(model={self.model!r})"


def _retry_after(error: Any) -> float | None:
    """Read the Retry-After header from an SDK status error, if any."""
    response = getattr(error, "response", None)
    value = response.headers.get("retry-after") if response is not None else None
    try:
        return float(value) if value else None
    except ValueError:
        return None
