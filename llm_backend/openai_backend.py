"""OpenAI backend implementation for GPT models."""

import os
from typing import Any

from .anthropic_backend import _retry_after
from .base import LLMBackend
from .errors import (
    AgentError,
    AgentTimeoutError,
    AgentUnavailableError,
    AuthRequiredError,
    RateLimitedError,
)


class OpenAIBackend(LLMBackend):
    """OpenAI backend for GPT model inference.

    Requires OPENAI_API_KEY environment variable.
    See: https://platform.openai.com/docs/api-reference
    """

    name = "openai"

    def __init__(
        self,
        model: str = "gpt-4o",
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: int = 600,
        **kwargs: Any,
    ) -> None:
        """Initialize OpenAI backend.

        Args:
            model: Default model to use
            api_key: API key (defaults to OPENAI_API_KEY env var)
            base_url: Optional base URL override (for proxies or compatible servers)
            timeout: Request timeout in seconds
        """
        try:
            from openai import OpenAI
        except ImportError:
            raise ImportError(
                "OpenAI package not installed. Run: pip install 'phasewright[openai]'"
            )

        self.model = model
        self.timeout = timeout

        self._api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not self._api_key:
            raise AuthRequiredError(
                "OpenAI API key not found. Set OPENAI_API_KEY environment variable "
                "or pass api_key parameter."
            )

        client_kwargs: dict[str, Any] = {"api_key": self._api_key, "timeout": timeout}
        if base_url:
            client_kwargs["base_url"] = base_url
        self._client = OpenAI(**client_kwargs)

    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        """Send a chat completion request to OpenAI."""
        from openai import (
            APIConnectionError,
            APIError,
            APITimeoutError,
            AuthenticationError,
            RateLimitError,
        )

        request_kwargs: dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens is not None:
            request_kwargs["max_tokens"] = max_tokens

        try:
            response = self._client.chat.completions.create(**request_kwargs)
        except APITimeoutError as e:
            raise AgentTimeoutError(f"OpenAI request timed out: {e}") from e
        except APIConnectionError as e:
            raise AgentUnavailableError(f"Failed to connect to OpenAI API: {e}") from e
        except RateLimitError as e:
            raise RateLimitedError(f"OpenAI rate limit: {e}", retry_after=_retry_after(e)) from e
        except AuthenticationError as e:
            raise AuthRequiredError(f"OpenAI rejected the API key: {e}") from e
        except APIError as e:
            raise AgentError(f"OpenAI API error: {e}") from e

        if not response.choices:
            raise AgentError("OpenAI returned empty response")

        content = response.choices[0].message.content
        if content is None:
            raise AgentError("OpenAI returned null content")
        return content

    def is_available(self) -> bool:
        return bool(self._api_key)

    @staticmethod
    def has_api_key() -> bool:
        return bool(os.environ.get("OPENAI_API_KEY"))

    def __repr__(self) -> str:
        return f"OpenAIBackend(model={self.model!r})"
