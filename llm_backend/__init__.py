"""Agent backend abstraction layer.

Provides a unified interface for the agents that do the actual building.

Backends:
- cli: installed agent CLIs (claude, codex, gemini), the default
- anthropic: Anthropic API (ANTHROPIC_API_KEY)
- openai: OpenAI API (OPENAI_API_KEY)
- ollama: local Ollama server

"auto" picks the first installed agent CLI, then an API key, then Ollama.
"""

import logging
import os
import shutil

from .base import LLMBackend
from .cli_backend import CLI_TOOLS, CLIBackend
from .errors import (
    AgentError,
    AgentTimeoutError,
    AgentUnavailableError,
    AuthRequiredError,
    RateLimitedError,
)
from .ollama_backend import OllamaBackend

logger = logging.getLogger(__name__)

__all__ = [
    "AgentError",
    "AgentTimeoutError",
    "AgentUnavailableError",
    "AuthRequiredError",
    "CLIBackend",
    "CLI_TOOLS",
    "LLMBackend",
    "OllamaBackend",
    "RateLimitedError",
    "detect_backend",
    "get_backend",
]


def _get_openai_backend():
    """Lazy import OpenAI backend."""
    from .openai_backend import OpenAIBackend
    return OpenAIBackend


def _get_anthropic_backend():
    """Lazy import Anthropic backend."""
    from .anthropic_backend import AnthropicBackend
    return AnthropicBackend


def detect_backend() -> str:
    """Auto-detect the best available backend.

    Returns:
        Backend name: "cli", "anthropic", "openai", or "ollama"
    """
    for tool in CLI_TOOLS.values():
        if shutil.which(tool.executable):
            logger.info("Auto-detected: %s CLI installed", tool.executable)
            return "cli"

    if os.environ.get("ANTHROPIC_API_KEY"):
        logger.info("Auto-detected: Anthropic API key found")
        return "anthropic"

    if os.environ.get("OPENAI_API_KEY"):
        logger.info("Auto-detected: OpenAI API key found")
        return "openai"

    logger.info("Auto-detected: no agent CLI or API key found, using Ollama (local)")
    return "ollama"


def get_backend(kind: str, **kwargs) -> LLMBackend:
    """Factory function to get an agent backend instance.

    Args:
        kind: Backend type ("auto", "cli", "anthropic", "openai", "ollama")
        **kwargs: Backend-specific configuration (e.g. tool="codex" for "cli")

    Returns:
        LLMBackend instance

    Raises:
        ValueError: If backend type is unknown
        ImportError: If required package not installed
    """
    if kind == "auto":
        kind = detect_backend()
        logger.info("Auto-selected backend: %s", kind)

    if kind == "cli":
        return CLIBackend(**kwargs)
    elif kind == "ollama":
        return OllamaBackend(**kwargs)
    elif kind == "openai":
        cls = _get_openai_backend()
        return cls(**kwargs)
    elif kind == "anthropic":
        cls = _get_anthropic_backend()
        return cls(**kwargs)
    else:
        available = "auto, cli, anthropic, openai, ollama"
        raise ValueError(f"Unknown agent backend: {kind}. Available: {available}")
