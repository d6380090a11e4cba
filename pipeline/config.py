"""Configuration management for Phasewright.

Loads configuration from:
1. phasewright.toml (defaults)
2. Environment variables (overrides)
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "phasewright.toml"


@dataclass
class AgentsConfig:
    """Agent backend configuration."""

    backend: str = "cli"  # "cli", "anthropic", "openai", "ollama"
    base_url: str = "http://localhost:11434"
    timeout: int = 900

    # Per-role primary/fallback CLI tools (only used by the "cli" backend)
    architect: str = "claude"
    builder: str = "claude"
    reviewer: str = "claude"
    fallback: str = "codex"

    # Per-role models for the API backends ("" = backend default)
    model_architect: str = ""
    model_builder: str = ""
    model_reviewer: str = ""


@dataclass
class ContextConfig:
    """Build context budget and compression configuration."""

    budget_tokens: int = 8000
    recent_phases_full_detail: int = 2
    extract_relevant_files: bool = True
    summarize_architecture: bool = True


@dataclass
class VerificationConfig:
    """Timeouts and limits for the verification gate."""

    test_timeout: int = 300
    dev_server_timeout: int = 60
    design_review_timeout: int = 60
    max_design_files: int = 10


@dataclass
class BuildConfig:
    """Chunked build configuration."""

    max_fix_attempts: int = 2
    state_dir: str = ".phasewright"


@dataclass
class PipelineConfig:
    """Pipeline execution configuration."""

    log_level: str = "INFO"


@dataclass
class Config:
    """Main configuration container."""

    agents: AgentsConfig = field(default_factory=AgentsConfig)
    context: ContextConfig = field(default_factory=ContextConfig)
    verification: VerificationConfig = field(default_factory=VerificationConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        return cls(
            agents=AgentsConfig(**data.get("agents", {})),
            context=ContextConfig(**data.get("context", {})),
            verification=VerificationConfig(**data.get("verification", {})),
            build=BuildConfig(**data.get("build", {})),
            pipeline=PipelineConfig(**data.get("pipeline", {})),
        )


def find_config_file() -> Path | None:
    """Find phasewright.toml in current or parent directories.

    Returns:
        Path to phasewright.toml or None if not found.
    """
    current = Path.cwd()

    for directory in [current, *current.parents]:
        config_path = directory / CONFIG_FILENAME
        if config_path.exists():
            return config_path

    return None


def load_config(config_path: Path | str | None = None) -> Config:
    """Load configuration from file and environment.

    Args:
        config_path: Optional explicit path to phasewright.toml

    Returns:
        Config object with merged settings.
    """
    config_data: dict[str, Any] = {}

    if config_path is None:
        config_path = find_config_file()

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path, "rb") as f:
                config_data = tomllib.load(f)

    env_overrides = {
        "agents": {
            "backend": os.getenv("PHASEWRIGHT_BACKEND"),
            "base_url": os.getenv("OLLAMA_BASE_URL"),
            "timeout": _int_or_none("PHASEWRIGHT_AGENT_TIMEOUT"),
        },
        "context": {
            "budget_tokens": _int_or_none("PHASEWRIGHT_CONTEXT_BUDGET"),
        },
        "build": {
            "state_dir": os.getenv("PHASEWRIGHT_STATE_DIR"),
        },
        "pipeline": {
            "log_level": os.getenv("LOG_LEVEL"),
        },
    }

    # Merge env overrides (only non-None values)
    for section, values in env_overrides.items():
        if section not in config_data:
            config_data[section] = {}
        for key, value in values.items():
            if value is not None:
                config_data[section][key] = value

    return Config.from_dict(config_data)


def _int_or_none(env_var: str) -> int | None:
    """Read an integer environment variable; unset or invalid gives None."""
    value = os.getenv(env_var)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", env_var, value)
        return None


# Global config instance (lazy loaded)
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance.

    Returns:
        Config object (loaded once, cached).
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Force reload of configuration.

    Returns:
        Fresh Config object.
    """
    global _config
    _config = load_config()
    return _config
