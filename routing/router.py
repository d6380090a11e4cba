"""Agent router for role-based backend selection.

Routes each agent role (architect, builder, reviewer) to a backend:
1. The configured primary for the role
2. The configured fallback when the primary is not installed or unreachable

Only availability problems trigger the fallback. Rate limits, auth failures
and timeouts propagate so the operator can act on them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from llm_backend import get_backend
from llm_backend.errors import AgentError, AgentUnavailableError

if TYPE_CHECKING:
    from llm_backend.base import LLMBackend
    from pipeline.config import AgentsConfig

logger = logging.getLogger(__name__)


class AgentRole(str, Enum):
    """Roles an agent plays in the build pipeline."""

    ARCHITECT = "architect"
    BUILDER = "builder"
    REVIEWER = "reviewer"


class AgentRouter:
    """Routes agent invocations to primary/fallback backends per role.

    Example:
        router = AgentRouter(config.agents)
        output = router.invoke(AgentRole.BUILDER, prompt, working_dir=project)
    """

    def __init__(
        self,
        config: AgentsConfig,
        backend_factory: Callable[..., LLMBackend] = get_backend,
    ) -> None:
        """Initialize router with configuration.

        Args:
            config: Agents configuration (backend kind, per-role tools and models)
            backend_factory: Builds a backend from a kind and keyword options
        """
        self.config = config
        self._backend_factory = backend_factory
        self._backends: dict[str, LLMBackend] = {}

    def route(self, role: AgentRole | str) -> list[str]:
        """Return the ordered backend keys to try for a role.

        For the CLI backend the keys are tool names ("claude", "codex", ...);
        for API backends there is a single key, the backend kind.
        """
        role = AgentRole(role)
        if self.config.backend != "cli":
            return [self.config.backend]

        primary = getattr(self.config, role.value)
        candidates = [primary]
        if self.config.fallback and self.config.fallback != primary:
            candidates.append(self.config.fallback)
        return candidates

    def get_model(self, role: AgentRole | str) -> str | None:
        """Configured model override for a role, if any."""
        role = AgentRole(role)
        return getattr(self.config, f"model_{role.value}") or None

    def invoke(
        self,
        role: AgentRole | str,
        prompt: str,
        working_dir: Path | None = None,
        system: str | None = None,
    ) -> str:
        """Send a prompt to the agent serving ``role``.

        Args:
            role: Agent role
            prompt: Prompt text
            working_dir: Project directory the agent may edit
            system: Optional system prompt

        Returns:
            The agent's text output.

        Raises:
            AgentUnavailableError: If no candidate backend is available
            AgentError: For any other agent failure
        """
        role = AgentRole(role)
        candidates = self.route(role)
        model = self.get_model(role)
        last_error: AgentUnavailableError | None = None

        for key in candidates:
            backend = self._get_backend(key)
            if not backend.is_available():
                logger.warning("%s backend %s is not available", role.value, key)
                last_error = AgentUnavailableError(f"{key} is not available")
                continue
            try:
                logger.info("Invoking %s agent via %s", role.value, key)
                return backend.complete(prompt, system=system, working_dir=working_dir, model=model)
            except AgentUnavailableError as e:
                logger.warning("%s backend %s unavailable: %s", role.value, key, e)
                last_error = e

        raise AgentUnavailableError(
            f"No available agent for the {role.value} role (tried: {', '.join(candidates)})",
            remediation=last_error.remediation if last_error else None,
        )

    def _get_backend(self, key: str) -> LLMBackend:
        if key not in self._backends:
            if self.config.backend == "cli":
                backend = self._backend_factory("cli", tool=key, timeout=self.config.timeout)
            elif self.config.backend == "ollama":
                backend = self._backend_factory(
                    key, base_url=self.config.base_url, timeout=self.config.timeout
                )
            else:
                backend = self._backend_factory(key, timeout=self.config.timeout)
            self._backends[key] = backend
        return self._backends[key]

    def is_available(self, key: str) -> bool:
        """Whether a backend key can be used right now (for status output)."""
        try:
            return self._get_backend(key).is_available()
        except (AgentError, ImportError) as e:
            logger.warning("Backend %s cannot be created: %s", key, e)
            return False

    def explain_routing(self, role: AgentRole | str) -> dict:
        """Explain routing decision for the CLI status output."""
        role = AgentRole(role)
        return {
            "role": role.value,
            "backend": self.config.backend,
            "candidates": self.route(role),
            "model": self.get_model(role),
        }
