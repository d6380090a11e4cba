"""Base agent class for the build agents."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from routing.router import AgentRole, AgentRouter


@dataclass
class AgentInput:
    """Standard input format for agents.

    Attributes:
        context: Prompt material for the agent (spec, phase context, results)
        working_dir: Project directory the agent works in
    """

    context: dict[str, Any]
    working_dir: Path | None = None


@dataclass
class AgentOutput:
    """Standard output format for agents.

    Attributes:
        success: Whether the agent completed successfully
        data: Output data dictionary
        errors: List of error messages if any
        artifacts: List of artifact names produced
        metadata: Execution metadata (timing)
        agent_name: Name of the agent that produced this output
    """

    success: bool
    data: dict[str, Any]
    errors: list[str] | None = None
    artifacts: list[str] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    agent_name: str | None = None

    def __repr__(self) -> str:
        status = "OK" if self.success else "FAILED"
        artifacts_str = f", artifacts={self.artifacts}" if self.artifacts else ""
        errors_str = f", errors={len(self.errors or [])}" if self.errors else ""
        return f"AgentOutput({status}, data_keys={list(self.data.keys())}{artifacts_str}{errors_str})"


class BaseAgent(ABC):
    """Abstract base class for build agents.

    Each agent has a role (which the router maps to a backend), a system
    prompt, and a ``run`` that turns structured input into a prompt and the
    agent's answer into structured output.

    Agent failures are not caught here: ``AgentError`` subclasses propagate
    to the orchestrator, which decides what they mean for the build.
    """

    role: AgentRole

    def __init__(
        self,
        router: AgentRouter,
        name: str | None = None,
        system_prompt: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize agent.

        Args:
            router: Routes invocations for this agent's role
            name: Agent identifier (defaults to class name)
            system_prompt: Override default system prompt
            logger: Optional logger instance
        """
        self.router = router
        self.name = name or self.__class__.__name__
        self.system_prompt = system_prompt or self.default_system_prompt()
        self.logger = logger or logging.getLogger(f"agent.{self.name}")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"

    @abstractmethod
    def default_system_prompt(self) -> str:
        """Return the default system prompt for this agent."""
        ...

    @abstractmethod
    def run(self, input_data: AgentInput) -> AgentOutput:
        """Execute the agent's task.

        Args:
            input_data: Structured input for the agent

        Returns:
            AgentOutput with results and any artifacts.
        """
        ...

    def _invoke(self, prompt: str, working_dir: Path | None = None) -> str:
        """Send a prompt with the system prompt through the router."""
        self.logger.debug("Sending %d chars to %s agent", len(prompt), self.role.value)
        return self.router.invoke(self.role, prompt, working_dir=working_dir, system=self.system_prompt)

    def _create_output(
        self,
        success: bool,
        data: dict[str, Any],
        errors: list[str] | None = None,
        artifacts: list[str] | None = None,
        start_time: float | None = None,
    ) -> AgentOutput:
        """Helper to create AgentOutput with metadata."""
        metadata: dict[str, Any] = {}
        if start_time is not None:
            metadata["duration_sec"] = round(time.time() - start_time, 3)

        return AgentOutput(
            success=success,
            data=data,
            errors=errors,
            artifacts=artifacts,
            metadata=metadata,
            agent_name=self.name,
        )

    def _log_run_start(self, input_data: AgentInput) -> float:
        """Log run start and return start time."""
        self.logger.info("Starting %s (context: %s)", self.name, list(input_data.context.keys()))
        return time.time()

    def _log_run_end(self, output: AgentOutput, start_time: float) -> None:
        """Log run completion."""
        duration = time.time() - start_time
        if output.success:
            self.logger.info(
                "Completed %s in %.2fs (artifacts: %s)",
                self.name,
                duration,
                output.artifacts or [],
            )
        else:
            self.logger.warning("Failed %s in %.2fs: %s", self.name, duration, output.errors)
