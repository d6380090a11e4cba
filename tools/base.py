"""Base tool interface for deterministic operations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ToolStatus(Enum):
    """Status of a tool execution."""

    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"


@dataclass
class ToolResult:
    """Result of a tool execution."""

    status: ToolStatus
    output: Any = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status == ToolStatus.SUCCESS

    @property
    def timed_out(self) -> bool:
        return self.status == ToolStatus.TIMEOUT

    @property
    def stdout(self) -> str:
        if isinstance(self.output, dict):
            return self.output.get("stdout") or ""
        return ""

    @property
    def stderr(self) -> str:
        if isinstance(self.output, dict):
            return self.output.get("stderr") or ""
        return ""

    @property
    def returncode(self) -> int | None:
        if isinstance(self.output, dict):
            return self.output.get("returncode")
        return None

    def __bool__(self) -> bool:
        return self.success


class BaseTool(ABC):
    """Abstract base class for all tools.

    Tools wrap side effects (processes, files, HTTP) behind a uniform result
    type so callers never deal with raw subprocess or requests errors.
    """

    name: str = "base_tool"
    description: str = "Base tool interface"

    @abstractmethod
    def execute(self, **kwargs: Any) -> ToolResult:
        """Execute the tool operation.

        Args:
            **kwargs: Tool-specific parameters

        Returns:
            ToolResult with status and output
        """
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
