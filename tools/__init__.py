"""Tools module for orchestrator operations.

Provides deterministic tool abstractions for:
- Filesystem (atomic writes, project file discovery)
- Shell commands (test runners, reviewers, dev servers, agent CLIs)
- HTTP requests (dev server readiness and page fetches)
"""

from .base import BaseTool, ToolResult, ToolStatus
from .filesystem_tool import CorruptFileError, FilesystemTool
from .http_tool import HttpTool
from .shell_tool import ShellTool

__all__ = [
    "BaseTool",
    "ToolResult",
    "ToolStatus",
    "CorruptFileError",
    "FilesystemTool",
    "HttpTool",
    "ShellTool",
]
