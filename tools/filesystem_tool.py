"""Filesystem operations tool.

Whole-file atomic writes for persisted state, plus project file discovery
for the reviewers.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from .base import BaseTool, ToolResult, ToolStatus

# Directories never worth scanning in a generated project
IGNORED_DIRS = {"node_modules", "dist", "build", ".next", ".nuxt", "coverage"}


class CorruptFileError(ValueError):
    """A persisted file exists but cannot be parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


def write_text_atomic(path: Path, content: str, encoding: str = "utf-8") -> Path:
    """Replace a file's content in one step.

    Writes to a temp file in the same directory, then ``os.replace``s it over
    the target, so readers see either the old or the new content.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path


def write_json_atomic(path: Path, data: Any) -> Path:
    return write_text_atomic(path, json.dumps(data, indent=2, default=str) + "\n")


def read_json(path: Path) -> Any | None:
    """Read a JSON file.

    Returns:
        Parsed data, or None if the file does not exist

    Raises:
        CorruptFileError: If the file exists but is not valid JSON
    """
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise CorruptFileError(path, f"invalid JSON ({e})") from e


def _is_ignored(part: str) -> bool:
    return part in IGNORED_DIRS or part.startswith(".")


class FilesystemTool(BaseTool):
    """Tool for filesystem operations.

    Provides:
    - File reading and atomic writing
    - Existence checks
    - Project file discovery by extension (build output skipped)
    """

    name = "filesystem"
    description = "Filesystem read/write operations"

    def __init__(self, base_path: Path | str | None = None) -> None:
        """Initialize filesystem tool.

        Args:
            base_path: Base path for operations (default: current directory)
        """
        self.base_path = Path(base_path) if base_path else Path.cwd()

    def execute(self, operation: str, **kwargs: Any) -> ToolResult:
        """Execute a filesystem operation.

        Args:
            operation: Operation name (read, write, exists, find)
            **kwargs: Operation-specific parameters

        Returns:
            ToolResult with operation output
        """
        operations = {
            "read": self._read,
            "write": self._write,
            "exists": self._exists,
            "find": self._find,
        }

        if operation not in operations:
            return ToolResult(
                status=ToolStatus.FAILURE,
                error=f"Unknown operation: {operation}. Available: {list(operations.keys())}",
            )

        try:
            return operations[operation](**kwargs)
        except OSError as e:
            return ToolResult(status=ToolStatus.FAILURE, error=str(e))

    def _resolve(self, path: str) -> Path:
        """Resolve path relative to base_path."""
        p = Path(path)
        if p.is_absolute():
            return p
        return self.base_path / p

    def _read(self, path: str, encoding: str = "utf-8") -> ToolResult:
        """Read file content."""
        file_path = self._resolve(path)
        if not file_path.is_file():
            return ToolResult(status=ToolStatus.FAILURE, error=f"File not found: {path}")
        content = file_path.read_text(encoding=encoding)
        return ToolResult(
            status=ToolStatus.SUCCESS,
            output=content,
            metadata={"path": str(file_path), "size": len(content)},
        )

    def _write(self, path: str, content: str) -> ToolResult:
        """Atomically write content to file."""
        file_path = write_text_atomic(self._resolve(path), content)
        return ToolResult(
            status=ToolStatus.SUCCESS,
            output=str(file_path),
            metadata={"size": len(content)},
        )

    def _exists(self, path: str) -> ToolResult:
        """Check if path exists."""
        return ToolResult(status=ToolStatus.SUCCESS, output=self._resolve(path).exists())

    def _find(self, extensions: list[str], path: str = ".", limit: int | None = None) -> ToolResult:
        """Find files by extension, skipping build output and dot-directories."""
        root = self._resolve(path)
        if not root.is_dir():
            return ToolResult(status=ToolStatus.FAILURE, error=f"Directory not found: {path}")

        wanted = {e.lower() for e in extensions}
        found: list[str] = []
        for current, dirs, files in os.walk(root):
            dirs[:] = sorted(d for d in dirs if not _is_ignored(d))
            for filename in sorted(files):
                if Path(filename).suffix.lower() in wanted:
                    found.append(str((Path(current) / filename).relative_to(self.base_path)))
                    if limit is not None and len(found) >= limit:
                        return ToolResult(
                            status=ToolStatus.SUCCESS,
                            output=found,
                            metadata={"truncated": True},
                        )

        return ToolResult(status=ToolStatus.SUCCESS, output=found)
