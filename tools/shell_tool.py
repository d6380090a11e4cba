"""Shell command execution tool."""

import os
import shlex
import shutil
import signal
import subprocess
import time
from pathlib import Path
from typing import Any

from .base import BaseTool, ToolResult, ToolStatus


class ShellTool(BaseTool):
    """Tool for executing project commands.

    Provides:
    - Foreground commands with a timeout (test runners, reviewers, agent CLIs)
    - Background processes (dev servers) and their shutdown
    - Executable lookup
    """

    name = "shell"
    description = "Shell command execution"

    def __init__(
        self,
        working_dir: Path | str | None = None,
        timeout: int = 300,
    ) -> None:
        """Initialize shell tool.

        Args:
            working_dir: Working directory for commands
            timeout: Default timeout in seconds
        """
        self.working_dir = Path(working_dir) if working_dir else Path.cwd()
        self.timeout = timeout

    def execute(self, operation: str, **kwargs: Any) -> ToolResult:
        """Execute a shell operation.

        Args:
            operation: Operation name (run, which, start, stop)
            **kwargs: Operation-specific parameters

        Returns:
            ToolResult with command output
        """
        operations = {
            "run": self._run,
            "which": self._which,
            "start": self._start,
            "stop": self._stop,
        }

        if operation not in operations:
            return ToolResult(
                status=ToolStatus.FAILURE,
                error=f"Unknown operation: {operation}. Available: {list(operations.keys())}",
            )

        return operations[operation](**kwargs)

    def run(self, command: str | list[str], **kwargs: Any) -> ToolResult:
        return self._run(command, **kwargs)

    def which(self, executable: str) -> bool:
        return self._which(executable).success

    def _run(
        self,
        command: str | list[str],
        timeout: int | None = None,
        input_text: str | None = None,
        env: dict[str, str] | None = None,
        shell: bool = False,
    ) -> ToolResult:
        """Run a command to completion.

        Args:
            command: Command string or argv list
            timeout: Timeout in seconds (default: tool timeout)
            input_text: Text fed to stdin
            env: Extra environment variables
            shell: Run through the shell (needed for scripts with pipes or $(...))
        """
        if shell:
            args: str | list[str] = command if isinstance(command, str) else shlex.join(command)
        else:
            args = shlex.split(command) if isinstance(command, str) else list(command)
            if not args:
                return ToolResult(status=ToolStatus.FAILURE, error="Empty command")

        limit = timeout or self.timeout
        started = time.monotonic()
        try:
            result = subprocess.run(
                args,
                cwd=self.working_dir,
                capture_output=True,
                text=True,
                input=input_text,
                timeout=limit,
                shell=shell,
                env={**os.environ, **(env or {})},
            )
        except subprocess.TimeoutExpired as e:
            return ToolResult(
                status=ToolStatus.TIMEOUT,
                output={
                    "stdout": _decode(e.stdout),
                    "stderr": _decode(e.stderr),
                    "returncode": None,
                },
                error=f"Command timed out after {limit}s",
                metadata={"duration": time.monotonic() - started},
            )
        except FileNotFoundError:
            return ToolResult(
                status=ToolStatus.FAILURE,
                error=f"Command not found: {args if shell else args[0]}",
            )

        return ToolResult(
            status=ToolStatus.SUCCESS if result.returncode == 0 else ToolStatus.FAILURE,
            output={
                "stdout": result.stdout,
                "stderr": result.stderr,
                "returncode": result.returncode,
            },
            error=result.stderr if result.returncode != 0 else None,
            metadata={"duration": time.monotonic() - started},
        )

    def _which(self, executable: str) -> ToolResult:
        """Locate an executable on PATH."""
        path = shutil.which(executable)
        if path is None:
            return ToolResult(status=ToolStatus.FAILURE, error=f"{executable} not found on PATH")
        return ToolResult(status=ToolStatus.SUCCESS, output=path)

    def _start(self, command: str) -> ToolResult:
        """Start a long-running command in its own process group."""
        try:
            process = subprocess.Popen(
                command,
                cwd=self.working_dir,
                shell=True,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            return ToolResult(status=ToolStatus.FAILURE, error=str(e))
        return ToolResult(status=ToolStatus.SUCCESS, output=process, metadata={"pid": process.pid})

    def _stop(self, process: subprocess.Popen, grace: float = 5.0) -> ToolResult:
        """Terminate a process started with ``start`` and its children."""
        if process.poll() is not None:
            return ToolResult(status=ToolStatus.SUCCESS, output=process.returncode)
        try:
            os.killpg(process.pid, signal.SIGTERM)
        except ProcessLookupError:
            return ToolResult(status=ToolStatus.SUCCESS, output=process.poll())
        try:
            process.wait(timeout=grace)
        except subprocess.TimeoutExpired:
            os.killpg(process.pid, signal.SIGKILL)
            process.wait()
        return ToolResult(status=ToolStatus.SUCCESS, output=process.returncode)


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode(errors="replace")
    return data
