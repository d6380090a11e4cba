"""Agent CLI backend.

Drives the subscription agent CLIs (``claude -p``, ``codex exec``,
``gemini --yolo``) in non-interactive mode. The prompt is piped through
stdin and the CLI edits files in the working directory itself; the text it
prints is returned as the response.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tools.shell_tool import ShellTool

from .base import LLMBackend
from .errors import (
    AgentError,
    AgentTimeoutError,
    AgentUnavailableError,
    AuthRequiredError,
    RateLimitedError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CLITool:
    """How to run one agent CLI non-interactively."""

    executable: str
    args: tuple[str, ...]
    install_hint: str
    auth_hint: str
    cwd_flag: str | None = None


CLI_TOOLS: dict[str, CLITool] = {
    "claude": CLITool(
        executable="claude",
        args=("-p", "--dangerously-skip-permissions"),
        install_hint="npm install -g @anthropic-ai/claude-code",
        auth_hint="Run `claude` once and log in with your subscription.",
    ),
    "codex": CLITool(
        executable="codex",
        args=("exec", "--full-auto", "--skip-git-repo-check"),
        install_hint="npm install -g @openai/codex",
        auth_hint="Run `codex login`.",
        cwd_flag="-C",
    ),
    "gemini": CLITool(
        executable="gemini",
        args=("--yolo",),
        install_hint="npm install -g @google/gemini-cli",
        auth_hint="Run `gemini` once and sign in with your Google account.",
    ),
}

RATE_LIMIT_PATTERN = re.compile(
    r"rate.?limit|too many requests|\b429\b|usage limit|quota exceeded", re.IGNORECASE
)
AUTH_PATTERN = re.compile(
    r"not (?:logged|signed) in|please log ?in|unauthori[sz]ed|\b401\b|invalid api key|authenticat",
    re.IGNORECASE,
)
RETRY_AFTER_PATTERN = re.compile(r"(?:retry|try again) (?:after|in) (\d+)\s*s", re.IGNORECASE)


def build_prompt(messages: list[dict[str, str]]) -> str:
    """Flatten chat messages into role-tagged blocks for a single CLI prompt."""
    system = [m["content"] for m in messages if m["role"] == "system"]
    parts = [f"<system>\n{text}\n</system>" for text in system]
    for message in messages:
        if message["role"] == "system":
            continue
        role = message["role"]
        parts.append(f"<{role}>\n{message['content']}\n</{role}>")
    return "\n\n".join(parts).strip()


class CLIBackend(LLMBackend):
    """Backend that shells out to an installed agent CLI."""

    def __init__(
        self,
        tool: str = "claude",
        timeout: int = 900,
        shell_factory: Callable[..., ShellTool] = ShellTool,
        **kwargs: Any,
    ) -> None:
        if tool not in CLI_TOOLS:
            raise ValueError(f"Unknown agent CLI: {tool}. Available: {', '.join(CLI_TOOLS)}")
        self.tool = CLI_TOOLS[tool]
        self.name = tool
        self.timeout = timeout
        self._shell_factory = shell_factory

    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        """Run the CLI with the flattened conversation on stdin.

        ``temperature`` and ``max_tokens`` are not exposed by the CLIs and
        are ignored.
        """
        working_dir: Path | None = kwargs.get("working_dir")
        argv = [self.tool.executable, *self.tool.args]
        if model:
            argv += ["--model", model]
        if working_dir is not None and self.tool.cwd_flag:
            argv += [self.tool.cwd_flag, str(working_dir)]

        shell = self._shell_factory(working_dir=working_dir, timeout=self.timeout)
        logger.debug("Invoking %s in %s", self.name, working_dir or Path.cwd())
        result = shell.run(argv, input_text=build_prompt(messages))

        if result.timed_out:
            raise AgentTimeoutError(f"{self.name} did not finish within {self.timeout}s")
        if result.returncode is None and not result.success:
            raise AgentUnavailableError(
                f"{self.name} could not be started: {result.error}",
                remediation=f"Install it with: {self.tool.install_hint}",
            )
        if not result.success:
            raise self._classify_failure(result.stderr or result.stdout, result.returncode)

        return result.stdout.strip()

    def _classify_failure(self, output: str, returncode: int | None) -> AgentError:
        """Map a failed CLI run onto the agent error hierarchy."""
        excerpt = output.strip()[-500:]
        if RATE_LIMIT_PATTERN.search(output):
            match = RETRY_AFTER_PATTERN.search(output)
            retry_after = float(match.group(1)) if match else None
            return RateLimitedError(f"{self.name} is rate limited: {excerpt}", retry_after=retry_after)
        if AUTH_PATTERN.search(output):
            return AuthRequiredError(
                f"{self.name} needs authentication: {excerpt}", remediation=self.tool.auth_hint
            )
        return AgentError(f"{self.name} exited with code {returncode}: {excerpt}")

    def is_available(self) -> bool:
        return self._shell_factory().which(self.tool.executable)

    def __repr__(self) -> str:
        return f"CLIBackend(tool={self.name!r})"
