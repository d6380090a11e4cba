"""Recovery decisions for phases that exhausted their fix attempts."""

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt

from .errors import InvalidDecisionError

MAX_ERROR_LINES = 10
MAX_ERROR_LINE_CHARS = 80

MODULE_NAME_RE = re.compile(r"cannot find module ['\"]([^'\"]+)['\"]", re.IGNORECASE)


class RecoveryChoice(str, Enum):
    """What to do with a phase that still fails after its fix attempts."""

    PAUSE = "pause"  # Save manual-fix notes and stop (resumable)
    SKIP = "skip"  # Accept the degraded result and move on
    RETRY = "retry"  # Reset the phase and build it again from scratch


@dataclass(frozen=True)
class ErrorCategory:
    """Operator-facing classification of a failure. Display only."""

    label: str
    summary: str
    suggestion: str | None = None


def _missing_dependency(error_output: str) -> ErrorCategory:
    match = MODULE_NAME_RE.search(error_output)
    module = match.group(1) if match else "a package"
    return ErrorCategory(
        "missing_dependency",
        f"Missing dependency: {module}",
        f'Try running "npm install" or "npm install {module}"',
    )


# First match wins; predicates see the lower-cased error text
ERROR_RULES: list[tuple[Callable[[str], bool], Callable[[str], ErrorCategory]]] = [
    (
        lambda t: "cannot find module" in t or "module not found" in t,
        _missing_dependency,
    ),
    (
        lambda t: "ts" in t and ("error" in t or "cannot find name" in t),
        lambda _: ErrorCategory(
            "type_error",
            "TypeScript compilation error",
            "There may be a type mismatch or missing type definition.",
        ),
    ),
    (
        lambda t: "test failed" in t or "assertion" in t or "expect" in t,
        lambda _: ErrorCategory(
            "test_failure",
            "Test failures",
            "Some tests are not passing. The code may not match the expected behavior.",
        ),
    ),
    (
        lambda t: "permission denied" in t or "eacces" in t,
        lambda _: ErrorCategory(
            "permission",
            "Permission denied",
            "The build process cannot access a file or directory. Check file permissions.",
        ),
    ),
    (
        lambda t: "network" in t or "enotfound" in t or "timeout" in t,
        lambda _: ErrorCategory(
            "network",
            "Network error",
            "Check your internet connection or try again later.",
        ),
    ),
    (
        lambda t: "syntaxerror" in t or "unexpected token" in t,
        lambda _: ErrorCategory(
            "syntax",
            "Syntax error in code",
            "There is a typo or formatting issue in the generated code.",
        ),
    ),
]

UNCATEGORIZED = ErrorCategory("uncategorized", "Build or verification failed")


def categorize_error(error_output: str) -> ErrorCategory:
    """Classify error text for display. Does not affect control flow."""
    lower = error_output.lower()
    for predicate, build in ERROR_RULES:
        if predicate(lower):
            return build(error_output)
    return UNCATEGORIZED


def coerce_choice(value: object) -> RecoveryChoice:
    """Validate a recovery decision.

    Raises:
        InvalidDecisionError: If the value is not a RecoveryChoice
    """
    if isinstance(value, RecoveryChoice):
        return value
    try:
        return RecoveryChoice(value)
    except ValueError:
        raise InvalidDecisionError(f"Invalid recovery decision: {value!r}") from None


@dataclass
class RecoveryRequest:
    """What the operator is asked to decide on."""

    phase_name: str
    error_output: str
    category: ErrorCategory
    previous_attempts: list[str] = field(default_factory=list)


class RecoveryManager:
    """Obtains the recovery decision for a failed phase.

    Supports:
    - A custom callback (programmatic or UI-driven decisions)
    - A fixed decision (non-interactive runs)
    - An interactive Rich prompt (the default)
    """

    def __init__(
        self,
        console: Console | None = None,
        callback: Callable[[RecoveryRequest], RecoveryChoice] | None = None,
        auto_choice: RecoveryChoice | None = None,
    ) -> None:
        """Initialize recovery manager.

        Args:
            console: Rich console for output
            callback: Custom decision handler
            auto_choice: Decision to return without asking
        """
        self.console = console or Console()
        self.callback = callback
        self.auto_choice = auto_choice

    def decide(
        self,
        phase_name: str,
        error_output: str,
        previous_attempts: list[str] | None = None,
    ) -> RecoveryChoice:
        """Ask for a decision on a phase that exhausted its fix attempts."""
        request = RecoveryRequest(
            phase_name=phase_name,
            error_output=error_output,
            category=categorize_error(error_output),
            previous_attempts=list(previous_attempts or []),
        )

        if self.callback:
            return self.callback(request)

        if self.auto_choice is not None:
            self._show_failure(request)
            self.console.print(f"  [dim]Automatic decision: {self.auto_choice.value}[/dim]\n")
            return self.auto_choice

        return self._cli_decision(request)

    def _show_failure(self, request: RecoveryRequest) -> None:
        self.console.print()
        self.console.print(Panel("[bold red]Build Failed[/bold red]", border_style="red"))
        self.console.print(f"  Phase: {request.phase_name}")
        self.console.print(f"  Issue: {request.category.summary}\n")
        if request.category.suggestion:
            self.console.print(f"  [cyan]💡 {request.category.suggestion}[/cyan]\n")

        lines = request.error_output.split("\n")
        self.console.print("  [dim]Error details:[/dim]")
        for line in lines[:MAX_ERROR_LINES]:
            self.console.print(f"    {line[:MAX_ERROR_LINE_CHARS]}", style="dim", markup=False)
        if len(lines) > MAX_ERROR_LINES:
            self.console.print("    [dim]... (full output saved with the manual-fix notes on pause)[/dim]")
        self.console.print()

    def _cli_decision(self, request: RecoveryRequest) -> RecoveryChoice:
        """Interactive prompt. Blank input or a closed stdin means pause."""
        self._show_failure(request)

        self.console.print("  [bold]What would you like to do?[/bold]\n")
        self.console.print("  [1] Pause and come back later")
        self.console.print("      [dim]Save progress and exit. Run the build again to resume.[/dim]\n")
        self.console.print("  [2] Skip this phase and continue")
        self.console.print("      [dim]Move to the next phase. Some features may not work.[/dim]\n")
        self.console.print("  [3] Try again from scratch")
        self.console.print("      [dim]Reset this phase and attempt to build it again.[/dim]\n")

        try:
            choice = Prompt.ask(
                "  Your choice",
                choices=["1", "2", "3"],
                default="1",
                console=self.console,
            )
        except EOFError:
            self.console.print("\n  [dim]No input available, pausing.[/dim]\n")
            return RecoveryChoice.PAUSE
        return {"2": RecoveryChoice.SKIP, "3": RecoveryChoice.RETRY}.get(choice, RecoveryChoice.PAUSE)
