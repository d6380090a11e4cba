"""CLI entrypoint for Phasewright."""

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from context.health import analyze_context_health, render_detailed_report
from llm_backend import AgentError
from orchestrator import (
    ChunkStateMachine,
    OrchestratorError,
    PipelineRunner,
    RecoveryChoice,
    RecoveryManager,
    StateCorruptedError,
    categorize_error,
    parse_phases,
)
from pipeline import __version__
from pipeline.config import get_config
from routing import AgentRole
from schemas.chunk_state import BuildStage

app = typer.Typer(
    name="phasewright",
    help="Build projects phase by phase with AI coding agents.",
    add_completion=False,
)
console = Console()

STATUS_STYLES = {
    "pending": "dim",
    "in_progress": "yellow",
    "completed": "green",
    "failed": "red",
}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Phasewright: chunked AI build orchestrator."""
    level = "DEBUG" if verbose else get_config().pipeline.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _runner(project: Optional[Path], recovery: Optional[RecoveryManager] = None) -> PipelineRunner:
    return PipelineRunner(
        config=get_config(),
        project_path=project or Path.cwd(),
        console=console,
        recovery=recovery,
    )


def _fail(message: str, suggestion: Optional[str] = None) -> NoReturn:
    rprint(f"[red]Error:[/red] {message}")
    if suggestion:
        rprint(f"[cyan]💡 {suggestion}[/cyan]")
    raise typer.Exit(1)


@app.command()
def init(
    spec_file: Path = typer.Argument(..., help="Specification file (markdown)"),
    project: Optional[Path] = typer.Option(
        None,
        "--project",
        "-p",
        help="Project directory (default: current directory)",
    ),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Project name"),
) -> None:
    """Initialize a project from a specification."""
    if not spec_file.exists():
        _fail(f"Spec file not found: {spec_file}")

    spec = spec_file.read_text(encoding="utf-8")
    if not spec.strip():
        _fail(f"Spec file is empty: {spec_file}")

    runner = _runner(project)
    try:
        state = runner.init_project(spec, name=name)
    except OrchestratorError as e:
        _fail(str(e))

    rprint(f"[bold blue]Phasewright v{__version__}[/bold blue]")
    rprint(f"[green]Project:[/green] {state.project_name}")
    rprint(f"[green]Types:[/green] {', '.join(state.project_types)}")
    rprint(f"[green]State:[/green] {runner.state_dir}")
    rprint()
    rprint("Next: [bold]phasewright build[/bold]")


@app.command()
def build(
    project: Optional[Path] = typer.Option(
        None,
        "--project",
        "-p",
        help="Project directory (default: current directory)",
    ),
    auto_choice: Optional[RecoveryChoice] = typer.Option(
        None,
        "--auto-choice",
        help="Answer recovery prompts automatically (pause, skip or retry)",
    ),
    stop_after: Optional[BuildStage] = typer.Option(
        None,
        "--stop-after",
        help="Stop once this stage has finished",
    ),
) -> None:
    """Run (or resume) the build pipeline.

    Examples:
        phasewright build
        phasewright build --auto-choice skip
        phasewright build --stop-after architect
    """
    recovery = RecoveryManager(console=console, auto_choice=auto_choice)
    runner = _runner(project, recovery)

    rprint(f"[bold blue]Phasewright v{__version__}[/bold blue]")
    rprint(f"[green]Project:[/green] {runner.project_path}")

    try:
        result = runner.run(stop_after=stop_after)
    except StateCorruptedError as e:
        _fail(str(e), "Repair or remove the file, then run the build again.")
    except AgentError as e:
        category = categorize_error(str(e))
        _fail(f"{type(e).__name__}: {e}", e.remediation or category.suggestion)
    except OrchestratorError as e:
        _fail(str(e))
    except OSError as e:
        _fail(f"Could not persist build state: {e}", "Check disk space and permissions, then run the build again.")
    except KeyboardInterrupt:
        rprint("\n[yellow]Interrupted. Progress is saved; run the build again to resume.[/yellow]")
        raise typer.Exit(130)

    if result.paused:
        if result.build and result.build.manual_fix_path:
            rprint(f"[yellow]Manual-fix notes:[/yellow] {result.build.manual_fix_path}")
        raise typer.Exit(2)

    if result.build and result.build.skipped:
        rprint(f"[yellow]Skipped phases (unverified):[/yellow] {', '.join(result.build.skipped)}")


@app.command()
def status(
    project: Optional[Path] = typer.Option(
        None,
        "--project",
        "-p",
        help="Project directory (default: current directory)",
    ),
) -> None:
    """Show build progress."""
    runner = _runner(project)
    try:
        state = runner.load_state()
    except OrchestratorError as e:
        _fail(str(e))

    rprint(f"[bold]{state.project_name}[/bold]  stage: [cyan]{state.stage.value}[/cyan]")

    if state.chunks is None:
        rprint("[dim]No build phases yet.[/dim]")
    else:
        summary = ChunkStateMachine(state, runner.store).progress_summary()
        table = Table(title=f"Phases ({summary['progress']}, {summary['progress_percent']}%)")
        table.add_column("#", justify="right")
        table.add_column("Phase", style="cyan")
        table.add_column("Status")
        table.add_column("Outcome")
        table.add_column("Fix attempts", justify="right")

        for i, phase in enumerate(summary["phases"]):
            marker = "→ " if i == summary["current_index"] else ""
            style = STATUS_STYLES.get(phase["status"], "")
            table.add_row(
                f"{marker}{i + 1}",
                phase["name"],
                f"[{style}]{phase['status']}[/{style}]",
                phase["outcome"] or "",
                str(phase["fix_attempts"]),
            )
        console.print(table)

        current = state.chunks.current
        if current is not None and current.state.last_error:
            rprint(f"[red]Last error:[/red] {current.state.last_error}")

    manual_fix = runner.context_store.load_manual_fix()
    if manual_fix and state.chunks is not None and not state.chunks.is_complete:
        rprint(f"[yellow]Manual-fix notes:[/yellow] {runner.context_store.manual_fix_path}")


@app.command()
def plan(
    project: Optional[Path] = typer.Option(
        None,
        "--project",
        "-p",
        help="Project directory (default: current directory)",
    ),
) -> None:
    """Show the build phases parsed from the architecture."""
    runner = _runner(project)
    architecture = runner.store.load_artifact("architecture")
    if not architecture:
        _fail("No architecture yet.", "Run `phasewright build --stop-after architect` first.")

    build_plan = parse_phases(architecture)
    if not build_plan.phases:
        rprint("[yellow]No phases found. The build will run in a single pass.[/yellow]")
        return

    table = Table(title="Build Plan")
    table.add_column("#", justify="right")
    table.add_column("Phase", style="cyan")
    table.add_column("Goal")
    table.add_column("Tasks", justify="right")
    table.add_column("Verification")

    for i, phase in enumerate(build_plan.phases, 1):
        name = f"{phase.name} ⭐" if phase.is_milestone else phase.name
        table.add_row(str(i), name, phase.goal, str(len(phase.tasks)), phase.verification_level.value)
    console.print(table)


@app.command("context-health")
def context_health(
    project: Optional[Path] = typer.Option(
        None,
        "--project",
        "-p",
        help="Project directory (default: current directory)",
    ),
    file: Optional[Path] = typer.Option(
        None,
        "--file",
        "-f",
        help="Analyze this file instead of the next phase context",
    ),
    budget: Optional[int] = typer.Option(None, "--budget", "-b", help="Token budget"),
) -> None:
    """Show the context health report for the next phase."""
    budget = budget or get_config().context.budget_tokens

    if file is not None:
        if not file.exists():
            _fail(f"File not found: {file}")
        text = file.read_text(encoding="utf-8")
    else:
        try:
            text = _runner(project).next_phase_context()
        except OrchestratorError as e:
            _fail(str(e))
        if text is None:
            rprint("[dim]No phase left to build.[/dim]")
            return

    console.print(render_detailed_report(analyze_context_health(text, budget)))


@app.command()
def check() -> None:
    """Check which agent backends are reachable."""
    runner = _runner(None)

    table = Table(title="Agent Routing")
    table.add_column("Role", style="cyan")
    table.add_column("Candidates")
    table.add_column("Model")
    table.add_column("Available")

    any_missing = False
    for role in AgentRole:
        info = runner.router.explain_routing(role)
        available = [key for key in info["candidates"] if runner.router.is_available(key)]
        any_missing = any_missing or not available
        table.add_row(
            info["role"],
            ", ".join(info["candidates"]),
            info["model"] or "[dim]default[/dim]",
            f"[green]{', '.join(available)}[/green]" if available else "[red]none[/red]",
        )
    console.print(table)

    if any_missing:
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    config = get_config()

    rprint(f"[bold blue]Phasewright[/bold blue] v{__version__}")
    rprint()
    rprint(f"[dim]Agent Backend:[/dim] {config.agents.backend}")
    rprint(f"[dim]Builder:[/dim] {config.agents.builder}")


@app.command("config-show")
def config_show() -> None:
    """Show current configuration."""
    cfg = get_config()

    table = Table(title="Current Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("agents.backend", cfg.agents.backend)
    table.add_row("agents.architect", cfg.agents.architect)
    table.add_row("agents.builder", cfg.agents.builder)
    table.add_row("agents.reviewer", cfg.agents.reviewer)
    table.add_row("agents.fallback", cfg.agents.fallback)
    table.add_row("agents.timeout", str(cfg.agents.timeout))
    table.add_row("context.budget_tokens", str(cfg.context.budget_tokens))
    table.add_row("verification.test_timeout", str(cfg.verification.test_timeout))
    table.add_row("build.max_fix_attempts", str(cfg.build.max_fix_attempts))
    table.add_row("build.state_dir", cfg.build.state_dir)
    table.add_row("pipeline.log_level", cfg.pipeline.log_level)

    console.print(table)


if __name__ == "__main__":
    app()
