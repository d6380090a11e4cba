"""Pipeline runner: architect, chunked builder, reviewer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from rich.console import Console

from agents import AgentInput, ArchitectAgent, BuilderAgent, ReviewerAgent
from context.artifacts import extract_project_name, extract_project_types
from context.compression import CompressionConfig
from context.store import BuildContextStore
from pipeline.config import Config
from routing import AgentRouter
from schemas.build_plan import VerificationLevel
from schemas.chunk_state import BuildStage, ProjectState
from tools.filesystem_tool import CorruptFileError
from verification import (
    DesignReviewer,
    TestRunner,
    VerificationGate,
    VisualVerifier,
    format_design_results_for_context,
    format_test_results_for_context,
    format_visual_results_for_context,
)

from .chunked_builder import BuildOutcome, BuildStatus, ChunkedBuildOrchestrator
from .errors import OrchestratorError, StateCorruptedError
from .plan import parse_phases
from .recovery import RecoveryManager
from .state_machine import ChunkStateMachine
from .state_store import ProjectStateStore

logger = logging.getLogger(__name__)

STAGE_ORDER = [BuildStage.ARCHITECT, BuildStage.BUILDER, BuildStage.REVIEWER, BuildStage.COMPLETE]

NO_TESTS_CONTEXT = """## Test Results

**Status:** No tests configured

The project does not have a test command. Consider recommending that tests be added.
"""

# Type alias for stage handlers: returns False to stop the pipeline (paused)
StageHandler = Callable[[ProjectState], bool]


@dataclass
class RunResult:
    """Where a pipeline run stopped."""

    state: ProjectState
    paused: bool = False
    build: BuildOutcome | None = None


class PipelineRunner:
    """Orchestrates the build pipeline for one project.

    Runs the stages recorded on the project state in order, persisting the
    stage after each one so a stopped run resumes where it left off.
    """

    def __init__(
        self,
        config: Config,
        project_path: Path,
        console: Console | None = None,
        router: AgentRouter | None = None,
        recovery: RecoveryManager | None = None,
        gate: VerificationGate | None = None,
    ) -> None:
        """Initialize pipeline runner.

        Args:
            config: Application configuration
            project_path: Project being built
            console: Rich console for output
            router: Agent router (built from config if omitted)
            recovery: Recovery decision source (interactive if omitted)
            gate: Verification gate (built from config if omitted)
        """
        self.config = config
        self.project_path = Path(project_path).resolve()
        self.console = console or Console()
        self.state_dir = self.project_path / config.build.state_dir
        self.store = ProjectStateStore(self.state_dir)
        self.context_store = BuildContextStore(self.state_dir)

        self.router = router or AgentRouter(config.agents)
        self.architect = ArchitectAgent(self.router)
        self.builder = BuilderAgent(self.router)
        self.reviewer = ReviewerAgent(self.router)
        self.recovery = recovery or RecoveryManager(console=self.console)
        self.gate = gate or self._build_gate()

        # Stage handlers registry
        self._handlers: dict[BuildStage, StageHandler] = {
            BuildStage.ARCHITECT: self._handle_architect,
            BuildStage.BUILDER: self._handle_builder,
            BuildStage.REVIEWER: self._handle_reviewer,
        }
        self._last_build: BuildOutcome | None = None

    def _build_gate(self) -> VerificationGate:
        settings = self.config.verification
        return VerificationGate(
            test_runner=TestRunner(timeout=settings.test_timeout),
            visual_verifier=VisualVerifier(self.reviewer.analyze, startup_timeout=settings.dev_server_timeout),
            design_reviewer=DesignReviewer(
                max_files=settings.max_design_files, file_timeout=settings.design_review_timeout
            ),
        )

    def init_project(self, spec: str, name: str | None = None) -> ProjectState:
        """Create the project state and store the spec.

        Raises:
            OrchestratorError: If the project is already initialized
        """
        if self.store.exists():
            raise OrchestratorError(f"Project already initialized in {self.state_dir}")

        state = self.store.create(self.project_path, name or extract_project_name(spec))
        state.project_types = extract_project_types(spec)
        self.store.save_artifact(state, "spec", spec)
        logger.info("Initialized %s (types: %s)", state.project_name, ", ".join(state.project_types))
        return state

    def load_state(self) -> ProjectState:
        """Load the persisted project state.

        Raises:
            OrchestratorError: If no project has been initialized
            StateCorruptedError: If the state file cannot be read
        """
        state = self.store.load()
        if state is None:
            raise OrchestratorError(f"No project found in {self.state_dir}. Run `phasewright init` first.")
        return state

    def run(self, stop_after: BuildStage | None = None) -> RunResult:
        """Run the pipeline from the recorded stage.

        Args:
            stop_after: Stop once this stage has finished

        Returns:
            RunResult with the final state
        """
        state = self.load_state()
        self._last_build = None

        while state.stage != BuildStage.COMPLETE:
            stage = state.stage
            self.console.print(f"\n[bold blue]>>> {stage.value.capitalize()} stage[/bold blue]")
            logger.info("PIPELINE: Starting stage %s", stage.value)

            if not self._handlers[stage](state):
                self.console.print("[yellow]Pipeline paused - run it again to resume[/yellow]")
                return RunResult(state=state, paused=True, build=self._last_build)

            state.stage = STAGE_ORDER[STAGE_ORDER.index(stage) + 1]
            self.store.record(state, "stage", f"Completed {stage.value}", stage=stage)
            self.store.save(state)

            if stop_after == stage:
                break

        if state.stage == BuildStage.COMPLETE:
            self.console.print("\n[bold green]Pipeline completed successfully![/bold green]")
        return RunResult(state=state, build=self._last_build)

    # --- Stage Handlers ---

    def _handle_architect(self, state: ProjectState) -> bool:
        if self.store.load_artifact("architecture"):
            self.console.print("[dim]Architecture already exists, skipping architect.[/dim]")
            return True

        spec = self._require_spec()
        output = self.architect.run(AgentInput(context={"spec": spec}, working_dir=self.project_path))
        if not output.success:
            raise OrchestratorError(f"Architect failed: {'; '.join(output.errors or [])}")

        self.store.save_artifact(state, "architecture", output.data["architecture"])
        if output.data.get("design_spec"):
            self.store.save_artifact(state, "design_spec", output.data["design_spec"])
        self.console.print(f"[green]Saved {', '.join(output.artifacts or [])}[/green]")
        return True

    def _handle_builder(self, state: ProjectState) -> bool:
        spec = self._require_spec()
        architecture = self.store.load_artifact("architecture") or ""
        design_spec = self.store.load_artifact("design_spec")

        plan = parse_phases(architecture)
        if not plan.phases and state.chunks is None:
            self.console.print("[dim]No implementation phases found. Using single-pass building.[/dim]\n")
            self.builder.build_all(spec, architecture, design_spec, working_dir=self.project_path)
            return True

        self.console.print(f"[blue]📦 Found {len(plan.phases)} implementation phases. Using chunked building.[/blue]\n")
        try:
            self._last_build = self._orchestrator(state).run(plan, spec, architecture, design_spec)
        except CorruptFileError as e:
            raise StateCorruptedError(e.path, e.reason) from e
        return self._last_build.status == BuildStatus.COMPLETED

    def _handle_reviewer(self, state: ProjectState) -> bool:
        spec = self._require_spec()
        result = self.gate.verify(self.project_path, VerificationLevel.FULL, spec, state.project_types)

        test_context = format_test_results_for_context(result.test_result) if result.test_result else NO_TESTS_CONTEXT
        visual_context = format_visual_results_for_context(result.visual_result) if result.visual_result else None
        design_context = format_design_results_for_context(result.design_result) if result.design_result else None

        output = self.reviewer.run(
            AgentInput(
                context={
                    "spec": spec,
                    "architecture": self.store.load_artifact("architecture"),
                    "design_spec": self.store.load_artifact("design_spec"),
                    "test_context": test_context,
                    "visual_context": visual_context,
                    "design_context": design_context,
                    "history": self._build_history(),
                },
                working_dir=self.project_path,
            )
        )
        if not output.success:
            raise OrchestratorError(f"Reviewer failed: {'; '.join(output.errors or [])}")

        path = self.store.save_artifact(state, "review", output.data["review"])
        self.console.print(f"[green]Review saved to {path}[/green]")
        return True

    def _orchestrator(self, state: ProjectState) -> ChunkedBuildOrchestrator:
        return ChunkedBuildOrchestrator(
            machine=ChunkStateMachine(state, self.store),
            context_store=self.context_store,
            builder=self.builder,
            gate=self.gate,
            recovery=self.recovery,
            compression=CompressionConfig.from_settings(self.config.context),
            max_fix_attempts=self.config.build.max_fix_attempts,
            console=self.console,
        )

    def next_phase_context(self) -> str | None:
        """Render the context the builder would get for the next phase.

        Returns:
            The rendered context, or None when there is no phase left to build
        """
        state = self.load_state()
        plan = parse_phases(self.store.load_artifact("architecture") or "")

        if state.chunks is not None:
            phase = state.chunks.current
            if phase is None:
                return None
            index, total, spec_phase = state.chunks.current_phase_index, len(state.chunks.phases), phase.spec
        elif plan.phases:
            index, total, spec_phase = 0, len(plan.phases), plan.phases[0]
        else:
            return None

        try:
            return self._orchestrator(state).phase_context(
                index,
                total,
                spec_phase,
                self._require_spec(),
                self.store.load_artifact("architecture") or "",
                self.store.load_artifact("design_spec"),
            )
        except CorruptFileError as e:
            raise StateCorruptedError(e.path, e.reason) from e

    def _require_spec(self) -> str:
        spec = self.store.load_artifact("spec")
        if not spec:
            raise OrchestratorError("No specification found. Run `phasewright init` with a spec first.")
        return spec

    def _build_history(self) -> str:
        """Summarize completed phases and known issues for the reviewer."""
        try:
            context = self.context_store.load()
        except CorruptFileError as e:
            raise StateCorruptedError(e.path, e.reason) from e
        if context is None:
            return ""

        lines = [
            f"- {p.name}{' (skipped, unverified)' if p.skipped else ''}: {p.goal}"
            for p in context.completed_phases
        ]
        if context.known_issues:
            lines.append("\nKnown issues:")
            lines.extend(f"- {issue}" for issue in context.known_issues)
        return "\n".join(lines)
