"""Chunked build orchestrator.

Builds a project one phase at a time: render the phase context (compressed
when the accumulated build context outgrows its budget), invoke the builder,
verify, run the fix loop on failure, and ask for a recovery decision when
the fix attempts run out. Every step is persisted, so a stopped build
resumes at the phase it was working on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console

from context.builder import (
    generate_initial_context,
    generate_phase_context,
    record_skipped_phase,
    update_context_after_phase,
)
from context.compression import CompressionConfig, generate_compressed_phase_context, should_compress
from context.health import analyze_context_health, format_health_report
from llm_backend.errors import AgentError
from schemas.build_context import BuildContext
from schemas.build_plan import BuildPlan, PhaseSpec
from schemas.chunk_state import PhaseOutcome
from schemas.verification import VerificationResult
from verification.gate import format_verification_for_fix

from .fix_loop import DEFAULT_MAX_FIX_ATTEMPTS, FixAttemptLoop
from .recovery import RecoveryChoice, RecoveryManager, categorize_error, coerce_choice

if TYPE_CHECKING:
    from agents.builder_agent import BuilderAgent
    from context.store import BuildContextStore
    from verification.gate import VerificationGate

    from .state_machine import ChunkStateMachine

logger = logging.getLogger(__name__)

MANUAL_FIX_TEMPLATE = """# Build Stopped - Manual Fix Required

## Phase
{phase}

{details}
"""


class BuildStatus(str, Enum):
    """How a chunked build run ended."""

    COMPLETED = "completed"
    PAUSED = "paused"


@dataclass
class BuildOutcome:
    """Result of a chunked build run."""

    status: BuildStatus
    phases_completed: int
    total_phases: int
    skipped: list[str] = field(default_factory=list)
    paused_phase: str | None = None
    manual_fix_path: Path | None = None


class ChunkedBuildOrchestrator:
    """Runs the phases of a build plan to completion or to a pause.

    Agent failures (``AgentError``) mark the current phase failed and
    propagate; persistence failures (``OSError``) propagate untouched.
    """

    def __init__(
        self,
        machine: ChunkStateMachine,
        context_store: BuildContextStore,
        builder: BuilderAgent,
        gate: VerificationGate,
        recovery: RecoveryManager,
        compression: CompressionConfig | None = None,
        max_fix_attempts: int = DEFAULT_MAX_FIX_ATTEMPTS,
        console: Console | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            machine: Phase state machine (owns and persists the project state)
            context_store: Build context persistence
            builder: Builder agent
            gate: Verification gate
            recovery: Supplies the decision when fix attempts run out
            compression: Budget and compression knobs
            max_fix_attempts: Fix attempts per phase before recovery
            console: Rich console for progress output
        """
        self.machine = machine
        self.context_store = context_store
        self.builder = builder
        self.gate = gate
        self.recovery = recovery
        self.compression = compression or CompressionConfig()
        self.max_fix_attempts = max_fix_attempts
        self.console = console or Console()
        self.fix_loop = FixAttemptLoop(
            machine, builder, gate, max_attempts=max_fix_attempts, budget_tokens=self.compression.target_tokens
        )

    def run(
        self,
        plan: BuildPlan,
        spec: str,
        architecture: str,
        design_spec: str | None = None,
    ) -> BuildOutcome:
        """Build every remaining phase of the plan.

        Resumes at the persisted current phase when the chunk state already
        exists.
        """
        self.machine.initialize(plan)
        state = self.machine.state
        project_path = Path(state.project_path)
        total = self.machine.total_phases

        while not self.machine.is_complete():
            index = self.machine.current_index
            phase = self.machine.current.spec
            self._announce(index, total, phase)

            self.machine.start_phase()
            phase_context = self.phase_context(index, total, phase, spec, architecture, design_spec)
            self.console.print(format_health_report(analyze_context_health(phase_context, self.compression.target_tokens)))

            try:
                builder_output, result, attempts = self._attempt_phase(
                    phase, phase_context, project_path, spec, state.project_types
                )
            except AgentError as e:
                self.machine.fail_phase(f"{type(e).__name__}: {e}")
                raise

            if result.passed:
                self._finish_phase(index, phase, builder_output)
                continue

            self.machine.fail_phase(categorize_error(result.error_output).summary)
            choice = coerce_choice(self.recovery.decide(phase.name, result.error_output, attempts))
            logger.info("Recovery decision for phase %s: %s", phase.name, choice.value)

            if choice == RecoveryChoice.PAUSE:
                path = self._pause(phase, result, attempts)
                return BuildOutcome(
                    status=BuildStatus.PAUSED,
                    phases_completed=self.machine.current_index,
                    total_phases=total,
                    skipped=self._skipped(),
                    paused_phase=phase.name,
                    manual_fix_path=path,
                )
            if choice == RecoveryChoice.SKIP:
                self._skip_phase(phase, result)
            else:
                self.console.print("[yellow]Resetting phase and building it again from scratch.[/yellow]\n")
                self.machine.reset_fix_attempts()

        self.console.print(f"[bold green]✅ All {total} phases complete[/bold green]\n")
        return BuildOutcome(
            status=BuildStatus.COMPLETED,
            phases_completed=self.machine.current_index,
            total_phases=total,
            skipped=self._skipped(),
        )

    def _announce(self, index: int, total: int, phase: PhaseSpec) -> None:
        self.console.print(f"\n[bold blue]━━━ Phase {index + 1} of {total}: {phase.name} ━━━[/bold blue]\n")
        self.console.print(f"[dim]Goal: {phase.goal}[/dim]")
        self.console.print(f"[dim]Tasks: {len(phase.tasks)}[/dim]")
        verification = "Full (milestone)" if phase.is_milestone else "Tests only"
        self.console.print(f"[dim]Verification: {verification}[/dim]\n")

    def phase_context(
        self,
        index: int,
        total: int,
        phase: PhaseSpec,
        spec: str,
        architecture: str,
        design_spec: str | None,
    ) -> str:
        """Render the context for a phase, compressing it when needed."""
        if index == 0:
            return generate_initial_context(spec, architecture, design_spec, phase, total)

        context = self.context_store.load() or BuildContext()
        uncompressed = generate_phase_context(context, index, total, phase, design_spec)
        if not should_compress(uncompressed, self.compression.target_tokens):
            return uncompressed

        compressed, stats = generate_compressed_phase_context(
            context, index, total, phase, spec, architecture, design_spec, self.compression
        )
        if stats.saved_tokens > 0:
            self.console.print(f"[dim]  📦 Context compressed: saved ~{stats.saved_tokens} tokens[/dim]")
            for detail in stats.sections_compressed[:2]:
                self.console.print(f"[dim]     {detail}[/dim]")
        return compressed

    def _attempt_phase(
        self,
        phase: PhaseSpec,
        phase_context: str,
        project_path: Path,
        spec: str,
        project_types: list[str],
    ) -> tuple[str, VerificationResult, list[str]]:
        """Build and verify a phase, running the fix loop on failure."""
        builder_output = self.builder.implement_phase(phase_context, working_dir=project_path)
        result = self.gate.verify(project_path, phase.verification_level, spec, project_types)
        self.console.print(result.summary)
        if result.passed:
            return builder_output, result, []

        self.console.print("\n[yellow]⚠️  Verification failed. Attempting auto-fix...[/yellow]\n")
        outcome = self.fix_loop.run(phase_context, result, project_path, spec, project_types)
        if outcome.passed:
            self.console.print("\n[green]✅ Fix successful![/green]\n")
        return builder_output, outcome.result, outcome.attempt_outputs

    def _finish_phase(self, index: int, phase: PhaseSpec, builder_output: str) -> None:
        context = update_context_after_phase(self.context_store.load(), phase, builder_output)
        self.context_store.save(context)
        self.machine.complete_phase(PhaseOutcome.VERIFIED)
        self.machine.advance()
        self.machine.checkpoint(f"chunk_phase_{index + 1}_complete")
        self.console.print(f"\n[green]✅ Phase {index + 1} complete![/green]\n")

    def _skip_phase(self, phase: PhaseSpec, result: VerificationResult) -> None:
        self.console.print("\n[yellow]⚠️  Skipping this phase. Continuing with next phase...[/yellow]\n")
        summary = categorize_error(result.error_output).summary
        self.context_store.save(record_skipped_phase(self.context_store.load(), phase, summary))
        self.machine.complete_phase(PhaseOutcome.SKIPPED)
        self.machine.advance()

    def _pause(self, phase: PhaseSpec, result: VerificationResult, attempts: list[str]) -> Path:
        details = format_verification_for_fix(result, len(attempts), attempts, self.max_fix_attempts)
        path = self.context_store.save_manual_fix(MANUAL_FIX_TEMPLATE.format(phase=phase.name, details=details))
        self.machine.store.record(self.machine.state, "paused", f"Manual fix notes: {path}")
        self.machine.store.save(self.machine.state)
        self.console.print(f"\n[yellow]Paused. Manual-fix notes saved to {path}[/yellow]")
        self.console.print("[dim]Run the build again to resume from this phase.[/dim]\n")
        return path

    def _skipped(self) -> list[str]:
        return [
            p.spec.name for p in self.machine.chunks.phases if p.state.outcome == PhaseOutcome.SKIPPED
        ]
