"""Phase state machine for chunked builds."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from schemas.build_plan import BuildPlan
from schemas.chunk_state import (
    ChunkPhase,
    ChunkState,
    PhaseOutcome,
    PhaseStatus,
    ProjectState,
)

from .errors import InvalidTransitionError, OrchestratorError
from .state_store import ProjectStateStore

logger = logging.getLogger(__name__)


@dataclass
class Transition:
    """Defines a valid phase status transition."""

    from_status: PhaseStatus
    to_status: PhaseStatus


class ChunkStateMachine:
    """State machine for the phases of a chunked build.

    Manages:
    - Valid phase status transitions
    - The current phase index (only moves forward, one completed phase at a time)
    - Fix-attempt counting
    - State persistence after every mutation, and checkpoints
    """

    TRANSITIONS: list[Transition] = [
        # Happy path
        Transition(PhaseStatus.PENDING, PhaseStatus.IN_PROGRESS),
        Transition(PhaseStatus.IN_PROGRESS, PhaseStatus.COMPLETED),
        Transition(PhaseStatus.IN_PROGRESS, PhaseStatus.FAILED),
        # Resume after the process died mid-phase
        Transition(PhaseStatus.IN_PROGRESS, PhaseStatus.IN_PROGRESS),
        # Recovery: retry from scratch, or skip
        Transition(PhaseStatus.FAILED, PhaseStatus.IN_PROGRESS),
        Transition(PhaseStatus.FAILED, PhaseStatus.COMPLETED),
    ]

    def __init__(self, state: ProjectState, store: ProjectStateStore) -> None:
        """Initialize state machine.

        Args:
            state: Project state (its ``chunks`` are created by ``initialize``)
            store: Store used to persist every change
        """
        self.state = state
        self.store = store

        # Build transition map for quick lookup
        self._transition_map: dict[PhaseStatus, list[PhaseStatus]] = {}
        for t in self.TRANSITIONS:
            self._transition_map.setdefault(t.from_status, []).append(t.to_status)

    def initialize(self, plan: BuildPlan) -> ChunkState:
        """Create the chunk state from a plan, unless one is already persisted."""
        if self.state.chunks is None:
            self.state.chunks = ChunkState(phases=[ChunkPhase(spec=spec) for spec in plan.phases])
            self.store.record(self.state, "chunks", f"Initialized {len(plan.phases)} implementation phases")
            self.store.save(self.state)
        return self.state.chunks

    @property
    def chunks(self) -> ChunkState:
        if self.state.chunks is None:
            raise OrchestratorError("Chunked build not initialized")
        return self.state.chunks

    @property
    def current(self) -> ChunkPhase | None:
        return self.chunks.current

    @property
    def current_index(self) -> int:
        return self.chunks.current_phase_index

    @property
    def total_phases(self) -> int:
        return len(self.chunks.phases)

    def is_complete(self) -> bool:
        return self.chunks.is_complete

    def _require_current(self) -> ChunkPhase:
        phase = self.current
        if phase is None:
            raise InvalidTransitionError("All phases are complete")
        return phase

    def can_transition(self, to_status: PhaseStatus) -> bool:
        """Check if the current phase may move to ``to_status``."""
        phase = self.current
        if phase is None:
            return False
        return to_status in self._transition_map.get(phase.state.status, [])

    def _transition(self, to_status: PhaseStatus, details: str | None = None) -> ChunkPhase:
        phase = self._require_current()
        from_status = phase.state.status
        if not self.can_transition(to_status):
            raise InvalidTransitionError(
                f"Phase {phase.spec.name!r} cannot go from {from_status.value} to {to_status.value}"
            )
        if to_status == PhaseStatus.IN_PROGRESS:
            others = [
                p.spec.name
                for i, p in enumerate(self.chunks.phases)
                if i != self.current_index and p.state.status == PhaseStatus.IN_PROGRESS
            ]
            if others:
                raise InvalidTransitionError(f"Another phase is already in progress: {others[0]}")

        now = datetime.now()
        phase.state.status = to_status
        if to_status == PhaseStatus.IN_PROGRESS and phase.state.started_at is None:
            phase.state.started_at = now
        if to_status == PhaseStatus.COMPLETED and phase.state.completed_at is None:
            phase.state.completed_at = now

        message = f'Phase "{phase.spec.name}" status: {to_status.value}'
        self.store.record(self.state, "chunks", f"{message} ({details})" if details else message)
        self.store.save(self.state)
        logger.debug("Phase %s: %s -> %s", phase.spec.name, from_status.value, to_status.value)
        return phase

    def start_phase(self) -> ChunkPhase:
        """Mark the current phase in progress (fresh start, retry or resume)."""
        return self._transition(PhaseStatus.IN_PROGRESS)

    def complete_phase(self, outcome: PhaseOutcome = PhaseOutcome.VERIFIED) -> ChunkPhase:
        """Mark the current phase completed and reset its fix attempts."""
        phase = self._require_current()
        phase.state.outcome = outcome
        phase.state.fix_attempts = 0
        return self._transition(PhaseStatus.COMPLETED, details=outcome.value)

    def fail_phase(self, error: str) -> ChunkPhase:
        """Mark the current phase failed, keeping the error for the operator."""
        phase = self._require_current()
        phase.state.last_error = error
        return self._transition(PhaseStatus.FAILED, details=error[:200])

    def increment_fix_attempts(self) -> int:
        """Count one more fix attempt on the current phase and persist it.

        Returns:
            The new attempt count
        """
        phase = self._require_current()
        phase.state.fix_attempts += 1
        self.store.save(self.state)
        return phase.state.fix_attempts

    def reset_fix_attempts(self) -> None:
        phase = self._require_current()
        phase.state.fix_attempts = 0
        self.store.save(self.state)

    def advance(self) -> int:
        """Move past the current phase, which must be completed.

        Returns:
            The new current phase index
        """
        phase = self._require_current()
        if phase.state.status != PhaseStatus.COMPLETED:
            raise InvalidTransitionError(
                f"Cannot advance past phase {phase.spec.name!r} in status {phase.state.status.value}"
            )
        self.chunks.current_phase_index += 1
        self.store.record(self.state, "chunks", f"Advanced to phase {self.current_index + 1}")
        self.store.save(self.state)
        return self.current_index

    def checkpoint(self, name: str):
        return self.store.checkpoint(self.state, name)

    def progress_summary(self) -> dict[str, Any]:
        """Get a summary of build progress."""
        chunks = self.chunks
        completed = sum(1 for p in chunks.phases if p.state.status == PhaseStatus.COMPLETED)
        skipped = sum(1 for p in chunks.phases if p.state.outcome == PhaseOutcome.SKIPPED)
        total = len(chunks.phases)
        current = chunks.current

        return {
            "project": self.state.project_name,
            "stage": self.state.stage.value,
            "current_phase": current.spec.name if current else None,
            "current_index": chunks.current_phase_index,
            "progress": f"{completed}/{total}",
            "progress_percent": round(completed / total * 100) if total > 0 else 0,
            "skipped": skipped,
            "phases": [
                {
                    "name": p.spec.name,
                    "status": p.state.status.value,
                    "outcome": p.state.outcome.value if p.state.outcome else None,
                    "fix_attempts": p.state.fix_attempts,
                }
                for p in chunks.phases
            ],
        }
