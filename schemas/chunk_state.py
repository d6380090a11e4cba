"""Chunked build state schema.

Persisted project and phase state for the chunked build orchestrator.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .build_plan import PhaseSpec


class PhaseStatus(str, Enum):
    """Runtime status of a single phase."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class PhaseOutcome(str, Enum):
    """How a completed phase got there."""

    VERIFIED = "verified"
    SKIPPED = "skipped"


class BuildStage(str, Enum):
    """Top-level pipeline stage."""

    ARCHITECT = "architect"
    BUILDER = "builder"
    REVIEWER = "reviewer"
    COMPLETE = "complete"


class PhaseRuntimeState(BaseModel):
    """Mutable runtime state for one phase."""

    status: PhaseStatus = Field(PhaseStatus.PENDING, description="Current status")
    fix_attempts: int = Field(0, ge=0, description="Fix attempts used in the current sequence")
    started_at: datetime | None = Field(None, description="First time the phase started")
    completed_at: datetime | None = Field(None, description="Set once, on first completion")
    outcome: PhaseOutcome | None = Field(None, description="verified or skipped, once completed")
    last_error: str | None = Field(None, description="Most recent failure summary")


class ChunkPhase(BaseModel):
    """A phase spec paired with its runtime state."""

    spec: PhaseSpec
    state: PhaseRuntimeState = Field(default_factory=PhaseRuntimeState)


class ChunkState(BaseModel):
    """Progress through the build plan."""

    current_phase_index: int = Field(0, ge=0, description="Index of the phase being worked on")
    phases: list[ChunkPhase] = Field(default_factory=list, description="All phases, in order")

    @property
    def is_complete(self) -> bool:
        return self.current_phase_index >= len(self.phases)

    @property
    def current(self) -> ChunkPhase | None:
        """The phase at current_phase_index, or None once complete."""
        if self.is_complete:
            return None
        return self.phases[self.current_phase_index]


class HistoryEntry(BaseModel):
    """One line of the project history."""

    timestamp: datetime = Field(default_factory=datetime.now)
    stage: BuildStage = Field(..., description="Stage the action happened in")
    action: str = Field(..., description="What happened")
    details: str | None = Field(None, description="Optional details")


class ProjectState(BaseModel):
    """Complete persisted project state.

    Written whole to state.json after every status change.
    """

    project_name: str = Field(..., description="Project name")
    project_path: str = Field(..., description="Root of the project being built")
    stage: BuildStage = Field(BuildStage.ARCHITECT, description="Current pipeline stage")
    artifacts: dict[str, str] = Field(
        default_factory=dict,
        description="Artifact name to path",
    )
    project_types: list[str] = Field(
        default_factory=lambda: ["web"],
        description="Project types used to pick the test command",
    )
    chunks: ChunkState | None = Field(None, description="Chunked build progress")
    history: list[HistoryEntry] = Field(default_factory=list, description="Most recent actions")
    created_at: datetime = Field(default_factory=datetime.now)
    last_updated: datetime = Field(default_factory=datetime.now)
    metadata: dict[str, Any] = Field(default_factory=dict)
