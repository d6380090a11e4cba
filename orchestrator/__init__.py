"""Orchestrator module for Phasewright.

Provides pipeline orchestration with:
- Phase state machine with persisted state and checkpoints
- Chunked building with verification between phases
- Bounded auto-fix loop and recovery decisions
"""

from .chunked_builder import BuildOutcome, BuildStatus, ChunkedBuildOrchestrator
from .errors import (
    InvalidDecisionError,
    InvalidTransitionError,
    OrchestratorError,
    StateCorruptedError,
)
from .fix_loop import FixAttemptLoop, FixLoopOutcome
from .plan import parse_phases
from .recovery import RecoveryChoice, RecoveryManager, categorize_error
from .runner import PipelineRunner, RunResult
from .state_machine import ChunkStateMachine, Transition
from .state_store import ProjectStateStore

__all__ = [
    "BuildOutcome",
    "BuildStatus",
    "ChunkStateMachine",
    "ChunkedBuildOrchestrator",
    "FixAttemptLoop",
    "FixLoopOutcome",
    "InvalidDecisionError",
    "InvalidTransitionError",
    "OrchestratorError",
    "PipelineRunner",
    "ProjectStateStore",
    "RecoveryChoice",
    "RecoveryManager",
    "RunResult",
    "StateCorruptedError",
    "Transition",
    "categorize_error",
    "parse_phases",
]
