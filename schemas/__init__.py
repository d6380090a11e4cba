"""Schemas module for structured orchestrator state.

Provides Pydantic models for:
- Build plans (phases parsed from the architecture document)
- Chunked build and project state
- Accumulated build context
- Context health reports and compression stats
- Verification results
"""

from .build_context import ArchitecturalDecision, BuildContext, CompletedPhaseInfo
from .build_plan import BuildPlan, PhaseSpec, VerificationLevel
from .chunk_state import (
    BuildStage,
    ChunkPhase,
    ChunkState,
    HistoryEntry,
    PhaseOutcome,
    PhaseRuntimeState,
    PhaseStatus,
    ProjectState,
)
from .context_report import (
    CompressionStats,
    ContextBreakdown,
    ContextHealthReport,
    HealthStatus,
)
from .verification import (
    CheckStatus,
    DesignCategory,
    DesignIssue,
    DesignReviewResult,
    DesignSeverity,
    TestCount,
    TestRunResult,
    VerificationResult,
    VisualPageResult,
    VisualReviewResult,
)

__all__ = [
    # Build plan
    "BuildPlan",
    "PhaseSpec",
    "VerificationLevel",
    # State
    "BuildStage",
    "ChunkPhase",
    "ChunkState",
    "HistoryEntry",
    "PhaseOutcome",
    "PhaseRuntimeState",
    "PhaseStatus",
    "ProjectState",
    # Context
    "ArchitecturalDecision",
    "BuildContext",
    "CompletedPhaseInfo",
    "CompressionStats",
    "ContextBreakdown",
    "ContextHealthReport",
    "HealthStatus",
    # Verification
    "CheckStatus",
    "DesignCategory",
    "DesignIssue",
    "DesignReviewResult",
    "DesignSeverity",
    "TestCount",
    "TestRunResult",
    "VerificationResult",
    "VisualPageResult",
    "VisualReviewResult",
]
