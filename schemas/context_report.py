"""Context report schema.

Output of the context budget estimator and the compressor.
"""

from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """Budget health of a rendered build context."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


class ContextBreakdown(BaseModel):
    """Estimated tokens per context section."""

    spec: int = Field(0, description="Spec summary tokens")
    architecture: int = Field(0, description="Architecture tokens")
    design_spec: int = Field(0, description="Design token section tokens")
    completed_phases: int = Field(0, description="Completed phase history tokens")
    current_phase: int = Field(0, description="Current phase and task tokens")
    file_map: int = Field(0, description="File map tokens")
    other: int = Field(0, description="Everything not attributed to a section")


class ContextHealthReport(BaseModel):
    """Derived health report for a piece of context. Never persisted."""

    total_tokens: int = Field(..., description="Estimated tokens in the context")
    budget_tokens: int = Field(..., description="Token budget")
    percentage_used: int = Field(..., description="Rounded percentage of budget used")
    status: HealthStatus = Field(..., description="Health status")
    breakdown: ContextBreakdown = Field(default_factory=ContextBreakdown)
    recommendations: list[str] = Field(default_factory=list)


class CompressionStats(BaseModel):
    """What a compression pass saved."""

    original_tokens: int = Field(0, description="Estimated tokens before compression")
    compressed_tokens: int = Field(0, description="Estimated tokens after compression")
    saved_tokens: int = Field(0, ge=0, description="Tokens saved (never negative)")
    sections_compressed: list[str] = Field(default_factory=list)
