"""Build context schema.

The shared memory that grows across phases: what was built, where it lives,
and which decisions were made.
"""

from pydantic import BaseModel, Field


class CompletedPhaseInfo(BaseModel):
    """What a finished phase produced."""

    name: str = Field(..., description="Phase name")
    goal: str = Field(..., description="Phase goal")
    files_created: list[str] = Field(default_factory=list)
    files_modified: list[str] = Field(default_factory=list)
    key_decisions: list[str] = Field(default_factory=list)
    design_tokens_used: list[str] = Field(default_factory=list)
    skipped: bool = Field(False, description="Phase was skipped after failed verification")


class ArchitecturalDecision(BaseModel):
    """A dated decision extracted from builder output."""

    date: str = Field(..., description="ISO date the decision was recorded")
    decision: str = Field(..., description="Decision text")


class BuildContext(BaseModel):
    """Accumulated build context.

    Grows monotonically; rendered views may compress it but never change it.
    """

    completed_phases: list[CompletedPhaseInfo] = Field(default_factory=list)
    file_map: dict[str, str] = Field(default_factory=dict, description="Path to purpose")
    architectural_decisions: list[ArchitecturalDecision] = Field(default_factory=list)
    known_issues: list[str] = Field(default_factory=list)
