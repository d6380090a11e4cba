"""Build plan schema.

The ordered list of phases parsed from the architecture document.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class VerificationLevel(str, Enum):
    """How much verification a phase gets before it may advance."""

    TESTS = "tests"  # Test suite only
    FULL = "full"  # Tests + visual check + design review


class PhaseSpec(BaseModel):
    """A single phase of the build plan.

    Phases are created once, when the plan is parsed, and never mutated.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Phase name")
    goal: str = Field(..., description="What the phase must achieve")
    tasks: list[str] = Field(default_factory=list, description="Checklist of tasks")
    is_milestone: bool = Field(False, description="Marks a user-visible milestone")
    verification_level: VerificationLevel = Field(
        VerificationLevel.TESTS,
        description="Verification applied before the phase completes",
    )


class BuildPlan(BaseModel):
    """Ordered, immutable sequence of phases."""

    model_config = ConfigDict(frozen=True)

    phases: list[PhaseSpec] = Field(default_factory=list, description="Phases in execution order")

    @property
    def milestones(self) -> list[PhaseSpec]:
        """Phases marked as milestones."""
        return [p for p in self.phases if p.is_milestone]
