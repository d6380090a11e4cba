"""Verification result schema.

Output of the verification gate: test run, visual check and design review.
"""

from enum import Enum

from pydantic import BaseModel, Field

from .build_plan import VerificationLevel


class CheckStatus(str, Enum):
    """Outcome of a single verification check."""

    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"


class TestCount(BaseModel):
    """Counts parsed from test runner output."""

    __test__ = False

    passed: int = 0
    failed: int = 0
    skipped: int = 0
    total: int = 0


class TestRunResult(BaseModel):
    """Result of running the project's test suite."""

    __test__ = False

    status: CheckStatus = Field(..., description="pass, fail, or skip when no test command exists")
    command: str | None = Field(None, description="Command that was run")
    stdout: str = Field("", description="Captured stdout")
    stderr: str = Field("", description="Captured stderr")
    exit_code: int | None = Field(None, description="Process exit code (None on timeout)")
    duration_seconds: float | None = Field(None, description="Wall time")
    counts: TestCount | None = Field(None, description="Parsed counts, when the format is recognised")
    error: str | None = Field(None, description="Why the run failed or was skipped")

    @property
    def ran(self) -> bool:
        return self.status != CheckStatus.SKIP

    @property
    def passed(self) -> bool:
        return self.status == CheckStatus.PASS


class DesignSeverity(str, Enum):
    """Severity reported by the design/accessibility reviewer."""

    CRITICAL = "critical"
    SERIOUS = "serious"
    MODERATE = "moderate"
    MINOR = "minor"


class DesignCategory(str, Enum):
    ACCESSIBILITY = "accessibility"
    VISUAL = "visual"


class DesignIssue(BaseModel):
    """One design or accessibility finding."""

    severity: DesignSeverity
    category: DesignCategory = DesignCategory.VISUAL
    message: str
    file: str | None = None
    line: int | None = None
    wcag_ref: str | None = Field(None, description="WCAG reference, e.g. 'WCAG 1.4.3'")
    suggestion: str | None = None


class DesignReviewResult(BaseModel):
    """Aggregated design review over the reviewed files."""

    status: CheckStatus
    score: int | None = Field(None, description="Average score over reviewed files")
    issues: list[DesignIssue] = Field(default_factory=list)
    files_reviewed: list[str] = Field(default_factory=list)
    output: str = Field("", description="Raw reviewer output, per file")
    error: str | None = Field(None, description="Why the review was skipped")

    @property
    def ran(self) -> bool:
        return self.status != CheckStatus.SKIP

    def by_severity(self, severity: DesignSeverity) -> list[DesignIssue]:
        return [i for i in self.issues if i.severity == severity]


class VisualPageResult(BaseModel):
    """Reviewer analysis of one page."""

    url: str
    analysis: str = ""
    issues: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


class VisualReviewResult(BaseModel):
    """Visual check of the running dev server. Advisory only."""

    status: CheckStatus
    server_started: bool = False
    pages: list[VisualPageResult] = Field(default_factory=list)
    error: str | None = None

    @property
    def issue_count(self) -> int:
        return sum(len(p.issues) for p in self.pages)


class VerificationResult(BaseModel):
    """Gate verdict for one verification attempt."""

    passed: bool = Field(..., description="Whether the phase may advance")
    level: VerificationLevel = Field(..., description="Level that was applied")
    test_result: TestRunResult | None = None
    visual_result: VisualReviewResult | None = None
    design_result: DesignReviewResult | None = None
    summary: str = Field("", description="Human-readable verdict, one line per check")
    error_output: str = Field("", description="Failure detail handed to the fix loop")
