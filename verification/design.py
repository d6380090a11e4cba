"""Design and accessibility review.

Runs the ``rams`` reviewer CLI over the project's frontend files and parses
its free-form report into scored, severity-tagged issues.
"""

import logging
import re
from collections.abc import Callable
from pathlib import Path

from schemas.verification import (
    CheckStatus,
    DesignCategory,
    DesignIssue,
    DesignReviewResult,
    DesignSeverity,
)
from tools.filesystem_tool import FilesystemTool
from tools.shell_tool import ShellTool

logger = logging.getLogger(__name__)

REVIEWER_EXECUTABLE = "rams"
INSTALL_HINT = "rams CLI not installed. Install with: curl -fsSL https://rams.ai/install | bash"

FRONTEND_EXTENSIONS = [".tsx", ".jsx", ".vue", ".svelte", ".html"]
DEFAULT_MAX_FILES = 10
DEFAULT_FILE_TIMEOUT = 60

SCORE_RE = re.compile(r"(?:score|rating)[:\s]*(\d+)(?:\s*/\s*100)?", re.IGNORECASE)
SEVERITY_RE = re.compile(r"^(critical|serious|moderate|minor)", re.IGNORECASE)
FILE_LINE_RE = re.compile(r"([^\s]+\.(?:tsx|jsx|vue|svelte|html)):(\d+)", re.IGNORECASE)
WCAG_RE = re.compile(r"WCAG\s*[\d.]+[A-Z]*", re.IGNORECASE)
SUGGESTION_RE = re.compile(r"^(?:Fix:|Suggestion:|→)\s*", re.IGNORECASE)


def parse_reviewer_output(output: str) -> tuple[int | None, list[DesignIssue]]:
    """Parse one file's review.

    A line starting with a severity opens an issue; the lines after it may
    add a ``file:line`` location, a WCAG reference and a suggestion.

    Returns:
        Tuple of (score or None, issues)
    """
    score_match = SCORE_RE.search(output)
    score = int(score_match.group(1)) if score_match else None

    issues: list[DesignIssue] = []
    current: dict | None = None

    for raw in output.split("\n"):
        line = raw.strip()

        severity = SEVERITY_RE.match(line)
        if severity:
            if current:
                issues.append(DesignIssue(**current))
            current = {
                "severity": DesignSeverity(severity.group(1).lower()),
                "category": DesignCategory.ACCESSIBILITY if "wcag" in line.lower() else DesignCategory.VISUAL,
                "message": line,
            }

        if current is None:
            continue

        location = FILE_LINE_RE.search(line)
        if location:
            current["file"] = location.group(1)
            current["line"] = int(location.group(2))

        wcag = WCAG_RE.search(line)
        if wcag:
            current["wcag_ref"] = wcag.group(0)
            current["category"] = DesignCategory.ACCESSIBILITY

        if SUGGESTION_RE.match(line):
            current["suggestion"] = SUGGESTION_RE.sub("", line)

    if current:
        issues.append(DesignIssue(**current))

    return score, issues


class DesignReviewer:
    """Reviews frontend files with the design reviewer CLI."""

    def __init__(
        self,
        max_files: int = DEFAULT_MAX_FILES,
        file_timeout: int = DEFAULT_FILE_TIMEOUT,
        shell_factory: Callable[..., ShellTool] = ShellTool,
    ) -> None:
        self.max_files = max_files
        self.file_timeout = file_timeout
        self.shell_factory = shell_factory

    def find_frontend_files(self, project_path: Path) -> list[str]:
        """Frontend files under src/ (or the root when there is no src/)."""
        project_path = Path(project_path)
        root = "src" if (project_path / "src").is_dir() else "."
        result = FilesystemTool(project_path).execute("find", extensions=FRONTEND_EXTENSIONS, path=root)
        return result.output if result.success else []

    def review(self, project_path: Path) -> DesignReviewResult:
        """Review up to ``max_files`` frontend files and average their scores."""
        project_path = Path(project_path)
        shell = self.shell_factory(working_dir=project_path, timeout=self.file_timeout)

        if not shell.which(REVIEWER_EXECUTABLE):
            return DesignReviewResult(status=CheckStatus.SKIP, error=INSTALL_HINT)

        files = self.find_frontend_files(project_path)
        if not files:
            return DesignReviewResult(
                status=CheckStatus.SKIP,
                error="No frontend files found to review (looked for .tsx, .jsx, .vue, .svelte, .html)",
            )

        to_review = files[: self.max_files]
        if len(files) > self.max_files:
            logger.info("Reviewing first %d of %d frontend files", self.max_files, len(files))

        scores: list[int] = []
        issues: list[DesignIssue] = []
        output: list[str] = []

        for path in to_review:
            logger.debug("Design review: %s", path)
            result = shell.run([REVIEWER_EXECUTABLE, path])
            output.append(f"\n=== {path} ===\n{result.stdout}\n")
            if result.timed_out:
                logger.warning("Design review of %s timed out", path)

            score, file_issues = parse_reviewer_output(result.stdout)
            if score is not None:
                scores.append(score)
            for issue in file_issues:
                issues.append(issue if issue.file else issue.model_copy(update={"file": path}))

        average = round(sum(scores) / len(scores)) if scores else None
        has_critical = any(i.severity == DesignSeverity.CRITICAL for i in issues)

        return DesignReviewResult(
            status=CheckStatus.FAIL if has_critical else CheckStatus.PASS,
            score=average,
            issues=issues,
            files_reviewed=to_review,
            output="".join(output),
        )


def _issue_lines(issues: list[DesignIssue]) -> str:
    lines = []
    for issue in issues:
        line = f"- {issue.message}"
        if issue.file and issue.line:
            line += f" ({issue.file}:{issue.line})"
        if issue.wcag_ref:
            line += f" [{issue.wcag_ref}]"
        lines.append(line + "\n")
        if issue.suggestion:
            lines.append(f"  → Fix: {issue.suggestion}\n")
    return "".join(lines)


def format_design_results_for_context(result: DesignReviewResult) -> str:
    """Render a design review as markdown for fix and review prompts."""
    if not result.ran:
        return (
            "## Design & Accessibility Review\n\n"
            "**Status:** Skipped\n"
            f"**Reason:** {result.error}\n\n"
            "Design and accessibility verification could not be completed.\n"
        )

    out = [
        "## Design & Accessibility Review\n\n",
        "**Status:** Complete\n",
        f"**Files Reviewed:** {len(result.files_reviewed)}\n",
    ]
    if result.score is not None:
        icon = "🟢" if result.score >= 90 else "🟡" if result.score >= 70 else "🔴"
        out.append(f"**Design Score:** {icon} {result.score}/100\n")

    critical = result.by_severity(DesignSeverity.CRITICAL)
    serious = result.by_severity(DesignSeverity.SERIOUS)
    other = len(result.by_severity(DesignSeverity.MODERATE)) + len(result.by_severity(DesignSeverity.MINOR))

    out.append(
        "\n**Issues Found:**\n"
        f"- Critical: {len(critical)}\n"
        f"- Serious: {len(serious)}\n"
        f"- Moderate: {len(result.by_severity(DesignSeverity.MODERATE))}\n"
        f"- Minor: {len(result.by_severity(DesignSeverity.MINOR))}\n\n"
    )

    if critical:
        out.append("### Critical Issues (Must Fix)\n" + _issue_lines(critical) + "\n")
    if serious:
        out.append("### Serious Issues (Should Fix)\n" + _issue_lines(serious) + "\n")
    if other:
        out.append(f"### Other Issues\n{other} additional issues found. Review the full reviewer output for details.\n\n")

    out.append("### Files Reviewed\n")
    out.extend(f"- {path}\n" for path in result.files_reviewed)
    return "".join(out)
