"""Verification gate.

Decides whether a phase may advance. Tests always run when a test command
exists; the ``full`` level adds the visual check and the design review.

Blocking: failed tests, or any critical design issue.
Advisory: visual findings, serious or lesser design issues, missing tooling.
Any exception from the optional checks degrades to a "skipped" note.
"""

import logging
from pathlib import Path

from schemas.build_plan import VerificationLevel
from schemas.verification import (
    CheckStatus,
    DesignReviewResult,
    DesignSeverity,
    TestRunResult,
    VerificationResult,
    VisualReviewResult,
)

from .design import DesignReviewer, format_design_results_for_context
from .testing import TestRunner, format_test_results_for_context
from .visual import VisualVerifier, has_dev_server

logger = logging.getLogger(__name__)

MAX_FIX_ERROR_CHARS = 3000
MAX_FIX_ATTEMPT_CHARS = 500


class VerificationGate:
    """Runs the checks for a phase and returns a single verdict."""

    def __init__(
        self,
        test_runner: TestRunner | None = None,
        visual_verifier: VisualVerifier | None = None,
        design_reviewer: DesignReviewer | None = None,
    ) -> None:
        self.test_runner = test_runner or TestRunner()
        self.visual_verifier = visual_verifier
        self.design_reviewer = design_reviewer or DesignReviewer()

    def verify(
        self,
        project_path: Path,
        level: VerificationLevel,
        spec: str | None = None,
        project_types: list[str] | None = None,
    ) -> VerificationResult:
        """Run verification at the given level."""
        project_path = Path(project_path)
        logger.info("Running %s verification in %s", level.value, project_path)

        passed = True
        summary: list[str] = []
        errors: list[str] = []

        test_result = self._run_tests(project_path, project_types, summary, errors)
        if test_result is not None and not test_result.passed:
            passed = False

        visual_result = None
        design_result = None
        if level == VerificationLevel.FULL:
            visual_result = self._run_visual(project_path, spec, summary, errors)
            design_result = self._run_design(project_path, summary, errors)
            if design_result is not None and design_result.by_severity(DesignSeverity.CRITICAL):
                passed = False

        result = VerificationResult(
            passed=passed,
            level=level,
            test_result=test_result,
            visual_result=visual_result,
            design_result=design_result,
            summary="\n".join(summary),
            error_output="".join(errors),
        )
        logger.info("Verification %s", "passed" if passed else "failed")
        return result

    def _run_tests(
        self,
        project_path: Path,
        project_types: list[str] | None,
        summary: list[str],
        errors: list[str],
    ) -> TestRunResult | None:
        if not self.test_runner.has_test_command(project_path, project_types):
            summary.append("⚠️ No tests configured")
            return None

        result = self.test_runner.run(project_path, project_types)
        counts = result.counts
        if result.passed:
            summary.append(f"✅ Tests passed ({counts.passed if counts else '?'} passing)")
        else:
            summary.append(f"❌ Tests failed ({counts.failed if counts else '?'} failures)")
            errors.append("## Test Failures\n\n" + format_test_results_for_context(result))
        return result

    def _run_visual(
        self,
        project_path: Path,
        spec: str | None,
        summary: list[str],
        errors: list[str],
    ) -> VisualReviewResult | None:
        if self.visual_verifier is None or not spec or not has_dev_server(project_path):
            summary.append("⚠️ Visual verification skipped (no dev server or spec)")
            return None

        try:
            result = self.visual_verifier.verify(project_path, spec)
        except Exception as e:
            logger.warning("Visual verification raised: %s", e)
            summary.append(f"⚠️ Visual verification skipped ({e})")
            return None

        if result.status == CheckStatus.SKIP:
            summary.append("⚠️ Visual verification had issues")
            if result.error:
                errors.append(f"## Visual Verification Issues\n\n{result.error}\n\n")
        elif result.issue_count:
            summary.append(f"⚠️ Visual verification found {result.issue_count} issues")
            for page in result.pages:
                if page.issues:
                    errors.append(
                        f"## Visual Issues ({page.url})\n\n" + "\n".join(f"- {i}" for i in page.issues) + "\n\n"
                    )
        else:
            summary.append("✅ Visual verification passed")
        return result

    def _run_design(
        self,
        project_path: Path,
        summary: list[str],
        errors: list[str],
    ) -> DesignReviewResult | None:
        try:
            result = self.design_reviewer.review(project_path)
        except Exception as e:
            logger.warning("Design review raised: %s", e)
            summary.append(f"⚠️ Design verification skipped ({e})")
            return None

        if not result.ran:
            summary.append(f"⚠️ Design verification skipped ({result.error or 'reviewer not available'})")
            return result

        critical = result.by_severity(DesignSeverity.CRITICAL)
        serious = result.by_severity(DesignSeverity.SERIOUS)
        if critical:
            summary.append(f"❌ Design verification: {len(critical)} critical issues")
            errors.append(format_design_results_for_context(result))
        elif serious:
            summary.append(f"⚠️ Design verification: {len(serious)} serious issues")
            errors.append(format_design_results_for_context(result))
        elif result.score is not None:
            summary.append(f"✅ Design score: {result.score}/100")
        else:
            summary.append("✅ Design verification passed")
        return result


def format_verification_for_fix(
    result: VerificationResult,
    attempt: int,
    previous_attempts: list[str],
    max_attempts: int = 2,
) -> str:
    """Render a failed verification as a fix request."""
    out = [
        "# Verification Failed - Fix Required\n\n",
        f"**Attempt {attempt} of {max_attempts}**\n\n",
        f"## Summary\n{result.summary}\n\n",
    ]

    if result.error_output:
        error = result.error_output
        if len(error) > MAX_FIX_ERROR_CHARS:
            error = error[:MAX_FIX_ERROR_CHARS] + "\n\n... (error output truncated)"
        out.append(f"## Error Details\n{error}\n")

    if previous_attempts:
        blocks = []
        for i, previous in enumerate(previous_attempts, start=1):
            more = "..." if len(previous) > MAX_FIX_ATTEMPT_CHARS else ""
            blocks.append(f"### Attempt {i}\n{previous[:MAX_FIX_ATTEMPT_CHARS]}{more}")
        out.append("## Previous Fix Attempts (summarized)\n\n" + "\n\n".join(blocks) + "\n\n")

    out.append(
        "## Instructions\n\n"
        "1. Review the errors above carefully\n"
        "2. Fix ONLY what is broken - do not refactor unrelated code\n"
        "3. Make the minimal change needed to pass verification\n"
        "4. Do not add new features or improvements\n"
        "5. Focus on the specific test/design failures listed\n"
    )
    return "".join(out)
