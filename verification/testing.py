"""Test suite detection and execution.

Picks the test command for a generated project from its project types and
marker files, runs it with a timeout, and parses pass/fail counts from the
common runner formats.
"""

import json
import logging
import re
from collections.abc import Callable
from pathlib import Path

from schemas.verification import CheckStatus, TestCount, TestRunResult
from tools.shell_tool import ShellTool

logger = logging.getLogger(__name__)

DEFAULT_TEST_TIMEOUT = 300
MAX_OUTPUT_CHARS = 5000

IOS_TEST_COMMAND = (
    'xcodebuild test -scheme $(xcodebuild -list -json | jq -r ".project.schemes[0]") '
    '-destination "platform=iOS Simulator,name=iPhone 15"'
)

# "Tests:  1 failed, 4 passed, 5 total" (Jest) or "Tests  4 passed (5)" (Vitest)
SUMMARY_LINE_RE = re.compile(r"^\s*Tests:?\s+(.*\d.*)$", re.MULTILINE)
COUNT_RE = re.compile(r"(\d+)\s+(passed|failed|skipped|todo|total)", re.IGNORECASE)
PAREN_TOTAL_RE = re.compile(r"\((\d+)\)")
MOCHA_PASSING_RE = re.compile(r"(\d+)\s*passing", re.IGNORECASE)
MOCHA_FAILING_RE = re.compile(r"(\d+)\s*failing", re.IGNORECASE)
MOCHA_PENDING_RE = re.compile(r"(\d+)\s*pending", re.IGNORECASE)
# "==== 2 failed, 10 passed, 1 skipped in 0.52s ===="
PYTEST_SUMMARY_RE = re.compile(r"^=+ (.*?) in [\d.]+s", re.MULTILINE)


def _read_package_scripts(project_path: Path) -> dict[str, str]:
    package_json = project_path / "package.json"
    if not package_json.is_file():
        return {}
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Unreadable package.json in %s", project_path)
        return {}
    scripts = data.get("scripts") if isinstance(data, dict) else None
    return scripts if isinstance(scripts, dict) else {}


def has_package_test_script(project_path: Path) -> bool:
    """package.json has a real ``test`` script (not the npm placeholder)."""
    script = _read_package_scripts(project_path).get("test")
    return bool(script) and "no test specified" not in script


def _standard_command(project_path: Path) -> str | None:
    return "npm test" if has_package_test_script(project_path) else None


def _ios_command(project_path: Path) -> str | None:
    if any(p.suffix in (".xcodeproj", ".xcworkspace") for p in project_path.iterdir()):
        return IOS_TEST_COMMAND
    return None


def _android_command(project_path: Path) -> str | None:
    if (project_path / "gradlew").exists():
        return "./gradlew test"
    if (project_path / "build.gradle").exists() or (project_path / "build.gradle.kts").exists():
        return "gradle test"
    return None


def _backend_command(project_path: Path) -> str | None:
    if any((project_path / marker).exists() for marker in ("pytest.ini", "pyproject.toml", "setup.py")):
        return "pytest"
    if (project_path / "go.mod").exists():
        return "go test ./..."
    if (project_path / "Cargo.toml").exists():
        return "cargo test"
    return _standard_command(project_path)


COMMANDS_BY_TYPE: dict[str, Callable[[Path], str | None]] = {
    "ios": _ios_command,
    "android": _android_command,
    "backend": _backend_command,
    "web": _standard_command,
    "desktop": _standard_command,
    "cli": _standard_command,
    "library": _standard_command,
}


def get_test_command(project_path: Path, project_types: list[str] | None = None) -> str | None:
    """Resolve the test command. Project types are tried in order; first match wins."""
    project_path = Path(project_path)
    if not project_path.is_dir():
        return None
    for project_type in project_types or []:
        resolver = COMMANDS_BY_TYPE.get(project_type)
        command = resolver(project_path) if resolver else None
        if command:
            return command
    return _standard_command(project_path)


def parse_test_count(output: str) -> TestCount | None:
    """Parse counts from Jest, Vitest, Mocha or pytest output."""
    summary = SUMMARY_LINE_RE.search(output)
    if summary:
        found = {kind.lower(): int(n) for n, kind in COUNT_RE.findall(summary.group(1))}
        if "passed" in found or "failed" in found:
            paren = PAREN_TOTAL_RE.search(summary.group(1))
            total = found.get("total") or (int(paren.group(1)) if paren else None)
            passed, failed, skipped = found.get("passed", 0), found.get("failed", 0), found.get("skipped", 0)
            return TestCount(
                passed=passed,
                failed=failed,
                skipped=skipped,
                total=total if total is not None else passed + failed + skipped,
            )

    passing = MOCHA_PASSING_RE.search(output)
    if passing:
        failing = MOCHA_FAILING_RE.search(output)
        pending = MOCHA_PENDING_RE.search(output)
        passed = int(passing.group(1))
        failed = int(failing.group(1)) if failing else 0
        skipped = int(pending.group(1)) if pending else 0
        return TestCount(passed=passed, failed=failed, skipped=skipped, total=passed + failed + skipped)

    pytest_summary = PYTEST_SUMMARY_RE.search(output)
    if pytest_summary:
        found = {kind.lower(): int(n) for n, kind in COUNT_RE.findall(pytest_summary.group(1))}
        if found:
            passed, failed, skipped = found.get("passed", 0), found.get("failed", 0), found.get("skipped", 0)
            return TestCount(passed=passed, failed=failed, skipped=skipped, total=passed + failed + skipped)

    return None


class TestRunner:
    """Runs a project's test suite."""

    __test__ = False

    def __init__(
        self,
        timeout: int = DEFAULT_TEST_TIMEOUT,
        shell_factory: Callable[..., ShellTool] = ShellTool,
    ) -> None:
        self.timeout = timeout
        self.shell_factory = shell_factory

    def has_test_command(self, project_path: Path, project_types: list[str] | None = None) -> bool:
        return get_test_command(project_path, project_types) is not None

    def run(self, project_path: Path, project_types: list[str] | None = None) -> TestRunResult:
        """Run the tests.

        A missing test command is reported as SKIP; a timeout is a failure.
        """
        command = get_test_command(project_path, project_types)
        if command is None:
            return TestRunResult(
                status=CheckStatus.SKIP,
                error="No test command found for this project",
            )

        logger.info("Running tests: %s", command)
        shell = self.shell_factory(working_dir=project_path, timeout=self.timeout)
        result = shell.run(command, shell=True)

        stdout, stderr = result.stdout, result.stderr
        if result.timed_out:
            error = result.error
        elif result.success:
            error = None
        else:
            error = result.error or f"Exit code {result.returncode}"

        return TestRunResult(
            status=CheckStatus.PASS if result.success else CheckStatus.FAIL,
            command=command,
            stdout=stdout,
            stderr=stderr,
            exit_code=result.returncode,
            duration_seconds=result.metadata.get("duration"),
            counts=parse_test_count(stdout + stderr),
            error=error,
        )


def _truncate_output(text: str) -> str:
    if len(text) > MAX_OUTPUT_CHARS:
        return text[:MAX_OUTPUT_CHARS] + "\n... (output truncated)"
    return text


def format_test_results_for_context(result: TestRunResult) -> str:
    """Render a test run as markdown for fix and review prompts."""
    if not result.ran:
        return (
            "## Test Results\n\n"
            "**Status:** No tests configured\n\n"
            f"{result.error or 'No test command found. Consider adding tests.'}\n"
        )

    out = [
        "## Test Results\n\n",
        f"**Status:** {'✅ PASSING' if result.passed else '❌ FAILING'}\n",
        f"**Command:** `{result.command}`\n",
        f"**Exit Code:** {result.exit_code}\n",
    ]

    if result.counts:
        counts = result.counts
        line = f"**Test Count:** {counts.passed} passed, {counts.failed} failed"
        if counts.skipped:
            line += f", {counts.skipped} skipped"
        out.append(f"{line} ({counts.total} total)\n")

    if result.duration_seconds:
        out.append(f"**Duration:** {result.duration_seconds:.2f}s\n")

    if result.error and not result.passed and result.exit_code is None:
        out.append(f"**Error:** {result.error}\n")

    out.append(f"\n### Output\n```\n{_truncate_output(result.stdout or '(no output)')}\n```\n")

    if result.stderr and result.stderr != result.stdout:
        out.append(f"\n### Errors\n```\n{_truncate_output(result.stderr)}\n```\n")

    return "".join(out)
