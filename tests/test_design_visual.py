"""Tests for the design reviewer and the visual check."""

import json

import pytest

from schemas.verification import CheckStatus, DesignCategory, DesignSeverity
from tools.base import ToolResult, ToolStatus
from verification.design import DesignReviewer, parse_reviewer_output
from verification.visual import VisualVerifier, detect_dev_config, has_dev_server, parse_analysis

REVIEW = """Design Score: 72/100

Critical: Image missing alt text WCAG 1.1.1
  src/App.tsx:12
  Fix: Add a descriptive alt attribute
Serious: Button contrast too low
Minor: Inconsistent spacing
"""


class FakeShell:
    def __init__(self, installed=True, stdout=REVIEW):
        self.installed = installed
        self.stdout = stdout
        self.commands: list = []
        self.operations: list = []

    def __call__(self, working_dir=None, timeout=None):
        return self

    def which(self, executable):
        return self.installed

    def run(self, command, **kwargs):
        self.commands.append(command)
        return ToolResult(status=ToolStatus.SUCCESS, output={"stdout": self.stdout, "stderr": "", "returncode": 0})

    def execute(self, operation, **kwargs):
        self.operations.append((operation, kwargs))
        if operation == "start":
            return ToolResult(status=ToolStatus.SUCCESS, output="process")
        return ToolResult(status=ToolStatus.SUCCESS, output={"pid": 1})


class FakeHttp:
    def __init__(self, ready=True):
        self.ready = ready
        self.base_url = None

    def __call__(self, base_url=None):
        self.base_url = base_url
        return self

    def execute(self, operation, **kwargs):
        if operation == "wait_for_ready":
            status = ToolStatus.SUCCESS if self.ready else ToolStatus.TIMEOUT
            return ToolResult(status=status)
        return ToolResult(status=ToolStatus.SUCCESS, output={"body": "<h1>Todos</h1>", "status_code": 200})


def _scripts(path, **scripts):
    (path / "package.json").write_text(json.dumps({"scripts": scripts}))
    return path


class TestParseReviewerOutput:
    def test_score_and_issues(self):
        score, issues = parse_reviewer_output(REVIEW)

        assert score == 72
        assert [i.severity for i in issues] == [
            DesignSeverity.CRITICAL,
            DesignSeverity.SERIOUS,
            DesignSeverity.MINOR,
        ]
        critical = issues[0]
        assert critical.category == DesignCategory.ACCESSIBILITY
        assert critical.wcag_ref == "WCAG 1.1.1"
        assert (critical.file, critical.line) == ("src/App.tsx", 12)
        assert critical.suggestion == "Add a descriptive alt attribute"

    def test_empty_output(self):
        assert parse_reviewer_output("") == (None, [])


class TestDesignReviewer:
    def test_skips_when_reviewer_missing(self, tmp_path):
        result = DesignReviewer(shell_factory=FakeShell(installed=False)).review(tmp_path)

        assert result.status == CheckStatus.SKIP
        assert "not installed" in result.error

    def test_skips_without_frontend_files(self, tmp_path):
        result = DesignReviewer(shell_factory=FakeShell()).review(tmp_path)

        assert result.status == CheckStatus.SKIP
        assert "No frontend files" in result.error

    def test_reviews_limited_files(self, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        for name in ["App.tsx", "List.tsx", "Item.tsx"]:
            (src / name).write_text("export {}")
        (src / "util.ts").write_text("export {}")
        shell = FakeShell()

        result = DesignReviewer(max_files=2, shell_factory=shell).review(tmp_path)

        assert len(shell.commands) == 2
        assert result.files_reviewed == ["src/App.tsx", "src/Item.tsx"]
        assert result.score == 72
        assert result.status == CheckStatus.FAIL
        assert result.by_severity(DesignSeverity.SERIOUS)[0].file == "src/App.tsx"

    def test_no_critical_issues_passes(self, tmp_path):
        (tmp_path / "index.html").write_text("<html></html>")

        result = DesignReviewer(shell_factory=FakeShell(stdout="Score: 95\nMinor: tighten spacing")).review(tmp_path)

        assert result.status == CheckStatus.PASS
        assert result.score == 95


class TestDevConfig:
    @pytest.mark.parametrize(
        "script,port",
        [
            ("vite --port 4000", 4000),
            ("vite", 5173),
            ("next dev", 3000),
            ("ng serve", 4200),
            ("vue-cli-service serve", 8080),
            ("node server.js", 3000),
        ],
    )
    def test_port_detection(self, tmp_path, script, port):
        assert detect_dev_config(_scripts(tmp_path, dev=script)) == ("npm run dev", port)

    def test_start_script(self, tmp_path):
        assert detect_dev_config(_scripts(tmp_path, start="PORT=8000 node app.js")) == ("npm start", 8000)

    def test_no_scripts(self, tmp_path):
        assert detect_dev_config(tmp_path) is None
        assert not has_dev_server(tmp_path)


class TestParseAnalysis:
    def test_splits_by_heading(self):
        text = (
            "1. **Expected UI Elements**\n- A list of todos\n"
            "2. **Potential Issues**\n- Header overlaps content\n* No empty state\n"
            "3. **Suggestions**\n- Add an empty state\n"
        )

        issues, suggestions = parse_analysis(text)

        assert issues == ["Header overlaps content", "No empty state"]
        assert suggestions == ["Add an empty state"]


class TestVisualVerifier:
    def test_reviews_pages_and_stops_server(self, tmp_path):
        _scripts(tmp_path, dev="vite")
        shell, http = FakeShell(), FakeHttp()
        prompts: list[str] = []

        def analyze(prompt):
            prompts.append(prompt)
            return "Potential Issues\n- Missing footer\n"

        verifier = VisualVerifier(analyze, shell_factory=shell, http_factory=http)
        result = verifier.verify(tmp_path, "# Todo App")

        assert result.status == CheckStatus.PASS
        assert result.server_started
        assert result.pages[0].issues == ["Missing footer"]
        assert http.base_url == "http://localhost:5173"
        assert "<h1>Todos</h1>" in prompts[0]
        assert [op for op, _ in shell.operations] == ["start", "stop"]

    def test_server_not_ready_still_stops(self, tmp_path):
        _scripts(tmp_path, dev="vite")
        shell = FakeShell()

        result = VisualVerifier(lambda p: "", shell_factory=shell, http_factory=FakeHttp(ready=False)).verify(
            tmp_path, "spec"
        )

        assert result.status == CheckStatus.SKIP
        assert "failed to start" in result.error
        assert shell.operations[-1][0] == "stop"

    def test_skips_without_dev_script(self, tmp_path):
        result = VisualVerifier(lambda p: "").verify(tmp_path, "spec")
        assert result.status == CheckStatus.SKIP

    def test_skips_without_reviewer(self, tmp_path):
        _scripts(tmp_path, dev="vite")
        result = VisualVerifier(None).verify(tmp_path, "spec")
        assert result.error == "No reviewer agent configured"
