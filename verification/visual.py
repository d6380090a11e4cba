"""Visual check of the running application.

Starts the project's dev server, waits for it to answer, fetches each page
and asks the reviewer agent what to look for. The result is advisory: it is
reported to the fix loop but never blocks a phase.
"""

import json
import logging
import re
from collections.abc import Callable
from pathlib import Path

from schemas.verification import CheckStatus, VisualPageResult, VisualReviewResult
from tools.http_tool import HttpTool
from tools.shell_tool import ShellTool

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000
DEFAULT_STARTUP_TIMEOUT = 60
MAX_SPEC_CHARS = 3000
MAX_PAGE_CHARS = 4000
MAX_ITEMS = 10

PORT_RE = re.compile(r"(?:--port[=\s]+|PORT=|:)(\d{4,5})")
BULLET_RE = re.compile(r"^[-•*]\s*(.+)")

# (script fragment(s), default port); first match wins
FRAMEWORK_PORTS: list[tuple[tuple[str, ...], int]] = [
    (("vite",), 5173),
    (("next",), 3000),
    (("nuxt",), 3000),
    (("angular", "ng serve"), 4200),
]

# (script name, command to start it)
DEV_SCRIPTS = [("dev", "npm run dev"), ("start", "npm start"), ("serve", "npm run serve")]

ANALYSIS_PROMPT = """You are reviewing a page of a running web application to verify it matches the specification.

## Specification Summary
{spec}

## Page
- URL: {url}
- HTML excerpt:
```html
{html}
```

## Your Task
1. **Expected UI Elements**: What should be visible on this page according to the spec?
2. **Potential Issues**: Layout problems, missing elements, UX concerns (as bullet points)
3. **Suggestions**: Concrete improvements (as bullet points)
"""


def _dev_scripts(project_path: Path) -> dict[str, str]:
    package_json = Path(project_path) / "package.json"
    if not package_json.is_file():
        return {}
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    scripts = data.get("scripts") if isinstance(data, dict) else None
    return scripts if isinstance(scripts, dict) else {}


def has_dev_server(project_path: Path) -> bool:
    """package.json defines a dev, start or serve script."""
    scripts = _dev_scripts(project_path)
    return any(scripts.get(name) for name, _ in DEV_SCRIPTS)


def detect_dev_config(project_path: Path) -> tuple[str, int] | None:
    """Dev server command and port.

    An explicit port in the script wins; otherwise the framework default,
    otherwise 3000.
    """
    scripts = _dev_scripts(project_path)
    for name, command in DEV_SCRIPTS:
        script = scripts.get(name)
        if not script:
            continue

        explicit = PORT_RE.search(script)
        if explicit:
            return command, int(explicit.group(1))

        for fragments, port in FRAMEWORK_PORTS:
            if any(f in script for f in fragments):
                return command, port
        if "vue" in script and "serve" in script:
            return command, 8080
        return command, DEFAULT_PORT
    return None


def parse_analysis(text: str) -> tuple[list[str], list[str]]:
    """Bullets under issue/problem headings vs. suggestion/recommend headings."""
    issues: list[str] = []
    suggestions: list[str] = []
    target: list[str] | None = None

    for line in text.split("\n"):
        lower = line.lower()
        if "issue" in lower or "problem" in lower:
            target = issues
        if "suggestion" in lower or "recommend" in lower:
            target = suggestions
        bullet = BULLET_RE.match(line)
        if bullet and target is not None:
            target.append(bullet.group(1))

    return issues[:MAX_ITEMS], suggestions[:MAX_ITEMS]


class VisualVerifier:
    """Runs the dev server and has the reviewer agent inspect each page."""

    def __init__(
        self,
        analyze: Callable[[str], str] | None,
        startup_timeout: int = DEFAULT_STARTUP_TIMEOUT,
        urls: list[str] | None = None,
        shell_factory: Callable[..., ShellTool] = ShellTool,
        http_factory: Callable[..., HttpTool] = HttpTool,
    ) -> None:
        self.analyze = analyze
        self.startup_timeout = startup_timeout
        self.urls = urls or ["/"]
        self.shell_factory = shell_factory
        self.http_factory = http_factory

    def verify(self, project_path: Path, spec: str) -> VisualReviewResult:
        config = detect_dev_config(project_path)
        if config is None:
            return VisualReviewResult(
                status=CheckStatus.SKIP,
                error="No dev server script found in package.json (dev, start, or serve)",
            )
        if self.analyze is None:
            return VisualReviewResult(status=CheckStatus.SKIP, error="No reviewer agent configured")

        command, port = config
        shell = self.shell_factory(working_dir=project_path)
        http = self.http_factory(base_url=f"http://localhost:{port}")

        logger.info("Starting dev server: %s (port %d)", command, port)
        started = shell.execute("start", command=command)
        if not started.success:
            return VisualReviewResult(status=CheckStatus.SKIP, error=started.error)

        process = started.output
        try:
            ready = http.execute("wait_for_ready", path="/", timeout=self.startup_timeout)
            if not ready.success:
                return VisualReviewResult(
                    status=CheckStatus.SKIP,
                    server_started=True,
                    error=f"Dev server failed to start within {self.startup_timeout}s",
                )

            pages = [self._review_page(http, url, spec) for url in self.urls]
            return VisualReviewResult(status=CheckStatus.PASS, server_started=True, pages=pages)
        finally:
            logger.debug("Stopping dev server")
            shell.execute("stop", process=process)

    def _review_page(self, http: HttpTool, url: str, spec: str) -> VisualPageResult:
        page = http.execute("get", path=url)
        html = page.output["body"] if page.output else ""
        prompt = ANALYSIS_PROMPT.format(
            spec=spec[:MAX_SPEC_CHARS] + ("...(truncated)" if len(spec) > MAX_SPEC_CHARS else ""),
            url=url,
            html=html[:MAX_PAGE_CHARS],
        )
        analysis = self.analyze(prompt)
        issues, suggestions = parse_analysis(analysis)
        return VisualPageResult(url=url, analysis=analysis, issues=issues, suggestions=suggestions)


def format_visual_results_for_context(result: VisualReviewResult) -> str:
    if result.status == CheckStatus.SKIP:
        return (
            "## Visual Verification\n\n"
            "**Status:** Skipped\n"
            f"**Reason:** {result.error}\n\n"
            "Visual verification could not be completed. Manual visual testing is recommended.\n"
        )

    out = ["## Visual Verification\n\n", f"**Status:** Complete\n**Pages Reviewed:** {len(result.pages)}\n\n"]
    for page in result.pages:
        out.append(f"### Page: {page.url}\n\n{page.analysis}\n\n")
        if page.issues:
            out.append("**Potential Visual Issues to Check:**\n" + "\n".join(f"- {i}" for i in page.issues) + "\n\n")
        if page.suggestions:
            out.append("**Visual Recommendations:**\n" + "\n".join(f"- {s}" for s in page.suggestions) + "\n\n")
    return "".join(out)
