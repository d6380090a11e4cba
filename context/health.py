"""Context budget estimation.

Estimates the token size of a rendered build context and reports how close
it is to the budget. Everything here is pure and total: any string in,
a report out.
"""

import math

from rich.console import Group
from rich.table import Table
from rich.text import Text

from schemas.context_report import ContextBreakdown, ContextHealthReport, HealthStatus

# Roughly four characters per token for English text
CHARS_PER_TOKEN = 4

DEFAULT_BUDGET_TOKENS = 8000

HEALTHY_MAX_PERCENT = 80
WARNING_MAX_PERCENT = 120

# Section key -> headings that open it; the first heading found wins.
SECTION_MARKERS: list[tuple[str, tuple[str, ...]]] = [
    ("spec", ("## Spec Summary", "## Reference Documents", "### Spec Summary")),
    ("architecture", ("### Architecture Overview", "## Architecture")),
    ("design_spec", ("### Design Tokens", "## Design Tokens", "```yaml")),
    ("completed_phases", ("## Completed Phases",)),
    ("current_phase", ("## Current Phase", "## Tasks for This Phase")),
    ("file_map", ("## File Map",)),
]

STATUS_STYLES = {
    HealthStatus.HEALTHY: ("🟢", "green"),
    HealthStatus.WARNING: ("🟡", "yellow"),
    HealthStatus.CRITICAL: ("🔴", "red"),
}


def estimate_tokens(text: str) -> int:
    """Estimate tokens as ceil(chars / 4). Empty text is 0."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def percentage_of_budget(tokens: int, budget: int) -> int:
    """Percentage of budget used, rounded half-up."""
    if budget <= 0:
        raise ValueError("budget must be positive")
    return (200 * tokens + budget) // (2 * budget)


def classify(percentage_used: int) -> HealthStatus:
    if percentage_used <= HEALTHY_MAX_PERCENT:
        return HealthStatus.HEALTHY
    if percentage_used <= WARNING_MAX_PERCENT:
        return HealthStatus.WARNING
    return HealthStatus.CRITICAL


def analyze_breakdown(text: str) -> ContextBreakdown:
    """Attribute tokens to sections by their headings.

    A section runs from its heading to the next top-level ``## `` heading.
    Whatever is not attributed lands in ``other``.
    """
    values: dict[str, int] = {}
    accounted = 0

    for key, markers in SECTION_MARKERS:
        for marker in markers:
            start = text.find(marker)
            if start == -1:
                continue
            end = text.find("\n## ", start + len(marker))
            if end == -1:
                end = len(text)
            values[key] = estimate_tokens(text[start:end])
            accounted += values[key]
            break

    values["other"] = max(0, estimate_tokens(text) - accounted)
    return ContextBreakdown(**values)


def analyze_context_health(
    text: str,
    budget: int = DEFAULT_BUDGET_TOKENS,
    breakdown: ContextBreakdown | None = None,
) -> ContextHealthReport:
    """Analyze the size of a rendered context against a token budget.

    Args:
        text: Rendered context
        budget: Token budget
        breakdown: Precomputed breakdown (computed from headings if omitted)

    Returns:
        ContextHealthReport with status and recommendations
    """
    total = estimate_tokens(text)
    percentage = percentage_of_budget(total, budget)
    status = classify(percentage)

    recommendations: list[str] = []
    if status == HealthStatus.WARNING:
        recommendations.append("Context is growing large - compression will be applied")
    elif status == HealthStatus.CRITICAL:
        recommendations.append("Context exceeds budget - aggressive compression needed")
        recommendations.append("Older phases will be summarized to single lines")

    if breakdown is None:
        breakdown = analyze_breakdown(text)

    if breakdown.completed_phases > budget * 0.3:
        recommendations.append("Completed phases history is large - using compression")
    if breakdown.architecture > budget * 0.25:
        recommendations.append("Architecture section is large - extracting relevant parts only")

    return ContextHealthReport(
        total_tokens=total,
        budget_tokens=budget,
        percentage_used=percentage,
        status=status,
        breakdown=breakdown,
        recommendations=recommendations,
    )


def format_health_report(report: ContextHealthReport) -> str:
    """One-line indicator, plus recommendations when not healthy."""
    icon, _ = STATUS_STYLES[report.status]
    lines = [f"{icon} Context: {report.total_tokens} tokens ({report.percentage_used}% of budget)"]
    if report.status != HealthStatus.HEALTHY:
        lines.append("")
        lines.extend(f"  ⚠ {rec}" for rec in report.recommendations)
    return "\n".join(lines) + "\n"


def render_detailed_report(report: ContextHealthReport, bar_length: int = 30) -> Group:
    """Rich renderable with a usage bar and per-section table."""
    icon, color = STATUS_STYLES[report.status]

    header = Text()
    header.append(f"Status: {icon} {report.status.value.upper()}\n")
    header.append(f"Total: {report.total_tokens} tokens\n")
    header.append(f"Budget: {report.budget_tokens} tokens\n")
    header.append(f"Usage: {report.percentage_used}%\n")

    filled = min(bar_length, round(report.percentage_used / 100 * bar_length))
    bar = Text("█" * filled + "░" * (bar_length - filled), style=color)
    bar.append(f" {report.percentage_used}%", style="bold")

    table = Table(title="Breakdown by Section", show_header=True, header_style="bold")
    table.add_column("Section")
    table.add_column("Tokens", justify="right")
    table.add_column("Share", justify="right")

    labels = [
        ("Spec", report.breakdown.spec),
        ("Architecture", report.breakdown.architecture),
        ("Design Tokens", report.breakdown.design_spec),
        ("Completed Phases", report.breakdown.completed_phases),
        ("Current Phase", report.breakdown.current_phase),
        ("File Map", report.breakdown.file_map),
        ("Other", report.breakdown.other),
    ]
    for label, value in labels:
        if value > 0 and report.total_tokens:
            pct = round(value / report.total_tokens * 100)
            table.add_row(label, str(value), f"{'▓' * math.ceil(pct / 5)} {pct}%")

    parts: list = [header, bar, table]
    if report.recommendations:
        recs = Text("Recommendations:\n", style="yellow")
        for rec in report.recommendations:
            recs.append(f"  ⚠ {rec}\n")
        parts.append(recs)

    return Group(*parts)
