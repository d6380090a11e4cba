"""Tests for context budget estimation."""

import pytest
from rich.console import Console

from context.compression import should_compress
from context.health import (
    analyze_breakdown,
    analyze_context_health,
    classify,
    estimate_tokens,
    format_health_report,
    percentage_of_budget,
    render_detailed_report,
)
from schemas.context_report import HealthStatus


class TestEstimateTokens:
    def test_empty_text_is_zero(self):
        assert estimate_tokens("") == 0

    def test_rounds_up(self):
        assert estimate_tokens("a") == 1
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2

    def test_forty_thousand_chars(self):
        assert estimate_tokens("x" * 40_000) == 10_000


class TestPercentage:
    def test_rounds_half_up(self):
        # 1 of 8 tokens is 12.5%
        assert percentage_of_budget(1, 8) == 13

    def test_rejects_zero_budget(self):
        with pytest.raises(ValueError):
            percentage_of_budget(10, 0)


class TestClassify:
    @pytest.mark.parametrize(
        "percentage,status",
        [
            (0, HealthStatus.HEALTHY),
            (80, HealthStatus.HEALTHY),
            (81, HealthStatus.WARNING),
            (120, HealthStatus.WARNING),
            (121, HealthStatus.CRITICAL),
        ],
    )
    def test_thresholds(self, percentage, status):
        assert classify(percentage) == status


class TestAnalyzeContextHealth:
    def test_over_budget_context_is_critical(self):
        report = analyze_context_health("x" * 40_000, 8000)

        assert report.total_tokens == 10_000
        assert report.percentage_used == 125
        assert report.status == HealthStatus.CRITICAL
        assert should_compress("x" * 40_000, 8000)
        assert any("aggressive compression" in r for r in report.recommendations)

    def test_small_context_is_healthy(self):
        report = analyze_context_health("## Current Phase\nDo the thing", 8000)

        assert report.status == HealthStatus.HEALTHY
        assert report.recommendations == []
        assert not should_compress("## Current Phase\nDo the thing", 8000)

    def test_should_compress_above_seventy_percent_while_healthy(self):
        # 75% of budget: healthy, but compression kicks in early
        text = "x" * (4 * 6000)
        assert analyze_context_health(text, 8000).status == HealthStatus.HEALTHY
        assert should_compress(text, 8000)

    def test_warns_about_large_history(self):
        text = "## Completed Phases\n" + "y" * 12_000
        report = analyze_context_health(text, 8000)

        assert "Completed phases history is large - using compression" in report.recommendations


class TestBreakdown:
    def test_attributes_sections_by_heading(self):
        text = (
            "# Build Context\n\n"
            "## Current Phase\nPhase 2\n"
            "## Completed Phases\n" + "a" * 400 + "\n"
            "## File Map\n- `src/App.tsx` - app\n"
        )
        breakdown = analyze_breakdown(text)

        assert breakdown.completed_phases > breakdown.current_phase
        assert breakdown.file_map > 0
        assert breakdown.spec == 0

    def test_unattributed_text_lands_in_other(self):
        breakdown = analyze_breakdown("just some notes")
        assert breakdown.other == estimate_tokens("just some notes")


class TestFormatting:
    def test_one_line_when_healthy(self):
        report = analyze_context_health("short", 8000)
        assert format_health_report(report).strip().count("\n") == 0
        assert "Context: 2 tokens" in format_health_report(report)

    def test_lists_recommendations_when_critical(self):
        report = analyze_context_health("x" * 40_000, 8000)
        text = format_health_report(report)
        assert "125% of budget" in text
        assert "⚠" in text

    def test_detailed_report_renders(self):
        report = analyze_context_health("## Spec Summary\n" + "s" * 800, 8000)
        console = Console(record=True, width=100)
        console.print(render_detailed_report(report))
        output = console.export_text()

        assert "Breakdown by Section" in output
        assert "Spec" in output
