"""Tests for phase context rendering and build context updates."""

from datetime import date

from context.builder import (
    generate_initial_context,
    generate_phase_context,
    parse_builder_output,
    record_skipped_phase,
    update_context_after_phase,
)
from schemas.build_context import BuildContext, CompletedPhaseInfo
from schemas.build_plan import PhaseSpec
from tests.helpers import ARCHITECTURE, SPEC

BUILDER_REPORT = """PHASE COMPLETE

Created src/components/TodoList.tsx
Created file `src/hooks/useTodos.ts`
Modified src/App.tsx
Decided to use zustand for state because it keeps the store small.
Styled the list with var(--color-primary) and var(--space-md).
"""


def _phase() -> PhaseSpec:
    return PhaseSpec(name="Todo List", goal="Show todos", tasks=["Build the TodoList component", "Add the form"])


class TestParseBuilderOutput:
    def test_extracts_files_decisions_and_tokens(self):
        info = parse_builder_output(BUILDER_REPORT)

        assert info.files_created == ["src/components/TodoList.tsx", "src/hooks/useTodos.ts"]
        assert info.files_modified == ["src/App.tsx"]
        assert any("zustand" in d for d in info.key_decisions)
        assert info.design_tokens_used == ["--color-primary", "--space-md"]

    def test_modified_excludes_created(self):
        info = parse_builder_output("Created src/a.ts\nUpdated src/a.ts")
        assert info.files_created == ["src/a.ts"]
        assert info.files_modified == []

    def test_ignores_example_paths(self):
        info = parse_builder_output("Created example.env")
        assert info.files_created == []

    def test_empty_output(self):
        info = parse_builder_output("")
        assert info.files_created == []
        assert info.key_decisions == []


class TestUpdateContext:
    def test_folds_phase_into_new_context(self):
        original = BuildContext(file_map={"src/App.tsx": "Root component"})

        updated = update_context_after_phase(original, _phase(), BUILDER_REPORT, today=date(2026, 3, 1))

        assert original.completed_phases == []
        assert updated.completed_phases[0].name == "Todo List"
        assert updated.completed_phases[0].goal == "Show todos"
        assert updated.file_map["src/components/TodoList.tsx"] == "Created in Todo List"
        assert updated.file_map["src/App.tsx"] == "Root component"
        assert updated.architectural_decisions[0].date == "2026-03-01"

    def test_starts_from_empty_context(self):
        updated = update_context_after_phase(None, _phase(), "nothing to report")
        assert len(updated.completed_phases) == 1

    def test_rebuilt_phase_replaces_its_trailing_entry(self):
        first = update_context_after_phase(None, _phase(), "Created src/old.ts")

        again = update_context_after_phase(first, _phase(), BUILDER_REPORT)

        assert [p.name for p in again.completed_phases] == ["Todo List"]
        assert again.completed_phases[0].files_created == ["src/components/TodoList.tsx", "src/hooks/useTodos.ts"]

    def test_skip_recorded_twice_is_kept_once(self):
        once = record_skipped_phase(None, _phase(), "Test failures")

        twice = record_skipped_phase(once, _phase(), "Test failures")

        assert len(twice.completed_phases) == 1
        assert len(twice.known_issues) == 1

    def test_skipped_phase_is_recorded_as_known_issue(self):
        updated = record_skipped_phase(None, _phase(), "Test failures")

        assert updated.completed_phases == [CompletedPhaseInfo(name="Todo List", goal="Show todos", skipped=True)]
        assert updated.known_issues == ["Phase 'Todo List' skipped after failed verification: Test failures"]


class TestRendering:
    def test_initial_context(self):
        text = generate_initial_context(SPEC, ARCHITECTURE, "colors: {}", _phase(), 3)

        assert "**Phase 1 of 3: Todo List**" in text
        assert "## This is the first phase - no previous context." in text
        assert "### Spec Summary" in text
        assert "A web app for tracking todos" in text
        assert "### Design Tokens\n```yaml\ncolors: {}\n```" in text
        assert text.rstrip().endswith("- [ ] Add the form")

    def test_phase_context_carries_full_history(self):
        context = BuildContext(
            completed_phases=[
                CompletedPhaseInfo(name="Setup", goal="Scaffold", files_created=["package.json"]),
                CompletedPhaseInfo(name="Auth", goal="Login", skipped=True),
            ],
            file_map={"package.json": "Created in Setup"},
            known_issues=["Phase 'Auth' skipped after failed verification: Test failures"],
        )

        text = generate_phase_context(context, 2, 4, _phase(), None)

        assert "**Phase 3 of 4: Todo List**" in text
        assert "### Setup\n**Goal:** Scaffold\n**Files created:** package.json" in text
        assert "### Auth (skipped)" in text
        assert "- `package.json` - Created in Setup" in text
        assert "## Known Issues" in text
        assert "## Rules for This Phase" in text
        assert "Design Tokens" not in text
