"""Test doubles and sample documents."""

from pathlib import Path

from routing.router import AgentRole
from schemas.build_plan import VerificationLevel
from schemas.verification import VerificationResult

ARCHITECTURE = """# Architecture

## Overview
A small todo app with a React frontend.

## Technology Stack
- React
- Vite

## Build Phases

### Phase 1: Project Setup
**Goal:** Scaffold the app and tooling
**Verification:** Tests
**Tasks:**
- [ ] Create the Vite project
- [ ] Configure the test runner

### Phase 2: Todo List (Milestone)
**Goal:** Show and add todos
**Verification:** Full
**Tasks:**
- [ ] Build the TodoList component
- [ ] Add the new-todo form

### Phase 3: Persistence
**Goal:** Keep todos across reloads
**Verification:** Tests
**Tasks:**
- [ ] Save todos to localStorage
"""

SPEC = """# Todo App - Product Specification

## Overview
A web app for tracking todos in the browser.

## User Stories
- As a user I can add a todo
- As a user I can complete a todo

## Success Criteria
- Todos survive a reload
"""


class FakeBuilder:
    """Builder double that records prompts and returns scripted output."""

    def __init__(self, phase_output: str = "Created src/App.tsx", error: Exception | None = None) -> None:
        self.phase_output = phase_output
        self.error = error
        self.phase_contexts: list[str] = []
        self.fix_contexts: list[str] = []
        self.single_pass_calls = 0

    def implement_phase(self, phase_context: str, working_dir: Path | None = None) -> str:
        if self.error is not None:
            raise self.error
        self.phase_contexts.append(phase_context)
        return self.phase_output

    def fix(self, fix_context: str, working_dir: Path | None = None) -> str:
        self.fix_contexts.append(fix_context)
        return f"Fixed src/file{len(self.fix_contexts)}.tsx"

    def build_all(self, spec, architecture, design_spec=None, working_dir=None) -> str:
        self.single_pass_calls += 1
        return "Built everything"


class ScriptedGate:
    """Verification gate double returning a scripted sequence of verdicts.

    Once the script runs out the last verdict repeats.
    """

    def __init__(self, verdicts: list[bool], error_output: str = "FAIL src/App.test.tsx\nexpect(received)") -> None:
        self.verdicts = list(verdicts)
        self.error_output = error_output
        self.calls: list[VerificationLevel] = []

    def verify(self, project_path, level, spec=None, project_types=None) -> VerificationResult:
        self.calls.append(level)
        passed = self.verdicts.pop(0) if len(self.verdicts) > 1 else self.verdicts[0]
        return VerificationResult(
            passed=passed,
            level=level,
            summary="✅ Tests passed" if passed else "❌ Tests failed",
            error_output="" if passed else self.error_output,
        )


class FakeRouter:
    """Router double answering each role with canned text."""

    def __init__(self, architecture: str = ARCHITECTURE) -> None:
        self.answers = {
            AgentRole.ARCHITECT: architecture,
            AgentRole.BUILDER: "Created src/App.tsx",
            AgentRole.REVIEWER: "# Review\n\nAll requirements met.",
        }
        self.prompts: dict[AgentRole, list[str]] = {role: [] for role in AgentRole}

    def invoke(self, role, prompt, working_dir=None, system=None) -> str:
        self.prompts[role].append(prompt)
        return self.answers[role]

    def is_available(self, key) -> bool:
        return True
