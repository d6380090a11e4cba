"""Shared fixtures for the orchestrator tests."""

import io
from pathlib import Path

import pytest
from rich.console import Console

from context.store import BuildContextStore
from orchestrator.state_machine import ChunkStateMachine
from orchestrator.state_store import ProjectStateStore
from schemas.build_plan import BuildPlan, PhaseSpec, VerificationLevel


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=120)


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    return tmp_path / ".phasewright"


@pytest.fixture
def store(state_dir: Path) -> ProjectStateStore:
    return ProjectStateStore(state_dir)


@pytest.fixture
def context_store(state_dir: Path) -> BuildContextStore:
    return BuildContextStore(state_dir)


@pytest.fixture
def project_state(store: ProjectStateStore, tmp_path: Path):
    return store.create(tmp_path, "todo-app")


@pytest.fixture
def plan() -> BuildPlan:
    return BuildPlan(
        phases=[
            PhaseSpec(name="Project Setup", goal="Scaffold the app", tasks=["Create the Vite project"]),
            PhaseSpec(
                name="Todo List",
                goal="Show and add todos",
                tasks=["Build the TodoList component"],
                is_milestone=True,
                verification_level=VerificationLevel.FULL,
            ),
            PhaseSpec(name="Persistence", goal="Keep todos", tasks=["Save todos to localStorage"]),
        ]
    )


@pytest.fixture
def machine(project_state, store: ProjectStateStore, plan: BuildPlan) -> ChunkStateMachine:
    m = ChunkStateMachine(project_state, store)
    m.initialize(plan)
    return m
