"""Tests for the pipeline runner."""

import pytest

from orchestrator.chunked_builder import BuildStatus
from orchestrator.errors import OrchestratorError, StateCorruptedError
from orchestrator.recovery import RecoveryChoice, RecoveryManager
from orchestrator.runner import PipelineRunner
from pipeline.config import Config
from routing.router import AgentRole
from schemas.chunk_state import BuildStage
from tests.helpers import ARCHITECTURE, SPEC, FakeRouter, ScriptedGate


@pytest.fixture
def router():
    return FakeRouter()


def _runner(tmp_path, console, router, verdicts=(True,), choice=RecoveryChoice.PAUSE):
    return PipelineRunner(
        Config(),
        tmp_path,
        console=console,
        router=router,
        recovery=RecoveryManager(console, auto_choice=choice),
        gate=ScriptedGate(list(verdicts)),
    )


class TestInit:
    def test_creates_state_and_spec(self, tmp_path, console, router):
        runner = _runner(tmp_path, console, router)

        state = runner.init_project(SPEC)

        assert state.project_name == "Todo App"
        assert state.project_types == ["web"]
        assert state.stage == BuildStage.ARCHITECT
        assert (tmp_path / ".phasewright" / "SPEC.md").read_text() == SPEC

    def test_explicit_name(self, tmp_path, console, router):
        assert _runner(tmp_path, console, router).init_project(SPEC, name="todos").project_name == "todos"

    def test_refuses_to_reinitialize(self, tmp_path, console, router):
        runner = _runner(tmp_path, console, router)
        runner.init_project(SPEC)

        with pytest.raises(OrchestratorError, match="already initialized"):
            runner.init_project(SPEC)

    def test_run_without_init(self, tmp_path, console, router):
        with pytest.raises(OrchestratorError, match="phasewright init"):
            _runner(tmp_path, console, router).run()


class TestRun:
    def test_full_pipeline(self, tmp_path, console, router):
        runner = _runner(tmp_path, console, router)
        runner.init_project(SPEC)

        result = runner.run()

        assert not result.paused
        assert result.state.stage == BuildStage.COMPLETE
        assert result.build.status == BuildStatus.COMPLETED
        assert len(router.prompts[AgentRole.BUILDER]) == 3
        assert runner.store.load_artifact("review").startswith("# Review")
        assert runner.store.load().stage == BuildStage.COMPLETE

    def test_reviewer_sees_history_and_missing_tests(self, tmp_path, console, router):
        runner = _runner(tmp_path, console, router)
        runner.init_project(SPEC)

        runner.run()

        prompt = router.prompts[AgentRole.REVIEWER][0]
        assert "No tests configured" in prompt
        assert "- Project Setup: Scaffold the app and tooling" in prompt

    def test_stop_after_architect(self, tmp_path, console, router):
        runner = _runner(tmp_path, console, router)
        runner.init_project(SPEC)

        result = runner.run(stop_after=BuildStage.ARCHITECT)

        assert result.state.stage == BuildStage.BUILDER
        assert "### Phase 1: Project Setup" in runner.store.load_artifact("architecture")
        assert router.prompts[AgentRole.BUILDER] == []

    def test_existing_architecture_is_reused(self, tmp_path, console, router):
        runner = _runner(tmp_path, console, router)
        state = runner.init_project(SPEC)
        runner.store.save_artifact(state, "architecture", ARCHITECTURE)

        runner.run(stop_after=BuildStage.ARCHITECT)

        assert router.prompts[AgentRole.ARCHITECT] == []

    def test_pause_stops_in_builder(self, tmp_path, console, router):
        runner = _runner(tmp_path, console, router, verdicts=(False,))
        runner.init_project(SPEC)

        result = runner.run()

        assert result.paused
        assert result.build.status == BuildStatus.PAUSED
        assert result.state.stage == BuildStage.BUILDER
        assert runner.context_store.load_manual_fix() is not None

    def test_single_pass_without_phases(self, tmp_path, console):
        router = FakeRouter(architecture="# Architecture\n\nOne static page.")
        runner = _runner(tmp_path, console, router)
        runner.init_project(SPEC)

        result = runner.run()

        assert result.state.stage == BuildStage.COMPLETE
        assert result.build is None
        (prompt,) = router.prompts[AgentRole.BUILDER]
        assert "Please implement the whole project" in prompt

    def test_corrupt_context_is_reported(self, tmp_path, console, router):
        runner = _runner(tmp_path, console, router)
        runner.init_project(SPEC)
        runner.run(stop_after=BuildStage.ARCHITECT)
        runner.context_store.context_path.write_text("{not json")

        with pytest.raises(StateCorruptedError):
            runner.run()


class TestNextPhaseContext:
    def test_before_build(self, tmp_path, console, router):
        runner = _runner(tmp_path, console, router)
        runner.init_project(SPEC)
        runner.run(stop_after=BuildStage.ARCHITECT)

        context = runner.next_phase_context()

        assert "**Phase 1 of 3: Project Setup**" in context

    def test_after_build(self, tmp_path, console, router):
        runner = _runner(tmp_path, console, router)
        runner.init_project(SPEC)
        runner.run()

        assert runner.next_phase_context() is None

    def test_without_architecture(self, tmp_path, console, router):
        runner = _runner(tmp_path, console, router)
        runner.init_project(SPEC)

        assert runner.next_phase_context() is None
