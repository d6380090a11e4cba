"""Tests for the phase state machine."""

import pytest

from orchestrator.errors import InvalidTransitionError, OrchestratorError
from orchestrator.state_machine import ChunkStateMachine
from schemas.build_plan import BuildPlan
from schemas.chunk_state import PhaseOutcome, PhaseStatus


class TestInitialize:
    def test_creates_pending_phases(self, machine, plan):
        assert machine.total_phases == 3
        assert machine.current_index == 0
        assert all(p.state.status == PhaseStatus.PENDING for p in machine.chunks.phases)
        assert machine.current.spec == plan.phases[0]

    def test_keeps_existing_chunks(self, machine, project_state, store):
        machine.start_phase()
        again = ChunkStateMachine(project_state, store)
        again.initialize(BuildPlan())

        assert again.total_phases == 3
        assert again.current.state.status == PhaseStatus.IN_PROGRESS

    def test_requires_initialization(self, project_state, store):
        with pytest.raises(OrchestratorError):
            _ = ChunkStateMachine(project_state, store).chunks

    def test_empty_plan_is_complete(self, project_state, store):
        m = ChunkStateMachine(project_state, store)
        m.initialize(BuildPlan())
        assert m.is_complete()
        assert m.current is None


class TestTransitions:
    def test_happy_path(self, machine, store):
        machine.start_phase()
        machine.complete_phase()
        machine.advance()

        first = machine.chunks.phases[0]
        assert first.state.status == PhaseStatus.COMPLETED
        assert first.state.outcome == PhaseOutcome.VERIFIED
        assert first.state.started_at is not None
        assert first.state.completed_at is not None
        assert machine.current_index == 1
        assert store.load().chunks.current_phase_index == 1

    def test_cannot_complete_pending_phase(self, machine):
        assert not machine.can_transition(PhaseStatus.COMPLETED)
        with pytest.raises(InvalidTransitionError):
            machine.complete_phase()

    def test_cannot_advance_past_unfinished_phase(self, machine):
        machine.start_phase()
        with pytest.raises(InvalidTransitionError):
            machine.advance()
        assert machine.current_index == 0

    def test_failed_phase_can_restart_or_complete(self, machine):
        machine.start_phase()
        machine.fail_phase("Test failures")

        assert machine.can_transition(PhaseStatus.IN_PROGRESS)
        assert machine.can_transition(PhaseStatus.COMPLETED)
        assert machine.current.state.last_error == "Test failures"

    def test_started_at_is_set_once(self, machine):
        machine.start_phase()
        started = machine.current.state.started_at
        machine.fail_phase("boom")
        machine.start_phase()

        assert machine.current.state.started_at == started

    def test_only_one_phase_in_progress(self, machine):
        machine.start_phase()
        machine.chunks.current_phase_index = 1

        with pytest.raises(InvalidTransitionError):
            machine.start_phase()

    def test_no_transitions_once_complete(self, machine):
        for _ in range(3):
            machine.start_phase()
            machine.complete_phase()
            machine.advance()

        assert machine.is_complete()
        assert not machine.can_transition(PhaseStatus.IN_PROGRESS)
        with pytest.raises(InvalidTransitionError):
            machine.start_phase()

    def test_transitions_are_recorded(self, machine, store):
        machine.start_phase()
        machine.fail_phase("Test failures")

        details = [h.details for h in store.load().history if h.action == "chunks"]
        assert 'Phase "Project Setup" status: in_progress' in details
        assert 'Phase "Project Setup" status: failed (Test failures)' in details


class TestFixAttempts:
    def test_increment_persists(self, machine, store):
        machine.start_phase()
        assert machine.increment_fix_attempts() == 1
        assert machine.increment_fix_attempts() == 2
        assert store.load().chunks.phases[0].state.fix_attempts == 2

    def test_completion_resets_attempts(self, machine):
        machine.start_phase()
        machine.increment_fix_attempts()
        machine.complete_phase(PhaseOutcome.SKIPPED)

        assert machine.current.state.fix_attempts == 0
        assert machine.current.state.outcome == PhaseOutcome.SKIPPED

    def test_reset(self, machine):
        machine.start_phase()
        machine.increment_fix_attempts()
        machine.reset_fix_attempts()
        assert machine.current.state.fix_attempts == 0


class TestProgressSummary:
    def test_summary(self, machine):
        machine.start_phase()
        machine.complete_phase()
        machine.advance()
        machine.start_phase()
        machine.fail_phase("x")
        machine.complete_phase(PhaseOutcome.SKIPPED)
        machine.advance()

        summary = machine.progress_summary()

        assert summary["project"] == "todo-app"
        assert summary["progress"] == "2/3"
        assert summary["progress_percent"] == 67
        assert summary["skipped"] == 1
        assert summary["current_phase"] == "Persistence"
        assert [p["status"] for p in summary["phases"]] == ["completed", "completed", "pending"]
        assert summary["phases"][1]["outcome"] == "skipped"

    def test_checkpoint(self, machine, store):
        path = machine.checkpoint("chunk_phase_1_complete")
        assert path in store.list_checkpoints()
