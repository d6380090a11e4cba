"""Tests for project state and build context persistence."""

import json

import pytest

from context.store import BuildContextStore
from orchestrator.errors import StateCorruptedError
from orchestrator.state_store import MAX_HISTORY, ProjectStateStore
from schemas.build_context import BuildContext
from schemas.chunk_state import BuildStage
from tools.filesystem_tool import CorruptFileError


class TestProjectStateStore:
    def test_load_missing_returns_none(self, store):
        assert store.load() is None
        assert not store.exists()

    def test_create_and_reload(self, store, tmp_path):
        state = store.create(tmp_path, "todo-app")

        loaded = store.load()
        assert loaded.project_name == "todo-app"
        assert loaded.project_path == str(tmp_path.resolve())
        assert loaded.stage == BuildStage.ARCHITECT
        assert loaded.history[0].action == "init"
        assert state.created_at == loaded.created_at

    def test_name_defaults_to_directory(self, store, tmp_path):
        assert store.create(tmp_path).project_name == tmp_path.name

    def test_save_is_idempotent(self, store, project_state):
        store.save(project_state)
        first = json.loads(store.state_path.read_text())
        store.save(project_state)
        second = json.loads(store.state_path.read_text())

        first.pop("last_updated")
        second.pop("last_updated")
        assert first == second

    def test_no_temp_files_left_behind(self, store, project_state):
        store.save(project_state)
        assert [p.name for p in store.state_dir.iterdir() if p.name.endswith(".tmp")] == []

    def test_history_is_capped(self, store, project_state):
        for i in range(MAX_HISTORY + 20):
            store.record(project_state, "note", str(i))
        store.save(project_state)

        history = store.load().history
        assert len(history) == MAX_HISTORY
        assert history[-1].details == str(MAX_HISTORY + 19)

    def test_invalid_json_is_corruption(self, store):
        store.state_dir.mkdir(parents=True)
        store.state_path.write_text("{not json")

        with pytest.raises(StateCorruptedError) as exc_info:
            store.load()
        assert exc_info.value.path == store.state_path

    def test_invalid_schema_is_corruption(self, store):
        store.state_dir.mkdir(parents=True)
        store.state_path.write_text(json.dumps({"stage": "nowhere"}))

        with pytest.raises(StateCorruptedError):
            store.load()

    def test_corrupt_file_is_not_overwritten(self, store):
        store.state_dir.mkdir(parents=True)
        store.state_path.write_text("{not json")

        with pytest.raises(StateCorruptedError):
            store.load()
        assert store.state_path.read_text() == "{not json"

    def test_checkpoint_writes_snapshot(self, store, project_state):
        path = store.checkpoint(project_state, "chunk_phase_1_complete")

        assert path.parent.name == "checkpoints"
        assert path.name.startswith("chunk_phase_1_complete_")
        assert json.loads(path.read_text())["project_name"] == "todo-app"
        assert store.list_checkpoints() == [path]
        assert store.load().history[-1].action == "checkpoint"

    def test_artifacts_round_trip(self, store, project_state):
        path = store.save_artifact(project_state, "architecture", "# Arch")

        assert path.name == "ARCHITECTURE.md"
        assert store.load_artifact("architecture") == "# Arch"
        assert store.load().artifacts == {"architecture": "ARCHITECTURE.md"}
        assert store.load_artifact("review") is None

    def test_unknown_artifact_rejected(self, store, project_state):
        with pytest.raises(ValueError):
            store.save_artifact(project_state, "notes", "x")
        with pytest.raises(ValueError):
            store.load_artifact("notes")


class TestBuildContextStore:
    def test_load_missing_returns_none(self, context_store):
        assert context_store.load() is None

    def test_save_and_load(self, context_store):
        context = BuildContext(file_map={"src/App.tsx": "Root"}, known_issues=["flaky"])
        context_store.save(context)

        assert context_store.load() == context
        assert context_store.context_path.name == "CHUNK_CONTEXT.json"

    def test_corrupt_context_raises(self, context_store):
        context_store.state_dir.mkdir(parents=True)
        context_store.context_path.write_text("[1, 2")

        with pytest.raises(CorruptFileError):
            context_store.load()

    def test_invalid_context_raises(self, context_store):
        context_store.state_dir.mkdir(parents=True)
        context_store.context_path.write_text(json.dumps({"completed_phases": "nope"}))

        with pytest.raises(CorruptFileError):
            context_store.load()

    def test_manual_fix_lives_in_its_own_file(self, context_store):
        context_store.save(BuildContext(known_issues=["x"]))
        context_store.save_manual_fix("# Manual fix")

        assert context_store.load_manual_fix() == "# Manual fix"
        assert context_store.load().known_issues == ["x"]
        assert context_store.manual_fix_path != context_store.context_path

    def test_no_manual_fix(self, tmp_path):
        assert BuildContextStore(tmp_path).load_manual_fix() is None
