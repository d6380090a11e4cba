"""Project state persistence.

The whole ProjectState is written to ``state.json`` (temp file + replace)
after every change, so an interrupted process resumes from the last
completed step. Artifacts produced by the agents sit next to it as plain
files.
"""

import logging
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from schemas.chunk_state import BuildStage, HistoryEntry, ProjectState
from tools.filesystem_tool import CorruptFileError, read_json, write_json_atomic, write_text_atomic

from .errors import StateCorruptedError

logger = logging.getLogger(__name__)

STATE_FILENAME = "state.json"
CHECKPOINTS_DIR = "checkpoints"
MAX_HISTORY = 100

ARTIFACT_FILES = {
    "spec": "SPEC.md",
    "architecture": "ARCHITECTURE.md",
    "design_spec": "DESIGN_SPEC.yaml",
    "review": "REVIEW.md",
}


class ProjectStateStore:
    """Loads and saves the project state under a state directory."""

    def __init__(self, state_dir: Path) -> None:
        """Initialize the store.

        Args:
            state_dir: Directory holding state.json, artifacts and checkpoints
        """
        self.state_dir = Path(state_dir)

    @property
    def state_path(self) -> Path:
        return self.state_dir / STATE_FILENAME

    def exists(self) -> bool:
        return self.state_path.exists()

    def create(self, project_path: Path, project_name: str | None = None) -> ProjectState:
        """Create and persist a fresh state for a project."""
        project_path = Path(project_path).resolve()
        state = ProjectState(
            project_name=project_name or project_path.name,
            project_path=str(project_path),
        )
        self.record(state, "init", f"Initialized project {state.project_name}")
        self.save(state)
        return state

    def load(self) -> ProjectState | None:
        """Load the persisted state.

        Returns:
            ProjectState, or None if no state has been saved yet

        Raises:
            StateCorruptedError: If state.json exists but cannot be parsed
        """
        try:
            data = read_json(self.state_path)
        except CorruptFileError as e:
            raise StateCorruptedError(e.path, e.reason) from e
        if data is None:
            return None
        try:
            return ProjectState.model_validate(data)
        except ValidationError as e:
            raise StateCorruptedError(self.state_path, f"invalid project state ({e.error_count()} errors)") from e

    def save(self, state: ProjectState) -> Path:
        """Persist the state, replacing the previous file whole."""
        state.last_updated = datetime.now()
        if len(state.history) > MAX_HISTORY:
            state.history = state.history[-MAX_HISTORY:]
        path = write_json_atomic(self.state_path, state.model_dump(mode="json"))
        logger.debug("Saved project state to %s", path)
        return path

    def record(
        self,
        state: ProjectState,
        action: str,
        details: str | None = None,
        stage: BuildStage | None = None,
    ) -> None:
        """Append a history entry (persisted on the next save)."""
        state.history.append(HistoryEntry(stage=stage or state.stage, action=action, details=details))

    def checkpoint(self, state: ProjectState, name: str) -> Path:
        """Write a full snapshot of the state to ``checkpoints/<name>_<ts>.json``."""
        stamp = datetime.now().strftime("%Y%m%dT%H%M%S%f")
        path = self.state_dir / CHECKPOINTS_DIR / f"{name}_{stamp}.json"
        write_json_atomic(path, state.model_dump(mode="json"))
        self.record(state, "checkpoint", f"Created checkpoint: {name}")
        self.save(state)
        logger.info("Checkpoint written: %s", path.name)
        return path

    def list_checkpoints(self) -> list[Path]:
        directory = self.state_dir / CHECKPOINTS_DIR
        if not directory.exists():
            return []
        return sorted(directory.glob("*.json"))

    def save_artifact(self, state: ProjectState, key: str, content: str) -> Path:
        """Store an artifact file and register it on the state."""
        if key not in ARTIFACT_FILES:
            raise ValueError(f"Unknown artifact: {key}. Available: {', '.join(ARTIFACT_FILES)}")
        path = write_text_atomic(self.state_dir / ARTIFACT_FILES[key], content)
        state.artifacts[key] = ARTIFACT_FILES[key]
        self.record(state, "artifact", f"Saved {ARTIFACT_FILES[key]}")
        self.save(state)
        return path

    def load_artifact(self, key: str) -> str | None:
        if key not in ARTIFACT_FILES:
            raise ValueError(f"Unknown artifact: {key}. Available: {', '.join(ARTIFACT_FILES)}")
        path = self.state_dir / ARTIFACT_FILES[key]
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")
