"""Build context persistence.

The accumulated BuildContext is stored as JSON and replaced whole after
every phase completion. The manual-fix notes written on a pause live in
their own file so they never overwrite the context.
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from schemas.build_context import BuildContext
from tools.filesystem_tool import CorruptFileError, read_json, write_json_atomic, write_text_atomic

logger = logging.getLogger(__name__)

CONTEXT_FILENAME = "CHUNK_CONTEXT.json"
MANUAL_FIX_FILENAME = "MANUAL_FIX.md"


class BuildContextStore:
    """Reads and writes the build context under the state directory."""

    def __init__(self, state_dir: Path) -> None:
        self.state_dir = Path(state_dir)

    @property
    def context_path(self) -> Path:
        return self.state_dir / CONTEXT_FILENAME

    @property
    def manual_fix_path(self) -> Path:
        return self.state_dir / MANUAL_FIX_FILENAME

    def load(self) -> BuildContext | None:
        """Load the stored context.

        Returns:
            BuildContext, or None before the first phase has completed

        Raises:
            CorruptFileError: If the file exists but cannot be parsed
        """
        data = read_json(self.context_path)
        if data is None:
            return None
        try:
            return BuildContext.model_validate(data)
        except ValidationError as e:
            raise CorruptFileError(self.context_path, f"invalid build context ({e.error_count()} errors)") from e

    def save(self, context: BuildContext) -> Path:
        path = write_json_atomic(self.context_path, context.model_dump(mode="json"))
        logger.debug("Saved build context (%d phases) to %s", len(context.completed_phases), path)
        return path

    def save_manual_fix(self, text: str) -> Path:
        return write_text_atomic(self.manual_fix_path, text)

    def load_manual_fix(self) -> str | None:
        if not self.manual_fix_path.exists():
            return None
        return self.manual_fix_path.read_text(encoding="utf-8")
