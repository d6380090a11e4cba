"""Orchestrator errors."""


class OrchestratorError(Exception):
    """Base class for build orchestration failures."""


class StateCorruptedError(OrchestratorError):
    """A persisted state or context file cannot be read back.

    Never handled by resetting: the operator must repair or remove the file.
    """

    def __init__(self, path, reason: str) -> None:
        super().__init__(f"Corrupted state file {path}: {reason}")
        self.path = path
        self.reason = reason


class InvalidTransitionError(OrchestratorError):
    """A phase status change that the transition table does not allow."""


class InvalidDecisionError(OrchestratorError):
    """A recovery decision that is not pause, skip or retry."""
