"""Bounded auto-fix loop for phases that fail verification."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from context.compression import compress_fix_context
from context.health import DEFAULT_BUDGET_TOKENS, analyze_context_health, format_health_report
from schemas.verification import VerificationResult

if TYPE_CHECKING:
    from agents.builder_agent import BuilderAgent
    from verification.gate import VerificationGate

    from .state_machine import ChunkStateMachine

logger = logging.getLogger(__name__)

DEFAULT_MAX_FIX_ATTEMPTS = 2


@dataclass
class FixLoopOutcome:
    """Result of running the fix loop for one phase."""

    passed: bool
    result: VerificationResult
    attempt_outputs: list[str] = field(default_factory=list)


class FixAttemptLoop:
    """Asks the builder to fix a failed phase, re-verifying after each attempt.

    The phase's persisted ``fix_attempts`` is the only counter. It is
    incremented before each attempt and the loop runs while it stays within
    ``max_attempts``, so a resumed process picks up a partial sequence
    instead of starting over.
    """

    def __init__(
        self,
        machine: ChunkStateMachine,
        builder: BuilderAgent,
        gate: VerificationGate,
        max_attempts: int = DEFAULT_MAX_FIX_ATTEMPTS,
        budget_tokens: int = DEFAULT_BUDGET_TOKENS,
    ) -> None:
        self.machine = machine
        self.builder = builder
        self.gate = gate
        self.max_attempts = max_attempts
        self.budget_tokens = budget_tokens

    def run(
        self,
        phase_context: str,
        result: VerificationResult,
        project_path: Path,
        spec: str | None = None,
        project_types: list[str] | None = None,
    ) -> FixLoopOutcome:
        """Run fix attempts until verification passes or attempts run out.

        Args:
            phase_context: Context the phase was built from
            result: The failed verification result
            project_path: Project directory
            spec: Project spec (for visual checks)
            project_types: Project types (for the test command)
        """
        phase = self.machine.current
        level = phase.spec.verification_level
        outputs: list[str] = []

        while self.machine.increment_fix_attempts() <= self.max_attempts:
            attempt = phase.state.fix_attempts
            logger.info("Fix attempt %d of %d for phase %s", attempt, self.max_attempts, phase.spec.name)

            fix_context = compress_fix_context(
                phase_context, result.error_output, attempt, outputs, self.max_attempts
            )
            health = analyze_context_health(fix_context, self.budget_tokens)
            logger.info("Fix context: %s", format_health_report(health).splitlines()[0])

            outputs.append(self.builder.fix(fix_context, working_dir=project_path))
            result = self.gate.verify(project_path, level, spec, project_types)
            if result.passed:
                logger.info("Fix attempt %d succeeded", attempt)
                return FixLoopOutcome(passed=True, result=result, attempt_outputs=outputs)

        logger.warning("Phase %s still failing after %d fix attempts", phase.spec.name, self.max_attempts)
        return FixLoopOutcome(passed=False, result=result, attempt_outputs=outputs)
