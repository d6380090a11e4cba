"""Builder agent: implements phases and applies fixes."""

from __future__ import annotations

from pathlib import Path

from routing.router import AgentRole

from .base import AgentInput, AgentOutput, BaseAgent
from .prompts import BUILD_PRINCIPLES, FIX_PRINCIPLES, PHASE_REPORT_FORMAT

SYSTEM_PROMPT = f"""You are an expert software developer building a project one phase at a time.

You work directly in the project directory: create and edit files, run
commands, and test each piece before moving on.

{BUILD_PRINCIPLES}
{FIX_PRINCIPLES}"""

PHASE_PROMPT = """{context}

Please implement ONLY the tasks listed for this phase. Do not implement tasks from other phases.
{report}"""

SINGLE_PASS_PROMPT = """## Project Specification
{spec}

## Architecture
{architecture}

{design}Please implement the whole project. For each part:
1. Announce what you're working on
2. Write the code
3. Test it before moving on
"""

DESIGN_BLOCK = """## Design System
The following DESIGN_SPEC.yaml defines all visual tokens. You MUST use these tokens.

```yaml
{design_spec}
```

"""


class BuilderAgent(BaseAgent):
    """Runs the builder role in the project directory.

    ``run`` dispatches on ``context["mode"]``: ``phase`` (default), ``fix``
    or ``single_pass``.
    """

    role = AgentRole.BUILDER

    def default_system_prompt(self) -> str:
        return SYSTEM_PROMPT

    def implement_phase(self, phase_context: str, working_dir: Path | None = None) -> str:
        """Implement one phase from its (possibly compressed) context."""
        prompt = PHASE_PROMPT.format(context=phase_context, report=PHASE_REPORT_FORMAT)
        return self._invoke(prompt, working_dir=working_dir)

    def fix(self, fix_context: str, working_dir: Path | None = None) -> str:
        """Apply a fix attempt; the fix context already carries instructions."""
        return self._invoke(fix_context, working_dir=working_dir)

    def build_all(
        self,
        spec: str,
        architecture: str | None,
        design_spec: str | None = None,
        working_dir: Path | None = None,
    ) -> str:
        """Build the project in one pass, for plans without phases."""
        prompt = SINGLE_PASS_PROMPT.format(
            spec=spec,
            architecture=architecture or "No architecture document yet.",
            design=DESIGN_BLOCK.format(design_spec=design_spec) if design_spec else "",
        )
        return self._invoke(prompt, working_dir=working_dir)

    def run(self, input_data: AgentInput) -> AgentOutput:
        start_time = self._log_run_start(input_data)
        context = input_data.context
        mode = context.get("mode", "phase")

        if mode == "phase":
            text = self.implement_phase(context["phase_context"], input_data.working_dir)
        elif mode == "fix":
            text = self.fix(context["fix_context"], input_data.working_dir)
        elif mode == "single_pass":
            text = self.build_all(
                context["spec"],
                context.get("architecture"),
                context.get("design_spec"),
                input_data.working_dir,
            )
        else:
            output = self._create_output(False, {}, errors=[f"Unknown builder mode: {mode}"], start_time=start_time)
            self._log_run_end(output, start_time)
            return output

        output = self._create_output(True, {"output": text, "mode": mode}, start_time=start_time)
        self._log_run_end(output, start_time)
        return output
