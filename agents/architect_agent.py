"""Architect agent: turns a spec into an architecture and a build plan."""

from __future__ import annotations

from context.artifacts import ArtifactExtractor, MarkdownArtifactExtractor
from routing.router import AgentRole, AgentRouter

from .base import AgentInput, AgentOutput, BaseAgent

SYSTEM_PROMPT = """You are an expert software architect.

You receive a product specification written with a non-technical owner.
Make the technical decisions yourself and document them; do not ask the
owner to choose frameworks.

Produce, in this order:

## ARCHITECTURE.md
Components, data flow, technology stack and key design decisions.

## DESIGN_SPEC.yaml
A ```yaml fenced block of design tokens (colors, spacing, typography) when the
project has a user interface. Omit it otherwise.

## Build Phases
Break the work into phases that can each be built and tested on their own:

### Phase 1: <name>
**Goal:** <one sentence>
**Verification:** Tests
**Tasks:**
- [ ] <task>

Mark user-visible milestones with "(Milestone)" after the phase name and use
**Verification:** Full for them."""

USER_PROMPT = """Here is the project specification:

{spec}

Design the system architecture and break the implementation into build phases."""


class ArchitectAgent(BaseAgent):
    """Invokes the architect and extracts the artifacts it produced."""

    role = AgentRole.ARCHITECT

    def __init__(
        self,
        router: AgentRouter,
        extractor: ArtifactExtractor | None = None,
        **kwargs,
    ) -> None:
        super().__init__(router, **kwargs)
        self.extractor = extractor or MarkdownArtifactExtractor()

    def default_system_prompt(self) -> str:
        return SYSTEM_PROMPT

    def run(self, input_data: AgentInput) -> AgentOutput:
        """Design the architecture for ``context["spec"]``.

        Output data holds ``output`` (raw text), ``architecture`` and
        ``design_spec`` (None when the architect produced no token block).
        """
        start_time = self._log_run_start(input_data)
        spec = input_data.context.get("spec", "")
        if not spec:
            output = self._create_output(False, {}, errors=["No specification provided"], start_time=start_time)
            self._log_run_end(output, start_time)
            return output

        text = self._invoke(USER_PROMPT.format(spec=spec), working_dir=input_data.working_dir)

        architecture = None
        for name in ("ARCHITECTURE.md", "ARCHITECTURE"):
            if self.extractor.detect(text, name):
                architecture = self.extractor.extract(text, name)
                if architecture:
                    break
        # Fall back to the whole answer: it still carries the phase plan
        architecture = architecture or text.strip()
        design_spec = self.extractor.extract_yaml(text)

        artifacts = ["ARCHITECTURE.md"] + (["DESIGN_SPEC.yaml"] if design_spec else [])
        output = self._create_output(
            True,
            {"output": text, "architecture": architecture, "design_spec": design_spec},
            artifacts=artifacts,
            start_time=start_time,
        )
        self._log_run_end(output, start_time)
        return output
