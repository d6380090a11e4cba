"""Reviewer agent: reviews the finished build and inspects running pages."""

from __future__ import annotations

from routing.router import AgentRole

from .base import AgentInput, AgentOutput, BaseAgent
from .prompts import REVIEW_PRINCIPLES

SYSTEM_PROMPT = f"""You are an expert code reviewer.

Read the original specification, examine the implementation against each
requirement, and produce a REVIEW.md report. Focus on:
- Spec compliance (does it do what was asked?)
- Code quality (is it maintainable?)
- Security (any vulnerabilities?)
- Performance (any obvious issues?)
{REVIEW_PRINCIPLES}"""

REVIEW_PROMPT = """## Original Specification
{spec}

## Architecture
{architecture}

{design_spec}{sections}
## Build History
{history}

Please review the implementation against the specification:
1. Check each requirement is implemented
2. Look for bugs and issues
3. Check code quality
4. Identify security concerns
5. Suggest improvements
6. {tests_note}

Produce a detailed REVIEW.md document{design_note}.
"""


class ReviewerAgent(BaseAgent):
    """Runs the reviewer role."""

    role = AgentRole.REVIEWER

    def default_system_prompt(self) -> str:
        return SYSTEM_PROMPT

    def analyze(self, prompt: str) -> str:
        """Answer a standalone analysis prompt (used for page review)."""
        return self._invoke(prompt)

    def run(self, input_data: AgentInput) -> AgentOutput:
        """Review the build.

        Context keys: ``spec`` (required), ``architecture``, ``design_spec``,
        ``test_context``, ``visual_context``, ``design_context``, ``history``.
        """
        start_time = self._log_run_start(input_data)
        context = input_data.context
        spec = context.get("spec")
        if not spec:
            output = self._create_output(False, {}, errors=["No specification found. Nothing to review."], start_time=start_time)
            self._log_run_end(output, start_time)
            return output

        test_context = context.get("test_context") or ""
        design_spec = context.get("design_spec")
        sections = "\n".join(
            s for s in (test_context, context.get("visual_context"), context.get("design_context")) if s
        )
        prompt = REVIEW_PROMPT.format(
            spec=spec,
            architecture=context.get("architecture") or "No architecture document.",
            design_spec=f"## Design System (DESIGN_SPEC.yaml)\n\n```yaml\n{design_spec}\n```\n\n" if design_spec else "",
            sections=sections,
            history=context.get("history") or "No build history recorded.",
            tests_note=(
                "Review test results and coverage"
                if "PASSING" in test_context or "FAILING" in test_context
                else "Note that no tests exist and recommend adding them"
            ),
            design_note=" with a Design System Compliance section" if design_spec else "",
        )

        review = self._invoke(prompt, working_dir=input_data.working_dir)
        output = self._create_output(True, {"review": review}, artifacts=["REVIEW.md"], start_time=start_time)
        self._log_run_end(output, start_time)
        return output
