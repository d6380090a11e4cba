"""Tests for the architect, builder and reviewer agents."""

from agents import AgentInput, ArchitectAgent, BuilderAgent, ReviewerAgent
from routing.router import AgentRole
from tests.helpers import SPEC, FakeRouter

ARCHITECT_ANSWER = """Here is the design.

## ARCHITECTURE.md
React single page app.

### Phase 1: Setup
**Goal:** Scaffold
**Verification:** Tests
**Tasks:**
- [ ] Create project

## DESIGN_SPEC.yaml
```yaml
colors:
  primary: "#0055ff"
```
"""


class TestArchitectAgent:
    def test_extracts_architecture_and_tokens(self, tmp_path):
        router = FakeRouter(architecture=ARCHITECT_ANSWER)

        output = ArchitectAgent(router).run(AgentInput(context={"spec": SPEC}, working_dir=tmp_path))

        assert output.success
        assert output.data["architecture"].startswith("React single page app.")
        assert "### Phase 1: Setup" in output.data["architecture"]
        assert output.data["design_spec"] == 'colors:\n  primary: "#0055ff"'
        assert output.artifacts == ["ARCHITECTURE.md", "DESIGN_SPEC.yaml"]
        assert SPEC in router.prompts[AgentRole.ARCHITECT][0]

    def test_whole_answer_when_no_heading(self):
        output = ArchitectAgent(FakeRouter(architecture="Plain prose plan")).run(AgentInput(context={"spec": SPEC}))

        assert output.data["architecture"] == "Plain prose plan"
        assert output.data["design_spec"] is None
        assert output.artifacts == ["ARCHITECTURE.md"]

    def test_requires_spec(self):
        router = FakeRouter()
        output = ArchitectAgent(router).run(AgentInput(context={}))

        assert not output.success
        assert router.prompts[AgentRole.ARCHITECT] == []


class TestBuilderAgent:
    def test_phase_prompt_restricts_scope(self):
        router = FakeRouter()

        BuilderAgent(router).implement_phase("# Build Context\n## Tasks for This Phase\n- [ ] A")

        prompt = router.prompts[AgentRole.BUILDER][0]
        assert prompt.startswith("# Build Context")
        assert "implement ONLY the tasks listed for this phase" in prompt

    def test_fix_sends_context_verbatim(self):
        router = FakeRouter()
        BuilderAgent(router).fix("# Fix Required - Attempt 1 of 2")
        assert router.prompts[AgentRole.BUILDER] == ["# Fix Required - Attempt 1 of 2"]

    def test_single_pass_includes_design_tokens(self):
        router = FakeRouter()
        BuilderAgent(router).build_all(SPEC, "# Architecture", design_spec="colors: {}")

        prompt = router.prompts[AgentRole.BUILDER][0]
        assert "## Design System" in prompt
        assert "Please implement the whole project" in prompt

    def test_run_dispatches_on_mode(self):
        router = FakeRouter()
        agent = BuilderAgent(router)

        output = agent.run(AgentInput(context={"mode": "fix", "fix_context": "fix it"}))
        assert output.success
        assert output.data == {"output": "Created src/App.tsx", "mode": "fix"}

        assert not agent.run(AgentInput(context={"mode": "dance"})).success


class TestReviewerAgent:
    def test_review_prompt(self):
        router = FakeRouter()

        output = ReviewerAgent(router).run(
            AgentInput(
                context={
                    "spec": SPEC,
                    "test_context": "## Test Results\n\n**Status:** ✅ PASSING",
                    "design_spec": "colors: {}",
                    "history": "- Setup: Scaffold",
                }
            )
        )

        prompt = router.prompts[AgentRole.REVIEWER][0]
        assert output.data["review"].startswith("# Review")
        assert "Review test results and coverage" in prompt
        assert "Design System Compliance" in prompt
        assert "- Setup: Scaffold" in prompt

    def test_no_tests_note(self):
        router = FakeRouter()
        ReviewerAgent(router).run(AgentInput(context={"spec": SPEC}))
        assert "no tests exist" in router.prompts[AgentRole.REVIEWER][0]

    def test_analyze(self):
        router = FakeRouter()
        assert ReviewerAgent(router).analyze("look at this page").startswith("# Review")
