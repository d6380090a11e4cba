"""Build plan parsing.

The architect writes the plan into the architecture document as
``### Phase N: Name (Milestone)`` blocks::

    ### Phase 1: Project Setup
    **Goal:** Scaffold the app
    **Verification:** Tests
    **Tasks:**
    - [ ] Create the project
"""

import re

from schemas.build_plan import BuildPlan, PhaseSpec, VerificationLevel

PHASE_RE = re.compile(
    r"^###\s*Phase\s+\d+:\s*([^\n(]+?)\s*(\(Milestone\))?[ \t]*$"
    r"[\s\S]*?\*\*Goal:\*\*\s*([^\n]+)"
    r"[\s\S]*?\*\*Verification:\*\*\s*(Tests|Full)"
    r"[\s\S]*?\*\*Tasks:\*\*([\s\S]*?)(?=^###\s*Phase\s+\d+:|^##\s|\Z)",
    re.IGNORECASE | re.MULTILINE,
)
TASK_RE = re.compile(r"^\s*-\s*\[ \]\s*(.+?)\s*$", re.MULTILINE)


def parse_phases(architecture: str) -> BuildPlan:
    """Parse the phase blocks of an architecture document.

    Blocks missing a goal, verification line or task heading are skipped.
    The verification level follows the milestone marker: milestones get
    ``full``, every other phase ``tests``, whatever the verification line
    says.
    Returns an empty plan when the document has no phases.
    """
    phases = []
    for match in PHASE_RE.finditer(architecture):
        name, milestone, goal, _verification, tasks_block = match.groups()
        is_milestone = milestone is not None
        phases.append(
            PhaseSpec(
                name=name.strip(),
                goal=goal.strip(),
                tasks=[task for task in TASK_RE.findall(tasks_block) if task],
                is_milestone=is_milestone,
                verification_level=VerificationLevel.FULL if is_milestone else VerificationLevel.TESTS,
            )
        )
    return BuildPlan(phases=phases)
