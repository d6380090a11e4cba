"""Build context rendering and updates.

Renders the uncompressed phase context, parses what a builder agent reports
having done, and folds that into the accumulated BuildContext.
"""

import re
from datetime import date

from schemas.build_context import ArchitecturalDecision, BuildContext, CompletedPhaseInfo
from schemas.build_plan import PhaseSpec

from .compression import PHASE_RULES

MAX_DECISIONS = 5
MAX_DESIGN_TOKENS = 20

CREATED_PATTERNS = [
    re.compile(
        r"(?:created?|wrote?|generated?)\s+(?:file\s+)?[`'\"]*([^\s`'\"]+\.[a-z]{2,4})",
        re.IGNORECASE,
    ),
    re.compile(r"##\s+([^\s]+\.[a-z]{2,4})", re.IGNORECASE),
    re.compile(r"```[a-z]*\s*\n//\s*([^\s]+\.[a-z]{2,4})", re.IGNORECASE),
]
MODIFIED_PATTERN = re.compile(
    r"(?:modified?|updated?|edited?|changed?)\s+(?:file\s+)?[`'\"]*([^\s`'\"]+\.[a-z]{2,4})",
    re.IGNORECASE,
)
DECISION_PATTERNS = [
    re.compile(r"(?:decided?|chose?|selected?|using)\s+([^.]+(?:for|because|to)[^.]+)", re.IGNORECASE),
    re.compile(r"architectural\s+(?:decision|choice):\s*([^.]+)", re.IGNORECASE),
]
DESIGN_TOKEN_PATTERN = re.compile(r"--([a-z]+-[a-z]+(?:-[a-z]+)?)", re.IGNORECASE)

_SPEC_OVERVIEW_RE = re.compile(r"##\s*(?:Overview|Summary|Description)[\s\S]*?(?=##|\Z)", re.IGNORECASE)
_ARCH_OVERVIEW_RE = re.compile(r"##\s*Overview[\s\S]*?(?=##|\Z)", re.IGNORECASE)
_ARCH_STACK_RE = re.compile(r"##\s*Technology Stack[\s\S]*?(?=##|\Z)", re.IGNORECASE)


def _summarize_spec(spec: str) -> str:
    match = _SPEC_OVERVIEW_RE.search(spec)
    text = match.group(0) if match else spec
    return text[:500] + ("..." if len(text) > 500 else "")


def _summarize_architecture(architecture: str) -> str:
    sections = [
        m.group(0)[:300]
        for m in (_ARCH_OVERVIEW_RE.search(architecture), _ARCH_STACK_RE.search(architecture))
        if m
    ]
    return "\n\n".join(sections) or architecture[:600]


def _task_lines(phase: PhaseSpec) -> str:
    return "\n".join(f"- [ ] {task}" for task in phase.tasks)


def generate_initial_context(
    spec: str,
    architecture: str,
    design_spec: str | None,
    phase: PhaseSpec,
    total_phases: int,
) -> str:
    """Context for the first phase, when nothing has been built yet."""
    text = (
        "# Build Context\n\n"
        "## Current Phase\n"
        f"**Phase 1 of {total_phases}: {phase.name}**\n"
        f"**Goal:** {phase.goal}\n\n"
        "## This is the first phase - no previous context.\n\n"
        "## Reference Documents\n\n"
        f"### Spec Summary\n{_summarize_spec(spec)}\n\n"
        f"### Architecture Overview\n{_summarize_architecture(architecture)}\n"
    )
    if design_spec:
        text += f"\n### Design Tokens\n```yaml\n{design_spec}\n```\n"
    text += f"\n## Tasks for This Phase\n{_task_lines(phase)}\n"
    return text


def generate_phase_context(
    context: BuildContext,
    phase_index: int,
    total_phases: int,
    phase: PhaseSpec,
    design_spec: str | None,
) -> str:
    """Uncompressed context: the full history, file map and decisions."""
    out = [
        "# Build Context\n\n"
        "## Current Phase\n"
        f"**Phase {phase_index + 1} of {total_phases}: {phase.name}**\n"
        f"**Goal:** {phase.goal}\n\n"
        "## Completed Phases\n"
    ]

    for completed in context.completed_phases:
        out.append(
            f"\n### {completed.name}{' (skipped)' if completed.skipped else ''}\n"
            f"**Goal:** {completed.goal}\n"
            f"**Files created:** {', '.join(completed.files_created) or 'None'}\n"
            f"**Files modified:** {', '.join(completed.files_modified) or 'None'}\n"
            f"**Key decisions:** {'; '.join(completed.key_decisions) or 'None'}\n"
        )

    if context.file_map:
        out.append("\n## File Map (what exists and why)\n")
        out.extend(f"- `{path}` - {purpose}\n" for path, purpose in context.file_map.items())

    if context.architectural_decisions:
        out.append("\n## Architectural Decisions Made\n")
        out.extend(f"- {d.date}: {d.decision}\n" for d in context.architectural_decisions)

    if context.known_issues:
        out.append("\n## Known Issues (do not address unless tasked)\n")
        out.extend(f"- {issue}\n" for issue in context.known_issues)

    if design_spec:
        out.append(
            "\n## Design Tokens (MANDATORY - use these, not hardcoded values)\n"
            f"```yaml\n{design_spec}\n```\n"
        )

    out.append(f"\n## Tasks for This Phase\n{_task_lines(phase)}\n\n")
    out.append(PHASE_RULES)
    return "".join(out)


def parse_builder_output(output: str) -> CompletedPhaseInfo:
    """Extract files, decisions and design tokens a builder reported.

    This is a text heuristic over free-form agent output. The returned
    object carries empty name and goal; callers fill them in.
    """
    created: list[str] = []
    for pattern in CREATED_PATTERNS:
        for match in pattern.finditer(output):
            path = match.group(1)
            if path not in created and "example" not in path:
                created.append(path)

    modified: list[str] = []
    for match in MODIFIED_PATTERN.finditer(output):
        path = match.group(1)
        if path not in modified and path not in created:
            modified.append(path)

    decisions: list[str] = []
    for pattern in DECISION_PATTERNS:
        for match in pattern.finditer(output):
            decision = match.group(1).strip()
            if 10 < len(decision) < 200:
                decisions.append(decision)

    tokens: list[str] = []
    for match in DESIGN_TOKEN_PATTERN.finditer(output):
        token = f"--{match.group(1)}"
        if token not in tokens:
            tokens.append(token)

    return CompletedPhaseInfo(
        name="",
        goal="",
        files_created=created,
        files_modified=modified,
        key_decisions=decisions[:MAX_DECISIONS],
        design_tokens_used=tokens[:MAX_DESIGN_TOKENS],
    )


def _base(context: BuildContext | None, phase_name: str) -> BuildContext:
    """Copy of the context without a trailing entry for ``phase_name``.

    The context is saved before the phase state advances, so a phase rebuilt
    after a crash between the two writes replaces its own entry.
    """
    updated = context.model_copy(deep=True) if context else BuildContext()
    if updated.completed_phases and updated.completed_phases[-1].name == phase_name:
        updated.completed_phases.pop()
    return updated


def update_context_after_phase(
    context: BuildContext | None,
    phase: PhaseSpec,
    builder_output: str,
    today: date | None = None,
) -> BuildContext:
    """Return a new BuildContext with the finished phase folded in.

    The input context is left untouched. Existing file map entries keep
    their purpose.
    """
    parsed = parse_builder_output(builder_output)
    info = parsed.model_copy(update={"name": phase.name, "goal": phase.goal})

    updated = _base(context, phase.name)
    updated.completed_phases.append(info)

    for path in info.files_created:
        updated.file_map.setdefault(path, f"Created in {phase.name}")

    stamp = (today or date.today()).isoformat()
    updated.architectural_decisions.extend(
        ArchitecturalDecision(date=stamp, decision=decision) for decision in info.key_decisions
    )
    return updated


def record_skipped_phase(
    context: BuildContext | None,
    phase: PhaseSpec,
    error_summary: str,
) -> BuildContext:
    """Return a new BuildContext noting that a phase was skipped unverified."""
    updated = _base(context, phase.name)
    updated.completed_phases.append(CompletedPhaseInfo(name=phase.name, goal=phase.goal, skipped=True))
    issue = f"Phase '{phase.name}' skipped after failed verification: {error_summary}"
    if issue not in updated.known_issues:
        updated.known_issues.append(issue)
    return updated
