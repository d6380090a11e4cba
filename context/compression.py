"""Context compression.

Renders a reduced view of the build context so each phase only carries what
it needs. Compression is lossy but deterministic: the same inputs always
render the same text, and the stored BuildContext is never modified.
"""

import json
import logging
import re
from dataclasses import dataclass

from schemas.build_context import BuildContext, CompletedPhaseInfo
from schemas.build_plan import PhaseSpec
from schemas.context_report import CompressionStats, HealthStatus

from .health import DEFAULT_BUDGET_TOKENS, analyze_context_health, estimate_tokens

logger = logging.getLogger(__name__)

# Compress before the budget is actually hit
COMPRESS_ABOVE_PERCENT = 70

# Savings below this are noise and not reported
MIN_REPORTED_SAVINGS = 100

GOAL_SNIPPET_CHARS = 50
MAX_TOKENS_LISTED = 10
MAX_RECENT_DECISIONS = 5
FIX_ERROR_CHARS = 2000

# Path fragments that are always relevant to any phase
ALWAYS_RELEVANT_PATHS = ("package.json", "tsconfig", "tailwind", "layout", "app.", "index.")

WORD_SPLIT = re.compile(r"[\s,.\-_()\[\]]+")

# A section body runs until the next heading, a horizontal rule, or the end
_SECTION_END = r"(?=\n##|\n---|\n\*\*\*|\Z)"

OVERVIEW_RE = re.compile(r"##?\s*Overview[\s\S]*?" + _SECTION_END, re.IGNORECASE)
TECH_STACK_RE = re.compile(r"##?\s*Tech(?:nology)?\s*Stack[\s\S]*?" + _SECTION_END, re.IGNORECASE)
ANY_SECTION_RE = re.compile(r"##\s*[^\n]+[\s\S]*?(?=\n##|\Z)")
SPEC_OVERVIEW_RE = re.compile(
    r"##?\s*(?:Overview|Summary|Description)[\s\S]*?" + _SECTION_END, re.IGNORECASE
)
SPEC_STORIES_RE = re.compile(
    r"##?\s*(?:Key\s+)?(?:User Stories|Features|Requirements)[\s\S]*?" + _SECTION_END, re.IGNORECASE
)
SPEC_CRITERIA_RE = re.compile(r"##?\s*Success\s*Criteria[\s\S]*?" + _SECTION_END, re.IGNORECASE)
BULLET_RE = re.compile(r"^[-*]\s")
TASKS_SECTION_RE = re.compile(r"## Tasks for This Phase[\s\S]*?(?=\n##|\Z)")
ATTEMPT_FILES_RE = re.compile(
    r"(?:modified?|edited?|changed?|fixed?)\s+[`'\"]?([^\s`'\"]+\.[a-z]+)",
    re.IGNORECASE,
)

PHASE_RULES = """## Rules for This Phase
1. Only implement the tasks listed above
2. Preserve existing code from previous phases
3. Use design tokens for all visual values
4. Document any architectural decisions you make
5. List files you create and their purpose
"""

FIX_INSTRUCTIONS = """## Fix Instructions
1. Review the error above carefully
2. Fix ONLY what is broken
3. Do not refactor or add features
4. Make the minimal change needed
"""


@dataclass
class CompressionConfig:
    """Compression knobs."""

    target_tokens: int = DEFAULT_BUDGET_TOKENS
    recent_phases_full_detail: int = 2
    extract_relevant_files: bool = True
    summarize_architecture: bool = True

    @classmethod
    def from_settings(cls, settings) -> "CompressionConfig":
        """Build from the ``[context]`` config section."""
        return cls(
            target_tokens=settings.budget_tokens,
            recent_phases_full_detail=settings.recent_phases_full_detail,
            extract_relevant_files=settings.extract_relevant_files,
            summarize_architecture=settings.summarize_architecture,
        )


def should_compress(text: str, budget: int = DEFAULT_BUDGET_TOKENS) -> bool:
    """True when the context is not healthy or already above 70% of budget."""
    report = analyze_context_health(text, budget)
    return report.status != HealthStatus.HEALTHY or report.percentage_used > COMPRESS_ABOVE_PERCENT


def _truncate(text: str, limit: int, ellipsis: bool = True) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + ("..." if ellipsis else "")


def keywords(texts: list[str], min_length: int) -> list[str]:
    """Lower-cased words longer than ``min_length - 1``, in first-seen order."""
    seen: dict[str, None] = {}
    for text in texts:
        for word in WORD_SPLIT.split(text.lower()):
            if len(word) >= min_length:
                seen.setdefault(word, None)
    return list(seen)


def compress_completed_phases(
    phases: list[CompletedPhaseInfo],
    recent_count: int = 2,
) -> tuple[str, int]:
    """Recent phases in full, older phases one line each.

    Returns:
        Tuple of (rendered section, tokens saved)
    """
    if not phases:
        return "", 0

    original = sum(
        estimate_tokens(json.dumps(p.model_dump(mode="json"), separators=(",", ":")))
        for p in phases
    )

    if recent_count > 0:
        older, recent = phases[:-recent_count], phases[-recent_count:]
    else:
        older, recent = list(phases), []

    out = ["## Completed Phases\n\n"]

    if older:
        out.append("### Earlier Phases (summary)\n")
        for phase in older:
            file_count = len(phase.files_created) + len(phase.files_modified)
            goal = _truncate(phase.goal, GOAL_SNIPPET_CHARS)
            marker = " [skipped]" if phase.skipped else ""
            out.append(f"- **{phase.name}**{marker}: {goal} ({file_count} files)\n")
        out.append("\n")

    if recent:
        out.append("### Recent Phases (full detail)\n\n")
        for phase in recent:
            out.append(f"#### {phase.name}\n")
            out.append(f"**Goal:** {phase.goal}\n")
            if phase.skipped:
                out.append("**Status:** skipped after failed verification\n")
            if phase.files_created:
                out.append(f"**Created:** {', '.join(phase.files_created)}\n")
            if phase.files_modified:
                out.append(f"**Modified:** {', '.join(phase.files_modified)}\n")
            if phase.key_decisions:
                out.append(f"**Decisions:** {'; '.join(phase.key_decisions)}\n")
            if phase.design_tokens_used:
                listed = ", ".join(phase.design_tokens_used[:MAX_TOKENS_LISTED])
                more = "..." if len(phase.design_tokens_used) > MAX_TOKENS_LISTED else ""
                out.append(f"**Tokens used:** {listed}{more}\n")
            out.append("\n")

    compressed = "".join(out)
    return compressed, max(0, original - estimate_tokens(compressed))


def _is_always_relevant(path_lower: str) -> bool:
    return any(fragment in path_lower for fragment in ALWAYS_RELEVANT_PATHS)


def extract_relevant_files(
    file_map: dict[str, str],
    tasks: list[str],
) -> tuple[dict[str, str], int]:
    """Keep file map entries relevant to the phase tasks.

    An entry is relevant when its path matches the always-relevant list, or
    its path or purpose contains a task keyword (longer than 2 characters).

    Returns:
        Tuple of (relevant entries, number excluded)
    """
    task_words = keywords(tasks, min_length=3)

    # First matching rule wins
    rules = [
        lambda path, purpose: _is_always_relevant(path),
        lambda path, purpose: any(w in path or w in purpose for w in task_words),
    ]

    relevant: dict[str, str] = {}
    excluded = 0
    for path, purpose in file_map.items():
        path_lower, purpose_lower = path.lower(), purpose.lower()
        if any(rule(path_lower, purpose_lower) for rule in rules):
            relevant[path] = purpose
        else:
            excluded += 1

    return relevant, excluded


def compress_architecture(architecture: str, phase: PhaseSpec) -> tuple[str, int]:
    """Overview, tech stack and the sections that mention this phase."""
    original = estimate_tokens(architecture)
    sections: list[str] = []

    overview = OVERVIEW_RE.search(architecture)
    if overview:
        sections.append(_truncate(overview.group(0), 500))

    stack = TECH_STACK_RE.search(architecture)
    if stack:
        sections.append(stack.group(0)[:400])

    phase_words = keywords([*phase.tasks, phase.name, phase.goal], min_length=4)
    for match in ANY_SECTION_RE.finditer(architecture):
        section = match.group(0)
        if section in sections:
            continue
        section_lower = section.lower()
        if any(word in section_lower for word in phase_words):
            sections.append(_truncate(section, 600))

    compressed = "### Architecture (compressed for this phase)\n\n" + "\n\n".join(sections)
    return compressed, max(0, original - estimate_tokens(compressed))


def compress_spec(spec: str) -> tuple[str, int]:
    """Overview, the first five user stories and the success criteria."""
    original = estimate_tokens(spec)
    sections: list[str] = []

    overview = SPEC_OVERVIEW_RE.search(spec)
    if overview:
        sections.append(overview.group(0)[:400])

    stories = SPEC_STORIES_RE.search(spec)
    if stories:
        bullets = [line for line in stories.group(0).split("\n") if BULLET_RE.match(line)][:5]
        if bullets:
            sections.append("## Key User Stories\n" + "\n".join(bullets))

    criteria = SPEC_CRITERIA_RE.search(spec)
    if criteria:
        sections.append(criteria.group(0)[:300])

    compressed = "### Spec Summary\n\n" + "\n\n".join(sections)
    return compressed, max(0, original - estimate_tokens(compressed))


def _render_tasks(phase: PhaseSpec) -> str:
    lines = "\n".join(f"- [ ] {task}" for task in phase.tasks)
    return f"## Tasks for This Phase\n{lines}\n\n"


def generate_compressed_phase_context(
    context: BuildContext | None,
    phase_index: int,
    total_phases: int,
    phase: PhaseSpec,
    spec: str,
    architecture: str,
    design_spec: str | None,
    config: CompressionConfig | None = None,
) -> tuple[str, CompressionStats]:
    """Render the compressed phase context.

    Args:
        context: Accumulated build context (None before the first phase completes)
        phase_index: Zero-based index of the phase being built
        total_phases: Number of phases in the plan
        phase: Phase being built
        spec: Spec document
        architecture: Architecture document
        design_spec: Design token YAML, included verbatim
        config: Compression knobs

    Returns:
        Tuple of (rendered context, stats)
    """
    cfg = config or CompressionConfig()
    saved = 0
    notes: list[str] = []

    out = [
        "# Build Context\n\n"
        "## Current Phase\n"
        f"**Phase {phase_index + 1} of {total_phases}: {phase.name}**\n"
        f"**Goal:** {phase.goal}\n\n"
    ]

    if context and context.completed_phases:
        section, phase_saved = compress_completed_phases(
            context.completed_phases, cfg.recent_phases_full_detail
        )
        out.append(section)
        if phase_saved > 0:
            saved += phase_saved
            notes.append(f"Completed phases: saved ~{phase_saved} tokens")

    if context and context.file_map:
        if cfg.extract_relevant_files:
            relevant, excluded = extract_relevant_files(context.file_map, phase.tasks)
            if relevant or excluded:
                out.append("## File Map (relevant to this phase)\n")
                out.extend(f"- `{path}` - {purpose}\n" for path, purpose in relevant.items())
                if excluded:
                    out.append(f"\n*{excluded} other files not shown (not relevant to current tasks)*\n")
                    notes.append(f"File map: excluded {excluded} irrelevant files")
                out.append("\n")
        else:
            out.append("## File Map\n")
            out.extend(f"- `{path}` - {purpose}\n" for path, purpose in context.file_map.items())
            out.append("\n")

    if context and context.architectural_decisions:
        out.append("## Recent Architectural Decisions\n")
        for decision in context.architectural_decisions[-MAX_RECENT_DECISIONS:]:
            out.append(f"- {decision.date}: {decision.decision}\n")
        out.append("\n")

    if context and context.known_issues:
        out.append("## Known Issues (do not address unless tasked)\n")
        out.extend(f"- {issue}\n" for issue in context.known_issues)
        out.append("\n")

    if spec and cfg.summarize_architecture:
        compressed_spec, spec_saved = compress_spec(spec)
        out.append(compressed_spec + "\n\n")
        if spec_saved > MIN_REPORTED_SAVINGS:
            saved += spec_saved
            notes.append(f"Spec: saved ~{spec_saved} tokens")

    if architecture and cfg.summarize_architecture:
        compressed_arch, arch_saved = compress_architecture(architecture, phase)
        out.append(compressed_arch + "\n\n")
        if arch_saved > MIN_REPORTED_SAVINGS:
            saved += arch_saved
            notes.append(f"Architecture: saved ~{arch_saved} tokens")

    if design_spec:
        out.append(
            "## Design Tokens (MANDATORY - use these, not hardcoded values)\n"
            f"```yaml\n{design_spec}\n```\n\n"
        )

    out.append(_render_tasks(phase))
    out.append(PHASE_RULES)

    rendered = "".join(out)
    compressed_tokens = estimate_tokens(rendered)
    stats = CompressionStats(
        original_tokens=compressed_tokens + saved,
        compressed_tokens=compressed_tokens,
        saved_tokens=saved,
        sections_compressed=notes,
    )
    logger.debug(
        "Compressed context for phase %d: %d tokens (saved %d)",
        phase_index + 1,
        compressed_tokens,
        saved,
    )
    return rendered, stats


def summarize_attempt(output: str) -> str:
    """One-line summary of a fix attempt: the files it touched, else its first real line."""
    files: list[str] = []
    for match in ATTEMPT_FILES_RE.finditer(output):
        if match.group(1) not in files:
            files.append(match.group(1))

    if files:
        more = "..." if len(files) > 3 else ""
        return f"Modified {', '.join(files[:3])}{more}"

    lines = [line for line in output.split("\n") if len(line.strip()) > 10]
    if lines:
        return _truncate(lines[0], 100)

    return "Attempted fix (details truncated)"


def compress_fix_context(
    phase_context: str,
    error_output: str,
    attempt: int,
    previous_attempts: list[str],
    max_attempts: int = 2,
) -> str:
    """Render the context for a fix attempt.

    Carries the error, a one-line summary per previous attempt, and the
    phase's task list. Everything else from the phase context is dropped.
    """
    out = [
        f"# Fix Required - Attempt {attempt} of {max_attempts}\n\n"
        "## Error to Fix\n"
        f"```\n{error_output[:FIX_ERROR_CHARS]}\n```\n\n"
    ]

    if previous_attempts:
        out.append("## Previous Attempts Summary\n")
        for i, previous in enumerate(previous_attempts, start=1):
            out.append(f"**Attempt {i}:** {summarize_attempt(previous)}\n\n")

    tasks = TASKS_SECTION_RE.search(phase_context)
    if tasks:
        out.append(tasks.group(0) + "\n\n")

    out.append(FIX_INSTRUCTIONS)
    return "".join(out)
