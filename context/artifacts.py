"""Artifact extraction from free-form agent output.

Agents answer in markdown. The extractor pulls named documents out of that
text using a small, documented delimiter grammar:

Detection (any of):
    ``## NAME``, ``# NAME``, a code fence tagged ``NAME``, ``**NAME**``

Extraction starts right after the first of:
    ``## NAME\\n``, ``# NAME\\n``, a ```` ```markdown ```` fence, a bare fence

and ends at the nearest following ``\\n## ``, ``\\n# `` or fence.

This is a heuristic. Anything that needs a stricter contract can implement
``ArtifactExtractor`` and be passed to the runner instead.
"""

import re
from typing import Protocol

FENCE = "```"

YAML_BLOCK_RE = re.compile(r"```ya?ml\n([\s\S]*?)```")
DESIGN_SPEC_HEADER_RE = re.compile(r"##?\s*DESIGN_SPEC(?:\.yaml)?\s*\n([\s\S]*?)(?=\n##|\n```|\Z)")

PROJECT_TYPE_FIELD_RE = re.compile(r"project\s+type[:\s]+([^\n]+)", re.IGNORECASE)
TITLE_SPEC_RE = re.compile(r"^#\s+(.+?)\s*[-–—]\s*(?:Product\s+)?Specification", re.IGNORECASE | re.MULTILINE)
TITLE_RE = re.compile(r"^#\s+(.+?)(?:\n|\Z)", re.MULTILINE)
NAME_FIELD_RE = re.compile(r"(?:Project\s+)?Name:\s*(.+?)(?:\n|\Z)", re.IGNORECASE)

# (keyword in an explicit "Project Type:" field, project type)
PROJECT_TYPE_FIELD_RULES: list[tuple[tuple[str, ...], str]] = [
    (("web",), "web"),
    (("ios", "iphone"), "ios"),
    (("android",), "android"),
    (("desktop",), "desktop"),
    (("cli", "command"), "cli"),
    (("backend", "api"), "backend"),
    (("library", "package"), "library"),
]

# (phrases anywhere in the spec, inferred project types)
PROJECT_TYPE_CONTENT_RULES: list[tuple[tuple[str, ...], tuple[str, ...]]] = [
    (("ios app", "iphone", "swift"), ("ios",)),
    (("android app",), ("android",)),
    (("website", "web app", "browser"), ("web",)),
    (("command line", "cli tool", "terminal"), ("cli",)),
    (("api", "backend", "server"), ("backend",)),
    (("desktop app", "electron"), ("desktop",)),
]


class ArtifactExtractor(Protocol):
    """Pulls named artifacts out of agent output."""

    def detect(self, text: str, name: str) -> bool:
        ...

    def extract(self, text: str, name: str) -> str | None:
        ...

    def extract_yaml(self, text: str) -> str | None:
        ...


class MarkdownArtifactExtractor:
    """Default extractor implementing the markdown delimiter grammar."""

    def detect(self, text: str, name: str) -> bool:
        markers = (f"## {name}", f"# {name}", f"{FENCE}{name}", f"**{name}**")
        return any(marker in text for marker in markers)

    def extract(self, text: str, name: str) -> str | None:
        starts = (f"## {name}\n", f"# {name}\n", f"{FENCE}markdown\n", f"{FENCE}\n")
        for start in starts:
            index = text.find(start)
            if index == -1:
                continue
            body_start = index + len(start)
            ends = [text.find(end, body_start) for end in ("\n## ", "\n# ", f"\n{FENCE}")]
            body_end = min((e for e in ends if e != -1), default=len(text))
            return text[body_start:body_end].strip()
        return None

    def extract_yaml(self, text: str) -> str | None:
        """First yaml/yml fenced block, else the body under a DESIGN_SPEC heading."""
        block = YAML_BLOCK_RE.search(text)
        if block:
            return block.group(1).strip()
        header = DESIGN_SPEC_HEADER_RE.search(text)
        if header:
            return header.group(1).strip()
        return None


def extract_project_types(spec: str) -> list[str]:
    """Project types named or implied by a spec. Defaults to ``["web"]``."""
    types: list[str] = []

    field = PROJECT_TYPE_FIELD_RE.search(spec)
    if field:
        value = field.group(1).lower()
        for words, project_type in PROJECT_TYPE_FIELD_RULES:
            if any(w in value for w in words):
                types.append(project_type)

    if not types:
        content = spec.lower()
        for phrases, inferred in PROJECT_TYPE_CONTENT_RULES:
            if any(p in content for p in phrases):
                types.extend(inferred)
        if "mobile app" in content and not types:
            types.extend(["ios", "android"])

    return list(dict.fromkeys(types)) or ["web"]


def extract_project_name(spec: str) -> str | None:
    """Project name from the spec title or a ``Name:`` field."""
    match = TITLE_SPEC_RE.search(spec)
    if match:
        return match.group(1).strip()

    match = TITLE_RE.search(spec)
    if match:
        name = match.group(1).strip()
        if "spec" not in name.lower():
            return name

    match = NAME_FIELD_RE.search(spec)
    if match:
        return match.group(1).strip()
    return None
