"""Build context management.

Provides:
- Token budget estimation and health reports
- Deterministic context compression
- Phase context rendering and builder output parsing
- Build context persistence
- Artifact extraction from agent output
"""

from .artifacts import ArtifactExtractor, MarkdownArtifactExtractor
from .builder import (
    generate_initial_context,
    generate_phase_context,
    parse_builder_output,
    record_skipped_phase,
    update_context_after_phase,
)
from .compression import (
    CompressionConfig,
    compress_fix_context,
    generate_compressed_phase_context,
    should_compress,
)
from .health import analyze_context_health, estimate_tokens, format_health_report
from .store import BuildContextStore

__all__ = [
    "ArtifactExtractor",
    "MarkdownArtifactExtractor",
    "generate_initial_context",
    "generate_phase_context",
    "parse_builder_output",
    "record_skipped_phase",
    "update_context_after_phase",
    "CompressionConfig",
    "compress_fix_context",
    "generate_compressed_phase_context",
    "should_compress",
    "analyze_context_health",
    "estimate_tokens",
    "format_health_report",
    "BuildContextStore",
]
