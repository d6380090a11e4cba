"""Prompt components shared by the build agents."""

from .principles import (
    BUILD_PRINCIPLES,
    FIX_PRINCIPLES,
    PHASE_REPORT_FORMAT,
    REVIEW_PRINCIPLES,
)

__all__ = [
    "BUILD_PRINCIPLES",
    "FIX_PRINCIPLES",
    "PHASE_REPORT_FORMAT",
    "REVIEW_PRINCIPLES",
]
