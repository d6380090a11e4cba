"""Verification module.

Checks applied between build phases:
- Test suite (always, when a test command exists)
- Visual check of the running app (full level, advisory)
- Design and accessibility review (full level, critical issues block)
"""

from .design import DesignReviewer, format_design_results_for_context
from .gate import VerificationGate, format_verification_for_fix
from .testing import TestRunner, format_test_results_for_context, get_test_command
from .visual import VisualVerifier, format_visual_results_for_context

__all__ = [
    "DesignReviewer",
    "TestRunner",
    "VerificationGate",
    "VisualVerifier",
    "format_design_results_for_context",
    "format_test_results_for_context",
    "format_verification_for_fix",
    "format_visual_results_for_context",
    "get_test_command",
]
