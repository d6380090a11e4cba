"""Shared instructions for the build agents.

Short, sharp rules about how to work in a project that is built phase by
phase, kept separate from the role prompts so every role sees the same rules.
"""

BUILD_PRINCIPLES = """
## Build Principles

### Read Before Writing
- Read the files listed in the file map before changing them
- Follow the patterns already established by earlier phases
- Reuse existing components instead of creating near duplicates

### Stay In Scope
- Implement ONLY the tasks of the current phase
- Do not start work that belongs to a later phase
- Do not refactor code from completed phases unless a task requires it

### Design System
- Use only tokens from DESIGN_SPEC.yaml when one is provided
- Never use raw hex colors, arbitrary pixel values, or non-token font sizes

### Security
- Never hardcode secrets, API keys, or credentials
- Read configuration from environment variables
"""

PHASE_REPORT_FORMAT = """
When you complete all tasks, say "PHASE COMPLETE" and list:
1. Files created
2. Files modified
3. Key decisions made
4. Design tokens used
"""

FIX_PRINCIPLES = """
### Fixing Rules
- Fix the actual error shown, don't refactor surrounding code
- Make the smallest change that resolves the failure
- Keep the code style of the surrounding files
- Don't add features while fixing
"""

REVIEW_PRINCIPLES = """
### Review Rules
- Be direct and specific: "rename X to Y", not "consider better names"
- Focus on missing requirements, bugs and security issues over style
- Severity must match impact
- Suggest concrete fixes
- Say so when a part is already good
"""
