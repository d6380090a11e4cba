"""Agents module for Phasewright.

Provides the agents the pipeline invokes:
- ArchitectAgent: Turn a specification into an architecture with build phases
- BuilderAgent: Implement phases and apply fix attempts
- ReviewerAgent: Review the finished build against the specification
"""

from .architect_agent import ArchitectAgent
from .base import AgentInput, AgentOutput, BaseAgent
from .builder_agent import BuilderAgent
from .reviewer_agent import ReviewerAgent

__all__ = [
    "BaseAgent",
    "AgentInput",
    "AgentOutput",
    "ArchitectAgent",
    "BuilderAgent",
    "ReviewerAgent",
]
