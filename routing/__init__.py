"""Role-based agent routing.

Routes architect, builder and reviewer invocations to their configured
backends, falling back when the primary is unavailable.
"""

from .router import AgentRole, AgentRouter

__all__ = ["AgentRole", "AgentRouter"]
