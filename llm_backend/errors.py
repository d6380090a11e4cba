"""Agent invocation errors.

Every backend maps its own failures onto this hierarchy so the orchestrator
deals with one set of exceptions. Each carries a remediation hint for the
operator.
"""


class AgentError(RuntimeError):
    """An agent invocation failed."""

    remediation = "Check the agent backend configuration and try again."

    def __init__(self, message: str, remediation: str | None = None) -> None:
        super().__init__(message)
        if remediation is not None:
            self.remediation = remediation


class RateLimitedError(AgentError):
    """The backend refused the request because of rate limiting."""

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        wait = f"in {retry_after:.0f}s" if retry_after else "later"
        super().__init__(message, remediation=f"Rate limited. Resume the build {wait}.")
        self.retry_after = retry_after


class AuthRequiredError(AgentError):
    """The backend needs credentials or a login."""

    remediation = "Authenticate the agent CLI or set the backend API key, then resume."


class AgentUnavailableError(AgentError):
    """The backend could not be reached or is not installed."""

    remediation = "Install or start the agent backend, or configure a fallback."


class AgentTimeoutError(AgentError):
    """The backend did not answer in time."""

    remediation = "Increase agents.timeout or resume the build."
