"""HTTP request tool for dev server probing."""

import time
from typing import Any

import requests

from .base import BaseTool, ToolResult, ToolStatus


class HttpTool(BaseTool):
    """Tool for HTTP operations.

    Provides:
    - GET requests
    - Waiting for a server to start answering
    """

    name = "http"
    description = "HTTP requests and readiness checks"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: int = 30,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize HTTP tool.

        Args:
            base_url: Base URL for requests
            timeout: Default timeout in seconds
            headers: Default headers for all requests
        """
        self.base_url = base_url.rstrip("/") if base_url else ""
        self.timeout = timeout
        self.default_headers = headers or {}

    def execute(self, operation: str, **kwargs: Any) -> ToolResult:
        """Execute an HTTP operation.

        Args:
            operation: Operation name (get, wait_for_ready)
            **kwargs: Operation-specific parameters

        Returns:
            ToolResult with response data
        """
        operations = {
            "get": self._get,
            "wait_for_ready": self._wait_for_ready,
        }

        if operation not in operations:
            return ToolResult(
                status=ToolStatus.FAILURE,
                error=f"Unknown operation: {operation}. Available: {list(operations.keys())}",
            )

        return operations[operation](**kwargs)

    def _build_url(self, path: str) -> str:
        """Build full URL from path."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _get(
        self,
        path: str = "/",
        headers: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> ToolResult:
        """HTTP GET request."""
        url = self._build_url(path)
        try:
            response = requests.get(
                url,
                headers={**self.default_headers, **(headers or {})},
                timeout=timeout or self.timeout,
            )
        except requests.exceptions.Timeout:
            return ToolResult(
                status=ToolStatus.TIMEOUT,
                error=f"Request timed out after {timeout or self.timeout}s",
            )
        except requests.exceptions.ConnectionError as e:
            return ToolResult(status=ToolStatus.FAILURE, error=f"Connection error: {e}")

        result_data = {
            "status_code": response.status_code,
            "body": response.text,
            "url": response.url,
        }
        if response.ok:
            return ToolResult(status=ToolStatus.SUCCESS, output=result_data)
        return ToolResult(
            status=ToolStatus.FAILURE,
            output=result_data,
            error=f"HTTP {response.status_code}: {response.reason}",
        )

    def _wait_for_ready(
        self,
        path: str = "/",
        timeout: float = 60.0,
        interval: float = 2.0,
    ) -> ToolResult:
        """Poll until the server answers at all (any HTTP status counts)."""
        deadline = time.monotonic() + timeout
        attempts = 0
        while True:
            attempts += 1
            result = self._get(path, timeout=max(1, int(interval)))
            if result.output is not None:
                return ToolResult(
                    status=ToolStatus.SUCCESS,
                    output={"attempts": attempts, "response": result.output},
                )
            if time.monotonic() + interval > deadline:
                break
            time.sleep(interval)

        return ToolResult(
            status=ToolStatus.TIMEOUT,
            error=f"Server not ready after {timeout:.0f}s",
            metadata={"attempts": attempts},
        )
