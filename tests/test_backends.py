"""Tests for the agent backends and role routing."""

import pytest
import requests

from llm_backend import get_backend
from llm_backend.base import LLMBackend
from llm_backend.cli_backend import CLIBackend, build_prompt
from llm_backend.errors import (
    AgentError,
    AgentTimeoutError,
    AgentUnavailableError,
    AuthRequiredError,
    RateLimitedError,
)
from llm_backend.ollama_backend import OllamaBackend
from pipeline.config import AgentsConfig
from routing.router import AgentRole, AgentRouter
from tools.base import ToolResult, ToolStatus


class FakeShell:
    def __init__(self, result=None, installed=True):
        self.result = result
        self.installed = installed
        self.calls: list = []
        self.working_dir = None

    def __call__(self, working_dir=None, timeout=None):
        self.working_dir = working_dir
        return self

    def run(self, command, **kwargs):
        self.calls.append((command, kwargs))
        return self.result

    def which(self, executable):
        return self.installed


def _completed(stdout="", stderr="", returncode=0):
    status = ToolStatus.SUCCESS if returncode == 0 else ToolStatus.FAILURE
    return ToolResult(status=status, output={"stdout": stdout, "stderr": stderr, "returncode": returncode})


class TestBuildPrompt:
    def test_system_first_then_turns(self):
        prompt = build_prompt(
            [
                {"role": "user", "content": "Build phase 1"},
                {"role": "system", "content": "You are a builder"},
            ]
        )
        assert prompt == "<system>\nYou are a builder\n</system>\n\n<user>\nBuild phase 1\n</user>"


class TestCLIBackend:
    def test_prompt_goes_to_stdin(self, tmp_path):
        shell = FakeShell(_completed(stdout="  Created src/App.tsx\n"))
        backend = CLIBackend("claude", shell_factory=shell)

        output = backend.complete("Build it", working_dir=tmp_path)

        assert output == "Created src/App.tsx"
        argv, kwargs = shell.calls[0]
        assert argv == ["claude", "-p", "--dangerously-skip-permissions"]
        assert kwargs["input_text"] == "<user>\nBuild it\n</user>"
        assert shell.working_dir == tmp_path

    def test_codex_gets_directory_flag_and_model(self, tmp_path):
        shell = FakeShell(_completed(stdout="ok"))

        CLIBackend("codex", shell_factory=shell).complete("Fix", working_dir=tmp_path, model="o4-mini")

        argv, _ = shell.calls[0]
        assert argv[-4:] == ["--model", "o4-mini", "-C", str(tmp_path)]

    def test_unknown_tool(self):
        with pytest.raises(ValueError):
            CLIBackend("vim")

    def test_timeout(self):
        shell = FakeShell(ToolResult(status=ToolStatus.TIMEOUT, output={"returncode": None}, error="timed out"))
        with pytest.raises(AgentTimeoutError):
            CLIBackend(shell_factory=shell).complete("x")

    def test_not_startable(self):
        shell = FakeShell(ToolResult(status=ToolStatus.FAILURE, error="No such file or directory: 'claude'"))
        with pytest.raises(AgentUnavailableError) as excinfo:
            CLIBackend(shell_factory=shell).complete("x")
        assert "npm install -g" in excinfo.value.remediation

    def test_rate_limit_with_retry_after(self):
        shell = FakeShell(_completed(stderr="Error 429: rate limit reached, retry after 30s", returncode=1))
        with pytest.raises(RateLimitedError) as excinfo:
            CLIBackend(shell_factory=shell).complete("x")
        assert excinfo.value.retry_after == 30.0
        assert "in 30s" in excinfo.value.remediation

    def test_auth_required(self):
        shell = FakeShell(_completed(stderr="You are not logged in", returncode=1))
        with pytest.raises(AuthRequiredError) as excinfo:
            CLIBackend("codex", shell_factory=shell).complete("x")
        assert excinfo.value.remediation == "Run `codex login`."

    def test_other_failure(self):
        shell = FakeShell(_completed(stdout="segfault", returncode=2))
        with pytest.raises(AgentError, match="exited with code 2"):
            CLIBackend(shell_factory=shell).complete("x")

    def test_is_available(self):
        assert CLIBackend(shell_factory=FakeShell(installed=True)).is_available()
        assert not CLIBackend(shell_factory=FakeShell(installed=False)).is_available()


class TestGetBackend:
    def test_cli(self):
        backend = get_backend("cli", tool="gemini")
        assert isinstance(backend, CLIBackend)
        assert backend.name == "gemini"

    def test_unknown(self):
        with pytest.raises(ValueError):
            get_backend("telepathy")


class StubBackend(LLMBackend):
    def __init__(self, key, available=True, error=None):
        self.name = key
        self.available = available
        self.error = error
        self.prompts: list = []

    def chat(self, messages, model=None, temperature=0.7, max_tokens=None, **kwargs):
        if self.error:
            raise self.error
        self.prompts.append((messages, model, kwargs.get("working_dir")))
        return f"{self.name} done"

    def is_available(self):
        return self.available


class StubFactory:
    def __init__(self, **backends):
        self.backends = backends
        self.calls: list = []

    def __call__(self, kind, **kwargs):
        self.calls.append((kind, kwargs))
        key = kwargs.get("tool", kind)
        return self.backends[key]


class TestAgentRouter:
    def test_routes_to_primary(self, tmp_path):
        factory = StubFactory(claude=StubBackend("claude"), codex=StubBackend("codex"))
        router = AgentRouter(AgentsConfig(builder="claude", fallback="codex"), backend_factory=factory)

        assert router.invoke(AgentRole.BUILDER, "build", working_dir=tmp_path) == "claude done"
        assert factory.calls == [("cli", {"tool": "claude", "timeout": 900})]

    def test_falls_back_when_primary_missing(self):
        factory = StubFactory(claude=StubBackend("claude", available=False), codex=StubBackend("codex"))
        router = AgentRouter(AgentsConfig(), backend_factory=factory)

        assert router.invoke("builder", "build") == "codex done"

    def test_falls_back_when_primary_unreachable(self):
        factory = StubFactory(
            claude=StubBackend("claude", error=AgentUnavailableError("gone")), codex=StubBackend("codex")
        )
        router = AgentRouter(AgentsConfig(), backend_factory=factory)

        assert router.invoke("reviewer", "review") == "codex done"

    def test_rate_limit_does_not_fall_back(self):
        codex = StubBackend("codex")
        factory = StubFactory(claude=StubBackend("claude", error=RateLimitedError("slow down")), codex=codex)
        router = AgentRouter(AgentsConfig(), backend_factory=factory)

        with pytest.raises(RateLimitedError):
            router.invoke("builder", "build")
        assert codex.prompts == []

    def test_nothing_available(self):
        factory = StubFactory(
            claude=StubBackend("claude", available=False), codex=StubBackend("codex", available=False)
        )
        router = AgentRouter(AgentsConfig(), backend_factory=factory)

        with pytest.raises(AgentUnavailableError, match="tried: claude, codex"):
            router.invoke("architect", "plan")

    def test_no_duplicate_fallback(self):
        router = AgentRouter(AgentsConfig(architect="codex", fallback="codex"))
        assert router.route("architect") == ["codex"]

    def test_api_backend_has_single_route_and_model(self):
        api = StubBackend("anthropic")
        factory = StubFactory(anthropic=api)
        router = AgentRouter(
            AgentsConfig(backend="anthropic", model_builder="claude-sonnet-4-5"), backend_factory=factory
        )

        router.invoke("builder", "build", system="be brief")

        assert router.route("builder") == ["anthropic"]
        messages, model, _ = api.prompts[0]
        assert model == "claude-sonnet-4-5"
        assert messages[0] == {"role": "system", "content": "be brief"}

    def test_is_available_swallows_construction_errors(self):
        def factory(kind, **kwargs):
            raise ImportError("anthropic package not installed")

        router = AgentRouter(AgentsConfig(backend="anthropic"), backend_factory=factory)
        assert not router.is_available("anthropic")

    def test_explain_routing(self):
        info = AgentRouter(AgentsConfig()).explain_routing("builder")
        assert info == {"role": "builder", "backend": "cli", "candidates": ["claude", "codex"], "model": None}


class TestOllamaBackend:
    def test_connection_error_is_unavailable(self, monkeypatch):
        def refuse(*args, **kwargs):
            raise requests.exceptions.ConnectionError("refused")

        monkeypatch.setattr(requests, "post", refuse)

        with pytest.raises(AgentUnavailableError, match="ollama serve"):
            OllamaBackend().complete("hello")

    def test_returns_message_content(self, monkeypatch):
        class Response:
            def raise_for_status(self):
                pass

            def json(self):
                return {"message": {"role": "assistant", "content": "hi"}}

        sent = {}

        def post(url, json=None, timeout=None):
            sent.update(url=url, payload=json)
            return Response()

        monkeypatch.setattr(requests, "post", post)

        assert OllamaBackend(model="qwen").complete("hello", system="be brief") == "hi"
        assert sent["url"] == "http://localhost:11434/api/chat"
        assert sent["payload"]["model"] == "qwen"
        assert sent["payload"]["messages"][0]["role"] == "system"

    def test_available_only_with_model_pulled(self, monkeypatch):
        class Tags:
            def raise_for_status(self):
                pass

            def json(self):
                return {"models": [{"name": "qwen2.5-coder:14b"}, {"name": "llama3:latest"}]}

        monkeypatch.setattr(requests, "get", lambda url, timeout=None: Tags())

        assert OllamaBackend().is_available()
        assert OllamaBackend(model="llama3").is_available()
        assert not OllamaBackend(model="mistral").is_available()

    def test_unreachable_server_is_not_available(self, monkeypatch):
        def refuse(*args, **kwargs):
            raise requests.exceptions.ConnectionError("refused")

        monkeypatch.setattr(requests, "get", refuse)

        assert OllamaBackend().installed_models() == []
        assert not OllamaBackend().is_available()
