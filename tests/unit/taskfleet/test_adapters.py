from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from taskfleet.adapters.base import ExecutorRequest, SubprocessExecutor, clean_env
from taskfleet.adapters.claude import ClaudeExecutor
from taskfleet.adapters.registry import get_executor
from taskfleet.config.schema import ExecutorConfig
from taskfleet.errors import ConfigurationError, ExecutorError, ExecutorNotFoundError


class _PythonExecutor(SubprocessExecutor):
    """Runs an inline Python snippet in place of an agent CLI."""

    def __init__(self, code: str, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(backend="python", binary=sys.executable, **kwargs)
        self.code = code

    def build_args(self, request: ExecutorRequest) -> list[str]:
        return ["-c", self.code]


def test_claude_args_minimal() -> None:
    args = ClaudeExecutor().build_args(ExecutorRequest(prompt="hi"))
    assert args == ["-p", "--output-format", "json"]


def test_claude_args_full() -> None:
    schema = {"type": "object"}
    executor = ClaudeExecutor(model="sonnet", extra_args=["--verbose"])
    args = executor.build_args(
        ExecutorRequest(prompt="hi", system_prompt="be nice", json_schema=schema, max_turns=3)
    )
    assert args[:3] == ["-p", "--output-format", "json"]
    assert args[args.index("--system-prompt") + 1] == "be nice"
    assert json.loads(args[args.index("--json-schema") + 1]) == schema
    assert args[args.index("--max-turns") + 1] == "3"
    assert args[args.index("--model") + 1] == "sonnet"
    assert args[-1] == "--verbose"
    assert "hi" not in args


def test_registry_builds_claude() -> None:
    executor = get_executor(ExecutorConfig(binary="/opt/claude", model="opus", timeout_seconds=5))
    assert isinstance(executor, ClaudeExecutor)
    assert executor.binary == "/opt/claude"
    assert executor.model == "opus"
    assert executor.timeout_seconds == 5


def test_registry_rejects_unknown_backend() -> None:
    with pytest.raises(ConfigurationError):
        get_executor(ExecutorConfig(backend="mystery"))


def test_clean_env_strips_nested_session_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CLAUDECODE", "1")
    monkeypatch.setenv("TASKFLEET_KEEP", "yes")
    env = clean_env()
    assert "CLAUDECODE" not in env
    assert env["TASKFLEET_KEEP"] == "yes"


@pytest.mark.asyncio
async def test_prompt_goes_to_stdin() -> None:
    executor = _PythonExecutor("import sys; sys.stdout.write(sys.stdin.read().upper())")
    result = await executor.run(ExecutorRequest(prompt="hello worker"))
    assert result.ok
    assert result.output == "HELLO WORKER"


@pytest.mark.asyncio
async def test_unencodable_prompt_text_is_replaced() -> None:
    executor = _PythonExecutor("import sys; sys.stdout.write(repr(sys.stdin.buffer.read()))")
    result = await executor.run(ExecutorRequest(prompt="caf\udce9 ok"))
    assert result.ok
    assert result.output == "b'caf? ok'"


@pytest.mark.asyncio
async def test_nonzero_exit_is_reported_not_raised() -> None:
    executor = _PythonExecutor("import sys; sys.stderr.write('bad'); sys.exit(3)")
    result = await executor.run(ExecutorRequest(prompt=""))
    assert result.exit_code == 3
    assert not result.ok
    assert result.stderr == "bad"


@pytest.mark.asyncio
async def test_runs_in_requested_cwd(tmp_path: Path) -> None:
    executor = _PythonExecutor("import os; print(os.getcwd())")
    result = await executor.run(ExecutorRequest(prompt="", cwd=str(tmp_path)))
    assert Path(result.output.strip()).resolve() == tmp_path.resolve()


@pytest.mark.asyncio
async def test_timeout_raises_executor_error() -> None:
    executor = _PythonExecutor("import time; time.sleep(10)", timeout_seconds=0.2)
    with pytest.raises(ExecutorError, match="timed out"):
        await executor.run(ExecutorRequest(prompt=""))


@pytest.mark.asyncio
async def test_missing_binary_raises_not_found() -> None:
    executor = ClaudeExecutor(binary="taskfleet-no-such-binary-xyz")
    with pytest.raises(ExecutorNotFoundError) as excinfo:
        await executor.run(ExecutorRequest(prompt="hi"))
    assert "taskfleet-no-such-binary-xyz" in str(excinfo.value)
    assert "not found" in str(excinfo.value)
