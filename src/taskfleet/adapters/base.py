"""Agent executor interface and subprocess implementation."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

from taskfleet.errors import ExecutorError, ExecutorNotFoundError

log = logging.getLogger(__name__)


# Env vars that interfere with nested agent processes (running from inside a
# Claude Code session sets CLAUDECODE=1, and a nested `claude` then refuses
# with "cannot launch inside another session").
_STRIP_ENV_VARS = {
    "CLAUDECODE", "CLAUDE_CODE_ENTRYPOINT", "CLAUDE_REPL",
    "CLAUDE_CODE_PACKAGE_DIR",
}


def clean_env() -> dict[str, str]:
    return {k: v for k, v in os.environ.items() if k not in _STRIP_ENV_VARS}


@dataclass(slots=True)
class ExecutorRequest:
    prompt: str
    system_prompt: str | None = None
    json_schema: dict[str, Any] | None = None
    max_turns: int | None = None
    cwd: str | None = None


@dataclass(slots=True)
class ExecutorResult:
    output: str
    exit_code: int
    duration_ms: int
    stderr: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class AgentExecutor(Protocol):
    async def run(self, request: ExecutorRequest) -> ExecutorResult: ...


class SubprocessExecutor:
    """Runs one executor CLI invocation per request, prompt on stdin.

    Subclasses provide :meth:`build_args`.
    """

    def __init__(
        self,
        backend: str,
        binary: str,
        *,
        model: str = "",
        timeout_seconds: float = 600.0,
        extra_args: list[str] | None = None,
    ) -> None:
        self.backend = backend
        self.binary = binary
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.extra_args = list(extra_args or [])

    def build_args(self, request: ExecutorRequest) -> list[str]:
        raise NotImplementedError

    async def run(self, request: ExecutorRequest) -> ExecutorResult:
        args = self.build_args(request)
        # Lone surrogates (e.g. from surrogateescape-decoded input) cannot be UTF-8 encoded.
        stdin_bytes = request.prompt.encode("utf-8", errors="replace")
        log.info("Running %s with prompt: %s...", self.backend, request.prompt[:100])
        t0 = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=request.cwd,
                env=clean_env(),
                start_new_session=True,
            )
        except FileNotFoundError as exc:
            raise ExecutorNotFoundError(self.binary) from exc
        except (OSError, ValueError) as exc:
            raise ExecutorError(f"Failed to spawn {self.binary}: {exc}") from exc

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                proc.communicate(stdin_bytes),
                timeout=self.timeout_seconds,
            )
        except TimeoutError:
            proc.kill()
            await proc.wait()
            raise ExecutorError(
                f"{self.binary} timed out after {self.timeout_seconds}s"
            ) from None
        except asyncio.CancelledError:
            proc.kill()
            raise

        duration_ms = int((time.monotonic() - t0) * 1000)
        exit_code = proc.returncode if proc.returncode is not None else 1
        stdout_text = (stdout_bytes or b"").decode("utf-8", errors="replace")
        stderr_text = (stderr_bytes or b"").decode("utf-8", errors="replace")
        if exit_code != 0:
            log.error("%s exited with code %d: %s", self.binary, exit_code, stderr_text[-2000:])
        return ExecutorResult(
            output=stdout_text,
            exit_code=exit_code,
            duration_ms=duration_ms,
            stderr=stderr_text,
        )
