"""Shared fixtures for taskfleet tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from taskfleet.adapters.base import ExecutorRequest, ExecutorResult
from taskfleet.workspace.store import FileStore


class FakeExecutor:
    """Replays queued results (or raises queued exceptions) and records every request."""

    def __init__(self, *responses: ExecutorResult | BaseException) -> None:
        self.responses = list(responses)
        self.requests: list[ExecutorRequest] = []

    async def run(self, request: ExecutorRequest) -> ExecutorResult:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"unexpected executor call: {request.prompt[:80]!r}")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def envelope(payload: Any, *, cost: float = 0.0, exit_code: int = 0, stderr: str = "") -> ExecutorResult:
    """A ``claude -p --output-format json`` style reply wrapping *payload*."""
    output = json.dumps({"type": "result", "result": json.dumps(payload), "total_cost_usd": cost})
    return ExecutorResult(output=output, exit_code=exit_code, duration_ms=1, stderr=stderr)


@pytest.fixture
def store(tmp_path: Path) -> FileStore:
    s = FileStore(tmp_path)
    s.init()
    return s


@pytest.fixture
def make_executor() -> Callable[..., FakeExecutor]:
    return FakeExecutor


@pytest.fixture
def reply() -> Callable[..., ExecutorResult]:
    return envelope
