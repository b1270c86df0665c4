from __future__ import annotations

from typing import Any, Callable

import pytest

from taskfleet.adapters.base import ExecutorResult
from taskfleet.coordinator.compliance import COMPLIANCE_SYSTEM_PROMPT, ComplianceChecker, should_check
from taskfleet.errors import ExecutorNotFoundError
from taskfleet.protocol.models import Task, TaskResult
from taskfleet.protocol.schemas import COMPLIANCE_CHECK_SCHEMA

TASK = Task(id="t1", title="Add flag", description="Add --dry-run", role="implementer", assignee="implementer-1")
SUCCESS = TaskResult(task_id="t1", status="success", output="added the flag")
FAILURE = TaskResult(task_id="t1", status="failure", output="crashed")


@pytest.mark.parametrize(
    ("result", "directives", "expected"),
    [
        (SUCCESS, ["use type hints"], True),
        (SUCCESS, [], False),
        (FAILURE, ["use type hints"], False),
        (FAILURE, [], False),
    ],
)
def test_should_check(result: TaskResult, directives: list[str], expected: bool) -> None:
    assert should_check(result, directives) is expected


@pytest.mark.asyncio
async def test_check_skipped_without_executor_call(make_executor: Callable[..., Any]) -> None:
    executor = make_executor()
    checker = ComplianceChecker(executor)
    assert await checker.check(FAILURE, TASK, ["use type hints"]) is None
    assert await checker.check(SUCCESS, TASK, []) is None
    assert executor.requests == []


@pytest.mark.asyncio
async def test_check_reports_violations(make_executor: Callable[..., Any], reply: Callable[..., ExecutorResult]) -> None:
    executor = make_executor(
        reply(
            {
                "compliant": False,
                "violations": [{"directive": "use type hints", "reason": "missing on main()"}],
                "summary": "1 violation",
            }
        )
    )
    result = await ComplianceChecker(executor).check(SUCCESS, TASK, ["use type hints", "no new deps"])

    assert result is not None
    assert result.compliant is False
    assert result.violations[0].directive == "use type hints"
    assert result.summary == "1 violation"
    request = executor.requests[0]
    assert request.json_schema == COMPLIANCE_CHECK_SCHEMA
    assert request.system_prompt == COMPLIANCE_SYSTEM_PROMPT
    assert request.max_turns == 1
    assert "1. use type hints" in request.prompt
    assert "2. no new deps" in request.prompt
    assert "added the flag" in request.prompt


@pytest.mark.asyncio
async def test_check_compliant(make_executor: Callable[..., Any], reply: Callable[..., ExecutorResult]) -> None:
    executor = make_executor(reply({"compliant": True, "violations": [], "summary": "ok"}))
    result = await ComplianceChecker(executor).check(SUCCESS, TASK, ["be brief"])
    assert result is not None
    assert result.compliant
    assert result.violations == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        ExecutorResult(output="", exit_code=1, duration_ms=1),
        ExecutorResult(output="not json", exit_code=0, duration_ms=1),
        ExecutorNotFoundError("claude"),
        RuntimeError("unexpected"),
        UnicodeEncodeError("utf-8", "\udce9", 0, 1, "surrogates not allowed"),
    ],
)
async def test_check_errors_are_absorbed(make_executor: Callable[..., Any], response: Any) -> None:
    executor = make_executor(response)
    assert await ComplianceChecker(executor).check(SUCCESS, TASK, ["be brief"]) is None
