from __future__ import annotations

import pytest

from taskfleet.protocol.models import ContextEntry, SharedContext, Task
from taskfleet.worker.prompts import ROLE_SYSTEM_PROMPTS, PromptBuilder

TASK = Task(id="task-1", title="Add flag", description="Add --dry-run to start", role="implementer", assignee="implementer-1")


def test_system_prompt_per_role() -> None:
    builder = PromptBuilder()
    for role in ("investigator", "implementer", "tester"):
        assert builder.get_system_prompt(role) == ROLE_SYSTEM_PROMPTS[role]
    assert "Do NOT modify any files" in builder.get_system_prompt("investigator")


def test_system_prompt_unknown_role() -> None:
    with pytest.raises(ValueError):
        PromptBuilder().get_system_prompt("janitor")


def test_task_prompt_minimal() -> None:
    prompt = PromptBuilder().build_task_prompt(TASK)
    assert prompt == "# Task: Add flag\n\nAdd --dry-run to start\n"


def test_task_prompt_full() -> None:
    task = Task(
        id="task-1",
        title="Add flag",
        description="Add --dry-run",
        role="implementer",
        assignee="implementer-1",
        context="start lives in cli.py",
    )
    ctx = SharedContext(entries=[ContextEntry(contributor="investigator-1", task_id="task-0", summary="uses click")])
    prompt = PromptBuilder().build_task_prompt(task, ctx, ["keep it small"])
    sections = [
        "# Task: Add flag",
        "## Additional Context",
        "## Shared Context from Other Agents",
        "### From investigator-1 (task-0)",
        "## Coordinator Directives",
        "- keep it small",
    ]
    positions = [prompt.index(s) for s in sections]
    assert positions == sorted(positions)


def test_planning_prompt() -> None:
    builder = PromptBuilder()
    bare = builder.build_planning_prompt("ship it")
    assert bare.startswith("# User Request\n\nship it\n")
    assert "## Current Project Context" not in bare
    assert "## Coordinator Directives" not in bare

    full = builder.build_planning_prompt("ship it", "[tester-1] tests pass", ["no new deps"])
    assert "## Current Project Context\n[tester-1] tests pass" in full
    assert "- no new deps" in full
