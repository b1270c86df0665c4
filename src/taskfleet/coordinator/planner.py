"""Request decomposition into a dependency-ordered task batch."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from typing import Any

from taskfleet.adapters.base import AgentExecutor, ExecutorRequest
from taskfleet.adapters.parsing import parse_json_output
from taskfleet.errors import PlanningError
from taskfleet.protocol.models import PlannedTask, Task, TaskPlan, TeamConfig
from taskfleet.protocol.schemas import TASK_PLAN_SCHEMA
from taskfleet.worker.prompts import PLANNING_SYSTEM_PROMPT, PromptBuilder

log = logging.getLogger(__name__)


def new_task_id() -> str:
    return f"task-{uuid.uuid4().hex[:8]}"


def normalize_plan(raw: Any) -> TaskPlan:
    """Coerce executor output into a plan; a missing or non-list ``tasks`` becomes ``[]``."""
    if not isinstance(raw, dict):
        log.warning("Plan is not an object (got %s), defaulting to empty", type(raw).__name__)
        return TaskPlan()
    tasks_raw = raw.get("tasks")
    if not isinstance(tasks_raw, list):
        log.warning(
            "Plan tasks is not a list (got %s), defaulting to empty", type(tasks_raw).__name__
        )
        tasks_raw = []
    summary = raw.get("summary")
    return TaskPlan(
        tasks=[PlannedTask.from_dict(t) for t in tasks_raw if isinstance(t, dict)],
        summary=summary if isinstance(summary, str) else "",
    )


def pick_worker(role: str, counters: dict[str, int], team: TeamConfig) -> str:
    """Round-robin: the n-th task of a role (0-based) goes to ``<role>-{n % capacity + 1}``."""
    capacity = team.capacity(role)
    if capacity == 0:
        log.warning("No %ss configured; task will wait for %s-1", role, role)
        capacity = 1
    idx = counters.get(role, 0) % capacity + 1
    counters[role] = counters.get(role, 0) + 1
    return f"{role}-{idx}"


def assign_tasks(plan: TaskPlan, team: TeamConfig) -> list[Task]:
    """Mint ids for every planned task, then resolve dependency titles to those ids.

    A dependency title that matches no planned title is dropped. When two
    planned tasks share a title, the first one answers to it.
    """
    ids = [new_task_id() for _ in plan.tasks]
    title_to_id: dict[str, str] = {}
    for planned, task_id in zip(plan.tasks, ids):
        title_to_id.setdefault(planned.title, task_id)

    counters: dict[str, int] = {}
    tasks: list[Task] = []
    for planned, task_id in zip(plan.tasks, ids):
        dependencies = [title_to_id[d] for d in planned.dependencies if d in title_to_id]
        dropped = [d for d in planned.dependencies if d not in title_to_id]
        if dropped:
            log.debug("Task %r: dropping unresolved dependencies %s", planned.title, dropped)
        tasks.append(
            Task(
                id=task_id,
                title=planned.title,
                description=planned.description,
                role=planned.role,
                assignee=pick_worker(planned.role, counters, team),
                status="pending" if dependencies else "assigned",
                dependencies=dependencies,
            )
        )
    return tasks


class TaskPlanner:
    def __init__(
        self,
        executor: AgentExecutor,
        prompt_builder: PromptBuilder | None = None,
        *,
        max_turns: int = 1,
    ) -> None:
        self.executor = executor
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.max_turns = max_turns

    async def plan_tasks(
        self,
        user_request: str,
        context_summary: str | None = None,
        cwd: str | None = None,
        directives: Sequence[str] | None = None,
    ) -> TaskPlan:
        prompt = self.prompt_builder.build_planning_prompt(
            user_request, context_summary, list(directives) if directives else None
        )
        result = await self.executor.run(
            ExecutorRequest(
                prompt=prompt,
                system_prompt=PLANNING_SYSTEM_PROMPT,
                json_schema=TASK_PLAN_SCHEMA,
                max_turns=self.max_turns,
                cwd=cwd,
            )
        )
        if result.exit_code != 0:
            raise PlanningError(
                f"Task planning failed with exit code {result.exit_code}",
                exit_code=result.exit_code,
            )
        return normalize_plan(parse_json_output(result.output))

    def assign_tasks(self, plan: TaskPlan, team: TeamConfig) -> list[Task]:
        return assign_tasks(plan, team)
