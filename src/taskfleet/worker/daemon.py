"""Worker loop: claim the next task assigned to this worker, execute it, write its result."""

from __future__ import annotations

import asyncio
import logging
import signal
import time
from typing import Any

import click

from taskfleet.adapters.base import AgentExecutor, ExecutorRequest
from taskfleet.adapters.parsing import extract_cost_usd, parse_json_output
from taskfleet.errors import ConfigurationError, ExecutorError, FleetError
from taskfleet.protocol.models import WORKER_ROLES, Artifact, Task, TaskResult
from taskfleet.protocol.schemas import TASK_RESULT_SCHEMA
from taskfleet.worker.prompts import PromptBuilder
from taskfleet.workspace.store import FileStore

log = logging.getLogger(__name__)


class WorkerDaemon:
    """Polls the store for tasks assigned to ``name``.

    Once a task is claimed (status ``running``), the iteration always ends
    with a written result; executor crashes, non-zero exits and malformed
    output all become ``failure`` results.
    """

    def __init__(
        self,
        name: str,
        role: str,
        store: FileStore,
        executor: AgentExecutor,
        *,
        poll_interval_ms: int = 500,
        max_turns: int = 10,
        prompt_builder: PromptBuilder | None = None,
    ) -> None:
        if role not in WORKER_ROLES:
            raise ConfigurationError(f"Unknown worker role {role!r}; expected one of {WORKER_ROLES}")
        self.name = name
        self.role = role
        self.store = store
        self.executor = executor
        self.poll_interval_ms = poll_interval_ms
        self.max_turns = max_turns
        self.prompt_builder = prompt_builder or PromptBuilder()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def run(self, *, install_signal_handlers: bool = True) -> None:
        self._running = True
        if install_signal_handlers:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.add_signal_handler(sig, self.stop)
                except (NotImplementedError, RuntimeError):
                    pass
        log.info("Worker %s (%s) started", self.name, self.role)
        click.echo(f"\n{self.name} ({self.role}) - Ready\n")

        while self._running:
            try:
                await self.poll_once()
            except FleetError as exc:
                log.error("Poll error: %s", exc)
            await asyncio.sleep(self.poll_interval_ms / 1000.0)

    def stop(self) -> None:
        if self._running:
            self._running = False
            log.info("Worker %s stopped", self.name)

    async def poll_once(self) -> TaskResult | None:
        """Run the first task assigned to this worker, if any."""
        mine = next(
            (t for t in self.store.list_tasks() if t.assignee == self.name and t.status == "assigned"),
            None,
        )
        if mine is None:
            return None
        return await self.execute_task(mine)

    async def execute_task(self, task: Task) -> TaskResult:
        log.info("Executing task %s: %s", task.id, task.title)
        click.echo(f"\nExecuting: {task.title}\n")

        self.store.update_task_status(task.id, "running")
        started = time.monotonic()
        try:
            result = await self._execute(task, started)
        except Exception as exc:
            log.error("Task %s error: %s", task.id, exc)
            result = TaskResult(
                task_id=task.id,
                status="failure",
                output=f"Error: {exc}",
                duration_ms=_elapsed_ms(started),
            )

        self.store.write_result(result)
        if result.status == "success":
            log.info("Task %s completed successfully", task.id)
            click.echo(f"\nCompleted: {task.title}\n")
        else:
            log.error("Task %s failed", task.id)
            click.echo(f"\nFailed: {task.title}\n")
        return result

    async def _execute(self, task: Task, started: float) -> TaskResult:
        prompt = self.prompt_builder.build_task_prompt(
            task, self.store.read_context(), self.store.read_directives()
        )
        run = await self.executor.run(
            ExecutorRequest(
                prompt=prompt,
                system_prompt=self.prompt_builder.get_system_prompt(self.role),
                json_schema=TASK_RESULT_SCHEMA,
                max_turns=self.max_turns,
                cwd=str(self.store.working_directory),
            )
        )
        if run.exit_code != 0:
            return TaskResult(
                task_id=task.id,
                status="failure",
                output=run.output or run.stderr or f"Executor exited with code {run.exit_code}",
                cost_usd=extract_cost_usd(run.output),
                duration_ms=_elapsed_ms(started),
            )

        parsed = parse_json_output(run.output)
        if not isinstance(parsed, dict):
            raise ExecutorError(f"Task output is not a JSON object: {str(parsed)[:200]}")
        return TaskResult(
            task_id=task.id,
            status="success",
            output=str(parsed.get("output", "")),
            artifacts=_artifacts(parsed.get("artifacts")),
            context_contribution=str(parsed.get("context_contribution") or ""),
            cost_usd=extract_cost_usd(run.output),
            duration_ms=_elapsed_ms(started),
        )


def _artifacts(raw: Any) -> list[Artifact]:
    if not isinstance(raw, list):
        return []
    return [Artifact.from_dict(a) for a in raw if isinstance(a, dict)]


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
