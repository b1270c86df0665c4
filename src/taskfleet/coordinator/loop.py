"""Coordinator control loop: operator input in, task batches out, results back in."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import replace
from typing import Any, Callable, Literal

import click

from taskfleet.adapters.base import AgentExecutor
from taskfleet.config.schema import CoordinatorConfig
from taskfleet.coordinator.classifier import InputClassifier
from taskfleet.coordinator.compliance import ComplianceChecker, should_check
from taskfleet.coordinator.context import ContextManager
from taskfleet.coordinator.planner import TaskPlanner
from taskfleet.coordinator.scheduler import TaskScheduler
from taskfleet.errors import ExecutorNotFoundError, FleetError
from taskfleet.protocol.models import Task, TaskResult, TeamConfig
from taskfleet.workspace.store import FileStore
from taskfleet.workspace.watcher import Watcher

log = logging.getLogger(__name__)

Outcome = Literal["shutdown"] | None

COMMANDS: dict[str, str] = {
    "status": "Show current task status",
    "quit": "Shut down the session",
    "exit": "Shut down the session",
    "help": "Show available commands",
    "directives": "List current directives",
}
LEGACY_STATUS = {"status"}
LEGACY_QUIT = {"quit", "exit"}

STATUS_ICONS = {
    "success": "[done]",
    "failure": "[fail]",
    "running": "[run ]",
    "assigned": "[todo]",
    "pending": "[wait]",
}


async def prompt_lines(prompt: str) -> AsyncIterator[str]:
    """Yield operator input lines until EOF or Ctrl-C."""
    loop = asyncio.get_running_loop()

    def _read() -> str | None:
        try:
            return click.prompt(prompt, default="", show_default=False, prompt_suffix="")
        except click.Abort:
            return None

    while True:
        line = await loop.run_in_executor(None, _read)
        if line is None:
            return
        yield line


class Coordinator:
    """Owns the active task batch and drives it to completion.

    The batch list is only mutated from this object's own coroutines;
    :attr:`tasks` hands out copies.
    """

    def __init__(
        self,
        store: FileStore,
        team: TeamConfig,
        executor: AgentExecutor,
        *,
        config: CoordinatorConfig | None = None,
        poll_interval_ms: int = 500,
        planning_max_turns: int = 1,
        on_shutdown: Callable[[], Any] | None = None,
        watcher: Watcher | None = None,
        planner: TaskPlanner | None = None,
        compliance_checker: ComplianceChecker | None = None,
        classifier: InputClassifier | None = None,
    ) -> None:
        self.store = store
        self.team = team
        self.config = config or CoordinatorConfig()
        self.poll_interval_ms = poll_interval_ms
        self.on_shutdown = on_shutdown
        self.watcher = watcher or Watcher("coordinator-watcher")
        self.planner = planner or TaskPlanner(executor, max_turns=planning_max_turns)
        self.scheduler = TaskScheduler(store)
        self.context_manager = ContextManager(store)
        self.compliance_checker = compliance_checker or ComplianceChecker(executor)
        self.classifier = classifier or InputClassifier(executor)

        self._tasks: list[Task] = []
        self._directives: list[str] = []
        self._shut_down = False

    @property
    def tasks(self) -> list[Task]:
        return [replace(t, dependencies=list(t.dependencies)) for t in self._tasks]

    @property
    def directives(self) -> list[str]:
        return list(self._directives)

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    def start(self) -> None:
        """Create the store and start watching for results. Must run inside the event loop."""
        self.store.init()
        self.watcher.watch(self.store.results_dir, self.handle_result, self.poll_interval_ms)
        log.info("Coordinator started. Waiting for input...")

    async def run(self, lines: AsyncIterator[str] | None = None) -> None:
        self.start()
        click.echo("\ntaskfleet coordinator")
        click.echo("Type your request and press Enter. /help lists commands.\n")
        source = lines if lines is not None else prompt_lines(self.config.prompt)
        try:
            async for line in source:
                text = line.strip()
                if not text:
                    continue
                try:
                    outcome = await self.route_input(text)
                except ExecutorNotFoundError as exc:
                    log.error("Executor unavailable: %s", exc)
                    raise
                except FleetError as exc:
                    log.error("Failed to handle input: %s", exc)
                    click.echo(f"Error: {exc}", err=True)
                    continue
                except Exception as exc:
                    log.exception("Unexpected error handling input")
                    click.echo(f"Error: {exc}", err=True)
                    continue
                if outcome == "shutdown":
                    break
        finally:
            self.shutdown()

    async def route_input(self, text: str) -> Outcome:
        """Dispatch one line of operator input.

        ``/`` introduces a coordinator command; any other ``/<text>`` is
        recorded as a directive. Bare ``status``/``quit``/``exit`` are
        still honoured. Everything else is a work request.
        """
        if text.startswith("/"):
            body = text[1:]
            cmd = body.strip().lower()
            if cmd == "status":
                self.print_status()
                return None
            if cmd in {"quit", "exit"}:
                self.shutdown()
                return "shutdown"
            if cmd == "help":
                self.print_help()
                return None
            if cmd == "directives":
                self.print_directives()
                return None
            self.add_directive(body.strip())
            return None

        if text in LEGACY_STATUS:
            self.print_status()
            return None
        if text in LEGACY_QUIT:
            self.shutdown()
            return "shutdown"

        if self.config.classify_input:
            classification = await self.classifier.classify(
                text,
                team=self.team,
                task_summary=self._status_line() if self._tasks else None,
                project_instructions=self.store.read_project_instructions(),
            )
            if classification.target == "coordinator":
                click.echo(classification.response)
                return None

        await self.handle_request(text)
        return None

    def add_directive(self, directive: str) -> None:
        if not directive:
            click.echo("Empty directive ignored.")
            return
        self._directives.append(directive)
        self.store.write_directives(self._directives)
        click.echo(f"Directive added: {directive}")
        log.info("Directive added: %s", directive)

    async def handle_request(self, request: str) -> list[Task]:
        """Plan *request*, assign the batch and write it to the store."""
        log.info("Processing request: %s", request)
        click.echo("\nPlanning tasks...\n")

        summary = self.context_manager.build_summary()
        plan = await self.planner.plan_tasks(
            request,
            summary or None,
            cwd=str(self.store.working_directory),
            directives=self._directives or None,
        )

        click.echo(f"\nPlan: {plan.summary}")
        click.echo(f"Tasks: {len(plan.tasks)}\n")
        for planned in plan.tasks:
            click.echo(f"  [{planned.role}] {planned.title}")
        click.echo("")

        tasks = self.planner.assign_tasks(plan, self.team)
        self._tasks = tasks
        self.scheduler.write_tasks(tasks)
        log.info("Dispatched %d tasks", len(tasks))
        return self.tasks

    async def handle_result(self, filename: str) -> None:
        """React to a result file: settle its task, share context, unblock dependents."""
        task_id = filename.removesuffix(".json")
        batch = self._tasks
        task = next((t for t in batch if t.id == task_id), None)
        if task is None:
            log.debug("Ignoring result for unknown task %s", task_id)
            return
        if task.is_terminal:
            log.debug("Ignoring repeated result for %s", task_id)
            return

        try:
            result = self.store.read_result(task_id)
            task.status = result.status
            self.store.write_task(task)
            self.context_manager.add_from_result(result, task.assignee)
        except FleetError as exc:
            log.error("Failed to handle result %s: %s", task_id, exc)
            return

        if self.config.compliance_checks and should_check(result, self._directives):
            try:
                await self._report_compliance(result, task)
            except Exception:
                log.exception("Compliance check for %s failed", task_id)

        log.info("Task %s completed (%s): %s", task_id, result.status, task.title)

        try:
            newly_assigned = self.scheduler.resolve_dependencies(batch)
        except FleetError as exc:
            log.error("Failed to unblock dependents of %s: %s", task_id, exc)
            return
        if newly_assigned:
            log.info("Unblocked %d tasks", len(newly_assigned))

        if batch is self._tasks and self.scheduler.is_all_complete(batch):
            click.echo("\nAll tasks completed!\n")
            self.print_status()

    async def _report_compliance(self, result: TaskResult, task: Task) -> None:
        compliance = await self.compliance_checker.check(result, task, list(self._directives))
        if compliance is not None and not compliance.compliant:
            log.warning("Task %s compliance violations: %s", task.id, compliance.summary)
            click.echo(f'\nCompliance: "{task.title}": {compliance.summary}')
            for violation in compliance.violations:
                click.echo(f'   - "{violation.directive}": {violation.reason}')

    def _status_line(self) -> str:
        summary = self.scheduler.get_status_summary(self._tasks)
        return ", ".join(f"{status}: {count}" for status, count in sorted(summary.items()))

    def print_status(self) -> None:
        if not self._tasks:
            click.echo("No active tasks.")
            return
        click.echo("\n--- Task Status ---")
        for task in self._tasks:
            icon = STATUS_ICONS.get(task.status, "[ ?  ]")
            click.echo(f"  {icon} [{task.assignee}] {task.title} ({task.status})")
        click.echo(f"\nTotal: {self._status_line()}\n")

    def print_help(self) -> None:
        click.echo("\n--- taskfleet commands ---")
        for name, text in COMMANDS.items():
            click.echo(f"  /{name:<12}{text}")
        click.echo(f"  /{'<text>':<12}Add a coordinator directive")
        click.echo("")
        click.echo("Any other input is treated as a task request.\n")

    def print_directives(self) -> None:
        if not self._directives:
            click.echo("No directives set.")
            return
        click.echo("\n--- Coordinator Directives ---")
        for directive in self._directives:
            click.echo(f"  - {directive}")
        click.echo("")

    def shutdown(self) -> None:
        """Stop watching and fire the shutdown hook. Safe to call more than once."""
        if self._shut_down:
            return
        self._shut_down = True
        log.info("Shutting down...")
        self.watcher.stop()
        if self.on_shutdown is not None:
            self.on_shutdown()
