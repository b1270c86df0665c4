"""Task dependency resolution over the coordinator's in-memory batch."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable

from taskfleet.protocol.models import TERMINAL_STATUSES, Task
from taskfleet.workspace.store import FileStore

log = logging.getLogger(__name__)


class TaskScheduler:
    def __init__(self, store: FileStore) -> None:
        self.store = store

    def write_tasks(self, tasks: Iterable[Task]) -> None:
        for task in tasks:
            self.store.write_task(task)
            log.info("Wrote task %s: %s -> %s", task.id, task.title, task.assignee)

    def resolve_dependencies(self, all_tasks: list[Task]) -> list[Task]:
        """Move every pending task whose dependencies are all terminal to ``assigned``.

        A failed dependency unblocks its dependents just like a successful
        one. Returns only the tasks transitioned by this call.
        """
        completed = {t.id for t in all_tasks if t.status in TERMINAL_STATUSES}
        newly_assigned: list[Task] = []
        for task in all_tasks:
            if task.status != "pending":
                continue
            if all(dep in completed for dep in task.dependencies):
                task.status = "assigned"
                self.store.write_task(task)
                newly_assigned.append(task)
                log.info("Unblocked task %s: %s", task.id, task.title)
        return newly_assigned

    def is_all_complete(self, tasks: list[Task]) -> bool:
        return all(t.status in TERMINAL_STATUSES for t in tasks)

    def get_active_tasks(self, tasks: list[Task]) -> list[Task]:
        return [t for t in tasks if t.status in {"assigned", "running"}]

    def get_pending_tasks(self, tasks: list[Task]) -> list[Task]:
        return [t for t in tasks if t.status == "pending"]

    def get_status_summary(self, tasks: list[Task]) -> dict[str, int]:
        return dict(Counter(t.status for t in tasks))
