"""Durable, file-backed store for tasks, results, shared context, directives and session state.

Every write goes through :func:`write_json_atomic`, so readers in other
processes only ever observe the previous or the new complete document.
Task writes additionally hold a per-task ``flock`` so the coordinator and
the owning worker cannot interleave a read-modify-write on the same file.
"""

from __future__ import annotations

import contextlib
import json
import logging
import shutil
from pathlib import Path
from typing import Any, Callable, TypeVar

from taskfleet.errors import StoreError
from taskfleet.protocol.io import list_entry_names, write_json_atomic
from taskfleet.protocol.locks import task_lock
from taskfleet.protocol.models import (
    ContextEntry,
    Session,
    SharedContext,
    Task,
    TaskResult,
    TaskStatus,
    default_store_layout,
)

log = logging.getLogger(__name__)

DEFAULT_STORE_DIR = ".taskfleet"
PROJECT_INSTRUCTIONS_FILE = "CLAUDE.md"

T = TypeVar("T")


class FileStore:
    def __init__(self, working_directory: str | Path, store_dir: str = DEFAULT_STORE_DIR) -> None:
        self.working_directory = Path(working_directory)
        self.layout = default_store_layout(self.working_directory / store_dir)

    @property
    def root(self) -> Path:
        return self.layout["root"]

    @property
    def tasks_dir(self) -> Path:
        return self.layout["tasks"]

    @property
    def results_dir(self) -> Path:
        return self.layout["results"]

    @property
    def context_dir(self) -> Path:
        return self.layout["context"]

    @property
    def logs_dir(self) -> Path:
        return self.layout["logs"]

    def init(self) -> None:
        for key in ("root", "tasks", "results", "context", "logs"):
            try:
                self.layout[key].mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StoreError(
                    f"Failed to create {self.layout[key]}: {exc}", path=str(self.layout[key])
                ) from exc
        log.debug("Initialized store at %s", self.root)

    def clean(self) -> None:
        if self.root.exists():
            shutil.rmtree(self.root)

    # --- Tasks ---

    def task_path(self, task_id: str) -> Path:
        return self.tasks_dir / f"{task_id}.json"

    def write_task(self, task: Task) -> None:
        with self._task_lock(task.id):
            self._write(self.task_path(task.id), task.to_dict())

    def read_task(self, task_id: str) -> Task:
        return self._read(self.task_path(task_id), Task.from_dict)

    def list_tasks(self) -> list[Task]:
        return [self._read(self.tasks_dir / name, Task.from_dict) for name in list_entry_names(self.tasks_dir)]

    def update_task_status(self, task_id: str, status: TaskStatus) -> Task:
        with self._task_lock(task_id):
            task = self.read_task(task_id)
            task.status = status
            self._write(self.task_path(task_id), task.to_dict())
        return task

    # --- Results ---

    def result_path(self, task_id: str) -> Path:
        return self.results_dir / f"{task_id}.json"

    def write_result(self, result: TaskResult) -> None:
        self._write(self.result_path(result.task_id), result.to_dict())

    def read_result(self, task_id: str) -> TaskResult:
        return self._read(self.result_path(task_id), TaskResult.from_dict)

    def list_results(self) -> list[TaskResult]:
        return [
            self._read(self.results_dir / name, TaskResult.from_dict)
            for name in list_entry_names(self.results_dir)
        ]

    def has_result(self, task_id: str) -> bool:
        return self.result_path(task_id).exists()

    # --- Context ---

    def read_context(self) -> SharedContext:
        path = self.layout["shared_context"]
        if not path.exists():
            return SharedContext()
        return self._read(path, SharedContext.from_dict)

    def add_context_entry(self, entry: ContextEntry) -> None:
        ctx = self.read_context()
        ctx.entries.append(entry)
        self._write(self.layout["shared_context"], ctx.to_dict())

    # --- Directives ---

    def write_directives(self, directives: list[str]) -> None:
        self._write(self.layout["directives"], {"directives": list(directives)})

    def read_directives(self) -> list[str]:
        path = self.layout["directives"]
        if not path.exists():
            return []
        return self._read(path, _directives_from_dict)

    def read_project_instructions(self) -> str | None:
        path = self.working_directory / PROJECT_INSTRUCTIONS_FILE
        try:
            return path.read_text(encoding="utf-8")
        except OSError:
            return None

    # --- Session ---

    def write_session(self, session: Session) -> None:
        self._write(self.layout["session"], session.to_dict())

    def read_session(self) -> Session:
        return self._read(self.layout["session"], Session.from_dict)

    def mark_session_stopped(self) -> Session:
        session = self.read_session()
        session.status = "stopped"
        self.write_session(session)
        return session

    # --- Helpers ---

    def _task_lock(self, task_id: str) -> contextlib.AbstractContextManager[Path]:
        return task_lock(self.layout["locks"], task_id)

    def _write(self, path: Path, data: Any) -> None:
        try:
            write_json_atomic(path, data)
        except OSError as exc:
            raise StoreError(f"Failed to write {path}: {exc}", path=str(path)) from exc

    def _read(self, path: Path, parse: Callable[[dict[str, Any]], T]) -> T:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Failed to read {path}: {exc}", path=str(path)) from exc
        if not isinstance(raw, dict):
            raise StoreError(f"Failed to read {path}: expected a JSON object", path=str(path))
        try:
            return parse(raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise StoreError(f"Failed to parse {path}: {exc!r}", path=str(path)) from exc


def _directives_from_dict(raw: dict[str, Any]) -> list[str]:
    if isinstance(raw.get("directives"), list):
        return [str(d) for d in raw["directives"] if isinstance(d, str)]
    # Older single-string form.
    content = raw.get("content")
    if isinstance(content, str) and content:
        return [content]
    return []
