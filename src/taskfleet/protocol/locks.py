"""Advisory per-task locks around task-file read-modify-write cycles."""

from __future__ import annotations

import contextlib
import fcntl
from pathlib import Path
from typing import Iterator


def task_lock_path(locks_dir: Path, task_id: str) -> Path:
    return locks_dir / f"{task_id}.lock"


@contextlib.contextmanager
def task_lock(locks_dir: Path, task_id: str) -> Iterator[Path]:
    """Hold an exclusive ``flock`` on ``<locks_dir>/<task_id>.lock`` for the block.

    The lock only orders writers that also take it; the task file itself is
    still replaced atomically, so lock-free readers stay safe.
    """
    path = task_lock_path(locks_dir, task_id)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a+", encoding="utf-8") as handle:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        try:
            yield path
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
