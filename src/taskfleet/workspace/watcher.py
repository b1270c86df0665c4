"""Poll-based change detection for store directories.

Entries are found by listing the directory on a timer, not through
inotify/kqueue. Event latency is bounded by the poll interval.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import os
from pathlib import Path
from typing import Any, Callable

from taskfleet.protocol.io import is_entry_name

log = logging.getLogger(__name__)

WatchCallback = Callable[[str], Any]


def scan_directory(directory: Path) -> dict[str, int]:
    """Map entry name -> mtime (ns) for every non-temporary JSON entry in *directory*."""
    out: dict[str, int] = {}
    try:
        names = os.listdir(directory)
    except OSError:
        # Directory may not exist yet.
        return out
    for name in names:
        if not is_entry_name(name):
            continue
        try:
            out[name] = (directory / name).stat().st_mtime_ns
        except FileNotFoundError:
            continue
    return out


class Watcher:
    """Watches any number of directories, one polling coroutine each.

    A callback may be a plain function or a coroutine function; coroutine
    callbacks are awaited inside the scan, so one directory's scan-then-diff
    cycle always completes before its next poll starts.
    """

    def __init__(self, name: str = "watcher") -> None:
        self.name = name
        self._tasks: list[asyncio.Task[None]] = []
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def watch(self, directory: str | Path, callback: WatchCallback, interval_ms: int = 500) -> None:
        """Baseline-scan *directory* now, then report new or modified entries every *interval_ms*."""
        if self._stopped:
            raise RuntimeError(f"{self.name} is stopped")
        path = Path(directory)
        baseline = scan_directory(path)
        task = asyncio.get_running_loop().create_task(
            self._poll(path, callback, max(interval_ms, 1) / 1000.0, baseline),
            name=f"{self.name}:{path.name}",
        )
        self._tasks.append(task)
        log.debug("%s watching %s (%d known entries)", self.name, path, len(baseline))

    def stop(self) -> None:
        self._stopped = True
        for task in self._tasks:
            task.cancel()
        self._tasks = []

    async def _poll(
        self,
        directory: Path,
        callback: WatchCallback,
        interval_s: float,
        known: dict[str, int],
    ) -> None:
        while not self._stopped:
            await asyncio.sleep(interval_s)
            current = scan_directory(directory)
            for name, mtime in current.items():
                if self._stopped:
                    return
                previous = known.get(name)
                if previous is not None and previous >= mtime:
                    continue
                log.debug("%s detected change: %s", self.name, name)
                try:
                    outcome = callback(name)
                    if inspect.isawaitable(outcome):
                        await outcome
                except Exception:
                    log.exception("%s callback failed for %s", self.name, name)
            known = current
