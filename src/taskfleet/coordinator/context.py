"""Shared context accumulated from task results and replayed into prompts."""

from __future__ import annotations

import logging

from taskfleet.protocol.models import ContextEntry, SharedContext, TaskResult
from taskfleet.workspace.store import FileStore

log = logging.getLogger(__name__)


class ContextManager:
    def __init__(self, store: FileStore) -> None:
        self.store = store

    def add_from_result(self, result: TaskResult, contributor: str) -> bool:
        """Append the result's context contribution, if it has one."""
        if not result.context_contribution:
            return False
        self.store.add_context_entry(
            ContextEntry(
                contributor=contributor,
                task_id=result.task_id,
                summary=result.context_contribution,
            )
        )
        log.info("Added context from %s (%s)", contributor, result.task_id)
        return True

    def get_context(self) -> SharedContext:
        return self.store.read_context()

    def build_summary(self) -> str:
        ctx = self.store.read_context()
        return "\n".join(f"[{e.contributor}] {e.summary}" for e in ctx.entries)
