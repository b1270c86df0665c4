"""Executor registry for built-in backends."""

from __future__ import annotations

from taskfleet.adapters.base import AgentExecutor
from taskfleet.adapters.claude import ClaudeExecutor
from taskfleet.config.schema import ExecutorConfig
from taskfleet.errors import ConfigurationError


def get_executor(cfg: ExecutorConfig) -> AgentExecutor:
    b = cfg.backend.lower()
    if b == "claude":
        return ClaudeExecutor(
            binary=cfg.binary or "claude",
            model=cfg.model,
            timeout_seconds=cfg.timeout_seconds,
            extra_args=cfg.extra_args,
        )
    raise ConfigurationError(f"Unsupported executor backend: {cfg.backend}")
