"""Configuration schema for taskfleet YAML files."""

from __future__ import annotations

from dataclasses import dataclass, field

from taskfleet.protocol.models import TeamConfig


@dataclass(slots=True)
class RunConfig:
    working_dir: str = "."
    store_dir: str = ".taskfleet"
    poll_interval_ms: int = 500
    debug: bool = False
    json_logs: bool = False


@dataclass(slots=True)
class ExecutorConfig:
    backend: str = "claude"
    binary: str = "claude"
    model: str = ""  # empty string = use the tool's own default model
    planning_max_turns: int = 1
    task_max_turns: int = 10
    timeout_seconds: float = 600.0
    extra_args: list[str] = field(default_factory=list)


@dataclass(slots=True)
class CoordinatorConfig:
    compliance_checks: bool = True
    classify_input: bool = False
    prompt: str = "taskfleet> "


@dataclass(slots=True)
class FleetYamlConfig:
    version: int = 1
    run: RunConfig = field(default_factory=RunConfig)
    team: TeamConfig = field(default_factory=TeamConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    coordinator: CoordinatorConfig = field(default_factory=CoordinatorConfig)
