"""YAML config loader for taskfleet."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from taskfleet.config.schema import CoordinatorConfig, ExecutorConfig, FleetYamlConfig, RunConfig
from taskfleet.errors import ConfigurationError
from taskfleet.protocol.models import TeamConfig

DEFAULT_CONFIG_NAME = "taskfleet.yaml"

DEFAULT_CONFIG_TEXT = """version: 1
run:
  working_dir: .
  store_dir: .taskfleet
  poll_interval_ms: 500
team:
  investigators: 2
  implementers: 2
  testers: 1
executor:
  backend: claude
  binary: claude
  model: ""
  task_max_turns: 10
  timeout_seconds: 600
coordinator:
  compliance_checks: true
  classify_input: false
"""


def load_fleet_yaml(path: str | Path) -> FleetYamlConfig:
    p = Path(path)
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) if p.exists() else {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {p}: {exc}") from exc
    if not isinstance(raw, dict):
        raw = {}

    run_raw = _section(raw, "run")
    team_raw = _section(raw, "team")
    executor_raw = _section(raw, "executor")
    coordinator_raw = _section(raw, "coordinator")

    try:
        cfg = FleetYamlConfig(
            version=int(raw.get("version", 1)),
            run=RunConfig(**_pick(run_raw, RunConfig)),
            team=TeamConfig(**_pick(team_raw, TeamConfig)),
            executor=ExecutorConfig(**_pick(executor_raw, ExecutorConfig)),
            coordinator=CoordinatorConfig(**_pick(coordinator_raw, CoordinatorConfig)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid config {p}: {exc}") from exc
    validate_config(cfg)
    return cfg


def validate_config(cfg: FleetYamlConfig) -> None:
    for role, count in (
        ("investigators", cfg.team.investigators),
        ("implementers", cfg.team.implementers),
        ("testers", cfg.team.testers),
    ):
        if not isinstance(count, int) or count < 0:
            raise ConfigurationError(f"team.{role} must be a non-negative integer, got {count!r}")
    if cfg.run.poll_interval_ms <= 0:
        raise ConfigurationError("run.poll_interval_ms must be positive")


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key, {})
    return value if isinstance(value, dict) else {}


def _pick(raw: dict[str, Any], model_type: type[Any]) -> dict[str, Any]:
    allowed = set(model_type.__dataclass_fields__.keys())
    return {k: v for k, v in raw.items() if k in allowed}
