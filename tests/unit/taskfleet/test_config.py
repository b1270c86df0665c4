from __future__ import annotations

from pathlib import Path

import pytest

from taskfleet.config.loader import DEFAULT_CONFIG_TEXT, load_fleet_yaml
from taskfleet.errors import ConfigurationError
from taskfleet.protocol.models import TeamConfig


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    cfg = load_fleet_yaml(tmp_path / "absent.yaml")
    assert cfg.team == TeamConfig(2, 2, 1)
    assert cfg.run.store_dir == ".taskfleet"
    assert cfg.run.poll_interval_ms == 500
    assert cfg.executor.backend == "claude"
    assert cfg.coordinator.compliance_checks is True
    assert cfg.coordinator.classify_input is False


def test_default_template_loads(tmp_path: Path) -> None:
    path = tmp_path / "taskfleet.yaml"
    path.write_text(DEFAULT_CONFIG_TEXT, encoding="utf-8")
    cfg = load_fleet_yaml(path)
    assert cfg.version == 1
    assert cfg.executor.task_max_turns == 10
    assert cfg.executor.timeout_seconds == 600


def test_overrides_and_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "taskfleet.yaml"
    path.write_text(
        """version: 1
run:
  poll_interval_ms: 50
  colour: purple
team:
  investigators: 1
  implementers: 3
  testers: 0
executor:
  model: sonnet
  extra_args: ["--verbose"]
coordinator:
  classify_input: true
unknown_section:
  a: 1
""",
        encoding="utf-8",
    )
    cfg = load_fleet_yaml(path)
    assert cfg.run.poll_interval_ms == 50
    assert cfg.team == TeamConfig(1, 3, 0)
    assert cfg.team.worker_names() == ["investigator-1", "implementer-1", "implementer-2", "implementer-3"]
    assert cfg.executor.model == "sonnet"
    assert cfg.executor.extra_args == ["--verbose"]
    assert cfg.coordinator.classify_input is True


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "taskfleet.yaml"
    path.write_text("", encoding="utf-8")
    assert load_fleet_yaml(path).team == TeamConfig()


@pytest.mark.parametrize(
    "text",
    [
        "team: {investigators: -1}\n",
        "team: {testers: two}\n",
        "run: {poll_interval_ms: 0}\n",
        "run: [unclosed\n",
    ],
)
def test_invalid_config_raises(tmp_path: Path, text: str) -> None:
    path = tmp_path / "taskfleet.yaml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_fleet_yaml(path)
