"""CLI entrypoint for taskfleet."""

from __future__ import annotations

import asyncio
import shutil
import subprocess
import sys
import uuid
from pathlib import Path
from typing import IO, Any, Callable

import click

from taskfleet.adapters.registry import get_executor
from taskfleet.config.loader import DEFAULT_CONFIG_NAME, DEFAULT_CONFIG_TEXT, load_fleet_yaml
from taskfleet.config.schema import FleetYamlConfig
from taskfleet.coordinator.loop import Coordinator
from taskfleet.errors import ConfigurationError, ExecutorNotFoundError, StoreError
from taskfleet.logging_setup import get_logger, setup_logging
from taskfleet.protocol.models import WORKER_ROLES, Session
from taskfleet.worker.daemon import WorkerDaemon
from taskfleet.workspace.store import FileStore

logger = get_logger(__name__)


@click.group()
def main() -> None:
    """taskfleet: a coordinator and a fleet of agent workers sharing one directory."""


def _common_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    fn = click.option(
        "--config",
        "config_path",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help=f"Config file (default: <cwd>/{DEFAULT_CONFIG_NAME})",
    )(fn)
    fn = click.option(
        "--cwd",
        type=click.Path(file_okay=False, path_type=Path),
        default=None,
        help="Working directory (default: run.working_dir from config)",
    )(fn)
    fn = click.option("--debug", "debug_flag", is_flag=True, help="Enable debug logging")(fn)
    return fn


def _team_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    for role in ("testers", "implementers", "investigators"):
        fn = click.option(f"--{role}", type=click.IntRange(min=0), default=None, help=f"Number of {role}")(fn)
    return fn


def _load(
    config_path: Path | None,
    cwd: Path | None,
    debug_flag: bool,
    team_overrides: dict[str, int | None] | None = None,
) -> tuple[FleetYamlConfig, Path]:
    path = config_path or (cwd or Path.cwd()) / DEFAULT_CONFIG_NAME
    try:
        cfg = load_fleet_yaml(path)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc
    if debug_flag:
        cfg.run.debug = True
    for key, value in (team_overrides or {}).items():
        if value is not None:
            setattr(cfg.team, key, value)
    working_dir = (cwd or Path(cfg.run.working_dir)).resolve()
    cfg.run.working_dir = str(working_dir)
    return cfg, working_dir


def _open_store(cfg: FleetYamlConfig, working_dir: Path) -> FileStore:
    store = FileStore(working_dir, cfg.run.store_dir)
    try:
        store.init()
    except StoreError as exc:
        raise click.ClickException(f"Cannot initialize workspace: {exc}") from exc
    return store


def _doctor_rows(cfg: FleetYamlConfig) -> list[dict[str, Any]]:
    binary = cfg.executor.binary or cfg.executor.backend
    found = shutil.which(binary) is not None
    return [
        {
            "backend": cfg.executor.backend,
            "binary": binary,
            "ok": found,
            "details": "ok" if found else f"missing binary `{binary}`",
        }
    ]


def _print_doctor(rows: list[dict[str, Any]]) -> bool:
    click.echo("Executor preflight:")
    all_ok = True
    for row in rows:
        icon = "OK" if row["ok"] else "FAIL"
        click.echo(f"  [{icon}] backend={row['backend']} binary={row['binary']} - {row['details']}")
        all_ok = all_ok and bool(row["ok"])
    return all_ok


def _build_coordinator(
    cfg: FleetYamlConfig, store: FileStore, on_shutdown: Callable[[], Any] | None = None
) -> Coordinator:
    try:
        executor = get_executor(cfg.executor)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc
    return Coordinator(
        store,
        cfg.team,
        executor,
        config=cfg.coordinator,
        poll_interval_ms=cfg.run.poll_interval_ms,
        planning_max_turns=cfg.executor.planning_max_turns,
        on_shutdown=on_shutdown,
    )


def _run_coordinator(coordinator: Coordinator) -> None:
    try:
        asyncio.run(coordinator.run())
    except ExecutorNotFoundError as exc:
        raise click.ClickException(str(exc)) from exc


@main.command("init")
@click.argument("target_dir", type=click.Path(file_okay=False, path_type=Path), required=False)
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
def init_command(target_dir: Path | None, force: bool) -> None:
    """Write a starter config and create the workspace directories."""
    base = target_dir or Path.cwd()
    base.mkdir(parents=True, exist_ok=True)
    path = base / DEFAULT_CONFIG_NAME
    if path.exists() and not force:
        click.echo(f"Keeping existing {path}")
    else:
        path.write_text(DEFAULT_CONFIG_TEXT, encoding="utf-8")
        click.echo(f"Created {path}")
    cfg, working_dir = _load(path, base, False)
    store = _open_store(cfg, working_dir)
    click.echo(f"Workspace ready at {store.root}")
    click.echo("Next steps:")
    click.echo(f"  taskfleet doctor --cwd {base}")
    click.echo(f"  taskfleet start --cwd {base}")


@main.command("start")
@_common_options
@_team_options
@click.option("--skip-doctor", is_flag=True, help="Skip executor preflight checks")
def start_command(
    config_path: Path | None,
    cwd: Path | None,
    debug_flag: bool,
    investigators: int | None,
    implementers: int | None,
    testers: int | None,
    skip_doctor: bool,
) -> None:
    """Start a session: one background process per worker, coordinator in the foreground."""
    cfg, working_dir = _load(
        config_path,
        cwd,
        debug_flag,
        {"investigators": investigators, "implementers": implementers, "testers": testers},
    )
    if not skip_doctor and not _print_doctor(_doctor_rows(cfg)):
        raise click.ClickException("Doctor check failed. Install the executor or use --skip-doctor")

    store = _open_store(cfg, working_dir)
    setup_logging(
        debug=cfg.run.debug, json_output=cfg.run.json_logs, log_file=store.logs_dir / "coordinator.log"
    )
    session = Session(id=f"session-{uuid.uuid4().hex[:12]}", working_directory=str(working_dir), team=cfg.team)
    store.write_session(session)
    logger.info("session_started", session_id=session.id, team=cfg.team.to_dict())

    procs: list[tuple[str, subprocess.Popen[bytes], IO[Any]]] = []
    for name in cfg.team.worker_names():
        role = name.rsplit("-", 1)[0]
        cmd = [
            sys.executable, "-m", "taskfleet", "worker",
            "--name", name, "--role", role, "--cwd", str(working_dir),
        ]
        if config_path:
            cmd.extend(["--config", str(config_path.resolve())])
        if cfg.run.debug:
            cmd.append("--debug")
        log_fh = open(store.logs_dir / f"{name}.out", "a", encoding="utf-8")  # noqa: SIM115
        procs.append((name, subprocess.Popen(cmd, stdout=log_fh, stderr=log_fh), log_fh))
        logger.info("worker_spawned", worker=name, pid=procs[-1][1].pid)

    def _stop_workers() -> None:
        for name, proc, log_fh in procs:
            if proc.poll() is None:
                proc.terminate()
                try:
                    proc.wait(timeout=5)
                except subprocess.TimeoutExpired:
                    proc.kill()
                    proc.wait()
            log_fh.close()
            logger.info("worker_stopped", worker=name, returncode=proc.returncode)
        try:
            store.mark_session_stopped()
        except StoreError as exc:
            logger.error("session_stop_failed", error=str(exc))

    coordinator = _build_coordinator(cfg, store, on_shutdown=_stop_workers)
    try:
        _run_coordinator(coordinator)
    finally:
        coordinator.shutdown()


@main.command("coordinator")
@_common_options
@_team_options
def coordinator_command(
    config_path: Path | None,
    cwd: Path | None,
    debug_flag: bool,
    investigators: int | None,
    implementers: int | None,
    testers: int | None,
) -> None:
    """Run only the interactive coordinator."""
    cfg, working_dir = _load(
        config_path,
        cwd,
        debug_flag,
        {"investigators": investigators, "implementers": implementers, "testers": testers},
    )
    store = _open_store(cfg, working_dir)
    setup_logging(
        debug=cfg.run.debug, json_output=cfg.run.json_logs, log_file=store.logs_dir / "coordinator.log"
    )
    _run_coordinator(_build_coordinator(cfg, store))


@main.command("worker")
@_common_options
@click.option("--name", required=True, help="Worker identity, e.g. investigator-1")
@click.option("--role", required=True, type=click.Choice(list(WORKER_ROLES)))
def worker_command(
    config_path: Path | None,
    cwd: Path | None,
    debug_flag: bool,
    name: str,
    role: str,
) -> None:
    """Run one worker loop."""
    cfg, working_dir = _load(config_path, cwd, debug_flag)
    store = _open_store(cfg, working_dir)
    setup_logging(
        debug=cfg.run.debug, json_output=cfg.run.json_logs, log_file=store.logs_dir / f"{name}.log"
    )
    try:
        executor = get_executor(cfg.executor)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc
    daemon = WorkerDaemon(
        name,
        role,
        store,
        executor,
        poll_interval_ms=cfg.run.poll_interval_ms,
        max_turns=cfg.executor.task_max_turns,
    )
    asyncio.run(daemon.run())


@main.command("status")
@_common_options
def status_command(config_path: Path | None, cwd: Path | None, debug_flag: bool) -> None:
    """Show session metadata and every persisted task."""
    cfg, working_dir = _load(config_path, cwd, debug_flag)
    store = FileStore(working_dir, cfg.run.store_dir)
    try:
        session = store.read_session()
    except StoreError:
        click.echo("No active session found.")
        return
    click.echo(f"Session: {session.id}")
    click.echo(f"Started: {session.started_at}")
    click.echo(f"Status: {session.status}")
    click.echo(f"Team: {session.team.to_dict()}")
    try:
        tasks = store.list_tasks()
    except StoreError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Tasks: {len(tasks)}")
    for task in tasks:
        click.echo(f"  [{task.status}] {task.assignee}: {task.title}")


@main.command("stop")
@_common_options
def stop_command(config_path: Path | None, cwd: Path | None, debug_flag: bool) -> None:
    """Mark the current session as stopped."""
    cfg, working_dir = _load(config_path, cwd, debug_flag)
    store = FileStore(working_dir, cfg.run.store_dir)
    try:
        session = store.mark_session_stopped()
    except StoreError as exc:
        raise click.ClickException(f"No session to stop: {exc}") from exc
    click.echo(f"Session {session.id} stopped.")


@main.command("doctor")
@_common_options
def doctor_command(config_path: Path | None, cwd: Path | None, debug_flag: bool) -> None:
    """Check that the executor binary is installed."""
    cfg, _ = _load(config_path, cwd, debug_flag)
    ok = _print_doctor(_doctor_rows(cfg))
    raise SystemExit(0 if ok else 1)


if __name__ == "__main__":
    main()
