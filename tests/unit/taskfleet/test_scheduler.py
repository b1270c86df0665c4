from __future__ import annotations

from taskfleet.coordinator.planner import assign_tasks
from taskfleet.coordinator.scheduler import TaskScheduler
from taskfleet.protocol.models import PlannedTask, Task, TaskPlan, TeamConfig
from taskfleet.workspace.store import FileStore


def _chain() -> list[Task]:
    return [
        Task(id="a", title="A", description="", role="investigator", assignee="investigator-1", status="assigned"),
        Task(id="b", title="B", description="", role="implementer", assignee="implementer-1", dependencies=["a"]),
        Task(id="c", title="C", description="", role="tester", assignee="tester-1", dependencies=["b"]),
    ]


def test_write_tasks_persists_batch(store: FileStore) -> None:
    scheduler = TaskScheduler(store)
    scheduler.write_tasks(_chain())
    assert [t.id for t in store.list_tasks()] == ["a", "b", "c"]


def test_chain_unblocks_one_step_at_a_time(store: FileStore) -> None:
    scheduler = TaskScheduler(store)
    tasks = _chain()
    scheduler.write_tasks(tasks)

    assert scheduler.resolve_dependencies(tasks) == []

    tasks[0].status = "success"
    newly = scheduler.resolve_dependencies(tasks)
    assert [t.id for t in newly] == ["b"]
    assert store.read_task("b").status == "assigned"
    assert store.read_task("c").status == "pending"

    # A second pass does not report b again.
    assert scheduler.resolve_dependencies(tasks) == []

    tasks[1].status = "success"
    assert [t.id for t in scheduler.resolve_dependencies(tasks)] == ["c"]


def test_failed_dependency_still_unblocks(store: FileStore) -> None:
    scheduler = TaskScheduler(store)
    tasks = _chain()
    tasks[0].status = "failure"
    assert [t.id for t in scheduler.resolve_dependencies(tasks)] == ["b"]


def test_running_dependency_does_not_unblock(store: FileStore) -> None:
    scheduler = TaskScheduler(store)
    tasks = _chain()
    tasks[0].status = "running"
    assert scheduler.resolve_dependencies(tasks) == []


def test_multiple_dependencies_all_required(store: FileStore) -> None:
    scheduler = TaskScheduler(store)
    tasks = [
        Task(id="x", title="X", description="", role="investigator", assignee="investigator-1", status="success"),
        Task(id="y", title="Y", description="", role="investigator", assignee="investigator-2", status="running"),
        Task(id="z", title="Z", description="", role="implementer", assignee="implementer-1", dependencies=["x", "y"]),
    ]
    assert scheduler.resolve_dependencies(tasks) == []
    tasks[1].status = "failure"
    assert [t.id for t in scheduler.resolve_dependencies(tasks)] == ["z"]


def test_completion_and_summaries(store: FileStore) -> None:
    scheduler = TaskScheduler(store)
    tasks = _chain()
    assert not scheduler.is_all_complete(tasks)
    assert scheduler.is_all_complete([])
    assert [t.id for t in scheduler.get_active_tasks(tasks)] == ["a"]
    assert [t.id for t in scheduler.get_pending_tasks(tasks)] == ["b", "c"]
    assert scheduler.get_status_summary(tasks) == {"assigned": 1, "pending": 2}

    for task in tasks:
        task.status = "success"
    tasks[2].status = "failure"
    assert scheduler.is_all_complete(tasks)
    assert scheduler.get_status_summary(tasks) == {"success": 2, "failure": 1}


def test_fan_in_batch_scenario(store: FileStore) -> None:
    plan = TaskPlan(
        tasks=[
            PlannedTask(title="T1", description="", role="investigator"),
            PlannedTask(title="T2", description="", role="investigator"),
            PlannedTask(title="T3", description="", role="implementer", dependencies=["T1", "T2"]),
            PlannedTask(title="T4", description="", role="tester", dependencies=["T3"]),
        ],
        summary="fan in",
    )
    t1, t2, t3, t4 = tasks = assign_tasks(plan, TeamConfig(investigators=2, implementers=1, testers=1))
    scheduler = TaskScheduler(store)
    scheduler.write_tasks(tasks)

    assert (t1.status, t1.assignee) == ("assigned", "investigator-1")
    assert (t2.status, t2.assignee) == ("assigned", "investigator-2")
    assert t3.status == "pending"
    assert t4.status == "pending"

    t1.status = "success"
    assert scheduler.resolve_dependencies(tasks) == []
    t2.status = "success"
    assert [t.id for t in scheduler.resolve_dependencies(tasks)] == [t3.id]
    assert t4.status == "pending"

    t3.status = "success"
    assert [t.id for t in scheduler.resolve_dependencies(tasks)] == [t4.id]

    t4.status = "failure"
    assert scheduler.resolve_dependencies(tasks) == []
    assert scheduler.is_all_complete(tasks)
