"""Filesystem protocol types for taskfleet."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal, get_args

WorkerRole = Literal["investigator", "implementer", "tester"]
TaskStatus = Literal["pending", "assigned", "running", "success", "failure"]
ResultStatus = Literal["success", "failure"]
ArtifactAction = Literal["created", "modified", "deleted"]
SessionStatus = Literal["active", "stopped"]

WORKER_ROLES: tuple[str, ...] = get_args(WorkerRole)
TERMINAL_STATUSES: frozenset[str] = frozenset({"success", "failure"})


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _str_list(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [str(x) for x in raw if isinstance(x, str)]


@dataclass(slots=True)
class TeamConfig:
    investigators: int = 2
    implementers: int = 2
    testers: int = 1

    def capacity(self, role: str) -> int:
        return {
            "investigator": self.investigators,
            "implementer": self.implementers,
            "tester": self.testers,
        }.get(role, 0)

    def worker_names(self) -> list[str]:
        """Every worker identity of the team, e.g. ``investigator-1``."""
        return [
            f"{role}-{idx}"
            for role in WORKER_ROLES
            for idx in range(1, self.capacity(role) + 1)
        ]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> TeamConfig:
        return cls(
            investigators=int(raw.get("investigators", 2)),
            implementers=int(raw.get("implementers", 2)),
            testers=int(raw.get("testers", 1)),
        )


@dataclass(slots=True)
class Task:
    id: str
    title: str
    description: str
    role: str
    assignee: str
    status: TaskStatus = "pending"
    dependencies: list[str] = field(default_factory=list)
    context: str = ""
    created_at: str = field(default_factory=utc_now_iso)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Task:
        return cls(
            id=str(raw["id"]),
            title=str(raw.get("title", "")),
            description=str(raw.get("description", "")),
            role=str(raw.get("role", "")),
            assignee=str(raw.get("assignee", "")),
            status=str(raw.get("status", "pending")),  # type: ignore[arg-type]
            dependencies=_str_list(raw.get("dependencies")),
            context=str(raw.get("context", "")),
            created_at=str(raw.get("created_at", "")),
        )


@dataclass(slots=True)
class Artifact:
    path: str
    action: ArtifactAction

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Artifact:
        action = str(raw.get("action", "modified"))
        if action not in get_args(ArtifactAction):
            action = "modified"
        return cls(path=str(raw.get("path", "")), action=action)  # type: ignore[arg-type]


@dataclass(slots=True)
class TaskResult:
    task_id: str
    status: ResultStatus
    output: str = ""
    artifacts: list[Artifact] = field(default_factory=list)
    context_contribution: str = ""
    cost_usd: float = 0.0
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> TaskResult:
        artifacts = raw.get("artifacts", [])
        return cls(
            task_id=str(raw["task_id"]),
            status="success" if raw.get("status") == "success" else "failure",
            output=str(raw.get("output", "")),
            artifacts=[
                Artifact.from_dict(a) for a in artifacts if isinstance(a, dict)
            ] if isinstance(artifacts, list) else [],
            context_contribution=str(raw.get("context_contribution") or ""),
            cost_usd=float(raw.get("cost_usd", 0.0) or 0.0),
            duration_ms=int(raw.get("duration_ms", 0) or 0),
        )


@dataclass(slots=True)
class ContextEntry:
    contributor: str
    task_id: str
    summary: str

    def to_dict(self) -> dict[str, Any]:
        # On disk the contributor is stored under "from".
        return {"from": self.contributor, "task_id": self.task_id, "summary": self.summary}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ContextEntry:
        return cls(
            contributor=str(raw.get("from", "")),
            task_id=str(raw.get("task_id", "")),
            summary=str(raw.get("summary", "")),
        )


@dataclass(slots=True)
class SharedContext:
    entries: list[ContextEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"entries": [e.to_dict() for e in self.entries]}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SharedContext:
        entries = raw.get("entries", [])
        if not isinstance(entries, list):
            entries = []
        return cls(entries=[ContextEntry.from_dict(e) for e in entries if isinstance(e, dict)])


@dataclass(slots=True)
class Session:
    id: str
    working_directory: str
    team: TeamConfig = field(default_factory=TeamConfig)
    started_at: str = field(default_factory=utc_now_iso)
    status: SessionStatus = "active"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Session:
        team_raw = raw.get("team", {})
        return cls(
            id=str(raw["id"]),
            working_directory=str(raw.get("working_directory", "")),
            team=TeamConfig.from_dict(team_raw if isinstance(team_raw, dict) else {}),
            started_at=str(raw.get("started_at", "")),
            status="stopped" if raw.get("status") == "stopped" else "active",
        )


@dataclass(slots=True)
class PlannedTask:
    """A single planned task before assignment."""

    title: str
    description: str
    role: str
    dependencies: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> PlannedTask:
        return cls(
            title=str(raw.get("title", "")),
            description=str(raw.get("description", "")),
            role=str(raw.get("role", "")),
            dependencies=_str_list(raw.get("dependencies")),
        )


@dataclass(slots=True)
class TaskPlan:
    tasks: list[PlannedTask] = field(default_factory=list)
    summary: str = ""


@dataclass(slots=True)
class Violation:
    directive: str
    reason: str


@dataclass(slots=True)
class ComplianceResult:
    """Advisory judgment of one successful result against the active directives. Never persisted."""

    compliant: bool
    violations: list[Violation] = field(default_factory=list)
    summary: str = ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ComplianceResult:
        violations = raw.get("violations", [])
        return cls(
            compliant=bool(raw.get("compliant", True)),
            violations=[
                Violation(directive=str(v.get("directive", "")), reason=str(v.get("reason", "")))
                for v in violations
                if isinstance(v, dict)
            ] if isinstance(violations, list) else [],
            summary=str(raw.get("summary", "")),
        )


@dataclass(slots=True)
class InputClassification:
    target: Literal["coordinator", "worker"] = "worker"
    response: str = ""


def default_store_layout(root: Path) -> dict[str, Path]:
    return {
        "root": root,
        "tasks": root / "tasks",
        "results": root / "results",
        "context": root / "context",
        "logs": root / "logs",
        "locks": root / "locks",
        "shared_context": root / "context" / "shared.json",
        "directives": root / "directives.json",
        "session": root / "session.json",
    }
