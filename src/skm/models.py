"""Typed records for artifact resolution, project state, and portfolio snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal, Mapping, cast

from skm.errors import SerializationError

Stage = Literal["Bootstrap", "Specify", "Plan", "Tasks", "Implement", "Test", "Review", "Done"]
STAGE_VALUES: tuple[Stage, ...] = (
    "Bootstrap",
    "Specify",
    "Plan",
    "Tasks",
    "Implement",
    "Test",
    "Review",
    "Done",
)

HumanRequirement = Literal["Review", "Input", "Fix", "Test", "Deploy", "Decision"]
HUMAN_REQUIREMENT_VALUES: tuple[HumanRequirement, ...] = ("Review", "Input", "Fix", "Test", "Deploy", "Decision")

AutomationLevel = Literal["L0", "L1", "L2", "L3"]
AUTOMATION_LEVEL_VALUES: tuple[AutomationLevel, ...] = ("L0", "L1", "L2", "L3")

ProjectKind = Literal["Rust", "Node", "Python", "Go", "Generic", "Unknown"]
PROJECT_KIND_VALUES: tuple[ProjectKind, ...] = ("Rust", "Node", "Python", "Go", "Generic", "Unknown")


def format_timestamp(value: datetime | None) -> str | None:
    """Render a timestamp as ISO-8601 UTC, keeping ``None`` as ``None``."""

    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _parse_timestamp(value: object, field_name: str, *, optional: bool = False) -> datetime | None:
    if value is None and optional:
        return None
    if not isinstance(value, str):
        raise SerializationError(f"{field_name} must be an ISO-8601 string, got {type(value).__name__}")
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise SerializationError(f"{field_name} is not a valid timestamp: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _required(payload: Mapping[str, Any], key: str, context: str) -> Any:
    if not isinstance(payload, Mapping):
        raise SerializationError(f"{context} must be an object, got {type(payload).__name__}")
    if key not in payload:
        raise SerializationError(f"{context} is missing field '{key}'")
    return payload[key]


def _int(value: object, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise SerializationError(f"{field_name} must be an integer")
    return value


def _float(value: object, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SerializationError(f"{field_name} must be a number")
    return float(value)


def _bool(value: object, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise SerializationError(f"{field_name} must be a boolean")
    return value


def _choice(value: object, allowed: tuple[str, ...], field_name: str) -> str:
    if value not in allowed:
        raise SerializationError(f"{field_name} must be one of {', '.join(allowed)}; got {value!r}")
    return cast(str, value)


@dataclass(frozen=True, slots=True)
class ArtifactRef:
    """One resolved lifecycle document on disk."""

    path: Path
    size_bytes: int
    last_modified: datetime
    is_valid: bool

    def to_payload(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "size_bytes": self.size_bytes,
            "last_modified": format_timestamp(self.last_modified),
            "is_valid": self.is_valid,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ArtifactRef":
        context = "artifact"
        return cls(
            path=Path(str(_required(payload, "path", context))),
            size_bytes=_int(_required(payload, "size_bytes", context), "artifact.size_bytes"),
            last_modified=cast(
                datetime, _parse_timestamp(_required(payload, "last_modified", context), "artifact.last_modified")
            ),
            is_valid=_bool(_required(payload, "is_valid", context), "artifact.is_valid"),
        )


ARTIFACT_SLOTS: tuple[str, ...] = ("constitution", "specification", "plan", "task_list")


@dataclass(frozen=True, slots=True)
class ArtifactSet:
    """The four canonical artifacts resolved for one project in one pass."""

    constitution: ArtifactRef | None = None
    specification: ArtifactRef | None = None
    plan: ArtifactRef | None = None
    task_list: ArtifactRef | None = None

    def has_any(self) -> bool:
        return any(getattr(self, slot) is not None for slot in ARTIFACT_SLOTS)

    def presence(self) -> tuple[bool, bool, bool, bool]:
        """Return presence flags in constitution, specification, plan, task-list order."""

        return (
            self.constitution is not None,
            self.specification is not None,
            self.plan is not None,
            self.task_list is not None,
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for slot in ARTIFACT_SLOTS:
            ref = getattr(self, slot)
            payload[slot] = ref.to_payload() if ref is not None else None
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ArtifactSet":
        refs: dict[str, ArtifactRef | None] = {}
        for slot in ARTIFACT_SLOTS:
            raw = _required(payload, slot, "artifacts")
            refs[slot] = ArtifactRef.from_payload(raw) if raw is not None else None
        return cls(**refs)


@dataclass(frozen=True, slots=True)
class TaskLedger:
    """Task completion counts extracted from a task-list document.

    The counts are heuristic: ``completed``/``parallel_marked``/``blocked`` are
    expected to stay within ``total`` but nothing enforces it.
    """

    total: int = 0
    completed: int = 0
    parallel_marked: int = 0
    blocked: int = 0
    last_activity: datetime | None = None

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.completed >= self.total

    def to_payload(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "completed": self.completed,
            "parallel_marked": self.parallel_marked,
            "blocked": self.blocked,
            "last_activity": format_timestamp(self.last_activity),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TaskLedger":
        context = "tasks"
        return cls(
            total=_int(_required(payload, "total", context), "tasks.total"),
            completed=_int(_required(payload, "completed", context), "tasks.completed"),
            parallel_marked=_int(_required(payload, "parallel_marked", context), "tasks.parallel_marked"),
            blocked=_int(_required(payload, "blocked", context), "tasks.blocked"),
            last_activity=_parse_timestamp(
                payload.get("last_activity"), "tasks.last_activity", optional=True
            ),
        )


@dataclass(frozen=True, slots=True)
class RepositoryStatus:
    """Version-control state of a project directory."""

    is_repository: bool = False
    branch: str | None = None
    is_clean: bool = True
    last_commit: datetime | None = None
    commits_ahead: int = 0
    commits_behind: int = 0

    def to_payload(self) -> dict[str, Any]:
        return {
            "is_repository": self.is_repository,
            "branch": self.branch,
            "is_clean": self.is_clean,
            "last_commit": format_timestamp(self.last_commit),
            "commits_ahead": self.commits_ahead,
            "commits_behind": self.commits_behind,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RepositoryStatus":
        context = "repository"
        branch = payload.get("branch") if isinstance(payload, Mapping) else None
        return cls(
            is_repository=_bool(_required(payload, "is_repository", context), "repository.is_repository"),
            branch=str(branch) if branch is not None else None,
            is_clean=_bool(_required(payload, "is_clean", context), "repository.is_clean"),
            last_commit=_parse_timestamp(payload.get("last_commit"), "repository.last_commit", optional=True),
            commits_ahead=_int(_required(payload, "commits_ahead", context), "repository.commits_ahead"),
            commits_behind=_int(_required(payload, "commits_behind", context), "repository.commits_behind"),
        )


@dataclass(frozen=True, slots=True)
class NextAction:
    """Recommended next step for a project in a given stage."""

    command: str
    description: str
    automated: bool
    risk_level: AutomationLevel

    def to_payload(self) -> dict[str, Any]:
        return {
            "command": self.command,
            "description": self.description,
            "automated": self.automated,
            "risk_level": self.risk_level,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "NextAction":
        context = "next_action"
        return cls(
            command=str(_required(payload, "command", context)),
            description=str(_required(payload, "description", context)),
            automated=_bool(_required(payload, "automated", context), "next_action.automated"),
            risk_level=cast(
                AutomationLevel,
                _choice(_required(payload, "risk_level", context), AUTOMATION_LEVEL_VALUES, "next_action.risk_level"),
            ),
        )


@dataclass(frozen=True, slots=True)
class ProjectRecord:
    """Everything inferred about one project during one scan pass."""

    id: str
    path: Path
    stage: Stage
    next_action: NextAction
    requires_human: tuple[HumanRequirement, ...]
    priority: float
    tasks: TaskLedger
    last_updated: datetime
    repository: RepositoryStatus
    project_kind: ProjectKind
    artifacts: ArtifactSet

    @property
    def name(self) -> str:
        return self.path.name or self.id

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": str(self.path),
            "stage": self.stage,
            "next_action": self.next_action.to_payload(),
            "requires_human": list(self.requires_human),
            "priority": self.priority,
            "tasks": self.tasks.to_payload(),
            "last_updated": format_timestamp(self.last_updated),
            "repository": self.repository.to_payload(),
            "project_kind": self.project_kind,
            "artifacts": self.artifacts.to_payload(),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ProjectRecord":
        context = "project"
        requires_human = _required(payload, "requires_human", context)
        if not isinstance(requires_human, list):
            raise SerializationError("project.requires_human must be a list")
        return cls(
            id=str(_required(payload, "id", context)),
            path=Path(str(_required(payload, "path", context))),
            stage=cast(Stage, _choice(_required(payload, "stage", context), STAGE_VALUES, "project.stage")),
            next_action=NextAction.from_payload(_required(payload, "next_action", context)),
            requires_human=tuple(
                cast(HumanRequirement, _choice(item, HUMAN_REQUIREMENT_VALUES, "project.requires_human"))
                for item in requires_human
            ),
            priority=_float(_required(payload, "priority", context), "project.priority"),
            tasks=TaskLedger.from_payload(_required(payload, "tasks", context)),
            last_updated=cast(
                datetime, _parse_timestamp(_required(payload, "last_updated", context), "project.last_updated")
            ),
            repository=RepositoryStatus.from_payload(_required(payload, "repository", context)),
            project_kind=cast(
                ProjectKind,
                _choice(_required(payload, "project_kind", context), PROJECT_KIND_VALUES, "project.project_kind"),
            ),
            artifacts=ArtifactSet.from_payload(_required(payload, "artifacts", context)),
        )


@dataclass(frozen=True, slots=True)
class ScanStats:
    """Bookkeeping for one portfolio scan."""

    directories_scanned: int = 0
    projects_found: int = 0
    scan_time_ms: int = 0
    errors: tuple[str, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {
            "directories_scanned": self.directories_scanned,
            "projects_found": self.projects_found,
            "scan_time_ms": self.scan_time_ms,
            "errors": list(self.errors),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ScanStats":
        context = "scan_stats"
        errors = _required(payload, "errors", context)
        if not isinstance(errors, list):
            raise SerializationError("scan_stats.errors must be a list")
        return cls(
            directories_scanned=_int(_required(payload, "directories_scanned", context), "scan_stats.directories_scanned"),
            projects_found=_int(_required(payload, "projects_found", context), "scan_stats.projects_found"),
            scan_time_ms=_int(_required(payload, "scan_time_ms", context), "scan_stats.scan_time_ms"),
            errors=tuple(str(item) for item in errors),
        )


@dataclass(frozen=True, slots=True)
class PortfolioSummary:
    """Aggregate view derived from a list of project records."""

    needs_attention: int = 0
    total_projects: int = 0
    by_stage: dict[Stage, int] = field(default_factory=lambda: {stage: 0 for stage in STAGE_VALUES})
    total_tasks: int = 0
    completed_tasks: int = 0
    avg_priority: float = 0.0

    @property
    def completion_pct(self) -> float:
        if self.total_tasks <= 0:
            return 0.0
        return self.completed_tasks / self.total_tasks * 100.0

    def to_payload(self) -> dict[str, Any]:
        return {
            "needs_attention": self.needs_attention,
            "total_projects": self.total_projects,
            "by_stage": {stage: int(self.by_stage.get(stage, 0)) for stage in STAGE_VALUES},
            "total_tasks": self.total_tasks,
            "completed_tasks": self.completed_tasks,
            "avg_priority": self.avg_priority,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PortfolioSummary":
        context = "summary"
        raw_by_stage = _required(payload, "by_stage", context)
        if not isinstance(raw_by_stage, Mapping):
            raise SerializationError("summary.by_stage must be an object")
        by_stage: dict[Stage, int] = {stage: 0 for stage in STAGE_VALUES}
        for key, value in raw_by_stage.items():
            stage = cast(Stage, _choice(key, STAGE_VALUES, "summary.by_stage"))
            by_stage[stage] = _int(value, f"summary.by_stage.{stage}")
        return cls(
            needs_attention=_int(_required(payload, "needs_attention", context), "summary.needs_attention"),
            total_projects=_int(_required(payload, "total_projects", context), "summary.total_projects"),
            by_stage=by_stage,
            total_tasks=_int(_required(payload, "total_tasks", context), "summary.total_tasks"),
            completed_tasks=_int(_required(payload, "completed_tasks", context), "summary.completed_tasks"),
            avg_priority=_float(_required(payload, "avg_priority", context), "summary.avg_priority"),
        )


@dataclass(frozen=True, slots=True)
class PortfolioSnapshot:
    """Result of one portfolio scan: per-project records plus their summary."""

    generated_at: datetime
    scan_stats: ScanStats
    projects: tuple[ProjectRecord, ...]
    summary: PortfolioSummary

    def by_priority(self) -> list[ProjectRecord]:
        """Return projects ordered by descending priority (display order)."""

        return sorted(self.projects, key=lambda project: project.priority, reverse=True)

    def to_payload(self) -> dict[str, Any]:
        return {
            "generated_at": format_timestamp(self.generated_at),
            "scan_stats": self.scan_stats.to_payload(),
            "projects": [project.to_payload() for project in self.projects],
            "summary": self.summary.to_payload(),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PortfolioSnapshot":
        context = "snapshot"
        projects = _required(payload, "projects", context)
        if not isinstance(projects, list):
            raise SerializationError("snapshot.projects must be a list")
        return cls(
            generated_at=cast(
                datetime, _parse_timestamp(_required(payload, "generated_at", context), "snapshot.generated_at")
            ),
            scan_stats=ScanStats.from_payload(_required(payload, "scan_stats", context)),
            projects=tuple(ProjectRecord.from_payload(item) for item in projects),
            summary=PortfolioSummary.from_payload(_required(payload, "summary", context)),
        )
