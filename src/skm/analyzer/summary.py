"""Portfolio-level aggregation over project records."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import cast

import polars as pl

from skm.models import (
    STAGE_VALUES,
    PortfolioSnapshot,
    PortfolioSummary,
    ProjectRecord,
    ScanStats,
    Stage,
    format_timestamp,
)

PROJECT_FRAME_SCHEMA: dict[str, pl.DataType] = {
    "id": pl.String(),
    "path": pl.String(),
    "stage": pl.String(),
    "priority": pl.Float64(),
    "project_kind": pl.String(),
    "tasks_total": pl.Int64(),
    "tasks_completed": pl.Int64(),
    "tasks_parallel_marked": pl.Int64(),
    "tasks_blocked": pl.Int64(),
    "requires_human": pl.String(),
    "next_command": pl.String(),
    "automated": pl.Boolean(),
    "risk_level": pl.String(),
    "is_repository": pl.Boolean(),
    "branch": pl.String(),
    "is_clean": pl.Boolean(),
    "last_updated": pl.String(),
}


def projects_frame(projects: Sequence[ProjectRecord]) -> pl.DataFrame:
    """Flatten project records into one row per project with a stable schema."""

    rows = [
        {
            "id": project.id,
            "path": str(project.path),
            "stage": project.stage,
            "priority": float(project.priority),
            "project_kind": project.project_kind,
            "tasks_total": project.tasks.total,
            "tasks_completed": project.tasks.completed,
            "tasks_parallel_marked": project.tasks.parallel_marked,
            "tasks_blocked": project.tasks.blocked,
            "requires_human": ",".join(project.requires_human),
            "next_command": project.next_action.command,
            "automated": project.next_action.automated,
            "risk_level": project.next_action.risk_level,
            "is_repository": project.repository.is_repository,
            "branch": project.repository.branch,
            "is_clean": project.repository.is_clean,
            "last_updated": format_timestamp(project.last_updated),
        }
        for project in projects
    ]
    return pl.DataFrame(rows, schema=PROJECT_FRAME_SCHEMA)


def stage_counts(frame: pl.DataFrame) -> dict[Stage, int]:
    """Project counts for every stage, including stages with no projects."""

    counts: dict[Stage, int] = {stage: 0 for stage in STAGE_VALUES}
    if frame.height == 0:
        return counts
    for row in frame.group_by("stage").len(name="count").to_dicts():
        stage = str(row["stage"])
        if stage in counts:
            counts[cast(Stage, stage)] = int(row["count"])
    return counts


def summarize_projects(projects: Sequence[ProjectRecord], attention_threshold: float = 50.0) -> PortfolioSummary:
    """Derive the portfolio summary from project records."""

    frame = projects_frame(projects)
    if frame.height == 0:
        return PortfolioSummary()

    totals = frame.select(
        [
            (pl.col("priority") > attention_threshold).sum().alias("needs_attention"),
            pl.col("tasks_total").sum().alias("total_tasks"),
            pl.col("tasks_completed").sum().alias("completed_tasks"),
            pl.col("priority").mean().alias("avg_priority"),
        ]
    ).to_dicts()[0]
    return PortfolioSummary(
        needs_attention=int(totals["needs_attention"]),
        total_projects=frame.height,
        by_stage=stage_counts(frame),
        total_tasks=int(totals["total_tasks"]),
        completed_tasks=int(totals["completed_tasks"]),
        avg_priority=float(totals["avg_priority"]),
    )


def build_snapshot(
    projects: Sequence[ProjectRecord],
    scan_stats: ScanStats,
    *,
    attention_threshold: float = 50.0,
    generated_at: datetime,
) -> PortfolioSnapshot:
    """Assemble a snapshot whose summary is derived from ``projects``."""

    return PortfolioSnapshot(
        generated_at=generated_at,
        scan_stats=scan_stats,
        projects=tuple(projects),
        summary=summarize_projects(projects, attention_threshold),
    )
