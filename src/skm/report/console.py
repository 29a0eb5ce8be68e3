"""Plain-text portfolio views printed by the CLI."""

from __future__ import annotations

from datetime import timezone

from skm.models import PortfolioSnapshot, ProjectRecord

CONSOLE_TOP_LIMIT = 10


def status_icon(project: ProjectRecord) -> str:
    if project.tasks.total > 0 and project.tasks.completed == project.tasks.total:
        return "✅"
    if project.priority > 50.0:
        return "🔴"
    if project.priority > 30.0:
        return "🟡"
    return "🟢"


def render_status_lines(snapshot: PortfolioSnapshot) -> list[str]:
    """Header, totals, and the top projects by priority."""

    summary = snapshot.summary
    generated = snapshot.generated_at.astimezone(timezone.utc)
    lines = [
        "=== Portfolio Status ===",
        f"Generated: {generated:%Y-%m-%d %H:%M} UTC",
        "",
        f"Total Projects: {summary.total_projects}",
        f"Need Attention: {summary.needs_attention}",
        f"Tasks: {summary.completed_tasks}/{summary.total_tasks} completed ({summary.completion_pct:.0f}%)",
        f"Average Priority: {summary.avg_priority:.1f}",
        "",
        "Projects (by priority):",
    ]
    for project in snapshot.by_priority()[:CONSOLE_TOP_LIMIT]:
        lines.append(
            f"  {status_icon(project)} [{project.priority:>5.1f}] {project.name} - {project.stage} - "
            f"{project.tasks.completed}/{project.tasks.total} tasks"
        )
    remaining = len(snapshot.projects) - CONSOLE_TOP_LIMIT
    if remaining > 0:
        lines.append(f"  ... and {remaining} more projects")
    return lines


def render_scan_lines(snapshot: PortfolioSnapshot) -> list[str]:
    """Per-project discovery lines followed by the scan summary and errors."""

    lines = [
        f"Found: {project.path} [{project.stage}] Priority: {project.priority:.1f}"
        for project in snapshot.projects
    ]
    summary = snapshot.summary
    lines.extend(
        [
            "",
            "=== Scan Complete ===",
            f"Projects found: {summary.total_projects}",
            f"Need attention: {summary.needs_attention}",
            f"Tasks: {summary.completed_tasks}/{summary.total_tasks} completed",
            f"Average priority: {summary.avg_priority:.1f}",
            f"Scan time: {snapshot.scan_stats.scan_time_ms}ms",
        ]
    )
    if snapshot.scan_stats.errors:
        lines.append("")
        lines.append("Errors encountered:")
        lines.extend(f"  - {error}" for error in snapshot.scan_stats.errors)
    return lines
