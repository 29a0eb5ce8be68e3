"""Markdown rendering of a portfolio snapshot."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path

from skm.errors import FilesystemError
from skm.models import STAGE_VALUES, HumanRequirement, PortfolioSnapshot, ProjectRecord
from skm.utils.io import write_text_atomically

LOGGER = logging.getLogger(__name__)

TOP_PROJECTS_LIMIT = 10
DESCRIPTION_WIDTH = 40


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def _format_requirements(requirements: Sequence[HumanRequirement]) -> str:
    return ", ".join(requirements)


def priority_badge(priority: float) -> str:
    if priority > 70.0:
        return "🔴"
    if priority > 40.0:
        return "🟡"
    return "🟢"


def _project_details(project: ProjectRecord) -> list[str]:
    lines = [f"### {project.path}", ""]
    lines.append(f"- **Stage**: {project.stage}")
    lines.append(f"- **Priority**: {project.priority:.1f}")
    lines.append(f"- **Type**: {project.project_kind}")
    lines.append(f"- **Last Updated**: {_utc(project.last_updated):%Y-%m-%d %H:%M} UTC")
    if project.repository.is_repository:
        lines.append(f"- **Git Branch**: {project.repository.branch or 'unknown'}")
        git_state = "✅ Clean" if project.repository.is_clean else "⚠️ Uncommitted changes"
        lines.append(f"- **Git Status**: {git_state}")

    tasks_line = f"- **Tasks**: {project.tasks.completed}/{project.tasks.total} completed"
    if project.tasks.parallel_marked > 0:
        tasks_line += f" ({project.tasks.parallel_marked} parallel)"
    if project.tasks.blocked > 0:
        tasks_line += f" ({project.tasks.blocked} blocked)"
    lines.append(tasks_line)

    lines.append(f"- **Next Action**: {project.next_action.description}")
    lines.append(f"  - Command: `{project.next_action.command}`")
    lines.append(f"  - Automated: {'Yes' if project.next_action.automated else 'No'}")
    if project.requires_human:
        lines.append(f"- **Requires Human**: {_format_requirements(project.requires_human)}")
    lines.append("")
    return lines


def render_markdown_report(snapshot: PortfolioSnapshot) -> str:
    """Render the portfolio status report."""

    summary = snapshot.summary
    ordered = snapshot.by_priority()

    lines: list[str] = []
    lines.append("# SKM Portfolio Status Report")
    lines.append("")
    lines.append(f"Generated: {_utc(snapshot.generated_at):%Y-%m-%d %H:%M:%S} UTC")
    lines.append("")

    lines.append("## Summary")
    lines.append("")
    lines.append(f"- **Total Projects**: {summary.total_projects}")
    lines.append(f"- **Need Attention**: {summary.needs_attention} 🚨")
    lines.append(
        f"- **Tasks Progress**: {summary.completed_tasks}/{summary.total_tasks} completed "
        f"({summary.completion_pct:.0f}%)"
    )
    lines.append(f"- **Average Priority**: {summary.avg_priority:.1f}")
    lines.append(f"- **Scan Time**: {snapshot.scan_stats.scan_time_ms}ms")
    lines.append("")

    lines.append("## Stage Distribution")
    lines.append("")
    lines.append("| Stage | Count |")
    lines.append("|-------|-------|")
    for stage in STAGE_VALUES:
        lines.append(f"| {stage} | {summary.by_stage.get(stage, 0)} |")
    lines.append("")

    lines.append("## High Priority Projects")
    lines.append("")
    if not ordered:
        lines.append("No projects found.")
        lines.append("")
    else:
        lines.append("| Priority | Project | Stage | Next Action | Human Needed |")
        lines.append("|----------|---------|-------|-------------|---------------|")
        for project in ordered[:TOP_PROJECTS_LIMIT]:
            human = (
                f"Yes ({_format_requirements(project.requires_human)})" if project.requires_human else "No"
            )
            lines.append(
                f"| {project.priority:.1f} {priority_badge(project.priority)} | {project.name} | {project.stage} "
                f"| {_truncate(project.next_action.description, DESCRIPTION_WIDTH)} | {human} |"
            )
        lines.append("")

    lines.append("## Project Details")
    lines.append("")
    for project in ordered:
        lines.extend(_project_details(project))

    if snapshot.scan_stats.errors:
        lines.append("## Errors Encountered")
        lines.append("")
        for error in snapshot.scan_stats.errors:
            lines.append(f"- {error}")
        lines.append("")

    lines.append("---")
    lines.append("*Generated by SKM (Spec-Kit Manager)*")
    return "\n".join(lines) + "\n"


def save_markdown_report(
    snapshot: PortfolioSnapshot,
    output_path: Path,
    logger: logging.Logger | None = None,
) -> Path:
    """Render and atomically write the markdown report."""

    effective_logger = logger or LOGGER
    try:
        write_text_atomically(render_markdown_report(snapshot), output_path)
    except OSError as exc:
        raise FilesystemError(output_path, exc) from exc
    effective_logger.debug("report.markdown_written path=%s", output_path)
    return output_path
