"""Per-project inference pipeline and portfolio scan orchestration."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from functools import partial
from pathlib import Path

from skm.analyzer.priority import (
    PriorityWeights,
    calculate_priority,
    calculate_risk,
    detect_human_requirements,
    resolve_impact_confidence,
)
from skm.analyzer.stage import detect_stage, has_implementation_artifacts, next_action_for
from skm.analyzer.summary import build_snapshot
from skm.config import AppSettings
from skm.errors import NotFoundError
from skm.meta.cache import load_status_cache, save_status_cache
from skm.meta.store import STATE_DIR_NAME, ProjectMetaStore, load_meta_store
from skm.models import STAGE_VALUES, PortfolioSnapshot, ProjectRecord, RepositoryStatus, ScanStats, TaskLedger
from skm.report.markdown import save_markdown_report
from skm.scanner.artifacts import resolve_project_artifacts
from skm.scanner.discover import DiscoveredProject, detect_project_kind, find_projects
from skm.scanner.repository import DEFAULT_GIT_TIMEOUT_SEC, get_repository_status, has_recent_failures
from skm.scanner.tasks import parse_task_file
from skm.utils.time_utils import now_utc

LOGGER = logging.getLogger(__name__)

STATUS_REPORT_FILE = "STATUS.md"
STATUS_FILTERS: tuple[str, ...] = ("needs-attention", "incomplete", "stage:<name>")

RepositoryProbe = Callable[[Path], RepositoryStatus]
FailureProbe = Callable[[Path], bool]


@dataclass(frozen=True, slots=True)
class ScanOptions:
    """Runtime options for one portfolio scan."""

    max_depth: int = 5
    max_projects: int | None = None
    workers: int = 1
    timeout_sec: float | None = None
    git_timeout_sec: float = DEFAULT_GIT_TIMEOUT_SEC
    attention_threshold: float = 50.0
    weights: PriorityWeights = field(default_factory=PriorityWeights)
    cancel_event: threading.Event | None = None


@dataclass(frozen=True, slots=True)
class ScanRunResult:
    """Return object for a scan that persisted its outputs."""

    snapshot: PortfolioSnapshot
    cache_path: Path
    report_path: Path


def options_from_settings(settings: AppSettings, *, cancel_event: threading.Event | None = None) -> ScanOptions:
    """Build scan options from loaded application settings."""

    weights = settings.weights
    return ScanOptions(
        max_depth=settings.scan.scan_depth,
        max_projects=settings.scan.max_projects,
        workers=settings.scan.workers,
        timeout_sec=settings.scan.timeout_sec,
        git_timeout_sec=settings.scan.git_timeout_sec,
        attention_threshold=settings.attention_threshold,
        weights=PriorityWeights(
            needs_human=weights.needs_human,
            risk=weights.risk,
            staleness=weights.staleness,
            impact=weights.impact,
            confidence=weights.confidence,
        ),
        cancel_event=cancel_event,
    )


def status_report_path(root: Path) -> Path:
    return root / STATE_DIR_NAME / STATUS_REPORT_FILE


def process_project(
    project: DiscoveredProject,
    *,
    meta_store: ProjectMetaStore,
    weights: PriorityWeights | None = None,
    repository_probe: RepositoryProbe = get_repository_status,
    failure_probe: FailureProbe = has_recent_failures,
    now: datetime | None = None,
    logger: logging.Logger | None = None,
) -> ProjectRecord:
    """Run aggregation, parsing, stage detection, and scoring for one project."""

    effective_logger = logger or LOGGER
    scan_time = now or now_utc()
    project_path = project.path
    effective_logger.debug("scan.project_start path=%s", project_path)

    artifacts = resolve_project_artifacts(project_path, logger=effective_logger)
    tasks = (
        parse_task_file(artifacts.task_list.path, logger=effective_logger)
        if artifacts.task_list is not None
        else TaskLedger()
    )
    repository = repository_probe(project_path)
    project_kind = detect_project_kind(project_path)

    stage = detect_stage(
        artifacts,
        has_implementation=has_implementation_artifacts(project_path, project_kind),
    )
    has_errors = failure_probe(project_path)
    risk_level = calculate_risk(repository, tasks, has_errors)
    requires_human = detect_human_requirements(stage, repository, tasks)

    impact, confidence = resolve_impact_confidence(meta_store.get_project(project.project_id))
    last_updated = (
        artifacts.specification.last_modified if artifacts.specification is not None else scan_time
    )
    priority = calculate_priority(
        requires_human,
        risk_level,
        last_updated,
        impact,
        confidence,
        weights=weights,
        now=scan_time,
    )

    record = ProjectRecord(
        id=project.project_id,
        path=project_path,
        stage=stage,
        next_action=next_action_for(stage),
        requires_human=requires_human,
        priority=priority,
        tasks=tasks,
        last_updated=last_updated,
        repository=repository,
        project_kind=project_kind,
        artifacts=artifacts,
    )
    effective_logger.debug(
        "scan.project_done path=%s stage=%s priority=%.2f risk=%s tasks=%s/%s",
        project_path,
        stage,
        priority,
        risk_level,
        tasks.completed,
        tasks.total,
    )
    return record


def _interrupt_reason(options: ScanOptions, started_mono: float) -> str | None:
    if options.cancel_event is not None and options.cancel_event.is_set():
        return "Scan cancelled"
    if options.timeout_sec is not None and time.monotonic() - started_mono >= options.timeout_sec:
        return f"Scan timed out after {options.timeout_sec:g}s"
    return None


def _failure_message(project: DiscoveredProject, exc: Exception) -> str:
    return f"Error processing {project.path}: {exc}"


def scan_portfolio(
    root: Path,
    *,
    options: ScanOptions | None = None,
    meta_store: ProjectMetaStore | None = None,
    repository_probe: RepositoryProbe | None = None,
    failure_probe: FailureProbe | None = None,
    now: datetime | None = None,
    logger: logging.Logger | None = None,
) -> PortfolioSnapshot:
    """Discover and process every project under ``root``.

    A failing project is recorded in ``scan_stats.errors`` and the scan goes
    on. Cancellation and the overall timeout are checked between projects;
    when either fires the remaining projects are skipped.
    """

    effective_logger = logger or LOGGER
    scan_options = options or ScanOptions()
    if not root.is_dir():
        raise NotFoundError(root)

    started_mono = time.monotonic()
    generated_at = now or now_utc()
    store = meta_store if meta_store is not None else load_meta_store(root, logger=effective_logger)
    repo_probe = repository_probe or partial(
        get_repository_status, timeout=scan_options.git_timeout_sec, logger=effective_logger
    )
    fail_probe = failure_probe or partial(has_recent_failures, timeout=scan_options.git_timeout_sec)

    discovered = find_projects(root, max_depth=scan_options.max_depth, logger=effective_logger)
    selected = discovered
    if scan_options.max_projects is not None:
        selected = discovered[: scan_options.max_projects]
    effective_logger.info(
        "scan.start root=%s discovered=%s selected=%s workers=%s",
        root,
        len(discovered),
        len(selected),
        scan_options.workers,
    )

    process = partial(
        process_project,
        meta_store=store,
        weights=scan_options.weights,
        repository_probe=repo_probe,
        failure_probe=fail_probe,
        now=generated_at,
        logger=effective_logger,
    )

    records: list[ProjectRecord] = []
    errors: list[str] = []

    def _record_interrupt(reason: str, processed: int) -> None:
        skipped = len(selected) - processed
        message = f"{reason}; skipped {skipped} of {len(selected)} projects"
        effective_logger.warning("scan.interrupted reason=%s skipped=%s", reason, skipped)
        errors.append(message)

    def _collect(project: DiscoveredProject, future: Future[ProjectRecord]) -> None:
        try:
            records.append(future.result())
        except Exception as exc:
            effective_logger.exception("scan.project_failed path=%s", project.path)
            errors.append(_failure_message(project, exc))

    if scan_options.workers <= 1:
        for index, project in enumerate(selected):
            reason = _interrupt_reason(scan_options, started_mono)
            if reason is not None:
                _record_interrupt(reason, index)
                break
            try:
                records.append(process(project))
            except Exception as exc:
                effective_logger.exception("scan.project_failed path=%s", project.path)
                errors.append(_failure_message(project, exc))
    else:
        with ThreadPoolExecutor(max_workers=scan_options.workers, thread_name_prefix="skm-scan") as executor:
            futures: list[Future[ProjectRecord]] = [executor.submit(process, project) for project in selected]
            for index, (project, future) in enumerate(zip(selected, futures)):
                reason = _interrupt_reason(scan_options, started_mono)
                if reason is None:
                    _collect(project, future)
                    continue
                remaining = list(zip(selected[index:], futures[index:]))
                for _, pending in remaining:
                    pending.cancel()
                # Projects that already finished are kept; running or cancelled ones are skipped.
                finished = [
                    (item, pending) for item, pending in remaining if pending.done() and not pending.cancelled()
                ]
                for item, pending in finished:
                    _collect(item, pending)
                _record_interrupt(reason, index + len(finished))
                break

    scan_stats = ScanStats(
        directories_scanned=len(discovered),
        projects_found=len(records),
        scan_time_ms=int((time.monotonic() - started_mono) * 1000),
        errors=tuple(errors),
    )
    snapshot = build_snapshot(
        records,
        scan_stats,
        attention_threshold=scan_options.attention_threshold,
        generated_at=generated_at,
    )
    effective_logger.info(
        "scan.summary root=%s projects=%s needs_attention=%s errors=%s scan_time_ms=%s",
        root,
        snapshot.summary.total_projects,
        snapshot.summary.needs_attention,
        len(errors),
        scan_stats.scan_time_ms,
    )
    return snapshot


def run_scan(
    root: Path,
    *,
    options: ScanOptions | None = None,
    repository_probe: RepositoryProbe | None = None,
    failure_probe: FailureProbe | None = None,
    now: datetime | None = None,
    logger: logging.Logger | None = None,
) -> ScanRunResult:
    """Scan ``root``, then refresh the status cache and the markdown status report."""

    effective_logger = logger or LOGGER
    snapshot = scan_portfolio(
        root,
        options=options,
        repository_probe=repository_probe,
        failure_probe=failure_probe,
        now=now,
        logger=effective_logger,
    )
    cache_path = save_status_cache(root, snapshot, last_updated=now, logger=effective_logger)
    report_path = save_markdown_report(snapshot, status_report_path(root), logger=effective_logger)
    effective_logger.info("scan.outputs cache=%s report=%s", cache_path, report_path)
    return ScanRunResult(snapshot=snapshot, cache_path=cache_path, report_path=report_path)


def load_or_scan(
    root: Path,
    *,
    options: ScanOptions | None = None,
    freshness: timedelta = timedelta(minutes=5),
    now: datetime | None = None,
    logger: logging.Logger | None = None,
) -> tuple[PortfolioSnapshot, bool]:
    """Return a fresh cached snapshot, rescanning when the cache is stale or missing.

    The boolean is True when the snapshot came from the cache.
    """

    effective_logger = logger or LOGGER
    cached = load_status_cache(root, now=now, freshness=freshness, logger=effective_logger)
    if cached is not None:
        return cached, True
    effective_logger.info("status.rescan root=%s reason=cache_stale_or_missing", root)
    result = run_scan(root, options=options, now=now, logger=effective_logger)
    return result.snapshot, False


def _filter_predicate(filter_expr: str, attention_threshold: float) -> Callable[[ProjectRecord], bool]:
    normalized = filter_expr.strip()
    if normalized == "needs-attention":
        return lambda project: project.priority > attention_threshold
    if normalized == "incomplete":
        return lambda project: project.tasks.completed < project.tasks.total
    if normalized.lower().startswith("stage:"):
        wanted = normalized[len("stage:"):].strip().lower()
        stage_names = {stage.lower() for stage in STAGE_VALUES}
        if wanted not in stage_names:
            raise ValueError(f"Unknown stage '{wanted}'; expected one of: {', '.join(STAGE_VALUES)}")
        return lambda project: project.stage.lower() == wanted
    raise ValueError(f"Unknown status filter '{filter_expr}'; expected one of: {', '.join(STATUS_FILTERS)}")


def apply_status_filter(
    snapshot: PortfolioSnapshot,
    filter_expr: str,
    *,
    attention_threshold: float = 50.0,
) -> PortfolioSnapshot:
    """Keep only matching projects; the summary is re-derived from the kept list."""

    keep = _filter_predicate(filter_expr, attention_threshold)
    kept = [project for project in snapshot.projects if keep(project)]
    return build_snapshot(
        kept,
        snapshot.scan_stats,
        attention_threshold=attention_threshold,
        generated_at=snapshot.generated_at,
    )
