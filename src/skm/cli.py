"""Typer CLI entrypoint for skm."""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from pathlib import Path
from typing import NoReturn, cast

import typer
import yaml

from skm.config import AppSettings, load_settings
from skm.errors import NotFoundError, SkmError
from skm.logging_utils import configure_logging, resolve_log_level
from skm.meta.store import SETTABLE_KEYS, load_meta_store, save_meta_store
from skm.pipeline import (
    STATUS_FILTERS,
    apply_status_filter,
    load_or_scan,
    options_from_settings,
    run_scan,
    status_report_path,
)
from skm.report.console import render_scan_lines, render_status_lines
from skm.report.export import REPORT_FORMAT_VALUES, ReportFormat, write_report

app = typer.Typer(
    add_completion=False,
    help="skm (Spec-Kit Manager) portfolio status for spec-driven projects.",
    no_args_is_help=True,
)

CONFIG_FILE_OPTION = typer.Option(
    None,
    "--config-file",
    help="Optional settings YAML path.",
    exists=False,
    file_okay=True,
    dir_okay=False,
    readable=True,
)
ROOT_OPTION = typer.Option(
    Path("."),
    "--root",
    help="Directory to scan for projects.",
    file_okay=False,
    dir_okay=True,
)
VERBOSE_OPTION = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Enable debug logging.",
)


def _load_and_optionally_configure_logger(
    config_file: Path | None,
    configure: bool,
    verbose: bool = False,
) -> tuple[AppSettings, logging.Logger]:
    settings = load_settings(config_file=config_file)
    if configure:
        logger = configure_logging(
            settings.logging.log_file,
            level=resolve_log_level(settings.logging.level, verbose=verbose),
        )
    else:
        logger = logging.getLogger("skm")
    return settings, logger


def _exit_with_error(command: str, exc: SkmError) -> NoReturn:
    logging.getLogger("skm").error("%s.failed error=%s", command, exc)
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


def _cache_freshness(settings: AppSettings) -> timedelta:
    return timedelta(minutes=settings.cache.freshness_minutes)


def _normalize_report_format(value: str) -> ReportFormat:
    normalized = value.strip().lower()
    if normalized not in REPORT_FORMAT_VALUES:
        raise typer.BadParameter(f"format must be one of: {', '.join(REPORT_FORMAT_VALUES)}")
    return cast(ReportFormat, normalized)


@app.command("show-config")
def show_config(config_file: Path | None = CONFIG_FILE_OPTION) -> None:
    """Print the effective configuration after env overrides."""

    try:
        settings, _ = _load_and_optionally_configure_logger(config_file, configure=False)
    except SkmError as exc:
        _exit_with_error("show_config", exc)
    rendered = yaml.safe_dump(settings.as_dict(), sort_keys=False)
    typer.echo(rendered)


@app.command("scan")
def scan_cmd(
    root: Path = ROOT_OPTION,
    config_file: Path | None = CONFIG_FILE_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Scan for projects, refresh the status cache, and write .skm/STATUS.md."""

    try:
        settings, logger = _load_and_optionally_configure_logger(config_file, configure=True, verbose=verbose)
        result = run_scan(root, options=options_from_settings(settings), logger=logger)
    except SkmError as exc:
        _exit_with_error("scan", exc)

    for line in render_scan_lines(result.snapshot):
        typer.echo(line)
    typer.echo(f"status_cache: {result.cache_path}")
    typer.echo(f"status_report: {result.report_path}")


@app.command("status")
def status_cmd(
    root: Path = ROOT_OPTION,
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the snapshot as JSON.",
    ),
    only: str | None = typer.Option(
        None,
        "--only",
        help=f"Optional filter: {', '.join(STATUS_FILTERS)}.",
    ),
    config_file: Path | None = CONFIG_FILE_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show portfolio status from the cache, rescanning when it is stale."""

    try:
        settings, logger = _load_and_optionally_configure_logger(config_file, configure=True, verbose=verbose)
        snapshot, from_cache = load_or_scan(
            root,
            options=options_from_settings(settings),
            freshness=_cache_freshness(settings),
            logger=logger,
        )
    except SkmError as exc:
        _exit_with_error("status", exc)

    if not from_cache:
        typer.echo("Cache is stale or missing, rescanned.", err=True)

    if only is not None:
        try:
            snapshot = apply_status_filter(snapshot, only, attention_threshold=settings.attention_threshold)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--only") from exc

    if as_json:
        typer.echo(json.dumps(snapshot.to_payload(), indent=2, ensure_ascii=False))
        return
    for line in render_status_lines(snapshot):
        typer.echo(line)


@app.command("report")
def report_cmd(
    root: Path = ROOT_OPTION,
    out: Path | None = typer.Option(
        None,
        "--out",
        help="Output path (default: <root>/.skm/STATUS.<ext>).",
        dir_okay=False,
    ),
    report_format: str = typer.Option(
        "md",
        "--format",
        help="Report format: md, json, csv, or parquet.",
    ),
    config_file: Path | None = CONFIG_FILE_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Write a portfolio report from the cached (or freshly scanned) snapshot."""

    normalized_format = _normalize_report_format(report_format)
    output_path = out or status_report_path(root).with_suffix(f".{normalized_format}")

    try:
        settings, logger = _load_and_optionally_configure_logger(config_file, configure=True, verbose=verbose)
        snapshot, _ = load_or_scan(
            root,
            options=options_from_settings(settings),
            freshness=_cache_freshness(settings),
            logger=logger,
        )
        written = write_report(snapshot, output_path, normalized_format, logger=logger)
    except SkmError as exc:
        _exit_with_error("report", exc)

    typer.echo(f"report_format: {normalized_format}")
    typer.echo(f"report_path: {written}")
    typer.echo(f"projects: {len(snapshot.projects)}")


@app.command("meta-set")
def meta_set_cmd(
    project: str = typer.Argument(..., help="Project id (directory name)."),
    key: str = typer.Argument(..., help=f"Metadata key: {', '.join(SETTABLE_KEYS)}."),
    value: str = typer.Argument(..., help="New value."),
    root: Path = ROOT_OPTION,
    config_file: Path | None = CONFIG_FILE_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Set one metadata value for a project in <root>/.skm/meta.json."""

    try:
        _, logger = _load_and_optionally_configure_logger(config_file, configure=True, verbose=verbose)
        store = load_meta_store(root, logger=logger)
        store.set_value(project, key, value)
        path = save_meta_store(root, store, logger=logger)
    except SkmError as exc:
        _exit_with_error("meta_set", exc)

    typer.echo(f"{project}.{key} = {value}")
    typer.echo(f"meta_store: {path}")


@app.command("meta-show")
def meta_show_cmd(
    project: str | None = typer.Argument(None, help="Optional project id; shows all projects when omitted."),
    root: Path = ROOT_OPTION,
    config_file: Path | None = CONFIG_FILE_OPTION,
) -> None:
    """Print project metadata as YAML."""

    try:
        _, logger = _load_and_optionally_configure_logger(config_file, configure=False)
        store = load_meta_store(root, logger=logger)
        if project is None:
            payload: dict[str, object] = store.model_dump(mode="json")
        else:
            meta = store.get_project(project)
            if meta is None:
                raise NotFoundError(Path(project))
            payload = {project: meta.model_dump(mode="json")}
    except SkmError as exc:
        _exit_with_error("meta_show", exc)

    typer.echo(yaml.safe_dump(payload, sort_keys=False, allow_unicode=True))


def main() -> None:
    """CLI script entrypoint."""

    app()


if __name__ == "__main__":
    main()
