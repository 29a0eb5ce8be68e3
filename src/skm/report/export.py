"""Machine-readable snapshot exports (JSON, CSV, parquet)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from skm.analyzer.summary import projects_frame
from skm.errors import FilesystemError
from skm.models import PortfolioSnapshot
from skm.report.markdown import save_markdown_report
from skm.utils.io import write_csv_atomically, write_json_atomically, write_parquet_atomically

LOGGER = logging.getLogger(__name__)

ReportFormat = Literal["md", "json", "csv", "parquet"]
REPORT_FORMAT_VALUES: tuple[ReportFormat, ...] = ("md", "json", "csv", "parquet")


def write_report(
    snapshot: PortfolioSnapshot,
    output_path: Path,
    report_format: ReportFormat = "md",
    logger: logging.Logger | None = None,
) -> Path:
    """Write the snapshot in the requested format."""

    effective_logger = logger or LOGGER
    if report_format == "md":
        return save_markdown_report(snapshot, output_path, logger=effective_logger)

    try:
        if report_format == "json":
            write_json_atomically(snapshot.to_payload(), output_path)
        elif report_format == "csv":
            write_csv_atomically(projects_frame(snapshot.projects), output_path)
        elif report_format == "parquet":
            write_parquet_atomically(projects_frame(snapshot.projects), output_path)
        else:
            raise ValueError(f"Unsupported report format: {report_format}")
    except OSError as exc:
        raise FilesystemError(output_path, exc) from exc

    effective_logger.info(
        "report.written format=%s path=%s projects=%s", report_format, output_path, len(snapshot.projects)
    )
    return output_path
