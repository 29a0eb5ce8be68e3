"""Report rendering for portfolio snapshots."""

from skm.report.console import render_scan_lines, render_status_lines, status_icon
from skm.report.export import REPORT_FORMAT_VALUES, ReportFormat, write_report
from skm.report.markdown import priority_badge, render_markdown_report, save_markdown_report

__all__ = [
    "render_scan_lines",
    "render_status_lines",
    "status_icon",
    "REPORT_FORMAT_VALUES",
    "ReportFormat",
    "write_report",
    "priority_badge",
    "render_markdown_report",
    "save_markdown_report",
]
