"""Scanner package for project discovery, artifact resolution, and task parsing."""

from skm.scanner.artifacts import (
    is_feature_directory_name,
    list_feature_directories,
    read_artifact_ref,
    resolve_artifacts,
    resolve_direct_artifacts,
    resolve_feature_artifacts,
    resolve_project_artifacts,
)
from skm.scanner.discover import (
    HIDDEN_ARTIFACT_ROOT,
    IGNORED_DIR_NAMES,
    VISIBLE_ARTIFACT_ROOT,
    DiscoveredProject,
    detect_project_kind,
    find_projects,
    project_id_for,
)
from skm.scanner.repository import get_repository_status, has_recent_failures
from skm.scanner.tasks import LINE_RULES, classify_line, parse_task_file, parse_task_text

__all__ = [
    "is_feature_directory_name",
    "list_feature_directories",
    "read_artifact_ref",
    "resolve_artifacts",
    "resolve_direct_artifacts",
    "resolve_feature_artifacts",
    "resolve_project_artifacts",
    "HIDDEN_ARTIFACT_ROOT",
    "VISIBLE_ARTIFACT_ROOT",
    "IGNORED_DIR_NAMES",
    "DiscoveredProject",
    "detect_project_kind",
    "find_projects",
    "project_id_for",
    "get_repository_status",
    "has_recent_failures",
    "LINE_RULES",
    "classify_line",
    "parse_task_file",
    "parse_task_text",
]
