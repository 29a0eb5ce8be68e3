"""Resolve the four lifecycle artifacts of a project across supported layouts.

Two layouts are recognised inside an artifact root:

1. Direct: ``constitution.md`` (or ``memory/constitution.md``), ``spec.md``,
   ``plan.md`` and ``tasks.md`` sit directly in the root. If any of them is
   present the direct result is returned as-is.
2. Numbered feature directories (``001-login``, ``002-billing``, ...): the
   newest feature that has a spec/plan wins, the constitution comes from the
   sibling ``.specify/memory`` tree, and only the newest task list is surfaced.

Feature directories are ordered by plain name comparison, so numeric prefixes
only order correctly when they have equal width (``010`` vs ``9-x`` does not).
"""

from __future__ import annotations

import logging
import string
from pathlib import Path

from skm.errors import FilesystemError
from skm.models import ArtifactRef, ArtifactSet
from skm.scanner.discover import HIDDEN_ARTIFACT_ROOT, VISIBLE_ARTIFACT_ROOT
from skm.utils.time_utils import utc_from_timestamp

LOGGER = logging.getLogger(__name__)

CONSTITUTION_FILE = "constitution.md"
MEMORY_DIR = "memory"
SPECIFICATION_FILE = "spec.md"
PLAN_FILE = "plan.md"
TASKS_FILE = "tasks.md"
FEATURE_PREFIX_WIDTH = 3


def _has_content(path: Path) -> bool:
    """Readable, UTF-8 decodable, and non-blank after trimming."""

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return False
    return bool(text.strip())


def read_artifact_ref(path: Path) -> ArtifactRef:
    """Stat an artifact file and probe its content validity."""

    try:
        stats = path.stat()
    except OSError as exc:
        raise FilesystemError(path, exc) from exc
    return ArtifactRef(
        path=path,
        size_bytes=stats.st_size,
        last_modified=utc_from_timestamp(stats.st_mtime),
        is_valid=_has_content(path),
    )


def _locate(path: Path) -> ArtifactRef | None:
    try:
        present = path.is_file()
    except OSError as exc:
        raise FilesystemError(path, exc) from exc
    return read_artifact_ref(path) if present else None


def resolve_direct_artifacts(directory: Path) -> ArtifactSet:
    """Look for the canonical filenames directly inside ``directory``."""

    constitution = _locate(directory / CONSTITUTION_FILE)
    if constitution is None:
        constitution = _locate(directory / MEMORY_DIR / CONSTITUTION_FILE)
    return ArtifactSet(
        constitution=constitution,
        specification=_locate(directory / SPECIFICATION_FILE),
        plan=_locate(directory / PLAN_FILE),
        task_list=_locate(directory / TASKS_FILE),
    )


def is_feature_directory_name(name: str) -> bool:
    """True when the name starts with up to three ASCII decimal digits.

    Shorter all-digit names such as ``1`` or ``12`` also qualify.
    """

    return bool(name) and all(char in string.digits for char in name[:FEATURE_PREFIX_WIDTH])


def list_feature_directories(directory: Path) -> list[Path]:
    """Return numbered feature directories sorted by name ascending."""

    try:
        entries = list(directory.iterdir())
    except (FileNotFoundError, NotADirectoryError):
        return []
    except OSError as exc:
        raise FilesystemError(directory, exc) from exc
    features = [entry for entry in entries if entry.is_dir() and is_feature_directory_name(entry.name)]
    return sorted(features, key=lambda entry: entry.name)


def resolve_feature_artifacts(directory: Path, logger: logging.Logger | None = None) -> ArtifactSet:
    """Aggregate artifacts from numbered feature directories, newest first."""

    effective_logger = logger or LOGGER
    features = list_feature_directories(directory)
    if features:
        effective_logger.debug(
            "artifacts.feature_dirs root=%s count=%s names=%s",
            directory,
            len(features),
            [feature.name for feature in features],
        )

    constitution = _locate(directory.parent / HIDDEN_ARTIFACT_ROOT / MEMORY_DIR / CONSTITUTION_FILE)
    specification: ArtifactRef | None = None
    plan: ArtifactRef | None = None
    task_lists: list[ArtifactRef] = []

    for feature in reversed(features):
        found = resolve_direct_artifacts(feature)
        if specification is None and found.specification is not None:
            specification = found.specification
        if plan is None and found.plan is not None:
            plan = found.plan
        if found.task_list is not None:
            task_lists.append(found.task_list)

    # Task lists are never merged; the newest feature's list is the one surfaced.
    return ArtifactSet(
        constitution=constitution,
        specification=specification,
        plan=plan,
        task_list=task_lists[0] if task_lists else None,
    )


def resolve_artifacts(directory: Path, logger: logging.Logger | None = None) -> ArtifactSet:
    """Resolve the artifact set for one artifact root (``specs`` or ``.specify``)."""

    direct = resolve_direct_artifacts(directory)
    if direct.has_any():
        return direct
    aggregated = resolve_feature_artifacts(directory, logger=logger)
    if aggregated.has_any():
        return aggregated
    return ArtifactSet()


def resolve_project_artifacts(project_dir: Path, logger: logging.Logger | None = None) -> ArtifactSet:
    """Resolve a project's artifacts, preferring ``specs`` over ``.specify``.

    The hidden root is consulted only when the visible root is missing or
    yields no artifact at all.
    """

    effective_logger = logger or LOGGER
    visible_root = project_dir / VISIBLE_ARTIFACT_ROOT
    hidden_root = project_dir / HIDDEN_ARTIFACT_ROOT

    if visible_root.is_dir():
        found = resolve_artifacts(visible_root, logger=effective_logger)
        if found.has_any():
            effective_logger.debug("artifacts.root_selected project=%s root=%s", project_dir, visible_root)
            return found
        if hidden_root.is_dir():
            effective_logger.debug("artifacts.visible_root_empty project=%s fallback=%s", project_dir, hidden_root)
            return resolve_artifacts(hidden_root, logger=effective_logger)
        return found

    if hidden_root.is_dir():
        effective_logger.debug("artifacts.root_selected project=%s root=%s", project_dir, hidden_root)
        return resolve_artifacts(hidden_root, logger=effective_logger)

    effective_logger.debug("artifacts.no_roots project=%s", project_dir)
    return ArtifactSet()
