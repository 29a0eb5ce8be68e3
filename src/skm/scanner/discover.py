"""Discover spec-driven projects under a root directory."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from skm.models import ProjectKind

LOGGER = logging.getLogger(__name__)

HIDDEN_ARTIFACT_ROOT = ".specify"
VISIBLE_ARTIFACT_ROOT = "specs"
PROJECT_MARKER_DIRS: tuple[str, ...] = (HIDDEN_ARTIFACT_ROOT, VISIBLE_ARTIFACT_ROOT)
IGNORED_DIR_NAMES: frozenset[str] = frozenset(
    {"node_modules", "target", ".git", "dist", "build", "__pycache__"}
)

# Ordered: the first matching signature decides the kind.
PROJECT_KIND_SIGNATURES: tuple[tuple[ProjectKind, tuple[str, ...]], ...] = (
    ("Rust", ("Cargo.toml",)),
    ("Node", ("package.json",)),
    ("Python", ("pyproject.toml", "setup.py")),
    ("Go", ("go.mod",)),
    ("Generic", ("src", "lib")),
)


@dataclass(frozen=True, slots=True)
class DiscoveredProject:
    """A directory that owns a ``.specify`` or ``specs`` artifact root."""

    project_id: str
    path: Path


def should_ignore(path: Path) -> bool:
    """Return True for dependency/build directories that are never descended into."""

    return path.name in IGNORED_DIR_NAMES


def detect_project_kind(path: Path) -> ProjectKind:
    """Infer the project ecosystem from toolchain signature files."""

    for kind, names in PROJECT_KIND_SIGNATURES:
        if any((path / name).exists() for name in names):
            return kind
    return "Unknown"


def project_id_for(path: Path) -> str:
    """Project identifier used as the metadata-store key."""

    return path.name or path.resolve().name or "unknown"


def _walk_directories(
    directory: Path,
    depth: int,
    max_depth: int,
    logger: logging.Logger,
) -> Iterator[Path]:
    if depth >= max_depth:
        return
    try:
        children = sorted(
            child for child in directory.iterdir() if child.is_dir() and not child.is_symlink()
        )
    except OSError as exc:
        logger.warning("discover.unreadable_dir path=%s error=%s", directory, exc)
        return
    for child in children:
        yield child
        if not should_ignore(child):
            yield from _walk_directories(child, depth + 1, max_depth, logger)


def _inside_hidden_root(path: Path, root: Path) -> bool:
    try:
        parts = path.relative_to(root).parts
    except ValueError:
        parts = path.parts
    return HIDDEN_ARTIFACT_ROOT in parts


def find_projects(
    root: Path,
    max_depth: int = 5,
    logger: logging.Logger | None = None,
) -> list[DiscoveredProject]:
    """Walk ``root`` up to ``max_depth`` levels and return projects in discovery order.

    A project is the parent of a ``.specify`` or ``specs`` directory. Marker
    directories nested inside another project's ``.specify`` tree are skipped,
    and each project is reported once.
    """

    effective_logger = logger or LOGGER
    if not root.exists():
        effective_logger.warning("discover.root_missing root=%s", root)
        return []

    projects: list[DiscoveredProject] = []
    seen: set[Path] = set()
    for directory in _walk_directories(root, 0, max_depth, effective_logger):
        if directory.name not in PROJECT_MARKER_DIRS:
            continue
        project_path = directory.parent
        if _inside_hidden_root(project_path, root):
            continue
        if project_path in seen:
            continue
        seen.add(project_path)
        projects.append(DiscoveredProject(project_id=project_id_for(project_path), path=project_path))
        effective_logger.debug("discover.project_found path=%s marker=%s", project_path, directory.name)
    return projects
