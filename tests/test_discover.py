from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path

import pytest

from skm.scanner.discover import detect_project_kind, find_projects, should_ignore

WriteTree = Callable[[Path, Mapping[str, str]], Path]


def _relative(projects: list, root: Path) -> list[str]:
    return [project.path.relative_to(root).as_posix() for project in projects]


def test_finds_projects_by_marker_directory(tmp_path: Path, write_tree: WriteTree) -> None:
    write_tree(
        tmp_path,
        {
            "alpha/.specify/memory/constitution.md": "values",
            "beta/specs/001-x/spec.md": "spec",
            "gamma/README.md": "no markers",
        },
    )

    projects = find_projects(tmp_path)

    assert _relative(projects, tmp_path) == ["alpha", "beta"]
    assert [project.project_id for project in projects] == ["alpha", "beta"]


def test_project_with_both_roots_is_reported_once(tmp_path: Path, write_tree: WriteTree) -> None:
    write_tree(tmp_path, {"app/.specify/spec.md": "a", "app/specs/spec.md": "b"})
    assert _relative(find_projects(tmp_path), tmp_path) == ["app"]


def test_markers_inside_hidden_root_are_skipped(tmp_path: Path, write_tree: WriteTree) -> None:
    write_tree(tmp_path, {"app/.specify/specs/001-x/spec.md": "nested", "app/.specify/memory/c.md": "c"})
    assert _relative(find_projects(tmp_path), tmp_path) == ["app"]


@pytest.mark.parametrize("ignored", ["node_modules", "target", ".git", "dist", "build", "__pycache__"])
def test_ignored_directories_are_not_descended(tmp_path: Path, write_tree: WriteTree, ignored: str) -> None:
    write_tree(tmp_path, {f"{ignored}/vendored/specs/spec.md": "x", "real/specs/spec.md": "y"})
    assert _relative(find_projects(tmp_path), tmp_path) == ["real"]
    assert should_ignore(tmp_path / ignored)


def test_root_itself_can_be_a_project(tmp_path: Path, write_tree: WriteTree) -> None:
    root = write_tree(tmp_path / "workspace", {"specs/spec.md": "x"})
    projects = find_projects(root)
    assert [project.path for project in projects] == [root]
    assert projects[0].project_id == "workspace"


def test_depth_limit(tmp_path: Path, write_tree: WriteTree) -> None:
    write_tree(tmp_path, {"org/team/app/specs/spec.md": "x"})
    assert find_projects(tmp_path, max_depth=3) == []
    assert _relative(find_projects(tmp_path, max_depth=4), tmp_path) == ["org/team/app"]


def test_missing_root_yields_nothing(tmp_path: Path) -> None:
    assert find_projects(tmp_path / "missing") == []


@pytest.mark.parametrize(
    ("files", "expected"),
    [
        ({"Cargo.toml": "", "package.json": "{}"}, "Rust"),
        ({"package.json": "{}"}, "Node"),
        ({"setup.py": ""}, "Python"),
        ({"pyproject.toml": "", "go.mod": ""}, "Python"),
        ({"go.mod": ""}, "Go"),
        ({"lib/util.sh": ""}, "Generic"),
        ({"README.md": ""}, "Unknown"),
    ],
)
def test_project_kind_detection(tmp_path: Path, write_tree: WriteTree, files: dict[str, str], expected: str) -> None:
    assert detect_project_kind(write_tree(tmp_path / "proj", files)) == expected
