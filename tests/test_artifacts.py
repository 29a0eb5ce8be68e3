from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path

import pytest

from skm.errors import FilesystemError
from skm.models import ArtifactSet
from skm.scanner.artifacts import (
    is_feature_directory_name,
    list_feature_directories,
    read_artifact_ref,
    resolve_artifacts,
    resolve_project_artifacts,
)

WriteTree = Callable[[Path, Mapping[str, str]], Path]


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("001-login", True),
        ("123", True),
        ("0001-wide", True),
        ("01-short", False),
        ("12", True),
        ("1", True),
        ("7-hotfix", False),
        ("12a-feature", False),
        ("abc", False),
        ("", False),
        ("١٢٣-arabic-digits", False),
    ],
)
def test_feature_directory_names(name: str, expected: bool) -> None:
    assert is_feature_directory_name(name) is expected


def test_direct_layout_resolves_all_four(tmp_path: Path, write_tree: WriteTree) -> None:
    root = write_tree(
        tmp_path / "specs",
        {
            "constitution.md": "values",
            "spec.md": "stories",
            "plan.md": "design",
            "tasks.md": "- [ ] T001: go",
        },
    )

    found = resolve_artifacts(root)

    assert found.presence() == (True, True, True, True)
    assert found.specification is not None
    assert found.specification.path == root / "spec.md"
    assert found.specification.size_bytes == len("stories")
    assert found.specification.is_valid


def test_direct_layout_uses_memory_constitution(tmp_path: Path, write_tree: WriteTree) -> None:
    root = write_tree(tmp_path / ".specify", {"memory/constitution.md": "values"})

    found = resolve_artifacts(root)

    assert found.constitution is not None
    assert found.constitution.path == root / "memory" / "constitution.md"
    assert found.presence() == (True, False, False, False)


def test_direct_layout_beats_feature_directories(tmp_path: Path, write_tree: WriteTree) -> None:
    root = write_tree(
        tmp_path / "specs",
        {
            "spec.md": "top-level spec",
            "001-feature/plan.md": "feature plan",
            "001-feature/tasks.md": "- [ ] T001: go",
        },
    )

    found = resolve_artifacts(root)

    assert found.specification is not None
    assert found.specification.path == root / "spec.md"
    assert found.plan is None
    assert found.task_list is None


def test_newest_feature_directory_wins_spec_and_plan(tmp_path: Path, write_tree: WriteTree) -> None:
    project = tmp_path / "proj"
    write_tree(
        project,
        {
            ".specify/memory/constitution.md": "values",
            "specs/001-auth/spec.md": "auth spec",
            "specs/001-auth/plan.md": "auth plan",
            "specs/001-auth/tasks.md": "- [x] T001: auth",
            "specs/002-billing/spec.md": "billing spec",
            "specs/002-billing/tasks.md": "- [ ] T001: billing",
            "specs/notes/spec.md": "not a feature directory",
        },
    )
    specs = project / "specs"

    found = resolve_artifacts(specs)

    assert found.constitution is not None
    assert found.constitution.path == project / ".specify" / "memory" / "constitution.md"
    assert found.specification is not None
    assert found.specification.path == specs / "002-billing" / "spec.md"
    assert found.plan is not None
    assert found.plan.path == specs / "001-auth" / "plan.md"
    assert found.task_list is not None
    assert found.task_list.path == specs / "002-billing" / "tasks.md"


def test_feature_directories_sort_lexicographically(tmp_path: Path, write_tree: WriteTree) -> None:
    root = write_tree(
        tmp_path / "specs",
        {
            "010-late/spec.md": "ten",
            "009-early/spec.md": "nine",
            "100-latest/spec.md": "hundred",
            "readme/spec.md": "ignored",
        },
    )

    names = [path.name for path in list_feature_directories(root)]

    assert names == ["009-early", "010-late", "100-latest"]
    found = resolve_artifacts(root)
    assert found.specification is not None
    assert found.specification.path.parent.name == "100-latest"


def test_missing_directory_has_no_feature_directories(tmp_path: Path) -> None:
    assert list_feature_directories(tmp_path / "missing") == []


def test_empty_root_resolves_to_empty_set(tmp_path: Path) -> None:
    (tmp_path / "specs").mkdir()
    assert resolve_artifacts(tmp_path / "specs") == ArtifactSet()


def test_project_prefers_visible_root(tmp_path: Path, write_tree: WriteTree) -> None:
    project = write_tree(
        tmp_path / "proj",
        {
            "specs/spec.md": "visible",
            ".specify/spec.md": "hidden",
            ".specify/plan.md": "hidden plan",
        },
    )

    found = resolve_project_artifacts(project)

    assert found.specification is not None
    assert found.specification.path == project / "specs" / "spec.md"
    assert found.plan is None


def test_project_falls_back_to_hidden_root_when_visible_is_empty(
    tmp_path: Path, write_tree: WriteTree
) -> None:
    project = write_tree(tmp_path / "proj", {".specify/spec.md": "hidden", "specs/.gitkeep": ""})

    found = resolve_project_artifacts(project)

    assert found.specification is not None
    assert found.specification.path == project / ".specify" / "spec.md"


def test_project_uses_hidden_root_when_visible_missing(tmp_path: Path, write_tree: WriteTree) -> None:
    project = write_tree(tmp_path / "proj", {".specify/memory/constitution.md": "values"})

    found = resolve_project_artifacts(project)

    assert found.presence() == (True, False, False, False)


def test_project_with_spec_kit_layout(
    tmp_path: Path, write_tree: WriteTree, spec_kit_files: dict[str, str]
) -> None:
    project = write_tree(tmp_path / "proj", spec_kit_files)

    found = resolve_project_artifacts(project)

    assert found.presence() == (True, True, True, True)


def test_project_without_roots_is_empty(tmp_path: Path) -> None:
    assert resolve_project_artifacts(tmp_path) == ArtifactSet()


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        (b"# Title\n", True),
        (b"", False),
        (b"   \n\t\n", False),
        (b"\xff\xfe\xfa not utf-8", False),
    ],
)
def test_artifact_validity_probe(tmp_path: Path, content: bytes, expected: bool) -> None:
    path = tmp_path / "spec.md"
    path.write_bytes(content)

    ref = read_artifact_ref(path)

    assert ref.is_valid is expected
    assert ref.size_bytes == len(content)
    assert ref.last_modified.tzinfo is not None


def test_read_artifact_ref_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FilesystemError):
        read_artifact_ref(tmp_path / "missing.md")


def test_short_numbered_feature_directories_are_aggregated(tmp_path: Path, write_tree: WriteTree) -> None:
    root = write_tree(tmp_path / "specs", {"1/spec.md": "first spec", "12/plan.md": "later plan"})

    assert [path.name for path in list_feature_directories(root)] == ["1", "12"]
    found = resolve_artifacts(root)
    assert found.specification is not None
    assert found.specification.path == root / "1" / "spec.md"
    assert found.plan is not None
    assert found.plan.path == root / "12" / "plan.md"
