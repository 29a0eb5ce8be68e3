from __future__ import annotations

import itertools
from collections.abc import Callable, Mapping
from pathlib import Path

import pytest

from skm.analyzer.stage import (
    IMPLEMENTATION_RULES,
    NEXT_ACTIONS,
    STAGE_DESCRIPTIONS,
    detect_stage,
    has_implementation_artifacts,
    needs_human_attention,
    next_action_for,
    stage_description,
)
from skm.models import PROJECT_KIND_VALUES, STAGE_VALUES, ArtifactRef, ArtifactSet, ProjectKind, Stage

WriteTree = Callable[[Path, Mapping[str, str]], Path]


def _artifact_set(ref: ArtifactRef, flags: tuple[bool, bool, bool, bool]) -> ArtifactSet:
    constitution, specification, plan, task_list = flags
    return ArtifactSet(
        constitution=ref if constitution else None,
        specification=ref if specification else None,
        plan=ref if plan else None,
        task_list=ref if task_list else None,
    )


def _expected_stage(flags: tuple[bool, bool, bool, bool], has_implementation: bool) -> Stage:
    for present, stage in zip(flags, ("Bootstrap", "Specify", "Plan", "Tasks")):
        if not present:
            return stage
    return "Test" if has_implementation else "Implement"


@pytest.mark.parametrize(
    ("flags", "has_implementation"),
    list(itertools.product(itertools.product((False, True), repeat=4), (False, True))),
)
def test_stage_is_total_function_of_presence(
    artifact_ref: Callable[..., ArtifactRef],
    flags: tuple[bool, bool, bool, bool],
    has_implementation: bool,
) -> None:
    artifacts = _artifact_set(artifact_ref(), flags)

    first = detect_stage(artifacts, has_implementation=has_implementation)
    second = detect_stage(artifacts, has_implementation=has_implementation)

    assert first == second == _expected_stage(flags, has_implementation)
    assert first not in ("Review", "Done")


def test_constitution_and_specification_only_is_plan(artifact_ref: Callable[..., ArtifactRef]) -> None:
    artifacts = ArtifactSet(constitution=artifact_ref(), specification=artifact_ref())
    assert detect_stage(artifacts) == "Plan"


def test_lookup_tables_are_exhaustive() -> None:
    assert set(NEXT_ACTIONS) == set(STAGE_VALUES)
    assert set(STAGE_DESCRIPTIONS) == set(STAGE_VALUES)
    assert set(IMPLEMENTATION_RULES) == set(PROJECT_KIND_VALUES)
    for stage in STAGE_VALUES:
        assert stage_description(stage)


@pytest.mark.parametrize(
    ("stage", "command", "automated", "risk_level"),
    [
        ("Bootstrap", "create-constitution", False, "L2"),
        ("Specify", "create-specification", False, "L2"),
        ("Plan", "create-plan", False, "L2"),
        ("Tasks", "generate-tasks", True, "L1"),
        ("Implement", "begin-implementation", False, "L3"),
        ("Test", "run-tests", True, "L1"),
        ("Review", "review-code", False, "L1"),
        ("Done", "none", False, "L0"),
    ],
)
def test_next_action_table(stage: Stage, command: str, automated: bool, risk_level: str) -> None:
    action = next_action_for(stage)
    assert action.command == command
    assert action.automated is automated
    assert action.risk_level == risk_level
    assert action.description


def test_needs_human_attention_stages() -> None:
    flagged = {stage for stage in STAGE_VALUES if needs_human_attention(stage)}
    assert flagged == {"Bootstrap", "Specify", "Plan", "Review"}


@pytest.mark.parametrize(
    ("kind", "files", "expected"),
    [
        ("Rust", {"Cargo.toml": "", "src/main.rs": "fn main() {}"}, True),
        ("Rust", {"Cargo.toml": ""}, False),
        ("Node", {"package.json": "{}", "src/lib/index.ts": "export {}"}, True),
        ("Python", {"pyproject.toml": "", "mypkg/__init__.py": ""}, True),
        ("Python", {"pyproject.toml": "", "src/app/main.py": ""}, True),
        ("Python", {"pyproject.toml": ""}, False),
        ("Go", {"go.mod": "", "main.go": "package main"}, True),
        ("Generic", {"lib/helper.sh": "echo"}, True),
        ("Unknown", {"anything.txt": "x"}, False),
    ],
)
def test_implementation_artifacts_by_kind(
    tmp_path: Path,
    write_tree: WriteTree,
    kind: ProjectKind,
    files: dict[str, str],
    expected: bool,
) -> None:
    project = write_tree(tmp_path / "proj", files)
    assert has_implementation_artifacts(project, kind) is expected
