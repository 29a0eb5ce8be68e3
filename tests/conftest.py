from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from pathlib import Path

import pytest

from skm.analyzer.stage import next_action_for
from skm.models import (
    ArtifactRef,
    ArtifactSet,
    HumanRequirement,
    ProjectRecord,
    RepositoryStatus,
    Stage,
    TaskLedger,
)

FIXED_NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def spec_kit_files() -> dict[str, str]:
    """A typical spec-kit layout: hidden constitution plus one numbered feature."""

    return {
        ".specify/memory/constitution.md": "# Constitution\n\nPrinciples.\n",
        "specs/001-initial/spec.md": "# Spec\n\nUser stories.\n",
        "specs/001-initial/plan.md": "# Plan\n\nDesign.\n",
        "specs/001-initial/tasks.md": "- [x] T001: setup [P]\n- [ ] T002: build\n",
    }


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point settings at a missing file and drop ambient SKM_ overrides."""

    for name in list(os.environ):
        if name.startswith("SKM_"):
            monkeypatch.delenv(name, raising=False)
    missing = tmp_path_factory.mktemp("settings") / "missing.yaml"
    monkeypatch.setenv("SKM_SETTINGS_FILE", str(missing))


@pytest.fixture
def write_tree() -> Callable[[Path, Mapping[str, str]], Path]:
    """Create files (relative path -> text) under a base directory."""

    def _write(base: Path, files: Mapping[str, str]) -> Path:
        for relative, text in files.items():
            target = base / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        base.mkdir(parents=True, exist_ok=True)
        return base

    return _write


@pytest.fixture
def artifact_ref() -> Callable[..., ArtifactRef]:
    def _ref(name: str = "doc.md", modified: datetime = FIXED_NOW) -> ArtifactRef:
        return ArtifactRef(path=Path("/projects/demo") / name, size_bytes=42, last_modified=modified, is_valid=True)

    return _ref


@pytest.fixture
def make_record(artifact_ref: Callable[..., ArtifactRef]) -> Callable[..., ProjectRecord]:
    """Build a ProjectRecord with sensible defaults for rendering/summary tests."""

    def _make(
        name: str = "demo",
        *,
        stage: Stage = "Implement",
        priority: float = 20.0,
        requires_human: tuple[HumanRequirement, ...] = (),
        tasks: TaskLedger | None = None,
        repository: RepositoryStatus | None = None,
        last_updated: datetime = FIXED_NOW,
    ) -> ProjectRecord:
        return ProjectRecord(
            id=name,
            path=Path("/projects") / name,
            stage=stage,
            next_action=next_action_for(stage),
            requires_human=requires_human,
            priority=priority,
            tasks=tasks or TaskLedger(total=4, completed=1, parallel_marked=1, blocked=0),
            last_updated=last_updated,
            repository=repository or RepositoryStatus(),
            project_kind="Python",
            artifacts=ArtifactSet(
                constitution=artifact_ref("constitution.md"),
                specification=artifact_ref("spec.md"),
            ),
        )

    return _make
