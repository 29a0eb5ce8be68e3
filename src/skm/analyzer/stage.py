"""Lifecycle stage detection and the stage -> next-action lookup."""

from __future__ import annotations

from pathlib import Path

from skm.models import ArtifactSet, NextAction, ProjectKind, Stage

NEXT_ACTIONS: dict[Stage, NextAction] = {
    "Bootstrap": NextAction(
        command="create-constitution",
        description="Create project constitution to establish core values and principles",
        automated=False,
        risk_level="L2",
    ),
    "Specify": NextAction(
        command="create-specification",
        description="Create specification with user stories and requirements",
        automated=False,
        risk_level="L2",
    ),
    "Plan": NextAction(
        command="create-plan",
        description="Create implementation plan with technical design",
        automated=False,
        risk_level="L2",
    ),
    "Tasks": NextAction(
        command="generate-tasks",
        description="Generate task breakdown for implementation",
        automated=True,
        risk_level="L1",
    ),
    "Implement": NextAction(
        command="begin-implementation",
        description="Begin implementation of tasks",
        automated=False,
        risk_level="L3",
    ),
    "Test": NextAction(
        command="run-tests",
        description="Execute test suite and validate functionality",
        automated=True,
        risk_level="L1",
    ),
    "Review": NextAction(
        command="review-code",
        description="Perform code review and quality checks",
        automated=False,
        risk_level="L1",
    ),
    "Done": NextAction(
        command="none",
        description="All stages completed successfully",
        automated=False,
        risk_level="L0",
    ),
}

STAGE_DESCRIPTIONS: dict[Stage, str] = {
    "Bootstrap": "Needs constitution - establish project identity",
    "Specify": "Needs specification - define requirements",
    "Plan": "Needs plan - design technical approach",
    "Tasks": "Needs tasks - break down work items",
    "Implement": "In implementation - coding in progress",
    "Test": "In testing - validating functionality",
    "Review": "In review - awaiting approval",
    "Done": "Complete - all stages finished",
}

ATTENTION_STAGES: frozenset[Stage] = frozenset({"Bootstrap", "Specify", "Plan", "Review"})

# Glob patterns (relative to the project directory) that count as source code.
IMPLEMENTATION_RULES: dict[ProjectKind, tuple[str, ...]] = {
    "Rust": ("src/**/*.rs",),
    "Node": ("src/**/*.js", "src/**/*.ts"),
    "Python": ("src/**/*.py", "*/__init__.py"),
    "Go": ("*.go", "cmd/**/*.go", "internal/**/*.go", "pkg/**/*.go"),
    "Generic": ("src/**/*", "lib/**/*"),
    "Unknown": (),
}


def detect_stage(artifacts: ArtifactSet, *, has_implementation: bool = False) -> Stage:
    """Map artifact presence plus the implementation signal to a lifecycle stage.

    ``Review`` and ``Done`` are never returned; they need a signal that
    artifact presence cannot provide.
    """

    if artifacts.constitution is None:
        return "Bootstrap"
    if artifacts.specification is None:
        return "Specify"
    if artifacts.plan is None:
        return "Plan"
    if artifacts.task_list is None:
        return "Tasks"
    if not has_implementation:
        return "Implement"
    return "Test"


def has_implementation_artifacts(project_path: Path, project_kind: ProjectKind) -> bool:
    """True when the project tree holds source files for its ecosystem."""

    for pattern in IMPLEMENTATION_RULES[project_kind]:
        if any(candidate.is_file() for candidate in project_path.glob(pattern)):
            return True
    return False


def next_action_for(stage: Stage) -> NextAction:
    return NEXT_ACTIONS[stage]


def needs_human_attention(stage: Stage) -> bool:
    """Stage-level attention flag; independent of the priority score's requirements."""

    return stage in ATTENTION_STAGES


def stage_description(stage: Stage) -> str:
    return STAGE_DESCRIPTIONS[stage]
