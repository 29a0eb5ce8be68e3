"""Stage detection, scoring, and portfolio aggregation."""

from skm.analyzer.priority import (
    PriorityWeights,
    calculate_priority,
    calculate_risk,
    detect_human_requirements,
    resolve_impact_confidence,
)
from skm.analyzer.stage import (
    NEXT_ACTIONS,
    detect_stage,
    has_implementation_artifacts,
    needs_human_attention,
    next_action_for,
    stage_description,
)
from skm.analyzer.summary import build_snapshot, projects_frame, summarize_projects

__all__ = [
    "PriorityWeights",
    "calculate_priority",
    "calculate_risk",
    "detect_human_requirements",
    "resolve_impact_confidence",
    "NEXT_ACTIONS",
    "detect_stage",
    "has_implementation_artifacts",
    "needs_human_attention",
    "next_action_for",
    "stage_description",
    "build_snapshot",
    "projects_frame",
    "summarize_projects",
]
