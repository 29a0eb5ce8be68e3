"""Risk and priority scoring used to rank projects for human attention."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from skm.meta.store import ProjectMeta
from skm.models import HumanRequirement, RepositoryStatus, Stage, TaskLedger
from skm.utils.time_utils import now_utc

MAX_RISK = 3
MAX_CONFIDENCE = 2
STALENESS_HORIZON_DAYS = 7.0
PARALLEL_RISK_THRESHOLD = 3
DEFAULT_IMPACT = 2
DEFAULT_CONFIDENCE = 1
APPROVED_CONFIDENCE = 2

IMPACT_NORMALIZATION: dict[int, float] = {1: 0.33, 2: 0.66, 3: 1.0}
UNKNOWN_IMPACT_NORMALIZED = 0.5

INPUT_STAGES: frozenset[Stage] = frozenset({"Bootstrap", "Specify", "Plan"})


@dataclass(frozen=True, slots=True)
class PriorityWeights:
    """Weights of the five priority terms."""

    needs_human: float = 40.0
    risk: float = 25.0
    staleness: float = 15.0
    impact: float = 15.0
    confidence: float = 10.0


def calculate_risk(repository: RepositoryStatus, tasks: TaskLedger, has_errors: bool) -> int:
    """Count risk signals and cap the result at 3."""

    risk = 0
    if has_errors:
        risk += 1
    if tasks.parallel_marked > PARALLEL_RISK_THRESHOLD:
        risk += 1
    if tasks.blocked > 0:
        risk += 1
    if not repository.is_clean:
        risk += 1
    return min(risk, MAX_RISK)


def detect_human_requirements(
    stage: Stage,
    repository: RepositoryStatus,
    tasks: TaskLedger,
) -> tuple[HumanRequirement, ...]:
    """Return the kinds of human involvement a project currently needs."""

    requirements: list[HumanRequirement] = []
    if stage in INPUT_STAGES:
        requirements.append("Input")
    elif stage == "Review":
        requirements.append("Review")
    elif stage == "Test" and tasks.completed < tasks.total:
        requirements.append("Test")

    if not repository.is_clean:
        requirements.append("Fix")
    if tasks.blocked > 0:
        requirements.append("Decision")
    return tuple(requirements)


def normalize_impact(impact: int) -> float:
    return IMPACT_NORMALIZATION.get(impact, UNKNOWN_IMPACT_NORMALIZED)


def staleness_factor(last_updated: datetime, now: datetime | None = None) -> float:
    """Whole elapsed days over a seven-day horizon, clamped to [0, 1]."""

    current = now or now_utc()
    if last_updated.tzinfo is None:
        last_updated = last_updated.replace(tzinfo=timezone.utc)
    elapsed_days = (current - last_updated).days
    return min(max(elapsed_days / STALENESS_HORIZON_DAYS, 0.0), 1.0)


def calculate_priority(
    requires_human: tuple[HumanRequirement, ...] | list[HumanRequirement],
    risk_level: int,
    last_updated: datetime,
    impact: int,
    confidence: int,
    *,
    weights: PriorityWeights | None = None,
    now: datetime | None = None,
) -> float:
    """Weighted priority score; higher means more urgent.

    ``needs_human + risk/3 + staleness + impact - confidence/2``, each term
    scaled by its weight.
    """

    effective_weights = weights or PriorityWeights()
    needs_human = 1.0 if requires_human else 0.0
    return (
        effective_weights.needs_human * needs_human
        + effective_weights.risk * (risk_level / MAX_RISK)
        + effective_weights.staleness * staleness_factor(last_updated, now=now)
        + effective_weights.impact * normalize_impact(impact)
        - effective_weights.confidence * (confidence / MAX_CONFIDENCE)
    )


def resolve_impact_confidence(meta: ProjectMeta | None) -> tuple[int, int]:
    """Impact and confidence inputs from project metadata, with defaults."""

    if meta is None:
        return DEFAULT_IMPACT, DEFAULT_CONFIDENCE
    impact = meta.impact if meta.impact is not None else DEFAULT_IMPACT
    confidence = APPROVED_CONFIDENCE if meta.approved_by_human else DEFAULT_CONFIDENCE
    return impact, confidence
