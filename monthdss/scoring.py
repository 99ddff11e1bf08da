"""
Goal auto-scoring for MonthDSS.

Purpose
-------
Derives 1-10 ratings on the four ranking axes from facts already known
about each goal, so that the goal ranker can run without hand ratings.

Rules
-----
- urgency    : months left until ``target_date`` (URGENCY_BY_MONTHS);
               3 when the goal has no target date
- importance : declared priority (PRIORITY_IMPORTANCE)
- roi        : goal type (GOAL_TYPE_IMPACT)
- effort     : required monthly amount as a share of the goal budget
               (EASE_BY_BUDGET_SHARE), 10 = easiest; 5 without income

The required monthly amount is ``remaining / months_left`` for dated
goals and the goal's contribution cap otherwise. The goal budget is
``income × goal_allocation_pct / 100`` (the whole income by default).

Scoring is deterministic: dates are compared with the caller's
``as_of``, never the wall clock.

Example
-------
>>> from datetime import date
>>> from monthdss.normalize import build_context
>>> from monthdss.scoring import auto_score_goals
>>> ctx = build_context(10_000_000, goals=[
...     {"id": "emergency", "priority": "critical", "goal_type": "emergency",
...      "remaining_amount": 6_000_000, "target_date": "2025-07-01"}])
>>> scores = auto_score_goals(ctx, as_of=date(2025, 1, 1))
>>> scores.goals[0].as_rating().urgency
8.0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional, Tuple

from .constants import (
    EASE_BY_BUDGET_SHARE,
    GOAL_TYPE_IMPACT,
    PRIORITY_IMPORTANCE,
    RATING_AXES,
    URGENCY_BY_MONTHS,
)
from .exceptions import ValidationError
from .models import DSSInputContext, Goal, GoalRating

__all__ = [
    "AxisScore",
    "GoalAutoScore",
    "AutoScoringResult",
    "months_between",
    "auto_score_goals",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AxisScore:
    """One derived rating and the reason for it."""
    score: float
    reason: str


@dataclass(frozen=True)
class GoalAutoScore:
    """Derived ratings for one goal."""
    goal_id: str
    name: str
    goal_type: str
    scores: Dict[str, AxisScore]

    def as_rating(self) -> GoalRating:
        return GoalRating(self.goal_id, **{axis: self.scores[axis].score for axis in RATING_AXES})


@dataclass(frozen=True)
class AutoScoringResult:
    """
    Output of auto_score_goals().

    Attributes
    ----------
    goals : tuple of GoalAutoScore
        In input order.
    goal_budget : float or None
        Monthly amount the effort axis was measured against.
    as_of : date or None
        Reference date used for urgency.
    """
    goals: Tuple[GoalAutoScore, ...]
    goal_budget: Optional[float]
    as_of: Optional[date]

    @property
    def ratings(self) -> Tuple[GoalRating, ...]:
        return tuple(g.as_rating() for g in self.goals)

    def score_for(self, goal_id: str) -> GoalAutoScore:
        for g in self.goals:
            if g.goal_id == goal_id:
                return g
        raise KeyError(goal_id)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from *start* to *end* (negative when *end* is earlier)."""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if months > 0 and end.day < start.day:
        months -= 1
    return months


def _urgency(goal: Goal, as_of: Optional[date]) -> Tuple[AxisScore, Optional[int]]:
    if goal.target_date is None:
        return AxisScore(3.0, "No target date"), None
    months_left = months_between(as_of, goal.target_date)
    if months_left <= 0:
        return AxisScore(10.0, "Target date is this month or has passed"), months_left
    for limit, score in URGENCY_BY_MONTHS:
        if months_left <= limit:
            return AxisScore(score, f"{months_left} month(s) to target date"), months_left
    return AxisScore(2.0, f"{months_left} months to target date"), months_left


def _effort(goal: Goal, months_left: Optional[int], budget: Optional[float]) -> AxisScore:
    if goal.remaining_amount <= 0:
        return AxisScore(10.0, "Goal is already funded")
    if months_left is None:
        required = goal.contribution_cap
    else:
        required = goal.remaining_amount / max(months_left, 1)
    if not budget:
        return AxisScore(5.0, "No income to compare the required contribution against")

    share = required / budget
    reason = f"Needs {required:,.0f}/month, {share:.0%} of the goal budget"
    for limit, score in EASE_BY_BUDGET_SHARE:
        if share <= limit:
            return AxisScore(score, reason)
    return AxisScore(2.0, reason)


def auto_score_goals(
    context: DSSInputContext,
    *,
    as_of: Optional[date] = None,
    goal_allocation_pct: Optional[float] = None,
) -> AutoScoringResult:
    """
    Derive urgency, importance, roi and effort ratings for every goal.

    Parameters
    ----------
    context : DSSInputContext
        Goals and, optionally, the monthly income.
    as_of : date, optional
        Reference date; required when a goal has a ``target_date``.
    goal_allocation_pct : float, optional
        Share of income (0-100] treated as the goal budget.

    Raises
    ------
    ValidationError
        If a goal has a target date and ``as_of`` is missing, or the
        percentage is out of range.
    """
    pct = 100.0 if goal_allocation_pct is None else float(goal_allocation_pct)
    if not 0 < pct <= 100:
        raise ValidationError(
            f"goal_allocation_pct must be in (0, 100] (got {goal_allocation_pct})",
            field="goal_allocation_pct",
        )
    budget = None if context.income is None else float(context.income) * pct / 100.0

    scored = []
    for goal in context.goals:
        if goal.target_date is not None and as_of is None:
            raise ValidationError(
                "as_of is required to score a goal with a target_date",
                field="as_of",
                entity_id=goal.id,
            )
        urgency, months_left = _urgency(goal, as_of)
        scored.append(GoalAutoScore(
            goal_id=goal.id,
            name=goal.name,
            goal_type=goal.goal_type,
            scores={
                "urgency": urgency,
                "importance": AxisScore(
                    PRIORITY_IMPORTANCE[goal.priority], f"Declared priority {goal.priority}"
                ),
                "roi": AxisScore(GOAL_TYPE_IMPACT[goal.goal_type], f"Goal type {goal.goal_type}"),
                "effort": _effort(goal, months_left, budget),
            },
        ))

    logger.debug("Auto-scored %d goal(s) against a budget of %s", len(scored), budget)
    return AutoScoringResult(goals=tuple(scored), goal_budget=budget, as_of=as_of)
