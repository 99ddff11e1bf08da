"""
Goal ranker (P3) for MonthDSS.

Purpose
-------
Ranks savings goals from direct 1-10 ratings on four axes and reports
how consistent those ratings are. With ``use_auto_scoring``, goals
without a rating are scored from their own facts (monthdss.scoring).

Scoring
-------
    effective_effort = 11 - effort            (10 in the input = easiest)
    composite_score  = Σ_axis w_axis × value_axis / 10

Weights default to DEFAULT_CRITERIA_WEIGHTS and are renormalized to sum
to 1. Composite scores are rounded to SCORE_DECIMALS so that equal
weighted sums compare equal. Ties are broken by declared priority
weight (critical first), then by input order.

Consistency
-----------
Per goal, the coefficient of variation (population std / mean) over the
four effective axis values. Goals above the threshold are flagged
``low_confidence`` but still ranked. The overall ratio is the mean CV
clamped to [0, 1]. This is a dispersion heuristic over direct ratings,
not an eigenvalue consistency ratio over pairwise comparisons.

Example
-------
>>> from monthdss.normalize import build_context
>>> from monthdss.goals import prioritize_goals
>>> ctx = build_context(
...     goals=[{"id": "emergency", "priority": "critical", "remaining_amount": 5e6}],
...     ratings=[{"goal_id": "emergency", "urgency": 9, "importance": 10,
...               "roi": 6, "effort": 7}],
... )
>>> prioritize_goals(ctx).ranked_goals[0].rank
1
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

import numpy as np

from .config import RankingOptions
from .constants import DEFAULT_CRITERIA_WEIGHTS, RATING_AXES, RATING_MAX, SCORE_DECIMALS
from .exceptions import ValidationError
from .models import DSSInputContext, GoalRating
from .scoring import auto_score_goals
from .utils import coefficient_of_variation, renormalize_weights

__all__ = [
    "RankedGoal",
    "GoalPrioritizationResult",
    "effective_scores",
    "prioritize_goals",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankedGoal:
    """
    One goal's position in the ranking.

    Attributes
    ----------
    goal_id, name : str
    rank : int
        1-based position.
    composite_score : float
        Weighted score in [0.1, 1].
    axis_scores : dict
        Effective axis values (effort already inverted).
    priority : str
        Declared priority label.
    coefficient_of_variation : float
    low_confidence : bool
        True when the CV exceeds the consistency threshold.
    auto_scored : bool
        True when the ratings were derived by the auto-scorer.
    """
    goal_id: str
    name: str
    rank: int
    composite_score: float
    axis_scores: Dict[str, float]
    priority: str
    coefficient_of_variation: float
    low_confidence: bool
    auto_scored: bool = False


@dataclass(frozen=True)
class GoalPrioritizationResult:
    """
    Output of prioritize_goals().

    Attributes
    ----------
    ranked_goals : tuple of RankedGoal
        Best first.
    consistency_ratio : float
    is_consistent : bool
    criteria_weights : dict
        Renormalized weights actually used.
    alternative_priorities : dict
        goal_id → composite score as a share of all composite scores
        (sums to 1; empty without goals).
    """
    ranked_goals: Tuple[RankedGoal, ...]
    consistency_ratio: float
    is_consistent: bool
    criteria_weights: Dict[str, float]
    alternative_priorities: Dict[str, float]

    @property
    def order(self) -> Tuple[str, ...]:
        """Goal ids, best first."""
        return tuple(g.goal_id for g in self.ranked_goals)


def effective_scores(rating: GoalRating) -> Dict[str, float]:
    """Axis values with effort inverted so that higher is always better."""
    scores = rating.as_dict()
    scores["effort"] = RATING_MAX + 1.0 - scores["effort"]
    return scores


def prioritize_goals(
    context: DSSInputContext,
    options: Optional[RankingOptions] = None,
) -> GoalPrioritizationResult:
    """
    Rank the goals in *context* by their ratings.

    Parameters
    ----------
    context : DSSInputContext
        Goals and their ratings.
    options : RankingOptions, optional
        Criteria weights, consistency threshold and auto-scoring settings.

    Returns
    -------
    GoalPrioritizationResult
        Empty ranking with consistency_ratio 0 when there are no goals.

    Raises
    ------
    ValidationError
        If a goal has no rating (and auto-scoring is off) or the weights
        are unusable.
    """
    options = options or RankingOptions()
    weights = renormalize_weights(
        options.criteria_weights if options.criteria_weights is not None
        else DEFAULT_CRITERIA_WEIGHTS,
        RATING_AXES,
    )
    threshold = options.consistency_threshold

    if not context.goals:
        return GoalPrioritizationResult(
            ranked_goals=(),
            consistency_ratio=0.0,
            is_consistent=True,
            criteria_weights=weights,
            alternative_priorities={},
        )

    unrated = tuple(g for g in context.goals if context.rating_for(g.id) is None)
    auto = None
    if unrated and options.use_auto_scoring:
        auto = auto_score_goals(
            replace(context, goals=unrated),
            as_of=options.as_of,
            goal_allocation_pct=options.goal_allocation_pct,
        )

    w = np.array([weights[axis] for axis in RATING_AXES])
    scored = []
    for index, goal in enumerate(context.goals):
        rating = context.rating_for(goal.id)
        if rating is None and auto is not None:
            rating = auto.score_for(goal.id).as_rating()
        if rating is None:
            raise ValidationError("goal has no rating", field="ratings", entity_id=goal.id)
        axis_scores = effective_scores(rating)
        values = np.array([axis_scores[axis] for axis in RATING_AXES])
        # equal weighted sums must tie exactly
        composite = round(float(w @ values) / RATING_MAX, SCORE_DECIMALS)
        cv = coefficient_of_variation(values)
        scored.append((index, goal, axis_scores, composite, cv))

    scored.sort(key=lambda item: (-item[3], -item[1].weight, item[0]))

    ranked = tuple(
        RankedGoal(
            goal_id=goal.id,
            name=goal.name,
            rank=position,
            composite_score=composite,
            axis_scores=axis_scores,
            priority=goal.priority,
            coefficient_of_variation=cv,
            low_confidence=cv > threshold,
            auto_scored=auto is not None and goal in unrated,
        )
        for position, (_, goal, axis_scores, composite, cv) in enumerate(scored, start=1)
    )
    ratio = float(np.clip(np.mean([g.coefficient_of_variation for g in ranked]), 0.0, 1.0))
    total = sum(g.composite_score for g in ranked)
    shares = {g.goal_id: g.composite_score / total for g in ranked}

    flagged = [g.goal_id for g in ranked if g.low_confidence]
    if flagged:
        logger.info("Low-confidence ratings for goals: %s", ", ".join(flagged))
    logger.debug("Ranked %d goals, consistency ratio %.3f", len(ranked), ratio)

    return GoalPrioritizationResult(
        ranked_goals=ranked,
        consistency_ratio=ratio,
        is_consistent=ratio <= threshold,
        criteria_weights=weights,
        alternative_priorities=shares,
    )
