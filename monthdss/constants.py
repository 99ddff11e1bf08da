"""
Global constants for MonthDSS.

Purpose
-------
Centralizes default values and magic numbers used by the allocator, the
debt simulator and the goal ranker.

Usage
-----
>>> from monthdss.constants import PRIORITY_WEIGHTS, DEFAULT_MAXIMUM_HORIZON
>>> PRIORITY_WEIGHTS["high"]
3

Categories
----------
- Goals: priority labels and their weights
- Ranking: rating axes, default criteria weights, consistency threshold
- Auto-scoring: rating tables for goals without hand ratings
- Debt: simulation horizon, balance tolerance, strategy descriptions
- Allocation: scenario names, money precision, sensitivity defaults
"""

from typing import Dict, Tuple

__all__ = [
    # Goals
    "PRIORITY_WEIGHTS",
    # Ranking
    "RATING_AXES",
    "RATING_MIN",
    "RATING_MAX",
    "DEFAULT_CRITERIA_WEIGHTS",
    "DEFAULT_CONSISTENCY_THRESHOLD",
    "SCORE_DECIMALS",
    # Auto-scoring
    "GOAL_TYPE_IMPACT",
    "PRIORITY_IMPORTANCE",
    "URGENCY_BY_MONTHS",
    "EASE_BY_BUDGET_SHARE",
    # Debt
    "DEFAULT_MAXIMUM_HORIZON",
    "MAX_HORIZON_LIMIT",
    "BALANCE_EPSILON",
    "STRESS_MIN",
    "STRESS_MAX",
    "STRATEGY_DESCRIPTIONS",
    # Allocation
    "SCENARIO_CONSERVATIVE",
    "SCENARIO_BALANCED",
    "SCENARIO_AGGRESSIVE",
    "SCENARIO_REDUCED",
    "SCENARIO_DEFICIT",
    "DEFAULT_MONEY_PRECISION",
    "DEFAULT_INCOME_CHANGE_PERCENTS",
    "MAX_GOAL_CONTRIBUTION_FACTOR",
]


# =============================================================================
# Goals
# =============================================================================

PRIORITY_WEIGHTS: Dict[str, int] = {
    "critical": 4,
    "high": 3,
    "medium": 2,
    "low": 1,
}
"""Declared goal priority → proportional weight used for leftover distribution."""


# =============================================================================
# Ranking
# =============================================================================

RATING_AXES: Tuple[str, ...] = ("urgency", "importance", "roi", "effort")
"""Rating axes, in the order used for scoring and dispersion statistics."""

RATING_MIN: float = 1.0
RATING_MAX: float = 10.0

DEFAULT_CRITERIA_WEIGHTS: Dict[str, float] = {
    "urgency": 0.30,
    "importance": 0.30,
    "roi": 0.25,
    "effort": 0.15,
}
"""Criteria weights used when the caller supplies none (sum to 1)."""

DEFAULT_CONSISTENCY_THRESHOLD: float = 0.4
"""Coefficient of variation above which a goal's ratings are low-confidence."""

SCORE_DECIMALS: int = 9
"""Composite scores are rounded to this many decimals before ranking."""


# =============================================================================
# Auto-scoring
# =============================================================================

GOAL_TYPE_IMPACT: Dict[str, float] = {
    "emergency": 9.0,
    "debt": 9.0,
    "retirement": 8.0,
    "investment": 7.0,
    "education": 7.0,
    "savings": 6.0,
    "other": 5.0,
    "purchase": 4.0,
    "travel": 3.0,
}
"""Goal type → ``roi`` rating derived by the auto-scorer."""

PRIORITY_IMPORTANCE: Dict[str, float] = {
    "critical": 10.0,
    "high": 8.0,
    "medium": 5.0,
    "low": 3.0,
}
"""Declared priority → ``importance`` rating derived by the auto-scorer."""

URGENCY_BY_MONTHS: Tuple[Tuple[int, float], ...] = (
    (0, 10.0),
    (3, 9.0),
    (6, 8.0),
    (12, 6.0),
    (24, 4.0),
)
"""(months left at most, urgency) bands; later deadlines score 2, none scores 3."""

EASE_BY_BUDGET_SHARE: Tuple[Tuple[float, float], ...] = (
    (0.10, 10.0),
    (0.25, 8.0),
    (0.50, 6.0),
    (1.00, 4.0),
)
"""(required / goal budget at most, effort rating) bands; above the last scores 2."""


# =============================================================================
# Debt
# =============================================================================

DEFAULT_MAXIMUM_HORIZON: int = 600
"""Default simulation bound in months (50 years)."""

MAX_HORIZON_LIMIT: int = 1200
"""Hard upper bound accepted for maximum_horizon."""

BALANCE_EPSILON: float = 1e-6
"""Balances at or below this value are treated as fully paid."""

STRESS_MIN: float = 0.0
STRESS_MAX: float = 10.0

STRATEGY_DESCRIPTIONS: Dict[str, str] = {
    "avalanche": "Pay highest interest rate first",
    "snowball": "Pay smallest balance first",
    "hybrid": "Balance high rates against small balances",
    "cash_flow": "Clear the smallest minimum payments first to free cash flow",
    "stress": "Clear the most stressful debts first",
}


# =============================================================================
# Allocation
# =============================================================================

SCENARIO_CONSERVATIVE: str = "conservative"
SCENARIO_BALANCED: str = "balanced"
SCENARIO_AGGRESSIVE: str = "aggressive"
SCENARIO_REDUCED: str = "reduced"
SCENARIO_DEFICIT: str = "deficit"

DEFAULT_MONEY_PRECISION: int = 2
"""Decimal places kept on every allocated amount (one minor currency unit)."""

DEFAULT_INCOME_CHANGE_PERCENTS: Tuple[float, ...] = (-20.0, -10.0, 10.0, 20.0)
"""Income shocks (percent) evaluated by the sensitivity analysis."""

MAX_GOAL_CONTRIBUTION_FACTOR: float = 2.0
"""Upper bound of a scenario override's goal contribution multiplier."""
