"""
Type definitions for MonthDSS.

Purpose
-------
TypedDict definitions for the serialized (JSON-ready) form of engine
results, as produced by ``monthdss.serialization.result_to_dict``.
Callers that consume those dictionaries (presentation layers, tests) get
autocompletion and documented keys.

Usage
-----
>>> from monthdss.types import WarningDict
>>> w: WarningDict = {"type": "over_budget", "message": "...",
...                   "severity": "high", "entity_id": None}

Type Definitions
----------------
WarningDict
    Warning attached to a scenario or result: {"type", "message", "severity", "entity_id"}

AllocationDict, ScenarioDict, BudgetAllocationDict
    Serialized allocator output

TimelineEntryDict, PayoffPlanDict, StrategyOutcomeDict, DebtStrategyDict
    Serialized debt simulator output

RankedGoalDict, GoalPrioritizationDict
    Serialized goal ranker output

AxisScoreDict, GoalAutoScoreDict, AutoScoringDict
    Serialized goal auto-scorer output
"""

from typing import Dict, List, Optional

from typing_extensions import Literal, NotRequired, TypedDict

__all__ = [
    "WarningDict",
    "AllocationDict",
    "ScenarioDict",
    "SensitivityPointDict",
    "SensitivityDict",
    "BudgetAllocationDict",
    "TimelineEntryDict",
    "PayoffPlanDict",
    "StrategyOutcomeDict",
    "DebtStrategyDict",
    "RankedGoalDict",
    "GoalPrioritizationDict",
    "AxisScoreDict",
    "GoalAutoScoreDict",
    "AutoScoringDict",
]


class WarningDict(TypedDict):
    """
    Warning attached to a scenario, a simulation or a whole result.

    Attributes
    ----------
    type : str
        Machine-readable kind, e.g. "over_budget", "never_payoff".
    message : str
        Human-readable explanation.
    severity : {"low", "medium", "high"}
    entity_id : str or None
        Record the warning is about, if any.
    """

    type: str
    message: str
    severity: Literal["low", "medium", "high"]
    entity_id: Optional[str]


# ---------------------------------------------------------------------------
# Allocation
# ---------------------------------------------------------------------------

class AllocationDict(TypedDict):
    kind: Literal["mandatory", "flexible", "debt_minimum", "goal"]
    entity_id: str
    name: str
    amount: float
    minimum: float
    maximum: Optional[float]


class ScenarioDict(TypedDict):
    """
    One allocation scenario.

    The summary totals are derived from ``allocations`` and included for
    presentation layers that do not want to re-aggregate.
    """

    name: str
    income: float
    allocations: List[AllocationDict]
    leftover: float
    extra_debt_payment: float
    is_feasible: bool
    warnings: List[WarningDict]
    total_mandatory: float
    total_flexible: float
    total_debt_payments: float
    total_goal_contributions: float
    total_allocated: float
    savings_rate: float


class SensitivityPointDict(TypedDict):
    income_change_percent: float
    income: float
    leftover: float
    is_feasible: bool


class SensitivityDict(TypedDict):
    points: List[SensitivityPointDict]
    income_break_even_point: float
    most_sensitive_to_income: bool


class BudgetAllocationDict(TypedDict):
    schema_version: str
    kind: Literal["budget"]
    income: float
    scenarios: List[ScenarioDict]
    is_feasible: bool
    global_warnings: List[WarningDict]
    sensitivity: NotRequired[Optional[SensitivityDict]]


# ---------------------------------------------------------------------------
# Debt
# ---------------------------------------------------------------------------

class TimelineEntryDict(TypedDict):
    month: int
    balances: Dict[str, float]
    total_balance: float
    interest: float
    payments: Dict[str, float]
    extra_payments: Dict[str, float]


class PayoffPlanDict(TypedDict):
    debt_id: str
    name: str
    payoff_month: Optional[int]
    total_interest: float
    total_paid: float


class StrategyOutcomeDict(TypedDict):
    """
    Summary of one strategy in the comparison.

    ``timeline`` is only present when the caller asks for full timelines.
    """

    strategy: str
    description: str
    total_interest: float
    months_to_debt_free: Optional[int]
    truncated: bool
    first_debt_cleared: Optional[int]
    interest_saved: float
    payoff_plans: List[PayoffPlanDict]
    timeline: NotRequired[List[TimelineEntryDict]]


class DebtStrategyDict(TypedDict):
    schema_version: str
    kind: Literal["debt"]
    recommended_strategy: str
    timeline: List[TimelineEntryDict]
    total_interest: float
    months_to_debt_free: Optional[int]
    strategy_comparison: List[StrategyOutcomeDict]
    payoff_plans: List[PayoffPlanDict]
    total_debt_budget: float
    truncated: bool
    warnings: List[WarningDict]


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------

class RankedGoalDict(TypedDict):
    goal_id: str
    name: str
    rank: int
    composite_score: float
    axis_scores: Dict[str, float]
    priority: str
    coefficient_of_variation: float
    low_confidence: bool
    auto_scored: bool


class GoalPrioritizationDict(TypedDict):
    schema_version: str
    kind: Literal["goals"]
    ranked_goals: List[RankedGoalDict]
    consistency_ratio: float
    is_consistent: bool
    criteria_weights: Dict[str, float]
    alternative_priorities: Dict[str, float]


class AxisScoreDict(TypedDict):
    score: float
    reason: str


class GoalAutoScoreDict(TypedDict):
    goal_id: str
    name: str
    goal_type: str
    scores: Dict[str, AxisScoreDict]


class AutoScoringDict(TypedDict):
    schema_version: str
    kind: Literal["scores"]
    as_of: Optional[str]
    goal_budget: Optional[float]
    goals: List[GoalAutoScoreDict]
