"""
Public entry points for MonthDSS.

Each function takes a request payload (a pydantic request model from
``monthdss.config`` or a plain mapping, e.g. parsed JSON), normalizes it
and runs one engine. They either return a typed result or raise a
DSSError subclass; nothing is partially applied.

Example
-------
>>> from monthdss.service import simulate_debt_strategy_from_input
>>> result = simulate_debt_strategy_from_input({
...     "debts": [{"id": "visa", "balance": 3_000_000, "interest_rate": 0.03,
...                "minimum_payment": 150_000}],
...     "options": {"extra_payment": 350_000},
... })
>>> result.recommended_strategy.value
'avalanche'
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Union

from .allocation import BudgetAllocationResult, allocate_budget
from .config import BudgetAllocationInput, DebtStrategyInput, DirectRatingInput
from .debt import DebtStrategyResult, simulate_debt_strategy
from .goals import GoalPrioritizationResult, prioritize_goals
from .normalize import (
    build_context,
    normalize_budget_input,
    normalize_debt_input,
    normalize_rating_input,
    parse_payload,
)
from .scoring import AutoScoringResult, auto_score_goals

__all__ = [
    "allocate_budget_from_input",
    "simulate_debt_strategy_from_input",
    "prioritize_goals_from_input",
    "auto_score_goals_from_input",
]

logger = logging.getLogger(__name__)


def allocate_budget_from_input(
    payload: Union[BudgetAllocationInput, Mapping[str, Any]],
) -> BudgetAllocationResult:
    """
    Allocate a month's income from a budget request.

    Raises
    ------
    ValidationError
        Malformed payload or out-of-range record (incl. InvalidIncomeError,
        DuplicateCategoryError).
    InsufficientIncomeError
        Income below fixed obligations with ``allow_deficit=False``.
    """
    context, options = normalize_budget_input(payload)
    logger.info("Allocating income %s", f"{context.income:,.2f}")
    return allocate_budget(context, options)


def simulate_debt_strategy_from_input(
    payload: Union[DebtStrategyInput, Mapping[str, Any]],
) -> DebtStrategyResult:
    """
    Compare payoff strategies from a debt request.

    Raises
    ------
    ValidationError
        Malformed payload or out-of-range debt.
    InsufficientBudgetError
        Budget below the sum of minimum payments.
    NeverPayoffError
        Horizon exceeded with ``raise_on_truncation=True``.
    """
    context, options = normalize_debt_input(payload)
    logger.info("Simulating %d debt(s)", len(context.debts))
    return simulate_debt_strategy(context, options)


def prioritize_goals_from_input(
    payload: Union[DirectRatingInput, Mapping[str, Any]],
) -> GoalPrioritizationResult:
    """Rank goals from a direct-rating request; raises ValidationError on bad input."""
    context, options = normalize_rating_input(payload)
    logger.info("Ranking %d goal(s)", len(context.goals))
    return prioritize_goals(context, options)


def auto_score_goals_from_input(
    payload: Union[DirectRatingInput, Mapping[str, Any]],
) -> AutoScoringResult:
    """
    Derive ratings for every goal in a goal request; ``ratings`` are ignored.

    ``options.as_of`` and ``options.goal_allocation_pct`` feed the
    urgency and effort axes.
    """
    parsed = parse_payload(DirectRatingInput, payload)
    context = build_context(parsed.monthly_income, goals=parsed.goals)
    logger.info("Auto-scoring %d goal(s)", len(context.goals))
    return auto_score_goals(
        context,
        as_of=parsed.options.as_of,
        goal_allocation_pct=parsed.options.goal_allocation_pct,
    )
