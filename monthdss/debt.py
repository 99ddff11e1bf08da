"""
Debt strategy simulator (P2) for MonthDSS.

Purpose
-------
Simulates month-by-month repayment of a set of debts under a fixed
monthly budget for each of five payoff strategies, and recommends one.

Strategies
----------
Each Strategy member maps to a pure ordering function over the debts
that still carry a balance. The monthly loop is strategy-agnostic:

    for month in 1..maximum_horizon:
        balance_i += balance_i × rate_i          (interest)
        pay min(minimum_i, balance_i)            (minimums)
        extra_pool = budget - Σ minimums applied
        cascade extra_pool down the ordering     (extra)

A cleared debt no longer consumes its minimum, so it joins the extra
pool from the following month (rollover).

Example
-------
>>> from monthdss.normalize import build_context
>>> from monthdss.debt import simulate_debt_strategy
>>> from monthdss.config import DebtStrategyOptions
>>> ctx = build_context(debts=[
...     {"id": "visa", "balance": 3_000_000, "interest_rate": 0.03,
...      "minimum_payment": 150_000}])
>>> result = simulate_debt_strategy(ctx, DebtStrategyOptions(extra_payment=350_000))
>>> result.months_to_debt_free
7
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .allocation import AllocationWarning
from .config import DebtStrategyOptions
from .constants import BALANCE_EPSILON, STRATEGY_DESCRIPTIONS
from .exceptions import InsufficientBudgetError, NeverPayoffError
from .models import Debt, DSSInputContext
from .utils import min_max_normalize

__all__ = [
    "Strategy",
    "TimelineEntry",
    "DebtPayoffPlan",
    "StrategyOutcome",
    "DebtStrategyResult",
    "order_debts",
    "resolve_budget",
    "run_strategy",
    "simulate_debt_strategy",
]

logger = logging.getLogger(__name__)


class Strategy(str, Enum):
    """Closed set of payoff strategies; member order breaks final ties."""
    AVALANCHE = "avalanche"
    SNOWBALL = "snowball"
    HYBRID = "hybrid"
    CASH_FLOW = "cash_flow"
    STRESS = "stress"

    @property
    def description(self) -> str:
        return STRATEGY_DESCRIPTIONS[self.value]


# ---------------------------------------------------------------------------
# Ordering functions
# ---------------------------------------------------------------------------
# Each takes the indices of live debts (in input order), the debts and the
# current balances, and returns the indices in payment priority order.
# sorted() is stable, so remaining ties keep input order.

OrderingFn = Callable[[Sequence[int], Sequence[Debt], np.ndarray], List[int]]


def _avalanche(live, debts, balances):
    return sorted(live, key=lambda i: (-debts[i].interest_rate, -balances[i]))


def _snowball(live, debts, balances):
    return sorted(live, key=lambda i: (balances[i], -debts[i].interest_rate))


def _hybrid(live, debts, balances):
    live = list(live)
    rates = min_max_normalize([debts[i].interest_rate for i in live])
    sizes = min_max_normalize([balances[i] for i in live])
    score = {i: float(r - s) for i, r, s in zip(live, rates, sizes)}
    return sorted(live, key=lambda i: -score[i])


def _cash_flow(live, debts, balances):
    return sorted(live, key=lambda i: debts[i].minimum_payment)


def _stress(live, debts, balances):
    return sorted(live, key=lambda i: (-debts[i].stress_score, -debts[i].interest_rate))


ORDERINGS: Dict[Strategy, OrderingFn] = {
    Strategy.AVALANCHE: _avalanche,
    Strategy.SNOWBALL: _snowball,
    Strategy.HYBRID: _hybrid,
    Strategy.CASH_FLOW: _cash_flow,
    Strategy.STRESS: _stress,
}


def order_debts(
    strategy: Strategy,
    debts: Sequence[Debt],
    balances: Optional[Sequence[float]] = None,
) -> List[str]:
    """Debt ids in the order *strategy* would pay them at *balances*."""
    bal = np.asarray(
        [d.balance for d in debts] if balances is None else balances, dtype=float
    )
    live = [i for i in range(len(debts)) if bal[i] > BALANCE_EPSILON]
    return [debts[i].id for i in ORDERINGS[Strategy(strategy)](live, debts, bal)]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TimelineEntry:
    """Balances and payments at the end of one simulated month."""
    month: int
    balances: Dict[str, float]
    total_balance: float
    interest: float
    payments: Dict[str, float]
    extra_payments: Dict[str, float]


@dataclass(frozen=True)
class DebtPayoffPlan:
    """Per-debt summary under one strategy. payoff_month is None if never cleared."""
    debt_id: str
    name: str
    payoff_month: Optional[int]
    total_interest: float
    total_paid: float


@dataclass(frozen=True)
class StrategyOutcome:
    """
    Simulation of one strategy.

    Attributes
    ----------
    strategy : Strategy
    total_interest : float
        Interest accrued over the simulated months.
    months_to_debt_free : int or None
        None when the horizon was reached with balance left.
    truncated : bool
    first_debt_cleared : int or None
        Month the first active debt reached zero.
    interest_saved : float
        Highest total interest in the comparison minus this one.
    description : str
    timeline : tuple of TimelineEntry
    payoff_plans : tuple of DebtPayoffPlan
    """
    strategy: Strategy
    total_interest: float
    months_to_debt_free: Optional[int]
    truncated: bool
    first_debt_cleared: Optional[int]
    interest_saved: float
    description: str
    timeline: Tuple[TimelineEntry, ...]
    payoff_plans: Tuple[DebtPayoffPlan, ...]

    @property
    def total_paid(self) -> float:
        return math.fsum(p.total_paid for p in self.payoff_plans)


@dataclass(frozen=True)
class DebtStrategyResult:
    """Output of simulate_debt_strategy(); top-level fields follow the recommendation."""
    recommended_strategy: Strategy
    timeline: Tuple[TimelineEntry, ...]
    total_interest: float
    months_to_debt_free: Optional[int]
    strategy_comparison: Tuple[StrategyOutcome, ...]
    payoff_plans: Tuple[DebtPayoffPlan, ...]
    total_debt_budget: float
    truncated: bool
    warnings: Tuple[AllocationWarning, ...] = ()

    def outcome(self, strategy) -> StrategyOutcome:
        strategy = Strategy(strategy)
        for o in self.strategy_comparison:
            if o.strategy is strategy:
                return o
        raise KeyError(strategy.value)

    def to_frame(self) -> pd.DataFrame:
        """
        Timeline of the recommended strategy, one row per month.

        Columns: month, total_balance, interest, then ``balance_<id>``,
        ``payment_<id>`` and ``extra_<id>`` per debt.
        """
        rows = []
        for entry in self.timeline:
            row = {
                "month": entry.month,
                "total_balance": entry.total_balance,
                "interest": entry.interest,
            }
            row.update({f"balance_{k}": v for k, v in entry.balances.items()})
            row.update({f"payment_{k}": v for k, v in entry.payments.items()})
            row.update({f"extra_{k}": v for k, v in entry.extra_payments.items()})
            rows.append(row)
        if not rows:
            return pd.DataFrame(columns=["month", "total_balance", "interest"])
        return pd.DataFrame(rows).set_index("month")

    def comparison_frame(self) -> pd.DataFrame:
        """One row per strategy, indexed by strategy name."""
        rows = [
            {
                "strategy": o.strategy.value,
                "months_to_debt_free": o.months_to_debt_free,
                "total_interest": o.total_interest,
                "interest_saved": o.interest_saved,
                "first_debt_cleared": o.first_debt_cleared,
                "truncated": o.truncated,
                "recommended": o.strategy is self.recommended_strategy,
            }
            for o in self.strategy_comparison
        ]
        return pd.DataFrame(rows).set_index("strategy")


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------

def resolve_budget(debts: Sequence[Debt], options: DebtStrategyOptions) -> float:
    """
    Monthly debt budget implied by *options*.

    Uses ``total_debt_budget`` when given, else Σ minimums + extra_payment.

    Raises
    ------
    InsufficientBudgetError
        If the budget is below the minimums of the debts with a balance.
    """
    minimums = math.fsum(d.minimum_payment for d in debts if d.is_active)
    if options.total_debt_budget is None:
        return minimums + options.extra_payment
    budget = float(options.total_debt_budget)
    if budget + BALANCE_EPSILON < minimums:
        raise InsufficientBudgetError(
            f"total_debt_budget {budget:,.2f} is below the sum of minimum payments "
            f"({minimums:,.2f})",
            shortfall=minimums - budget,
        )
    return budget


def run_strategy(
    strategy: Strategy,
    debts: Sequence[Debt],
    budget: float,
    maximum_horizon: int,
) -> StrategyOutcome:
    """
    Simulate *strategy* month by month until all debts are cleared or
    *maximum_horizon* is reached.

    ``interest_saved`` is left at 0; it is relative to the other
    strategies and filled in by simulate_debt_strategy().
    """
    strategy = Strategy(strategy)
    ordering = ORDERINGS[strategy]
    ids = [d.id for d in debts]
    rates = np.array([d.interest_rate for d in debts], dtype=float)
    minimums = np.array([d.minimum_payment for d in debts], dtype=float)
    balances = np.array([d.balance for d in debts], dtype=float)

    interest_by_debt = np.zeros(len(debts))
    paid_by_debt = np.zeros(len(debts))
    payoff_month: Dict[int, Optional[int]] = {
        i: (0 if not d.is_active else None) for i, d in enumerate(debts)
    }
    first_cleared: Optional[int] = None
    timeline: List[TimelineEntry] = []

    month = 0
    while (balances > BALANCE_EPSILON).any() and month < maximum_horizon:
        month += 1
        live = np.flatnonzero(balances > BALANCE_EPSILON)

        interest = balances[live] * rates[live]
        balances[live] += interest
        interest_by_debt[live] += interest

        payments = np.zeros(len(debts))
        payments[live] = np.minimum(minimums[live], balances[live])
        balances -= payments

        extra = np.zeros(len(debts))
        pool = budget - float(payments.sum())
        still_live = [int(i) for i in live if balances[i] > BALANCE_EPSILON]
        for i in ordering(still_live, debts, balances):
            if pool <= BALANCE_EPSILON:
                break
            amount = min(pool, float(balances[i]))
            extra[i] = amount
            balances[i] -= amount
            pool -= amount

        paid_by_debt += payments + extra
        for i in live:
            if balances[i] <= BALANCE_EPSILON:
                balances[i] = 0.0
                payoff_month[i] = month
                if first_cleared is None:
                    first_cleared = month

        timeline.append(TimelineEntry(
            month=month,
            balances={ids[i]: float(balances[i]) for i in range(len(debts))},
            total_balance=float(balances.sum()),
            interest=float(interest.sum()),
            payments={ids[i]: float(payments[i] + extra[i]) for i in range(len(debts))},
            extra_payments={ids[i]: float(extra[i]) for i in range(len(debts))},
        ))
        if not np.isfinite(balances).all():
            break

    truncated = bool((balances > BALANCE_EPSILON).any())
    plans = tuple(
        DebtPayoffPlan(
            debt_id=d.id,
            name=d.name,
            payoff_month=payoff_month[i],
            total_interest=float(interest_by_debt[i]),
            total_paid=float(paid_by_debt[i]),
        )
        for i, d in enumerate(debts)
    )
    return StrategyOutcome(
        strategy=strategy,
        total_interest=math.fsum(e.interest for e in timeline),
        months_to_debt_free=None if truncated else month,
        truncated=truncated,
        first_debt_cleared=first_cleared,
        interest_saved=0.0,
        description=strategy.description,
        timeline=tuple(timeline),
        payoff_plans=plans,
    )


def _rank_key(outcome: StrategyOutcome):
    order = list(Strategy).index(outcome.strategy)
    months = outcome.months_to_debt_free if outcome.months_to_debt_free is not None else math.inf
    return (outcome.truncated, outcome.total_interest, months, order)


def simulate_debt_strategy(
    context: DSSInputContext,
    options: Optional[DebtStrategyOptions] = None,
) -> DebtStrategyResult:
    """
    Run all five strategies and recommend one.

    Parameters
    ----------
    context : DSSInputContext
        Validated input; only ``debts`` is read.
    options : DebtStrategyOptions, optional
        Budget, preferred strategy and horizon.

    Returns
    -------
    DebtStrategyResult
        Top-level timeline, interest and months follow the recommended
        strategy; ``strategy_comparison`` holds every strategy.

    Raises
    ------
    InsufficientBudgetError
        If the budget cannot cover the minimum payments.
    NeverPayoffError
        If the recommended strategy is truncated and
        ``raise_on_truncation`` is set.
    """
    options = options or DebtStrategyOptions()
    debts = context.debts
    budget = resolve_budget(debts, options)

    outcomes = [run_strategy(s, debts, budget, options.maximum_horizon) for s in Strategy]
    worst = max(o.total_interest for o in outcomes)
    outcomes = [replace(o, interest_saved=worst - o.total_interest) for o in outcomes]

    if options.preferred_strategy is not None:
        recommended = Strategy(options.preferred_strategy)
    else:
        recommended = min(outcomes, key=_rank_key).strategy
    chosen = next(o for o in outcomes if o.strategy is recommended)

    warnings: List[AllocationWarning] = [
        AllocationWarning(
            "paid_off",
            f"{d.name} has no outstanding balance and is reported as paid",
            "low",
            d.id,
        )
        for d in debts if not d.is_active
    ]
    if chosen.truncated:
        warnings.append(AllocationWarning(
            "never_payoff",
            f"{recommended.value} does not clear all debts within "
            f"{options.maximum_horizon} months at a budget of {budget:,.2f}",
            "high",
        ))

    result = DebtStrategyResult(
        recommended_strategy=recommended,
        timeline=chosen.timeline,
        total_interest=chosen.total_interest,
        months_to_debt_free=chosen.months_to_debt_free,
        strategy_comparison=tuple(outcomes),
        payoff_plans=chosen.payoff_plans,
        total_debt_budget=budget,
        truncated=chosen.truncated,
        warnings=tuple(warnings),
    )

    if chosen.truncated:
        logger.warning(
            "Debt simulation truncated at %d months (strategy=%s, budget=%s)",
            options.maximum_horizon, recommended.value, f"{budget:,.2f}",
        )
        if options.raise_on_truncation:
            raise NeverPayoffError(
                f"debts are not paid off within {options.maximum_horizon} months",
                result=result,
            )
    else:
        logger.debug(
            "Recommended %s: %s months, interest %s",
            recommended.value, chosen.months_to_debt_free, f"{chosen.total_interest:,.2f}",
        )
    return result
