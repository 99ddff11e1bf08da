"""
Scenario allocator (P1) for MonthDSS.

Purpose
-------
Distributes one month of income across mandatory costs, flexible-cost
ranges, debt minimum payments and goal contributions, producing one or
more candidate scenarios with feasibility flags and warnings.

Pipeline
--------
    remaining = income - mandatory_total - debt_minimum_total

    remaining < 0                    → single "deficit" scenario
    remaining - Σ flexible_min < 0   → single "reduced" scenario
    otherwise                        → ScenarioSpec list mapped through
                                       evaluate_scenario()

Per scenario:
    flexible_spend = Σ chosen flexible amounts     (within [min, max])
    leftover       = remaining - flexible_spend    (before goals)
    goals          ← leftover (or goal_allocation_pct of it), weights
                     4:3:2:1, each capped at cap × goal_factor
    extra_debt_payment = whatever is still left (candidate input to P2)

Invariant
---------
Σ(allocations) + leftover == income, within one minor currency unit
(widened to the float rounding error when amounts reach ~1e11).

Example
-------
>>> from monthdss.normalize import build_context
>>> from monthdss.allocation import allocate_budget
>>> ctx = build_context(10_000_000, mandatory=[
...     {"category_id": "rent", "name": "Rent", "amount": 4_000_000}])
>>> result = allocate_budget(ctx)
>>> result.scenarios[0].leftover
6000000.0
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import List, Literal, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .config import AllocationOptions
from .constants import (
    SCENARIO_AGGRESSIVE,
    SCENARIO_BALANCED,
    SCENARIO_CONSERVATIVE,
    SCENARIO_DEFICIT,
    SCENARIO_REDUCED,
)
from .exceptions import InsufficientIncomeError, InvalidIncomeError, InvariantViolation
from .models import DSSInputContext, FlexibleExpense, Goal
from .utils import floor_money, money_tolerance, water_fill

__all__ = [
    "AllocationWarning",
    "Allocation",
    "AllocationScenario",
    "ScenarioSpec",
    "SensitivityPoint",
    "SensitivityAnalysis",
    "BudgetAllocationResult",
    "scenario_specs",
    "evaluate_scenario",
    "income_sensitivity",
    "allocate_budget",
]

logger = logging.getLogger(__name__)

AllocationKind = Literal["mandatory", "flexible", "debt_minimum", "goal"]
FlexibleLevel = Union[Literal["min", "balanced", "max"], float]
Severity = Literal["low", "medium", "high"]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AllocationWarning:
    """Explanation attached to a scenario or to the whole result."""
    type: str
    message: str
    severity: Severity = "medium"
    entity_id: Optional[str] = None


@dataclass(frozen=True)
class Allocation:
    """Amount assigned to one mandatory/flexible/debt/goal item."""
    kind: AllocationKind
    entity_id: str
    name: str
    amount: float
    minimum: float = 0.0
    maximum: Optional[float] = None


@dataclass(frozen=True)
class AllocationScenario:
    """
    One complete candidate allocation of a month's income.

    Attributes
    ----------
    name : str
        "conservative", "balanced", "aggressive", "reduced" or "deficit".
    income : float
        Income the scenario was built for.
    allocations : tuple of Allocation
        Every item, in mandatory → flexible → debt → goal order.
    leftover : float
        income - Σ allocations. Negative when the scenario overspends.
    extra_debt_payment : float
        Part of the leftover suggested as extra debt payment (not applied).
    is_feasible : bool
        leftover >= 0 and every flexible amount within its bounds.
    warnings : tuple of AllocationWarning
    """
    name: str
    income: float
    allocations: Tuple[Allocation, ...]
    leftover: float
    extra_debt_payment: float
    is_feasible: bool
    warnings: Tuple[AllocationWarning, ...] = ()

    def total_for(self, kind: AllocationKind) -> float:
        return math.fsum(a.amount for a in self.allocations if a.kind == kind)

    @property
    def total_mandatory(self) -> float:
        return self.total_for("mandatory")

    @property
    def total_flexible(self) -> float:
        return self.total_for("flexible")

    @property
    def total_debt_payments(self) -> float:
        return self.total_for("debt_minimum")

    @property
    def total_goal_contributions(self) -> float:
        return self.total_for("goal")

    @property
    def total_allocated(self) -> float:
        return math.fsum(a.amount for a in self.allocations)

    @property
    def savings_rate(self) -> float:
        """Goal contributions as a fraction of income."""
        return self.total_goal_contributions / self.income if self.income > 0 else 0.0

    def amount_for(self, entity_id: str) -> float:
        for a in self.allocations:
            if a.entity_id == entity_id:
                return a.amount
        raise KeyError(entity_id)


@dataclass(frozen=True)
class ScenarioSpec:
    """
    Named recipe for one scenario.

    Attributes
    ----------
    name : str
    flexible_level : {"min", "balanced", "max"} or float
        A float in [0, 1] places every flexible item at that fraction of
        its range, limited by the money left after minimums.
    goal_factor : float, default 1.0
        Multiplier on each goal's contribution cap (never above the
        remaining amount).
    """
    name: str
    flexible_level: FlexibleLevel
    goal_factor: float = 1.0


@dataclass(frozen=True)
class SensitivityPoint:
    income_change_percent: float
    income: float
    leftover: float
    is_feasible: bool


@dataclass(frozen=True)
class SensitivityAnalysis:
    """Balanced scenario re-evaluated under income shocks."""
    points: Tuple[SensitivityPoint, ...]
    income_break_even_point: float
    most_sensitive_to_income: bool


@dataclass(frozen=True)
class BudgetAllocationResult:
    """Output of allocate_budget()."""
    income: float
    scenarios: Tuple[AllocationScenario, ...]
    is_feasible: bool
    global_warnings: Tuple[AllocationWarning, ...] = ()
    sensitivity: Optional[SensitivityAnalysis] = None

    def scenario(self, name: str) -> AllocationScenario:
        for s in self.scenarios:
            if s.name == name:
                return s
        raise KeyError(f"no scenario named {name!r}; have {[s.name for s in self.scenarios]}")

    def to_frame(self) -> pd.DataFrame:
        """One row per (scenario, allocation)."""
        rows = [
            {
                "scenario": s.name,
                "kind": a.kind,
                "entity_id": a.entity_id,
                "name": a.name,
                "amount": a.amount,
                "minimum": a.minimum,
                "maximum": a.maximum,
            }
            for s in self.scenarios
            for a in s.allocations
        ]
        columns = ["scenario", "kind", "entity_id", "name", "amount", "minimum", "maximum"]
        return pd.DataFrame(rows, columns=columns)


# ---------------------------------------------------------------------------
# Scenario specs
# ---------------------------------------------------------------------------

ALL_SCENARIOS: Tuple[ScenarioSpec, ...] = (
    ScenarioSpec(SCENARIO_CONSERVATIVE, "min"),
    ScenarioSpec(SCENARIO_BALANCED, "balanced"),
    ScenarioSpec(SCENARIO_AGGRESSIVE, "max"),
)
BALANCED_ONLY: Tuple[ScenarioSpec, ...] = (ScenarioSpec(SCENARIO_BALANCED, "balanced"),)


def scenario_specs(options: AllocationOptions) -> Tuple[ScenarioSpec, ...]:
    """
    Scenarios requested by *options*.

    Each override replaces the parameters it sets on the scenario of the
    same name; an override with a new name is appended, starting from
    the balanced flexible level and a goal factor of 1.
    """
    specs = list(ALL_SCENARIOS if options.use_all_scenarios else BALANCED_ONLY)
    for override in options.scenario_overrides:
        names = [s.name for s in specs]
        if override.name in names:
            index = names.index(override.name)
            base = specs[index]
        else:
            index = len(specs)
            base = ScenarioSpec(override.name, "balanced")
            specs.append(base)
        if override.flexible_spending_level is not None:
            base = replace(base, flexible_level=float(override.flexible_spending_level))
        if override.goal_contribution_factor is not None:
            base = replace(base, goal_factor=float(override.goal_contribution_factor))
        specs[index] = base
    return tuple(specs)


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

def _fixed_allocations(context: DSSInputContext) -> List[Allocation]:
    items = [
        Allocation("mandatory", e.category_id, e.name, float(e.amount), minimum=float(e.amount),
                   maximum=float(e.amount))
        for e in context.mandatory_expenses
    ]
    items += [
        Allocation("debt_minimum", d.id, d.name, float(d.minimum_payment),
                   minimum=float(d.minimum_payment))
        for d in context.active_debts
    ]
    return items


def _flexible_weights(flexible: Sequence[FlexibleExpense]) -> np.ndarray:
    """Lower priority number → larger weight (max_priority - priority + 1)."""
    priorities = np.array([float(e.priority) for e in flexible])
    return priorities.max() - priorities + 1.0


def _flexible_amounts(
    level: FlexibleLevel,
    flexible: Sequence[FlexibleExpense],
    pool: float,
    precision: int,
) -> List[float]:
    """
    Chosen spend per flexible item.

    "min"/"max" pin every item to its bound. "balanced" moves each item
    from its minimum toward its midpoint, using *pool* (the money left
    after every minimum); when the pool is short, it is water-filled in
    proportion to (gap × priority weight). A float level does the same
    toward ``min + level × (max - min)``.
    """
    if not flexible:
        return []
    if level == "min":
        return [float(e.min_amount) for e in flexible]
    if level == "max":
        return [float(e.max_amount) for e in flexible]

    if level == "balanced":
        wants = np.array([e.midpoint - e.min_amount for e in flexible])
    else:
        wants = np.array([float(level) * (e.max_amount - e.min_amount) for e in flexible])
    if wants.sum() <= pool:
        increments = wants
    else:
        increments = water_fill(pool, wants, wants * _flexible_weights(flexible))
    return [
        float(e.min_amount) + floor_money(inc, precision)
        for e, inc in zip(flexible, increments)
    ]


def _goal_caps(goals: Sequence[Goal], factor: float) -> List[float]:
    """Contribution caps scaled by *factor*, never above the remaining amount."""
    return [min(g.contribution_cap * factor, float(g.remaining_amount)) for g in goals]


def _goal_contributions(
    goals: Sequence[Goal],
    caps: Sequence[float],
    pool: float,
    precision: int,
) -> List[float]:
    """Split *pool* across goals 4:3:2:1, each capped at its entry in *caps*."""
    if not goals or pool <= 0:
        return [0.0] * len(goals)
    shares = water_fill(pool, caps, [float(g.weight) for g in goals])
    return [floor_money(s, precision) for s in shares]


def _flexible_warnings(
    flexible: Sequence[FlexibleExpense],
    amounts: Sequence[float],
    tol: float,
) -> List[AllocationWarning]:
    out = []
    for e, amount in zip(flexible, amounts):
        if e.max_amount - e.min_amount <= tol:
            continue
        if abs(amount - e.min_amount) <= tol:
            out.append(AllocationWarning(
                "flexible_at_minimum",
                f"{e.name} is held at its minimum of {e.min_amount:,.2f}",
                "low",
                e.category_id,
            ))
        elif abs(amount - e.max_amount) <= tol:
            out.append(AllocationWarning(
                "flexible_at_maximum",
                f"{e.name} is raised to its maximum of {e.max_amount:,.2f}",
                "low",
                e.category_id,
            ))
    return out


def _goal_warnings(
    goals: Sequence[Goal],
    caps: Sequence[float],
    amounts: Sequence[float],
    tol: float,
) -> List[AllocationWarning]:
    out = []
    for g, cap, amount in zip(goals, caps, amounts):
        if g.suggested_contribution > 0 and amount + tol < cap:
            out.append(AllocationWarning(
                "goal_underfunded",
                f"{g.name} receives {amount:,.2f} of its suggested {cap:,.2f}",
                "medium",
                g.id,
            ))
    return out


def _tolerance(context: DSSInputContext, precision: int) -> float:
    """Minor unit, widened to the float error of summing every item at income scale."""
    terms = (
        len(context.mandatory_expenses) + len(context.flexible_expenses)
        + len(context.debts) + len(context.goals) + 4
    )
    return money_tolerance(precision, float(context.income), terms)


def _check_balance(scenario: AllocationScenario, precision: int) -> None:
    drift = abs(scenario.total_allocated + scenario.leftover - scenario.income)
    magnitude = max(abs(scenario.income), abs(scenario.total_allocated))
    if drift > money_tolerance(precision, magnitude, len(scenario.allocations) + 4):
        raise InvariantViolation(
            f"scenario {scenario.name!r}: allocations + leftover differ from income by {drift}"
        )


# ---------------------------------------------------------------------------
# Scenario evaluation
# ---------------------------------------------------------------------------

def evaluate_scenario(
    spec: ScenarioSpec,
    context: DSSInputContext,
    precision: int,
    goal_allocation_pct: Optional[float] = None,
) -> AllocationScenario:
    """
    Evaluate one scenario spec against *context*.

    Requires ``remaining - Σ flexible_min >= 0``; deficit and reduced
    cases are handled by allocate_budget(). With *goal_allocation_pct*,
    goals draw on that share of the post-flexible surplus only.
    """
    income = float(context.income)
    tol = _tolerance(context, precision)
    remaining = income - context.mandatory_total - context.debt_minimum_total
    flexible = context.flexible_expenses

    flex_amounts = _flexible_amounts(
        spec.flexible_level, flexible, remaining - context.flexible_min_total, precision
    )
    flexible_spend = math.fsum(flex_amounts)
    surplus = remaining - flexible_spend

    goal_caps = _goal_caps(context.goals, spec.goal_factor)
    goal_pool = surplus if goal_allocation_pct is None else surplus * goal_allocation_pct / 100.0
    goal_amounts = _goal_contributions(context.goals, goal_caps, goal_pool, precision)
    leftover = surplus - math.fsum(goal_amounts)
    extra_debt = leftover if (leftover > 0 and context.active_debts) else 0.0

    within_bounds = all(
        e.min_amount - tol <= a <= e.max_amount + tol for e, a in zip(flexible, flex_amounts)
    )

    allocations = _fixed_allocations(context)
    allocations[len(context.mandatory_expenses):len(context.mandatory_expenses)] = [
        Allocation("flexible", e.category_id, e.name, a, minimum=float(e.min_amount),
                   maximum=float(e.max_amount))
        for e, a in zip(flexible, flex_amounts)
    ]
    allocations += [
        Allocation("goal", g.id, g.name, a, maximum=cap)
        for g, cap, a in zip(context.goals, goal_caps, goal_amounts)
    ]

    warnings = _flexible_warnings(flexible, flex_amounts, tol)
    warnings += _goal_warnings(context.goals, goal_caps, goal_amounts, tol)
    if context.active_debts and extra_debt <= 0:
        warnings.append(AllocationWarning(
            "debt_minimum_only",
            "Debts receive only their minimum payments this month",
            "low",
        ))
    if surplus < -tol:
        warnings.append(AllocationWarning(
            "over_budget",
            f"Flexible spending exceeds available income by {-surplus:,.2f}",
            "high",
        ))

    scenario = AllocationScenario(
        name=spec.name,
        income=income,
        allocations=tuple(allocations),
        leftover=leftover,
        extra_debt_payment=extra_debt,
        is_feasible=surplus >= -tol and within_bounds,
        warnings=tuple(warnings),
    )
    _check_balance(scenario, precision)
    return scenario


def _deficit_scenario(
    context: DSSInputContext,
    precision: int,
) -> Tuple[AllocationScenario, List[AllocationWarning]]:
    """Fund mandatory items (by priority) then debt minimums until income runs out."""
    income = float(context.income)
    ordered_mandatory = sorted(
        enumerate(context.mandatory_expenses), key=lambda pair: (pair[1].priority, pair[0])
    )
    queue = [(e.category_id, "mandatory", e.amount) for _, e in ordered_mandatory]
    queue += [(d.id, "debt_minimum", d.minimum_payment) for d in context.active_debts]

    available = income
    funded = {}
    global_warnings: List[AllocationWarning] = [AllocationWarning(
        "income_shortfall",
        f"Income {income:,.2f} does not cover mandatory expenses and debt minimums "
        f"({context.mandatory_total + context.debt_minimum_total:,.2f})",
        "high",
    )]
    for entity_id, kind, amount in queue:
        paid = min(float(amount), max(available, 0.0))
        funded[(kind, entity_id)] = paid
        available -= paid
        if paid + _tolerance(context, precision) < amount:
            label = "mandatory expense" if kind == "mandatory" else "debt minimum payment"
            global_warnings.append(AllocationWarning(
                f"unfunded_{kind}",
                f"{label} {entity_id!r} is short by {amount - paid:,.2f}",
                "high",
                entity_id,
            ))

    allocations = [
        replace(a, amount=funded[(a.kind, a.entity_id)]) for a in _fixed_allocations(context)
    ]
    allocations[len(context.mandatory_expenses):len(context.mandatory_expenses)] = [
        Allocation("flexible", e.category_id, e.name, 0.0, minimum=float(e.min_amount),
                   maximum=float(e.max_amount))
        for e in context.flexible_expenses
    ]
    allocations += [
        Allocation("goal", g.id, g.name, 0.0, maximum=float(g.contribution_cap))
        for g in context.goals
    ]
    scenario = AllocationScenario(
        name=SCENARIO_DEFICIT,
        income=income,
        allocations=tuple(allocations),
        leftover=available,
        extra_debt_payment=0.0,
        is_feasible=False,
        warnings=tuple(global_warnings[1:]),
    )
    _check_balance(scenario, precision)
    return scenario, global_warnings


def _reduced_scenario(
    context: DSSInputContext,
    precision: int,
) -> Tuple[AllocationScenario, List[AllocationWarning]]:
    """Fixed items are covered but flexible minimums are not: fund them by priority."""
    income = float(context.income)
    available = income - context.mandatory_total - context.debt_minimum_total
    flexible = context.flexible_expenses
    order = sorted(range(len(flexible)), key=lambda i: (flexible[i].priority, i))

    amounts = [0.0] * len(flexible)
    warnings: List[AllocationWarning] = []
    for i in order:
        paid = min(float(flexible[i].min_amount), max(available, 0.0))
        amounts[i] = paid
        available -= paid
        if paid + _tolerance(context, precision) < flexible[i].min_amount:
            warnings.append(AllocationWarning(
                "flexible_below_minimum",
                f"{flexible[i].name} is short of its minimum by {flexible[i].min_amount - paid:,.2f}",
                "high",
                flexible[i].category_id,
            ))

    allocations = _fixed_allocations(context)
    allocations[len(context.mandatory_expenses):len(context.mandatory_expenses)] = [
        Allocation("flexible", e.category_id, e.name, a, minimum=float(e.min_amount),
                   maximum=float(e.max_amount))
        for e, a in zip(flexible, amounts)
    ]
    allocations += [
        Allocation("goal", g.id, g.name, 0.0, maximum=float(g.contribution_cap))
        for g in context.goals
    ]
    scenario = AllocationScenario(
        name=SCENARIO_REDUCED,
        income=income,
        allocations=tuple(allocations),
        leftover=available,
        extra_debt_payment=0.0,
        is_feasible=False,
        warnings=tuple(warnings),
    )
    _check_balance(scenario, precision)
    global_warnings = [AllocationWarning(
        "flexible_shortfall",
        f"Income left after fixed obligations does not cover flexible minimums "
        f"({context.flexible_min_total:,.2f})",
        "high",
    )]
    return scenario, global_warnings


def _build_scenarios(
    context: DSSInputContext,
    specs: Sequence[ScenarioSpec],
    precision: int,
    goal_allocation_pct: Optional[float] = None,
) -> Tuple[Tuple[AllocationScenario, ...], Tuple[AllocationWarning, ...]]:
    remaining = float(context.income) - context.mandatory_total - context.debt_minimum_total
    if remaining < 0:
        scenario, warnings = _deficit_scenario(context, precision)
        return (scenario,), tuple(warnings)
    if remaining - context.flexible_min_total < 0:
        scenario, warnings = _reduced_scenario(context, precision)
        return (scenario,), tuple(warnings)
    return tuple(
        evaluate_scenario(spec, context, precision, goal_allocation_pct) for spec in specs
    ), ()


# ---------------------------------------------------------------------------
# Sensitivity
# ---------------------------------------------------------------------------

def income_sensitivity(
    context: DSSInputContext,
    income_change_percents: Sequence[float],
    precision: int,
    goal_allocation_pct: Optional[float] = None,
) -> SensitivityAnalysis:
    """Re-run the balanced scenario at ``income × (1 + pct/100)`` per shock."""
    points = []
    for pct in income_change_percents:
        shocked = replace(context, income=float(context.income) * (1.0 + pct / 100.0))
        scenarios, _ = _build_scenarios(shocked, BALANCED_ONLY, precision, goal_allocation_pct)
        points.append(SensitivityPoint(
            income_change_percent=float(pct),
            income=float(shocked.income),
            leftover=scenarios[0].leftover,
            is_feasible=scenarios[0].is_feasible,
        ))
    break_even = context.mandatory_total + context.debt_minimum_total + context.flexible_min_total
    base_feasible = float(context.income) >= break_even
    flips = any(p.income_change_percent < 0 and not p.is_feasible for p in points)
    return SensitivityAnalysis(
        points=tuple(points),
        income_break_even_point=break_even,
        most_sensitive_to_income=base_feasible and flips,
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def allocate_budget(
    context: DSSInputContext,
    options: Optional[AllocationOptions] = None,
) -> BudgetAllocationResult:
    """
    Allocate the month's income into candidate scenarios.

    Parameters
    ----------
    context : DSSInputContext
        Validated input; must carry a positive income.
    options : AllocationOptions, optional
        Scenario selection, deficit policy and sensitivity settings.

    Returns
    -------
    BudgetAllocationResult

    Raises
    ------
    InvalidIncomeError
        If the context has no positive income.
    InsufficientIncomeError
        If fixed obligations exceed income and ``allow_deficit`` is False.
    """
    options = options or AllocationOptions()
    if context.income is None or context.income <= 0:
        raise InvalidIncomeError("allocation requires a positive income", field="income")

    precision = options.money_precision
    fixed_total = context.mandatory_total + context.debt_minimum_total
    if fixed_total > context.income and not options.allow_deficit:
        raise InsufficientIncomeError(
            f"income {context.income:,.2f} is below mandatory expenses plus debt "
            f"minimums ({fixed_total:,.2f})",
            shortfall=fixed_total - context.income,
        )

    scenarios, global_warnings = _build_scenarios(
        context, scenario_specs(options), precision, options.goal_allocation_pct
    )

    if context.is_empty:
        note = AllocationWarning(
            "no_items",
            "No expenses, debts or goals were supplied; the whole income is left over",
            "low",
        )
        scenarios = tuple(replace(s, warnings=s.warnings + (note,)) for s in scenarios)
        global_warnings = global_warnings + (note,)

    sensitivity = None
    if options.run_sensitivity:
        sensitivity = income_sensitivity(
            context, options.income_change_percents, precision, options.goal_allocation_pct
        )

    result = BudgetAllocationResult(
        income=float(context.income),
        scenarios=scenarios,
        is_feasible=any(s.is_feasible for s in scenarios),
        global_warnings=global_warnings,
        sensitivity=sensitivity,
    )
    if result.is_feasible:
        logger.debug(
            "Allocated %s across %d scenario(s): %s",
            f"{result.income:,.2f}", len(scenarios), [s.name for s in scenarios],
        )
    else:
        logger.warning(
            "No feasible allocation for income %s (%d warning(s))",
            f"{result.income:,.2f}", len(global_warnings),
        )
    return result
