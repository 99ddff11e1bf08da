"""
Input value objects for MonthDSS.

Purpose
-------
Immutable snapshots of the records the engine reads from external
registries (monthly ledger, debt registry, goal registry). Every object
validates its own ranges on construction and raises a field-identified
ValidationError; cross-record checks (duplicates, income) live in
``monthdss.normalize``.

Types
-----
- MandatoryExpense : fixed, non-negotiable monthly cost
- FlexibleExpense  : cost with an adjustable [min_amount, max_amount] range
- Debt             : outstanding balance with monthly rate and minimum payment
- Goal             : savings goal with declared priority label
- GoalRating       : direct 1-10 ratings on urgency/importance/roi/effort
- DSSInputContext  : the read-only bundle shared by all three engines

Design Principles
-----------------
- Frozen dataclasses, tuples for collections
- Priority numbers: lower = more important
- Interest rates are monthly decimals in [0, 1)

Example
-------
>>> from monthdss.models import Debt, DSSInputContext
>>> card = Debt(id="visa", name="Visa", balance=3_000_000,
...             interest_rate=0.03, minimum_payment=150_000)
>>> ctx = DSSInputContext(debts=(card,))
>>> ctx.debt_minimum_total
150000.0
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional, Tuple

from .constants import (
    GOAL_TYPE_IMPACT,
    PRIORITY_WEIGHTS,
    RATING_AXES,
    RATING_MAX,
    RATING_MIN,
    STRESS_MAX,
    STRESS_MIN,
)
from .exceptions import ValidationError
from .utils import check_finite, check_non_negative, check_range

__all__ = [
    "MandatoryExpense",
    "FlexibleExpense",
    "Debt",
    "Goal",
    "GoalRating",
    "DSSInputContext",
]


def _check_identity(kind: str, entity_id: str, name: str) -> None:
    if not isinstance(entity_id, str) or not entity_id.strip():
        raise ValidationError(f"{kind} id must be a non-empty string", field="id")
    if not isinstance(name, str):
        raise ValidationError(f"{kind} name must be a string", field="name", entity_id=entity_id)


# ---------------------------------------------------------------------------
# Expenses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MandatoryExpense:
    """
    Fixed monthly cost (rent, utilities, insurance).

    Parameters
    ----------
    category_id : str
        Ledger category identifier; unique across mandatory and flexible sets.
    name : str
        Display name.
    amount : float
        Monthly amount, must be > 0.
    priority : int, default 1
        Funding order under deficit (lower = paid first).
    """
    category_id: str
    name: str
    amount: float
    priority: int = 1

    def __post_init__(self) -> None:
        _check_identity("mandatory expense", self.category_id, self.name)
        check_finite("amount", self.amount, entity_id=self.category_id)
        if self.amount <= 0:
            raise ValidationError(
                f"amount must be > 0 (got {self.amount}).",
                field="amount",
                entity_id=self.category_id,
            )
        check_finite("priority", self.priority, entity_id=self.category_id)


@dataclass(frozen=True)
class FlexibleExpense:
    """
    Monthly cost with an adjustable spending range (groceries, leisure).

    Parameters
    ----------
    category_id : str
        Ledger category identifier.
    name : str
        Display name.
    min_amount : float
        Lowest acceptable spend, >= 0.
    max_amount : float
        Highest useful spend, >= min_amount.
    priority : int, default 1
        Lower numbers get a larger share of the balanced scaling.
    """
    category_id: str
    name: str
    min_amount: float
    max_amount: float
    priority: int = 1

    def __post_init__(self) -> None:
        _check_identity("flexible expense", self.category_id, self.name)
        check_non_negative("min_amount", self.min_amount, entity_id=self.category_id)
        check_non_negative("max_amount", self.max_amount, entity_id=self.category_id)
        if self.max_amount < self.min_amount:
            raise ValidationError(
                f"max_amount ({self.max_amount}) must be >= min_amount ({self.min_amount}).",
                field="max_amount",
                entity_id=self.category_id,
            )
        check_finite("priority", self.priority, entity_id=self.category_id)

    @property
    def midpoint(self) -> float:
        return (self.min_amount + self.max_amount) / 2.0


# ---------------------------------------------------------------------------
# Debts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Debt:
    """
    Outstanding debt as read from the debt registry.

    Parameters
    ----------
    id : str
        Debt identifier.
    name : str
        Display name.
    balance : float
        Current balance, >= 0. A zero balance is reported as already paid.
    interest_rate : float
        Monthly rate as a decimal in [0, 1) (0.015 = 1.5%/month).
    minimum_payment : float
        Contractual minimum per month, >= 0.
    is_variable_rate : bool, default False
        Informational flag; the simulator holds the rate constant.
    stress_score : float, default 0.0
        Subjective stress in [0, 10], used by the ``stress`` strategy.
    """
    id: str
    name: str
    balance: float
    interest_rate: float
    minimum_payment: float
    is_variable_rate: bool = False
    stress_score: float = 0.0

    def __post_init__(self) -> None:
        _check_identity("debt", self.id, self.name)
        check_non_negative("balance", self.balance, entity_id=self.id)
        check_range("interest_rate", self.interest_rate, 0.0, 1.0,
                    entity_id=self.id, high_inclusive=False)
        check_non_negative("minimum_payment", self.minimum_payment, entity_id=self.id)
        check_range("stress_score", self.stress_score, STRESS_MIN, STRESS_MAX, entity_id=self.id)

    @property
    def is_active(self) -> bool:
        return self.balance > 0


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Goal:
    """
    Savings goal with a declared priority label.

    Parameters
    ----------
    id : str
        Goal identifier.
    name : str
        Display name.
    priority : {"critical", "high", "medium", "low"}
        Declared priority; maps to weight 4/3/2/1.
    remaining_amount : float
        Amount still missing to reach the target, >= 0.
    suggested_contribution : float, default 0.0
        Suggested monthly contribution, >= 0. Zero means "not provided".
    goal_type : str, default "other"
        One of GOAL_TYPE_IMPACT (emergency, debt, retirement, ...).
    target_date : date, optional
        Date the goal should be reached by.
    """
    id: str
    name: str
    priority: str
    remaining_amount: float
    suggested_contribution: float = 0.0
    goal_type: str = "other"
    target_date: Optional[date] = None

    def __post_init__(self) -> None:
        _check_identity("goal", self.id, self.name)
        if self.priority not in PRIORITY_WEIGHTS:
            raise ValidationError(
                f"priority must be one of {list(PRIORITY_WEIGHTS)} (got {self.priority!r}).",
                field="priority",
                entity_id=self.id,
            )
        check_non_negative("remaining_amount", self.remaining_amount, entity_id=self.id)
        check_non_negative("suggested_contribution", self.suggested_contribution, entity_id=self.id)
        if self.goal_type not in GOAL_TYPE_IMPACT:
            raise ValidationError(
                f"goal_type must be one of {list(GOAL_TYPE_IMPACT)} (got {self.goal_type!r}).",
                field="goal_type",
                entity_id=self.id,
            )

    @property
    def weight(self) -> int:
        """Priority weight (critical=4 ... low=1)."""
        return PRIORITY_WEIGHTS[self.priority]

    @property
    def contribution_cap(self) -> float:
        """Most this goal can absorb in one month."""
        if self.suggested_contribution > 0:
            return min(self.suggested_contribution, self.remaining_amount)
        return self.remaining_amount


@dataclass(frozen=True)
class GoalRating:
    """
    Direct multi-attribute rating of one goal.

    All axes are on a 1-10 scale. For ``effort``, 10 means easiest.
    """
    goal_id: str
    urgency: float
    importance: float
    roi: float
    effort: float

    def __post_init__(self) -> None:
        if not isinstance(self.goal_id, str) or not self.goal_id.strip():
            raise ValidationError("rating goal_id must be a non-empty string", field="goal_id")
        for axis in RATING_AXES:
            check_range(axis, getattr(self, axis), RATING_MIN, RATING_MAX, entity_id=self.goal_id)

    def as_dict(self) -> Dict[str, float]:
        return {axis: float(getattr(self, axis)) for axis in RATING_AXES}


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DSSInputContext:
    """
    Read-only bundle of validated inputs shared by the three engines.

    Build it through ``monthdss.normalize.build_context`` so that
    cross-record checks run; direct construction only validates
    individual records.
    """
    income: Optional[float] = None
    mandatory_expenses: Tuple[MandatoryExpense, ...] = field(default_factory=tuple)
    flexible_expenses: Tuple[FlexibleExpense, ...] = field(default_factory=tuple)
    debts: Tuple[Debt, ...] = field(default_factory=tuple)
    goals: Tuple[Goal, ...] = field(default_factory=tuple)
    ratings: Tuple[GoalRating, ...] = field(default_factory=tuple)

    @property
    def mandatory_total(self) -> float:
        return float(sum(e.amount for e in self.mandatory_expenses))

    @property
    def flexible_min_total(self) -> float:
        return float(sum(e.min_amount for e in self.flexible_expenses))

    @property
    def active_debts(self) -> Tuple[Debt, ...]:
        return tuple(d for d in self.debts if d.is_active)

    @property
    def debt_minimum_total(self) -> float:
        """Sum of minimum payments over debts that still carry a balance."""
        return float(sum(d.minimum_payment for d in self.active_debts))

    @property
    def is_empty(self) -> bool:
        return not (self.mandatory_expenses or self.flexible_expenses
                    or self.active_debts or self.goals)

    def rating_for(self, goal_id: str) -> Optional[GoalRating]:
        for rating in self.ratings:
            if rating.goal_id == goal_id:
                return rating
        return None
