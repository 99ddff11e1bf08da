"""
Input normalization for MonthDSS.

Purpose
-------
Turns raw records (mappings from the ledger/debt/goal registries, or the
pydantic payload models in ``monthdss.config``) into an immutable
``DSSInputContext``. Every check runs here, before any engine logic:

- income > 0 (InvalidIncomeError) when income is required or supplied
- unique category_id across mandatory + flexible (DuplicateCategoryError)
- unique debt ids, goal ids, one rating per goal (ValidationError)
- per-record ranges, delegated to the value objects in ``monthdss.models``
- payload shape errors from pydantic, re-raised as ValidationError

Example
-------
>>> from monthdss.normalize import build_context
>>> ctx = build_context(
...     income=15_000_000,
...     mandatory=[{"category_id": "rent", "name": "Rent", "amount": 5_000_000}],
... )
>>> ctx.mandatory_total
5000000.0
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence, Type, TypeVar, Union

import pydantic
from pydantic import BaseModel

from .config import (
    BudgetAllocationInput,
    DebtConfig,
    DebtStrategyInput,
    DirectRatingInput,
    FlexibleExpenseConfig,
    GoalConfig,
    GoalRatingConfig,
    MandatoryExpenseConfig,
)
from .exceptions import DuplicateCategoryError, InvalidIncomeError, ValidationError
from .models import (
    Debt,
    DSSInputContext,
    FlexibleExpense,
    Goal,
    GoalRating,
    MandatoryExpense,
)
from .utils import check_finite

__all__ = [
    "build_context",
    "parse_payload",
    "normalize_budget_input",
    "normalize_debt_input",
    "normalize_rating_input",
]

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)
RecordLike = Union[Mapping[str, Any], BaseModel]


# ---------------------------------------------------------------------------
# Payload parsing
# ---------------------------------------------------------------------------

def parse_payload(model: Type[M], payload: Union[M, Mapping[str, Any]]) -> M:
    """
    Validate *payload* against pydantic *model*.

    Pydantic errors are re-raised as ValidationError naming the first
    offending location (e.g. ``debts.0.balance``).
    """
    if isinstance(payload, model):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump()
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationError(
            f"invalid {model.__name__}: {location}: {first.get('msg')}",
            field=location or None,
        ) from e


def _as_mapping(record: RecordLike) -> Mapping[str, Any]:
    if isinstance(record, BaseModel):
        return record.model_dump()
    return record


def _build(kind: Type, config: Type[BaseModel], records: Optional[Iterable[Any]]) -> tuple:
    """Build value objects from records, passing existing instances through."""
    built = []
    for index, record in enumerate(records or ()):
        if isinstance(record, kind):
            built.append(record)
            continue
        parsed = parse_payload(config, _as_mapping(record))
        data = parsed.model_dump()
        if not data.get("name"):
            data["name"] = data.get("category_id") or data.get("id") or f"item-{index}"
        built.append(kind(**data))
    return tuple(built)


def _build_ratings(records: Optional[Iterable[Any]]) -> tuple:
    built = []
    for record in records or ():
        if isinstance(record, GoalRating):
            built.append(record)
            continue
        parsed = parse_payload(GoalRatingConfig, _as_mapping(record))
        built.append(GoalRating(**parsed.model_dump()))
    return tuple(built)


# ---------------------------------------------------------------------------
# Cross-record checks
# ---------------------------------------------------------------------------

def _check_unique(ids: Sequence[str], kind: str, error: Type[ValidationError]) -> None:
    seen = set()
    for entity_id in ids:
        if entity_id in seen:
            raise error(f"duplicate {kind} {entity_id!r}", field=kind, entity_id=entity_id)
        seen.add(entity_id)


def _check_income(income: Optional[float], required: bool) -> Optional[float]:
    if income is None:
        if required:
            raise InvalidIncomeError("income is required", field="income")
        return None
    try:
        value = float(income)
    except (TypeError, ValueError):
        raise InvalidIncomeError(f"income must be a number (got {income!r})", field="income") from None
    check_finite("income", value)
    if value <= 0:
        raise InvalidIncomeError(f"income must be > 0 (got {value})", field="income")
    return value


# ---------------------------------------------------------------------------
# Context construction
# ---------------------------------------------------------------------------

def build_context(
    income: Optional[float] = None,
    *,
    mandatory: Optional[Iterable[Any]] = None,
    flexible: Optional[Iterable[Any]] = None,
    debts: Optional[Iterable[Any]] = None,
    goals: Optional[Iterable[Any]] = None,
    ratings: Optional[Iterable[Any]] = None,
    require_income: bool = False,
    require_ratings: bool = False,
) -> DSSInputContext:
    """
    Validate raw records and return an immutable DSSInputContext.

    Parameters
    ----------
    income : float, optional
        Monthly income; validated as > 0 when given.
    mandatory, flexible, debts, goals, ratings : iterable, optional
        Records as mappings, pydantic config models, or value objects.
    require_income : bool, default False
        Raise InvalidIncomeError when income is missing.
    require_ratings : bool, default False
        Every goal must have exactly one rating.

    Returns
    -------
    DSSInputContext

    Raises
    ------
    InvalidIncomeError, DuplicateCategoryError, ValidationError
    """
    income_value = _check_income(income, require_income)

    mandatory_items = _build(MandatoryExpense, MandatoryExpenseConfig, mandatory)
    flexible_items = _build(FlexibleExpense, FlexibleExpenseConfig, flexible)
    debt_items = _build(Debt, DebtConfig, debts)
    goal_items = _build(Goal, GoalConfig, goals)
    rating_items = _build_ratings(ratings)

    _check_unique(
        [e.category_id for e in mandatory_items + flexible_items],
        "category_id",
        DuplicateCategoryError,
    )
    _check_unique([d.id for d in debt_items], "debt id", ValidationError)
    _check_unique([g.id for g in goal_items], "goal id", ValidationError)
    _check_unique([r.goal_id for r in rating_items], "rating goal_id", ValidationError)

    goal_ids = {g.id for g in goal_items}
    for rating in rating_items:
        if rating.goal_id not in goal_ids:
            raise ValidationError(
                f"rating references unknown goal {rating.goal_id!r}",
                field="goal_id",
                entity_id=rating.goal_id,
            )
    if require_ratings:
        rated = {r.goal_id for r in rating_items}
        for goal in goal_items:
            if goal.id not in rated:
                raise ValidationError(
                    "goal has no rating", field="ratings", entity_id=goal.id
                )

    context = DSSInputContext(
        income=income_value,
        mandatory_expenses=mandatory_items,
        flexible_expenses=flexible_items,
        debts=debt_items,
        goals=goal_items,
        ratings=rating_items,
    )
    logger.debug(
        "Built context: %d mandatory, %d flexible, %d debts, %d goals, %d ratings",
        len(mandatory_items), len(flexible_items), len(debt_items),
        len(goal_items), len(rating_items),
    )
    return context


def normalize_budget_input(
    payload: Union[BudgetAllocationInput, Mapping[str, Any]],
) -> tuple:
    """Parse an allocation request; returns ``(context, AllocationOptions)``."""
    parsed = parse_payload(BudgetAllocationInput, payload)
    context = build_context(
        parsed.total_income,
        mandatory=parsed.mandatory_expenses,
        flexible=parsed.flexible_expenses,
        debts=parsed.debts,
        goals=parsed.goals,
        require_income=True,
    )
    return context, parsed.options


def normalize_debt_input(
    payload: Union[DebtStrategyInput, Mapping[str, Any]],
) -> tuple:
    """Parse a debt strategy request; returns ``(context, DebtStrategyOptions)``."""
    parsed = parse_payload(DebtStrategyInput, payload)
    return build_context(debts=parsed.debts), parsed.options


def normalize_rating_input(
    payload: Union[DirectRatingInput, Mapping[str, Any]],
) -> tuple:
    """
    Parse a goal rating request; returns ``(context, RankingOptions)``.

    Every goal needs a rating unless ``options.use_auto_scoring`` is set.
    """
    parsed = parse_payload(DirectRatingInput, payload)
    context = build_context(
        parsed.monthly_income,
        goals=parsed.goals,
        ratings=parsed.ratings,
        require_ratings=not parsed.options.use_auto_scoring,
    )
    return context, parsed.options
