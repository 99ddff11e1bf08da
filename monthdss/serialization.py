"""
Serialization module for MonthDSS payloads and results.

Purpose
-------
JSON persistence for request payloads and engine results, so that the
CLI and other callers can read inputs from files and hand results to a
presentation layer.

Supports:
- Request payloads (budget, debt, goals) with schema-version checks
- BudgetAllocationResult, DebtStrategyResult, GoalPrioritizationResult,
  AutoScoringResult
- Starter templates for each payload kind

Design Principles
-----------------
- Deterministic: JSON output uses sorted keys, identical input gives
  byte-identical output
- Human-readable: indented JSON for easy editing
- Backward compatible: payloads carry ``schema_version``; a mismatch
  warns instead of failing

Example
-------
>>> from pathlib import Path
>>> from monthdss.serialization import load_payload, save_result
>>> from monthdss.service import allocate_budget_from_input
>>>
>>> payload = load_payload(Path("budget.json"))
>>> result = allocate_budget_from_input(payload)
>>> save_result(result, Path("allocation.json"))
"""

from __future__ import annotations

import json
import math
import warnings
from pathlib import Path
from typing import Any, Dict, List, Literal, Union

from .allocation import AllocationScenario, AllocationWarning, BudgetAllocationResult
from .debt import DebtStrategyResult, StrategyOutcome
from .exceptions import ValidationError
from .goals import GoalPrioritizationResult
from .scoring import AutoScoringResult
from .types import ScenarioDict, StrategyOutcomeDict, TimelineEntryDict, WarningDict

__all__ = [
    "SCHEMA_VERSION",
    "load_payload",
    "save_payload",
    "template_payload",
    "result_to_dict",
    "result_to_json",
    "save_result",
]

PayloadKind = Literal["budget", "debt", "goals"]
Result = Union[
    BudgetAllocationResult, DebtStrategyResult, GoalPrioritizationResult, AutoScoringResult
]


# ---------------------------------------------------------------------------
# Schema Version
# ---------------------------------------------------------------------------

SCHEMA_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

def load_payload(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a JSON request payload.

    Parameters
    ----------
    path : str or Path
        Input file path

    Returns
    -------
    dict
        Raw payload, ready for the ``*_from_input`` service functions

    Raises
    ------
    ValidationError
        If the file is not valid JSON or not a JSON object.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        try:
            payload = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"{path}: invalid JSON ({e})") from e
    if not isinstance(payload, dict):
        raise ValidationError(f"{path}: payload must be a JSON object")

    # Check schema version
    schema_version = payload.get("schema_version")
    if schema_version is not None and schema_version != SCHEMA_VERSION:
        warnings.warn(
            f"Payload schema version {schema_version} differs from current "
            f"version {SCHEMA_VERSION}. May encounter compatibility issues.",
            UserWarning,
        )
    return payload


def save_payload(payload: Dict[str, Any], path: Union[str, Path]) -> None:
    """Write *payload* as indented JSON, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
        f.write("\n")


def template_payload(kind: PayloadKind) -> Dict[str, Any]:
    """
    Starter payload for *kind* ("budget", "debt" or "goals").

    Examples
    --------
    >>> template_payload("debt")["options"]["extra_payment"]
    200000.0
    """
    debts = [
        {"id": "visa", "name": "Visa card", "balance": 3_000_000.0,
         "interest_rate": 0.03, "minimum_payment": 150_000.0, "stress_score": 7.0},
        {"id": "car", "name": "Car loan", "balance": 10_000_000.0,
         "interest_rate": 0.015, "minimum_payment": 300_000.0},
    ]
    goals = [
        {"id": "emergency", "name": "Emergency fund", "priority": "critical",
         "goal_type": "emergency", "remaining_amount": 6_000_000.0,
         "suggested_contribution": 500_000.0},
        {"id": "travel", "name": "Trip", "priority": "low", "goal_type": "travel",
         "remaining_amount": 4_000_000.0, "suggested_contribution": 300_000.0},
    ]
    if kind == "budget":
        return {
            "schema_version": SCHEMA_VERSION,
            "total_income": 15_000_000.0,
            "mandatory_expenses": [
                {"category_id": "rent", "name": "Rent", "amount": 5_000_000.0, "priority": 1},
                {"category_id": "utilities", "name": "Utilities", "amount": 600_000.0,
                 "priority": 2},
            ],
            "flexible_expenses": [
                {"category_id": "groceries", "name": "Groceries", "min_amount": 1_200_000.0,
                 "max_amount": 2_000_000.0, "priority": 1},
                {"category_id": "leisure", "name": "Leisure", "min_amount": 200_000.0,
                 "max_amount": 800_000.0, "priority": 3},
            ],
            "debts": debts,
            "goals": goals,
            "options": {"use_all_scenarios": True, "run_sensitivity": False},
        }
    if kind == "debt":
        return {
            "schema_version": SCHEMA_VERSION,
            "debts": debts,
            "options": {"extra_payment": 200_000.0, "maximum_horizon": 600},
        }
    if kind == "goals":
        return {
            "schema_version": SCHEMA_VERSION,
            "goals": goals,
            "ratings": [
                {"goal_id": "emergency", "urgency": 9, "importance": 10, "roi": 5, "effort": 6},
                {"goal_id": "travel", "urgency": 3, "importance": 4, "roi": 2, "effort": 8},
            ],
            "options": {"consistency_threshold": 0.4},
        }
    raise ValueError(f"unknown payload kind {kind!r}; expected budget, debt or goals")


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

def _number(value: float) -> Any:
    """JSON has no inf/nan; report them as None."""
    return value if math.isfinite(value) else None


def _warning_to_dict(w: AllocationWarning) -> WarningDict:
    return {"type": w.type, "message": w.message, "severity": w.severity,
            "entity_id": w.entity_id}


def _scenario_to_dict(s: AllocationScenario) -> ScenarioDict:
    return {
        "name": s.name,
        "income": s.income,
        "allocations": [
            {"kind": a.kind, "entity_id": a.entity_id, "name": a.name, "amount": a.amount,
             "minimum": a.minimum, "maximum": a.maximum}
            for a in s.allocations
        ],
        "leftover": s.leftover,
        "extra_debt_payment": s.extra_debt_payment,
        "is_feasible": s.is_feasible,
        "warnings": [_warning_to_dict(w) for w in s.warnings],
        "total_mandatory": s.total_mandatory,
        "total_flexible": s.total_flexible,
        "total_debt_payments": s.total_debt_payments,
        "total_goal_contributions": s.total_goal_contributions,
        "total_allocated": s.total_allocated,
        "savings_rate": s.savings_rate,
    }


def _timeline_to_list(timeline) -> List[TimelineEntryDict]:
    return [
        {
            "month": e.month,
            "balances": {k: _number(v) for k, v in e.balances.items()},
            "total_balance": _number(e.total_balance),
            "interest": _number(e.interest),
            "payments": dict(e.payments),
            "extra_payments": dict(e.extra_payments),
        }
        for e in timeline
    ]


def _outcome_to_dict(o: StrategyOutcome, include_timeline: bool) -> StrategyOutcomeDict:
    data = {
        "strategy": o.strategy.value,
        "description": o.description,
        "total_interest": _number(o.total_interest),
        "months_to_debt_free": o.months_to_debt_free,
        "truncated": o.truncated,
        "first_debt_cleared": o.first_debt_cleared,
        "interest_saved": _number(o.interest_saved),
        "payoff_plans": [
            {"debt_id": p.debt_id, "name": p.name, "payoff_month": p.payoff_month,
             "total_interest": _number(p.total_interest), "total_paid": _number(p.total_paid)}
            for p in o.payoff_plans
        ],
    }
    if include_timeline:
        data["timeline"] = _timeline_to_list(o.timeline)
    return data


def result_to_dict(result: Result, include_timelines: bool = False) -> Dict[str, Any]:
    """
    Convert an engine result to a JSON-ready dictionary.

    Parameters
    ----------
    result : BudgetAllocationResult, DebtStrategyResult, GoalPrioritizationResult
        or AutoScoringResult
    include_timelines : bool, default False
        Include every strategy's timeline in ``strategy_comparison``
        (the recommended timeline is always included).

    Returns
    -------
    dict
        Shaped as the matching TypedDict in ``monthdss.types``.
    """
    if isinstance(result, BudgetAllocationResult):
        sensitivity = None
        if result.sensitivity is not None:
            sensitivity = {
                "points": [
                    {"income_change_percent": p.income_change_percent, "income": p.income,
                     "leftover": p.leftover, "is_feasible": p.is_feasible}
                    for p in result.sensitivity.points
                ],
                "income_break_even_point": result.sensitivity.income_break_even_point,
                "most_sensitive_to_income": result.sensitivity.most_sensitive_to_income,
            }
        return {
            "schema_version": SCHEMA_VERSION,
            "kind": "budget",
            "income": result.income,
            "scenarios": [_scenario_to_dict(s) for s in result.scenarios],
            "is_feasible": result.is_feasible,
            "global_warnings": [_warning_to_dict(w) for w in result.global_warnings],
            "sensitivity": sensitivity,
        }

    if isinstance(result, DebtStrategyResult):
        chosen = result.outcome(result.recommended_strategy)
        return {
            "schema_version": SCHEMA_VERSION,
            "kind": "debt",
            "recommended_strategy": result.recommended_strategy.value,
            "timeline": _timeline_to_list(result.timeline),
            "total_interest": _number(result.total_interest),
            "months_to_debt_free": result.months_to_debt_free,
            "strategy_comparison": [
                _outcome_to_dict(o, include_timelines) for o in result.strategy_comparison
            ],
            "payoff_plans": _outcome_to_dict(chosen, False)["payoff_plans"],
            "total_debt_budget": result.total_debt_budget,
            "truncated": result.truncated,
            "warnings": [_warning_to_dict(w) for w in result.warnings],
        }

    if isinstance(result, GoalPrioritizationResult):
        return {
            "schema_version": SCHEMA_VERSION,
            "kind": "goals",
            "ranked_goals": [
                {"goal_id": g.goal_id, "name": g.name, "rank": g.rank,
                 "composite_score": g.composite_score, "axis_scores": dict(g.axis_scores),
                 "priority": g.priority, "coefficient_of_variation": g.coefficient_of_variation,
                 "low_confidence": g.low_confidence, "auto_scored": g.auto_scored}
                for g in result.ranked_goals
            ],
            "consistency_ratio": result.consistency_ratio,
            "is_consistent": result.is_consistent,
            "criteria_weights": dict(result.criteria_weights),
            "alternative_priorities": dict(result.alternative_priorities),
        }

    if isinstance(result, AutoScoringResult):
        return {
            "schema_version": SCHEMA_VERSION,
            "kind": "scores",
            "as_of": result.as_of.isoformat() if result.as_of else None,
            "goal_budget": result.goal_budget,
            "goals": [
                {"goal_id": g.goal_id, "name": g.name, "goal_type": g.goal_type,
                 "scores": {axis: {"score": s.score, "reason": s.reason}
                            for axis, s in g.scores.items()}}
                for g in result.goals
            ],
        }

    raise TypeError(f"cannot serialize {type(result).__name__}")


def result_to_json(result: Result, include_timelines: bool = False, indent: int = 2) -> str:
    """Serialize *result* to JSON with sorted keys."""
    return json.dumps(result_to_dict(result, include_timelines), indent=indent, sort_keys=True)


def save_result(result: Result, path: Union[str, Path], include_timelines: bool = False) -> None:
    """
    Save an engine result to a JSON file.

    Examples
    --------
    >>> from pathlib import Path
    >>> save_result(result, Path("out/debts.json"))
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(result_to_json(result, include_timelines))
        f.write("\n")
