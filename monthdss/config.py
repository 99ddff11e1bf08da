"""
Configuration management module for MonthDSS.

Purpose
-------
Centralized configuration using Pydantic models for type-safe parsing of
request payloads and engine options. Supports environment variables,
JSON payload files, and programmatic defaults.

Design Principles
-----------------
- Type-safe: Pydantic enforces shapes and types; record ranges are checked
  by the value objects in ``monthdss.models`` so that errors name the
  offending record id
- Immutable: Frozen models prevent accidental mutation
- Serializable: Easy conversion to/from JSON for payload files
- Environment-aware: AppSettings reads MONTHDSS_* variables and .env files

Example
-------
>>> from monthdss.config import DebtStrategyInput, DebtStrategyOptions
>>> payload = DebtStrategyInput(
...     debts=[{"id": "visa", "name": "Visa", "balance": 3_000_000,
...             "interest_rate": 0.03, "minimum_payment": 150_000}],
...     options=DebtStrategyOptions(extra_payment=200_000),
... )
>>> payload.model_dump()["options"]["extra_payment"]
200000.0
"""

from __future__ import annotations

from datetime import date
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_CONSISTENCY_THRESHOLD,
    DEFAULT_INCOME_CHANGE_PERCENTS,
    DEFAULT_MAXIMUM_HORIZON,
    DEFAULT_MONEY_PRECISION,
    MAX_GOAL_CONTRIBUTION_FACTOR,
    MAX_HORIZON_LIMIT,
    RATING_AXES,
)

__all__ = [
    # Records
    "MandatoryExpenseConfig",
    "FlexibleExpenseConfig",
    "DebtConfig",
    "GoalConfig",
    "GoalRatingConfig",
    # Options
    "ScenarioOverride",
    "AllocationOptions",
    "DebtStrategyOptions",
    "RankingOptions",
    # Requests
    "BudgetAllocationInput",
    "DebtStrategyInput",
    "DirectRatingInput",
    # Settings
    "AppSettings",
]

StrategyName = Literal["avalanche", "snowball", "hybrid", "cash_flow", "stress"]


# ---------------------------------------------------------------------------
# Record Payloads
# ---------------------------------------------------------------------------

class MandatoryExpenseConfig(BaseModel):
    """Mandatory expense as supplied by the monthly ledger."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    category_id: str = Field(min_length=1, description="Ledger category id")
    name: str = Field(default="", description="Display name")
    amount: float = Field(description="Monthly amount (> 0)")
    priority: int = Field(default=1, description="Lower = more important")


class FlexibleExpenseConfig(BaseModel):
    """Flexible expense with a spending range."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    category_id: str = Field(min_length=1, description="Ledger category id")
    name: str = Field(default="", description="Display name")
    min_amount: float = Field(description="Minimum acceptable spend")
    max_amount: float = Field(description="Maximum useful spend")
    priority: int = Field(default=1, description="Lower = more important")


class DebtConfig(BaseModel):
    """
    Debt as supplied by the debt registry.

    Attributes
    ----------
    id : str
        Debt identifier.
    balance : float
        Current balance.
    interest_rate : float
        Monthly rate as a decimal (0.015 = 1.5%/month).
    minimum_payment : float
        Contractual monthly minimum.
    is_variable_rate : bool
        Whether the rate can change (informational).
    stress_score : float
        Subjective stress 0-10.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1, description="Debt id")
    name: str = Field(default="", description="Display name")
    balance: float = Field(description="Current balance")
    interest_rate: float = Field(description="Monthly interest rate (decimal)")
    minimum_payment: float = Field(default=0.0, description="Monthly minimum payment")
    is_variable_rate: bool = Field(default=False, description="Variable-rate flag")
    stress_score: float = Field(default=0.0, description="Subjective stress 0-10")


class GoalConfig(BaseModel):
    """Savings goal as supplied by the goal registry."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1, description="Goal id")
    name: str = Field(default="", description="Display name")
    priority: str = Field(default="medium", description="critical | high | medium | low")
    remaining_amount: float = Field(default=0.0, description="Amount still missing")
    suggested_contribution: float = Field(default=0.0, description="Suggested monthly contribution")
    goal_type: str = Field(default="other", description="emergency | debt | retirement | ... | other")
    target_date: Optional[date] = Field(default=None, description="Date the goal should be reached by")

    @field_validator("priority", "goal_type")
    @classmethod
    def normalize_label(cls, v):
        """Accept any casing for priority and type labels."""
        return v.strip().lower()


class GoalRatingConfig(BaseModel):
    """Direct 1-10 ratings for one goal."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    goal_id: str = Field(min_length=1, description="Rated goal id")
    urgency: float = Field(description="How soon the goal is needed (1-10)")
    importance: float = Field(description="How much the goal matters (1-10)")
    roi: float = Field(description="Financial return of reaching the goal (1-10)")
    effort: float = Field(description="Ease of reaching the goal, 10 = easiest (1-10)")


# ---------------------------------------------------------------------------
# Engine Options
# ---------------------------------------------------------------------------

class ScenarioOverride(BaseModel):
    """
    Custom parameters for one allocation scenario.

    An override whose name matches a generated scenario replaces the
    parameters it sets; any other name adds a scenario.

    Attributes
    ----------
    name : str
        Scenario name.
    flexible_spending_level : float, optional
        Position of every flexible item in its range, 0 = minimum,
        1 = maximum, limited by the money left after minimums.
    goal_contribution_factor : float, optional
        Multiplier (0-2) on each goal's monthly contribution cap.

    Examples
    --------
    >>> ScenarioOverride(name="safe", flexible_spending_level=0.2).goal_contribution_factor is None
    True
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, description="Scenario name")
    flexible_spending_level: Optional[float] = Field(
        default=None,
        ge=0,
        le=1,
        description="0 = flexible minimums, 1 = flexible maximums"
    )
    goal_contribution_factor: Optional[float] = Field(
        default=None,
        ge=0,
        le=MAX_GOAL_CONTRIBUTION_FACTOR,
        description="Multiplier on goal contribution caps"
    )


class AllocationOptions(BaseModel):
    """
    Options for the scenario allocator.

    Attributes
    ----------
    use_all_scenarios : bool
        Produce conservative/balanced/aggressive instead of balanced only.
    allow_deficit : bool
        Return a best-effort deficit scenario when income cannot cover
        fixed obligations; when False, raise InsufficientIncomeError.
    run_sensitivity : bool
        Re-evaluate the balanced scenario under income shocks.
    income_change_percents : tuple of float
        Income shocks in percent (e.g. -10 = income drops 10%).
    money_precision : int
        Decimal places kept on distributed amounts.
    goal_allocation_pct : float, optional
        Share (0-100) of the money left after flexible spending that goals
        may receive; the rest stays as leftover.
    scenario_overrides : tuple of ScenarioOverride
        Adjusted or additional scenarios.

    Examples
    --------
    >>> AllocationOptions(use_all_scenarios=True).use_all_scenarios
    True
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    use_all_scenarios: bool = Field(
        default=False,
        description="Generate conservative, balanced and aggressive scenarios"
    )
    allow_deficit: bool = Field(
        default=True,
        description="Return a deficit scenario instead of raising"
    )
    run_sensitivity: bool = Field(
        default=False,
        description="Run income sensitivity analysis"
    )
    income_change_percents: Tuple[float, ...] = Field(
        default=DEFAULT_INCOME_CHANGE_PERCENTS,
        description="Income shocks in percent"
    )
    money_precision: int = Field(
        default=DEFAULT_MONEY_PRECISION,
        ge=0,
        le=6,
        description="Decimal places of one minor currency unit"
    )
    goal_allocation_pct: Optional[float] = Field(
        default=None,
        ge=0,
        le=100,
        description="Share of the post-flexible surplus available to goals"
    )
    scenario_overrides: Tuple[ScenarioOverride, ...] = Field(
        default=(),
        description="Custom scenario parameters"
    )

    @field_validator("income_change_percents")
    @classmethod
    def validate_percents(cls, v):
        """Income cannot drop by 100% or more."""
        for pct in v:
            if pct <= -100:
                raise ValueError(f"income change must be > -100%, got {pct}")
        return tuple(float(p) for p in v)

    @field_validator("scenario_overrides")
    @classmethod
    def validate_override_names(cls, v):
        """At most one override per scenario name."""
        names = [o.name for o in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate scenario overrides {duplicates}")
        return v


class DebtStrategyOptions(BaseModel):
    """
    Options for the debt strategy simulator.

    Attributes
    ----------
    total_debt_budget : float, optional
        Total monthly amount available for debts. If None, uses the sum of
        minimum payments plus ``extra_payment``.
    extra_payment : float
        Extra monthly amount on top of the minimums.
    preferred_strategy : str, optional
        Strategy to report as recommended; otherwise the cheapest one.
    maximum_horizon : int
        Simulation bound in months.
    raise_on_truncation : bool
        Raise NeverPayoffError (with the partial result attached) instead
        of returning a truncated result.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    total_debt_budget: Optional[float] = Field(
        default=None,
        ge=0,
        description="Total monthly debt budget"
    )
    extra_payment: float = Field(
        default=0.0,
        ge=0,
        description="Extra payment on top of minimums"
    )
    preferred_strategy: Optional[StrategyName] = Field(
        default=None,
        description="Caller's preferred strategy"
    )
    maximum_horizon: int = Field(
        default=DEFAULT_MAXIMUM_HORIZON,
        ge=1,
        le=MAX_HORIZON_LIMIT,
        description="Maximum simulated months"
    )
    raise_on_truncation: bool = Field(
        default=False,
        description="Raise NeverPayoffError when the horizon is exceeded"
    )


class RankingOptions(BaseModel):
    """
    Options for the goal ranker.

    Attributes
    ----------
    criteria_weights : dict, optional
        Weights over the four rating axes; renormalized to sum to 1.
    consistency_threshold : float
        CV above which a goal's ratings are flagged low-confidence.
    use_auto_scoring : bool
        Derive ratings from goal facts for goals without a hand rating.
    as_of : date, optional
        Reference date for target-date urgency; required when an
        auto-scored goal has a target_date.
    goal_allocation_pct : float, optional
        Share (0-100) of monthly income the auto-scorer treats as the
        goal budget.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    criteria_weights: Optional[Dict[str, float]] = Field(
        default=None,
        description="Weights over urgency/importance/roi/effort (renormalized)"
    )
    consistency_threshold: float = Field(
        default=DEFAULT_CONSISTENCY_THRESHOLD,
        gt=0,
        le=1,
        description="Coefficient of variation flagging low-confidence ratings"
    )
    use_auto_scoring: bool = Field(
        default=False,
        description="Score unrated goals from their facts"
    )
    as_of: Optional[date] = Field(
        default=None,
        description="Reference date for target-date urgency"
    )
    goal_allocation_pct: Optional[float] = Field(
        default=None,
        gt=0,
        le=100,
        description="Share of income treated as the goal budget"
    )

    @field_validator("criteria_weights")
    @classmethod
    def validate_axes(cls, v):
        """Only the four rating axes may be weighted."""
        if v is not None:
            unknown = sorted(set(v) - set(RATING_AXES))
            if unknown:
                raise ValueError(f"unknown criteria {unknown}; expected {list(RATING_AXES)}")
        return v


# ---------------------------------------------------------------------------
# Request Payloads
# ---------------------------------------------------------------------------

class BudgetAllocationInput(BaseModel):
    """
    Request payload for the scenario allocator.

    Examples
    --------
    >>> payload = BudgetAllocationInput(
    ...     total_income=20_000_000,
    ...     mandatory_expenses=[{"category_id": "rent", "name": "Rent", "amount": 6_000_000}],
    ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    schema_version: Optional[str] = Field(default=None, description="Payload schema version")
    total_income: float = Field(description="Monthly income")
    mandatory_expenses: List[MandatoryExpenseConfig] = Field(default_factory=list)
    flexible_expenses: List[FlexibleExpenseConfig] = Field(default_factory=list)
    debts: List[DebtConfig] = Field(default_factory=list)
    goals: List[GoalConfig] = Field(default_factory=list)
    options: AllocationOptions = Field(default_factory=AllocationOptions)


class DebtStrategyInput(BaseModel):
    """Request payload for the debt strategy simulator."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    schema_version: Optional[str] = Field(default=None, description="Payload schema version")
    debts: List[DebtConfig] = Field(default_factory=list)
    options: DebtStrategyOptions = Field(default_factory=DebtStrategyOptions)


class DirectRatingInput(BaseModel):
    """Request payload for the goal ranker."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    schema_version: Optional[str] = Field(default=None, description="Payload schema version")
    monthly_income: Optional[float] = Field(default=None, description="Monthly income (optional)")
    goals: List[GoalConfig] = Field(default_factory=list)
    ratings: List[GoalRatingConfig] = Field(default_factory=list)
    options: RankingOptions = Field(default_factory=RankingOptions)


# ---------------------------------------------------------------------------
# Application Settings (Environment Variables)
# ---------------------------------------------------------------------------

class AppSettings(BaseSettings):
    """
    Global application settings loaded from environment variables.

    Supports .env files for local development. Environment variables
    are prefixed with MONTHDSS_ (e.g., MONTHDSS_LOG_LEVEL=DEBUG).

    Attributes
    ----------
    debug : bool
        Enable debug mode (forces DEBUG logging)
    log_level : str
        Logging level: "DEBUG", "INFO", "WARNING", "ERROR"
    maximum_horizon : int
        Default debt simulation horizon used by the CLI
    consistency_threshold : float
        Default rating-consistency threshold used by the CLI

    Examples
    --------
    >>> settings = AppSettings()
    >>> settings.log_level
    'WARNING'
    """

    model_config = SettingsConfigDict(
        env_prefix="MONTHDSS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level"
    )
    maximum_horizon: int = Field(
        default=DEFAULT_MAXIMUM_HORIZON,
        ge=1,
        le=MAX_HORIZON_LIMIT,
        description="Default debt simulation horizon (months)"
    )
    consistency_threshold: float = Field(
        default=DEFAULT_CONSISTENCY_THRESHOLD,
        gt=0,
        le=1,
        description="Default rating-consistency threshold"
    )

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level
