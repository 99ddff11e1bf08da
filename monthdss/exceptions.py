"""
Custom exceptions for MonthDSS.

Purpose
-------
Provides a unified exception hierarchy for consistent error handling
across the allocator, the debt simulator and the goal ranker. All
exceptions inherit from DSSError, enabling catch-all handling when needed.

Exception Hierarchy
-------------------
DSSError (base)
├── ValidationError - Malformed or out-of-range input (field-identified)
│   ├── InvalidIncomeError - Income missing or not strictly positive
│   └── DuplicateCategoryError - Same category_id used twice
├── InfeasibleError - Fixed obligations cannot be met at all
│   ├── InsufficientIncomeError - Income below mandatory + debt minimums
│   └── InsufficientBudgetError - Debt budget below the sum of minimums
├── NeverPayoffError - Simulation horizon exceeded (carries partial result)
└── InvariantViolation - Internal defect, never caused by user input

Usage
-----
>>> from monthdss.exceptions import ValidationError, DSSError
>>>
>>> raise ValidationError("balance must be non-negative", field="balance", entity_id="card")
>>>
>>> try:
...     result = allocate_budget_from_input(payload)
... except DSSError as e:
...     print(f"MonthDSS error: {e}")
"""

from __future__ import annotations

from typing import Any, Optional


class DSSError(Exception):
    """
    Base exception for all MonthDSS errors.

    Examples
    --------
    >>> try:
    ...     simulate_debt_strategy(context)
    ... except DSSError as e:
    ...     logger.error("Debt simulation failed: %s", e)
    """
    pass


class ValidationError(DSSError):
    """
    Input validation failures.

    Raised when a record fails validation, such as:
    - Negative amounts, balances or payments
    - Interest rates outside [0, 1)
    - Ratings outside [1, 10]
    - Unknown goal priority labels

    Attributes
    ----------
    field : str, optional
        Name of the offending field (e.g. "interest_rate").
    entity_id : str, optional
        Identifier of the offending record (category, debt or goal id).

    Examples
    --------
    >>> raise ValidationError(
    ...     "interest_rate must be in [0, 1), got 1.5",
    ...     field="interest_rate",
    ...     entity_id="visa",
    ... )
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> None:
        self.field = field
        self.entity_id = entity_id
        if entity_id is not None:
            message = f"[{entity_id}] {message}"
        super().__init__(message)


class InvalidIncomeError(ValidationError):
    """
    Income missing or not strictly positive.

    Examples
    --------
    >>> raise InvalidIncomeError("income must be > 0, got 0", field="income")
    """
    pass


class DuplicateCategoryError(ValidationError):
    """
    The same category_id appears more than once across the mandatory
    and flexible expense sets.
    """
    pass


class InfeasibleError(DSSError):
    """
    Structural infeasibility detected before any allocation or simulation.
    """
    pass


class InsufficientIncomeError(InfeasibleError):
    """
    Income cannot cover mandatory expenses plus debt minimum payments.

    Only raised when the caller disables the best-effort deficit scenario
    (``AllocationOptions.allow_deficit=False``).

    Examples
    --------
    >>> raise InsufficientIncomeError(
    ...     f"income {income:,.0f} is below fixed obligations {fixed:,.0f}"
    ... )
    """

    def __init__(self, message: str, *, shortfall: float = 0.0) -> None:
        self.shortfall = shortfall
        super().__init__(message)


class InsufficientBudgetError(InfeasibleError):
    """
    Monthly debt budget is smaller than the sum of minimum payments.

    Examples
    --------
    >>> raise InsufficientBudgetError(
    ...     f"total_debt_budget {budget:,.0f} < minimum payments {minimums:,.0f}"
    ... )
    """

    def __init__(self, message: str, *, shortfall: float = 0.0) -> None:
        self.shortfall = shortfall
        super().__init__(message)


class NeverPayoffError(DSSError):
    """
    Debt simulation exceeded its maximum horizon.

    The truncated result is attached so callers can still present the
    closest attempt.

    Attributes
    ----------
    result : DebtStrategyResult
        Partial result with ``truncated=True``.
    """

    def __init__(self, message: str, *, result: Any = None) -> None:
        self.result = result
        super().__init__(message)


class InvariantViolation(DSSError):
    """
    Internal consistency check failed.

    Signals a defect in MonthDSS itself (e.g. allocations no longer
    summing to income); never raised because of user input.
    """
    pass
