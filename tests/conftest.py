"""
Pytest configuration and fixtures for the MonthDSS test suite.

Fixtures provide raw record mappings (as read from registries) and the
validated contexts built from them.
"""

from typing import Dict, List

import pytest

from monthdss.normalize import build_context
from monthdss.models import DSSInputContext


# ---------------------------------------------------------------------------
# Ledger Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mandatory_records() -> List[Dict]:
    """Rent and utilities, 5,600,000 in total."""
    return [
        {"category_id": "rent", "name": "Rent", "amount": 5_000_000, "priority": 1},
        {"category_id": "utilities", "name": "Utilities", "amount": 600_000, "priority": 2},
    ]


@pytest.fixture
def flexible_records() -> List[Dict]:
    """
    Groceries and leisure.

    Minimums 1,400,000, midpoints 2,100,000, maximums 2,800,000.
    """
    return [
        {"category_id": "groceries", "name": "Groceries",
         "min_amount": 1_200_000, "max_amount": 2_000_000, "priority": 1},
        {"category_id": "leisure", "name": "Leisure",
         "min_amount": 200_000, "max_amount": 800_000, "priority": 3},
    ]


# ---------------------------------------------------------------------------
# Debt Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def two_debts() -> List[Dict]:
    """
    Car loan A and credit card B.

    B has both the higher rate and the smaller balance, so avalanche
    and snowball agree on it.
    """
    return [
        {"id": "A", "name": "Car loan", "balance": 10_000_000,
         "interest_rate": 0.015, "minimum_payment": 300_000},
        {"id": "B", "name": "Card", "balance": 3_000_000,
         "interest_rate": 0.03, "minimum_payment": 150_000},
    ]


@pytest.fixture
def three_debts(two_debts) -> List[Dict]:
    """two_debts plus C: smallest balance, lowest rate."""
    return two_debts + [
        {"id": "C", "name": "Store credit", "balance": 500_000,
         "interest_rate": 0.005, "minimum_payment": 50_000},
    ]


# ---------------------------------------------------------------------------
# Goal Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def goal_records() -> List[Dict]:
    return [
        {"id": "emergency", "name": "Emergency fund", "priority": "critical",
         "remaining_amount": 6_000_000, "suggested_contribution": 800_000},
        {"id": "travel", "name": "Trip", "priority": "low",
         "remaining_amount": 4_000_000, "suggested_contribution": 400_000},
    ]


@pytest.fixture
def rating_records() -> List[Dict]:
    return [
        {"goal_id": "emergency", "urgency": 9, "importance": 10, "roi": 6, "effort": 7},
        {"goal_id": "travel", "urgency": 3, "importance": 4, "roi": 2, "effort": 8},
    ]


# ---------------------------------------------------------------------------
# Context Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def household(mandatory_records, flexible_records, two_debts, goal_records) -> DSSInputContext:
    """
    Full household with income 15,000,000.

    Fixed obligations 6,050,000 (mandatory 5,600,000 + minimums 450,000),
    leaving 8,950,000 before flexible spending.
    """
    return build_context(
        15_000_000,
        mandatory=mandatory_records,
        flexible=flexible_records,
        debts=two_debts,
        goals=goal_records,
    )


@pytest.fixture
def rated_goals(goal_records, rating_records) -> DSSInputContext:
    return build_context(goals=goal_records, ratings=rating_records, require_ratings=True)
