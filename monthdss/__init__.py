"""
MonthDSS - Monthly Personal-Finance Decision Support

Stateless engines that turn a snapshot of a household's month (income,
expenses, debts, goals) into recommendations.

Modules
-------
- normalize   : Payload validation into an immutable DSSInputContext
- allocation  : Scenario allocator (conservative/balanced/aggressive)
- debt        : Debt payoff strategy simulator and recommender
- goals       : Goal ranking from direct ratings
- scoring     : Goal ratings derived from goal facts
- service     : ``*_from_input`` entry points over request payloads
- serialization, config, exceptions, utils : shared plumbing
"""

__version__ = "0.1.0"

from .allocation import BudgetAllocationResult, allocate_budget
from .debt import DebtStrategyResult, Strategy, simulate_debt_strategy
from .goals import GoalPrioritizationResult, prioritize_goals
from .models import DSSInputContext
from .normalize import build_context
from .scoring import AutoScoringResult, auto_score_goals
from .service import (
    allocate_budget_from_input,
    auto_score_goals_from_input,
    prioritize_goals_from_input,
    simulate_debt_strategy_from_input,
)
from . import utils
