"""
Unit tests for debt.py (debt strategy simulator).

Tests strategy orderings, the monthly payment loop, budget checks,
truncation and the recommendation.
"""

import pytest

from monthdss.config import DebtStrategyOptions
from monthdss.debt import (
    Strategy,
    order_debts,
    resolve_budget,
    run_strategy,
    simulate_debt_strategy,
)
from monthdss.exceptions import InsufficientBudgetError, NeverPayoffError
from monthdss.normalize import build_context


@pytest.fixture
def budget_600k() -> DebtStrategyOptions:
    return DebtStrategyOptions(total_debt_budget=600_000)


class TestOrdering:
    """Tests for the per-strategy ordering functions."""

    def test_initial_orders(self, three_debts):
        """Test the first ordering of each strategy."""
        debts = build_context(debts=three_debts).debts

        assert order_debts(Strategy.AVALANCHE, debts) == ["B", "A", "C"]
        assert order_debts(Strategy.SNOWBALL, debts) == ["C", "B", "A"]
        assert order_debts(Strategy.CASH_FLOW, debts) == ["C", "B", "A"]
        assert order_debts(Strategy.HYBRID, debts)[0] == "B"

    def test_stress_then_rate(self, three_debts):
        """Test stress orders by stress score, then rate."""
        three_debts[0]["stress_score"] = 9
        debts = build_context(debts=three_debts).debts

        assert order_debts("stress", debts) == ["A", "B", "C"]

    def test_stress_ties_use_rate(self, three_debts):
        """Test equal stress scores fall back to rate."""
        debts = build_context(debts=three_debts).debts
        assert order_debts(Strategy.STRESS, debts) == ["B", "A", "C"]

    def test_hybrid_constant_rate_prefers_small_balance(self):
        """Test hybrid favours small balances when rates are equal."""
        debts = build_context(debts=[
            {"id": "big", "balance": 9_000, "interest_rate": 0.02},
            {"id": "small", "balance": 1_000, "interest_rate": 0.02},
        ]).debts
        assert order_debts(Strategy.HYBRID, debts) == ["small", "big"]

    def test_ties_keep_input_order(self):
        """Test identical debts keep input order."""
        debts = build_context(debts=[
            {"id": "x", "balance": 1_000, "interest_rate": 0.02, "minimum_payment": 10},
            {"id": "y", "balance": 1_000, "interest_rate": 0.02, "minimum_payment": 10},
        ]).debts
        for strategy in Strategy:
            assert order_debts(strategy, debts) == ["x", "y"]

    def test_paid_debts_excluded(self, three_debts):
        """Test paid debts are left out of the order."""
        debts = build_context(debts=three_debts).debts
        assert order_debts(Strategy.SNOWBALL, debts, balances=[100.0, 0.0, 0.0]) == ["A"]


class TestFirstTarget:
    """Which debt receives the first month's extra payment."""

    def test_two_debts_both_target_b(self, two_debts, budget_600k):
        """Test avalanche and snowball agree on the first target."""
        debts = build_context(debts=two_debts).debts
        for strategy in (Strategy.AVALANCHE, Strategy.SNOWBALL):
            first = run_strategy(strategy, debts, 600_000, 600).timeline[0]
            assert first.extra_payments["B"] == pytest.approx(150_000)
            assert first.extra_payments["A"] == 0.0
            assert first.payments["B"] == pytest.approx(300_000)

    def test_third_debt_splits_strategies(self, three_debts):
        """Test a third debt makes the strategies diverge."""
        debts = build_context(debts=three_debts).debts

        avalanche = run_strategy(Strategy.AVALANCHE, debts, 600_000, 600).timeline[0]
        snowball = run_strategy(Strategy.SNOWBALL, debts, 600_000, 600).timeline[0]

        assert avalanche.payments["B"] == pytest.approx(250_000)
        assert snowball.payments["C"] == pytest.approx(150_000)


class TestMonthlyLoop:
    """Tests for the simulation loop."""

    def test_single_debt_schedule(self):
        """Test the month-by-month schedule of one debt."""
        ctx = build_context(debts=[{"id": "visa", "balance": 3_000_000,
                                    "interest_rate": 0.03, "minimum_payment": 150_000}])
        result = simulate_debt_strategy(ctx, DebtStrategyOptions(extra_payment=350_000))

        assert result.total_debt_budget == pytest.approx(500_000)
        assert result.months_to_debt_free == 7
        assert result.total_interest == pytest.approx(358_390.51, abs=0.01)
        assert result.timeline[0].interest == pytest.approx(90_000)
        assert result.timeline[0].balances["visa"] == pytest.approx(2_590_000)
        assert result.payoff_plans[0].payoff_month == 7
        assert result.payoff_plans[0].total_paid == pytest.approx(3_358_390.51, abs=0.01)

    def test_interest_sums_to_total(self, three_debts, budget_600k):
        """Test monthly interest adds up to the total."""
        result = simulate_debt_strategy(build_context(debts=three_debts), budget_600k)
        for outcome in result.strategy_comparison:
            assert sum(e.interest for e in outcome.timeline) == pytest.approx(outcome.total_interest)

    def test_balances_non_increasing(self, three_debts, budget_600k):
        """Test no balance grows and every strategy ends at zero."""
        result = simulate_debt_strategy(build_context(debts=three_debts), budget_600k)
        for outcome in result.strategy_comparison:
            for prev, cur in zip(outcome.timeline, outcome.timeline[1:]):
                for debt_id, balance in cur.balances.items():
                    assert balance <= prev.balances[debt_id] + 1e-6
            assert outcome.timeline[-1].total_balance == 0.0

    def test_minimum_rollover(self, two_debts):
        """Once B is cleared the whole budget goes to A."""
        debts = build_context(debts=two_debts).debts
        outcome = run_strategy(Strategy.AVALANCHE, debts, 600_000, 600)
        b_paid = next(p.payoff_month for p in outcome.payoff_plans if p.debt_id == "B")

        after = outcome.timeline[b_paid]
        assert after.month == b_paid + 1
        assert after.payments["A"] == pytest.approx(600_000)
        assert after.payments["B"] == 0.0
        assert outcome.first_debt_cleared == b_paid

    def test_deterministic(self, three_debts, budget_600k):
        """Test repeated simulations give equal results."""
        ctx = build_context(debts=three_debts)
        assert simulate_debt_strategy(ctx, budget_600k) == simulate_debt_strategy(ctx, budget_600k)


class TestBudget:
    """Tests for budget resolution and edge cases."""

    def test_budget_from_extra_payment(self, two_debts):
        """Test the budget is minimums plus the extra payment."""
        debts = build_context(debts=two_debts).debts
        assert resolve_budget(debts, DebtStrategyOptions(extra_payment=100_000)) == 550_000

    def test_budget_below_minimums(self, two_debts):
        """Test a budget below minimums raises."""
        with pytest.raises(InsufficientBudgetError) as exc:
            simulate_debt_strategy(
                build_context(debts=two_debts), DebtStrategyOptions(total_debt_budget=400_000)
            )
        assert exc.value.shortfall == pytest.approx(50_000)

    def test_zero_balance_reported_paid(self, two_debts):
        """Test a zero-balance debt is reported paid and its minimum not required."""
        two_debts.append({"id": "old", "balance": 0, "interest_rate": 0.02,
                          "minimum_payment": 500_000})
        # The paid debt's minimum is not required by the budget
        result = simulate_debt_strategy(
            build_context(debts=two_debts), DebtStrategyOptions(total_debt_budget=600_000)
        )
        plan = next(p for p in result.payoff_plans if p.debt_id == "old")

        assert plan.payoff_month == 0
        assert plan.total_paid == 0.0
        assert [w.type for w in result.warnings] == ["paid_off"]

    def test_no_debts(self):
        """Test an empty debt list."""
        result = simulate_debt_strategy(build_context())

        assert result.months_to_debt_free == 0
        assert result.total_interest == 0.0
        assert result.timeline == ()
        assert not result.truncated
        assert result.to_frame().empty


class TestTruncation:
    """Tests for debts that cannot be paid off within the horizon."""

    @pytest.fixture
    def hopeless(self):
        return build_context(debts=[{"id": "loan", "balance": 1_000_000,
                                     "interest_rate": 0.05, "minimum_payment": 10_000}])

    def test_truncated_result(self, hopeless):
        """Test a horizon overrun returns a truncated result."""
        result = simulate_debt_strategy(hopeless, DebtStrategyOptions(maximum_horizon=24))

        assert result.truncated
        assert result.months_to_debt_free is None
        assert len(result.timeline) == 24
        assert result.payoff_plans[0].payoff_month is None
        assert result.warnings[-1].type == "never_payoff"
        assert result.warnings[-1].severity == "high"

    def test_raise_on_truncation(self, hopeless):
        """Test raise_on_truncation raises NeverPayoffError."""
        options = DebtStrategyOptions(maximum_horizon=12, raise_on_truncation=True)
        with pytest.raises(NeverPayoffError) as exc:
            simulate_debt_strategy(hopeless, options)
        assert exc.value.result.truncated
        assert len(exc.value.result.timeline) == 12


class TestRecommendation:
    """Tests for strategy comparison and recommendation."""

    def test_all_strategies_compared(self, three_debts, budget_600k):
        """Test every strategy appears in the comparison."""
        result = simulate_debt_strategy(build_context(debts=three_debts), budget_600k)
        assert [o.strategy for o in result.strategy_comparison] == list(Strategy)

    def test_recommends_cheapest(self, three_debts, budget_600k):
        """Test the lowest-interest strategy is recommended."""
        result = simulate_debt_strategy(build_context(debts=three_debts), budget_600k)
        cheapest = min(o.total_interest for o in result.strategy_comparison)

        assert result.total_interest == pytest.approx(cheapest)
        assert result.outcome("avalanche").total_interest <= result.outcome("snowball").total_interest

    def test_identical_strategies_tie_to_enum_order(self, two_debts, budget_600k):
        """With two debts every strategy targets B first and they all tie."""
        result = simulate_debt_strategy(build_context(debts=two_debts), budget_600k)
        assert result.recommended_strategy is Strategy.AVALANCHE

    def test_interest_saved(self, three_debts, budget_600k):
        """Test interest saved against the costliest strategy."""
        result = simulate_debt_strategy(build_context(debts=three_debts), budget_600k)
        worst = max(o.total_interest for o in result.strategy_comparison)

        for o in result.strategy_comparison:
            assert o.interest_saved == pytest.approx(worst - o.total_interest)
        assert min(o.interest_saved for o in result.strategy_comparison) == pytest.approx(0)

    def test_preferred_strategy(self, three_debts):
        """Test a preferred strategy overrides the recommendation."""
        options = DebtStrategyOptions(total_debt_budget=600_000, preferred_strategy="snowball")
        result = simulate_debt_strategy(build_context(debts=three_debts), options)

        assert result.recommended_strategy is Strategy.SNOWBALL
        assert result.timeline == result.outcome(Strategy.SNOWBALL).timeline

    def test_descriptions(self, two_debts, budget_600k):
        """Test each outcome carries its strategy description."""
        result = simulate_debt_strategy(build_context(debts=two_debts), budget_600k)
        assert result.outcome("avalanche").description == "Pay highest interest rate first"


class TestFrames:
    """Tests for pandas views of the result."""

    def test_timeline_frame(self, two_debts, budget_600k):
        """Test the timeline DataFrame export."""
        result = simulate_debt_strategy(build_context(debts=two_debts), budget_600k)
        frame = result.to_frame()

        assert len(frame) == result.months_to_debt_free
        assert frame.index.name == "month"
        assert {"total_balance", "interest", "balance_A", "payment_B", "extra_A"} <= set(frame.columns)

    def test_comparison_frame(self, three_debts, budget_600k):
        """Test the comparison DataFrame export."""
        frame = simulate_debt_strategy(build_context(debts=three_debts), budget_600k).comparison_frame()

        assert list(frame.index) == [s.value for s in Strategy]
        assert frame["recommended"].sum() == 1
