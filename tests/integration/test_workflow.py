"""
Integration test for the full MonthDSS workflow.

Runs the three engines together the way a month is planned: allocate
income, hand the surplus to the debt simulator and rank the goals that
compete for contributions.
"""

import json
import logging

import pytest
from click.testing import CliRunner

from monthdss import (
    allocate_budget_from_input,
    prioritize_goals_from_input,
    simulate_debt_strategy_from_input,
)
from monthdss.cli import main
from monthdss.config import BudgetAllocationInput, DebtStrategyInput
from monthdss.serialization import result_to_json, template_payload


@pytest.mark.integration
class TestMonthlyPlan:
    """Allocation, debt strategy and goal ranking used together."""

    @pytest.fixture
    def budget_payload(self, mandatory_records, flexible_records, two_debts, goal_records):
        return {
            "total_income": 15_000_000,
            "mandatory_expenses": mandatory_records,
            "flexible_expenses": flexible_records,
            "debts": two_debts,
            "goals": goal_records,
        }

    def test_surplus_handed_to_debt_simulator(self, budget_payload, two_debts):
        """
        The balanced scenario's leftover becomes the extra debt payment.

        Minimums 450,000 plus 5,650,000 extra clear both debts in three
        months whichever strategy is recommended.
        """
        allocation = allocate_budget_from_input(budget_payload)
        balanced = allocation.scenario("balanced")

        assert balanced.extra_debt_payment == pytest.approx(5_650_000)
        assert balanced.total_debt_payments == pytest.approx(450_000)

        plan = simulate_debt_strategy_from_input({
            "debts": two_debts,
            "options": {"extra_payment": balanced.extra_debt_payment},
        })

        assert plan.total_debt_budget == pytest.approx(6_100_000)
        assert not plan.truncated
        assert plan.months_to_debt_free == 3
        assert {p.debt_id for p in plan.payoff_plans} == {"A", "B"}

    def test_every_scenario_balances(self, budget_payload):
        """Test every scenario balances against income."""
        budget_payload["options"] = {"use_all_scenarios": True, "run_sensitivity": True}
        result = allocate_budget_from_input(budget_payload)

        assert result.is_feasible
        for scenario in result.scenarios:
            assert scenario.total_allocated + scenario.leftover == pytest.approx(15_000_000)
        assert result.sensitivity.income_break_even_point == pytest.approx(7_450_000)

    def test_ranking_agrees_with_declared_priority(self, goal_records, rating_records, budget_payload):
        """Test the ranking agrees with the declared priorities."""
        ranking = prioritize_goals_from_input({"goals": goal_records, "ratings": rating_records})
        balanced = allocate_budget_from_input(budget_payload).scenario("balanced")

        top, second = ranking.order
        assert balanced.amount_for(top) >= balanced.amount_for(second)

    def test_shortfall_month(self, budget_payload):
        """Income below fixed obligations still returns a plan."""
        budget_payload["total_income"] = 5_800_000
        result = allocate_budget_from_input(budget_payload)

        assert not result.is_feasible
        assert result.global_warnings[0].type == "income_shortfall"
        scenario = result.scenarios[0]
        assert scenario.total_allocated == pytest.approx(5_800_000)
        assert scenario.amount_for("rent") == pytest.approx(5_000_000)

    def test_models_and_mappings_agree(self, two_debts):
        """Test a pydantic model and a mapping give the same result."""
        payload = {"debts": two_debts, "options": {"total_debt_budget": 600_000}}

        from_dict = simulate_debt_strategy_from_input(payload)
        from_model = simulate_debt_strategy_from_input(DebtStrategyInput.model_validate(payload))

        assert from_dict == from_model

    def test_budget_model_input(self, budget_payload):
        """Test a budget request given as a pydantic model."""
        model = BudgetAllocationInput.model_validate(budget_payload)
        assert allocate_budget_from_input(model) == allocate_budget_from_input(budget_payload)


@pytest.mark.integration
class TestCommandLineWorkflow:
    """Template files driven through the CLI match direct service calls."""

    @pytest.fixture(autouse=True)
    def restore_logging(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)
        logging.captureWarnings(False)

    @pytest.mark.parametrize(
        "kind, command, service",
        [
            ("budget", "allocate", allocate_budget_from_input),
            ("debt", "debts", simulate_debt_strategy_from_input),
            ("goals", "goals", prioritize_goals_from_input),
        ],
    )
    def test_create_run_export(self, tmp_path, kind, command, service):
        """Test a template created, run and exported through the CLI."""
        runner = CliRunner()
        payload_file = tmp_path / f"{kind}.json"
        output_file = tmp_path / "results" / f"{kind}-result.json"

        created = runner.invoke(main, ["-q", "config", "create", str(payload_file), "--kind", kind])
        assert created.exit_code == 0

        ran = runner.invoke(main, ["-q", command, "-i", str(payload_file), "-o", str(output_file)])
        assert ran.exit_code == 0

        expected = json.loads(result_to_json(service(template_payload(kind))))
        assert json.loads(output_file.read_text()) == expected
