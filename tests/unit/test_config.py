"""
Unit tests for config.py Pydantic models.

Tests validation, defaults, and serialization of option, request and
settings classes.
"""

from datetime import date

import pytest

from monthdss.config import (
    AllocationOptions,
    AppSettings,
    BudgetAllocationInput,
    DebtStrategyInput,
    DebtStrategyOptions,
    GoalConfig,
    RankingOptions,
    ScenarioOverride,
)


class TestAllocationOptions:
    """Tests for AllocationOptions validation."""

    def test_defaults(self):
        """Test default values."""
        options = AllocationOptions()

        assert options.use_all_scenarios is False
        assert options.allow_deficit is True
        assert options.run_sensitivity is False
        assert options.income_change_percents == (-20.0, -10.0, 10.0, 20.0)
        assert options.money_precision == 2

    def test_income_change_floor(self):
        """Income cannot drop by 100% or more."""
        with pytest.raises(ValueError):
            AllocationOptions(income_change_percents=(-100,))

    def test_immutable(self):
        """Test that options are frozen (immutable)."""
        options = AllocationOptions()

        with pytest.raises(Exception):  # Pydantic raises ValidationError
            options.use_all_scenarios = True

    def test_extra_fields_forbidden(self):
        """Test unknown option fields are refused."""
        with pytest.raises(ValueError):
            AllocationOptions(scenarios="all")


class TestDebtStrategyOptions:
    """Tests for DebtStrategyOptions validation."""

    def test_defaults(self):
        """Test default values."""
        options = DebtStrategyOptions()

        assert options.total_debt_budget is None
        assert options.extra_payment == 0.0
        assert options.preferred_strategy is None
        assert options.maximum_horizon == 600
        assert options.raise_on_truncation is False

    @pytest.mark.parametrize("horizon", [0, 1201])
    def test_horizon_bounds(self, horizon):
        """Test maximum_horizon bounds."""
        with pytest.raises(ValueError):
            DebtStrategyOptions(maximum_horizon=horizon)

    def test_unknown_strategy(self):
        """Test an unknown preferred strategy is refused."""
        with pytest.raises(ValueError):
            DebtStrategyOptions(preferred_strategy="lottery")

    def test_negative_extra(self):
        """Test a negative extra payment is refused."""
        with pytest.raises(ValueError):
            DebtStrategyOptions(extra_payment=-1)


class TestRankingOptions:
    """Tests for RankingOptions validation."""

    def test_defaults(self):
        """Test default values."""
        options = RankingOptions()
        assert options.criteria_weights is None
        assert options.consistency_threshold == 0.4

    def test_threshold_bounds(self):
        """Test consistency_threshold must be positive."""
        with pytest.raises(ValueError):
            RankingOptions(consistency_threshold=0)

    def test_auto_scoring_fields(self):
        """Test auto-scoring options parse an ISO date and bound the goal share."""
        options = RankingOptions(use_auto_scoring=True, as_of="2025-01-01", goal_allocation_pct=30)
        assert options.as_of == date(2025, 1, 1)
        with pytest.raises(ValueError):
            RankingOptions(goal_allocation_pct=0)


class TestScenarioOverride:
    """Tests for ScenarioOverride and its use in AllocationOptions."""

    def test_unset_parameters_are_none(self):
        """Test an override only carries the parameters it sets."""
        override = ScenarioOverride(name="safe", flexible_spending_level=0.2)
        assert override.goal_contribution_factor is None

    @pytest.mark.parametrize("field, value", [
        ("flexible_spending_level", 1.5),
        ("flexible_spending_level", -0.1),
        ("goal_contribution_factor", 2.5),
    ])
    def test_bounds(self, field, value):
        """Test level outside [0, 1] and factor outside [0, 2] are refused."""
        with pytest.raises(ValueError):
            ScenarioOverride(name="x", **{field: value})

    def test_options_accept_mappings(self):
        """Test overrides and goal share parse inside AllocationOptions."""
        options = AllocationOptions(
            goal_allocation_pct=40,
            scenario_overrides=[{"name": "safe", "goal_contribution_factor": 0.5}],
        )
        assert options.scenario_overrides[0].name == "safe"
        assert options.goal_allocation_pct == 40

    def test_goal_share_bounds(self):
        """Test goal_allocation_pct above 100 is refused."""
        with pytest.raises(ValueError):
            AllocationOptions(goal_allocation_pct=120)


class TestRequestPayloads:
    """Tests for request models."""

    def test_goal_priority_lowercased(self):
        """Test priority labels are case-insensitive."""
        assert GoalConfig(id="g", priority=" Critical ").priority == "critical"

    def test_goal_type_and_target_date(self):
        """Test goal type is lowercased and the target date parsed."""
        goal = GoalConfig(id="g", priority="high", goal_type="Retirement", target_date="2030-06-30")
        assert goal.goal_type == "retirement"
        assert goal.target_date == date(2030, 6, 30)
        assert GoalConfig(id="g", priority="high").goal_type == "other"

    def test_budget_input_round_trip(self):
        """Test a budget request survives model_dump and model_validate."""
        payload = BudgetAllocationInput(
            total_income=20_000_000,
            mandatory_expenses=[{"category_id": "rent", "name": "Rent", "amount": 6_000_000}],
            options={"use_all_scenarios": True},
        )
        data = payload.model_dump()
        restored = BudgetAllocationInput.model_validate(data)

        assert restored == payload
        assert restored.options.use_all_scenarios is True

    def test_debt_input_defaults(self):
        """Test an empty debt request."""
        payload = DebtStrategyInput()
        assert payload.debts == []
        assert payload.options == DebtStrategyOptions()


class TestAppSettings:
    """Tests for AppSettings environment loading."""

    def test_defaults(self, monkeypatch):
        """Test default settings without environment variables."""
        for name in ("MONTHDSS_DEBUG", "MONTHDSS_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        settings = AppSettings(_env_file=None)

        assert settings.debug is False
        assert settings.log_level == "WARNING"
        assert settings.effective_log_level == "WARNING"

    def test_environment_override(self, monkeypatch):
        """Test MONTHDSS_ variables override settings."""
        monkeypatch.setenv("MONTHDSS_LOG_LEVEL", "INFO")
        monkeypatch.setenv("MONTHDSS_MAXIMUM_HORIZON", "120")
        settings = AppSettings(_env_file=None)

        assert settings.log_level == "INFO"
        assert settings.maximum_horizon == 120

    def test_debug_forces_debug_level(self, monkeypatch):
        """Test MONTHDSS_DEBUG forces the DEBUG level."""
        monkeypatch.setenv("MONTHDSS_DEBUG", "true")
        assert AppSettings(_env_file=None).effective_log_level == "DEBUG"
