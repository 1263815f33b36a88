"""Shared fixtures for the simulation tests."""

import pytest

from firesim import MonteCarloConfig, ScenarioParameters, run_monte_carlo_simulation


@pytest.fixture
def scenario():
    """Scenario with 30 accumulation years and a 30-year retirement."""
    return ScenarioParameters(
        current_age=30,
        retirement_age=60,
        life_expectancy=90,
        current_savings=100_000,
        annual_contribution=20_000,
        annual_expenses=40_000,
        expected_return_mean=0.05,
        expected_return_stdev=0.12,
        withdrawal_strategy='fixed',
    )


@pytest.fixture(scope="module")
def mc_result():
    """A seeded fixed-withdrawal Monte Carlo batch with a mix of outcomes."""
    config = MonteCarloConfig(
        initial_portfolio=1_000_000,
        num_simulations=500,
        retirement_years=30,
        annual_withdrawal=50_000,
    )
    return run_monte_carlo_simulation(config, random_source=42)
