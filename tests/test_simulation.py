"""
Tests for the drawdown trial loop and the Monte Carlo simulators.
"""

import numpy as np
import pytest

from firesim import (
    FixedWithdrawal,
    MonteCarloConfig,
    PercentageWithdrawal,
    PreconditionError,
    RandomSource,
    WithdrawalStrategyKind,
    generate_portfolio_returns,
    get_monte_carlo_percentiles,
    run_monte_carlo_simulation,
    run_scenario_monte_carlo,
    simulate_trial,
)


# =============================================================================
# Single Trial
# =============================================================================

def test_trial_withdraws_then_grows():
    """Each year the withdrawal comes out before the return is applied."""
    run = simulate_trial(1_000, [0.10, 0.10], FixedWithdrawal(100), np.zeros(2))

    assert run.success
    assert run.years_lasted == 2
    assert run.final_portfolio == pytest.approx((900 * 1.1 - 100) * 1.1)
    assert run.portfolio_values == pytest.approx([990, 979])
    assert run.total_withdrawn == pytest.approx(200)


def test_trial_depletion_after_withdrawal():
    """A withdrawal that empties the portfolio ends the trial as a failure."""
    run = simulate_trial(1_000, [0.0, 0.0, 0.0, 0.0], FixedWithdrawal(400), np.zeros(4))

    assert not run.success
    assert run.final_portfolio == 0.0
    assert run.years_lasted == 3
    assert run.returns == [0.0, 0.0, 0.0]
    assert run.total_withdrawn == pytest.approx(1_000)
    assert run.portfolio_values == pytest.approx([600, 200, 0])


def test_trial_depletion_after_growth():
    """A return below -100% depletes the portfolio after growth."""
    run = simulate_trial(1_000, [-1.5, 0.1], FixedWithdrawal(100), np.zeros(2))

    assert not run.success
    assert run.final_portfolio == 0.0
    assert run.years_lasted == 1
    assert run.returns == [-1.5]


def test_trial_with_empty_portfolio_fails_immediately():
    """A trial starting at zero lasts zero years."""
    run = simulate_trial(0, [0.05] * 5, PercentageWithdrawal(0.04), np.zeros(5))

    assert not run.success
    assert run.years_lasted == 0
    assert run.returns == []


def test_trial_applies_inflation_from_year_one():
    """Entry 0 of the inflation series is never applied."""
    run = simulate_trial(10_000, [0.0, 0.0], FixedWithdrawal(100), [0.5, 0.10])
    assert run.total_withdrawn == pytest.approx(100 + 110)


# =============================================================================
# Return Generation
# =============================================================================

def test_all_stock_returns_match_stock_draws():
    """With a 100% stock allocation the blend is exactly the stock draws."""
    returns = generate_portfolio_returns(RandomSource(11), 20, 15, 1.0, 0.05, 0.12, 0.03, 0.05)
    stocks = RandomSource(11).normal_array(0.05, 0.12, (20, 15))

    assert returns.shape == (20, 15)
    assert np.array_equal(returns, stocks)


# =============================================================================
# Monte Carlo Drawdown
# =============================================================================

def test_monte_carlo_run_count(mc_result):
    """The batch holds exactly num_simulations runs."""
    assert mc_result.n_sims == 500
    assert [run.run_id for run in mc_result.simulations] == list(range(500))


def test_failed_runs_end_at_zero(mc_result):
    """Every failed run reports a final portfolio of 0."""
    failures = [run for run in mc_result.simulations if not run.success]
    assert failures, "Expected some failures at a 5% withdrawal rate"
    for run in failures:
        assert run.final_portfolio == 0.0, f"Run {run.run_id}: {run.final_portfolio}"
        assert len(run.returns) == run.years_lasted
        assert run.years_lasted <= 30


def test_successful_runs_last_full_horizon(mc_result):
    """Successful runs lived every year with a positive balance."""
    for run in mc_result.simulations:
        if run.success:
            assert run.years_lasted == 30
            assert run.final_portfolio > 0


def test_monte_carlo_success_rate(mc_result):
    """Success rate is the fraction of successful runs."""
    successes = sum(run.success for run in mc_result.simulations)
    assert mc_result.success_rate == pytest.approx(successes / 500)
    assert 0.0 < mc_result.success_rate < 1.0


def test_monte_carlo_percentile_order(mc_result):
    """Percentiles are monotone in p."""
    p = get_monte_carlo_percentiles(mc_result)
    assert p.p10 <= p.p25 <= p.p50 <= p.p75 <= p.p90
    assert mc_result.median_final_portfolio == p.p50
    assert mc_result.percentile_10_final_portfolio == p.p10
    assert mc_result.percentile_90_final_portfolio == p.p90


def test_monte_carlo_is_reproducible():
    """The same seed reproduces the batch exactly."""
    config = MonteCarloConfig(
        initial_portfolio=800_000,
        num_simulations=200,
        retirement_years=25,
        withdrawal_strategy=WithdrawalStrategyKind.GUARDRAILS,
        stock_allocation=0.6,
    )
    a = run_monte_carlo_simulation(config, random_source=2024)
    b = run_monte_carlo_simulation(config, random_source=2024)

    assert a.success_rate == b.success_rate
    assert a.median_final_portfolio == b.median_final_portfolio
    assert [r.final_portfolio for r in a.simulations] == [r.final_portfolio for r in b.simulations]


@pytest.mark.parametrize("n", [1, 2, 17])
def test_monte_carlo_small_batches(n):
    """Any batch size of at least one yields that many runs."""
    config = MonteCarloConfig(
        initial_portfolio=500_000,
        num_simulations=n,
        retirement_years=10,
        withdrawal_strategy='percentage',
        withdrawal_rate=0.04,
    )
    result = run_monte_carlo_simulation(config, random_source=n)
    assert result.n_sims == n


def test_monte_carlo_preconditions():
    """Invalid controls raise before any trial runs."""
    with pytest.raises(PreconditionError):
        run_monte_carlo_simulation(MonteCarloConfig(initial_portfolio=1e6, num_simulations=0,
                                                    annual_withdrawal=40_000))
    with pytest.raises(PreconditionError):
        run_monte_carlo_simulation(MonteCarloConfig(initial_portfolio=1e6, retirement_years=0,
                                                    annual_withdrawal=40_000))
    with pytest.raises(PreconditionError):
        run_monte_carlo_simulation(MonteCarloConfig(initial_portfolio=1e6))


def test_from_scenario_resolves_strategy_inputs(scenario):
    """Fixed withdrawals are expenses inflated to the retirement date."""
    config = MonteCarloConfig.from_scenario(scenario, 1_500_000)

    assert config.annual_withdrawal == pytest.approx(40_000 * 1.02 ** 30)
    assert config.retirement_years == 30
    assert config.stock_allocation == scenario.portfolio_stock_pct


# =============================================================================
# Full Scenario
# =============================================================================

def test_scenario_monte_carlo_end_to_end(scenario):
    """A seeded 1000-trial scenario run is reproducible and complete."""
    a = run_scenario_monte_carlo(scenario, num_simulations=1000, random_source=12345)
    b = run_scenario_monte_carlo(scenario, num_simulations=1000, random_source=12345)

    assert len(a.results) == 1000
    assert a.success_rate == b.success_rate
    assert a.median_balance == b.median_balance
    assert a.percentile_10 == b.percentile_10
    assert a.percentile_90 == b.percentile_90
    assert a.percentile_10 <= a.median_balance <= a.percentile_90


def test_scenario_failures_report_depletion_year(scenario):
    """Failed trials carry their depletion year and a zero balance."""
    result = run_scenario_monte_carlo(scenario, num_simulations=300, random_source=8)

    for trial in result.results:
        if trial.success:
            assert trial.years_to_depletion is None
        else:
            assert trial.final_balance == 0.0
            assert 1 <= trial.years_to_depletion <= scenario.retirement_years


def test_scenario_message_shape(scenario):
    """The response message mirrors the result fields."""
    message = run_scenario_monte_carlo(scenario, num_simulations=5, random_source=1).to_message()

    assert set(message) == {'success_rate', 'median_balance', 'percentile_10', 'percentile_90', 'results'}
    assert len(message['results']) == 5
