"""
Simulation engines for retirement drawdown.

This module contains the withdraw-then-grow trial loop shared by every
simulator, the Monte Carlo drawdown simulator, and the full-scenario Monte
Carlo (stochastic accumulation followed by drawdown) that backs the
background simulation task.

Trials are independent: each one is a pure function of its own return path
and the selected strategy. Return paths for a whole batch are drawn up front
from the injected random source, so a fixed seed reproduces the batch.
"""

import logging
from typing import List, Optional, Sequence, Union

import numpy as np

from .params import (
    MonteCarloConfig,
    MonteCarloResult,
    PreconditionError,
    ScenarioMonteCarloResult,
    ScenarioParameters,
    ScenarioTrialResult,
    SimulationRun,
)
from .random_source import RandomSource, as_random_source
from .statistics import nearest_rank_percentile, sorted_final_portfolios, success_rate
from .strategies import WithdrawalContext, WithdrawalStrategy, build_strategy

logger = logging.getLogger(__name__)

Seed = Union[RandomSource, int, np.random.Generator, None]


# =============================================================================
# Single Trial
# =============================================================================

def _depleted_run(
    run_id: int,
    year: int,
    total_withdrawn: float,
    returns: Sequence[float],
    portfolio_values: List[float],
    start_year: Optional[int],
) -> SimulationRun:
    return SimulationRun(
        run_id=run_id,
        success=False,
        final_portfolio=0.0,
        years_lasted=year + 1,
        total_withdrawn=total_withdrawn,
        returns=[float(r) for r in returns[:year + 1]],
        portfolio_values=portfolio_values + [0.0],
        start_year=start_year,
    )


def simulate_trial(
    initial_portfolio: float,
    returns: Sequence[float],
    strategy: WithdrawalStrategy,
    inflation_rates: Sequence[float],
    run_id: int = 0,
    start_year: Optional[int] = None,
) -> SimulationRun:
    """
    Run one drawdown trial.

    Every year: compute the withdrawal, take it out, then grow the remainder
    by that year's return:

        portfolio = (portfolio - withdrawal) * (1 + return)

    The trial stops as soon as the portfolio reaches zero or below, either
    after the withdrawal or after growth. It is then marked failed, its final
    portfolio is 0 and its returns are truncated to the years lived. Only the
    amount actually available counts toward total_withdrawn.

    Args:
        initial_portfolio: Portfolio on the retirement date
        returns: Blended portfolio return for each year of the horizon
        strategy: Withdrawal strategy
        inflation_rates: Inflation applied when moving into each year
            (entry 0 is unused)
        run_id: Index of the trial in its batch
        start_year: Historical start year, if any

    Returns:
        SimulationRun
    """
    portfolio = float(initial_portfolio)
    portfolio_values: List[float] = []
    total_withdrawn = 0.0

    if portfolio <= 0:
        return SimulationRun(
            run_id=run_id,
            success=False,
            final_portfolio=0.0,
            years_lasted=0,
            total_withdrawn=0.0,
            returns=[],
            portfolio_values=[],
            start_year=start_year,
        )

    initial_withdrawal = strategy.initial_withdrawal(portfolio)
    previous_withdrawal = initial_withdrawal

    for year in range(len(returns)):
        withdrawal = strategy(WithdrawalContext(
            year=year,
            portfolio_value=portfolio,
            previous_withdrawal=previous_withdrawal,
            initial_withdrawal=initial_withdrawal,
            inflation_rate=float(inflation_rates[year]),
        ))

        total_withdrawn += min(withdrawal, portfolio)
        portfolio -= withdrawal
        if portfolio <= 0:
            return _depleted_run(run_id, year, total_withdrawn, returns, portfolio_values, start_year)

        portfolio *= 1 + returns[year]
        if portfolio <= 0:
            return _depleted_run(run_id, year, total_withdrawn, returns, portfolio_values, start_year)

        portfolio_values.append(float(portfolio))
        previous_withdrawal = withdrawal

    return SimulationRun(
        run_id=run_id,
        success=True,
        final_portfolio=float(portfolio),
        years_lasted=len(returns),
        total_withdrawn=total_withdrawn,
        returns=[float(r) for r in returns],
        portfolio_values=portfolio_values,
        start_year=start_year,
    )


# =============================================================================
# Return Generation
# =============================================================================

def generate_portfolio_returns(
    source: RandomSource,
    n_sims: int,
    n_years: int,
    stock_allocation: float,
    stock_mean: float,
    stock_stdev: float,
    bond_mean: float,
    bond_stdev: float,
) -> np.ndarray:
    """
    Blended annual portfolio returns.

    Stock and bond returns are drawn independently and blended by
    stock_allocation (the remainder is bonds).

    Returns:
        Array of shape (n_sims, n_years)
    """
    stock_returns = source.normal_array(stock_mean, stock_stdev, (n_sims, n_years))
    bond_returns = source.normal_array(bond_mean, bond_stdev, (n_sims, n_years))
    return stock_allocation * stock_returns + (1 - stock_allocation) * bond_returns


def _check_batch(num_simulations: int, years: int):
    if num_simulations < 1:
        raise PreconditionError("num_simulations must be at least 1")
    if years < 1:
        raise PreconditionError("retirement_years must be at least 1")


# =============================================================================
# Monte Carlo Drawdown
# =============================================================================

def run_monte_carlo_simulation(
    config: MonteCarloConfig,
    random_source: Seed = None,
    cancel_token=None,
) -> MonteCarloResult:
    """
    Run a Monte Carlo drawdown simulation.

    Each trial starts from config.initial_portfolio (typically the value
    projected to retirement) and draws fresh stock and bond returns for every
    retirement year.

    Args:
        config: Monte Carlo controls
        random_source: RandomSource, seed or Generator (None = unseeded)
        cancel_token: Optional token checked between trials

    Returns:
        MonteCarloResult with exactly config.num_simulations runs

    Raises:
        PreconditionError: on invalid controls, before any trial runs
    """
    _check_batch(config.num_simulations, config.retirement_years)
    if config.initial_portfolio < 0:
        raise PreconditionError("initial_portfolio must be non-negative")
    strategy = build_strategy(
        config.withdrawal_strategy,
        annual_withdrawal=config.annual_withdrawal,
        withdrawal_rate=config.withdrawal_rate,
        guardrails_config=config.guardrails_config,
    )
    source = as_random_source(random_source)

    logger.info(
        "Running %d Monte Carlo trials over %d years (%s strategy)",
        config.num_simulations, config.retirement_years, strategy.name,
    )
    returns = generate_portfolio_returns(
        source,
        config.num_simulations,
        config.retirement_years,
        config.stock_allocation,
        config.expected_return_mean,
        config.expected_return_stdev,
        config.bond_return_mean,
        config.bond_return_stdev,
    )
    inflation = np.full(config.retirement_years, config.inflation_rate)

    simulations: List[SimulationRun] = []
    for i in range(config.num_simulations):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        simulations.append(simulate_trial(
            config.initial_portfolio, returns[i], strategy, inflation, run_id=i
        ))

    final_values = sorted_final_portfolios(simulations)
    result = MonteCarloResult(
        success_rate=success_rate(simulations),
        median_final_portfolio=nearest_rank_percentile(final_values, 50),
        percentile_10_final_portfolio=nearest_rank_percentile(final_values, 10),
        percentile_90_final_portfolio=nearest_rank_percentile(final_values, 90),
        simulations=simulations,
        config=config,
    )
    logger.info("Monte Carlo success rate: %.1f%%", 100 * result.success_rate)
    return result


# =============================================================================
# Full Scenario (accumulation + drawdown)
# =============================================================================

def run_scenario_monte_carlo(
    params: ScenarioParameters,
    num_simulations: int = 1000,
    random_source: Seed = None,
    cancel_token=None,
) -> ScenarioMonteCarloResult:
    """
    Monte Carlo over a whole scenario, from today to life expectancy.

    Accumulation years grow the balance stochastically with contributions:

        balance = (balance + contribution) * (1 + return)

    Drawdown then follows simulate_trial with the scenario's strategy. The
    fixed withdrawal is the expenses inflated to the retirement date; the
    percentage strategy withdraws 4% a year; guardrails uses the scenario
    inflation rate.

    Args:
        params: Scenario assumptions
        num_simulations: Number of trials
        random_source: RandomSource, seed or Generator (None = unseeded)
        cancel_token: Optional token checked between trials

    Returns:
        ScenarioMonteCarloResult with exactly num_simulations trial results
    """
    _check_batch(num_simulations, params.retirement_years)
    drawdown = MonteCarloConfig.from_scenario(params, initial_portfolio=0.0, num_simulations=num_simulations)
    strategy = build_strategy(
        drawdown.withdrawal_strategy,
        annual_withdrawal=drawdown.annual_withdrawal,
        withdrawal_rate=drawdown.withdrawal_rate,
        guardrails_config=drawdown.guardrails_config,
    )
    source = as_random_source(random_source)
    logger.debug("Scenario Monte Carlo parameters: %s", params)

    accumulation_years = params.years_to_retirement
    returns = generate_portfolio_returns(
        source,
        num_simulations,
        accumulation_years + params.retirement_years,
        params.portfolio_stock_pct,
        params.expected_return_mean,
        params.expected_return_stdev,
        drawdown.bond_return_mean,
        drawdown.bond_return_stdev,
    )
    inflation = np.full(params.retirement_years, params.inflation_rate)

    results: List[ScenarioTrialResult] = []
    runs: List[SimulationRun] = []
    for i in range(num_simulations):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        balance = float(params.current_savings)
        for t in range(accumulation_years):
            balance = (balance + params.annual_contribution) * (1 + returns[i, t])

        run = simulate_trial(balance, returns[i, accumulation_years:], strategy, inflation, run_id=i)
        runs.append(run)
        results.append(ScenarioTrialResult(
            success=run.success,
            final_balance=run.final_portfolio,
            years_to_depletion=None if run.success else run.years_lasted,
        ))

    final_values = sorted_final_portfolios(runs)
    result = ScenarioMonteCarloResult(
        success_rate=success_rate(runs),
        median_balance=nearest_rank_percentile(final_values, 50),
        percentile_10=nearest_rank_percentile(final_values, 10),
        percentile_90=nearest_rank_percentile(final_values, 90),
        results=results,
    )
    logger.info(
        "Scenario Monte Carlo: %d trials, success rate %.1f%%",
        num_simulations, 100 * result.success_rate,
    )
    return result
