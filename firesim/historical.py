"""
Historical bootstrap simulation.

Instead of synthetic draws, each trial replays a contiguous window of real
annual returns, so the sequence-of-returns risk of actual market history
(e.g. retiring into 1929, 1966 or 2000) is preserved. Window starts are drawn
uniformly with replacement, so several trials may replay the same window.
"""

import logging
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .params import (
    HistoricalReturn,
    HistoricalSimulationConfig,
    HistoricalSimulationResult,
    PreconditionError,
    SimulationRun,
)
from .random_source import RandomSource, as_random_source
from .simulation import simulate_trial
from .statistics import nearest_rank_percentile, sorted_final_portfolios, success_rate
from .strategies import FixedWithdrawal, WithdrawalStrategy

logger = logging.getLogger(__name__)


def calculate_portfolio_return(stock_return: float, bond_return: float, stock_allocation: float) -> float:
    """Stock/bond blend; the remainder of the allocation is bonds."""
    return stock_return * stock_allocation + bond_return * (1 - stock_allocation)


def sample_historical_sequence(
    historical_data: Sequence[HistoricalReturn],
    years: int,
    stock_allocation: float,
    source: RandomSource,
) -> Tuple[np.ndarray, np.ndarray, int]:
    """
    Sample one contiguous window of the table.

    The start index is uniform over every index that leaves at least
    ``years`` records, so the window always spans the full horizon when the
    table is long enough.

    Returns:
        Tuple of (blended returns, inflation rates, start year)
    """
    max_start_index = max(0, len(historical_data) - years)
    start_index = source.integers(0, max_start_index)
    window = historical_data[start_index:start_index + years]

    returns = np.array([
        calculate_portfolio_return(record.stock_return, record.bond_return, stock_allocation)
        for record in window
    ])
    inflation_rates = np.array([record.inflation_rate for record in window])
    return returns, inflation_rates, window[0].year


def _withdrawal_inflation(inflation_rates: np.ndarray, inflation_adjusted: bool) -> np.ndarray:
    # Year t grows the withdrawal by the inflation recorded for year t-1
    adjusted = np.zeros(len(inflation_rates))
    if inflation_adjusted and len(inflation_rates) > 1:
        adjusted[1:] = inflation_rates[:-1]
    return adjusted


def run_historical_simulation(
    config: HistoricalSimulationConfig,
    random_source: Union[RandomSource, int, np.random.Generator, None] = None,
    strategy: Optional[WithdrawalStrategy] = None,
    cancel_token=None,
) -> HistoricalSimulationResult:
    """
    Run a historical bootstrap simulation.

    Each trial samples a window, blends stock and bond returns by
    config.stock_allocation and applies withdraw-then-grow exactly like the
    Monte Carlo simulator. By default the withdrawal is config.annual_withdrawal,
    grown each year by the table's recorded inflation when
    config.inflation_adjusted is set; any other strategy may be passed in.

    Args:
        config: Historical simulation controls
        random_source: RandomSource, seed or Generator for window starts
        strategy: Optional withdrawal strategy replacing the fixed withdrawal
        cancel_token: Optional token checked between trials

    Returns:
        HistoricalSimulationResult

    Raises:
        PreconditionError: if the table is shorter than the retirement
            horizon, or on invalid controls
    """
    data = list(config.historical_data)
    if config.retirement_years < 1:
        raise PreconditionError("retirement_years must be at least 1")
    if len(data) < config.retirement_years:
        raise PreconditionError(
            f"Insufficient historical data. Need at least {config.retirement_years} "
            f"years, have {len(data)}"
        )
    if config.num_simulations < 1:
        raise PreconditionError("num_simulations must be at least 1")
    if strategy is None:
        if config.annual_withdrawal < 0:
            raise PreconditionError("annual_withdrawal must be non-negative")
        strategy = FixedWithdrawal(config.annual_withdrawal)
    source = as_random_source(random_source)

    logger.info(
        "Running %d historical trials over %d years from %d-%d",
        config.num_simulations, config.retirement_years, data[0].year, data[-1].year,
    )

    simulations: List[SimulationRun] = []
    for i in range(config.num_simulations):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        returns, inflation_rates, start_year = sample_historical_sequence(
            data, config.retirement_years, config.stock_allocation, source
        )
        simulations.append(simulate_trial(
            config.initial_portfolio,
            returns,
            strategy,
            _withdrawal_inflation(inflation_rates, config.inflation_adjusted),
            run_id=i,
            start_year=start_year,
        ))

    final_values = sorted_final_portfolios(simulations)
    by_final = sorted(simulations, key=lambda run: run.final_portfolio)
    result = HistoricalSimulationResult(
        success_rate=success_rate(simulations),
        median_final_portfolio=nearest_rank_percentile(final_values, 50),
        percentile_10_final_portfolio=nearest_rank_percentile(final_values, 10),
        percentile_90_final_portfolio=nearest_rank_percentile(final_values, 90),
        worst_case_start_year=by_final[0].start_year,
        best_case_start_year=by_final[-1].start_year,
        simulations=simulations,
    )
    logger.info(
        "Historical success rate: %.1f%% (worst start %d, best start %d)",
        100 * result.success_rate, result.worst_case_start_year, result.best_case_start_year,
    )
    return result
