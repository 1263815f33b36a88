"""
Tests for the historical return table and the historical bootstrap simulator.
"""

import numpy as np
import pytest

from firesim import (
    HISTORICAL_DATA_VERSION,
    HistoricalReturn,
    HistoricalSimulationConfig,
    PercentageWithdrawal,
    PreconditionError,
    SAMPLE_HISTORICAL_DATA,
    historical_data_by_year_range,
    historical_data_frame,
    run_historical_simulation,
)
from firesim.historical import calculate_portfolio_return, sample_historical_sequence
from firesim.random_source import RandomSource


@pytest.fixture(scope="module")
def historical_result():
    """A seeded 30-year bootstrap over the full table."""
    config = HistoricalSimulationConfig(
        initial_portfolio=1_000_000,
        annual_withdrawal=45_000,
        historical_data=list(SAMPLE_HISTORICAL_DATA),
        num_simulations=400,
        retirement_years=30,
        stock_allocation=0.6,
    )
    return run_historical_simulation(config, random_source=17)


# =============================================================================
# Historical Table
# =============================================================================

def test_table_covers_1926_to_2023():
    """The table has one record per year, in order."""
    years = [record.year for record in SAMPLE_HISTORICAL_DATA]

    assert len(SAMPLE_HISTORICAL_DATA) == 98
    assert years == list(range(1926, 2024))
    assert HISTORICAL_DATA_VERSION.startswith("1926-2023")


def test_year_range_filter():
    """Year range filters are inclusive at both ends."""
    decade = historical_data_by_year_range(2000, 2009)

    assert [r.year for r in decade] == list(range(2000, 2010))
    assert historical_data_by_year_range(2030, 2040) == []


def test_table_as_frame():
    """The DataFrame view is indexed by year."""
    frame = historical_data_frame()

    assert frame.shape == (98, 3)
    assert frame.index.name == 'year'
    assert frame.loc[2008, 'stock_return'] < 0


# =============================================================================
# Sampling
# =============================================================================

def test_portfolio_return_blend():
    """Returns blend stocks and bonds by allocation."""
    assert calculate_portfolio_return(0.10, 0.02, 0.6) == pytest.approx(0.068)
    assert calculate_portfolio_return(0.10, 0.02, 1.0) == pytest.approx(0.10)


def test_sample_window_is_contiguous():
    """A sampled window spans consecutive years of the requested length."""
    source = RandomSource(3)
    for _ in range(50):
        returns, inflation, start_year = sample_historical_sequence(
            SAMPLE_HISTORICAL_DATA, 30, 0.6, source
        )
        assert len(returns) == 30
        assert len(inflation) == 30
        assert 1926 <= start_year <= 2023 - 30 + 1


def test_exact_length_table_always_starts_at_first_year():
    """When the table is exactly the horizon, every trial replays it."""
    data = historical_data_by_year_range(1990, 2019)
    config = HistoricalSimulationConfig(
        initial_portfolio=1_000_000,
        annual_withdrawal=40_000,
        historical_data=data,
        num_simulations=20,
        retirement_years=30,
    )
    result = run_historical_simulation(config, random_source=0)

    assert {run.start_year for run in result.simulations} == {1990}
    assert len({run.final_portfolio for run in result.simulations}) == 1


# =============================================================================
# Simulator
# =============================================================================

def test_horizon_longer_than_table_raises():
    """Requesting more years than the table holds is a precondition error."""
    config = HistoricalSimulationConfig(
        initial_portfolio=1_000_000,
        annual_withdrawal=40_000,
        historical_data=list(SAMPLE_HISTORICAL_DATA),
        retirement_years=99,
    )
    with pytest.raises(PreconditionError, match="Insufficient historical data"):
        run_historical_simulation(config, random_source=1)

    short = HistoricalSimulationConfig(
        initial_portfolio=1_000_000,
        annual_withdrawal=40_000,
        historical_data=historical_data_by_year_range(2000, 2009),
        retirement_years=30,
    )
    with pytest.raises(PreconditionError):
        run_historical_simulation(short, random_source=1)


def test_historical_run_count_and_start_years(historical_result):
    """Each run records a valid start year."""
    assert historical_result.n_sims == 400
    for run in historical_result.simulations:
        assert 1926 <= run.start_year <= 1994, f"Run {run.run_id}: start {run.start_year}"
        assert len(run.returns) == run.years_lasted


def test_historical_failures_end_at_zero(historical_result):
    """Failed historical runs report a final portfolio of 0."""
    for run in historical_result.simulations:
        if not run.success:
            assert run.final_portfolio == 0.0


def test_worst_and_best_start_years(historical_result):
    """Worst and best start years belong to the extreme final portfolios."""
    finals = np.array([run.final_portfolio for run in historical_result.simulations])
    worst = historical_result.simulations[int(np.argmin(finals))]
    best = historical_result.simulations[int(np.argmax(finals))]

    assert historical_result.worst_case_start_year == worst.start_year
    assert historical_result.best_case_start_year == best.start_year


def test_historical_percentile_order(historical_result):
    """p10 <= median <= p90."""
    r = historical_result
    assert r.percentile_10_final_portfolio <= r.median_final_portfolio <= r.percentile_90_final_portfolio


def test_historical_with_percentage_strategy():
    """A percentage withdrawal never exhausts the portfolio."""
    config = HistoricalSimulationConfig(
        initial_portfolio=1_000_000,
        annual_withdrawal=0,
        historical_data=list(SAMPLE_HISTORICAL_DATA),
        num_simulations=100,
        retirement_years=30,
    )
    result = run_historical_simulation(config, random_source=5, strategy=PercentageWithdrawal(0.04))

    assert result.success_rate == 1.0


def test_historical_is_reproducible():
    """The same seed samples the same windows."""
    config = HistoricalSimulationConfig(
        initial_portfolio=750_000,
        annual_withdrawal=35_000,
        historical_data=list(SAMPLE_HISTORICAL_DATA),
        num_simulations=50,
        retirement_years=25,
    )
    a = run_historical_simulation(config, random_source=99)
    b = run_historical_simulation(config, random_source=99)

    assert [r.start_year for r in a.simulations] == [r.start_year for r in b.simulations]
    assert a.success_rate == b.success_rate


def _flat_table(inflation_rates):
    return [
        HistoricalReturn(year=2000 + i, stock_return=0.0, bond_return=0.0, inflation_rate=rate)
        for i, rate in enumerate(inflation_rates)
    ]


@pytest.mark.parametrize("inflation_adjusted, expected", [
    (True, 100 + 100 * 1.10 + 100 * 1.10 * 1.20),
    (False, 300),
])
def test_withdrawal_follows_prior_year_inflation(inflation_adjusted, expected):
    """Year t grows the withdrawal by year t-1's recorded inflation; year 0 is unadjusted."""
    config = HistoricalSimulationConfig(
        initial_portfolio=10_000,
        annual_withdrawal=100,
        historical_data=_flat_table([0.10, 0.20, 0.30]),
        num_simulations=3,
        retirement_years=3,
        inflation_adjusted=inflation_adjusted,
    )
    result = run_historical_simulation(config, random_source=0)

    for run in result.simulations:
        assert run.success
        assert run.total_withdrawn == pytest.approx(expected), (
            f"inflation_adjusted={inflation_adjusted}: withdrew {run.total_withdrawn}"
        )
        assert run.final_portfolio == pytest.approx(10_000 - expected)
