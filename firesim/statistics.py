"""
Statistics aggregation and chart-ready transforms.

This module turns raw simulation runs into the values actually displayed:
success rate, nearest-rank percentiles of final portfolio values, histogram
bins, and plain numeric chart series. Rendering is left to the caller.

Percentiles use the nearest-rank method on values sorted ascending, indexing
at floor(p/100 * n) with no interpolation.
"""

import math
from typing import Dict, List, Sequence, TypeVar, Union

import numpy as np
import pandas as pd

from .params import (
    ChartDataSummary,
    HistogramBin,
    HistoricalChartPoint,
    HistoricalChartSeries,
    HistoricalSimulationResult,
    MonteCarloResult,
    PercentileSummary,
    PreconditionError,
    ProjectionPoint,
    SimulationRun,
)

Result = Union[MonteCarloResult, HistoricalSimulationResult]
T = TypeVar('T')


# =============================================================================
# Aggregation
# =============================================================================

def success_rate(runs: Sequence[SimulationRun]) -> float:
    """Fraction of runs that stayed funded for the full horizon."""
    if not runs:
        return 0.0
    return sum(1 for run in runs if run.success) / len(runs)


def sorted_final_portfolios(runs: Sequence[SimulationRun]) -> np.ndarray:
    """Final portfolio values sorted ascending."""
    return np.sort(np.array([run.final_portfolio for run in runs], dtype=float))


def nearest_rank_percentile(sorted_values: np.ndarray, p: float) -> float:
    """
    Nearest-rank percentile of an ascending array.

    Returns sorted_values[floor(p/100 * n)], or 0.0 for an empty array.
    """
    n = len(sorted_values)
    if n == 0:
        return 0.0
    index = min(int(math.floor((p / 100.0) * n)), n - 1)
    return float(sorted_values[index])


def compute_percentiles(runs: Sequence[SimulationRun]) -> PercentileSummary:
    """p10/p25/p50/p75/p90 of final portfolio values."""
    values = sorted_final_portfolios(runs)
    return PercentileSummary(
        p10=nearest_rank_percentile(values, 10),
        p25=nearest_rank_percentile(values, 25),
        p50=nearest_rank_percentile(values, 50),
        p75=nearest_rank_percentile(values, 75),
        p90=nearest_rank_percentile(values, 90),
    )


def _runs_of(result: Union[Result, Sequence[SimulationRun]]) -> Sequence[SimulationRun]:
    if isinstance(result, (MonteCarloResult, HistoricalSimulationResult)):
        return result.simulations
    return result


def get_monte_carlo_percentiles(result: Union[Result, Sequence[SimulationRun]]) -> PercentileSummary:
    """Percentiles of a batch result or of a plain list of runs."""
    return compute_percentiles(_runs_of(result))


# =============================================================================
# Histogram
# =============================================================================

def format_currency_range(start: float, end: float) -> str:
    """Bin label such as '$100k - $200k'."""
    def format_value(value: float) -> str:
        if value == 0:
            return '$0'
        if abs(value) >= 1_000_000:
            return f'${value / 1_000_000:.1f}M'
        if abs(value) >= 1000:
            return f'${value / 1000:.0f}k'
        return f'${value:.0f}'

    return f'{format_value(start)} - {format_value(end)}'


def monte_carlo_to_histogram(
    result: Union[Result, Sequence[SimulationRun]],
    bin_count: int = 20,
) -> List[HistogramBin]:
    """
    Bin final portfolio values into equal-width bins over [min, max].

    Bins are half-open [start, end) except the last, which also holds the
    maximum. When every run ends at the same value a single bin holds them
    all. A bin is tagged as success when its upper edge is above zero.

    Args:
        result: Batch result or list of runs
        bin_count: Number of bins

    Returns:
        List of HistogramBin, empty when there are no runs
    """
    if bin_count < 1:
        raise PreconditionError("bin_count must be at least 1")
    runs = _runs_of(result)
    if not runs:
        return []

    values = np.array([run.final_portfolio for run in runs], dtype=float)
    low = float(values.min())
    high = float(values.max())
    total = len(values)

    if high == low:
        return [HistogramBin(
            bin_start=low,
            bin_end=high,
            bin_label=format_currency_range(low, high),
            count=total,
            percentage=100.0,
            is_success=high > 0,
        )]

    bin_size = (high - low) / bin_count
    indices = np.floor((values - low) / bin_size).astype(int)
    indices = np.clip(indices, 0, bin_count - 1)
    counts = np.bincount(indices, minlength=bin_count)

    bins: List[HistogramBin] = []
    for i in range(bin_count):
        bin_start = low + i * bin_size
        bin_end = bin_start + bin_size
        count = int(counts[i])
        bins.append(HistogramBin(
            bin_start=bin_start,
            bin_end=bin_end,
            bin_label=format_currency_range(bin_start, bin_end),
            count=count,
            percentage=count / total * 100.0,
            is_success=bin_end > 0,
        ))
    return bins


# =============================================================================
# Chart Series
# =============================================================================

def historical_to_chart_data(
    result: HistoricalSimulationResult,
    current_age: int,
) -> List[HistoricalChartSeries]:
    """
    One chart line per historical run.

    Points follow the run's end-of-year portfolio values, labelled with the
    historical calendar year and the retiree's age.
    """
    series: List[HistoricalChartSeries] = []
    for run in result.simulations:
        start_year = run.start_year if run.start_year is not None else 0
        data = [
            HistoricalChartPoint(year=start_year + i, age=current_age + i, net_worth=value)
            for i, value in enumerate(run.portfolio_values)
        ]
        series.append(HistoricalChartSeries(
            start_year=run.start_year,
            succeeded=run.success,
            data=data,
        ))
    return series


def downsample_chart_data(data: List[T], max_points: int = 100) -> List[T]:
    """Keep every k-th point so at most about max_points remain."""
    if len(data) <= max_points:
        return data
    step = math.ceil(len(data) / max_points)
    return data[::step]


def add_moving_average(points: List[ProjectionPoint], window: int = 5) -> pd.DataFrame:
    """
    Projection points as a DataFrame with a centered moving average.

    The window around index i spans [i - window//2, i + ceil(window/2)),
    truncated at the ends of the series.
    """
    frame = projection_to_frame(points)
    net_worth = frame['net_worth'].to_numpy()
    n = len(net_worth)
    averages = np.empty(n)
    for i in range(n):
        start = max(0, i - window // 2)
        end = min(n, i + math.ceil(window / 2))
        averages[i] = net_worth[start:end].mean()
    frame['moving_average'] = averages
    return frame


def chart_data_summary(points: List[ProjectionPoint]) -> ChartDataSummary:
    """Min, max, average, nearest-rank median and final value of a series."""
    if not points:
        return ChartDataSummary(min=0.0, max=0.0, average=0.0, median=0.0, final_value=0.0)
    values = np.sort(np.array([point.net_worth for point in points], dtype=float))
    return ChartDataSummary(
        min=float(values[0]),
        max=float(values[-1]),
        average=float(values.mean()),
        median=nearest_rank_percentile(values, 50),
        final_value=float(points[-1].net_worth),
    )


def projection_to_frame(points: List[ProjectionPoint]) -> pd.DataFrame:
    """Projection points as a DataFrame, one row per year."""
    return pd.DataFrame(
        [
            {
                'year': point.year,
                'age': point.age,
                'net_worth': point.net_worth,
                'phase': point.phase,
                'year_label': point.year_label,
            }
            for point in points
        ],
        columns=['year', 'age', 'net_worth', 'phase', 'year_label'],
    )


# =============================================================================
# Summary Tables
# =============================================================================

def runs_to_frame(runs: Sequence[SimulationRun]) -> pd.DataFrame:
    """One row per run, without the per-year series."""
    return pd.DataFrame(
        [
            {
                'run_id': run.run_id,
                'success': run.success,
                'final_portfolio': run.final_portfolio,
                'years_lasted': run.years_lasted,
                'total_withdrawn': run.total_withdrawn,
                'start_year': run.start_year,
            }
            for run in runs
        ],
        columns=['run_id', 'success', 'final_portfolio', 'years_lasted',
                 'total_withdrawn', 'start_year'],
    ).set_index('run_id')


def compute_summary_stats(results: Dict[str, Result]) -> pd.DataFrame:
    """Compute summary statistics for each labelled batch result."""
    stats = []

    for name, result in results.items():
        runs = result.simulations
        stats.append({
            'Simulation': name,
            'Runs': len(runs),
            'Success Rate (%)': 100 * result.success_rate,
            '10th Pctl Final Portfolio': result.percentile_10_final_portfolio,
            'Median Final Portfolio': result.median_final_portfolio,
            '90th Pctl Final Portfolio': result.percentile_90_final_portfolio,
            'Avg Years Lasted': float(np.mean([run.years_lasted for run in runs])) if runs else 0.0,
            'Avg Total Withdrawn': float(np.mean([run.total_withdrawn for run in runs])) if runs else 0.0,
        })

    return pd.DataFrame(stats).set_index('Simulation')
