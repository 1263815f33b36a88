"""
FIRE scenario simulation engine.

This package projects long-term household portfolio outcomes for retirement
planning:
- Parameter and result dataclasses (params.py)
- Seedable normal random source (random_source.py)
- Deterministic net worth projection (projection.py)
- Withdrawal strategies including guardrails (strategies.py)
- Monte Carlo and historical bootstrap simulators (simulation.py, historical.py)
- Percentiles, histograms and chart series (statistics.py)
- Background execution with cancellation (worker.py)
"""

# Constants
from .params import (
    BOND_RETURN_MEAN,
    BOND_RETURN_STDEV,
    DEFAULT_GUARDRAILS_CONFIG,
    DEFAULT_PERCENTAGE_WITHDRAWAL_RATE,
)
from .historical_data import HISTORICAL_DATA_VERSION, SAMPLE_HISTORICAL_DATA

# Parameter dataclasses
from .params import (
    PreconditionError,
    WithdrawalStrategyKind,
    ScenarioParameters,
    GuardrailsConfig,
    MonteCarloConfig,
    HistoricalReturn,
    HistoricalSimulationConfig,
    ProbabilityCurveConfig,
    # Result dataclasses
    SimulationRun,
    MonteCarloResult,
    HistoricalSimulationResult,
    GuardrailsState,
    GuardrailsAnalysis,
    ProjectionPoint,
    PercentileSummary,
    HistogramBin,
    ScenarioTrialResult,
    ScenarioMonteCarloResult,
    HistoricalChartPoint,
    HistoricalChartSeries,
    ChartDataSummary,
    ProbabilityCurvePoint,
    ProbabilityCurveResult,
)

from .random_source import RandomSource

# Strategy implementations
from .strategies import (
    WithdrawalContext,
    WithdrawalStrategy,
    FixedWithdrawal,
    PercentageWithdrawal,
    GuardrailsWithdrawal,
    build_strategy,
    calculate_guardrails_withdrawal,
    simulate_guardrails_retirement,
    analyze_guardrails_strategy,
)

# Simulation engines
from .projection import (
    create_net_worth_projection,
    project_portfolio_at_retirement,
    retirement_portfolio,
)
from .simulation import (
    simulate_trial,
    generate_portfolio_returns,
    run_monte_carlo_simulation,
    run_scenario_monte_carlo,
)
from .historical import run_historical_simulation
from .historical_data import historical_data_by_year_range, historical_data_frame
from .probability import (
    generate_probability_curve,
    find_retirement_age_for_success_rate,
    format_probability_points,
    success_rate_description,
)

# Aggregation and chart transforms
from .statistics import (
    success_rate,
    nearest_rank_percentile,
    compute_percentiles,
    get_monte_carlo_percentiles,
    monte_carlo_to_histogram,
    historical_to_chart_data,
    downsample_chart_data,
    add_moving_average,
    chart_data_summary,
    compute_summary_stats,
)

# Background execution
from .worker import (
    CancellationToken,
    EngineFailure,
    MonteCarloRequest,
    SimulationCancelled,
    SimulationService,
    SimulationTask,
    handle_request,
)

__all__ = [
    # Constants
    'BOND_RETURN_MEAN',
    'BOND_RETURN_STDEV',
    'DEFAULT_GUARDRAILS_CONFIG',
    'DEFAULT_PERCENTAGE_WITHDRAWAL_RATE',
    'HISTORICAL_DATA_VERSION',
    'SAMPLE_HISTORICAL_DATA',
    # Params
    'PreconditionError',
    'WithdrawalStrategyKind',
    'ScenarioParameters',
    'GuardrailsConfig',
    'MonteCarloConfig',
    'HistoricalReturn',
    'HistoricalSimulationConfig',
    'ProbabilityCurveConfig',
    # Results
    'SimulationRun',
    'MonteCarloResult',
    'HistoricalSimulationResult',
    'GuardrailsState',
    'GuardrailsAnalysis',
    'ProjectionPoint',
    'PercentileSummary',
    'HistogramBin',
    'ScenarioTrialResult',
    'ScenarioMonteCarloResult',
    'HistoricalChartPoint',
    'HistoricalChartSeries',
    'ChartDataSummary',
    'ProbabilityCurvePoint',
    'ProbabilityCurveResult',
    'RandomSource',
    # Strategies
    'WithdrawalContext',
    'WithdrawalStrategy',
    'FixedWithdrawal',
    'PercentageWithdrawal',
    'GuardrailsWithdrawal',
    'build_strategy',
    'calculate_guardrails_withdrawal',
    'simulate_guardrails_retirement',
    'analyze_guardrails_strategy',
    # Simulation
    'create_net_worth_projection',
    'project_portfolio_at_retirement',
    'retirement_portfolio',
    'simulate_trial',
    'generate_portfolio_returns',
    'run_monte_carlo_simulation',
    'run_scenario_monte_carlo',
    'run_historical_simulation',
    'historical_data_by_year_range',
    'historical_data_frame',
    'generate_probability_curve',
    'find_retirement_age_for_success_rate',
    'format_probability_points',
    'success_rate_description',
    # Statistics
    'success_rate',
    'nearest_rank_percentile',
    'compute_percentiles',
    'get_monte_carlo_percentiles',
    'monte_carlo_to_histogram',
    'historical_to_chart_data',
    'downsample_chart_data',
    'add_moving_average',
    'chart_data_summary',
    'compute_summary_stats',
    # Background execution
    'CancellationToken',
    'EngineFailure',
    'MonteCarloRequest',
    'SimulationCancelled',
    'SimulationService',
    'SimulationTask',
    'handle_request',
]
