"""
Core parameter and result dataclasses for FIRE scenario simulation.

This module contains the scenario input, the simulator configurations and the
plain value objects produced by the engine, consolidated into a single source
of truth. Every result type here is a plain dataclass with no behavior beyond
simple derived properties, so results can be handed across a thread or
process boundary (see ``to_dict``).
"""

import logging
import numbers
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import List, Optional, Union

logger = logging.getLogger(__name__)


class PreconditionError(ValueError):
    """Raised before any simulation work when inputs are incoherent."""


# =============================================================================
# Module-level Configuration Constants
# =============================================================================

# Approximate bond sleeve distribution used by the stochastic simulators
BOND_RETURN_MEAN = 0.03
BOND_RETURN_STDEV = 0.05

# Rate used when a scenario selects the percentage strategy without a rate
DEFAULT_PERCENTAGE_WITHDRAWAL_RATE = 0.04

# The current-rate ceiling, as a multiple of the initial rate, above which
# guardrails always cuts spending and below which it may raise spending
GUARDRAILS_RATE_CEILING = 1.5


# =============================================================================
# Strategy Selection
# =============================================================================

class WithdrawalStrategyKind(Enum):
    """Withdrawal strategy, selected once per simulation."""
    FIXED = "fixed"            # Constant inflation-adjusted amount
    PERCENTAGE = "percentage"  # Fixed fraction of current portfolio
    GUARDRAILS = "guardrails"  # Bounded adaptive adjustment

    @classmethod
    def resolve(cls, value: Union["WithdrawalStrategyKind", str, None]) -> "WithdrawalStrategyKind":
        """
        Resolve a strategy name, falling back to FIXED.

        Absent or unrecognized values are not an error: scenarios stored
        without a strategy are planned with a fixed withdrawal.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        logger.warning("Unrecognized withdrawal strategy %r, using 'fixed'", value)
        return cls.FIXED


# =============================================================================
# Scenario Input
# =============================================================================

@dataclass(frozen=True)
class ScenarioParameters:
    """
    Financial assumptions of one household scenario.

    Ages are integer years. Rates are decimals (0.05 = 5%). The expected
    return mean/stdev describe the stock sleeve only; the remainder of the
    portfolio is held in bonds with the fixed approximate distribution
    (BOND_RETURN_MEAN, BOND_RETURN_STDEV).

    Raises:
        PreconditionError: if the scenario is not coherent
    """
    current_age: int
    retirement_age: int
    life_expectancy: int
    current_savings: float
    annual_contribution: float        # Applies only before retirement
    annual_expenses: float            # Baseline, pre-inflation retirement spending
    portfolio_stock_pct: float = 0.6  # Remainder is bonds
    expected_return_mean: float = 0.05
    expected_return_stdev: float = 0.12
    inflation_rate: float = 0.02
    withdrawal_strategy: WithdrawalStrategyKind = WithdrawalStrategyKind.FIXED

    def __post_init__(self):
        for name in ('current_age', 'retirement_age', 'life_expectancy'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise PreconditionError(f"{name} must be a whole number of years, got {value!r}")
        # Normalize string strategies so the stored value is always the enum
        object.__setattr__(
            self, 'withdrawal_strategy',
            WithdrawalStrategyKind.resolve(self.withdrawal_strategy),
        )
        if self.retirement_age <= self.current_age:
            raise PreconditionError(
                f"retirement_age ({self.retirement_age}) must be greater than "
                f"current_age ({self.current_age})"
            )
        if self.life_expectancy <= self.retirement_age:
            raise PreconditionError(
                f"life_expectancy ({self.life_expectancy}) must be greater than "
                f"retirement_age ({self.retirement_age})"
            )
        if self.current_savings < 0:
            raise PreconditionError("current_savings must be non-negative")
        if self.annual_contribution < 0:
            raise PreconditionError("annual_contribution must be non-negative")
        if self.annual_expenses <= 0:
            raise PreconditionError("annual_expenses must be positive")
        if not 0.0 <= self.portfolio_stock_pct <= 1.0:
            raise PreconditionError("portfolio_stock_pct must be within [0, 1]")
        if self.expected_return_stdev < 0:
            raise PreconditionError("expected_return_stdev must be non-negative")

    @property
    def years_to_retirement(self) -> int:
        return self.retirement_age - self.current_age

    @property
    def retirement_years(self) -> int:
        return self.life_expectancy - self.retirement_age

    @classmethod
    def from_dict(cls, data: dict) -> "ScenarioParameters":
        """
        Build from a message/record dict, ignoring unknown keys.

        Every field except withdrawal_strategy must be present; missing
        assumptions are never filled in from the dataclass defaults.
        """
        known = {name for name in cls.__dataclass_fields__}
        missing = [name for name in cls.__dataclass_fields__
                   if name != 'withdrawal_strategy' and name not in data]
        if missing:
            raise PreconditionError(f"missing scenario fields: {', '.join(missing)}")
        return cls(**{key: value for key, value in data.items() if key in known})

    def to_dict(self) -> dict:
        out = asdict(self)
        out['withdrawal_strategy'] = self.withdrawal_strategy.value
        return out


# =============================================================================
# Simulator Configuration
# =============================================================================

@dataclass(frozen=True)
class GuardrailsConfig:
    """Parameters for the guardrails withdrawal strategy."""
    initial_withdrawal_rate: float = 0.04          # 4% rule
    prosperity_guardband: float = 0.10             # +10% upper band
    capital_preservation_guardband: float = 0.10   # -10% lower band
    annual_adjustment_cap: float = 0.20            # Max 20% change per year
    inflation_rate: float = 0.02                   # 2% inflation


DEFAULT_GUARDRAILS_CONFIG = GuardrailsConfig()


@dataclass
class MonteCarloConfig:
    """
    Controls for a Monte Carlo drawdown simulation.

    ``annual_withdrawal`` is required for the fixed strategy and
    ``withdrawal_rate`` for the percentage strategy. Guardrails falls back to
    DEFAULT_GUARDRAILS_CONFIG when no configuration is given.
    """
    initial_portfolio: float
    num_simulations: int = 10_000
    retirement_years: int = 30
    withdrawal_strategy: WithdrawalStrategyKind = WithdrawalStrategyKind.FIXED
    annual_withdrawal: Optional[float] = None
    withdrawal_rate: Optional[float] = None
    guardrails_config: Optional[GuardrailsConfig] = None
    expected_return_mean: float = 0.05
    expected_return_stdev: float = 0.12
    inflation_rate: float = 0.02
    stock_allocation: float = 1.0
    bond_return_mean: float = BOND_RETURN_MEAN
    bond_return_stdev: float = BOND_RETURN_STDEV

    def __post_init__(self):
        self.withdrawal_strategy = WithdrawalStrategyKind.resolve(self.withdrawal_strategy)

    @classmethod
    def from_scenario(
        cls,
        params: ScenarioParameters,
        initial_portfolio: float,
        num_simulations: int = 1000,
        withdrawal_rate: Optional[float] = None,
        guardrails_config: Optional[GuardrailsConfig] = None,
    ) -> "MonteCarloConfig":
        """
        Resolve drawdown controls from a scenario.

        The fixed withdrawal is the scenario's expenses inflated to the
        retirement date; the percentage rate defaults to 4%.
        """
        strategy = params.withdrawal_strategy
        annual_withdrawal = None
        if strategy == WithdrawalStrategyKind.FIXED:
            annual_withdrawal = params.annual_expenses * (
                (1 + params.inflation_rate) ** params.years_to_retirement
            )
        elif strategy == WithdrawalStrategyKind.PERCENTAGE and withdrawal_rate is None:
            withdrawal_rate = DEFAULT_PERCENTAGE_WITHDRAWAL_RATE
        if strategy == WithdrawalStrategyKind.GUARDRAILS and guardrails_config is None:
            guardrails_config = GuardrailsConfig(inflation_rate=params.inflation_rate)

        return cls(
            initial_portfolio=initial_portfolio,
            num_simulations=num_simulations,
            retirement_years=params.retirement_years,
            withdrawal_strategy=strategy,
            annual_withdrawal=annual_withdrawal,
            withdrawal_rate=withdrawal_rate,
            guardrails_config=guardrails_config,
            expected_return_mean=params.expected_return_mean,
            expected_return_stdev=params.expected_return_stdev,
            inflation_rate=params.inflation_rate,
            stock_allocation=params.portfolio_stock_pct,
        )


@dataclass(frozen=True)
class HistoricalReturn:
    """One annual record of the historical return table."""
    year: int
    stock_return: float
    bond_return: float
    inflation_rate: float


@dataclass
class HistoricalSimulationConfig:
    """Controls for a historical bootstrap simulation."""
    initial_portfolio: float
    annual_withdrawal: float
    historical_data: List[HistoricalReturn]
    num_simulations: int = 1000
    retirement_years: int = 30
    stock_allocation: float = 0.6
    inflation_adjusted: bool = True   # Inflate withdrawals with table inflation


# =============================================================================
# Result Dataclasses
# =============================================================================

@dataclass
class SimulationRun:
    """
    One stochastic or historical trial.

    ``returns`` holds the blended portfolio return actually applied in each
    lived year and is truncated at depletion. ``final_portfolio`` is clamped
    at zero, so a failed run always reports 0.
    """
    run_id: int
    success: bool
    final_portfolio: float
    years_lasted: int
    total_withdrawn: float
    returns: List[float]
    portfolio_values: List[float] = field(default_factory=list)  # End of each lived year
    start_year: Optional[int] = None                              # Historical runs only


@dataclass
class MonteCarloResult:
    """Aggregate of a Monte Carlo batch."""
    success_rate: float
    median_final_portfolio: float
    percentile_10_final_portfolio: float
    percentile_90_final_portfolio: float
    simulations: List[SimulationRun]
    config: Optional[MonteCarloConfig] = None

    @property
    def n_sims(self) -> int:
        return len(self.simulations)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class HistoricalSimulationResult:
    """Aggregate of a historical bootstrap batch."""
    success_rate: float
    median_final_portfolio: float
    percentile_10_final_portfolio: float
    percentile_90_final_portfolio: float
    worst_case_start_year: int   # Start year of the lowest final portfolio
    best_case_start_year: int    # Start year of the highest final portfolio
    simulations: List[SimulationRun]

    @property
    def n_sims(self) -> int:
        return len(self.simulations)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class GuardrailsState:
    """Guardrails decision for one retirement year."""
    year: int                           # Years since retirement began
    portfolio_value: float              # Value entering the year
    withdrawal: float
    withdrawal_rate: float              # withdrawal / portfolio_value
    inflation_adjusted_baseline: float
    upper_guardband: float
    lower_guardband: float
    adjustment: str                     # 'none', 'increase' or 'decrease'
    adjustment_amount: float            # Signed change from previous withdrawal


@dataclass
class GuardrailsAnalysis:
    """Summary of a guardrails retirement path."""
    success: bool
    final_portfolio_value: float
    average_withdrawal: float
    total_withdrawn: float
    increases: int
    decreases: int
    lowest_portfolio_value: float
    highest_withdrawal_rate: float


@dataclass
class ProjectionPoint:
    """One year of the deterministic net worth trajectory."""
    year: int
    age: int
    net_worth: float
    phase: str          # 'accumulation' or 'retirement'
    year_label: str


@dataclass
class PercentileSummary:
    """Nearest-rank percentiles of final portfolio values."""
    p10: float
    p25: float
    p50: float
    p75: float
    p90: float


@dataclass
class HistogramBin:
    """One equal-width bin of final portfolio values."""
    bin_start: float
    bin_end: float
    bin_label: str
    count: int
    percentage: float
    is_success: bool


@dataclass
class ScenarioTrialResult:
    """Outcome of one full-scenario trial (accumulation and drawdown)."""
    success: bool
    final_balance: float
    years_to_depletion: Optional[int] = None   # Retirement years lived, failures only


@dataclass
class ScenarioMonteCarloResult:
    """Aggregate returned by the background simulation task."""
    success_rate: float
    median_balance: float
    percentile_10: float
    percentile_90: float
    results: List[ScenarioTrialResult]

    def to_message(self) -> dict:
        """Response message of the background task."""
        return asdict(self)


@dataclass
class HistoricalChartPoint:
    year: int
    age: int
    net_worth: float


@dataclass
class HistoricalChartSeries:
    """One historical run as a chart line."""
    start_year: Optional[int]
    succeeded: bool
    data: List[HistoricalChartPoint]


@dataclass
class ChartDataSummary:
    min: float
    max: float
    average: float
    median: float
    final_value: float


# =============================================================================
# Probability Curve
# =============================================================================

@dataclass
class ProbabilityCurveConfig:
    """Inputs for a success-rate-by-retirement-age curve."""
    current_age: int
    current_year: int
    min_retirement_age: int
    max_retirement_age: int
    current_net_worth: float
    annual_savings: float
    annual_expenses: float
    expected_return: float             # Used to project savings to each age
    monte_carlo_config: MonteCarloConfig
    life_expectancy: int = 95


@dataclass
class ProbabilityCurvePoint:
    retirement_age: int
    retirement_year: int
    success_rate: float
    years_to_retirement: int
    median_final_portfolio: float


@dataclass
class ProbabilityCurveResult:
    points: List[ProbabilityCurvePoint]
    optimal_retirement_age: int   # First age with >= 90% success
    safe_retirement_age: int      # First age with >= 95% success
    earliest_viable_age: int      # First age with >= 50% success
