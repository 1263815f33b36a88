"""
Withdrawal strategy implementations for retirement drawdown simulation.

This module contains strategy classes that implement WithdrawalStrategy.
Strategies are simple callables mapping WithdrawalContext -> withdrawal amount,
selected once per simulation and never changed mid-run. The simulator threads
the previous withdrawal through the context, so no strategy keeps hidden
state between years.

Available strategies:
- FixedWithdrawal: constant amount, inflation-adjusted every year
- PercentageWithdrawal: fixed fraction of the current portfolio
- GuardrailsWithdrawal: inflation-adjusted baseline with bounded adjustments
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, runtime_checkable

from .params import (
    DEFAULT_GUARDRAILS_CONFIG,
    GUARDRAILS_RATE_CEILING,
    GuardrailsAnalysis,
    GuardrailsConfig,
    GuardrailsState,
    PreconditionError,
    WithdrawalStrategyKind,
)


# =============================================================================
# Generic Strategy Framework
# =============================================================================

@dataclass
class WithdrawalContext:
    """State available to a strategy at the start of each retirement year."""
    year: int                    # Years since retirement began (0-indexed)
    portfolio_value: float       # Portfolio entering the year (always > 0)
    previous_withdrawal: float   # Last year's withdrawal (initial withdrawal in year 0)
    initial_withdrawal: float    # First-year withdrawal amount
    inflation_rate: float        # Inflation from last year to this one


@runtime_checkable
class WithdrawalStrategy(Protocol):
    """
    Protocol for withdrawal strategies.

    Example:
        >>> class MyStrategy:
        ...     name: str = "My Strategy"
        ...     def initial_withdrawal(self, initial_portfolio: float) -> float:
        ...         return 0.03 * initial_portfolio
        ...     def __call__(self, context: WithdrawalContext) -> float:
        ...         return context.previous_withdrawal
    """
    name: str

    def initial_withdrawal(self, initial_portfolio: float) -> float:
        """First-year withdrawal for a given starting portfolio."""
        ...

    def __call__(self, context: WithdrawalContext) -> float:
        """Withdrawal for the year described by context."""
        ...


@dataclass
class FixedWithdrawal:
    """
    Constant real withdrawal.

    The first year withdraws annual_withdrawal; every later year grows the
    previous withdrawal by the context's inflation rate.
    """
    annual_withdrawal: float
    name: str = "fixed"

    def initial_withdrawal(self, initial_portfolio: float) -> float:
        return self.annual_withdrawal

    def __call__(self, context: WithdrawalContext) -> float:
        if context.year == 0:
            return context.previous_withdrawal
        return context.previous_withdrawal * (1 + context.inflation_rate)


@dataclass
class PercentageWithdrawal:
    """Withdraw a fixed fraction of the current portfolio, re-evaluated each year."""
    withdrawal_rate: float
    name: str = "percentage"

    def initial_withdrawal(self, initial_portfolio: float) -> float:
        return initial_portfolio * self.withdrawal_rate

    def __call__(self, context: WithdrawalContext) -> float:
        return context.portfolio_value * self.withdrawal_rate


@dataclass
class GuardrailsWithdrawal:
    """
    Guardrails strategy.

    The first-year withdrawal is initial_withdrawal_rate of the starting
    portfolio. Each year the previous withdrawal is compared against
    guardbands around the inflation-adjusted baseline; see
    calculate_guardrails_withdrawal.
    """
    config: GuardrailsConfig = DEFAULT_GUARDRAILS_CONFIG
    name: str = "guardrails"

    def initial_withdrawal(self, initial_portfolio: float) -> float:
        return initial_portfolio * self.config.initial_withdrawal_rate

    def decide(self, context: WithdrawalContext) -> GuardrailsState:
        return calculate_guardrails_withdrawal(
            context.portfolio_value,
            context.previous_withdrawal,
            context.initial_withdrawal,
            context.year,
            self.config,
        )

    def __call__(self, context: WithdrawalContext) -> float:
        return self.decide(context).withdrawal


def build_strategy(
    kind: WithdrawalStrategyKind,
    annual_withdrawal: Optional[float] = None,
    withdrawal_rate: Optional[float] = None,
    guardrails_config: Optional[GuardrailsConfig] = None,
) -> WithdrawalStrategy:
    """
    Build the strategy for a simulation.

    Raises:
        PreconditionError: if the amount or rate the strategy needs is missing
    """
    kind = WithdrawalStrategyKind.resolve(kind)
    if kind == WithdrawalStrategyKind.FIXED:
        if not annual_withdrawal or annual_withdrawal < 0:
            raise PreconditionError("annual_withdrawal is required for fixed withdrawal strategy")
        return FixedWithdrawal(annual_withdrawal)
    if kind == WithdrawalStrategyKind.PERCENTAGE:
        if not withdrawal_rate or withdrawal_rate < 0:
            raise PreconditionError("withdrawal_rate is required for percentage withdrawal strategy")
        return PercentageWithdrawal(withdrawal_rate)
    return GuardrailsWithdrawal(guardrails_config or DEFAULT_GUARDRAILS_CONFIG)


# =============================================================================
# Guardrails Decision
# =============================================================================

def calculate_guardrails_withdrawal(
    portfolio_value: float,
    previous_withdrawal: float,
    initial_withdrawal: float,
    years_since_retirement: int,
    config: GuardrailsConfig = DEFAULT_GUARDRAILS_CONFIG,
) -> GuardrailsState:
    """
    Guardrails withdrawal for a single year.

    The baseline is the initial withdrawal grown by inflation; the bands sit
    prosperity_guardband above and capital_preservation_guardband below it.
    Three branches, evaluated fresh every year:

    - increase: previous < lower band AND current rate < 1.5x initial rate.
      Move toward the lower band, by at most annual_adjustment_cap of the
      previous withdrawal.
    - decrease: previous > upper band OR current rate > 1.5x initial rate.
      Move toward the upper band, capped the same way.
    - none: inflation-only update of the previous withdrawal.

    The increase branch requires both conditions and the decrease branch
    either one.

    Args:
        portfolio_value: Portfolio entering the year
        previous_withdrawal: Last year's withdrawal
        initial_withdrawal: First-year withdrawal
        years_since_retirement: 0 for the first retirement year
        config: Guardrails parameters

    Returns:
        GuardrailsState with the withdrawal and the branch that fired
    """
    baseline = initial_withdrawal * (1 + config.inflation_rate) ** years_since_retirement
    upper_band = baseline * (1 + config.prosperity_guardband)
    lower_band = baseline * (1 - config.capital_preservation_guardband)

    if portfolio_value > 0:
        current_rate = previous_withdrawal / portfolio_value
    else:
        current_rate = float('inf')
    rate_ceiling = config.initial_withdrawal_rate * GUARDRAILS_RATE_CEILING
    max_change = previous_withdrawal * config.annual_adjustment_cap

    if previous_withdrawal < lower_band and current_rate < rate_ceiling:
        increase = min(lower_band - previous_withdrawal, max_change)
        withdrawal = previous_withdrawal + increase
        adjustment = 'increase'
        adjustment_amount = increase
    elif previous_withdrawal > upper_band or current_rate > rate_ceiling:
        # Rate breaches can fire below the upper band; the distance still caps the cut
        decrease = min(abs(previous_withdrawal - upper_band), max_change)
        withdrawal = previous_withdrawal - decrease
        adjustment = 'decrease'
        adjustment_amount = -decrease
    else:
        withdrawal = previous_withdrawal * (1 + config.inflation_rate)
        adjustment = 'none'
        adjustment_amount = withdrawal - previous_withdrawal

    return GuardrailsState(
        year=years_since_retirement,
        portfolio_value=portfolio_value,
        withdrawal=withdrawal,
        withdrawal_rate=withdrawal / portfolio_value if portfolio_value > 0 else float('inf'),
        inflation_adjusted_baseline=baseline,
        upper_guardband=upper_band,
        lower_guardband=lower_band,
        adjustment=adjustment,
        adjustment_amount=adjustment_amount,
    )


def simulate_guardrails_retirement(
    initial_portfolio: float,
    retirement_years: int,
    annual_returns: Sequence[float],
    config: GuardrailsConfig = DEFAULT_GUARDRAILS_CONFIG,
) -> List[GuardrailsState]:
    """
    Run the guardrails strategy over a whole retirement.

    Withdraw, then grow by that year's return. Stops early when the returns
    run out or the portfolio is depleted.

    Returns:
        One GuardrailsState per year lived
    """
    strategy = GuardrailsWithdrawal(config)
    initial = strategy.initial_withdrawal(initial_portfolio)
    states: List[GuardrailsState] = []
    portfolio = initial_portfolio
    previous = initial

    for year in range(min(retirement_years, len(annual_returns))):
        state = strategy.decide(WithdrawalContext(
            year=year,
            portfolio_value=portfolio,
            previous_withdrawal=previous,
            initial_withdrawal=initial,
            inflation_rate=config.inflation_rate,
        ))
        states.append(state)

        portfolio = (portfolio - state.withdrawal) * (1 + annual_returns[year])
        previous = state.withdrawal
        if portfolio <= 0:
            break

    return states


def analyze_guardrails_strategy(
    states: List[GuardrailsState],
    target_years: int,
) -> GuardrailsAnalysis:
    """Summarize a guardrails path; an empty path counts as a failure."""
    if not states:
        return GuardrailsAnalysis(
            success=False,
            final_portfolio_value=0.0,
            average_withdrawal=0.0,
            total_withdrawn=0.0,
            increases=0,
            decreases=0,
            lowest_portfolio_value=0.0,
            highest_withdrawal_rate=0.0,
        )

    last = states[-1]
    total_withdrawn = sum(state.withdrawal for state in states)
    return GuardrailsAnalysis(
        success=len(states) >= target_years and last.portfolio_value > 0,
        final_portfolio_value=last.portfolio_value,
        average_withdrawal=total_withdrawn / len(states),
        total_withdrawn=total_withdrawn,
        increases=sum(1 for state in states if state.adjustment == 'increase'),
        decreases=sum(1 for state in states if state.adjustment == 'decrease'),
        lowest_portfolio_value=min(state.portfolio_value for state in states),
        highest_withdrawal_rate=max(state.withdrawal_rate for state in states),
    )
