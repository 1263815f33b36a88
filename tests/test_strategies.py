"""
Tests for withdrawal strategies, with emphasis on the guardrails decision.

Default guardrails configuration: 4% initial rate, +/-10% bands, 20% annual
cap, 2% inflation. With an initial withdrawal of 40,000 in year 0 the bands
are 36,000 and 44,000 and the rate ceiling is 6%.
"""

import numpy as np
import pytest

from firesim import (
    DEFAULT_GUARDRAILS_CONFIG,
    FixedWithdrawal,
    GuardrailsWithdrawal,
    PercentageWithdrawal,
    PreconditionError,
    WithdrawalContext,
    WithdrawalStrategy,
    WithdrawalStrategyKind,
    analyze_guardrails_strategy,
    build_strategy,
    calculate_guardrails_withdrawal,
    simulate_guardrails_retirement,
)


# =============================================================================
# Fixed and Percentage
# =============================================================================

def test_fixed_withdrawal_grows_with_inflation():
    """Year 0 withdraws the amount; later years grow by inflation."""
    strategy = FixedWithdrawal(40_000)
    assert strategy.initial_withdrawal(1_000_000) == 40_000

    year0 = WithdrawalContext(0, 1_000_000, 40_000, 40_000, 0.03)
    year1 = WithdrawalContext(1, 1_000_000, 40_000, 40_000, 0.03)
    assert strategy(year0) == 40_000
    assert strategy(year1) == pytest.approx(41_200)


def test_percentage_withdrawal_tracks_portfolio():
    """The withdrawal is a fixed fraction of the current portfolio."""
    strategy = PercentageWithdrawal(0.04)
    assert strategy(WithdrawalContext(3, 500_000, 40_000, 40_000, 0.02)) == pytest.approx(20_000)


def test_strategies_satisfy_protocol():
    """All three strategies implement WithdrawalStrategy."""
    for strategy in (FixedWithdrawal(1.0), PercentageWithdrawal(0.04), GuardrailsWithdrawal()):
        assert isinstance(strategy, WithdrawalStrategy)


def test_build_strategy_requires_amounts():
    """Missing amount or rate is a precondition error, not a default."""
    with pytest.raises(PreconditionError):
        build_strategy(WithdrawalStrategyKind.FIXED)
    with pytest.raises(PreconditionError):
        build_strategy(WithdrawalStrategyKind.PERCENTAGE, annual_withdrawal=40_000)

    strategy = build_strategy(WithdrawalStrategyKind.GUARDRAILS)
    assert isinstance(strategy, GuardrailsWithdrawal)
    assert strategy.config == DEFAULT_GUARDRAILS_CONFIG


def test_build_strategy_unknown_name_is_fixed():
    """An unknown strategy name builds the fixed strategy."""
    strategy = build_strategy('bogus', annual_withdrawal=30_000)
    assert isinstance(strategy, FixedWithdrawal)


# =============================================================================
# Guardrails Branches
# =============================================================================

def test_guardrails_no_adjustment_is_inflation_update():
    """Inside the bands the withdrawal only grows by inflation."""
    state = calculate_guardrails_withdrawal(1_000_000, 40_000, 40_000, 0)

    assert state.adjustment == 'none'
    assert state.withdrawal == pytest.approx(40_800)
    assert state.adjustment_amount == pytest.approx(800)
    assert state.lower_guardband == pytest.approx(36_000)
    assert state.upper_guardband == pytest.approx(44_000)


def test_guardrails_increase_is_capped():
    """Below the lower band the increase is capped at 20% of the previous withdrawal."""
    state = calculate_guardrails_withdrawal(1_000_000, 25_000, 40_000, 0)

    assert state.adjustment == 'increase'
    assert state.withdrawal == pytest.approx(30_000)
    assert state.adjustment_amount == pytest.approx(5_000)


def test_guardrails_increase_stops_at_lower_band():
    """An uncapped increase lands exactly on the lower band."""
    state = calculate_guardrails_withdrawal(1_000_000, 34_000, 40_000, 0)

    assert state.adjustment == 'increase'
    assert state.withdrawal == pytest.approx(36_000)


def test_guardrails_decrease_above_upper_band():
    """Above the upper band the withdrawal moves down toward it, capped."""
    state = calculate_guardrails_withdrawal(1_000_000, 50_000, 40_000, 0)

    assert state.adjustment == 'decrease'
    assert state.withdrawal == pytest.approx(44_000)
    assert state.adjustment_amount == pytest.approx(-6_000)


def test_guardrails_decrease_on_rate_alone():
    """A current rate above 1.5x the initial rate is enough to cut spending."""
    # 40,000 / 500,000 = 8% > 6%, while 40,000 is inside the bands
    state = calculate_guardrails_withdrawal(500_000, 40_000, 40_000, 0)

    assert state.adjustment == 'decrease'
    assert state.withdrawal == pytest.approx(36_000)


def test_guardrails_increase_needs_both_conditions():
    """Below the lower band but with a high rate, spending is not raised."""
    # 30,000 < 36,000 but 30,000 / 400,000 = 7.5% > 6%
    state = calculate_guardrails_withdrawal(400_000, 30_000, 40_000, 0)

    assert state.adjustment == 'decrease'
    assert state.withdrawal == pytest.approx(24_000)


def test_guardrails_baseline_inflates():
    """Bands track the inflation-adjusted baseline."""
    state = calculate_guardrails_withdrawal(1_000_000, 40_000, 40_000, 10)
    baseline = 40_000 * 1.02 ** 10

    assert state.inflation_adjusted_baseline == pytest.approx(baseline)
    assert state.upper_guardband == pytest.approx(baseline * 1.1)
    assert state.lower_guardband == pytest.approx(baseline * 0.9)


def test_guardrails_adjustment_cap_holds_over_a_path():
    """Every adjustment changes the withdrawal by at most 20% of the previous one."""
    rng = np.random.default_rng(7)
    returns = rng.normal(0.05, 0.20, 40)
    states = simulate_guardrails_retirement(1_000_000, 40, returns)
    cap = DEFAULT_GUARDRAILS_CONFIG.annual_adjustment_cap

    previous = 1_000_000 * DEFAULT_GUARDRAILS_CONFIG.initial_withdrawal_rate
    for state in states:
        if state.adjustment != 'none':
            change = abs(state.withdrawal - previous)
            assert change <= cap * previous + 1e-9, (
                f"Year {state.year}: change {change:.2f} exceeds cap on {previous:.2f}"
            )
        previous = state.withdrawal


def test_guardrails_first_year_withdrawal():
    """With flat returns, year 0 takes the initial withdrawal grown by inflation."""
    states = simulate_guardrails_retirement(1_000_000, 3, [0.0, 0.0, 0.0])

    assert len(states) == 3
    assert states[0].withdrawal == pytest.approx(40_800)
    assert states[1].portfolio_value == pytest.approx(1_000_000 - 40_800)


# =============================================================================
# Guardrails Analysis
# =============================================================================

def test_analyze_empty_path_is_failure():
    """No states means the retirement did not survive."""
    analysis = analyze_guardrails_strategy([], 30)

    assert not analysis.success
    assert analysis.total_withdrawn == 0.0


def test_analyze_full_path():
    """A path that lasts the whole horizon is a success."""
    states = simulate_guardrails_retirement(1_000_000, 10, [0.05] * 10)
    analysis = analyze_guardrails_strategy(states, 10)

    assert analysis.success
    assert analysis.total_withdrawn == pytest.approx(sum(s.withdrawal for s in states))
    assert analysis.average_withdrawal == pytest.approx(analysis.total_withdrawn / 10)
    assert analysis.increases + analysis.decreases <= 10
    assert analysis.lowest_portfolio_value == min(s.portfolio_value for s in states)


def test_analyze_short_path_fails():
    """A path shorter than the target horizon is a failure."""
    states = simulate_guardrails_retirement(100_000, 30, [-0.5] * 30)
    analysis = analyze_guardrails_strategy(states, 30)

    assert len(states) < 30
    assert not analysis.success
