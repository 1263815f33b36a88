"""
Probability curve: success rate as a function of retirement age.

For each candidate retirement age the savings are projected to that age with
the mean return, then a Monte Carlo drawdown estimates the chance the
portfolio lasts to life expectancy.
"""

import logging
from dataclasses import replace
from typing import List, Optional

from .params import (
    PreconditionError,
    ProbabilityCurveConfig,
    ProbabilityCurvePoint,
    ProbabilityCurveResult,
)
from .projection import project_portfolio_at_retirement
from .random_source import as_random_source
from .simulation import Seed, run_monte_carlo_simulation

logger = logging.getLogger(__name__)

OPTIMAL_SUCCESS_RATE = 0.90
SAFE_SUCCESS_RATE = 0.95
VIABLE_SUCCESS_RATE = 0.50


def _first_age_at(points: List[ProbabilityCurvePoint], threshold: float, fallback: int) -> int:
    for point in points:
        if point.success_rate >= threshold:
            return point.retirement_age
    return fallback


def generate_probability_curve(
    config: ProbabilityCurveConfig,
    random_source: Seed = None,
) -> ProbabilityCurveResult:
    """
    Run one Monte Carlo batch per retirement age.

    The retirement horizon is life_expectancy - retirement_age (at least one
    year) and the fixed withdrawal is config.annual_expenses. All batches
    share one random source, so a seed reproduces the whole curve.

    Returns:
        ProbabilityCurveResult; key ages fall back to max_retirement_age when
        no point reaches the threshold
    """
    if config.max_retirement_age < config.min_retirement_age:
        raise PreconditionError("max_retirement_age must not be below min_retirement_age")
    source = as_random_source(random_source)

    points: List[ProbabilityCurvePoint] = []
    for retirement_age in range(config.min_retirement_age, config.max_retirement_age + 1):
        years_to_retirement = max(0, retirement_age - config.current_age)
        projected = project_portfolio_at_retirement(
            config.current_net_worth,
            config.annual_savings,
            years_to_retirement,
            config.expected_return,
        )
        mc_config = replace(
            config.monte_carlo_config,
            initial_portfolio=projected,
            retirement_years=max(1, config.life_expectancy - retirement_age),
            annual_withdrawal=config.annual_expenses,
        )
        result = run_monte_carlo_simulation(mc_config, source)
        points.append(ProbabilityCurvePoint(
            retirement_age=retirement_age,
            retirement_year=config.current_year + years_to_retirement,
            success_rate=result.success_rate,
            years_to_retirement=years_to_retirement,
            median_final_portfolio=result.median_final_portfolio,
        ))
        logger.debug("Retirement age %d: success rate %.3f", retirement_age, result.success_rate)

    max_age = config.max_retirement_age
    return ProbabilityCurveResult(
        points=points,
        optimal_retirement_age=_first_age_at(points, OPTIMAL_SUCCESS_RATE, max_age),
        safe_retirement_age=_first_age_at(points, SAFE_SUCCESS_RATE, max_age),
        earliest_viable_age=_first_age_at(points, VIABLE_SUCCESS_RATE, max_age),
    )


def find_retirement_age_for_success_rate(
    target_success_rate: float,
    config: ProbabilityCurveConfig,
    random_source: Seed = None,
    curve: Optional[ProbabilityCurveResult] = None,
) -> ProbabilityCurvePoint:
    """First point of the curve reaching the target, or the last point if none does."""
    if curve is None:
        curve = generate_probability_curve(config, random_source)
    for point in curve.points:
        if point.success_rate >= target_success_rate:
            return point
    return curve.points[-1]


def format_probability_points(points: List[ProbabilityCurvePoint]) -> List[dict]:
    """Chart rows with the success rate as a rounded percentage."""
    return [
        {
            'age': point.retirement_age,
            'year': point.retirement_year,
            'probability': round(point.success_rate * 100),
            'label': f'Age {point.retirement_age}',
        }
        for point in points
    ]


def success_rate_description(success_rate: float) -> str:
    """Risk tier wording for a success rate."""
    if success_rate >= SAFE_SUCCESS_RATE:
        return 'Very Safe - Excellent probability of success'
    if success_rate >= OPTIMAL_SUCCESS_RATE:
        return 'Optimal - Good probability of success'
    if success_rate >= 0.75:
        return 'Moderate - Reasonable chance of success'
    if success_rate >= VIABLE_SUCCESS_RATE:
        return 'Risky - Uncertain outcome'
    return 'Very Risky - Low probability of success'
