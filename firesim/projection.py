"""
Deterministic year-by-year net worth projection.

The projection applies the mean return every year with no randomness. It
illustrates the "expected case" trajectory for charting and supplies the
starting portfolio of the stochastic simulators; it is not a risk estimate.
"""

from datetime import date
from typing import List, Optional

from .params import ProjectionPoint, ScenarioParameters


ACCUMULATION = 'accumulation'
RETIREMENT = 'retirement'


def _accumulate(net_worth: float, contribution: float, expected_return: float) -> float:
    return (net_worth + contribution) * (1 + expected_return)


def _draw_down(
    net_worth: float,
    annual_expenses: float,
    inflation_rate: float,
    years_since_retirement: int,
    expected_return: float,
) -> float:
    expenses = annual_expenses * (1 + inflation_rate) ** years_since_retirement
    return max(0.0, (net_worth - expenses) * (1 + expected_return))


def create_net_worth_projection(
    params: ScenarioParameters,
    start_year: Optional[int] = None,
) -> List[ProjectionPoint]:
    """
    Project net worth from current age to life expectancy.

    One point per year, current_age through life_expectancy inclusive. Each
    point reports the net worth entering that year. Before retirement:

        net_worth = (net_worth + contribution) * (1 + mean_return)

    From retirement on, the year's inflation-adjusted expenses are withdrawn
    before growth and the result is floored at zero.

    Args:
        params: Scenario assumptions
        start_year: Calendar year of current_age (defaults to this year)

    Returns:
        List of ProjectionPoint
    """
    if start_year is None:
        start_year = date.today().year

    years_to_project = params.life_expectancy - params.current_age
    points: List[ProjectionPoint] = []
    net_worth = float(params.current_savings)

    for i in range(years_to_project + 1):
        age = params.current_age + i
        year = start_year + i
        phase = ACCUMULATION if age < params.retirement_age else RETIREMENT
        points.append(ProjectionPoint(
            year=year,
            age=age,
            net_worth=net_worth,
            phase=phase,
            year_label=str(year),
        ))

        if i == years_to_project:
            break
        if phase == ACCUMULATION:
            net_worth = _accumulate(
                net_worth, params.annual_contribution, params.expected_return_mean
            )
        else:
            net_worth = _draw_down(
                net_worth,
                params.annual_expenses,
                params.inflation_rate,
                age - params.retirement_age,
                params.expected_return_mean,
            )

    return points


def project_portfolio_at_retirement(
    current_savings: float,
    annual_contribution: float,
    years_to_retirement: int,
    expected_return: float,
) -> float:
    """Net worth after the accumulation years, contributions made at the start of each year."""
    net_worth = float(current_savings)
    for _ in range(max(0, years_to_retirement)):
        net_worth = _accumulate(net_worth, annual_contribution, expected_return)
    return net_worth


def retirement_portfolio(params: ScenarioParameters) -> float:
    """Projected portfolio on the retirement date of a scenario."""
    return project_portfolio_at_retirement(
        params.current_savings,
        params.annual_contribution,
        params.years_to_retirement,
        params.expected_return_mean,
    )
