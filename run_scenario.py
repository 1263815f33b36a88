#!/usr/bin/env python3
"""
Print a FIRE scenario report.

Runs the deterministic projection, a Monte Carlo drawdown from the projected
retirement portfolio and a historical bootstrap, then prints the summary
table and the final portfolio histogram.

Usage:
    python run_scenario.py --current-age 35 --retirement-age 55 --seed 42
"""

import logging
from typing import Optional

from firesim import (
    HistoricalSimulationConfig,
    MonteCarloConfig,
    PreconditionError,
    RandomSource,
    SAMPLE_HISTORICAL_DATA,
    ScenarioParameters,
    build_strategy,
    compute_summary_stats,
    create_net_worth_projection,
    monte_carlo_to_histogram,
    retirement_portfolio,
    run_historical_simulation,
    run_monte_carlo_simulation,
    success_rate_description,
)


def main(
    params: ScenarioParameters,
    num_simulations: int = 1000,
    seed: Optional[int] = None,
    bins: int = 10,
):
    """Run all simulators for a scenario and print the results."""
    projection = create_net_worth_projection(params)
    initial_portfolio = retirement_portfolio(params)

    print("=" * 80)
    print("DETERMINISTIC PROJECTION")
    print("=" * 80)
    for point in projection[::5]:
        print(f"  {point.year_label}  age {point.age:>3}  {point.phase:<12} ${point.net_worth:>14,.0f}")
    print(f"\nProjected portfolio at retirement (age {params.retirement_age}): ${initial_portfolio:,.0f}")

    source = RandomSource(seed)
    mc_config = MonteCarloConfig.from_scenario(params, initial_portfolio, num_simulations=num_simulations)
    mc_result = run_monte_carlo_simulation(mc_config, source)

    historical_result = None
    if len(SAMPLE_HISTORICAL_DATA) >= params.retirement_years:
        historical_result = run_historical_simulation(
            HistoricalSimulationConfig(
                initial_portfolio=initial_portfolio,
                annual_withdrawal=mc_config.annual_withdrawal or 0.0,
                historical_data=list(SAMPLE_HISTORICAL_DATA),
                num_simulations=num_simulations,
                retirement_years=params.retirement_years,
                stock_allocation=params.portfolio_stock_pct,
            ),
            source,
            strategy=build_strategy(
                mc_config.withdrawal_strategy,
                annual_withdrawal=mc_config.annual_withdrawal,
                withdrawal_rate=mc_config.withdrawal_rate,
                guardrails_config=mc_config.guardrails_config,
            ),
        )

    results = {'Monte Carlo': mc_result}
    if historical_result is not None:
        results['Historical'] = historical_result

    print("\n" + "=" * 80)
    print(f"SIMULATION SUMMARY ({params.withdrawal_strategy.value} withdrawal, {num_simulations} runs)")
    print("=" * 80)
    print(compute_summary_stats(results).round(2).to_string())
    print(f"\nMonte Carlo: {success_rate_description(mc_result.success_rate)}")
    if historical_result is not None:
        print(f"Worst historical start year: {historical_result.worst_case_start_year}")
        print(f"Best historical start year:  {historical_result.best_case_start_year}")

    print("\n" + "-" * 80)
    print("MONTE CARLO FINAL PORTFOLIO DISTRIBUTION")
    print("-" * 80)
    for histogram_bin in monte_carlo_to_histogram(mc_result, bin_count=bins):
        bar = '#' * int(round(histogram_bin.percentage / 2))
        print(f"  {histogram_bin.bin_label:>22} {histogram_bin.count:>6}  {bar}")

    return results


if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(
        description='Project a FIRE scenario and estimate its success rate'
    )
    parser.add_argument('--current-age', type=int, default=35,
                        help='Current age (default: 35)')
    parser.add_argument('--retirement-age', type=int, default=55,
                        help='Retirement age (default: 55)')
    parser.add_argument('--life-expectancy', type=int, default=90,
                        help='Planning horizon end (default: 90)')
    parser.add_argument('--current-savings', type=float, default=250_000,
                        help='Current portfolio value (default: 250000)')
    parser.add_argument('--annual-contribution', type=float, default=40_000,
                        help='Annual savings until retirement (default: 40000)')
    parser.add_argument('--annual-expenses', type=float, default=60_000,
                        help="Retirement spending in today's dollars (default: 60000)")
    parser.add_argument('--stock-pct', type=float, default=0.6,
                        help='Stock allocation, remainder bonds (default: 0.6)')
    parser.add_argument('--return-mean', type=float, default=0.05,
                        help='Expected stock return (default: 0.05 = 5%%)')
    parser.add_argument('--return-stdev', type=float, default=0.12,
                        help='Stock return volatility (default: 0.12 = 12%%)')
    parser.add_argument('--inflation', type=float, default=0.02,
                        help='Inflation rate (default: 0.02 = 2%%)')
    parser.add_argument('--strategy', default='fixed',
                        choices=['fixed', 'percentage', 'guardrails'],
                        help='Withdrawal strategy (default: fixed)')
    parser.add_argument('-n', '--num-simulations', type=int, default=1000,
                        help='Number of simulation runs (default: 1000)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for reproducible runs')
    parser.add_argument('--bins', type=int, default=10,
                        help='Histogram bins (default: 10)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Log simulation progress')

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s %(message)s',
    )

    try:
        scenario = ScenarioParameters(
            current_age=args.current_age,
            retirement_age=args.retirement_age,
            life_expectancy=args.life_expectancy,
            current_savings=args.current_savings,
            annual_contribution=args.annual_contribution,
            annual_expenses=args.annual_expenses,
            portfolio_stock_pct=args.stock_pct,
            expected_return_mean=args.return_mean,
            expected_return_stdev=args.return_stdev,
            inflation_rate=args.inflation,
            withdrawal_strategy=args.strategy,
        )
    except PreconditionError as exc:
        parser.error(str(exc))

    main(
        scenario,
        num_simulations=args.num_simulations,
        seed=args.seed,
        bins=args.bins,
    )
