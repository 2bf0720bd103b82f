from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List

import pandas as pd

from ..data_model import HouseholdMode, ProjectionConfig, ProjectionYearResult
from .simulator import run_projection


@dataclass(frozen=True)
class ScenarioOverrides:
    """What-if adjustments applied on top of a baseline config. ``None`` keeps the baseline value."""

    annual_return_pct: float | None = None
    monthly_contribution: float | None = None
    inflation_rate_pct: float | None = None
    retirement_age: int | None = None
    expense_adjust_pct: float | None = None
    lump_sum: float | None = None

    def is_empty(self) -> bool:
        return all(value is None for value in vars(self).values())


@dataclass(frozen=True)
class ScenarioComparison:
    baseline: List[ProjectionYearResult]
    scenario: List[ProjectionYearResult]
    frame: pd.DataFrame
    baseline_retirement_year: int | None
    scenario_retirement_year: int | None
    baseline_at_retirement: int
    scenario_at_retirement: int

    @property
    def difference(self) -> int:
        return self.scenario_at_retirement - self.baseline_at_retirement


def apply_overrides(config: ProjectionConfig, overrides: ScenarioOverrides) -> ProjectionConfig:
    """Return a new config with ``overrides`` applied; ``config`` is left untouched."""
    total_portfolio = sum(acc.current_value for acc in config.accounts)
    lump_sum = overrides.lump_sum or 0.0

    accounts = []
    for acc in config.accounts:
        share = 0.0
        if lump_sum > 0:
            weight = acc.current_value / total_portfolio if total_portfolio > 0 else 1 / len(config.accounts)
            share = lump_sum * weight
        changes = {"current_value": acc.current_value + share}
        if overrides.monthly_contribution is not None and not acc.is_property():
            changes["monthly_contribution"] = overrides.monthly_contribution
        if overrides.annual_return_pct is not None:
            changes["annual_return_pct"] = overrides.annual_return_pct
        accounts.append(replace(acc, **changes))

    expenses = config.expenses
    if overrides.expense_adjust_pct is not None:
        factor = 1 + overrides.expense_adjust_pct / 100
        expenses = [replace(exp, monthly_amount=exp.monthly_amount * factor) for exp in config.expenses]

    mode = config.mode
    if overrides.retirement_age is not None and isinstance(mode, HouseholdMode):
        mode = replace(mode, members=tuple(replace(m, retirement_age=overrides.retirement_age) for m in mode.members))

    inflation = config.inflation_rate_pct if overrides.inflation_rate_pct is None else overrides.inflation_rate_pct
    return replace(config, accounts=accounts, expenses=list(expenses), mode=mode, inflation_rate_pct=inflation)


def _first_retirement_year(config: ProjectionConfig) -> int | None:
    years = [m.retirement_year for m in config.members]
    return min(years) if years else None


def _total_in(results: List[ProjectionYearResult], year: int | None) -> int:
    if year is None:
        return 0
    for row in results:
        if row.year == year:
            return row.total
    return 0


def compare_scenarios(config: ProjectionConfig, overrides: ScenarioOverrides) -> ScenarioComparison:
    """Run the baseline and the overridden config side by side."""
    scenario_config = apply_overrides(config, overrides)
    baseline = run_projection(config)
    scenario = run_projection(scenario_config)

    frame = pd.DataFrame(
        {
            "Year": [row.year for row in baseline],
            "Baseline": [row.total for row in baseline],
            "Scenario": [row.total for row in scenario],
        }
    )

    baseline_year = _first_retirement_year(config)
    scenario_year = _first_retirement_year(scenario_config)
    return ScenarioComparison(
        baseline=baseline,
        scenario=scenario,
        frame=frame,
        baseline_retirement_year=baseline_year,
        scenario_retirement_year=scenario_year,
        baseline_at_retirement=_total_in(baseline, baseline_year),
        scenario_at_retirement=_total_in(scenario, scenario_year),
    )
