from __future__ import annotations

from typing import Iterable, Mapping

import pandas as pd

from ..data_model import ProjectionYearResult

REQUIRED_COLUMNS = {"Scenario", "Year", "Total"}

SUMMARY_COLUMNS = {
    "total": "Total",
    "total_income": "TotalIncome",
    "total_expenses": "TotalExpenses",
    "capital_expense_total": "CapitalExpenses",
    "gross_cash_flow": "GrossCashFlow",
    "net_cash_flow": "NetCashFlow",
    "household_tax": "HouseholdTax",
    "household_cgt": "HouseholdCGT",
    "deficit": "Deficit",
    "surplus_reinvested": "SurplusReinvested",
    "portfolio_depleted": "PortfolioDepleted",
}


def _prepare(df: pd.DataFrame) -> pd.DataFrame:
    missing = REQUIRED_COLUMNS.difference(df.columns)
    if missing:
        raise KeyError(f"Missing required columns: {', '.join(sorted(missing))}")
    return df.sort_values(["Scenario", "Year"]).copy()


def results_to_frame(results: Iterable[ProjectionYearResult], scenario: str = "Baseline") -> pd.DataFrame:
    """One row per year: headline totals plus one column per account."""
    records = []
    for row in results:
        snapshot = {"Scenario": scenario, "Year": row.year}
        for field_name, label in SUMMARY_COLUMNS.items():
            snapshot[label] = getattr(row, field_name)
        for detail in row.account_details:
            snapshot[detail.account_name] = detail.closing
        records.append(snapshot)
    return pd.DataFrame(records)


def account_details_frame(results: Iterable[ProjectionYearResult]) -> pd.DataFrame:
    """Long-form opening/contribution/growth/withdrawal/closing per account-year."""
    records = [
        {"Year": row.year, **vars(detail)}
        for row in results
        for detail in row.account_details
    ]
    return pd.DataFrame(records)


def combine_scenarios(frames: Mapping[str, pd.DataFrame]) -> pd.DataFrame:
    if not frames:
        return pd.DataFrame()
    tagged = []
    for name, df in frames.items():
        df = df.copy()
        df["Scenario"] = name
        tagged.append(df)
    return _prepare(pd.concat(tagged, ignore_index=True))
