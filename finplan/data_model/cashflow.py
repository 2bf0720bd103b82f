from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping

import pandas as pd

from .base import as_float, extract_value, optional_year

INCOME_CATEGORIES = ["salary", "rental", "pension", "other"]


def _active(start_year: int | None, end_year: int | None, year: int) -> bool:
    start_ok = start_year is None or year >= start_year
    end_ok = end_year is None or year <= end_year
    return start_ok and end_ok


@dataclass(frozen=True)
class IncomeInput:
    label: str
    monthly_amount: float
    taxable_pct: float = 100.0
    start_year: int | None = None
    end_year: int | None = None
    member_id: str | None = None
    member_name: str = ""
    category: str = "other"

    def active_in(self, year: int) -> bool:
        return _active(self.start_year, self.end_year, year)

    def annual_amount(self, inflation_factor: float = 1.0) -> float:
        return self.monthly_amount * 12 * inflation_factor


@dataclass(frozen=True)
class ExpenseInput:
    label: str
    monthly_amount: float
    start_year: int | None = None
    end_year: int | None = None

    def active_in(self, year: int) -> bool:
        return _active(self.start_year, self.end_year, year)

    def annual_amount(self, inflation_factor: float = 1.0) -> float:
        return self.monthly_amount * 12 * inflation_factor


@dataclass(frozen=True)
class CapitalExpenseInput:
    """A lump-sum cost; one-off when ``recurrence_interval_years`` is unset."""

    label: str
    amount: float
    start_year: int
    recurrence_interval_years: int | None = None
    recurrence_count: int = 1

    def is_recurring(self) -> bool:
        return bool(self.recurrence_interval_years) and self.recurrence_interval_years > 0


def records_to_income(rows: Iterable[Mapping[str, Any]]) -> List[IncomeInput]:
    items: List[IncomeInput] = []
    for row in rows or []:
        label = str(extract_value(row, "label", "name", default="")).strip()
        amount = as_float(extract_value(row, "monthlyAmount", "monthly_amount"))
        if amount == 0.0:
            continue
        member_id = extract_value(row, "memberId", "member_id")
        category = str(extract_value(row, "category", default="other")).lower()
        items.append(
            IncomeInput(
                label=label or "Income",
                monthly_amount=amount,
                taxable_pct=as_float(extract_value(row, "taxablePct", "taxable_pct"), 100.0),
                start_year=optional_year(extract_value(row, "startYear", "start_year")),
                end_year=optional_year(extract_value(row, "endYear", "end_year")),
                member_id=str(member_id) if member_id is not None else None,
                member_name=str(extract_value(row, "memberName", "member_name", default="")),
                category=category if category in INCOME_CATEGORIES else "other",
            )
        )
    return items


def records_to_expenses(rows: Iterable[Mapping[str, Any]]) -> List[ExpenseInput]:
    items: List[ExpenseInput] = []
    for row in rows or []:
        amount = as_float(extract_value(row, "monthlyAmount", "monthly_amount"))
        if amount == 0.0:
            continue
        items.append(
            ExpenseInput(
                label=str(extract_value(row, "label", "name", default="Expense")).strip() or "Expense",
                monthly_amount=amount,
                start_year=optional_year(extract_value(row, "startYear", "start_year")),
                end_year=optional_year(extract_value(row, "endYear", "end_year")),
            )
        )
    return items


def records_to_capital_expenses(rows: Iterable[Mapping[str, Any]]) -> List[CapitalExpenseInput]:
    items: List[CapitalExpenseInput] = []
    for row in rows or []:
        amount = as_float(extract_value(row, "amount"))
        start_year = optional_year(extract_value(row, "startYear", "start_year"))
        if amount == 0.0 or start_year is None:
            continue
        interval = optional_year(extract_value(row, "recurrenceIntervalYears", "recurrence_interval_years"))
        items.append(
            CapitalExpenseInput(
                label=str(extract_value(row, "label", "name", default="Capital expense")).strip(),
                amount=amount,
                start_year=start_year,
                recurrence_interval_years=interval,
                recurrence_count=int(as_float(extract_value(row, "recurrenceCount", "recurrence_count"), 1.0)),
            )
        )
    return items


def dataframe_to_income(df: pd.DataFrame) -> List[IncomeInput]:
    return records_to_income(df.to_dict("records"))


def dataframe_to_expenses(df: pd.DataFrame) -> List[ExpenseInput]:
    return records_to_expenses(df.to_dict("records"))
