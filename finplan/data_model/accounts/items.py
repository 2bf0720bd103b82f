from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping

import pandas as pd

from ..base import as_bool, as_float, extract_value, optional_year
from .constants import CGT_ELIGIBLE_TYPES, NON_RETIREMENT, PRIMARY_RESIDENCE, PROPERTY, RETIREMENT


@dataclass(frozen=True)
class AccountInput:
    account_id: str
    account_name: str
    account_type: str
    current_value: float
    monthly_contribution: float = 0.0
    annual_return_pct: float = 0.0
    member_id: str | None = None
    member_name: str = ""
    is_joint: bool = False
    # Property-only
    rental_income_monthly: float = 0.0
    rental_start_year: int | None = None
    rental_end_year: int | None = None
    planned_sale_year: int | None = None
    sale_inclusion_pct: float = 100.0
    tax_base_cost: float | None = None
    cgt_exemption_type: str | None = None

    def is_property(self) -> bool:
        return self.account_type == PROPERTY

    def is_retirement(self) -> bool:
        return self.account_type == RETIREMENT

    def is_non_retirement(self) -> bool:
        return self.account_type == NON_RETIREMENT

    def is_cgt_eligible(self) -> bool:
        return self.account_type in CGT_ELIGIBLE_TYPES

    def is_primary_residence(self) -> bool:
        return self.cgt_exemption_type == PRIMARY_RESIDENCE

    def initial_cost_basis(self) -> float:
        if self.tax_base_cost is not None:
            return self.tax_base_cost
        return self.current_value * 0.5

    def rental_active(self, year: int) -> bool:
        if not self.is_property() or not self.rental_income_monthly:
            return False
        start_ok = self.rental_start_year is None or year >= self.rental_start_year
        end_ok = self.rental_end_year is None or year <= self.rental_end_year
        return start_ok and end_ok


def records_to_accounts(rows: Iterable[Mapping[str, Any]]) -> List[AccountInput]:
    items: List[AccountInput] = []
    for index, row in enumerate(rows or []):
        account_type = str(extract_value(row, "accountType", "account_type", default=NON_RETIREMENT)).lower()
        account_id = str(extract_value(row, "accountId", "account_id", "id", default=f"account-{index + 1}"))
        name = str(extract_value(row, "accountName", "account_name", "name", default=account_id)).strip()
        contribution = as_float(extract_value(row, "monthlyContribution", "monthly_contribution"))
        if account_type == PROPERTY:
            contribution = 0.0
        tax_base_cost = extract_value(row, "taxBaseCost", "tax_base_cost")
        member_id = extract_value(row, "memberId", "member_id")
        items.append(
            AccountInput(
                account_id=account_id,
                account_name=name or account_id,
                account_type=account_type,
                current_value=as_float(extract_value(row, "currentValue", "current_value")),
                monthly_contribution=contribution,
                annual_return_pct=as_float(extract_value(row, "annualReturnPct", "annual_return_pct")),
                member_id=str(member_id) if member_id is not None else None,
                member_name=str(extract_value(row, "memberName", "member_name", default="")),
                is_joint=as_bool(extract_value(row, "isJoint", "is_joint", default=False)),
                rental_income_monthly=as_float(extract_value(row, "rentalIncomeMonthly", "rental_income_monthly")),
                rental_start_year=optional_year(extract_value(row, "rentalStartYear", "rental_start_year")),
                rental_end_year=optional_year(extract_value(row, "rentalEndYear", "rental_end_year")),
                planned_sale_year=optional_year(extract_value(row, "plannedSaleYear", "planned_sale_year")),
                sale_inclusion_pct=as_float(extract_value(row, "saleInclusionPct", "sale_inclusion_pct"), 100.0),
                tax_base_cost=as_float(tax_base_cost) if tax_base_cost is not None else None,
                cgt_exemption_type=extract_value(row, "cgtExemptionType", "cgt_exemption_type"),
            )
        )
    return items


def dataframe_to_accounts(df: pd.DataFrame) -> List[AccountInput]:
    return records_to_accounts(df.to_dict("records"))
