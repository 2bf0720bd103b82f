from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from types import MappingProxyType
from typing import Any, Dict, Mapping, Tuple

LEGACY_FIELDS = (
    "year",
    "total",
    "accounts",
    "total_income",
    "total_expenses",
    "capital_expense_total",
    "net_cash_flow",
    "property_sale_proceeds",
    "rental_income",
    "joint_rental_income",
)


@dataclass(frozen=True)
class MemberYearTax:
    member_id: str
    name: str
    age: int
    gross_income: int
    taxable_income: int
    net_tax: int
    effective_rate: float
    marginal_rate: float
    monthly_tax: int
    cgt_payable: int = 0
    capital_gains: int = 0


@dataclass(frozen=True)
class AccountYearDetail:
    account_id: str
    account_name: str
    account_type: str
    opening: int
    contributions: int
    growth: int
    withdrawal: int
    closing: int


@dataclass(frozen=True)
class WithdrawalDetail:
    account_id: str
    account_name: str
    account_type: str
    amount: float
    # Retirement-type withdrawals add to the owner's taxable income.
    is_taxable: bool
    capital_gain: float = 0.0


@dataclass(frozen=True)
class ProjectionYearResult:
    """One simulated year. Safe to share: nothing here aliases engine state."""

    year: int
    total: int
    accounts: Mapping[str, float]
    total_income: int
    total_expenses: int
    capital_expense_total: int
    net_cash_flow: int
    gross_cash_flow: int
    property_sale_proceeds: int
    rental_income: int
    joint_rental_income: int
    member_tax: Tuple[MemberYearTax, ...] = ()
    household_tax: int = 0
    household_cgt: int = 0
    property_sale_cgt: int = 0
    account_details: Tuple[AccountYearDetail, ...] = ()
    withdrawal_details: Tuple[WithdrawalDetail, ...] = ()
    deficit: int = 0
    surplus_reinvested: int = 0
    is_fully_retired: bool = False
    is_partially_retired: bool = False
    retired_member_ids: Tuple[str, ...] = ()
    depleted_account_ids: Tuple[str, ...] = ()
    portfolio_depleted: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "accounts", MappingProxyType(dict(self.accounts)))

    def account_detail(self, account_id: str) -> AccountYearDetail | None:
        for detail in self.account_details:
            if detail.account_id == account_id:
                return detail
        return None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "accounts":
                payload[f.name] = dict(value)
            elif isinstance(value, tuple):
                payload[f.name] = [asdict(item) if hasattr(item, "__dataclass_fields__") else item for item in value]
            else:
                payload[f.name] = value
        return payload

    def to_legacy_dict(self) -> Dict[str, Any]:
        return {name: (dict(self.accounts) if name == "accounts" else getattr(self, name)) for name in LEGACY_FIELDS}
