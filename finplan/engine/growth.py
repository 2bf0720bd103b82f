from __future__ import annotations

from typing import AbstractSet, Dict, Iterable, List, Sequence

from ..data_model import AccountInput, CapitalExpenseInput, NON_RETIREMENT
from .rounding import round_pct

# Floor for annual returns: a total loss.
TOTAL_LOSS_PCT = -100.0


def monthly_rate(annual_return_pct: float) -> float:
    """Monthly rate equivalent to a net annual rate: (1 + r)^(1/12) - 1."""
    annual_return_pct = max(annual_return_pct, TOTAL_LOSS_PCT)
    return (1 + annual_return_pct / 100) ** (1 / 12) - 1


def compound_growth(opening_value: float, monthly_contribution: float, annual_return_pct: float) -> float:
    """Balance after twelve months of compounding with end-of-month contributions.

        FV = PV * (1 + m)^12 + PMT * ((1 + m)^12 - 1) / m

    At a total loss (m = -1) only the final month's contribution survives.
    """
    if annual_return_pct == 0:
        return opening_value + monthly_contribution * 12
    rate_m = monthly_rate(annual_return_pct)
    growth_factor = (1 + rate_m) ** 12
    return opening_value * growth_factor + monthly_contribution * ((growth_factor - 1) / rate_m)


def appreciate(value: float, annual_return_pct: float) -> float:
    return value * (1 + max(annual_return_pct, TOTAL_LOSS_PCT) / 100)


def capital_expense_for_year(expense: CapitalExpenseInput, year: int) -> float:
    if year < expense.start_year:
        return 0.0
    if not expense.is_recurring():
        return expense.amount if year == expense.start_year else 0.0
    diff = year - expense.start_year
    if diff % expense.recurrence_interval_years != 0:
        return 0.0
    if diff // expense.recurrence_interval_years >= expense.recurrence_count:
        return 0.0
    return expense.amount


def distribute_to_accounts(
    amount: float,
    accounts: Sequence[AccountInput],
    account_values: Dict[str, float],
    sold_properties: AbstractSet[str],
    exclude_ids: AbstractSet[str] | None = None,
    cost_basis: Dict[str, float] | None = None,
) -> None:
    """Add ``amount`` to ``account_values`` in place.

    Non-retirement accounts take it in proportion to their balances. When
    there are none, every other non-property account gets an equal share.
    The cash is already taxed, so when ``cost_basis`` is given each
    non-retirement share is added to that account's basis too.
    """
    if amount <= 0:
        return
    skip = exclude_ids or set()

    targets: List[AccountInput] = [
        a
        for a in accounts
        if a.account_type == NON_RETIREMENT and a.account_id not in sold_properties and a.account_id not in skip
    ]
    if targets:
        total_value = sum(account_values[a.account_id] for a in targets)
        for a in targets:
            weight = account_values[a.account_id] / total_value if total_value > 0 else 1 / len(targets)
            account_values[a.account_id] += amount * weight
            if cost_basis is not None:
                cost_basis[a.account_id] = cost_basis.get(a.account_id, 0.0) + amount * weight
        return

    fallback = [
        a
        for a in accounts
        if not a.is_property() and a.account_id not in sold_properties and a.account_id not in skip
    ]
    if fallback:
        share = amount / len(fallback)
        for a in fallback:
            account_values[a.account_id] += share


def weighted_average_return(accounts: Iterable[AccountInput]) -> float:
    accounts = list(accounts)
    total_value = sum(a.current_value for a in accounts)
    if total_value == 0:
        return 0.0
    weighted = sum(a.annual_return_pct * (a.current_value / total_value) for a in accounts)
    return round_pct(weighted)
