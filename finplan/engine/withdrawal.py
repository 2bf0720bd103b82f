"""Withdrawal solver for retirement-year cash shortfalls.

Covering a deficit from a retirement account adds taxable income, and
selling from a non-retirement account realises a capital gain. Both raise
the tax bill, which raises the deficit. The solver finds the fixed point by
re-running the withdrawal from the same starting balances with an updated
tax estimate until the estimate moves by less than
``CONVERGENCE_THRESHOLD`` or ``MAX_ITERATIONS`` is reached.

Convergence is quick because the top marginal rate is 45%: each correction
is at most 45% of the previous one.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Tuple

from ..data_model import DEFAULT_WITHDRAWAL_ORDER, AccountInput, WithdrawalDetail, WithdrawalOrderEntry
from ..data_model.accounts.constants import UNKNOWN_TYPE_PRIORITY, UNLISTED_ACCOUNT_PRIORITY
from .rounding import round_amount
from .state import ExclusionLedger, SimulationState
from .tax import calculate_cgt, calculate_income_tax, inflate_cgt_exclusion

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 10
CONVERGENCE_THRESHOLD = 100  # currency units
DEFAULT_MEMBER_AGE = 65


@dataclass(frozen=True)
class WithdrawalResult:
    withdrawals: Tuple[WithdrawalDetail, ...]
    additional_tax: int
    additional_cgt: int
    total_withdrawn: float
    depleted_account_ids: Tuple[str, ...]
    portfolio_depleted: bool
    iterations: int
    converged: bool
    # Annual CGT exclusion consumed by the withdrawals, per member.
    exclusion_used: Mapping[str, float] = field(default_factory=dict)
    # Balances after the withdrawals; the caller adopts this as its new state.
    state: SimulationState | None = None


def build_withdrawal_order(
    accounts: Sequence[AccountInput],
    withdrawal_order: Sequence[WithdrawalOrderEntry],
    state: SimulationState,
) -> List[AccountInput]:
    """Accounts with a positive, unsold balance in the order they are drawn."""
    available = [a for a in accounts if state.value(a.account_id) > 0 and not state.is_sold(a.account_id)]

    if withdrawal_order:
        priorities = {entry.account_id: entry.priority for entry in withdrawal_order}
        return sorted(available, key=lambda a: priorities.get(a.account_id, UNLISTED_ACCOUNT_PRIORITY))

    return sorted(available, key=lambda a: DEFAULT_WITHDRAWAL_ORDER.get(a.account_type, UNKNOWN_TYPE_PRIORITY))


def _withdraw_pass(
    amount: float,
    ordered_accounts: Sequence[AccountInput],
    state: SimulationState,
) -> Tuple[float, List[WithdrawalDetail]]:
    remaining = amount
    details: List[WithdrawalDetail] = []

    for acc in ordered_accounts:
        if remaining <= 0:
            break
        available = state.value(acc.account_id)
        if available <= 0:
            continue

        take = min(remaining, available)
        gain = 0.0
        if acc.is_non_retirement():
            basis = state.cost_basis.get(acc.account_id, 0.0)
            gain = take * max(0.0, 1 - basis / available)
            state.cost_basis[acc.account_id] = basis - basis * (take / available)

        state.account_values[acc.account_id] = available - take
        remaining -= take
        details.append(
            WithdrawalDetail(
                account_id=acc.account_id,
                account_name=acc.account_name,
                account_type=acc.account_type,
                amount=take,
                is_taxable=acc.is_retirement(),
                capital_gain=gain,
            )
        )

    return amount - remaining, details


def _additional_taxes(
    details: Sequence[WithdrawalDetail],
    account_owners: Mapping[str, str],
    base_taxable_by_member: Mapping[str, float],
    member_ages: Mapping[str, int],
    years_from_base: float,
    bracket_inflation_rate: float,
    ledger: ExclusionLedger,
) -> Tuple[int, int, Dict[str, float]]:
    taxable_by_member: Dict[str, float] = {}
    gains_by_member: Dict[str, float] = {}
    for detail in details:
        owner = account_owners.get(detail.account_id)
        if not owner:
            continue
        if detail.is_taxable:
            taxable_by_member[owner] = taxable_by_member.get(owner, 0.0) + detail.amount
        if detail.capital_gain > 0:
            gains_by_member[owner] = gains_by_member.get(owner, 0.0) + detail.capital_gain

    additional_tax = 0
    additional_cgt = 0
    exclusion_used: Dict[str, float] = {}
    for member_id in sorted(set(taxable_by_member) | set(gains_by_member)):
        base_taxable = base_taxable_by_member.get(member_id, 0.0)
        age = member_ages.get(member_id, DEFAULT_MEMBER_AGE)
        base_tax = calculate_income_tax(base_taxable, age, years_from_base, bracket_inflation_rate)
        new_tax = calculate_income_tax(
            base_taxable + taxable_by_member.get(member_id, 0.0),
            age,
            years_from_base,
            bracket_inflation_rate,
        )
        additional_tax += new_tax.net_tax - base_tax.net_tax

        gain = gains_by_member.get(member_id, 0.0)
        if gain > 0:
            cgt = calculate_cgt(gain, new_tax.marginal_rate, remaining_annual_exclusion=ledger.remaining(member_id))
            additional_cgt += cgt.tax
            exclusion_used[member_id] = cgt.exclusion_used

    return additional_tax, additional_cgt, exclusion_used


def solve_withdrawals(
    deficit: float,
    state: SimulationState,
    accounts: Sequence[AccountInput],
    *,
    withdrawal_order: Sequence[WithdrawalOrderEntry] = (),
    base_taxable_by_member: Mapping[str, float] | None = None,
    member_ages: Mapping[str, int] | None = None,
    years_from_base: float = 0,
    bracket_inflation_rate_pct: float = 2.0,
    account_owners: Mapping[str, str] | None = None,
    exclusion_ledger: ExclusionLedger | None = None,
) -> WithdrawalResult:
    """Withdraw enough to cover ``deficit`` plus the tax the withdrawal causes.

    ``state`` is not modified; the post-withdrawal balances are returned in
    ``WithdrawalResult.state``. ``exclusion_ledger`` is read, not updated:
    the caller applies ``WithdrawalResult.exclusion_used`` to it.
    """
    if deficit <= 0:
        return WithdrawalResult(
            withdrawals=(),
            additional_tax=0,
            additional_cgt=0,
            total_withdrawn=0.0,
            depleted_account_ids=(),
            portfolio_depleted=False,
            iterations=0,
            converged=True,
            state=state.copy(),
        )

    base_taxable_by_member = base_taxable_by_member or {}
    member_ages = member_ages or {}
    account_owners = account_owners or {}
    bracket_inflation_rate = bracket_inflation_rate_pct / 100
    if exclusion_ledger is None:
        exclusion_ledger = ExclusionLedger(inflate_cgt_exclusion(years_from_base, bracket_inflation_rate))

    additional_tax = 0
    additional_cgt = 0
    exclusion_used: Dict[str, float] = {}
    details: List[WithdrawalDetail] = []
    working = state.copy()
    portfolio_depleted = False
    converged = False
    iterations = 0

    for iterations in range(1, MAX_ITERATIONS + 1):
        # Start over from the pre-withdrawal balances every time.
        working = state.copy()
        ordered = build_withdrawal_order(accounts, withdrawal_order, working)
        needed = deficit + additional_tax + additional_cgt
        withdrawn, details = _withdraw_pass(needed, ordered, working)
        portfolio_depleted = withdrawn < needed

        new_tax, new_cgt, exclusion_used = _additional_taxes(
            details,
            account_owners,
            base_taxable_by_member,
            member_ages,
            years_from_base,
            bracket_inflation_rate,
            exclusion_ledger,
        )
        delta = abs((new_tax + new_cgt) - (additional_tax + additional_cgt))
        additional_tax, additional_cgt = new_tax, new_cgt
        logger.debug(
            "withdrawal iteration %d: needed=%.2f withdrawn=%.2f tax=%d cgt=%d delta=%.2f",
            iterations,
            needed,
            withdrawn,
            additional_tax,
            additional_cgt,
            delta,
        )

        if delta < CONVERGENCE_THRESHOLD:
            converged = True
            break
        if portfolio_depleted:
            break
    else:
        logger.warning(
            "withdrawal solver stopped after %d iterations without converging (deficit=%.2f)",
            MAX_ITERATIONS,
            deficit,
        )

    if portfolio_depleted:
        logger.info("portfolio depleted: short by %.2f", needed - withdrawn)

    depleted = tuple(
        acc.account_id
        for acc in accounts
        if state.value(acc.account_id) > 0
        and working.value(acc.account_id) <= 0
        and not working.is_sold(acc.account_id)
    )

    return WithdrawalResult(
        withdrawals=tuple(details),
        additional_tax=round_amount(additional_tax),
        additional_cgt=round_amount(additional_cgt),
        total_withdrawn=sum(d.amount for d in details),
        depleted_account_ids=depleted,
        portfolio_depleted=portfolio_depleted,
        iterations=iterations,
        converged=converged,
        exclusion_used=exclusion_used,
        state=working,
    )
