"""Year-by-year household projection.

Each simulated year runs the same phases in a fixed order, because later
phases consume what earlier ones compute:

1. grow accounts and realise planned property sales
2. redistribute sale proceeds
3. aggregate income, expenses and capital expenses
4. tax each member (income tax plus CGT on property sales)
5. cover a retirement shortfall through the withdrawal solver
6. reinvest surplus cash if the household's policy says so
7. emit an immutable ``ProjectionYearResult``

``LegacyMode`` skips phases 4-6.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Set

from ..data_model import (
    AccountInput,
    AccountYearDetail,
    HouseholdMode,
    LegacyMode,
    MemberConfig,
    MemberYearTax,
    ProjectionConfig,
    ProjectionYearResult,
    WithdrawalDetail,
)
from .growth import appreciate, capital_expense_for_year, compound_growth, distribute_to_accounts
from .rounding import round_amount
from .state import ExclusionLedger, SimulationState
from .tax import (
    CGT_PRIMARY_RESIDENCE_EXCLUSION,
    IncomeTaxResult,
    calculate_cgt,
    calculate_income_tax,
    inflate_cgt_exclusion,
)
from .withdrawal import solve_withdrawals

logger = logging.getLogger(__name__)

# Used for a sale whose owner has no tax record this year.
FALLBACK_MARGINAL_RATE = 36.0


@dataclass(frozen=True)
class _SaleEvent:
    account_id: str
    capital_gain: float
    member_id: str | None
    is_primary_residence: bool


@dataclass
class _GrowthOutcome:
    contributions: Dict[str, float] = field(default_factory=dict)
    sale_proceeds: float = 0.0
    sales: List[_SaleEvent] = field(default_factory=list)


@dataclass
class _YearCashflows:
    rental_income: float = 0.0
    joint_rental_income: float = 0.0
    total_income: float = 0.0
    total_expenses: float = 0.0
    capital_expense_total: float = 0.0

    @property
    def gross_cash_flow(self) -> float:
        return self.total_income - self.total_expenses - self.capital_expense_total


def _account_owners(accounts: Sequence[AccountInput], members: Sequence[MemberConfig]) -> Dict[str, str]:
    name_to_id = {m.name: m.member_id for m in members}
    owners: Dict[str, str] = {}
    for acc in accounts:
        owner = acc.member_id or name_to_id.get(acc.member_name)
        if owner:
            owners[acc.account_id] = owner
    return owners


def _grow_accounts(
    accounts: Sequence[AccountInput],
    state: SimulationState,
    year: int,
    retired_ids: Set[str],
    owners: Dict[str, str],
) -> _GrowthOutcome:
    outcome = _GrowthOutcome()
    for acc in accounts:
        account_id = acc.account_id
        if state.is_sold(account_id):
            outcome.contributions[account_id] = 0.0
            continue

        if acc.is_property():
            value = appreciate(state.value(account_id), acc.annual_return_pct)
            state.account_values[account_id] = value
            outcome.contributions[account_id] = 0.0
            if acc.planned_sale_year and year == acc.planned_sale_year:
                gain = max(0.0, value - state.cost_basis.get(account_id, 0.0))
                outcome.sales.append(
                    _SaleEvent(account_id, gain, owners.get(account_id), acc.is_primary_residence())
                )
                outcome.sale_proceeds += value * (acc.sale_inclusion_pct / 100)
                state.mark_sold(account_id)
                logger.debug("%d: sold %s for %.2f (gain %.2f)", year, account_id, value, gain)
            continue

        contribution = acc.monthly_contribution
        if owners.get(account_id) in retired_ids:
            contribution = 0.0
        outcome.contributions[account_id] = contribution * 12
        state.account_values[account_id] = compound_growth(state.value(account_id), contribution, acc.annual_return_pct)
        if acc.is_non_retirement():
            state.cost_basis[account_id] = state.cost_basis.get(account_id, 0.0) + contribution * 12
    return outcome


def _aggregate_cashflows(
    config: ProjectionConfig,
    state: SimulationState,
    year: int,
    inflation_factor: float,
) -> _YearCashflows:
    flows = _YearCashflows()
    for acc in config.accounts:
        if state.is_sold(acc.account_id) or not acc.rental_active(year):
            continue
        amount = acc.rental_income_monthly * 12 * inflation_factor
        flows.rental_income += amount
        if acc.is_joint:
            flows.joint_rental_income += amount

    flows.total_income = flows.rental_income + sum(
        inc.annual_amount(inflation_factor) for inc in config.income if inc.active_in(year)
    )
    flows.total_expenses = sum(exp.annual_amount(inflation_factor) for exp in config.expenses if exp.active_in(year))
    flows.capital_expense_total = sum(
        capital_expense_for_year(ce, year) * inflation_factor for ce in config.capital_expenses
    )
    return flows


def _member_income(
    config: ProjectionConfig,
    members: Sequence[MemberConfig],
    state: SimulationState,
    year: int,
    inflation_factor: float,
) -> tuple[Dict[str, float], Dict[str, float]]:
    gross = {m.member_id: 0.0 for m in members}
    taxable = {m.member_id: 0.0 for m in members}
    name_to_id = {m.name: m.member_id for m in members}

    for inc in config.income:
        if not inc.active_in(year):
            continue
        member_id = inc.member_id or name_to_id.get(inc.member_name)
        if member_id in gross:
            annual = inc.annual_amount(inflation_factor)
            gross[member_id] += annual
            taxable[member_id] += annual * (inc.taxable_pct / 100)

    for acc in config.accounts:
        if state.is_sold(acc.account_id) or not acc.rental_active(year):
            continue
        annual = acc.rental_income_monthly * 12 * inflation_factor
        if acc.is_joint and len(members) > 1:
            share = annual / len(members)
            for m in members:
                gross[m.member_id] += share
                taxable[m.member_id] += share
            continue
        member_id = acc.member_id or name_to_id.get(acc.member_name)
        if member_id in gross:
            gross[member_id] += annual
            taxable[member_id] += annual

    return gross, taxable


def _account_details(
    accounts: Sequence[AccountInput],
    opening_values: Dict[str, float],
    state: SimulationState,
    contributions: Dict[str, float],
    withdrawals: Sequence[WithdrawalDetail],
) -> tuple[AccountYearDetail, ...]:
    withdrawn: Dict[str, float] = {}
    for w in withdrawals:
        withdrawn[w.account_id] = withdrawn.get(w.account_id, 0.0) + w.amount

    details = []
    for acc in accounts:
        opening = round_amount(opening_values[acc.account_id])
        closing = round_amount(state.value(acc.account_id))
        contributed = round_amount(contributions.get(acc.account_id, 0.0))
        withdrawal = round_amount(withdrawn.get(acc.account_id, 0.0))
        details.append(
            AccountYearDetail(
                account_id=acc.account_id,
                account_name=acc.account_name,
                account_type=acc.account_type,
                opening=opening,
                contributions=contributed,
                growth=closing - opening - contributed + withdrawal,
                withdrawal=withdrawal,
                closing=closing,
            )
        )
    return tuple(details)


def run_projection(config: ProjectionConfig) -> List[ProjectionYearResult]:
    """Project ``config`` from ``current_year`` to ``target_year`` inclusive."""
    household = config.mode if isinstance(config.mode, HouseholdMode) else None
    members: Sequence[MemberConfig] = household.members if household else ()
    settings = household.settings if household else None
    inflation_rate = config.inflation_rate_pct / 100

    logger.info(
        "projecting %d-%d: %s mode, %d accounts, %d members",
        config.current_year,
        config.target_year,
        "household" if household else "legacy",
        len(config.accounts),
        len(members),
    )

    state = SimulationState.initial(config.accounts)
    owners = _account_owners(config.accounts, members) if household else {}
    results: List[ProjectionYearResult] = []

    for year in range(config.current_year, config.target_year + 1):
        years_from_now = year - config.current_year
        years_from_base = max(0, years_from_now)
        inflation_factor = (1 + inflation_rate) ** years_from_now

        retired_ids = [m.member_id for m in members if m.is_retired_in(year)]
        retired_set = set(retired_ids)
        is_partially_retired = bool(retired_ids)
        is_fully_retired = household is not None and len(retired_ids) == len(members)

        opening_values = {acc.account_id: state.value(acc.account_id) for acc in config.accounts}

        # Phase 1-2: growth, property sales, proceeds.
        growth = _grow_accounts(config.accounts, state, year, retired_set, owners)
        if growth.sale_proceeds > 0:
            distribute_to_accounts(
                growth.sale_proceeds,
                config.accounts,
                state.account_values,
                state.sold_properties,
                cost_basis=state.cost_basis,
            )

        # Phase 3: cash flows.
        flows = _aggregate_cashflows(config, state, year, inflation_factor)
        gross_cash_flow = flows.gross_cash_flow
        net_cash_flow = gross_cash_flow

        member_tax: List[MemberYearTax] = []
        household_tax = 0.0
        property_sale_cgt = 0.0
        withdrawal_cgt = 0.0
        withdrawal_details: tuple[WithdrawalDetail, ...] = ()
        deficit = 0.0
        surplus_reinvested = 0.0
        portfolio_depleted = False

        if household is not None:
            # Phase 4: per-member income tax, then CGT on property sales.
            bracket_rate = settings.bracket_inflation_rate
            gross, taxable = _member_income(config, members, state, year, inflation_factor)
            tax_by_member: Dict[str, IncomeTaxResult] = {
                m.member_id: calculate_income_tax(taxable[m.member_id], m.age_in(year), years_from_base, bracket_rate)
                for m in members
            }

            ledger = ExclusionLedger(inflate_cgt_exclusion(years_from_now, bracket_rate))
            sale_cgt_by_member: Dict[str, float] = {}
            sale_gain_by_member: Dict[str, float] = {}
            for sale in growth.sales:
                if not sale.member_id:
                    continue
                tax_result = tax_by_member.get(sale.member_id)
                marginal = tax_result.marginal_rate if tax_result else FALLBACK_MARGINAL_RATE
                cgt = calculate_cgt(
                    sale.capital_gain,
                    marginal,
                    remaining_annual_exclusion=ledger.remaining(sale.member_id),
                    primary_residence_exclusion=CGT_PRIMARY_RESIDENCE_EXCLUSION if sale.is_primary_residence else 0.0,
                )
                ledger.consume(sale.member_id, cgt.exclusion_used)
                property_sale_cgt += cgt.tax
                sale_cgt_by_member[sale.member_id] = sale_cgt_by_member.get(sale.member_id, 0.0) + cgt.tax
                sale_gain_by_member[sale.member_id] = sale_gain_by_member.get(sale.member_id, 0.0) + sale.capital_gain

            for m in members:
                result = tax_by_member[m.member_id]
                member_tax.append(
                    MemberYearTax(
                        member_id=m.member_id,
                        name=m.name,
                        age=m.age_in(year),
                        gross_income=round_amount(gross[m.member_id]),
                        taxable_income=round_amount(taxable[m.member_id]),
                        net_tax=result.net_tax,
                        effective_rate=result.effective_rate,
                        marginal_rate=result.marginal_rate,
                        monthly_tax=result.monthly_tax,
                        cgt_payable=round_amount(sale_cgt_by_member.get(m.member_id, 0.0)),
                        capital_gains=round_amount(sale_gain_by_member.get(m.member_id, 0.0)),
                    )
                )

            household_tax = sum(t.net_tax for t in member_tax) + property_sale_cgt
            net_cash_flow = gross_cash_flow - household_tax

            # Phase 5: cover a retirement shortfall.
            if is_partially_retired and net_cash_flow < 0:
                deficit = -net_cash_flow
                solved = solve_withdrawals(
                    deficit,
                    state,
                    config.accounts,
                    withdrawal_order=household.withdrawal_order,
                    base_taxable_by_member={t.member_id: t.taxable_income for t in member_tax},
                    member_ages={t.member_id: t.age for t in member_tax},
                    years_from_base=years_from_base,
                    bracket_inflation_rate_pct=settings.bracket_inflation_rate_pct,
                    account_owners=owners,
                    exclusion_ledger=ledger,
                )
                state = solved.state
                for member_id, used in solved.exclusion_used.items():
                    ledger.consume(member_id, used)
                withdrawal_details = solved.withdrawals
                portfolio_depleted = solved.portfolio_depleted
                withdrawal_cgt = solved.additional_cgt
                extra_tax = solved.additional_tax + solved.additional_cgt
                if extra_tax > 0:
                    household_tax += extra_tax
                    net_cash_flow -= extra_tax

            # Phase 6: reinvest surplus.
            if net_cash_flow > 0 and settings.reinvests(is_partially_retired):
                surplus_reinvested = net_cash_flow
                distribute_to_accounts(
                    surplus_reinvested,
                    config.accounts,
                    state.account_values,
                    state.sold_properties,
                    cost_basis=state.cost_basis,
                )

        # Phase 7: emit.
        depleted_ids = tuple(
            acc.account_id
            for acc in config.accounts
            if state.value(acc.account_id) <= 0 and not state.is_sold(acc.account_id)
        )
        result = ProjectionYearResult(
            year=year,
            total=round_amount(state.total()),
            accounts=dict(state.account_values),
            total_income=round_amount(flows.total_income),
            total_expenses=round_amount(flows.total_expenses),
            capital_expense_total=round_amount(flows.capital_expense_total),
            net_cash_flow=round_amount(net_cash_flow),
            gross_cash_flow=round_amount(gross_cash_flow),
            property_sale_proceeds=round_amount(growth.sale_proceeds),
            rental_income=round_amount(flows.rental_income),
            joint_rental_income=round_amount(flows.joint_rental_income),
            member_tax=tuple(member_tax),
            household_tax=round_amount(household_tax),
            household_cgt=round_amount(property_sale_cgt + withdrawal_cgt),
            property_sale_cgt=round_amount(property_sale_cgt),
            account_details=_account_details(
                config.accounts, opening_values, state, growth.contributions, withdrawal_details
            ),
            withdrawal_details=withdrawal_details,
            deficit=round_amount(deficit),
            surplus_reinvested=round_amount(surplus_reinvested),
            is_fully_retired=is_fully_retired,
            is_partially_retired=is_partially_retired,
            retired_member_ids=tuple(retired_ids),
            depleted_account_ids=depleted_ids,
            portfolio_depleted=portfolio_depleted,
        )
        logger.debug(
            "%d: total=%d net_cash_flow=%d tax=%d withdrawals=%d",
            year,
            result.total,
            result.net_cash_flow,
            result.household_tax,
            len(withdrawal_details),
        )
        results.append(result)

    logger.info("projection finished: %d years", len(results))
    return results


def calculate_projections(
    accounts,
    income,
    expenses,
    capital_expenses,
    current_year: int,
    target_year: int,
    inflation_rate_pct: float,
) -> List[dict]:
    """Growth-only projection in the reduced legacy record shape."""
    config = ProjectionConfig(
        current_year=current_year,
        target_year=target_year,
        inflation_rate_pct=inflation_rate_pct,
        accounts=list(accounts),
        income=list(income),
        expenses=list(expenses),
        capital_expenses=list(capital_expenses),
        mode=LegacyMode(),
    )
    return [r.to_legacy_dict() for r in run_projection(config)]
