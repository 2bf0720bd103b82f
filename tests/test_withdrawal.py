import logging

import pytest

from finplan.data_model import AccountInput, WithdrawalOrderEntry
from finplan.engine import withdrawal
from finplan.engine.state import ExclusionLedger, SimulationState
from finplan.engine.withdrawal import (
    MAX_ITERATIONS,
    build_withdrawal_order,
    solve_withdrawals,
)


def _account(account_id, account_type, value, **kwargs):
    return AccountInput(
        account_id=account_id,
        account_name=account_id.upper(),
        account_type=account_type,
        current_value=value,
        member_id="m1",
        **kwargs,
    )


def test_zero_deficit_is_a_no_op():
    accounts = [_account("ra", "retirement", 500000)]
    state = SimulationState.initial(accounts)

    result = solve_withdrawals(0, state, accounts)

    assert result.total_withdrawn == 0
    assert result.withdrawals == ()
    assert result.converged
    assert result.state.account_values == {"ra": 500000}


def test_default_order_draws_tax_free_first():
    accounts = [
        _account("ra", "retirement", 100),
        _account("home", "property", 100),
        _account("shares", "non-retirement", 100),
        _account("tfsa", "tax-free", 100),
        _account("empty", "tax-free", 0),
    ]
    state = SimulationState.initial(accounts)

    ordered = build_withdrawal_order(accounts, [], state)

    assert [a.account_id for a in ordered] == ["tfsa", "shares", "home", "ra"]


def test_custom_order_puts_unlisted_accounts_last():
    accounts = [
        _account("tfsa", "tax-free", 100),
        _account("ra", "retirement", 100),
        _account("shares", "non-retirement", 100),
    ]
    state = SimulationState.initial(accounts)
    order = [WithdrawalOrderEntry("ra", 1), WithdrawalOrderEntry("tfsa", 2)]

    ordered = build_withdrawal_order(accounts, order, state)

    assert [a.account_id for a in ordered] == ["ra", "tfsa", "shares"]


def test_sold_accounts_are_never_drawn():
    accounts = [_account("home", "property", 1000), _account("tfsa", "tax-free", 50)]
    state = SimulationState.initial(accounts)
    state.sold_properties.add("home")

    ordered = build_withdrawal_order(accounts, [], state)

    assert [a.account_id for a in ordered] == ["tfsa"]


def test_tax_free_withdrawal_adds_no_tax():
    accounts = [_account("tfsa", "tax-free", 100000)]
    state = SimulationState.initial(accounts)

    result = solve_withdrawals(
        40000,
        state,
        accounts,
        base_taxable_by_member={"m1": 300000},
        member_ages={"m1": 66},
        account_owners={"tfsa": "m1"},
    )

    assert result.total_withdrawn == 40000
    assert result.additional_tax == 0
    assert result.iterations == 1
    assert result.state.value("tfsa") == 60000


def test_retirement_withdrawal_is_grossed_up_for_income_tax():
    accounts = [_account("ra", "retirement", 500000)]
    state = SimulationState.initial(accounts)

    result = solve_withdrawals(
        50000,
        state,
        accounts,
        base_taxable_by_member={"m1": 300000},
        member_ages={"m1": 66},
        account_owners={"ra": "m1"},
    )

    assert result.converged
    assert result.iterations == 5
    assert result.additional_tax == 17547
    assert result.total_withdrawn == pytest.approx(67487)
    assert result.total_withdrawn > 50000
    assert result.state.value("ra") == pytest.approx(500000 - result.total_withdrawn)
    assert result.withdrawals[0].is_taxable
    # caller's state is untouched
    assert state.value("ra") == 500000


def test_withdrawal_without_owner_adds_no_tax():
    accounts = [_account("ra", "retirement", 500000)]
    state = SimulationState.initial(accounts)

    result = solve_withdrawals(50000, state, accounts, base_taxable_by_member={"m1": 300000})

    assert result.additional_tax == 0
    assert result.total_withdrawn == 50000


def test_non_retirement_withdrawal_pays_cgt_and_reduces_basis():
    accounts = [_account("shares", "non-retirement", 200000, tax_base_cost=100000)]
    state = SimulationState.initial(accounts)

    result = solve_withdrawals(
        150000,
        state,
        accounts,
        base_taxable_by_member={"m1": 0},
        member_ages={"m1": 40},
        account_owners={"shares": "m1"},
    )

    assert result.converged
    assert result.additional_tax == 0
    assert result.additional_cgt == 2611
    assert result.exclusion_used == {"m1": 40000}
    assert result.total_withdrawn == pytest.approx(152520)
    assert result.withdrawals[0].capital_gain == pytest.approx(76260)
    assert result.state.cost_basis["shares"] == pytest.approx(23740)
    assert state.cost_basis["shares"] == 100000


def test_solver_reads_remaining_exclusion_from_ledger():
    accounts = [_account("shares", "non-retirement", 200000, tax_base_cost=100000)]
    state = SimulationState.initial(accounts)
    ledger = ExclusionLedger(40000)
    ledger.consume("m1", 40000)

    result = solve_withdrawals(
        100000,
        state,
        accounts,
        member_ages={"m1": 40},
        account_owners={"shares": "m1"},
        exclusion_ledger=ledger,
    )

    assert result.exclusion_used == {"m1": 0}
    assert result.additional_cgt > 0
    # the solver reports usage but leaves the ledger to the caller
    assert ledger.used_by("m1") == 40000


def test_portfolio_depletion_stops_early():
    accounts = [_account("ra", "retirement", 500000)]
    state = SimulationState.initial(accounts)

    result = solve_withdrawals(
        600000,
        state,
        accounts,
        base_taxable_by_member={"m1": 300000},
        member_ages={"m1": 66},
        account_owners={"ra": "m1"},
    )

    assert result.portfolio_depleted
    assert not result.converged
    assert result.iterations == 1
    assert result.total_withdrawn == 500000
    assert result.depleted_account_ids == ("ra",)
    assert result.state.value("ra") == 0


def test_iterations_never_exceed_cap():
    accounts = [_account("ra", "retirement", 10_000_000)]
    state = SimulationState.initial(accounts)

    result = solve_withdrawals(
        2_000_000,
        state,
        accounts,
        base_taxable_by_member={"m1": 0},
        member_ages={"m1": 70},
        account_owners={"ra": "m1"},
    )

    assert 1 <= result.iterations <= MAX_ITERATIONS


def test_draws_across_accounts_in_order():
    accounts = [
        _account("tfsa", "tax-free", 30000),
        _account("ra", "retirement", 500000),
    ]
    state = SimulationState.initial(accounts)

    result = solve_withdrawals(20000 + 30000, state, accounts)

    assert [w.account_id for w in result.withdrawals] == ["tfsa", "ra"]
    assert [w.amount for w in result.withdrawals] == [30000, 20000]
    assert result.depleted_account_ids == ("tfsa",)
    assert not result.portfolio_depleted


def test_exclusion_ledger_remaining():
    ledger = ExclusionLedger(40000)
    ledger.consume("m1", 25000)
    ledger.consume("m1", 0)

    assert ledger.remaining("m1") == 15000
    assert ledger.remaining("m2") == 40000
    ledger.consume("m1", 30000)
    assert ledger.remaining("m1") == 0


def test_solver_stops_at_iteration_cap_without_converging(monkeypatch, caplog):
    monkeypatch.setattr(withdrawal, "CONVERGENCE_THRESHOLD", 0)
    accounts = [_account("ra", "retirement", 500000)]
    state = SimulationState.initial(accounts)

    with caplog.at_level(logging.WARNING, logger="finplan.engine.withdrawal"):
        result = solve_withdrawals(
            50000,
            state,
            accounts,
            base_taxable_by_member={"m1": 300000},
            member_ages={"m1": 66},
            account_owners={"ra": "m1"},
        )

    assert not result.converged
    assert not result.portfolio_depleted
    assert result.iterations == MAX_ITERATIONS
    assert result.total_withdrawn > 50000
    assert "without converging" in caplog.text
