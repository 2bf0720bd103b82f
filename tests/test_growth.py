import pytest

from finplan.data_model import AccountInput, CapitalExpenseInput
from finplan.engine.growth import (
    appreciate,
    capital_expense_for_year,
    compound_growth,
    distribute_to_accounts,
    weighted_average_return,
)


def _account(account_id, account_type="non-retirement", value=0.0, **kwargs):
    return AccountInput(
        account_id=account_id,
        account_name=account_id.title(),
        account_type=account_type,
        current_value=value,
        **kwargs,
    )


def test_zero_rate_is_linear():
    assert compound_growth(100000, 1000, 0) == 112000


def test_monthly_compounding_matches_annual_rate_without_contributions():
    assert compound_growth(100000, 0, 8) == pytest.approx(108000)


def test_contributions_use_annuity_formula():
    monthly = 1.08 ** (1 / 12) - 1
    factor = (1 + monthly) ** 12
    expected = 100000 * factor + 1000 * (factor - 1) / monthly

    assert compound_growth(100000, 1000, 8) == pytest.approx(expected)


@pytest.mark.parametrize("rate", [0.5, 3, 8, 15])
def test_positive_return_beats_raw_contributions(rate):
    assert compound_growth(50000, 2000, rate) > 50000 + 24000


def test_negative_return_shrinks_balance():
    assert compound_growth(100000, 0, -10) == pytest.approx(90000)


def test_property_appreciation_is_simple_annual():
    assert appreciate(1_000_000, 5) == pytest.approx(1_050_000)


def test_recurring_capital_expense_fires_on_schedule():
    car = CapitalExpenseInput("Car", 250000, 2030, recurrence_interval_years=5, recurrence_count=3)

    fired = {year for year in range(2020, 2061) if capital_expense_for_year(car, year) > 0}

    assert fired == {2030, 2035, 2040}
    assert capital_expense_for_year(car, 2035) == 250000


def test_one_off_capital_expense_fires_once():
    roof = CapitalExpenseInput("Roof", 80000, 2027)
    no_interval = CapitalExpenseInput("Wedding", 150000, 2029, recurrence_interval_years=0, recurrence_count=4)

    assert [y for y in range(2025, 2040) if capital_expense_for_year(roof, y)] == [2027]
    assert [y for y in range(2025, 2040) if capital_expense_for_year(no_interval, y)] == [2029]


def test_distribute_is_proportional_across_non_retirement():
    accounts = [_account("a"), _account("b"), _account("ra", "retirement")]
    values = {"a": 100.0, "b": 300.0, "ra": 1000.0}

    distribute_to_accounts(400, accounts, values, set())

    assert values == {"a": 200.0, "b": 600.0, "ra": 1000.0}


def test_distribute_splits_equally_when_balances_are_zero():
    accounts = [_account("a"), _account("b")]
    values = {"a": 0.0, "b": 0.0}

    distribute_to_accounts(100, accounts, values, set())

    assert values == {"a": 50.0, "b": 50.0}


def test_distribute_falls_back_to_non_property_accounts():
    accounts = [_account("ra", "retirement"), _account("tfsa", "tax-free"), _account("home", "property")]
    values = {"ra": 10.0, "tfsa": 0.0, "home": 500.0}

    distribute_to_accounts(100, accounts, values, set())

    assert values == {"ra": 60.0, "tfsa": 50.0, "home": 500.0}


def test_distribute_skips_sold_and_excluded():
    accounts = [_account("a"), _account("b"), _account("c")]
    values = {"a": 100.0, "b": 100.0, "c": 100.0}

    distribute_to_accounts(90, accounts, values, {"b"}, exclude_ids={"c"})

    assert values == {"a": 190.0, "b": 100.0, "c": 100.0}


def test_distribute_ignores_non_positive_amounts():
    accounts = [_account("a")]
    values = {"a": 100.0}

    distribute_to_accounts(0, accounts, values, set())
    distribute_to_accounts(-50, accounts, values, set())

    assert values == {"a": 100.0}


def test_weighted_average_return():
    accounts = [
        _account("a", value=100000, annual_return_pct=10),
        _account("b", value=300000, annual_return_pct=6),
    ]

    assert weighted_average_return(accounts) == 7.0
    assert weighted_average_return([]) == 0.0


@pytest.mark.parametrize("rate", [-100, -150, -1000])
def test_total_loss_keeps_only_last_contribution(rate):
    assert compound_growth(100000, 0, rate) == 0
    assert compound_growth(100000, 1000, rate) == pytest.approx(1000)
    assert appreciate(500000, rate) == 0


def test_distribute_raises_cost_basis_of_non_retirement_targets():
    accounts = [_account("a"), _account("b")]
    values = {"a": 100.0, "b": 300.0}
    basis = {"a": 50.0}

    distribute_to_accounts(400, accounts, values, set(), cost_basis=basis)

    assert basis == {"a": 150.0, "b": 300.0}


def test_distribute_fallback_leaves_cost_basis_alone():
    accounts = [_account("tfsa", "tax-free")]
    values = {"tfsa": 0.0}
    basis = {}

    distribute_to_accounts(100, accounts, values, set(), cost_basis=basis)

    assert values == {"tfsa": 100.0}
    assert basis == {}
