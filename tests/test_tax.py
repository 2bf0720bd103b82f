import math

import pytest

from finplan.engine.tax import (
    CGT_ANNUAL_EXCLUSION,
    REBATES_2025_2026,
    TAX_BRACKETS_2025_2026,
    calculate_annual_tax,
    calculate_cgt,
    calculate_income_tax,
    inflate_brackets,
    inflate_cgt_exclusion,
    inflate_rebates,
    tax_constants,
)


def test_zero_income_reports_lowest_marginal_rate():
    result = calculate_income_tax(0, 40)

    assert result.net_tax == 0
    assert result.gross_tax == 0
    assert result.monthly_tax == 0
    assert result.marginal_rate == 18.0


def test_negative_income_is_zero_tax():
    assert calculate_income_tax(-5000, 70).net_tax == 0


def test_first_bracket_has_no_offset():
    result = calculate_income_tax(100000, 40)

    assert result.gross_tax == 18000
    assert result.total_rebates == 17235
    assert result.net_tax == 765
    assert result.effective_rate == 0.77
    assert result.monthly_tax == 64


def test_second_bracket_uses_base_and_plus_one():
    # 42 678 + (300 000 - 237 101 + 1) * 26%
    result = calculate_income_tax(300000, 40)

    assert result.gross_tax == 59032
    assert result.net_tax == 41797
    assert result.marginal_rate == 26.0


def test_bracket_boundary_values():
    assert calculate_income_tax(237100, 40).gross_tax == 42678
    assert calculate_income_tax(237200, 40).gross_tax == 42704


def test_income_between_brackets_stays_in_lower_bracket():
    result = calculate_income_tax(237100.5, 40)

    assert result.marginal_rate == 18.0
    assert result.gross_tax == 42678


def test_age_rebates():
    under_65 = calculate_income_tax(300000, 64)
    senior = calculate_income_tax(300000, 65)
    elderly = calculate_income_tax(300000, 75)

    assert under_65.net_tax == 41797
    assert senior.net_tax == 41797 - 9444
    assert elderly.net_tax == 41797 - 9444 - 3145
    assert elderly.tertiary_rebate == 3145


def test_net_tax_non_decreasing_in_income():
    previous = -1
    for income in range(0, 2_000_001, 5000):
        net = calculate_income_tax(income, 40).net_tax
        assert net >= previous
        previous = net


@pytest.mark.parametrize("income", [50000, 150000, 400000, 900000, 2500000])
def test_older_members_never_pay_more(income):
    young = calculate_income_tax(income, 40).net_tax
    senior = calculate_income_tax(income, 66).net_tax
    elderly = calculate_income_tax(income, 80).net_tax

    assert young >= senior >= elderly


def test_year_zero_matches_uninflated_table():
    assert inflate_brackets(TAX_BRACKETS_2025_2026, 0, 0.05) == TAX_BRACKETS_2025_2026
    assert inflate_rebates(REBATES_2025_2026, 0, 0.05) == REBATES_2025_2026
    for income in (80000, 300000, 1_000_000):
        assert calculate_income_tax(income, 50, 0, 0.05) == calculate_income_tax(income, 50)


def test_inflated_brackets_and_rebates():
    brackets = inflate_brackets(TAX_BRACKETS_2025_2026, 1, 0.02)
    rebates = inflate_rebates(REBATES_2025_2026, 1, 0.02)

    assert brackets[0].min == 0
    assert brackets[0].max == 241842
    assert math.isinf(brackets[-1].max)
    assert rebates.primary == 17580


def test_bracket_inflation_lowers_tax_on_same_income():
    assert calculate_income_tax(300000, 40, 10, 0.02).net_tax < calculate_income_tax(300000, 40).net_tax


def test_inflate_cgt_exclusion():
    assert inflate_cgt_exclusion(0, 0.02) == CGT_ANNUAL_EXCLUSION
    assert inflate_cgt_exclusion(1, 0.02) == 40800


def test_cgt_uses_full_annual_exclusion_by_default():
    result = calculate_cgt(100000, 36)

    assert result.net_gain == 60000
    assert result.taxable_gain == 24000
    assert result.tax == 8640
    assert result.exclusion_used == 40000
    assert result.effective_rate == 8.64


def test_cgt_with_partially_used_exclusion():
    result = calculate_cgt(100000, 36, remaining_annual_exclusion=10000)

    assert result.tax == 12960
    assert result.exclusion_used == 10000


def test_cgt_gain_below_exclusion_only_uses_what_it_needs():
    result = calculate_cgt(15000, 26, remaining_annual_exclusion=40000)

    assert result.tax == 0
    assert result.exclusion_used == 15000


def test_cgt_primary_residence_applies_before_annual_exclusion():
    result = calculate_cgt(2_500_000, 45, remaining_annual_exclusion=40000, primary_residence_exclusion=2_000_000)

    assert result.net_gain == 460000
    assert result.tax == 82800
    assert result.exclusion_used == 40000


def test_cgt_death_event_exclusion():
    assert calculate_cgt(400000, 45, is_death_event=True).tax == 18000


def test_calculate_annual_tax_applies_taxable_pct():
    items = [{"annual_amount": 200000, "taxable_pct": 50}]

    assert calculate_annual_tax(items, 40) == calculate_income_tax(100000, 40)


def test_tax_constants_are_json_friendly():
    constants = tax_constants()

    assert constants["brackets"][-1]["max"] is None
    assert constants["rebates"]["primary"] == 17235
    assert constants["cgt"]["inclusionRate"] == 0.4
