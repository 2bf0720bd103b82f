"""Progressive income tax and capital gains tax.

Brackets, rebates and the CGT annual exclusion are the 2025/2026 SARS
values. Future years inflate them by ``(1 + rate) ** years`` so the tax
burden stays constant in real terms over a long projection.

All functions are pure.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Iterable, List, Mapping

from .rounding import round_amount, round_pct


@dataclass(frozen=True)
class TaxBracket:
    min: float
    max: float
    rate: float
    base: float


@dataclass(frozen=True)
class TaxRebates:
    primary: float
    secondary: float  # age >= 65
    tertiary: float  # age >= 75


TAX_BRACKETS_2025_2026: List[TaxBracket] = [
    TaxBracket(min=0, max=237100, rate=0.18, base=0),
    TaxBracket(min=237101, max=370500, rate=0.26, base=42678),
    TaxBracket(min=370501, max=512800, rate=0.31, base=77362),
    TaxBracket(min=512801, max=673000, rate=0.36, base=121475),
    TaxBracket(min=673001, max=857900, rate=0.39, base=179147),
    TaxBracket(min=857901, max=1817000, rate=0.41, base=251258),
    TaxBracket(min=1817001, max=math.inf, rate=0.45, base=644489),
]

REBATES_2025_2026 = TaxRebates(primary=17235, secondary=9444, tertiary=3145)

# Income below which no tax is payable, by age band. Informational only.
TAX_THRESHOLDS_2025_2026 = {
    "under65": 95750,
    "age65to74": 148217,
    "age75plus": 165689,
}

SECONDARY_REBATE_AGE = 65
TERTIARY_REBATE_AGE = 75

CGT_ANNUAL_EXCLUSION = 40000
CGT_INCLUSION_RATE = 0.4
CGT_DEATH_EXCLUSION = 300000
CGT_PRIMARY_RESIDENCE_EXCLUSION = 2_000_000
CGT_MAX_EFFECTIVE_RATE = 18

DEFAULT_BRACKET_INFLATION_RATE = 0.02


def _inflation_factor(years: float, rate: float) -> float:
    return (1 + rate) ** years


def inflate_brackets(
    brackets: Iterable[TaxBracket],
    years: float,
    inflation_rate: float = DEFAULT_BRACKET_INFLATION_RATE,
) -> List[TaxBracket]:
    factor = _inflation_factor(years, inflation_rate)
    return [
        TaxBracket(
            min=round_amount(b.min * factor),
            max=b.max if math.isinf(b.max) else round_amount(b.max * factor),
            rate=b.rate,
            base=round_amount(b.base * factor),
        )
        for b in brackets
    ]


def inflate_rebates(
    rebates: TaxRebates,
    years: float,
    inflation_rate: float = DEFAULT_BRACKET_INFLATION_RATE,
) -> TaxRebates:
    factor = _inflation_factor(years, inflation_rate)
    return TaxRebates(
        primary=round_amount(rebates.primary * factor),
        secondary=round_amount(rebates.secondary * factor),
        tertiary=round_amount(rebates.tertiary * factor),
    )


def inflate_cgt_exclusion(years: float, inflation_rate: float = DEFAULT_BRACKET_INFLATION_RATE) -> int:
    if years <= 0:
        return CGT_ANNUAL_EXCLUSION
    return round_amount(CGT_ANNUAL_EXCLUSION * _inflation_factor(years, inflation_rate))


# ---------------------------------------------------------------------------
# Income tax
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IncomeTaxResult:
    annual_taxable_income: float
    gross_tax: int
    primary_rebate: float
    secondary_rebate: float
    tertiary_rebate: float
    total_rebates: float
    net_tax: int
    effective_rate: float  # percent
    marginal_rate: float  # percent
    monthly_tax: int


def _containing_bracket(income: float, brackets: List[TaxBracket]) -> TaxBracket:
    # Incomes between one bracket's max and the next min stay in the lower bracket.
    selected = brackets[0]
    for bracket in brackets:
        if income >= bracket.min:
            selected = bracket
        else:
            break
    return selected


def _gross_tax(income: float, bracket: TaxBracket) -> float:
    if bracket.min == 0:
        return income * bracket.rate
    return bracket.base + (income - bracket.min + 1) * bracket.rate


def calculate_income_tax(
    annual_taxable_income: float,
    age: int,
    years_from_base: float = 0,
    bracket_inflation_rate: float = DEFAULT_BRACKET_INFLATION_RATE,
) -> IncomeTaxResult:
    """Net income tax for one person for one tax year.

    ``bracket_inflation_rate`` is a fraction (0.02 for 2%). Rates in the
    result are percentages, amounts are rounded to whole units.
    """
    if years_from_base > 0:
        brackets = inflate_brackets(TAX_BRACKETS_2025_2026, years_from_base, bracket_inflation_rate)
        rebates = inflate_rebates(REBATES_2025_2026, years_from_base, bracket_inflation_rate)
    else:
        brackets = TAX_BRACKETS_2025_2026
        rebates = REBATES_2025_2026

    if annual_taxable_income <= 0:
        return IncomeTaxResult(
            annual_taxable_income=0,
            gross_tax=0,
            primary_rebate=0,
            secondary_rebate=0,
            tertiary_rebate=0,
            total_rebates=0,
            net_tax=0,
            effective_rate=0.0,
            marginal_rate=round_pct(brackets[0].rate * 100),
            monthly_tax=0,
        )

    bracket = _containing_bracket(annual_taxable_income, brackets)
    gross_tax = _gross_tax(annual_taxable_income, bracket)

    primary = rebates.primary
    secondary = rebates.secondary if age >= SECONDARY_REBATE_AGE else 0
    tertiary = rebates.tertiary if age >= TERTIARY_REBATE_AGE else 0
    total_rebates = primary + secondary + tertiary

    net_tax = max(0.0, gross_tax - total_rebates)
    effective_rate = net_tax / annual_taxable_income * 100

    return IncomeTaxResult(
        annual_taxable_income=annual_taxable_income,
        gross_tax=round_amount(gross_tax),
        primary_rebate=primary,
        secondary_rebate=secondary,
        tertiary_rebate=tertiary,
        total_rebates=total_rebates,
        net_tax=round_amount(net_tax),
        effective_rate=round_pct(effective_rate),
        marginal_rate=round_pct(bracket.rate * 100),
        monthly_tax=round_amount(net_tax / 12),
    )


def calculate_annual_tax(
    income_items: Iterable[Mapping[str, float]],
    age: int,
    years_from_base: float = 0,
    bracket_inflation_rate: float = DEFAULT_BRACKET_INFLATION_RATE,
) -> IncomeTaxResult:
    """Tax on a list of ``{"annual_amount", "taxable_pct"}`` line items."""
    taxable = sum(item["annual_amount"] * (item.get("taxable_pct", 100.0) / 100) for item in income_items)
    return calculate_income_tax(taxable, age, years_from_base, bracket_inflation_rate)


# ---------------------------------------------------------------------------
# Capital gains tax
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CGTResult:
    capital_gain: float
    annual_exclusion: float
    net_gain: float
    inclusion_rate: float  # percent
    taxable_gain: int
    marginal_rate: float  # percent
    tax: int
    effective_rate: float  # percent
    exclusion_used: float


def calculate_cgt(
    capital_gain: float,
    marginal_rate: float,
    remaining_annual_exclusion: float | None = None,
    primary_residence_exclusion: float = 0.0,
    is_death_event: bool = False,
) -> CGTResult:
    """CGT on one realised gain at ``marginal_rate`` (a percentage).

    The annual exclusion is shared by every realisation a person makes in a
    year, so callers pass whatever is left of it and record
    ``exclusion_used`` against that person's budget.
    """
    if remaining_annual_exclusion is None:
        annual_exclusion = CGT_DEATH_EXCLUSION if is_death_event else CGT_ANNUAL_EXCLUSION
    else:
        annual_exclusion = max(0.0, remaining_annual_exclusion)

    gain = max(0.0, capital_gain)
    after_residence = max(0.0, gain - max(0.0, primary_residence_exclusion))
    exclusion_used = min(annual_exclusion, after_residence)
    net_gain = after_residence - exclusion_used
    taxable_gain = net_gain * CGT_INCLUSION_RATE
    tax = taxable_gain * (marginal_rate / 100)
    effective_rate = tax / capital_gain * 100 if capital_gain > 0 else 0.0

    return CGTResult(
        capital_gain=capital_gain,
        annual_exclusion=annual_exclusion,
        net_gain=net_gain,
        inclusion_rate=CGT_INCLUSION_RATE * 100,
        taxable_gain=round_amount(taxable_gain),
        marginal_rate=marginal_rate,
        tax=round_amount(tax),
        effective_rate=round_pct(effective_rate),
        exclusion_used=exclusion_used,
    )


def tax_constants() -> dict:
    """Current-year tables in a JSON-friendly shape."""
    return {
        "brackets": [
            {**asdict(b), "max": None if math.isinf(b.max) else b.max}
            for b in TAX_BRACKETS_2025_2026
        ],
        "rebates": asdict(REBATES_2025_2026),
        "thresholds": dict(TAX_THRESHOLDS_2025_2026),
        "cgt": {
            "annualExclusion": CGT_ANNUAL_EXCLUSION,
            "deathExclusion": CGT_DEATH_EXCLUSION,
            "primaryResidenceExclusion": CGT_PRIMARY_RESIDENCE_EXCLUSION,
            "inclusionRate": CGT_INCLUSION_RATE,
            "maxEffectiveRate": CGT_MAX_EFFECTIVE_RATE,
        },
    }
