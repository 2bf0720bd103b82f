from .aggregate import account_details_frame, combine_scenarios, results_to_frame
from .growth import (
    appreciate,
    capital_expense_for_year,
    compound_growth,
    distribute_to_accounts,
    weighted_average_return,
)
from .scenarios import ScenarioComparison, ScenarioOverrides, apply_overrides, compare_scenarios
from .simulator import calculate_projections, run_projection
from .state import ExclusionLedger, SimulationState
from .tax import (
    CGTResult,
    IncomeTaxResult,
    calculate_annual_tax,
    calculate_cgt,
    calculate_income_tax,
    inflate_brackets,
    inflate_cgt_exclusion,
    inflate_rebates,
    tax_constants,
)
from .withdrawal import (
    CONVERGENCE_THRESHOLD,
    MAX_ITERATIONS,
    WithdrawalResult,
    build_withdrawal_order,
    solve_withdrawals,
)

__all__ = [
    "CONVERGENCE_THRESHOLD",
    "MAX_ITERATIONS",
    "CGTResult",
    "ExclusionLedger",
    "IncomeTaxResult",
    "ScenarioComparison",
    "ScenarioOverrides",
    "SimulationState",
    "WithdrawalResult",
    "account_details_frame",
    "apply_overrides",
    "appreciate",
    "build_withdrawal_order",
    "calculate_annual_tax",
    "calculate_cgt",
    "calculate_income_tax",
    "calculate_projections",
    "capital_expense_for_year",
    "combine_scenarios",
    "compare_scenarios",
    "compound_growth",
    "distribute_to_accounts",
    "inflate_brackets",
    "inflate_cgt_exclusion",
    "inflate_rebates",
    "results_to_frame",
    "run_projection",
    "solve_withdrawals",
    "tax_constants",
    "weighted_average_return",
]
