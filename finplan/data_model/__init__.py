from .accounts import (
    ACCOUNT_TYPES,
    DEFAULT_WITHDRAWAL_ORDER,
    NON_RETIREMENT,
    PRIMARY_RESIDENCE,
    PROPERTY,
    RETIREMENT,
    TAX_FREE,
    AccountInput,
    dataframe_to_accounts,
    records_to_accounts,
)
from .cashflow import (
    CapitalExpenseInput,
    ExpenseInput,
    IncomeInput,
    dataframe_to_expenses,
    dataframe_to_income,
    records_to_capital_expenses,
    records_to_expenses,
    records_to_income,
)
from .members import (
    FamilySettings,
    MemberConfig,
    WithdrawalOrderEntry,
    record_to_settings,
    records_to_members,
    records_to_withdrawal_order,
)
from .plan import HouseholdMode, LegacyMode, ProjectionConfig, ProjectionMode, mode_for_members
from .results import AccountYearDetail, MemberYearTax, ProjectionYearResult, WithdrawalDetail

__all__ = [
    "ACCOUNT_TYPES",
    "DEFAULT_WITHDRAWAL_ORDER",
    "NON_RETIREMENT",
    "PRIMARY_RESIDENCE",
    "PROPERTY",
    "RETIREMENT",
    "TAX_FREE",
    "AccountInput",
    "AccountYearDetail",
    "CapitalExpenseInput",
    "ExpenseInput",
    "FamilySettings",
    "HouseholdMode",
    "IncomeInput",
    "LegacyMode",
    "MemberConfig",
    "MemberYearTax",
    "ProjectionConfig",
    "ProjectionMode",
    "ProjectionYearResult",
    "WithdrawalDetail",
    "WithdrawalOrderEntry",
    "dataframe_to_accounts",
    "dataframe_to_expenses",
    "dataframe_to_income",
    "mode_for_members",
    "record_to_settings",
    "records_to_accounts",
    "records_to_capital_expenses",
    "records_to_expenses",
    "records_to_income",
    "records_to_members",
    "records_to_withdrawal_order",
]
