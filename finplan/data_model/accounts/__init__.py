from .constants import (
    ACCOUNT_TYPES,
    DEFAULT_WITHDRAWAL_ORDER,
    NON_RETIREMENT,
    PRIMARY_RESIDENCE,
    PROPERTY,
    RETIREMENT,
    TAX_FREE,
)
from .items import AccountInput, dataframe_to_accounts, records_to_accounts

__all__ = [
    "ACCOUNT_TYPES",
    "DEFAULT_WITHDRAWAL_ORDER",
    "NON_RETIREMENT",
    "PRIMARY_RESIDENCE",
    "PROPERTY",
    "RETIREMENT",
    "TAX_FREE",
    "AccountInput",
    "dataframe_to_accounts",
    "records_to_accounts",
]
