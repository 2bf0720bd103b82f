RETIREMENT = "retirement"
NON_RETIREMENT = "non-retirement"
TAX_FREE = "tax-free"
PROPERTY = "property"

ACCOUNT_TYPES = [RETIREMENT, NON_RETIREMENT, TAX_FREE, PROPERTY]

# Accounts whose growth is subject to CGT on realisation.
CGT_ELIGIBLE_TYPES = {NON_RETIREMENT, PROPERTY}

PRIMARY_RESIDENCE = "primary_residence"

# Lower withdraws first; unknown types sort after these.
DEFAULT_WITHDRAWAL_ORDER = {
    TAX_FREE: 1,
    NON_RETIREMENT: 2,
    PROPERTY: 3,
    RETIREMENT: 4,
}
UNKNOWN_TYPE_PRIORITY = 5
UNLISTED_ACCOUNT_PRIORITY = 999
