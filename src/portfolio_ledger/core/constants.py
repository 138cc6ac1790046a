"""Application-wide constants.

Centralizes the numeric precision used for money and prices and the
defaults of list endpoints, grouped by concern.
"""

from decimal import Decimal


class MoneyConstants:
    """Rounding applied to computed monetary values."""

    # Unit prices and cost bases carry four decimal places (UAE fils quotes
    # and fractional US quotes both fit)
    PRICE_QUANTUM = Decimal("0.0001")

    # Amounts (values, profit/loss) are reported in cents/fils
    AMOUNT_QUANTUM = Decimal("0.01")

    # Percentages are reported with two decimal places
    PERCENT_QUANTUM = Decimal("0.01")

    ZERO = Decimal("0")
    HUNDRED = Decimal("100")


class APIConstants:
    """Constants for API behavior, limits, and defaults."""

    # Pagination defaults for list endpoints
    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100


class QuoteConstants:
    """Constants for the quote provider."""

    # Longest symbol accepted by the ledger (matches the column width)
    MAX_SYMBOL_LENGTH = 20

    # Yahoo Finance history window used when fast_info has no last price
    FALLBACK_HISTORY_PERIOD = "5d"

    # Yahoo Finance symbol search
    SEARCH_MAX_RESULTS = 10
    MAX_SEARCH_QUERY_LENGTH = 50
