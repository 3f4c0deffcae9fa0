"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    SecurityType,
    Term,
    TransactionType,

    # Term tables
    SECURITY_TYPE_BY_TERM,
    TERM_DURATION_DAYS,
    VALID_TERMS,

    # Entities
    Holding,
    Transaction,
    User,
)
from .yields import (
    HISTORICAL_PERIODS,
    HISTORICAL_TERMS,
    HistoricalSeries,
    HistoricalYieldPoint,
    YieldPoint,
    YieldSnapshot,
)

__all__ = [
    # Enums
    "SecurityType",
    "Term",
    "TransactionType",

    # Term tables
    "SECURITY_TYPE_BY_TERM",
    "TERM_DURATION_DAYS",
    "VALID_TERMS",

    # Entities
    "Holding",
    "Transaction",
    "User",

    # Yield data
    "HISTORICAL_PERIODS",
    "HISTORICAL_TERMS",
    "HistoricalSeries",
    "HistoricalYieldPoint",
    "YieldPoint",
    "YieldSnapshot",
]
