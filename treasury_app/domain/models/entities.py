"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from treasury_app.domain.errors import DataIntegrityError


class Term(str, Enum):
    """Treasury maturity term"""
    ONE_MONTH = "1M"
    THREE_MONTH = "3M"
    SIX_MONTH = "6M"
    ONE_YEAR = "1Y"
    TWO_YEAR = "2Y"
    FIVE_YEAR = "5Y"
    TEN_YEAR = "10Y"
    THIRTY_YEAR = "30Y"


class SecurityType(str, Enum):
    """Treasury security classification by maturity bucket"""
    BILL = "bill"
    NOTE = "note"
    BOND = "bond"

    @property
    def display_name(self) -> str:
        return f"Treasury {self.value.capitalize()}"


class TransactionType(str, Enum):
    FUND = "fund"
    WITHDRAW = "withdraw"
    BUY = "buy"
    SELL = "sell"


VALID_TERMS: List[str] = [term.value for term in Term]

TERM_DURATION_DAYS: Dict[str, int] = {
    "1M": 30,
    "3M": 90,
    "6M": 180,
    "1Y": 365,
    "2Y": 730,
    "5Y": 1825,
    "10Y": 3650,
    "30Y": 10950,
}

SECURITY_TYPE_BY_TERM: Dict[str, SecurityType] = {
    "1M": SecurityType.BILL,
    "3M": SecurityType.BILL,
    "6M": SecurityType.BILL,
    "1Y": SecurityType.BILL,
    "2Y": SecurityType.NOTE,
    "5Y": SecurityType.NOTE,
    "10Y": SecurityType.NOTE,
    "30Y": SecurityType.BOND,
}


@dataclass
class User:
    id: int
    name: str
    balance: Decimal
    created_at: datetime


@dataclass
class Holding:
    """
    Purchased treasury lot.

    Legacy rows predate face_value/purchase_price/security_type; for those the
    original `amount` stands in for both face value and purchase price and the
    security type is inferred from the term (see `resolve_security_type`).
    """
    id: int
    user_id: int
    term: str
    face_value: Decimal
    purchase_price: Decimal
    yield_at_purchase: Decimal
    purchase_date: datetime
    remaining_amount: Decimal
    stored_security_type: Optional[str] = None
    is_legacy: bool = False

    @property
    def is_active(self) -> bool:
        return self.remaining_amount > 0

    def resolve_security_type(self) -> SecurityType:
        if self.stored_security_type:
            try:
                return SecurityType(self.stored_security_type)
            except ValueError:
                raise DataIntegrityError(
                    f"cannot determine security type for holding {self.id}: "
                    f"unknown stored type {self.stored_security_type!r}"
                )

        inferred = SECURITY_TYPE_BY_TERM.get(self.term)
        if inferred is None:
            raise DataIntegrityError(
                f"cannot determine security type for holding {self.id} (term: {self.term})"
            )
        return inferred


@dataclass
class Transaction:
    """Immutable audit record of one ledger operation"""
    id: int
    user_id: int
    timestamp: datetime
    type: TransactionType
    amount: Decimal
    balance_after: Decimal
    term: Optional[str] = None
    yield_at_transaction: Optional[Decimal] = None
    holding_id: Optional[int] = None
