"""
PRICING ENGINE
Treasury price and maturity-value math

RESPONSIBILITIES:
- Term → duration / security type lookup
- Bill discount pricing (360-day money-market convention)
- Note/bond par pricing
- Simple-interest maturity value (365-day convention)

RULES:
- Decimal only, never float
- Round half-up to the cent at the end of each calculation
- No I/O, no state
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from treasury_app.domain.errors import (
    InvalidInputError,
    InvalidSecurityTypeError,
    InvalidTermError,
)
from treasury_app.domain.models import (
    SECURITY_TYPE_BY_TERM,
    TERM_DURATION_DAYS,
    VALID_TERMS,
    SecurityType,
)

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
MONEY_MARKET_DAYS = Decimal("360")
ACTUAL_DAYS = Decimal("365")


def to_decimal(value: Number) -> Decimal:
    """Convert user input to Decimal without going through binary float"""
    if isinstance(value, bool):
        raise InvalidInputError(f"invalid numeric value: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidInputError(f"invalid numeric value: {value!r}")
    if not result.is_finite():
        raise InvalidInputError(f"invalid numeric value: {value!r}")
    return result


def round2(value: Number) -> Decimal:
    try:
        return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidInputError(f"value out of range: {value!r}")


def term_duration_days(term: str) -> int:
    days = TERM_DURATION_DAYS.get(term)
    if days is None:
        raise InvalidTermError(f"invalid term: {term}")
    return days


def security_type(term: str) -> SecurityType:
    sec_type = SECURITY_TYPE_BY_TERM.get(term)
    if sec_type is None:
        raise InvalidTermError(
            f"invalid term: {term} (valid terms: {', '.join(VALID_TERMS)})"
        )
    return sec_type


def _validate_face_value_and_yield(face_value: Decimal, yield_rate: Decimal) -> None:
    if face_value <= 0:
        raise InvalidInputError(f"face value must be greater than 0, got: {face_value}")
    if yield_rate < 0 or yield_rate > HUNDRED:
        raise InvalidInputError(f"yield rate must be between 0 and 100, got: {yield_rate}")


def bill_price(face_value: Number, yield_rate_percent: Number, term: str) -> Decimal:
    """
    Discounted purchase price of a Treasury Bill.

    price = face_value × (1 - (yield / 100 × days) / 360)

    Raises:
        InvalidTermError: term not one of the 8 supported terms
        InvalidSecurityTypeError: term is a note or bond
        InvalidInputError: face value <= 0 or yield outside [0, 100]
    """
    sec_type = security_type(term)
    if sec_type != SecurityType.BILL:
        raise InvalidSecurityTypeError(
            f"bill pricing only applies to Treasury Bills (1M-1Y); "
            f"{term} is a {sec_type.value}, use note/bond pricing"
        )

    face = to_decimal(face_value)
    rate = to_decimal(yield_rate_percent)
    _validate_face_value_and_yield(face, rate)

    days = Decimal(term_duration_days(term))
    discount_factor = (rate / HUNDRED * days) / MONEY_MARKET_DAYS
    return round2(face * (Decimal("1") - discount_factor))


def bill_discount(face_value: Number, purchase_price: Number) -> Decimal:
    return round2(to_decimal(face_value) - to_decimal(purchase_price))


def note_bond_price(face_value: Number, yield_rate_percent: Number, term: str) -> Decimal:
    """
    Par price of a Treasury Note or Bond.

    The yield does not move the price but is still range-checked so both
    pricing paths accept the same inputs.
    """
    face = to_decimal(face_value)
    rate = to_decimal(yield_rate_percent)
    _validate_face_value_and_yield(face, rate)

    sec_type = security_type(term)
    if sec_type not in (SecurityType.NOTE, SecurityType.BOND):
        raise InvalidSecurityTypeError(
            f"invalid Note/Bond term: {term} (must be 2Y, 5Y, 10Y, or 30Y)"
        )
    return round2(face)


def purchase_price(face_value: Number, yield_rate_percent: Number, term: str) -> Decimal:
    """Price actually paid: bill discount pricing or note/bond par pricing"""
    if security_type(term) == SecurityType.BILL:
        return bill_price(face_value, yield_rate_percent, term)
    return note_bond_price(face_value, yield_rate_percent, term)


def maturity_value(principal: Number, yield_rate_percent: Number, days_held: int) -> Decimal:
    """
    Principal plus simple interest.

    value = principal + principal × (yield / 100) × (days_held / 365)
    """
    amount = to_decimal(principal)
    rate = to_decimal(yield_rate_percent)

    if amount <= 0:
        raise InvalidInputError(f"principal must be greater than 0, got: {amount}")
    if rate < 0 or rate > HUNDRED:
        raise InvalidInputError(f"yield rate must be between 0 and 100, got: {rate}")
    if days_held < 0:
        raise InvalidInputError(f"days held must be non-negative, got: {days_held}")

    interest = amount * (rate / HUNDRED) * (Decimal(days_held) / ACTUAL_DAYS)
    return round2(amount + interest)
