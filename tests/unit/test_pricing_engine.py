from decimal import Decimal

import pytest

from treasury_app.domain.errors import (
    InvalidInputError,
    InvalidSecurityTypeError,
    InvalidTermError,
)
from treasury_app.domain.models import SecurityType
from treasury_app.domain.services import pricing_engine as pe


BILL_TERMS = ["1M", "3M", "6M", "1Y"]
NOTE_BOND_TERMS = ["2Y", "5Y", "10Y", "30Y"]


def test_term_duration_table():
    assert pe.term_duration_days("1M") == 30
    assert pe.term_duration_days("6M") == 180
    assert pe.term_duration_days("1Y") == 365
    assert pe.term_duration_days("30Y") == 10950


@pytest.mark.parametrize("term", ["", "7Y", "1m", "12M", None])
def test_unknown_terms_rejected(term):
    with pytest.raises(InvalidTermError):
        pe.term_duration_days(term)
    with pytest.raises(InvalidTermError):
        pe.security_type(term)


def test_security_type_buckets():
    assert all(pe.security_type(t) == SecurityType.BILL for t in BILL_TERMS)
    assert pe.security_type("2Y") == SecurityType.NOTE
    assert pe.security_type("10Y") == SecurityType.NOTE
    assert pe.security_type("30Y") == SecurityType.BOND


def test_bill_price_reference_values():
    assert pe.bill_price(10000, Decimal("4.5"), "6M") == Decimal("9775.00")
    assert pe.bill_price(10000, 0, "6M") == Decimal("10000.00")
    assert pe.bill_price(100000, "4.5", "6M") == Decimal("97750.00")


def test_bill_price_rounds_half_up_to_cents():
    # 1000 * (1 - 0.05 * 30 / 360) = 995.8333...
    assert pe.bill_price(1000, 5, "1M") == Decimal("995.83")
    # 10 * (1 - 0.01 * 90 / 360) = 9.975 -> 9.98
    assert pe.bill_price(10, 1, "3M") == Decimal("9.98")


@pytest.mark.parametrize("term", BILL_TERMS)
@pytest.mark.parametrize("face_value", ["100", "10000", "2500000.55"])
def test_bill_price_never_exceeds_face_and_falls_with_yield(term, face_value):
    face = Decimal(face_value)
    prices = [pe.bill_price(face, y, term) for y in ["0", "0.5", "1", "2.5", "5", "10"]]
    assert all(p <= face for p in prices)
    assert all(later < earlier for earlier, later in zip(prices, prices[1:]))


@pytest.mark.parametrize("term", NOTE_BOND_TERMS)
def test_bill_price_rejects_notes_and_bonds(term):
    with pytest.raises(InvalidSecurityTypeError):
        pe.bill_price(10000, 4, term)


@pytest.mark.parametrize(
    "face_value,yield_rate",
    [(0, 4), (-1, 4), (10000, -0.01), (10000, 100.01)],
)
def test_bill_price_range_checks(face_value, yield_rate):
    with pytest.raises(InvalidInputError):
        pe.bill_price(face_value, yield_rate, "3M")


def test_bill_price_accepts_yield_boundaries():
    assert pe.bill_price(10000, 100, "1M") == Decimal("9166.67")
    assert pe.bill_price(10000, 0, "1Y") == Decimal("10000.00")


@pytest.mark.parametrize("term", NOTE_BOND_TERMS)
@pytest.mark.parametrize("yield_rate", ["0", "3.95", "100"])
def test_note_bond_price_is_par(term, yield_rate):
    assert pe.note_bond_price("10000.005", yield_rate, term) == Decimal("10000.01")
    assert pe.note_bond_price(5000, yield_rate, term) == Decimal("5000.00")


def test_note_bond_price_validates_like_bills():
    with pytest.raises(InvalidSecurityTypeError):
        pe.note_bond_price(10000, 4, "6M")
    with pytest.raises(InvalidInputError):
        pe.note_bond_price(10000, 101, "10Y")
    with pytest.raises(InvalidInputError):
        pe.note_bond_price(0, 4, "10Y")


def test_bill_discount_matches_price_difference():
    for term in BILL_TERMS:
        face = Decimal("12345.67")
        price = pe.bill_price(face, "4.27", term)
        assert pe.bill_discount(face, price) == face - price


def test_purchase_price_dispatches_by_security_type():
    assert pe.purchase_price(100000, "4.5", "6M") == Decimal("97750.00")
    assert pe.purchase_price(100000, "4.5", "10Y") == Decimal("100000.00")


def test_maturity_value_reference_values():
    assert pe.maturity_value(10000, 4, 365) == Decimal("10400.00")
    assert pe.maturity_value(10000, "4.5", 180) == Decimal("10221.92")


@pytest.mark.parametrize("principal,yield_rate", [(1, 0), ("250.55", "3.3"), (10**7, 100)])
def test_maturity_value_zero_days_is_principal(principal, yield_rate):
    assert pe.maturity_value(principal, yield_rate, 0) == pe.round2(principal)


@pytest.mark.parametrize(
    "principal,yield_rate,days",
    [(0, 4, 10), (-5, 4, 10), (100, -1, 10), (100, 101, 10), (100, 4, -1)],
)
def test_maturity_value_range_checks(principal, yield_rate, days):
    with pytest.raises(InvalidInputError):
        pe.maturity_value(principal, yield_rate, days)


@pytest.mark.parametrize("value", [True, "abc", "NaN", float("inf"), None])
def test_to_decimal_rejects_non_numbers(value):
    with pytest.raises(InvalidInputError):
        pe.to_decimal(value)


def test_to_decimal_avoids_binary_float_noise():
    assert pe.to_decimal(0.1) == Decimal("0.1")
    assert pe.round2(2.675) == Decimal("2.68")


@pytest.mark.parametrize("value", ["1e30", Decimal("1E+40")])
def test_round2_out_of_range_is_invalid_input(value):
    with pytest.raises(InvalidInputError):
        pe.round2(value)


def test_bill_price_huge_face_value_is_invalid_input():
    with pytest.raises(InvalidInputError):
        pe.bill_price("1e30", "4.5", "6M")
