"""
Request models and response shaping for the HTTP layer
"""

import logging
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from treasury_app.domain.errors import DataIntegrityError
from treasury_app.domain.models import Holding, Transaction, User
from treasury_app.utils.time import to_utc_iso_db

logger = logging.getLogger(__name__)


class AmountRequest(BaseModel):
    user_id: int
    amount: Decimal


class BuyRequest(BaseModel):
    user_id: int
    term: str
    face_value: Decimal


class SellRequest(BaseModel):
    user_id: int
    holding_id: int
    amount: Decimal


def _money(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "balance": _money(user.balance),
        "created_at": to_utc_iso_db(user.created_at) if user.created_at else None,
    }


def transaction_to_dict(tx: Transaction) -> dict:
    return {
        "id": tx.id,
        "user_id": tx.user_id,
        "timestamp": to_utc_iso_db(tx.timestamp),
        "type": tx.type.value,
        "term": tx.term,
        "amount": _money(tx.amount),
        "yield_at_transaction": _money(tx.yield_at_transaction),
        "balance_after": _money(tx.balance_after),
        "holding_id": tx.holding_id,
    }


def holding_to_dict(holding: Holding) -> dict:
    try:
        security_type = holding.resolve_security_type().value
    except DataIntegrityError as e:
        # Listing stays available; selling this lot will still fail loudly
        logger.warning("Holding %s has no recoverable security type: %s", holding.id, e)
        security_type = None

    return {
        "id": holding.id,
        "user_id": holding.user_id,
        "term": holding.term,
        "security_type": security_type,
        "face_value": _money(holding.face_value),
        "purchase_price": _money(holding.purchase_price),
        "yield_at_purchase": _money(holding.yield_at_purchase),
        "purchase_date": to_utc_iso_db(holding.purchase_date),
        "remaining_amount": _money(holding.remaining_amount),
        "is_legacy": holding.is_legacy,
    }
