"""
Transaction API Routes
Fund, withdraw, buy and sell; each call is one atomic ledger operation
"""

from fastapi import APIRouter, Depends
import logging

from treasury_app.api.dependencies import get_ledger_service, get_yield_service
from treasury_app.api.schemas import AmountRequest, BuyRequest, SellRequest, user_to_dict
from treasury_app.domain.errors import NoDataError
from treasury_app.domain.services import pricing_engine
from treasury_app.domain.services.ledger_service import LedgerService
from treasury_app.services.yield_service import YieldService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/fund")
async def fund_account(
    request: AmountRequest,
    ledger: LedgerService = Depends(get_ledger_service),
):
    logger.info("Fund request: user_id=%s amount=%s", request.user_id, request.amount)
    user = await ledger.fund(request.user_id, request.amount)
    return {"success": True, "user": user_to_dict(user)}


@router.post("/withdraw")
async def withdraw_funds(
    request: AmountRequest,
    ledger: LedgerService = Depends(get_ledger_service),
):
    logger.info("Withdraw request: user_id=%s amount=%s", request.user_id, request.amount)
    user = await ledger.withdraw(request.user_id, request.amount)
    return {"success": True, "user": user_to_dict(user)}


@router.post("/buy")
async def buy_treasury(
    request: BuyRequest,
    ledger: LedgerService = Depends(get_ledger_service),
    yields: YieldService = Depends(get_yield_service),
):
    """
    Buy at the current yield for the requested term.

    Bills are priced at a discount to face value; notes and bonds at par.
    """
    logger.info(
        "Buy request: user_id=%s term=%s face_value=%s",
        request.user_id, request.term, request.face_value,
    )

    # Reject unknown terms before touching the feed
    pricing_engine.security_type(request.term)

    snapshot = await yields.get_latest_yields()
    rate = snapshot.rate_for(request.term)
    if rate is None:
        raise NoDataError("yield data not available for selected term")

    user = await ledger.buy_treasury(request.user_id, request.term, request.face_value, rate)

    face_value = pricing_engine.round2(request.face_value)
    purchase_price = pricing_engine.purchase_price(face_value, rate, request.term)
    return {
        "success": True,
        "user": user_to_dict(user),
        "face_value": float(face_value),
        "purchase_price": float(purchase_price),
        "discount": float(pricing_engine.bill_discount(face_value, purchase_price)),
        "yield": float(rate),
    }


@router.post("/sell")
async def sell_treasury(
    request: SellRequest,
    ledger: LedgerService = Depends(get_ledger_service),
):
    logger.info(
        "Sell request: user_id=%s holding_id=%s amount=%s",
        request.user_id, request.holding_id, request.amount,
    )
    user = await ledger.sell_treasury(request.user_id, request.holding_id, request.amount)
    return {"success": True, "user": user_to_dict(user)}
