"""
User API Routes
Accounts plus their transaction history and active holdings
"""

from fastapi import APIRouter, Depends
from typing import List

from treasury_app.api.dependencies import get_account_service
from treasury_app.api.schemas import holding_to_dict, transaction_to_dict, user_to_dict
from treasury_app.services.account_service import AccountService, active_holdings

router = APIRouter()


@router.get("/users")
async def list_users(accounts: AccountService = Depends(get_account_service)) -> List[dict]:
    users = await accounts.list_users()
    return [user_to_dict(u) for u in users]


@router.get("/users/{user_id}/transactions")
async def list_user_transactions(
    user_id: int,
    accounts: AccountService = Depends(get_account_service),
) -> List[dict]:
    """Transaction history, newest first"""
    transactions = await accounts.list_transactions(user_id)
    return [transaction_to_dict(t) for t in transactions]


@router.get("/users/{user_id}/holdings")
async def list_user_holdings(
    user_id: int,
    accounts: AccountService = Depends(get_account_service),
) -> List[dict]:
    """Holdings with a remaining amount, newest purchase first"""
    holdings = await accounts.list_holdings(user_id)
    return [holding_to_dict(h) for h in active_holdings(holdings)]
