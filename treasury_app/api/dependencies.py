"""
FastAPI dependencies: services built once in the lifespan and kept on app.state
"""

from fastapi import Request

from treasury_app.domain.services.ledger_service import LedgerService
from treasury_app.services.account_service import AccountService
from treasury_app.services.yield_service import YieldService


def get_ledger_service(request: Request) -> LedgerService:
    return request.app.state.ledger_service


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service


def get_yield_service(request: Request) -> YieldService:
    return request.app.state.yield_service
