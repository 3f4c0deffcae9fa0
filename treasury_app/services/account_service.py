"""
Account read accessors: users, their transactions and holdings.
"""

import logging
from typing import Iterable, List

from sqlalchemy.ext.asyncio import async_sessionmaker

from treasury_app.domain.models import Holding, Transaction, User
from treasury_app.infrastructure.db.repositories.holding_repository import HoldingRepository
from treasury_app.infrastructure.db.repositories.transaction_repository import TransactionRepository
from treasury_app.infrastructure.db.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


def active_holdings(holdings: Iterable[Holding]) -> List[Holding]:
    """Holdings with face value left to sell"""
    return [h for h in holdings if h.is_active]


class AccountService:
    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def list_users(self) -> List[User]:
        async with self._session_factory() as session:
            return await UserRepository(session).list_all()

    async def list_transactions(self, user_id: int) -> List[Transaction]:
        """Newest first"""
        async with self._session_factory() as session:
            return await TransactionRepository(session).list_for_user(user_id)

    async def list_holdings(self, user_id: int) -> List[Holding]:
        """
        Newest purchase first. Fully sold holdings are included; use
        `active_holdings` to drop them.
        """
        async with self._session_factory() as session:
            return await HoldingRepository(session).list_for_user(user_id)
