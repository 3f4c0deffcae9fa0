"""
Transaction Repository
Insert-only audit records of ledger operations
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from decimal import Decimal
from typing import List, Optional

from treasury_app.infrastructure.db.models import TransactionModel
from treasury_app.domain.models import Transaction, TransactionType
from treasury_app.utils.time import now_utc_naive


class TransactionRepository:
    """Repository for transactions"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        user_id: int,
        type: TransactionType,
        amount: Decimal,
        balance_after: Decimal,
        term: Optional[str] = None,
        yield_at_transaction: Optional[Decimal] = None,
        holding_id: Optional[int] = None,
    ) -> Transaction:
        """
        Create new transaction record

        Args:
            user_id: Owning user
            type: fund / withdraw / buy / sell
            amount: Deposit/withdrawal amount, purchase price (buy) or principal sold (sell)
            balance_after: User balance after the mutation
            term: Treasury term (buy/sell only)
            yield_at_transaction: Yield % (buy/sell only)
            holding_id: Holding created (buy) or drawn from (sell)

        Returns:
            Created Transaction
        """
        model = TransactionModel(
            user_id=user_id,
            timestamp=now_utc_naive(),
            type=type,
            term=term,
            amount=amount,
            yield_at_transaction=yield_at_transaction,
            balance_after=balance_after,
            holding_id=holding_id,
        )
        self.session.add(model)
        await self.session.flush()
        return self._to_domain(model)

    async def list_for_user(self, user_id: int) -> List[Transaction]:
        """All transactions for a user, newest first"""
        result = await self.session.execute(
            select(TransactionModel)
            .where(TransactionModel.user_id == user_id)
            .order_by(TransactionModel.timestamp.desc(), TransactionModel.id.desc())
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    @staticmethod
    def _to_domain(model: TransactionModel) -> Transaction:
        """Convert database model to domain entity"""
        return Transaction(
            id=model.id,
            user_id=model.user_id,
            timestamp=model.timestamp,
            type=TransactionType(model.type),
            amount=Decimal(str(model.amount)),
            balance_after=Decimal(str(model.balance_after)),
            term=model.term,
            yield_at_transaction=(
                Decimal(str(model.yield_at_transaction))
                if model.yield_at_transaction is not None else None
            ),
            holding_id=model.holding_id,
        )
