"""
User Repository
Account rows and balance mutations
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from decimal import Decimal
from typing import List, Optional

from treasury_app.infrastructure.db.models import UserModel
from treasury_app.domain.models import User


class UserRepository:
    """Repository for users"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, name: str, balance: Decimal = Decimal("0")) -> User:
        model = UserModel(name=name, balance=balance)
        self.session.add(model)
        await self.session.flush()
        return self.to_domain(model)

    async def get(self, user_id: int) -> Optional[User]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.id == user_id)
        )
        model = result.scalar_one_or_none()
        return self.to_domain(model) if model else None

    async def get_for_update(self, user_id: int) -> Optional[UserModel]:
        """
        Load the user row with an exclusive row lock held until the
        surrounding transaction ends (SELECT ... FOR UPDATE)
        """
        result = await self.session.execute(
            select(UserModel)
            .where(UserModel.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def adjust_balance(self, model: UserModel, delta: Decimal) -> User:
        """
        Apply a signed delta to a locked user row and flush, so the
        balance check constraint fires inside the caller's transaction
        """
        model.balance = Decimal(str(model.balance)) + delta
        await self.session.flush()
        return self.to_domain(model)

    async def list_all(self) -> List[User]:
        result = await self.session.execute(
            select(UserModel).order_by(UserModel.name.asc(), UserModel.id.asc())
        )
        return [self.to_domain(m) for m in result.scalars().all()]

    @staticmethod
    def to_domain(model: UserModel) -> User:
        return User(
            id=model.id,
            name=model.name,
            balance=Decimal(str(model.balance)),
            created_at=model.created_at,
        )
