"""
Holding Repository
Treasury lots and their remaining amounts
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from treasury_app.infrastructure.db.models import HoldingModel
from treasury_app.domain.models import Holding, SecurityType


class HoldingRepository:
    """Repository for holdings"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        user_id: int,
        term: str,
        face_value: Decimal,
        purchase_price: Decimal,
        yield_at_purchase: Decimal,
        purchase_date: datetime,
        security_type: SecurityType,
    ) -> Holding:
        model = HoldingModel(
            user_id=user_id,
            term=term,
            amount=face_value,  # legacy column mirrors face value
            yield_at_purchase=yield_at_purchase,
            purchase_date=purchase_date,
            remaining_amount=face_value,
            face_value=face_value,
            purchase_price=purchase_price,
            security_type=security_type.value,
        )
        self.session.add(model)
        await self.session.flush()
        return self.to_domain(model)

    async def get(self, holding_id: int) -> Optional[Holding]:
        result = await self.session.execute(
            select(HoldingModel).where(HoldingModel.id == holding_id)
        )
        model = result.scalar_one_or_none()
        return self.to_domain(model) if model else None

    async def get_for_update(self, holding_id: int) -> Optional[HoldingModel]:
        """Load the holding row with an exclusive row lock (SELECT ... FOR UPDATE)"""
        result = await self.session.execute(
            select(HoldingModel)
            .where(HoldingModel.id == holding_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def set_remaining_amount(self, model: HoldingModel, remaining: Decimal) -> Holding:
        model.remaining_amount = remaining
        await self.session.flush()
        return self.to_domain(model)

    async def list_for_user(self, user_id: int) -> List[Holding]:
        """All holdings for a user, newest purchase first (fully sold lots included)"""
        result = await self.session.execute(
            select(HoldingModel)
            .where(HoldingModel.user_id == user_id)
            .order_by(HoldingModel.purchase_date.desc(), HoldingModel.id.desc())
        )
        return [self.to_domain(m) for m in result.scalars().all()]

    @staticmethod
    def to_domain(model: HoldingModel) -> Holding:
        """
        Convert database model to domain entity.

        Legacy rows (NULL face_value / purchase_price) fall back to the
        original `amount` for both.
        """
        amount = Decimal(str(model.amount))
        is_legacy = model.face_value is None or model.purchase_price is None
        face_value = Decimal(str(model.face_value)) if model.face_value is not None else amount
        purchase_price = (
            Decimal(str(model.purchase_price)) if model.purchase_price is not None else amount
        )
        return Holding(
            id=model.id,
            user_id=model.user_id,
            term=model.term,
            face_value=face_value,
            purchase_price=purchase_price,
            yield_at_purchase=Decimal(str(model.yield_at_purchase)),
            purchase_date=model.purchase_date,
            remaining_amount=Decimal(str(model.remaining_amount)),
            stored_security_type=model.security_type or None,
            is_legacy=is_legacy or not model.security_type,
        )
