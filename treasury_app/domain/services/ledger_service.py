"""
LEDGER SERVICE
Atomic balance + holdings mutations

RESPONSIBILITIES:
- fund / withdraw / buy / sell as one database transaction each
- Balance and ownership invariants
- Audit record for every mutation

RULES:
- Validation errors raised before touching the store
- Lock-free pre-check for fast feedback, authoritative re-check under a row lock
- Buys are checked and debited at purchase price, never face value
- A failure anywhere inside the unit discards the whole unit
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from treasury_app.domain.errors import (
    ForbiddenError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidInputError,
    InvalidStateError,
    InvalidYieldError,
    NotFoundError,
)
from treasury_app.domain.models import Holding, SecurityType, TransactionType, User
from treasury_app.domain.services import pricing_engine
from treasury_app.infrastructure.db.models import BALANCE_CONSTRAINT_NAME
from treasury_app.infrastructure.db.repositories.holding_repository import HoldingRepository
from treasury_app.infrastructure.db.repositories.transaction_repository import TransactionRepository
from treasury_app.infrastructure.db.repositories.user_repository import UserRepository
from treasury_app.utils.time import now_utc_naive

logger = logging.getLogger(__name__)

CHECK_VIOLATION_SQLSTATE = "23514"

# Money columns are NUMERIC(12, 2)
MAX_MONEY = Decimal("10000000000")


def has_sufficient_balance(balance: Decimal, required: Decimal) -> bool:
    """Single comparison shared by the pre-check and the locked re-check"""
    return balance >= required


def is_balance_constraint_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == CHECK_VIOLATION_SQLSTATE:
        return True
    return BALANCE_CONSTRAINT_NAME in str(orig if orig is not None else exc)


class LedgerService:
    """
    Ledger Service
    Each public method is one atomic unit against the relational store.
    """

    def __init__(self, session_factory: async_sessionmaker):
        """
        Args:
            session_factory: Opens a fresh AsyncSession per pre-check and per atomic unit
        """
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Cash
    # ------------------------------------------------------------------

    async def fund(self, user_id: int, amount) -> User:
        value = self._positive_amount(amount)

        async with self._session_factory() as session:
            async with session.begin():
                users = UserRepository(session)
                user_row = await users.get_for_update(user_id)
                if user_row is None:
                    raise NotFoundError(f"user {user_id} not found")

                user = await self._credit(users, user_row, value)
                await TransactionRepository(session).create(
                    user_id=user_id,
                    type=TransactionType.FUND,
                    amount=value,
                    balance_after=user.balance,
                )

        logger.info("Funded user %s | amount=%s | balance=%s", user_id, value, user.balance)
        return user

    async def withdraw(self, user_id: int, amount) -> User:
        value = self._positive_amount(amount)
        await self._precheck_balance(user_id, value, "insufficient balance")

        async with self._session_factory() as session:
            async with session.begin():
                users = UserRepository(session)
                user_row = await users.get_for_update(user_id)
                if user_row is None:
                    raise NotFoundError(f"user {user_id} not found")

                # Re-check under the row lock; a concurrent operation may have
                # drained the balance since the pre-check
                if not has_sufficient_balance(UserRepository.to_domain(user_row).balance, value):
                    raise InsufficientBalanceError("insufficient balance")

                user = await self._debit(users, user_row, value)
                await TransactionRepository(session).create(
                    user_id=user_id,
                    type=TransactionType.WITHDRAW,
                    amount=value,
                    balance_after=user.balance,
                )

        logger.info("Withdrew from user %s | amount=%s | balance=%s", user_id, value, user.balance)
        return user

    # ------------------------------------------------------------------
    # Treasuries
    # ------------------------------------------------------------------

    async def buy_treasury(self, user_id: int, term: str, face_value, current_yield) -> User:
        """
        Buy a treasury security.

        For bills (1M-1Y) face_value is paid at maturity and the purchase
        price is discounted; notes and bonds (2Y-30Y) are bought at par.
        """
        sec_type = pricing_engine.security_type(term)

        face = self._positive_amount(face_value, "face value")

        if current_yield is None:
            raise InvalidYieldError("yield rate is required")
        try:
            rate = pricing_engine.to_decimal(current_yield)
        except InvalidInputError as exc:
            raise InvalidYieldError(str(exc)) from exc
        if rate < 0:
            raise InvalidYieldError("yield rate must be greater than or equal to zero")

        price = pricing_engine.purchase_price(face, rate, term)

        await self._precheck_balance(
            user_id,
            price,
            f"insufficient balance: need {price:.2f} for {sec_type.display_name} "
            f"(face value: {face:.2f})",
        )

        async with self._session_factory() as session:
            async with session.begin():
                users = UserRepository(session)
                user_row = await users.get_for_update(user_id)
                if user_row is None:
                    raise NotFoundError(f"user {user_id} not found")

                if not has_sufficient_balance(UserRepository.to_domain(user_row).balance, price):
                    raise InsufficientBalanceError("insufficient balance")

                holding = await HoldingRepository(session).create(
                    user_id=user_id,
                    term=term,
                    face_value=face,
                    purchase_price=price,
                    yield_at_purchase=rate,
                    purchase_date=now_utc_naive(),
                    security_type=sec_type,
                )
                user = await self._debit(users, user_row, price)
                await TransactionRepository(session).create(
                    user_id=user_id,
                    type=TransactionType.BUY,
                    amount=price,
                    balance_after=user.balance,
                    term=term,
                    yield_at_transaction=rate,
                    holding_id=holding.id,
                )

        logger.info(
            "Bought %s %s for user %s | face_value=%s | purchase_price=%s | yield=%s%% | holding=%s",
            term, sec_type.value, user_id, face, price, rate, holding.id,
        )
        return user

    async def sell_treasury(self, user_id: int, holding_id: int, amount) -> User:
        """
        Sell all or part of a holding.

        Bills return face value (the discount was realized at purchase);
        notes and bonds return principal plus simple interest at the
        yield locked in at purchase.
        """
        value = self._positive_amount(amount)

        # Pre-check without locks for fast, specific errors
        async with self._session_factory() as session:
            holding = await HoldingRepository(session).get(holding_id)
        self._validate_sale(holding, user_id, holding_id, value)
        self.sale_proceeds(holding, value, now_utc_naive())

        async with self._session_factory() as session:
            async with session.begin():
                holdings = HoldingRepository(session)
                holding_row = await holdings.get_for_update(holding_id)
                locked = HoldingRepository.to_domain(holding_row) if holding_row is not None else None

                # Concurrent sells of the same lot serialize on this lock
                self._validate_sale(locked, user_id, holding_id, value)
                proceeds = self.sale_proceeds(locked, value, now_utc_naive())

                users = UserRepository(session)
                user_row = await users.get_for_update(user_id)
                if user_row is None:
                    raise NotFoundError(f"user {user_id} not found")

                await holdings.set_remaining_amount(holding_row, locked.remaining_amount - value)
                user = await self._credit(users, user_row, proceeds)
                await TransactionRepository(session).create(
                    user_id=user_id,
                    type=TransactionType.SELL,
                    amount=value,
                    balance_after=user.balance,
                    term=locked.term,
                    yield_at_transaction=locked.yield_at_purchase,
                    holding_id=holding_id,
                )

        logger.info(
            "Sold holding %s for user %s | principal=%s | proceeds=%s | remaining=%s",
            holding_id, user_id, value, proceeds, locked.remaining_amount - value,
        )
        return user

    @staticmethod
    def sale_proceeds(holding: Holding, amount: Decimal, now: datetime) -> Decimal:
        """Cash returned for selling `amount` of face value from `holding`"""
        sec_type = holding.resolve_security_type()
        if sec_type == SecurityType.BILL:
            return amount

        # Whole days elapsed, truncated toward zero; a purchase stamped a few
        # seconds ahead of this clock still counts as day 0
        days_held = int((now - holding.purchase_date) / timedelta(days=1))
        if days_held < 0:
            raise InvalidStateError("invalid holding: purchase date is in the future")
        if holding.yield_at_purchase < 0:
            raise InvalidStateError("invalid holding: yield rate must be greater than or equal to zero")

        proceeds = pricing_engine.maturity_value(amount, holding.yield_at_purchase, days_held)
        logger.debug(
            "Maturity value for %s holding %s: principal=%s yield=%s%% days_held=%s value=%s",
            sec_type.value, holding.id, amount, holding.yield_at_purchase, days_held, proceeds,
        )
        return proceeds

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_sale(
        holding: Optional[Holding],
        user_id: int,
        holding_id: int,
        amount: Decimal,
    ) -> None:
        if holding is None:
            raise NotFoundError(f"holding {holding_id} not found")
        if holding.user_id != user_id:
            raise ForbiddenError("unauthorized: holding does not belong to user")
        if amount > holding.remaining_amount:
            raise InvalidAmountError(
                f"insufficient remaining amount: requested {amount:.2f}, "
                f"available {holding.remaining_amount:.2f}"
            )

    async def _precheck_balance(self, user_id: int, required: Decimal, message: str) -> None:
        """Advisory, lock-free balance check"""
        async with self._session_factory() as session:
            user = await UserRepository(session).get(user_id)
        if user is None:
            raise NotFoundError(f"user {user_id} not found")
        if not has_sufficient_balance(user.balance, required):
            logger.warning(
                "Rejected for user %s: balance %s < required %s", user_id, user.balance, required
            )
            raise InsufficientBalanceError(message)

    @staticmethod
    async def _credit(users: UserRepository, user_row, amount: Decimal) -> User:
        balance = UserRepository.to_domain(user_row).balance
        if balance + amount >= MAX_MONEY:
            raise InvalidAmountError(
                f"resulting balance would exceed {MAX_MONEY:,.2f} (current: {balance:.2f})"
            )
        return await users.adjust_balance(user_row, amount)

    @staticmethod
    async def _debit(users: UserRepository, user_row, amount: Decimal) -> User:
        try:
            return await users.adjust_balance(user_row, -amount)
        except IntegrityError as exc:
            if is_balance_constraint_violation(exc):
                raise InsufficientBalanceError("insufficient balance") from exc
            raise

    @staticmethod
    def _to_decimal(value, rounded: bool = False) -> Decimal:
        try:
            if rounded:
                return pricing_engine.round2(value)
            return pricing_engine.to_decimal(value)
        except InvalidInputError as exc:
            raise InvalidAmountError(str(exc)) from exc

    def _positive_amount(self, amount, label: str = "amount") -> Decimal:
        if amount is None:
            raise InvalidAmountError(f"{label} is required")
        value = self._to_decimal(amount)
        self._check_money_range(value, label)
        # Rounding can land on 0.00 or on the ceiling itself
        value = self._to_decimal(value, rounded=True)
        self._check_money_range(value, label)
        return value

    @staticmethod
    def _check_money_range(value: Decimal, label: str) -> None:
        if value <= 0:
            raise InvalidAmountError(f"{label} must be greater than zero")
        if value >= MAX_MONEY:
            raise InvalidAmountError(f"{label} must be less than {MAX_MONEY:,.2f}")
