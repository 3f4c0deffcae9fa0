"""
Database Models (SQLAlchemy ORM)
Users, holdings and the insert-only transaction audit table
"""

from sqlalchemy import (
    CheckConstraint, Column, DateTime, Enum as SQLEnum, ForeignKey, Index,
    Integer, Numeric, String,
)
from sqlalchemy.orm import relationship

from treasury_app.domain.models import TransactionType
from treasury_app.infrastructure.db.database import Base
from treasury_app.utils.time import now_utc_naive


BALANCE_CONSTRAINT_NAME = "users_balance_non_negative"


class UserModel(Base):
    """User account with current cash balance"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, index=True)
    balance = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)

    # Relationships
    transactions = relationship("TransactionModel", back_populates="user", cascade="all, delete-orphan")
    holdings = relationship("HoldingModel", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("balance >= 0", name=BALANCE_CONSTRAINT_NAME),
    )


class TransactionModel(Base):
    """Financial transaction - AUDIT RECORD, never updated"""
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    timestamp = Column(DateTime, nullable=False, default=now_utc_naive)
    type = Column(
        SQLEnum(
            TransactionType,
            name="transaction_type",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    term = Column(String(10), nullable=True)  # null for fund/withdraw
    amount = Column(Numeric(12, 2), nullable=False)
    yield_at_transaction = Column(Numeric(5, 2), nullable=True)  # null for fund/withdraw
    balance_after = Column(Numeric(12, 2), nullable=False)
    holding_id = Column(Integer, nullable=True)  # set for buy and sell

    # Relationships
    user = relationship("UserModel", back_populates="transactions")

    __table_args__ = (
        CheckConstraint("amount > 0", name="transactions_amount_positive"),
        Index("ix_transactions_timestamp", "timestamp"),
        Index("ix_transactions_type", "type"),
    )


class HoldingModel(Base):
    """Treasury holding (bill, note or bond)"""
    __tablename__ = "holdings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    term = Column(String(10), nullable=False)

    # Original purchase amount; equals face_value for rows written by this app
    amount = Column(Numeric(12, 2), nullable=False)
    yield_at_purchase = Column(Numeric(5, 2), nullable=False)
    purchase_date = Column(DateTime, nullable=False, default=now_utc_naive)
    remaining_amount = Column(Numeric(12, 2), nullable=False)

    # NULL on legacy rows
    face_value = Column(Numeric(12, 2), nullable=True)
    purchase_price = Column(Numeric(12, 2), nullable=True)
    security_type = Column(String(10), nullable=True)

    # Relationships
    user = relationship("UserModel", back_populates="holdings")

    __table_args__ = (
        CheckConstraint("amount > 0", name="holdings_amount_positive"),
        CheckConstraint("remaining_amount >= 0", name="holdings_remaining_non_negative"),
        CheckConstraint("remaining_amount <= amount", name="holdings_remaining_lte_amount"),
        Index("ix_holdings_purchase_date", "purchase_date"),
    )
