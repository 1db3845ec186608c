"""SQLAlchemy ORM models for cards, card transactions, invoices and categories"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Date, Integer, Numeric, ForeignKey, Text, Uuid, Enum as SAEnum
from sqlalchemy.orm import declarative_base, relationship

from card_ledger.domain.models import BillType, ChargeType

Base = declarative_base()

Money = Numeric(18, 2)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Card(Base):
    """Credit card with its billing cycle and available-credit ledger"""

    __tablename__ = "cards"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    issuing_bank = Column(String(100), nullable=False)
    closing_day = Column(Integer, nullable=False)
    due_day = Column(Integer, nullable=False)
    limit = Column(Money, nullable=False)
    current_limit = Column(Money, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    version = Column(Integer, nullable=False)

    transactions = relationship("CardTransaction", back_populates="card", cascade="all, delete-orphan")
    invoices = relationship("FinancialTransaction", back_populates="card", cascade="all, delete-orphan")

    # Optimistic lock: concurrent writers to the same card fail with StaleDataError
    __mapper_args__ = {"version_id_col": version}


class CardTransaction(Base):
    """Single dated charge or refund, billed under exactly one invoice period"""

    __tablename__ = "card_transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    card_id = Column(Uuid, ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=False)
    amount = Column(Money, nullable=False)
    date = Column(DateTime, nullable=False)
    installment = Column(String(20), nullable=False, default="1/1")
    invoice_year = Column(Integer, nullable=False)
    invoice_month = Column(Integer, nullable=False)
    type = Column(
        SAEnum(ChargeType, name="card_transaction_type", values_callable=_enum_values),
        nullable=False,
        default=ChargeType.EXPENSE,
    )
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    card = relationship("Card", back_populates="transactions")


class Category(Base):
    """Bill category; the invoice category is created on first use"""

    __tablename__ = "categories"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    color = Column(String(9), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class FinancialTransaction(Base):
    """Payable/receivable bill. Rows with a card_id are card invoices."""

    __tablename__ = "financial_transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    description = Column(Text, nullable=False)
    amount = Column(Money, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    type = Column(
        SAEnum(BillType, name="financial_transaction_type", values_callable=_enum_values),
        nullable=False,
        default=BillType.PAYABLE,
    )
    is_paid = Column(Boolean, nullable=False, default=False)
    category_id = Column(Uuid, ForeignKey("categories.id"), nullable=True)
    card_id = Column(Uuid, ForeignKey("cards.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    version = Column(Integer, nullable=False)

    card = relationship("Card", back_populates="invoices")
    category = relationship("Category")

    __mapper_args__ = {"version_id_col": version}
