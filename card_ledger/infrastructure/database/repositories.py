"""Data access layer for cards, card transactions, invoices and categories"""

import uuid
from typing import List, Optional
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from card_ledger.infrastructure.database.models import Card, CardTransaction, Category, FinancialTransaction
from card_ledger.domain.exceptions import ConcurrentModificationError
from card_ledger.domain.models import BillType, CardDetails
from card_ledger.domain.periods import InvoicePeriod


def _flush(db: Session) -> None:
    """Flush pending writes; a version mismatch on a card or invoice row means a concurrent writer won"""
    try:
        db.flush()
    except StaleDataError as e:
        raise ConcurrentModificationError(str(e)) from e


class CardRepository:
    """Repository for credit cards"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, details: CardDetails) -> Card:
        """Persist a new card; available credit starts at the full limit"""
        card = Card(
            name=details.name.strip(),
            issuing_bank=details.issuing_bank.strip(),
            closing_day=details.closing_day,
            due_day=details.due_day,
            limit=details.limit,
            current_limit=details.limit,
        )
        self.db.add(card)
        _flush(self.db)
        return card

    def get_by_id(self, card_id: uuid.UUID) -> Optional[Card]:
        return self.db.get(Card, card_id)

    def get_for_update(self, card_id: uuid.UUID) -> Optional[Card]:
        """Load a card holding a row lock until commit (ignored by SQLite)"""
        return (
            self.db.query(Card)
            .filter(Card.id == card_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def list_all(self) -> List[Card]:
        return self.db.query(Card).order_by(Card.name).all()

    def save(self, card: Card) -> Card:
        self.db.add(card)
        _flush(self.db)
        return card

    def delete(self, card: Card) -> None:
        """Delete a card; its charges and invoices go with it"""
        self.db.delete(card)
        _flush(self.db)


class CardTransactionRepository:
    """Repository for card charges and refunds"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, charge: CardTransaction) -> CardTransaction:
        self.db.add(charge)
        _flush(self.db)
        return charge

    def get_by_id(self, charge_id: uuid.UUID) -> Optional[CardTransaction]:
        return self.db.get(CardTransaction, charge_id)

    def list_by_card(self, card_id: uuid.UUID) -> List[CardTransaction]:
        """All charges of a card, newest first"""
        return (
            self.db.query(CardTransaction)
            .filter(CardTransaction.card_id == card_id)
            .order_by(CardTransaction.date.desc())
            .all()
        )

    def list_by_period(self, card_id: uuid.UUID, period: InvoicePeriod) -> List[CardTransaction]:
        """Charges billed under one invoice period, newest first"""
        return (
            self.db.query(CardTransaction)
            .filter(
                CardTransaction.card_id == card_id,
                CardTransaction.invoice_year == period.year,
                CardTransaction.invoice_month == period.month,
            )
            .order_by(CardTransaction.date.desc())
            .all()
        )

    def list_from_period(self, card_id: uuid.UUID, period: InvoicePeriod) -> List[CardTransaction]:
        """Charges billed under `period` or any later one"""
        return (
            self.db.query(CardTransaction)
            .filter(
                CardTransaction.card_id == card_id,
                or_(
                    CardTransaction.invoice_year > period.year,
                    and_(
                        CardTransaction.invoice_year == period.year,
                        CardTransaction.invoice_month >= period.month,
                    ),
                ),
            )
            .order_by(CardTransaction.invoice_year, CardTransaction.invoice_month, CardTransaction.date)
            .all()
        )

    def save(self, charge: CardTransaction) -> CardTransaction:
        self.db.add(charge)
        _flush(self.db)
        return charge

    def delete(self, charge: CardTransaction) -> None:
        self.db.delete(charge)
        _flush(self.db)


class FinancialTransactionRepository:
    """Repository for bills, including card invoices"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, bill: FinancialTransaction) -> FinancialTransaction:
        self.db.add(bill)
        _flush(self.db)
        return bill

    def get_by_id(self, bill_id: uuid.UUID) -> Optional[FinancialTransaction]:
        return self.db.get(FinancialTransaction, bill_id)

    def get_invoice(
        self, card_id: uuid.UUID, period: InvoicePeriod, for_update: bool = False
    ) -> Optional[FinancialTransaction]:
        """The invoice of a card whose due date falls inside `period`"""
        query = self.db.query(FinancialTransaction).filter(
            FinancialTransaction.card_id == card_id,
            FinancialTransaction.type == BillType.PAYABLE,
            FinancialTransaction.due_date.between(period.start, period.end),
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def list_invoices(self, card_id: uuid.UUID) -> List[FinancialTransaction]:
        return (
            self.db.query(FinancialTransaction)
            .filter(FinancialTransaction.card_id == card_id)
            .order_by(FinancialTransaction.due_date)
            .all()
        )

    def save(self, bill: FinancialTransaction) -> FinancialTransaction:
        self.db.add(bill)
        _flush(self.db)
        return bill

    def delete(self, bill: FinancialTransaction) -> None:
        self.db.delete(bill)
        _flush(self.db)


class CategoryRepository:
    """Repository for bill categories"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_name(self, name: str) -> Optional[Category]:
        return self.db.query(Category).filter(Category.name == name).first()

    def get_or_create(self, name: str, color: str) -> Category:
        """Look up a system category by name, creating it on first use"""
        category = self.get_by_name(name)
        if category is None:
            category = Category(name=name, color=color)
            self.db.add(category)
            _flush(self.db)
        return category
