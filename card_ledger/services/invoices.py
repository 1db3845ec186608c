"""Invoice aggregate synchronization and invoice payment status"""

import uuid
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from card_ledger.config import Settings, settings as default_settings
from card_ledger.domain.exceptions import CardNotFoundError, InvoiceNotFoundError
from card_ledger.domain.ledger import release_invoice_payment, restore_invoice_payment, signed_amount
from card_ledger.domain.models import BillType
from card_ledger.domain.periods import InvoicePeriod
from card_ledger.infrastructure.database.models import Card, FinancialTransaction
from card_ledger.infrastructure.database.repositories import (
    CardRepository,
    CardTransactionRepository,
    CategoryRepository,
    FinancialTransactionRepository,
)
from card_ledger.infrastructure.observability.logging import log_invoice_sync
from card_ledger.infrastructure.observability.metrics import invoice_payment_counter, invoice_sync_counter


class InvoiceSynchronizer:
    """
    Keeps one payable bill per (card, invoice period) equal to the signed sum
    of the charges billed in that period.

    Callers pass signed deltas: +amount for an expense, -amount for income.
    """

    def __init__(self, db: Session, settings: Settings = default_settings):
        self.db = db
        self.settings = settings
        self.bills = FinancialTransactionRepository(db)
        self.categories = CategoryRepository(db)
        self.charges = CardTransactionRepository(db)

    def upsert(self, card: Card, period: InvoicePeriod, signed_delta: Decimal) -> FinancialTransaction:
        """
        Add a contribution to the period's invoice, creating the invoice when missing.

        A new invoice starts from the signed sum of every charge already billed
        in the period (the caller's charge row included), so refunds left behind
        by a deleted invoice are carried into the new one.
        """
        invoice = self.bills.get_invoice(card.id, period, for_update=True)

        if invoice is None:
            opening = sum(
                (signed_amount(c.amount, c.type) for c in self.charges.list_by_period(card.id, period)),
                Decimal("0"),
            )
            category = self.categories.get_or_create(
                self.settings.invoice_category_name, self.settings.invoice_category_color
            )
            invoice = self.bills.add(
                FinancialTransaction(
                    description=f"{self.settings.invoice_description_prefix} {card.name}",
                    amount=opening,
                    due_date=period.due_date(card.due_day),
                    type=BillType.PAYABLE,
                    is_paid=False,
                    category_id=category.id,
                    card_id=card.id,
                )
            )
            self._record("created", card, period, invoice.amount)
            return invoice

        invoice.amount = invoice.amount + signed_delta
        invoice.is_paid = False
        self.bills.save(invoice)
        self._record("updated", card, period, invoice.amount)
        return invoice

    def reverse(self, card: Card, period: InvoicePeriod, signed_delta: Decimal) -> Optional[FinancialTransaction]:
        """
        Remove a contribution from the period's invoice.

        `signed_delta` is the negated original contribution. A missing invoice
        is left alone; an invoice whose amount drops to zero or below is deleted.
        """
        invoice = self.bills.get_invoice(card.id, period, for_update=True)
        if invoice is None:
            return None

        invoice.amount = invoice.amount + signed_delta
        if invoice.amount <= 0:
            self.bills.delete(invoice)
            self._record("deleted", card, period, None)
            return None

        self.bills.save(invoice)
        self._record("updated", card, period, invoice.amount)
        return invoice

    def _record(self, action: str, card: Card, period: InvoicePeriod, amount: Optional[Decimal]) -> None:
        invoice_sync_counter.labels(action=action).inc()
        log_invoice_sync(action, card.id, str(period), amount)


class InvoicePaymentService:
    """Marks invoices paid/unpaid; paying a card invoice frees its amount on the card"""

    def __init__(self, db: Session):
        self.db = db
        self.bills = FinancialTransactionRepository(db)
        self.cards = CardRepository(db)

    def list_invoices(self, card_id: uuid.UUID) -> List[FinancialTransaction]:
        if self.cards.get_by_id(card_id) is None:
            raise CardNotFoundError()
        return self.bills.list_invoices(card_id)

    def set_payment_status(self, invoice_id: uuid.UUID, is_paid: bool) -> FinancialTransaction:
        invoice = self.bills.get_by_id(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(f"Invoice {invoice_id} not found")

        previous = invoice.is_paid
        invoice.is_paid = is_paid
        self.bills.save(invoice)

        if invoice.card_id is not None and previous != is_paid:
            card = self.cards.get_for_update(invoice.card_id)
            if card is not None:
                if is_paid:
                    release_invoice_payment(card, invoice.amount)
                else:
                    restore_invoice_payment(card, invoice.amount)
                self.cards.save(card)
                invoice_payment_counter.labels(status="paid" if is_paid else "unpaid").inc()

        return invoice
