"""Card transaction lifecycle: create, update and delete charges while keeping
the card ledger and the invoice aggregates in step with charge history"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from card_ledger.config import Settings, settings as default_settings
from card_ledger.domain.exceptions import CardNotFoundError, ChargeNotFoundError
from card_ledger.domain.installments import generate_installment_plan
from card_ledger.domain.ledger import apply_charge, revert_charge, signed_amount
from card_ledger.domain.models import (
    ChargeType,
    CreateChargeCommand,
    InvoiceSummary,
    RoundingPolicy,
    UpdateChargeCommand,
)
from card_ledger.domain.periods import InvoicePeriod, resolve_invoice_period
from card_ledger.domain.validation import validate_charge_fields
from card_ledger.infrastructure.database.models import Card, CardTransaction
from card_ledger.infrastructure.database.repositories import CardRepository, CardTransactionRepository
from card_ledger.infrastructure.observability.logging import log_charge_operation
from card_ledger.infrastructure.observability.metrics import record_charge_operation
from card_ledger.services.cards import CardService
from card_ledger.services.invoices import InvoiceSynchronizer


class CardTransactionService:
    """
    Orchestrates the charge lifecycle.

    Every operation only flushes; the caller commits once the whole operation
    succeeded, so charge rows, the card row and invoice rows are written as
    one unit of work. The card row is locked for the duration.
    """

    def __init__(self, db: Session, settings: Settings = default_settings):
        self.db = db
        self.settings = settings
        self.cards = CardRepository(db)
        self.charges = CardTransactionRepository(db)
        self.invoices = InvoiceSynchronizer(db, settings)

    # Commands

    def create_charges(self, command: CreateChargeCommand, request_id: Optional[str] = None) -> List[CardTransaction]:
        """
        Record a purchase or refund, expanded into installments when requested.

        Flow:
        1. Lock the card (CardNotFoundError before any write)
        2. Build the installment plan (a single "1/1" charge when not installments)
        3. Per installment: insert the charge, apply it to the card's available
           credit, add its signed amount to that period's invoice, save the card
        """
        validate_charge_fields(command.description, command.amount)
        card = self._lock_card(command.card_id)

        count = command.installment_count if command.is_installment else 1
        plan = generate_installment_plan(
            total=command.amount,
            count=count,
            purchase_date=command.date,
            first_period=command.period,
            charge_type=command.type,
            rounding=RoundingPolicy(self.settings.installment_rounding),
        )

        created = []
        for item in plan:
            charge = self.charges.add(
                CardTransaction(
                    card_id=card.id,
                    description=command.description.strip(),
                    amount=item.amount,
                    date=item.date,
                    installment=item.label,
                    invoice_year=item.period.year,
                    invoice_month=item.period.month,
                    type=item.type,
                )
            )
            apply_charge(card, item.amount, item.type)
            self.invoices.upsert(card, item.period, signed_amount(item.amount, item.type))
            self.cards.save(card)
            created.append(charge)

        record_charge_operation("create", ChargeType(command.type).value, len(created))
        log_charge_operation("create", card.id, len(created), card.current_limit, request_id)
        return created

    def update_charge(
        self, charge_id: uuid.UUID, command: UpdateChargeCommand, request_id: Optional[str] = None
    ) -> CardTransaction:
        """
        Replace a charge's values, moving its contribution from the old
        (amount, type, period) to the new one.

        Old and new contributions are handled independently, even when the
        period is unchanged: revert old + apply new on the card, reverse old +
        upsert new on the invoices.
        """
        validate_charge_fields(command.description, command.amount, command.installment)

        charge = self.charges.get_by_id(charge_id)
        if charge is None:
            raise ChargeNotFoundError(f"Card transaction {charge_id} not found")
        card = self._lock_card(charge.card_id)

        old_amount = charge.amount
        old_type = ChargeType(charge.type)
        old_period = InvoicePeriod(charge.invoice_year, charge.invoice_month)

        charge.description = command.description.strip()
        charge.amount = command.amount
        charge.date = command.date
        charge.installment = command.installment.strip()
        charge.invoice_year = command.period.year
        charge.invoice_month = command.period.month
        charge.type = command.type
        self.charges.save(charge)

        revert_charge(card, old_amount, old_type)
        apply_charge(card, command.amount, command.type)

        self.invoices.reverse(card, old_period, -signed_amount(old_amount, old_type))
        self.invoices.upsert(card, command.period, signed_amount(command.amount, command.type))
        self.cards.save(card)

        record_charge_operation("update", ChargeType(command.type).value)
        log_charge_operation("update", card.id, 1, card.current_limit, request_id)
        return charge

    def delete_charge(self, charge_id: uuid.UUID, request_id: Optional[str] = None) -> bool:
        """Remove a charge and its contribution. Returns False (no writes) when absent."""
        charge = self.charges.get_by_id(charge_id)
        if charge is None:
            return False
        card = self._lock_card(charge.card_id)

        charge_type = ChargeType(charge.type)
        period = InvoicePeriod(charge.invoice_year, charge.invoice_month)

        revert_charge(card, charge.amount, charge_type)
        self.invoices.reverse(card, period, -signed_amount(charge.amount, charge_type))
        self.cards.save(card)
        self.charges.delete(charge)

        record_charge_operation("delete", charge_type.value)
        log_charge_operation("delete", card.id, 1, card.current_limit, request_id)
        return True

    def create_purchase_by_card_name(
        self,
        card_name: str,
        description: str,
        amount: Decimal,
        now: datetime,
        installments: int = 1,
        request_id: Optional[str] = None,
    ) -> List[CardTransaction]:
        """
        Entry point for the chat assistant: record an expense on the card whose
        name (or bank) matches `card_name`, billed from the invoice open at `now`.
        """
        card = self._card_by_name(card_name)
        period = resolve_invoice_period(now, card.closing_day, card.due_day)
        return self.create_charges(
            CreateChargeCommand(
                card_id=card.id,
                description=description,
                amount=amount,
                date=now,
                period=period,
                type=ChargeType.EXPENSE,
                is_installment=installments > 1,
                installment_count=installments,
            ),
            request_id=request_id,
        )

    # Queries

    def get_charge(self, charge_id: uuid.UUID) -> CardTransaction:
        charge = self.charges.get_by_id(charge_id)
        if charge is None:
            raise ChargeNotFoundError(f"Card transaction {charge_id} not found")
        return charge

    def list_by_card(self, card_id: uuid.UUID) -> List[CardTransaction]:
        return self.charges.list_by_card(card_id)

    def list_by_card_and_period(self, card_id: uuid.UUID, period: InvoicePeriod) -> List[CardTransaction]:
        return self.charges.list_by_period(card_id, period)

    def list_from_period(self, card_id: uuid.UUID, period: InvoicePeriod) -> List[CardTransaction]:
        return self.charges.list_from_period(card_id, period)

    def get_invoice_summary(self, card_id: uuid.UUID, period: InvoicePeriod) -> InvoiceSummary:
        """Invoice view re-summed from the period's charges, not read from the stored invoice"""
        card = self.cards.get_by_id(card_id)
        if card is None:
            raise CardNotFoundError()

        charges = self.charges.list_by_period(card_id, period)
        total = sum((signed_amount(c.amount, c.type) for c in charges), Decimal("0"))
        stored = self.invoices.bills.get_invoice(card_id, period)

        return InvoiceSummary(
            card_id=card.id,
            card_name=card.name,
            period=period,
            current_limit=card.current_limit,
            invoice_total=total,
            charges=list(charges),
            invoice_id=stored.id if stored is not None else None,
        )

    def get_invoice_summary_by_card_name(self, card_name: str, period: InvoicePeriod) -> InvoiceSummary:
        """Chat assistant lookup: invoice of the card whose name (or bank) matches `card_name`"""
        return self.get_invoice_summary(self._card_by_name(card_name).id, period)

    def _card_by_name(self, card_name: str) -> Card:
        card = CardService(self.db).find_by_name(card_name)
        if card is None:
            names = [f"{c.name} ({c.issuing_bank})" for c in self.cards.list_all()]
            raise CardNotFoundError(f"No card matches '{card_name}'", available_cards=names)
        return card

    def _lock_card(self, card_id: uuid.UUID) -> Card:
        card = self.cards.get_for_update(card_id)
        if card is None:
            raise CardNotFoundError()
        return card
