"""Card credit ledger - the only code allowed to move a card's available credit"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Protocol

from card_ledger.domain.models import ChargeType
from card_ledger.domain.periods import InvoicePeriod, resolve_invoice_period


class LedgerCard(Protocol):
    limit: Decimal
    current_limit: Decimal
    closing_day: int
    due_day: int


class LedgerCharge(Protocol):
    amount: Decimal
    type: ChargeType
    invoice_year: int
    invoice_month: int


def signed_amount(amount: Decimal, charge_type: ChargeType) -> Decimal:
    """Contribution of a charge to what is owed: +amount for expenses, -amount for income"""
    return amount if ChargeType(charge_type) == ChargeType.EXPENSE else -amount


def apply_charge(card: LedgerCard, amount: Decimal, charge_type: ChargeType) -> Decimal:
    """Expense consumes credit, income frees it. Returns the new current limit."""
    card.current_limit = card.current_limit - signed_amount(amount, charge_type)
    return card.current_limit


def revert_charge(card: LedgerCard, amount: Decimal, charge_type: ChargeType) -> Decimal:
    """Exact inverse of apply_charge"""
    card.current_limit = card.current_limit + signed_amount(amount, charge_type)
    return card.current_limit


def release_invoice_payment(card: LedgerCard, invoice_amount: Decimal) -> Decimal:
    """Paying an invoice frees its amount"""
    return apply_charge(card, invoice_amount, ChargeType.INCOME)


def restore_invoice_payment(card: LedgerCard, invoice_amount: Decimal) -> Decimal:
    """Un-paying an invoice consumes its amount again"""
    return revert_charge(card, invoice_amount, ChargeType.INCOME)


def current_period(card: LedgerCard, today: date) -> InvoicePeriod:
    return resolve_invoice_period(today, card.closing_day, card.due_day)


def outstanding_total(charges: Iterable[LedgerCharge], since: InvoicePeriod) -> Decimal:
    """Signed sum of charges billed in `since` or any later period"""
    return sum(
        (
            signed_amount(c.amount, c.type)
            for c in charges
            if InvoicePeriod(c.invoice_year, c.invoice_month) >= since
        ),
        Decimal("0"),
    )


def recalculate_current_limit(card: LedgerCard, charges: Iterable[LedgerCharge], today: date) -> Decimal:
    """
    Rebuild the available credit from charge history.

    Only charges billed in the current period (resolved for `today`) or later
    count; closed invoices are settled through their paid flag instead.
    Used when the card's limit itself changes.
    """
    period = current_period(card, today)
    card.current_limit = card.limit - outstanding_total(charges, period)
    return card.current_limit
