"""Integration tests for the card transaction lifecycle against the test database"""

import uuid
import pytest
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy.orm import Session
from card_ledger.domain.exceptions import (
    CardNotFoundError,
    ChargeNotFoundError,
    InvalidAmountError,
    InvalidChargeError,
)
from card_ledger.domain.ledger import signed_amount
from card_ledger.domain.models import ChargeType, CreateChargeCommand, UpdateChargeCommand
from card_ledger.domain.periods import InvoicePeriod
from card_ledger.infrastructure.database.models import Card, CardTransaction, FinancialTransaction
from card_ledger.infrastructure.database.repositories import FinancialTransactionRepository
from card_ledger.services.charges import CardTransactionService
from card_ledger.services.invoices import InvoicePaymentService, InvoiceSynchronizer

pytestmark = pytest.mark.integration

NOVEMBER = InvoicePeriod(2025, 11)
DECEMBER = InvoicePeriod(2025, 12)


def create(db: Session, card: Card, amount: str, charge_type=ChargeType.EXPENSE, period=NOVEMBER, installments=1):
    charges = CardTransactionService(db).create_charges(
        CreateChargeCommand(
            card_id=card.id,
            description="Groceries",
            amount=Decimal(amount),
            date=datetime(2025, 11, 1, 10, 30),
            period=period,
            type=charge_type,
            is_installment=installments > 1,
            installment_count=installments,
        )
    )
    db.commit()
    return charges


def update(db: Session, charge: CardTransaction, amount: str, charge_type=ChargeType.EXPENSE, period=NOVEMBER):
    result = CardTransactionService(db).update_charge(
        charge.id,
        UpdateChargeCommand(
            description=charge.description,
            amount=Decimal(amount),
            date=charge.date,
            installment=charge.installment,
            period=period,
            type=charge_type,
        ),
    )
    db.commit()
    return result


def invoice_for(db: Session, card: Card, period: InvoicePeriod):
    return FinancialTransactionRepository(db).get_invoice(card.id, period)


def assert_ledger_consistent(db: Session, card: Card):
    """current_limit == limit - signed sum of live charges; each invoice equals its period's signed sum"""
    charges = db.query(CardTransaction).filter(CardTransaction.card_id == card.id).all()
    total = sum((signed_amount(c.amount, c.type) for c in charges), Decimal("0"))
    assert card.current_limit == card.limit - total

    by_period = {}
    for c in charges:
        key = InvoicePeriod(c.invoice_year, c.invoice_month)
        by_period[key] = by_period.get(key, Decimal("0")) + signed_amount(c.amount, c.type)

    for period, expected in by_period.items():
        invoice = invoice_for(db, card, period)
        if expected > 0:
            assert invoice is not None
        if invoice is not None:
            assert invoice.amount == expected


def test_create_single_charge(db: Session, card: Card):
    charges = create(db, card, "500.00")

    assert len(charges) == 1
    assert charges[0].installment == "1/1"
    assert card.current_limit == Decimal("4500.00")

    invoice = invoice_for(db, card, NOVEMBER)
    assert invoice.amount == Decimal("500.00")
    assert invoice.due_date == date(2025, 11, 15)
    assert invoice.description == "Invoice Nubank Gold"
    assert invoice.category.name == "Card Invoice"
    assert invoice.category.color == "#E91E63"
    assert invoice.is_paid is False


def test_create_installment_purchase(db: Session, card: Card):
    charges = create(db, card, "300.00", installments=3)

    assert [c.installment for c in charges] == ["1/3", "2/3", "3/3"]
    assert [(c.invoice_year, c.invoice_month) for c in charges] == [(2025, 11), (2025, 12), (2026, 1)]
    assert card.current_limit == Decimal("4700.00")
    for period in (NOVEMBER, DECEMBER, InvoicePeriod(2026, 1)):
        assert invoice_for(db, card, period).amount == Decimal("100.00")


def test_income_frees_credit_and_reduces_invoice(db: Session, card: Card):
    create(db, card, "800.00")
    create(db, card, "200.00", charge_type=ChargeType.INCOME)

    assert card.current_limit == Decimal("4400.00")
    assert invoice_for(db, card, NOVEMBER).amount == Decimal("600.00")


def test_ledger_replay_after_mixed_operations(db: Session, card: Card):
    first = create(db, card, "1200.00")[0]
    installments = create(db, card, "450.00", installments=3)
    refund = create(db, card, "100.00", charge_type=ChargeType.INCOME, period=DECEMBER)[0]

    update(db, first, "900.00", period=DECEMBER)
    CardTransactionService(db).delete_charge(installments[1].id)
    db.commit()
    update(db, refund, "50.00", charge_type=ChargeType.INCOME, period=DECEMBER)

    assert_ledger_consistent(db, card)
    assert card.current_limit == Decimal("5000.00") - Decimal("900.00") - Decimal("300.00") + Decimal("50.00")


def test_update_expense_to_income_moves_limit_and_invoice_by_800(db: Session, card: Card):
    create(db, card, "1000.00")
    charge = create(db, card, "500.00")[0]
    limit_before = card.current_limit
    invoice_before = invoice_for(db, card, NOVEMBER).amount

    update(db, charge, "300.00", charge_type=ChargeType.INCOME)

    assert card.current_limit - limit_before == Decimal("800.00")
    assert invoice_before - invoice_for(db, card, NOVEMBER).amount == Decimal("800.00")
    assert charge.type == ChargeType.INCOME


def test_update_moves_charge_to_another_period(db: Session, card: Card):
    charge = create(db, card, "500.00")[0]

    update(db, charge, "500.00", period=DECEMBER)

    assert invoice_for(db, card, NOVEMBER) is None
    assert invoice_for(db, card, DECEMBER).amount == Decimal("500.00")
    assert card.current_limit == Decimal("4500.00")


def test_update_missing_charge(db: Session, card: Card):
    with pytest.raises(ChargeNotFoundError):
        CardTransactionService(db).update_charge(
            uuid.uuid4(),
            UpdateChargeCommand("x", Decimal("1.00"), datetime(2025, 11, 1), "1/1", NOVEMBER),
        )


def test_delete_sole_charge_removes_invoice(db: Session, card: Card):
    charge = create(db, card, "500.00")[0]

    assert CardTransactionService(db).delete_charge(charge.id) is True
    db.commit()

    assert invoice_for(db, card, NOVEMBER) is None
    assert card.current_limit == Decimal("5000.00")
    assert db.get(CardTransaction, charge.id) is None


def test_delete_missing_charge_writes_nothing(db: Session, card: Card):
    create(db, card, "500.00")

    assert CardTransactionService(db).delete_charge(uuid.uuid4()) is False

    assert not db.new and not db.dirty and not db.deleted
    assert card.current_limit == Decimal("4500.00")
    assert invoice_for(db, card, NOVEMBER).amount == Decimal("500.00")


def test_unknown_card_writes_nothing(db: Session, card: Card):
    with pytest.raises(CardNotFoundError):
        CardTransactionService(db).create_charges(
            CreateChargeCommand(uuid.uuid4(), "Coffee", Decimal("5.00"), datetime(2025, 11, 1), NOVEMBER)
        )
    db.rollback()

    assert db.query(CardTransaction).count() == 0
    assert db.query(FinancialTransaction).count() == 0


@pytest.mark.parametrize("description, amount, error", [
    ("Coffee", "0", InvalidAmountError),
    ("Coffee", "-5.00", InvalidAmountError),
    ("   ", "5.00", InvalidChargeError),
])
def test_invalid_charge_rejected_before_any_write(db: Session, card: Card, description, amount, error):
    with pytest.raises(error):
        CardTransactionService(db).create_charges(
            CreateChargeCommand(card.id, description, Decimal(amount), datetime(2025, 11, 1), NOVEMBER)
        )

    assert not db.new and not db.dirty
    assert card.current_limit == Decimal("5000.00")


def test_new_charge_reopens_paid_invoice(db: Session, card: Card):
    create(db, card, "500.00")
    invoice = invoice_for(db, card, NOVEMBER)
    InvoicePaymentService(db).set_payment_status(invoice.id, True)
    db.commit()

    create(db, card, "20.00")

    invoice = invoice_for(db, card, NOVEMBER)
    assert invoice.is_paid is False
    assert invoice.amount == Decimal("520.00")


def test_invoice_summary(db: Session, card: Card):
    create(db, card, "500.00")
    create(db, card, "100.00", charge_type=ChargeType.INCOME)
    create(db, card, "70.00", period=DECEMBER)

    summary = CardTransactionService(db).get_invoice_summary(card.id, NOVEMBER)

    assert summary.card_name == "Nubank Gold"
    assert summary.invoice_total == Decimal("400.00")
    assert summary.current_limit == Decimal("4530.00")
    assert len(summary.charges) == 2
    assert summary.invoice_id == invoice_for(db, card, NOVEMBER).id


def test_invoice_summary_unknown_card(db: Session):
    with pytest.raises(CardNotFoundError):
        CardTransactionService(db).get_invoice_summary(uuid.uuid4(), NOVEMBER)


def test_purchase_by_card_name(db: Session, card: Card):
    # 2025-11-06 is after closing day 5, so the purchase lands on the December invoice
    charges = CardTransactionService(db).create_purchase_by_card_name(
        "nubank", "Headphones", Decimal("240.00"), datetime(2025, 11, 6, 9, 0), installments=2
    )
    db.commit()

    assert [(c.invoice_year, c.invoice_month) for c in charges] == [(2025, 12), (2026, 1)]
    assert all(c.amount == Decimal("120.00") for c in charges)
    assert card.current_limit == Decimal("4760.00")


def test_purchase_by_unknown_card_name_lists_cards(db: Session, card: Card):
    with pytest.raises(CardNotFoundError) as exc_info:
        CardTransactionService(db).create_purchase_by_card_name(
            "Itau Platinum", "Headphones", Decimal("240.00"), datetime(2025, 11, 6)
        )

    assert exc_info.value.available_cards == ["Nubank Gold (Nubank)"]


def test_invoice_recreated_after_deletion_keeps_live_refund(db: Session, card: Card):
    """A refund outliving its deleted invoice is carried into the next invoice of the period"""
    create(db, card, "100.00", charge_type=ChargeType.INCOME)
    expense = create(db, card, "500.00")[0]
    assert invoice_for(db, card, NOVEMBER).amount == Decimal("400.00")

    CardTransactionService(db).delete_charge(expense.id)
    db.commit()
    assert invoice_for(db, card, NOVEMBER) is None

    create(db, card, "150.00")

    assert invoice_for(db, card, NOVEMBER).amount == Decimal("50.00")
    assert_ledger_consistent(db, card)


def test_failure_midway_rolls_back_every_write(db: Session, card: Card, monkeypatch):
    """The second installment's invoice write fails after the first installment was flushed"""
    original_upsert = InvoiceSynchronizer.upsert
    calls = []

    def upsert_then_fail(self, target, period, signed_delta):
        calls.append(period)
        if len(calls) == 2:
            raise RuntimeError("connection lost")
        return original_upsert(self, target, period, signed_delta)

    monkeypatch.setattr(InvoiceSynchronizer, "upsert", upsert_then_fail)

    with pytest.raises(RuntimeError):
        CardTransactionService(db).create_charges(
            CreateChargeCommand(
                card.id, "Television", Decimal("900.00"), datetime(2025, 11, 1), NOVEMBER,
                is_installment=True, installment_count=3,
            )
        )
    db.rollback()

    assert len(calls) == 2
    assert db.query(CardTransaction).count() == 0
    assert db.query(FinancialTransaction).count() == 0
    assert card.current_limit == Decimal("5000.00")


def test_repaying_reopened_invoice_releases_full_amount_again(db: Session, card: Card):
    """Reopening a paid invoice keeps the credit already freed; paying it again frees the whole amount once more"""
    create(db, card, "500.00")
    payments = InvoicePaymentService(db)
    payments.set_payment_status(invoice_for(db, card, NOVEMBER).id, True)
    db.commit()
    assert card.current_limit == Decimal("5000.00")

    create(db, card, "20.00")
    invoice = invoice_for(db, card, NOVEMBER)
    assert invoice.is_paid is False
    assert card.current_limit == Decimal("4980.00")

    payments.set_payment_status(invoice.id, True)
    db.commit()

    assert card.current_limit == Decimal("5500.00")
    assert card.current_limit > card.limit


def test_invoice_summary_by_card_name(db: Session, card: Card):
    create(db, card, "500.00")

    summary = CardTransactionService(db).get_invoice_summary_by_card_name("nubank", NOVEMBER)

    assert summary.card_id == card.id
    assert summary.invoice_total == Decimal("500.00")


def test_invoice_summary_by_unknown_card_name(db: Session, card: Card):
    with pytest.raises(CardNotFoundError) as exc_info:
        CardTransactionService(db).get_invoice_summary_by_card_name("Santander", NOVEMBER)

    assert exc_info.value.available_cards == ["Nubank Gold (Nubank)"]
