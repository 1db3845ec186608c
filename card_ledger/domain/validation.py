"""Input validation run before any write touches the database"""

from decimal import Decimal

from card_ledger.domain.exceptions import InvalidAmountError, InvalidCardError, InvalidChargeError
from card_ledger.domain.models import CardDetails
from card_ledger.domain.periods import validate_cycle_days

CENTS = Decimal("0.01")


def validate_amount(amount: Decimal, field_name: str = "Amount") -> None:
    if amount is None or amount <= 0:
        raise InvalidAmountError(f"{field_name} must be greater than zero")


def validate_card_details(details: CardDetails) -> None:
    if not details.name or not details.name.strip():
        raise InvalidCardError("Card name is required")
    if not details.issuing_bank or not details.issuing_bank.strip():
        raise InvalidCardError("Issuing bank is required")
    validate_cycle_days(details.closing_day, details.due_day)
    validate_amount(details.limit, "Limit")


def validate_charge_fields(description: str, amount: Decimal, installment: str = "1/1") -> None:
    if not description or not description.strip():
        raise InvalidChargeError("Description cannot be empty")
    if not installment or not installment.strip():
        raise InvalidChargeError("Installment cannot be empty")
    validate_amount(amount)
