"""Installment plan generation for card purchases"""

from datetime import datetime
from decimal import ROUND_HALF_EVEN, Decimal
from typing import List

from card_ledger.domain.exceptions import InvalidInstallmentCountError
from card_ledger.domain.models import ChargeType, PlannedInstallment, RoundingPolicy
from card_ledger.domain.periods import InvoicePeriod
from card_ledger.domain.validation import CENTS, validate_amount
from card_ledger.utils.date_utils import add_months


def split_amount(total: Decimal, count: int, rounding: RoundingPolicy = RoundingPolicy.EQUAL) -> List[Decimal]:
    """
    Split a total into `count` installment amounts.

    - EQUAL: every installment is round(total / count, 2); the sum can differ
      from the total by up to count * 0.005
    - REMAINDER_ON_LAST: same base amount, last installment absorbs the
      difference so the sum is exact

    Example:
        100.00 / 3, EQUAL             -> [33.33, 33.33, 33.33]
        100.00 / 3, REMAINDER_ON_LAST -> [33.33, 33.33, 33.34]
    """
    if count < 1:
        raise InvalidInstallmentCountError("Installment count must be at least 1")

    base = (total / count).quantize(CENTS, rounding=ROUND_HALF_EVEN)
    amounts = [base] * count

    if rounding == RoundingPolicy.REMAINDER_ON_LAST:
        amounts[-1] = total - base * (count - 1)

    return amounts


def generate_installment_plan(
    total: Decimal,
    count: int,
    purchase_date: datetime,
    first_period: InvoicePeriod,
    charge_type: ChargeType = ChargeType.EXPENSE,
    rounding: RoundingPolicy = RoundingPolicy.EQUAL,
) -> List[PlannedInstallment]:
    """
    Expand a purchase into monthly installments.

    Requirements:
    - Installment i (0-based) is dated purchase_date + i months
    - Its invoice period is first_period advanced by i months; the first
      period comes already resolved from the card's billing cycle
    - Labels are "1/n" .. "n/n"

    Args:
        total: Purchase total, > 0
        count: Number of installments, >= 1 (1 means a single charge "1/1")
        purchase_date: Date of the purchase (first installment)
        first_period: Invoice period of the first installment
        charge_type: Expense or income, copied to every installment
        rounding: Split policy, see split_amount

    Returns:
        List of PlannedInstallment in chronological order
    """
    validate_amount(total)
    amounts = split_amount(total, count, rounding)

    return [
        PlannedInstallment(
            amount=amount,
            date=add_months(purchase_date, i),
            period=first_period.shift(i),
            label=f"{i + 1}/{count}",
            type=charge_type,
        )
        for i, amount in enumerate(amounts)
    ]
