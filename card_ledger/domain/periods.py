"""Invoice period resolution for credit card billing cycles"""

from dataclasses import dataclass
from datetime import date

from card_ledger.domain.exceptions import InvalidCycleDayError, InvalidInvoicePeriodError
from card_ledger.utils.date_utils import clamped_date, month_bounds, shift_year_month


@dataclass(frozen=True, order=True)
class InvoicePeriod:
    """(year, month) bucket of an invoice, identified by its due date"""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise InvalidInvoicePeriodError(f"Invoice month must be between 1 and 12, got {self.month}")
        if not 1 <= self.year <= 9999:
            raise InvalidInvoicePeriodError(f"Invoice year out of range: {self.year}")

    @classmethod
    def from_date(cls, value: date) -> "InvoicePeriod":
        return cls(value.year, value.month)

    def shift(self, months: int) -> "InvoicePeriod":
        return InvoicePeriod(*shift_year_month(self.year, self.month, months))

    @property
    def start(self) -> date:
        return month_bounds(self.year, self.month)[0]

    @property
    def end(self) -> date:
        return month_bounds(self.year, self.month)[1]

    def due_date(self, due_day: int) -> date:
        return clamped_date(self.year, self.month, due_day)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def validate_cycle_days(closing_day: int, due_day: int) -> None:
    if not 1 <= closing_day <= 31:
        raise InvalidCycleDayError("Closing day must be between 1 and 31")
    if not 1 <= due_day <= 31:
        raise InvalidCycleDayError("Due day must be between 1 and 31")


def resolve_invoice_period(charge_date: date, closing_day: int, due_day: int) -> InvoicePeriod:
    """
    Map a charge date onto the invoice it is billed under.

    Algorithm:
    - The cycle closes on `closing_day`; a charge after that day rolls into
      the next month's cycle
    - When the due day does not come after the closing day within a month,
      the due date falls in the month following the closing
    - The invoice is identified by the (year, month) of that due date

    Examples:
        closing 10, due 15: 2025-01-05 -> 2025-01, 2025-01-15 -> 2025-02
        closing 25, due 10: 2025-01-05 -> 2025-02
        closing 25, due 15: 2025-12-26 -> 2026-02
    """
    validate_cycle_days(closing_day, due_day)

    closing = InvoicePeriod.from_date(charge_date)
    if charge_date.day > closing_day:
        closing = closing.shift(1)

    if due_day <= closing_day:
        return closing.shift(1)
    return closing
