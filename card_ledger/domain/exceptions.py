"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class CardNotFoundError(DomainException):
    """Referenced card does not exist"""

    def __init__(self, message: str = "Card not found", available_cards: list[str] | None = None):
        super().__init__(message)
        self.available_cards = available_cards or []


class ChargeNotFoundError(DomainException):
    """Referenced card transaction does not exist"""

    pass


class InvoiceNotFoundError(DomainException):
    """Referenced invoice (payable bill) does not exist"""

    pass


class InvalidAmountError(DomainException):
    """Amount must be greater than zero"""

    pass


class InvalidCycleDayError(DomainException):
    """Closing or due day outside 1-31"""

    pass


class InvalidCardError(DomainException):
    """Card name or issuing bank missing"""

    pass


class InvalidInstallmentCountError(DomainException):
    """Installment count must be at least 1"""

    pass


class InvalidInvoicePeriodError(DomainException):
    """Invoice year/month out of range"""

    pass


class InvalidChargeError(DomainException):
    """Charge description or installment label missing"""

    pass


class ConcurrentModificationError(DomainException):
    """Card or invoice row was changed by another request"""

    pass
