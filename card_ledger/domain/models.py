"""Domain models - pure Python dataclasses representing business entities"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from card_ledger.domain.periods import InvoicePeriod


class ChargeType(str, enum.Enum):
    """Direction of a card transaction"""

    EXPENSE = "expense"  # purchase: consumes credit, adds to the invoice
    INCOME = "income"  # refund/credit: frees credit, reduces the invoice


class BillType(str, enum.Enum):
    PAYABLE = "payable_bill"
    RECEIVABLE = "receivable_bill"


class RoundingPolicy(str, enum.Enum):
    """How a purchase total is split across installments"""

    EQUAL = "equal"
    REMAINDER_ON_LAST = "remainder_on_last"


@dataclass
class PlannedInstallment:
    """Single dated, invoice-tagged slice of a purchase"""

    amount: Decimal
    date: datetime
    period: InvoicePeriod
    label: str  # "i/n"
    type: ChargeType


@dataclass
class CreateChargeCommand:
    """Input for creating one charge (or an installment purchase) on a card"""

    card_id: UUID
    description: str
    amount: Decimal
    date: datetime
    period: InvoicePeriod
    type: ChargeType = ChargeType.EXPENSE
    is_installment: bool = False
    installment_count: int = 1


@dataclass
class UpdateChargeCommand:
    """Replacement values for an existing charge"""

    description: str
    amount: Decimal
    date: datetime
    installment: str
    period: InvoicePeriod
    type: ChargeType = ChargeType.EXPENSE


@dataclass
class CardDetails:
    """Editable card fields, used for both creation and update"""

    name: str
    issuing_bank: str
    closing_day: int
    due_day: int
    limit: Decimal


@dataclass
class InvoiceSummary:
    """Invoice view recomputed from the charges of one period"""

    card_id: UUID
    card_name: str
    period: InvoicePeriod
    current_limit: Decimal
    invoice_total: Decimal
    charges: List[object] = field(default_factory=list)
    invoice_id: Optional[UUID] = None
