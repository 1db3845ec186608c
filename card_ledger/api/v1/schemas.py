"""Pydantic schemas for API request/response validation"""

import uuid
from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from card_ledger.domain.models import ChargeType

Amount = Annotated[Decimal, Field(gt=0, max_digits=18, decimal_places=2)]


class CardRequest(BaseModel):
    """Request body for POST /v1/cards and PUT /v1/cards/{card_id}"""

    name: str = Field(..., min_length=1, max_length=100, description="Card nickname")
    issuing_bank: str = Field(..., min_length=1, max_length=100)
    closing_day: int = Field(..., ge=1, le=31, description="Day the billing cycle closes")
    due_day: int = Field(..., ge=1, le=31, description="Day the invoice is due")
    limit: Decimal = Field(..., gt=0, max_digits=18, decimal_places=2, description="Credit ceiling")


class CardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    issuing_bank: str
    closing_day: int
    due_day: int
    limit: Decimal
    current_limit: Decimal
    created_at: datetime


class ChargeCreateRequest(BaseModel):
    """Request body for POST /v1/card-transactions"""

    card_id: uuid.UUID
    description: str = Field(..., min_length=1, max_length=200)
    amount: Amount
    date: datetime
    type: ChargeType = ChargeType.EXPENSE
    is_installment: bool = False
    installment_count: int = Field(default=1, ge=1, le=120)
    invoice_year: int = Field(..., ge=1970, le=3000)
    invoice_month: int = Field(..., ge=1, le=12)


class ChargeUpdateRequest(BaseModel):
    """Request body for PUT /v1/card-transactions/{charge_id}"""

    description: str = Field(..., min_length=1, max_length=200)
    amount: Amount
    date: datetime
    installment: str = Field(default="1/1", pattern=r"^\d+/\d+$")
    invoice_year: int = Field(..., ge=1970, le=3000)
    invoice_month: int = Field(..., ge=1, le=12)
    type: ChargeType = ChargeType.EXPENSE


class ChargeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    card_id: uuid.UUID
    description: str
    amount: Decimal
    date: datetime
    installment: str
    invoice_year: int
    invoice_month: int
    type: ChargeType
    created_at: datetime


class InvoiceSummaryResponse(BaseModel):
    """Response for GET /v1/cards/{card_id}/invoices/{year}/{month}"""

    card_id: uuid.UUID
    card_name: str
    year: int
    month: int
    current_limit: Decimal
    invoice_total: Decimal
    invoice_id: Optional[uuid.UUID] = None
    transactions: List[ChargeResponse]


class InvoiceResponse(BaseModel):
    """Stored invoice (payable bill) of a card"""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    card_id: Optional[uuid.UUID] = None
    description: str
    amount: Decimal
    due_date: date
    is_paid: bool
    category_id: Optional[uuid.UUID] = None


class PaymentStatusRequest(BaseModel):
    is_paid: bool


class PurchaseRequest(BaseModel):
    """Structured card purchase produced by the chat assistant"""

    card_name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=200)
    amount: Amount
    installments: int = Field(default=1, ge=1, le=120)
    date: Optional[datetime] = Field(default=None, description="Defaults to now (UTC)")


class PurchaseResponse(BaseModel):
    card_id: uuid.UUID
    card_name: str
    current_limit: Decimal
    transactions: List[ChargeResponse]


class InvoicePeriodResponse(BaseModel):
    """Response for GET /v1/invoice-period"""

    year: int
    month: int
