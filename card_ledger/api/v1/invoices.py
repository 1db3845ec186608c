"""Card invoices: summary per period, stored invoices, payment status"""

import uuid
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from card_ledger.api.v1.schemas import (
    ChargeResponse,
    InvoiceResponse,
    InvoiceSummaryResponse,
    PaymentStatusRequest,
)
from card_ledger.api.dependencies import get_request_id
from card_ledger.infrastructure.database.session import get_db
from card_ledger.services.charges import CardTransactionService
from card_ledger.services.invoices import InvoicePaymentService
from card_ledger.domain.models import InvoiceSummary
from card_ledger.domain.periods import InvoicePeriod
from card_ledger.domain.exceptions import CardNotFoundError, ConcurrentModificationError, InvoiceNotFoundError

router = APIRouter()


def _summary_response(summary: InvoiceSummary) -> InvoiceSummaryResponse:
    return InvoiceSummaryResponse(
        card_id=summary.card_id,
        card_name=summary.card_name,
        year=summary.period.year,
        month=summary.period.month,
        current_limit=summary.current_limit,
        invoice_total=summary.invoice_total,
        invoice_id=summary.invoice_id,
        transactions=[ChargeResponse.model_validate(c) for c in summary.charges],
    )


@router.get("/cards/{card_id}/invoices", response_model=List[InvoiceResponse])
def list_card_invoices(card_id: uuid.UUID, db: Session = Depends(get_db)):
    """Stored invoices of a card, ordered by due date"""
    try:
        return InvoicePaymentService(db).list_invoices(card_id)
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/cards/{card_id}/invoices/{year}/{month}", response_model=InvoiceSummaryResponse)
def get_invoice_summary(
    card_id: uuid.UUID,
    year: int = Path(..., ge=1970, le=3000),
    month: int = Path(..., ge=1, le=12),
    db: Session = Depends(get_db),
):
    """
    Invoice of one period, computed from its charges.

    Returns:
        Card name, current available credit, signed invoice total
        (expenses minus refunds) and the period's charges
    """
    try:
        summary = CardTransactionService(db).get_invoice_summary(card_id, InvoicePeriod(year, month))
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return _summary_response(summary)


@router.get("/invoices/lookup", response_model=InvoiceSummaryResponse)
def get_invoice_summary_by_card_name(
    card_name: str = Query(..., min_length=1, max_length=100),
    year: int = Query(..., ge=1970, le=3000),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db),
):
    """
    Invoice of one period for the card matching `card_name` (chat assistant).

    When no card matches, the 404 body lists the registered cards.
    """
    try:
        summary = CardTransactionService(db).get_invoice_summary_by_card_name(card_name, InvoicePeriod(year, month))
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail={"message": str(e), "available_cards": e.available_cards})

    return _summary_response(summary)


@router.patch("/invoices/{invoice_id}/payment", response_model=InvoiceResponse)
def set_invoice_payment(
    invoice_id: uuid.UUID, request_body: PaymentStatusRequest, request: Request, db: Session = Depends(get_db)
):
    """Mark an invoice paid (frees its amount on the card) or unpaid (consumes it again)"""
    request_id = get_request_id(request)

    try:
        invoice = InvoicePaymentService(db).set_payment_status(invoice_id, request_body.is_paid)
        db.commit()
        logging.info(
            "Invoice payment status changed",
            extra={"request_id": request_id, "invoice_id": str(invoice_id), "is_paid": request_body.is_paid},
        )
        return invoice

    except InvoiceNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except (StaleDataError, ConcurrentModificationError) as e:
        db.rollback()
        logging.warning(f"Concurrent invoice update: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail="Invoice was modified concurrently, retry")

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
