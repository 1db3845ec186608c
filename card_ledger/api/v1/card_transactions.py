"""/v1/card-transactions - Charge lifecycle (create, update, delete) and charge queries"""

import uuid
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from card_ledger.api.v1.schemas import ChargeCreateRequest, ChargeResponse, ChargeUpdateRequest
from card_ledger.api.dependencies import get_request_id
from card_ledger.infrastructure.database.session import get_db
from card_ledger.services.charges import CardTransactionService
from card_ledger.domain.models import CreateChargeCommand, UpdateChargeCommand
from card_ledger.domain.periods import InvoicePeriod
from card_ledger.domain.exceptions import (
    CardNotFoundError,
    ChargeNotFoundError,
    ConcurrentModificationError,
    InvalidAmountError,
    InvalidChargeError,
    InvalidInstallmentCountError,
    InvalidInvoicePeriodError,
)

router = APIRouter()

VALIDATION_ERRORS = (
    InvalidAmountError,
    InvalidChargeError,
    InvalidInstallmentCountError,
    InvalidInvoicePeriodError,
)


@router.post("/card-transactions", response_model=List[ChargeResponse], status_code=201)
def create_card_transaction(request_body: ChargeCreateRequest, request: Request, db: Session = Depends(get_db)):
    """
    Record a purchase or refund on a card.

    Flow:
    1. Expand into `installment_count` monthly charges when `is_installment`
    2. Apply every charge to the card's available credit
    3. Add every charge to the invoice of its period
    4. Commit once; any failure rolls back every write
    """
    request_id = get_request_id(request)

    try:
        command = CreateChargeCommand(
            card_id=request_body.card_id,
            description=request_body.description,
            amount=request_body.amount,
            date=request_body.date,
            period=InvoicePeriod(request_body.invoice_year, request_body.invoice_month),
            type=request_body.type,
            is_installment=request_body.is_installment,
            installment_count=request_body.installment_count,
        )
        charges = CardTransactionService(db).create_charges(command, request_id=request_id)
        db.commit()
        return charges

    except CardNotFoundError as e:
        db.rollback()
        logging.warning(f"Card not found: {request_body.card_id}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=str(e))

    except VALIDATION_ERRORS as e:
        db.rollback()
        logging.warning(f"Invalid charge: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except (StaleDataError, ConcurrentModificationError) as e:
        db.rollback()
        logging.warning(f"Concurrent charge create: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail="Card was modified concurrently, retry")

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/card-transactions/{charge_id}", response_model=ChargeResponse)
def get_card_transaction(charge_id: uuid.UUID, db: Session = Depends(get_db)):
    try:
        return CardTransactionService(db).get_charge(charge_id)
    except ChargeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/card-transactions/{charge_id}", response_model=ChargeResponse)
def update_card_transaction(
    charge_id: uuid.UUID, request_body: ChargeUpdateRequest, request: Request, db: Session = Depends(get_db)
):
    """Replace a charge, moving its effect on the card and invoices from old values to new"""
    request_id = get_request_id(request)

    try:
        command = UpdateChargeCommand(
            description=request_body.description,
            amount=request_body.amount,
            date=request_body.date,
            installment=request_body.installment,
            period=InvoicePeriod(request_body.invoice_year, request_body.invoice_month),
            type=request_body.type,
        )
        charge = CardTransactionService(db).update_charge(charge_id, command, request_id=request_id)
        db.commit()
        return charge

    except (ChargeNotFoundError, CardNotFoundError) as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except VALIDATION_ERRORS as e:
        db.rollback()
        logging.warning(f"Invalid charge: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except (StaleDataError, ConcurrentModificationError) as e:
        db.rollback()
        logging.warning(f"Concurrent charge update: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail="Card was modified concurrently, retry")

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/card-transactions/{charge_id}", status_code=204)
def delete_card_transaction(charge_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    """Delete a charge, restoring credit and shrinking (or removing) its invoice"""
    request_id = get_request_id(request)

    try:
        deleted = CardTransactionService(db).delete_charge(charge_id, request_id=request_id)
        db.commit()

    except (StaleDataError, ConcurrentModificationError) as e:
        db.rollback()
        logging.warning(f"Concurrent charge delete: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail="Card was modified concurrently, retry")

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    if not deleted:
        raise HTTPException(status_code=404, detail="Card transaction not found")
    return Response(status_code=204)


@router.get("/cards/{card_id}/transactions", response_model=List[ChargeResponse])
def list_card_transactions(
    card_id: uuid.UUID,
    year: Optional[int] = Query(default=None, ge=1970, le=3000),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    db: Session = Depends(get_db),
):
    """Charges of a card, newest first; narrowed to one invoice period when year and month are given"""
    service = CardTransactionService(db)
    if year is not None and month is not None:
        return service.list_by_card_and_period(card_id, InvoicePeriod(year, month))
    return service.list_by_card(card_id)
