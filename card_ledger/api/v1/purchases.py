"""POST /v1/purchases - card purchase by card name (chat assistant entry point)"""

import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from card_ledger.api.v1.schemas import ChargeResponse, PurchaseRequest, PurchaseResponse
from card_ledger.api.dependencies import get_now, get_request_id
from card_ledger.infrastructure.database.session import get_db
from card_ledger.services.charges import CardTransactionService
from card_ledger.domain.exceptions import (
    CardNotFoundError,
    ConcurrentModificationError,
    InvalidAmountError,
    InvalidChargeError,
    InvalidInstallmentCountError,
)

router = APIRouter()


@router.post("/purchases", response_model=PurchaseResponse, status_code=201)
def create_purchase(
    request_body: PurchaseRequest,
    request: Request,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """
    Record an expense on the card matching `card_name`.

    The card is matched loosely (name containment or issuing bank) and the
    first installment is billed to the invoice open at the purchase date.
    When no card matches, the 404 body lists the registered cards.
    """
    request_id = get_request_id(request)
    purchase_date = request_body.date or now

    try:
        charges = CardTransactionService(db).create_purchase_by_card_name(
            card_name=request_body.card_name,
            description=request_body.description,
            amount=request_body.amount,
            now=purchase_date,
            installments=request_body.installments,
            request_id=request_id,
        )
        db.commit()

        card = charges[0].card
        return PurchaseResponse(
            card_id=card.id,
            card_name=card.name,
            current_limit=card.current_limit,
            transactions=[ChargeResponse.model_validate(c) for c in charges],
        )

    except CardNotFoundError as e:
        db.rollback()
        logging.warning(f"No card for purchase: {request_body.card_name}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail={"message": str(e), "available_cards": e.available_cards})

    except (InvalidAmountError, InvalidChargeError, InvalidInstallmentCountError) as e:
        db.rollback()
        raise HTTPException(status_code=422, detail=str(e))

    except (StaleDataError, ConcurrentModificationError) as e:
        db.rollback()
        logging.warning(f"Concurrent purchase: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail="Card was modified concurrently, retry")

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
