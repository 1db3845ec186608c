"""/v1/cards - Card CRUD"""

import uuid
import logging
from datetime import date
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from card_ledger.api.v1.schemas import CardRequest, CardResponse
from card_ledger.api.dependencies import get_request_id, get_today
from card_ledger.infrastructure.database.session import get_db
from card_ledger.services.cards import CardService
from card_ledger.domain.models import CardDetails
from card_ledger.domain.exceptions import (
    CardNotFoundError,
    ConcurrentModificationError,
    InvalidAmountError,
    InvalidCardError,
    InvalidCycleDayError,
)

router = APIRouter()


def _details(body: CardRequest) -> CardDetails:
    return CardDetails(
        name=body.name,
        issuing_bank=body.issuing_bank,
        closing_day=body.closing_day,
        due_day=body.due_day,
        limit=body.limit,
    )


@router.post("/cards", response_model=CardResponse, status_code=201)
def create_card(request_body: CardRequest, request: Request, db: Session = Depends(get_db)):
    """Register a card; its available credit starts at the full limit"""
    request_id = get_request_id(request)

    try:
        card = CardService(db).create_card(_details(request_body))
        db.commit()
        logging.info("Card created", extra={"request_id": request_id, "card_id": str(card.id)})
        return card

    except (InvalidCardError, InvalidCycleDayError, InvalidAmountError) as e:
        db.rollback()
        logging.warning(f"Invalid card: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/cards", response_model=List[CardResponse])
def list_cards(db: Session = Depends(get_db)):
    return CardService(db).list_cards()


@router.get("/cards/{card_id}", response_model=CardResponse)
def get_card(card_id: uuid.UUID, db: Session = Depends(get_db)):
    try:
        return CardService(db).get_card(card_id)
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/cards/{card_id}", response_model=CardResponse)
def update_card(
    card_id: uuid.UUID,
    request_body: CardRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Edit a card.

    The available credit is recomputed from the new limit minus the charges
    billed in the current invoice period or later.
    """
    request_id = get_request_id(request)

    try:
        card = CardService(db).update_card(card_id, _details(request_body), today)
        db.commit()
        return card

    except CardNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except (InvalidCardError, InvalidCycleDayError, InvalidAmountError) as e:
        db.rollback()
        logging.warning(f"Invalid card: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except (StaleDataError, ConcurrentModificationError) as e:
        db.rollback()
        logging.warning(f"Concurrent card update: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail="Card was modified concurrently, retry")

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/cards/{card_id}", status_code=204)
def delete_card(card_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    """Delete a card together with its charges and invoices"""
    request_id = get_request_id(request)

    try:
        deleted = CardService(db).delete_card(card_id)
        db.commit()

    except (StaleDataError, ConcurrentModificationError) as e:
        db.rollback()
        logging.warning(f"Concurrent card delete: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail="Card was modified concurrently, retry")

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    if not deleted:
        raise HTTPException(status_code=404, detail="Card not found")
    return Response(status_code=204)
