"""GET /v1/invoice-period - Resolve which invoice a charge date falls into"""

from datetime import datetime
from fastapi import APIRouter, HTTPException, Query

from card_ledger.api.v1.schemas import InvoicePeriodResponse
from card_ledger.domain.periods import resolve_invoice_period
from card_ledger.domain.exceptions import InvalidCycleDayError, InvalidInvoicePeriodError

router = APIRouter()


@router.get("/invoice-period", response_model=InvoicePeriodResponse)
def get_invoice_period(
    date: datetime,
    closing_day: int = Query(...),
    due_day: int = Query(...),
):
    """
    Invoice period for a charge made on `date` by a card with the given cycle.

    Examples (closing 5, due 15): 2025-11-03 -> 2025-11, 2025-11-06 -> 2025-12
    """
    try:
        period = resolve_invoice_period(date, closing_day, due_day)
    except (InvalidCycleDayError, InvalidInvoicePeriodError) as e:
        raise HTTPException(status_code=422, detail=str(e))

    return InvoicePeriodResponse(year=period.year, month=period.month)
