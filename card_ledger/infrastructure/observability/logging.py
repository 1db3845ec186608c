"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from card_ledger.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.utcnow().isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        json_default=str,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_charge_operation(
    operation: str,
    card_id: Any,
    charge_count: int,
    current_limit: Decimal,
    request_id: Optional[str] = None,
) -> None:
    """Log a completed charge lifecycle operation with the card's resulting credit"""
    logging.info(
        "Card charge operation completed",
        extra={
            "request_id": request_id,
            "step": "charge_" + operation,
            "card_id": str(card_id),
            "charges": charge_count,
            "current_limit": str(current_limit),
        },
    )


def log_invoice_sync(action: str, card_id: Any, period: str, amount: Optional[Decimal]) -> None:
    """Log an invoice aggregate change (created, updated, deleted)"""
    logging.info(
        "Invoice synchronized",
        extra={
            "step": "invoice_" + action,
            "card_id": str(card_id),
            "period": period,
            "amount": None if amount is None else str(amount),
        },
    )
