"""Dependency injection for FastAPI endpoints"""

from datetime import date, datetime
from fastapi import Request
from card_ledger.utils.date_utils import utc_today


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_today() -> date:
    """Current UTC date; overridden in tests to pin the billing cycle"""
    return utc_today()


def get_now() -> datetime:
    """Current naive UTC timestamp"""
    return datetime.utcnow()
