"""FastAPI application factory"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from card_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from card_ledger.api.v1 import cards, card_transactions, invoices, purchases, periods
from card_ledger.infrastructure.database.session import init_db
from card_ledger.infrastructure.observability.logging import setup_logging
from card_ledger.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_tables_on_startup:
        init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Card Ledger",
        description="Credit card charges, installments, invoices and available credit",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(cards.router, prefix="/v1", tags=["cards"])
    app.include_router(card_transactions.router, prefix="/v1", tags=["card-transactions"])
    app.include_router(invoices.router, prefix="/v1", tags=["invoices"])
    app.include_router(purchases.router, prefix="/v1", tags=["purchases"])
    app.include_router(periods.router, prefix="/v1", tags=["periods"])

    return app


app = create_app()
