"""FastAPI application factory"""

from fastapi import Depends, FastAPI
from sqlalchemy.orm import Session
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import JSONResponse, Response

from ledger_core.api.middleware import RequestIDMiddleware, MetricsMiddleware
from ledger_core.api.v1 import accounts, transactions
from ledger_core.infrastructure.database.session import database_reachable, get_db
from ledger_core.infrastructure.observability.logging import setup_logging
from ledger_core.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Ledger Core",
        description="Billing cycles, installments and duplicate resolution for a personal-finance ledger",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check: the ledger store must answer before transactions are accepted
    @app.get("/health")
    def health_check(db: Session = Depends(get_db)):
        body = {
            "service": settings.service_name,
            "database": db.get_bind().dialect.name,
            "max_installments": settings.max_installments,
            "default_installment_mode": settings.default_installment_mode,
        }
        if not database_reachable(db):
            return JSONResponse(status_code=503, content={"status": "unavailable", **body})
        return {"status": "ok", **body}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])
    app.include_router(accounts.router, prefix="/v1", tags=["accounts"])

    return app


app = create_app()
