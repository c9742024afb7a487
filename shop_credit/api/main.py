"""FastAPI application factory"""

import logging
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.responses import Response

from shop_credit.api.middleware import RequestIDMiddleware, MetricsMiddleware
from shop_credit.api.v1 import customers, installments, sales
from shop_credit.infrastructure.database.session import get_db
from shop_credit.infrastructure.observability.logging import setup_logging
from shop_credit.config import settings

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create the ledger API with tracing, metrics and the v1 routers"""
    app = FastAPI(
        title="Shop Credit Ledger",
        description="Credit sales, installment schedules and cascade payment allocation",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Last added runs first: request id is set before metrics are taken
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check(db: Session = Depends(get_db)):
        """Liveness plus a round trip to the ledger store"""
        try:
            db.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logging.error(f"Ledger store health check failed: {e}")
            return JSONResponse(
                status_code=503,
                content={"status": "degraded", "service": settings.service_name, "database": "unavailable"},
            )
        return {"status": "ok", "service": settings.service_name, "database": "ok"}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(customers.router, prefix="/v1", tags=["customers"])
    app.include_router(sales.router, prefix="/v1", tags=["sales"])
    app.include_router(installments.router, prefix="/v1", tags=["installments"])

    return app


app = create_app()
