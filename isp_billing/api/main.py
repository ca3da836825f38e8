"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from isp_billing.api.dependencies import get_sweep_runner
from isp_billing.api.errors import register_exception_handlers
from isp_billing.api.middleware import RequestIDMiddleware, MetricsMiddleware
from isp_billing.api.v1 import auth, contracts, customers, inquiries, invoices, payments, plans, sweeps
from isp_billing.infrastructure.database.session import SessionLocal, init_db
from isp_billing.infrastructure.observability.logging import setup_logging
from isp_billing.services.accounts import AccountService
from isp_billing.services.plans import PlanService
from isp_billing.services.sweep import SweepScheduler
from isp_billing.config import settings

# Setup structured logging
setup_logging(settings.log_level, settings.service_name)


def bootstrap() -> None:
    """Create tables, the default plan catalog and the admin user"""
    init_db()
    db = SessionLocal()
    try:
        if settings.seed_plans:
            PlanService(db).seed_defaults()
        AccountService(db).ensure_admin(settings.admin_email, settings.admin_password, settings.admin_cedula)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    bootstrap()

    scheduler = None
    if settings.sweep_enabled:
        scheduler = SweepScheduler(get_sweep_runner(), settings.sweep_interval_seconds)
        scheduler.start()
        logging.info("Overdue sweep scheduled", extra={"interval_seconds": settings.sweep_interval_seconds})

    yield

    if scheduler is not None:
        await scheduler.stop()


def create_app(run_lifespan: bool = True) -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="ISP Billing",
        description="Subscriptions, invoices, payments and account balances",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan if run_lifespan else None,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(auth.router, prefix="/v1", tags=["auth"])
    app.include_router(customers.router, prefix="/v1", tags=["customers"])
    app.include_router(plans.router, prefix="/v1", tags=["plans"])
    app.include_router(contracts.router, prefix="/v1", tags=["contracts"])
    app.include_router(invoices.router, prefix="/v1", tags=["invoices"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(sweeps.router, prefix="/v1", tags=["sweeps"])
    app.include_router(inquiries.router, prefix="/v1", tags=["inquiries"])

    return app


app = create_app()
