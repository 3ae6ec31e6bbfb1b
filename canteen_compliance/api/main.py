"""FastAPI application factory"""

from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy.orm import Session
from starlette.responses import Response

from canteen_compliance.api.middleware import RequestIDMiddleware, MetricsMiddleware
from canteen_compliance.api.v1 import students, sweep, transactions
from canteen_compliance.config import Settings, settings as default_settings
from canteen_compliance.domain.policy import CompliancePolicy
from canteen_compliance.infrastructure.database.session import SessionLocal
from canteen_compliance.infrastructure.observability.logging import setup_logging
from canteen_compliance.services.scheduler import DailySweepJob


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[Callable[[], Session]] = None,
) -> FastAPI:
    """Create and configure FastAPI application"""
    settings = settings or default_settings
    setup_logging(settings.log_level)

    sweep_job = DailySweepJob.from_settings(settings, session_factory or SessionLocal)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start the daily sweep with the app and stop it on shutdown"""
        if settings.scheduler_enabled:
            sweep_job.start()
        try:
            yield
        finally:
            sweep_job.stop()

    app = FastAPI(
        title="Canteen Payment Compliance",
        description="Due dates, overdue deductions and account restrictions for canteen credit",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.sweep_job = sweep_job
    app.state.policy = CompliancePolicy.from_settings(settings)

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
    app.include_router(sweep.router, prefix="/v1", tags=["sweep"])
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])
    app.include_router(students.router, prefix="/v1", tags=["students"])

    return app


app = create_app()
