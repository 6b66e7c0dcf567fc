"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from quote_engine.api.middleware import RequestIDMiddleware, MetricsMiddleware
from quote_engine.api.v1 import billing, contracts, leads, policies, quotes
from quote_engine.infrastructure.observability.logging import setup_logging
from quote_engine.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Quote Engine",
        description="Vehicle service contract quoting, e-signature and policy conversion service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
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
    app.include_router(leads.router, prefix="/v1", tags=["leads"])
    app.include_router(quotes.router, prefix="/v1", tags=["quotes"])
    app.include_router(policies.router, prefix="/v1", tags=["policies"])
    app.include_router(contracts.router, prefix="/v1", tags=["contracts"])
    app.include_router(billing.router, prefix="/v1", tags=["billing"])

    return app


app = create_app()
