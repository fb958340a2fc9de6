"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from exposure_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from exposure_gateway.api.v1 import matcher, portfolio, scenarios, settlements
from exposure_gateway.infrastructure.observability.logging import setup_logging
from exposure_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Exposure Gateway",
        description="Credit exposure, settlement and what-if analytics for facility portfolios",
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
    app.include_router(scenarios.router, prefix="/v1", tags=["scenarios"])
    app.include_router(matcher.router, prefix="/v1", tags=["facilities"])
    app.include_router(portfolio.router, prefix="/v1", tags=["portfolio"])
    app.include_router(settlements.router, prefix="/v1", tags=["settlements"])

    return app


app = create_app()
