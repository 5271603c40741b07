"""FastAPI application factory"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from checkout_messaging.api.middleware import RequestIDMiddleware, MetricsMiddleware
from checkout_messaging.api.v1 import banners
from checkout_messaging.infrastructure.database.models import Base
from checkout_messaging.infrastructure.database.session import engine
from checkout_messaging.infrastructure.observability.logging import setup_logging
from checkout_messaging.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Checkout Messaging",
        description="Checkout banner decisions for thresholds, subscription inclusions and upsells",
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
    app.include_router(banners.router, prefix="/v1", tags=["banners"])

    return app


app = create_app()
