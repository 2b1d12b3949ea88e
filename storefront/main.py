"""
Storefront Backend
FastAPI application entry point

The lifespan owns the process's single Database (connection pool): it is
created at startup, stored on app.state for the request dependencies, and
disposed at shutdown. Tests pass their own Database to create_app().
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from storefront.api.routes import auth, cart, orders, products
from storefront.core.config import Settings, settings as default_settings
from storefront.core.database import Database
from storefront.core.error_handler import register_exception_handlers
from storefront.core.monitoring import RequestMetricsMiddleware, metrics, record_db_metrics
from storefront.core.rate_limit import limiter, rate_limit_exceeded_handler

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.LOG_LEVEL)
        owns_database = getattr(app.state, "db", None) is None
        if owns_database:
            app.state.db = Database.from_settings(settings)
            logger.info("Database pool created")
        if settings.DB_CREATE_ALL:
            await app.state.db.create_all()
            logger.info("Database tables ready")

        yield

        if owns_database:
            await app.state.db.dispose()
            app.state.db = None

    app = FastAPI(
        lifespan=lifespan,
        title=settings.APP_NAME,
        description="Products, per-user carts and transactional checkout.",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "Health", "description": "Health check and monitoring endpoints"},
            {"name": "Auth", "description": "User registration and login"},
            {"name": "Products", "description": "Product catalog management"},
            {"name": "Cart", "description": "Shopping cart operations"},
            {"name": "Orders", "description": "Checkout and order history"},
        ],
    )
    app.state.db = database

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    register_exception_handlers(app)

    app.add_middleware(RequestMetricsMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router, prefix="/auth", tags=["Auth"])
    app.include_router(products.router, prefix="/products", tags=["Products"])
    app.include_router(cart.router, prefix="/cart", tags=["Cart"])
    app.include_router(orders.router, tags=["Orders"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check with an actual DB ping. Returns 503 if unreachable."""
        health_status = {"status": "healthy", "database": "connected"}
        try:
            await app.state.db.ping()
        except Exception as e:
            logger.warning(f"Health check DB ping failed: {type(e).__name__}")
            health_status.update(status="unhealthy", database=f"error: {type(e).__name__}")
            return JSONResponse(status_code=503, content=health_status)
        return health_status

    @app.get("/metrics", tags=["Health"])
    async def json_metrics():
        """Collected request, business and pool metrics as JSON"""
        record_db_metrics(app.state.db.engine.pool)
        return metrics.get_all_metrics()

    return app


app = create_app()
