"""
Miler OMS - FastAPI Backend
"""
import logging

import uvicorn
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import Database
from app.services.errors import (
    OrderSyncError,
    ProductNotFound,
    ShopifyAPIError,
    ShopifyConfigError,
    ShopifyTimeoutError,
    TransactionRollback,
    ValidationError,
)
from routes.api import register_routes

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Domain error -> HTTP status; first match wins
ERROR_STATUS = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ProductNotFound, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ShopifyTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (ShopifyAPIError, status.HTTP_502_BAD_GATEWAY),
    (ShopifyConfigError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (TransactionRollback, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def create_app(database: Database = None) -> FastAPI:
    """
    Build the API. When database is given (tests, scripts) it is used as-is and not
    closed on shutdown; otherwise startup opens the pool from settings.
    """
    app = FastAPI(
        title="Miler OMS API",
        description="Order sync and reconciliation API",
        version="1.0.0",
        docs_url="/docs" if settings.IS_DEVELOPMENT else None,  # Disable docs in production
        redoc_url="/redoc" if settings.IS_DEVELOPMENT else None,
    )
    app.state.database = database
    app.state.shopify_client = None

    @app.on_event("startup")
    async def open_resources() -> None:
        logger.info("Starting Miler OMS API (env=%s, production=%s)", settings.ENV, settings.IS_PRODUCTION)
        if app.state.database is None:
            logger.info("Opening database pool: %s", settings.masked_database_url())
            app.state.database = Database.from_settings(settings)
            app.state.owns_database = True
            app.state.database.create_all()
        else:
            app.state.owns_database = False

    @app.on_event("shutdown")
    async def close_resources() -> None:
        client = app.state.shopify_client
        if client is not None:
            await client.aclose()
            app.state.shopify_client = None
        if getattr(app.state, "owns_database", False) and app.state.database is not None:
            app.state.database.close()

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning("Validation error: %s", exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": exc.errors(),
                "message": "Validation error: Please check your request format"
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=exc.headers,
        )

    @app.exception_handler(OrderSyncError)
    async def order_sync_exception_handler(request: Request, exc: OrderSyncError):
        status_code = next(
            (code for cls, code in ERROR_STATUS if isinstance(exc, cls)),
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
        if status_code >= 500:
            logger.error("%s on %s: %s", exc.__class__.__name__, request.url.path, exc)
        else:
            logger.warning("%s on %s: %s", exc.__class__.__name__, request.url.path, exc)
        details = {"type": exc.__class__.__name__}
        if isinstance(exc, ValidationError) and exc.missing:
            details["missing"] = exc.missing
        if isinstance(exc, ProductNotFound):
            details["productCode"] = exc.product_code
        if isinstance(exc, ShopifyAPIError):
            details["status"] = exc.status_code
        return JSONResponse(
            status_code=status_code,
            content={"success": False, "error": str(exc), "details": details},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception: %s", exc, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "Internal server error",
                "details": str(exc) if settings.IS_DEVELOPMENT else "An error occurred",
            },
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    logger.info("CORS configured for %s origin(s)", len(settings.ALLOWED_ORIGINS))

    register_routes(app, settings)

    @app.get("/health")
    async def health():
        """Health check endpoint. Includes DB connectivity check."""
        database = app.state.database
        db_status = "ok" if database is not None and database.ping() else "error"
        return {
            "status": "ok" if db_status == "ok" else "degraded",
            "service": "api",
            "db": db_status,
            "shopify": "configured" if settings.SHOPIFY_CONFIGURED else "missing",
            "environment": settings.ENV,
        }

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.IS_DEVELOPMENT,  # Auto-reload only in development
        log_level=settings.LOG_LEVEL.lower()
    )
