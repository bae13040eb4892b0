"""FastAPI application wiring for the payment service."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .auth import create_limiter
from .config import Settings, configure_logging
from .database import DatabaseManager
from .errors import PaymentError
from .reconciliation.api import router, sepay_callback
from .reconciliation.gateway import SePayClient

logger = logging.getLogger(__name__)


async def payment_error_handler(request: Request, exc: PaymentError) -> JSONResponse:
    """Turn core errors into the structured failure body; only the message leaks."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[DatabaseManager] = None,
    gateway: Optional[SePayClient] = None,
    create_tables: bool = True,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Service configuration; read from the environment if omitted.
        db: Database manager; built from ``settings.database_url`` if omitted.
        gateway: SePay client; built from settings if omitted.
        create_tables: Create missing tables at startup.

    Returns:
        FastAPI application. The database is connected in the lifespan, so a
        database that cannot be reached stops the app from starting.
    """
    settings = settings or Settings.from_env()
    db = db or DatabaseManager(settings.database_url)
    gateway = gateway or SePayClient.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await db.initialize(create_tables=create_tables)
        try:
            yield
        finally:
            await db.shutdown()

    app = FastAPI(
        title="PayFastacy API",
        description="Payment processing API documentation",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = db
    app.state.gateway = gateway

    limiter = create_limiter()
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(PaymentError, payment_error_handler)

    app.include_router(router)
    app.add_api_route(
        "/callback",
        limiter.limit(settings.callback_rate_limit)(sepay_callback),
        methods=["POST"],
        tags=["payment"],
    )
    return app


def main() -> None:
    """Run the API with uvicorn."""
    import os
    import uvicorn

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",
        port=int(os.getenv("PORT", "3000")),
    )


if __name__ == "__main__":
    main()
