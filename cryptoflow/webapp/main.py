"""
FastAPI application entry point for the CryptoFlow exchange API.

Run with:
    uvicorn cryptoflow.webapp.main:create_app --factory --reload

Open: http://127.0.0.1:8000
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cryptoflow.orders.order_store import InvalidStatusTransitionError, OrderNotFoundError
from cryptoflow.orders.service import OrderValidationError
from cryptoflow.pricing.order_pricer import AmountOutOfRangeError, InsufficientAmountError
from cryptoflow.services.container import ServiceContainer, build_services
from cryptoflow.storage.currency_catalog import CurrencyNotFoundError
from cryptoflow.utils.config_loader import AppConfig, load_config, load_env
from cryptoflow.utils.logging_config import setup_logging
from cryptoflow.webapp.exceptions import AppException, to_app_exception
from cryptoflow.webapp.middleware import RateLimitConfig, RateLimitMiddleware
from cryptoflow.webapp.routes import router

logger = logging.getLogger(__name__)

DOMAIN_ERRORS = (
    AppException,
    CurrencyNotFoundError,
    OrderNotFoundError,
    InvalidStatusTransitionError,
    InsufficientAmountError,
    AmountOutOfRangeError,
    OrderValidationError,
)


async def app_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render domain and application errors as JSON."""
    app_exc = to_app_exception(exc)
    if app_exc is None:
        raise exc
    if app_exc.status_code >= 500:
        logger.error(f"{app_exc.error_code} on {request.url.path}: {app_exc.message}")
    return JSONResponse(status_code=app_exc.status_code, content=app_exc.to_dict())


def create_app(
    config: Optional[AppConfig] = None,
    services: Optional[ServiceContainer] = None,
    start_refresher: Optional[bool] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Application configuration; loaded from config/config.yaml when None.
        services: Prebuilt service container; built from config when None.
        start_refresher: Run the periodic rate refresher during the app
            lifespan. Defaults to the broadcast.enabled setting.
    """
    if services is None:
        if config is None:
            load_env()
            config = load_config()
        services = build_services(config)
    config = services.config

    run_refresher = config.broadcast.enabled if start_refresher is None else start_refresher

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown."""
        setup_logging(
            level=config.logging.level,
            log_format=config.logging.format,
            log_file=config.logging.log_file,
        )
        logger.info("CryptoFlow exchange API starting...")
        if run_refresher and services.refresher is not None:
            services.refresher.start()
        yield
        logger.info("CryptoFlow exchange API shutting down...")
        await services.aclose()

    app = FastAPI(
        title="CryptoFlow Exchange",
        description="Crypto-to-fiat exchange rates, quotes and orders",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services

    @app.middleware("http")
    async def error_handling_middleware(request: Request, call_next):
        """Global error handling middleware."""
        start_time = time.time()
        try:
            response = await call_next(request)
            process_time = time.time() - start_time
            response.headers["X-Process-Time"] = str(process_time)
            return response
        except Exception as e:
            process_time = time.time() - start_time
            logger.exception(f"Unhandled error processing {request.url.path}: {e}")
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal server error",
                    "detail": str(e) if app.debug else "An unexpected error occurred",
                    "path": str(request.url.path),
                },
                headers={"X-Process-Time": str(process_time)},
            )

    for exc_class in DOMAIN_ERRORS:
        app.add_exception_handler(exc_class, app_exception_handler)

    @app.get("/health")
    async def health_check() -> dict[str, Any]:
        """Detailed health check endpoint for monitoring."""
        return services.health.get_full_health().to_dict()

    @app.get("/health/simple")
    async def simple_health_check() -> dict[str, Any]:
        """Simple health check for load balancers."""
        return services.health.get_simple_health()

    @app.get("/health/ready")
    async def readiness_check() -> JSONResponse:
        """Readiness check - verifies app can serve requests."""
        ready = services.health.is_ready()
        return JSONResponse(
            status_code=200 if ready else 503,
            content={
                "status": "ready" if ready else "not_ready",
                "timestamp": services.health.get_simple_health()["timestamp"],
            },
        )

    rate_limit = config.rate_limit
    app.add_middleware(
        RateLimitMiddleware,
        config=RateLimitConfig(
            enabled=rate_limit.enabled,
            api_rpm=rate_limit.api_rpm,
            order_limit=rate_limit.order_limit,
            order_window_seconds=rate_limit.order_window_seconds,
        ),
    )

    app.include_router(router)
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("cryptoflow.webapp.main:create_app", factory=True, host="127.0.0.1", port=8000, reload=True)
