from dotenv import load_dotenv
load_dotenv()  # Load environment variables from .env file

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from .config import Settings, configure_logging, get_settings
from .data_sources import BaseDataSource, CoinGeckoClient, ConnectionManager
from .errors import ErrorCode, WatchlistError, create_error_response
from .rate_limit import RateLimiter
from .routes import router
from .schedulers import start_scheduler, stop_scheduler
from .service import WatchlistService
from .watchlist_storage import WatchlistStore

logger = logging.getLogger(__name__)


def _coingecko_factory(settings: Settings) -> Callable[[], BaseDataSource]:
    def factory() -> BaseDataSource:
        return CoinGeckoClient(
            api_key=settings.coingecko_api_key,
            base_url=settings.coingecko_base_url,
            timeout=settings.coingecko_timeout_seconds,
        )
    return factory


def create_app(
    settings: Optional[Settings] = None,
    market_factory: Optional[Callable[[], BaseDataSource]] = None
) -> FastAPI:
    """
    Build the API application.
    
    One store, rate limiter, service and market-data connection are
    created here and shared through ``app.state``.
    
    Args:
        settings: Runtime settings (default: loaded from the environment)
        market_factory: Builds market data clients (default: CoinGecko)
    """
    settings = settings or get_settings()
    configure_logging(settings)

    store = WatchlistStore()
    limiter = RateLimiter()
    service = WatchlistService(store, limiter, settings)
    market = ConnectionManager(market_factory or _coingecko_factory(settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = None
        if settings.rate_limit_cleanup_seconds > 0:
            scheduler = start_scheduler(limiter, settings.rate_limit_cleanup_seconds)
        try:
            yield
        finally:
            stop_scheduler(scheduler)
            market.close()

    app = FastAPI(
        title="Coin Watchlist API",
        description="Curate crypto watchlists with notes and browse the public directory",
        version="0.1.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.store = store
    app.state.service = service
    app.state.market = market

    # Add response compression
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.include_router(router)

    @app.exception_handler(WatchlistError)
    async def watchlist_exception_handler(request: Request, exc: WatchlistError):
        """Serialize taxonomy errors with their HTTP status."""
        headers = None
        if exc.code == ErrorCode.RATE_LIMITED and exc.details:
            headers = {"Retry-After": str(exc.details.get("retry_after", 1))}
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request parsing errors as VALIDATION_ERROR."""
        errors = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            errors.append({
                "field": field,
                "message": error["msg"],
                "type": error["type"]
            })
        error = WatchlistError(ErrorCode.VALIDATION_ERROR, "Validation failed", {"errors": errors})
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        """Anything outside the taxonomy becomes INTERNAL_ERROR."""
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=create_error_response(exc, settings.expose_error_details)
        )

    logger.info(f"Application created (environment={settings.environment}, auth={settings.enable_auth})")
    return app


app = create_app()
