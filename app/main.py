# app/main.py
"""
Application entrypoint with database pool and background-task lifecycle management.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.config import settings
from app.db.pool import db_pool
from app.infrastructure.observability.logging import get_logger, log_request, setup_logging
from app.middleware.request_context import RequestContextMiddleware
from app.routes import contacts, emails, health, product_context, research, webhooks
from app.services.email_service import email_service
from app.services.research_dispatcher import research_dispatcher
from app.services.research_service import research_service

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""

    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    try:
        logger.info("Initializing database pool")
        await db_pool.initialize()
    except Exception as e:
        logger.error("Failed to initialize database pool", error=str(e))
        raise

    logger.info(
        "Services initialized",
        enrichment=research_service.status(),
        delivery_mock_mode=email_service.provider.is_mock,
    )

    yield

    # Shutdown sequence: stop background work before closing what it uses
    logger.info("Application shutting down")

    shutdown_errors = []

    try:
        await research_dispatcher.drain()
    except Exception as e:
        logger.error("Error draining research tasks", error=str(e))
        shutdown_errors.append(f"Research tasks: {e}")

    for name, closer in (
        ("Enrichment client", research_service.close),
        ("Delivery client", email_service.close),
    ):
        try:
            await closer()
        except Exception as e:
            logger.error("Error closing HTTP client", client=name, error=str(e))
            shutdown_errors.append(f"{name}: {e}")

    try:
        logger.info("Closing database pool")
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))
        shutdown_errors.append(f"Database: {e}")

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Conversion Backend",
    description="Contact enrichment, AI email generation and delivery tracking",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(contacts.router)
app.include_router(research.router)
app.include_router(emails.router)
app.include_router(product_context.router)
app.include_router(webhooks.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        request.method, request.url.path, response.status_code, round(process_time, 2)
    )
    return response


# Outermost, so request_id is bound before the request logger runs
app.add_middleware(RequestContextMiddleware)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
