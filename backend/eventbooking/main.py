"""
Event Booking API - Main Application Entry Point

An event booking system demonstrating:
- Oversell-proof seat reservation (per-event lock + optimistic version check)
- An in-process, best-effort job queue for booking and event-change notices
- Redis caching of event listings with invalidation on every seat change
- Structured logging with request correlation and Prometheus metrics

The lifespan below is the composition root: it builds the seat ledger, the
notification dispatcher and the job queue once per process and hangs them on
app.state for the request dependencies.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eventbooking.core.config import get_settings
from eventbooking.core.exceptions import register_exception_handlers
from eventbooking.core.logging import setup_logging, get_logger
from eventbooking.core.metrics import metrics_endpoint
from eventbooking.api.router import api_router
from eventbooking.api.middleware import RequestLoggingMiddleware
from eventbooking.jobs.queue import JobQueue
from eventbooking.services.cache_service import get_redis, close_redis, get_cache_stats
from eventbooking.services.notification_service import NotificationDispatcher
from eventbooking.services.seat_ledger import SeatLedger
from eventbooking.services.strategy_factory import get_notification_transport

settings = get_settings()


def build_job_queue() -> JobQueue:
    dispatcher = NotificationDispatcher(get_notification_transport(settings))
    return JobQueue(
        dispatcher,
        processing_delay=settings.JOB_PROCESSING_DELAY,
        history_size=settings.JOB_HISTORY_SIZE,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    app.state.seat_ledger = SeatLedger()
    app.state.job_queue = build_job_queue()
    app.state.job_queue.start()
    logger.info(
        "job_queue_ready",
        transport=app.state.job_queue.dispatcher.transport.name,
        delay=settings.JOB_PROCESSING_DELAY,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    yield

    await app.state.job_queue.stop()
    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Event booking API with oversell-proof reservations and async notifications",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)
register_exception_handlers(app)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    job_queue = getattr(app.state, "job_queue", None)
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
        "jobs": {
            "running": bool(job_queue and job_queue.is_running),
            "pending": job_queue.pending if job_queue else 0,
        },
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
