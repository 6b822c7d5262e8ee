from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from stock_monitor.api.routes import limiter, router
from stock_monitor.config import settings
from stock_monitor.coordinator.context import MonitorContext
from stock_monitor.coordinator.coordinator import RunCoordinator
from stock_monitor.scheduler.scheduler import CheckScheduler
from stock_monitor.scraper.scraper import ListingScraper

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        structlog.get_config().get("min_level", 0),
    ),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    logger.info(
        "starting_up",
        target_url=settings.target_url,
        cors_origins=settings.cors_origin_list,
    )

    context = MonitorContext.from_settings(settings)
    coordinator = RunCoordinator(context, ListingScraper(settings), config=settings)
    scheduler = CheckScheduler(coordinator, settings)

    app.state.coordinator = coordinator
    app.state.scheduler = scheduler

    scheduler.start()
    logger.info("scheduler_started")

    yield

    # Shutdown
    scheduler.stop()
    logger.info("shutdown_complete", cycles=context.cycles)


app = FastAPI(
    title="Listing Stock Monitor API",
    description="Listing page stock monitoring and alert feed",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
