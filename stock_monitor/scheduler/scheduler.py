from __future__ import annotations

from datetime import datetime

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from stock_monitor.config import Settings, settings as default_settings
from stock_monitor.coordinator.coordinator import RunCoordinator

logger = structlog.get_logger(__name__)


class CheckScheduler:
    """Triggers a coordinator cycle on a fixed interval."""

    def __init__(self, coordinator: RunCoordinator, config: Settings | None = None) -> None:
        self._scheduler = AsyncIOScheduler()
        self._coordinator = coordinator
        self._settings = config or default_settings

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        self._scheduler.add_job(
            self._coordinator.run_cycle,
            trigger=IntervalTrigger(seconds=self._settings.check_interval_seconds),
            id="stock_check",
            name="Check listing for stock changes",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(),
        )
        self._scheduler.start()
        logger.info(
            "scheduler_configured",
            interval_seconds=self._settings.check_interval_seconds,
        )

    def stop(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        logger.info("scheduler_shutdown")

    async def trigger_now(self) -> bool:
        """Manually run one cycle outside the interval."""
        return await self._coordinator.run_cycle()
