from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime

import structlog

from stock_monitor.config import Settings, settings as default_settings
from stock_monitor.contracts.interfaces import IChangeDetector, ISnapshotSource
from stock_monitor.contracts.models import ProductSnapshot, RunStatus
from stock_monitor.coordinator.context import MonitorContext
from stock_monitor.differ.differ import ChangeDetector
from stock_monitor.ledger.ledger import apply_intents

logger = structlog.get_logger(__name__)

_ALERT_TIME_FORMAT = "%H:%M:%S"
_LAST_UPDATED_FORMAT = "%Y-%m-%d %H:%M:%S"


class CycleTimeoutError(TimeoutError):
    pass


class RunCoordinator:
    """Runs one acquire-diff-publish cycle at a time against a MonitorContext.

    A cycle started while another is in flight is a silent no-op. The
    acquisition races ``cycle_timeout_seconds``; on timeout the acquisition
    task is cancelled without being awaited and its result is never applied.
    State is published once on entry (checking) and once on exit (idle or
    error).
    """

    def __init__(
        self,
        context: MonitorContext,
        source: ISnapshotSource,
        detector: IChangeDetector | None = None,
        config: Settings | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._ctx = context
        self._source = source
        self._detector = detector or ChangeDetector()
        self._settings = config or default_settings
        self._clock = clock

    @property
    def context(self) -> MonitorContext:
        return self._ctx

    @property
    def is_running(self) -> bool:
        return self._ctx.running

    @contextmanager
    def _in_flight(self) -> Iterator[None]:
        self._ctx.running = True
        try:
            yield
        finally:
            self._ctx.running = False

    async def run_cycle(self) -> bool:
        """Run one cycle. Returns False if a cycle was already in flight."""
        if self._ctx.running:
            logger.debug("cycle_skipped_already_running")
            return False

        with self._in_flight():
            self._ctx.cycles += 1
            log = logger.bind(cycle=self._ctx.cycles, url=self._settings.target_url)

            self._ctx.state.update(
                status=RunStatus.CHECKING,
                is_scraping=True,
                error=None,
                started_at=self._clock(),
            )
            started = time.monotonic()
            log.info("cycle_start")

            try:
                products = await self._acquire_with_timeout()
                self._apply(products)
            except asyncio.CancelledError:
                log.warning(
                    "cycle_cancelled",
                    duration_seconds=round(time.monotonic() - started, 1),
                )
                self._ctx.state.update(
                    status=RunStatus.ERROR,
                    is_scraping=False,
                    error="Cycle cancelled",
                )
                raise
            except Exception as exc:
                log.error(
                    "cycle_failed",
                    error=str(exc),
                    duration_seconds=round(time.monotonic() - started, 1),
                    exc_info=True,
                )
                self._ctx.state.update(
                    status=RunStatus.ERROR,
                    is_scraping=False,
                    error=str(exc) or type(exc).__name__,
                )
                return True

            log.info(
                "cycle_complete",
                duration_seconds=round(time.monotonic() - started, 1),
                product_count=len(products),
            )
            return True

    async def _acquire_with_timeout(self) -> dict[str, ProductSnapshot]:
        task = asyncio.ensure_future(self._source.acquire(self._settings.target_url))
        try:
            done, _ = await asyncio.wait({task}, timeout=self._settings.cycle_timeout_seconds)
        except BaseException:
            task.cancel()
            raise

        if task not in done:
            # Abandon: request cancellation but never wait on or apply the result
            task.cancel()
            task.add_done_callback(_consume_result)
            raise CycleTimeoutError("Scrape timeout")

        return task.result()

    def _apply(self, products: dict[str, ProductSnapshot]) -> None:
        """Diff against working copies and publish them together."""
        ctx = self._ctx
        seen = dict(ctx.seen_products)
        alerts = ctx.alerts.copy()
        monitored = ctx.monitored.copy()
        now = self._clock()

        intents = self._detector.detect(seen, products, ctx.first_run)
        recorded = apply_intents(
            intents,
            alerts,
            monitored,
            products,
            now.strftime(_ALERT_TIME_FORMAT),
        )

        ctx.seen_products = seen
        ctx.alerts = alerts
        ctx.monitored = monitored
        ctx.first_run = False

        ctx.state.update(
            current_products=products,
            alerts=alerts.to_list(),
            monitored_products=monitored.to_list(),
            last_updated=now.strftime(_LAST_UPDATED_FORMAT),
            status=RunStatus.IDLE,
            is_scraping=False,
            error=None,
        )

        if recorded:
            logger.info(
                "alerts_recorded",
                count=len(recorded),
                links=[a.link for a in recorded],
            )


def _consume_result(task: asyncio.Future) -> None:  # type: ignore[type-arg]
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("abandoned_acquisition_failed", error=str(exc))
    else:
        logger.info("abandoned_acquisition_discarded")
