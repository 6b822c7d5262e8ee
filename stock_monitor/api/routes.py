from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.util import get_remote_address

from stock_monitor.contracts.models import (
    Alert,
    MonitoredEntry,
    ProductSnapshot,
    RunStatus,
    StateView,
)
from stock_monitor.coordinator.coordinator import RunCoordinator
from stock_monitor.scheduler.scheduler import CheckScheduler

limiter = Limiter(key_func=get_remote_address)

router = APIRouter()


# ── Dependencies ──────────────────────────────────────────────────────────────


def get_coordinator(request: Request) -> RunCoordinator:
    return request.app.state.coordinator


def get_state_view(coordinator: RunCoordinator = Depends(get_coordinator)) -> StateView:
    return coordinator.context.state.read()


# ── Response schemas ──────────────────────────────────────────────────────────


class DataResponse(BaseModel):
    products: dict[str, ProductSnapshot]
    monitored_products: list[MonitoredEntry]
    alerts: list[Alert]
    last_updated: str
    is_scraping: bool
    status: RunStatus
    error: str | None
    total_count: int


class CheckResponse(BaseModel):
    accepted: bool


class HealthResponse(BaseModel):
    status: str
    scheduler: bool
    last_status: RunStatus


# ── State routes ──────────────────────────────────────────────────────────────


@router.get("/api/data")
async def get_data(view: StateView = Depends(get_state_view)) -> DataResponse:
    return DataResponse(
        products=view.in_stock_products,
        monitored_products=view.monitored_products,
        alerts=view.alerts,
        last_updated=view.last_updated,
        is_scraping=view.is_scraping,
        status=view.status,
        error=view.error,
        total_count=view.total_count,
    )


@router.post("/api/check", status_code=status.HTTP_202_ACCEPTED)
@limiter.limit("6/minute")
async def trigger_check(
    request: Request,
    background_tasks: BackgroundTasks,
    coordinator: RunCoordinator = Depends(get_coordinator),
) -> CheckResponse:
    if coordinator.is_running:
        return CheckResponse(accepted=False)
    background_tasks.add_task(coordinator.run_cycle)
    return CheckResponse(accepted=True)


# ── Health ────────────────────────────────────────────────────────────────────


@router.get("/health")
async def health_check(
    request: Request,
    view: StateView = Depends(get_state_view),
) -> HealthResponse:
    scheduler: CheckScheduler | None = getattr(request.app.state, "scheduler", None)
    scheduler_running = scheduler is not None and scheduler.running

    overall = "ok" if view.status != RunStatus.ERROR else "degraded"

    return HealthResponse(
        status=overall,
        scheduler=scheduler_running,
        last_status=view.status,
    )
