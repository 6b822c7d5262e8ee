from __future__ import annotations

import enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field


# ── Enums ──────────────────────────────────────────────────────────────────────


class AlertKind(str, enum.Enum):
    NEW = "NEW"
    STOCK = "STOCK"


class RunStatus(str, enum.Enum):
    IDLE = "idle"
    CHECKING = "checking"
    ERROR = "error"


# ── Pydantic schemas ──────────────────────────────────────────────────────────


class ProductSnapshot(BaseModel):
    """One product as observed on the listing page during a single cycle.

    ``id`` is the product link; it is the key of every snapshot mapping.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    in_stock: bool
    link: str
    image: str = ""


class AlertIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: AlertKind
    product: ProductSnapshot


class Alert(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: AlertKind
    message: str
    link: str
    time: str

    @classmethod
    def from_intent(cls, intent: AlertIntent, time: str) -> Alert:
        prefix = "New Product" if intent.kind == AlertKind.NEW else "Back in Stock"
        return cls(
            kind=intent.kind,
            message=f"{prefix}: {intent.product.name}",
            link=intent.product.link,
            time=time,
        )


class MonitoredEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    in_stock: bool
    link: str
    image: str
    alert_kind: AlertKind
    alert_time: str

    @classmethod
    def from_intent(cls, intent: AlertIntent, time: str) -> MonitoredEntry:
        return cls(
            **intent.product.model_dump(),
            alert_kind=intent.kind,
            alert_time=time,
        )


class StateView(BaseModel):
    """Read-only copy of the process state handed to observers."""

    model_config = ConfigDict(frozen=True)

    current_products: dict[str, ProductSnapshot] = Field(default_factory=dict)
    alerts: list[Alert] = Field(default_factory=list)
    monitored_products: list[MonitoredEntry] = Field(default_factory=list)
    last_updated: str = "Never"
    is_scraping: bool = False
    status: RunStatus = RunStatus.IDLE
    error: str | None = None
    started_at: datetime | None = None
    version: int = 0

    @property
    def in_stock_products(self) -> dict[str, ProductSnapshot]:
        return {pid: p for pid, p in self.current_products.items() if p.in_stock}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_count(self) -> int:
        return len(self.in_stock_products)
