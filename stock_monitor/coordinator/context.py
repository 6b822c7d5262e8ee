from __future__ import annotations

from dataclasses import dataclass, field

from stock_monitor.config import Settings
from stock_monitor.contracts.models import ProductSnapshot
from stock_monitor.ledger.ledger import AlertLedger, MonitoredSet
from stock_monitor.state.store import ProcessState


@dataclass
class MonitorContext:
    """Process-wide monitor state, created once at startup and owned by the coordinator."""

    state: ProcessState = field(default_factory=ProcessState)
    seen_products: dict[str, ProductSnapshot] = field(default_factory=dict)
    alerts: AlertLedger = field(default_factory=AlertLedger)
    monitored: MonitoredSet = field(default_factory=MonitoredSet)
    first_run: bool = True
    running: bool = False
    cycles: int = 0

    @classmethod
    def from_settings(cls, config: Settings) -> MonitorContext:
        return cls(
            alerts=AlertLedger(config.alert_capacity),
            monitored=MonitoredSet(config.monitored_capacity),
        )
