from __future__ import annotations

from typing import Protocol

from stock_monitor.contracts.models import AlertIntent, ProductSnapshot


class ISnapshotSource(Protocol):
    async def acquire(self, url: str) -> dict[str, ProductSnapshot]: ...


class IChangeDetector(Protocol):
    def detect(
        self,
        previous: dict[str, ProductSnapshot],
        current: dict[str, ProductSnapshot],
        first_run: bool,
    ) -> list[AlertIntent]: ...
