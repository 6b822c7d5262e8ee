from __future__ import annotations

from typing import Any

import structlog

from stock_monitor.contracts.models import StateView

logger = structlog.get_logger(__name__)

_FIELDS: frozenset[str] = frozenset(StateView.model_fields) - {"version"}


class ProcessState:
    """Shared state read by the presentation layer.

    A single writer (the run coordinator) merges fields with ``update``;
    readers get an immutable ``StateView`` from ``read``. Every update bumps
    ``version`` so observers can tell publishes apart.
    """

    def __init__(self) -> None:
        self._view = StateView()

    def update(self, **fields: Any) -> None:
        unknown = set(fields) - _FIELDS
        if unknown:
            raise KeyError(f"Unknown state fields: {sorted(unknown)}")

        merged = self._view.model_dump(exclude={"total_count"})
        merged.update(fields)
        merged["version"] = self._view.version + 1
        self._view = StateView.model_validate(merged)

        logger.debug("state_published", version=self._view.version, fields=sorted(fields))

    def read(self) -> StateView:
        return self._view
