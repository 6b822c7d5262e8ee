from __future__ import annotations

from collections import deque
from collections.abc import Callable, Hashable, Iterable, Iterator
from typing import Generic, TypeVar

import structlog

from stock_monitor.contracts.models import (
    Alert,
    AlertIntent,
    MonitoredEntry,
    ProductSnapshot,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class BoundedFeed(Generic[T]):
    """Newest-first sequence with a fixed capacity and a dedup key.

    ``push`` inserts at the front unless an item with the same key is already
    present, then drops from the back until the capacity holds.
    """

    def __init__(
        self,
        capacity: int,
        key: Callable[[T], Hashable],
        items: Iterable[T] = (),
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._key = key
        # newest first, so keep the head of an over-long seed
        self._items: deque[T] = deque(list(items)[:capacity], maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __contains__(self, key: object) -> bool:
        return any(self._key(item) == key for item in self._items)

    def push(self, item: T) -> bool:
        if self._key(item) in self:
            return False
        # deque(maxlen) drops from the opposite end on appendleft
        self._items.appendleft(item)
        return True

    def retain(self, predicate: Callable[[T], bool]) -> int:
        kept = [item for item in self._items if predicate(item)]
        dropped = len(self._items) - len(kept)
        self._items = deque(kept, maxlen=self._capacity)
        return dropped

    def copy(self) -> BoundedFeed[T]:
        return type(self)(self._capacity, self._key, self._items)

    def to_list(self) -> list[T]:
        return list(self._items)


class AlertLedger(BoundedFeed[Alert]):
    """Alerts deduplicated by ``(link, kind)``."""

    def __init__(self, capacity: int = 50, items: Iterable[Alert] = ()) -> None:
        super().__init__(capacity, lambda a: (a.link, a.kind), items)

    def copy(self) -> AlertLedger:
        return AlertLedger(self.capacity, self)


class MonitoredSet(BoundedFeed[MonitoredEntry]):
    """Recently changed products, one entry per link."""

    def __init__(self, capacity: int = 20, items: Iterable[MonitoredEntry] = ()) -> None:
        super().__init__(capacity, lambda e: e.link, items)

    def copy(self) -> MonitoredSet:
        return MonitoredSet(self.capacity, self)

    def prune(self, current: dict[str, ProductSnapshot]) -> int:
        """Keep only entries whose link is in stock in ``current``."""

        def still_in_stock(entry: MonitoredEntry) -> bool:
            product = current.get(entry.link)
            return product is not None and product.in_stock

        return self.retain(still_in_stock)


def apply_intents(
    intents: list[AlertIntent],
    ledger: AlertLedger,
    monitored: MonitoredSet,
    current: dict[str, ProductSnapshot],
    time: str,
) -> list[Alert]:
    """Record intents in the ledger and monitored set, then prune the set.

    Returns the alerts that were actually recorded; intents whose
    ``(link, kind)`` is already in the ledger are dropped.
    """
    recorded: list[Alert] = []

    for intent in intents:
        alert = Alert.from_intent(intent, time)
        if not ledger.push(alert):
            logger.debug("duplicate_alert_dropped", link=alert.link, kind=alert.kind.value)
            continue
        recorded.append(alert)
        monitored.push(MonitoredEntry.from_intent(intent, time))

    dropped = monitored.prune(current)
    if dropped:
        logger.info("monitored_pruned", dropped=dropped, remaining=len(monitored))

    return recorded
