from __future__ import annotations

import structlog

from stock_monitor.contracts.models import AlertIntent, AlertKind, ProductSnapshot

logger = structlog.get_logger(__name__)


class ChangeDetector:
    """Compare a new snapshot against the seen-products table and emit alert intents.

    Detects:
    - New products: id never seen before and in stock (suppressed on the first run)
    - Restocks: id seen before as out of stock, now in stock

    The seen-products table is updated in place: every id of the new snapshot
    overwrites its previous entry. Ids missing from the new snapshot are left
    untouched.
    """

    def detect(
        self,
        previous: dict[str, ProductSnapshot],
        current: dict[str, ProductSnapshot],
        first_run: bool,
    ) -> list[AlertIntent]:
        intents: list[AlertIntent] = []

        for pid, new_product in current.items():
            old_product = previous.get(pid)

            if old_product is None:
                if not first_run and new_product.in_stock:
                    logger.info(
                        "new_product_detected",
                        name=new_product.name,
                        link=new_product.link,
                    )
                    intents.append(AlertIntent(kind=AlertKind.NEW, product=new_product))
            elif not old_product.in_stock and new_product.in_stock:
                logger.info(
                    "restock_detected",
                    name=new_product.name,
                    link=new_product.link,
                )
                intents.append(AlertIntent(kind=AlertKind.STOCK, product=new_product))

            previous[pid] = new_product

        logger.info(
            "diff_complete",
            seen_count=len(previous),
            new_count=len(current),
            intents_count=len(intents),
            first_run=first_run,
        )

        return intents
